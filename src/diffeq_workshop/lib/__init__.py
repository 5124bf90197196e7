"""Utility libraries for diffeq_workshop."""

from diffeq_workshop.lib.diff import grad

__all__ = ["grad"]
