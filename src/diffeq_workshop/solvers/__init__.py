"""Solver dispatch and the method registry."""

from diffeq_workshop.solvers.dae import AlgebraicSolveError
from diffeq_workshop.solvers.dispatch import solve
from diffeq_workshop.solvers.registry import METHODS, MethodSpec, available, resolve

__all__ = [
    "METHODS",
    "AlgebraicSolveError",
    "MethodSpec",
    "available",
    "resolve",
    "solve",
]
