"""Helpers for right-hand sides that accept both numpy arrays and torch tensors."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
import torch


def stack(parts: Sequence[Any], like: Any) -> Any:
    """Stack components along the last axis, in the array library of ``like``."""
    if isinstance(like, torch.Tensor):
        return torch.stack(list(parts), dim=-1)
    return np.stack(parts, axis=-1)


def constant_like(value: Any, like: Any) -> Any:
    """``value`` as an array of the same library, dtype and device as ``like``."""
    if isinstance(like, torch.Tensor):
        return torch.as_tensor(value, dtype=like.dtype, device=like.device)
    return np.asarray(value, dtype=np.float64)
