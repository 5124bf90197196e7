"""Cubic spiral ``du/dt = (u**3) A``, the standard neural ODE toy problem."""

from __future__ import annotations

from typing import Any

import numpy as np

from diffeq_workshop.catalog._array import constant_like
from diffeq_workshop.core import ODEProblem
from diffeq_workshop.core.types import TSpan

STATE_NAMES = ["x", "y"]

TRUE_A = np.array([[-0.1, 2.0], [-2.0, -0.1]])
U0 = (2.0, 0.0)
TSPAN: TSpan = (0.0, 1.5)
DATASIZE = 30


def spiral(t: Any, u: Any, p: Any) -> Any:
    """Works on numpy arrays and torch tensors; ``u`` may be batched."""
    return u**3 @ constant_like(p, u)


def spiral_problem(A=TRUE_A, tspan: TSpan = TSPAN) -> ODEProblem:
    return ODEProblem(spiral, U0, tspan, np.asarray(A, dtype=np.float64))


def sample_times(tspan: TSpan = TSPAN, datasize: int = DATASIZE) -> np.ndarray:
    """Evenly spaced observation times used as ``saveat``."""
    return np.linspace(tspan[0], tspan[1], datasize)
