"""Robertson's stiff chemical kinetics, as a mass-matrix ODE and as a residual DAE."""

from __future__ import annotations

import numpy as np

from diffeq_workshop.core import DAEProblem, ODEProblem
from diffeq_workshop.core.types import Array, TSpan

STATE_NAMES = ["y1", "y2", "y3"]

DEFAULT_P = (0.04, 1e4, 3e7)
U0 = (1.0, 0.0, 0.0)
DU0 = (-0.04, 0.04, 0.0)
TSPAN: TSpan = (0.0, 1e6)
MASS_MATRIX = np.diag([1.0, 1.0, 0.0])
DIFFERENTIAL_VARS = (True, True, False)


def robertson(t: float, u: Array, p: tuple[float, float, float]) -> Array:
    """Rates of the first two species; the third row is the conservation law."""
    k1, k2, k3 = p
    y1, y2, y3 = u
    return np.array(
        [
            -k1 * y1 + k2 * y2 * y3,
            k1 * y1 - k2 * y2 * y3 - k3 * y2 * y2,
            y1 + y2 + y3 - 1.0,
        ]
    )


def robertson_residual(t: float, du: Array, u: Array, p: tuple[float, float, float]) -> Array:
    k1, k2, k3 = p
    y1, y2, y3 = u
    return np.array(
        [
            -k1 * y1 + k2 * y2 * y3 - du[0],
            k1 * y1 - k2 * y2 * y3 - k3 * y2 * y2 - du[1],
            y1 + y2 + y3 - 1.0,
        ]
    )


def robertson_problem(p=DEFAULT_P, tspan: TSpan = TSPAN) -> ODEProblem:
    return ODEProblem(robertson, U0, tspan, p, mass_matrix=MASS_MATRIX)


def robertson_dae_problem(p=DEFAULT_P, tspan: TSpan = TSPAN) -> DAEProblem:
    return DAEProblem(
        robertson_residual, DU0, U0, tspan, p, differential_vars=DIFFERENTIAL_VARS
    )
