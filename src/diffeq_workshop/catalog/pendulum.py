"""
Pendulums in Cartesian coordinates.

Each link carries the state ``(u, v, x, y, T)``: velocities, position and the
rod tension ``T``. The tension is algebraic, fixed by the index-1 constraint
``u² + v² - y g + T/m = 0``.
"""

from __future__ import annotations

import numpy as np

from diffeq_workshop.core import DAEProblem
from diffeq_workshop.core.types import Array, TSpan

STATE_NAMES = ["u", "v", "x", "y", "T"]
DOUBLE_STATE_NAMES = [f"{name}{k}" for k in (1, 2) for name in STATE_NAMES]

# (L, m, g)
DEFAULT_P = (1.0, 1.0, 9.8)
# (L1, m1, L2, m2, g)
DOUBLE_P = (1.0, 1.0, 1.0, 1.0, 9.8)
TSPAN: TSpan = (0.0, 100.0)


def pendulum(t: float, da: Array, a: Array, p: tuple[float, float, float]) -> Array:
    L, m, g = p
    u, v, x, y, T = a
    du, dv, dx, dy, _ = da
    return np.array(
        [
            x * T / (m * L) - du,
            y * T / (m * L) - g - dv,
            u - dx,
            v - dy,
            u**2 + v**2 - y * g + T / m,
        ]
    )


def double_pendulum(t: float, da: Array, a: Array, p: tuple[float, ...]) -> Array:
    L1, m1, L2, m2, g = p
    u1, v1, x1, y1, T1, u2, v2, x2, y2, T2 = a
    du1, dv1, dx1, dy1, _, du2, dv2, dx2, dy2, _ = da
    return np.array(
        [
            x2 * T2 / (m2 * L2) - du2,
            y2 * T2 / (m2 * L2) - g - dv2,
            u2 - dx2,
            v2 - dy2,
            u2**2 + v2**2 - y2 * g + T2 / m2,
            x1 * T1 / (m1 * L1) - x2 * T2 / (m2 * L2) - du1,
            y1 * T1 / (m1 * L1) - g - y2 * T2 / (m2 * L2) - dv1,
            u1 - dx1,
            v1 - dy1,
            u1**2 + v1**2 + T1 / m1 + (-x1 * x2 - y1 * y2) / (m1 * L2) * T2 - y1 * g,
        ]
    )


def pendulum_problem(p=DEFAULT_P, tspan: TSpan = TSPAN) -> DAEProblem:
    """Released from the right, at rest."""
    u0 = np.zeros(5)
    u0[2] = 1.0
    du0 = np.zeros(5)
    du0[1] = 9.81
    return DAEProblem(
        pendulum, du0, u0, tspan, p, differential_vars=[True, True, True, True, False]
    )


def double_pendulum_problem(p=DOUBLE_P, tspan: TSpan = TSPAN) -> DAEProblem:
    u0 = np.zeros(10)
    u0[2] = 1.0
    u0[7] = 1.0
    du0 = np.zeros(10)
    du0[1] = 9.8
    du0[6] = 9.8
    mask = [True, True, True, True, False] * 2
    return DAEProblem(double_pendulum, du0, u0, tspan, p, differential_vars=mask)


def constraint_residual(a: Array, p=DEFAULT_P) -> float:
    """Algebraic equation of the single pendulum evaluated at a state."""
    L, m, g = p
    u, v, x, y, T = a
    return float(u**2 + v**2 - y * g + T / m)
