"""The Oregonator model of the Belousov-Zhabotinsky reaction."""

from __future__ import annotations

import numpy as np

from diffeq_workshop.core import ODEProblem, SDEProblem
from diffeq_workshop.core.types import Array, TSpan

Y1_KEY = "y1"
Y2_KEY = "y2"
Y3_KEY = "y3"
STATE_NAMES = [Y1_KEY, Y2_KEY, Y3_KEY]

# (s, q, w)
DEFAULT_P = (77.27, 8.375e-6, 0.161)
STIFF_P = (60.0, 1e-5, 0.2)
U0 = (1.0, 2.0, 3.0)
NOISE_SCALE = 0.1


def oregonator(t: float, u: Array, p: tuple[float, float, float]) -> Array:
    s, q, w = p
    y1, y2, y3 = u
    return np.array(
        [
            s * (y2 + y1 * (1 - q * y1 - y2)),
            (y3 - (1 + y1) * y2) / s,
            w * (y1 - y3),
        ]
    )


def multiplicative_noise(t: float, u: Array, p: tuple[float, float, float]) -> Array:
    """Diagonal noise proportional to the state."""
    return NOISE_SCALE * np.asarray(u)


def oregonator_problem(p=DEFAULT_P, tspan: TSpan = (0.0, 360.0)) -> ODEProblem:
    return ODEProblem(oregonator, U0, tspan, p)


def stiff_oregonator_problem(p=STIFF_P, tspan: TSpan = (0.0, 30.0)) -> ODEProblem:
    return ODEProblem(oregonator, U0, tspan, p)


def oregonator_sde_problem(p=DEFAULT_P, tspan: TSpan = (0.0, 30.0)) -> SDEProblem:
    return SDEProblem(oregonator, multiplicative_noise, U0, tspan, p, noise="diagonal")
