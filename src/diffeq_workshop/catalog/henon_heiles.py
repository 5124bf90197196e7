"""
The Hénon-Heiles system in four equivalent formulations.

The first-order state is ``(p1, p2, q1, q2)``: momenta first, then positions.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from torch import Tensor

from diffeq_workshop.catalog._array import stack
from diffeq_workshop.core import (
    EnsembleProblem,
    HamiltonianProblem,
    ODEProblem,
    SecondOrderODEProblem,
)
from diffeq_workshop.core.types import Array, TSpan

STATE_NAMES = ["p1", "p2", "q1", "q2"]

U0 = (0.1, 0.0, 0.0, 0.5)
TSPAN: TSpan = (0.0, 1000.0)
ENSEMBLE_ENERGY = 0.125


def henon_heiles(t: Any, z: Any, p: Any = None) -> Any:
    """Works on numpy arrays and torch tensors, with optional leading batch dimensions."""
    p1, p2, q1, q2 = z[..., 0], z[..., 1], z[..., 2], z[..., 3]
    dp1 = -q1 * (1 + 2 * q2)
    dp2 = -q2 - (q1**2 - q2**2)
    return stack([dp1, dp2, p1, p2], like=z)


def henon_heiles_accel(t: float, v: Array, q: Array, p: Any = None) -> Array:
    q1, q2 = q
    return np.array([-q1 * (1 + 2 * q2), -q2 - (q1**2 - q2**2)])


def hamiltonian(p: Tensor, q: Tensor, params: Any = None) -> Tensor:
    kinetic = 0.5 * (p[0] ** 2 + p[1] ** 2)
    potential = 0.5 * (q[0] ** 2 + q[1] ** 2 + 2 * q[0] ** 2 * q[1] - 2 / 3 * q[1] ** 3)
    return kinetic + potential


def potential(q1: float, q2: float) -> float:
    return 0.5 * (q1**2 + q2**2 + 2 * q1**2 * q2 - 2 / 3 * q2**3)


def energy(z: Array) -> float:
    """Total energy of a first-order state ``(p1, p2, q1, q2)``."""
    p1, p2, q1, q2 = np.asarray(z, dtype=np.float64)
    return 0.5 * (p1**2 + p2**2) + potential(q1, q2)


def generate_ics(E: float, n: int) -> list[Array]:
    """
    Initial states on the energy shell ``H = E`` with ``q1 = 0``, on an ``n × n``
    grid of ``(q2, p2)``; ``p1 > 0`` is chosen to close the energy.
    """
    z0 = []
    for q in np.linspace(-0.4, 1.0, n):
        V = potential(0.0, q)
        if V >= E:
            continue
        for p in np.linspace(-0.5, 0.5, n):
            T = 0.5 * p**2
            if T + V >= E:
                continue
            z0.append(np.array([np.sqrt(2 * (E - V - T)), p, 0.0, q]))
    return z0


def henon_problem(tspan: TSpan = TSPAN) -> ODEProblem:
    return ODEProblem(henon_heiles, U0, tspan)


def henon_second_order_problem(tspan: TSpan = TSPAN) -> SecondOrderODEProblem:
    return SecondOrderODEProblem(henon_heiles_accel, U0[:2], U0[2:], tspan)


def henon_hamiltonian_problem(tspan: TSpan = TSPAN) -> HamiltonianProblem:
    return HamiltonianProblem(hamiltonian, U0[:2], U0[2:], tspan)


def henon_ensemble_problem(
    E: float = ENSEMBLE_ENERGY, n: int = 10, tspan: TSpan = (0.0, 100.0)
) -> tuple[EnsembleProblem, int]:
    """
    Ensemble over ``generate_ics(E, n)``.

    Returns:
        The ensemble and its number of trajectories.
    """
    z0 = generate_ics(E, n)

    def prob_func(prob: ODEProblem, i: int, repeat: int) -> ODEProblem:
        return prob.remake(u0=z0[i])

    return EnsembleProblem(henon_problem(tspan), prob_func=prob_func), len(z0)
