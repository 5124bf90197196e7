"""
One-compartment pharmacokinetics with repeated oral doses.

State is ``(depot, central)``: the drug amount at the absorption site and in
the blood. Doses are added to the depot at fixed times by a callback.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from diffeq_workshop.core import DDEProblem, ODEProblem, PresetTimeCallback
from diffeq_workshop.core.callbacks import IntegratorState
from diffeq_workshop.core.types import Array, DelayedStateFn, TSpan

DEPOT_KEY = "depot"
CENTRAL_KEY = "central"
STATE_NAMES = [DEPOT_KEY, CENTRAL_KEY]

DOSE = 100.0
DOSE_TIMES = (24.0, 48.0, 72.0)
U0 = (DOSE, 0.0)
TSPAN: TSpan = (0.0, 90.0)


@dataclass(frozen=True)
class PKParams:
    """
    Attributes:
        Ka: Absorption rate constant.
        Ke: Elimination rate constant.
        tau: Absorption delay, used by the delayed model only.
    """

    Ka: float = 2.268
    Ke: float = 0.07398
    tau: float = 6.0


def one_compartment(t: float, u: Array, p: PKParams) -> Array:
    depot, central = u
    return np.array([-p.Ka * depot, p.Ka * depot - p.Ke * central])


def one_compartment_delay(t: float, u: Array, h: DelayedStateFn, p: PKParams) -> Array:
    """Absorption into the central compartment lags the depot by ``tau``."""
    depot, central = u
    delayed_depot = h(t - p.tau)[0]
    return np.array([-p.Ka * depot, p.Ka * delayed_depot - p.Ke * central])


def zero_history(t: float, p: PKParams) -> Array:
    return np.zeros(2)


def dosing_callback(times=DOSE_TIMES, dose: float = DOSE) -> PresetTimeCallback:
    """Adds ``dose`` to the depot at each of ``times``."""

    def give_dose(integrator: IntegratorState) -> None:
        integrator.u[0] += dose

    return PresetTimeCallback(times, give_dose)


def pk_problem(p: PKParams | None = None, tspan: TSpan = TSPAN) -> ODEProblem:
    return ODEProblem(one_compartment, U0, tspan, p or PKParams())


def pk_delay_problem(p: PKParams | None = None, tspan: TSpan = TSPAN) -> DDEProblem:
    p = p or PKParams()
    return DDEProblem(
        one_compartment_delay, U0, zero_history, tspan, p, constant_lags=(p.tau,)
    )
