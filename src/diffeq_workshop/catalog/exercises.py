"""Registry of the workshop exercises runnable from the command line."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from diffeq_workshop.catalog import (
    brusselator,
    henon_heiles,
    oregonator,
    pendulum,
    pharmacokinetics,
    robertson,
    spiral,
)
from diffeq_workshop.core import EnsembleSolution, ODESolution
from diffeq_workshop.solvers import solve


@dataclass(frozen=True)
class ExerciseSpec:
    """
    One workshop exercise: a problem factory plus the solver settings it is meant to be run with.

    Attributes:
        key: Name used on the command line.
        title: Short human-readable title.
        description: One-line summary.
        build: Builds a fresh problem.
        names: State component names, used for CSV columns and plot labels.
        method: Method name, ``None`` for the problem type's default.
        options: Keyword options passed to ``solve``.
    """

    key: str
    title: str
    description: str
    build: Callable[[], Any]
    names: list[str]
    method: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def run(self, method: str | None = None, **overrides: Any) -> ODESolution | EnsembleSolution:
        """Build and solve the exercise; ``overrides`` replace entries of ``options``."""
        options = {**self.options, **overrides}
        return solve(self.build(), method or self.method, **options)


_ENSEMBLE_SIZE = len(henon_heiles.generate_ics(henon_heiles.ENSEMBLE_ENERGY, 10))

_EXERCISES = [
    ExerciseSpec(
        "oregonator",
        "Oregonator",
        "Belousov-Zhabotinsky oscillator with the default method.",
        oregonator.oregonator_problem,
        oregonator.STATE_NAMES,
    ),
    ExerciseSpec(
        "oregonator-stiff",
        "Stiff Oregonator",
        "Oregonator with stiffer parameters at tight tolerances.",
        oregonator.stiff_oregonator_problem,
        oregonator.STATE_NAMES,
        method="Radau",
        options={"abstol": 1e-10, "reltol": 1e-10},
    ),
    ExerciseSpec(
        "oregonator-sde",
        "Stochastic Oregonator",
        "Oregonator with multiplicative diagonal noise, seeded path.",
        oregonator.oregonator_sde_problem,
        oregonator.STATE_NAMES,
        method="srk",
        options={"seed": 1, "adaptive": True, "dt": 1e-3},
    ),
    ExerciseSpec(
        "pk-dosing",
        "Pharmacokinetic dosing",
        "One-compartment model with 100 mg doses at t = 24, 48, 72.",
        pharmacokinetics.pk_problem,
        pharmacokinetics.STATE_NAMES,
        method="RK45",
        options={"callback": pharmacokinetics.dosing_callback()},
    ),
    ExerciseSpec(
        "pk-delay",
        "Delayed absorption",
        "Dosing model with a 6 h absorption delay, solved by the method of steps.",
        pharmacokinetics.pk_delay_problem,
        pharmacokinetics.STATE_NAMES,
        method="Radau",
        options={"callback": pharmacokinetics.dosing_callback()},
    ),
    ExerciseSpec(
        "robertson",
        "Robertson (mass matrix)",
        "Stiff kinetics with a conservation law as a singular mass matrix.",
        robertson.robertson_problem,
        robertson.STATE_NAMES,
        method="Radau",
        options={"abstol": 1e-8, "reltol": 1e-6},
    ),
    ExerciseSpec(
        "robertson-implicit",
        "Robertson (residual DAE)",
        "The same kinetics written as F(t, du, u) = 0.",
        robertson.robertson_dae_problem,
        robertson.STATE_NAMES,
        method="Radau",
        options={"abstol": 1e-8, "reltol": 1e-6},
    ),
    ExerciseSpec(
        "pendulum",
        "Pendulum DAE",
        "Cartesian pendulum with the rod tension as algebraic variable.",
        pendulum.pendulum_problem,
        pendulum.STATE_NAMES,
        method="Radau",
    ),
    ExerciseSpec(
        "double-pendulum",
        "Double pendulum DAE",
        "Two-link Cartesian pendulum with two algebraic tensions.",
        pendulum.double_pendulum_problem,
        pendulum.DOUBLE_STATE_NAMES,
        method="Radau",
    ),
    ExerciseSpec(
        "brusselator",
        "2-D Brusselator",
        "Reaction-diffusion on a 32×32 periodic grid with detected Jacobian sparsity.",
        brusselator.brusselator_problem,
        brusselator.state_names(),
        method="BDF",
        options={"save_everystep": False},
    ),
    ExerciseSpec(
        "brusselator-split",
        "Split 2-D Brusselator",
        "Diffusion as a sparse linear operator plus the reaction term.",
        brusselator.brusselator_split_problem,
        brusselator.state_names(),
        method="BDF",
        options={"save_everystep": False},
    ),
    ExerciseSpec(
        "henon-heiles",
        "Hénon-Heiles",
        "First-order formulation at tight tolerances.",
        henon_heiles.henon_problem,
        henon_heiles.STATE_NAMES,
        method="DOP853",
        options={"abstol": 1e-12, "reltol": 1e-12},
    ),
    ExerciseSpec(
        "henon-heiles-2nd",
        "Hénon-Heiles (second order)",
        "Accelerations only; velocities and positions form the state.",
        henon_heiles.henon_second_order_problem,
        henon_heiles.STATE_NAMES,
        method="DOP853",
        options={"abstol": 1e-10, "reltol": 1e-10},
    ),
    ExerciseSpec(
        "henon-heiles-hamiltonian",
        "Hénon-Heiles (Hamiltonian)",
        "Vector field derived from H(p, q) by automatic differentiation.",
        henon_heiles.henon_hamiltonian_problem,
        henon_heiles.STATE_NAMES,
        method="DOP853",
        options={"abstol": 1e-10, "reltol": 1e-10},
    ),
    ExerciseSpec(
        "henon-ensemble",
        "Hénon-Heiles ensemble",
        "Threaded ensemble over initial conditions on the E = 1/8 energy shell.",
        lambda: henon_heiles.henon_ensemble_problem()[0],
        henon_heiles.STATE_NAMES,
        method="DOP853",
        options={
            "abstol": 1e-10,
            "reltol": 1e-10,
            "strategy": "threads",
            "trajectories": _ENSEMBLE_SIZE,
        },
    ),
    ExerciseSpec(
        "spiral-node",
        "Cubic spiral",
        "Training data for a neural ODE: the cubic spiral sampled at 30 points.",
        spiral.spiral_problem,
        spiral.STATE_NAMES,
        method="dopri5",
        options={"saveat": spiral.sample_times().tolist(), "abstol": 1e-9, "reltol": 1e-7},
    ),
]

EXERCISES: dict[str, ExerciseSpec] = {ex.key: ex for ex in _EXERCISES}


def get_exercise(key: str) -> ExerciseSpec:
    """
    Raises:
        ValueError: If ``key`` is not a known exercise.
    """
    try:
        return EXERCISES[key]
    except KeyError:
        raise ValueError(
            f"Unknown exercise {key!r}. Valid values: {', '.join(repr(k) for k in EXERCISES)}."
        ) from None
