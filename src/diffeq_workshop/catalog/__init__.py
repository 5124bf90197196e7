"""Catalog of the workshop exercises and their problem factories."""

from diffeq_workshop.catalog.brusselator import (
    BrusselatorParams,
    brusselator_2d,
    brusselator_problem,
    brusselator_split_problem,
    diffusion_operator,
    init_brusselator_2d,
)
from diffeq_workshop.catalog.exercises import EXERCISES, ExerciseSpec, get_exercise
from diffeq_workshop.catalog.henon_heiles import (
    generate_ics,
    henon_ensemble_problem,
    henon_hamiltonian_problem,
    henon_problem,
    henon_second_order_problem,
)
from diffeq_workshop.catalog.oregonator import (
    oregonator_problem,
    oregonator_sde_problem,
    stiff_oregonator_problem,
)
from diffeq_workshop.catalog.pendulum import double_pendulum_problem, pendulum_problem
from diffeq_workshop.catalog.pharmacokinetics import (
    PKParams,
    dosing_callback,
    pk_delay_problem,
    pk_problem,
)
from diffeq_workshop.catalog.robertson import robertson_dae_problem, robertson_problem
from diffeq_workshop.catalog.spiral import spiral_problem

__all__ = [
    "EXERCISES",
    "BrusselatorParams",
    "ExerciseSpec",
    "PKParams",
    "brusselator_2d",
    "brusselator_problem",
    "brusselator_split_problem",
    "diffusion_operator",
    "dosing_callback",
    "double_pendulum_problem",
    "generate_ics",
    "get_exercise",
    "henon_ensemble_problem",
    "henon_hamiltonian_problem",
    "henon_problem",
    "henon_second_order_problem",
    "init_brusselator_2d",
    "oregonator_problem",
    "oregonator_sde_problem",
    "pendulum_problem",
    "pk_delay_problem",
    "pk_problem",
    "robertson_dae_problem",
    "robertson_problem",
    "spiral_problem",
    "stiff_oregonator_problem",
]
