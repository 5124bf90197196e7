"""``solve``: choose the handler for a problem type and run it."""

from __future__ import annotations

import logging
from typing import Any, overload

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.problems import (
    DAEProblem,
    DDEProblem,
    DEProblem,
    EnsembleProblem,
    HamiltonianProblem,
    ODEProblem,
    SDEProblem,
    SecondOrderODEProblem,
    SplitODEProblem,
)
from diffeq_workshop.core.solution import EnsembleSolution, ODESolution
from diffeq_workshop.core.types import EnsembleStrategies
from diffeq_workshop.solvers._piecewise import integrate_piecewise
from diffeq_workshop.solvers.dae import solve_dae, solve_mass_matrix
from diffeq_workshop.solvers.dde import solve_dde
from diffeq_workshop.solvers.ensemble import solve_ensemble
from diffeq_workshop.solvers.registry import resolve
from diffeq_workshop.solvers.scipy_backend import scipy_step
from diffeq_workshop.solvers.sde import solve_sde
from diffeq_workshop.solvers.torch_backend import torch_step

logger = logging.getLogger(__name__)

DEFAULT_ODE_METHOD = "LSODA"


def solve_ode(problem: ODEProblem, method: str | None, options: SolverOptions) -> ODESolution:
    """Plain ODE on either deterministic backend; mass-matrix problems are reduced first."""
    if problem.has_mass_matrix:
        return solve_mass_matrix(problem, method, options)
    spec = resolve(method or DEFAULT_ODE_METHOD, "ode")
    if spec.backend == "scipy":
        step = scipy_step(problem.rhs, spec.name, options, jac_sparsity=problem.jac_sparsity)
    else:
        step = torch_step(problem.f, problem.p, spec.name, options)
    return integrate_piecewise(
        step, problem.u0, problem.tspan, problem.p, options, problem=problem, method=spec.name
    )


def _solve_single(problem: DEProblem, method: str | None, options: SolverOptions) -> ODESolution:
    logger.debug("solving %s with method=%s", type(problem).__name__, method)
    match problem:
        case ODEProblem():
            return solve_ode(problem, method, options)
        case SplitODEProblem() | SecondOrderODEProblem() | HamiltonianProblem():
            # the converted right-hand sides work on numpy arrays
            spec = resolve(method or DEFAULT_ODE_METHOD, "ode", backends=("scipy",))
            sol = solve_ode(problem.as_ode(), spec.name, options)
            sol.problem = problem
            return sol
        case SDEProblem():
            return solve_sde(problem, method, options)
        case DDEProblem():
            return solve_dde(problem, method, options)
        case DAEProblem():
            return solve_dae(problem, method, options)
    raise ValueError(f"Don't know how to solve {type(problem).__name__}.")


@overload
def solve(
    problem: EnsembleProblem,
    method: str | None = None,
    *,
    strategy: EnsembleStrategies = "serial",
    trajectories: int = 1,
    max_workers: int | None = None,
    **options: Any,
) -> EnsembleSolution: ...


@overload
def solve(problem: DEProblem, method: str | None = None, **options: Any) -> ODESolution: ...


def solve(
    problem: DEProblem | EnsembleProblem,
    method: str | None = None,
    *,
    strategy: EnsembleStrategies = "serial",
    trajectories: int = 1,
    max_workers: int | None = None,
    **options: Any,
) -> ODESolution | EnsembleSolution:
    """
    Solve a problem description.

    Args:
        problem: Any problem type, or an ``EnsembleProblem``.
        method: Method name; ``None`` picks a default for the problem type.
        strategy: Ensemble strategy. Ignored for single problems.
        trajectories: Ensemble size. Ignored for single problems.
        max_workers: Threads for the ``"threads"`` strategy.
        **options: Fields of ``SolverOptions``.

    Returns:
        An ``ODESolution``, or an ``EnsembleSolution`` for ensembles. Backend
        failures are reported through ``retcode`` rather than raised.

    Raises:
        ValueError: Unknown method or strategy, or invalid options.
        TypeError: Unknown option name.
    """
    opts = SolverOptions(**options)
    if isinstance(problem, EnsembleProblem):
        return solve_ensemble(
            problem,
            method,
            opts,
            _solve_single,
            strategy=strategy,
            trajectories=trajectories,
            max_workers=max_workers,
        )
    return _solve_single(problem, method, opts)
