"""Ensemble solves: many independent trajectories from one base problem."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
import logging
import time
from typing import Any, get_args

import numpy as np
import torch

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.problems import DEProblem, EnsembleProblem, ODEProblem, SDEProblem
from diffeq_workshop.core.solution import EnsembleSolution, ODESolution, linear_interpolate
from diffeq_workshop.core.types import EnsembleStrategies, ReturnCode
from diffeq_workshop.solvers.registry import resolve
from diffeq_workshop.solvers.torch_backend import (
    DEFAULT_GRID_POINTS,
    odeint_grid,
    resolve_device,
)

logger = logging.getLogger(__name__)

MAX_RERUNS = 10
DEFAULT_VECTORIZED_METHOD = "dopri5"

SolveOne = Callable[[DEProblem, str | None, SolverOptions], ODESolution]


def _options_for(prob: DEProblem, options: SolverOptions, i: int) -> SolverOptions:
    if isinstance(prob, SDEProblem) and options.seed is not None:
        return replace(options, seed=options.seed + i)
    return options


def _run_trajectory(
    eprob: EnsembleProblem,
    i: int,
    method: str | None,
    options: SolverOptions,
    solve_one: SolveOne,
    first: ODESolution | None = None,
) -> tuple[ODESolution, Any]:
    """Solve trajectory ``i``, rerunning while ``output_func`` asks for it."""
    repeat = 0
    while True:
        if first is not None and repeat == 0:
            sol = first
        else:
            prob = eprob.prob_func(eprob.prob, i, repeat)
            sol = solve_one(prob, method, _options_for(prob, options, i))
        value, rerun = eprob.output_func(sol, i)
        if not rerun:
            return sol, value
        if repeat >= MAX_RERUNS:
            logger.warning("trajectory %d still requests a rerun after %d reruns", i, repeat)
            return sol, value
        repeat += 1


def _check_vectorizable(
    problems: list[DEProblem], method: str, options: SolverOptions
) -> list[ODEProblem]:
    resolve(method, "ode", backends=("torchdiffeq",))
    if not all(isinstance(p, ODEProblem) and not p.has_mass_matrix for p in problems):
        raise ValueError("The vectorized strategy only supports plain ODEProblem trajectories.")
    if options.callback is not None:
        raise ValueError("The vectorized strategy does not support callbacks.")
    base = problems[0]
    for prob in problems[1:]:
        if prob.tspan != base.tspan:
            raise ValueError(
                f"Vectorized trajectories need a shared tspan, got {base.tspan} and {prob.tspan}."
            )
        if prob.p is not base.p or prob.f is not base.f:
            raise ValueError("Vectorized trajectories need a shared right-hand side and p.")
    return problems  # type: ignore[return-value]


def _solve_vectorized(
    eprob: EnsembleProblem,
    n_traj: int,
    method: str | None,
    options: SolverOptions,
) -> list[ODESolution]:
    method = method or DEFAULT_VECTORIZED_METHOD
    problems = _check_vectorizable(
        [eprob.prob_func(eprob.prob, i, 0) for i in range(n_traj)], method, options
    )
    base = problems[0]
    t0, tf = base.tspan
    save = options.save_times(t0, tf)
    samples = np.linspace(t0, tf, DEFAULT_GRID_POINTS).tolist() if save is None else save
    grid = np.array(sorted({t0, tf, *samples, *(s for s in options.tstops if t0 < s < tf)}))
    saved = grid if save is None else np.asarray(save, dtype=np.float64)
    keep = np.searchsorted(grid, saved)
    device = resolve_device(options.device)
    logger.debug("vectorized ensemble of %d trajectories on %s", n_traj, device)
    y0 = torch.as_tensor(np.stack([p.u0 for p in problems]), dtype=torch.float64, device=device)

    try:
        y, _ = odeint_grid(base.f, y0, grid, base.p, method, options)
    except (AssertionError, RuntimeError) as exc:
        logger.warning("vectorized ensemble failed: %s", exc)
        return [
            ODESolution(
                t=grid[:1],
                u=p.u0[None, :],
                problem=p,
                method=method,
                retcode=ReturnCode.FAILURE,
                message=str(exc),
            )
            for p in problems
        ]

    states = y.cpu().numpy()
    solutions = []
    for i, prob in enumerate(problems):
        u = states[:, i, :]
        solutions.append(
            ODESolution(
                t=saved,
                u=u[keep],
                problem=prob,
                method=method,
                interpolant=(lambda s, u=u: linear_interpolate(grid, u, s))
                if options.dense
                else None,
            )
        )
    return solutions


def solve_ensemble(
    eprob: EnsembleProblem,
    method: str | None,
    options: SolverOptions,
    solve_one: SolveOne,
    *,
    strategy: EnsembleStrategies = "serial",
    trajectories: int = 1,
    max_workers: int | None = None,
) -> EnsembleSolution:
    """
    Solve ``trajectories`` independent problems built by ``eprob.prob_func``.

    Args:
        eprob: The ensemble description.
        method: Method for every trajectory.
        options: Options shared by every trajectory. SDE trajectory ``i`` uses ``seed + i``.
        solve_one: Single-problem solver.
        strategy: ``"serial"``, ``"threads"`` or ``"vectorized"`` (one batched torch solve).
        trajectories: Number of trajectories.
        max_workers: Thread count for ``"threads"``.

    Returns:
        Trajectories and outputs in trajectory order, plus the reduction.
    """
    if strategy not in get_args(EnsembleStrategies):
        raise ValueError(
            f"Unknown ensemble strategy {strategy!r}. "
            f"Valid values: {', '.join(repr(s) for s in get_args(EnsembleStrategies))}."
        )
    if trajectories <= 0:
        raise ValueError(f"trajectories must be positive, got {trajectories}.")

    start = time.perf_counter()
    logger.debug("ensemble of %d trajectories, strategy=%s", trajectories, strategy)

    if strategy == "vectorized":
        firsts = _solve_vectorized(eprob, trajectories, method, options)
        results = [
            _run_trajectory(eprob, i, firsts[i].method, options, solve_one, first=firsts[i])
            for i in range(trajectories)
        ]
    elif strategy == "threads":
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(
                pool.map(
                    lambda i: _run_trajectory(eprob, i, method, options, solve_one),
                    range(trajectories),
                )
            )
    else:
        results = [
            _run_trajectory(eprob, i, method, options, solve_one) for i in range(trajectories)
        ]

    sols = [sol for sol, _ in results]
    outputs = [value for _, value in results]
    reduced = eprob.reduction(outputs) if eprob.reduction is not None else None
    return EnsembleSolution(
        trajectories=sols,
        outputs=outputs,
        reduction=reduced,
        elapsed=time.perf_counter() - start,
    )
