"""Delay differential equations by the method of steps."""

from __future__ import annotations

import logging
import math

import numpy as np

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.problems import DDEProblem
from diffeq_workshop.core.solution import ODESolution, PiecewiseInterpolant
from diffeq_workshop.core.types import Array
from diffeq_workshop.solvers._piecewise import Segment, StepFn, integrate_piecewise
from diffeq_workshop.solvers.registry import resolve
from diffeq_workshop.solvers.scipy_backend import scipy_step

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "Radau"


class DelayedState:
    """
    ``h(s)``: the initial history before ``t0``, the computed solution after it.

    Queries slightly past the integrated range are clamped to its end.
    """

    def __init__(self, problem: DDEProblem):
        self.problem = problem
        self.t0 = problem.tspan[0]
        self.computed = PiecewiseInterpolant()
        self.end = self.t0

    def extend(self, a: float, b: float, fn) -> None:
        self.computed.append(a, b, fn)
        self.end = b

    def __call__(self, s: float) -> Array:
        if s <= self.t0 or not self.computed:
            return np.asarray(self.problem.history(s, self.problem.p), dtype=np.float64)
        return self.computed(min(s, self.end))


def delay_grid(problem: DDEProblem) -> list[float]:
    """``t0 + k * lag`` for every lag, inside the span."""
    t0, tf = problem.tspan
    tol = 1e-12 * (tf - t0)
    points = sorted(
        t0 + k * lag
        for lag in problem.constant_lags
        for k in range(1, math.ceil((tf - t0) / lag))
    )
    grid: list[float] = []
    for s in points:
        # multiples of different lags may coincide up to rounding
        if not grid or s - grid[-1] > tol:
            grid.append(s)
    return grid


def dde_step(problem: DDEProblem, h: DelayedState, method: str, options: SolverOptions) -> StepFn:
    def fun(t: float, u: Array) -> Array:
        return np.asarray(problem.f(t, u, h, problem.p), dtype=np.float64)

    inner = scipy_step(fun, method, options)

    def step(a: float, b: float, u: Array, save_points: list[float]) -> Segment:
        seg = inner(a, b, u, save_points)
        if seg.success:
            h.extend(a, b, seg.interpolant)
        return seg

    return step


def solve_dde(problem: DDEProblem, method: str | None, options: SolverOptions) -> ODESolution:
    """
    Integrate between delay grid points so that every delayed argument lies in
    already computed history.
    """
    method = method or DEFAULT_METHOD
    resolve(method, "ode", backends=("scipy",))
    grid = delay_grid(problem)
    logger.debug("method of steps over %d delay intervals", len(grid) + 1)
    h = DelayedState(problem)
    return integrate_piecewise(
        dde_step(problem, h, method, options),
        problem.u0,
        problem.tspan,
        problem.p,
        options,
        problem=problem,
        method=method,
        extra_boundaries=grid,
    )
