"""Segment stepping through ``scipy.integrate.solve_ivp``."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
from scipy.integrate import solve_ivp

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.solution import SolverStats
from diffeq_workshop.core.types import Array
from diffeq_workshop.solvers._piecewise import Segment, StepFn

_SPARSE_JAC_METHODS = frozenset({"Radau", "BDF"})
_JAC_METHODS = frozenset({"Radau", "BDF", "LSODA"})


def scipy_step(
    fun: Callable[[float, Array], Array],
    method: str,
    options: SolverOptions,
    *,
    jac: Callable[[float, Array], Any] | None = None,
    jac_sparsity: Any | None = None,
) -> StepFn:
    """
    Build a segment stepper around ``solve_ivp``.

    Args:
        fun: ``fun(t, u) -> du``.
        method: A scipy method name (``RK45``, ``Radau``, ...).
        options: Tolerances and step-size limits.
        jac: Optional analytic Jacobian, used by implicit methods only.
        jac_sparsity: Optional sparsity pattern, used by ``Radau`` and ``BDF`` only.
    """
    kwargs: dict[str, Any] = {}
    if options.dtmax is not None:
        kwargs["max_step"] = options.dtmax
    if jac is not None and method in _JAC_METHODS:
        kwargs["jac"] = jac
    if jac_sparsity is not None and method in _SPARSE_JAC_METHODS:
        kwargs["jac_sparsity"] = jac_sparsity

    def step(a: float, b: float, u: Array, save_points: list[float]) -> Segment:
        first_step = {} if options.dt is None else {"first_step": min(options.dt, b - a)}
        sol = solve_ivp(
            fun,
            (a, b),
            u,
            method=method,
            dense_output=True,
            rtol=options.reltol,
            atol=options.abstol,
            **first_step,
            **kwargs,
        )
        stats = SolverStats(nfev=sol.nfev, njev=sol.njev, nlu=sol.nlu, nsteps=len(sol.t) - 1)
        return Segment(
            t=np.asarray(sol.t, dtype=np.float64),
            u=np.asarray(sol.y, dtype=np.float64).T,
            interpolant=sol.sol,
            stats=stats,
            success=sol.status == 0,
            message=str(sol.message),
        )

    return step
