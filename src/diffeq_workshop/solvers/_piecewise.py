"""Segment-by-segment integration driver shared by the deterministic backends."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from itertools import pairwise
import logging
from typing import Any

import numpy as np

from diffeq_workshop.core.callbacks import IntegratorState
from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.solution import Interpolant, ODESolution, PiecewiseInterpolant, SolverStats
from diffeq_workshop.core.types import Array, Params, ReturnCode, TSpan

logger = logging.getLogger(__name__)


@dataclass
class Segment:
    """
    Output of integrating one segment ``[a, b]``.

    Attributes:
        t: Every computed time, starting at ``a`` and ending at ``b`` on success.
        u: States at ``t``, shape ``(len(t), n)``.
        interpolant: Continuous output over ``[a, b]``.
        stats: Work counters for this segment.
        success: Whether the backend reached ``b``.
        message: Backend message.
    """

    t: Array
    u: Array
    interpolant: Interpolant
    stats: SolverStats = field(default_factory=SolverStats)
    success: bool = True
    message: str = ""


StepFn = Callable[[float, float, Array, list[float]], Segment]
"""``step(a, b, u_a, save_points) -> Segment``; ``save_points`` lie in ``(a, b]``."""


def integrate_piecewise(
    step: StepFn,
    u0: Array,
    tspan: TSpan,
    p: Params,
    options: SolverOptions,
    *,
    problem: Any,
    method: str,
    extra_boundaries: Iterable[float] = (),
) -> ODESolution:
    """
    Integrate ``[t0, tf]`` between consecutive stops, applying callbacks at each stop.

    Args:
        step: Backend integrating a single segment.
        u0: Initial state.
        tspan: ``(t0, tf)``.
        p: Parameters handed to callbacks.
        options: Solver options (stops, save policy, callback, dense output).
        problem: Problem stored on the solution.
        method: Method name stored on the solution.
        extra_boundaries: Additional segment boundaries (e.g. delay grid points).

    Returns:
        The assembled solution. Backend failures end the loop with ``ReturnCode.FAILURE``.
    """
    t0, tf = tspan
    stops = {s for s in options.all_tstops() if t0 < s < tf}
    boundaries = sorted({t0, tf, *stops, *(b for b in extra_boundaries if t0 < b < tf)})
    save_times = options.save_times(t0, tf)
    everystep = save_times is None and options.save_everystep
    endpoints_only = save_times is None and not options.save_everystep

    integrator = IntegratorState(t=t0, u=np.array(u0, dtype=np.float64), p=p)
    ts: list[float] = [t0]
    us: list[Array] = [integrator.u.copy()]

    dense = PiecewiseInterpolant()
    stats = SolverStats()
    retcode = ReturnCode.SUCCESS
    message = ""

    for a, b in pairwise(boundaries):
        seg_save = [] if save_times is None else [s for s in save_times if a < s <= b]
        seg = step(a, b, integrator.u.copy(), seg_save)
        stats += seg.stats

        if not seg.success:
            retcode = ReturnCode.FAILURE
            message = seg.message
            logger.warning("%s failed on [%g, %g]: %s", method, a, b, message)
            if everystep:
                ts.extend(seg.t[1:].tolist())
                us.extend(seg.u[1:])
            break

        dense.append(a, b, seg.interpolant)
        if everystep:
            ts.extend(seg.t[1:].tolist())
            us.extend(seg.u[1:])
        elif save_times is not None:
            for s in seg_save:
                ts.append(s)
                us.append(np.asarray(seg.interpolant(s), dtype=np.float64).reshape(-1))

        integrator.t = b
        integrator.u = np.array(seg.u[-1], dtype=np.float64)

        if b < tf and options.callback is not None:
            before = integrator.u.copy()
            if options.callback.apply(integrator):
                logger.debug("callback changed the state at t=%g", b)
                if endpoints_only:
                    ts.append(b)
                    us.append(before)
                if save_times is None:
                    ts.append(b)
                    us.append(integrator.u.copy())
                elif seg_save and np.isclose(seg_save[-1], b, rtol=1e-12, atol=1e-12):
                    # saveat keeps a single point at an event: the post-event state
                    us[-1] = integrator.u.copy()
            if integrator.terminated:
                retcode = ReturnCode.TERMINATED
                if endpoints_only and (not ts or ts[-1] != b):
                    ts.append(b)
                    us.append(integrator.u.copy())
                break

        if endpoints_only and b == tf:
            ts.append(b)
            us.append(integrator.u.copy())

    return ODESolution(
        t=np.asarray(ts, dtype=np.float64),
        u=np.asarray(us, dtype=np.float64).reshape(len(ts), np.size(u0)),
        problem=problem,
        method=method,
        retcode=retcode,
        stats=stats,
        message=message,
        interpolant=dense if options.dense and dense else None,
    )
