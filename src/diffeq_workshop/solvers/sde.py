"""SDE solves through ``torchsde.sdeint``."""

from __future__ import annotations

import logging
import math

import numpy as np
import torch
from torch import Tensor, nn
import torchsde

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.problems import SDEProblem
from diffeq_workshop.core.solution import ODESolution, SolverStats, linear_interpolate
from diffeq_workshop.core.types import Array
from diffeq_workshop.solvers._piecewise import Segment, StepFn, integrate_piecewise
from diffeq_workshop.solvers.registry import SDE_METHODS_BY_TYPE, resolve
from diffeq_workshop.solvers.torch_backend import resolve_device

logger = logging.getLogger(__name__)

DEFAULT_STEPS = 1000

# methods able to integrate SDEs whose diffusion is a full n×m matrix
_GENERAL_NOISE_METHODS = frozenset({"euler", "euler_heun", "heun", "midpoint", "reversible_heun"})


def default_method(problem: SDEProblem) -> str:
    if problem.interpretation == "stratonovich":
        return "heun"
    return "euler" if problem.noise == "general" else "srk"


class NumpySDE(nn.Module):
    """
    ``torchsde`` view of an ``SDEProblem``.

    ``f`` and ``g`` of the problem are numpy functions of a single state; the
    adapter evaluates them row by row over the batch.
    """

    def __init__(self, problem: SDEProblem, sde_type: str = "ito"):
        super().__init__()
        self.problem = problem
        self.noise_type = problem.noise
        self.sde_type = sde_type
        self.nfev = 0

    def _rows(self, fn, t: Tensor, y: Tensor) -> Tensor:
        ts = float(t)
        ys = y.detach().cpu().numpy()
        out = np.stack([np.asarray(fn(ts, row, self.problem.p), dtype=np.float64) for row in ys])
        return torch.as_tensor(out, dtype=y.dtype, device=y.device)

    def f(self, t: Tensor, y: Tensor) -> Tensor:
        self.nfev += 1
        return self._rows(self.problem.f, t, y)

    def g(self, t: Tensor, y: Tensor) -> Tensor:
        out = self._rows(self.problem.g, t, y)
        if self.noise_type == "scalar":
            return out.unsqueeze(-1)
        return out


def _check_compatible(problem: SDEProblem, method: str) -> None:
    if problem.noise == "general" and method not in _GENERAL_NOISE_METHODS:
        raise ValueError(
            f"{method!r} does not support general noise. "
            f"Valid values: {', '.join(repr(m) for m in sorted(_GENERAL_NOISE_METHODS))}."
        )
    accepted = SDE_METHODS_BY_TYPE[problem.interpretation]
    if method not in accepted:
        raise ValueError(
            f"{method!r} does not integrate {problem.interpretation} SDEs. "
            f"Valid values: {', '.join(repr(m) for m in sorted(accepted))}."
        )


def _sdeint_options(method: str) -> dict:
    # numpy right-hand sides have no autograd graph
    return {"grad_free": True} if method == "milstein" else {}


def sde_step(
    problem: SDEProblem,
    method: str,
    options: SolverOptions,
    *,
    seed: int | None = None,
) -> StepFn:
    """
    Build a segment stepper that shares one Brownian path over the whole span.

    Segments query the same ``BrownianInterval``, so splitting the span at stops
    does not change the sample path.
    """
    t0, tf = problem.tspan
    dt = options.dt if options.dt is not None else (tf - t0) / DEFAULT_STEPS
    adaptive = options.adaptive if options.adaptive is not None else options.dt is None
    device = resolve_device(options.device)
    sde = NumpySDE(problem, sde_type=problem.interpretation)
    bm = torchsde.BrownianInterval(
        t0=t0,
        t1=tf,
        size=(1, problem.brownian_dim),
        dtype=torch.float64,
        device=device,
        entropy=seed,
        levy_area_approximation="space-time" if method == "srk" else "none",
    )

    def step(a: float, b: float, u: Array, save_points: list[float]) -> Segment:
        if save_points:
            grid = np.array(sorted({a, b, *save_points}), dtype=np.float64)
        else:
            grid = np.linspace(a, b, max(2, math.ceil((b - a) / dt - 1e-9) + 1))
        y0 = torch.as_tensor(u, dtype=torch.float64, device=device).unsqueeze(0)
        ts = torch.as_tensor(grid, dtype=torch.float64, device=device)
        before = sde.nfev
        try:
            with torch.no_grad():
                ys = torchsde.sdeint(
                    sde,
                    y0,
                    ts,
                    bm=bm,
                    method=method,
                    dt=min(dt, b - a),
                    adaptive=adaptive,
                    rtol=options.reltol,
                    atol=options.abstol,
                    dt_min=1e-9 * (tf - t0),
                    options=_sdeint_options(method),
                )
        except RuntimeError as exc:
            return Segment(
                t=grid[:1], u=u[None, :], interpolant=lambda s: u, success=False, message=str(exc)
            )
        states = ys[:, 0, :].cpu().numpy()
        stats = SolverStats(nfev=sde.nfev - before, nsteps=len(grid) - 1)
        if not np.isfinite(states).all():
            bad = int(np.argmax(~np.isfinite(states).all(axis=1)))
            return Segment(
                t=grid[:bad],
                u=states[:bad],
                interpolant=lambda s: u,
                stats=stats,
                success=False,
                message=f"State became non-finite at t={grid[bad]:g}.",
            )
        return Segment(
            t=grid,
            u=states,
            interpolant=lambda s: linear_interpolate(grid, states, s),
            stats=stats,
        )

    return step


def solve_sde(problem: SDEProblem, method: str | None, options: SolverOptions) -> ODESolution:
    """Integrate an SDE; ``options.seed`` fixes the Brownian path."""
    method = method or default_method(problem)
    resolve(method, "sde")
    _check_compatible(problem, method)
    logger.debug("%s integrates the SDE in the %s sense", method, problem.interpretation)
    step = sde_step(problem, method, options, seed=options.seed)
    return integrate_piecewise(
        step, problem.u0, problem.tspan, problem.p, options, problem=problem, method=method
    )
