"""Segment stepping through ``torchdiffeq.odeint``."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import torch
from torch import Tensor
from torchdiffeq import odeint

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.solution import SolverStats, linear_interpolate
from diffeq_workshop.core.types import Array, Params
from diffeq_workshop.solvers._piecewise import Segment, StepFn
from diffeq_workshop.solvers.registry import resolve

TorchRHS = Callable[[Tensor, Tensor, Params], Tensor]

DEFAULT_GRID_POINTS = 101


def resolve_device(device: str | None) -> torch.device:
    """Requested device, or CUDA when available, else CPU."""
    if device is not None:
        return torch.device(device)
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


def odeint_options(method: str, options: SolverOptions) -> dict[str, Any]:
    """Translate solver options into torchdiffeq ``options``."""
    spec = resolve(method, "ode", backends=("torchdiffeq",))
    if options.dt is None:
        return {}
    return {"first_step": options.dt} if spec.adaptive else {"step_size": options.dt}


class _CountingField(torch.nn.Module):
    def __init__(self, f: TorchRHS, p: Params):
        super().__init__()
        self.f = f
        self.p = p
        self.nfev = 0

    def forward(self, t: Tensor, y: Tensor) -> Tensor:
        self.nfev += 1
        return self.f(t, y, self.p)


def odeint_grid(
    f: TorchRHS,
    u0: Tensor,
    grid: Sequence[float],
    p: Params,
    method: str,
    options: SolverOptions,
) -> tuple[Tensor, int]:
    """
    Run ``odeint`` over ``grid``. ``u0`` may carry leading batch dimensions.

    Returns:
        States at the grid times, shape ``(len(grid), *u0.shape)``, and the RHS call count.
    """
    func = _CountingField(f, p)
    t = torch.as_tensor(np.asarray(grid), dtype=u0.dtype, device=u0.device)
    with torch.no_grad():
        y = odeint(
            func,
            u0,
            t,
            rtol=options.reltol,
            atol=options.abstol,
            method=method,
            options=odeint_options(method, options),
        )
    return y, func.nfev


def torch_step(f: TorchRHS, p: Params, method: str, options: SolverOptions) -> StepFn:
    """
    Build a segment stepper around ``odeint``.

    The right-hand side receives torch tensors. Without save points a segment is
    sampled on an even grid of ``DEFAULT_GRID_POINTS`` points; values between grid
    points are interpolated linearly.
    """
    device = resolve_device(options.device)

    def step(a: float, b: float, u: Array, save_points: list[float]) -> Segment:
        if save_points:
            grid = np.array(sorted({a, b, *save_points}), dtype=np.float64)
        else:
            grid = np.linspace(a, b, DEFAULT_GRID_POINTS)
        u0 = torch.as_tensor(u, dtype=torch.float64, device=device)
        try:
            y, nfev = odeint_grid(f, u0, grid, p, method, options)
        except (AssertionError, RuntimeError) as exc:
            # torchdiffeq signals step-size underflow through assertions
            return Segment(
                t=grid[:1],
                u=u[None, :],
                interpolant=lambda s: u,
                success=False,
                message=str(exc),
            )
        states = y.detach().cpu().numpy()
        return Segment(
            t=grid,
            u=states,
            interpolant=lambda s: linear_interpolate(grid, states, s),
            stats=SolverStats(nfev=nfev, nsteps=len(grid) - 1),
        )

    return step
