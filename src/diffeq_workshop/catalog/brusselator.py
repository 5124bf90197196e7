"""
2-D Brusselator reaction-diffusion on a periodic unit square.

The state holds two species on an ``N × N`` grid, flattened in C order from
an array of shape ``(2, N, N)``. Index ``(k, i, j)`` sits at ``x = xyd[i]``,
``y = xyd[j]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import scipy.sparse as sp

from diffeq_workshop.core import ODEProblem, SplitODEProblem
from diffeq_workshop.core.types import Array, TSpan
from diffeq_workshop.pde import jacobian_sparsity, laplacian_2d

TSPAN: TSpan = (0.0, 11.5)
FORCING = 5.0
FORCING_CENTER = (0.3, 0.6)
FORCING_RADIUS = 0.1
FORCING_START = 1.1


@dataclass
class BrusselatorParams:
    """
    Attributes:
        A: Reaction constant.
        B: Reaction constant.
        alpha: Diffusion coefficient.
        N: Grid points per dimension.
    """

    A: float = 3.4
    B: float = 1.0
    alpha: float = 10.0
    N: int = 32
    xyd: Array = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.N < 3:
            raise ValueError(f"N must be at least 3, got {self.N}.")
        self.xyd = np.linspace(0.0, 1.0, self.N)

    @property
    def dx(self) -> float:
        return float(self.xyd[1] - self.xyd[0])

    @property
    def size(self) -> int:
        return 2 * self.N * self.N


def forcing(x: Array, y: Array, t: float) -> Array:
    """Constant injection inside a small disc, switched on at ``t = 1.1``."""
    cx, cy = FORCING_CENTER
    inside = (x - cx) ** 2 + (y - cy) ** 2 <= FORCING_RADIUS**2
    return np.where(inside & (t >= FORCING_START), FORCING, 0.0)


def init_brusselator_2d(p: BrusselatorParams) -> Array:
    X, Y = np.meshgrid(p.xyd, p.xyd, indexing="ij")
    u = np.empty((2, p.N, p.N))
    u[0] = 22 * (Y * (1 - Y)) ** 1.5
    u[1] = 27 * (X * (1 - X)) ** 1.5
    return u.reshape(-1)


def _fields(u: Array, p: BrusselatorParams) -> tuple[Array, Array]:
    w = np.asarray(u).reshape(2, p.N, p.N)
    return w[0], w[1]


def _stencil(w: Array) -> Array:
    return (
        np.roll(w, 1, axis=0)
        + np.roll(w, -1, axis=0)
        + np.roll(w, 1, axis=1)
        + np.roll(w, -1, axis=1)
        - 4 * w
    )


def diffusion(t: float, u: Array, p: BrusselatorParams) -> Array:
    a, b = _fields(u, p)
    scale = p.alpha / p.dx**2
    return (scale * np.stack([_stencil(a), _stencil(b)])).reshape(-1)


def reaction(t: float, u: Array, p: BrusselatorParams) -> Array:
    a, b = _fields(u, p)
    X, Y = np.meshgrid(p.xyd, p.xyd, indexing="ij")
    da = p.B + a**2 * b - (p.A + 1) * a + forcing(X, Y, t)
    db = p.A * a - a**2 * b
    return np.stack([da, db]).reshape(-1)


def brusselator_2d(t: float, u: Array, p: BrusselatorParams) -> Array:
    return diffusion(t, u, p) + reaction(t, u, p)


def diffusion_operator(p: BrusselatorParams) -> sp.csr_matrix:
    """The diffusion term as a sparse matrix acting on the flattened state."""
    lap = p.alpha * laplacian_2d(p.N, p.dx)
    return sp.block_diag([lap, lap], format="csr")


def brusselator_problem(
    p: BrusselatorParams | None = None,
    tspan: TSpan = TSPAN,
    detect_sparsity: bool = True,
) -> ODEProblem:
    p = p or BrusselatorParams()
    u0 = init_brusselator_2d(p)
    # u0 vanishes on the borders, which would hide the a**2 * b coupling there
    u_ref = np.ones_like(u0)
    sparsity = jacobian_sparsity(brusselator_2d, u_ref, p, t=2.0) if detect_sparsity else None
    return ODEProblem(brusselator_2d, u0, tspan, p, jac_sparsity=sparsity)


def brusselator_split_problem(
    p: BrusselatorParams | None = None, tspan: TSpan = TSPAN
) -> SplitODEProblem:
    """Diffusion as the stiff linear part, reaction as the non-stiff part."""
    p = p or BrusselatorParams()
    u0 = init_brusselator_2d(p)
    reaction_sparsity = jacobian_sparsity(reaction, np.ones_like(u0), p, t=2.0)
    return SplitODEProblem(
        diffusion_operator(p), reaction, u0, tspan, p, jac_sparsity=reaction_sparsity
    )


def state_names(N: int = 32) -> list[str]:
    """``a[i,j]`` then ``b[i,j]``, in state order."""
    return [f"{species}[{i},{j}]" for species in ("a", "b") for i in range(N) for j in range(N)]
