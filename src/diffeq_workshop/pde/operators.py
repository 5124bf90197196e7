"""Finite-difference operators on uniform periodic grids."""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp


def periodic_second_difference(n: int, dx: float) -> sp.csr_matrix:
    """
    1-D second-difference matrix with periodic wrap, scaled by ``1 / dx**2``.

    Args:
        n: Number of grid points.
        dx: Grid spacing.
    """
    if n < 3:
        raise ValueError(f"n must be at least 3, got {n}.")
    if dx <= 0:
        raise ValueError(f"dx must be positive, got {dx}.")
    off = np.ones(n - 1)
    D2 = sp.diags([off, np.full(n, -2.0), off], [-1, 0, 1], format="lil")
    D2[0, n - 1] = 1.0
    D2[n - 1, 0] = 1.0
    return (D2 / dx**2).tocsr()


def laplacian_2d(n: int, dx: float) -> sp.csr_matrix:
    """
    Periodic 5-point Laplacian on an ``n × n`` grid, for fields flattened in C order.
    """
    D2 = periodic_second_difference(n, dx)
    eye = sp.identity(n, format="csr")
    return (sp.kron(D2, eye) + sp.kron(eye, D2)).tocsr()
