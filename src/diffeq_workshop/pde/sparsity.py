"""Jacobian sparsity detection by perturbation."""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from diffeq_workshop.core.types import Array, Params, RHSFn


def jacobian_sparsity(
    f: RHSFn,
    u: Array,
    p: Params = None,
    t: float = 0.0,
    *,
    rel_step: float = 1e-3,
) -> sp.csr_matrix:
    """
    Detect which outputs of ``f`` depend on which state components.

    Each component of ``u`` is perturbed in turn; any output that changes marks a
    non-zero entry. The result can be passed as ``jac_sparsity`` to implicit methods.

    Returns:
        Boolean CSR matrix of shape ``(n, n)``.
    """
    u = np.asarray(u, dtype=np.float64).reshape(-1)
    n = u.size
    base = np.asarray(f(t, u.copy(), p), dtype=np.float64)
    rows: list[Array] = []
    cols: list[Array] = []
    for j in range(n):
        du = rel_step * max(1.0, abs(u[j]))
        shifted = u.copy()
        shifted[j] += du
        changed = np.flatnonzero(np.asarray(f(t, shifted, p), dtype=np.float64) != base)
        rows.append(changed)
        cols.append(np.full(changed.size, j))
    r = np.concatenate(rows)
    c = np.concatenate(cols)
    return sp.csr_matrix((np.ones(r.size, dtype=bool), (r, c)), shape=(n, n))
