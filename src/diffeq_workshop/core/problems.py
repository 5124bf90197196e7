"""
Problem descriptions: right-hand side, initial state, parameters and time span.

Every problem is a frozen dataclass. Construction normalizes ``u0`` and ``tspan``
and evaluates the right-hand side once to check that the derivative has the
shape of the state. ``remake`` returns a re-validated copy with fields replaced.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any, Self, TypeAlias

import numpy as np
import scipy.sparse as sp
import torch

from diffeq_workshop.core.types import (
    Array,
    DDEFn,
    DiffusionFn,
    HistoryFn,
    NoiseTypes,
    Params,
    ResidualFn,
    RHSFn,
    SDETypes,
    SecondOrderFn,
    TSpan,
)
from diffeq_workshop.lib.diff import grad
from diffeq_workshop.pde.sparsity import jacobian_sparsity


def _as_state(u: Any, name: str) -> Array:
    arr = np.array(u, dtype=np.float64).reshape(-1)
    if arr.size == 0:
        raise ValueError(f"{name} must contain at least one value.")
    return arr


def _as_tspan(tspan: Any) -> TSpan:
    t0, tf = (float(t) for t in tspan)
    if not tf > t0:
        raise ValueError(f"tspan must satisfy t0 < tf, got ({t0}, {tf}).")
    return (t0, tf)


def _check_shape(value: Any, expected: tuple[int, ...], what: str) -> None:
    shape = np.shape(value)
    if shape != expected:
        raise ValueError(f"{what} returned shape {shape}, expected {expected}.")


class _Remakeable:
    def _set(self, name: str, value: Any) -> None:
        # fields are frozen; __post_init__ normalizes them through here
        object.__setattr__(self, name, value)

    def remake(self, **changes: Any) -> Self:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)  # type: ignore[type-var]


@dataclass(frozen=True)
class ODEProblem(_Remakeable):
    """
    Ordinary differential equation ``M du/dt = f(t, u, p)``.

    Attributes:
        f: Right-hand side ``f(t, u, p) -> du``.
        u0: Initial state.
        tspan: ``(t0, tf)``.
        p: Parameters passed through to ``f``.
        mass_matrix: Optional n×n mass matrix. Zero rows mark algebraic equations.
        jac_sparsity: Optional Jacobian sparsity pattern for implicit methods.
        check_rhs: Evaluate ``f`` once at construction to validate shapes.
            Disable for torch-only right-hand sides.
    """

    f: RHSFn
    u0: Array
    tspan: TSpan
    p: Params = None
    mass_matrix: Array | None = None
    jac_sparsity: Any | None = None
    check_rhs: bool = True

    def __post_init__(self) -> None:
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("tspan", _as_tspan(self.tspan))
        n = self.u0.size
        if self.mass_matrix is not None:
            M = np.asarray(self.mass_matrix, dtype=np.float64)
            if M.shape != (n, n):
                raise ValueError(f"mass_matrix must have shape {(n, n)}, got {M.shape}.")
            self._set("mass_matrix", M)
            self._check_mass_structure()
        if self.check_rhs:
            _check_shape(self.f(self.tspan[0], self.u0.copy(), self.p), (n,), "f")

    @property
    def n(self) -> int:
        return self.u0.size

    @property
    def has_mass_matrix(self) -> bool:
        return self.mass_matrix is not None and not np.array_equal(
            self.mass_matrix, np.eye(self.n)
        )

    def algebraic_rows(self) -> Array:
        assert self.mass_matrix is not None
        return np.flatnonzero(~self.mass_matrix.any(axis=1))

    def algebraic_vars(self) -> Array:
        assert self.mass_matrix is not None
        return np.flatnonzero(~self.mass_matrix.any(axis=0))

    def _check_mass_structure(self) -> None:
        M = self.mass_matrix
        assert M is not None
        rows, cols = self.algebraic_rows(), self.algebraic_vars()
        if rows.size != cols.size:
            raise ValueError(
                f"mass_matrix has {rows.size} zero rows but {cols.size} zero columns; "
                "algebraic equations and algebraic variables must pair up."
            )
        drows = np.setdiff1d(np.arange(self.n), rows)
        dcols = np.setdiff1d(np.arange(self.n), cols)
        if drows.size and np.linalg.matrix_rank(M[np.ix_(drows, dcols)]) < drows.size:
            raise ValueError("The differential block of mass_matrix must be invertible.")

    def rhs(self, t: float, u: Array) -> Array:
        return np.asarray(self.f(t, u, self.p), dtype=np.float64)


def _sparsity_of(A: Any) -> sp.csr_matrix:
    return sp.csr_matrix((sp.csr_matrix(A) != 0).astype(np.int8))


@dataclass(frozen=True)
class SplitODEProblem(_Remakeable):
    """
    ODE split into a stiff part ``f1`` and a non-stiff part ``f2``: ``du = f1 + f2``.

    ``f1`` is either a callable ``f1(t, u, p)`` or a dense/sparse matrix ``A``
    standing for the linear operator ``A @ u``.
    With a matrix ``f1`` the combined problem gets the union of its pattern and
    the pattern of ``f2`` as ``jac_sparsity``; the latter is detected when not given.
    """

    f1: RHSFn | Array | sp.spmatrix
    f2: RHSFn
    u0: Array
    tspan: TSpan
    p: Params = None
    jac_sparsity: Any | None = None

    def __post_init__(self) -> None:
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("tspan", _as_tspan(self.tspan))
        n = self.u0.size
        if not callable(self.f1):
            if self.f1.shape != (n, n):
                raise ValueError(f"Linear part must have shape {(n, n)}, got {self.f1.shape}.")
        t0 = self.tspan[0]
        _check_shape(self.stiff(t0, self.u0.copy()), (n,), "f1")
        _check_shape(self.f2(t0, self.u0.copy(), self.p), (n,), "f2")

    @property
    def is_linear(self) -> bool:
        return not callable(self.f1)

    def stiff(self, t: float, u: Array) -> Array:
        if callable(self.f1):
            return np.asarray(self.f1(t, u, self.p), dtype=np.float64)
        return np.asarray(self.f1 @ u, dtype=np.float64).reshape(-1)

    def as_ode(self) -> ODEProblem:
        """Combine both parts into a single ODE problem."""

        def f(t: float, u: Array, p: Params) -> Array:
            return self.stiff(t, u) + np.asarray(self.f2(t, u, p), dtype=np.float64)

        sparsity = self.jac_sparsity
        if self.is_linear:
            if sparsity is None:
                # ones avoid zero states hiding products between components
                u_ref = np.ones_like(self.u0)
                sparsity = jacobian_sparsity(self.f2, u_ref, self.p, t=self.tspan[0])
            sparsity = (_sparsity_of(sparsity) + _sparsity_of(self.f1)).astype(bool)
        return ODEProblem(f, self.u0, self.tspan, self.p, jac_sparsity=sparsity, check_rhs=False)


@dataclass(frozen=True)
class SecondOrderODEProblem(_Remakeable):
    """
    Second-order ODE ``u'' = f(t, u', u, p)``. The first-order state is ``concat(v, u)``.
    """

    f: SecondOrderFn
    v0: Array
    u0: Array
    tspan: TSpan
    p: Params = None

    def __post_init__(self) -> None:
        self._set("v0", _as_state(self.v0, "v0"))
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("tspan", _as_tspan(self.tspan))
        if self.v0.shape != self.u0.shape:
            raise ValueError(
                f"v0 and u0 must have the same shape, got {self.v0.shape} and {self.u0.shape}."
            )
        _check_shape(self.f(self.tspan[0], self.v0.copy(), self.u0.copy(), self.p),
                     self.u0.shape, "f")

    def as_ode(self) -> ODEProblem:
        n = self.u0.size

        def f(t: float, z: Array, p: Params) -> Array:
            v, u = z[:n], z[n:]
            a = np.asarray(self.f(t, v, u, p), dtype=np.float64)
            return np.concatenate([a, v])

        return ODEProblem(f, np.concatenate([self.v0, self.u0]), self.tspan, self.p)


HamiltonianFn: TypeAlias = Callable[[torch.Tensor, torch.Tensor, Params], torch.Tensor]


@dataclass(frozen=True)
class HamiltonianProblem(_Remakeable):
    """
    Hamiltonian system with momenta ``p`` and positions ``q``.

    ``H(p, q, params)`` must be written with torch operations; the vector field
    ``dp/dt = -dH/dq, dq/dt = dH/dp`` is obtained by automatic differentiation.
    The first-order state is ``concat(p, q)``.
    """

    H: HamiltonianFn
    p0: Array
    q0: Array
    tspan: TSpan
    params: Params = None

    def __post_init__(self) -> None:
        self._set("p0", _as_state(self.p0, "p0"))
        self._set("q0", _as_state(self.q0, "q0"))
        self._set("tspan", _as_tspan(self.tspan))
        if self.p0.shape != self.q0.shape:
            raise ValueError(
                f"p0 and q0 must have the same shape, got {self.p0.shape} and {self.q0.shape}."
            )
        energy = self.energy(np.concatenate([self.p0, self.q0]))
        if not np.isfinite(energy):
            raise ValueError(f"H is not finite at the initial state, got {energy}.")

    def energy(self, z: Array) -> float:
        n = self.p0.size
        zt = torch.as_tensor(z, dtype=torch.float64)
        with torch.no_grad():
            return float(self.H(zt[:n], zt[n:], self.params))

    def vector_field(self, t: float, z: Array, params: Params) -> Array:
        n = self.p0.size
        zt = torch.as_tensor(np.asarray(z, dtype=np.float64)).clone().requires_grad_(True)
        H = self.H(zt[:n], zt[n:], params)
        dH = grad(H, zt, create_graph=False).numpy()
        return np.concatenate([-dH[n:], dH[:n]])

    def as_ode(self) -> ODEProblem:
        return ODEProblem(
            self.vector_field, np.concatenate([self.p0, self.q0]), self.tspan, self.params
        )


@dataclass(frozen=True)
class SDEProblem(_Remakeable):
    """
    SDE ``du = f(t, u, p) dt + g(t, u, p) dW``, read in the Itô sense unless
    ``interpretation="stratonovich"``.

    Attributes:
        noise: ``"diagonal"``: g returns shape (n,), one Wiener process per state.
            ``"scalar"``: g returns shape (n,), one shared Wiener process.
            ``"general"``: g returns shape (n, noise_dim).
        noise_dim: Number of Wiener processes for general noise.
        interpretation: Stochastic calculus the equation is written in; it decides
            which methods may integrate it.
    """

    f: RHSFn
    g: DiffusionFn
    u0: Array
    tspan: TSpan
    p: Params = None
    noise: NoiseTypes = "diagonal"
    noise_dim: int | None = None
    interpretation: SDETypes = "ito"

    def __post_init__(self) -> None:
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("tspan", _as_tspan(self.tspan))
        n = self.u0.size
        t0 = self.tspan[0]
        _check_shape(self.f(t0, self.u0.copy(), self.p), (n,), "f")
        if self.noise == "general":
            if self.noise_dim is None or self.noise_dim <= 0:
                raise ValueError(
                    f"general noise needs a positive noise_dim, got {self.noise_dim}."
                )
            _check_shape(self.g(t0, self.u0.copy(), self.p), (n, self.noise_dim), "g")
        elif self.noise in ("diagonal", "scalar"):
            _check_shape(self.g(t0, self.u0.copy(), self.p), (n,), "g")
        else:
            raise ValueError(
                f"noise must be one of 'diagonal', 'scalar', 'general', got {self.noise!r}."
            )
        if self.interpretation not in ("ito", "stratonovich"):
            raise ValueError(
                f"interpretation must be 'ito' or 'stratonovich', got {self.interpretation!r}."
            )

    @property
    def brownian_dim(self) -> int:
        if self.noise == "general":
            assert self.noise_dim is not None
            return self.noise_dim
        if self.noise == "scalar":
            return 1
        return self.u0.size

    def as_ode(self) -> ODEProblem:
        """The drift alone, as a deterministic problem."""
        return ODEProblem(self.f, self.u0, self.tspan, self.p)


@dataclass(frozen=True)
class DDEProblem(_Remakeable):
    """
    Delay differential equation ``du = f(t, u, h, p)`` with constant lags.

    ``h(s)`` returns the state at a past time ``s``; before ``t0`` it is given by
    ``history(s, p)``.
    """

    f: DDEFn
    u0: Array
    history: HistoryFn
    tspan: TSpan
    p: Params = None
    constant_lags: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("tspan", _as_tspan(self.tspan))
        self._set("constant_lags", tuple(float(lag) for lag in self.constant_lags))
        if not self.constant_lags:
            raise ValueError("constant_lags must contain at least one lag.")
        if min(self.constant_lags) <= 0:
            raise ValueError(f"constant_lags must be positive, got {self.constant_lags}.")
        n = self.u0.size
        t0 = self.tspan[0]
        _check_shape(self.history(t0 - min(self.constant_lags), self.p), (n,), "history")

        def h(s: float) -> Array:
            return np.asarray(self.history(s, self.p), dtype=np.float64)

        _check_shape(self.f(t0, self.u0.copy(), h, self.p), (n,), "f")


@dataclass(frozen=True)
class DAEProblem(_Remakeable):
    """
    Fully implicit DAE ``F(t, du, u, p) = 0``.

    Attributes:
        differential_vars: Mask of variables whose derivative appears in ``F``;
            the others are algebraic.
    """

    f: ResidualFn
    du0: Array
    u0: Array
    tspan: TSpan
    p: Params = None
    differential_vars: Any = None

    def __post_init__(self) -> None:
        self._set("u0", _as_state(self.u0, "u0"))
        self._set("du0", _as_state(self.du0, "du0"))
        self._set("tspan", _as_tspan(self.tspan))
        n = self.u0.size
        if self.du0.shape != self.u0.shape:
            raise ValueError(
                f"du0 and u0 must have the same shape, got {self.du0.shape} and {self.u0.shape}."
            )
        if self.differential_vars is None:
            self._set("differential_vars", np.ones(n, dtype=bool))
        mask = np.asarray(self.differential_vars, dtype=bool).reshape(-1)
        if mask.size != n:
            raise ValueError(f"differential_vars must have length {n}, got {mask.size}.")
        if not mask.any():
            raise ValueError("At least one variable must be differential.")
        self._set("differential_vars", mask)
        _check_shape(self.f(self.tspan[0], self.du0.copy(), self.u0.copy(), self.p), (n,), "f")

    def residual(self, t: float, du: Array, u: Array) -> Array:
        return np.asarray(self.f(t, du, u, self.p), dtype=np.float64)


DEProblem: TypeAlias = (
    ODEProblem
    | SplitODEProblem
    | SecondOrderODEProblem
    | HamiltonianProblem
    | SDEProblem
    | DDEProblem
    | DAEProblem
)

ProbFunc: TypeAlias = Callable[[Any, int, int], Any]
OutputFunc: TypeAlias = Callable[[Any, int], tuple[Any, bool]]


def _default_prob_func(prob: Any, i: int, repeat: int) -> Any:
    return prob


def _default_output_func(sol: Any, i: int) -> tuple[Any, bool]:
    return sol, False


@dataclass(frozen=True)
class EnsembleProblem(_Remakeable):
    """
    A batch of independent solves built from a base problem.

    Attributes:
        prob: Base problem.
        prob_func: ``prob_func(prob, i, repeat) -> problem`` for trajectory ``i``.
        output_func: ``output_func(sol, i) -> (value, rerun)``.
        reduction: Optional ``reduction(outputs) -> value`` over all outputs.
    """

    prob: DEProblem
    prob_func: ProbFunc = _default_prob_func
    output_func: OutputFunc = _default_output_func
    reduction: Callable[[list[Any]], Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.prob, DEProblem):
            raise ValueError(
                f"EnsembleProblem needs a problem description, got {type(self.prob).__name__}."
            )
