"""
Index-1 differential-algebraic equations.

Both mass-matrix ODEs and fully implicit residual DAEs are reduced to an ODE
over the differential variables. Every evaluation of the reduced right-hand
side solves the algebraic part with ``scipy.optimize.root``, warm-started from
the previous solution. Derivatives of algebraic variables are taken as zero.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
import logging

import numpy as np
from scipy.linalg import lu_factor, lu_solve
from scipy.optimize import root

from diffeq_workshop.core.config import SolverOptions
from diffeq_workshop.core.problems import DAEProblem, ODEProblem
from diffeq_workshop.core.solution import ODESolution
from diffeq_workshop.core.types import Array
from diffeq_workshop.solvers._piecewise import Segment, StepFn, integrate_piecewise
from diffeq_workshop.solvers.registry import resolve
from diffeq_workshop.solvers.scipy_backend import scipy_step

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "Radau"
ROOT_TOL = 1e-10


class AlgebraicSolveError(RuntimeError):
    """The algebraic equations of a DAE could not be solved."""


class _AlgebraicSolver:
    """Solves ``residual(t, x, z) = 0`` for ``z``, reusing the last solution as guess."""

    def __init__(self, residual: Callable[[float, Array, Array], Array], guess: Array):
        self.residual = residual
        self.guess = np.array(guess, dtype=np.float64)

    def __call__(self, t: float, x: Array) -> Array:
        if self.guess.size == 0:
            return self.guess
        sol = root(lambda z: self.residual(t, x, z), self.guess, method="hybr", tol=ROOT_TOL)
        if not sol.success and np.max(np.abs(sol.fun)) > np.sqrt(ROOT_TOL):
            raise AlgebraicSolveError(
                f"Algebraic equations did not converge at t={t:g}: {sol.message}"
            )
        self.guess = sol.x
        return sol.x


class _Reduction(ABC):
    """Common bookkeeping for splitting the state into differential and algebraic parts."""

    diff: Array
    alg: Array
    n: int
    _solver: _AlgebraicSolver

    def assemble(self, x: Array, z: Array) -> Array:
        u = np.empty(self.n)
        u[self.diff] = x
        u[self.alg] = z
        return u

    @abstractmethod
    def full(self, t: float, x: Array) -> Array:
        """Complete state at ``t`` from the differential variables ``x``."""

    @abstractmethod
    def rhs(self, t: float, x: Array) -> Array:
        """Derivative of the differential variables."""

    def wrap(self, inner: StepFn) -> StepFn:
        """Lift a stepper over ``x`` to one over full states."""

        def step(a: float, b: float, u: Array, save_points: list[float]) -> Segment:
            seg = inner(a, b, u[self.diff], save_points)
            seg_interp = seg.interpolant
            full_u = (
                np.stack([self.full(t, x) for t, x in zip(seg.t, seg.u, strict=True)])
                if len(seg.t)
                else np.empty((0, self.n))
            )
            return Segment(
                t=seg.t,
                u=full_u,
                interpolant=lambda s: self.full(s, np.asarray(seg_interp(s)).reshape(-1)),
                stats=seg.stats,
                success=seg.success,
                message=seg.message,
            )

        return step


class MassMatrixReduction(_Reduction):
    """
    ``M du/dt = f(t, u)`` with zero rows of ``M`` as algebraic equations and
    zero columns as algebraic variables.
    """

    def __init__(self, problem: ODEProblem):
        M = problem.mass_matrix
        assert M is not None
        self.problem = problem
        self.n = problem.n
        everything = np.arange(self.n)
        self.rows_a = problem.algebraic_rows()
        self.rows_d = np.setdiff1d(everything, self.rows_a)
        self.alg = problem.algebraic_vars()
        self.diff = np.setdiff1d(everything, self.alg)
        self._lu = lu_factor(M[np.ix_(self.rows_d, self.diff)])
        self._solver = _AlgebraicSolver(self._residual, problem.u0[self.alg])

    def _residual(self, t: float, x: Array, z: Array) -> Array:
        return self.problem.rhs(t, self.assemble(x, z))[self.rows_a]

    def full(self, t: float, x: Array) -> Array:
        return self.assemble(x, self._solver(t, x))

    def rhs(self, t: float, x: Array) -> Array:
        u = self.full(t, x)
        return lu_solve(self._lu, self.problem.rhs(t, u)[self.rows_d])


class ImplicitDAEReduction(_Reduction):
    """
    ``F(t, du, u) = 0``; unknowns per evaluation are the differential
    derivatives and the algebraic variables.
    """

    def __init__(self, problem: DAEProblem):
        self.problem = problem
        mask = problem.differential_vars
        self.n = problem.u0.size
        self.diff = np.flatnonzero(mask)
        self.alg = np.flatnonzero(~mask)
        guess = np.concatenate([problem.du0[self.diff], problem.u0[self.alg]])
        self._solver = _AlgebraicSolver(self._residual, guess)

    def _split(self, z: Array) -> tuple[Array, Array]:
        nd = self.diff.size
        return z[:nd], z[nd:]

    def _residual(self, t: float, x: Array, z: Array) -> Array:
        dx, za = self._split(z)
        du = np.zeros(self.n)
        du[self.diff] = dx
        return self.problem.residual(t, du, self.assemble(x, za))

    def full(self, t: float, x: Array) -> Array:
        _, za = self._split(self._solver(t, x))
        return self.assemble(x, za)

    def rhs(self, t: float, x: Array) -> Array:
        dx, _ = self._split(self._solver(t, x))
        return dx


def _solve_reduced(
    reduction: _Reduction,
    problem: ODEProblem | DAEProblem,
    u0: Array,
    method: str | None,
    options: SolverOptions,
) -> ODESolution:
    method = method or DEFAULT_METHOD
    resolve(method, "ode", backends=("scipy",))
    t0 = problem.tspan[0]
    consistent = reduction.full(t0, u0[reduction.diff])
    if not np.allclose(consistent, u0):
        logger.debug("adjusted algebraic variables at t0 to %s", consistent[reduction.alg])
    step = reduction.wrap(scipy_step(reduction.rhs, method, options))
    return integrate_piecewise(
        step, consistent, problem.tspan, problem.p, options, problem=problem, method=method
    )


def solve_mass_matrix(
    problem: ODEProblem, method: str | None, options: SolverOptions
) -> ODESolution:
    """Integrate ``M du/dt = f`` by reduction to the differential variables."""
    return _solve_reduced(MassMatrixReduction(problem), problem, problem.u0, method, options)


def solve_dae(problem: DAEProblem, method: str | None, options: SolverOptions) -> ODESolution:
    """Integrate ``F(t, du, u) = 0`` by reduction to the differential variables."""
    return _solve_reduced(ImplicitDAEReduction(problem), problem, problem.u0, method, options)
