"""Tests for diffeq_workshop.core.problems: problem construction and validation."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest
import scipy.sparse as sp
import torch

from diffeq_workshop.core import (
    DAEProblem,
    DDEProblem,
    EnsembleProblem,
    HamiltonianProblem,
    ODEProblem,
    SDEProblem,
    SecondOrderODEProblem,
    SplitODEProblem,
)

from conftest import decay


class TestODEProblem:
    def test_normalizes_inputs(self):
        prob = ODEProblem(decay, [1, 2], (0, 1), 1.0)
        assert prob.u0.dtype == np.float64
        assert prob.u0.shape == (2,)
        assert prob.tspan == (0.0, 1.0)

    def test_rhs_shape_mismatch_rejected(self):
        with pytest.raises(ValueError, match=r"\(3,\).*\(2,\)"):
            ODEProblem(lambda t, u, p: np.zeros(3), [1.0, 2.0], (0.0, 1.0))

    def test_empty_state_rejected(self):
        with pytest.raises(ValueError, match="u0"):
            ODEProblem(decay, [], (0.0, 1.0), 1.0)

    def test_reversed_tspan_rejected(self):
        with pytest.raises(ValueError, match="tspan"):
            ODEProblem(decay, [1.0], (1.0, 0.0), 1.0)

    def test_check_rhs_can_be_skipped(self):
        def torch_only(t, u, p):
            return -u.clone()

        prob = ODEProblem(torch_only, [1.0], (0.0, 1.0), check_rhs=False)
        assert prob.n == 1

    def test_remake_revalidates(self, decay_problem):
        other = decay_problem.remake(u0=[3.0, 4.0])
        assert np.array_equal(other.u0, [3.0, 4.0])
        assert other.p == decay_problem.p
        with pytest.raises(ValueError):
            decay_problem.remake(tspan=(2.0, 1.0))

    def test_fields_are_frozen(self, decay_problem):
        with pytest.raises(FrozenInstanceError):
            decay_problem.p = 2.0
        other = decay_problem.remake(p=2.0)
        assert other is not decay_problem
        assert decay_problem.p == 1.5

    def test_mass_matrix_shape_checked(self):
        with pytest.raises(ValueError, match="mass_matrix"):
            ODEProblem(decay, [1.0, 2.0], (0.0, 1.0), 1.0, mass_matrix=np.eye(3))

    def test_mass_matrix_rows_and_columns_pair_up(self):
        M = np.array([[1.0, 1.0], [0.0, 0.0]])
        with pytest.raises(ValueError, match="zero rows"):
            ODEProblem(decay, [1.0, 2.0], (0.0, 1.0), 1.0, mass_matrix=M)

    def test_mass_matrix_algebraic_indices(self):
        prob = ODEProblem(decay, [1.0, 2.0, 3.0], (0.0, 1.0), 1.0, mass_matrix=np.diag([1, 1, 0]))
        assert prob.has_mass_matrix
        assert prob.algebraic_rows().tolist() == [2]
        assert prob.algebraic_vars().tolist() == [2]

    def test_identity_mass_matrix_is_plain(self):
        prob = ODEProblem(decay, [1.0, 2.0], (0.0, 1.0), 1.0, mass_matrix=np.eye(2))
        assert not prob.has_mass_matrix


class TestSplitODEProblem:
    def test_matrix_part(self):
        A = sp.csr_matrix(np.array([[-1.0, 0.0], [0.0, -2.0]]))
        prob = SplitODEProblem(A, lambda t, u, p: np.ones(2), [1.0, 1.0], (0.0, 1.0))
        assert prob.is_linear
        ode = prob.as_ode()
        assert np.allclose(ode.f(0.0, np.array([1.0, 1.0]), None), [0.0, -1.0])

    def test_matrix_shape_checked(self):
        with pytest.raises(ValueError, match="Linear part"):
            SplitODEProblem(np.eye(3), lambda t, u, p: u, [1.0, 1.0], (0.0, 1.0))

    def test_sparsity_union_with_linear_part(self):
        A = sp.csr_matrix(np.array([[0.0, 1.0], [0.0, 0.0]]))
        prob = SplitODEProblem(
            A, lambda t, u, p: u, [1.0, 1.0], (0.0, 1.0), jac_sparsity=np.eye(2)
        )
        pattern = prob.as_ode().jac_sparsity.toarray()
        assert pattern.tolist() == [[True, True], [False, True]]

    def test_sparsity_detected_without_pattern(self):
        def f2(t, u, p):
            return np.array([u[0] * u[2], 0.0, u[1] ** 2])

        A = sp.csr_matrix(-np.eye(3))
        prob = SplitODEProblem(A, f2, [0.0, 0.0, 0.0], (0.0, 1.0))
        assert prob.jac_sparsity is None
        pattern = prob.as_ode().jac_sparsity.toarray()
        assert pattern.tolist() == [
            [True, False, True],
            [False, True, False],
            [False, True, True],
        ]

    def test_callable_stiff_part_keeps_pattern(self):
        prob = SplitODEProblem(
            lambda t, u, p: -u, lambda t, u, p: np.zeros(2), [1.0, 1.0], (0.0, 1.0)
        )
        assert prob.as_ode().jac_sparsity is None


class TestSecondOrderODEProblem:
    def test_first_order_state(self):
        prob = SecondOrderODEProblem(lambda t, v, u, p: -u, [0.5], [1.0], (0.0, 1.0))
        ode = prob.as_ode()
        assert ode.u0.tolist() == [0.5, 1.0]
        assert ode.f(0.0, ode.u0, None).tolist() == [-1.0, 0.5]

    def test_shapes_must_match(self):
        with pytest.raises(ValueError, match="v0 and u0"):
            SecondOrderODEProblem(lambda t, v, u, p: -u, [0.5, 0.1], [1.0], (0.0, 1.0))


class TestHamiltonianProblem:
    @staticmethod
    def oscillator(p, q, params):
        return 0.5 * (p**2).sum() + 0.5 * (q**2).sum()

    def test_vector_field(self):
        prob = HamiltonianProblem(self.oscillator, [1.0], [2.0], (0.0, 1.0))
        dz = prob.vector_field(0.0, np.array([1.0, 2.0]), None)
        assert np.allclose(dz, [-2.0, 1.0])

    def test_energy(self):
        prob = HamiltonianProblem(self.oscillator, [1.0], [2.0], (0.0, 1.0))
        assert prob.energy(np.array([1.0, 2.0])) == pytest.approx(2.5)

    def test_non_finite_energy_rejected(self):
        with pytest.raises(ValueError, match="not finite"):
            HamiltonianProblem(lambda p, q, _: torch.log(q[0]), [1.0], [-1.0], (0.0, 1.0))


class TestSDEProblem:
    def test_diagonal(self, zero_noise_sde):
        assert zero_noise_sde.brownian_dim == 2

    def test_scalar(self):
        prob = SDEProblem(decay, lambda t, u, p: u, [1.0, 2.0], (0.0, 1.0), 1.0, noise="scalar")
        assert prob.brownian_dim == 1

    def test_general_requires_noise_dim(self):
        with pytest.raises(ValueError, match="noise_dim"):
            SDEProblem(
                decay, lambda t, u, p: np.zeros((2, 3)), [1.0, 2.0], (0.0, 1.0), 1.0,
                noise="general",
            )

    def test_general_shape_checked(self):
        with pytest.raises(ValueError, match="g returned"):
            SDEProblem(
                decay, lambda t, u, p: np.zeros((2, 2)), [1.0, 2.0], (0.0, 1.0), 1.0,
                noise="general", noise_dim=3,
            )

    def test_diagonal_shape_checked(self):
        with pytest.raises(ValueError, match="g returned"):
            SDEProblem(decay, lambda t, u, p: np.zeros((2, 2)), [1.0, 2.0], (0.0, 1.0), 1.0)

    def test_unknown_noise_rejected(self):
        with pytest.raises(ValueError, match="noise must be"):
            SDEProblem(decay, lambda t, u, p: u, [1.0], (0.0, 1.0), 1.0, noise="colored")

    def test_ito_by_default(self, zero_noise_sde):
        assert zero_noise_sde.interpretation == "ito"

    def test_unknown_interpretation_rejected(self):
        with pytest.raises(ValueError, match="interpretation"):
            SDEProblem(decay, lambda t, u, p: u, [1.0], (0.0, 1.0), 1.0, interpretation="ikeda")


class TestDDEProblem:
    @staticmethod
    def f(t, u, h, p):
        return -h(t - 1.0)

    def test_lags_required(self):
        with pytest.raises(ValueError, match="constant_lags"):
            DDEProblem(self.f, [1.0], lambda t, p: np.ones(1), (0.0, 2.0))

    def test_lags_positive(self):
        with pytest.raises(ValueError, match="positive"):
            DDEProblem(self.f, [1.0], lambda t, p: np.ones(1), (0.0, 2.0), constant_lags=[0.0])

    def test_history_shape_checked(self):
        with pytest.raises(ValueError, match="history"):
            DDEProblem(
                self.f, [1.0], lambda t, p: np.ones(2), (0.0, 2.0), constant_lags=[1.0]
            )


class TestDAEProblem:
    @staticmethod
    def residual(t, du, u, p):
        return np.array([du[0] + u[0], u[0] + u[1] - 1.0])

    def test_default_mask_all_differential(self):
        prob = DAEProblem(self.residual, [0.0, 0.0], [1.0, 0.0], (0.0, 1.0))
        assert prob.differential_vars.tolist() == [True, True]

    def test_mask_length_checked(self):
        with pytest.raises(ValueError, match="differential_vars"):
            DAEProblem(
                self.residual, [0.0, 0.0], [1.0, 0.0], (0.0, 1.0), differential_vars=[True]
            )

    def test_needs_a_differential_variable(self):
        with pytest.raises(ValueError, match="differential"):
            DAEProblem(
                self.residual, [0.0, 0.0], [1.0, 0.0], (0.0, 1.0),
                differential_vars=[False, False],
            )

    def test_du0_shape_checked(self):
        with pytest.raises(ValueError, match="du0"):
            DAEProblem(self.residual, [0.0], [1.0, 0.0], (0.0, 1.0))


class TestEnsembleProblem:
    def test_defaults(self, decay_problem):
        ens = EnsembleProblem(decay_problem)
        assert ens.prob_func(decay_problem, 3, 0) is decay_problem
        sol = object()
        assert ens.output_func(sol, 0) == (sol, False)

    def test_requires_problem(self):
        with pytest.raises(ValueError, match="problem description"):
            EnsembleProblem("not a problem")  # type: ignore[arg-type]
