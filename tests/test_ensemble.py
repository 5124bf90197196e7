"""Tests for ensemble solves."""

import numpy as np
import pytest

from diffeq_workshop import solve
from diffeq_workshop.catalog import henon_heiles
from diffeq_workshop.core import EnsembleProblem, EnsembleSolution, SDEProblem
from diffeq_workshop.solvers.ensemble import MAX_RERUNS

from conftest import decay


@pytest.fixture
def scaled_ensemble(decay_problem):
    def prob_func(prob, i, repeat):
        return prob.remake(u0=prob.u0 * (i + 1))

    return EnsembleProblem(decay_problem, prob_func=prob_func)


class TestStrategies:
    def test_serial(self, scaled_ensemble):
        esol = solve(scaled_ensemble, "RK45", trajectories=3, saveat=[2.0])
        assert isinstance(esol, EnsembleSolution)
        assert len(esol) == 3
        assert esol.successful
        assert esol.elapsed >= 0.0
        for i, sol in enumerate(esol):
            expected = np.exp(-3.0) * np.array([1.0, 2.0]) * (i + 1)
            assert np.allclose(sol.final, expected, rtol=1e-3)

    @pytest.mark.parametrize("strategy", ["threads", "vectorized"])
    def test_strategies_agree_with_serial(self, scaled_ensemble, strategy):
        opts = dict(abstol=1e-10, reltol=1e-8, saveat=[0.5, 1.0, 2.0])
        serial = solve(scaled_ensemble, "dopri5", trajectories=4, **opts)
        other = solve(scaled_ensemble, "dopri5", strategy=strategy, trajectories=4, **opts)
        for a, b in zip(serial, other, strict=True):
            assert np.allclose(a.t, b.t)
            assert np.allclose(a.u, b.u, atol=1e-6)

    def test_threads_keep_order(self, scaled_ensemble):
        esol = solve(scaled_ensemble, "RK45", strategy="threads", trajectories=6, max_workers=3)
        firsts = [sol.u[0, 0] for sol in esol]
        assert firsts == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]

    def test_vectorized_default_method(self, scaled_ensemble):
        esol = solve(scaled_ensemble, strategy="vectorized", trajectories=2)
        assert esol[0].method == "dopri5"
        assert len(esol[0]) == 101

    def test_vectorized_needs_shared_rhs(self, decay_problem):
        def prob_func(prob, i, repeat):
            return prob.remake(p=float(i + 1))

        eprob = EnsembleProblem(decay_problem, prob_func=prob_func)
        with pytest.raises(ValueError, match="shared right-hand side"):
            solve(eprob, strategy="vectorized", trajectories=2)

    def test_vectorized_needs_torch_method(self, scaled_ensemble):
        with pytest.raises(ValueError, match="not a valid ODE method"):
            solve(scaled_ensemble, "RK45", strategy="vectorized", trajectories=2)

    def test_unknown_strategy(self, scaled_ensemble):
        with pytest.raises(ValueError, match="Unknown ensemble strategy"):
            solve(scaled_ensemble, strategy="processes", trajectories=2)

    def test_trajectory_count_positive(self, scaled_ensemble):
        with pytest.raises(ValueError, match="trajectories must be positive"):
            solve(scaled_ensemble, trajectories=0)


class TestOutputsAndReduction:
    def test_output_func_and_reduction(self, scaled_ensemble):
        eprob = EnsembleProblem(
            scaled_ensemble.prob,
            prob_func=scaled_ensemble.prob_func,
            output_func=lambda sol, i: (sol.u[0, 0], False),
            reduction=sum,
        )
        esol = solve(eprob, "RK45", trajectories=3)
        assert esol.outputs == [1.0, 2.0, 3.0]
        assert esol.reduction == 6.0

    def test_reruns(self, decay_problem):
        repeats: list[tuple[int, int]] = []

        def prob_func(prob, i, repeat):
            repeats.append((i, repeat))
            return prob

        def output_func(sol, i):
            return sol, sum(1 for j, _ in repeats if j == i) < 3

        eprob = EnsembleProblem(decay_problem, prob_func=prob_func, output_func=output_func)
        solve(eprob, "RK45", trajectories=2)
        assert repeats == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]

    def test_reruns_are_capped(self, decay_problem):
        calls = []

        def output_func(sol, i):
            calls.append(i)
            return sol, True

        eprob = EnsembleProblem(decay_problem, output_func=output_func)
        esol = solve(eprob, "RK45", trajectories=1)
        assert len(calls) == MAX_RERUNS + 1
        assert len(esol) == 1


class TestSDEEnsemble:
    def test_seeds_offset_per_trajectory(self):
        prob = SDEProblem(decay, lambda t, u, p: 0.3 * u, [1.0], (0.0, 1.0), 1.0)
        esol = solve(EnsembleProblem(prob), "euler", trajectories=2, dt=1e-2, seed=5)
        single = solve(prob, "euler", dt=1e-2, seed=6)
        assert np.array_equal(esol[1].u, single.u)
        assert not np.allclose(esol[0].u, esol[1].u)


class TestHenonEnsemble:
    def test_initial_states_on_energy_shell(self):
        eprob, count = henon_heiles.henon_ensemble_problem(n=4, tspan=(0.0, 1.0))
        assert count > 0
        esol = solve(eprob, "DOP853", trajectories=count, abstol=1e-10, reltol=1e-10)
        for sol in esol:
            assert sol.u[0, 2] == 0.0
            assert henon_heiles.energy(sol.u[0]) == pytest.approx(henon_heiles.ENSEMBLE_ENERGY)
            assert henon_heiles.energy(sol.final) == pytest.approx(
                henon_heiles.ENSEMBLE_ENERGY, abs=1e-8
            )
