"""Tests for delay differential equations solved by the method of steps."""

import numpy as np
import pytest

from diffeq_workshop import solve
from diffeq_workshop.catalog import pharmacokinetics as pk
from diffeq_workshop.core import DDEProblem
from diffeq_workshop.solvers.dde import DelayedState, delay_grid


def _linear_delay(t, u, h, p):
    return -h(t - 1.0)


@pytest.fixture
def linear_dde():
    return DDEProblem(
        _linear_delay, [1.0], lambda t, p: np.ones(1), (0.0, 3.0), constant_lags=(1.0,)
    )


class TestDelayGrid:
    def test_multiples_of_smallest_lag(self):
        prob = DDEProblem(
            _linear_delay, [1.0], lambda t, p: np.ones(1), (0.0, 2.0), constant_lags=(1.0, 0.5)
        )
        assert delay_grid(prob) == [0.5, 1.0, 1.5]

    def test_multiples_of_every_lag(self):
        prob = DDEProblem(
            _linear_delay, [1.0], lambda t, p: np.ones(1), (0.0, 2.0), constant_lags=(0.5, 0.75)
        )
        assert delay_grid(prob) == [0.5, 0.75, 1.0, 1.5]

    def test_coinciding_points_merged(self):
        prob = DDEProblem(
            _linear_delay, [1.0], lambda t, p: np.ones(1), (0.0, 0.7), constant_lags=(0.1, 0.3)
        )
        grid = delay_grid(prob)
        assert grid == pytest.approx([0.1, 0.2, 0.3, 0.4, 0.5, 0.6])

    def test_lag_longer_than_span(self):
        prob = DDEProblem(
            _linear_delay, [1.0], lambda t, p: np.ones(1), (0.0, 0.5), constant_lags=(1.0,)
        )
        assert delay_grid(prob) == []


class TestDelayedState:
    def test_history_before_t0(self, linear_dde):
        h = DelayedState(linear_dde)
        assert h(-0.5)[0] == 1.0
        # nothing computed yet
        assert h(0.5)[0] == 1.0

    def test_clamps_to_computed_end(self, linear_dde):
        h = DelayedState(linear_dde)
        h.extend(0.0, 1.0, lambda s: np.array([1.0 - s]))
        assert h(0.25)[0] == pytest.approx(0.75)
        assert h(1.2)[0] == pytest.approx(0.0)


class TestSolveDDE:
    def test_linear_dde_matches_steps(self, linear_dde):
        sol = solve(linear_dde, abstol=1e-10, reltol=1e-10)
        assert sol.successful
        assert sol.method == "Radau"
        # u = 1 - t on [0, 1], then u' = -(2 - t) on [1, 2]
        assert sol(0.5)[0] == pytest.approx(0.5, abs=1e-7)
        assert sol(1.0)[0] == pytest.approx(0.0, abs=1e-7)
        assert sol(2.0)[0] == pytest.approx(-0.5, abs=1e-6)

    def test_grid_points_are_segment_boundaries(self, linear_dde):
        sol = solve(linear_dde, "RK45")
        assert np.isclose(sol.t, 1.0).any()
        assert np.isclose(sol.t, 2.0).any()

    def test_absorption_delay(self):
        prob = pk.pk_delay_problem(tspan=(0.0, 20.0))
        sol = solve(prob, abstol=1e-10, reltol=1e-8)
        before = sol(np.linspace(0.0, 5.9, 20))
        assert np.allclose(before[:, 1], 0.0, atol=1e-9)
        assert sol(8.0)[1] > 1.0

    def test_delay_with_dosing(self):
        prob = pk.pk_delay_problem(tspan=(0.0, 40.0))
        sol = solve(prob, callback=pk.dosing_callback(times=(24.0,)), abstol=1e-8, reltol=1e-8)
        idx = np.flatnonzero(np.isclose(sol.t, 24.0, rtol=0.0, atol=1e-12))
        assert len(idx) == 2
        assert sol.u[idx[1], 0] - sol.u[idx[0], 0] == pytest.approx(pk.DOSE)

    def test_torch_method_rejected(self, linear_dde):
        with pytest.raises(ValueError, match="not a valid ODE method"):
            solve(linear_dde, "dopri5")
