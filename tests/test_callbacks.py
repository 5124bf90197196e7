"""Tests for discrete callbacks and their effect on the integration."""

import numpy as np
import pytest

from diffeq_workshop import solve
from diffeq_workshop.catalog import pharmacokinetics as pk
from diffeq_workshop.core import (
    CallbackSet,
    DiscreteCallback,
    IntegratorState,
    ODEProblem,
    PresetTimeCallback,
    ReturnCode,
)

from conftest import decay


def _bump(integrator: IntegratorState) -> None:
    integrator.u[0] += 1.0


class TestPresetTimeCallback:
    def test_times_sorted(self):
        cb = PresetTimeCallback([3.0, 1.0, 2.0], _bump)
        assert cb.preset_times() == (1.0, 2.0, 3.0)

    def test_fires_only_at_preset_times(self):
        cb = PresetTimeCallback([1.0], _bump)
        state = IntegratorState(t=0.5, u=np.zeros(1), p=None)
        assert not cb.apply(state)
        state.t = 1.0
        assert cb.apply(state)
        assert state.u[0] == 1.0


class TestDiscreteCallback:
    def test_no_change_reported(self):
        cb = DiscreteCallback(lambda u, t, i: True, lambda i: None)
        assert not cb.apply(IntegratorState(t=0.0, u=np.ones(2), p=None))

    def test_terminate(self):
        prob = ODEProblem(decay, [1.0], (0.0, 5.0), 1.0)
        stop = DiscreteCallback(lambda u, t, i: t >= 2.0, lambda i: i.terminate())
        sol = solve(prob, "RK45", tstops=[1.0, 2.0, 3.0], callback=stop)
        assert sol.retcode is ReturnCode.TERMINATED
        assert sol.successful
        assert sol.t[-1] == pytest.approx(2.0)


class TestCallbackSet:
    def test_union_of_preset_times(self):
        cbs = CallbackSet(PresetTimeCallback([2.0], _bump), PresetTimeCallback([1.0, 2.0], _bump))
        assert cbs.preset_times() == (1.0, 2.0)
        assert len(cbs) == 2

    def test_applies_in_order(self):
        def double(integrator: IntegratorState) -> None:
            integrator.u *= 2.0

        cbs = CallbackSet(PresetTimeCallback([1.0], _bump), PresetTimeCallback([1.0], double))
        state = IntegratorState(t=1.0, u=np.zeros(1), p=None)
        assert cbs.apply(state)
        assert state.u[0] == 2.0


class TestDosing:
    @pytest.fixture
    def sol(self):
        return solve(
            pk.pk_problem(), "RK45", callback=pk.dosing_callback(), abstol=1e-8, reltol=1e-8
        )

    def test_pre_and_post_states_saved(self, sol):
        for t_dose in pk.DOSE_TIMES:
            idx = np.flatnonzero(np.isclose(sol.t, t_dose, rtol=0.0, atol=1e-12))
            assert len(idx) == 2
            pre, post = sol.u[idx[0]], sol.u[idx[1]]
            assert post[0] - pre[0] == pytest.approx(pk.DOSE)
            assert post[1] == pytest.approx(pre[1])

    def test_depot_decays_analytically_between_doses(self, sol):
        p = pk.PKParams()
        assert sol(1.0)[0] == pytest.approx(pk.DOSE * np.exp(-p.Ka), rel=1e-5)

    def test_interpolant_returns_post_event_state(self, sol):
        idx = np.flatnonzero(np.isclose(sol.t, 24.0, rtol=0.0, atol=1e-12))
        assert np.allclose(sol(24.0), sol.u[idx[1]])

    def test_saveat_skips_event_duplicates(self):
        sol = solve(pk.pk_problem(), "RK45", callback=pk.dosing_callback(), saveat=6.0)
        assert np.allclose(sol.t, np.arange(0.0, 91.0, 6.0))

    def test_saveat_keeps_post_event_state(self):
        sol = solve(pk.pk_problem(), "RK45", callback=pk.dosing_callback(), saveat=6.0)
        for t_dose in pk.DOSE_TIMES:
            (idx,) = np.flatnonzero(np.isclose(sol.t, t_dose, rtol=0.0, atol=1e-12))
            assert sol.u[idx, 0] == pytest.approx(pk.DOSE, rel=1e-6)
            assert np.allclose(sol(t_dose), sol.u[idx])
