"""Tests for diffeq_workshop.core.config: Config dataclasses."""

import pytest

from diffeq_workshop.core import DiscreteCallback, PresetTimeCallback
from diffeq_workshop.core.config import (
    AdamConfig,
    CosineAnnealingConfig,
    LBFGSConfig,
    MLPConfig,
    NeuralODEHyperparameters,
    ReduceLROnPlateauConfig,
    SolverOptions,
)


class TestSolverOptions:
    def test_defaults(self):
        o = SolverOptions()
        assert o.abstol == 1e-6
        assert o.reltol == 1e-3
        assert o.dt is None
        assert o.tstops == ()
        assert o.save_everystep
        assert o.dense

    @pytest.mark.parametrize("field", ["abstol", "reltol", "dt", "dtmax"])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            SolverOptions(**{field: 0.0})

    def test_negative_saveat_spacing_rejected(self):
        with pytest.raises(ValueError, match="saveat"):
            SolverOptions(saveat=-1.0)

    def test_unknown_option_is_type_error(self):
        with pytest.raises(TypeError):
            SolverOptions(abstl=1e-3)  # type: ignore[call-arg]

    def test_tstops_normalized(self):
        o = SolverOptions(tstops=[3, 1])
        assert o.tstops == (3.0, 1.0)
        assert o.all_tstops() == (1.0, 3.0)

    def test_preset_callback_times_merged(self):
        cb = PresetTimeCallback([2.0, 5.0], lambda integrator: None)
        o = SolverOptions(tstops=[1.0, 2.0], callback=cb)
        assert o.all_tstops() == (1.0, 2.0, 5.0)

    def test_plain_callback_adds_no_stops(self):
        cb = DiscreteCallback(lambda u, t, i: True, lambda i: None)
        assert SolverOptions(callback=cb).all_tstops() == ()

    def test_save_times_spacing_includes_end(self):
        times = SolverOptions(saveat=0.3).save_times(0.0, 1.0)
        assert times is not None
        assert times[0] == 0.0
        assert times[-1] == 1.0
        assert len(times) == 5

    def test_save_times_list_filtered_and_sorted(self):
        times = SolverOptions(saveat=[2.0, 0.5, 5.0, -1.0]).save_times(0.0, 3.0)
        assert times == [0.0, 0.5, 2.0]

    def test_save_times_none(self):
        assert SolverOptions().save_times(0.0, 1.0) is None


class TestMLPConfig:
    def test_instantiation(self):
        c = MLPConfig(in_dim=2, out_dim=2, hidden_layers=[32, 32], activation="tanh")
        assert c.hidden_layers == [32, 32]
        assert c.output_activation is None

    def test_non_positive_dims_rejected(self):
        with pytest.raises(ValueError):
            MLPConfig(in_dim=0, out_dim=2, hidden_layers=[], activation="tanh")


class TestAdamConfig:
    def test_defaults(self):
        c = AdamConfig()
        assert c.lr == 1e-3
        assert c.betas == (0.9, 0.999)

    def test_invalid_beta(self):
        with pytest.raises(ValueError, match="betas"):
            AdamConfig(betas=(1.0, 0.999))


class TestLBFGSConfig:
    def test_defaults(self):
        c = LBFGSConfig()
        assert c.lr == 1.0
        assert c.line_search_fn == "strong_wolfe"

    def test_invalid_max_iter(self):
        with pytest.raises(ValueError, match="max_iter"):
            LBFGSConfig(max_iter=0)


class TestSchedulerConfigs:
    def test_plateau_factor_range(self):
        with pytest.raises(ValueError, match="factor"):
            ReduceLROnPlateauConfig(factor=1.5)

    def test_cosine_requires_positive_t_max(self):
        with pytest.raises(ValueError, match="T_max"):
            CosineAnnealingConfig(T_max=0)


class TestNeuralODEHyperparameters:
    def _func(self) -> MLPConfig:
        return MLPConfig(in_dim=2, out_dim=2, hidden_layers=[8], activation="tanh")

    def test_defaults(self):
        hp = NeuralODEHyperparameters(func_config=self._func())
        assert hp.method == "dopri5"
        assert not hp.adjoint
        assert hp.criterion == "l1"

    def test_batch_time_at_least_two(self):
        with pytest.raises(ValueError, match="batch_time"):
            NeuralODEHyperparameters(func_config=self._func(), batch_time=1)
