"""Tests for diffeq_workshop.neural: vector fields, neural ODEs and trajectory data."""

import numpy as np
import pandas as pd
import pytest
import torch
import torch.nn as nn

from diffeq_workshop.core import MLPConfig
from diffeq_workshop.core.types import Activations
from diffeq_workshop.neural import (
    NeuralODE,
    ODEFunc,
    TrajectoryDataModule,
    TrajectoryWindows,
    build_criterion,
    get_activation,
)

# ── activations and criteria ──────────────────────────────────────────


ALL_ACTIVATIONS: list[Activations] = [
    "tanh",
    "relu",
    "leaky_relu",
    "sigmoid",
    "selu",
    "softplus",
    "identity",
]


@pytest.mark.parametrize("name", ALL_ACTIVATIONS)
def test_get_activation_returns_module(name: Activations):
    act = get_activation(name)
    assert isinstance(act, nn.Module)
    assert act(torch.randn(4)).shape == (4,)


@pytest.mark.parametrize(
    ("name", "cls"), [("mse", nn.MSELoss), ("huber", nn.HuberLoss), ("l1", nn.L1Loss)]
)
def test_build_criterion(name, cls):
    assert isinstance(build_criterion(name), cls)


# ── ODEFunc ───────────────────────────────────────────────────────────


class TestODEFunc:
    def test_shape(self, small_mlp_config):
        func = ODEFunc(small_mlp_config)
        y = torch.randn(5, 2)
        assert func(torch.tensor(0.0), y).shape == (5, 2)

    def test_mismatched_dims_rejected(self):
        config = MLPConfig(in_dim=2, out_dim=3, hidden_layers=[8], activation="tanh")
        with pytest.raises(ValueError, match="in_dim == out_dim"):
            ODEFunc(config)

    def test_layer_layout(self, small_mlp_config):
        func = ODEFunc(small_mlp_config)
        kinds = [type(m) for m in func.net]
        assert kinds == [nn.Linear, nn.Tanh, nn.Linear]

    def test_output_activation(self):
        config = MLPConfig(
            in_dim=2, out_dim=2, hidden_layers=[4], activation="relu", output_activation="tanh"
        )
        out = ODEFunc(config)(torch.tensor(0.0), 100 * torch.randn(3, 2))
        assert (out.abs() <= 1).all()

    def test_zero_bias_init(self, small_mlp_config):
        func = ODEFunc(small_mlp_config)
        for m in func.net:
            if isinstance(m, nn.Linear):
                assert torch.count_nonzero(m.bias) == 0

    def test_cubic_input(self, small_mlp_config):
        func = ODEFunc(small_mlp_config, cubic=True)
        y = torch.randn(3, 2)
        assert torch.allclose(func(torch.tensor(0.0), y), func.net(y**3))

    def test_time_ignored(self, small_mlp_config):
        func = ODEFunc(small_mlp_config)
        y = torch.randn(3, 2)
        assert torch.equal(func(torch.tensor(0.0), y), func(torch.tensor(5.0), y))


# ── NeuralODE ─────────────────────────────────────────────────────────


class TestNeuralODE:
    def test_trajectory_shape(self, small_mlp_config):
        model = NeuralODE(ODEFunc(small_mlp_config), rtol=1e-4, atol=1e-6)
        t = torch.linspace(0, 1, 7)
        assert model(torch.randn(2), t).shape == (7, 2)
        assert model(torch.randn(4, 2), t).shape == (7, 4, 2)

    def test_starts_at_y0(self, small_mlp_config):
        model = NeuralODE(ODEFunc(small_mlp_config), rtol=1e-4, atol=1e-6)
        y0 = torch.randn(3, 2)
        out = model(y0, torch.linspace(0, 1, 4))
        assert torch.allclose(out[0], y0)

    def test_trajectory_has_no_grad(self, small_mlp_config):
        model = NeuralODE(ODEFunc(small_mlp_config), rtol=1e-4, atol=1e-6)
        out = model.trajectory(torch.randn(2), torch.linspace(0, 1, 3))
        assert not out.requires_grad

    @pytest.mark.parametrize("adjoint", [False, True])
    def test_gradients_reach_parameters(self, small_mlp_config, adjoint):
        model = NeuralODE(ODEFunc(small_mlp_config), method="rk4", adjoint=adjoint)
        out = model(torch.ones(2), torch.linspace(0, 1, 5))
        out.pow(2).sum().backward()
        grads = [p.grad for p in model.parameters()]
        assert all(g is not None for g in grads)


# ── TrajectoryWindows ─────────────────────────────────────────────────


class TestTrajectoryWindows:
    def test_items(self):
        y = torch.arange(20.0).reshape(10, 2)
        ds = TrajectoryWindows(y, batch_time=3)
        assert len(ds) == 8
        y0, window = ds[2]
        assert torch.equal(y0, y[2])
        assert torch.equal(window, y[2:5])

    def test_full_length_window(self):
        ds = TrajectoryWindows(torch.zeros(4, 1), batch_time=4)
        assert len(ds) == 1

    @pytest.mark.parametrize("batch_time", [1, 11])
    def test_invalid_batch_time(self, batch_time):
        with pytest.raises(ValueError, match="batch_time"):
            TrajectoryWindows(torch.zeros(10, 2), batch_time=batch_time)

    def test_requires_2d(self):
        with pytest.raises(ValueError, match="Expected y shape"):
            TrajectoryWindows(torch.zeros(10), batch_time=2)


# ── TrajectoryDataModule ──────────────────────────────────────────────


class TestTrajectoryDataModule:
    @staticmethod
    def _data(n: int = 12):
        t = np.linspace(0.0, 1.1, n)
        y = np.stack([np.cos(t), np.sin(t)], axis=1)
        return t, y

    def test_batch_t_relative(self):
        t, y = self._data()
        dm = TrajectoryDataModule(t + 3.0, y, batch_time=4, batch_size=2)
        assert dm.batch_t[0] == 0.0
        assert torch.allclose(dm.batch_t, torch.tensor([0.0, 0.1, 0.2, 0.3]), atol=1e-6)
        assert dm.y.dtype == torch.float32
        assert torch.allclose(dm.y0, torch.tensor([1.0, 0.0]))

    def test_dataloader(self):
        t, y = self._data()
        dm = TrajectoryDataModule(t, y, batch_time=4, batch_size=3)
        dm.setup("fit")
        y0, windows = next(iter(dm.train_dataloader()))
        assert y0.shape == (3, 2)
        assert windows.shape == (3, 4, 2)
        assert torch.equal(windows[:, 0], y0)

    def test_seeded_shuffle(self):
        t, y = self._data()
        a = TrajectoryDataModule(t, y, batch_time=2, batch_size=4, seed=3)
        b = TrajectoryDataModule(t, y, batch_time=2, batch_size=4, seed=3)
        a.setup()
        b.setup()
        assert torch.equal(next(iter(a.train_dataloader()))[0], next(iter(b.train_dataloader()))[0])

    def test_uneven_times_rejected(self):
        t, y = self._data()
        t[3] += 0.05
        with pytest.raises(ValueError, match="evenly spaced"):
            TrajectoryDataModule(t, y, batch_time=2, batch_size=2)

    def test_decreasing_times_rejected(self):
        t, y = self._data()
        with pytest.raises(ValueError, match="strictly increasing"):
            TrajectoryDataModule(t[::-1].copy(), y, batch_time=2, batch_size=2)

    def test_shape_mismatch_rejected(self):
        t, y = self._data()
        with pytest.raises(ValueError, match="Expected y shape"):
            TrajectoryDataModule(t[:-1], y, batch_time=2, batch_size=2)

    def test_from_csv(self, tmp_path):
        t, y = self._data()
        path = tmp_path / "traj.csv"
        pd.DataFrame({"t": t, "x": y[:, 0], "y": y[:, 1]}).to_csv(path, index=False)
        dm = TrajectoryDataModule.from_csv(str(path), ["x", "y"], batch_time=3, batch_size=2)
        assert dm.y.shape == (12, 2)
        assert dm.batch_t.shape == (3,)
