"""Shared fixtures for the diffeq-workshop test suite."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from diffeq_workshop.core import ODEProblem, SDEProblem
from diffeq_workshop.core.config import MLPConfig


def decay(t, u, p):
    """du/dt = -k u (exponential decay); works for numpy and torch inputs."""
    return -p * u


@pytest.fixture
def decay_problem() -> ODEProblem:
    return ODEProblem(decay, [1.0, 2.0], (0.0, 2.0), 1.5)


@pytest.fixture
def zero_noise_sde() -> SDEProblem:
    return SDEProblem(decay, lambda t, u, p: np.zeros_like(u), [1.0, 2.0], (0.0, 1.0), 1.5)


@pytest.fixture
def small_mlp_config() -> MLPConfig:
    return MLPConfig(in_dim=2, out_dim=2, hidden_layers=[16], activation="tanh")
