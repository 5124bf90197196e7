"""Neural network vector fields and the neural ODE wrapper."""

from __future__ import annotations

from typing import cast

from typing_extensions import override

import torch
from torch import Tensor
import torch.nn as nn
from torchdiffeq import odeint, odeint_adjoint

from diffeq_workshop.core.config import MLPConfig
from diffeq_workshop.core.types import Activations, Criteria


def build_criterion(name: Criteria) -> nn.Module:
    """
    Return the loss-criterion module for the given name.

    Args:
        name: One of ``"mse"``, ``"huber"``, ``"l1"``.
    """
    return {
        "mse": nn.MSELoss(),
        "huber": nn.HuberLoss(),
        "l1": nn.L1Loss(),
    }[name]


def get_activation(name: Activations) -> nn.Module:
    return {
        "tanh": nn.Tanh(),
        "relu": nn.ReLU(),
        "leaky_relu": nn.LeakyReLU(),
        "sigmoid": nn.Sigmoid(),
        "selu": nn.SELU(),
        "softplus": nn.Softplus(),
        "identity": nn.Identity(),
    }[name]


class ODEFunc(nn.Module):
    """
    Learned vector field ``dy/dt = net(y)``. Autonomous: ``t`` is ignored.

    Args:
        config: MLP layout; ``in_dim`` and ``out_dim`` must both equal the state size.
        cubic: Feed ``y**3`` to the network instead of ``y``.
    """

    def __init__(self, config: MLPConfig, cubic: bool = False):
        super().__init__()
        if config.in_dim != config.out_dim:
            raise ValueError(
                f"A vector field needs in_dim == out_dim, got {config.in_dim} and {config.out_dim}."
            )
        self.cubic = cubic
        dims = [config.in_dim] + config.hidden_layers + [config.out_dim]
        act = get_activation(config.activation)

        layers: list[nn.Module] = []
        for i in range(len(dims) - 1):
            layers.append(nn.Linear(dims[i], dims[i + 1]))
            if i < len(dims) - 2:
                layers.append(act)

        if config.output_activation is not None:
            layers.append(get_activation(config.output_activation))

        self.net = nn.Sequential(*layers)
        self.apply(self._init)

    @staticmethod
    def _init(m: nn.Module) -> None:
        if isinstance(m, nn.Linear):
            nn.init.normal_(m.weight, mean=0.0, std=0.1)
            nn.init.zeros_(m.bias)

    @override
    def forward(self, t: Tensor, y: Tensor) -> Tensor:
        return cast(Tensor, self.net(y**3 if self.cubic else y))


class NeuralODE(nn.Module):
    """
    Integrates a learned vector field from ``y0`` over the times ``t``.

    Args:
        func: The vector field, called as ``func(t, y)``.
        method: A torchdiffeq method name.
        adjoint: Backpropagate through ``odeint_adjoint`` (constant memory).
        rtol: Relative tolerance.
        atol: Absolute tolerance.
    """

    def __init__(
        self,
        func: nn.Module,
        method: str = "dopri5",
        adjoint: bool = False,
        rtol: float = 1e-7,
        atol: float = 1e-9,
    ):
        super().__init__()
        self.func = func
        self.method = method
        self.adjoint = adjoint
        self.rtol = rtol
        self.atol = atol

    @override
    def forward(self, y0: Tensor, t: Tensor) -> Tensor:
        """
        Args:
            y0: Initial states, shape ``(n,)`` or ``(batch, n)``.
            t: Increasing times, shape ``(T,)``.

        Returns:
            Trajectory of shape ``(T, *y0.shape)``.
        """
        integrate = odeint_adjoint if self.adjoint else odeint
        return cast(
            Tensor,
            integrate(self.func, y0, t, rtol=self.rtol, atol=self.atol, method=self.method),
        )

    @torch.no_grad()
    def trajectory(self, y0: Tensor, t: Tensor) -> Tensor:
        """Forward pass without gradient tracking, for plotting and evaluation."""
        return self(y0, t)
