"""Configuration dataclasses for solves and neural ODE training."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from diffeq_workshop.core.types import Activations, Criteria

if TYPE_CHECKING:
    from diffeq_workshop.core.callbacks import CallbackSet, DiscreteCallback


@dataclass(kw_only=True)
class SolverOptions:
    """
    Common keyword options accepted by ``solve``.

    Attributes:
        abstol: Absolute tolerance.
        reltol: Relative tolerance.
        dt: Initial step for adaptive methods, fixed step otherwise.
        dtmax: Maximum step size.
        adaptive: SDE only. Adaptive stepping; defaults to ``dt is None``.
        tstops: Times the integrator must hit exactly. Callbacks are checked there.
        saveat: Save spacing (float) or explicit save times.
        save_everystep: Keep every accepted step when ``saveat`` is not given.
        dense: Keep a continuous interpolant of the solution.
        callback: Discrete callback(s) applied at the stops.
        seed: Seed of the Brownian path for SDE solves.
        device: Torch device for torch backends.
    """

    abstol: float = 1e-6
    reltol: float = 1e-3
    dt: float | None = None
    dtmax: float | None = None
    adaptive: bool | None = None
    tstops: Sequence[float] = field(default_factory=tuple)
    saveat: float | Sequence[float] | None = None
    save_everystep: bool = True
    dense: bool = True
    callback: DiscreteCallback | CallbackSet | None = None
    seed: int | None = None
    device: str | None = None

    def __post_init__(self) -> None:
        if self.abstol <= 0:
            raise ValueError(f"abstol must be positive, got {self.abstol}.")
        if self.reltol <= 0:
            raise ValueError(f"reltol must be positive, got {self.reltol}.")
        if self.dt is not None and self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}.")
        if self.dtmax is not None and self.dtmax <= 0:
            raise ValueError(f"dtmax must be positive, got {self.dtmax}.")
        if isinstance(self.saveat, int | float) and self.saveat <= 0:
            raise ValueError(f"saveat spacing must be positive, got {self.saveat}.")
        self.tstops = tuple(float(s) for s in self.tstops)

    def all_tstops(self) -> tuple[float, ...]:
        """Stops requested directly plus those contributed by preset-time callbacks."""
        extra = self.callback.preset_times() if self.callback is not None else ()
        return tuple(sorted({*self.tstops, *extra}))

    def save_times(self, t0: float, tf: float) -> list[float] | None:
        """Resolve ``saveat`` into save times within ``[t0, tf]``; ``t0`` is always kept."""
        if self.saveat is None:
            return None
        if isinstance(self.saveat, int | float):
            step = float(self.saveat)
            n = int((tf - t0) / step + 1e-9)
            times = [t0 + k * step for k in range(n + 1)]
            if tf - times[-1] > 1e-12 * max(1.0, abs(tf)):
                times.append(tf)
            return times
        return sorted({t0, *(float(s) for s in self.saveat if t0 <= s <= tf)})


@dataclass(kw_only=True)
class MLPConfig:
    """
    Configuration for a Multi-Layer Perceptron (MLP).

    Attributes:
        in_dim: Dimension of input layer.
        out_dim: Dimension of output layer.
        hidden_layers: List of dimensions for hidden layers.
        activation: Activation function to use between layers.
        output_activation: Optional activation function for the output layer.
    """

    in_dim: int
    out_dim: int
    hidden_layers: list[int]
    activation: Activations
    output_activation: Activations | None = None

    def __post_init__(self) -> None:
        if self.in_dim <= 0 or self.out_dim <= 0:
            raise ValueError(
                f"in_dim and out_dim must be positive, got {self.in_dim} and {self.out_dim}."
            )


@dataclass(kw_only=True)
class AdamConfig:
    """
    Configuration for the Adam optimizer.
    """

    lr: float = 1e-3
    betas: tuple[float, float] = (0.9, 0.999)
    weight_decay: float = 0.0

    def __post_init__(self) -> None:
        if self.lr <= 0:
            raise ValueError(f"lr must be positive, got {self.lr}.")
        if self.weight_decay < 0:
            raise ValueError(f"weight_decay must be non-negative, got {self.weight_decay}.")
        if not (0 < self.betas[0] < 1):
            raise ValueError(f"betas[0] must be in (0, 1), got {self.betas[0]}.")
        if not (0 < self.betas[1] < 1):
            raise ValueError(f"betas[1] must be in (0, 1), got {self.betas[1]}.")


@dataclass(kw_only=True)
class LBFGSConfig:
    """
    Configuration for the L-BFGS optimizer.
    """

    lr: float = 1.0
    max_iter: int = 20
    history_size: int = 100
    line_search_fn: str | None = "strong_wolfe"

    def __post_init__(self) -> None:
        if self.lr <= 0:
            raise ValueError(f"lr must be positive, got {self.lr}.")
        if self.max_iter <= 0:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}.")
        if self.history_size <= 0:
            raise ValueError(f"history_size must be positive, got {self.history_size}.")


@dataclass(kw_only=True)
class ReduceLROnPlateauConfig:
    """
    Configuration for Learning Rate Scheduler (ReduceLROnPlateau).
    """

    mode: Literal["min", "max"] = "min"
    factor: float = 0.5
    patience: int = 20
    threshold: float = 1e-4
    min_lr: float = 1e-6

    def __post_init__(self) -> None:
        if not (0 < self.factor < 1):
            raise ValueError(f"factor must be in (0, 1), got {self.factor}.")
        if self.patience <= 0:
            raise ValueError(f"patience must be positive, got {self.patience}.")


@dataclass(kw_only=True)
class CosineAnnealingConfig:
    """
    Configuration for Cosine Annealing LR Scheduler.
    """

    T_max: int
    eta_min: float = 0.0

    def __post_init__(self) -> None:
        if self.T_max <= 0:
            raise ValueError(f"T_max must be positive, got {self.T_max}.")


@dataclass(kw_only=True)
class NeuralODEHyperparameters:
    """
    Hyperparameters for fitting a neural ODE to an observed trajectory.

    Attributes:
        lr: Learning rate used when ``optimizer`` is not given.
        func_config: MLP describing the learned vector field.
        batch_time: Number of consecutive samples per training window.
        batch_size: Number of windows per batch.
        max_epochs: Maximum number of training epochs.
        method: torchdiffeq method used in the forward pass.
        adjoint: Backpropagate with the adjoint method.
        criterion: Loss between predicted and observed windows.
    """

    lr: float = 1e-3
    func_config: MLPConfig
    batch_time: int = 10
    batch_size: int = 20
    max_epochs: int | None = None
    method: str = "dopri5"
    adjoint: bool = False
    criterion: Criteria = "l1"
    optimizer: AdamConfig | LBFGSConfig | None = None
    scheduler: ReduceLROnPlateauConfig | CosineAnnealingConfig | None = None

    def __post_init__(self) -> None:
        if self.lr <= 0:
            raise ValueError(f"lr must be positive, got {self.lr}.")
        if self.batch_time < 2:
            raise ValueError(f"batch_time must be at least 2, got {self.batch_time}.")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}.")
