"""Shared type aliases and enums."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal, TypeAlias

import numpy as np
from numpy.typing import NDArray

Array: TypeAlias = NDArray[np.float64]
TSpan: TypeAlias = tuple[float, float]
Params: TypeAlias = Any

RHSFn: TypeAlias = Callable[[float, Array, Params], Array]
"""Out-of-place right-hand side ``f(t, u, p) -> du``."""

SecondOrderFn: TypeAlias = Callable[[float, Array, Array, Params], Array]
"""Second-order right-hand side ``f(t, v, u, p) -> a``."""

DiffusionFn: TypeAlias = Callable[[float, Array, Params], Array]
HistoryFn: TypeAlias = Callable[[float, Params], Array]
DelayedStateFn: TypeAlias = Callable[[float], Array]
DDEFn: TypeAlias = Callable[[float, Array, DelayedStateFn, Params], Array]
ResidualFn: TypeAlias = Callable[[float, Array, Array, Params], Array]
"""Implicit DAE residual ``F(t, du, u, p) -> out``."""

NoiseTypes: TypeAlias = Literal["diagonal", "scalar", "general"]
SDETypes: TypeAlias = Literal["ito", "stratonovich"]
EnsembleStrategies: TypeAlias = Literal["serial", "threads", "vectorized"]
Backends: TypeAlias = Literal["scipy", "torchdiffeq", "torchsde"]
Families: TypeAlias = Literal["ode", "sde"]

Activations: TypeAlias = Literal[
    "tanh", "relu", "leaky_relu", "sigmoid", "selu", "softplus", "identity"
]
Criteria: TypeAlias = Literal["mse", "huber", "l1"]

LOSS_KEY = "train/loss"


class ReturnCode(str, Enum):
    """Outcome of a solve."""

    SUCCESS = "success"
    TERMINATED = "terminated"
    FAILURE = "failure"

    @property
    def successful(self) -> bool:
        return self is not ReturnCode.FAILURE
