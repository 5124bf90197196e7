from __future__ import annotations

from dataclasses import dataclass

from diffeq_workshop.core import AdamConfig, MLPConfig, NeuralODEHyperparameters


@dataclass
class RunConfig:
    gradient_clip_val: float
    experiment_name: str


CONFIG = RunConfig(
    gradient_clip_val=1.0,
    experiment_name="spiral-node",
)

hp = NeuralODEHyperparameters(
    func_config=MLPConfig(
        in_dim=2,
        out_dim=2,
        hidden_layers=[50],
        activation="tanh",
    ),
    batch_time=10,
    batch_size=16,
    max_epochs=300,
    method="dopri5",
    criterion="l1",
    optimizer=AdamConfig(lr=1e-3),
)
