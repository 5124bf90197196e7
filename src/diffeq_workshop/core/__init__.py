"""Problem descriptions, options, callbacks and solutions."""

from diffeq_workshop.core.callbacks import (
    CallbackSet,
    DiscreteCallback,
    IntegratorState,
    PresetTimeCallback,
)
from diffeq_workshop.core.config import (
    AdamConfig,
    CosineAnnealingConfig,
    LBFGSConfig,
    MLPConfig,
    NeuralODEHyperparameters,
    ReduceLROnPlateauConfig,
    SolverOptions,
)
from diffeq_workshop.core.problems import (
    DAEProblem,
    DDEProblem,
    DEProblem,
    EnsembleProblem,
    HamiltonianProblem,
    ODEProblem,
    SDEProblem,
    SecondOrderODEProblem,
    SplitODEProblem,
)
from diffeq_workshop.core.solution import (
    EnsembleSolution,
    ODESolution,
    PiecewiseInterpolant,
    SolverStats,
)
from diffeq_workshop.core.types import LOSS_KEY, Activations, Array, Params, ReturnCode, TSpan

__all__ = [
    "LOSS_KEY",
    "Activations",
    "AdamConfig",
    "Array",
    "CallbackSet",
    "CosineAnnealingConfig",
    "DAEProblem",
    "DDEProblem",
    "DEProblem",
    "DiscreteCallback",
    "EnsembleProblem",
    "EnsembleSolution",
    "HamiltonianProblem",
    "IntegratorState",
    "LBFGSConfig",
    "MLPConfig",
    "NeuralODEHyperparameters",
    "ODEProblem",
    "ODESolution",
    "Params",
    "PiecewiseInterpolant",
    "PresetTimeCallback",
    "ReduceLROnPlateauConfig",
    "ReturnCode",
    "SDEProblem",
    "SecondOrderODEProblem",
    "SolverOptions",
    "SolverStats",
    "SplitODEProblem",
    "TSpan",
]
