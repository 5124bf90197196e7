"""diffeq-workshop: differential equation workshop exercises and solver glue."""

from importlib.metadata import PackageNotFoundError, version

from diffeq_workshop.core import (
    CallbackSet,
    DAEProblem,
    DDEProblem,
    DiscreteCallback,
    EnsembleProblem,
    EnsembleSolution,
    HamiltonianProblem,
    ODEProblem,
    ODESolution,
    PresetTimeCallback,
    ReturnCode,
    SDEProblem,
    SecondOrderODEProblem,
    SolverOptions,
    SplitODEProblem,
)
from diffeq_workshop.solvers import solve

try:
    __version__ = version("diffeq-workshop")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "CallbackSet",
    "DAEProblem",
    "DDEProblem",
    "DiscreteCallback",
    "EnsembleProblem",
    "EnsembleSolution",
    "HamiltonianProblem",
    "ODEProblem",
    "ODESolution",
    "PresetTimeCallback",
    "ReturnCode",
    "SDEProblem",
    "SecondOrderODEProblem",
    "SolverOptions",
    "SplitODEProblem",
    "solve",
]
