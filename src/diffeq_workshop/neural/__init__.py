"""Neural ODEs: learned vector fields trained with Lightning."""

from diffeq_workshop.neural.data import TrajectoryDataModule, TrajectoryWindows
from diffeq_workshop.neural.models import NeuralODE, ODEFunc, build_criterion, get_activation
from diffeq_workshop.neural.module import NeuralODEModule

__all__ = [
    "NeuralODE",
    "NeuralODEModule",
    "ODEFunc",
    "TrajectoryDataModule",
    "TrajectoryWindows",
    "build_criterion",
    "get_activation",
]
