"""Enums for CLI options."""

from enum import Enum

from diffeq_workshop.catalog import EXERCISES


class Exercise(str, Enum):
    """Available workshop exercises."""

    OREGONATOR = "oregonator"
    OREGONATOR_STIFF = "oregonator-stiff"
    OREGONATOR_SDE = "oregonator-sde"
    PK_DOSING = "pk-dosing"
    PK_DELAY = "pk-delay"
    ROBERTSON = "robertson"
    ROBERTSON_IMPLICIT = "robertson-implicit"
    PENDULUM = "pendulum"
    DOUBLE_PENDULUM = "double-pendulum"
    BRUSSELATOR = "brusselator"
    BRUSSELATOR_SPLIT = "brusselator-split"
    HENON_HEILES = "henon-heiles"
    HENON_HEILES_2ND = "henon-heiles-2nd"
    HENON_HEILES_HAMILTONIAN = "henon-heiles-hamiltonian"
    HENON_ENSEMBLE = "henon-ensemble"
    SPIRAL_NODE = "spiral-node"

    @property
    def label(self) -> str:
        return EXERCISES[self.value].title

    @property
    def description(self) -> str:
        return EXERCISES[self.value].description
