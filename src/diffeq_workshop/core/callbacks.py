"""Discrete event callbacks applied between integration segments."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import numpy as np

from diffeq_workshop.core.types import Array, Params


@dataclass
class IntegratorState:
    """
    Mutable view of the integrator handed to callbacks.

    Attributes:
        t: Current time.
        u: Current state. Affects modify it in place.
        p: Problem parameters.
    """

    t: float
    u: Array
    p: Params
    terminated: bool = field(default=False, init=False)

    def terminate(self) -> None:
        """Stop the integration after the current stop."""
        self.terminated = True


ConditionFn = Callable[[Array, float, IntegratorState], bool]
AffectFn = Callable[[IntegratorState], None]


class DiscreteCallback:
    """
    Callback checked at every stop of the integration.

    Args:
        condition: ``condition(u, t, integrator) -> bool``.
        affect: ``affect(integrator)``; may modify ``integrator.u`` in place.
    """

    def __init__(self, condition: ConditionFn, affect: AffectFn):
        self.condition = condition
        self.affect = affect

    def preset_times(self) -> tuple[float, ...]:
        return ()

    def apply(self, integrator: IntegratorState) -> bool:
        """Run the affect if the condition holds. Returns whether the state changed."""
        if not self.condition(integrator.u, integrator.t, integrator):
            return False
        before = integrator.u.copy()
        self.affect(integrator)
        return not np.array_equal(before, integrator.u)

    def __repr__(self) -> str:
        return f"DiscreteCallback(condition={self.condition!r}, affect={self.affect!r})"


class PresetTimeCallback(DiscreteCallback):
    """
    Callback firing at fixed times. The times are added to the stops automatically.

    Args:
        times: Times at which ``affect`` runs.
        affect: ``affect(integrator)``.
    """

    def __init__(self, times: Iterable[float], affect: AffectFn):
        self.times = tuple(sorted(float(t) for t in times))
        super().__init__(self._at_preset_time, affect)

    def _at_preset_time(self, u: Array, t: float, integrator: IntegratorState) -> bool:
        return any(np.isclose(t, s, rtol=0.0, atol=1e-12) for s in self.times)

    def preset_times(self) -> tuple[float, ...]:
        return self.times

    def __repr__(self) -> str:
        return f"PresetTimeCallback(times={self.times})"


class CallbackSet:
    """Applies several callbacks in order."""

    def __init__(self, *callbacks: DiscreteCallback):
        self.callbacks = list(callbacks)

    def preset_times(self) -> tuple[float, ...]:
        return tuple(sorted({t for cb in self.callbacks for t in cb.preset_times()}))

    def apply(self, integrator: IntegratorState) -> bool:
        changed = False
        for cb in self.callbacks:
            changed = cb.apply(integrator) or changed
            if integrator.terminated:
                break
        return changed

    def __len__(self) -> int:
        return len(self.callbacks)
