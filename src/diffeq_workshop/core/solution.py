"""Solution containers returned by ``solve``."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from diffeq_workshop.core.types import Array, ReturnCode

Interpolant = Callable[[float], Array]


@dataclass
class SolverStats:
    """Work counters accumulated over all integration segments."""

    nfev: int = 0
    njev: int = 0
    nlu: int = 0
    nsteps: int = 0

    def __iadd__(self, other: SolverStats) -> SolverStats:
        self.nfev += other.nfev
        self.njev += other.njev
        self.nlu += other.nlu
        self.nsteps += other.nsteps
        return self


class PiecewiseInterpolant:
    """
    Dense output stitched from consecutive segments.

    At a shared boundary the later segment wins, so the value at an event time
    is the post-event state.
    """

    def __init__(self) -> None:
        self.segments: list[tuple[float, float, Interpolant]] = []

    def append(self, a: float, b: float, fn: Interpolant) -> None:
        self.segments.append((a, b, fn))

    def __call__(self, t: float) -> Array:
        for a, b, fn in reversed(self.segments):
            if a <= t <= b:
                return np.asarray(fn(t), dtype=np.float64).reshape(-1)
        raise ValueError(f"t={t} is outside the interpolated span.")

    def __bool__(self) -> bool:
        return bool(self.segments)


def linear_interpolate(t: Array, u: Array, s: float) -> Array:
    idx = int(np.searchsorted(t, s, side="right"))
    if idx >= len(t):
        return u[-1].copy()
    i0 = max(idx - 1, 0)
    if t[i0] == s or idx == 0:
        return u[i0].copy()
    w = (s - t[i0]) / (t[idx] - t[i0])
    return (1 - w) * u[i0] + w * u[idx]


@dataclass
class ODESolution:
    """
    Solution of a single solve.

    Attributes:
        t: Saved times, shape ``(nt,)``. Event times appear twice (pre and post).
        u: Saved states, shape ``(nt, n)``.
        problem: The problem that was solved.
        method: Name of the method used.
        retcode: Outcome of the solve.
        stats: Work counters.
        message: Backend message, mostly useful on failure.
        interpolant: Dense output, if it was kept.
    """

    t: Array
    u: Array
    problem: Any
    method: str
    retcode: ReturnCode = ReturnCode.SUCCESS
    stats: SolverStats = field(default_factory=SolverStats)
    message: str = ""
    interpolant: Interpolant | None = None

    @property
    def successful(self) -> bool:
        return self.retcode.successful

    @property
    def final(self) -> Array:
        """State at the last saved time."""
        return self.u[-1]

    def __len__(self) -> int:
        return len(self.t)

    def __call__(self, t: float | Sequence[float] | Array) -> Array:
        """Evaluate the solution at ``t``; dense when possible, linear otherwise."""
        ts = np.asarray(t, dtype=np.float64)
        scalar = ts.ndim == 0
        ts = np.atleast_1d(ts)
        lo, hi = self.t[0], self.t[-1]
        tol = 1e-12 * max(1.0, abs(lo), abs(hi))
        if (ts < lo - tol).any() or (ts > hi + tol).any():
            raise ValueError(f"Requested times must lie within [{lo}, {hi}].")
        ts = np.clip(ts, lo, hi)

        if self.interpolant is not None:
            values = np.stack([self.interpolant(s) for s in ts])
        else:
            values = np.stack([linear_interpolate(self.t, self.u, s) for s in ts])
        return values[0] if scalar else values

    def component(self, i: int) -> Array:
        """Time series of state component ``i``."""
        return self.u[:, i]

    def to_dataframe(self, names: Sequence[str] | None = None) -> pd.DataFrame:
        """Tabulate the saved states with a leading ``t`` column."""
        n = self.u.shape[1]
        if names is None:
            names = [f"u{i}" for i in range(n)]
        if len(names) != n:
            raise ValueError(f"Expected {n} names, got {len(names)}.")
        df = pd.DataFrame(self.u, columns=list(names))
        df.insert(0, "t", self.t)
        return df

    def __repr__(self) -> str:
        return (
            f"ODESolution(method={self.method!r}, retcode={self.retcode.value}, "
            f"nt={len(self.t)}, n={self.u.shape[1] if self.u.ndim == 2 else 0})"
        )


@dataclass
class EnsembleSolution:
    """
    Results of an ensemble solve, in trajectory order.

    Attributes:
        trajectories: Individual solutions.
        outputs: Values returned by the ensemble's ``output_func``.
        reduction: Result of the ensemble's ``reduction``, if any.
        elapsed: Wall-clock seconds spent solving.
    """

    trajectories: list[ODESolution]
    outputs: list[Any]
    reduction: Any = None
    elapsed: float = 0.0

    @property
    def successful(self) -> bool:
        return all(sol.successful for sol in self.trajectories)

    def __len__(self) -> int:
        return len(self.trajectories)

    def __getitem__(self, i: int) -> ODESolution:
        return self.trajectories[i]

    def __iter__(self) -> Iterator[ODESolution]:
        return iter(self.trajectories)

    def to_dataframe(self, names: Sequence[str] | None = None) -> pd.DataFrame:
        """Long table of all trajectories with a leading ``trajectory`` column."""
        frames = []
        for i, sol in enumerate(self.trajectories):
            df = sol.to_dataframe(names)
            df.insert(0, "trajectory", i)
            frames.append(df)
        return pd.concat(frames, ignore_index=True)

    def summary(
        self,
        t: float | Sequence[float] | Array,
        quantiles: tuple[float, float] = (0.05, 0.95),
    ) -> dict[str, Array]:
        """
        Mean and quantiles across trajectories at the given times.

        Returns:
            Dict with ``"mean"``, ``"low"`` and ``"high"``, each shaped like ``sol(t)``.
        """
        lo_q, hi_q = quantiles
        if not (0 <= lo_q < hi_q <= 1):
            raise ValueError(f"quantiles must satisfy 0 <= low < high <= 1, got {quantiles}.")
        values = np.stack([sol(t) for sol in self.trajectories])
        return {
            "mean": values.mean(axis=0),
            "low": np.quantile(values, lo_q, axis=0),
            "high": np.quantile(values, hi_q, axis=0),
        }
