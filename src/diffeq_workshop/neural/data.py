"""Training data for fitting neural ODEs to an observed trajectory."""

from __future__ import annotations

from typing_extensions import override

import lightning as pl
import numpy as np
import pandas as pd
import torch
from torch import Tensor
from torch.utils.data import DataLoader, Dataset

WindowBatch = tuple[Tensor, Tensor]
"""``(y0[B, n], y_window[B, T, n])``."""


class TrajectoryWindows(Dataset[WindowBatch]):
    """
    Every window of ``batch_time`` consecutive samples of a trajectory.

    Item ``i`` is ``(y[i], y[i : i + batch_time])``.

    Args:
        y: Observed states, shape ``(N, n)``.
        batch_time: Window length.
    """

    def __init__(self, y: Tensor, batch_time: int):
        super().__init__()
        if y.ndim != 2:
            raise ValueError(f"Expected y shape (N, n), got {tuple(y.shape)}.")
        if not (2 <= batch_time <= y.shape[0]):
            raise ValueError(f"batch_time must be in [2, {y.shape[0]}], got {batch_time}.")
        self.y = y
        self.batch_time = batch_time

    def __len__(self) -> int:
        return self.y.shape[0] - self.batch_time + 1

    @override
    def __getitem__(self, index: int) -> WindowBatch:
        return self.y[index], self.y[index : index + self.batch_time]


class TrajectoryDataModule(pl.LightningDataModule):
    """
    LightningDataModule serving random windows of one observed trajectory.

    The sample times must be evenly spaced so that every window shares the
    relative times ``batch_t``.

    Attributes:
        batch_t: Window times relative to the window start, shape ``(batch_time,)``.
        windows: Dataset of all windows, built in ``setup``.
    """

    def __init__(
        self,
        t: Tensor | np.ndarray,
        y: Tensor | np.ndarray,
        batch_time: int,
        batch_size: int,
        seed: int = 0,
    ):
        super().__init__()
        self.t = torch.as_tensor(t, dtype=torch.float32).reshape(-1)
        self.y = torch.as_tensor(y, dtype=torch.float32)
        if self.y.ndim != 2 or self.y.shape[0] != self.t.shape[0]:
            raise ValueError(
                f"Expected y shape ({self.t.shape[0]}, n), got {tuple(self.y.shape)}."
            )
        steps = torch.diff(self.t)
        if (steps <= 0).any():
            raise ValueError("Sample times must be strictly increasing.")
        if not torch.allclose(steps, steps[0].expand_as(steps), rtol=1e-4, atol=1e-6):
            raise ValueError("Sample times must be evenly spaced.")
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}.")
        self.batch_time = batch_time
        self.batch_size = batch_size
        self.seed = seed
        self.batch_t = self.t[:batch_time] - self.t[0]

    @classmethod
    def from_csv(
        cls,
        path: str,
        y_columns: list[str],
        batch_time: int,
        batch_size: int,
        t_column: str = "t",
    ) -> TrajectoryDataModule:
        """Load a trajectory written by ``ODESolution.to_dataframe``."""
        df = pd.read_csv(path)
        return cls(df[t_column].values, df[y_columns].values, batch_time, batch_size)

    @property
    def y0(self) -> Tensor:
        return self.y[0]

    @override
    def setup(self, stage: str | None = None) -> None:
        self.windows = TrajectoryWindows(self.y, self.batch_time)

    @override
    def train_dataloader(self) -> DataLoader[WindowBatch]:
        generator = torch.Generator().manual_seed(self.seed)
        return DataLoader(
            self.windows,
            batch_size=self.batch_size,
            shuffle=True,
            generator=generator,
        )
