from __future__ import annotations

from typing_extensions import override

import lightning.pytorch as pl
from lightning.pytorch.utilities.types import OptimizerLRScheduler
import torch
from torch import Tensor

from diffeq_workshop.core.config import (
    AdamConfig,
    CosineAnnealingConfig,
    LBFGSConfig,
    NeuralODEHyperparameters,
)
from diffeq_workshop.core.types import LOSS_KEY
from diffeq_workshop.neural.data import WindowBatch
from diffeq_workshop.neural.models import NeuralODE, build_criterion


class NeuralODEModule(pl.LightningModule):
    """
    Fits a neural ODE to trajectory windows.
    Expects a ``TrajectoryDataModule`` providing the relative window times.

    Args:
        model: The neural ODE being trained.
        hp: Hyperparameters for training.
    """

    def __init__(
        self,
        model: NeuralODE,
        hp: NeuralODEHyperparameters,
    ):
        super().__init__()
        self.save_hyperparameters(ignore=["model"])

        self.model = model
        self.hp = hp
        self.criterion = build_criterion(hp.criterion)
        self.batch_t: Tensor | None = None

    @override
    def on_fit_start(self) -> None:
        """
        Called when fit begins. Picks up the window times from the data module.
        """
        self.batch_t = self.trainer.datamodule.batch_t.to(self.device)  # type: ignore

    def window_loss(self, batch: WindowBatch, batch_t: Tensor) -> Tensor:
        y0, windows = batch
        pred = self.model(y0, batch_t)  # (T, B, n)
        return self.criterion(pred.transpose(0, 1), windows)

    @override
    def training_step(self, batch: WindowBatch, batch_idx: int) -> Tensor:
        """
        Integrates every window from its first state and compares against the observations.
        """
        if self.batch_t is None:
            raise RuntimeError("Window times are unset; fit with a TrajectoryDataModule.")
        loss = self.window_loss(batch, self.batch_t)
        self.log(LOSS_KEY, loss, on_step=False, on_epoch=True, prog_bar=True,
                 batch_size=batch[0].shape[0])
        return loss

    @override
    def configure_optimizers(self) -> OptimizerLRScheduler:
        """
        Configures the optimizer and learning rate scheduler.
        """
        opt_cfg = self.hp.optimizer
        if isinstance(opt_cfg, LBFGSConfig):
            opt = torch.optim.LBFGS(
                self.parameters(),
                lr=opt_cfg.lr,
                max_iter=opt_cfg.max_iter,
                history_size=opt_cfg.history_size,
                line_search_fn=opt_cfg.line_search_fn,
            )
        elif isinstance(opt_cfg, AdamConfig):
            opt = torch.optim.Adam(
                self.parameters(),
                lr=opt_cfg.lr,
                betas=opt_cfg.betas,
                weight_decay=opt_cfg.weight_decay,
            )
        else:
            opt = torch.optim.Adam(self.parameters(), lr=self.hp.lr)

        sch_cfg = self.hp.scheduler
        if not sch_cfg:
            return opt

        if isinstance(sch_cfg, CosineAnnealingConfig):
            sch = torch.optim.lr_scheduler.CosineAnnealingLR(
                opt,
                T_max=sch_cfg.T_max,
                eta_min=sch_cfg.eta_min,
            )
            return {
                "optimizer": opt,
                "lr_scheduler": {"name": "lr", "scheduler": sch, "interval": "epoch"},
            }

        sch = torch.optim.lr_scheduler.ReduceLROnPlateau(
            opt,
            mode=sch_cfg.mode,
            factor=sch_cfg.factor,
            patience=sch_cfg.patience,
            threshold=sch_cfg.threshold,
            min_lr=sch_cfg.min_lr,
        )
        return {
            "optimizer": opt,
            "lr_scheduler": {
                "name": "lr",
                "scheduler": sch,
                "monitor": LOSS_KEY,
                "interval": "epoch",
            },
        }
