"""
Fit a neural ODE to the cubic spiral: generate the trajectory with ``solve``,
then train an ``ODEFunc`` on random windows of it with Lightning.

Run: uv run python train.py [--predict]
"""

from __future__ import annotations

import argparse
from pathlib import Path
import shutil
import signal
import sys

from config import CONFIG, hp
from lightning.pytorch import Trainer
from lightning.pytorch.callbacks import LearningRateMonitor, ModelCheckpoint
from lightning.pytorch.loggers import CSVLogger
import matplotlib.pyplot as plt
import seaborn as sns
import torch

from diffeq_workshop import solve
from diffeq_workshop.catalog import spiral
from diffeq_workshop.core import LOSS_KEY
from diffeq_workshop.neural import NeuralODE, NeuralODEModule, ODEFunc, TrajectoryDataModule

# ============================================================================
# Helpers
# ============================================================================


def create_dir(dir: Path) -> Path:
    dir.mkdir(exist_ok=True, parents=True)
    return dir


def clean_dir(dir: Path) -> None:
    if dir.exists():
        shutil.rmtree(dir)


def plot_and_save(
    module: NeuralODEModule, dm: TrajectoryDataModule, results_dir: Path, name: str
) -> None:
    t = torch.linspace(dm.t[0].item(), dm.t[-1].item(), 200)
    pred = module.model.trajectory(dm.y0, t - t[0])

    sns.set_theme(style="darkgrid")
    fig, (ax_t, ax_p) = plt.subplots(1, 2, figsize=(14, 6))
    for i, label in enumerate(spiral.STATE_NAMES):
        ax_t.scatter(dm.t, dm.y[:, i], s=12, color=f"C{i}", label=f"{label} observed")
        ax_t.plot(t, pred[:, i], color=f"C{i}", label=f"{label} learned")
    ax_t.set_xlabel("t")
    ax_t.legend()
    ax_p.scatter(dm.y[:, 0], dm.y[:, 1], s=12, label="observed")
    ax_p.plot(pred[:, 0], pred[:, 1], label="learned")
    ax_p.set_xlabel(spiral.STATE_NAMES[0])
    ax_p.set_ylabel(spiral.STATE_NAMES[1])
    ax_p.legend()
    fig.tight_layout()
    fig.savefig(results_dir / f"{name}.png", dpi=150)
    plt.close(fig)


def main(experiment_name: str, predict: bool = False) -> None:
    log_dir = Path("../_logs")
    csv_dir = log_dir / "csv"

    results_dir = Path("./results")
    temp_dir = Path("./temp")

    create_dir(results_dir)
    create_dir(log_dir)
    create_dir(temp_dir)

    clean_dir(temp_dir)
    if not predict:
        clean_dir(csv_dir / experiment_name)

    model_path = results_dir / "model.ckpt"

    # ========================================================================
    # Training data
    # ========================================================================

    sol = solve(
        spiral.spiral_problem(),
        "dopri5",
        saveat=spiral.sample_times().tolist(),
        abstol=1e-9,
        reltol=1e-7,
    )
    dm = TrajectoryDataModule(sol.t, sol.u, batch_time=hp.batch_time, batch_size=hp.batch_size)

    # ========================================================================
    # Model
    # ========================================================================

    model = NeuralODE(ODEFunc(hp.func_config, cubic=True), method=hp.method, adjoint=hp.adjoint)

    if predict:
        module = NeuralODEModule.load_from_checkpoint(model_path, model=model, weights_only=False)
    else:
        module = NeuralODEModule(model, hp)

    callbacks = [
        ModelCheckpoint(
            dirpath=temp_dir,
            filename="{epoch:02d}",
            monitor=LOSS_KEY,
            mode="min",
            save_top_k=1,
            save_last=True,
        ),
        LearningRateMonitor(
            logging_interval="epoch",
        ),
    ]

    trainer = Trainer(
        max_epochs=hp.max_epochs,
        gradient_clip_val=CONFIG.gradient_clip_val,
        logger=[CSVLogger(save_dir=csv_dir, name=experiment_name, version="")],
        callbacks=callbacks,
        log_every_n_steps=1,
    )

    # ============================================================================
    # Execution
    # ============================================================================

    if not predict:

        def on_interrupt(_signum, _frame):
            print("\nTraining interrupted. Saving checkpoint and plot...")
            trainer.save_checkpoint(model_path, weights_only=False)
            plot_and_save(module, dm, results_dir, experiment_name)
            clean_dir(temp_dir)
            sys.exit(0)

        signal.signal(signal.SIGINT, on_interrupt)
        trainer.fit(module, dm)
        trainer.save_checkpoint(model_path, weights_only=False)

    plot_and_save(module, dm, results_dir, experiment_name)
    clean_dir(temp_dir)


# ============================================================================
# Main
# ============================================================================


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Neural ODE fit of the cubic spiral")
    parser.add_argument(
        "--predict",
        action="store_true",
        help="Load the saved model and plot its trajectory. Does not train the model.",
    )
    args = parser.parse_args()

    main(CONFIG.experiment_name, args.predict)
