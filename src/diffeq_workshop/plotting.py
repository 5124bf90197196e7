"""Plotting and export of solutions."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path

from matplotlib.animation import FuncAnimation, PillowWriter
from matplotlib.axes import Axes
from matplotlib.figure import Figure
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from diffeq_workshop.core import EnsembleSolution, ODESolution
from diffeq_workshop.core.types import Array

logger = logging.getLogger(__name__)

# above this many components a solution is drawn as a grid field instead of lines
MAX_LINE_COMPONENTS = 12


def _axes(ax: Axes | None, figsize: tuple[float, float] = (10, 6)) -> tuple[Figure, Axes]:
    sns.set_theme(style="darkgrid")
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
        return fig, ax
    return ax.figure, ax  # type: ignore[return-value]


def plot_solution(
    sol: ODESolution,
    names: Sequence[str] | None = None,
    components: Sequence[int] | None = None,
    ax: Axes | None = None,
    title: str | None = None,
    logx: bool = False,
) -> Figure:
    """Time series of selected state components."""
    fig, ax = _axes(ax)
    n = sol.u.shape[1]
    components = list(range(n)) if components is None else list(components)
    names = list(names) if names is not None else [f"u{i}" for i in range(n)]
    t = sol.t
    if logx:
        keep = t > 0
        ax.set_xscale("log")
    else:
        keep = np.ones_like(t, dtype=bool)
    for k, i in enumerate(components):
        sns.lineplot(x=t[keep], y=sol.u[keep, i], label=names[i], ax=ax, color=f"C{k % 10}")
    ax.set_xlabel("t")
    ax.set_ylabel("State")
    ax.set_title(title or f"{sol.method} ({sol.retcode.value})")
    ax.legend()
    return fig


def plot_phase(
    sol: ODESolution,
    i: int,
    j: int,
    names: Sequence[str] | None = None,
    ax: Axes | None = None,
    tspan: tuple[float, float] | None = None,
) -> Figure:
    """Phase portrait of component ``j`` against component ``i``."""
    fig, ax = _axes(ax, figsize=(7, 7))
    mask = np.ones_like(sol.t, dtype=bool)
    if tspan is not None:
        mask = (sol.t >= tspan[0]) & (sol.t <= tspan[1])
    ax.plot(sol.u[mask, i], sol.u[mask, j], lw=0.8)
    if names is not None:
        ax.set_xlabel(names[i])
        ax.set_ylabel(names[j])
    return fig


def plot_ensemble(
    esol: EnsembleSolution,
    component: int = 0,
    t: Array | None = None,
    names: Sequence[str] | None = None,
    ax: Axes | None = None,
    quantiles: tuple[float, float] = (0.05, 0.95),
) -> Figure:
    """Every trajectory of one component, with the ensemble mean and a quantile band."""
    fig, ax = _axes(ax)
    for sol in esol:
        ax.plot(sol.t, sol.u[:, component], color="C0", alpha=0.15, lw=0.6)
    if t is None:
        t0 = max(sol.t[0] for sol in esol)
        tf = min(sol.t[-1] for sol in esol)
        t = np.linspace(t0, tf, 200)
    stats = esol.summary(t, quantiles)
    label = names[component] if names is not None else f"u{component}"
    sns.lineplot(x=t, y=stats["mean"][:, component], ax=ax, color="C1", label=f"mean {label}")
    ax.fill_between(
        t,
        stats["low"][:, component],
        stats["high"][:, component],
        color="C1",
        alpha=0.25,
        label=f"{quantiles[0]:.0%}-{quantiles[1]:.0%}",
    )
    ax.set_xlabel("t")
    ax.set_ylabel(label)
    ax.set_title(f"{len(esol)} trajectories")
    ax.legend()
    return fig


def plot_grid(values: Array, N: int, ax: Axes | None = None, title: str | None = None) -> Figure:
    """Heatmap of a field stored as the first ``N * N`` entries of ``values``."""
    fig, ax = _axes(ax, figsize=(7, 6))
    field = np.asarray(values)[: N * N].reshape(N, N)
    sns.heatmap(field.T, ax=ax, cmap="viridis", xticklabels=False, yticklabels=False)
    ax.invert_yaxis()
    ax.set_title(title or "")
    return fig


def animate_grid(
    sol: ODESolution,
    N: int,
    path: Path,
    times: Array | None = None,
    fps: int = 10,
) -> Path:
    """Write a GIF of the first species of a grid solution over time."""
    sns.set_theme(style="white")
    times = np.linspace(sol.t[0], sol.t[-1], 50) if times is None else times
    frames = sol(times)[:, : N * N].reshape(len(times), N, N)
    fig, ax = plt.subplots(figsize=(6, 6))
    image = ax.imshow(
        frames[0].T, origin="lower", cmap="viridis", vmin=frames.min(), vmax=frames.max()
    )

    def update(k: int):
        image.set_data(frames[k].T)
        ax.set_title(f"t = {times[k]:.2f}")
        return (image,)

    anim = FuncAnimation(fig, update, frames=len(times), blit=False)
    anim.save(path, writer=PillowWriter(fps=fps))
    plt.close(fig)
    return path


def plot_result(
    result: ODESolution | EnsembleSolution,
    names: Sequence[str] | None = None,
    title: str | None = None,
) -> Figure:
    """Default figure for a solve: lines, a grid field, or an ensemble band."""
    if isinstance(result, EnsembleSolution):
        return plot_ensemble(result, component=len(names) - 1 if names else 0, names=names)
    n = result.u.shape[1]
    if n > MAX_LINE_COMPONENTS:
        N = int(round(np.sqrt(n / 2)))
        return plot_grid(result.final, N, title=title or f"first species at t = {result.t[-1]:g}")
    return plot_solution(result, names=names, title=title)


def save_csv(
    result: ODESolution | EnsembleSolution, path: Path, names: Sequence[str] | None = None
) -> Path:
    result.to_dataframe(names).to_csv(path, index=False)
    logger.info("wrote %s", path)
    return path


def save_figure(fig: Figure, path: Path, dpi: int = 150) -> Path:
    fig.tight_layout()
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    logger.info("wrote %s", path)
    return path
