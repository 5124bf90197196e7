"""Tests for diffeq_workshop.plotting (Agg backend)."""

from pathlib import Path

from matplotlib.figure import Figure
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from diffeq_workshop import solve
from diffeq_workshop.core import EnsembleProblem, EnsembleSolution, ODESolution
from diffeq_workshop.plotting import (
    animate_grid,
    plot_ensemble,
    plot_grid,
    plot_phase,
    plot_result,
    plot_solution,
    save_csv,
    save_figure,
)


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


@pytest.fixture
def sol(decay_problem) -> ODESolution:
    return solve(decay_problem, "RK45")


@pytest.fixture
def esol(decay_problem) -> EnsembleSolution:
    eprob = EnsembleProblem(
        decay_problem, prob_func=lambda prob, i, repeat: prob.remake(u0=prob.u0 * (i + 1))
    )
    return solve(eprob, "RK45", trajectories=4)


def _grid_solution(N: int = 4) -> ODESolution:
    t = np.linspace(0.0, 1.0, 5)
    u = np.outer(t + 1.0, np.arange(2 * N * N, dtype=float))
    return ODESolution(t=t, u=u, problem=None, method="test")


class TestPlots:
    def test_plot_solution(self, sol):
        fig = plot_solution(sol, names=["a", "b"])
        assert isinstance(fig, Figure)
        labels = [line.get_label() for line in fig.axes[0].get_lines()]
        assert "a" in labels and "b" in labels

    def test_plot_solution_log_axis(self, sol):
        fig = plot_solution(sol, components=[1], logx=True)
        assert fig.axes[0].get_xscale() == "log"

    def test_plot_phase(self, sol):
        fig = plot_phase(sol, 0, 1, names=["a", "b"], tspan=(0.0, 1.0))
        assert fig.axes[0].get_xlabel() == "a"

    def test_plot_ensemble(self, esol):
        fig = plot_ensemble(esol, component=1)
        assert fig.axes[0].get_title() == "4 trajectories"

    def test_plot_grid(self):
        fig = plot_grid(np.arange(32.0), 4, title="field")
        assert fig.axes[0].get_title() == "field"

    def test_plot_result_dispatch(self, sol, esol):
        assert "trajectories" in plot_result(esol).axes[0].get_title()
        assert plot_result(sol, names=["a", "b"], title="decay").axes[0].get_title() == "decay"
        grid_fig = plot_result(_grid_solution())
        assert "first species" in grid_fig.axes[0].get_title()


class TestExport:
    def test_save_csv(self, sol, tmp_path: Path):
        path = save_csv(sol, tmp_path / "decay.csv", ["a", "b"])
        df = pd.read_csv(path)
        assert list(df.columns) == ["t", "a", "b"]
        assert len(df) == len(sol)

    def test_save_ensemble_csv(self, esol, tmp_path: Path):
        df = pd.read_csv(save_csv(esol, tmp_path / "ens.csv"))
        assert sorted(df["trajectory"].unique()) == [0, 1, 2, 3]

    def test_save_figure(self, sol, tmp_path: Path):
        path = save_figure(plot_solution(sol), tmp_path / "decay.png")
        assert path.exists()
        assert path.stat().st_size > 0

    def test_animate_grid(self, tmp_path: Path):
        path = animate_grid(_grid_solution(), 4, tmp_path / "grid.gif", times=np.linspace(0, 1, 3))
        assert path.exists()
