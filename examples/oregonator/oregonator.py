"""
Oregonator: default method, a stiff solver at tight tolerances, and the
stochastic model with multiplicative noise.

Run: uv run python examples/oregonator/oregonator.py
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import seaborn as sns

from diffeq_workshop import solve
from diffeq_workshop.catalog import oregonator
from diffeq_workshop.core import EnsembleProblem
from diffeq_workshop.plotting import plot_ensemble, plot_phase, plot_solution, save_figure

# ============================================================================
# Constants
# ============================================================================

RESULTS_DIR = Path("./results")
SDE_TRAJECTORIES = 20
SEED = 1


def main() -> None:
    RESULTS_DIR.mkdir(exist_ok=True, parents=True)
    sns.set_theme(style="darkgrid")

    # ========================================================================
    # Deterministic model
    # ========================================================================

    sol = solve(oregonator.oregonator_problem())
    print(f"default: {sol.method}, {len(sol)} points, {sol.stats.nfev} RHS calls")

    fig = plot_solution(sol, names=oregonator.STATE_NAMES, title="Oregonator")
    fig.axes[0].set_yscale("log")
    save_figure(fig, RESULTS_DIR / "oregonator.png")
    save_figure(
        plot_phase(sol, 0, 1, names=oregonator.STATE_NAMES), RESULTS_DIR / "oregonator_phase.png"
    )

    # ========================================================================
    # Stiff parameters: explicit vs implicit work
    # ========================================================================

    stiff = oregonator.stiff_oregonator_problem()
    for method in ("RK45", "Radau", "BDF"):
        s = solve(stiff, method, abstol=1e-10, reltol=1e-10, save_everystep=False)
        print(f"stiff {method:6s} {s.retcode.value:8s} nfev={s.stats.nfev:8d} steps={s.stats.nsteps}")

    # ========================================================================
    # Multiplicative noise
    # ========================================================================

    sde = oregonator.oregonator_sde_problem()
    single = solve(sde, "srk", seed=SEED, dt=1e-3)
    print(f"sde: {single.method}, {single.retcode.value}")

    esol = solve(
        EnsembleProblem(sde),
        "srk",
        strategy="threads",
        trajectories=SDE_TRAJECTORIES,
        seed=SEED,
        dt=1e-3,
    )
    fig, axes = plt.subplots(1, 3, figsize=(16, 5))
    for i, ax in enumerate(axes):
        plot_ensemble(esol, component=i, names=oregonator.STATE_NAMES, ax=ax)
    save_figure(fig, RESULTS_DIR / "oregonator_sde.png")


if __name__ == "__main__":
    main()
