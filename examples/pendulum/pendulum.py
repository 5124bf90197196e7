"""
Single and double pendulum as index-1 DAEs with the rod tensions as
algebraic variables.

Run: uv run python examples/pendulum/pendulum.py
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from diffeq_workshop import solve
from diffeq_workshop.catalog import pendulum
from diffeq_workshop.plotting import plot_phase, save_figure

RESULTS_DIR = Path("./results")
TSPAN = (0.0, 10.0)


def main() -> None:
    RESULTS_DIR.mkdir(exist_ok=True, parents=True)
    sns.set_theme(style="darkgrid")

    # ========================================================================
    # Single pendulum
    # ========================================================================

    single = solve(pendulum.pendulum_problem(tspan=TSPAN), abstol=1e-8, reltol=1e-8)
    length = np.sqrt(single.u[:, 2] ** 2 + single.u[:, 3] ** 2)
    print(f"single: {single.retcode.value}, rod length in [{length.min():.6f}, {length.max():.6f}]")
    save_figure(
        plot_phase(single, 2, 3, names=pendulum.STATE_NAMES), RESULTS_DIR / "pendulum.png"
    )

    # ========================================================================
    # Double pendulum
    # ========================================================================

    double = solve(pendulum.double_pendulum_problem(tspan=TSPAN), abstol=1e-8, reltol=1e-8)
    print(f"double: {double.retcode.value}, {len(double)} points")

    fig, ax = plt.subplots(figsize=(7, 7))
    ax.plot(double.u[:, 2], double.u[:, 3], lw=0.8, label="first bob")
    ax.plot(double.u[:, 7], double.u[:, 8], lw=0.8, label="second bob")
    ax.set_aspect("equal")
    ax.legend()
    save_figure(fig, RESULTS_DIR / "double_pendulum.png")


if __name__ == "__main__":
    main()
