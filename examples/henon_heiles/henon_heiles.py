"""
Hénon-Heiles in four formulations: first order, second order, Hamiltonian
(autograd vector field) and an ensemble on one energy shell.

Run: uv run python examples/henon_heiles/henon_heiles.py
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from diffeq_workshop import solve
from diffeq_workshop.catalog import henon_heiles as hh
from diffeq_workshop.core import EnsembleProblem
from diffeq_workshop.plotting import save_figure

# ============================================================================
# Constants
# ============================================================================

RESULTS_DIR = Path("./results")
TSPAN = (0.0, 1000.0)
TOLERANCES = {"abstol": 1e-10, "reltol": 1e-10}


def main() -> None:
    RESULTS_DIR.mkdir(exist_ok=True, parents=True)
    sns.set_theme(style="darkgrid")

    # ========================================================================
    # Energy drift per formulation
    # ========================================================================

    formulations = {
        "first order": hh.henon_problem(TSPAN),
        "second order": hh.henon_second_order_problem(TSPAN),
        "hamiltonian": hh.henon_hamiltonian_problem(TSPAN),
    }
    E0 = hh.energy(hh.U0)
    fig, ax = plt.subplots(figsize=(10, 6))
    for name, prob in formulations.items():
        sol = solve(prob, "DOP853", **TOLERANCES)
        drift = np.array([hh.energy(z) for z in sol.u]) - E0
        print(f"{name:13s} max |ΔE| = {np.abs(drift).max():.2e}")
        ax.plot(sol.t, drift, lw=0.8, label=name)
    ax.set_xlabel("t")
    ax.set_ylabel("E(t) - E(0)")
    ax.legend()
    save_figure(fig, RESULTS_DIR / "henon_energy.png")

    # ========================================================================
    # Poincaré section of an ensemble: q1 = 0 crossings with p1 > 0
    # ========================================================================

    eprob, count = hh.henon_ensemble_problem(tspan=(0.0, 200.0))

    def crossings(sol, i):
        q1, p1 = sol.u[:, 2], sol.u[:, 0]
        hits = np.flatnonzero((q1[:-1] < 0) & (q1[1:] >= 0) & (p1[1:] > 0))
        return sol.u[hits + 1][:, [3, 1]], False

    eprob = EnsembleProblem(eprob.prob, prob_func=eprob.prob_func, output_func=crossings)
    esol = solve(eprob, "DOP853", strategy="threads", trajectories=count, **TOLERANCES)
    print(f"ensemble: {count} trajectories in {esol.elapsed:.1f} s")

    fig, ax = plt.subplots(figsize=(7, 7))
    for points in esol.outputs:
        ax.scatter(points[:, 0], points[:, 1], s=0.5)
    ax.set_xlabel("q2")
    ax.set_ylabel("p2")
    ax.set_title(f"Poincaré section, E = {hh.ENSEMBLE_ENERGY}")
    save_figure(fig, RESULTS_DIR / "henon_poincare.png")


if __name__ == "__main__":
    main()
