"""
Repeated oral dosing in a one-compartment model, with and without an
absorption delay.

Run: uv run python examples/pharmacokinetics/pharmacokinetics.py
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import seaborn as sns

from diffeq_workshop import solve
from diffeq_workshop.catalog import pharmacokinetics as pk
from diffeq_workshop.plotting import save_csv, save_figure

# ============================================================================
# Constants
# ============================================================================

RESULTS_DIR = Path("./results")
PARAMS = pk.PKParams(Ka=2.268, Ke=0.07398, tau=6.0)


def main() -> None:
    RESULTS_DIR.mkdir(exist_ok=True, parents=True)
    sns.set_theme(style="darkgrid")

    # ========================================================================
    # Dosing by callback
    # ========================================================================

    dosed = solve(pk.pk_problem(PARAMS), "RK45", callback=pk.dosing_callback())
    delayed = solve(pk.pk_delay_problem(PARAMS), "Radau", callback=pk.dosing_callback())

    for name, sol in (("immediate", dosed), ("delayed", delayed)):
        peak = sol.u[:, 1].max()
        print(f"{name:9s} peak central amount {peak:7.2f} at t={sol.t[sol.u[:, 1].argmax()]:.1f} h")
        save_csv(sol, RESULTS_DIR / f"pk_{name}.csv", pk.STATE_NAMES)

    # ========================================================================
    # Plot
    # ========================================================================

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(dosed.t, dosed.u[:, 1], label="central, immediate absorption")
    ax.plot(delayed.t, delayed.u[:, 1], label=f"central, {PARAMS.tau:g} h delay")
    for t_dose in pk.DOSE_TIMES:
        ax.axvline(t_dose, color="grey", ls=":", lw=0.8)
    ax.set_xlabel("t [h]")
    ax.set_ylabel("Amount [mg]")
    ax.legend()
    save_figure(fig, RESULTS_DIR / "pk.png")


if __name__ == "__main__":
    main()
