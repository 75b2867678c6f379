import os
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger
from matplotlib.ticker import FuncFormatter

from config import PlanConfig
from constants import (
    BEST_MARKER_COLOR,
    MONTHS_PER_YEAR,
    TEXT_INPUT_COLOR,
    TEXT_OUTPUT_COLOR,
)
from selection import SelectionResult, within_tolerance
from simulation import scenarios_to_dataframe


def plot_scenario_yields(
    result: SelectionResult,
    input_config: PlanConfig,
    total_months: int,
    filename: str,
    dpi_setting: int = 150,
) -> bool:
    """
    Plots the required monthly yield for each shown deposit, separating rows
    inside the goal band from the always-shown boundary rows, and marks the
    recommended scenario.

    Returns True when a file was written.
    """
    if not result.scenarios:
        logger.info(f"No scenarios to plot; skipping {filename}.")
        return False

    df = scenarios_to_dataframe(result.scenarios)
    in_band = pd.Series(
        [within_tolerance(s, input_config.goal) for s in result.scenarios],
        index=df.index,
    )

    fig, ax = plt.subplots(figsize=(12, 7.5))

    band_df = df[in_band]
    boundary_df = df[~in_band]
    if not band_df.empty:
        ax.plot(
            band_df["Deposit"],
            band_df["Yield Pct"],
            marker="o",
            markersize=3,
            linestyle="-",
            linewidth=1.0,
            label="Within goal band (85%-105%)",
        )
    if not boundary_df.empty:
        ax.scatter(
            boundary_df["Deposit"],
            boundary_df["Yield Pct"],
            marker="s",
            color="grey",
            label="Boundary deposits (outside band)",
        )

    best = result.best
    if best is not None:
        ax.scatter(
            [best.deposit],
            [best.yield_pct],
            s=120,
            marker="*",
            color=BEST_MARKER_COLOR,
            zorder=5,
            label=f"Best: ${best.deposit:,}/mo @ {best.yield_pct}%",
        )

    p = input_config
    input_lines = [
        f"Plan: {p.Nickname}",
        f"Goal: ${p.goal:,.0f} by {p.withdraw_date}",
        f"Initial Capital: ${p.initial_capital:,.0f}, Max Deposit: ${p.max_deposit:,}",
    ]
    output_lines = [
        "--- Results ---",
        f"Horizon: {total_months}mo ({total_months / MONTHS_PER_YEAR:.1f}yr)",
        f"Scenarios shown: {len(result.scenarios)}",
    ]
    if best is not None:
        output_lines.append(f"Final Capital (best): ${best.final_capital:,.0f}")

    x_pos_text = 0.98
    y_coord_start = 0.98
    line_spacing_val = 0.035
    fontsize_text = 7
    for i, line_text in enumerate(input_lines + output_lines):
        is_output = i >= len(input_lines)
        ax.text(
            x_pos_text,
            y_coord_start - i * line_spacing_val,
            line_text,
            transform=ax.transAxes,
            ha="right",
            va="top",
            fontsize=fontsize_text,
            color=TEXT_OUTPUT_COLOR if is_output else TEXT_INPUT_COLOR,
            fontweight="bold" if is_output else "normal",
            bbox=dict(
                facecolor="white",
                alpha=0.85,
                pad=2,
                edgecolor="lightgrey",
                boxstyle="round,pad=0.3",
            ),
        )

    ax.set_title(f"Required Monthly Yield per Deposit: {p.Nickname}", fontsize=14)
    ax.set_xlabel("Monthly Deposit ($)", fontsize=10)
    ax.set_ylabel("Monthly Yield (%)", fontsize=10)
    ax.yaxis.set_major_formatter(FuncFormatter(lambda y_val, pos: f"{y_val:.0f}%"))
    ax.tick_params(axis="both", which="major", labelsize=8)
    ax.grid(True, linestyle=":", alpha=0.6)
    ax.legend(fontsize=7.5, loc="upper left")
    fig.tight_layout()

    try:
        file_directory = os.path.dirname(filename)
        if file_directory:
            os.makedirs(file_directory, exist_ok=True)
        fig.savefig(filename, dpi=dpi_setting)
        logger.info(f"Scenario plot saved to {filename} (DPI: {dpi_setting})")
        return True
    except OSError as e:
        logger.error(f"Error saving scenario plot '{filename}': {e}")
        return False
    finally:
        plt.close(fig)
