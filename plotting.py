import os
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger
from matplotlib.ticker import FuncFormatter
from typing import List, Optional

from config import Parameters
from constants import (
    CURRENCY_SYMBOL,
    TEXT_INPUT_COLOR,
    TEXT_OUTPUT_COLOR,
)
from projection import ProjectionResult
from utils import format_currency


def _input_lines(p: Parameters) -> List[str]:
    return [
        f"Scenario: {p.nickname}",
        f"Age: {p.current_age:g}, Expense: {p.current_annual_expense:,.1f}, Ratio: {p.retirement_expense_ratio:.0f}%",
        f"Passive: {p.current_passive_income:,.1f} now, +{p.expected_retirement_passive_income:,.1f} in ret.",
        f"Assets: {p.current_investment_assets:,.1f}",
        f"Infl: {p.inflation_rate:.1f}%, Return: {p.investment_return:.1f}%, SWR: {p.withdrawal_rate:.1f}%",
    ]


def _draw_text_block(ax, lines: List[str], y_start: float, color: str, bold: bool = False):
    line_spacing_val = 0.035
    for i, line_text in enumerate(lines):
        ax.text(
            0.98,
            y_start - i * line_spacing_val,
            line_text,
            transform=ax.transAxes,
            ha="right",
            va="top",
            fontsize=6.5,
            color=color,
            fontweight="bold" if bold else "normal",
            bbox=dict(
                facecolor="white",
                alpha=0.85 if bold else 0.80,
                pad=2,
                edgecolor="lightgrey",
                boxstyle="round,pad=0.3",
            ),
        )
    return y_start - len(lines) * line_spacing_val


def _save_figure(filename: str, dpi_setting: int, description: str) -> None:
    try:
        file_directory = os.path.dirname(filename)
        if file_directory:
            os.makedirs(file_directory, exist_ok=True)
        plt.savefig(filename, dpi=dpi_setting)
        logger.info(f"{description} plot saved to {filename}")
    except Exception as e:
        logger.opt(exception=True).error(f"Error saving {description.lower()} plot '{filename}': {e}")
    finally:
        plt.close()


def _thousands_formatter(x_val, pos):
    return f"{x_val / 1e3:,.0f}k" if x_val != 0 else "0"


def plot_contribution_curve(
    curve_df: pd.DataFrame,
    input_params: Parameters,
    result: Optional[ProjectionResult],
    filename: str,
    dpi_setting: int = 150,
):
    """
    Plots the monthly contribution required for each candidate retirement age,
    marking the calculated retirement age and the user's monthly budget.

    Args:
        curve_df: Output of ``analysis.contribution_curve``.
        input_params: Scenario inputs, shown in the text block.
        result: The calculation to highlight, if any.
        filename: Where to write the PNG.
        dpi_setting: The DPI for the saved image.
    """
    if curve_df is None or curve_df.empty:
        logger.warning(f"No contribution curve data to plot for '{filename}'. Skipping.")
        return

    plt.figure(figsize=(12, 7))
    ax = plt.gca()

    ax.plot(
        curve_df["Retirement Age"],
        curve_df["Monthly Contribution"],
        color="blue",
        linewidth=1.8,
        label="Required Monthly Contribution",
    )
    ax.axhline(0, color="red", linestyle="-", linewidth=1.0, label="Fully Funded")

    if input_params.monthly_contribution is not None:
        ax.axhline(
            input_params.monthly_contribution,
            color="green",
            linestyle=":",
            linewidth=1.2,
            label=f"Monthly Budget ({format_currency(input_params.monthly_contribution)})",
        )

    output_lines = []
    if result is not None:
        retirement_age = (
            result.solved_retirement_age
            if result.solved_retirement_age is not None
            else input_params.current_age + result.years_to_retirement
        )
        ax.axvline(
            x=retirement_age,
            color="black",
            linestyle="--",
            linewidth=1.2,
            label=f"Retirement Age ({retirement_age:.1f})",
        )
        output_lines = [
            "--- Results ---",
            f"Retire At: {retirement_age:.1f} ({result.years_to_retirement:.1f} yrs)",
            f"Assets Needed: {format_currency(result.total_assets_needed)}",
            f"Funding Gap: {format_currency(result.funding_gap)}",
            f"Contribution: {format_currency(result.monthly_contribution_needed)}/mo",
        ]

    y_next = _draw_text_block(ax, _input_lines(input_params), 0.98, TEXT_INPUT_COLOR)
    if output_lines:
        _draw_text_block(ax, output_lines, y_next - 0.026, TEXT_OUTPUT_COLOR, bold=True)

    ax.set_xlabel("Retirement Age", fontsize=9)
    ax.set_ylabel(f"Monthly Contribution ({CURRENCY_SYMBOL})", fontsize=9)
    ax.set_title(
        f"Required Contribution by Retirement Age - Scenario: {input_params.nickname}",
        fontsize=11,
    )
    ax.yaxis.set_major_formatter(FuncFormatter(_thousands_formatter))
    ax.tick_params(axis="both", which="major", labelsize=7)
    ax.grid(True, linestyle=":", alpha=0.6)
    ax.legend(fontsize=7.5, loc="upper left", bbox_to_anchor=(0.01, 0.98))
    plt.tight_layout()

    _save_figure(filename, dpi_setting, "Contribution curve")


def plot_return_sensitivity(
    sensitivity_df: pd.DataFrame,
    input_params: Parameters,
    filename: str,
    dpi_setting: int = 150,
):
    """Bar chart of the required monthly contribution per assumed investment return."""
    if sensitivity_df is None or sensitivity_df.empty:
        logger.warning(f"No sensitivity data to plot for '{filename}'. Skipping.")
        return

    plt.figure(figsize=(10, 6))
    ax = plt.gca()

    labels = [f"{r:.1f}%" for r in sensitivity_df["Investment Return"]]
    values = sensitivity_df["Monthly Contribution"]
    colors = ["salmon" if v > 0 else "skyblue" for v in values]
    ax.bar(labels, values, color=colors, edgecolor="black", alpha=0.8)
    for x_idx, v in enumerate(values):
        ax.text(x_idx, v, format_currency(v), ha="center", va="bottom", fontsize=7)

    _draw_text_block(ax, _input_lines(input_params), 0.98, TEXT_INPUT_COLOR)

    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_xlabel("Assumed Investment Return", fontsize=9)
    ax.set_ylabel(f"Monthly Contribution ({CURRENCY_SYMBOL})", fontsize=9)
    ax.set_title(f"Return Sensitivity - Scenario: {input_params.nickname}", fontsize=11)
    ax.yaxis.set_major_formatter(FuncFormatter(_thousands_formatter))
    ax.tick_params(axis="both", which="major", labelsize=7)
    ax.grid(True, axis="y", linestyle=":", alpha=0.6)
    plt.tight_layout()

    _save_figure(filename, dpi_setting, "Sensitivity")
