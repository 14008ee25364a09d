import math
import sys
from typing import Optional
from loguru import logger

from config import Parameters
from constants import CURRENCY_SYMBOL, CURRENCY_UNIT, MONTHS_PER_YEAR
from projection import ProjectionResult

CONSOLE_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"


def configure_logging(log_file: Optional[str] = None, level: str = "INFO") -> None:
    """Replaces loguru's default sink with the console (and optional file) sinks."""
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_LOG_FORMAT, level=level, colorize=True)
    if log_file:
        logger.add(log_file, format=FILE_LOG_FORMAT, level=level, rotation="10 MB")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_currency(value: float, symbol: str = CURRENCY_SYMBOL) -> str:
    rounded = _round_half_up(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,}"


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def format_number(value: float) -> str:
    return f"{_round_half_up(value):,}"


def to_large_units(value: float) -> float:
    """Base currency units -> large display units."""
    return value / CURRENCY_UNIT


def log_input_parameters(params: Parameters) -> None:
    """Logs the input parameters for the calculation."""
    logger.info(f"--- Input Parameters For Scenario: {params.nickname} ---")
    for key, value in params.model_dump(by_alias=False).items():
        label = key.replace("_", " ").title()
        if key == "nickname" or value is None:
            continue
        if "rate" in key or "return" in key or "ratio" in key:
            logger.info(f"{label}: {format_percentage(value)}")
        elif key == "monthly_contribution":
            logger.info(f"{label}: {format_currency(value)}")
        elif any(kw in key for kw in ["expense", "income", "assets"]):
            logger.info(f"{label}: {value:,.2f} x {CURRENCY_UNIT:,} = {format_currency(value * CURRENCY_UNIT)}")
        else:
            logger.info(f"{label}: {value:g}")
    logger.info("--- End of Input Parameters ---")


def log_projection_result(params: Parameters, result: ProjectionResult) -> None:
    """Logs the outcome of a calculation."""
    logger.info(f"--- Results for Scenario: '{params.nickname}' ({result.mode.value} mode) ---")
    if result.solved_retirement_age is not None:
        logger.info(
            f"Earliest Retirement Age: {result.display_retirement_age} "
            f"(exact {result.solved_retirement_age:.2f})"
        )
        if result.age_search_saturated:
            logger.warning("Age search saturated at its upper bound; the target is not reachable.")
    logger.info(f"Years To Retirement: {result.years_to_retirement:.2f}")
    logger.info(f"Inflation Factor: {result.inflation_factor:.4f}")
    logger.info(f"Retirement Annual Expense: {format_currency(result.retirement_annual_expense)}")
    logger.info(f"Retirement Passive Income: {format_currency(result.retirement_passive_income)}")
    logger.info(f"Expense Covered By Investments: {format_currency(result.net_expense)}")
    logger.info(f"Total Assets Needed: {format_currency(result.total_assets_needed)}")
    logger.info(f"Current Assets Future Value: {format_currency(result.current_assets_future_value)}")
    logger.info(f"Funding Gap: {format_currency(result.funding_gap)}")
    logger.info(f"P Value: {result.p_value:.4f}")
    logger.info(
        f"Required Contribution: {format_currency(result.annual_contribution_needed)}/yr "
        f"({format_currency(result.annual_contribution_needed / MONTHS_PER_YEAR)}/mo)"
    )
    if result.annual_contribution_needed <= 0:
        logger.info("Current assets already cover the retirement target.")
