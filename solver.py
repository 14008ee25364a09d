import math
from typing import Optional
from loguru import logger

from config import CalculationMode, InvalidParameters, Parameters, resolve_mode
from constants import (
    AGE_SEARCH_TOLERANCE_YEARS,
    DEFAULT_MAX_YEARS,
    DEFAULT_MIN_YEARS,
    MAX_SEARCH_ITERATIONS,
    MONTHS_PER_YEAR,
)
from projection import ProjectionResult, project


def solve_age(
    params: Parameters,
    monthly_contribution: Optional[float] = None,
    min_years: float = DEFAULT_MIN_YEARS,
    max_years: float = DEFAULT_MAX_YEARS,
    tolerance: float = AGE_SEARCH_TOLERANCE_YEARS,
    max_iterations: int = MAX_SEARCH_ITERATIONS,
    verbose: bool = False,
) -> ProjectionResult:
    """
    Bisects over years-to-retirement for the earliest retirement age whose
    required annual contribution does not exceed ``monthly_contribution * 12``.

    The required contribution is assumed to fall as the horizon grows; this is
    not checked. When no probed horizon is affordable the search saturates and
    the result is reported at ``max_years`` instead of raising.

    Args:
        params: Scenario inputs. ``retirement_age`` is ignored.
        monthly_contribution: Base-unit amount invested per month. Falls back to
            ``params.monthly_contribution``. Zero is a valid target.
        min_years, max_years: Open search interval for years to retirement.
        tolerance: Stop once the interval is no wider than this (years).
        max_iterations: Hard cap on bisection steps.
        verbose: Log every step at INFO instead of DEBUG.

    Returns:
        An age-mode ProjectionResult evaluated at the unrounded solved age.
    """
    if monthly_contribution is None:
        monthly_contribution = params.monthly_contribution
    if monthly_contribution is None or not math.isfinite(monthly_contribution):
        raise InvalidParameters(
            "monthly_contribution", "A monthly contribution amount is required."
        )
    if min_years <= 0 or max_years <= min_years:
        raise InvalidParameters(
            "min_years",
            f"Invalid search bounds ({min_years}, {max_years}) for years to retirement.",
        )

    target_annual = monthly_contribution * MONTHS_PER_YEAR
    log = logger.info if verbose else logger.debug

    lo, hi = min_years, max_years
    best_years = max_years
    iteration = 0

    log(
        f"Searching retirement age for '{params.nickname}': target "
        f"{target_annual:,.2f}/yr, horizon ({lo:.0f}, {hi:.0f}) yrs."
    )

    while iteration < max_iterations and (hi - lo) > tolerance:
        iteration += 1
        mid = (lo + hi) / 2
        trial = params.model_copy(update={"retirement_age": params.current_age + mid})
        needed = project(trial).annual_contribution_needed

        if needed <= target_annual:
            hi = mid
            best_years = mid
        else:
            lo = mid

        log(
            f"  Search iter {iteration}: {mid:.4f} yrs needs {needed:,.2f}/yr "
            f"-> interval ({lo:.4f}, {hi:.4f})"
        )

    saturated = best_years == max_years
    if saturated:
        logger.warning(
            f"Target of {monthly_contribution:,.2f}/month is not enough for "
            f"'{params.nickname}' within {max_years:.0f} years. Reporting the upper bound."
        )

    solved_age = params.current_age + best_years
    final = project(params.model_copy(update={"retirement_age": solved_age}))

    log(
        f"Search complete after {iteration} iterations: retire at {solved_age:.2f} "
        f"({best_years:.2f} yrs from now)."
    )

    return ProjectionResult(
        **{
            **final.model_dump(),
            "mode": CalculationMode.AGE,
            "solved_retirement_age": solved_age,
            "display_retirement_age": math.floor(solved_age + 0.5),
            "age_search_saturated": saturated,
        }
    )


def calculate(
    params: Parameters, mode: Optional[CalculationMode] = None
) -> ProjectionResult:
    """Runs the forward projection or the age search depending on ``mode``."""
    mode = resolve_mode(params, mode)
    if mode is CalculationMode.AGE:
        return solve_age(params)
    return project(params)
