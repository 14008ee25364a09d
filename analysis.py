from typing import Iterable

import numpy as np
import pandas as pd

from config import InvalidParameters, Parameters
from constants import DEFAULT_MAX_YEARS, DEFAULT_MIN_YEARS
from projection import project


def return_sensitivity(
    params: Parameters, investment_returns: Iterable[float]
) -> pd.DataFrame:
    """
    Re-runs the forward projection once per investment return (percent),
    holding every other input fixed.
    """
    rows = []
    for rate in investment_returns:
        result = project(params.model_copy(update={"investment_return": float(rate)}))
        rows.append(
            {
                "Investment Return": float(rate),
                "Assets Future Value": result.current_assets_future_value,
                "Funding Gap": result.funding_gap,
                "P Value": result.p_value,
                "Annual Contribution": result.annual_contribution_needed,
                "Monthly Contribution": result.monthly_contribution_needed,
            }
        )
    return pd.DataFrame(rows)


def contribution_curve(
    params: Parameters,
    min_years: float = DEFAULT_MIN_YEARS,
    max_years: float = DEFAULT_MAX_YEARS,
    step: float = 1.0,
) -> pd.DataFrame:
    """Required contribution for each candidate retirement age on a regular grid."""
    if step <= 0 or min_years <= 0 or max_years < min_years:
        raise InvalidParameters(
            "min_years", f"Invalid curve grid ({min_years}, {max_years}, step {step})."
        )

    horizons = np.arange(min_years, max_years + step / 2, step)
    rows = []
    for years in horizons:
        result = project(
            params.model_copy(update={"retirement_age": params.current_age + float(years)})
        )
        rows.append(
            {
                "Years To Retirement": float(years),
                "Retirement Age": params.current_age + float(years),
                "Total Assets Needed": result.total_assets_needed,
                "Funding Gap": result.funding_gap,
                "Annual Contribution": result.annual_contribution_needed,
                "Monthly Contribution": result.monthly_contribution_needed,
            }
        )
    return pd.DataFrame(rows)
