from typing import Optional
from loguru import logger
from pydantic import BaseModel, Field, model_validator

from config import CalculationMode, InvalidParameters, Parameters
from constants import CURRENCY_UNIT, MONTHS_PER_YEAR, PERCENT


class ProjectionResult(BaseModel):
    """
    Full financial projection for one retirement age.

    All money is in base currency units. ``mode`` tags which calculation
    produced the result; only age-mode results carry the solved age.
    """

    mode: CalculationMode = CalculationMode.CONTRIBUTION

    years_to_retirement: float
    inflation_factor: float
    retirement_annual_expense: float
    retirement_passive_income: float
    net_expense: float = Field(
        ..., description="Annual expense left for portfolio withdrawals to cover."
    )
    total_assets_needed: float
    current_assets_future_value: float
    funding_gap: float
    p_value: float = Field(..., description="Annuity-due growth factor.")
    annual_contribution_needed: float

    solved_retirement_age: Optional[float] = None
    display_retirement_age: Optional[int] = None
    age_search_saturated: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_mode_fields(self) -> "ProjectionResult":
        has_age = self.solved_retirement_age is not None
        if self.mode is CalculationMode.AGE and not has_age:
            raise ValueError("Age-mode results must carry the solved retirement age.")
        if self.mode is CalculationMode.CONTRIBUTION and (
            has_age or self.display_retirement_age is not None
        ):
            raise ValueError("Contribution-mode results do not carry a solved age.")
        return self

    @property
    def monthly_contribution_needed(self) -> float:
        return self.annual_contribution_needed / MONTHS_PER_YEAR


def get_p_value(investment_return_pct: float, years: float) -> float:
    """
    Future-value factor of a level annuity paid at the start of each year.

    P = [(1+i)^n - 1] / i * (1+i), or simply n when the return is zero.
    """
    i = investment_return_pct / PERCENT
    if i == 0:
        return years
    return ((1 + i) ** years - 1) / i * (1 + i)


def project(params: Parameters) -> ProjectionResult:
    """
    Projects expenses, income and assets to the retirement age in ``params``
    and derives the annual contribution that closes the funding gap.

    Raises:
        InvalidParameters: retirement age missing or not after the current age.
    """
    if params.retirement_age is None:
        raise InvalidParameters("retirement_age", "A retirement age is required.")
    if params.retirement_age <= params.current_age:
        raise InvalidParameters(
            "retirement_age", "Retirement age must be greater than current age."
        )

    annual_expense = params.current_annual_expense * CURRENCY_UNIT
    passive_income = params.current_passive_income * CURRENCY_UNIT
    expected_passive_income = params.expected_retirement_passive_income * CURRENCY_UNIT
    current_assets = params.current_investment_assets * CURRENCY_UNIT

    years = params.retirement_age - params.current_age
    inflation_factor = (1 + params.inflation_rate / PERCENT) ** years

    retirement_annual_expense = (
        annual_expense * inflation_factor * (params.retirement_expense_ratio / PERCENT)
    )
    # Only today's recurring stream is inflated; the expected figure is already
    # in retirement-year terms.
    retirement_passive_income = passive_income * inflation_factor + expected_passive_income
    net_expense = retirement_annual_expense - retirement_passive_income

    total_assets_needed = net_expense / (params.withdrawal_rate / PERCENT)
    current_assets_future_value = (
        current_assets * (1 + params.investment_return / PERCENT) ** years
    )
    funding_gap = total_assets_needed - current_assets_future_value

    p_value = get_p_value(params.investment_return, years)
    annual_contribution_needed = funding_gap / p_value

    logger.debug(
        f"Projection '{params.nickname}': N={years:.4f}, INF={inflation_factor:.4f}, "
        f"expense={retirement_annual_expense:,.2f}, passive={retirement_passive_income:,.2f}, "
        f"net={net_expense:,.2f}, F={total_assets_needed:,.2f}, "
        f"FV(assets)={current_assets_future_value:,.2f}, D={funding_gap:,.2f}, "
        f"P={p_value:.4f}, Y={annual_contribution_needed:,.2f}"
    )

    return ProjectionResult(
        years_to_retirement=years,
        inflation_factor=inflation_factor,
        retirement_annual_expense=retirement_annual_expense,
        retirement_passive_income=retirement_passive_income,
        net_expense=net_expense,
        total_assets_needed=total_assets_needed,
        current_assets_future_value=current_assets_future_value,
        funding_gap=funding_gap,
        p_value=p_value,
        annual_contribution_needed=annual_contribution_needed,
    )
