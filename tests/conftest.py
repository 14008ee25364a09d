import pytest

from config import Parameters


@pytest.fixture
def base_params():
    """25-year-old planning to retire at 45 (money in units of 10,000)."""
    return Parameters(
        scenario="Base",
        current_age=25,
        retirement_age=45,
        current_annual_expense=18,
        current_passive_income=0,
        expected_retirement_passive_income=4,
        current_investment_assets=11,
        inflation_rate=4,
        investment_return=10,
        retirement_expense_ratio=80,
        withdrawal_rate=4,
    )


@pytest.fixture
def age_params(base_params):
    """Same scenario with the retirement age left open."""
    return base_params.model_copy(update={"retirement_age": None, "monthly_contribution": 8000.0})
