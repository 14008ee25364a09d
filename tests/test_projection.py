import pytest
from pydantic import ValidationError

from config import CalculationMode, InvalidParameters
from projection import ProjectionResult, get_p_value, project


def test_base_scenario_figures(base_params):
    """
    Walk the base scenario through every step of the projection.
    """
    result = project(base_params)

    inflation = 1.04 ** 20
    expense = 180000 * inflation * 0.8
    passive = 40000
    total = (expense - passive) / 0.04
    future_assets = 110000 * 1.1 ** 20
    p_value = (1.1 ** 20 - 1) / 0.1 * 1.1

    assert result.mode is CalculationMode.CONTRIBUTION
    assert result.years_to_retirement == 20
    assert result.inflation_factor == pytest.approx(2.1911, abs=1e-4)
    assert result.retirement_annual_expense == pytest.approx(expense)
    assert result.retirement_passive_income == pytest.approx(passive)
    assert result.net_expense == pytest.approx(expense - passive)
    assert result.total_assets_needed == pytest.approx(total)
    assert result.current_assets_future_value == pytest.approx(future_assets)
    assert result.funding_gap == pytest.approx(total - future_assets)
    assert result.p_value == pytest.approx(p_value)
    assert result.annual_contribution_needed == pytest.approx((total - future_assets) / p_value)
    assert result.solved_retirement_age is None


def test_returned_fields_are_consistent(base_params):
    for overrides in [
        {},
        {"current_passive_income": 3, "inflation_rate": 2.5},
        {"investment_return": 0},
        {"current_investment_assets": 900},
        {"retirement_age": 60.75},
    ]:
        result = project(base_params.model_copy(update=overrides))
        assert result.funding_gap == pytest.approx(
            result.total_assets_needed - result.current_assets_future_value
        )
        assert result.annual_contribution_needed == pytest.approx(
            result.funding_gap / result.p_value
        )


def test_zero_return_p_value_is_years(base_params):
    result = project(base_params.model_copy(update={"investment_return": 0}))
    assert result.p_value == result.years_to_retirement == 20
    assert result.current_assets_future_value == pytest.approx(110000)


def test_p_value_uses_annuity_due_convention():
    ordinary = (1.05 ** 10 - 1) / 0.05
    assert get_p_value(5, 10) == pytest.approx(ordinary * 1.05)
    assert get_p_value(0, 7.5) == 7.5


def test_higher_return_lowers_contribution(base_params):
    results = [
        project(base_params.model_copy(update={"investment_return": rate}))
        for rate in (6, 8, 10, 12)
    ]
    future_values = [r.current_assets_future_value for r in results]
    contributions = [r.annual_contribution_needed for r in results]
    assert future_values == sorted(future_values)
    assert len(set(future_values)) == 4
    assert all(a > b for a, b in zip(contributions, contributions[1:]))


def test_only_current_passive_income_is_inflated(base_params):
    result = project(base_params.model_copy(update={"current_passive_income": 2}))
    assert result.retirement_passive_income == pytest.approx(
        20000 * result.inflation_factor + 40000
    )


def test_surplus_gives_negative_contribution(base_params):
    """Assets already exceeding the target are reported, not floored at zero."""
    result = project(base_params.model_copy(update={"current_investment_assets": 2000}))
    assert result.funding_gap < 0
    assert result.annual_contribution_needed < 0


def test_passive_income_above_expense_gives_negative_need(base_params):
    result = project(base_params.model_copy(update={"expected_retirement_passive_income": 100}))
    assert result.net_expense < 0
    assert result.total_assets_needed < 0


def test_fractional_horizon(base_params):
    result = project(base_params.model_copy(update={"retirement_age": 45.5}))
    assert result.years_to_retirement == pytest.approx(20.5)
    assert result.inflation_factor == pytest.approx(1.04 ** 20.5)


def test_monthly_contribution_property(base_params):
    result = project(base_params)
    assert result.monthly_contribution_needed == pytest.approx(result.annual_contribution_needed / 12)


def test_missing_retirement_age(age_params):
    with pytest.raises(InvalidParameters) as exc_info:
        project(age_params)
    assert exc_info.value.field == "retirement_age"


@pytest.mark.parametrize("retirement_age", [25, 24, 10.5])
def test_retirement_age_must_follow_current_age(base_params, retirement_age):
    with pytest.raises(InvalidParameters):
        project(base_params.model_copy(update={"retirement_age": retirement_age}))


def test_zero_withdrawal_rate_is_not_guarded(base_params):
    with pytest.raises(ZeroDivisionError):
        project(base_params.model_copy(update={"withdrawal_rate": 0}))


def test_result_mode_tag_is_enforced(base_params):
    data = project(base_params).model_dump()
    with pytest.raises(ValidationError):
        ProjectionResult(**{**data, "mode": CalculationMode.AGE})
    with pytest.raises(ValidationError):
        ProjectionResult(**{**data, "solved_retirement_age": 45.0})
