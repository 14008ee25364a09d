import os
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, model_validator
from loguru import logger


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be loaded, parsed or written."""


class InvalidParameters(ValueError):
    """
    Raised by the calculation engine when a required field for the active mode
    is missing, or when the retirement age does not follow the current age.

    ``field`` names the offending input so callers can attach the message to
    the matching form field.
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class CalculationMode(str, Enum):
    """Which question a calculation answers."""

    CONTRIBUTION = "contribution"  # fixed retirement age -> required investment
    AGE = "age"  # fixed monthly investment -> retirement age


# Values the input form pre-fills before the user types anything.
DEFAULT_PARAMETER_VALUES: Dict[str, float] = {
    "expected_retirement_passive_income": 4.0,
    "inflation_rate": 4.0,
    "retirement_expense_ratio": 80.0,
    "withdrawal_rate": 4.0,
}

# Template scenario; config.json in a checkout carries the same record.
DEFAULT_SCENARIO: Dict[str, Any] = {
    "scenario": "Retire at 45",
    "current_age": 25,
    "retirement_age": 45,
    "current_annual_expense": 18,
    "current_passive_income": 0,
    "expected_retirement_passive_income": 4,
    "current_investment_assets": 11,
    "inflation_rate": 4,
    "investment_return": 10,
    "retirement_expense_ratio": 80,
    "withdrawal_rate": 4,
}


class Parameters(BaseModel):
    """
    Inputs for one retirement projection.

    Money is in large currency units (see ``CURRENCY_UNIT``) except
    ``monthly_contribution``, which is the base-unit amount invested each month.
    Rates and ratios are percentages.
    """

    nickname: str = Field(
        "DefaultScenario",
        alias="scenario",
        description="A nickname for this planning scenario.",
    )
    current_age: float = Field(..., gt=0, description="Age today, in years.")
    retirement_age: Optional[float] = Field(
        None,
        gt=0,
        description="Planned retirement age. Required when solving for the contribution.",
    )
    monthly_contribution: Optional[float] = Field(
        None,
        description="Amount invested every month (base units). Required when solving for the age.",
    )

    current_annual_expense: float = Field(..., ge=0)
    current_passive_income: float = Field(
        0.0, ge=0, description="Recurring passive income today; grows with inflation."
    )
    expected_retirement_passive_income: float = Field(
        DEFAULT_PARAMETER_VALUES["expected_retirement_passive_income"],
        ge=0,
        description="Additional passive income after retirement, already in retirement-year terms.",
    )
    current_investment_assets: float = Field(0.0, ge=0)

    inflation_rate: float = Field(DEFAULT_PARAMETER_VALUES["inflation_rate"], ge=0)
    investment_return: float = Field(..., ge=0)
    retirement_expense_ratio: float = Field(
        DEFAULT_PARAMETER_VALUES["retirement_expense_ratio"],
        ge=0,
        description="Share of today's expense still spent in retirement.",
    )
    withdrawal_rate: float = Field(DEFAULT_PARAMETER_VALUES["withdrawal_rate"], ge=0)

    model_config = {"validate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def check_real_return(self) -> "Parameters":
        if self.investment_return < self.inflation_rate:
            logger.warning(
                f"Investment return ({self.investment_return:.1f}%) is below inflation "
                f"({self.inflation_rate:.1f}%) for scenario '{self.nickname}'. "
                "Retirement age search results may be unreliable."
            )
        return self


def resolve_mode(
    params: Parameters, requested: Optional[CalculationMode] = None
) -> CalculationMode:
    """Picks the calculation mode, inferring it from the populated fields when not given."""
    if requested is not None:
        return CalculationMode(requested)
    if params.retirement_age is not None:
        return CalculationMode.CONTRIBUTION
    if params.monthly_contribution is not None:
        return CalculationMode.AGE
    raise InvalidParameters(
        "retirement_age",
        "Either a retirement age or a monthly contribution must be provided.",
    )


# --- Form-level validation -------------------------------------------------
# Non-negativity is enforced by the Parameters model itself; these rules cover
# the ranges the input form accepts.

ValidationErrors = Dict[str, Optional[str]]
_Rule = Callable[[Parameters, CalculationMode], Optional[str]]


def _check_current_age(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if p.current_age < 18 or p.current_age > 100:
        return "Current age must be between 18 and 100."
    return None


def _check_retirement_age(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if mode is not CalculationMode.CONTRIBUTION:
        return None
    if p.retirement_age is None:
        return "Please enter a valid retirement age."
    if p.retirement_age <= p.current_age:
        return "Retirement age must be greater than current age."
    if p.retirement_age > 100:
        return "Retirement age cannot exceed 100."
    return None


def _check_monthly_contribution(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if mode is not CalculationMode.AGE:
        return None
    if p.monthly_contribution is None:
        return "Please enter the amount you can invest each month."
    if p.monthly_contribution < 0:
        return "Monthly contribution cannot be negative."
    return None


def _check_inflation_rate(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if p.inflation_rate > 20:
        return "Inflation rate should be between 0 and 20%."
    return None


def _check_investment_return(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if p.investment_return > 30:
        return "Investment return should be between 0 and 30%."
    return None


def _check_expense_ratio(p: Parameters, mode: CalculationMode) -> Optional[str]:
    if p.retirement_expense_ratio > 200:
        return "Retirement expense ratio should be between 0 and 200%."
    return None


def _check_withdrawal_rate(p: Parameters, mode: CalculationMode) -> Optional[str]:
    # The engine divides by this rate, so zero is rejected here.
    if p.withdrawal_rate <= 0 or p.withdrawal_rate > 10:
        return "Withdrawal rate should be greater than 0 and at most 10%."
    return None


VALIDATION_RULES: List[Tuple[str, _Rule]] = [
    ("current_age", _check_current_age),
    ("retirement_age", _check_retirement_age),
    ("monthly_contribution", _check_monthly_contribution),
    ("inflation_rate", _check_inflation_rate),
    ("investment_return", _check_investment_return),
    ("retirement_expense_ratio", _check_expense_ratio),
    ("withdrawal_rate", _check_withdrawal_rate),
]


def validate_parameters(
    params: Parameters, mode: Optional[CalculationMode] = None
) -> ValidationErrors:
    """Runs every form rule and returns ``{field: message or None}``."""
    if mode is None:
        try:
            mode = resolve_mode(params)
        except InvalidParameters as e:
            return {e.field: e.message}
    return {field: rule(params, mode) for field, rule in VALIDATION_RULES}


def has_validation_errors(errors: ValidationErrors) -> bool:
    return any(error is not None for error in errors.values())


def get_first_error(errors: ValidationErrors) -> Optional[str]:
    return next((error for error in errors.values() if error is not None), None)


# --- Persistence ----------------------------------------------------------


def load_config_from_json(file_path: str) -> Dict[str, Any]:
    """Loads and returns the configuration dictionary from a JSON file."""
    if not os.path.exists(file_path):
        raise ConfigurationError(f"Configuration file not found at: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Error parsing JSON file '{file_path}': {e}"
        ) from e
    except Exception as e:
        raise ConfigurationError(
            f"Unexpected error reading config file '{file_path}': {e}"
        ) from e


def save_params_to_json(params: Parameters, file_path: str) -> None:
    """Stores the current inputs as a flat key/value JSON record."""
    record = params.model_dump(by_alias=True, exclude_none=True)
    try:
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2)
    except OSError as e:
        raise ConfigurationError(
            f"Unable to write parameters to '{file_path}': {e}"
        ) from e
    logger.debug(f"Saved parameters for '{params.nickname}' to {file_path}")
