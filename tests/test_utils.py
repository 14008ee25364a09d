import pytest
from loguru import logger

from projection import project
from solver import solve_age
from utils import (
    configure_logging,
    format_currency,
    format_number,
    format_percentage,
    log_input_parameters,
    log_projection_result,
    to_large_units,
)


@pytest.fixture
def captured_logs():
    messages = []
    sink_id = logger.add(messages.append, level="INFO", format="{message}")
    yield messages
    logger.remove(sink_id)


def test_format_helpers():
    assert format_currency(1234567.5) == "¥1,234,568"
    assert format_currency(-2500.4) == "-¥2,500"
    assert format_currency(-0.2) == "¥0"
    assert format_currency(10, symbol="$") == "$10"
    assert format_percentage(4) == "4.00%"
    assert format_percentage(12.3456) == "12.35%"
    assert format_number(2.5) == "3"
    assert format_number(1234.4) == "1,234"


def test_to_large_units():
    assert to_large_units(180000) == 18


def test_log_input_parameters(base_params, captured_logs):
    log_input_parameters(base_params)
    text = "".join(captured_logs)
    assert "Input Parameters For Scenario: Base" in text
    assert "Inflation Rate: 4.00%" in text
    assert "Current Annual Expense: 18.00 x 10,000 = ¥180,000" in text
    assert "Monthly Contribution" not in text


def test_log_projection_result(base_params, captured_logs):
    log_projection_result(base_params, project(base_params))
    text = "".join(captured_logs)
    assert "contribution mode" in text
    assert "Funding Gap" in text
    assert "Earliest Retirement Age" not in text


def test_log_solved_age(base_params, captured_logs):
    log_projection_result(base_params, solve_age(base_params, 8000.0))
    text = "".join(captured_logs)
    assert "age mode" in text
    assert "Earliest Retirement Age" in text


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "run.log"
    configure_logging(log_file=str(log_file), level="DEBUG")
    try:
        logger.info("hello from test")
    finally:
        logger.remove()
    assert "hello from test" in log_file.read_text(encoding="utf-8")
