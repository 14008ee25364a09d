import json
import sys

import pytest
from loguru import logger

import retirement_gap


@pytest.fixture
def run_cli(tmp_path, monkeypatch):
    """Runs the CLI inside tmp_path against a scenario written there."""
    monkeypatch.chdir(tmp_path)

    def _run(scenario):
        path = tmp_path / "scenario.json"
        path.write_text(json.dumps(scenario), encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["retirement-gap", str(path)])
        try:
            return retirement_gap.main()
        finally:
            logger.remove()

    return _run


def test_contribution_scenario(run_cli, tmp_path, base_params):
    assert run_cli(base_params.model_dump(by_alias=True, exclude_none=True)) == 0
    assert len(list(tmp_path.glob("ret_gap_Base_*_CURVE.png"))) == 1
    assert len(list(tmp_path.glob("ret_gap_Base_*_SENS.png"))) == 1
    assert len(list(tmp_path.glob("ret_gap_log_*.log"))) == 1


def test_age_scenario(run_cli, tmp_path, age_params):
    assert run_cli(age_params.model_dump(by_alias=True, exclude_none=True)) == 0
    assert list(tmp_path.glob("*_CURVE.png"))


def test_invalid_scenario(run_cli, tmp_path, base_params):
    scenario = base_params.model_dump(by_alias=True, exclude_none=True)
    scenario["withdrawal_rate"] = 0
    assert run_cli(scenario) == 1
    assert not list(tmp_path.glob("*.png"))


def test_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["retirement-gap", str(tmp_path / "missing.json")])
    try:
        assert retirement_gap.main() == 1
    finally:
        logger.remove()


def test_built_in_scenario_without_config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["retirement-gap"])
    try:
        assert retirement_gap.main() == 0
    finally:
        logger.remove()
    assert len(list(tmp_path.glob("*_CURVE.png"))) == 1
