import math
import os
from contextlib import asynccontextmanager
from typing import Annotated, Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from analysis import return_sensitivity
from config import (
    DEFAULT_SCENARIO,
    CalculationMode,
    ConfigurationError,
    InvalidParameters,
    Parameters,
    has_validation_errors,
    load_config_from_json,
    resolve_mode,
    validate_parameters,
)
from constants import DEFAULT_CONFIG_FILENAME
from projection import ProjectionResult
from solver import calculate
from utils import configure_logging, to_large_units

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), DEFAULT_CONFIG_FILENAME)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class CalculationResponse(BaseModel):
    scenario: str
    mode: CalculationMode
    result: Dict[str, Any]
    display: Dict[str, Optional[float]] = Field(
        ..., description="Money figures converted back to large currency units."
    )


class SensitivityRow(BaseModel):
    investment_return: float
    assets_future_value: float
    funding_gap: float
    p_value: float
    annual_contribution: float
    monthly_contribution: float


class SensitivityResponse(BaseModel):
    scenario: str
    rows: List[SensitivityRow]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class CalculationRequest(BaseModel):
    params: Dict[str, Any] = Field(
        ...,
        description="Scenario parameters (same schema as config.json).",
    )
    mode: Optional[CalculationMode] = Field(
        None,
        description=(
            "'contribution' to solve for the required investment, 'age' to solve "
            "for the retirement age. Inferred from the populated fields if omitted."
        ),
    )


class SensitivityRequest(BaseModel):
    params: Dict[str, Any]
    investment_returns: List[Annotated[float, Field(ge=0, le=30)]] = Field(
        [6.0, 8.0, 10.0, 12.0],
        min_length=1,
        description="Investment returns (percent) to evaluate.",
    )


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(log_file="server.log")
    logger.info("Retirement Gap API starting up")
    yield
    logger.info("Retirement Gap API shutting down")


app = FastAPI(
    title="Retirement Gap Planner API",
    description="Projects the retirement funding gap and solves for the required investment or the retirement age.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_DISPLAY_FIELDS = [
    "retirement_annual_expense",
    "retirement_passive_income",
    "net_expense",
    "total_assets_needed",
    "current_assets_future_value",
    "funding_gap",
    "annual_contribution_needed",
]


def _safe_float(value: float) -> Optional[float]:
    """Convert NaN / Inf to None so JSON serialisation stays valid."""
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, 2)


def _parse_params(raw: Dict[str, Any]) -> Parameters:
    try:
        return Parameters(**raw)
    except Exception as e:
        raise HTTPException(status_code=422, detail=f"Invalid parameters: {e}")


def _build_response(params: Parameters, result: ProjectionResult) -> dict:
    payload = result.model_dump(mode="json")
    payload["monthly_contribution_needed"] = result.monthly_contribution_needed
    return {
        "scenario": params.nickname,
        "mode": result.mode,
        "result": payload,
        "display": {
            name: _safe_float(to_large_units(getattr(result, name)))
            for name in _DISPLAY_FIELDS
        },
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/config/default")
async def get_default_config():
    """
    Return ``config.json`` from beside this module as a ready-to-use template,
    or the built-in scenario when the file is not shipped (non-editable install).
    """
    if not os.path.exists(DEFAULT_CONFIG_PATH):
        logger.info(f"{DEFAULT_CONFIG_PATH} not found. Serving built-in default scenario.")
        return DEFAULT_SCENARIO
    try:
        return load_config_from_json(DEFAULT_CONFIG_PATH)
    except ConfigurationError as e:
        logger.error(f"Default configuration unreadable: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/validate")
async def validate(body: CalculationRequest):
    """Run the form validation rules without calculating anything."""
    params = _parse_params(body.params)
    try:
        mode = resolve_mode(params, body.mode)
    except InvalidParameters as e:
        return {"valid": False, "mode": None, "errors": {e.field: e.message}}
    errors = validate_parameters(params, mode)
    return {"valid": not has_validation_errors(errors), "mode": mode, "errors": errors}


@app.post("/api/calculate", response_model=CalculationResponse)
async def calculate_endpoint(body: CalculationRequest):
    """Solve for the required contribution or the retirement age."""
    params = _parse_params(body.params)
    try:
        mode = resolve_mode(params, body.mode)
    except InvalidParameters as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.message})

    errors = validate_parameters(params, mode)
    if has_validation_errors(errors):
        raise HTTPException(
            status_code=422,
            detail={k: v for k, v in errors.items() if v is not None},
        )

    logger.info(f"Received {mode.value} calculation for scenario '{params.nickname}'")

    try:
        result = calculate(params, mode)
    except InvalidParameters as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.message})
    except Exception as e:
        logger.opt(exception=True).error(f"Calculation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Calculation error: {e}")

    return _build_response(params, result)


@app.post("/api/sensitivity", response_model=SensitivityResponse)
async def sensitivity(body: SensitivityRequest):
    """Required contribution across several assumed investment returns."""
    params = _parse_params(body.params)
    errors = validate_parameters(params, CalculationMode.CONTRIBUTION)
    if has_validation_errors(errors):
        raise HTTPException(
            status_code=422,
            detail={k: v for k, v in errors.items() if v is not None},
        )

    try:
        df = return_sensitivity(params, body.investment_returns)
    except Exception as e:
        logger.opt(exception=True).error(f"Sensitivity analysis failed: {e}")
        raise HTTPException(status_code=500, detail=f"Sensitivity error: {e}")

    rows = [
        {
            "investment_return": row["Investment Return"],
            "assets_future_value": row["Assets Future Value"],
            "funding_gap": row["Funding Gap"],
            "p_value": row["P Value"],
            "annual_contribution": row["Annual Contribution"],
            "monthly_contribution": row["Monthly Contribution"],
        }
        for row in df.to_dict(orient="records")
    ]
    return {"scenario": params.nickname, "rows": rows}


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging()
    uvicorn.run("server:app", host="0.0.0.0", port=8080, reload=True)
