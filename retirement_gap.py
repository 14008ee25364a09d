import os
import sys
import datetime as _dt
from loguru import logger

from analysis import contribution_curve, return_sensitivity
from config import (
    DEFAULT_SCENARIO,
    ConfigurationError,
    InvalidParameters,
    Parameters,
    get_first_error,
    has_validation_errors,
    load_config_from_json,
    resolve_mode,
    validate_parameters,
)
from constants import DEFAULT_CONFIG_FILENAME
from plotting import plot_contribution_curve, plot_return_sensitivity
from solver import calculate
from utils import configure_logging, log_input_parameters, log_projection_result

SENSITIVITY_RETURNS = [6.0, 8.0, 10.0, 12.0]


def main():
    """
    Main execution entry point.

    Loads the scenario, validates it, solves for the required contribution or
    the retirement age, logs the results, and writes the plots.
    """
    current_timestamp_str = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = f"ret_gap_log_{current_timestamp_str}.log"
    configure_logging(log_file=log_filename)

    logger.info(f"Logging initialized. Log file: {log_filename}")

    # --- LOAD CONFIGURATION FROM JSON ---
    if len(sys.argv) > 1:
        json_filename = sys.argv[1]
    else:
        json_filename = DEFAULT_CONFIG_FILENAME
        logger.info(
            f"No config file specified via argument. Defaulting to '{json_filename}'"
        )

    try:
        if len(sys.argv) == 1 and not os.path.exists(json_filename):
            logger.info(
                f"'{json_filename}' not found in the working directory. Using the built-in default scenario."
            )
            config_dict = dict(DEFAULT_SCENARIO)
        else:
            logger.info(f"Loading configuration from: {json_filename}")
            config_dict = load_config_from_json(json_filename)
        params = Parameters(**config_dict)
        logger.info(
            f"Configuration for scenario '{params.nickname}' loaded successfully."
        )
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Configuration validation error: {e}")
        return 1

    try:
        mode = resolve_mode(params)
    except InvalidParameters as e:
        logger.error(f"Invalid input '{e.field}': {e.message}")
        return 1

    errors = validate_parameters(params, mode)
    if has_validation_errors(errors):
        for field, message in errors.items():
            if message is not None:
                logger.error(f"Invalid input '{field}': {message}")
        logger.error(f"Skipping calculation: {get_first_error(errors)}")
        return 1

    log_input_parameters(params)

    logger.info(f"--- Solving for {mode.value} for '{params.nickname}' ---")
    result = calculate(params, mode)
    log_projection_result(params, result)

    safe_nickname = "".join(
        c if c.isalnum() or c in ["_", "-"] else "_" for c in params.nickname
    )
    plot_file_base = f"ret_gap_{safe_nickname}_{current_timestamp_str}"

    plot_contribution_curve(
        contribution_curve(params),
        params,
        result,
        f"{plot_file_base}_CURVE.png",
    )
    plot_return_sensitivity(
        return_sensitivity(
            params.model_copy(
                update={"retirement_age": params.current_age + result.years_to_retirement}
            ),
            SENSITIVITY_RETURNS,
        ),
        params,
        f"{plot_file_base}_SENS.png",
    )

    logger.info(
        f"--- Finished scenario '{params.nickname}'. Outputs in current directory. Log: {log_filename} ---"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
