# constants.py

MONTHS_PER_YEAR: int = 12
PERCENT: float = 100.0
CURRENCY_UNIT: int = 10_000  # base currency units per large display unit
CURRENCY_SYMBOL: str = "¥"

# Age search
DEFAULT_MIN_YEARS: float = 1.0
DEFAULT_MAX_YEARS: float = 100.0
AGE_SEARCH_TOLERANCE_YEARS: float = 0.01
MAX_SEARCH_ITERATIONS: int = 100

DEFAULT_CONFIG_FILENAME: str = "config.json"

# Plotting constants
TEXT_INPUT_COLOR = '#1f77b4'
TEXT_OUTPUT_COLOR = '#ff7f0e'
