# constants.py

MONTHS_PER_YEAR: int = 12
DEFAULT_PLOT_FILENAME: str = "scenario_yields.png"

# Search grid
MIN_YIELD_PCT: int = 0
MAX_YIELD_PCT: int = 100

# Goal proximity band
UP_TOLERANCE: float = 1.05
DOWN_TOLERANCE: float = 0.85

# Input normalisation
MAX_INPUT_LENGTH: int = 10
CENTURY_PREFIX: str = "20"

# Console output
HIGHLIGHT_START: str = "\x1b[42m"
HIGHLIGHT_END: str = "\x1b[0m"
DEPOSIT_COLUMN_WIDTH: int = 15
YIELD_COLUMN_WIDTH: int = 10
THOUSANDS_SEPARATOR: str = "'"

# Plotting constants
TEXT_INPUT_COLOR = '#1f77b4'
TEXT_OUTPUT_COLOR = '#ff7f0e'
BEST_MARKER_COLOR = '#2ca02c'
