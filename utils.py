import sys
from typing import Optional

from loguru import logger

from config import PlanConfig
from constants import MONTHS_PER_YEAR
from selection import SelectionResult

CONSOLE_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"


def configure_logging(level: str = "INFO", log_filename: Optional[str] = None) -> None:
    """Replaces loguru's default handler with a coloured stderr sink and an optional file sink."""
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_LOG_FORMAT, level=level, colorize=True)
    if log_filename:
        logger.add(
            log_filename,
            format=FILE_LOG_FORMAT,
            level=level,
            rotation="10 MB",
        )


def log_input_parameters(config: PlanConfig) -> None:
    """Logs the input parameters for the search."""
    logger.info(f"--- Input Parameters For Plan: {config.Nickname} ---")
    config_as_dict_for_logging = config.model_dump(by_alias=False)
    for key, value in config_as_dict_for_logging.items():
        if key == "Nickname":
            continue
        label = key.replace("_", " ").title()
        if key == "withdraw_date":
            logger.info(f"{label}: {config.withdraw_date}")
        elif key in ("goal", "initial_capital", "max_deposit"):
            logger.info(f"{label}: ${value:,.0f}")
        else:
            logger.info(f"{label}: {value}")
    logger.info("--- End of Input Parameters ---")


def log_search_results(
    config: PlanConfig,
    total_months: int,
    full_scenario_count: int,
    result: SelectionResult,
) -> None:
    """Logs the outcome of the search and selection."""
    logger.info(f"--- Search Results for Plan: '{config.Nickname}' ---")
    logger.info(
        f"Time Horizon: {total_months} months ({total_months / MONTHS_PER_YEAR:.1f} years)"
    )
    logger.info(
        f"Scenarios Reaching Goal: {full_scenario_count}, Shown: {len(result.scenarios)}"
    )
    if result.best is None:
        logger.warning("No deposit/yield combination reaches the goal.")
        return
    best = result.best
    logger.info(
        f"Recommended: deposit ${best.deposit:,}/month at {best.yield_pct}%/month "
        f"-> ${best.final_capital:,.2f} (overshoot ${best.overshoot(config.goal):,.2f})"
    )
