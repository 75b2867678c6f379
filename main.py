import argparse
import datetime as _dt
import multiprocessing
import sys
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from config import ConfigurationError, PlanConfig, load_config_from_json
from constants import DEFAULT_PLOT_FILENAME
from parsing import (
    InputParseError,
    check_max_deposit,
    parse_goal,
    parse_initial_capital,
    parse_max_deposit,
    parse_withdraw_date,
)
from plotting import plot_scenario_yields
from presenter import print_report
from selection import select_scenarios
from simulation import ScenarioSearchEngine
from utils import configure_logging, log_input_parameters, log_search_results

EXIT_OK = 0
EXIT_USAGE = 2

GOAL_PROMPT = "Goal: "
WITHDRAW_DATE_PROMPT = "Withdraw date (YY MM): 20"
INITIAL_CAPITAL_PROMPT = "Initial capital: "
MAX_DEPOSIT_PROMPT = "Maximum monthly deposit: "


class MissingInputError(Exception):
    """Raised when a required input is missing or invalid and prompting is disabled."""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invest-calc",
        description="Find monthly deposit and monthly yield combinations that reach a savings goal by a withdraw date.",
    )
    parser.add_argument("-g", "--goal", help="Goal amount")
    parser.add_argument(
        "-w",
        "--withdraw-date",
        dest="withdraw_date",
        help='Withdraw date in format (YYMM or YY[month_abbr]), e.g., "25ago" or "2508"',
    )
    parser.add_argument(
        "-i",
        "--initial-capital",
        dest="initial_capital",
        help="Initial capital (can be negative)",
    )
    parser.add_argument(
        "-m",
        "--max-deposit",
        dest="max_deposit",
        help="Maximum monthly deposit (or withdraw if negative)",
    )
    parser.add_argument("-c", "--config", help="JSON file with the plan parameters")
    parser.add_argument(
        "--plot",
        nargs="?",
        const=DEFAULT_PLOT_FILENAME,
        default=None,
        help=f"Save a chart of the shown scenarios (default file: {DEFAULT_PLOT_FILENAME})",
    )
    parser.add_argument(
        "--processes", type=int, default=None, help="Worker processes for the search"
    )
    parser.add_argument(
        "--search-withdrawals",
        action="store_true",
        default=None,
        help="With a negative max deposit, search withdrawals from 0 down to it",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Fail instead of prompting for missing or invalid values",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    parser.add_argument(
        "--no-color", action="store_true", help="Do not highlight the best scenario"
    )
    return parser


def ask_input(
    prompt_text: str,
    parse_fn: Callable[[str], Any],
    input_fn: Callable[[str], str] = input,
) -> Any:
    """Prompts until ``parse_fn`` accepts the answer."""
    while True:
        try:
            return parse_fn(input_fn(prompt_text))
        except InputParseError as e:
            logger.debug(f"Rejected input for '{prompt_text.strip()}': {e}")
            print(f"Please introduce a valid value for {prompt_text}")


def resolve_input(
    raw: Optional[str],
    prompt_text: str,
    parse_fn: Callable[[str], Any],
    interactive: bool,
    input_fn: Callable[[str], str] = input,
) -> Any:
    """
    Parses a command-line value, falling back to an interactive prompt when it
    is missing or invalid.
    """
    if raw is not None:
        try:
            return parse_fn(raw)
        except InputParseError as e:
            logger.warning(f"Ignoring invalid value '{raw}': {e}")
    if not interactive:
        raise MissingInputError(f"A valid value is required for '{prompt_text.strip()}'")
    return ask_input(prompt_text, parse_fn, input_fn)


def _file_number(values: Dict[str, Any], key: str) -> float:
    """Numeric view of a merged value, which may still be raw JSON text."""
    try:
        return float(values[key])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"'{key}' must be a number, got {values[key]!r}"
        ) from e


def gather_plan_inputs(
    args: argparse.Namespace,
    file_values: Dict[str, Any],
    today: _dt.date,
    input_fn: Callable[[str], str] = input,
) -> Dict[str, Any]:
    """Merges config file values with command-line flags and prompt answers."""
    interactive = not args.no_prompt
    values = dict(file_values)

    if args.goal is not None or "goal" not in values:
        values["goal"] = resolve_input(
            args.goal, GOAL_PROMPT, parse_goal, interactive, input_fn
        )
    if args.withdraw_date is not None or "withdraw_date" not in values:
        values["withdraw_date"] = resolve_input(
            args.withdraw_date,
            WITHDRAW_DATE_PROMPT,
            lambda raw: parse_withdraw_date(raw, today=today),
            interactive,
            input_fn,
        )
    if args.initial_capital is not None or "initial_capital" not in values:
        values["initial_capital"] = resolve_input(
            args.initial_capital,
            INITIAL_CAPITAL_PROMPT,
            parse_initial_capital,
            interactive,
            input_fn,
        )
    goal = _file_number(values, "goal")
    initial_capital = _file_number(values, "initial_capital")
    if args.max_deposit is not None or "max_deposit" not in values:
        values["max_deposit"] = resolve_input(
            args.max_deposit,
            MAX_DEPOSIT_PROMPT,
            lambda raw: parse_max_deposit(raw, initial_capital, goal),
            interactive,
            input_fn,
        )
    elif interactive:
        try:
            check_max_deposit(
                _file_number(values, "max_deposit"), initial_capital, goal
            )
        except InputParseError as e:
            logger.warning(f"Ignoring max deposit from the config file: {e}")
            values["max_deposit"] = ask_input(
                MAX_DEPOSIT_PROMPT,
                lambda raw: parse_max_deposit(raw, initial_capital, goal),
                input_fn,
            )

    if args.processes is not None:
        values["num_processes"] = args.processes
    if args.search_withdrawals is not None:
        values["search_withdrawals"] = args.search_withdrawals
    if args.plot is not None:
        values["plot_filename"] = args.plot
    return values


def main(
    argv: Optional[List[str]] = None,
    today: Optional[_dt.date] = None,
    input_fn: Callable[[str], str] = input,
) -> int:
    """
    Main execution entry point.

    Collects the plan inputs, runs the deposit/yield search, prints the
    scenario table and optionally saves the chart.
    """
    args = build_arg_parser().parse_args(argv)
    configure_logging(level=args.log_level.upper(), log_filename=args.log_file)
    if today is None:
        today = _dt.date.today()

    file_values: Dict[str, Any] = {}
    if args.config:
        logger.info(f"Loading configuration from: {args.config}")
        try:
            file_values = load_config_from_json(args.config)
        except ConfigurationError as e:
            logger.error(f"Configuration file error: {e}")
            return EXIT_USAGE

    try:
        values = gather_plan_inputs(args, file_values, today, input_fn)
        config = PlanConfig.model_validate(values, context={"today": today})
    except MissingInputError as e:
        logger.error(str(e))
        return EXIT_USAGE
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        return EXIT_USAGE
    except ValidationError as e:
        logger.error(f"Configuration validation error: {e}")
        return EXIT_USAGE

    log_input_parameters(config)

    engine = ScenarioSearchEngine(config)
    total_months, full_scenarios = engine.run(now=today)
    result = select_scenarios(full_scenarios, config.goal, config.max_deposit)

    log_search_results(config, total_months, len(full_scenarios), result)
    print_report(
        result, total_months, config.withdraw_date, now=today, highlight=not args.no_color
    )

    if config.plot_filename:
        plot_scenario_yields(result, config, total_months, config.plot_filename)

    return EXIT_OK


def run() -> None:
    multiprocessing.freeze_support()
    sys.exit(main())


if __name__ == "__main__":
    run()
