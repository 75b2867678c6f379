import datetime as _dt
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from config import WithdrawDate
from constants import (
    DEPOSIT_COLUMN_WIDTH,
    HIGHLIGHT_END,
    HIGHLIGHT_START,
    THOUSANDS_SEPARATOR,
    YIELD_COLUMN_WIDTH,
)
from selection import SelectionResult

NO_SCENARIO_MESSAGE = "No scenario found that meets the goal with the provided parameters."


def format_currency(amount: float) -> str:
    """Whole-unit dollar amount with apostrophe thousands separators, e.g. $1'234."""
    # half-units round away from zero
    whole = Decimal(repr(float(amount))).to_integral_value(rounding=ROUND_HALF_UP)
    return "$" + f"{whole:,f}".replace(",", THOUSANDS_SEPARATOR)


def format_scenario_table(result: SelectionResult, highlight: bool = True) -> List[str]:
    if not result.scenarios:
        return [NO_SCENARIO_MESSAGE]

    lines = [
        "",
        "Scenario Table (Monthly Deposit | Monthly Yield % | Final Capital):",
        "------------------------------------------------------------",
        "Deposit         Yield       Final Capital",
    ]
    for s in result.scenarios:
        deposit_str = format_currency(s.deposit).ljust(DEPOSIT_COLUMN_WIDTH)
        yield_str = f"{s.yield_pct}%".ljust(YIELD_COLUMN_WIDTH)
        line = f"{deposit_str} {yield_str} {format_currency(s.final_capital)}"
        if highlight and result.is_best(s):
            line = HIGHLIGHT_START + line + HIGHLIGHT_END
        lines.append(line)
    return lines


def format_time_horizon(
    total_months: int, withdraw_date: WithdrawDate, now: Optional[_dt.date] = None
) -> str:
    if now is None:
        now = _dt.date.today()
    return (
        f"\nTime horizon: {total_months} months "
        f"(from {now.year}-{now.month:02d} to {withdraw_date})"
    )


def print_report(
    result: SelectionResult,
    total_months: int,
    withdraw_date: WithdrawDate,
    now: Optional[_dt.date] = None,
    highlight: bool = True,
) -> None:
    for line in format_scenario_table(result, highlight=highlight):
        print(line)
    print(format_time_horizon(total_months, withdraw_date, now))
