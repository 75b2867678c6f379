"""
Normalisation of free-form user input (command-line flags and prompt answers)
into the validated values consumed by the scenario search.

Every parser either returns a clean value or raises ``InputParseError``.
"""

import re
import datetime as _dt
from typing import Dict, Optional

from config import WithdrawDate
from constants import CENTURY_PREFIX, MAX_INPUT_LENGTH

MONTH_ABBREVIATIONS: Dict[str, int] = {
    "ene": 1,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "abr": 4,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "ago": 8,
    "aug": 8,
    "sep": 9,
    "set": 9,
    "oct": 10,
    "nov": 11,
    "dic": 12,
    "dec": 12,
}

_NON_DIGITS = re.compile(r"\D")
_NON_LETTERS = re.compile(r"[^a-z]")


class InputParseError(ValueError):
    """Raised when a free-form input cannot be turned into a valid value."""


def trim_input(raw: object) -> str:
    return str(raw).strip()[:MAX_INPUT_LENGTH]


def extract_digits(text: str) -> str:
    return _NON_DIGITS.sub("", text)


def parse_signed_number(raw: object) -> Optional[int]:
    """
    Reads a signed integer out of noisy text such as ``"-1'500$"``.

    A leading ``-`` sets the sign and every digit is kept. Returns None when
    the text holds no digits at all.
    """
    text = trim_input(raw)
    digits = extract_digits(text)
    if not digits:
        return None
    value = int(digits)
    return -value if text.startswith("-") else value


def parse_goal(raw: object) -> int:
    digits = extract_digits(trim_input(raw))
    value = int(digits) if digits else 0
    if value <= 0:
        raise InputParseError(f"Goal must be a positive amount, got '{raw}'")
    return value


def parse_initial_capital(raw: object) -> int:
    value = parse_signed_number(raw)
    return 0 if value is None else value


def parse_max_deposit(raw: object, initial_capital: float, goal: float) -> int:
    """
    Reads the maximum monthly deposit. Negative values mean withdrawals and
    are only accepted while ``initial_capital - deposit`` stays non-negative.
    """
    value = parse_signed_number(raw)
    if value is None:
        return 0
    return check_max_deposit(value, initial_capital, goal)


def check_max_deposit(value: float, initial_capital: float, goal: float) -> float:
    """Applies the goal and withdrawal bounds to an already numeric max deposit."""
    if value < 0 and initial_capital - value < 0:
        raise InputParseError(
            f"Withdrawals of {-value}/month are not possible with initial capital {initial_capital}"
        )
    if value > goal:
        raise InputParseError(
            f"Max deposit {value} cannot exceed the goal {goal}"
        )
    return value


def _resolve_month(token: str) -> int:
    if token.isdigit():
        return min(max(int(token), 1), 12)
    return MONTH_ABBREVIATIONS.get(token, 1)


def parse_withdraw_date(
    raw: object, today: Optional[_dt.date] = None
) -> WithdrawDate:
    """
    Parses ``YYMM`` or ``YY<month>`` text (``"2508"``, ``"25ago"``, ``"25 aug"``).

    The first two digits are the year in the 2000s. Digits three and four are
    the month; without them the first three letters are read as an English or
    Spanish month abbreviation. Unknown months fall back to January and
    numeric months are clamped to 1-12. Dates before the current month are
    rejected.
    """
    if today is None:
        today = _dt.date.today()
    text = trim_input(raw).lower()
    digits = extract_digits(text)
    letters = _NON_LETTERS.sub("", text)
    if len(digits) < 2:
        raise InputParseError(f"Withdraw date '{raw}' needs at least a two digit year")

    year = int(CENTURY_PREFIX + digits[:2])
    if len(digits) >= 3:
        month_token = digits[2:4]
    elif letters:
        month_token = letters[:3]
    else:
        month_token = "1"

    withdraw_date = WithdrawDate(year=year, month=_resolve_month(month_token))
    if withdraw_date.is_before(today):
        raise InputParseError(
            f"Withdraw date {withdraw_date} is in the past (current month {today.year}-{today.month:02d})"
        )
    return withdraw_date
