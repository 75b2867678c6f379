import os
import json
import datetime as _dt
from typing import Any, Dict, Optional
from pydantic import (
    BaseModel,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from loguru import logger

LARGE_DEPOSIT_RANGE_WARNING: int = 10_000


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be loaded or parsed."""


def _today_from_context(info: ValidationInfo) -> _dt.date:
    context = info.context or {}
    today = context.get("today")
    if today is None:
        return _dt.date.today()
    if isinstance(today, _dt.datetime):
        return today.date()
    return today


class WithdrawDate(BaseModel):
    """Deadline (year, month) at which the goal capital must be reached."""

    year: int = Field(..., ge=2000, description="Four digit calendar year.")
    month: int = Field(..., ge=1, le=12, description="Calendar month, 1-12.")

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def accept_iso_month(cls, data: Any) -> Any:
        # "2027-08" is accepted as shorthand in JSON config files
        if isinstance(data, str):
            try:
                year_str, month_str = data.strip().split("-", 1)
                return {"year": int(year_str), "month": int(month_str)}
            except ValueError as e:
                raise ValueError(
                    f"Withdraw date '{data}' is not in YYYY-MM format"
                ) from e
        return data

    def is_before(self, today: _dt.date) -> bool:
        return (self.year, self.month) < (today.year, today.month)

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"


class PlanConfig(BaseModel):
    """Validated inputs for one savings plan search."""

    Nickname: str = Field(
        "DefaultPlan",
        alias="scenario",
        description="A nickname for this savings plan.",
    )
    goal: float = Field(..., gt=0, description="Target capital at the withdraw date.")
    withdraw_date: WithdrawDate
    initial_capital: float = Field(
        0.0, description="Starting capital. Negative values represent debt."
    )
    max_deposit: int = Field(
        0,
        description="Maximum monthly deposit. Negative values are a maximum monthly withdrawal.",
    )

    search_withdrawals: bool = Field(
        False,
        description="If True, a negative max_deposit searches the withdrawal range [max_deposit, 0].",
    )
    num_processes: Optional[int] = Field(1, ge=1)
    plot_filename: Optional[str] = Field(None)

    model_config = {"validate_by_name": True, "validate_assignment": True}

    @field_validator("withdraw_date")
    @classmethod
    def check_withdraw_date_not_past(
        cls, v: WithdrawDate, info: ValidationInfo
    ) -> WithdrawDate:
        today = _today_from_context(info)
        if v.is_before(today):
            raise ValueError(
                f"Withdraw date {v} is before the current month {today.year}-{today.month:02d}"
            )
        return v

    @model_validator(mode="after")
    def check_max_deposit(self) -> "PlanConfig":
        if self.max_deposit > self.goal:
            raise ValueError(
                f"Max deposit ({self.max_deposit}) cannot exceed the goal ({self.goal:,.0f})"
            )
        if self.max_deposit < 0 and self.initial_capital - self.max_deposit < 0:
            raise ValueError(
                f"Withdrawals of {-self.max_deposit}/month are not allowed with an initial capital of {self.initial_capital:,.0f}"
            )
        if abs(self.max_deposit) > LARGE_DEPOSIT_RANGE_WARNING:
            logger.warning(
                f"Max deposit ({self.max_deposit:,}) spans a large search range for plan '{self.Nickname}'; the search may be slow."
            )
        return self

    @property
    def deposit_count(self) -> int:
        if self.max_deposit < 0 and not self.search_withdrawals:
            return 0
        return abs(self.max_deposit) + 1


def load_config_from_json(file_path: str) -> Dict[str, Any]:
    """Loads and returns the configuration dictionary from a JSON file."""
    if not os.path.exists(file_path):
        raise ConfigurationError(f"Configuration file not found at: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Error parsing JSON file '{file_path}': {e}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Unexpected error reading config file '{file_path}': {e}"
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file '{file_path}' must contain a JSON object"
        )
    return data
