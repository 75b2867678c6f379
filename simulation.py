import datetime as _dt
import multiprocessing
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import BaseModel

from config import PlanConfig, WithdrawDate
from constants import MAX_YIELD_PCT, MIN_YIELD_PCT, MONTHS_PER_YEAR

DateLike = Union[_dt.date, _dt.datetime]

_YIELD_GRID = np.arange(MIN_YIELD_PCT, MAX_YIELD_PCT + 1)


class Scenario(BaseModel):
    """One (deposit, yield) combination and the capital it reaches."""

    deposit: int
    yield_pct: int
    final_capital: float

    model_config = {"frozen": True}

    @property
    def key(self) -> Tuple[int, int]:
        return self.deposit, self.yield_pct

    def overshoot(self, goal: float) -> float:
        return self.final_capital - goal


def months_until(withdraw_date: WithdrawDate, now: Optional[DateLike] = None) -> int:
    """Whole months from ``now`` (default: today) to the withdraw date."""
    if now is None:
        now = _dt.date.today()
    return (withdraw_date.year - now.year) * MONTHS_PER_YEAR + (
        withdraw_date.month - now.month
    )


def simulate_growth(
    initial: float, yield_pct: int, deposit: float, months: int
) -> float:
    """
    Compounds ``initial`` for ``months`` months at ``yield_pct`` percent per
    month, adding ``deposit`` after each month's growth.
    """
    current = initial
    for _ in range(months):
        current = current * (1 + yield_pct / 100) + deposit
    return current


def _simulate_yield_grid(initial: float, deposit: float, months: int) -> np.ndarray:
    # Same arithmetic as simulate_growth, evaluated for every yield at once
    growth = 1 + _YIELD_GRID / 100
    current = np.full(_YIELD_GRID.shape, float(initial))
    with np.errstate(over="ignore", invalid="ignore"):
        for _ in range(months):
            current = current * growth + deposit
    return current


def find_minimal_yield_scenario(
    initial_capital: float, goal: float, total_months: int, deposit: int
) -> Optional[Scenario]:
    """
    Returns the scenario with the smallest integer yield in 0-100 that reaches
    ``goal`` for this deposit, or None when no yield does.
    """
    final_capitals = _simulate_yield_grid(initial_capital, deposit, total_months)
    reaching = np.flatnonzero(final_capitals >= goal)
    if reaching.size == 0:
        return None
    idx = int(reaching[0])
    return Scenario(
        deposit=deposit,
        yield_pct=int(_YIELD_GRID[idx]),
        final_capital=float(final_capitals[idx]),
    )


def deposit_range(max_deposit: int, search_withdrawals: bool = False) -> range:
    """
    Deposits to search, starting at 0.

    A negative ``max_deposit`` yields an empty range unless
    ``search_withdrawals`` is set, in which case 0, -1, ... max_deposit is
    searched.
    """
    if max_deposit < 0 and search_withdrawals:
        return range(0, max_deposit - 1, -1)
    return range(0, max_deposit + 1)


def search_scenarios(
    initial_capital: float,
    goal: float,
    total_months: int,
    max_deposit: int,
    search_withdrawals: bool = False,
) -> List[Scenario]:
    """Minimal-yield scenario for every deposit that can reach the goal, in search order."""
    scenarios = []
    for deposit in deposit_range(max_deposit, search_withdrawals):
        scenario = find_minimal_yield_scenario(
            initial_capital, goal, total_months, deposit
        )
        if scenario is not None:
            scenarios.append(scenario)
    return scenarios


def scenarios_to_dataframe(scenarios: Iterable[Scenario]) -> pd.DataFrame:
    rows = [
        {
            "Deposit": s.deposit,
            "Yield Pct": s.yield_pct,
            "Final Capital": s.final_capital,
        }
        for s in scenarios
    ]
    return pd.DataFrame(rows, columns=["Deposit", "Yield Pct", "Final Capital"])


class ScenarioSearchEngine:
    """
    Searches the (monthly deposit, monthly yield) space of a savings plan.

    For every deposit in the plan's range the smallest integer monthly yield
    that reaches the goal by the withdraw date is recorded. Deposits are
    independent, so the search can be spread across a process pool.
    """

    def __init__(self, params_model: PlanConfig):
        self.params_model = params_model.model_copy(deep=True)
        logger.info(
            f"Search engine initialized for plan '{self.params_model.Nickname}' "
            f"({self.params_model.deposit_count} deposit values)"
        )

    def time_horizon(self, now: Optional[DateLike] = None) -> int:
        return months_until(self.params_model.withdraw_date, now)

    def run_search(self, total_months: int) -> List[Scenario]:
        """
        Runs the deposit sweep, either sequentially or in parallel.
        """
        p = self.params_model
        deposits = list(deposit_range(p.max_deposit, p.search_withdrawals))
        if p.max_deposit < 0 and not p.search_withdrawals:
            logger.warning(
                f"Max deposit {p.max_deposit} is negative and withdrawal search is disabled; no deposits to search."
            )

        num_procs_to_use = p.num_processes if p.num_processes is not None else 1

        results: List[Optional[Scenario]]
        if num_procs_to_use <= 1 or len(deposits) < 2:
            logger.debug(
                f"Searching {len(deposits)} deposits sequentially over {total_months} months."
            )
            results = [
                find_minimal_yield_scenario(p.initial_capital, p.goal, total_months, d)
                for d in deposits
            ]
        else:
            logger.debug(
                f"Searching {len(deposits)} deposits in parallel using {num_procs_to_use} processes over {total_months} months."
            )
            args_for_starmap = [
                (p.initial_capital, p.goal, total_months, d) for d in deposits
            ]
            try:
                with multiprocessing.Pool(processes=num_procs_to_use) as pool:
                    results = pool.starmap(find_minimal_yield_scenario, args_for_starmap)
            except Exception as e:
                logger.error(
                    f"Multiprocessing pool error: {e}. Falling back to sequential execution."
                )
                results = [
                    find_minimal_yield_scenario(*args) for args in args_for_starmap
                ]

        scenarios = [s for s in results if s is not None]
        logger.info(
            f"Search for '{p.Nickname}' found {len(scenarios)} of {len(deposits)} deposits able to reach the goal."
        )
        return scenarios

    def run(self, now: Optional[DateLike] = None) -> Tuple[int, List[Scenario]]:
        total_months = self.time_horizon(now)
        logger.info(
            f"Time horizon for '{self.params_model.Nickname}': {total_months} months "
            f"({total_months / MONTHS_PER_YEAR:.1f} yrs)"
        )
        return total_months, self.run_search(total_months)
