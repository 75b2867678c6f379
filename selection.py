from functools import cmp_to_key
from typing import List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel

from constants import DOWN_TOLERANCE, UP_TOLERANCE
from simulation import Scenario


class SelectionResult(BaseModel):
    """Scenarios close to the goal, sorted by deposit, with the recommended one."""

    scenarios: List[Scenario]
    best: Optional[Scenario] = None

    model_config = {"frozen": True}

    @property
    def found(self) -> bool:
        return self.best is not None

    def is_best(self, scenario: Scenario) -> bool:
        return self.best is not None and scenario.key == self.best.key


def within_tolerance(scenario: Scenario, goal: float) -> bool:
    return DOWN_TOLERANCE * goal <= scenario.final_capital <= UP_TOLERANCE * goal


def compare_scenarios(a: Scenario, b: Scenario, goal: float) -> int:
    """
    Orders scenarios by preference: lower yield first, then smaller overshoot
    of the goal. Returns a negative number when ``a`` is preferred.
    """
    if a.yield_pct != b.yield_pct:
        return -1 if a.yield_pct < b.yield_pct else 1
    a_over, b_over = a.overshoot(goal), b.overshoot(goal)
    if a_over < b_over:
        return -1
    if a_over > b_over:
        return 1
    return 0


def pick_best(scenarios: Sequence[Scenario], goal: float) -> Optional[Scenario]:
    """Most preferred scenario; on exact ties the earliest one wins."""
    if not scenarios:
        return None
    return min(scenarios, key=cmp_to_key(lambda a, b: compare_scenarios(a, b, goal)))


def select_scenarios(
    scenarios: Sequence[Scenario], goal: float, max_deposit: int
) -> SelectionResult:
    """
    Narrows the full scenario set to those within the goal tolerance band,
    always keeping the zero-deposit and max-deposit rows, and picks the best.
    """
    filtered = [s for s in scenarios if within_tolerance(s, goal)]

    seen = {s.key for s in filtered}
    for mandatory in (s for s in scenarios if s.deposit in (0, max_deposit)):
        if mandatory.key not in seen:
            filtered.append(mandatory)
            seen.add(mandatory.key)

    filtered.sort(key=lambda s: s.deposit)
    best = pick_best(filtered, goal)

    if best is None:
        logger.info("No scenario reaches the goal with the provided parameters.")
    else:
        logger.debug(
            f"Kept {len(filtered)} of {len(scenarios)} scenarios; best: deposit {best.deposit}, yield {best.yield_pct}%"
        )
    return SelectionResult(scenarios=filtered, best=best)
