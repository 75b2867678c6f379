import asyncio
import datetime as _dt
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from config import PlanConfig
from selection import select_scenarios
from simulation import Scenario, ScenarioSearchEngine
from utils import configure_logging


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class ScenarioRow(BaseModel):
    deposit: int
    yield_pct: int
    final_capital: float
    is_best: bool = False


class ScenarioResponse(BaseModel):
    scenario: str
    total_months: int
    found: bool
    scenarios: List[ScenarioRow]
    best: Optional[ScenarioRow] = None
    scenarios_reaching_goal: int


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ScenarioRequest(BaseModel):
    config: Dict[str, Any] = Field(
        ...,
        description="Plan configuration (same schema as the CLI's JSON config).",
    )
    today: Optional[_dt.date] = Field(
        None,
        description="Reference date for the time horizon. Defaults to the server's current date.",
    )


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(log_filename="server.log")
    logger.info("Savings scenario API starting up")
    yield
    logger.info("Savings scenario API shutting down")


app = FastAPI(
    title="Savings Scenario Calculator API",
    description="Finds monthly deposit and yield combinations that reach a savings goal by a withdraw date.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_config(body: ScenarioRequest) -> PlanConfig:
    today = body.today or _dt.date.today()
    try:
        return PlanConfig.model_validate(body.config, context={"today": today})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid configuration: {e}")


def _row(scenario: Scenario, is_best: bool) -> Dict[str, Any]:
    return {
        "deposit": scenario.deposit,
        "yield_pct": scenario.yield_pct,
        "final_capital": round(scenario.final_capital, 2),
        "is_best": is_best,
    }


def _run_search(config: PlanConfig, today: _dt.date) -> dict:
    """Synchronous search, called via ``asyncio.to_thread``."""
    engine = ScenarioSearchEngine(config)
    total_months, full_scenarios = engine.run(now=today)
    result = select_scenarios(full_scenarios, config.goal, config.max_deposit)

    return {
        "scenario": config.Nickname,
        "total_months": total_months,
        "found": result.found,
        "scenarios": [_row(s, result.is_best(s)) for s in result.scenarios],
        "best": _row(result.best, True) if result.best is not None else None,
        "scenarios_reaching_goal": len(full_scenarios),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.post("/api/validate")
async def validate_config(body: ScenarioRequest):
    """Validate a plan without running the search."""
    config = _parse_config(body)
    return {"valid": True, "scenario": config.Nickname}


@app.post("/api/scenarios", response_model=ScenarioResponse)
async def find_scenarios(body: ScenarioRequest):
    """Run the deposit/yield search and return the scenarios close to the goal."""
    config = _parse_config(body)
    logger.info(f"Received scenario request for plan '{config.Nickname}'")

    try:
        result = await asyncio.to_thread(
            _run_search, config, body.today or _dt.date.today()
        )
    except Exception as e:
        logger.error(f"Scenario search failed: {e}")
        raise HTTPException(status_code=500, detail=f"Search error: {e}")

    logger.info(f"Scenario search complete for '{config.Nickname}'")
    return result


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) > 1 and sys.argv[1] == "--reload":
        uvicorn.run("server:app", host="0.0.0.0", port=8080, reload=True)
    else:
        uvicorn.run(app, host="0.0.0.0", port=8080)
