import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from runtime.config import configure_logging, get_settings
from runtime.runner import BattleRunner
from skirmish.engine import create_battle_state
from skirmish.ops import summarize_squad
from skirmish.rng import DRNG
from .schemas import (
    EventsResponse,
    LogEntryOut,
    SquadSummaryOut,
    StartRequest,
    StateOut,
    TimeControl,
)

logger = logging.getLogger("skirmish.api")

runners: Dict[str, BattleRunner] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    for runner in list(runners.values()):
        await runner.stop()
    runners.clear()


app = FastAPI(title="Skirmish Engine API", lifespan=lifespan)

# Enable CORS for development (React runs on different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:5174", "http://localhost:5175"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_runner(battle_id: str) -> BattleRunner:
    runner = runners.get(battle_id)
    if runner is None:
        raise HTTPException(404, f"Battle {battle_id} not found")
    return runner


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Skirmish Engine API",
        "docs": "/docs",
        "battles": len(runners),
    }


@app.post("/battle/start")
async def start_battle(req: StartRequest):
    """Start a new battle, from the given squads or the sample squads."""
    battle_id = req.id or f"battle-{uuid.uuid4().hex[:12]}"
    previous = runners.pop(battle_id, None)
    if previous is not None:
        await previous.stop()

    rng = DRNG(req.seed)
    squads = [s.to_squad() for s in req.squads] if req.squads else None
    if squads is not None:
        squads.sort(key=lambda q: q.side)
    state = create_battle_state(id=battle_id, squads=squads, random=rng)

    runner = BattleRunner.from_settings(state, get_settings(), rng=rng)
    if req.speed is not None:
        runner.set_speed(req.speed)
    runners[battle_id] = runner
    logger.info("battle %s created (seed=%s, autorun=%s)", battle_id, req.seed, req.autorun)

    if req.autorun:
        await runner.start()
    return {"battle_id": battle_id}


@app.get("/battle/{battle_id}/state", response_model=StateOut)
async def get_state(battle_id: str):
    """Get current battle state snapshot."""
    s = await _get_runner(battle_id).snapshot()
    return StateOut.from_state(s)


@app.get("/battle/{battle_id}/summary")
async def get_summary(battle_id: str):
    """Per-squad aggregates for UI panels."""
    s = await _get_runner(battle_id).snapshot()
    return {
        "phase": s.phase.value,
        "winner_side": s.winner_side,
        "squads": [SquadSummaryOut.from_summary(q, summarize_squad(q)) for q in s.squads],
    }


@app.post("/battle/{battle_id}/tick", response_model=StateOut)
async def tick_battle(battle_id: str, count: int = Query(default=1, ge=1, le=500)):
    """Advance the battle by count ticks right away."""
    runner = _get_runner(battle_id)
    runner.step(count)
    return StateOut.from_state(runner.state)


@app.get("/battle/{battle_id}/events", response_model=EventsResponse)
async def get_events(battle_id: str, since: int = 0, limit: int = 500):
    """Get log entries since offset, oldest first."""
    entries, next_offset = _get_runner(battle_id).events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[LogEntryOut(tick=e.tick, phase=e.phase.value, message=e.message) for e in entries],
    )


@app.post("/battle/{battle_id}/run")
async def run_battle(battle_id: str):
    """Let the runner pace the battle in real time."""
    runner = _get_runner(battle_id)
    runner.resume()
    await runner.start()
    return {"running": runner.running, "finished": runner.finished}


@app.post("/battle/{battle_id}/pause")
async def pause_battle(battle_id: str):
    runner = _get_runner(battle_id)
    runner.pause()
    return {"paused": True}


@app.post("/battle/{battle_id}/time-control")
async def set_time_control(battle_id: str, body: TimeControl):
    """Set the speed multiplier (1.0 = real-time, higher = faster)."""
    runner = _get_runner(battle_id)
    runner.set_speed(body.speed)
    return {"speed": runner.speed}


@app.get("/battle/{battle_id}/time-control")
async def get_time_control(battle_id: str):
    """Get current speed multiplier."""
    return {"speed": _get_runner(battle_id).speed}
