import asyncio
import logging
from typing import Any, Callable, Optional

from skirmish.constants import BATTLE_TICK_MS, MAX_TICKS_PER_FRAME
from skirmish.engine import engine_tick
from skirmish.model import BattleState, Phase
from skirmish.rng import RandomLike, as_random_source
from .config import RuntimeSettings
from .eventlog import EventLog

logger = logging.getLogger("skirmish.runtime.runner")

EndedCallback = Callable[[BattleState], Any]


class BattleRunner:
    """Async driver that paces engine ticks against wall-clock time.

    Real elapsed time is scaled by the speed multiplier into an accumulator;
    every whole tick_ms in it becomes one engine tick, at most
    max_ticks_per_frame per frame.
    """

    def __init__(self, state: BattleState, rng: RandomLike = None,
                 tick_ms: int = BATTLE_TICK_MS, speed: float = 1.0,
                 max_ticks_per_frame: int = MAX_TICKS_PER_FRAME, frame_ms: int = 16,
                 on_ended: Optional[EndedCallback] = None):
        self.state = state
        self._rng = as_random_source(rng)
        self.tick_ms = tick_ms
        self.max_ticks_per_frame = max_ticks_per_frame
        self.frame_ms = frame_ms
        self.speed = 1.0
        self.set_speed(speed)
        self.paused = False
        self.on_ended = on_ended
        self.outcome: Any = None
        self.events = EventLog()
        self.events.record(state)
        self._accumulator = 0.0
        self._outcome_applied = False
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._finished = asyncio.Event()
        if self.finished:
            self._finished.set()

    @classmethod
    def from_settings(cls, state: BattleState, settings: RuntimeSettings,
                      rng: RandomLike = None,
                      on_ended: Optional[EndedCallback] = None) -> "BattleRunner":
        return cls(state, rng=rng, tick_ms=settings.tick_ms, speed=settings.speed,
                   max_ticks_per_frame=settings.max_ticks_per_frame,
                   frame_ms=settings.frame_ms, on_ended=on_ended)

    @property
    def finished(self) -> bool:
        return self.state.phase == Phase.ENDED

    @property
    def running(self) -> bool:
        return self._task is not None

    def advance(self, delta_real_ms: float) -> int:
        """Feed real elapsed time in; return the number of ticks processed."""
        if self.finished or self.paused or self.speed <= 0:
            return 0

        self._accumulator += max(0.0, delta_real_ms) * self.speed
        ticks = min(self.max_ticks_per_frame, int(self._accumulator // self.tick_ms))
        if ticks <= 0:
            return 0
        self._accumulator -= ticks * self.tick_ms
        return self._run_ticks(ticks)

    def step(self, count: int = 1) -> int:
        """Process up to count ticks immediately, ignoring pacing."""
        return self._run_ticks(max(0, count))

    def _run_ticks(self, count: int) -> int:
        processed = 0
        for _ in range(count):
            if self.finished:
                break
            self.state = engine_tick(self.state, self._rng)
            processed += 1
            self.events.record(self.state)

        if self.finished:
            self._handle_finished()
        return processed

    def _handle_finished(self):
        self._accumulator = 0.0
        self._finished.set()
        if self._outcome_applied:
            return
        self._outcome_applied = True
        logger.info("battle %s ended after %d ticks, winner=%s", self.state.id,
                    self.state.tick_count, self.state.winner_side or "draw")
        if self.on_ended is not None:
            self.outcome = self.on_ended(self.state)

    async def start(self):
        """Start the frame loop."""
        if self._task or self.finished:
            return
        logger.info("battle %s: runner started at %.1fx", self.state.id, self.speed)
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the frame loop gracefully."""
        if not self._task:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("battle %s: runner stopped", self.state.id)

    async def _loop(self):
        """Main frame loop - measure real time, advance engine."""
        loop = asyncio.get_running_loop()
        last = loop.time()
        while not self.finished:
            await asyncio.sleep(self.frame_ms / 1000.0)
            now = loop.time()
            delta_ms = (now - last) * 1000.0
            last = now
            async with self._lock:
                ticks = self.advance(delta_ms)
            if ticks:
                logger.debug("battle %s: processed %d ticks (phase=%s)", self.state.id,
                             ticks, self.state.phase.value)
        self._task = None

    async def wait_finished(self):
        await self._finished.wait()

    async def snapshot(self) -> BattleState:
        """Get current state (thread-safe)."""
        async with self._lock:
            return self.state

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def set_speed(self, speed: float):
        """Update the speed multiplier (1.0 = real-time, 0 = frozen)."""
        self.speed = max(0.0, min(1000.0, speed))
