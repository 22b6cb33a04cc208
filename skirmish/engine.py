from typing import List, Optional, Sequence

from .model import BattleState, CombatSquad, LogEntry, Phase, PhaseMeta
from .ops import summarize_squad, sync_squad_derived_stats
from .phases import PHASE_HANDLERS
from .rng import DRNG, RandomLike, as_random_source
from .sample_data import create_sample_battle_squads, create_sample_battle_state_id
from .transitions import resolve_next_phase, transition_phase

__all__ = [
    "BattleEngine",
    "create_battle_state",
    "create_sample_battle_state",
    "engine_tick",
    "summarize_squad",
]


def create_battle_state(id: Optional[str] = None,
                        squads: Optional[Sequence[CombatSquad]] = None,
                        random: RandomLike = None) -> BattleState:
    """Build the initial contact-phase state from two squads.

    The squads are cloned; the engine never aliases caller-owned units.
    """
    if squads is None:
        squads = create_sample_battle_squads()
    state = BattleState(
        id=id if id is not None else create_sample_battle_state_id(),
        phase=Phase.CONTACT,
        squads=(squads[0].clone(), squads[1].clone()),
        phase_meta=PhaseMeta(),
    )
    sync_squad_derived_stats(state)
    return PHASE_HANDLERS[Phase.CONTACT].enter(state, as_random_source(random))


def create_sample_battle_state() -> BattleState:
    return create_battle_state()


def engine_tick(state: BattleState, random: RandomLike = None) -> BattleState:
    """Advance the battle by one tick and return the new state.

    The input state is never mutated. An ended battle is returned as the
    very same object.
    """
    if state.phase == Phase.ENDED:
        return state

    rng = as_random_source(random)
    nxt = state.clone()
    nxt.tick_count += 1
    nxt.elapsed_sec += 1
    nxt = PHASE_HANDLERS[nxt.phase].tick(nxt, rng)

    next_phase = resolve_next_phase(nxt)
    if next_phase is not None:
        nxt = transition_phase(nxt, next_phase, rng)
    return nxt


class BattleEngine:
    """Seeded, stateful driver around engine_tick."""

    def __init__(self, seed: Optional[int], initial_state: BattleState):
        self.state = initial_state
        self._rng = DRNG(seed)

    @property
    def finished(self) -> bool:
        return self.state.phase == Phase.ENDED

    def step(self) -> List[LogEntry]:
        """Advance one tick and return its log entries, oldest first."""
        if self.finished:
            return []
        self.state = engine_tick(self.state, self._rng)
        fresh = [e for e in self.state.log if e.tick == self.state.tick_count]
        fresh.reverse()
        return fresh

    def run(self, max_ticks: int = 500) -> BattleState:
        """Tick until the battle ends or max_ticks is reached."""
        for _ in range(max_ticks):
            if self.finished:
                break
            self.step()
        return self.state

    def snapshot(self) -> BattleState:
        """Return current state."""
        return self.state
