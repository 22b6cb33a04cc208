import logging
from typing import Optional

from .constants import (
    FIRE_GAP_BACK_TO_FIRE,
    FIRE_GAP_TO_MANEUVER,
    ROUT_MORALE_THRESHOLD,
    SURVIVE_THRESHOLD,
)
from .model import BattleState, Phase, Side
from .ops import (
    alive_ratio,
    average_morale,
    count_alive_units,
    is_squad_defeated,
    resolve_routing_side,
    routing_side_of,
    sync_squad_derived_stats,
    total_alive_hp,
)
from .phases import PHASE_HANDLERS
from .rng import RandomSource

logger = logging.getLogger("skirmish.transitions")

ACTIVE_PHASES = (Phase.CONTACT, Phase.FIRE_ADVANTAGE, Phase.MANEUVER)


def _is_broken(state: BattleState, side: Side) -> bool:
    squad = state.squad(side)
    return (average_morale(squad) < ROUT_MORALE_THRESHOLD
            or alive_ratio(squad) < SURVIVE_THRESHOLD)


def resolve_rout_trigger(state: BattleState) -> Optional[Side]:
    """Return the side that should rout now, if any."""
    if state.squad("A") is None or state.squad("B") is None:
        return None

    a_broken = _is_broken(state, "A")
    b_broken = _is_broken(state, "B")
    if a_broken and b_broken:
        return resolve_routing_side(state)
    if a_broken:
        return "A"
    if b_broken:
        return "B"
    return None


def resolve_next_phase(state: BattleState) -> Optional[Phase]:
    """Decide whether the battle moves on after this tick.

    Records routing_side / maneuver_prepared_by on the phase meta when the
    chosen transition needs them.
    """
    meta = state.phase_meta

    if state.phase in ACTIVE_PHASES:
        rout_side = resolve_rout_trigger(state)
        if rout_side is not None:
            meta.routing_side = rout_side
            return Phase.ROUT

    if state.phase == Phase.CONTACT:
        return Phase.FIRE_ADVANTAGE if meta.contact_established else None

    if state.phase == Phase.FIRE_ADVANTAGE:
        if abs(meta.fire_gap) >= FIRE_GAP_TO_MANEUVER:
            meta.maneuver_prepared_by = "A" if meta.fire_gap >= 0 else "B"
            return Phase.MANEUVER
        return None

    if state.phase == Phase.MANEUVER:
        if abs(meta.fire_gap) < FIRE_GAP_BACK_TO_FIRE:
            return Phase.FIRE_ADVANTAGE
        return None

    if state.phase == Phase.ROUT:
        routed = state.squad(routing_side_of(state))
        if routed is not None and is_squad_defeated(routed):
            return Phase.PURSUIT
        return None

    if state.phase == Phase.PURSUIT:
        routed = state.squad(routing_side_of(state))
        if routed is not None and is_squad_defeated(routed):
            return Phase.ENDED
        if meta.pursuit_ticks >= meta.pursuit_max_ticks:
            return Phase.ENDED
        return None

    return None


def resolve_winner_side(state: BattleState) -> Optional[Side]:
    """Winner by defeat, then alive count, then remaining hp; None is a draw."""
    squad_a = state.squad("A")
    squad_b = state.squad("B")
    if squad_a is None or squad_b is None:
        return None

    a_defeated = is_squad_defeated(squad_a)
    b_defeated = is_squad_defeated(squad_b)
    if a_defeated and b_defeated:
        return None
    if a_defeated:
        return "B"
    if b_defeated:
        return "A"

    alive_a = count_alive_units(squad_a)
    alive_b = count_alive_units(squad_b)
    if alive_a != alive_b:
        return "A" if alive_a > alive_b else "B"

    hp_a = total_alive_hp(squad_a)
    hp_b = total_alive_hp(squad_b)
    if hp_a == hp_b:
        return None
    return "A" if hp_a > hp_b else "B"


def transition_phase(state: BattleState, next_phase: Phase, rng: RandomSource) -> BattleState:
    if state.phase == next_phase:
        return state

    previous = state.phase
    state = PHASE_HANDLERS[previous].exit(state, rng)
    state.phase = next_phase
    state.phase_meta.since_tick = state.tick_count

    if next_phase == Phase.ENDED:
        state.winner_side = resolve_winner_side(state)

    state = PHASE_HANDLERS[next_phase].enter(state, rng)
    sync_squad_derived_stats(state)

    logger.debug("battle %s: %s -> %s at tick %d", state.id, previous.value,
                 next_phase.value, state.tick_count)
    return state
