"""Enter/tick/exit handlers for every battle phase.

Each handler takes the (already cloned) state plus the random source and
returns the state it was given, after appending at least one log line.
"""
from dataclasses import dataclass
from typing import Callable, Dict

from .constants import CONTACT_SCORE_THRESHOLD, ROUT_MORALE_THRESHOLD, STRAGGLER_ATTRITION_CHANCE
from .model import BattleState, EngagementModifiers, Phase, SideModifiers, other_side
from .ops import (
    append_log,
    average_maneuver,
    clamp,
    count_alive_units,
    describe_exchange,
    round_half_up,
    round_to,
    routing_side_of,
    run_mutual_fire,
    sync_squad_derived_stats,
)
from .rng import RandomSource

Handler = Callable[[BattleState, RandomSource], BattleState]


@dataclass(frozen=True)
class PhaseHandler:
    enter: Handler
    tick: Handler
    exit: Handler


def _identity(state: BattleState, rng: RandomSource) -> BattleState:
    return state


# Engagement tables
CONTACT_MODIFIERS = EngagementModifiers(
    SideModifiers(-0.08, 0.75, False), SideModifiers(-0.08, 0.75, False), 0.9)
FIRE_ADVANTAGE_MODIFIERS = EngagementModifiers(
    SideModifiers(0.0, 1.0, True), SideModifiers(0.0, 1.0, True), 1.1)

MANEUVER_ATTACKER = SideModifiers(0.12, 1.25, True)
MANEUVER_DEFENDER = SideModifiers(-0.08, 0.85, True)
MANEUVER_SUPPRESSION = 1.15

ROUT_PURSUER = SideModifiers(0.14, 1.2, True)
ROUT_ROUTED = SideModifiers(-0.2, 0.6, True)
ROUT_SUPPRESSION = 1.2

PURSUIT_PURSUER = SideModifiers(0.1, 1.05, True)
PURSUIT_ROUTED = SideModifiers(-0.25, 0.55, True)
PURSUIT_SUPPRESSION = 0.95


# -- contact -----------------------------------------------------------------

def _contact_enter(state: BattleState, rng: RandomSource) -> BattleState:
    state.phase_meta.contact_established = False
    state.phase_meta.contact_score = 0.0
    append_log(state, "Both squads enter the contact phase, scouting and trading probing fire.")
    return state


def _contact_tick(state: BattleState, rng: RandomSource) -> BattleState:
    exchange = run_mutual_fire(state, CONTACT_MODIFIERS, rng)
    a, b = state.squads
    gain = ((count_alive_units(a) + count_alive_units(b)) * 0.6
            + (average_maneuver(a) + average_maneuver(b)) * 0.05
            + rng.uniform(2, 8))

    meta = state.phase_meta
    meta.contact_score = clamp(meta.contact_score + gain, 0, 100)
    meta.contact_established = meta.contact_score >= CONTACT_SCORE_THRESHOLD

    describe_exchange(state, f"Closing in ({round_to(meta.contact_score, 1)}%)", exchange)
    return state


def _contact_exit(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "Contact established, the fight for fire superiority begins.")
    return state


# -- fire-advantage ------------------------------------------------------------

def _fire_advantage_enter(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "Both squads open suppressive fire, contesting fire advantage.")
    return state


def _fire_advantage_tick(state: BattleState, rng: RandomSource) -> BattleState:
    exchange = run_mutual_fire(state, FIRE_ADVANTAGE_MODIFIERS, rng)
    describe_exchange(state, "Exchange of fire", exchange)
    return state


def _fire_advantage_exit(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "The fire gap shifted, the maneuver window changes.")
    return state


# -- maneuver ------------------------------------------------------------------

def _maneuver_enter(state: BattleState, rng: RandomSource) -> BattleState:
    meta = state.phase_meta
    if meta.maneuver_prepared_by is None:
        meta.maneuver_prepared_by = "A" if meta.fire_gap >= 0 else "B"
    append_log(state, f"Side {meta.maneuver_prepared_by} launches a maneuver assault "
                      f"to break the line.")
    return state


def _maneuver_tick(state: BattleState, rng: RandomSource) -> BattleState:
    attacker = state.phase_meta.maneuver_prepared_by or "A"
    modifiers = EngagementModifiers.asymmetric(
        attacker, MANEUVER_ATTACKER, MANEUVER_DEFENDER, MANEUVER_SUPPRESSION)
    exchange = run_mutual_fire(state, modifiers, rng)
    describe_exchange(state, "Maneuver assault", exchange)
    return state


def _maneuver_exit(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "The maneuver assault is over.")
    return state


# -- rout ----------------------------------------------------------------------

def _rout_enter(state: BattleState, rng: RandomSource) -> BattleState:
    routing_side = routing_side_of(state)
    state.phase_meta.routing_side = routing_side

    routed = state.squad(routing_side)
    if routed is not None:
        for u in routed.units:
            if not u.alive:
                continue
            u.routing = True
            u.morale = min(u.morale, ROUT_MORALE_THRESHOLD - 2)

    # The winning side rallies anyone whose nerve held
    enemy = state.enemy_of(routing_side)
    if enemy is not None:
        for u in enemy.units:
            if not u.alive or u.morale <= ROUT_MORALE_THRESHOLD:
                continue
            u.routing = False

    sync_squad_derived_stats(state)
    append_log(state, f"Side {routing_side}'s line collapses, it tries to withdraw.")
    return state


def _rout_tick(state: BattleState, rng: RandomSource) -> BattleState:
    routing_side = routing_side_of(state)
    modifiers = EngagementModifiers.asymmetric(
        other_side(routing_side), ROUT_PURSUER, ROUT_ROUTED, ROUT_SUPPRESSION)
    exchange = run_mutual_fire(state, modifiers, rng)

    stragglers = 0
    routed = state.squad(routing_side)
    if routed is not None:
        for u in routed.units:
            if not u.alive or not u.routing:
                continue
            if rng.random() > STRAGGLER_ATTRITION_CHANCE:
                continue

            u.hp = max(0, u.hp - max(1, round_half_up(rng.uniform(2, 6))))
            u.morale = clamp(u.morale - rng.uniform(4, 9), 0, 100)
            if u.hp <= 0:
                u.alive = False
                stragglers += 1

    sync_squad_derived_stats(state)
    describe_exchange(state, f"Disorderly withdrawal ({stragglers} stragglers lost)", exchange)
    return state


def _rout_exit(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "The withdrawal falls apart, the battle turns into pursuit.")
    return state


# -- pursuit -------------------------------------------------------------------

def _pursuit_enter(state: BattleState, rng: RandomSource) -> BattleState:
    state.phase_meta.pursuit_ticks = 0
    state.phase_meta.pursuit_max_ticks = max(1, round_half_up(rng.uniform(1, 3)))
    append_log(state, "The victors give chase while the beaten side tries to break away.")
    return state


def _pursuit_tick(state: BattleState, rng: RandomSource) -> BattleState:
    routing_side = routing_side_of(state)
    modifiers = EngagementModifiers.asymmetric(
        other_side(routing_side), PURSUIT_PURSUER, PURSUIT_ROUTED, PURSUIT_SUPPRESSION)
    exchange = run_mutual_fire(state, modifiers, rng)

    meta = state.phase_meta
    meta.pursuit_ticks += 1
    describe_exchange(state, f"Pursuit ({meta.pursuit_ticks}/{meta.pursuit_max_ticks})", exchange)
    return state


def _pursuit_exit(state: BattleState, rng: RandomSource) -> BattleState:
    append_log(state, "Pursuit over, the squads break contact.")
    return state


# -- ended ---------------------------------------------------------------------

def _ended_enter(state: BattleState, rng: RandomSource) -> BattleState:
    if state.winner_side is None:
        append_log(state, "Battle over: neither side holds the field.")
    else:
        append_log(state, f"Battle over: side {state.winner_side} holds the field.")
    return state


PHASE_HANDLERS: Dict[Phase, PhaseHandler] = {
    Phase.CONTACT: PhaseHandler(_contact_enter, _contact_tick, _contact_exit),
    Phase.FIRE_ADVANTAGE: PhaseHandler(_fire_advantage_enter, _fire_advantage_tick,
                                       _fire_advantage_exit),
    Phase.MANEUVER: PhaseHandler(_maneuver_enter, _maneuver_tick, _maneuver_exit),
    Phase.ROUT: PhaseHandler(_rout_enter, _rout_tick, _rout_exit),
    Phase.PURSUIT: PhaseHandler(_pursuit_enter, _pursuit_tick, _pursuit_exit),
    Phase.ENDED: PhaseHandler(_ended_enter, _identity, _identity),
}

_missing = set(Phase) - set(PHASE_HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for phases: {sorted(p.value for p in _missing)}")
