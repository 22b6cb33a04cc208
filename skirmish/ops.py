"""Squad math and the volley primitive shared by every phase handler.

All functions here mutate the squads/state they are handed. The engine
driver only ever hands them private clones, so caller-owned state is never
touched.
"""
import math
from typing import List, Optional

from .constants import (
    COHESION_SUPPRESSION_WEIGHT,
    FIRE_ADVANTAGE_LIMIT,
    HIT_CHANCE,
    MAX_LOG_ENTRIES,
    PASSIVE_SUPPRESSION_DECAY,
    ROUT_MORALE_THRESHOLD,
    ROUTING_SKIP_FIRE_CHANCE,
    TEAM_SHOCK_MORALE_PENALTY,
)
from .model import (
    BattleState,
    CombatSquad,
    CombatUnit,
    EngagementModifiers,
    LogEntry,
    MutualFireExchange,
    Side,
    SideModifiers,
    SquadSummary,
    VolleyResult,
)
from .rng import RandomSource


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward +inf."""
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int = 1) -> float:
    base = 10 ** digits
    return round_half_up(value * base) / base


def alive_units(squad: CombatSquad) -> List[CombatUnit]:
    return [u for u in squad.units if u.alive]


def count_alive_units(squad: CombatSquad) -> int:
    return len(alive_units(squad))


def _average(squad: CombatSquad, attr) -> float:
    units = alive_units(squad)
    if not units:
        return 0.0
    return sum(attr(u) for u in units) / len(units)


def average_morale(squad: CombatSquad) -> float:
    return _average(squad, lambda u: u.morale)


def average_hp(squad: CombatSquad) -> float:
    return _average(squad, lambda u: u.hp)


def average_maneuver(squad: CombatSquad) -> float:
    return _average(squad, lambda u: u.stats.maneuver)


def alive_ratio(squad: CombatSquad) -> float:
    if not squad.initial_unit_count or squad.initial_unit_count <= 0:
        return 0.0
    return count_alive_units(squad) / squad.initial_unit_count


def total_alive_hp(squad: CombatSquad) -> float:
    return sum(u.hp for u in alive_units(squad))


def is_squad_defeated(squad: CombatSquad) -> bool:
    """A squad is defeated when nobody is left standing and fighting."""
    units = alive_units(squad)
    if not units:
        return True
    return all(u.routing for u in units)


def append_log(state: BattleState, message: str) -> None:
    state.log = [LogEntry(state.tick_count, state.phase, message)] + state.log
    del state.log[MAX_LOG_ENTRIES:]


def sync_squad_derived_stats(state: BattleState) -> None:
    """Clamp unit/squad values and recompute cohesion and the fire gap."""
    for squad in state.squads:
        for u in squad.units:
            if not u.alive:
                u.hp = 0
                u.routing = True
                continue

            u.hp = clamp(u.hp, 0, u.max_hp)
            u.morale = clamp(u.morale, 0, 100)
            if u.morale <= ROUT_MORALE_THRESHOLD:
                u.routing = True

        squad.suppression = clamp(squad.suppression, 0, 100)
        squad.cohesion = clamp(
            round_to(average_morale(squad) - squad.suppression * COHESION_SUPPRESSION_WEIGHT, 1),
            0, 100)
        squad.fire_advantage = clamp(
            round_to(squad.fire_advantage, 2), -FIRE_ADVANTAGE_LIMIT, FIRE_ADVANTAGE_LIMIT)

    state.phase_meta.fire_gap = round_to(
        state.squads[0].fire_advantage - state.squads[1].fire_advantage, 2)


def _apply_team_morale_penalty(squad: CombatSquad, amount: float,
                               excluded_unit_id: Optional[str] = None) -> None:
    for u in squad.units:
        if not u.alive or u.id == excluded_unit_id:
            continue
        u.morale = clamp(u.morale - amount, 0, 100)


def _pick_random_alive_target(squad: CombatSquad, rng: RandomSource) -> Optional[CombatUnit]:
    units = alive_units(squad)
    if not units:
        return None
    return units[rng.index(len(units))]


def resolve_volley(attacker: CombatSquad, defender: CombatSquad, modifiers: SideModifiers,
                   suppression_modifier: float, rng: RandomSource) -> VolleyResult:
    """Fire every living attacker once at a random living defender."""
    result = VolleyResult()

    for shooter in alive_units(attacker):
        routing_shooter = shooter.routing
        if routing_shooter and not modifiers.allow_routing_fire:
            continue
        if routing_shooter and rng.bernoulli(ROUTING_SKIP_FIRE_CHANCE):
            continue

        target = _pick_random_alive_target(defender, rng)
        if target is None:
            break

        aimed = (0.35
                 + shooter.stats.accuracy * 0.01
                 - target.stats.defense * 0.006
                 + modifiers.hit_modifier
                 + (-0.1 if routing_shooter else 0.0))
        # Bounds are passed as clamp(0.05, 0.95, aimed), which always yields
        # HIT_CHANCE; recorded replays depend on it.
        hit_chance = clamp(0.05, HIT_CHANCE, aimed)
        if rng.random() > hit_chance:
            continue

        raw_damage = (shooter.stats.firepower * modifiers.damage_modifier * rng.uniform(0.8, 1.2)
                      - target.stats.defense * 0.15)
        damage = max(1, round_half_up(raw_damage))

        target.hp = max(0, target.hp - damage)
        target.morale = clamp(target.morale - rng.uniform(8, 16), 0, 100)
        defender.suppression = clamp(
            defender.suppression + (4 + damage * 0.3) * suppression_modifier, 0, 100)

        result.damage += damage
        result.hits += 1

        if target.hp <= 0:
            target.alive = False
            target.routing = True
            result.kills += 1
            _apply_team_morale_penalty(defender, TEAM_SHOCK_MORALE_PENALTY, target.id)

    return result


def run_mutual_fire(state: BattleState, modifiers: EngagementModifiers,
                    rng: RandomSource) -> MutualFireExchange:
    """Resolve A's volley then B's, then update fire advantage and suppression."""
    squad_a = state.squad("A")
    squad_b = state.squad("B")
    if squad_a is None or squad_b is None:
        return MutualFireExchange(VolleyResult(), VolleyResult())

    volley_a = resolve_volley(squad_a, squad_b, modifiers.a, modifiers.suppression_modifier, rng)
    volley_b = resolve_volley(squad_b, squad_a, modifiers.b, modifiers.suppression_modifier, rng)

    squad_a.fire_advantage += (volley_a.damage + volley_a.hits * 2 + volley_a.kills * 8
                               - volley_b.damage * 0.35)
    squad_b.fire_advantage += (volley_b.damage + volley_b.hits * 2 + volley_b.kills * 8
                               - volley_a.damage * 0.35)

    # Passive recovery for a side nobody managed to hit
    if volley_b.hits == 0:
        squad_a.suppression = clamp(squad_a.suppression - PASSIVE_SUPPRESSION_DECAY, 0, 100)
    if volley_a.hits == 0:
        squad_b.suppression = clamp(squad_b.suppression - PASSIVE_SUPPRESSION_DECAY, 0, 100)

    sync_squad_derived_stats(state)
    return MutualFireExchange(volley_a, volley_b)


def resolve_routing_side(state: BattleState) -> Side:
    """Pick which side routs when both are broken at once."""
    squad_a = state.squad("A")
    squad_b = state.squad("B")
    if squad_a is None or squad_b is None:
        return "A"

    morale_a = average_morale(squad_a)
    morale_b = average_morale(squad_b)
    if morale_a == morale_b:
        return "A" if alive_ratio(squad_a) <= alive_ratio(squad_b) else "B"
    return "A" if morale_a < morale_b else "B"


def routing_side_of(state: BattleState) -> Side:
    """Side recorded as routing, falling back to the tie-break."""
    if state.phase_meta.routing_side is not None:
        return state.phase_meta.routing_side
    return resolve_routing_side(state)


def describe_exchange(state: BattleState, prefix: str, exchange: MutualFireExchange) -> None:
    append_log(
        state,
        f"{prefix}: A dealt {exchange.a.damage} dmg/{exchange.a.kills} kills, "
        f"B dealt {exchange.b.damage} dmg/{exchange.b.kills} kills, "
        f"fire gap {round_to(state.phase_meta.fire_gap, 1)}")


def summarize_squad(squad: CombatSquad) -> SquadSummary:
    return SquadSummary(
        alive_count=count_alive_units(squad),
        total_count=squad.initial_unit_count,
        average_hp=round_to(average_hp(squad), 1),
        average_morale=round_to(average_morale(squad), 1),
        suppression=round_to(squad.suppression, 1),
        cohesion=round_to(squad.cohesion, 1),
    )
