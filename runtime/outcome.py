"""Set up encounter battles and write their results back into the session."""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from skirmish.adapters import (
    Character,
    CharacterCombatState,
    build_enemy_combat_squad,
    build_player_combat_squad,
)
from skirmish.engine import create_battle_state
from skirmish.model import BattleState, Side
from skirmish.rng import RandomLike
from .session import SessionStore

logger = logging.getLogger("skirmish.runtime.outcome")


@dataclass
class BattleEncounterRef:
    id: str
    squad_id: str  # NPC squad met on the map
    squad_name: str
    player_label: str = "Player Team"
    source_type: str = "map-npc-squad"
    started_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BattleOutcomeSummary:
    encounter_id: str
    winner_side: Optional[Side]
    player_alive_count: int
    player_total_count: int
    enemy_alive_count: int
    enemy_total_count: int
    enemy_eliminated: bool
    message: str


def resolve_encounter_battle(encounter: Optional[BattleEncounterRef], characters: List[Character],
                             store: SessionStore, random: RandomLike = None
                             ) -> Tuple[Optional[BattleState], Optional[str]]:
    """Return (state, None), or (None, reason) when the battle cannot start."""
    if encounter is None:
        return None, "Select an NPC squad on the map to start a battle."
    if not characters:
        return None, "Your team has nobody fit to fight."

    template = store.get_npc_squad(encounter.squad_id)
    if template is None or not template.members:
        return None, "The target squad is gone or has nobody left to fight."

    player_states = store.get_persisted_combat_states(c.id for c in characters)
    player = build_player_combat_squad(characters, player_states, encounter.player_label)
    enemy = build_enemy_combat_squad(template)
    return create_battle_state(id=encounter.id, squads=(player, enemy), random=random), None


def _alive_counts(state: BattleState, side: Side) -> Tuple[int, int]:
    squad = state.squad(side)
    if squad is None:
        return 0, 0
    return sum(1 for u in squad.units if u.alive), len(squad.units)


def _summary_message(winner_side: Optional[Side], player: Tuple[int, int],
                     enemy: Tuple[int, int]) -> str:
    if winner_side is None:
        label = "Draw"
    elif winner_side == "A":
        label = "Victory"
    else:
        label = "Defeat"
    return (f"{label}. Team alive {player[0]}/{player[1]}, "
            f"enemy alive {enemy[0]}/{enemy[1]}.")


def apply_battle_outcome(state: BattleState, encounter: BattleEncounterRef,
                         store: SessionStore) -> BattleOutcomeSummary:
    player_squad = state.squad("A")
    if player_squad is not None:
        store.apply_character_combat_result(
            CharacterCombatState(character_id=u.id, max_hp=u.max_hp, hp=u.hp,
                                 morale=u.morale, alive=u.alive, routing=u.routing)
            for u in player_squad.units)

    enemy_squad = state.squad("B")
    template = store.get_npc_squad(encounter.squad_id)
    if enemy_squad is not None and template is not None:
        units = {u.id: u for u in enemy_squad.units}
        survivors = [m for m in template.members if m.id not in units or units[m.id].alive]
        if survivors:
            store.replace_npc_squad_members(encounter.squad_id, survivors)
        else:
            store.remove_npc_squad(encounter.squad_id)

    player = _alive_counts(state, "A")
    enemy = _alive_counts(state, "B")
    summary = BattleOutcomeSummary(
        encounter_id=encounter.id,
        winner_side=state.winner_side,
        player_alive_count=player[0],
        player_total_count=player[1],
        enemy_alive_count=enemy[0],
        enemy_total_count=enemy[1],
        enemy_eliminated=enemy[0] == 0,
        message=_summary_message(state.winner_side, player, enemy),
    )
    logger.info("encounter %s resolved: %s", encounter.id, summary.message)
    return summary
