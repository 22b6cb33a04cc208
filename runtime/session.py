"""In-memory session state that battles read from and write back into."""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from skirmish.adapters import Character, CharacterCombatState, NpcSquadTemplate
from skirmish.ops import clamp, round_half_up

logger = logging.getLogger("skirmish.runtime.session")


def _sanitize(update: CharacterCombatState) -> CharacterCombatState:
    max_hp = max(1, round_half_up(update.max_hp))
    hp = clamp(round_half_up(update.hp), 0, max_hp)
    alive = update.alive and hp > 0
    return CharacterCombatState(
        character_id=update.character_id,
        max_hp=max_hp,
        hp=hp if alive else 0,
        morale=clamp(round_half_up(update.morale), 0, 100),
        alive=alive,
        routing=True if not alive else update.routing,
    )


class SessionStore:
    """Character combat conditions and the NPC squads roaming the map."""

    def __init__(self):
        self._combat_states: Dict[str, CharacterCombatState] = {}
        self._npc_squads: Dict[str, NpcSquadTemplate] = {}

    # -- character combat state ---------------------------------------------

    def get_persisted_combat_states(self, character_ids: Iterable[str]
                                    ) -> Dict[str, CharacterCombatState]:
        """Return copies of stored states; characters never hurt are omitted."""
        return {cid: replace(self._combat_states[cid])
                for cid in character_ids if cid in self._combat_states}

    def apply_character_combat_result(self, updates: Iterable[CharacterCombatState]) -> None:
        for update in updates:
            self._combat_states[update.character_id] = _sanitize(update)

    def reset_character_combat_state(self, character_ids: Optional[Iterable[str]] = None) -> None:
        if character_ids is None:
            self._combat_states.clear()
            return
        for cid in character_ids:
            self._combat_states.pop(cid, None)

    # -- npc squads -----------------------------------------------------------

    def register_npc_squad(self, template: NpcSquadTemplate) -> None:
        self._npc_squads[template.id] = template

    def get_npc_squad(self, squad_id: str) -> Optional[NpcSquadTemplate]:
        return self._npc_squads.get(squad_id)

    def remove_npc_squad(self, squad_id: str) -> None:
        if self._npc_squads.pop(squad_id, None) is not None:
            logger.info("npc squad %s eliminated", squad_id)

    def replace_npc_squad_members(self, squad_id: str, members: List[Character]) -> None:
        template = self._npc_squads.get(squad_id)
        if template is None:
            return
        self._npc_squads[squad_id] = replace(template, members=list(members))
