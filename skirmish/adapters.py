"""Translate roster characters into combat-ready units and squads."""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .constants import ROUT_MORALE_THRESHOLD
from .model import CombatSquad, CombatUnit, Side, UnitStats
from .ops import clamp, round_half_up


@dataclass
class CharacterAbilities:
    strength: int
    agility: int
    intelligence: int
    endurance: int


@dataclass
class CharacterSkills:
    shooting: int = 0
    melee: int = 0
    stealth: int = 0
    scouting: int = 0
    survival: int = 0
    medical: int = 0
    engineering: int = 0
    salvaging: int = 0
    driving: int = 0
    negotiation: int = 0
    taming: int = 0
    crafting: int = 0


@dataclass
class Character:
    id: str
    name: str
    abilities: CharacterAbilities
    skills: CharacterSkills = field(default_factory=CharacterSkills)
    gender: str = "unknown"


@dataclass
class CharacterCombatState:
    """Combat condition a character carries between battles"""
    character_id: str
    max_hp: float
    hp: float
    morale: float
    alive: bool = True
    routing: bool = False


@dataclass
class NpcSquadTemplate:
    id: str
    name: str
    members: List[Character] = field(default_factory=list)


def _max_hp(c: Character) -> int:
    return clamp(round_half_up(70 + c.abilities.endurance * 0.8 + c.abilities.strength * 0.25),
                 60, 150)


def _morale(c: Character) -> int:
    return clamp(round_half_up(55 + c.skills.survival * 1.2 + c.skills.negotiation * 0.8
                               + c.abilities.intelligence * 0.15), 35, 100)


def _firepower(c: Character) -> int:
    return clamp(round_half_up(8 + c.skills.shooting * 0.35 + c.abilities.strength * 0.15
                               + c.skills.melee * 0.1), 8, 26)


def _accuracy(c: Character) -> int:
    return clamp(round_half_up(35 + c.skills.shooting * 2 + c.abilities.agility * 0.2
                               + c.skills.scouting * 0.5), 25, 95)


def _defense(c: Character) -> int:
    return clamp(round_half_up(8 + c.abilities.endurance * 0.12 + c.skills.melee * 0.3), 6, 30)


def _maneuver(c: Character) -> int:
    return clamp(round_half_up(20 + c.abilities.agility * 0.5 + c.skills.stealth * 0.8
                               + c.skills.scouting * 0.7), 20, 95)


def map_character_to_combat_unit(character: Character,
                                 combat_state: Optional[CharacterCombatState] = None) -> CombatUnit:
    """Derive a unit from a character, resuming any persisted combat state."""
    if combat_state is not None:
        max_hp = max(1, round_half_up(combat_state.max_hp))
        hp = clamp(round_half_up(combat_state.hp), 0, max_hp)
        morale = clamp(round_half_up(combat_state.morale), 0, 100)
        alive = combat_state.alive and hp > 0
        routing = True if not alive else combat_state.routing
    else:
        max_hp = _max_hp(character)
        hp = max_hp
        morale = _morale(character)
        alive = hp > 0
        routing = morale <= ROUT_MORALE_THRESHOLD

    return CombatUnit(
        id=character.id,
        name=character.name,
        max_hp=max_hp,
        hp=hp if alive else 0,
        morale=morale,
        alive=alive,
        routing=routing,
        stats=UnitStats(
            firepower=_firepower(character),
            accuracy=_accuracy(character),
            defense=_defense(character),
            maneuver=_maneuver(character),
        ),
    )


def _build_squad(id: str, name: str, side: Side, characters: List[Character],
                 combat_states: Mapping[str, CharacterCombatState]) -> CombatSquad:
    units = [map_character_to_combat_unit(c, combat_states.get(c.id)) for c in characters]
    return CombatSquad(id=id, name=name, side=side, units=units)


def build_player_combat_squad(characters: List[Character],
                              combat_states: Optional[Dict[str, CharacterCombatState]] = None,
                              name: str = "Player Team") -> CombatSquad:
    return _build_squad("player-team", name, "A", characters, combat_states or {})


def build_enemy_combat_squad(template: NpcSquadTemplate,
                             combat_states: Optional[Dict[str, CharacterCombatState]] = None
                             ) -> CombatSquad:
    return _build_squad(template.id, template.name, "B", template.members, combat_states or {})
