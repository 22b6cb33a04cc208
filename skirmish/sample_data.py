import time
from typing import Tuple

from .model import CombatSquad, CombatUnit, Side, UnitStats

# (id, name, hp, morale, firepower, accuracy, defense, maneuver)
_SAMPLE_SQUADS = (
    ("sample-squad-a", "Grey Wolf Assault", "A", [
        ("a-1", "Grey Wolf-1", 108, 82, 17, 68, 12, 66),
        ("a-2", "Grey Wolf-2", 100, 78, 16, 64, 14, 61),
        ("a-3", "Grey Wolf-3", 96, 80, 15, 62, 13, 58),
        ("a-4", "Grey Wolf-4", 92, 76, 15, 60, 12, 57),
        ("a-5", "Grey Wolf-5", 88, 74, 14, 58, 12, 55),
    ]),
    ("sample-squad-b", "Rust Nail Guard", "B", [
        ("b-1", "Rust Nail-1", 112, 84, 16, 62, 15, 52),
        ("b-2", "Rust Nail-2", 102, 80, 15, 61, 16, 50),
        ("b-3", "Rust Nail-3", 98, 77, 15, 59, 15, 49),
        ("b-4", "Rust Nail-4", 92, 75, 14, 57, 14, 48),
        ("b-5", "Rust Nail-5", 90, 72, 13, 55, 14, 47),
    ]),
)


def _to_unit(seed) -> CombatUnit:
    uid, name, hp, morale, firepower, accuracy, defense, maneuver = seed
    return CombatUnit(id=uid, name=name, max_hp=hp, hp=hp, morale=morale,
                      stats=UnitStats(firepower, accuracy, defense, maneuver))


def _to_squad(sid: str, name: str, side: Side, seeds) -> CombatSquad:
    return CombatSquad(id=sid, name=name, side=side, units=[_to_unit(s) for s in seeds])


def create_sample_battle_squads() -> Tuple[CombatSquad, CombatSquad]:
    return (_to_squad(*_SAMPLE_SQUADS[0]), _to_squad(*_SAMPLE_SQUADS[1]))


def create_sample_battle_state_id() -> str:
    return f"battle-{int(time.time() * 1000)}"
