"""Shared builders for battle tests."""
import pytest

from skirmish.engine import create_battle_state
from skirmish.model import CombatSquad, CombatUnit, UnitStats
from skirmish.rng import CallableSource


def build_unit(uid: str, morale: float = 75, hp: int = 100, firepower: int = 14,
               accuracy: int = 62, defense: int = 12, maneuver: int = 55) -> CombatUnit:
    return CombatUnit(id=uid, name=uid, max_hp=hp, hp=hp, morale=morale,
                      stats=UnitStats(firepower, accuracy, defense, maneuver))


def build_squad(side: str, size: int = 4, **unit_kwargs) -> CombatSquad:
    units = [build_unit(f"{side}-{i + 1}", **unit_kwargs) for i in range(size)]
    return CombatSquad(id=f"squad-{side}", name=f"Squad {side}", side=side, units=units)


def build_state(size: int = 4):
    return create_battle_state(id="test-battle", squads=(build_squad("A", size), build_squad("B", size)))


def scripted(*values: float) -> CallableSource:
    """Random source returning the given draws in order."""
    it = iter(values)
    return CallableSource(lambda: next(it))


class CountingSource(CallableSource):
    """Constant random source that counts draws."""

    def __init__(self, value: float):
        self.draws = 0

        def draw():
            self.draws += 1
            return value

        super().__init__(draw)


@pytest.fixture
def state():
    return build_state()
