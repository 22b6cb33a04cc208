from dataclasses import dataclass, field, replace
from typing import Dict, List, Literal, Optional, Tuple
from enum import Enum

Side = Literal["A", "B"]


def other_side(side: Side) -> Side:
    return "B" if side == "A" else "A"


class Phase(Enum):
    """Battle-level state machine states, in script order"""
    CONTACT = "contact"
    FIRE_ADVANTAGE = "fire-advantage"
    MANEUVER = "maneuver"
    ROUT = "rout"
    PURSUIT = "pursuit"
    ENDED = "ended"  # Terminal, absorbing


PHASE_LABELS: Dict[Phase, str] = {
    Phase.CONTACT: "Contact",
    Phase.FIRE_ADVANTAGE: "Fire advantage",
    Phase.MANEUVER: "Maneuver assault",
    Phase.ROUT: "Rout / withdrawal",
    Phase.PURSUIT: "Pursuit / breakaway",
    Phase.ENDED: "Ended",
}


@dataclass(frozen=True)
class UnitStats:
    """Combat stats produced by the unit adapter; never mutated in battle"""
    firepower: int
    accuracy: int
    defense: int
    maneuver: int


@dataclass
class CombatUnit:
    id: str
    name: str
    max_hp: int
    hp: float
    morale: float  # 0..100
    stats: UnitStats
    alive: bool = True
    routing: bool = False

    def clone(self) -> "CombatUnit":
        # stats are frozen and shared between clones
        return replace(self)


@dataclass
class CombatSquad:
    id: str
    name: str
    side: Side
    units: List[CombatUnit] = field(default_factory=list)
    cohesion: float = 100.0  # Derived, see ops.sync_squad_derived_stats
    suppression: float = 0.0  # 0..100
    fire_advantage: float = 0.0  # -200..200
    initial_unit_count: Optional[int] = None  # Alive-ratio denominator

    def __post_init__(self):
        if self.initial_unit_count is None:
            self.initial_unit_count = len(self.units)

    def clone(self) -> "CombatSquad":
        return replace(self, units=[u.clone() for u in self.units])


@dataclass
class PhaseMeta:
    """Phase-local scratch data carried across ticks"""
    since_tick: int = 0
    contact_established: bool = False
    contact_score: float = 0.0  # 0..100
    fire_gap: float = 0.0  # fire_advantage(A) - fire_advantage(B)
    maneuver_prepared_by: Optional[Side] = None
    routing_side: Optional[Side] = None
    pursuit_ticks: int = 0
    pursuit_max_ticks: int = 1


@dataclass(frozen=True)
class LogEntry:
    tick: int
    phase: Phase
    message: str


@dataclass
class BattleState:
    id: str
    phase: Phase
    squads: Tuple[CombatSquad, CombatSquad]
    tick_count: int = 0
    elapsed_sec: int = 0
    winner_side: Optional[Side] = None  # Stays None on a draw
    log: List[LogEntry] = field(default_factory=list)  # Most recent first
    phase_meta: PhaseMeta = field(default_factory=PhaseMeta)

    def clone(self) -> "BattleState":
        """Copy everything mutable; frozen log entries are shared."""
        return replace(
            self,
            squads=(self.squads[0].clone(), self.squads[1].clone()),
            log=list(self.log),
            phase_meta=replace(self.phase_meta),
        )

    def squad(self, side: Side) -> Optional[CombatSquad]:
        for s in self.squads:
            if s.side == side:
                return s
        return None

    def enemy_of(self, side: Side) -> Optional[CombatSquad]:
        for s in self.squads:
            if s.side != side:
                return s
        return None


@dataclass
class VolleyResult:
    damage: int = 0
    hits: int = 0
    kills: int = 0


@dataclass(frozen=True)
class SideModifiers:
    hit_modifier: float
    damage_modifier: float
    allow_routing_fire: bool


@dataclass(frozen=True)
class EngagementModifiers:
    a: SideModifiers
    b: SideModifiers
    suppression_modifier: float

    def for_side(self, side: Side) -> SideModifiers:
        return self.a if side == "A" else self.b

    @classmethod
    def asymmetric(cls, favored: Side, favored_mods: SideModifiers,
                   other_mods: SideModifiers, suppression_modifier: float) -> "EngagementModifiers":
        """Build modifiers where one side gets the favorable set."""
        if favored == "A":
            return cls(favored_mods, other_mods, suppression_modifier)
        return cls(other_mods, favored_mods, suppression_modifier)


@dataclass
class MutualFireExchange:
    a: VolleyResult
    b: VolleyResult


@dataclass(frozen=True)
class SquadSummary:
    """Read-only projection of a squad for UI panels"""
    alive_count: int
    total_count: int
    average_hp: float
    average_morale: float
    suppression: float
    cohesion: float
