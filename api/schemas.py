from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, model_validator

from skirmish.model import PHASE_LABELS, BattleState, CombatSquad, CombatUnit, SquadSummary, UnitStats

class UnitStatsIn(BaseModel):
    """Combat stats, already bounded by the unit adapter."""
    firepower: int = Field(gt=0)
    accuracy: int = Field(gt=0)
    defense: int = Field(gt=0)
    maneuver: int = Field(gt=0)

class UnitIn(BaseModel):
    """Unit definition schema."""
    id: str
    name: str
    max_hp: int = Field(gt=0)
    hp: Optional[float] = None  # Defaults to max_hp
    morale: float = Field(default=100, ge=0, le=100)
    alive: bool = True
    routing: bool = False
    stats: UnitStatsIn

    def to_unit(self) -> CombatUnit:
        return CombatUnit(
            id=self.id, name=self.name, max_hp=self.max_hp,
            hp=self.max_hp if self.hp is None else self.hp,
            morale=self.morale, alive=self.alive, routing=self.routing,
            stats=UnitStats(**self.stats.model_dump()),
        )

class SquadIn(BaseModel):
    """Squad definition schema."""
    id: str
    name: str
    side: Literal["A", "B"]
    units: List[UnitIn] = Field(min_length=1)

    def to_squad(self) -> CombatSquad:
        return CombatSquad(id=self.id, name=self.name, side=self.side,
                           units=[u.to_unit() for u in self.units])

class StartRequest(BaseModel):
    """Battle start request schema."""
    seed: Optional[int] = 42
    id: Optional[str] = None
    squads: Optional[Tuple[SquadIn, SquadIn]] = None  # Sample squads when omitted
    speed: Optional[float] = Field(default=None, ge=0)  # Settings speed when omitted
    autorun: bool = False

    @model_validator(mode="after")
    def check_one_squad_per_side(self):
        if self.squads is not None and {s.side for s in self.squads} != {"A", "B"}:
            raise ValueError("squads must contain exactly one side A and one side B")
        return self

class TimeControl(BaseModel):
    speed: float = Field(ge=0, le=1000)

class UnitOut(BaseModel):
    id: str
    name: str
    max_hp: int
    hp: float
    morale: float
    alive: bool
    routing: bool
    stats: UnitStatsIn

class SquadOut(BaseModel):
    id: str
    name: str
    side: Literal["A", "B"]
    cohesion: float
    suppression: float
    fire_advantage: float
    initial_unit_count: int
    units: List[UnitOut]

class PhaseMetaOut(BaseModel):
    since_tick: int
    contact_established: bool
    contact_score: float
    fire_gap: float
    maneuver_prepared_by: Optional[Literal["A", "B"]]
    routing_side: Optional[Literal["A", "B"]]
    pursuit_ticks: int
    pursuit_max_ticks: int

class LogEntryOut(BaseModel):
    tick: int
    phase: str
    message: str

class StateOut(BaseModel):
    """Battle state snapshot schema."""
    id: str
    phase: str
    phase_label: str
    tick_count: int
    elapsed_sec: int
    winner_side: Optional[Literal["A", "B"]]
    squads: List[SquadOut]
    phase_meta: PhaseMetaOut
    log: List[LogEntryOut]  # Most recent first

    @classmethod
    def from_state(cls, s: BattleState) -> "StateOut":
        return cls(
            id=s.id,
            phase=s.phase.value,
            phase_label=PHASE_LABELS[s.phase],
            tick_count=s.tick_count,
            elapsed_sec=s.elapsed_sec,
            winner_side=s.winner_side,
            squads=[_squad_out(q) for q in s.squads],
            phase_meta=PhaseMetaOut(**vars(s.phase_meta)),
            log=[LogEntryOut(tick=e.tick, phase=e.phase.value, message=e.message) for e in s.log],
        )

def _squad_out(q: CombatSquad) -> SquadOut:
    return SquadOut(
        id=q.id, name=q.name, side=q.side, cohesion=q.cohesion, suppression=q.suppression,
        fire_advantage=q.fire_advantage, initial_unit_count=q.initial_unit_count,
        units=[
            UnitOut(id=u.id, name=u.name, max_hp=u.max_hp, hp=u.hp, morale=u.morale,
                    alive=u.alive, routing=u.routing, stats=UnitStatsIn(**vars(u.stats)))
            for u in q.units
        ],
    )

class SquadSummaryOut(BaseModel):
    side: Literal["A", "B"]
    name: str
    alive_count: int
    total_count: int
    average_hp: float
    average_morale: float
    suppression: float
    cohesion: float

    @classmethod
    def from_summary(cls, q: CombatSquad, summary: SquadSummary) -> "SquadSummaryOut":
        return cls(side=q.side, name=q.name, **vars(summary))

class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: List[LogEntryOut]
