"""Pydantic models for simulated emergency events."""

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class SimulationType(str, Enum):
    FIRE = "fire"
    GAS = "gas"
    INTRUDER = "intruder"
    WATER = "water"
    POWER = "power"


class SimulationStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SimulationStatus.COMPLETED, SimulationStatus.CANCELLED)


# Legal moves of the simulation lifecycle.
TRANSITIONS: dict[SimulationStatus, frozenset[SimulationStatus]] = {
    SimulationStatus.SCHEDULED: frozenset({SimulationStatus.IN_PROGRESS, SimulationStatus.CANCELLED}),
    SimulationStatus.IN_PROGRESS: frozenset({SimulationStatus.COMPLETED}),
    SimulationStatus.COMPLETED: frozenset(),
    SimulationStatus.CANCELLED: frozenset(),
}


def can_transition(current: SimulationStatus, target: SimulationStatus) -> bool:
    return target in TRANSITIONS[current]


def to_local_naive(value: datetime | None) -> datetime | None:
    """Convert an aware timestamp to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class SimulationDraft(BaseModel):
    """Submission payload for a new simulated event.

    Accepts either ``scheduled_at`` or the ``scheduled_date`` and
    ``scheduled_time`` pair from the scheduling form.
    """
    type: SimulationType = SimulationType.FIRE
    name: str = Field(min_length=1)
    description: str = ""
    scheduled_at: datetime | None = None
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    affected_devices: list[str] = []
    notify_users: bool = True

    @field_validator("scheduled_at")
    @classmethod
    def _naive_scheduled_at(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value)

    @model_validator(mode="after")
    def _resolve_scheduled_at(self) -> "SimulationDraft":
        if self.scheduled_at is None:
            if self.scheduled_date is None or self.scheduled_time is None:
                raise ValueError("scheduled_at or scheduled_date and scheduled_time are required")
            self.scheduled_at = to_local_naive(
                datetime.combine(self.scheduled_date, self.scheduled_time)
            )
        # affected devices form a set; keep first-seen order
        self.affected_devices = list(dict.fromkeys(self.affected_devices))
        return self


class SimulatedEvent(BaseModel):
    """A scheduled rehearsal of an emergency scenario."""
    id: str
    owner_id: str
    type: SimulationType
    name: str
    description: str = ""
    scheduled_at: datetime
    affected_devices: list[str] = []
    notify_users: bool = True
    status: SimulationStatus = SimulationStatus.SCHEDULED
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("scheduled_at", "created_at", "updated_at")
    @classmethod
    def _naive_timestamps(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id", "version"})
