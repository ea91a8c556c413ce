"""Pydantic models for security postures and access schedules."""

import re
from datetime import datetime, time
from enum import Enum

from pydantic import BaseModel, Field, field_validator

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class DayPattern(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    ALL = "all"

    def weekdays(self) -> frozenset[int]:
        """Python weekday numbers (Monday == 0) covered by this pattern."""
        if self is DayPattern.WEEKDAYS:
            return frozenset(range(5))
        if self is DayPattern.WEEKENDS:
            return frozenset({5, 6})
        if self is DayPattern.ALL:
            return frozenset(range(7))
        return frozenset({_SINGLE_DAYS.index(self)})


_SINGLE_DAYS = [
    DayPattern.MONDAY,
    DayPattern.TUESDAY,
    DayPattern.WEDNESDAY,
    DayPattern.THURSDAY,
    DayPattern.FRIDAY,
    DayPattern.SATURDAY,
    DayPattern.SUNDAY,
]


def parse_time_of_day(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string."""
    match = _TIME_RE.match(value)
    if not match:
        raise ValueError(f"Expected HH:MM time, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


class AccessSchedule(BaseModel):
    """A time-window access rule for one device.

    ``start_time`` is not required to precede ``end_time``; an inverted
    window is kept as entered and never matches.
    """
    id: str = ""
    device_id: str
    user_id: str | None = None
    day_pattern: DayPattern = DayPattern.MONDAY
    start_time: str = "09:00"
    end_time: str = "17:00"

    @field_validator("device_id")
    @classmethod
    def _device_id_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("device_id is required")
        return value

    @field_validator("user_id")
    @classmethod
    def _blank_user_means_everyone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        parse_time_of_day(value)
        return value

    @property
    def start(self) -> time:
        return parse_time_of_day(self.start_time)

    @property
    def end(self) -> time:
        return parse_time_of_day(self.end_time)

    def applies_to_user(self, user_id: str | None) -> bool:
        return self.user_id is None or self.user_id == user_id


class EmergencyResponse(BaseModel):
    """Automatic emergency-response toggles kept on the posture."""
    water_sprinkler_enabled: bool = False
    water_sprinkler_response_seconds: int = Field(default=30, ge=0)
    ventilation_enabled: bool = False
    ventilation_trigger_ppm: int = Field(default=1000, ge=0)
    emergency_lighting_enabled: bool = False


class SecurityPosture(BaseModel):
    """Aggregate security configuration for one admin account."""
    owner_id: str
    system_armed: bool = False
    sensitive_devices_protected: bool = True
    access_schedules: dict[str, AccessSchedule] = {}
    emergency_response: EmergencyResponse = EmergencyResponse()
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def schedules_for_device(self, device_id: str) -> list[AccessSchedule]:
        return [s for s in self.access_schedules.values() if s.device_id == device_id]

    def to_document(self) -> dict:
        """Serialize for the document store (version is tracked by the store)."""
        return self.model_dump(mode="json", exclude={"version"})
