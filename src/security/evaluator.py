"""Access and due-time decisions over a security posture.

Everything in this module is pure: no I/O, no clock reads. Callers pass the
point in time they want evaluated.
"""

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel

from config import settings
from src.models.security import AccessSchedule, SecurityPosture
from src.models.simulation import SimulatedEvent, SimulationStatus, to_local_naive


class AccessDecision(BaseModel):
    """Outcome of a combined access check."""
    allowed: bool
    reason: str


def schedule_matches(schedule: AccessSchedule, user_id: str | None, at_time: datetime) -> bool:
    """Whether ``schedule`` admits ``user_id`` at ``at_time``.

    The window is ``[start, end)`` and never wraps past midnight.
    """
    if not schedule.applies_to_user(user_id):
        return False
    if at_time.weekday() not in schedule.day_pattern.weekdays():
        return False
    return schedule.start <= at_time.time() < schedule.end


def is_access_permitted(
    posture: SecurityPosture,
    device_id: str,
    user_id: str | None,
    at_time: datetime,
) -> bool:
    """A device with no schedules is unrestricted; otherwise some schedule must match."""
    schedules = posture.schedules_for_device(device_id)
    if not schedules:
        return True
    return any(schedule_matches(s, user_id, at_time) for s in schedules)


def is_sensitive_type(device_type: str, sensitive_types: Iterable[str] | None = None) -> bool:
    if sensitive_types is None:
        sensitive_types = settings.sensitive_device_types
    return str(getattr(device_type, "value", device_type)).lower() in {t.lower() for t in sensitive_types}


def is_sensitive_device_access_allowed(
    posture: SecurityPosture,
    device_type: str,
    override: bool = False,
    sensitive_types: Iterable[str] | None = None,
) -> bool:
    """Protected sensitive devices (cameras, locks) are blocked unless overridden."""
    if override or not posture.sensitive_devices_protected:
        return True
    return not is_sensitive_type(device_type, sensitive_types)


def check_access(
    posture: SecurityPosture,
    device_id: str,
    device_type: str | None,
    user_id: str | None,
    at_time: datetime,
    override: bool = False,
) -> AccessDecision:
    """Run the sensitive-device gate and the schedule check together."""
    if device_type and not is_sensitive_device_access_allowed(posture, device_type, override):
        return AccessDecision(allowed=False, reason="sensitive device protection is enabled")

    schedules = posture.schedules_for_device(device_id)
    if not schedules:
        return AccessDecision(allowed=True, reason="no access schedule for device")
    if any(schedule_matches(s, user_id, at_time) for s in schedules):
        return AccessDecision(allowed=True, reason="within scheduled access window")
    return AccessDecision(allowed=False, reason="outside every access schedule for device")


def is_event_due(event: SimulatedEvent, at_time: datetime) -> bool:
    return (
        event.status == SimulationStatus.SCHEDULED
        and event.scheduled_at <= to_local_naive(at_time)
    )


def due_events(events: Iterable[SimulatedEvent], at_time: datetime) -> list[SimulatedEvent]:
    """Scheduled events whose start time has arrived, earliest first."""
    return sorted(
        (e for e in events if is_event_due(e, at_time)),
        key=lambda e: e.scheduled_at,
    )
