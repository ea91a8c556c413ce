"""Tests for the access and due-time evaluator."""

from datetime import datetime, timedelta, timezone

import pytest

from src.models.device import DeviceType
from src.models.security import AccessSchedule, DayPattern, SecurityPosture
from src.models.simulation import SimulatedEvent, SimulationStatus, SimulationType
from src.security.evaluator import (
    check_access,
    due_events,
    is_access_permitted,
    is_event_due,
    is_sensitive_device_access_allowed,
)

TUESDAY_10 = datetime(2026, 10, 13, 10, 0)
TUESDAY_20 = datetime(2026, 10, 13, 20, 0)
SATURDAY_10 = datetime(2026, 10, 17, 10, 0)


def _posture(*schedules: AccessSchedule, **kwargs) -> SecurityPosture:
    return SecurityPosture(
        owner_id="admin-1",
        access_schedules={s.id: s for s in schedules},
        **kwargs,
    )


def _schedule(schedule_id: str = "s1", **kwargs) -> AccessSchedule:
    fields = {
        "device_id": "lock-1",
        "day_pattern": DayPattern.WEEKDAYS,
        "start_time": "09:00",
        "end_time": "17:00",
    }
    fields.update(kwargs)
    return AccessSchedule(id=schedule_id, **fields)


class TestIsAccessPermitted:

    def test_weekday_window(self):
        posture = _posture(_schedule())

        assert is_access_permitted(posture, "lock-1", "user-5", TUESDAY_10) is True
        assert is_access_permitted(posture, "lock-1", "user-5", SATURDAY_10) is False
        assert is_access_permitted(posture, "lock-1", "user-5", TUESDAY_20) is False

    def test_device_without_schedules_is_unrestricted(self):
        posture = _posture(_schedule(device_id="lock-1"))

        for hour in range(24):
            at = datetime(2026, 10, 17, hour, 30)
            assert is_access_permitted(posture, "camera-2", "user-5", at) is True

    def test_empty_posture_is_unrestricted(self):
        assert is_access_permitted(_posture(), "lock-1", None, TUESDAY_20) is True

    @pytest.mark.parametrize("start", [datetime(1999, 3, 1), datetime(2026, 1, 1), datetime(2044, 7, 15)])
    def test_all_days_pattern_covers_every_weekday(self, start):
        posture = _posture(_schedule(day_pattern=DayPattern.ALL))

        for offset in range(7):
            at = (start + timedelta(days=offset)).replace(hour=12)
            assert is_access_permitted(posture, "lock-1", "anyone", at) is True

    def test_window_is_half_open(self):
        posture = _posture(_schedule())

        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=9, minute=0)) is True
        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=16, minute=59)) is True
        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=17, minute=0)) is False

    def test_user_specific_schedule(self):
        posture = _posture(_schedule(user_id="user-5"))

        assert is_access_permitted(posture, "lock-1", "user-5", TUESDAY_10) is True
        assert is_access_permitted(posture, "lock-1", "user-6", TUESDAY_10) is False
        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10) is False

    def test_blank_user_applies_to_everyone(self):
        posture = _posture(_schedule(user_id="  "))

        assert posture.access_schedules["s1"].user_id is None
        assert is_access_permitted(posture, "lock-1", "user-9", TUESDAY_10) is True

    def test_single_day_and_weekends(self):
        posture = _posture(
            _schedule("s1", day_pattern=DayPattern.TUESDAY, start_time="08:00", end_time="09:00"),
            _schedule("s2", day_pattern=DayPattern.WEEKENDS),
        )

        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=8, minute=15)) is True
        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10) is False
        assert is_access_permitted(posture, "lock-1", None, SATURDAY_10) is True

    def test_inverted_window_never_matches(self):
        posture = _posture(_schedule(day_pattern=DayPattern.ALL, start_time="22:00", end_time="06:00"))

        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=23)) is False
        assert is_access_permitted(posture, "lock-1", None, TUESDAY_10.replace(hour=2)) is False


class TestSensitiveDevices:

    def test_protected_blocks_cameras_and_locks(self):
        posture = _posture(sensitive_devices_protected=True)

        assert is_sensitive_device_access_allowed(posture, DeviceType.CAMERA) is False
        assert is_sensitive_device_access_allowed(posture, "lock") is False
        assert is_sensitive_device_access_allowed(posture, DeviceType.LIGHT) is True

    def test_unprotected_allows_everything(self):
        posture = _posture(sensitive_devices_protected=False)

        assert is_sensitive_device_access_allowed(posture, DeviceType.CAMERA) is True

    def test_override(self):
        posture = _posture(sensitive_devices_protected=True)

        assert is_sensitive_device_access_allowed(posture, "camera", override=True) is True

    def test_custom_sensitive_types(self):
        posture = _posture()

        assert is_sensitive_device_access_allowed(posture, "door", sensitive_types=["door"]) is False
        assert is_sensitive_device_access_allowed(posture, "lock", sensitive_types=["door"]) is True


class TestCheckAccess:

    def test_reports_reason(self):
        posture = _posture(_schedule(), sensitive_devices_protected=False)

        decision = check_access(posture, "lock-1", DeviceType.LOCK, "user-5", SATURDAY_10)
        assert decision.allowed is False
        assert "outside" in decision.reason

        decision = check_access(posture, "lock-1", DeviceType.LOCK, "user-5", TUESDAY_10)
        assert decision.allowed is True

    def test_sensitive_gate_runs_first(self):
        posture = _posture(_schedule(), sensitive_devices_protected=True)

        decision = check_access(posture, "lock-1", DeviceType.LOCK, "user-5", TUESDAY_10)
        assert decision.allowed is False
        assert "sensitive" in decision.reason


def _event(status: SimulationStatus, at: datetime, event_id: str = "e1") -> SimulatedEvent:
    return SimulatedEvent(
        id=event_id,
        owner_id="admin-1",
        type=SimulationType.GAS,
        name="Gas drill",
        scheduled_at=at,
        status=status,
    )


class TestDueEvents:

    def test_only_scheduled_past_events_are_due(self):
        assert is_event_due(_event(SimulationStatus.SCHEDULED, TUESDAY_10), TUESDAY_10) is True
        assert is_event_due(_event(SimulationStatus.SCHEDULED, TUESDAY_20), TUESDAY_10) is False
        assert is_event_due(_event(SimulationStatus.CANCELLED, TUESDAY_10), TUESDAY_20) is False

    def test_due_events_sorted_earliest_first(self):
        events = [
            _event(SimulationStatus.SCHEDULED, TUESDAY_10, "late"),
            _event(SimulationStatus.SCHEDULED, TUESDAY_10 - timedelta(hours=1), "early"),
            _event(SimulationStatus.COMPLETED, TUESDAY_10 - timedelta(hours=2), "done"),
        ]

        assert [e.id for e in due_events(events, TUESDAY_20)] == ["early", "late"]

    def test_offset_timestamps_compare_with_local_ones(self):
        utc_event = _event(
            SimulationStatus.SCHEDULED, datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc), "utc"
        )
        local_event = _event(SimulationStatus.SCHEDULED, TUESDAY_10, "local")

        assert utc_event.scheduled_at.tzinfo is None
        due = due_events([local_event, utc_event], datetime(2026, 11, 1, tzinfo=timezone.utc))
        assert [e.id for e in due] == ["utc", "local"]
