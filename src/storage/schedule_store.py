"""Owner-scoped persistence for security postures, simulated events and activity logs."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from config import settings
from src.errors import ConcurrentModificationError, NotFoundError, ValidationError
from src.models.events import ActivityLogEntry
from src.models.security import AccessSchedule, EmergencyResponse, SecurityPosture
from src.models.simulation import (
    SimulatedEvent,
    SimulationDraft,
    SimulationStatus,
    to_local_naive,
)
from src.storage.document_store import (
    ACTIVITY_LOGS,
    SECURITY_POSTURES,
    SIMULATED_EVENTS,
    DocumentStore,
    document_store,
)

logger = logging.getLogger(__name__)

# Read-modify-write attempts for posture edits before giving up.
_POSTURE_WRITE_ATTEMPTS = 3


def _validate(model: type, data: Any):
    """Validate ``data`` into ``model``, reporting failures as ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


class ScheduleStore:
    """Durable mapping from admin account to posture and simulated events."""

    def __init__(self, store: DocumentStore | None = None):
        self._store = store or document_store

    # ------------------------------------------------------------------
    # Security postures
    # ------------------------------------------------------------------

    async def get_posture(self, owner_id: str) -> SecurityPosture:
        """Return the owner's posture, creating the default one if absent."""
        record = await self._store.get(SECURITY_POSTURES, owner_id)
        if record is not None:
            return SecurityPosture.model_validate(record)

        now = datetime.now()
        posture = SecurityPosture(owner_id=owner_id, created_at=now, updated_at=now)
        try:
            await self._store.create(SECURITY_POSTURES, posture.to_document(), doc_id=owner_id)
            logger.info(f"Created default security posture for {owner_id}")
        except ConcurrentModificationError:
            # Another caller created it first
            pass
        record = await self._store.get(SECURITY_POSTURES, owner_id)
        return SecurityPosture.model_validate(record)

    async def put_posture(self, owner_id: str, posture: SecurityPosture) -> SecurityPosture:
        """Replace the stored posture if nobody wrote it since ``posture`` was read."""
        posture = _validate(SecurityPosture, posture)
        if posture.owner_id != owner_id:
            raise ValidationError(f"Posture belongs to {posture.owner_id}, not {owner_id}")

        await self.get_posture(owner_id)
        document = posture.to_document()
        document["updated_at"] = datetime.now().isoformat()
        ok = await self._store.update(
            SECURITY_POSTURES, owner_id, document, expected_version=posture.version
        )
        if not ok:
            raise ConcurrentModificationError("posture", owner_id)
        return await self.get_posture(owner_id)

    async def _mutate_posture(
        self, owner_id: str, mutate: Callable[[SecurityPosture], None]
    ) -> SecurityPosture:
        for _ in range(_POSTURE_WRITE_ATTEMPTS):
            posture = await self.get_posture(owner_id)
            mutate(posture)
            try:
                return await self.put_posture(owner_id, posture)
            except ConcurrentModificationError:
                logger.debug(f"Posture {owner_id} changed underneath, retrying")
        raise ConcurrentModificationError("posture", owner_id)

    async def add_schedule(self, owner_id: str, schedule: AccessSchedule | dict[str, Any]) -> str:
        """Insert an access schedule under a fresh id and return the id."""
        schedule = _validate(AccessSchedule, schedule)
        schedule_id = f"schedule_{uuid.uuid4().hex[:12]}"
        schedule = schedule.model_copy(update={"id": schedule_id})

        def _insert(posture: SecurityPosture) -> None:
            posture.access_schedules[schedule_id] = schedule

        await self._mutate_posture(owner_id, _insert)
        logger.info(f"Added access schedule {schedule_id} for device {schedule.device_id}")
        return schedule_id

    async def remove_schedule(self, owner_id: str, schedule_id: str) -> bool:
        """Remove an access schedule; absent ids are ignored.

        Returns True only if this call removed the schedule.
        """
        posture = await self.get_posture(owner_id)
        if schedule_id not in posture.access_schedules:
            return False

        removed = False

        def _remove(posture: SecurityPosture) -> None:
            nonlocal removed
            removed = posture.access_schedules.pop(schedule_id, None) is not None

        await self._mutate_posture(owner_id, _remove)
        if removed:
            logger.info(f"Removed access schedule {schedule_id}")
        return removed

    async def set_system_armed(self, owner_id: str, armed: bool) -> SecurityPosture:
        def _arm(posture: SecurityPosture) -> None:
            posture.system_armed = armed

        return await self._mutate_posture(owner_id, _arm)

    async def set_sensitive_protection(self, owner_id: str, enabled: bool) -> SecurityPosture:
        def _protect(posture: SecurityPosture) -> None:
            posture.sensitive_devices_protected = enabled

        return await self._mutate_posture(owner_id, _protect)

    async def update_emergency_response(
        self, owner_id: str, changes: dict[str, Any]
    ) -> SecurityPosture:
        """Apply partial changes to the emergency-response settings."""
        unknown = set(changes) - set(EmergencyResponse.model_fields)
        if unknown:
            raise ValidationError(f"Unknown emergency settings: {sorted(unknown)}")

        def _apply(posture: SecurityPosture) -> None:
            merged = posture.emergency_response.model_dump() | changes
            posture.emergency_response = _validate(EmergencyResponse, merged)

        return await self._mutate_posture(owner_id, _apply)

    # ------------------------------------------------------------------
    # Simulated events
    # ------------------------------------------------------------------

    def _load_events(self, records: list[dict[str, Any]]) -> list[SimulatedEvent]:
        events = []
        for record in records:
            try:
                events.append(SimulatedEvent.model_validate(record))
            except PydanticValidationError:
                logger.warning(f"Skipping malformed simulation record {record.get('id')}")
        return events

    async def list_events(self, owner_id: str) -> list[SimulatedEvent]:
        records = await self._store.find(SIMULATED_EVENTS, {"owner_id": owner_id})
        return self._load_events(records)

    async def list_due_events(self, at_time: datetime) -> list[SimulatedEvent]:
        """Scheduled events of every owner whose start time has passed."""
        records = await self._store.find(
            SIMULATED_EVENTS, {"status": SimulationStatus.SCHEDULED.value}
        )
        at_time = to_local_naive(at_time)
        return [e for e in self._load_events(records) if e.scheduled_at <= at_time]

    async def list_events_by_status(self, status: SimulationStatus) -> list[SimulatedEvent]:
        """Events of every owner currently in ``status``."""
        records = await self._store.find(
            SIMULATED_EVENTS, {"status": SimulationStatus(status).value}
        )
        return self._load_events(records)

    async def add_event(self, owner_id: str, draft: SimulationDraft | dict[str, Any]) -> str:
        draft = _validate(SimulationDraft, draft)
        now = datetime.now().isoformat()
        record = draft.model_dump(
            mode="json", exclude={"scheduled_date", "scheduled_time"}
        ) | {
            "owner_id": owner_id,
            "status": SimulationStatus.SCHEDULED.value,
            "created_at": now,
            "updated_at": now,
        }
        event_id = await self._store.create(SIMULATED_EVENTS, record)
        logger.info(f"Scheduled {draft.type.value} simulation {event_id} for {owner_id}")
        return event_id

    async def get_event(self, owner_id: str, event_id: str) -> SimulatedEvent:
        record = await self._store.get(SIMULATED_EVENTS, event_id)
        if record is None or record.get("owner_id") != owner_id:
            raise NotFoundError("simulation", event_id)
        return SimulatedEvent.model_validate(record)

    async def set_event_status(
        self,
        event_id: str,
        status: SimulationStatus,
        expected_version: int | None = None,
    ) -> SimulatedEvent:
        """Overwrite an event's status.

        Lifecycle legality is the caller's concern. With ``expected_version``
        the write only lands if the event is still at that version.
        """
        status = SimulationStatus(status)
        ok = await self._store.update(
            SIMULATED_EVENTS,
            event_id,
            {"status": status.value, "updated_at": datetime.now().isoformat()},
            expected_version=expected_version,
        )
        record = await self._store.get(SIMULATED_EVENTS, event_id)
        if record is None:
            raise NotFoundError("simulation", event_id)
        if not ok:
            raise ConcurrentModificationError("simulation", event_id)
        return SimulatedEvent.model_validate(record)

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    async def add_activity_log(self, entry: ActivityLogEntry) -> str:
        return await self._store.create(ACTIVITY_LOGS, entry.model_dump(mode="json", exclude={"id"}))

    async def list_activity_logs(
        self, owner_id: str, limit: int | None = None
    ) -> list[ActivityLogEntry]:
        """Activity entries for an owner, newest first."""
        if limit is None:
            limit = settings.activity_log_limit
        records = await self._store.find(ACTIVITY_LOGS, {"owner_id": owner_id})
        entries = []
        for record in records:
            try:
                entries.append(ActivityLogEntry.model_validate(record))
            except PydanticValidationError:
                logger.warning(f"Skipping malformed activity record {record.get('id')}")
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]


# Singleton
schedule_store = ScheduleStore()
