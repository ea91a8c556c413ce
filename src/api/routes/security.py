"""Security posture and access-schedule API routes."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.outbound import record_activity
from src.models.device import DeviceType
from src.models.events import ActivityLogEntry, ActivityType
from src.models.security import AccessSchedule, SecurityPosture
from src.security.evaluator import check_access
from src.simulation.time_controller import time_controller
from src.storage.schedule_store import schedule_store

router = APIRouter(prefix="/admins/{owner_id}/security", tags=["security"])


# -- Request models --

class ArmRequest(BaseModel):
    armed: bool

class ProtectionRequest(BaseModel):
    enabled: bool

class EmergencyUpdate(BaseModel):
    water_sprinkler_enabled: bool | None = None
    water_sprinkler_response_seconds: int | None = None
    ventilation_enabled: bool | None = None
    ventilation_trigger_ppm: int | None = None
    emergency_lighting_enabled: bool | None = None

class AccessCheckRequest(BaseModel):
    device_id: str
    device_type: DeviceType | None = None
    user_id: str | None = None
    at_time: datetime | None = None
    override: bool = False


async def _log(owner_id: str, description: str) -> None:
    await record_activity(ActivityLogEntry(
        owner_id=owner_id, type=ActivityType.SECURITY, description=description
    ))


# -- Posture --

@router.get("")
async def get_posture(owner_id: str) -> dict[str, Any]:
    """Get the admin's security posture, creating defaults on first use."""
    posture = await schedule_store.get_posture(owner_id)
    return posture.model_dump(mode="json")


@router.put("")
async def put_posture(owner_id: str, posture: SecurityPosture) -> dict[str, Any]:
    """Replace the posture; ``version`` must match the stored one."""
    saved = await schedule_store.put_posture(owner_id, posture)
    await _log(owner_id, "Security settings updated")
    return saved.model_dump(mode="json")


@router.post("/arm")
async def set_armed(owner_id: str, req: ArmRequest) -> dict[str, Any]:
    posture = await schedule_store.set_system_armed(owner_id, req.armed)
    await _log(owner_id, f"System {'armed' if req.armed else 'disarmed'}")
    return posture.model_dump(mode="json")


@router.post("/protection")
async def set_protection(owner_id: str, req: ProtectionRequest) -> dict[str, Any]:
    posture = await schedule_store.set_sensitive_protection(owner_id, req.enabled)
    await _log(
        owner_id,
        f"Sensitive devices protection {'enabled' if req.enabled else 'disabled'}",
    )
    return posture.model_dump(mode="json")


@router.patch("/emergency")
async def update_emergency(owner_id: str, req: EmergencyUpdate) -> dict[str, Any]:
    changes = req.model_dump(exclude_none=True)
    posture = await schedule_store.update_emergency_response(owner_id, changes)
    return posture.emergency_response.model_dump()


# -- Schedules --

@router.post("/schedules", status_code=201)
async def add_schedule(owner_id: str, schedule: AccessSchedule) -> dict[str, Any]:
    schedule_id = await schedule_store.add_schedule(owner_id, schedule)
    await _log(owner_id, f"Access schedule added for device {schedule.device_id}")
    return {"id": schedule_id}


@router.delete("/schedules/{schedule_id}")
async def remove_schedule(owner_id: str, schedule_id: str) -> dict[str, Any]:
    removed = await schedule_store.remove_schedule(owner_id, schedule_id)
    if removed:
        await _log(owner_id, f"Access schedule {schedule_id} removed")
    return {"id": schedule_id, "removed": removed}


@router.post("/access-check")
async def access_check(owner_id: str, req: AccessCheckRequest) -> dict[str, Any]:
    """Evaluate an access request against the posture (defaults to now)."""
    posture = await schedule_store.get_posture(owner_id)
    decision = check_access(
        posture,
        req.device_id,
        req.device_type,
        req.user_id,
        req.at_time or time_controller.now(),
        override=req.override,
    )
    return decision.model_dump()
