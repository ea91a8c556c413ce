"""Activity log API routes."""

from typing import Any

from fastapi import APIRouter, Query

from src.storage.schedule_store import schedule_store

router = APIRouter(prefix="/admins/{owner_id}/activity", tags=["activity"])


@router.get("")
async def list_activity(
    owner_id: str, limit: int | None = Query(default=None, ge=1, le=500)
) -> list[dict[str, Any]]:
    """Recent activity for the admin, newest first."""
    entries = await schedule_store.list_activity_logs(owner_id, limit=limit)
    return [e.to_dict() for e in entries]
