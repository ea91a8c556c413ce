"""Delivery of runner side effects: persist activity, push to consoles."""

import logging

from src.api.websocket import ws_manager
from src.models.events import ActivityLogEntry, NotificationRequest, OutboundEvent
from src.storage.schedule_store import schedule_store

logger = logging.getLogger(__name__)


async def record_activity(entry: ActivityLogEntry) -> ActivityLogEntry:
    """Persist an activity entry and push it to the owner's consoles."""
    entry_id = await schedule_store.add_activity_log(entry)
    entry = entry.model_copy(update={"id": entry_id})
    await ws_manager.send_to_owner(entry.owner_id, "activity", entry.to_dict())
    return entry


async def deliver_outbound(event: OutboundEvent) -> None:
    if isinstance(event, ActivityLogEntry):
        await record_activity(event)
    elif isinstance(event, NotificationRequest):
        logger.info(f"Notification for {event.owner_id}/{event.audience}: {event.message}")
        await ws_manager.send_to_owner(event.owner_id, "notification", event.to_dict())
