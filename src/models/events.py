"""Pydantic models for outbound notifications and activity logging."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    SECURITY = "security"
    SIMULATION = "simulation"
    DEVICE = "device"
    USER = "user"
    SYSTEM = "system"


class NotificationRequest(BaseModel):
    """A message the notification collaborator should deliver."""
    owner_id: str
    audience: str = "all"
    message: str
    event_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ActivityLogEntry(BaseModel):
    """A logged admin-visible activity."""
    id: str = ""
    owner_id: str
    type: ActivityType
    description: str
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "type": self.type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }


OutboundEvent = NotificationRequest | ActivityLogEntry
