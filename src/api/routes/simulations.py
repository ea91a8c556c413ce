"""Simulated-event API routes."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from src.models.simulation import SimulationDraft
from src.simulation.runner import sim_runner
from src.simulation.time_controller import time_controller
from src.storage.schedule_store import schedule_store

router = APIRouter(prefix="/admins/{owner_id}/simulations", tags=["simulations"])


class TimeMultiplier(BaseModel):
    multiplier: float = 1.0


@router.get("")
async def list_simulations(owner_id: str) -> list[dict[str, Any]]:
    """All simulations of the admin, newest schedule first."""
    events = await schedule_store.list_events(owner_id)
    events.sort(key=lambda e: e.scheduled_at, reverse=True)
    return [e.model_dump(mode="json") for e in events]


@router.post("", status_code=201)
async def create_simulation(owner_id: str, draft: SimulationDraft) -> dict[str, Any]:
    event_id = await schedule_store.add_event(owner_id, draft)
    event = await schedule_store.get_event(owner_id, event_id)
    return event.model_dump(mode="json")


@router.get("/{event_id}")
async def get_simulation(owner_id: str, event_id: str) -> dict[str, Any]:
    event = await schedule_store.get_event(owner_id, event_id)
    return event.model_dump(mode="json")


@router.post("/{event_id}/run")
async def run_simulation(owner_id: str, event_id: str) -> dict[str, Any]:
    event = await sim_runner.run_now(owner_id, event_id)
    return event.model_dump(mode="json")


@router.post("/{event_id}/complete")
async def complete_simulation(owner_id: str, event_id: str) -> dict[str, Any]:
    event = await sim_runner.complete(owner_id, event_id)
    return event.model_dump(mode="json")


@router.post("/{event_id}/cancel")
async def cancel_simulation(owner_id: str, event_id: str) -> dict[str, Any]:
    event = await sim_runner.cancel(owner_id, event_id)
    return event.model_dump(mode="json")


# -- Clock --

@router.post("/clock")
async def set_time_multiplier(owner_id: str, req: TimeMultiplier) -> dict[str, Any]:
    """Accelerate the simulation clock (shared by every admin)."""
    time_controller.set_multiplier(req.multiplier)
    return {"time_multiplier": time_controller.multiplier, "now": time_controller.now().isoformat()}
