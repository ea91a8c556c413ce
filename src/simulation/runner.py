"""Simulation runner -- drives simulated events through their lifecycle."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from config import settings
from src.errors import ConcurrentModificationError, InvalidTransitionError, NotFoundError
from src.models.events import ActivityLogEntry, ActivityType, NotificationRequest, OutboundEvent
from src.models.simulation import SimulatedEvent, SimulationStatus, can_transition, to_local_naive
from src.simulation.time_controller import TimeController, time_controller
from src.storage.schedule_store import ScheduleStore, schedule_store

logger = logging.getLogger(__name__)

Emitter = Callable[[OutboundEvent], Awaitable[None]]

_TYPE_LABELS = {
    "fire": "fire alert",
    "gas": "gas leak",
    "intruder": "intruder alert",
    "water": "water leak",
    "power": "power failure",
}


class SimulationRunner:
    """Applies run/complete/cancel requests and owns the settle timers.

    Each transition reads the event, checks the move is legal and writes the
    new status conditionally on the version it read. A lost race is retried
    ``retry_attempts`` times before the conflict reaches the caller.
    """

    def __init__(
        self,
        store: ScheduleStore | None = None,
        emit: Emitter | None = None,
        settle_seconds: float | None = None,
        retry_attempts: int | None = None,
        clock: TimeController | None = None,
    ):
        self._store = store or schedule_store
        self._emit = emit
        self._settle_seconds = (
            settings.simulation_settle_seconds if settle_seconds is None else settle_seconds
        )
        self._retry_attempts = (
            settings.transition_retry_attempts if retry_attempts is None else retry_attempts
        )
        self._clock = clock or time_controller
        self._timers: dict[str, asyncio.Task] = {}
        self._poll_task: asyncio.Task | None = None

    @property
    def settle_seconds(self) -> float:
        return self._settle_seconds

    @property
    def pending_timers(self) -> list[str]:
        return list(self._timers)

    def set_emitter(self, emit: Emitter | None) -> None:
        self._emit = emit

    def settle_task(self, event_id: str) -> asyncio.Task | None:
        return self._timers.get(event_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _transition(
        self, owner_id: str, event_id: str, target: SimulationStatus
    ) -> SimulatedEvent:
        attempts = 1 + max(0, self._retry_attempts)
        for attempt in range(attempts):
            event = await self._store.get_event(owner_id, event_id)
            if not can_transition(event.status, target):
                raise InvalidTransitionError(event_id, event.status.value, target.value)
            try:
                updated = await self._store.set_event_status(
                    event_id, target, expected_version=event.version
                )
            except ConcurrentModificationError:
                if attempt + 1 >= attempts:
                    raise
                logger.info(f"Simulation {event_id} changed during {target.value}, retrying")
                continue
            logger.info(f"Simulation {event_id}: {event.status.value} -> {target.value}")
            return updated
        raise ConcurrentModificationError("simulation", event_id)

    async def run_now(self, owner_id: str, event_id: str) -> SimulatedEvent:
        """Start a scheduled simulation and arm its settle timer."""
        event = await self._transition(owner_id, event_id, SimulationStatus.IN_PROGRESS)
        label = _TYPE_LABELS.get(event.type.value, event.type.value)
        await self._log(event, f"Simulation '{event.name}' ({label}) started")
        if event.notify_users:
            await self._notify(event, f"Begin {label} simulation: {event.name}. This is a drill.")
        self._start_settle_timer(event)
        return event

    async def complete(self, owner_id: str, event_id: str) -> SimulatedEvent:
        """Finish an in-progress simulation ahead of its settle timer."""
        event = await self._transition(owner_id, event_id, SimulationStatus.COMPLETED)
        timer = self._timers.pop(event_id, None)
        if timer and not timer.done():
            timer.cancel()
        await self._on_completed(event)
        return event

    async def cancel(self, owner_id: str, event_id: str) -> SimulatedEvent:
        """Cancel a simulation that has not started."""
        event = await self._transition(owner_id, event_id, SimulationStatus.CANCELLED)
        await self._log(event, f"Simulation '{event.name}' cancelled")
        return event

    async def _on_completed(self, event: SimulatedEvent) -> None:
        await self._log(event, f"Simulation '{event.name}' completed")
        if event.notify_users:
            await self._notify(event, f"Simulation completed: {event.name}. No action is required.")

    # ------------------------------------------------------------------
    # Settle timers
    # ------------------------------------------------------------------

    def _start_settle_timer(self, event: SimulatedEvent, delay: float | None = None) -> None:
        task = asyncio.create_task(self._settle(event, delay))
        self._timers[event.id] = task

    async def _settle(self, event: SimulatedEvent, delay: float | None = None) -> None:
        """Complete ``event`` once the settle duration (or ``delay``) passes.

        Only lands if nobody touched the event since it went in-progress.
        """
        if delay is None:
            delay = self._settle_seconds
        await asyncio.sleep(self._clock.real_seconds(max(0.0, delay)))
        if self._timers.get(event.id) is asyncio.current_task():
            del self._timers[event.id]

        try:
            completed = await self._store.set_event_status(
                event.id, SimulationStatus.COMPLETED, expected_version=event.version
            )
        except (ConcurrentModificationError, NotFoundError):
            logger.warning(f"Settle timer for simulation {event.id} suppressed; event changed")
            return
        logger.info(f"Simulation {event.id}: in-progress -> completed (settled)")
        await self._on_completed(completed)

    async def resume_in_progress(self) -> list[str]:
        """Re-arm settle timers for simulations left in-progress by a previous process.

        The remaining delay counts from the event's last write; events whose
        settle time already passed are completed straight away.
        """
        resumed = []
        for event in await self._store.list_events_by_status(SimulationStatus.IN_PROGRESS):
            if event.id in self._timers:
                continue
            started_at = event.updated_at or event.created_at
            elapsed = (datetime.now() - started_at).total_seconds() if started_at else 0.0
            self._start_settle_timer(event, self._settle_seconds - elapsed)
            resumed.append(event.id)
        if resumed:
            logger.info(f"Re-armed settle timers for {len(resumed)} in-progress simulation(s)")
        return resumed

    # ------------------------------------------------------------------
    # Due-event dispatch
    # ------------------------------------------------------------------

    async def dispatch_due(self, at_time: datetime | None = None) -> list[SimulatedEvent]:
        """Start every scheduled simulation whose time has come."""
        at_time = to_local_naive(at_time) or self._clock.now()
        started = []
        for event in await self._store.list_due_events(at_time):
            try:
                started.append(await self.run_now(event.owner_id, event.id))
            except (InvalidTransitionError, ConcurrentModificationError, NotFoundError) as e:
                logger.info(f"Skipped due simulation {event.id}: {e}")
        return started

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.dispatch_due()
            except Exception:
                logger.exception("Due simulation dispatch failed")
            await asyncio.sleep(settings.due_poll_interval_seconds)

    async def start(self) -> None:
        """Start polling for due simulations."""
        if self._poll_task and not self._poll_task.done():
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Due simulation polling every {settings.due_poll_interval_seconds}s")

    async def shutdown(self) -> None:
        """Stop polling and drop every pending settle timer."""
        tasks = list(self._timers.values())
        if self._poll_task:
            tasks.append(self._poll_task)
        self._timers.clear()
        self._poll_task = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except (asyncio.CancelledError, Exception):
                pass

    # ------------------------------------------------------------------
    # Outbound events
    # ------------------------------------------------------------------

    async def _deliver(self, outbound: OutboundEvent) -> None:
        if not self._emit:
            logger.debug(f"No emitter configured, dropping {type(outbound).__name__}")
            return
        try:
            await self._emit(outbound)
        except Exception:
            logger.exception(f"Failed to deliver {type(outbound).__name__}")

    async def _log(self, event: SimulatedEvent, description: str) -> None:
        await self._deliver(ActivityLogEntry(
            owner_id=event.owner_id,
            type=ActivityType.SIMULATION,
            description=description,
            timestamp=self._clock.now(),
        ))

    async def _notify(self, event: SimulatedEvent, message: str) -> None:
        await self._deliver(NotificationRequest(
            owner_id=event.owner_id,
            audience="all",
            message=message,
            event_id=event.id,
        ))


# Singleton
sim_runner = SimulationRunner()
