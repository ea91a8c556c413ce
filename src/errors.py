"""Error types raised by the scheduling core."""


class SchedulingError(Exception):
    """Base class for recoverable scheduling-core errors."""


class NotFoundError(SchedulingError):
    """A posture or simulated event does not exist for the owner."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InvalidTransitionError(SchedulingError):
    """An illegal simulated-event state change was requested."""

    def __init__(self, event_id: str, current: str, target: str):
        self.event_id = event_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move simulation {event_id} from {current} to {target}")


class ValidationError(SchedulingError):
    """A schedule or simulation record is malformed."""


class ConcurrentModificationError(SchedulingError):
    """A conditional write lost against another writer."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} was modified concurrently")
