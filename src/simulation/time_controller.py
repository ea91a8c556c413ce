"""Clock used for simulation due-times and settle timers."""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class TimeController:
    """Wall clock with optional acceleration for rehearsing schedules quickly."""

    def __init__(self):
        self._multiplier: float = 1.0
        self._base_time: datetime = datetime.now()
        self._base_sim_time: datetime = self._base_time

    @property
    def multiplier(self) -> float:
        return self._multiplier

    def set_multiplier(self, multiplier: float) -> None:
        """Set time acceleration. 1x = real-time, 60x = one simulated minute per second."""
        self._base_sim_time = self.now()
        self._base_time = datetime.now()
        self._multiplier = max(1.0, min(60.0, multiplier))
        logger.info(f"Simulation clock running at {self._multiplier}x")

    def now(self) -> datetime:
        """Current simulated time."""
        real_elapsed = datetime.now() - self._base_time
        return self._base_sim_time + real_elapsed * self._multiplier

    def real_seconds(self, simulated_seconds: float) -> float:
        """Wall-clock seconds that cover ``simulated_seconds`` at the current rate."""
        return max(0.0, simulated_seconds) / self._multiplier

    def reset(self) -> None:
        """Back to real time."""
        self._multiplier = 1.0
        self._base_time = datetime.now()
        self._base_sim_time = self._base_time


# Singleton
time_controller = TimeController()
