"""Restartable elapsed-time clock for the control loop."""

import time
from typing import Callable, Optional


class Timer:
    """Stopwatch measuring seconds of running time.

    The time source is injectable so that simulations and tests can drive the
    clock from simulated time instead of the wall clock.

    Attributes:
        running: Whether the timer is currently accumulating time
    """

    def __init__(self, time_source: Optional[Callable[[], float]] = None) -> None:
        """Initialize a stopped timer at zero.

        Args:
            time_source: Callable returning the current time in seconds.
                Defaults to time.monotonic.
        """
        self._now: Callable[[], float] = time_source if time_source is not None else time.monotonic
        self._accumulated: float = 0.0
        self._start_time: float = 0.0
        self.running: bool = False

    def get(self) -> float:
        """Seconds accumulated while running."""
        if self.running:
            return self._accumulated + (self._now() - self._start_time)
        return self._accumulated

    def start(self) -> None:
        """Start (or resume) accumulating time. No effect if already running."""
        if not self.running:
            self._start_time = self._now()
            self.running = True

    def stop(self) -> None:
        """Freeze the accumulated time."""
        self._accumulated = self.get()
        self.running = False

    def reset(self) -> None:
        """Zero the accumulated time without changing the running state."""
        self._accumulated = 0.0
        self._start_time = self._now()

    def restart(self) -> None:
        """Zero the accumulated time and start running."""
        self.reset()
        self.running = True

    def has_elapsed(self, seconds: float) -> bool:
        return self.get() >= seconds
