"""Fixed-rate scheduler for sync cycles."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs a task periodically on one background thread.

    The first run happens one interval after :meth:`start`. Runs are
    scheduled at a fixed rate and never overlap: a run that takes longer
    than the interval delays the next one, which then starts immediately.
    No run is skipped.

    Once cancelled (explicitly, or because the task raised) the scheduler
    never fires again; create a new one to resume.

    Example:
        scheduler = SyncScheduler(engine.run_cycle, interval=4)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        task: Callable[[], None],
        interval: float,
        name: str = "SyncScheduler",
    ) -> None:
        """Initialize the scheduler.

        Args:
            task: Callable run on every firing
            interval: Period in seconds (also the initial delay)
            name: Name of the background thread
        """
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")

        self._task = task
        self._interval = interval
        self._name = name
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._run_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def run_count(self) -> int:
        """Number of times the task has been started."""
        return self._run_count

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread."""
        with self._lock:
            if self._thread is not None:
                logger.warning("Scheduler already started")
                return

            self._thread = threading.Thread(
                target=self._run,
                name=self._name,
                daemon=True,
            )
            self._thread.start()
            logger.debug("Scheduler started (interval=%ss)", self._interval)

    def cancel(self) -> None:
        """Prevent any further firing. Safe to call from inside the task."""
        self._stop_event.set()

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel and wait for a running task to finish.

        Args:
            timeout: Maximum time to wait for the thread to stop
        """
        self.cancel()
        thread = self._thread
        if (
            thread is not None
            and thread.is_alive()
            and thread is not threading.current_thread()
        ):
            thread.join(timeout=timeout)
        logger.debug("Scheduler stopped")

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background thread to end."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        """Main scheduling loop."""
        next_run = time.monotonic() + self._interval

        while not self._stop_event.is_set():
            delay = next_run - time.monotonic()
            if delay > 0 and self._stop_event.wait(timeout=delay):
                break
            if self._stop_event.is_set():
                break

            self._run_count += 1
            try:
                self._task()
            except Exception:
                logger.exception("Scheduled task failed, cancelling schedule")
                self._stop_event.set()
                break

            next_run += self._interval
