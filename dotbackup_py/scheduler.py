"""
Periodic snapshots for DotBackup.

``PeriodicBackup`` takes a snapshot, waits the configured number of minutes
and repeats until stopped. The wait starts after each copy finishes, so the
period between snapshots includes the copy time.
"""

import logging
import threading
from typing import Optional

from dotbackup_py.engine import BaseEngine, Snapshot

logger = logging.getLogger("dotbackup.scheduler")


class PeriodicBackup:
    """Cancellable repeating snapshot task."""

    def __init__(
        self,
        engine: BaseEngine,
        minutes: float,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            engine: Engine used to take each snapshot
            minutes: Wait between the end of one snapshot and the next
            stop_event: Cancellation token; a private one is created if omitted
        """
        if minutes < 0:
            raise ValueError("minutes must not be negative")
        self.engine = engine
        self.minutes = minutes
        self.runs = 0
        self._stop = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval_seconds(self) -> float:
        return self.minutes * 60

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def tick(self) -> Optional[Snapshot]:
        """Take one snapshot."""
        self.runs += 1
        return self.engine.backup()

    def run(self, max_runs: Optional[int] = None) -> int:
        """
        Snapshot, wait, repeat until ``stop()`` is called.

        Args:
            max_runs: Stop after this many snapshots (None = run forever)

        Returns:
            Number of snapshots attempted by this call
        """
        done = 0
        while not self._stop.is_set():
            self.tick()
            done += 1
            if max_runs is not None and done >= max_runs:
                break
            logger.info(f"Waiting {self.minutes:g} minutes for the next backup...")
            if self._stop.wait(self.interval_seconds):
                break
        return done

    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread and return the thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(
            target=self.run, name="dotbackup-auto", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the loop, waking it if it is waiting."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
