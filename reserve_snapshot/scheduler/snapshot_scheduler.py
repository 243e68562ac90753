"""Timed polling loop that writes one reserve snapshot per interval."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from reserve_snapshot.aggregator.models import Snapshot
from reserve_snapshot.utils.config import SnapshotConfig
from reserve_snapshot.utils.errors import ReserveSnapshotError
from reserve_snapshot.utils.logger import get_logger


class SchedulerState(Enum):
    """Lifecycle of a snapshot run: waiting for start, polling, then done."""

    WAITING = "waiting"
    POLLING = "polling"
    DONE = "done"


@runtime_checkable
class Clock(Protocol):
    """Time source with an interruptible sleep."""

    def now(self) -> datetime: ...

    def sleep(self, seconds: float, stop_event: threading.Event) -> bool: ...


class SystemClock:
    """Wall clock in UTC; sleeps are interruptible through the stop event."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float, stop_event: threading.Event) -> bool:
        """Block for ``seconds`` or until the stop event is set. Returns True if stopped."""
        return stop_event.wait(max(0.0, seconds))


class SnapshotSource(Protocol):
    """Produces one snapshot per cycle."""

    def snapshot(self, captured_at: datetime) -> Snapshot: ...


class SnapshotSink(Protocol):
    """Persists a snapshot and returns where it was written."""

    def write(self, snapshot: Snapshot) -> Path: ...


class SnapshotScheduler:
    """
    Waits for the start instant, then captures a snapshot every interval.

    The end check happens after each completed cycle, so the tick that lands
    on or first passes ``end`` is still captured.
    """

    def __init__(
        self,
        source: SnapshotSource,
        sink: SnapshotSink,
        start: datetime,
        end: datetime,
        interval: timedelta,
        clock: Clock | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            source: Produces one snapshot per cycle (usually a ReserveAggregator)
            sink: Persists snapshots (usually a SnapshotFileWriter)
            start: Instant at which polling begins
            end: Polling stops after the first cycle captured at or after this instant
            interval: Time between cycle starts
            clock: Time source (wall clock if None)
            stop_event: Set externally to cancel waiting or polling
        """
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        if end < start:
            raise ValueError(f"end {end} is before start {start}")

        self.source = source
        self.sink = sink
        self.start = start
        self.end = end
        self.interval = interval
        self.clock = clock if clock is not None else SystemClock()
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.state = SchedulerState.WAITING
        self.logger = get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        config: SnapshotConfig,
        source: SnapshotSource,
        sink: SnapshotSink,
        clock: Clock | None = None,
        stop_event: threading.Event | None = None,
    ) -> SnapshotScheduler:
        """Build a scheduler whose window starts at ``config.start_time`` (or now)."""
        clock = clock if clock is not None else SystemClock()
        start = config.start_time if config.start_time is not None else clock.now()
        return cls(
            source=source,
            sink=sink,
            start=start,
            end=start + timedelta(seconds=config.grace_period),
            interval=timedelta(seconds=config.scan_interval),
            clock=clock,
            stop_event=stop_event,
        )

    def stop(self) -> None:
        """Request cancellation; safe to call from a signal handler."""
        self.stop_event.set()

    def run_cycle(self, captured_at: datetime) -> Path | None:
        """
        Capture and persist one snapshot.

        Failures are logged and counted but never raised, so one bad cycle
        does not stop the schedule.

        Returns:
            Path of the written snapshot, or None if the cycle failed
        """
        try:
            snapshot = self.source.snapshot(captured_at)
            path = self.sink.write(snapshot)
        except ReserveSnapshotError as e:
            self.logger.error(f"Snapshot cycle at {captured_at.isoformat()} failed: {e}")
            self.logger.increment_metric("failed_cycles")
            return None
        except Exception:
            self.logger.exception(f"Unexpected error in snapshot cycle at {captured_at.isoformat()}")
            self.logger.increment_metric("failed_cycles")
            return None

        self.logger.increment_metric("successful_cycles")
        return path

    def _finish(self) -> None:
        self.state = SchedulerState.DONE
        self.logger.info("Done")
        self.logger.log_summary()

    def run(self) -> list[Path]:
        """
        Run the full Waiting -> Polling -> Done sequence.

        Returns:
            Paths of all snapshots written, in capture order
        """
        self.state = SchedulerState.WAITING
        written: list[Path] = []

        delay = (self.start - self.clock.now()).total_seconds()
        if delay > 0:
            self.logger.info(f"Waiting {delay:.0f}s for snapshot start at {self.start.isoformat()}")
        if self.clock.sleep(delay, self.stop_event):
            self.logger.warning("Cancelled before snapshot start")
            self._finish()
            return written

        self.state = SchedulerState.POLLING
        self.logger.info(f"snapshot start: {self.clock.now().isoformat()}")

        while True:
            captured_at = self.clock.now()
            path = self.run_cycle(captured_at)
            if path is not None:
                written.append(path)

            if captured_at >= self.end:
                break

            delay = (captured_at + self.interval - self.clock.now()).total_seconds()
            if self.clock.sleep(delay, self.stop_event):
                self.logger.warning("Cancelled during polling")
                break

        self._finish()
        return written
