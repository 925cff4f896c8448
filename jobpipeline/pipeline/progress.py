"""
Progress Reporter

Thread-safe counters for a pipeline run, rendered as a single in-place
terminal line with a Unicode bar, rate and ETA.
"""

import asyncio
import sys
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional, TextIO

BAR_WIDTH = 40
FILLED = "█"
EMPTY = "░"


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``42s``, ``3m5s`` or ``1h20m``."""
    if seconds is None:
        return "--"
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m{seconds % 60}s"
    return f"{seconds // 3600}h{(seconds % 3600) // 60}m"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of the counters."""

    target: int
    saved: int
    skipped: int
    failed: int
    queued: int
    current_page: int
    elapsed_seconds: float
    unit: str = "saved"

    @property
    def processed(self) -> int:
        return self.saved + self.skipped + self.failed

    @property
    def completed(self) -> int:
        return self.queued if self.unit == "queued" else self.saved

    @property
    def percentage(self) -> float:
        if self.target <= 0:
            return 0.0
        return min(100.0, self.completed / self.target * 100)

    @property
    def rate_per_minute(self) -> float:
        minutes = self.elapsed_seconds / 60
        if minutes <= 0:
            return 0.0
        return self.completed / minutes

    @property
    def eta_seconds(self) -> Optional[float]:
        rate = self.rate_per_minute
        if rate <= 0 or self.target <= 0:
            return None
        remaining = max(0, self.target - self.completed)
        return remaining / rate * 60


class ProgressReporter:
    """
    Counters shared between the pipeline loop and a refresh ticker.

    ``unit`` selects what counts toward the target: ``saved`` postings for
    processing, ``queued`` identifiers for discovery.
    """

    def __init__(
        self,
        target: int = 0,
        label: str = "",
        unit: str = "saved",
        stream: Optional[TextIO] = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.target = target
        self.label = label
        self.unit = unit
        self.stream = stream or sys.stdout
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._started_at = clock()
        self._saved = 0
        self._skipped = 0
        self._failed = 0
        self._queued = 0
        self._current_page = 0

    def record_saved(self) -> None:
        with self._lock:
            self._saved += 1
        self.display()

    def record_skipped(self) -> None:
        with self._lock:
            self._skipped += 1
        self.display()

    def record_failed(self) -> None:
        with self._lock:
            self._failed += 1
        self.display()

    def record_queued(self, count: int = 1) -> None:
        with self._lock:
            self._queued += count
        self.display()

    def set_page(self, page: int) -> None:
        with self._lock:
            self._current_page = page
        self.display()

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                target=self.target,
                saved=self._saved,
                skipped=self._skipped,
                failed=self._failed,
                queued=self._queued,
                current_page=self._current_page,
                elapsed_seconds=self._clock() - self._started_at,
                unit=self.unit,
            )

    def render(self, snapshot: Optional[ProgressSnapshot] = None) -> str:
        snap = snapshot or self.snapshot()
        filled = int(BAR_WIDTH * snap.percentage / 100)
        bar = FILLED * filled + EMPTY * (BAR_WIDTH - filled)

        parts = [
            f"{self.label} [{bar}] {snap.completed}/{snap.target} ({snap.percentage:.1f}%)".strip(),
        ]
        if snap.current_page:
            parts.append(f"Page {snap.current_page}")
        parts.append(f"{snap.rate_per_minute:.1f}/min")
        if self.unit == "saved":
            parts.append(f"Skipped: {snap.skipped}")
            parts.append(f"Failed: {snap.failed}")
        parts.append(f"ETA: {format_duration(snap.eta_seconds)}")
        parts.append(f"Elapsed: {format_duration(snap.elapsed_seconds)}")
        return " | ".join(parts)

    def display(self) -> None:
        if not self.enabled:
            return
        line = self.render()
        with self._lock:
            self.stream.write("\r" + line)
            self.stream.flush()

    def summary(self) -> str:
        snap = self.snapshot()
        if self.unit == "queued":
            return (
                f"Queued {snap.queued} new jobs from {snap.current_page} pages "
                f"in {format_duration(snap.elapsed_seconds)}"
            )
        return (
            f"Results: {snap.saved} saved | {snap.skipped} skipped | {snap.failed} failed "
            f"(total processed: {snap.processed}) in {format_duration(snap.elapsed_seconds)}"
        )

    def finish(self) -> None:
        if not self.enabled:
            return
        self.display()
        text = self.summary()
        with self._lock:
            self.stream.write("\n" + text + "\n")
            self.stream.flush()

    @asynccontextmanager
    async def ticking(self, interval: float = 1.0) -> AsyncIterator["ProgressReporter"]:
        """Refresh the line every ``interval`` seconds while the block runs."""
        async def tick():
            while True:
                await asyncio.sleep(interval)
                self.display()

        task = asyncio.create_task(tick()) if self.enabled else None
        try:
            yield self
        finally:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
