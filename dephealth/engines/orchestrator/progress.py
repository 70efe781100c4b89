"""Run progress for pollers: 0 at start, 5-99 while working, 100 when done."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from dephealth.models.result import AnalysisStatus

log = structlog.get_logger("dephealth.engine")

_START = 5
_CEILING = 99


class ProgressTracker:
    """Mutable status behind the immutable :class:`AnalysisStatus` snapshots.

    Progress never moves backwards during a run.
    """

    def __init__(self) -> None:
        self._running = False
        self._progress = 0
        self._current: str | None = None
        self._total = 0
        self._processed = 0
        self.callbacks: list[Callable[[AnalysisStatus], None]] = []

    def start(self, total: int, description: str | None = None) -> None:
        self._running = True
        self._progress = 0
        self._total = total
        self._processed = 0
        self._current = description
        self._notify()

    def describe(self, description: str | None) -> None:
        self._current = description
        self._notify()

    def advance(self, count: int = 1) -> None:
        self._processed += count
        pct = min(_CEILING, (self._processed * 95) // max(self._total, 1) + _START)
        self._progress = max(self._progress, pct)
        self._notify()

    def finish(self) -> None:
        self._running = False
        self._progress = 100
        self._current = None
        self._notify()

    def snapshot(self) -> AnalysisStatus:
        return AnalysisStatus(
            is_running=self._running, progress=self._progress, current_item=self._current
        )

    def _notify(self) -> None:
        status = self.snapshot()
        for cb in self.callbacks:
            try:
                cb(status)
            except Exception:
                log.debug("progress.callback_failed", progress=status.progress, exc_info=True)
