"""
Scheduler driver for periodic engine ticks.

Ticks every stored project on a fixed interval. Each project is an
independent unit of work: one failing project is reported and retried on
the next run, the others still proceed.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from taskflow.clock import Clock, SystemClock
from taskflow.constants import (
    DEFAULT_DAILY_TICK_INTERVAL_SECONDS,
    DEFAULT_HOURLY_TICK_INTERVAL_SECONDS,
    DEFAULT_HOURLY_WINDOW_END,
    DEFAULT_HOURLY_WINDOW_START,
    SCHEDULE_MODE_DAILY,
    SCHEDULE_MODE_HOURLY,
    VALID_SCHEDULE_MODES,
)
from taskflow.exceptions import ConfigurationError
from taskflow.managers.events import EventType, ProjectEvent, publish_event
from taskflow.managers.propagation_engine import PropagationEngine, TickResult
from taskflow.managers.storage_manager import StorageManager


@dataclass
class SchedulerReport:
    """Outcome of one scheduled run over all projects."""

    started_at: datetime
    results: Dict[str, TickResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    skipped: bool = False

    @property
    def changed_items(self) -> int:
        return sum(len(result.changes) for result in self.results.values())

    @property
    def ok(self) -> bool:
        return not self.failures


class SchedulerDriver:
    """
    Runs PropagationEngine.tick() for every project on an interval.

    Modes:
    - daily: one run per interval (24h by default)
    - hourly: one run per interval (1h by default), only while the
      current hour is inside [window_start, window_end]
    """

    def __init__(
        self,
        engine: PropagationEngine,
        storage: StorageManager,
        clock: Optional[Clock] = None,
        mode: str = SCHEDULE_MODE_DAILY,
        interval_seconds: Optional[float] = None,
        hourly_window: Tuple[int, int] = (DEFAULT_HOURLY_WINDOW_START, DEFAULT_HOURLY_WINDOW_END),
        max_workers: int = 1,
        emit_events: bool = True,
    ) -> None:
        """
        Initialize SchedulerDriver.

        Args:
            engine: Engine whose tick() is invoked per project.
            storage: Storage used to enumerate projects.
            clock: Time source. Defaults to the engine's clock.
            mode: 'daily' or 'hourly'.
            interval_seconds: Seconds between runs. Defaults per mode.
            hourly_window: Inclusive (start_hour, end_hour) for hourly mode.
            max_workers: Projects ticked concurrently.
            emit_events: Whether to publish tick.failed events.

        Raises:
            ConfigurationError: On an unknown mode or invalid settings.
        """
        if mode not in VALID_SCHEDULE_MODES:
            raise ConfigurationError(
                f"Unknown schedule mode {mode!r}, expected one of {VALID_SCHEDULE_MODES}"
            )
        start_hour, end_hour = hourly_window
        if not (0 <= start_hour <= end_hour <= 23):
            raise ConfigurationError(f"Invalid hourly window: {hourly_window}")
        if max_workers < 1:
            raise ConfigurationError("scheduler_max_workers must be at least 1")

        self.engine = engine
        self.storage = storage
        self.clock = clock or engine.clock
        self.mode = mode
        if interval_seconds is None:
            interval_seconds = (
                DEFAULT_HOURLY_TICK_INTERVAL_SECONDS
                if mode == SCHEDULE_MODE_HOURLY
                else DEFAULT_DAILY_TICK_INTERVAL_SECONDS
            )
        if interval_seconds <= 0:
            raise ConfigurationError("Tick interval must be positive")
        self.interval_seconds = interval_seconds
        self.hourly_window = hourly_window
        self.max_workers = max_workers
        self._emit_events = emit_events

    def should_run(self, now: datetime) -> bool:
        """Whether a scheduled run is due at `now` for this mode."""
        if self.mode != SCHEDULE_MODE_HOURLY:
            return True
        start_hour, end_hour = self.hourly_window
        return start_hour <= now.hour <= end_hour

    def run_scheduled_tick(self, now: Optional[datetime] = None) -> SchedulerReport:
        """Tick every stored project once.

        Args:
            now: Evaluation instant shared by all projects. Defaults to the clock.

        Returns:
            SchedulerReport with per-project results and failures.
        """
        now = now or self.clock.now()
        report = SchedulerReport(started_at=now)

        if not self.should_run(now):
            report.skipped = True
            return report

        project_ids = self.storage.load_all_project_ids()

        if self.max_workers == 1:
            for project_id in project_ids:
                self._tick_one(project_id, now, report)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                for project_id in project_ids:
                    pool.submit(self._tick_one, project_id, now, report)

        return report

    def _tick_one(self, project_id: str, now: datetime, report: SchedulerReport) -> None:
        try:
            report.results[project_id] = self.engine.tick(project_id, now)
        except Exception as e:
            # One project's failure must not abort the run; retried next interval
            report.failures[project_id] = str(e)
            if self._emit_events:
                publish_event(
                    ProjectEvent(
                        type=EventType.TICK_FAILED,
                        project_id=project_id,
                        message="tick aborted, retrying next interval",
                        error=f"{e.__class__.__name__}: {e}",
                    )
                )

    def run_forever(
        self,
        stop_event: Optional[threading.Event] = None,
        on_report: Optional[Callable[[SchedulerReport], None]] = None,
        max_runs: Optional[int] = None,
    ) -> List[SchedulerReport]:
        """Run scheduled ticks until stopped.

        Args:
            stop_event: Set it to stop between runs.
            on_report: Called with each report.
            max_runs: Stop after this many runs (None runs until stopped).

        Returns:
            Reports of every run.
        """
        stop_event = stop_event or threading.Event()
        reports: List[SchedulerReport] = []

        while not stop_event.is_set():
            report = self.run_scheduled_tick()
            reports.append(report)
            if on_report:
                on_report(report)
            if max_runs is not None and len(reports) >= max_runs:
                break
            stop_event.wait(self.interval_seconds)

        return reports
