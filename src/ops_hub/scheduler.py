"""In-process scheduler for recurring automation jobs.

Two kinds of job share one registry:

- ``IntervalJob`` runs every ``interval`` seconds, first firing one interval
  after registration.
- ``AnchoredJob`` runs at a wall-clock time of day, optionally on one
  weekday only, and re-anchors after each run.

A job is either scheduled (waiting) or running. A failing handler is
logged, counted and rescheduled; there is no terminal failed state.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from ops_hub.config import get_settings
from ops_hub.events import EventRecorder, job_failed

logger = structlog.get_logger(__name__)

Handler = Callable[[], Awaitable[Any]]
Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[Any]]

WEEKDAY_NAMES = (
    "Mondays",
    "Tuesdays",
    "Wednesdays",
    "Thursdays",
    "Fridays",
    "Saturdays",
    "Sundays",
)


class JobState(str, Enum):
    """Possible states for a registered job."""

    SCHEDULED = "scheduled"
    RUNNING = "running"


def next_anchored_run(
    now: datetime,
    hour: int,
    minute: int = 0,
    weekday: int | None = None,
) -> datetime:
    """Next occurrence of ``hour:minute`` strictly after ``now``.

    Args:
        now: Current time; the result keeps its tzinfo.
        hour: Target hour of day.
        minute: Target minute.
        weekday: Target weekday (Monday = 0), or None for every day.

    Returns:
        The next wall-clock occurrence. An occurrence equal to ``now`` has
        already fired and is skipped.
    """
    target = time(hour, minute)
    days_ahead = 0 if weekday is None else (weekday - now.weekday()) % 7
    candidate = datetime.combine(now.date() + timedelta(days=days_ahead), target, tzinfo=now.tzinfo)
    if candidate <= now:
        step = 1 if weekday is None else 7
        candidate = datetime.combine(
            candidate.date() + timedelta(days=step), target, tzinfo=now.tzinfo
        )
    return candidate


@dataclass(kw_only=True)
class ScheduledJob:
    """Bookkeeping for one registered job. Not persisted."""

    id: str
    name: str
    handler: Handler
    state: JobState = JobState.SCHEDULED
    last_run: datetime | None = None
    next_run: datetime | None = None
    run_count: int = 0
    failure_count: int = 0

    def next_run_after(self, now: datetime) -> datetime:
        raise NotImplementedError

    @property
    def frequency(self) -> str:
        raise NotImplementedError


@dataclass(kw_only=True)
class IntervalJob(ScheduledJob):
    interval: float  # seconds

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError("Interval must be positive")

    def next_run_after(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.interval)

    @property
    def frequency(self) -> str:
        if self.interval % 3600 == 0:
            hours = int(self.interval // 3600)
            return "Every hour" if hours == 1 else f"Every {hours} hours"
        if self.interval % 60 == 0:
            return f"Every {int(self.interval // 60)} minutes"
        return f"Every {self.interval:g} seconds"


@dataclass(kw_only=True)
class AnchoredJob(ScheduledJob):
    hour: int
    minute: int = 0
    weekday: int | None = None  # Monday = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError("Invalid time of day")
        if self.weekday is not None and not 0 <= self.weekday <= 6:
            raise ValueError("Weekday must be between 0 (Monday) and 6 (Sunday)")

    def next_run_after(self, now: datetime) -> datetime:
        return next_anchored_run(now, self.hour, self.minute, self.weekday)

    @property
    def frequency(self) -> str:
        days = "Daily" if self.weekday is None else WEEKDAY_NAMES[self.weekday]
        return f"{days} at {self.hour:02d}:{self.minute:02d}"


class Scheduler:
    """Registry of recurring jobs, one asyncio task per job.

    Create one per process and pass it to whatever registers jobs. Call
    ``stop_all()`` before exit; timers are never left to garbage collection.

    ``clock`` and ``sleep`` can be replaced to drive the scheduler from a
    simulated clock.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        sleep: Sleeper | None = None,
        timezone: str | None = None,
        events: EventRecorder | None = None,
    ):
        tz = ZoneInfo(timezone or get_settings().scheduler_timezone)
        self._clock: Clock = clock or (lambda: datetime.now(tz))
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._events = events

        self._jobs: dict[str, ScheduledJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._retired: set[asyncio.Task[None]] = set()
        # Timer tasks currently inside their own job handler
        self._firing: set[asyncio.Task[None]] = set()

        self._logger = logger.bind(component="scheduler")

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs.values())

    def get_job(self, job_id: str) -> ScheduledJob | None:
        return self._jobs.get(job_id)

    def register_task(self, job: ScheduledJob) -> None:
        """Register a job and start its timer. Replaces a job with the same id.

        Must be called from a running event loop.
        """
        if job.id in self._jobs:
            self.unregister_task(job.id)

        self._jobs[job.id] = job
        self._tasks[job.id] = asyncio.get_running_loop().create_task(
            self._run_job(job), name=f"job:{job.id}"
        )
        self._logger.info("job_registered", job=job.id, frequency=job.frequency)

    def unregister_task(self, job_id: str) -> bool:
        """Stop future runs of a job.

        A handler that is already running is allowed to finish. A timer that
        is only waiting for its next tick is cancelled.

        Returns:
            True if the job was registered.
        """
        job = self._jobs.pop(job_id, None)
        task = self._tasks.pop(job_id, None)
        if job is None:
            return False

        if task is not None and not task.done():
            if task not in self._firing:
                task.cancel()
            self._retired.add(task)
            task.add_done_callback(self._retired.discard)

        self._logger.info("job_unregistered", job=job_id)
        return True

    async def stop_all(self) -> None:
        """Unregister every job and wait for their tasks to finish."""
        for job_id in list(self._jobs):
            self.unregister_task(job_id)

        if self._retired:
            await asyncio.gather(*list(self._retired), return_exceptions=True)
        self._retired.clear()
        self._logger.info("scheduler_stopped")

    async def run_now(self, job_id: str) -> bool:
        """Run a registered job immediately, outside its schedule.

        Returns:
            False if the job is unknown or already running.
        """
        job = self._jobs.get(job_id)
        if job is None or job.state == JobState.RUNNING:
            return False
        await self._execute(job)
        return True

    def get_status(self) -> dict[str, Any]:
        """Get current scheduler status."""
        return {
            "job_count": len(self._jobs),
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "frequency": job.frequency,
                    "state": job.state.value,
                    "last_run": job.last_run.isoformat() if job.last_run else None,
                    "next_run": job.next_run.isoformat() if job.next_run else None,
                    "run_count": job.run_count,
                    "failure_count": job.failure_count,
                }
                for job in self._jobs.values()
            ],
        }

    def _is_registered(self, job: ScheduledJob) -> bool:
        return self._jobs.get(job.id) is job

    async def _run_job(self, job: ScheduledJob) -> None:
        while self._is_registered(job):
            now = self._clock()
            job.next_run = job.next_run_after(now)
            delay = (job.next_run.astimezone(UTC) - now.astimezone(UTC)).total_seconds()
            await self._sleep(max(delay, 0.0))

            if not self._is_registered(job):
                return
            if job.state == JobState.RUNNING:
                self._logger.info("job_skipped", job=job.id, reason="already_running")
                continue

            task = asyncio.current_task()
            self._firing.add(task)
            try:
                await self._execute(job)
            finally:
                self._firing.discard(task)

    async def _execute(self, job: ScheduledJob) -> None:
        job.state = JobState.RUNNING
        self._logger.info("job_started", job=job.id)
        try:
            await job.handler()
        except Exception as e:
            job.failure_count += 1
            self._logger.exception("job_failed", job=job.id, error=str(e))
            if self._events is not None:
                self._events.record(job_failed(job.id, str(e)))
        else:
            job.last_run = self._clock()
            self._logger.info("job_completed", job=job.id)
        finally:
            job.run_count += 1
            job.state = JobState.SCHEDULED
