"""Scheduler for the periodic sync and the daily report runs."""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ScheduledTask:
    """A task that repeats every ``interval_minutes`` or once a day at ``at``."""

    name: str
    handler: Callable[[], Any]
    interval_minutes: int | None = None
    at: time | None = None
    enabled: bool = True
    next_run: datetime | None = None
    last_run: datetime | None = None
    runs: int = 0
    failures: int = 0
    last_error: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if (self.interval_minutes is None) == (self.at is None):
            raise ValueError(f"Task {self.name!r} needs exactly one of interval_minutes or at")
        if self.interval_minutes is not None and self.interval_minutes <= 0:
            raise ValueError("Interval must be positive")

    def next_after(self, moment: datetime) -> datetime:
        """The first run time strictly after ``moment``."""
        if self.interval_minutes is not None:
            return moment + timedelta(minutes=self.interval_minutes)
        assert self.at is not None
        candidate = moment.replace(
            hour=self.at.hour, minute=self.at.minute, second=0, microsecond=0
        )
        if candidate <= moment:
            candidate += timedelta(days=1)
        return candidate

    def is_due(self, now: datetime) -> bool:
        return self.enabled and self.next_run is not None and now >= self.next_run


class Scheduler:
    """Runs registered tasks one at a time in a single asyncio loop.

    Tasks never overlap: a long sync delays the next due task instead of
    running alongside it. A task that raises is logged and stays scheduled.
    """

    def __init__(
        self,
        tz: ZoneInfo,
        poll_seconds: float = 30.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._tz = tz
        self._poll_seconds = poll_seconds
        self._clock = clock or (lambda: datetime.now(tz))
        self._tasks: list[ScheduledTask] = []
        self._is_running = False
        self._logger = logger.bind(component="scheduler")

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks)

    def now(self) -> datetime:
        return self._clock()

    def schedule_interval(
        self,
        name: str,
        handler: Callable[[], Any],
        minutes: int,
        run_immediately: bool = True,
    ) -> ScheduledTask:
        """Run ``handler`` every ``minutes``; first run right away unless told otherwise."""
        task = ScheduledTask(name=name, handler=handler, interval_minutes=minutes)
        now = self.now()
        task.next_run = now if run_immediately else task.next_after(now)
        self._add(task)
        return task

    def schedule_daily(self, name: str, handler: Callable[[], Any], at: time) -> ScheduledTask:
        """Run ``handler`` once a day at ``at``.

        A daily time already past when the task is registered fires the next day.
        """
        task = ScheduledTask(name=name, handler=handler, at=at)
        task.next_run = task.next_after(self.now())
        self._add(task)
        return task

    def _add(self, task: ScheduledTask) -> None:
        if any(existing.name == task.name for existing in self._tasks):
            raise ValueError(f"Task {task.name!r} is already scheduled")
        self._tasks.append(task)
        self._logger.debug(
            "task_scheduled",
            task=task.name,
            next_run=task.next_run.isoformat() if task.next_run else None,
        )

    def remove_task(self, task_name: str) -> bool:
        original_len = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.name != task_name]
        return len(self._tasks) < original_len

    def due_tasks(self, now: datetime | None = None) -> list[ScheduledTask]:
        now = now or self.now()
        due = [task for task in self._tasks if task.is_due(now)]
        return sorted(due, key=lambda t: t.next_run or now)

    async def run_task(self, task: ScheduledTask) -> bool:
        """Run one task and reschedule it. Returns False when the handler raised."""
        started = self.now()
        self._logger.info("task_starting", task=task.name)
        ok = True
        try:
            result = task.handler()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            ok = False
            task.failures += 1
            task.last_error = str(e)
            self._logger.error("task_error", task=task.name, error=str(e))
        else:
            task.last_error = None
            self._logger.info("task_completed", task=task.name)
        finally:
            task.runs += 1
            task.last_run = started
            task.next_run = task.next_after(started)
        return ok

    async def run_pending(self, now: datetime | None = None) -> dict[str, bool]:
        """Run every task due at ``now`` sequentially.

        Returns:
            Success flag per task name that ran.
        """
        results: dict[str, bool] = {}
        for task in self.due_tasks(now):
            results[task.name] = await self.run_task(task)
        return results

    async def run_forever(self) -> None:
        """Poll for due tasks until ``stop()`` is called."""
        self._is_running = True
        self._logger.info("scheduler_started", tasks=[t.name for t in self._tasks])
        try:
            while self._is_running:
                await self.run_pending()
                if not self._is_running:
                    break
                await asyncio.sleep(self._poll_seconds)
        finally:
            self._is_running = False
            self._logger.info("scheduler_stopped")

    def stop(self) -> None:
        self._is_running = False

    def get_status(self) -> dict[str, Any]:
        return {
            "is_running": self._is_running,
            "tasks": [
                {
                    "name": task.name,
                    "enabled": task.enabled,
                    "next_run": task.next_run.isoformat() if task.next_run else None,
                    "last_run": task.last_run.isoformat() if task.last_run else None,
                    "runs": task.runs,
                    "failures": task.failures,
                }
                for task in self._tasks
            ],
        }
