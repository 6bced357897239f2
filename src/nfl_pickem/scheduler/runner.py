"""Supervised periodic job runner.

:class:`PeriodicRunner` owns a private ``schedule.Scheduler`` and one daemon
thread that polls it.  Every registered job is wrapped so an exception is
logged and swallowed: a failing run never cancels the job or stops the loop.
Jobs run one at a time on the runner thread, so two runs of the same job
cannot overlap.
"""

from __future__ import annotations

import datetime
import logging
import threading
from collections.abc import Callable, Iterable

import schedule

logger = logging.getLogger(__name__)

Trigger = Callable[[schedule.Scheduler], schedule.Job]
"""Builds an unscheduled job from the scheduler, e.g. ``lambda s: s.every().hour.at(":15")``."""


def supervised(name: str, func: Callable[[], object]) -> Callable[[], None]:
    """Wrap *func* so exceptions are logged instead of propagated."""

    def run() -> None:
        try:
            func()
        except Exception:  # noqa: BLE001
            logger.exception("scheduler: job %s failed; it stays scheduled", name)

    run.__name__ = f"supervised_{name}"
    return run


class PeriodicRunner:
    """Runs named jobs on a background thread until stopped.

    Args:
        poll_interval: Seconds between checks for due jobs.
        thread_name: Name of the background thread.
    """

    def __init__(self, *, poll_interval: float = 1.0, thread_name: str = "nfl-pickem-scheduler") -> None:
        self._scheduler = schedule.Scheduler()
        self._poll_interval = poll_interval
        self._thread_name = thread_name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def job_names(self) -> list[str]:
        """Registered job names, in registration order."""
        names: dict[str, None] = {}
        for job in self._scheduler.get_jobs():
            for tag in job.tags:
                names.setdefault(str(tag), None)
        return list(names)

    @property
    def next_run(self) -> datetime.datetime | None:
        """When the next job is due, or ``None`` with no jobs."""
        return self._scheduler.next_run if self._scheduler.get_jobs() else None

    def add_job(self, name: str, func: Callable[[], object], triggers: Iterable[Trigger]) -> None:
        """Register *func* under *name*, once per trigger."""
        wrapped = supervised(name, func)
        with self._lock:
            for trigger in triggers:
                trigger(self._scheduler).do(wrapped).tag(name)

    def remove_job(self, name: str) -> None:
        with self._lock:
            self._scheduler.clear(name)

    def run_pending(self) -> None:
        """Run every job that is due now, on the calling thread."""
        with self._lock:
            self._scheduler.run_pending()

    def _loop(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            self.run_pending()

    def start(self) -> None:
        """Start polling; a no-op when already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self._thread_name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling and drop every job; a run in flight finishes first."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        with self._lock:
            self._scheduler.clear()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until :meth:`stop` is called; returns whether it was."""
        return self._stop_event.wait(timeout)
