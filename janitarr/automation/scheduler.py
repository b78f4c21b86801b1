"""
Scheduler for Janitarr.
Runs the automation cycle on an interval and guards against overlapping
scheduled and manual cycles.
"""

import threading
from datetime import datetime, timedelta
from typing import Dict, Any, Callable, Optional
from dataclasses import dataclass


class SchedulerError(RuntimeError):
    """Scheduler misuse: double start or overlapping manual cycle."""


@dataclass
class SchedulerStatus:
    """Snapshot of the scheduler state."""
    is_running: bool
    is_cycle_active: bool
    interval: timedelta
    next_run: Optional[datetime] = None
    last_run: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'is_cycle_active': self.is_cycle_active,
            'interval_hours': round(self.interval.total_seconds() / 3600, 2),
            'next_run': self.next_run.isoformat() if self.next_run else None,
            'last_run': self.last_run.isoformat() if self.last_run else None,
        }


class Scheduler:
    """
    Background cycle scheduler.

    States: idle -> running (waiting) -> running with an active cycle -> back
    to waiting, or stopped. The interval is read through ``get_interval`` every
    time the next run is scheduled, so configuration changes apply from the
    next tick. Stopping never interrupts a cycle that is already executing.

    The callback is called as ``callback(is_manual, stop_event=..., **options)``;
    ``stop_event`` is created together with the active flag and is what
    ``cancel_cycle()`` sets.
    """

    def __init__(self, callback: Callable[..., Any], get_interval: Callable[[], timedelta],
                 logger, daily_task: Optional[Callable[[], Any]] = None):
        self.callback = callback
        self.get_interval = get_interval
        self.daily_task = daily_task
        self.log = logger.get_logger('scheduler')

        self._lock = threading.Lock()
        self._running = False
        self._cycle_active = False
        self._next_run: Optional[datetime] = None
        self._last_run: Optional[datetime] = None
        self._last_daily_run = None
        self._cycle_event: Optional[threading.Event] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start the scheduler; the first cycle runs one interval from now."""
        with self._lock:
            if self._running:
                raise SchedulerError("scheduler already running")
            self._running = True
            self._stop_event = threading.Event()
            self._schedule_next()
            self._thread = threading.Thread(target=self._run_loop, args=(self._stop_event,),
                                            name='scheduler', daemon=True)
            self._thread.start()
            next_run = self._next_run
        self.log.info(f"Scheduler started, next run at {next_run:%Y-%m-%d %H:%M:%S}")

    def stop(self):
        """Cancel the pending run. An in-flight cycle finishes without rescheduling."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._next_run = None
            self._stop_event.set()
        self.log.info("Scheduler stopped")

    def join(self, timeout: Optional[float] = None):
        """Wait for the scheduler thread to exit after stop()."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def trigger_manual(self, **options) -> Any:
        """Run a cycle now, in the caller's thread. The next scheduled run is unchanged."""
        with self._lock:
            if self._cycle_active:
                raise SchedulerError("cycle already active")
            cycle_event = self._begin_cycle()

        try:
            return self.callback(True, stop_event=cycle_event, **options)
        finally:
            with self._lock:
                self._end_cycle()

    def cancel_cycle(self) -> bool:
        """Signal the active cycle to abandon its remaining requests."""
        with self._lock:
            if not self._cycle_active or self._cycle_event is None:
                return False
            self._cycle_event.set()
        self.log.info("Cancelling active cycle")
        return True

    def _begin_cycle(self) -> threading.Event:
        # Caller holds the lock; the event exists before the cycle is visible as active
        self._cycle_event = threading.Event()
        self._cycle_active = True
        return self._cycle_event

    def _end_cycle(self):
        # Caller holds the lock
        self._cycle_active = False
        self._cycle_event = None
        self._last_run = datetime.now()

    def _run_loop(self, stop_event: threading.Event):
        """Main loop."""
        while True:
            with self._lock:
                next_run = self._next_run
            if next_run is None:
                return

            delay = (next_run - datetime.now()).total_seconds()
            if delay > 0 and stop_event.wait(delay):
                return
            if stop_event.is_set():
                return

            with self._lock:
                if self._cycle_active:
                    self.log.info("Manual cycle in progress, skipping scheduled run")
                    self._schedule_next()
                    continue
                cycle_event = self._begin_cycle()

            self.log.debug("Scheduler woke up, running cycle")
            try:
                self.callback(False, stop_event=cycle_event)
            except Exception as e:
                self.log.error(f"Scheduled cycle failed: {e}")

            with self._lock:
                self._end_cycle()
                if stop_event.is_set():
                    return
                self._schedule_next()

            self._run_daily_task()

    def _schedule_next(self):
        # Caller holds the lock
        self._next_run = datetime.now() + self.get_interval()
        self.log.debug(f"Scheduler sleeping until {self._next_run.isoformat()}")

    def _run_daily_task(self):
        if self.daily_task is None:
            return
        today = datetime.now().date()
        if self._last_daily_run == today:
            return
        self._last_daily_run = today
        try:
            self.daily_task()
        except Exception as e:
            self.log.error(f"Daily maintenance failed: {e}")

    # ==================== Status ====================

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def is_cycle_active(self) -> bool:
        with self._lock:
            return self._cycle_active

    def time_until_next_run(self) -> timedelta:
        with self._lock:
            if not self._running or self._next_run is None:
                return timedelta(0)
            return max(self._next_run - datetime.now(), timedelta(0))

    def get_status(self) -> SchedulerStatus:
        """Get status."""
        with self._lock:
            return SchedulerStatus(
                is_running=self._running,
                is_cycle_active=self._cycle_active,
                interval=self.get_interval(),
                next_run=self._next_run,
                last_run=self._last_run,
            )
