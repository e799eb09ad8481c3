# taskpulse/config/schedule_manager.py
'''
schedule_manager.py - Timers that keep the task collection current

Two loops on one asyncio event loop:
- alarm tick: every alarm_interval seconds, scan for reminders to fire
- midnight tick: at the next local midnight, then every 24 hours, reconcile
Plus the on-change trigger: the store calls run_reconciliation after each mutation.
Every tick reloads the store, since CLI commands save from their own processes.
'''
import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import List, Optional

from taskpulse.utils.clock import SystemClock
from taskpulse.utils.error_handler import StorageError

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from now until the next local midnight (a full day when now is midnight)."""
    next_midnight = datetime.combine(now.date() + timedelta(days=1), time(0, 0))
    return (next_midnight - now).total_seconds()


class ScheduleManager:
    """
    Owns the scheduler timers for one TaskStore.
    - start() registers the on-change listener, runs both checks once, and arms the loops.
    - stop() cancels the loops and unregisters; safe to call more than once.
    """

    midnight_period = DAY_SECONDS

    def __init__(self, store, alarm_trigger, clock=None, *, alarm_interval: float = 60.0):
        self.store = store
        self.alarm_trigger = alarm_trigger
        self.clock = clock or SystemClock()
        self.alarm_interval = float(alarm_interval)
        self._alarm_task: Optional[asyncio.Task] = None
        self._midnight_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._alarm_task is not None or self._midnight_task is not None

    def run_reconciliation(self):
        """
        One reconciliation pass over the stored tasks, reloaded first.
        Failures are logged; the timers keep running.
        """
        try:
            self.store.load()
            return self.store.reconcile(self.clock.now())
        except StorageError as e:
            logger.error(f"Reconciliation results could not be saved: {e}")
        except Exception:
            logger.exception("Reconciliation pass failed")
        return None

    def run_alarm_check(self) -> List:
        try:
            self.store.load()
            return self.alarm_trigger.check(
                self.store.get_all_tasks(),
                enabled=self.store.preferences.enable_notifications,
            )
        except Exception:
            logger.exception("Alarm check failed")
            return []

    async def _alarm_loop(self) -> None:
        while True:
            await asyncio.sleep(self.alarm_interval)
            self.run_alarm_check()

    async def _midnight_loop(self) -> None:
        delay = seconds_until_midnight(self.clock.now())
        logger.debug(f"Next midnight reconciliation in {delay:.0f}s")
        await asyncio.sleep(delay)
        while True:
            logger.info("Midnight reconciliation")
            self.run_reconciliation()
            await asyncio.sleep(self.midnight_period)

    async def start(self) -> None:
        if self.running:
            logger.debug("ScheduleManager already running")
            return
        self.store.add_listener(self.run_reconciliation)
        self.run_reconciliation()
        self.run_alarm_check()
        self._alarm_task = asyncio.create_task(self._alarm_loop())
        self._midnight_task = asyncio.create_task(self._midnight_loop())
        logger.info(f"Scheduler started (alarm interval {self.alarm_interval:g}s)")

    async def stop(self) -> None:
        tasks = [t for t in (self._alarm_task, self._midnight_task) if t is not None]
        self._alarm_task = None
        self._midnight_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.store.remove_listener(self.run_reconciliation)
        if tasks:
            logger.info("Scheduler stopped")

    async def run_forever(self) -> None:
        """start(), then wait until cancelled; always stop()s on the way out."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
