"""Periodic measurement trigger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import SchedulerConfig
from .pipeline import TriggerChannel

LOGGER = logging.getLogger(__name__)

JOB_ID = "periodic-trigger"


class SchedulerService:
    """Offers a trigger at start-up and then once per configured interval.

    Ticks run at a fixed rate measured from start-up, not a fixed delay after
    the previous offer. Since the offer never blocks the two are the same in
    practice: if a trigger is already pending the tick is dropped. Ticks missed
    while the process was busy are coalesced into one.
    """

    def __init__(self, config: SchedulerConfig, channel: TriggerChannel) -> None:
        self.config = config
        self.channel = channel
        self.scheduler = BackgroundScheduler(timezone="UTC")
        self.started = False
        self.ticks = 0

    def start(self) -> None:
        if self.started:
            LOGGER.warning("Scheduler already started, ignoring duplicate start request")
            return
        if not self.config.enabled:
            LOGGER.warning("Periodic measurements are disabled in configuration")
            LOGGER.info("Clients can still request measurements manually")
            return

        trigger = IntervalTrigger(minutes=self.config.interval_minutes)
        self.scheduler.add_job(
            self._emit,
            trigger=trigger,
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.start()
        self.started = True
        LOGGER.info("Scheduler started with interval %s minutes", self.config.interval_minutes)

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False

    def _emit(self) -> None:
        self.ticks += 1
        if not self.channel.offer("periodic"):
            LOGGER.info("Skipping periodic trigger - a measurement is already pending")
