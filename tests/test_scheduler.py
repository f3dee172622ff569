"""Tests for the periodic trigger."""

from datetime import timedelta

from netmon.config import SchedulerConfig
from netmon.pipeline import TriggerChannel
from netmon.scheduler import JOB_ID, SchedulerService


def test_start_triggers_immediately_then_on_interval():
    """The first trigger fires at start; the job repeats every interval."""
    channel = TriggerChannel()
    service = SchedulerService(SchedulerConfig(interval_minutes=15), channel)

    service.start()
    try:
        assert channel.wait(timeout=5) == "periodic"
        job = service.scheduler.get_job(JOB_ID)
        assert job.trigger.interval == timedelta(minutes=15)
        assert job.coalesce is True
        assert job.max_instances == 1
    finally:
        service.shutdown()

    assert service.started is False


def test_disabled_scheduler_does_not_start():
    """With scheduling disabled no job is registered."""
    service = SchedulerService(SchedulerConfig(enabled=False), TriggerChannel())

    service.start()

    assert service.started is False
    assert service.scheduler.get_jobs() == []


def test_duplicate_start_is_ignored():
    """Starting twice keeps the single job."""
    service = SchedulerService(SchedulerConfig(), TriggerChannel())
    service.start()
    try:
        service.start()
        assert len(service.scheduler.get_jobs()) == 1
    finally:
        service.shutdown()


def test_tick_never_blocks_on_pending_trigger():
    """A tick while a trigger is pending is dropped instead of waiting."""
    channel = TriggerChannel(capacity=1)
    service = SchedulerService(SchedulerConfig(), channel)

    service._emit()
    service._emit()

    assert service.ticks == 2
    assert channel.pending() == 1
