"""Single-flight measurement pipeline.

Triggers from websocket clients, the HTTP API and the periodic scheduler all
land in one ``TriggerChannel``. A single worker thread takes them one at a
time and runs each end-to-end:

    IDLE -> ANNOUNCING -> MEASURING -> RECORDING -> IDLE
                              \\-> (failure) -> IDLE

so at most one speedtest runs in the whole process. The channel holds at most
``capacity`` pending triggers; anything offered beyond that is dropped, since
the pending trigger will already produce a fresh measurement.
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import Optional, Protocol

from .broadcast import Broadcaster
from .errors import EncodingFailure, MeasurementFailure
from .measurements.models import PerformanceRecord
from .messages import REQUEST_MADE, Notification
from .registry import SessionRegistry

LOGGER = logging.getLogger(__name__)


class Runner(Protocol):
    def run(self) -> PerformanceRecord: ...


class PipelineState(str, Enum):
    IDLE = "idle"
    ANNOUNCING = "announcing"
    MEASURING = "measuring"
    RECORDING = "recording"


class TriggerChannel:
    """Bounded, non-blocking hand-off of trigger signals to the pipeline."""

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError("Trigger channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=capacity)

    def offer(self, source: str = "manual") -> bool:
        """Queue a trigger. Returns False if it was coalesced into a pending one."""
        try:
            self._queue.put_nowait(source)
        except queue.Full:
            LOGGER.debug("Trigger from %s coalesced into pending request", source)
            return False
        LOGGER.debug("Trigger queued from %s", source)
        return True

    def wait(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until a trigger arrives; returns its source, or None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()


class RequestPipeline:
    def __init__(
        self,
        registry: SessionRegistry,
        broadcaster: Broadcaster,
        runner: Runner,
        channel: TriggerChannel,
    ) -> None:
        self.registry = registry
        self.broadcaster = broadcaster
        self.runner = runner
        self.channel = channel
        self.runs_completed = 0
        self.runs_failed = 0
        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    def _enter(self, state: PipelineState) -> None:
        with self._state_lock:
            self._state = state

    def _announce(self, notification: Notification) -> None:
        try:
            self.broadcaster.broadcast(notification)
        except EncodingFailure as exc:
            LOGGER.error("Skipping %s broadcast: %s", notification.kind.value, exc)

    def process_one(self) -> Optional[PerformanceRecord]:
        """Run one trigger through the state machine; returns the new record."""
        try:
            self._enter(PipelineState.ANNOUNCING)
            self._announce(Notification.status(REQUEST_MADE))

            self._enter(PipelineState.MEASURING)
            try:
                record = self.runner.run()
            except MeasurementFailure as exc:
                self.runs_failed += 1
                LOGGER.error("Error trying to get SpeedTest info: %s", exc)
                if exc.stderr:
                    LOGGER.debug("speedtest stderr: %s", exc.stderr)
                self._announce(Notification.status(exc.user_message))
                return None

            self._enter(PipelineState.RECORDING)
            # History is replayed to every new client, so a record that
            # cannot be encoded must not be stored.
            try:
                notification = Notification.result(record)
            except EncodingFailure as exc:
                self.runs_failed += 1
                LOGGER.error("Error encoding speedtest data: %s", exc)
                return None
            count = self.registry.record(record)
            self.runs_completed += 1
            LOGGER.info(
                "Stored measurement #%d at %s (down %.2f Mbps / up %.2f Mbps)",
                count,
                record.timestamp,
                record.download_mbps,
                record.upload_mbps,
            )
            self._announce(notification)
            return record
        finally:
            self._enter(PipelineState.IDLE)

    def _loop(self) -> None:
        LOGGER.info("Request pipeline waiting for triggers")
        while self._running:
            source = self.channel.wait(timeout=1.0)
            if source is None:
                continue
            LOGGER.info("Measurement requested (%s)", source)
            try:
                self.process_one()
            except Exception:  # pylint: disable=broad-except
                LOGGER.exception("Measurement cycle failed unexpectedly")
        LOGGER.info("Request pipeline stopped")

    def start(self) -> None:
        if self._running:
            LOGGER.warning("Request pipeline already running")
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, name="request-pipeline", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop after the in-flight measurement, if any, finishes."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._running and self._thread is not None and self._thread.is_alive()
