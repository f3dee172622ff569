"""Shared test fixtures for netmon."""

import json
import queue
import threading

import pytest

from netmon.broadcast import Broadcaster
from netmon.measurements.models import PerformanceRecord, ServerInfo
from netmon.pipeline import RequestPipeline, TriggerChannel
from netmon.registry import SessionRegistry


def make_record(
    server_id: str = "1234",
    download: float = 95_000_000.0,
    upload: float = 11_000_000.0,
    ping: float = 18.5,
    timestamp: str = "2024-05-01T12:00:00.000000Z",
) -> PerformanceRecord:
    """Create a PerformanceRecord with sensible defaults for testing."""
    return PerformanceRecord(
        server=ServerInfo(
            id=server_id,
            sponsor="Example ISP",
            name="Springfield, IL",
            country="United States",
            cc="US",
            url="http://speedtest.example.net:8080/speedtest/upload.php",
            host="speedtest.example.net:8080",
            lon="-89.6501",
            lat="39.7817",
            d=12.34,
            latency=17.9,
            share="",
        ),
        bytes_sent=14_000_000.0,
        bytes_received=120_000_000.0,
        upload=upload,
        download=download,
        timestamp=timestamp,
        ping=ping,
    )


def make_tool_output(**overrides) -> dict:
    """Create a speedtest-cli --json document."""
    data = {
        "download": 95000000.0,
        "upload": 11000000.0,
        "ping": 18.5,
        "server": {
            "url": "http://speedtest.example.net:8080/speedtest/upload.php",
            "lat": "39.7817",
            "lon": "-89.6501",
            "name": "Springfield, IL",
            "country": "United States",
            "cc": "US",
            "sponsor": "Example ISP",
            "id": "1234",
            "host": "speedtest.example.net:8080",
            "d": 12.34,
            "latency": 17.9,
        },
        "timestamp": "2024-05-01T12:00:00.000000Z",
        "bytes_sent": 14000000,
        "bytes_received": 120000000,
        "share": None,
    }
    data.update(overrides)
    return data


class FakeTransport:
    """In-memory stand-in for a websocket connection."""

    def __init__(self, fail_send: bool = False, remote_address=("127.0.0.1", 50000)):
        self.sent = []
        self.inbox = queue.Queue()
        self.fail_send = fail_send
        self.closed = False
        self.remote_address = remote_address

    def send(self, payload):
        if self.fail_send or self.closed:
            raise BrokenPipeError("connection lost")
        self.sent.append(payload)

    def recv(self):
        item = self.inbox.get(timeout=5)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True

    def messages(self):
        return [json.loads(raw) for raw in self.sent]

    def kinds(self):
        return [message["type"] for message in self.messages()]


class FakeRunner:
    """Returns queued outcomes in order; exceptions are raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self._lock = threading.Lock()

    def run(self):
        with self._lock:
            self.calls += 1
            outcome = self.outcomes.pop(0) if self.outcomes else make_record()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def channel() -> TriggerChannel:
    return TriggerChannel(capacity=1)


@pytest.fixture
def broadcaster(registry) -> Broadcaster:
    return Broadcaster(registry)


@pytest.fixture
def make_pipeline(registry, broadcaster, channel):
    """Build a RequestPipeline around the shared registry and a given runner."""
    created = []

    def factory(runner):
        pipeline = RequestPipeline(registry, broadcaster, runner, channel)
        created.append(pipeline)
        return pipeline

    yield factory
    for pipeline in created:
        pipeline.stop(timeout=2.0)
