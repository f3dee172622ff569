"""Tests for the Flask HTTP routes."""

import pytest

from netmon.config import load_config
from netmon.web.app import create_web_app
from tests.conftest import FakeRunner, make_record


@pytest.fixture
def app_config(tmp_path):
    (tmp_path / "config.yaml").write_text("scheduler:\n  interval_minutes: 30\n", encoding="utf-8")
    static_dir = tmp_path / "www"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<h1>netmon</h1>", encoding="utf-8")
    (static_dir / "app.js").write_text("console.log('hi');", encoding="utf-8")
    return load_config(str(tmp_path / "config.yaml"))


@pytest.fixture
def client(app_config, registry, channel, make_pipeline):
    pipeline = make_pipeline(FakeRunner())
    app = create_web_app(app_config, registry, channel, pipeline)
    app.config["TESTING"] = True
    return app.test_client()


def test_index_serves_static_ui(client):
    """The web UI is served from the static directory."""
    response = client.get("/")
    assert response.status_code == 200
    assert b"netmon" in response.data

    assert client.get("/app.js").status_code == 200
    assert client.get("/missing.css").status_code == 404


def test_measurements_returns_history(client, registry):
    """The history endpoint lists records in completion order."""
    assert client.get("/api/measurements").get_json() == []

    registry.record(make_record(server_id="1"))
    registry.record(make_record(server_id="2"))

    data = client.get("/api/measurements").get_json()
    assert [item["server"]["id"] for item in data] == ["1", "2"]


def test_status_reports_pipeline_and_clients(client):
    """The status endpoint exposes counters and the configured interval."""
    data = client.get("/api/status").get_json()

    assert data["clients"] == 0
    assert data["measurements"] == 0
    assert data["state"] == "idle"
    assert data["interval_minutes"] == 30
    assert data["websocket"]["path"] == "/ws"


def test_manual_trigger_is_queued_then_coalesced(client, channel):
    """A second request while one is pending is coalesced."""
    first = client.post("/api/manual/speedtest")
    second = client.post("/api/manual/speedtest")

    assert first.status_code == 202
    assert first.get_json()["status"] == "queued"
    assert second.get_json()["status"] == "coalesced"
    assert channel.pending() == 1
