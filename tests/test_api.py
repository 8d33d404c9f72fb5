"""End-to-end tests for the REST control surface and the WS feed.

We use FastAPI TestClient (runs the lifespan) for both HTTP and WebSocket,
and httpx.AsyncClient for the async health check.
"""

import time

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from tickpulse.main import create_app
from tickpulse.presentation.websocket.websocket_manager import parse_command


def _receive_until_status(ws, limit=20_000):
	for _ in range(limit):
		message = ws.receive_json()
		if message["type"] == "status":
			return message
	raise AssertionError("no status message received")


@pytest.mark.asyncio
async def test_health_endpoint(test_settings):
	app = create_app(test_settings)
	async with app.router.lifespan_context(app):
		transport = ASGITransport(app=app)
		async with AsyncClient(transport=transport, base_url="http://test") as client:
			resp = await client.get("/api/health")
			assert resp.status_code == 200, resp.text
			assert resp.json() == {"status": "ok", "service": "tickpulse"}


def test_prices_endpoint_matches_universe(test_settings):
	with TestClient(create_app(test_settings)) as client:
		resp = client.get("/api/prices")
		assert resp.status_code == 200
		assert resp.json()["prices"] == test_settings.initial_prices


def test_rest_start_stop_is_idempotent(test_settings):
	with TestClient(create_app(test_settings)) as client:
		assert client.post("/api/simulation/start").json() == {
			"running": True,
			"changed": True,
			"final_metrics": None,
		}
		assert client.post("/api/simulation/start").json()["changed"] is False
		time.sleep(0.05)

		status = client.get("/api/status").json()
		assert status["running"] is True
		assert status["metrics"]["runs"] == 1
		assert status["queue"]["enqueued"] > 0

		stopped = client.post("/api/simulation/stop").json()
		assert stopped["running"] is False
		assert stopped["changed"] is True
		assert client.post("/api/simulation/stop").json()["changed"] is False

		final = client.get("/api/metrics/final").json()
		assert final["available"] is (final["final_metrics"] is not None)


def test_status_reports_counters_with_empty_queue(test_settings):
	with TestClient(create_app(test_settings)) as client:
		status = client.get("/api/status").json()
		assert status["queue"] == {"depth": 0, "max_size": 0, "enqueued": 0, "dropped": 0}
		assert status["pipeline"] == {"processed": 0, "spikes": 0}
		assert status["detector"]["evaluated"] == 0
		assert status["spike_log"]["failures"] == 0
		assert status["ws_clients"] == 0


def test_long_run_exposes_final_metrics(test_settings):
	with TestClient(create_app(test_settings)) as client:
		client.post("/api/simulation/start")
		time.sleep(0.7)
		stopped = client.post("/api/simulation/stop").json()
		metrics = stopped["final_metrics"]
		assert metrics is not None
		assert metrics["elapsed_ms"] > 500
		assert metrics["tick_count"] > 0
		assert client.get("/api/metrics/final").json()["available"] is True


def test_websocket_feed_flow(test_settings):
	with TestClient(create_app(test_settings)) as client:
		with client.websocket_connect("/ws/feed") as ws:
			first = ws.receive_json()
			assert first["type"] == "initialData"
			assert set(first["data"]["prices"]) == set(test_settings.instruments)

			ws.send_text("bogusCommand")
			ws.send_json({"type": "startSimulation"})
			assert ws.receive_json() == {"type": "status", "data": {"running": True}}

			update = ws.receive_json()
			assert update["type"] == "priceUpdate"
			tick = update["data"]["tick"]
			assert "sentAt" in tick
			assert len(tick) == 2
			assert isinstance(update["data"]["spikes"], list)

			status = client.get("/api/status").json()
			assert status["ws_clients"] == 1
			assert status["controllers"] == 1

			ws.send_text("stopSimulation")
			assert _receive_until_status(ws)["data"] == {"running": False}


def test_binary_frame_keeps_session_open(test_settings, caplog):
	with TestClient(create_app(test_settings)) as client:
		with client.websocket_connect("/ws/feed") as ws:
			assert ws.receive_json()["type"] == "initialData"

			ws.send_bytes(b"\x00\x01")
			ws.send_json({"type": "startSimulation"})
			assert ws.receive_json() == {"type": "status", "data": {"running": True}}
			assert client.get("/api/status").json()["ws_clients"] == 1

			ws.send_text("stopSimulation")
			assert _receive_until_status(ws)["data"] == {"running": False}

	assert any("Frame binario" in r.getMessage() for r in caplog.records)


def test_late_joiner_sees_running_status(test_settings):
	with TestClient(create_app(test_settings)) as client:
		client.post("/api/simulation/start")
		with client.websocket_connect("/ws/feed") as ws:
			assert ws.receive_json()["type"] == "initialData"
			assert ws.receive_json() == {"type": "status", "data": {"running": True}}
			assert ws.receive_json()["type"] == "priceUpdate"
		client.post("/api/simulation/stop")


def test_controller_disconnect_stops_simulation(test_settings):
	with TestClient(create_app(test_settings)) as client:
		with client.websocket_connect("/ws/feed") as ws:
			ws.receive_json()
			ws.send_json({"type": "startSimulation"})
			assert ws.receive_json()["data"] == {"running": True}

		for _ in range(100):
			if not client.get("/api/status").json()["running"]:
				break
			time.sleep(0.02)
		assert client.get("/api/status").json()["running"] is False


@pytest.mark.parametrize(
	"raw, expected",
	[
		("startSimulation", "startSimulation"),
		('"stopSimulation"', "stopSimulation"),
		('{"type": "startSimulation"}', "startSimulation"),
		('{"event": "stopSimulation"}', "stopSimulation"),
		("{not json", None),
		("[1, 2]", None),
	],
)
def test_parse_command(raw, expected):
	assert parse_command(raw) == expected
