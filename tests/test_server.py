"""
Tests for DashboardServer routes and WebSocket sessions.
"""

from typing import List
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from urc_dashboard.drivers import DriverRecord
from urc_dashboard.registry import SourceEntry, SourceRegistry
from urc_dashboard.resolution import Idle
from urc_dashboard.server import DashboardServer


URC_ENDPOINT = "https://example.test/urc"


def make_server(drivers: List[DriverRecord] = None) -> DashboardServer:
    """Helper to create a server with a mocked driver source."""
    registry = SourceRegistry([
        SourceEntry("Select a division", ""),
        SourceEntry("URC Sprints", URC_ENDPOINT),
        SourceEntry("Late Models", "https://example.test/late"),
    ])
    client = AsyncMock()
    client.fetch_drivers = AsyncMock(return_value=drivers or [
        DriverRecord(car_number="24", name="Jane Doe", stats="3 wins"),
    ])
    return DashboardServer(registry, client)


def receive_until(ws, status: str) -> dict:
    """Read state messages until one has the given status."""
    for _ in range(10):
        message = ws.receive_json()
        if message["type"] == "state" and message["data"]["state"]["status"] == status:
            return message["data"]
    raise AssertionError(f"never reached {status}")


class TestHttpRoutes:
    """Tests for plain HTTP routes."""

    def test_serves_dashboard_page(self):
        """Test GET / returns the dashboard page."""
        client = TestClient(make_server().app)
        response = client.get("/")

        assert response.status_code == 200
        assert "URC Announcing Dashboard" in response.text
        assert 'id="driver-details"' in response.text

    def test_health(self):
        """Test GET /health reports ok."""
        client = TestClient(make_server().app)
        assert client.get("/health").json() == {"status": "ok"}

    def test_sources_in_registry_order(self):
        """Test GET /api/sources lists sentinel first then alphabetical."""
        client = TestClient(make_server().app)
        names = [s["name"] for s in client.get("/api/sources").json()]

        assert names == ["Select a division", "Late Models", "URC Sprints"]


class TestWebSocketSession:
    """Tests for the per-page WebSocket session."""

    def test_initial_state_is_idle(self):
        """Test a new page starts with nothing selected."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            message = ws.receive_json()

        assert message["type"] == "state"
        assert message["data"]["state"] == {"status": "idle"}
        assert message["data"]["selected"] == "Select a division"

    def test_select_then_lookup(self):
        """Test selecting a division and typing a car number finds the driver."""
        server = make_server()
        client = TestClient(server.app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            ws.send_json({"type": "select_source", "name": "URC Sprints"})
            receive_until(ws, "loading")
            loaded = receive_until(ws, "no_query")

            ws.send_json({"type": "set_query", "query": "  24 "})
            found = receive_until(ws, "found")

        assert loaded["selected"] == "URC Sprints"
        assert found["state"]["driver"]["name"] == "Jane Doe"
        assert found["state"]["driver"]["stats"] == "3 wins"
        assert found["scrollTo"] == "driver-details"
        server._client.fetch_drivers.assert_awaited_once_with(URC_ENDPOINT)

    def test_repeated_query_does_not_scroll_again(self):
        """Test the scroll anchor is only sent on entering Found."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "select_source", "name": "URC Sprints"})
            receive_until(ws, "no_query")

            ws.send_json({"type": "set_query", "query": "24"})
            first = receive_until(ws, "found")
            ws.send_json({"type": "set_query", "query": "24"})
            second = receive_until(ws, "found")

        assert first["scrollTo"] == "driver-details"
        assert second["scrollTo"] is None

    def test_not_found(self):
        """Test unknown car numbers report not_found with the query."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "select_source", "name": "URC Sprints"})
            receive_until(ws, "no_query")

            ws.send_json({"type": "set_query", "query": "99"})
            data = receive_until(ws, "not_found")

        assert data["state"]["query"] == "99"

    def test_unknown_division_warns(self):
        """Test unknown division names get a warning and no state change."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "select_source", "name": "Midgets"})
            message = ws.receive_json()

        assert message == {"type": "warning", "message": "Unknown division: Midgets"}

    @pytest.mark.parametrize("raw, expected", [
        ("not json", "not valid JSON"),
        ("[1, 2]", "not a JSON object"),
        ('{"type": "refresh"}', "Unknown message type: refresh"),
        ('{"type": "set_query", "query": 24}', "Query must be a string"),
    ])
    def test_bad_messages_warn(self, raw, expected):
        """Test malformed page messages are answered with warnings."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(raw)
            message = ws.receive_json()

        assert message["type"] == "warning"
        assert expected in message["message"]

    def test_binary_frame_warns_and_session_survives(self):
        """Test a binary frame gets a warning and the session keeps working."""
        client = TestClient(make_server().app)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_bytes(b"\x00\x01")
            warning = ws.receive_json()

            ws.send_json({"type": "select_source", "name": "URC Sprints"})
            loaded = receive_until(ws, "no_query")

        assert warning == {"type": "warning", "message": "Ignored binary message"}
        assert loaded["selected"] == "URC Sprints"

    def test_sessions_are_independent(self):
        """Test each connection gets its own core."""
        server = make_server()
        client = TestClient(server.app)
        with client.websocket_connect("/ws") as first:
            first.receive_json()
            first.send_json({"type": "select_source", "name": "URC Sprints"})
            receive_until(first, "no_query")

            with client.websocket_connect("/ws") as second:
                message = second.receive_json()
                assert server.session_count() == 2

        assert message["data"]["state"] == {"status": "idle"}


class TestCreateSession:
    """Tests for session construction."""

    def test_new_session_is_idle(self):
        """Test sessions start with no division selected."""
        core = make_server().create_session()
        assert core.state == Idle()

    def test_no_sessions_before_connect(self):
        """Test session count starts at zero."""
        assert make_server().session_count() == 0
