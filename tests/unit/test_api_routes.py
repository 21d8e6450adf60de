"""Tests for API routes."""

import pytest
from fastapi.testclient import TestClient

from flow_api import create_app
from flow_api.app import app_state

START = {"flow_id": "balance", "phone_number": "0241234567", "ussd_code": "*123#"}


@pytest.fixture
def reset_app_state():
    """Reset application state before and after tests."""
    app_state.engine = None
    app_state.sweeper = None
    app_state.settings = None
    app_state.events = None
    app_state.executor = None
    yield
    app_state.engine = None
    app_state.sweeper = None
    app_state.settings = None
    app_state.events = None
    app_state.executor = None


@pytest.fixture
def client(balance_flow, airtime_flow, reset_app_state):
    """Test client with the test flows published."""
    return TestClient(create_app(flows=[balance_flow, airtime_flow]))


def start(client):
    response = client.post("/sessions", json=START)
    assert response.status_code == 200
    return response.json()


class TestStartSession:
    """Tests for POST /sessions endpoint."""

    def test_start_session_success(self, client):
        """Test successfully starting a session."""
        data = start(client)

        assert data["session_id"].startswith("sess_")
        assert data["prompt"] == "Welcome\n1. Balance\n0. Exit"
        assert data["status"] == "active"
        assert data["node_id"] == "start"

    def test_start_session_resumes(self, client):
        """Test that the same caller gets the same session back."""
        first = start(client)
        second = start(client)

        assert second["session_id"] == first["session_id"]

    def test_start_session_unknown_flow(self, client):
        """Test starting a flow that is not published."""
        response = client.post("/sessions", json={**START, "flow_id": "missing"})

        assert response.status_code == 404
        assert "missing" in response.json()["detail"]

    def test_start_session_missing_fields(self, client):
        """Test starting with an incomplete request."""
        response = client.post("/sessions", json={"flow_id": "balance"})

        assert response.status_code == 422

    def test_start_session_no_engine(self, client):
        """Test starting a session when the engine is gone."""
        app_state.engine = None

        response = client.post("/sessions", json=START)

        assert response.status_code == 503


class TestSendInput:
    """Tests for POST /sessions/{session_id}/input endpoint."""

    def test_valid_option(self, client):
        """Test that a valid option moves to the next screen."""
        session_id = start(client)["session_id"]

        response = client.post(f"/sessions/{session_id}/input", json={"input": "1"})

        assert response.status_code == 200
        data = response.json()
        assert data["prompt"] == "Your balance is 10.00"
        assert data["terminated"] is False
        assert data["error"] is None
        assert data["node_id"] == "bal"

    def test_invalid_option_is_not_an_http_error(self, client):
        """Test that a wrong key re-prompts with a 200."""
        session_id = start(client)["session_id"]

        response = client.post(f"/sessions/{session_id}/input", json={"input": "9"})

        assert response.status_code == 200
        data = response.json()
        assert data["error"] == "Invalid option selected"
        assert data["node_id"] == "start"
        assert data["status"] == "active"

    def test_completion(self, client):
        """Test finishing a session."""
        session_id = start(client)["session_id"]

        response = client.post(f"/sessions/{session_id}/input", json={"input": "0"})

        data = response.json()
        assert data["terminated"] is True
        assert data["status"] == "completed"

    def test_input_after_completion(self, client):
        """Test that a finished session answers 409."""
        session_id = start(client)["session_id"]
        client.post(f"/sessions/{session_id}/input", json={"input": "0"})

        response = client.post(f"/sessions/{session_id}/input", json={"input": "1"})

        assert response.status_code == 409

    def test_unknown_session(self, client):
        """Test input for a session that does not exist."""
        response = client.post("/sessions/sess_missing/input", json={"input": "1"})

        assert response.status_code == 404


class TestTerminateSession:
    """Tests for POST /sessions/{session_id}/terminate endpoint."""

    def test_terminate_with_reason(self, client):
        """Test terminating with an explicit reason."""
        session_id = start(client)["session_id"]

        response = client.post(
            f"/sessions/{session_id}/terminate", json={"reason": "operator_cancelled"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "terminated"
        assert data["termination_reason"] == "operator_cancelled"

    def test_terminate_without_body(self, client):
        """Test that the reason defaults when no body is sent."""
        session_id = start(client)["session_id"]

        response = client.post(f"/sessions/{session_id}/terminate")

        assert response.status_code == 200
        assert response.json()["termination_reason"] == "user_terminated"

    def test_terminate_twice(self, client):
        """Test that a second termination answers 409."""
        session_id = start(client)["session_id"]
        client.post(f"/sessions/{session_id}/terminate")

        response = client.post(f"/sessions/{session_id}/terminate")

        assert response.status_code == 409

    def test_terminate_unknown_session(self, client):
        """Test terminating a session that does not exist."""
        response = client.post("/sessions/sess_missing/terminate")

        assert response.status_code == 404


class TestGetSession:
    """Tests for GET /sessions/{session_id} and /sessions/stats endpoints."""

    def test_get_session(self, client):
        """Test reading a session snapshot."""
        session_id = start(client)["session_id"]
        client.post(f"/sessions/{session_id}/input", json={"input": "9"})

        response = client.get(f"/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["flow_id"] == "balance"
        assert data["step_count"] == 1
        assert data["input_history"][0]["input"] == "9"
        assert data["variables"] == {"balance": "10.00"}

    def test_get_unknown_session(self, client):
        """Test reading a session that does not exist."""
        response = client.get("/sessions/sess_missing")

        assert response.status_code == 404

    def test_stats(self, client):
        """Test session statistics."""
        session_id = start(client)["session_id"]
        client.post(f"/sessions/{session_id}/input", json={"input": "0"})

        response = client.get("/sessions/stats", params={"flow_id": "balance"})

        assert response.status_code == 200
        data = response.json()
        assert data["total_sessions"] == 1
        assert data["completed_sessions"] == 1


class TestFlowRoutes:
    """Tests for the /flows endpoints."""

    def test_list_flows(self, client):
        """Test listing published flows."""
        response = client.get("/flows")

        assert response.status_code == 200
        assert [flow["id"] for flow in response.json()] == ["airtime", "balance"]

    def test_get_flow(self, client):
        """Test reading a flow definition."""
        response = client.get("/flows/balance")

        assert response.status_code == 200
        data = response.json()
        assert data["startNodeId"] == "start"
        assert data["nodes"]["bal"]["kind"] == "end"

    def test_get_unknown_flow(self, client):
        """Test reading a flow that is not published."""
        assert client.get("/flows/missing").status_code == 404

    def test_validate_flow(self, client, balance_flow_dict):
        """Test validating a well-formed flow."""
        response = client.post("/flows/validate", json=balance_flow_dict)

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["stats"]["total_nodes"] == 2

    def test_validate_flow_with_errors(self, client):
        """Test that errors are listed with their kind and node."""
        document = {
            "id": "broken",
            "startNodeId": "start",
            "nodes": {
                "start": {"kind": "menu", "options": [{"key": "1", "targetNodeId": "ghost"}]}
            },
        }

        response = client.post("/flows/validate", json=document)

        data = response.json()
        assert data["valid"] is False
        assert data["errors"][0]["kind"] == "dangling_reference"
        assert data["errors"][0]["node_id"] == "start"

    def test_validate_malformed_definition(self, client):
        """Test that an unparseable definition answers 400."""
        response = client.post("/flows/validate", json={"id": "x", "nodes": {}})

        assert response.status_code == 400

    def test_publish_flow(self, client, balance_flow_dict):
        """Test publishing a new version of a flow."""
        response = client.post("/flows", json=balance_flow_dict)

        assert response.status_code == 200
        assert response.json()["version"] == 2

    def test_publish_invalid_flow(self, client):
        """Test that an invalid flow is refused with its issues."""
        document = {"id": "broken", "startNodeId": "missing", "nodes": {"a": {"kind": "end"}}}

        response = client.post("/flows", json=document)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["valid"] is False
        assert detail["errors"][0]["kind"] == "missing_start_node"
