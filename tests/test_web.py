"""Tests for the web API.

Tests use ``pytest.importorskip`` so they are skipped gracefully when
Flask is not installed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

flask = pytest.importorskip("flask")

from py_sched.config import SimulatorConfig  # noqa: E402
from py_sched.context import SchedulingContext  # noqa: E402
from py_sched.process.scheduler import FCFSPolicy  # noqa: E402
from py_sched.web import app as web_app  # noqa: E402
from py_sched.web.app import create_app  # noqa: E402

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_ERROR = 500

INVERSION = (Path(__file__).resolve().parent.parent / "workloads" / "inversion.txt").read_text(
    encoding="utf-8"
)


def _create_client(config: SimulatorConfig | None = None) -> Any:
    """Create a test client from a fresh app."""
    app = create_app(config)
    app.config["TESTING"] = True
    return app.test_client()


class TestAppCreation:
    """Verify the app factory."""

    def test_create_app_returns_flask(self) -> None:
        """create_app should return a Flask application."""
        assert isinstance(create_app(), flask.Flask)


class TestPoliciesEndpoint:
    """Verify GET /api/policies."""

    def test_lists_policies(self) -> None:
        """Every registered policy is listed with its title."""
        response = _create_client().get("/api/policies")
        assert response.status_code == HTTP_OK
        data = response.get_json()
        assert [p["key"] for p in data] == ["fcfs", "sjf", "srtf", "rr", "prio", "pcp", "pip"]
        assert data[0]["title"] == "FCFS"


class TestSimulateEndpoint:
    """Verify POST /api/simulate."""

    def test_runs_workload(self) -> None:
        """A valid request returns the report."""
        response = _create_client().post(
            "/api/simulate", json={"workload": INVERSION, "policy": "pcp"}
        )
        assert response.status_code == HTTP_OK
        data = response.get_json()
        assert data["gantt"] == "1 1 1 1 1 2 2 2 3 3 3 3 3 1"
        assert data["stalled"] is False
        assert "***** tick" in data["status"]

    def test_default_policy_from_config(self) -> None:
        """Requests without a policy use the app's configured default."""
        client = _create_client(SimulatorConfig(policy="pip"))
        data = client.post("/api/simulate", json={"workload": INVERSION}).get_json()
        assert data["policy"] == "Priority + Priority Inheritance Protocol"

    def test_max_ticks(self) -> None:
        """max_ticks truncates the run."""
        data = (
            _create_client()
            .post("/api/simulate", json={"workload": INVERSION, "max_ticks": 3})
            .get_json()
        )
        assert data["truncated"] is True
        assert data["total_ticks"] == 3

    def test_missing_workload(self) -> None:
        """A body without a workload is rejected."""
        response = _create_client().post("/api/simulate", json={"policy": "fcfs"})
        assert response.status_code == HTTP_BAD_REQUEST
        assert "workload" in response.get_json()["error"]

    def test_non_json_body(self) -> None:
        """A body that is not JSON is rejected."""
        response = _create_client().post("/api/simulate", data="hello")
        assert response.status_code == HTTP_BAD_REQUEST

    def test_bad_workload(self) -> None:
        """Workload syntax errors come back as 400 with the line number."""
        response = _create_client().post("/api/simulate", json={"workload": "process 0 {\n"})
        assert response.status_code == HTTP_BAD_REQUEST
        assert "line 1" in response.get_json()["error"]

    def test_unknown_policy(self) -> None:
        """An unknown policy is a client error."""
        response = _create_client().post(
            "/api/simulate", json={"workload": INVERSION, "policy": "lottery"}
        )
        assert response.status_code == HTTP_BAD_REQUEST

    def test_non_string_policy(self) -> None:
        """A policy that is not a string is a client error."""
        response = _create_client().post(
            "/api/simulate", json={"workload": INVERSION, "policy": 5}
        )
        assert response.status_code == HTTP_BAD_REQUEST
        assert "policy must be of type str" in response.get_json()["error"]

    def test_boolean_max_ticks(self) -> None:
        """JSON booleans are not accepted as tick counts."""
        response = _create_client().post(
            "/api/simulate", json={"workload": INVERSION, "max_ticks": True}
        )
        assert response.status_code == HTTP_BAD_REQUEST

    def test_bad_quantum(self) -> None:
        """An invalid quantum is a client error."""
        response = _create_client().post(
            "/api/simulate", json={"workload": INVERSION, "policy": "rr", "quantum": 0}
        )
        assert response.status_code == HTTP_BAD_REQUEST
        assert "quantum" in response.get_json()["error"]

    def test_protocol_violation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A core invariant failure is a server error."""

        class _QueuedPickPolicy(FCFSPolicy):
            def schedule(self, ctx: SchedulingContext) -> Any:
                return ctx.ready_queue.peek()

        monkeypatch.setattr(web_app, "create_policy", lambda *_a, **_k: _QueuedPickPolicy())
        response = _create_client().post("/api/simulate", json={"workload": INVERSION})
        assert response.status_code == HTTP_INTERNAL_ERROR
        assert "protocol violation" in response.get_json()["error"]
