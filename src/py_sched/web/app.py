"""Flask application factory for the py-sched web API.

The ``create_app`` function returns a Flask app with two endpoints:

- ``GET /api/policies`` — list registered scheduling policies.
- ``POST /api/simulate`` — run a workload and return the report as JSON.
"""

from __future__ import annotations

from flask import Flask, Response, jsonify, request

from py_sched.config import ConfigError, SimulatorConfig
from py_sched.errors import ProtocolViolation
from py_sched.registry import PolicyNotFoundError, available_policies, create_policy
from py_sched.simulation import Simulation
from py_sched.workload import WorkloadError, parse_workload

_HTTP_BAD_REQUEST = 400
_HTTP_INTERNAL_ERROR = 500


def create_app(config: SimulatorConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Defaults applied to every simulation request.

    Returns:
        A configured Flask application ready to serve.

    """
    defaults = config if config is not None else SimulatorConfig()
    app = Flask(__name__)

    @app.route("/api/policies")
    def policies() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the registered policies."""
        return jsonify([{"key": d.key, "title": d.title} for d in available_policies()])

    @app.route("/api/simulate", methods=["POST"])
    def simulate() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a simulation.

        Expects JSON body: ``{"workload": "...", "policy": "...",
        "quantum": 1, "max_ticks": 100}``; only ``workload`` is required.

        Returns:
            The simulation report as JSON, plus the final status dump.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or "workload" not in data:
            return jsonify({"error": "Missing 'workload' field"}), _HTTP_BAD_REQUEST

        try:
            run_config = defaults.merge(
                policy=data.get("policy"),
                quantum=data.get("quantum"),
                max_ticks=data.get("max_ticks"),
            )
            workload = parse_workload(str(data["workload"]))
            policy = create_policy(run_config.policy, quantum=run_config.quantum)
            simulation = Simulation(
                workload,
                policy,
                num_resources=run_config.num_resources,
                max_ticks=run_config.max_ticks,
            )
        except (ConfigError, WorkloadError, PolicyNotFoundError) as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST

        try:
            report = simulation.run()
        except ProtocolViolation as e:
            app.logger.error("protocol violation: %s", e)
            return jsonify({"error": f"protocol violation: {e}"}), _HTTP_INTERNAL_ERROR

        payload = report.to_dict()
        payload["status"] = simulation.dump_status()
        return jsonify(payload)

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``py-sched-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
