"""Read-only Flask status API for the teleinfo daemon."""

from logger import get_logger
from typing import Any

from flask import Flask, jsonify, request
from threading import Thread
from werkzeug.exceptions import HTTPException

from metrics import get_metrics
from tariff_tracker import bucket_label
from ventilation import SyncState


class StatusServer(Thread):
    """Simple Flask server running in a thread."""

    def __init__(
        self,
        engine,
        incidents: Any | None = None,
        host: str = "127.0.0.1",
        port: int = 8080,
        stale_after: float = 60,
    ):
        super().__init__(name="status-server", daemon=True)
        self.engine = engine
        self.incidents = incidents
        self.host = host
        self.port = port
        self.stale_after = stale_after
        self.metrics = get_metrics()
        self.app = Flask(__name__)
        self.logger = get_logger(__name__)
        self._setup_routes()

    def _setup_routes(self):
        @self.app.route("/ledger")
        def get_ledger():
            snapshot = self.engine.snapshot()
            return jsonify({
                "feed_id": self.engine.feed_id,
                "state": snapshot.state.value,
                "active_bucket": snapshot.active_bucket,
                "active_label": bucket_label(snapshot.active_bucket),
                "ledger": snapshot.ledger,
                "total": snapshot.total,
            })

        @self.app.route("/metrics")
        def get_metrics_snapshot():
            return jsonify(self.metrics.snapshot(self.engine))

        @self.app.route("/incidents")
        def get_incidents():
            if self.incidents is None:
                return jsonify([])
            try:
                limit = int(request.args.get("limit", 20))
            except ValueError:
                return jsonify({"error": "invalid limit"}), 400
            return jsonify(self.incidents.recent(max(1, min(limit, 500))))

        @self.app.route("/healthz")
        def healthz():
            reasons = []
            for feed in ("general", "special"):
                age = self.metrics.frame_age(feed)
                if age is None:
                    reasons.append(f"no {feed} frame")
                elif age > self.stale_after:
                    reasons.append(f"stale {feed} feed")
            snapshot = self.engine.snapshot()
            if snapshot.state is not SyncState.SYNCED:
                reasons.append("ledger not synced")
            ok = not reasons
            if not ok:
                self.logger.warning("Health check failed: %s", ", ".join(reasons))
            payload = {
                "status": "ok" if ok else "error",
                "uptime_sec": self.metrics.uptime(),
                "state": snapshot.state.value,
                "active_bucket": snapshot.active_bucket,
                "reasons": reasons,
            }
            return jsonify(payload), 200 if ok else 503

        @self.app.errorhandler(Exception)
        def handle_exception(exc: Exception):
            if isinstance(exc, HTTPException):
                return exc
            self.logger.exception("Unhandled error: %s", exc)
            return jsonify({"error": "internal server error"}), 500

    def run(self):
        self.logger.info("Starting Flask server on %s:%s", self.host, self.port)
        self.app.run(host=self.host, port=self.port)
