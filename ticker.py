# /teleinfo/ticker.py

"""
Module: ticker.py
Purpose: Periodic maintenance of the ledger and daemon liveness.
Consumes:
- VentilationEngine.tick() for checkpoint and tariff staleness.
- MetricsManager for the metrics snapshot.
Provides:
- update_heartbeat(): Writes current UTC timestamp to a file.
- Ticker: thread running one maintenance pass per checkpoint interval.
Behavior:
- External systemd Watchdog or cron monitors heartbeat file age.
- A failing pass is logged; the next pass runs on schedule.
"""

from datetime import datetime, timezone
import pathlib
import threading

from logger import get_logger

# Setup module-specific logger
ticker_logger = get_logger("Ticker")


def update_heartbeat(heartbeat_file):
    """
    Writes the current UTC timestamp to the heartbeat file.
    This action signals that the system is alive and responsive.

    Args:
        heartbeat_file: Path of the heartbeat file, or None to skip.
    """
    if not heartbeat_file:
        return

    heartbeat_path = pathlib.Path(heartbeat_file)
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        heartbeat_path.parent.mkdir(parents=True, exist_ok=True)
        with open(heartbeat_path, "w") as f:
            f.write(timestamp)
        ticker_logger.debug(f"Heartbeat updated: {timestamp} to {heartbeat_path}")
    except OSError as e:
        ticker_logger.error(f"Failed to write heartbeat to '{heartbeat_path}': {e}")


class Ticker(threading.Thread):
    """Run engine.tick() every ``interval`` seconds."""

    def __init__(self, engine, interval, heartbeat_file=None, metrics=None):
        super().__init__(name="ticker", daemon=True)
        self.engine = engine
        self.interval = interval
        self.heartbeat_file = heartbeat_file
        self.metrics = metrics
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    def tick_once(self):
        try:
            reverted = self.engine.tick()
        except Exception:
            ticker_logger.exception("Maintenance tick failed")
            return False
        if self.metrics is not None:
            self.metrics.write_metrics(self.engine)
        update_heartbeat(self.heartbeat_file)
        return reverted

    def run(self):
        ticker_logger.info(f"Checkpointing every {self.interval}s")
        while not self._stop_event.wait(self.interval):
            self.tick_once()
