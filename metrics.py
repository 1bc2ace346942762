"""Metrics tracking for the teleinfo daemon."""

import json
import os
import threading
import time
from collections import Counter
from pathlib import Path
from typing import Any, Dict

from logger import get_logger


METRICS_FILE = Path("/var/lib/teleinfo/metrics.json")


class MetricsManager:
    """Singleton class managing runtime metrics."""

    _instance = None

    def __new__(cls, path: Path | None = None) -> "MetricsManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init(path or METRICS_FILE)
        return cls._instance

    def _init(self, path: Path) -> None:
        self.path = path
        self.start = time.time()
        self.counters: Dict[str, Counter] = {}
        self.last_frame_time: Dict[str, float] = {}
        self.lock = threading.Lock()
        self.logger = get_logger(__name__)

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for tests)."""
        cls._instance = None

    def _feed(self, feed: str) -> Counter:
        return self.counters.setdefault(feed, Counter())

    def record_frame(self, feed: str, lines: Counter) -> None:
        """Record a decoded frame and the per-line outcomes of its decoding."""
        with self.lock:
            counters = self._feed(feed)
            counters["frames"] += 1
            counters.update(lines)
            self.last_frame_time[feed] = time.time()

    def increment(self, feed: str, name: str) -> int:
        """Increment a named counter of ``feed`` and return its new value."""
        with self.lock:
            counters = self._feed(feed)
            counters[name] += 1
            return counters[name]

    def frame_age(self, feed: str) -> float | None:
        with self.lock:
            last = self.last_frame_time.get(feed)
        if last is None:
            return None
        return time.time() - last

    def snapshot(self, engine: Any = None) -> Dict[str, Any]:
        """Return metrics snapshot dict."""
        with self.lock:
            data: Dict[str, Any] = {
                "uptime_sec": int(time.time() - self.start),
                "feeds": {
                    feed: dict(counters, last_frame_time=self.last_frame_time.get(feed))
                    for feed, counters in self.counters.items()
                },
            }
        if engine is not None:
            ledger = engine.snapshot()
            data["sync_state"] = ledger.state.value
            data["active_bucket"] = ledger.active_bucket
            data["ledger_total"] = ledger.total
        return data

    def write_metrics(self, engine: Any = None) -> None:
        """Write metrics snapshot atomically."""
        data = self.snapshot(engine)
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError as exc:  # pragma: no cover - disk issues
            self.logger.error("Failed to write metrics: %s", exc)
            try:
                tmp.unlink()
            except OSError:
                pass

    def uptime(self) -> int:
        """Return current uptime in seconds."""
        return int(time.time() - self.start)


def get_metrics(path: Path | None = None) -> MetricsManager:
    """Return the singleton metrics manager."""
    return MetricsManager(path)
