# /teleinfo/report_generator.py

"""
Module: report_generator.py
Purpose: Render the current ledger as a plain-text report.
Consumes:
- LedgerSnapshot from VentilationEngine.snapshot().
Produces:
- A report file (e.g. /run/meter_report.txt) rewritten atomically.
Behavior:
- One line per known bucket, unknown included, in kWh with three decimals.
- Buckets present in the ledger but absent from the label table follow.
- ReportWriter re-renders the file every few seconds.
"""

import os
import pathlib
import threading
import time
from datetime import datetime

from logger import get_logger
from tariff_tracker import BUCKET_LABELS, bucket_label

report_logger = get_logger('ReportGenerator')


def render_report(feed_id, snapshot, now=None):
    """Return the report text for a ledger snapshot."""
    now = now or datetime.now().astimezone()
    lines = [
        f"Report for meter_id {feed_id}",
        f"Date: {now.strftime('%Y-%m-%d %H:%M:%S %z')}",
        f"Active: {bucket_label(snapshot.active_bucket)}",
        "",
    ]
    buckets = list(BUCKET_LABELS)
    buckets += sorted(name for name in snapshot.ledger if name not in BUCKET_LABELS)
    for bucket in buckets:
        consumption = snapshot.ledger.get(bucket, 0) / 1000
        lines.append(f"{bucket_label(bucket):<8}\t{consumption:.3f} kWh")
    return "\n".join(lines) + "\n"


def write_report(report_file, feed_id, snapshot, now=None):
    """Write the report through a temporary file so readers never see half of it."""
    path = pathlib.Path(report_file)
    tmp = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(tmp, "w") as f:
        f.write(render_report(feed_id, snapshot, now))
    os.replace(tmp, path)


class ReportWriter(threading.Thread):
    """Periodically render the engine's ledger to the report file."""

    def __init__(self, engine, report_file, interval=10):
        super().__init__(name="report", daemon=True)
        self.engine = engine
        self.report_file = report_file
        self.interval = interval
        self.running = True

    def stop(self):
        self.running = False

    def write_once(self):
        # Snapshot under the engine lock, render outside it.
        snapshot = self.engine.snapshot()
        try:
            write_report(self.report_file, self.engine.feed_id, snapshot)
        except OSError as e:
            report_logger.error(f"Failed to write report to '{self.report_file}': {e}")

    def run(self):
        report_logger.info(f"Writing meter report to {self.report_file} every {self.interval}s")
        while self.running:
            time.sleep(self.interval)
            self.write_once()
