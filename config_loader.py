"""
Module: config_loader.py
Purpose: Load and validate daemon configuration from teleinfo.ini.
Consumes: $TELEINFO_CONFIG or /etc/teleinfo/teleinfo.ini
Provides: A Config class with typed access to every daemon parameter.
Failure Mode: Raises if the file is missing or a value is malformed.
Every key has a default, so a file only lists what differs.
"""

import configparser
import os
from pathlib import Path

from tariff_tracker import TARIFF_TABLES


CONFIG_PATH = os.environ.get("TELEINFO_CONFIG", "/etc/teleinfo/teleinfo.ini")

DEFAULTS = {
    "GENERAL_FEED": {
        "device": "/dev/ttyS0",
        "baud": "9600",
        "tariff_field": "NTARF",
    },
    "SPECIAL_FEED": {
        "device": "/dev/ttyAMA1",
        "baud": "1200",
        "feed_id": "1",
    },
    "SERIAL": {
        "parity": "N",
        "chunk_size": "64",
        "max_frame_bytes": "10240",
        "read_timeout_sec": "5",
        "frame_timeout_sec": "30",
        "retry_delay_sec": "5",
        "desync_warning_streak": "10",
    },
    "VENTILATION": {
        "delta_threshold": "1000",
        "checkpoint_interval_sec": "1800",
        "staleness_window_sec": "1800",
        "unknown_incident_every": "100",
    },
    "PATHS": {
        "database": "/var/lib/teleinfo/index_reports.sqlite3",
        "report_file": "/run/meter_report.txt",
        "metrics_file": "/var/lib/teleinfo/metrics.json",
        "heartbeat_file": "/run/teleinfo.heartbeat",
    },
    "REPORT": {
        "interval_sec": "10",
    },
    "CLOCK": {
        "max_drift_sec": "60",
        "sync_command": "",
    },
    "UI": {
        "enabled": "yes",
        "host": "127.0.0.1",
        "port": "8080",
    },
}

PARITIES = {"N", "E", "O"}


class Config:
    def __init__(self, path=None):
        self.path = Path(path or CONFIG_PATH)
        self._parser = configparser.ConfigParser()
        self._parser.read_dict(DEFAULTS)
        self._load_config()
        self._bind_all()

    def _load_config(self):
        if not self.path.is_file():
            raise FileNotFoundError(f"Config file not found at: {self.path}")
        self._parser.read(self.path)

    def _bind_all(self):
        # --- GENERAL_FEED ---
        self.general_device = self._get("GENERAL_FEED", "device")
        self.general_baud = self._get_int("GENERAL_FEED", "baud")
        self.tariff_field = self._get("GENERAL_FEED", "tariff_field")
        if self.tariff_field not in TARIFF_TABLES:
            raise ValueError(f"Unsupported tariff_field: {self.tariff_field}")

        # --- SPECIAL_FEED ---
        self.special_device = self._get("SPECIAL_FEED", "device")
        self.special_baud = self._get_int("SPECIAL_FEED", "baud")
        self.feed_id = self._get_int("SPECIAL_FEED", "feed_id")

        # --- SERIAL ---
        self.parity = self._get("SERIAL", "parity").upper()
        if self.parity not in PARITIES:
            raise ValueError(f"Invalid parity: {self.parity}")
        self.chunk_size = self._get_positive_int("SERIAL", "chunk_size")
        self.max_frame_bytes = self._get_positive_int("SERIAL", "max_frame_bytes")
        self.read_timeout_sec = self._get_float("SERIAL", "read_timeout_sec")
        self.frame_timeout_sec = self._get_float("SERIAL", "frame_timeout_sec")
        # The frame deadline is only checked between reads, so reads must return.
        if self.frame_timeout_sec > 0 and self.read_timeout_sec <= 0:
            raise ValueError("SERIAL.read_timeout_sec must be positive when frame_timeout_sec is set")
        self.retry_delay_sec = self._get_float("SERIAL", "retry_delay_sec")
        self.desync_warning_streak = self._get_positive_int("SERIAL", "desync_warning_streak")

        # --- VENTILATION ---
        self.delta_threshold = self._get_positive_int("VENTILATION", "delta_threshold")
        self.checkpoint_interval_sec = self._get_positive_int("VENTILATION", "checkpoint_interval_sec")
        self.staleness_window_sec = self._get_positive_int("VENTILATION", "staleness_window_sec")
        self.unknown_incident_every = self._get_positive_int("VENTILATION", "unknown_incident_every")

        # --- PATHS ---
        self.database = self._get_path("PATHS", "database")
        self.report_file = self._get_path("PATHS", "report_file")
        self.metrics_file = self._get_path("PATHS", "metrics_file")
        self.heartbeat_file = self._get_path("PATHS", "heartbeat_file")

        # --- REPORT ---
        self.report_interval_sec = self._get_positive_int("REPORT", "interval_sec")

        # --- CLOCK ---
        self.max_drift_sec = self._get_float("CLOCK", "max_drift_sec")
        self.clock_sync_command = self._get("CLOCK", "sync_command").strip()

        # --- UI ---
        self.ui_enabled = self._get_bool("UI", "enabled")
        self.ui_host = self._get("UI", "host")
        self.ui_port = self._get_int("UI", "port")

    # Internal retrieval methods
    def _get(self, section, key):
        return self._parser.get(section, key)

    def _get_int(self, section, key):
        return self._parser.getint(section, key)

    def _get_positive_int(self, section, key):
        value = self._parser.getint(section, key)
        if value <= 0:
            raise ValueError(f"{section}.{key} must be positive, got {value}")
        return value

    def _get_float(self, section, key):
        return self._parser.getfloat(section, key)

    def _get_bool(self, section, key):
        return self._parser.getboolean(section, key)

    def _get_path(self, section, key):
        return Path(self._parser.get(section, key)).expanduser().resolve()


def load_config(path=None) -> Config:
    """Load the daemon configuration from ``path`` or the default location."""
    return Config(path)
