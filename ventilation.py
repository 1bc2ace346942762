"""
Module: ventilation.py
Purpose: Apportion the special meter's counter deltas into tariff buckets.
Consumes:
- Field maps from the special feed (cumulative counter).
- Field maps from the general feed (active tariff period).
- Periodic ticks from ticker.Ticker.
Provides:
- VentilationEngine, the single owner of the bucket ledger.
Behavior:
- The first non-zero delta after start goes to the unknown bucket (baseline).
- Deltas in (0, threshold] go to the active bucket.
- Negative or over-threshold deltas go to the unknown bucket, with incidents.
- The ledger total always equals the last accepted counter value.
"""

import json
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple

from counter_resolver import resolve_counter
from logger import get_logger
from tariff_tracker import UNKNOWN_BUCKET, resolve_bucket


class SyncState(Enum):
    UNSYNCED = "UNSYNCED"
    SYNCED = "SYNCED"


class Ventilation(Enum):
    """Outcome of absorbing one counter reading."""

    IGNORED = "ignored"
    UNCHANGED = "unchanged"
    BASELINE = "baseline"
    VENTILATED = "ventilated"
    ANOMALY = "anomaly"


@dataclass(frozen=True)
class VentilationSettings:
    delta_threshold: int = 1000
    checkpoint_interval: float = 1800
    staleness_window: float = 1800
    unknown_incident_every: int = 100
    tariff_field: str = "NTARF"

    @classmethod
    def from_config(cls, config) -> "VentilationSettings":
        return cls(
            delta_threshold=config.delta_threshold,
            checkpoint_interval=config.checkpoint_interval_sec,
            staleness_window=config.staleness_window_sec,
            unknown_incident_every=config.unknown_incident_every,
            tariff_field=config.tariff_field,
        )


@dataclass(frozen=True)
class LedgerSnapshot:
    ledger: Dict[str, int]
    active_bucket: str
    active_since: float
    state: SyncState
    last_counter_time: Optional[float]

    @property
    def total(self) -> int:
        return sum(self.ledger.values())


class VentilationEngine:
    """Reconcile counter readings and tariff signals into one ledger.

    Every mutation and every read of the ledger, the active bucket and the
    sync state happens under ``self._lock``.
    """

    def __init__(
        self,
        store,
        incidents,
        feed_id: int,
        settings: Optional[VentilationSettings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.incidents = incidents
        self.feed_id = feed_id
        self.settings = settings or VentilationSettings()
        self.clock = clock
        self.logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._ledger: Dict[str, int] = {}
        self._state = SyncState.UNSYNCED
        self._active_bucket = UNKNOWN_BUCKET
        self._active_since = clock()
        self._unattributed_count = 0
        self._last_counter_time: Optional[float] = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def load(self) -> Optional[int]:
        """Restore the ledger from the latest checkpoint of this feed."""
        seq, ledger = self.store.get_latest(self.feed_id)
        with self._lock:
            self._ledger = dict(ledger)
            self._state = SyncState.UNSYNCED
            self.incidents.append(
                f"read indexes from database for meter {self.feed_id} from line number {seq}"
            )
        return seq

    # ------------------------------------------------------------------
    # General feed
    # ------------------------------------------------------------------

    def update_tariff(self, fields: Mapping[str, str], now: Optional[float] = None) -> Optional[str]:
        """Apply the tariff period announced by the general meter."""
        bucket = resolve_bucket(fields, self.settings.tariff_field)
        if bucket is None:
            return None
        now = self.clock() if now is None else now
        with self._lock:
            if bucket != self._active_bucket:
                self.incidents.append(
                    f"Setting general meter index from {self._active_bucket} to {bucket}"
                )
            self._active_bucket = bucket
            self._active_since = now
        return bucket

    # ------------------------------------------------------------------
    # Special feed
    # ------------------------------------------------------------------

    def ventilate(self, fields: Mapping[str, str]) -> Ventilation:
        """Resolve the counter carried by ``fields`` and absorb it."""
        return self.absorb(resolve_counter(fields), fields)

    def absorb(self, new_sum: Optional[int], fields: Optional[Mapping[str, str]] = None) -> Ventilation:
        # A zero counter comes from an empty or garbled frame, never from a live meter.
        if not new_sum:
            return Ventilation.IGNORED
        with self._lock:
            self._last_counter_time = self.clock()
            delta = new_sum - sum(self._ledger.values())
            if self._state is SyncState.UNSYNCED:
                return self._absorb_baseline(delta)
            if delta == 0:
                return Ventilation.UNCHANGED
            if 0 < delta <= self.settings.delta_threshold:
                return self._absorb_normal(delta)
            return self._absorb_anomaly(delta, fields)

    def _adjust(self, bucket: str, delta: int) -> None:
        self._ledger[bucket] = self._ledger.get(bucket, 0) + delta

    def _absorb_baseline(self, delta: int) -> Ventilation:
        self._state = SyncState.SYNCED
        if delta == 0:
            self.logger.info("Meter %s in sync with checkpoint", self.feed_id)
            return Ventilation.UNCHANGED
        self._adjust(UNKNOWN_BUCKET, delta)
        self._save()
        self.incidents.append(f"adjust unknown index from meter {self.feed_id} by {delta} Wh")
        return Ventilation.BASELINE

    def _absorb_normal(self, delta: int) -> Ventilation:
        bucket = self._active_bucket
        self._adjust(bucket, delta)
        self.logger.debug("add %s to %s", delta, bucket)
        if bucket == UNKNOWN_BUCKET:
            self._unattributed_count += 1
            if self._unattributed_count % self.settings.unknown_incident_every == 0:
                self.incidents.append(
                    f"ventilate {delta} Wh of meter {self.feed_id} into the unknown index "
                    f"({self._unattributed_count} unattributed readings)"
                )
        return Ventilation.VENTILATED

    def _absorb_anomaly(self, delta: int, fields: Optional[Mapping[str, str]]) -> Ventilation:
        self._adjust(UNKNOWN_BUCKET, delta)
        self._save()
        self.incidents.append(f"strange consumption of {self.feed_id} of {delta} Wh")
        self.incidents.append(
            f"meter_info for {self.feed_id} {json.dumps(dict(fields or {}), sort_keys=True)}"
        )
        return Ventilation.ANOMALY

    # ------------------------------------------------------------------
    # Periodic maintenance
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> bool:
        """Checkpoint the ledger and expire a stale tariff period.

        Returns True when the active bucket was reverted to unknown.
        """
        now = self.clock() if now is None else now
        with self._lock:
            self._save()
            if self._active_bucket == UNKNOWN_BUCKET:
                return False
            if now - self._active_since < self.settings.staleness_window:
                return False
            self.incidents.append(
                f"Reverting general meter index {self._active_bucket} to unknown. "
                f"Last update was {time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(self._active_since))}."
            )
            self._active_bucket = UNKNOWN_BUCKET
            self._active_since = now
            return True

    def checkpoint(self) -> int:
        """Unconditionally persist the ledger."""
        with self._lock:
            return self._save()

    def _save(self) -> int:
        return self.store.append(self.feed_id, dict(self._ledger))

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                ledger=dict(self._ledger),
                active_bucket=self._active_bucket,
                active_since=self._active_since,
                state=self._state,
                last_counter_time=self._last_counter_time,
            )

    @property
    def state(self) -> SyncState:
        with self._lock:
            return self._state

    @property
    def active_bucket(self) -> Tuple[str, float]:
        with self._lock:
            return self._active_bucket, self._active_since
