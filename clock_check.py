"""Compare the general meter's DATE field with the system clock.

The DATE value is a season flag followed by ``YYMMDDhhmmss``: ``H``/``h`` for
winter time (UTC+1), ``E``/``e`` for summer time (UTC+2), a space when the
meter does not know. Setting the clock is delegated to an external command.
"""
import shlex
import subprocess
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional

from logger import get_logger

SEASON_OFFSETS = {
    "H": timedelta(hours=1),
    "E": timedelta(hours=2),
    " ": timedelta(0),
}


def parse_meter_date(value: Optional[str]) -> Optional[datetime]:
    """Return an aware datetime for a DATE field value, or None."""
    if not value:
        return None
    stamp = value.split("\t")[0]
    if len(stamp) != 13:
        return None
    offset = SEASON_OFFSETS.get(stamp[0].upper())
    if offset is None:
        return None
    try:
        naive = datetime.strptime("20" + stamp[1:], "%Y%m%d%H%M%S")
    except ValueError:
        return None
    return naive.replace(tzinfo=timezone(offset))


class ClockMonitor:
    """Record one incident per drift episode and optionally run a sync command."""

    def __init__(
        self,
        incidents,
        max_drift: float = 60,
        sync_command: str = "",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.incidents = incidents
        self.max_drift = max_drift
        self.sync_command = sync_command
        self.clock = clock
        self.logger = get_logger(__name__)
        self.drifting = False

    def check(self, fields: Mapping[str, str]) -> Optional[float]:
        """Return the drift in seconds when the frame carries a usable DATE."""
        meter_time = parse_meter_date(fields.get("DATE"))
        if meter_time is None:
            return None
        drift = (self.clock() - meter_time).total_seconds()
        if abs(drift) <= self.max_drift:
            if self.drifting:
                self.logger.info("System clock back within %ss of meter time", self.max_drift)
            self.drifting = False
            return drift
        if not self.drifting:
            self.drifting = True
            self.incidents.append(f"System clock is {drift:.0f}s away from meter time {meter_time.isoformat()}")
            if self.sync_command:
                self._sync(meter_time)
        return drift

    def _sync(self, meter_time: datetime) -> None:
        command = shlex.split(self.sync_command.format(time=meter_time.isoformat()))
        try:
            result = subprocess.run(command, check=False, capture_output=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired) as exc:
            self.incidents.append(f"Trying to set time of day to {meter_time.isoformat()} failed: {exc}")
            return
        self.incidents.append(
            f"Trying to set time of day to {meter_time.isoformat()} with return value {result.returncode}"
        )
