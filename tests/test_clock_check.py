from datetime import datetime, timedelta, timezone

from clock_check import ClockMonitor, parse_meter_date
from tests.mocks.mock_store import MockIncidentLog


def test_parse_winter_and_summer_dates():
    winter = parse_meter_date("H200205193643\t")
    assert winter == datetime(2020, 2, 5, 19, 36, 43, tzinfo=timezone(timedelta(hours=1)))
    summer = parse_meter_date("e200705193643")
    assert summer.utcoffset() == timedelta(hours=2)
    assert parse_meter_date(" 200705193643").utcoffset() == timedelta(0)


def test_parse_rejects_garbage():
    assert parse_meter_date(None) is None
    assert parse_meter_date("X200205193643") is None
    assert parse_meter_date("H201305193643") is None
    assert parse_meter_date("H2002") is None


def test_drift_incident_once_per_episode():
    meter = datetime(2020, 2, 5, 18, 36, 43, tzinfo=timezone.utc)
    now = [meter + timedelta(seconds=120)]
    incidents = MockIncidentLog()
    monitor = ClockMonitor(incidents, max_drift=60, clock=lambda: now[0])
    fields = {"DATE": "H200205193643\t"}
    assert monitor.check(fields) == 120
    assert monitor.check(fields) == 120
    assert len(incidents.texts) == 1
    now[0] = meter + timedelta(seconds=5)
    assert monitor.check(fields) == 5
    assert monitor.drifting is False


def test_no_date_field():
    monitor = ClockMonitor(MockIncidentLog())
    assert monitor.check({"NTARF": "01"}) is None


def test_sync_command_result_recorded():
    meter = datetime(2020, 2, 5, 18, 36, 43, tzinfo=timezone.utc)
    incidents = MockIncidentLog()
    monitor = ClockMonitor(
        incidents, max_drift=60, sync_command="true {time}", clock=lambda: meter + timedelta(hours=1)
    )
    monitor.check({"DATE": "H200205193643"})
    assert incidents.texts[-1].endswith("with return value 0")
