import pytest

from config_loader import Config, load_config


def write_config(tmp_path, text):
    path = tmp_path / "teleinfo.ini"
    path.write_text(text)
    return path


def test_defaults_apply(tmp_path):
    config = load_config(write_config(tmp_path, "[SPECIAL_FEED]\nfeed_id = 3\n"))
    assert config.feed_id == 3
    assert config.general_baud == 9600
    assert config.special_baud == 1200
    assert config.delta_threshold == 1000
    assert config.staleness_window_sec == 1800
    assert config.tariff_field == "NTARF"
    assert config.ui_enabled is True


def test_overrides(tmp_path):
    text = (
        "[VENTILATION]\ndelta_threshold = 250\n"
        "[SERIAL]\nparity = e\n"
        f"[PATHS]\ndatabase = {tmp_path}/db.sqlite3\n"
    )
    config = Config(write_config(tmp_path, text))
    assert config.delta_threshold == 250
    assert config.parity == "E"
    assert config.database == tmp_path / "db.sqlite3"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.ini")


def test_invalid_values(tmp_path):
    with pytest.raises(ValueError):
        load_config(write_config(tmp_path, "[VENTILATION]\ndelta_threshold = 0\n"))
    with pytest.raises(ValueError):
        load_config(write_config(tmp_path, "[SERIAL]\nparity = X\n"))


def test_unsupported_tariff_field(tmp_path):
    with pytest.raises(ValueError, match="FOO"):
        load_config(write_config(tmp_path, "[GENERAL_FEED]\ntariff_field = FOO\n"))
    config = load_config(write_config(tmp_path, "[GENERAL_FEED]\ntariff_field = PTEC\n"))
    assert config.tariff_field == "PTEC"


def test_blocking_reads_need_no_frame_timeout(tmp_path):
    with pytest.raises(ValueError, match="read_timeout_sec"):
        load_config(write_config(tmp_path, "[SERIAL]\nread_timeout_sec = 0\n"))
    text = "[SERIAL]\nread_timeout_sec = 0\nframe_timeout_sec = 0\n"
    config = load_config(write_config(tmp_path, text))
    assert config.read_timeout_sec == 0


def test_shipped_config_loads():
    from pathlib import Path
    config = load_config(Path(__file__).resolve().parents[1] / "config" / "teleinfo.ini")
    assert config.special_device == "/dev/ttyAMA1"
    assert config.clock_sync_command == ""
