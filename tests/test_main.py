import signal
import threading

from checkpoint_store import CheckpointStore
from config_loader import load_config
from feed_reader import FeedReader
from main import build, make_signal_handler
from metrics import MetricsManager
from report_generator import ReportWriter
from server import StatusServer
from teleinfo import parse_frame
from tests.mocks.frames import make_frame
from ticker import Ticker
from ventilation import SyncState


def create_config(tmp_path, ui="no"):
    path = tmp_path / "teleinfo.ini"
    path.write_text(
        "[PATHS]\n"
        f"database = {tmp_path}/meters.sqlite3\n"
        f"report_file = {tmp_path}/report.txt\n"
        f"metrics_file = {tmp_path}/metrics.json\n"
        f"heartbeat_file = {tmp_path}/heartbeat\n"
        f"[UI]\nenabled = {ui}\n"
    )
    return load_config(path)


def test_build_wires_workers(tmp_path):
    MetricsManager.reset_instance()
    engine, workers = build(create_config(tmp_path, ui="yes"))
    kinds = [type(worker) for worker in workers]
    assert kinds == [FeedReader, FeedReader, Ticker, ReportWriter, StatusServer]
    assert [w.feed for w in workers[:2]] == ["general", "special"]
    assert not any(worker.is_alive() for worker in workers)


def test_end_to_end_ventilation(tmp_path):
    MetricsManager.reset_instance()
    config = create_config(tmp_path)
    CheckpointStore(config.database).append(config.feed_id, {"blue_peak": 100, "unknown": 0})
    engine, workers = build(config)
    engine.load()
    general = workers[0].handler
    special = workers[1].handler

    special(parse_frame(make_frame([("BASE", "000000140")])))
    general(parse_frame(make_frame([("NTARF", "02")], sep="\t", legacy=False)))
    special(parse_frame(make_frame([("BASE", "000000500")])))

    snapshot = engine.snapshot()
    assert snapshot.state is SyncState.SYNCED
    assert snapshot.ledger == {"blue_peak": 460, "unknown": 40}
    workers[2].tick_once()
    assert CheckpointStore(config.database).get_latest(config.feed_id)[1] == snapshot.ledger


def test_signal_writes_final_checkpoint(tmp_path):
    MetricsManager.reset_instance()
    config = create_config(tmp_path)
    engine, workers = build(config)
    engine.load()
    special = workers[1].handler
    workers[0].handler(parse_frame(make_frame([("NTARF", "01")], sep="\t", legacy=False)))
    special(parse_frame(make_frame([("BASE", "000001000")])))
    special(parse_frame(make_frame([("BASE", "000001250")])))

    done = threading.Event()
    make_signal_handler(engine, done)(signal.SIGTERM, None)

    assert done.is_set()
    seq, ledger = CheckpointStore(config.database).get_latest(config.feed_id)
    assert ledger == engine.snapshot().ledger == {"unknown": 1000, "blue_offpeak": 250}
