"""Teleinfo ventilation daemon entry point."""
import signal
import sys
import threading

from checkpoint_store import CheckpointStore, IncidentLog
from clock_check import ClockMonitor
from config_loader import load_config
from feed_reader import FeedReader
from logger import get_logger
from metrics import get_metrics
from report_generator import ReportWriter
from server import StatusServer
from ticker import Ticker
from ventilation import VentilationEngine, VentilationSettings


def build_general_handler(engine, clock_monitor):
    def handle(fields):
        clock_monitor.check(fields)
        engine.update_tariff(fields)
    return handle


def make_signal_handler(engine, done):
    """Return a signal handler that writes a final checkpoint and sets ``done``."""
    def handle_signal(sig, frame):
        get_logger(__name__).info('Signal %s received, writing final checkpoint', sig)
        engine.checkpoint()
        done.set()
    return handle_signal


def build(config):
    """Create every component without starting any thread."""
    metrics = get_metrics(config.metrics_file)
    store = CheckpointStore(config.database)
    incidents = IncidentLog(config.database)
    engine = VentilationEngine(
        store,
        incidents,
        config.feed_id,
        VentilationSettings.from_config(config),
    )
    clock_monitor = ClockMonitor(incidents, config.max_drift_sec, config.clock_sync_command)
    workers = [
        FeedReader(
            "general",
            config.general_device,
            config.general_baud,
            build_general_handler(engine, clock_monitor),
            config,
        ),
        FeedReader(
            "special",
            config.special_device,
            config.special_baud,
            engine.ventilate,
            config,
        ),
        Ticker(engine, config.checkpoint_interval_sec, config.heartbeat_file, metrics),
        ReportWriter(engine, config.report_file, config.report_interval_sec),
    ]
    if config.ui_enabled:
        workers.append(StatusServer(engine, incidents, config.ui_host, config.ui_port))
    return engine, workers


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logger = get_logger(__name__)
    config = load_config(argv[0] if argv else None)
    engine, workers = build(config)
    engine.load()

    done = threading.Event()
    handle_signal = make_signal_handler(engine, done)
    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    for worker in workers:
        worker.start()

    # Worker threads are daemons and are abandoned on exit.
    done.wait()
    logger.info('Shutting down')


if __name__ == '__main__':
    main()
