"""Process-wide logging: a daily rotating file under $TELEINFO_BASE_DIR/logs and the console."""
import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


def _log_path() -> Path:
    base = Path(os.environ.get("TELEINFO_BASE_DIR", "/var/lib/teleinfo"))
    return base / "logs" / "teleinfo.log"


LOG_PATH = _log_path()
_FORMAT = logging.Formatter('[%(asctime)s] %(levelname)s %(name)s - %(message)s')
_configured = False


def _configure() -> None:
    global _configured, LOG_PATH
    if _configured:
        return
    LOG_PATH = _log_path()
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    # Incidents are mirrored to the console stream.
    console = logging.StreamHandler()
    console.setFormatter(_FORMAT)
    root.addHandler(console)

    try:
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handler = TimedRotatingFileHandler(str(LOG_PATH), when='midnight', backupCount=7)
    except OSError as exc:
        root.warning("File logging disabled, cannot open %s: %s", LOG_PATH, exc)
    else:
        handler.setFormatter(_FORMAT)
        root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger with the given name after configuring logging."""
    _configure()
    return logging.getLogger(name)
