"""Serial feed workers: one thread per meter."""
import time
from collections import Counter
from threading import Thread
from typing import Callable, Dict

import serial

from frame_reader import FrameError, FrameReader, FrameTimeout
from logger import get_logger
from metrics import get_metrics
from teleinfo import parse_frame


def open_serial(device: str, baud: int, parity: str = "N", timeout: float | None = 5) -> serial.Serial:
    """Open a teleinfo port: 7 data bits, one stop bit."""
    return serial.Serial(
        port=device,
        baudrate=baud,
        bytesize=serial.SEVENBITS,
        parity=parity,
        stopbits=serial.STOPBITS_ONE,
        timeout=timeout or None,
    )


class FeedReader(Thread):
    """Read frames from one meter and hand decoded field maps to ``handler``.

    Transport failures close the port and retry after ``retry_delay_sec``.
    Nothing raised here reaches the ledger.
    """

    def __init__(
        self,
        feed: str,
        device: str,
        baud: int,
        handler: Callable[[Dict[str, str]], object],
        config,
        open_transport: Callable[[], object] | None = None,
    ) -> None:
        super().__init__(name=f"feed-{feed}", daemon=True)
        self.feed = feed
        self.device = device
        self.baud = baud
        self.handler = handler
        self.config = config
        self.open_transport = open_transport or (
            lambda: open_serial(device, baud, config.parity, config.read_timeout_sec)
        )
        self.metrics = get_metrics()
        self.logger = get_logger(__name__)
        self.running = True
        self._desync_streak = 0

    def stop(self) -> None:
        self.running = False

    def make_reader(self, transport) -> FrameReader:
        return FrameReader(
            transport,
            chunk_size=self.config.chunk_size,
            max_frame_bytes=self.config.max_frame_bytes,
            frame_timeout=self.config.frame_timeout_sec,
        )

    def poll(self, reader: FrameReader) -> bool:
        """Read one frame and dispatch it. Return True if fields were handed off."""
        try:
            frame = reader.read_frame()
        except FrameError as exc:
            self._desync_streak += 1
            kind = "frame_timeouts" if isinstance(exc, FrameTimeout) else "frames_oversized"
            self.metrics.increment(self.feed, kind)
            self.logger.debug("%s feed resync: %s", self.feed, exc)
            if self._desync_streak == self.config.desync_warning_streak:
                self.logger.warning(
                    "%s feed: %d consecutive frames lost (%s)", self.feed, self._desync_streak, exc
                )
            return False
        self._desync_streak = 0
        lines: Counter = Counter()
        fields = parse_frame(frame, lines)
        self.metrics.record_frame(self.feed, lines)
        if not fields:
            return False
        try:
            self.handler(fields)
        except Exception:
            self.metrics.increment(self.feed, "handler_errors")
            self.logger.exception("%s feed handler failed on %s", self.feed, fields)
            return False
        return True

    def serve(self) -> None:
        """Keep one transport open and read frames until it fails."""
        with self.open_transport() as transport:
            self.logger.info("Opened %s feed on %s at %s baud", self.feed, self.device, self.baud)
            reader = self.make_reader(transport)
            while self.running:
                self.poll(reader)

    def run(self) -> None:
        self.logger.info("%s feed thread started", self.feed)
        while self.running:
            try:
                self.serve()
            except (OSError, serial.SerialException) as exc:
                self.metrics.increment(self.feed, "transport_errors")
                self.logger.error("%s feed unavailable on %s: %s", self.feed, self.device, exc)
                time.sleep(self.config.retry_delay_sec)
        self.logger.info("%s feed thread stopped", self.feed)
