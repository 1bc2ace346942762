"""Extract STX/ETX delimited frames from a byte transport."""
import time
from typing import Callable, Optional

START_OF_FRAME = b"\x02"
END_OF_FRAME = b"\x03"


class FrameError(Exception):
    """A frame was abandoned; the reader resynchronises on the next start marker."""


class FrameTooLarge(FrameError):
    pass


class FrameTimeout(FrameError):
    pass


class FrameReader:
    """Read frames from any object exposing ``read(max_bytes) -> bytes``.

    An empty read means no data arrived yet. Bytes following an end marker
    stay buffered and are searched first on the next call.
    """

    def __init__(
        self,
        transport,
        chunk_size: int = 64,
        max_frame_bytes: int = 10240,
        frame_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.chunk_size = chunk_size
        self.max_frame_bytes = max_frame_bytes
        self.frame_timeout = frame_timeout or None
        self.clock = clock
        self._buffer = b""
        self._deadline: Optional[float] = None

    def _read_chunk(self) -> bytes:
        if self._deadline is not None and self.clock() >= self._deadline:
            self._buffer = b""
            raise FrameTimeout(f"No complete frame within {self.frame_timeout}s")
        return self.transport.read(self.chunk_size) or b""

    def read_frame(self) -> bytes:
        """Block until a complete frame is available and return its content."""
        if self.frame_timeout:
            self._deadline = self.clock() + self.frame_timeout
        while True:
            start = self._buffer.find(START_OF_FRAME)
            if start >= 0:
                self._buffer = self._buffer[start + 1:]
                break
            self._buffer = self._read_chunk()

        while True:
            end = self._buffer.find(END_OF_FRAME)
            if end >= 0:
                frame = self._buffer[:end]
                self._buffer = self._buffer[end + 1:]
                return frame
            if len(self._buffer) > self.max_frame_bytes:
                size = len(self._buffer)
                self._buffer = b""
                raise FrameTooLarge(f"{size} bytes buffered without end of frame")
            self._buffer += self._read_chunk()
