"""Teleinfo line decoding.

A frame is a run of lines separated by ``\\n``. Each line carries one
``NAME SEP VALUE SEP C`` group where ``C`` is a checksum character computed
over the bytes before it. Two encodings exist:

- legacy: the checksum covers the line minus its last two bytes (the
  trailing separator is excluded);
- modern: the checksum covers the line minus its last byte only.

There is no version tag, so the encoding is detected by trying the legacy
checksum first and the modern one second. Some lines pass both by chance;
which of the two matched carries no meaning.
"""
import re
from collections import Counter
from typing import Dict, Optional, Tuple

from logger import get_logger

logger = get_logger(__name__)

LINE_SHAPE = re.compile(r"([^\t ]*)[\t ](.*)[\t ].", re.DOTALL)


def checksum(span: bytes) -> int:
    """Return the checksum byte value for ``span``."""
    return (sum(span) & 0x3F) + 0x20


def is_valid_legacy(line: bytes) -> bool:
    if len(line) < 2:
        return False
    return checksum(line[:-2]) == line[-1]


def is_valid_modern(line: bytes) -> bool:
    if len(line) < 1:
        return False
    return checksum(line[:-1]) == line[-1]


def decode_line(line: bytes, counters: Optional[Counter] = None) -> Optional[Tuple[str, str]]:
    """Return ``(name, value)`` for a valid line or None for a dropped one."""
    if not (is_valid_legacy(line) or is_valid_modern(line)):
        if counters is not None:
            counters["bad_checksum"] += 1
        return None
    match = LINE_SHAPE.fullmatch(line.decode("latin-1"))
    if not match:
        if counters is not None:
            counters["bad_shape"] += 1
        return None
    if counters is not None:
        counters["line_ok"] += 1
    return match.group(1), match.group(2)


def parse_frame(frame: bytes, counters: Optional[Counter] = None) -> Dict[str, str]:
    """Fold every line of ``frame`` into a field map, last duplicate wins.

    Lines failing the checksum or the shape are dropped without raising;
    ``counters`` receives ``line_ok``, ``bad_checksum`` and ``bad_shape``.
    """
    fields: Dict[str, str] = {}
    for raw in frame.split(b"\n"):
        line = raw.rstrip(b"\r")
        if not line:
            continue
        decoded = decode_line(line, counters)
        if decoded is None:
            logger.debug("Dropped line %r", line)
            continue
        name, value = decoded
        fields[name] = value
    return fields
