"""Read one teleinfo frame from a serial port and print its fields as JSON.

Usage: python frame_dump.py /dev/ttyS0 9600 [--parity E]
"""
import argparse
import json
import sys
from collections import Counter

from counter_resolver import match_scheme, resolve_counter
from feed_reader import open_serial
from frame_reader import FrameError, FrameReader
from teleinfo import parse_frame


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("device", help="Serial device, e.g. /dev/ttyS0")
    parser.add_argument("baud", type=int, help="Baud rate (1200 legacy, 9600 modern)")
    parser.add_argument("--parity", default="N", choices=["N", "E", "O"])
    parser.add_argument("--timeout", type=float, default=30, help="Seconds to wait for a frame")
    return parser.parse_args(argv)


def describe(fields):
    """Return the printable summary of a decoded frame."""
    scheme = match_scheme(fields)
    return {
        "fields": fields,
        "scheme": scheme.name if scheme else None,
        "counter": resolve_counter(fields),
    }


def main(argv=None):
    args = parse_args(argv)
    with open_serial(args.device, args.baud, args.parity) as port:
        reader = FrameReader(port, frame_timeout=args.timeout)
        while True:
            lines = Counter()
            try:
                fields = parse_frame(reader.read_frame(), lines)
            except FrameError as exc:
                print(f"{args.device}: {exc}", file=sys.stderr)
                sys.exit(1)
            if fields:
                break
    summary = describe(fields)
    summary["lines"] = dict(lines)
    json.dump(summary, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
