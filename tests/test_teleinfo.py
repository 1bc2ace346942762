from collections import Counter

from teleinfo import checksum, decode_line, is_valid_legacy, is_valid_modern, parse_frame
from tests.mocks.frames import make_frame, make_line

# Historic-mode frame captured from a two-rate meter (markers stripped).
HISTORIC_FRAME = (
    b"\nADCO 811775412275 I\r\nOPTARIF HC.. <\r\nISOUSC 45 ?\r\nHCHC 004070290 \\\r\n"
    b"HCHP 006438891 :\r\nPTEC HP..  \r\nIINST 004 [\r\nIMAX 090 H\r\nPAPP 01090 +\r\n"
    b"HHPHC A ,\r\nMOTDETAT 000000 B\r"
)


def test_checksum_matches_known_line():
    assert checksum(b"HCHC 004070290") == ord("\\")
    assert is_valid_legacy(b"HCHC 004070290 \\")
    assert not is_valid_modern(b"HCHC 004070290 \\")


def test_checksum_accepts_only_the_computed_byte():
    span = b"BASE 012345678 "
    expected = checksum(span)
    for c in range(256):
        assert is_valid_modern(span + bytes([c])) == (c == expected)


def test_single_byte_corruption_flips_validation():
    line = make_line("HCHP", "006438891")
    corrupted = bytearray(line)
    corrupted[6] += 1
    assert is_valid_legacy(line)
    assert not is_valid_legacy(bytes(corrupted))


def test_corruption_by_multiple_of_64_collides():
    # The checksum keeps six bits only, so a +64 change goes unnoticed.
    line = bytearray(make_line("BASE", "000000001"))
    line[5] += 64
    assert is_valid_legacy(bytes(line))


def test_modern_line_with_tab_separator():
    line = make_line("EAST", "000123456", sep="\t", legacy=False)
    assert is_valid_modern(line)
    assert decode_line(line) == ("EAST", "000123456")


def test_decode_counts_drops():
    counters = Counter()
    assert decode_line(b"HCHC 004070290 X", counters) is None
    # valid checksum over a line with no separator
    nosep = b"ABCDEF" + bytes([checksum(b"ABCDEF")])
    assert decode_line(nosep, counters) is None
    assert counters == Counter(bad_checksum=1, bad_shape=1)


def test_parse_historic_frame():
    counters = Counter()
    fields = parse_frame(HISTORIC_FRAME, counters)
    assert fields["ADCO"] == "811775412275"
    assert fields["HCHC"] == "004070290"
    assert fields["HCHP"] == "006438891"
    assert fields["PTEC"] == "HP.."
    assert counters["line_ok"] == len(fields)


def test_parse_frame_drops_noisy_lines():
    frame = make_frame([("BASE", "000001000"), ("PAPP", "00420")])
    noisy = frame.replace(b"00420", b"00421")
    assert parse_frame(noisy) == {"BASE": "000001000"}


def test_last_duplicate_wins():
    frame = make_frame([("NTARF", "01"), ("NTARF", "02")], sep="\t", legacy=False)
    assert parse_frame(frame) == {"NTARF": "02"}


def test_empty_frame():
    assert parse_frame(b"") == {}
    assert parse_frame(b"\n\r\n\r") == {}
