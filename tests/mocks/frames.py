from teleinfo import checksum


def make_line(name, value, sep=" ", legacy=True):
    body = f"{name}{sep}{value}{sep}".encode("latin-1")
    span = body[:-1] if legacy else body
    return body + bytes([checksum(span)])


def make_frame(pairs, sep=" ", legacy=True):
    """Frame content (markers excluded) as emitted by a meter."""
    lines = [make_line(name, value, sep, legacy) for name, value in pairs]
    return b"\n" + b"\r\n".join(lines) + b"\r"
