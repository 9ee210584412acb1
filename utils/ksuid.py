"""
KSUID - K-Sortable Unique Identifier.

Used for effect runs, frame snapshots and error ids.
Layout: 4 bytes big-endian seconds since the KSUID epoch + 16 random bytes,
encoded as a fixed-width 27 character base62 string.
"""

import os
import struct
import time

KSUID_EPOCH = 1400000000
BASE62 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
ENCODED_LENGTH = 27
PAYLOAD_BYTES = 16


def _encode(n):
    chars = []
    while n > 0:
        n, remainder = divmod(n, 62)
        chars.append(BASE62[remainder])
    return "".join(reversed(chars)).rjust(ENCODED_LENGTH, "0")


def _decode(value):
    n = 0
    for char in value:
        n = n * 62 + BASE62.index(char)
    return n


def generate_ksuid(now=None):
    """Generate a sortable unique id. `now` overrides the wall clock (seconds)."""
    seconds = int(time.time() if now is None else now) - KSUID_EPOCH
    raw = struct.pack(">I", seconds) + os.urandom(PAYLOAD_BYTES)
    return _encode(int.from_bytes(raw, byteorder="big"))


def ksuid_timestamp(value):
    """Unix seconds embedded in a KSUID."""
    if len(value) != ENCODED_LENGTH:
        raise ValueError(f"ksuid must be {ENCODED_LENGTH} chars, got {len(value)}")
    raw = _decode(value).to_bytes(4 + PAYLOAD_BYTES, byteorder="big")
    return struct.unpack(">I", raw[:4])[0] + KSUID_EPOCH
