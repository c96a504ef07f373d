"""
Adler-32 checksum as used by the Tibia frame header.

The protocol stores the digest in the opposite byte order from the
algorithm's natural big-endian output, so every embedded checksum is the
reversed digest.
"""
import struct
import zlib

from cryptography.hazmat.primitives import constant_time

from tibia_packet.constants import CHECKSUM_SIZE


class Adler32:
    """Incremental Adler-32 digest."""

    def __init__(self, data=b''):
        self._value = zlib.adler32(data)

    def update(self, data):
        self._value = zlib.adler32(data, self._value)

    def digest(self):
        """Big-endian 4-byte digest."""
        return struct.pack('>I', self._value)

    def wire_digest(self):
        """Digest in frame byte order (reversed)."""
        return self.digest()[::-1]


def compute(data):
    """
    Compute the Adler-32 digest of exactly `data`.

    Returns:
        bytes: 4-byte big-endian digest

    Example:
        >>> compute(b'').hex()
        '00000001'
    """
    return Adler32(data).digest()


def wire_digest(data):
    """Reversed Adler-32 digest, ready to embed in a frame."""
    return Adler32(data).wire_digest()


def matches(data, checksum_field):
    """Check an embedded checksum field against the digest of `data`."""
    if len(checksum_field) != CHECKSUM_SIZE:
        return False
    return constant_time.bytes_eq(wire_digest(data), bytes(checksum_field))
