"""
Protocol layer for the Tibia session layer.

Turns raw frames into decoded packets and finalizes outgoing packets
into frames.

Frame format:
┌──────────────┬──────────────┬──────────────────────────────────────┐
│ Outer length │   Checksum   │                Body                  │
│  (u16, LE)   │  (4 bytes)   │  XTEA-ECB( inner length + payload    │
│              │  reversed    │            + null padding )          │
│              │  Adler-32    │                                      │
└──────────────┴──────────────┴──────────────────────────────────────┘

Outer length counts checksum + body. The checksum is present iff
checksum is enabled; without the cipher the body is the raw payload.
"""

import logging
import struct
from dataclasses import dataclass
from decimal import Decimal

from tibia_packet import checksum
from tibia_packet.constants import *
from tibia_packet.crypto import encrypt_data, decrypt_data, wipe

log = logging.getLogger(__name__)

_U16 = struct.Struct('<H')


class PacketError(Exception):
    """Raised when packet parsing, validation or construction fails."""
    pass


class DecodeError(PacketError):
    """A received frame could not be decoded."""
    pass


class FrameTooShort(DecodeError):
    pass


class LengthMismatch(DecodeError):
    pass


class ChecksumMismatch(DecodeError):
    pass


class PayloadLengthOverflow(DecodeError):
    pass


class EncodeError(PacketError):
    """An outgoing packet could not be encoded."""
    pass


class PayloadTooLarge(EncodeError):
    pass


@dataclass(frozen=True)
class PacketFlags:
    """Capability switches, fixed for the lifetime of a packet."""
    cipher_enabled: bool = CIPHER_ENABLED
    checksum_enabled: bool = CHECKSUM_ENABLED
    rsa_enabled: bool = RSA_ENABLED
    protocol_version: Decimal = PROTOCOL_VERSION

    @property
    def header_size(self):
        return FRAME_HEADER_SIZE if self.checksum_enabled else PLAIN_HEADER_SIZE


DEFAULT_FLAGS = PacketFlags()


class Packet:
    """
    A Tibia packet: payload plus optional key and flags.

    Built empty and appended to, then finalized exactly once; or decoded
    from a received frame, in which case it is read-only.
    """

    def __init__(self, payload=b'', key=None, flags=None):
        self._payload = bytearray(payload)
        self._key = None if key is None else bytearray(key)
        self.flags = flags or DEFAULT_FLAGS
        self._sealed = False

    @classmethod
    def from_bytes(cls, raw, key, flags=None, verify=False):
        """Decode a received frame. See decode()."""
        return decode(raw, key, flags=flags, verify=verify)

    @property
    def payload(self):
        return bytes(self._payload)

    @property
    def has_key(self):
        return self._key is not None

    @property
    def sealed(self):
        """True once finalized or when decoded from received bytes."""
        return self._sealed

    def append(self, data):
        if self._sealed:
            raise PacketError("Packet is read-only")
        self._payload += data
        return self

    def finalize(self, key=None):
        """
        Encode the packet into a wire frame.

        The packet's own key takes precedence over `key`. With neither,
        the cipher step is skipped.

        Raises:
            PacketError: If the packet was already finalized or decoded
            PayloadTooLarge: If payload or frame overflow a u16 field
        """
        if self._sealed:
            raise PacketError("Packet already finalized")
        resolved = self._key if self._key is not None else key
        if resolved is None:
            log.debug("finalize without key, cipher step skipped")
        frame = encode(self._payload, resolved, flags=self.flags)
        self._sealed = True
        return frame

    def wipe_key(self):
        """Zero and drop the held key."""
        if self._key is not None:
            wipe(self._key)
            self._key = None

    def __len__(self):
        return len(self._payload)

    def __repr__(self):
        return (
            f"Packet(payload={len(self._payload)} bytes, "
            f"key={'set' if self._key is not None else 'unset'}, "
            f"sealed={self._sealed}, flags={self.flags!r})"
        )


def new_empty(key=None, flags=None):
    """Create an empty packet for outgoing construction."""
    return Packet(key=key, flags=flags)


def append_payload(packet, data):
    """Append bytes to an outgoing packet's payload."""
    packet.append(data)


def read_payload(packet):
    """Return a packet's payload as immutable bytes."""
    return packet.payload


def finalize(packet, key=None):
    """Encode a packet into a wire frame. See Packet.finalize()."""
    return packet.finalize(key)


def _split_header(raw, flags):
    header_size = flags.header_size
    if len(raw) < header_size:
        raise FrameTooShort(
            f"Frame too short: {len(raw)} bytes (minimum {header_size})"
        )
    (outer_len,) = _U16.unpack_from(raw, 0)
    checksum_field = bytes(raw[LENGTH_SIZE:header_size])
    return outer_len, checksum_field, bytes(raw[header_size:])


def check_frame(raw):
    """
    Check a frame's outer length and checksum, without decrypting.

    Args:
        raw (bytes): Complete received frame

    Raises:
        FrameTooShort: If the frame cannot hold length + checksum
        LengthMismatch: If outer length + 2 differs from len(raw)
        ChecksumMismatch: If the embedded checksum is wrong
    """
    outer_len, checksum_field, body = _split_header(raw, DEFAULT_FLAGS)

    if outer_len + LENGTH_SIZE != len(raw):
        raise LengthMismatch(
            f"Outer length {outer_len} does not match frame of {len(raw)} bytes"
        )

    if not checksum.matches(body, checksum_field):
        raise ChecksumMismatch(
            f"Checksum mismatch over {len(body)} byte body"
        )


def is_valid(raw):
    """
    Checks if a frame's length and Adler-32 digest are consistent.

    Advisory only: the transport already checksums the stream, so callers
    decide whether to drop frames that fail.

    Returns:
        bool: True if both outer length and checksum match
    """
    try:
        check_frame(raw)
    except DecodeError as e:
        log.debug("invalid frame: %s", e)
        return False
    return True


def decode(raw, key, flags=None, verify=False):
    """
    Decode a received frame into a Packet.

    The outer length must match the frame size. The checksum is only
    enforced when `verify` is set.

    Args:
        raw (bytes): Complete received frame
        key (bytes): 16-byte XTEA key (unused when the cipher is disabled)
        flags (PacketFlags): Wire variant, default flags if None
        verify (bool): Raise ChecksumMismatch on a bad checksum

    Returns:
        Packet: read-only packet holding the exact payload

    Raises:
        FrameTooShort, LengthMismatch, ChecksumMismatch,
        PayloadLengthOverflow, InvalidKeySize, InvalidBlockAlignment
    """
    flags = flags or DEFAULT_FLAGS
    outer_len, checksum_field, body = _split_header(raw, flags)

    if outer_len + LENGTH_SIZE != len(raw):
        raise LengthMismatch(
            f"Outer length {outer_len} does not match frame of {len(raw)} bytes"
        )

    if flags.checksum_enabled and not checksum.matches(body, checksum_field):
        if verify:
            raise ChecksumMismatch(
                f"Checksum mismatch over {len(body)} byte body"
            )
        log.debug("checksum mismatch over %d byte body, ignored", len(body))

    if flags.cipher_enabled:
        decrypted = decrypt_data(key, body)
        if len(decrypted) < LENGTH_SIZE:
            raise FrameTooShort(
                f"Decrypted body too short for inner length: {len(decrypted)} bytes"
            )
        (inner_len,) = _U16.unpack_from(decrypted, 0)
        if inner_len > len(decrypted) - LENGTH_SIZE:
            raise PayloadLengthOverflow(
                f"Inner length {inner_len} exceeds decrypted body of "
                f"{len(decrypted) - LENGTH_SIZE} bytes"
            )
        payload = decrypted[LENGTH_SIZE:LENGTH_SIZE + inner_len]
    else:
        # No inner length without the cipher: the whole body is payload
        payload = body

    log.debug("decoded %d byte frame into %d byte payload", len(raw), len(payload))

    packet = Packet(payload, key, flags)
    packet._sealed = True
    return packet


def encode(payload, key=None, flags=None):
    """
    Encode a payload into a wire frame.

    Args:
        payload (bytes): Application data
        key (bytes): 16-byte XTEA key; the cipher step is skipped if None
        flags (PacketFlags): Wire variant, default flags if None

    Returns:
        bytes: outer length + checksum + body

    Raises:
        PayloadTooLarge: If payload or frame body exceed 65535 bytes
        InvalidKeySize: If key has wrong length
    """
    flags = flags or DEFAULT_FLAGS

    if len(payload) > MAX_PAYLOAD_SIZE:
        raise PayloadTooLarge(
            f"Payload too large: {len(payload)} bytes (max {MAX_PAYLOAD_SIZE})"
        )

    if flags.cipher_enabled and key is not None:
        body = encrypt_data(key, _U16.pack(len(payload)) + bytes(payload))
    else:
        body = bytes(payload)

    digest = checksum.wire_digest(body) if flags.checksum_enabled else b''

    outer_len = len(digest) + len(body)
    if outer_len > MAX_FRAME_BODY_SIZE:
        raise PayloadTooLarge(
            f"Frame body too large: {outer_len} bytes (max {MAX_FRAME_BODY_SIZE})"
        )

    log.debug("encoded %d byte payload into %d byte frame",
              len(payload), LENGTH_SIZE + outer_len)
    return _U16.pack(outer_len) + digest + body
