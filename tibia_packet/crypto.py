"""
XTEA in ECB mode with null padding, as spoken by the Tibia client.

Key and block words are little-endian 32-bit integers. Uses PyNaCl
(libsodium) for secure random key generation.
"""
import struct

from nacl.utils import random
from nacl.exceptions import CryptoError

from tibia_packet.constants import BLOCK_SIZE, KEY_SIZE, ROUNDS, DELTA

MASK = 0xFFFFFFFF
_BLOCK = struct.Struct('<2I')
_KEY = struct.Struct('<4I')


class CipherError(CryptoError):
    """Raised when the block cipher is given unusable input."""
    pass


class InvalidKeySize(CipherError, ValueError):
    """Key is not exactly KEY_SIZE bytes."""
    pass


class InvalidBlockAlignment(CipherError):
    """Ciphertext length is not a multiple of BLOCK_SIZE."""
    pass


def generate_key():
    """
    Generate a random XTEA session key.

    Returns:
        bytes: 16 random bytes

    Example:
        >>> key = generate_key()
        >>> len(key)
        16
    """
    return random(KEY_SIZE)


def wipe(buffer):
    """Zero a mutable key buffer in place."""
    for i in range(len(buffer)):
        buffer[i] = 0


def pad_null(data):
    """
    Pad with trailing null bytes up to the next block boundary.

    Input that is already block-aligned (including empty input) is
    returned unchanged; a block of pure padding is never added.
    """
    remainder = len(data) % BLOCK_SIZE
    if remainder == 0:
        return bytes(data)
    return bytes(data) + b'\x00' * (BLOCK_SIZE - remainder)


def _schedule(key):
    if key is None or len(key) != KEY_SIZE:
        size = 'no key' if key is None else f"{len(key)} bytes"
        raise InvalidKeySize(f"XTEA key must be {KEY_SIZE} bytes, got {size}")
    return _KEY.unpack(bytes(key))


def _encrypt_block(k, v0, v1):
    s = 0
    for _ in range(ROUNDS):
        v0 = (v0 + ((((v1 << 4) ^ (v1 >> 5)) + v1) ^ (s + k[s & 3]))) & MASK
        s = (s + DELTA) & MASK
        v1 = (v1 + ((((v0 << 4) ^ (v0 >> 5)) + v0) ^ (s + k[(s >> 11) & 3]))) & MASK
    return v0, v1


def _decrypt_block(k, v0, v1):
    s = (DELTA * ROUNDS) & MASK
    for _ in range(ROUNDS):
        v1 = (v1 - ((((v0 << 4) ^ (v0 >> 5)) + v0) ^ (s + k[(s >> 11) & 3]))) & MASK
        s = (s - DELTA) & MASK
        v0 = (v0 - ((((v1 << 4) ^ (v1 >> 5)) + v1) ^ (s + k[s & 3]))) & MASK
    return v0, v1


def encrypt_data(key, plaintext):
    """
    Encrypt data with XTEA-ECB.

    Each 8-byte block is encrypted independently (no IV, no chaining),
    which is what the peer expects.

    Args:
        key (bytes): 16-byte XTEA key
        plaintext (bytes): data of any length, null-padded to BLOCK_SIZE

    Returns:
        bytes: ciphertext, len(pad_null(plaintext)) bytes

    Raises:
        InvalidKeySize: If key has wrong length
    """
    k = _schedule(key)
    padded = pad_null(plaintext)

    out = bytearray()
    for offset in range(0, len(padded), BLOCK_SIZE):
        v0, v1 = _BLOCK.unpack_from(padded, offset)
        out += _BLOCK.pack(*_encrypt_block(k, v0, v1))
    return bytes(out)


def decrypt_data(key, ciphertext):
    """
    Decrypt XTEA-ECB data.

    Padding is left in place: null padding cannot tell trailing zero data
    from padding, so callers truncate using the inner length field.

    Raises:
        InvalidKeySize: If key has wrong length
        InvalidBlockAlignment: If ciphertext is not a multiple of 8 bytes
    """
    k = _schedule(key)
    if len(ciphertext) % BLOCK_SIZE:
        raise InvalidBlockAlignment(
            f"Ciphertext must be a multiple of {BLOCK_SIZE} bytes, "
            f"got {len(ciphertext)}"
        )

    out = bytearray()
    for offset in range(0, len(ciphertext), BLOCK_SIZE):
        v0, v1 = _BLOCK.unpack_from(ciphertext, offset)
        out += _BLOCK.pack(*_decrypt_block(k, v0, v1))
    return bytes(out)
