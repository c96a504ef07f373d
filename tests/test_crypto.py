"""Tests for XTEA-ECB functions."""
import pytest
from nacl.exceptions import CryptoError

from tibia_packet.crypto import (
    generate_key, pad_null, encrypt_data, decrypt_data, wipe,
    InvalidKeySize, InvalidBlockAlignment, CipherError,
    KEY_SIZE, BLOCK_SIZE
)

ZERO_KEY = b'\x00' * 16
# Key bytes 00..0f read as big-endian words, stored little-endian
SEQ_KEY = bytes.fromhex('03020100070605040b0a09080f0e0d0c')


def test_generate_key_returns_correct_size():
    """Key should be exactly 16 bytes."""
    key = generate_key()
    assert len(key) == KEY_SIZE
    assert type(key) == bytes


def test_generate_key_returns_different_keys():
    """Each key should be random."""
    assert generate_key() != generate_key()


@pytest.mark.parametrize('key, plaintext, ciphertext', [
    (ZERO_KEY, b'DCBAHGFE', '890539a0a5efb8f8'),
    (ZERO_KEY, b'AAAAAAAA', '5a3723ed2d8c1a82'),
    (SEQ_KEY, b'DCBAHGFE', 'd0f37d49b52c6172'),
    (SEQ_KEY, b'AAAAAAAA', '132d8fe7d8414374'),
])
def test_known_answer_vectors(key, plaintext, ciphertext):
    """Standard XTEA vectors with little-endian word order."""
    assert encrypt_data(key, plaintext) == bytes.fromhex(ciphertext)
    assert decrypt_data(key, bytes.fromhex(ciphertext)) == plaintext


def test_encrypt_decrypt_roundtrip():
    """Encrypt then decrypt should return padded plaintext."""
    key = generate_key()
    plaintext = b"Hello, Tibia!"

    ciphertext = encrypt_data(key, plaintext)
    decrypted = decrypt_data(key, ciphertext)

    assert decrypted == pad_null(plaintext)
    assert decrypted[:len(plaintext)] == plaintext


def test_decrypt_does_not_strip_padding():
    """Trailing nulls survive decryption untouched."""
    key = generate_key()
    decrypted = decrypt_data(key, encrypt_data(key, b'abc'))
    assert decrypted == b'abc' + b'\x00' * 5


def test_pad_null():
    """Null padding to the next block, none when aligned."""
    assert pad_null(b'') == b''
    assert pad_null(b'a') == b'a' + b'\x00' * 7
    assert pad_null(b'x' * 8) == b'x' * 8
    assert pad_null(b'x' * 9) == b'x' * 9 + b'\x00' * 7


def test_aligned_plaintext_gets_no_extra_block():
    """Block-aligned input encrypts to the same length."""
    key = generate_key()
    assert len(encrypt_data(key, b'x' * 16)) == 16
    assert len(encrypt_data(key, b'x' * 17)) == 24
    assert encrypt_data(key, b'') == b''


def test_ecb_blocks_are_independent():
    """Identical plaintext blocks give identical ciphertext blocks."""
    key = generate_key()
    ciphertext = encrypt_data(key, b'A' * 8 + b'B' * 8 + b'A' * 8)
    assert ciphertext[0:8] == ciphertext[16:24]
    assert ciphertext[0:8] != ciphertext[8:16]
    assert ciphertext[0:8] == encrypt_data(key, b'A' * 8)


def test_encrypt_rejects_bad_key_size():
    """Should raise InvalidKeySize for keys that are not 16 bytes."""
    with pytest.raises(InvalidKeySize):
        encrypt_data(b'too short', b'data')
    with pytest.raises(InvalidKeySize):
        encrypt_data(b'k' * 17, b'data')
    with pytest.raises(InvalidKeySize):
        decrypt_data(None, b'x' * BLOCK_SIZE)


def test_invalid_key_size_is_value_error():
    """Key size errors are ValueErrors and CryptoErrors."""
    with pytest.raises(ValueError):
        encrypt_data(b'', b'data')
    with pytest.raises(CryptoError):
        encrypt_data(b'', b'data')


def test_decrypt_rejects_misaligned_ciphertext():
    """Should raise InvalidBlockAlignment for partial blocks."""
    with pytest.raises(InvalidBlockAlignment):
        decrypt_data(ZERO_KEY, b'x' * 7)
    with pytest.raises(CipherError):
        decrypt_data(ZERO_KEY, b'x' * 9)


def test_wrong_key_gives_different_plaintext():
    """Decrypting with another key does not recover the data."""
    ciphertext = encrypt_data(generate_key(), b'Secret!!')
    assert decrypt_data(generate_key(), ciphertext) != b'Secret!!'


def test_wipe_zeroes_buffer():
    """wipe() overwrites a key buffer in place."""
    buf = bytearray(generate_key())
    wipe(buf)
    assert buf == bytearray(KEY_SIZE)
