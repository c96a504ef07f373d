"""
Protocol constants for the Tibia session layer.

Defines frame layout, field sizes and cipher parameters.
All multi-byte integers on the wire are little-endian.
"""
from decimal import Decimal

# Protocol version advertised in the capability flags
PROTOCOL_VERSION = Decimal("8.72")

# Field sizes (in bytes)
LENGTH_SIZE = 2        # u16 outer length / inner length
CHECKSUM_SIZE = 4      # Adler-32 digest

# Header sizes (for validation)
FRAME_HEADER_SIZE = LENGTH_SIZE + CHECKSUM_SIZE  # 6 bytes
PLAIN_HEADER_SIZE = LENGTH_SIZE                  # 2 bytes, checksum disabled

# XTEA parameters
BLOCK_SIZE = 8         # 64-bit block
KEY_SIZE = 16          # 128-bit key
ROUNDS = 32            # Feistel cycles
DELTA = 0x9E3779B9     # key schedule constant

# Length field limits
MAX_PAYLOAD_SIZE = 0xFFFF     # inner length field
MAX_FRAME_BODY_SIZE = 0xFFFF  # outer length field (checksum + body)

# Default capability flags
CIPHER_ENABLED = True
CHECKSUM_ENABLED = True
RSA_ENABLED = False
