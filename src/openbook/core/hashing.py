"""Position hash conversions.

Position hashes are 64-bit digests (Polyglot/Zobrist keys). SQLite INTEGER
is a signed 64-bit value, so hashes are stored in two's complement form:

- to_signed64: unsigned or signed input -> signed storage value
- to_unsigned64: storage value -> unsigned 64-bit key
"""

MIN_SIGNED64 = -(1 << 63)
MAX_UNSIGNED64 = (1 << 64) - 1


def to_signed64(value: int) -> int:
    """Convert a 64-bit hash to its signed storage form.

    Args:
        value: Hash in [-2**63, 2**64).

    Returns:
        Equivalent value in [-2**63, 2**63).

    Raises:
        ValueError: If value does not fit in 64 bits.

    Examples:
        >>> to_signed64(5)
        5
        >>> to_signed64(2**64 - 1)
        -1
    """
    if value < MIN_SIGNED64 or value > MAX_UNSIGNED64:
        raise ValueError(f"Position hash out of 64-bit range: {value}")
    if value >= 1 << 63:
        return value - (1 << 64)
    return value


def to_unsigned64(value: int) -> int:
    """Convert a stored signed hash back to an unsigned 64-bit key."""
    return to_signed64(value) & MAX_UNSIGNED64


def hash_from_digest(digest: bytes) -> int:
    """Read an 8-byte big-endian digest as a signed storage hash.

    Raises:
        ValueError: If digest is not exactly 8 bytes.
    """
    if len(digest) != 8:
        raise ValueError(f"Expected 8-byte digest, got {len(digest)} bytes")
    return int.from_bytes(digest, byteorder="big", signed=True)
