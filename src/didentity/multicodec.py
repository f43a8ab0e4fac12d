"""Multicodec varint prefixes for typed key bytes."""

from .errors import MalformedTagError

# secp256r1 (P-256) compressed public key
P256_PUB = 0x1200

# A uint64 never needs more than ten 7-bit groups
MAX_VARINT_LEN64 = 10


def encode_multicodec(code: int, data: bytes) -> bytes:
    """Prefix data with code as an unsigned LEB128 varint.

    Args:
        code: Multicodec code (0 <= code < 2**64)
        data: Bytes appended verbatim after the prefix

    Returns:
        The prefixed bytes
    """
    if code < 0 or code >= 1 << 64:
        raise ValueError(f"multicodec code out of range: {code}")

    prefix = bytearray()
    while code >= 0x80:
        prefix.append((code & 0x7F) | 0x80)
        code >>= 7
    prefix.append(code)
    return bytes(prefix) + data


def decode_multicodec(data: bytes) -> tuple[int, bytes]:
    """Split a varint prefix from the bytes that follow it.

    The remainder is returned untouched; checking its length or contents is
    left to the caller.

    Args:
        data: Multicodec-prefixed bytes

    Returns:
        Tuple of (code, remainder)

    Raises:
        MalformedTagError: If the varint is truncated, not minimally encoded
            or overflows 64 bits
    """
    code = 0
    shift = 0
    for i, byte in enumerate(data):
        if i == MAX_VARINT_LEN64:
            break
        if byte < 0x80:
            if i == MAX_VARINT_LEN64 - 1 and byte > 1:
                break
            if i > 0 and byte == 0:
                raise MalformedTagError("invalid multicodec; varint not minimally encoded")
            return code | (byte << shift), bytes(data[i + 1:])
        code |= (byte & 0x7F) << shift
        shift += 7
    else:
        raise MalformedTagError("invalid multicodec; varint truncated")

    raise MalformedTagError("invalid multicodec; varint overflow")
