"""did:key identifiers for P-256 public keys.

A did:key is the multicodec-prefixed compressed public key, base58btc encoded
behind the multibase prefix ``z``:

    did:key:z<base58btc(varint(0x1200) || SEC1-compressed point)>

Nothing outside the key participates, so the identifier can be turned back
into the public key without any registry lookup.
"""

from typing import Union

import base58
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .errors import (
    InvalidPointError,
    MalformedIdentifierError,
    MalformedKeyError,
    UnsupportedKeyTypeError,
)
from .multicodec import P256_PUB, decode_multicodec, encode_multicodec

DID_SCHEME = "did"
DID_METHOD = "key"
MULTIBASE_BASE58BTC = "z"

# SEC1 compressed P-256 point: 0x02/0x03 followed by the 32-byte x coordinate
P256_COMPRESSED_LEN = 33


def did_from_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Derive the did:key identifier of a P-256 public key.

    Args:
        public_key: P-256 public key

    Returns:
        The did:key identifier

    Raises:
        ValueError: If the key is not on P-256
    """
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise ValueError(f"Only P-256 keys are supported, got curve: {public_key.curve.name}")

    compressed = public_key.public_bytes(Encoding.X962, PublicFormat.CompressedPoint)
    encoded = base58.b58encode(encode_multicodec(P256_PUB, compressed)).decode("ascii")
    return f"{DID_SCHEME}:{DID_METHOD}:{MULTIBASE_BASE58BTC}{encoded}"


def did_from_private_key(
    key: Union[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey],
) -> str:
    """Derive the did:key identifier of a keypair (or of a bare public key)."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        key = key.public_key()
    return did_from_public_key(key)


def public_key_from_did(did: str) -> ec.EllipticCurvePublicKey:
    """Recover the P-256 public key embedded in a did:key identifier.

    Checks run in a fixed order and stop at the first violation, so format
    problems are reported before any curve arithmetic happens.

    Args:
        did: did:key identifier

    Returns:
        The embedded public key

    Raises:
        MalformedIdentifierError: Wrong scheme, method, or multibase prefix
        MalformedTagError: Truncated multicodec prefix
        UnsupportedKeyTypeError: Multicodec code is not P-256 public key
        MalformedKeyError: Key bytes are not 33 bytes long
        InvalidPointError: Key bytes are not a point on P-256
    """
    parts = did.split(":")
    if len(parts) != 3:
        raise MalformedIdentifierError("invalid did format")
    scheme, method, identifier = parts

    if scheme != DID_SCHEME:
        raise MalformedIdentifierError("invalid did scheme; scheme must be did")
    if method != DID_METHOD:
        raise MalformedIdentifierError("invalid did method; did method must be key")
    if not identifier:
        raise MalformedIdentifierError("invalid did key; must not be empty")
    if not identifier.startswith(MULTIBASE_BASE58BTC):
        raise MalformedIdentifierError("invalid did key; must start with z")

    try:
        decoded = base58.b58decode(identifier[1:])
    except ValueError as e:
        raise MalformedIdentifierError(f"invalid did key; bad base58btc: {e}") from e
    if base58.b58encode(decoded).decode("ascii") != identifier[1:]:
        raise MalformedIdentifierError("invalid did key; non-canonical base58btc")

    code, key_bytes = decode_multicodec(decoded)
    if code != P256_PUB:
        raise UnsupportedKeyTypeError(code)
    if len(key_bytes) != P256_COMPRESSED_LEN:
        raise MalformedKeyError(
            f"invalid did key; decoded bytes must be {P256_COMPRESSED_LEN} bytes, "
            f"got {len(key_bytes)}"
        )

    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), key_bytes)
    except ValueError as e:
        raise InvalidPointError(f"invalid did key; not a P-256 point: {e}") from e


def is_did_key(did: str) -> bool:
    """Check whether a string is a resolvable P-256 did:key without raising."""
    try:
        public_key_from_did(did)
        return True
    except ValueError:
        return False
