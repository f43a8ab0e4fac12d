"""P-256 key material and its COSE_Key (CBOR) storage form."""

from typing import Any, Optional

import cbor2
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric import ec

from .errors import InvalidPrivateKeyError

# Constants for ES256/P-256 only
COSE_ALG_ES256 = -7
COSE_KTY_EC2 = 2
COSE_CRV_P256 = 1

# Order n of the P-256 base point
P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551
P256_SCALAR_LEN = 32


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    """Generate a fresh P-256 keypair."""
    return ec.generate_private_key(ec.SECP256R1(), default_backend())


def private_key_from_scalar(scalar: bytes) -> ec.EllipticCurvePrivateKey:
    """Rebuild a P-256 keypair from its private scalar alone.

    The public point is recomputed as scalar * G.

    Args:
        scalar: Big-endian private scalar (at most 32 bytes)

    Returns:
        The private key

    Raises:
        InvalidPrivateKeyError: If the scalar is not in [1, n-1]
    """
    if not scalar or len(scalar) > P256_SCALAR_LEN:
        raise InvalidPrivateKeyError(
            f"Private scalar must be 1 to {P256_SCALAR_LEN} bytes, got {len(scalar)}"
        )

    private_value = int.from_bytes(scalar, byteorder="big")
    if not 1 <= private_value < P256_ORDER:
        raise InvalidPrivateKeyError("Private scalar out of range [1, n-1]")

    return ec.derive_private_key(private_value, ec.SECP256R1(), default_backend())


def private_key_to_scalar(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """Return the fixed-width 32-byte private scalar."""
    private_value = private_key.private_numbers().private_value
    return private_value.to_bytes(P256_SCALAR_LEN, byteorder="big")


def cose_key_from_private_key(
    private_key: ec.EllipticCurvePrivateKey, key_id: Optional[bytes] = None
) -> dict[int, Any]:
    """Build a COSE_Key dictionary holding both private and public material.

    Args:
        private_key: P-256 private key
        key_id: Optional key identifier (kid parameter)

    Returns:
        COSE_Key dictionary for ES256/P-256
    """
    public_numbers = private_key.public_key().public_numbers()

    cose_key = {
        1: COSE_KTY_EC2,    # kty: EC2
        3: COSE_ALG_ES256,  # alg: ES256
        -1: COSE_CRV_P256,  # crv: P-256
        -2: public_numbers.x.to_bytes(32, byteorder="big"),  # x
        -3: public_numbers.y.to_bytes(32, byteorder="big"),  # y
        -4: private_key_to_scalar(private_key),  # d
    }

    if key_id is not None:
        cose_key[2] = key_id  # kid

    return cose_key


def cose_key_to_private_key(cose_key: dict[int, Any]) -> ec.EllipticCurvePrivateKey:
    """Rebuild a private key from a COSE_Key dictionary.

    Stored x/y coordinates, when present, must match the point recomputed
    from d.

    Args:
        cose_key: COSE_Key dictionary with a private component (-4)

    Returns:
        The private key

    Raises:
        InvalidPrivateKeyError: If the key is not an ES256/P-256 private key,
            or its stored public point does not match d
    """
    if cose_key.get(1) != COSE_KTY_EC2:
        raise InvalidPrivateKeyError(f"Only EC2 keys are supported, got kty: {cose_key.get(1)}")
    if cose_key.get(-1) != COSE_CRV_P256:
        raise InvalidPrivateKeyError(f"Only P-256 is supported, got crv: {cose_key.get(-1)}")
    alg = cose_key.get(3, COSE_ALG_ES256)
    if alg != COSE_ALG_ES256:
        raise InvalidPrivateKeyError(f"Only ES256 algorithm is supported, got alg: {alg}")

    d = cose_key.get(-4)
    if not isinstance(d, bytes):
        raise InvalidPrivateKeyError("Private key component (-4) missing from COSE key")

    private_key = private_key_from_scalar(d)

    public_numbers = private_key.public_key().public_numbers()
    for label, coordinate in ((-2, public_numbers.x), (-3, public_numbers.y)):
        stored = cose_key.get(label)
        if stored is not None and stored != coordinate.to_bytes(32, byteorder="big"):
            raise InvalidPrivateKeyError("Stored public key does not match private scalar")

    return private_key


def cose_key_encode(cose_key: dict[int, Any]) -> bytes:
    """Encode a COSE_Key dictionary to canonical CBOR."""
    return cbor2.dumps(cose_key, canonical=True)


def cose_key_decode(data: bytes) -> dict[int, Any]:
    """Decode CBOR bytes to a COSE_Key dictionary.

    Raises:
        ValueError: If the data is not a CBOR map
    """
    try:
        cose_key = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise ValueError(f"Invalid COSE key encoding: {e}") from e

    if not isinstance(cose_key, dict):
        raise ValueError("COSE key must be a CBOR map")
    return cose_key
