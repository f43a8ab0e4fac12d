"""Compact signed tokens with pluggable signers and verifiers.

A token is three unpadded base64url segments joined by dots:

    base64url(header-json) . base64url(payload-json) . base64url(r || s)

The ES256 signature covers the ASCII bytes of the first two segments exactly
as transmitted. The header holds a single ``kid`` naming the signer; the
payload is opaque to this module.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils

from .errors import (
    InvalidSignatureError,
    MalformedEncodingError,
    MalformedHeaderError,
    MalformedPayloadError,
    MalformedTokenError,
    UnresolvableSignerError,
)

logger = logging.getLogger(__name__)

HEADER_KID = "kid"

# Width of each of r and s for P-256
ES256_SCALAR_LEN = 32
ES256_SIGNATURE_LEN = 2 * ES256_SCALAR_LEN

PublicKeyResolver = Callable[[str], ec.EllipticCurvePublicKey]


class Signer(Protocol):
    """Protocol for token signers."""

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the raw signature bytes.

        Args:
            message: The signing input (header and payload segments)

        Returns:
            The signature bytes
        """


class Verifier(Protocol):
    """Protocol for token verifiers."""

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature on a message.

        Args:
            message: The message that was signed
            signature: The signature to verify

        Returns:
            True if signature is valid, False otherwise
        """


class ES256Signer:
    """ECDSA P-256 SHA-256 signer producing fixed-width r || s signatures."""

    def __init__(self, private_key: ec.EllipticCurvePrivateKey):
        """Initialize ES256 signer with private key.

        Args:
            private_key: P-256 private key
        """
        if not isinstance(private_key.curve, ec.SECP256R1):
            raise ValueError(f"Only P-256 keys are supported, got curve: {private_key.curve.name}")
        self.private_key = private_key

    def sign(self, message: bytes) -> bytes:
        """Sign a message with ES256 using a fresh random nonce."""
        signature_der = self.private_key.sign(message, ec.ECDSA(hashes.SHA256()))

        # Both scalars are zero-padded so the verifier can split at a fixed offset
        r, s = utils.decode_dss_signature(signature_der)
        return r.to_bytes(ES256_SCALAR_LEN, byteorder="big") + s.to_bytes(
            ES256_SCALAR_LEN, byteorder="big"
        )


class ES256Verifier:
    """ECDSA P-256 SHA-256 verifier implementation."""

    def __init__(self, public_key: ec.EllipticCurvePublicKey):
        """Initialize ES256 verifier with public key.

        Args:
            public_key: P-256 public key
        """
        self.public_key = public_key

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a raw r || s signature with ES256."""
        if len(signature) != ES256_SIGNATURE_LEN:
            return False

        r = int.from_bytes(signature[:ES256_SCALAR_LEN], byteorder="big")
        s = int.from_bytes(signature[ES256_SCALAR_LEN:], byteorder="big")
        try:
            signature_der = utils.encode_dss_signature(r, s)
            self.public_key.verify(signature_der, message, ec.ECDSA(hashes.SHA256()))
            return True
        except InvalidSignature:
            return False
        except (ValueError, TypeError):
            return False


@dataclass(frozen=True)
class VerifiedToken:
    """Decoded contents of a token whose signature checked out."""

    kid: str
    header: dict[str, Any]
    payload: Any


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode one unpadded base64url segment.

    Only the canonical encoding is accepted: the result must re-encode to the
    same text, which rules out padding, foreign characters and stray low bits.

    Raises:
        MalformedEncodingError: If the segment is not canonical base64url
    """
    try:
        padded = segment + "=" * (-len(segment) % 4)
        data = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncodingError(f"invalid base64url segment: {e}") from e

    if b64url_encode(data) != segment:
        raise MalformedEncodingError("invalid base64url segment; not canonical")
    return data


def serialize(obj: Any) -> bytes:
    """Serialize a JSON-compatible value to compact UTF-8 JSON."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_token(header: Any, payload: Any, signer: Signer) -> str:
    """Create a compact signed token.

    Args:
        header: JSON-compatible header, normally ``{"kid": <did>}``
        payload: JSON-compatible payload
        signer: A signer object that implements the sign method

    Returns:
        The token string
    """
    signing_input = f"{b64url_encode(serialize(header))}.{b64url_encode(serialize(payload))}"
    signature = signer.sign(signing_input.encode("ascii"))
    return f"{signing_input}.{b64url_encode(signature)}"


def _parse_header(header_bytes: bytes) -> dict[str, Any]:
    try:
        header = json.loads(header_bytes.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedHeaderError(f"failed to parse token header: {e}") from e

    if not isinstance(header, dict) or set(header) != {HEADER_KID}:
        raise MalformedHeaderError(f"token header must hold exactly one field: {HEADER_KID}")
    if not isinstance(header[HEADER_KID], str) or not header[HEADER_KID]:
        raise MalformedHeaderError(f"token header {HEADER_KID} must be a non-empty string")
    return header


def verify_token(token: str, resolver: PublicKeyResolver) -> VerifiedToken:
    """Verify a compact signed token and decode its payload.

    Steps run in order. Failures before the signature check raise a
    TokenFormatError or UnresolvableSignerError; a signature that was checked
    and rejected raises InvalidSignatureError.

    Args:
        token: The token string
        resolver: Function mapping the header kid to the signer's public key.
            Any ValueError it raises is reported as an unresolvable signer.

    Returns:
        The verified header and decoded payload

    Raises:
        MalformedTokenError: Token is not three segments
        MalformedEncodingError: A segment is not base64url
        MalformedHeaderError: Header is not ``{"kid": <string>}``
        UnresolvableSignerError: kid does not resolve to a public key
        InvalidSignatureError: Signature does not verify
        MalformedPayloadError: Signed payload is not JSON
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedTokenError(f"token must have 3 segments, got {len(segments)}")
    header_segment, payload_segment, signature_segment = segments

    header_bytes = b64url_decode(header_segment)
    payload_bytes = b64url_decode(payload_segment)
    signature = b64url_decode(signature_segment)

    header = _parse_header(header_bytes)
    kid = header[HEADER_KID]

    try:
        public_key = resolver(kid)
    except ValueError as e:
        raise UnresolvableSignerError(kid, e) from e

    # Verify over the transmitted segments, never a re-serialization
    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    if not ES256Verifier(public_key).verify(signing_input, signature):
        logger.debug("Signature check failed for signer %s", kid)
        raise InvalidSignatureError(f"invalid signature for signer {kid}")

    try:
        payload = json.loads(payload_bytes.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedPayloadError(f"failed to parse token payload: {e}") from e

    logger.debug("Verified token signed by %s", kid)
    return VerifiedToken(kid=kid, header=header, payload=payload)
