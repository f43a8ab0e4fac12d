"""Verifiable credentials and presentations carried in compact signed tokens.

The issuer signs a Credential payload with its P-256 key and names itself by
did:key in the token header. A holder bundles credential tokens into a
Presentation signed with its own key. Verification needs nothing but the
token: the signer's public key is recovered from the header kid.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from cryptography.hazmat.primitives.asymmetric import ec

from .compact_token import (
    HEADER_KID,
    ES256Signer,
    PublicKeyResolver,
    sign_token,
    verify_token,
)
from .did_key import did_from_private_key
from .errors import (
    EmptyPresentationError,
    InvalidSignatureError,
    MalformedPayloadError,
    VerificationError,
)
from .resolvers import did_key_resolver

logger = logging.getLogger(__name__)

CREDENTIALS_CONTEXT = "https://www.w3.org/2018/credentials/v1"
CREDENTIAL_TYPE = "VerifiableCredential"
PRESENTATION_TYPE = "VerifiablePresentation"

DEFAULT_VALIDITY = timedelta(days=365)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp with second precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MalformedPayloadError(f"payload field {key!r} must be a string")
    return value


def _require_types(data: dict[str, Any], marker: str) -> tuple[list[str], list[str]]:
    context = data.get("@context")
    types = data.get("type")
    if not isinstance(context, list) or CREDENTIALS_CONTEXT not in context:
        raise MalformedPayloadError(f"payload @context must include {CREDENTIALS_CONTEXT}")
    if not isinstance(types, list) or marker not in types:
        raise MalformedPayloadError(f"payload type must include {marker}")
    return context, types


@dataclass(frozen=True)
class CredentialSubject:
    """What a credential asserts, and about whom."""

    id: str
    claim: str
    holder: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "claim": self.claim, "holder": self.holder}


@dataclass(frozen=True)
class Credential:
    """Credential payload signed by an issuer."""

    issuer: str
    start_time: str
    end_time: str
    subject: CredentialSubject
    context: list[str] = field(default_factory=lambda: [CREDENTIALS_CONTEXT])
    type: list[str] = field(default_factory=lambda: [CREDENTIAL_TYPE])

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON payload layout."""
        return {
            "@context": list(self.context),
            "type": list(self.type),
            "issuer": self.issuer,
            "Start_Time": self.start_time,
            "End_Time": self.end_time,
            "credentialSubject": self.subject.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credential":
        """Parse a credential payload.

        Raises:
            MalformedPayloadError: If a required field is missing or mistyped
        """
        context, types = _require_types(data, CREDENTIAL_TYPE)
        subject = data.get("credentialSubject")
        if not isinstance(subject, dict):
            raise MalformedPayloadError("payload field 'credentialSubject' must be an object")

        return cls(
            issuer=_require_str(data, "issuer"),
            start_time=_require_str(data, "Start_Time"),
            end_time=_require_str(data, "End_Time"),
            subject=CredentialSubject(
                id=_require_str(subject, "id"),
                claim=_require_str(subject, "claim"),
                holder=_require_str(subject, "holder"),
            ),
            context=context,
            type=types,
        )


@dataclass(frozen=True)
class Presentation:
    """Presentation payload: credential tokens bundled and signed by a holder."""

    holder: str
    credentials: list[str]
    context: list[str] = field(default_factory=lambda: [CREDENTIALS_CONTEXT])
    type: list[str] = field(default_factory=lambda: [PRESENTATION_TYPE])

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON payload layout."""
        return {
            "@context": list(self.context),
            "type": list(self.type),
            "holder": self.holder,
            "verifiableCredential": list(self.credentials),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Presentation":
        """Parse a presentation payload.

        Raises:
            MalformedPayloadError: If a required field is missing or mistyped,
                or the credential list is empty
        """
        context, types = _require_types(data, PRESENTATION_TYPE)
        credentials = data.get("verifiableCredential")
        if not isinstance(credentials, list) or not all(
            isinstance(token, str) for token in credentials
        ):
            raise MalformedPayloadError("payload field 'verifiableCredential' must be a string list")
        if not credentials:
            raise MalformedPayloadError("presentation holds no credentials")

        return cls(
            holder=_require_str(data, "holder"),
            credentials=credentials,
            context=context,
            type=types,
        )


Payload = Union[Credential, Presentation]


def parse_payload(data: Any) -> Payload:
    """Pick the payload variant from its type marker and parse it.

    Raises:
        MalformedPayloadError: If the payload is neither a credential nor a
            presentation, or is malformed
    """
    if not isinstance(data, dict):
        raise MalformedPayloadError("payload must be a JSON object")

    types = data.get("type")
    if not isinstance(types, list):
        raise MalformedPayloadError("payload field 'type' must be a list")
    if CREDENTIAL_TYPE in types:
        return Credential.from_dict(data)
    if PRESENTATION_TYPE in types:
        return Presentation.from_dict(data)
    raise MalformedPayloadError(f"unknown payload type: {types}")


@dataclass(frozen=True)
class IssuedCredential:
    """Result of issuing a credential."""

    token: str
    issuer: str
    credential: Credential


def issue_credential(
    claim: str,
    holder: str,
    issuer_key: ec.EllipticCurvePrivateKey,
    validity: timedelta = DEFAULT_VALIDITY,
    subject_id: str = "",
    now: Optional[datetime] = None,
) -> IssuedCredential:
    """Issue a credential signed by the issuer's key.

    Args:
        claim: Claim text asserted about the subject
        holder: Identifier of the holder the credential is issued to
        issuer_key: Issuer's P-256 private key
        validity: Length of the validity window starting now
        subject_id: Identifier of the credential subject
        now: Start of the validity window (uses current time if None)

    Returns:
        The token, the issuer's did:key, and the signed credential

    Example:
        issued = issue_credential("age>=18", holder_did, issuer_key)
        outcome = verify_credential_or_presentation(issued.token)
    """
    issuer = did_from_private_key(issuer_key)
    start = now if now is not None else datetime.now(timezone.utc)
    try:
        end_time = format_timestamp(start + validity)
    except OverflowError as e:
        raise ValueError(f"validity window of {validity} ends out of range: {e}") from e

    credential = Credential(
        issuer=issuer,
        start_time=format_timestamp(start),
        end_time=end_time,
        subject=CredentialSubject(id=subject_id, claim=claim, holder=holder),
    )
    token = sign_token({HEADER_KID: issuer}, credential.to_dict(), ES256Signer(issuer_key))
    logger.debug("Issued credential %r from %s to %s", subject_id, issuer, holder)
    return IssuedCredential(token=token, issuer=issuer, credential=credential)


def create_presentation(
    credential_tokens: list[str], holder_key: ec.EllipticCurvePrivateKey
) -> str:
    """Bundle credential tokens into a presentation signed by the holder.

    The tokens are packaged as given, in order, without being verified.

    Args:
        credential_tokens: Previously issued credential tokens
        holder_key: Holder's P-256 private key

    Returns:
        The presentation token

    Raises:
        EmptyPresentationError: If no credential tokens are given
    """
    if not credential_tokens:
        raise EmptyPresentationError("VCs are required")

    holder = did_from_private_key(holder_key)
    presentation = Presentation(holder=holder, credentials=list(credential_tokens))
    token = sign_token({HEADER_KID: holder}, presentation.to_dict(), ES256Signer(holder_key))
    logger.debug("Created presentation of %d credentials for %s", len(credential_tokens), holder)
    return token


class VerificationStatus(str, enum.Enum):
    """How far a token got through verification."""

    VALID = "valid"
    # Token could not be parsed or its signer resolved
    MALFORMED = "malformed"
    # Signature was checked and rejected
    INVALID_SIGNATURE = "invalid_signature"
    # Signature is good but the payload is not a usable credential/presentation
    INVALID_PAYLOAD = "invalid_payload"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verifying a credential or presentation token."""

    status: VerificationStatus
    signer: Optional[str] = None
    payload: Optional[Payload] = None
    error: Optional[Exception] = None
    nested: tuple["VerificationOutcome", ...] = ()

    @property
    def valid(self) -> bool:
        return self.status is VerificationStatus.VALID

    @property
    def is_credential(self) -> bool:
        return isinstance(self.payload, Credential)

    @property
    def is_presentation(self) -> bool:
        return isinstance(self.payload, Presentation)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value, "signer": self.signer}
        if self.payload is not None:
            result["payload"] = self.payload.to_dict()
        if self.error is not None:
            result["error"] = str(self.error)
        if self.nested:
            result["credentials"] = [outcome.to_dict() for outcome in self.nested]
        return result


def verify_credential_or_presentation(
    token: str,
    resolver: PublicKeyResolver = did_key_resolver,
    verify_nested: bool = False,
) -> VerificationOutcome:
    """Verify any credential or presentation token.

    Untrusted input never raises here; every failure is reported through the
    returned outcome's status and error.

    Args:
        token: Credential or presentation token
        resolver: Maps the header kid to a public key (did:key by default)
        verify_nested: Also verify each credential inside a presentation

    Returns:
        Verification outcome
    """
    try:
        verified = verify_token(token, resolver)
    except InvalidSignatureError as e:
        logger.warning("Rejected token: %s", e)
        return VerificationOutcome(VerificationStatus.INVALID_SIGNATURE, error=e)
    except MalformedPayloadError as e:
        logger.warning("Rejected token payload: %s", e)
        return VerificationOutcome(VerificationStatus.INVALID_PAYLOAD, error=e)
    except VerificationError as e:
        logger.warning("Malformed token: %s", e)
        return VerificationOutcome(VerificationStatus.MALFORMED, error=e)

    try:
        payload = parse_payload(verified.payload)
    except MalformedPayloadError as e:
        logger.warning("Rejected payload signed by %s: %s", verified.kid, e)
        return VerificationOutcome(
            VerificationStatus.INVALID_PAYLOAD, signer=verified.kid, error=e
        )

    signer_field = payload.issuer if isinstance(payload, Credential) else payload.holder
    if signer_field != verified.kid:
        e = MalformedPayloadError(f"payload names {signer_field}, token signed by {verified.kid}")
        logger.warning("Rejected payload: %s", e)
        return VerificationOutcome(
            VerificationStatus.INVALID_PAYLOAD, signer=verified.kid, payload=payload, error=e
        )

    if not (verify_nested and isinstance(payload, Presentation)):
        return VerificationOutcome(VerificationStatus.VALID, signer=verified.kid, payload=payload)

    nested = tuple(
        verify_credential_or_presentation(credential_token, resolver)
        for credential_token in payload.credentials
    )
    for index, outcome in enumerate(nested):
        if not (outcome.valid and outcome.is_credential):
            e = MalformedPayloadError(
                f"credential {index} in presentation failed verification: {outcome.status.value}"
            )
            logger.warning("Rejected presentation from %s: %s", verified.kid, e)
            return VerificationOutcome(
                VerificationStatus.INVALID_PAYLOAD,
                signer=verified.kid,
                payload=payload,
                error=e,
                nested=nested,
            )

    return VerificationOutcome(
        VerificationStatus.VALID, signer=verified.kid, payload=payload, nested=nested
    )
