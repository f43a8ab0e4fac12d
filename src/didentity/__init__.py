"""didentity: did:key anchored credentials and presentations."""

__version__ = "0.1.0"

# Hide module imports
from . import compact_token, cose_keys, credentials, did_key, key_provider, multicodec, resolvers
from .compact_token import (
    ES256Signer,
    ES256Verifier,
    Signer,
    Verifier,
    VerifiedToken,
    sign_token,
    verify_token,
)
from .cose_keys import (
    generate_private_key,
    private_key_from_scalar,
)
from .credentials import (
    Credential,
    CredentialSubject,
    IssuedCredential,
    Presentation,
    VerificationOutcome,
    VerificationStatus,
    create_presentation,
    issue_credential,
    parse_payload,
    verify_credential_or_presentation,
)
from .did_key import (
    did_from_private_key,
    did_from_public_key,
    public_key_from_did,
)
from .errors import (
    CredentialNameConflictError,
    DIDentityError,
    EmptyPresentationError,
    IdentifierError,
    InvalidPointError,
    InvalidPrivateKeyError,
    InvalidSignatureError,
    KeyUnavailableError,
    MalformedEncodingError,
    MalformedHeaderError,
    MalformedIdentifierError,
    MalformedKeyError,
    MalformedPayloadError,
    MalformedTagError,
    MalformedTokenError,
    TokenFormatError,
    UnresolvableSignerError,
    UnsupportedKeyTypeError,
    VerificationError,
)
from .key_provider import (
    FileKeyProvider,
    InMemoryKeyProvider,
    KeyProvider,
)
from .multicodec import (
    P256_PUB,
    decode_multicodec,
    encode_multicodec,
)
from .resolvers import (
    did_key_resolver,
    trusted_did_resolver,
)

del compact_token, cose_keys, credentials, did_key, key_provider, multicodec, resolvers


__all__ = [
    "__version__",
    # Multicodec varint prefixes
    "P256_PUB",
    "encode_multicodec",
    "decode_multicodec",
    # did:key identifiers
    "did_from_public_key",
    "did_from_private_key",
    "public_key_from_did",
    # Key material
    "generate_private_key",
    "private_key_from_scalar",
    # Compact signed tokens
    "Signer",
    "Verifier",
    "ES256Signer",
    "ES256Verifier",
    "VerifiedToken",
    "sign_token",
    "verify_token",
    # Resolvers for the header kid
    "did_key_resolver",
    "trusted_did_resolver",
    # Credentials and presentations
    "Credential",
    "CredentialSubject",
    "IssuedCredential",
    "Presentation",
    "VerificationOutcome",
    "VerificationStatus",
    "issue_credential",
    "create_presentation",
    "parse_payload",
    "verify_credential_or_presentation",
    # Key sources
    "KeyProvider",
    "InMemoryKeyProvider",
    "FileKeyProvider",
    # Errors
    "DIDentityError",
    "MalformedTagError",
    "IdentifierError",
    "MalformedIdentifierError",
    "UnsupportedKeyTypeError",
    "MalformedKeyError",
    "InvalidPointError",
    "InvalidPrivateKeyError",
    "VerificationError",
    "TokenFormatError",
    "MalformedTokenError",
    "MalformedEncodingError",
    "MalformedHeaderError",
    "MalformedPayloadError",
    "UnresolvableSignerError",
    "InvalidSignatureError",
    "EmptyPresentationError",
    "KeyUnavailableError",
    "CredentialNameConflictError",
]
