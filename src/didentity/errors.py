"""Exception hierarchy for did:key credentials.

Input-format errors also derive from ValueError so callers that only catch
ValueError keep working.
"""


class DIDentityError(Exception):
    """Base class for all errors raised by this package."""


class MalformedTagError(DIDentityError, ValueError):
    """Multicodec varint prefix is truncated or overflows 64 bits."""


class IdentifierError(DIDentityError, ValueError):
    """A did:key identifier cannot be turned into a public key."""


class MalformedIdentifierError(IdentifierError):
    """Scheme, method, or multibase prefix is wrong."""


class UnsupportedKeyTypeError(IdentifierError):
    """Multicodec tag is not the P-256 public key tag."""

    def __init__(self, code: int):
        super().__init__(f"multicodec not supported; code: {code:#x}")
        self.code = code


class MalformedKeyError(IdentifierError):
    """Key bytes have the wrong length."""


class InvalidPointError(IdentifierError):
    """Key bytes do not decompress to a point on P-256."""


class InvalidPrivateKeyError(DIDentityError, ValueError):
    """Private scalar is outside [1, n-1] or does not match its public point."""


class VerificationError(DIDentityError):
    """Base class for compact token verification failures."""


class TokenFormatError(VerificationError, ValueError):
    """Token could not be parsed far enough to attempt verification."""


class MalformedTokenError(TokenFormatError):
    """Token does not have exactly three dot-separated segments."""


class MalformedEncodingError(TokenFormatError):
    """A segment is not canonical unpadded base64url."""


class MalformedHeaderError(TokenFormatError):
    """Header is not a JSON object holding a single string kid."""


class MalformedPayloadError(TokenFormatError):
    """Payload is not JSON, or not a credential or presentation."""


class UnresolvableSignerError(VerificationError):
    """The header kid does not resolve to a public key."""

    def __init__(self, kid: str, cause: Exception):
        super().__init__(f"cannot resolve signer {kid!r}: {cause}")
        self.kid = kid
        self.cause = cause


class InvalidSignatureError(VerificationError):
    """Signature check was attempted and failed."""


class EmptyPresentationError(DIDentityError, ValueError):
    """A presentation needs at least one credential."""


class KeyUnavailableError(DIDentityError):
    """The key source could not produce a keypair."""

    def __init__(self, role: str, reason: str):
        super().__init__(f"{role} key unavailable: {reason}")
        self.role = role


class CredentialNameConflictError(DIDentityError):
    """A credential record with this name already exists."""

    def __init__(self, name: str):
        super().__init__(f"credential name already in use: {name}")
        self.name = name
