"""Resolvers turning a token header kid into the signer's public key.

A resolver is any callable ``(kid) -> EllipticCurvePublicKey`` that raises
ValueError when it cannot produce a key.
"""

from collections.abc import Iterable

from cryptography.hazmat.primitives.asymmetric import ec

from .compact_token import PublicKeyResolver
from .did_key import public_key_from_did


def did_key_resolver(kid: str) -> ec.EllipticCurvePublicKey:
    """Resolve a did:key kid by decoding the key embedded in it.

    Raises:
        ValueError: Any did:key decoding error
    """
    return public_key_from_did(kid)


def trusted_did_resolver(
    trusted_dids: Iterable[str],
    resolver: PublicKeyResolver = did_key_resolver,
) -> PublicKeyResolver:
    """Create a resolver that only accepts signers from a fixed set of DIDs.

    Args:
        trusted_dids: DIDs whose signatures are accepted
        resolver: Resolver used for accepted DIDs

    Returns:
        Resolver function that rejects any kid outside the trusted set

    Note:
        Rejected kids raise ValueError, so verification reports them as
        unresolvable signers rather than bad signatures.
    """
    trusted = frozenset(trusted_dids)

    def resolve_trusted(kid: str) -> ec.EllipticCurvePublicKey:
        if kid not in trusted:
            raise ValueError(f"Signer not trusted: {kid}")
        return resolver(kid)

    return resolve_trusted
