"""Issuer, holder and verifier operations wired to a key source and record store."""

import logging
from datetime import timedelta

from .credentials import (
    DEFAULT_VALIDITY,
    VerificationOutcome,
    create_presentation,
    issue_credential,
    verify_credential_or_presentation,
)
from .did_key import did_from_private_key
from .key_provider import ROLE_HOLDER, ROLE_ISSUER, KeyProvider
from .store import CredentialRecord, CredentialStore

logger = logging.getLogger(__name__)


class CredentialService:
    """Issues credentials under the issuer key, presents them under the holder key."""

    def __init__(
        self,
        keys: KeyProvider,
        store: CredentialStore,
        validity: timedelta = DEFAULT_VALIDITY,
    ):
        self.keys = keys
        self.store = store
        self.validity = validity

    def issuer_did(self) -> str:
        return did_from_private_key(self.keys.get_or_create_key(ROLE_ISSUER))

    def holder_did(self) -> str:
        return did_from_private_key(self.keys.get_or_create_key(ROLE_HOLDER))

    def issue(self, credential_name: str, claim: str, holder: str) -> CredentialRecord:
        """Issue and record a credential.

        The credential name becomes the subject id.

        Raises:
            KeyUnavailableError: If the issuer key cannot be loaded
            CredentialNameConflictError: If the name is already recorded
        """
        if not credential_name:
            raise ValueError("credential_name must not be empty")

        issued = issue_credential(
            claim,
            holder,
            self.keys.get_or_create_key(ROLE_ISSUER),
            validity=self.validity,
            subject_id=credential_name,
        )
        credential = issued.credential
        record = self.store.create(
            CredentialRecord(
                credential_name=credential_name,
                claim=claim,
                holder=holder,
                issuer=issued.issuer,
                start_time=credential.start_time,
                end_time=credential.end_time,
                vc=issued.token,
            )
        )
        logger.info("Issued credential %r to %s", credential_name, holder)
        return record

    def list_credentials(self) -> list[CredentialRecord]:
        return self.store.list()

    def present(self, credential_tokens: list[str]) -> str:
        """Create a presentation signed by the holder key.

        Raises:
            EmptyPresentationError: If no tokens are given
            KeyUnavailableError: If the holder key cannot be loaded
        """
        return create_presentation(credential_tokens, self.keys.get_or_create_key(ROLE_HOLDER))

    def verify(self, token: str, verify_nested: bool = False) -> VerificationOutcome:
        outcome = verify_credential_or_presentation(token, verify_nested=verify_nested)
        logger.info("Verified token from %s: %s", outcome.signer, outcome.status.value)
        return outcome
