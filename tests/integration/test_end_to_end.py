"""End-to-end flows over file-backed keys and a SQLite store."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from didentity import (
    EmptyPresentationError,
    FileKeyProvider,
    VerificationStatus,
    create_presentation,
    did_from_public_key,
    issue_credential,
    verify_credential_or_presentation,
)
from didentity.credentials import TIMESTAMP_FORMAT
from didentity.service import CredentialService
from didentity.store import SQLiteCredentialStore


@pytest.mark.integration
class TestEndToEnd:
    """Issue, present and verify across restarts."""

    def test_issue_and_verify(self, tmp_path: Path):
        """A one-year credential verifies and names the issuer's did:key."""
        keys = FileKeyProvider(tmp_path / "keys")
        issuer_key = keys.get_or_create_key("issuer")
        holder_did = did_from_public_key(keys.get_or_create_key("holder").public_key())

        issued = issue_credential("age>=18", holder_did, issuer_key, timedelta(days=365))
        outcome = verify_credential_or_presentation(issued.token)

        assert outcome.status is VerificationStatus.VALID
        assert outcome.signer == did_from_public_key(issuer_key.public_key())
        assert outcome.payload.issuer == issued.issuer
        assert outcome.payload.subject.claim == "age>=18"
        assert outcome.payload.subject.holder == holder_did
        start = datetime.strptime(outcome.payload.start_time, TIMESTAMP_FORMAT)
        end = datetime.strptime(outcome.payload.end_time, TIMESTAMP_FORMAT)
        assert end - start == timedelta(days=365)

    def test_presentation(self, tmp_path: Path):
        """Credentials are bundled in order under the holder's signature."""
        keys = FileKeyProvider(tmp_path / "keys")
        issuer_key = keys.get_or_create_key("issuer")
        holder_key = keys.get_or_create_key("holder")
        holder_did = did_from_public_key(holder_key.public_key())

        t1 = issue_credential("age>=18", holder_did, issuer_key).token
        t2 = issue_credential("resident", holder_did, issuer_key).token
        vp = create_presentation([t1, t2], holder_key)

        outcome = verify_credential_or_presentation(vp, verify_nested=True)
        assert outcome.valid
        assert outcome.is_presentation
        assert outcome.signer == holder_did
        assert outcome.payload.credentials == [t1, t2]
        assert [nested.payload.subject.claim for nested in outcome.nested] == [
            "age>=18",
            "resident",
        ]

        with pytest.raises(EmptyPresentationError):
            create_presentation([], holder_key)

    def test_service_survives_restart(self, tmp_path: Path):
        """Keys and records persist between service instances."""
        key_dir = tmp_path / "keys"
        db_path = tmp_path / "credential.db"

        with SQLiteCredentialStore(db_path) as store:
            first = CredentialService(FileKeyProvider(key_dir), store)
            record = first.issue("membership", "member", "did:example:alice")
            issuer_did = first.issuer_did()

        with SQLiteCredentialStore(db_path) as store:
            second = CredentialService(FileKeyProvider(key_dir), store)
            assert second.issuer_did() == issuer_did
            assert second.list_credentials() == [record]
            assert second.verify(record.vc).signer == issuer_did
