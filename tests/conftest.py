"""Pytest configuration and shared fixtures for didentity tests."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from didentity import (
    InMemoryKeyProvider,
    did_from_private_key,
    generate_private_key,
)
from didentity.store import SQLiteCredentialStore


@pytest.fixture
def issuer_key() -> ec.EllipticCurvePrivateKey:
    """Generate an issuer P-256 keypair."""
    return generate_private_key()


@pytest.fixture
def holder_key() -> ec.EllipticCurvePrivateKey:
    """Generate a holder P-256 keypair."""
    return generate_private_key()


@pytest.fixture
def issuer_did(issuer_key: ec.EllipticCurvePrivateKey) -> str:
    return did_from_private_key(issuer_key)


@pytest.fixture
def holder_did(holder_key: ec.EllipticCurvePrivateKey) -> str:
    return did_from_private_key(holder_key)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed issuance time for deterministic validity windows."""
    return datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def key_provider(
    issuer_key: ec.EllipticCurvePrivateKey, holder_key: ec.EllipticCurvePrivateKey
) -> InMemoryKeyProvider:
    """Key source preset with the issuer and holder fixture keys."""
    return InMemoryKeyProvider({"issuer": issuer_key, "holder": holder_key})


@pytest.fixture
def credential_store():
    """In-memory SQLite credential store."""
    with SQLiteCredentialStore(":memory:") as store:
        yield store


@pytest.fixture
def temp_keys_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for key storage."""
    keys_dir = tmp_path / "keys"
    keys_dir.mkdir()
    return keys_dir


@pytest.fixture(autouse=True)
def reset_environment():
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
