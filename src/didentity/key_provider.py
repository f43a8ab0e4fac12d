"""Key sources for the issuer and holder roles.

The signing code never touches storage; it asks a KeyProvider for the key of
a role. The first request for a role creates the key, later requests return
the same one.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Protocol, Union

from cryptography.hazmat.primitives.asymmetric import ec

from .cose_keys import (
    cose_key_decode,
    cose_key_encode,
    cose_key_from_private_key,
    cose_key_to_private_key,
    generate_private_key,
)
from .errors import KeyUnavailableError

logger = logging.getLogger(__name__)

ROLE_ISSUER = "issuer"
ROLE_HOLDER = "holder"
ROLES = (ROLE_ISSUER, ROLE_HOLDER)


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValueError(f"Unknown key role: {role!r}, expected one of {', '.join(ROLES)}")


class KeyProvider(Protocol):
    """Protocol for key sources."""

    def get_or_create_key(self, role: str) -> ec.EllipticCurvePrivateKey:
        """Return the keypair of a role, creating it on first use.

        Args:
            role: "issuer" or "holder"

        Returns:
            The role's P-256 private key

        Raises:
            KeyUnavailableError: If the key cannot be loaded or stored
        """


class InMemoryKeyProvider:
    """Key source that keeps keys in memory for the life of the object."""

    def __init__(self, keys: Optional[dict[str, ec.EllipticCurvePrivateKey]] = None):
        """Initialize with optional preset keys.

        Args:
            keys: Mapping of role to private key
        """
        self._keys: dict[str, ec.EllipticCurvePrivateKey] = {}
        self._lock = threading.Lock()
        for role, key in (keys or {}).items():
            _check_role(role)
            self._keys[role] = key

    def get_or_create_key(self, role: str) -> ec.EllipticCurvePrivateKey:
        _check_role(role)
        with self._lock:
            if role not in self._keys:
                self._keys[role] = generate_private_key()
                logger.info("Generated in-memory %s key", role)
            return self._keys[role]


class FileKeyProvider:
    """Key source persisting one CBOR COSE_Key file per role.

    Keys live at ``<directory>/<role>_private.key``. Files are created with
    mode 0600 and exclusive creation, so concurrent first use can never leave
    a role with two different keys.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.Lock()
        self._cache: dict[str, ec.EllipticCurvePrivateKey] = {}

    def key_path(self, role: str) -> Path:
        """Return the file holding a role's key."""
        _check_role(role)
        return self.directory / f"{role}_private.key"

    def get_or_create_key(self, role: str) -> ec.EllipticCurvePrivateKey:
        path = self.key_path(role)
        with self._lock:
            if role not in self._cache:
                try:
                    self._cache[role] = self._load_or_create(role, path)
                except (OSError, ValueError) as e:
                    logger.error("Cannot load %s key from %s: %s", role, path, e)
                    raise KeyUnavailableError(role, str(e)) from e
            return self._cache[role]

    def _load_or_create(self, role: str, path: Path) -> ec.EllipticCurvePrivateKey:
        if not path.exists():
            private_key = generate_private_key()
            if self._create(path, cose_key_encode(cose_key_from_private_key(private_key))):
                logger.info("Generated %s key at %s", role, path)
                return private_key
            # Another process created it first; use theirs

        return cose_key_to_private_key(cose_key_decode(path.read_bytes()))

    def _create(self, path: Path, data: bytes) -> bool:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            return False

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError:
            path.unlink(missing_ok=True)
            raise
        return True
