"""SQLite storage for issued credential records."""

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union

from .errors import CredentialNameConflictError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS credentials (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL,
    credential_name TEXT NOT NULL UNIQUE,
    claim TEXT NOT NULL,
    holder TEXT NOT NULL,
    issuer TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    vc TEXT NOT NULL
)
"""

_COLUMNS = "id, created_at, credential_name, claim, holder, issuer, start_time, end_time, vc"


@dataclass(frozen=True)
class CredentialRecord:
    """An issued credential as kept by the issuer."""

    credential_name: str
    claim: str
    holder: str
    issuer: str
    start_time: str
    end_time: str
    vc: str
    id: Optional[int] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "credential_name": self.credential_name,
            "claim": self.claim,
            "holder": self.holder,
            "issuer": self.issuer,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "vc": self.vc,
        }


class CredentialStore(Protocol):
    """Protocol for credential record stores."""

    def create(self, record: CredentialRecord) -> CredentialRecord:
        """Store a new record and return it with id and created_at set.

        Raises:
            CredentialNameConflictError: If the name is already taken
        """

    def list(self) -> list[CredentialRecord]:
        """Return all records in insertion order."""


class SQLiteCredentialStore:
    """Credential records in a SQLite database, unique by credential name."""

    def __init__(self, path: Union[str, Path] = ":memory:"):
        self.path = str(path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        with self._conn:
            self._conn.execute(_SCHEMA)

    def __enter__(self) -> "SQLiteCredentialStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def create(self, record: CredentialRecord) -> CredentialRecord:
        created_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        "INSERT INTO credentials (created_at, credential_name, claim, holder,"
                        " issuer, start_time, end_time, vc) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            created_at,
                            record.credential_name,
                            record.claim,
                            record.holder,
                            record.issuer,
                            record.start_time,
                            record.end_time,
                            record.vc,
                        ),
                    )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" not in str(e):
                    raise
                raise CredentialNameConflictError(record.credential_name) from e

        logger.info("Stored credential record %r", record.credential_name)
        return CredentialRecord(
            credential_name=record.credential_name,
            claim=record.claim,
            holder=record.holder,
            issuer=record.issuer,
            start_time=record.start_time,
            end_time=record.end_time,
            vc=record.vc,
            id=cursor.lastrowid,
            created_at=created_at,
        )

    def get(self, credential_name: str) -> Optional[CredentialRecord]:
        """Return the record with this name, or None."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM credentials WHERE credential_name = ?",
                (credential_name,),
            ).fetchone()
        return _row_to_record(row) if row else None

    def list(self) -> list[CredentialRecord]:
        with self._lock:
            rows = self._conn.execute(f"SELECT {_COLUMNS} FROM credentials ORDER BY id").fetchall()
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: tuple) -> CredentialRecord:
    record_id, created_at, name, claim, holder, issuer, start_time, end_time, vc = row
    return CredentialRecord(
        credential_name=name,
        claim=claim,
        holder=holder,
        issuer=issuer,
        start_time=start_time,
        end_time=end_time,
        vc=vc,
        id=record_id,
        created_at=created_at,
    )
