"""Settings for the credential service and command-line tool.

Values come from environment variables or a JSON file:

{
  "key_dir": str,        // directory holding <role>_private.key files
  "db_path": str,        // SQLite database of issued credentials
  "validity_days": int,  // validity window of newly issued credentials
  "log_level": str       // logging level name
}
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Union

ENV_PREFIX = "DIDENTITY_"

MAX_VALIDITY_DAYS = timedelta.max.days


@dataclass(frozen=True)
class Settings:
    key_dir: str = ".tmp"
    db_path: str = "credential.db"
    validity_days: int = 365
    log_level: str = "WARNING"

    def __post_init__(self):
        if not 0 < self.validity_days <= MAX_VALIDITY_DAYS:
            raise ValueError(
                f"validity_days must be between 1 and {MAX_VALIDITY_DAYS}, got {self.validity_days}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def validity(self) -> timedelta:
        return timedelta(days=self.validity_days)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        """Build settings from a mapping, ignoring unknown keys."""
        values: dict[str, Any] = {}
        for name in ("key_dir", "db_path", "log_level"):
            if data.get(name) is not None:
                values[name] = str(data[name])
        if data.get("validity_days") is not None:
            try:
                values["validity_days"] = int(data["validity_days"])
            except (TypeError, ValueError) as e:
                raise ValueError(f"validity_days must be an integer: {e}") from e
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read DIDENTITY_KEY_DIR, DIDENTITY_DB_PATH, DIDENTITY_VALIDITY_DAYS
        and DIDENTITY_LOG_LEVEL."""
        environ = os.environ if environ is None else environ
        return cls.from_mapping(
            {
                key[len(ENV_PREFIX):].lower(): value
                for key, value in environ.items()
                if key.startswith(ENV_PREFIX)
            }
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "Settings":
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("Config file must hold a JSON object")
        return cls.from_mapping(data)

    def override(self, **values: Any) -> "Settings":
        """Return a copy with the given non-None values replaced."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})
