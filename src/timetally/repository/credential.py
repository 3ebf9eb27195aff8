# SPDX-License-Identifier: MIT

import hashlib
import os
from pathlib import Path
from typing import Optional

from timetally import configuration


def hash_token(token: str) -> str:
    """SHA-256 hex digest of the API token; the cache is keyed by this, never the token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class CredentialRepository:
    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or configuration.DATA_TOKEN_PATH

    def read_token(self) -> Optional[str]:
        value = os.environ.get(configuration.TOKEN_ENV_VAR)
        if value is not None and value.strip():
            return value.strip()

        if not self.path.is_file():
            return None
        token = self.path.read_text().strip()
        return token or None

    def write_token(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token.strip())
        self.path.chmod(0o600)

    def clear_token(self) -> None:
        if self.path.exists():
            self.path.unlink()
