# src/hydronyx_web/credentials.py

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


class CredentialStore(ABC):
    """
    Narrow get/set/clear interface over wherever the session tokens live.

    The API client only ever calls ``get_access_token``; login writes through
    ``set_tokens`` and logout calls ``clear``.
    """

    @abstractmethod
    def get_access_token(self) -> Optional[str]:
        ...

    @abstractmethod
    def get_refresh_token(self) -> Optional[str]:
        ...

    @abstractmethod
    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class MemoryCredentialStore(CredentialStore):
    def __init__(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None):
        self._data: Dict[str, str] = {}
        if access_token:
            self.set_tokens(access_token, refresh_token)

    def get_access_token(self) -> Optional[str]:
        return self._data.get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        return self._data.get(REFRESH_TOKEN_KEY)

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self._data[ACCESS_TOKEN_KEY] = access_token
        if refresh_token:
            self._data[REFRESH_TOKEN_KEY] = refresh_token
        else:
            self._data.pop(REFRESH_TOKEN_KEY, None)

    def clear(self) -> None:
        self._data.clear()


class SessionCredentialStore(CredentialStore):
    """Stores tokens in a server-side session dict (see main.SessionMiddlewareCustom)."""

    def __init__(self, session: dict):
        self.session = session

    def get_access_token(self) -> Optional[str]:
        return self.session.get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        return self.session.get(REFRESH_TOKEN_KEY)

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.session[ACCESS_TOKEN_KEY] = access_token
        self.session[REFRESH_TOKEN_KEY] = refresh_token

    def clear(self) -> None:
        self.session.pop(ACCESS_TOKEN_KEY, None)
        self.session.pop(REFRESH_TOKEN_KEY, None)


class FileCredentialStore(CredentialStore):
    """
    Keeps ``access_token``/``refresh_token`` in a small JSON file.

    The file is re-read on every lookup so a logout from another process is
    seen by the next request. A missing or unreadable file reads as "no token".
    Writes replace the file atomically and leave it readable by the owner only.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"CREDENTIALS: Could not read credentials file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"CREDENTIALS: Ignoring credentials file {self.path} with unexpected content.")
            return {}
        return data

    def get_access_token(self) -> Optional[str]:
        return self._read().get(ACCESS_TOKEN_KEY) or None

    def get_refresh_token(self) -> Optional[str]:
        return self._read().get(REFRESH_TOKEN_KEY) or None

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        data = {ACCESS_TOKEN_KEY: access_token}
        if refresh_token:
            data[REFRESH_TOKEN_KEY] = refresh_token
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # mkstemp creates the file 0o600; os.replace swaps it in atomically
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.info(f"CREDENTIALS: Stored session tokens in {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info(f"CREDENTIALS: Removed credentials file {self.path}")


def create_credential_store(config: Optional[Settings] = None) -> CredentialStore:
    config = config or default_settings
    if config.CREDENTIALS_FILE:
        return FileCredentialStore(config.CREDENTIALS_FILE)
    return MemoryCredentialStore()
