"""Single-profile credential gate guarding access to the ledger.

Credentials live in the same key-value backend as the ledger but under their
own keys; nothing here reads or writes ledger state.
"""

from __future__ import annotations

import json
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from ..config import BaseConfig
from ..domain.repositories.storage import KeyValueStore
from ..logging_config import get_logger

logger = get_logger(__name__)

_hasher = PasswordHasher()


class CredentialGate:
    """Register/login/logout for the device's one local profile."""

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        auth_key: str = BaseConfig.AUTH_KEY,
        session_key: str = BaseConfig.SESSION_KEY,
    ) -> None:
        self._backend = backend
        self._auth_key = auth_key
        self._session_key = session_key
        self._user: Optional[str] = None
        self._restore_session()

    def _read_credentials(self) -> Optional[dict]:
        raw = self._backend.get(self._auth_key)
        if raw is None:
            return None
        try:
            creds = json.loads(raw)
        except ValueError:
            logger.error("Stored credentials are unreadable")
            return None
        if not isinstance(creds, dict) or "username" not in creds:
            logger.error("Stored credentials have an unexpected shape")
            return None
        return creds

    def _write_credentials(self, username: str, password: str) -> None:
        record = {"username": username, "password_hash": _hasher.hash(password)}
        self._backend.set(self._auth_key, json.dumps(record))

    def _restore_session(self) -> None:
        session_user = self._backend.get(self._session_key)
        creds = self._read_credentials()
        if session_user and creds and session_user == creds["username"]:
            self._user = session_user

    @property
    def has_account(self) -> bool:
        return self._read_credentials() is not None

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def user(self) -> Optional[str]:
        return self._user

    def register(self, username: str, password: str) -> None:
        """Store a new profile (replacing any previous one) and sign in."""

        username = username.strip()
        if not username:
            raise ValueError("Username cannot be empty")
        if not password:
            raise ValueError("Password cannot be empty")
        self._write_credentials(username, password)
        self._backend.set(self._session_key, username)
        self._user = username
        logger.info("Profile registered", extra={"username": username})

    def login(self, username: str, password: str) -> bool:
        """Validate credentials; on success persist the session and return True."""

        creds = self._read_credentials()
        username = username.strip()
        if creds is None or not username or username != creds["username"]:
            return False

        if "password_hash" in creds:
            try:
                _hasher.verify(creds["password_hash"], password)
            except (VerifyMismatchError, InvalidHash, VerificationError):
                return False
        elif creds.get("password") == password:
            # Older profiles stored the password in plain text; re-hash on success.
            self._write_credentials(username, password)
        else:
            return False

        self._backend.set(self._session_key, username)
        self._user = username
        return True

    def logout(self) -> None:
        self._backend.delete(self._session_key)
        self._user = None
