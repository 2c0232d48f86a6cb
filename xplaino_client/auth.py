from __future__ import annotations

import json
import logging
import os
from typing import Any, Protocol

import httpx
from msal_extensions import FilePersistence, FilePersistenceWithDataProtection

from xplaino_client.models import AuthState, Credentials

LOGGER = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get_credentials(self) -> Credentials | None: ...

    def set_credentials(self, credentials: Credentials) -> None: ...

    def get_anonymous_id(self) -> str | None: ...

    def set_anonymous_id(self, anonymous_id: str) -> None: ...

    def clear_credentials(self) -> None: ...


class InMemoryCredentialStore:
    def __init__(
        self,
        credentials: Credentials | None = None,
        anonymous_id: str | None = None,
    ):
        self._credentials = credentials
        self._anonymous_id = anonymous_id

    def get_credentials(self) -> Credentials | None:
        return self._credentials

    def set_credentials(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def get_anonymous_id(self) -> str | None:
        return self._anonymous_id

    def set_anonymous_id(self, anonymous_id: str) -> None:
        self._anonymous_id = anonymous_id

    def clear_credentials(self) -> None:
        self._credentials = None


class FileCredentialStore:
    """Credentials and anonymous id kept in one JSON document on disk."""

    def __init__(self, path: str):
        self._persistence = self._build_persistence(path)
        self._state: dict[str, Any] | None = None

    @staticmethod
    def _build_persistence(path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            return FilePersistenceWithDataProtection(path)
        except Exception:
            return FilePersistence(path)

    def get_credentials(self) -> Credentials | None:
        payload = self._load().get("credentials")
        if not isinstance(payload, dict):
            return None
        try:
            return Credentials.from_payload(payload)
        except ValueError:
            LOGGER.warning("Ignoring stored credentials without an access token")
            return None

    def set_credentials(self, credentials: Credentials) -> None:
        state = self._load()
        state["credentials"] = credentials.to_payload()
        self._save(state)

    def get_anonymous_id(self) -> str | None:
        value = self._load().get("anonymousId")
        return value if isinstance(value, str) and value else None

    def set_anonymous_id(self, anonymous_id: str) -> None:
        state = self._load()
        state["anonymousId"] = anonymous_id
        self._save(state)

    def clear_credentials(self) -> None:
        state = self._load()
        state["credentials"] = None
        self._save(state)

    def _load(self) -> dict[str, Any]:
        if self._state is not None:
            return self._state

        try:
            raw = self._persistence.load()
        except OSError:
            raw = None

        state: dict[str, Any] = {}
        if raw:
            try:
                parsed = json.loads(raw)
            except ValueError:
                LOGGER.warning("Credential file is not valid JSON; starting empty")
                parsed = None
            if isinstance(parsed, dict):
                state = parsed

        self._state = state
        return state

    def _save(self, state: dict[str, Any]) -> None:
        self._state = state
        self._persistence.save(json.dumps(state))


class AuthHeaderBuilder:
    def __init__(self, store: CredentialStore, anonymous_id_header: str):
        self._store = store
        self._anonymous_id_header = anonymous_id_header

    def access_token(self) -> str | None:
        credentials = self._store.get_credentials()
        return credentials.access_token if credentials and credentials.access_token else None

    def build(self) -> dict[str, str]:
        headers: dict[str, str] = {}

        access_token = self.access_token()
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        # Sent even when logged in; the bearer token takes precedence server-side.
        anonymous_id = self._store.get_anonymous_id()
        if anonymous_id:
            headers[self._anonymous_id_header] = anonymous_id

        return headers


class AnonymousIdSynchronizer:
    def __init__(self, store: CredentialStore, anonymous_id_header: str):
        self._store = store
        self._anonymous_id_header = anonymous_id_header

    def sync(self, response: httpx.Response) -> str | None:
        anonymous_id = (response.headers.get(self._anonymous_id_header) or "").strip()
        if not anonymous_id:
            return None

        if anonymous_id != self._store.get_anonymous_id():
            self._store.set_anonymous_id(anonymous_id)
            LOGGER.debug("Stored anonymous user id from response headers")
        return anonymous_id


def get_auth_state(store: CredentialStore) -> AuthState:
    credentials = store.get_credentials()
    return AuthState(
        is_signed_in=bool(credentials and credentials.access_token),
        has_anonymous_id=bool(store.get_anonymous_id()),
    )
