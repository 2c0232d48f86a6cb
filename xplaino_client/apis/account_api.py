from __future__ import annotations

import logging
from typing import Any

from xplaino_client.auth import CredentialStore
from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, LoginRequired, RequestDescriptor, Success

LOGGER = logging.getLogger(__name__)


class UserSettingsApi:
    """Background sync of account settings; failures are logged, never raised."""

    USER_SETTINGS_PATH = "/api/user-settings"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor
        self._latest: dict[str, Any] | None = None

    @property
    def latest(self) -> dict[str, Any] | None:
        return self._latest

    async def sync_user_account_settings(self) -> dict[str, Any] | None:
        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.USER_SETTINGS_PATH),
            method="GET",
        )
        outcome = await self._executor.resolve(descriptor)
        payload = _payload_or_log(outcome, "user settings")
        if payload is not None:
            self._latest = payload
        return payload


class SubscriptionApi:
    SUBSCRIPTION_PATH = "/api/subscription/{user_id}"

    def __init__(self, settings: AppSettings, executor: RequestExecutor, store: CredentialStore):
        self._settings = settings
        self._executor = executor
        self._store = store
        self._latest: dict[str, Any] | None = None

    @property
    def latest(self) -> dict[str, Any] | None:
        return self._latest

    async def sync_subscription_status(self, user_id: str | None) -> dict[str, Any] | None:
        if not user_id or not user_id.strip():
            LOGGER.info("No user id available, skipping subscription sync")
            return None

        credentials = self._store.get_credentials()
        if credentials is None or not credentials.access_token:
            LOGGER.info("User not logged in, skipping subscription sync")
            return None

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.SUBSCRIPTION_PATH.format(user_id=user_id.strip())),
            method="GET",
        )
        outcome = await self._executor.resolve(descriptor)
        payload = _payload_or_log(outcome, "subscription status")
        if payload is not None:
            self._latest = payload
        return payload


def _payload_or_log(outcome: ClassifiedOutcome, what: str) -> dict[str, Any] | None:
    if isinstance(outcome, Success):
        LOGGER.info("Synced %s", what)
        return outcome.payload if isinstance(outcome.payload, dict) else {}

    if isinstance(outcome, LoginRequired):
        LOGGER.info("Login required, skipping %s sync", what)
        return None

    code = getattr(outcome, "code", type(outcome).__name__)
    message = getattr(outcome, "message", "")
    LOGGER.warning("Failed to sync %s: %s %s", what, code, message)
    return None
