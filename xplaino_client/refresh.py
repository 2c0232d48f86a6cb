from __future__ import annotations

import asyncio
from dataclasses import replace
import logging
from typing import Protocol

import httpx

from xplaino_client.auth import AnonymousIdSynchronizer, AuthHeaderBuilder, CredentialStore
from xplaino_client.classify import error_body, parse_body
from xplaino_client.config import AppSettings
from xplaino_client.models import Credentials, RefreshResult, RefreshState, RequestDescriptor
from xplaino_client.notifiers import UiNotifier
from xplaino_client.transport import Transport

LOGGER = logging.getLogger(__name__)


class TokenRefreshError(RuntimeError):
    pass


class RefreshOperation(Protocol):
    async def perform_refresh(self, refresh_token: str) -> Credentials: ...


class BackendTokenRefresher:
    """Exchanges the stored refresh token at the backend's refresh endpoint."""

    def __init__(
        self,
        settings: AppSettings,
        transport: Transport,
        header_builder: AuthHeaderBuilder,
        synchronizer: AnonymousIdSynchronizer,
    ):
        self._settings = settings
        self._transport = transport
        self._header_builder = header_builder
        self._synchronizer = synchronizer

    async def perform_refresh(self, refresh_token: str) -> Credentials:
        descriptor = RequestDescriptor(
            url=self._settings.url_for(self._settings.refresh_path),
            method="POST",
            headers=self._header_builder.build(),
            json={"refreshToken": refresh_token},
        )

        try:
            response = await self._transport.send(descriptor)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(f"Token refresh request failed: {exc}") from exc

        self._synchronizer.sync(response)

        if not response.is_success:
            message = response.text[:500]
            raise TokenRefreshError(f"Token refresh failed: {response.status_code} - {message}")

        try:
            credentials = Credentials.from_payload(error_body(parse_body(response)))
        except ValueError as exc:
            raise TokenRefreshError(f"Token refresh returned an invalid payload: {exc}") from exc

        if credentials.refresh_token is None:
            credentials = replace(credentials, refresh_token=refresh_token)
        return credentials


class TokenRefreshCoordinator:
    """Single-flight gate around the refresh operation.

    While a refresh is running every caller of :meth:`refresh` awaits the same
    task and observes the same :class:`RefreshResult`. A failed episode clears
    the stored credentials and notifies logout once, however many callers were
    waiting. The gate drops back to idle as soon as the task finishes, so the
    next expired token starts a fresh attempt.
    """

    def __init__(
        self,
        store: CredentialStore,
        operation: RefreshOperation,
        notifier: UiNotifier,
    ):
        self._store = store
        self._operation = operation
        self._notifier = notifier
        self._pending: asyncio.Task[RefreshResult] | None = None

    @property
    def state(self) -> RefreshState:
        return RefreshState.IDLE if self._pending is None else RefreshState.REFRESHING

    async def refresh(self, stale_access_token: str | None = None) -> RefreshResult:
        """Join the running refresh or start one.

        ``stale_access_token`` is the token the failed request was sent with.
        When the store already holds a different token, that request lost a
        race with a finished refresh and no new refresh is started.
        """
        if self._pending is None:
            current = self._store.get_credentials()
            if stale_access_token is not None and (
                current is None or current.access_token != stale_access_token
            ):
                return self._settled(current)
            self._pending = asyncio.ensure_future(self._run())
        # Shielded so one waiter giving up does not cancel the shared refresh.
        return await asyncio.shield(self._pending)

    @staticmethod
    def _settled(current: Credentials | None) -> RefreshResult:
        if current is None:
            LOGGER.info("Credentials were cleared while the request was in flight")
            return RefreshResult(ok=False, error="Credentials were cleared")
        LOGGER.debug("Access token already replaced, retrying without a refresh")
        return RefreshResult(ok=True, credentials=current)

    async def _run(self) -> RefreshResult:
        try:
            credentials = self._store.get_credentials()
            if credentials is None or not credentials.refresh_token:
                raise TokenRefreshError("No refresh token available")
            if credentials.refresh_token_expired():
                raise TokenRefreshError("Refresh token has expired")

            LOGGER.info("Refreshing access token")
            fresh = await self._operation.perform_refresh(credentials.refresh_token)
            self._store.set_credentials(fresh)
            LOGGER.info("Access token refreshed")
            return RefreshResult(ok=True, credentials=fresh)
        except Exception as exc:
            LOGGER.warning("Token refresh failed: %s", exc)
            self._sign_out()
            return RefreshResult(ok=False, error=str(exc))
        finally:
            self._pending = None

    def _sign_out(self) -> None:
        try:
            self._store.clear_credentials()
        except OSError:
            LOGGER.exception("Failed to clear stored credentials")

        try:
            self._notifier.notify_logout()
        except Exception:
            LOGGER.exception("Logout notification failed")
