from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from xplaino_client.auth import AnonymousIdSynchronizer, AuthHeaderBuilder, InMemoryCredentialStore
from xplaino_client.models import Credentials, RefreshState
from xplaino_client.refresh import BackendTokenRefresher, TokenRefreshCoordinator, TokenRefreshError
from xplaino_client.transport import HttpxTransport

from conftest import ANON_HEADER


class _FakeRefresh:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def perform_refresh(self, refresh_token: str) -> Credentials:
        self.calls.append(refresh_token)
        await asyncio.sleep(0.01)
        if self.fail:
            raise TokenRefreshError("refresh rejected")
        return Credentials(access_token="fresh", refresh_token="refresh-next")


def _store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore(Credentials(access_token="stale", refresh_token="refresh-1"))


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(notifier) -> None:
    operation = _FakeRefresh()
    store = _store()
    coordinator = TokenRefreshCoordinator(store, operation, notifier)

    results = await asyncio.gather(*(coordinator.refresh() for _ in range(5)))

    assert operation.calls == ["refresh-1"]
    assert all(result.ok for result in results)
    assert len({id(result) for result in results}) == 1
    assert store.get_credentials().access_token == "fresh"
    assert coordinator.state is RefreshState.IDLE


@pytest.mark.asyncio
async def test_state_is_refreshing_while_in_flight(notifier) -> None:
    coordinator = TokenRefreshCoordinator(_store(), _FakeRefresh(), notifier)

    pending = asyncio.ensure_future(coordinator.refresh())
    await asyncio.sleep(0)

    assert coordinator.state is RefreshState.REFRESHING
    await pending
    assert coordinator.state is RefreshState.IDLE


@pytest.mark.asyncio
async def test_failure_clears_credentials_and_logs_out_once(notifier) -> None:
    store = _store()
    coordinator = TokenRefreshCoordinator(store, _FakeRefresh(fail=True), notifier)

    results = await asyncio.gather(*(coordinator.refresh() for _ in range(3)))

    assert [result.ok for result in results] == [False, False, False]
    assert results[0].error == "refresh rejected"
    assert notifier.logouts == 1
    assert store.get_credentials() is None


@pytest.mark.asyncio
async def test_failure_is_not_sticky(notifier) -> None:
    operation = _FakeRefresh(fail=True)
    store = _store()
    coordinator = TokenRefreshCoordinator(store, operation, notifier)

    assert not (await coordinator.refresh()).ok

    store.set_credentials(Credentials(access_token="stale", refresh_token="refresh-again"))
    operation.fail = False
    result = await coordinator.refresh()

    assert result.ok
    assert operation.calls == ["refresh-1", "refresh-again"]


@pytest.mark.asyncio
async def test_missing_refresh_token_fails_without_network(notifier) -> None:
    operation = _FakeRefresh()
    store = InMemoryCredentialStore(Credentials(access_token="stale"))
    coordinator = TokenRefreshCoordinator(store, operation, notifier)

    result = await coordinator.refresh()

    assert not result.ok
    assert operation.calls == []
    assert notifier.logouts == 1


@pytest.mark.asyncio
async def test_expired_refresh_token_fails_without_network(notifier) -> None:
    operation = _FakeRefresh()
    store = InMemoryCredentialStore(
        Credentials(
            access_token="stale",
            refresh_token="refresh-1",
            refresh_token_expires_at="2000-01-01T00:00:00Z",
        )
    )
    coordinator = TokenRefreshCoordinator(store, operation, notifier)

    result = await coordinator.refresh()

    assert result.error == "Refresh token has expired"
    assert operation.calls == []


def _refresher(settings, store, handler) -> tuple[BackendTokenRefresher, HttpxTransport]:
    transport = HttpxTransport(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    refresher = BackendTokenRefresher(
        settings,
        transport,
        AuthHeaderBuilder(store, ANON_HEADER),
        AnonymousIdSynchronizer(store, ANON_HEADER),
    )
    return refresher, transport


@pytest.mark.asyncio
async def test_backend_refresher_posts_refresh_token(settings) -> None:
    seen: list[httpx.Request] = []
    store = InMemoryCredentialStore(Credentials(access_token="stale", refresh_token="refresh-1"))

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            headers={ANON_HEADER: "anon-9"},
            json={"accessToken": "fresh", "accessTokenExpiresAt": "2030-01-01T00:00:00Z"},
        )

    refresher, transport = _refresher(settings, store, handler)
    credentials = await refresher.perform_refresh("refresh-1")
    await transport.aclose()

    assert seen[0].url.path == "/api/auth/refresh-token"
    assert seen[0].headers["Authorization"] == "Bearer stale"
    assert json.loads(seen[0].content) == {"refreshToken": "refresh-1"}
    assert credentials == Credentials(
        access_token="fresh",
        refresh_token="refresh-1",
        access_token_expires_at="2030-01-01T00:00:00Z",
    )
    assert store.get_anonymous_id() == "anon-9"


@pytest.mark.asyncio
async def test_backend_refresher_raises_on_rejection(settings) -> None:
    store = InMemoryCredentialStore(Credentials(access_token="stale", refresh_token="refresh-1"))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"errorCode": "LOGIN_REQUIRED"})

    refresher, transport = _refresher(settings, store, handler)
    with pytest.raises(TokenRefreshError, match="401"):
        await refresher.perform_refresh("refresh-1")
    await transport.aclose()


@pytest.mark.asyncio
async def test_backend_refresher_rejects_payload_without_access_token(settings) -> None:
    store = InMemoryCredentialStore(Credentials(access_token="stale", refresh_token="refresh-1"))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"refreshToken": "only-refresh"})

    refresher, transport = _refresher(settings, store, handler)
    with pytest.raises(TokenRefreshError, match="accessToken"):
        await refresher.perform_refresh("refresh-1")
    await transport.aclose()


class _UnwritableStore(InMemoryCredentialStore):
    def clear_credentials(self) -> None:
        raise PermissionError("credentials file is read-only")


class _BrokenNotifier:
    def notify_login_required(self) -> None:
        pass

    def notify_subscription_required(self) -> None:
        pass

    def notify_logout(self) -> None:
        raise RuntimeError("window already closed")


@pytest.mark.asyncio
async def test_failure_side_effects_never_escape() -> None:
    store = _UnwritableStore(Credentials(access_token="stale", refresh_token="refresh-1"))
    coordinator = TokenRefreshCoordinator(store, _FakeRefresh(fail=True), _BrokenNotifier())

    result = await coordinator.refresh()

    assert not result.ok
    assert result.error == "refresh rejected"
    assert coordinator.state is RefreshState.IDLE


@pytest.mark.asyncio
async def test_stale_token_skips_refresh_when_already_replaced(notifier) -> None:
    operation = _FakeRefresh()
    store = InMemoryCredentialStore(Credentials(access_token="fresh", refresh_token="refresh-next"))
    coordinator = TokenRefreshCoordinator(store, operation, notifier)

    result = await coordinator.refresh("stale")

    assert result.ok
    assert result.credentials.access_token == "fresh"
    assert operation.calls == []


@pytest.mark.asyncio
async def test_stale_token_after_sign_out_fails_without_logout(notifier) -> None:
    operation = _FakeRefresh()
    coordinator = TokenRefreshCoordinator(InMemoryCredentialStore(), operation, notifier)

    result = await coordinator.refresh("stale")

    assert not result.ok
    assert operation.calls == []
    assert notifier.logouts == 0


@pytest.mark.asyncio
async def test_current_token_starts_a_refresh(notifier) -> None:
    operation = _FakeRefresh()
    coordinator = TokenRefreshCoordinator(_store(), operation, notifier)

    result = await coordinator.refresh("stale")

    assert result.ok
    assert operation.calls == ["refresh-1"]
