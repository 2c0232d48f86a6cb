from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from xplaino_client.auth import InMemoryCredentialStore
from xplaino_client.config import AppSettings
from xplaino_client.models import OutcomeHandlers
from xplaino_client.services import XplainoService, create_service
from xplaino_client.transport import HttpxTransport

BASE_URL = "https://api.test"
ANON_HEADER = "X-Unauthenticated-User-Id"


class RecordingNotifier:
    def __init__(self) -> None:
        self.login_prompts = 0
        self.subscription_prompts = 0
        self.logouts = 0

    def notify_login_required(self) -> None:
        self.login_prompts += 1

    def notify_subscription_required(self) -> None:
        self.subscription_prompts += 1

    def notify_logout(self) -> None:
        self.logouts += 1


class RecordingHandlers:
    def __init__(self) -> None:
        self.successes: list[Any] = []
        self.errors: list[tuple[str, str]] = []
        self.login_required = 0
        self.subscription_required = 0

    def build(self) -> OutcomeHandlers:
        return OutcomeHandlers(
            on_success=self.successes.append,
            on_error=lambda code, message: self.errors.append((code, message)),
            on_login_required=self._on_login_required,
            on_subscription_required=self._on_subscription_required,
        )

    def _on_login_required(self) -> None:
        self.login_required += 1

    def _on_subscription_required(self) -> None:
        self.subscription_required += 1


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        base_url=BASE_URL,
        timeout_seconds=5,
        credentials_path=str(tmp_path / "credentials.bin"),
        anonymous_id_header=ANON_HEADER,
        refresh_path="/api/auth/refresh-token",
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def handlers() -> RecordingHandlers:
    return RecordingHandlers()


@pytest.fixture
def make_service(
    settings: AppSettings,
    notifier: RecordingNotifier,
) -> Callable[..., XplainoService]:
    def _make(handler, store: InMemoryCredentialStore | None = None) -> XplainoService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return create_service(
            settings,
            store=store if store is not None else InMemoryCredentialStore(),
            notifier=notifier,
            transport=HttpxTransport(settings, client=client),
        )

    return _make
