from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class UiNotifier(Protocol):
    def notify_login_required(self) -> None: ...

    def notify_subscription_required(self) -> None: ...

    def notify_logout(self) -> None: ...


class LoggingNotifier:
    """Default notifier for headless use: prompts are only logged."""

    def notify_login_required(self) -> None:
        LOGGER.info("Login required; showing login prompt")

    def notify_subscription_required(self) -> None:
        LOGGER.info("Subscription required; showing upgrade prompt")

    def notify_logout(self) -> None:
        LOGGER.info("Session invalidated after failed token refresh")
