from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from xplaino_client.auth import AnonymousIdSynchronizer, AuthHeaderBuilder
from xplaino_client.classify import ResponseClassifier, classify_stream_event, parse_body
from xplaino_client.models import (
    Aborted,
    AuthFailed,
    ClassifiedOutcome,
    ErrorCode,
    HttpError,
    LoginRequired,
    NetworkError,
    OutcomeHandlers,
    RequestDescriptor,
    SubscriptionRequired,
    Success,
    TokenExpired,
    Unauthorized,
)
from xplaino_client.notifiers import UiNotifier
from xplaino_client.refresh import TokenRefreshCoordinator
from xplaino_client.sse import iter_sse_events
from xplaino_client.transport import CancellationToken, Transport

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

EventCallback = Callable[[dict[str, Any]], None]

_CANCELLED = object()


class ApiHttpError(RuntimeError):
    def __init__(self, code: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class _EventCallbackFailed(Exception):
    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error


class RequestExecutor:
    """Runs one logical call: send, sync the anonymous id, classify, and at most
    one refresh-and-retry when the access token has expired."""

    def __init__(
        self,
        transport: Transport,
        header_builder: AuthHeaderBuilder,
        synchronizer: AnonymousIdSynchronizer,
        classifier: ResponseClassifier,
        coordinator: TokenRefreshCoordinator,
        notifier: UiNotifier,
    ):
        self._transport = transport
        self._header_builder = header_builder
        self._synchronizer = synchronizer
        self._classifier = classifier
        self._coordinator = coordinator
        self._notifier = notifier

    async def execute(
        self,
        descriptor: RequestDescriptor,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        outcome = await self.resolve(descriptor, cancellation)
        self._dispatch(outcome, handlers)
        return outcome

    async def execute_stream(
        self,
        descriptor: RequestDescriptor,
        on_event: EventCallback,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        """Like :meth:`execute` for ``text/event-stream`` endpoints.

        Each SSE event is passed to ``on_event`` as it arrives. On a clean end
        of stream ``handlers.on_success`` receives the list of all events. An
        ``{"type": "error"}`` event ends the call with the failure it reports.
        """
        outcome = await self.resolve(descriptor, cancellation, on_event=on_event)
        self._dispatch(outcome, handlers)
        return outcome

    async def request_json(
        self,
        descriptor: RequestDescriptor,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """Like :meth:`execute` but returns the payload or raises ``ApiHttpError``."""
        outcome = await self.resolve(descriptor, cancellation)
        if isinstance(outcome, Success):
            return outcome.payload

        if isinstance(outcome, LoginRequired):
            self.prompt_login()
            raise ApiHttpError(ErrorCode.LOGIN_REQUIRED, "Login required")
        if isinstance(outcome, SubscriptionRequired):
            self.prompt_subscription()
            raise ApiHttpError(ErrorCode.SUBSCRIPTION_REQUIRED, "Subscription required")

        status_code = None
        if isinstance(outcome, HttpError):
            status_code = outcome.status_code
        elif isinstance(outcome, Unauthorized):
            status_code = 401
        raise ApiHttpError(outcome.code, outcome.message, status_code)

    def prompt_login(self, on_login_required: Callable[[], None] | None = None) -> None:
        if on_login_required is not None:
            on_login_required()
        self._notifier.notify_login_required()

    def prompt_subscription(self, on_subscription_required: Callable[[], None] | None = None) -> None:
        if on_subscription_required is not None:
            on_subscription_required()
        self._notifier.notify_subscription_required()

    async def resolve(
        self,
        descriptor: RequestDescriptor,
        cancellation: CancellationToken | None = None,
        on_event: EventCallback | None = None,
    ) -> ClassifiedOutcome:
        """Return the final outcome without invoking any callback or prompt."""
        sent_with = self._header_builder.access_token()
        outcome = await self._attempt(descriptor, cancellation, True, on_event)
        if not isinstance(outcome, TokenExpired):
            return outcome

        LOGGER.info("Access token expired for %s %s", descriptor.method, descriptor.url)
        result = await self._until_cancelled(self._coordinator.refresh(sent_with), cancellation)
        if result is _CANCELLED:
            return Aborted()
        if not result.ok:
            return AuthFailed()

        # Single retry with the refreshed credentials; a second expiry is final.
        return await self._attempt(descriptor, cancellation, False, on_event)

    async def _attempt(
        self,
        descriptor: RequestDescriptor,
        cancellation: CancellationToken | None,
        allow_refresh: bool,
        on_event: EventCallback | None,
    ) -> ClassifiedOutcome:
        prepared = descriptor.with_headers(self._header_builder.build())
        if on_event is None:
            exchange = self._exchange(prepared, allow_refresh)
        else:
            exchange = self._exchange_stream(prepared, allow_refresh, on_event)

        try:
            outcome = await self._until_cancelled(exchange, cancellation)
        except _EventCallbackFailed as failure:
            raise failure.error
        except (httpx.HTTPError, httpx.StreamError) as exc:
            LOGGER.warning("Network error for %s %s: %s", prepared.method, prepared.url, exc)
            return NetworkError(str(exc) or "Network error occurred")
        except Exception as exc:
            LOGGER.exception("Transport failed for %s %s", prepared.method, prepared.url)
            return NetworkError(str(exc) or "Network error occurred")

        if outcome is _CANCELLED:
            LOGGER.debug("Request aborted: %s %s", prepared.method, prepared.url)
            return Aborted()
        return outcome

    async def _exchange(self, prepared: RequestDescriptor, allow_refresh: bool) -> ClassifiedOutcome:
        response = await self._transport.send(prepared)
        return self._classify(response, allow_refresh)

    async def _exchange_stream(
        self,
        prepared: RequestDescriptor,
        allow_refresh: bool,
        on_event: EventCallback,
    ) -> ClassifiedOutcome:
        async with self._transport.stream(prepared) as response:
            if not response.is_success:
                await response.aread()
                return self._classify(response, allow_refresh)

            self._synchronizer.sync(response)
            events: list[dict[str, Any]] = []
            async for event in iter_sse_events(response):
                failure = classify_stream_event(event)
                if failure is not None:
                    LOGGER.info("Stream reported an error for %s %s", prepared.method, prepared.url)
                    return failure

                events.append(event)
                try:
                    on_event(event)
                except Exception as exc:
                    raise _EventCallbackFailed(exc) from exc
            return Success(events)

    def _classify(self, response: httpx.Response, allow_refresh: bool) -> ClassifiedOutcome:
        self._synchronizer.sync(response)
        return self._classifier.classify(
            response.status_code,
            parse_body(response),
            response.reason_phrase,
            allow_refresh=allow_refresh,
        )

    @staticmethod
    async def _until_cancelled(
        work: Awaitable[T],
        cancellation: CancellationToken | None,
    ) -> T | object:
        if cancellation is None:
            return await work

        task = asyncio.ensure_future(work)
        if cancellation.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return _CANCELLED

        stopper = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            stopper.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return _CANCELLED

    def _dispatch(self, outcome: ClassifiedOutcome, handlers: OutcomeHandlers) -> None:
        if isinstance(outcome, Success):
            handlers.on_success(outcome.payload)
        elif isinstance(outcome, LoginRequired):
            LOGGER.info("Login required")
            self.prompt_login(handlers.on_login_required)
        elif isinstance(outcome, SubscriptionRequired):
            LOGGER.info("Subscription required")
            self.prompt_subscription(handlers.on_subscription_required)
        else:
            handlers.on_error(outcome.code, outcome.message)
