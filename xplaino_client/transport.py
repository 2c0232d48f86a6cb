from __future__ import annotations

import asyncio
from typing import Any, AsyncContextManager, Protocol

import httpx

from xplaino_client.config import AppSettings
from xplaino_client.models import RequestDescriptor


class CancellationToken:
    """Caller-owned switch that aborts a request still in flight."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class Transport(Protocol):
    async def send(self, descriptor: RequestDescriptor) -> httpx.Response: ...

    def stream(self, descriptor: RequestDescriptor) -> AsyncContextManager[httpx.Response]: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    def __init__(self, settings: AppSettings, client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            timeout=settings.timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def send(self, descriptor: RequestDescriptor) -> httpx.Response:
        return await self._client.request(
            descriptor.method,
            descriptor.url,
            **self._request_kwargs(descriptor),
        )

    def stream(self, descriptor: RequestDescriptor) -> AsyncContextManager[httpx.Response]:
        """Open a response whose body is read incrementally; close it by leaving the context."""
        return self._client.stream(
            descriptor.method,
            descriptor.url,
            **self._request_kwargs(descriptor),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _request_kwargs(descriptor: RequestDescriptor) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"headers": dict(descriptor.headers)}
        if descriptor.params:
            kwargs["params"] = dict(descriptor.params)
        if descriptor.json is not None:
            kwargs["json"] = descriptor.json
        if descriptor.content is not None:
            kwargs["content"] = descriptor.content
        if descriptor.data:
            kwargs["data"] = dict(descriptor.data)
        if descriptor.files:
            kwargs["files"] = dict(descriptor.files)
        return kwargs
