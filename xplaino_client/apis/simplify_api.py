from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Mapping, Sequence

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.sse import completion_event
from xplaino_client.transport import CancellationToken

ChunkCallback = Callable[[str, str], None]


class SimplifyApi:
    SIMPLIFY_PATH = "/api/v2/simplify"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def simplify(
        self,
        segments: Sequence[Mapping[str, Any]],
        on_chunk: ChunkCallback,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        """Stream a simplification of ``segments``.

        ``on_chunk(chunk, accumulated)`` fires per streamed piece of text and
        ``handlers.on_success`` receives ``simplifiedText``,
        ``shouldAllowSimplifyMore`` and ``possibleQuestions`` once the stream
        completes.
        """
        payload = [self._normalize_segment(segment) for segment in segments]
        if not payload:
            raise ValueError("At least one text segment is required")

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.SIMPLIFY_PATH),
            method="POST",
            headers={"Accept": "text/event-stream"},
            json=payload,
        )

        def on_event(event: dict[str, Any]) -> None:
            if "chunk" in event:
                on_chunk(str(event["chunk"]), str(event.get("accumulatedSimplifiedText", "")))

        completed = replace(
            handlers,
            on_success=lambda events: handlers.on_success(_simplified(events)),
        )
        return await self._executor.execute_stream(descriptor, on_event, completed, cancellation)

    @staticmethod
    def _normalize_segment(segment: Mapping[str, Any]) -> dict[str, Any]:
        text = str(segment.get("text", "")).strip()
        if not text:
            raise ValueError("Each segment needs non-empty text")

        normalized = {
            "textStartIndex": int(segment.get("textStartIndex", 0)),
            "textLength": int(segment.get("textLength", len(text))),
            "text": text,
            "previousSimplifiedTexts": list(segment.get("previousSimplifiedTexts") or []),
        }
        for key in ("context", "languageCode"):
            if segment.get(key):
                normalized[key] = segment[key]
        return normalized


def _simplified(events: list[dict[str, Any]]) -> dict[str, Any]:
    complete = completion_event(events)
    return {
        "simplifiedText": complete.get("simplifiedText", ""),
        "shouldAllowSimplifyMore": bool(complete.get("shouldAllowSimplifyMore", False)),
        "possibleQuestions": list(complete.get("possibleQuestions") or []),
    }
