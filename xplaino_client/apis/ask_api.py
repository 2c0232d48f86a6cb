from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Mapping, Sequence

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.sse import completion_event
from xplaino_client.transport import CancellationToken

CONTEXT_TYPES = ("PAGE", "TEXT")
CHAT_ROLES = ("user", "assistant")


class AskApi:
    ASK_PATH = "/api/v2/ask"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def ask(
        self,
        question: str,
        on_chunk: Callable[[str, str], None],
        handlers: OutcomeHandlers,
        chat_history: Sequence[Mapping[str, str]] = (),
        initial_context: str | None = None,
        context_type: str = "TEXT",
        language_code: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        question = question.strip()
        if not question:
            raise ValueError("Question is required")

        normalized_type = context_type.strip().upper()
        if normalized_type not in CONTEXT_TYPES:
            raise ValueError("Context type must be one of: " + ", ".join(CONTEXT_TYPES))

        payload: dict[str, Any] = {
            "question": question,
            "chat_history": [_message(entry) for entry in chat_history],
            "context_type": normalized_type,
        }
        if initial_context:
            payload["initial_context"] = initial_context
        if language_code:
            payload["languageCode"] = language_code

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.ASK_PATH),
            method="POST",
            headers={"Accept": "text/event-stream"},
            json=payload,
        )

        def on_event(event: dict[str, Any]) -> None:
            if "chunk" in event:
                on_chunk(str(event["chunk"]), str(event.get("accumulated", "")))

        completed = replace(
            handlers,
            on_success=lambda events: handlers.on_success(_answer(events)),
        )
        return await self._executor.execute_stream(descriptor, on_event, completed, cancellation)


def _message(entry: Mapping[str, str]) -> dict[str, str]:
    role = str(entry.get("role", "")).strip().lower()
    if role not in CHAT_ROLES:
        raise ValueError("Chat history roles must be one of: " + ", ".join(CHAT_ROLES))
    return {"role": role, "content": str(entry.get("content", ""))}


def _answer(events: list[dict[str, Any]]) -> dict[str, Any]:
    complete = completion_event(events)
    history = complete.get("chat_history") or []
    return {
        "chat_history": [
            {"role": str(entry.get("role", "")), "content": str(entry.get("content", ""))}
            for entry in history
            if isinstance(entry, dict)
        ],
        "possibleQuestions": list(complete.get("possibleQuestions") or []),
    }
