from __future__ import annotations

from dataclasses import replace
from typing import Any, Sequence

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.transport import CancellationToken


class WordsApi:
    SYNONYMS_PATH = "/api/v2/synonyms"
    ANTONYMS_PATH = "/api/v2/antonyms"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def get_synonyms(
        self,
        words: Sequence[str],
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        return await self._lookup(self.SYNONYMS_PATH, "synonyms", words, handlers, cancellation)

    async def get_antonyms(
        self,
        words: Sequence[str],
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        return await self._lookup(self.ANTONYMS_PATH, "antonyms", words, handlers, cancellation)

    async def _lookup(
        self,
        path: str,
        result_key: str,
        words: Sequence[str],
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None,
    ) -> ClassifiedOutcome:
        normalized = [str(word).strip() for word in words if str(word).strip()]
        if not normalized:
            raise ValueError("At least one word is required")

        descriptor = RequestDescriptor(
            url=self._settings.url_for(path),
            method="POST",
            json={"words": normalized},
        )
        shaped = replace(
            handlers,
            on_success=lambda payload: handlers.on_success(_reshape(payload, result_key)),
        )
        return await self._executor.execute(descriptor, shaped, cancellation)


def _reshape(payload: Any, result_key: str) -> dict[str, Any]:
    # The backend answers {results: [...]}; callers expect {synonyms|antonyms: [...]}.
    results = payload.get("results") if isinstance(payload, dict) else None
    return {result_key: results if isinstance(results, list) else []}
