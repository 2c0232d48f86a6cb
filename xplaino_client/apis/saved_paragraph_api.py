from __future__ import annotations

from urllib.parse import quote

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.transport import CancellationToken


class SavedParagraphApi:
    SAVED_PARAGRAPH_PATH = "/api/saved-paragraph"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def save_paragraph(
        self,
        content: str,
        source_url: str,
        handlers: OutcomeHandlers,
        name: str | None = None,
        folder_id: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        if not content.strip():
            raise ValueError("Paragraph content is required")
        if not source_url.strip():
            raise ValueError("Source URL is required")

        payload = {"content": content, "source_url": source_url.strip()}
        if name and name.strip():
            payload["name"] = name.strip()
        if folder_id:
            payload["folder_id"] = folder_id

        descriptor = RequestDescriptor(
            url=self._settings.url_for(f"{self.SAVED_PARAGRAPH_PATH}/"),
            method="POST",
            json=payload,
        )
        return await self._executor.execute(descriptor, handlers, cancellation)

    async def remove_saved_paragraph(
        self,
        paragraph_id: str,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        """Delete a saved paragraph; the backend answers 204, so ``on_success`` gets ``{}``."""
        if not paragraph_id.strip():
            raise ValueError("Paragraph id is required")

        descriptor = RequestDescriptor(
            url=self._settings.url_for(f"{self.SAVED_PARAGRAPH_PATH}/{quote(paragraph_id.strip(), safe='')}"),
            method="DELETE",
        )
        return await self._executor.execute(descriptor, handlers, cancellation)
