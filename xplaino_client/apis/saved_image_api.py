from __future__ import annotations

from urllib.parse import quote

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.transport import CancellationToken


class SavedImageApi:
    SAVED_IMAGE_PATH = "/api/saved-image"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def save_image(
        self,
        source_url: str,
        image_url: str,
        handlers: OutcomeHandlers,
        name: str | None = None,
        folder_id: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        if not source_url.strip() or not image_url.strip():
            raise ValueError("Both source URL and image URL are required")

        # This endpoint takes camelCase fields, unlike saved paragraphs.
        payload = {"sourceUrl": source_url.strip(), "imageUrl": image_url.strip()}
        if name and name.strip():
            payload["name"] = name.strip()
        if folder_id:
            payload["folderId"] = folder_id

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.SAVED_IMAGE_PATH),
            method="POST",
            json=payload,
        )
        return await self._executor.execute(descriptor, handlers, cancellation)

    async def delete_saved_image(
        self,
        saved_image_id: str,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        if not saved_image_id.strip():
            raise ValueError("Saved image id is required")

        descriptor = RequestDescriptor(
            url=self._settings.url_for(f"{self.SAVED_IMAGE_PATH}/{quote(saved_image_id.strip(), safe='')}"),
            method="DELETE",
        )
        return await self._executor.execute(descriptor, handlers, cancellation)
