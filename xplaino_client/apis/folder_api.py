from __future__ import annotations

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.transport import CancellationToken

FOLDER_TYPES = ("PAGE", "PARAGRAPH")


class FolderApi:
    FOLDERS_PATH = "/api/folders"
    PARAGRAPH_FOLDER_PATH = "/api/saved-paragraph/folder"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def get_all_folders(
        self,
        folder_type: str,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        normalized_type = folder_type.strip().upper()
        if normalized_type not in FOLDER_TYPES:
            raise ValueError("Folder type must be one of: " + ", ".join(FOLDER_TYPES))

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.FOLDERS_PATH),
            method="GET",
            params={"type": normalized_type},
        )
        return await self._executor.execute(descriptor, handlers, cancellation)

    async def create_paragraph_folder(
        self,
        name: str,
        handlers: OutcomeHandlers,
        parent_folder_id: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        folder_name = name.strip()
        if not folder_name:
            raise ValueError("Folder name is required")

        payload = {"name": folder_name}
        if parent_folder_id:
            payload["parent_folder_id"] = parent_folder_id

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.PARAGRAPH_FOLDER_PATH),
            method="POST",
            json=payload,
        )
        return await self._executor.execute(descriptor, handlers, cancellation)
