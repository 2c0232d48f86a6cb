from __future__ import annotations

import logging
from typing import Any

from xplaino_client.auth import CredentialStore
from xplaino_client.config import AppSettings
from xplaino_client.http import ApiHttpError, RequestExecutor
from xplaino_client.models import ErrorCode, RequestDescriptor
from xplaino_client.transport import CancellationToken

LOGGER = logging.getLogger(__name__)

ISSUE_TYPES = ("GLITCH", "SUBSCRIPTION", "AUTHENTICATION", "FEATURE_REQUEST", "OTHERS")
MAX_DESCRIPTION_LENGTH = 1000
MAX_HEADING_LENGTH = 100


class IssueApi:
    REPORT_ISSUE_PATH = "/api/issue/"

    def __init__(self, settings: AppSettings, executor: RequestExecutor, store: CredentialStore):
        self._settings = settings
        self._executor = executor
        self._store = store

    async def report_feature_request(
        self,
        description: str,
        webpage_url: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> dict[str, Any]:
        return await self.report_issue(
            "FEATURE_REQUEST",
            description,
            webpage_url=webpage_url,
            cancellation=cancellation,
        )

    async def report_issue(
        self,
        issue_type: str,
        description: str,
        webpage_url: str | None = None,
        heading: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """Submit an issue ticket as multipart form data.

        Requires a signed-in session: without an access token the login prompt
        is shown and ``ApiHttpError`` (``LOGIN_REQUIRED``) is raised before any
        request is made.
        """
        fields = self._build_fields(issue_type, description, webpage_url, heading)

        credentials = self._store.get_credentials()
        if credentials is None or not credentials.access_token:
            self._executor.prompt_login()
            raise ApiHttpError(ErrorCode.LOGIN_REQUIRED, "Login required")

        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.REPORT_ISSUE_PATH),
            method="POST",
            files={name: (None, value) for name, value in fields.items()},
        )
        payload = await self._executor.request_json(descriptor, cancellation)
        if not isinstance(payload, dict):
            payload = {}
        LOGGER.info("Issue reported: %s", payload.get("ticket_id"))
        return payload

    @staticmethod
    def _build_fields(
        issue_type: str,
        description: str,
        webpage_url: str | None,
        heading: str | None,
    ) -> dict[str, str]:
        normalized_type = issue_type.strip().upper()
        if normalized_type not in ISSUE_TYPES:
            raise ValueError("Issue type must be one of: " + ", ".join(ISSUE_TYPES))

        text = description.strip()
        if not text:
            raise ValueError("Issue description is required")
        if len(text) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Issue description must be at most {MAX_DESCRIPTION_LENGTH} characters")

        fields = {"type": normalized_type, "description": text}
        if webpage_url:
            fields["webpage_url"] = webpage_url.strip()
        if heading:
            title = heading.strip()
            if len(title) > MAX_HEADING_LENGTH:
                raise ValueError(f"Issue heading must be at most {MAX_HEADING_LENGTH} characters")
            fields["heading"] = title
        return fields
