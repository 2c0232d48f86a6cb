from __future__ import annotations

from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import ClassifiedOutcome, OutcomeHandlers, RequestDescriptor
from xplaino_client.transport import CancellationToken


class CouponApi:
    ACTIVE_HIGHLIGHTED_PATH = "/api/coupon/active-highlighted"

    def __init__(self, settings: AppSettings, executor: RequestExecutor):
        self._settings = settings
        self._executor = executor

    async def get_active_highlighted_coupon(
        self,
        handlers: OutcomeHandlers,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedOutcome:
        # Public endpoint; auth headers still go out so the anonymous id stays in sync.
        descriptor = RequestDescriptor(
            url=self._settings.url_for(self.ACTIVE_HIGHLIGHTED_PATH),
            method="GET",
        )
        return await self._executor.execute(descriptor, handlers, cancellation)
