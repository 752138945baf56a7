"""User-facing analytics events, batched to /analytics/events."""

import time
from typing import Any

from services.analytics.BatchQueue import BatchQueue
from shared.clients.analytics.AnalyticsClient import AnalyticsClient
from shared.helper.HelperConfig import HelperConfig
from shared.models.analytics import AnalyticsEvent


class AnalyticsService(BatchQueue[AnalyticsEvent]):
    def __init__(self, helper_config: HelperConfig, analytics_client: AnalyticsClient) -> None:
        super().__init__(
            name="analytics",
            logger=helper_config.get_logger(),
            batch_size=int(helper_config.get_number_val("ANALYTICS_BATCH_SIZE", default=10)),
            flush_interval=float(helper_config.get_number_val("ANALYTICS_FLUSH_INTERVAL", default=30)),
        )
        self._client = analytics_client
        self.enabled = helper_config.get_bool_val("ANALYTICS_ENABLED", default=True)

    async def _do_send(self, batch: list[AnalyticsEvent]) -> None:
        await self._client.do_send_events(batch)

    ##########################################
    ################ TRACKING ################
    ##########################################

    def track(
        self,
        event: str,
        category: str,
        action: str,
        label: str | None = None,
        value: float | None = None,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if not self.enabled:
            return
        self.enqueue(AnalyticsEvent(
            event=event,
            category=category,
            action=action,
            label=label,
            value=value,
            user_id=user_id,
            metadata=metadata,
            timestamp=int(time.time() * 1000),
        ))

    def track_page_view(self, page: str, user_id: str | None = None) -> None:
        self.track(event="page_view", category="navigation", action="view", label=page, user_id=user_id)

    def track_user_action(self, action: str, category: str, label: str | None = None, user_id: str | None = None) -> None:
        self.track(event="user_action", category=category, action=action, label=label, user_id=user_id)

    def track_file_upload(self, file_name: str, file_size: int, user_id: str | None = None) -> None:
        self.track(event="file_upload", category="documents", action="upload", label=file_name, value=file_size, user_id=user_id)

    def track_search_query(self, query: str, results_count: int, user_id: str | None = None) -> None:
        self.track(event="search", category="qa", action="query", label=query, value=results_count, user_id=user_id)
