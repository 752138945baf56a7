"""Client-side performance metrics, batched to /analytics/performance."""

import time

from services.analytics.BatchQueue import BatchQueue
from shared.clients.analytics.AnalyticsClient import AnalyticsClient
from shared.helper.HelperConfig import HelperConfig
from shared.models.analytics import PerformanceMetric


class PerformanceService(BatchQueue[PerformanceMetric]):
    def __init__(self, helper_config: HelperConfig, analytics_client: AnalyticsClient) -> None:
        super().__init__(
            name="performance",
            logger=helper_config.get_logger(),
            batch_size=int(helper_config.get_number_val("PERFORMANCE_BATCH_SIZE", default=10)),
            flush_interval=float(helper_config.get_number_val("PERFORMANCE_FLUSH_INTERVAL", default=30)),
        )
        self._client = analytics_client
        self.current_page = ""

    async def _do_send(self, batch: list[PerformanceMetric]) -> None:
        await self._client.do_send_metrics(batch)

    def set_current_page(self, page: str) -> None:
        """Tags subsequent metrics with ``page``."""
        self.current_page = page

    def track_custom_metric(self, name: str, value: float, user_id: str | None = None) -> None:
        self.enqueue(PerformanceMetric(
            name=name,
            value=value,
            timestamp=int(time.time() * 1000),
            page=self.current_page or None,
            user_id=user_id,
        ))

    def track_component_load_time(self, component_name: str, start_time: float, user_id: str | None = None) -> None:
        """
        Args:
            start_time (float): ``time.perf_counter()`` value taken when loading started.
        """
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self.track_custom_metric(f"component_load_{component_name}", elapsed_ms, user_id)

    def track_api_response_time(self, endpoint: str, response_time: float, user_id: str | None = None) -> None:
        """
        Args:
            response_time (float): Milliseconds.
        """
        self.track_custom_metric(f"api_response_{endpoint}", response_time, user_id)
