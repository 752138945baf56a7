from shared.clients.ClientInterface import ClientInterface
from shared.models.analytics import AnalyticsEvent, PerformanceMetric


class AnalyticsClient(ClientInterface):
    """Fire-and-forget telemetry endpoints. Callers own retry through their batch queue."""

    def _get_client_type(self) -> str:
        return "analytics"

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/analytics/events"

    def _get_endpoint_events(self) -> str:
        return "/analytics/events"

    def _get_endpoint_performance(self) -> str:
        return "/analytics/performance"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_send_events(self, events: list[AnalyticsEvent]) -> None:
        """
        Posts a batch of analytics events as {"events": [...]}.

        Raises:
            TransportError: If the batch was not accepted.
        """
        payload = {"events": [self._serialize(event) for event in events]}
        await self.do_request(method="POST", endpoint=self._get_endpoint_events(), json=payload, raise_on_error=True)

    async def do_send_metrics(self, metrics: list[PerformanceMetric]) -> None:
        """
        Posts a batch of performance metrics as {"metrics": [...]}.

        Raises:
            TransportError: If the batch was not accepted.
        """
        payload = {"metrics": [self._serialize(metric) for metric in metrics]}
        await self.do_request(method="POST", endpoint=self._get_endpoint_performance(), json=payload, raise_on_error=True)

    def _serialize(self, item: AnalyticsEvent | PerformanceMetric) -> dict:
        # wire format is camelCase
        data = item.model_dump(exclude_none=True)
        if "user_id" in data:
            data["userId"] = data.pop("user_id")
        return data
