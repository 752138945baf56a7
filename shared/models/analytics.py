"""Pydantic models for telemetry batches."""

from typing import Any

from pydantic import BaseModel


class AnalyticsEvent(BaseModel):
    event: str
    category: str
    action: str
    label: str | None = None
    value: float | None = None
    user_id: str | None = None
    metadata: dict[str, Any] | None = None
    timestamp: int  # epoch milliseconds


class PerformanceMetric(BaseModel):
    name: str
    value: float
    timestamp: int  # epoch milliseconds
    page: str | None = None
    user_id: str | None = None
