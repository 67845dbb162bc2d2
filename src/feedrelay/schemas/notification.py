from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    FEED_PROCESSING = "Feed Processing"
    NOTIFICATION_DELIVERY = "Notification Delivery"
    STATE_MANAGEMENT = "State Management"


class ErrorEvent(BaseModel):
    category: ErrorCategory
    message: str
    severity: Severity
    feed_id: str | None = None
    details: dict[str, Any] | None = None
