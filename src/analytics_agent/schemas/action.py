"""Action (notification) schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from src.analytics_agent.models.base import CamelModel, utc_now


class ActionConfig(CamelModel):
    """Where and how to deliver a notification.

    ``type`` stays a plain string so that unsupported kinds reach the sink and
    are reported as a failed result instead of a validation error.
    """

    type: str = Field(min_length=1)
    slack_webhook: str | None = None
    email_recipients: str | None = None  # comma separated
    message: str | None = None
    webhook_url: str | None = None
    webhook_method: Literal["GET", "POST"] = "POST"
    webhook_headers: dict[str, str] | None = None
    webhook_body: Any = None


class ActionResult(CamelModel):
    success: bool
    message: str
    timestamp: datetime = Field(default_factory=utc_now)
    error: str | None = None
