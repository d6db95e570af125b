"""Action sink: Slack, email and webhook notifications."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx

from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.core.notifications import parse_recipients, send_alert_email
from src.analytics_agent.engine.errors import ActionSinkError
from src.analytics_agent.models.base import utc_now
from src.analytics_agent.models.enums import ActionType
from src.analytics_agent.schemas.action import ActionConfig, ActionResult

logger = get_logger(__name__)

EmailSender = Callable[[list[str], str, str, str], bool]

DEFAULT_ALERT_SUBJECT = "Monitoring alert"


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def render_template(template: str, data: dict[str, Any]) -> str:
    """Replace ``{{key}}`` placeholders with values from ``data``.

    ``{{timestamp}}`` falls back to the current time when ``data`` has none.
    Unknown placeholders are left untouched.
    """
    result = template
    for key, value in data.items():
        result = result.replace(f"{{{{{key}}}}}", _format_value(value))
    if not data.get("timestamp"):
        result = result.replace("{{timestamp}}", utc_now().isoformat())
    return result


class ActionExecutorService:
    """Delivers notifications for monitor results.

    ``execute`` never raises: delivery problems come back as
    ``ActionResult(success=False, error=...)``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        email_sender: EmailSender = send_alert_email,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._email_sender = email_sender

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(self, config: ActionConfig, payload: dict[str, Any]) -> ActionResult:
        timestamp = utc_now()
        try:
            if config.type == ActionType.SLACK:
                message = await self._send_slack(config, payload, timestamp.isoformat())
            elif config.type == ActionType.EMAIL:
                message = await self._send_email(config, payload, timestamp.isoformat())
            elif config.type == ActionType.WEBHOOK:
                message = await self._trigger_webhook(config, payload)
            else:
                return ActionResult(
                    success=False,
                    message=f"Unsupported action type: {config.type}",
                    timestamp=timestamp,
                    error=f"Unsupported action type: {config.type}",
                )
        except ActionSinkError as e:
            logger.warning("Action delivery failed", action_type=config.type, error=str(e))
            return ActionResult(
                success=False,
                message=f"Action execution failed: {e}",
                timestamp=timestamp,
                error=str(e),
            )

        logger.info("Action delivered", action_type=config.type)
        return ActionResult(success=True, message=message, timestamp=timestamp)

    async def test_action(self, config: ActionConfig) -> ActionResult:
        """Execute ``config`` with a sample payload."""
        sample = {
            "condition": "Test condition",
            "value": 100,
            "threshold": 50,
            "timestamp": utc_now().isoformat(),
        }
        return await self.execute(config, sample)

    async def _send_slack(
        self, config: ActionConfig, payload: dict[str, Any], triggered_at: str
    ) -> str:
        if not config.slack_webhook:
            raise ActionSinkError("Slack webhook URL is required")

        message = render_template(config.message or "", payload)
        body = {
            "text": message,
            "blocks": [
                {"type": "section", "text": {"type": "mrkdwn", "text": message}},
                {
                    "type": "context",
                    "elements": [{"type": "mrkdwn", "text": f"_Triggered at {triggered_at}_"}],
                },
            ],
        }

        try:
            response = await self._client.post(config.slack_webhook, json=body)
        except httpx.HTTPError as e:
            raise ActionSinkError(f"Failed to send Slack notification: {e}") from e
        if response.is_error:
            raise ActionSinkError(
                f"Failed to send Slack notification: Slack API error: {response.text}"
            )
        return "Slack notification sent successfully"

    async def _send_email(
        self, config: ActionConfig, payload: dict[str, Any], triggered_at: str
    ) -> str:
        recipients = parse_recipients(config.email_recipients or "")
        if not recipients:
            raise ActionSinkError("Email recipients are required")

        message = render_template(config.message or "", payload)
        sent = await asyncio.to_thread(
            self._email_sender, recipients, DEFAULT_ALERT_SUBJECT, message, triggered_at
        )
        if not sent:
            raise ActionSinkError("Failed to send email alert")
        return f"Email alert queued for {len(recipients)} recipient(s)"

    async def _trigger_webhook(self, config: ActionConfig, payload: dict[str, Any]) -> str:
        if not config.webhook_url:
            raise ActionSinkError("Webhook URL is required")

        method = config.webhook_method
        headers = {"Content-Type": "application/json", **(config.webhook_headers or {})}
        body = config.webhook_body if config.webhook_body is not None else payload

        try:
            response = await self._client.request(
                method,
                config.webhook_url,
                headers=headers,
                content=json.dumps(body, default=str) if method != "GET" else None,
            )
        except httpx.HTTPError as e:
            raise ActionSinkError(f"Failed to trigger webhook: {e}") from e
        if response.is_error:
            raise ActionSinkError(
                f"Failed to trigger webhook: Webhook returned "
                f"{response.status_code}: {response.reason_phrase}"
            )
        return f"Webhook triggered successfully ({response.status_code})"
