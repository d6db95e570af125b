"""Email alert delivery using the Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import resend

from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"


def parse_recipients(recipients: str) -> list[str]:
    """Split a comma separated recipient list, dropping blanks."""
    return [address.strip() for address in recipients.split(",") if address.strip()]


def send_alert_email(to: list[str], subject: str, message: str, triggered_at: str) -> bool:
    """Send a monitoring alert to a list of recipients.

    Args:
        to: Recipient email addresses
        subject: Email subject line
        message: Alert body (plain text, escaped into the HTML template)
        triggered_at: Human readable trigger time shown in the footer

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()

    if not settings.resend_api_key:
        # Dev mode: log instead of sending
        logger.warning(
            "RESEND_API_KEY not set - alert email not sent",
            recipient_count=len(to),
            email_type="alert",
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": to,
                "subject": subject,
                "html": _get_alert_email_html(message, triggered_at),
            }
        )

    try:
        # Use thread pool with timeout to prevent hanging on slow API responses
        future = _email_executor.submit(_send)
        future.result(timeout=settings.action_timeout_seconds)
        logger.info("Alert email sent", recipient_count=len(to))
        return True
    except FuturesTimeoutError:
        logger.error("Email send timed out", timeout=settings.action_timeout_seconds)
        return False
    except Exception as e:
        logger.error("Failed to send alert email", error=str(e))
        return False


def _get_alert_email_html(message: str, triggered_at: str) -> str:
    """Generate HTML content for an alert email."""
    safe_message = html.escape(message).replace("\n", "<br>")
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">Monitoring alert</h1>
    <p>{safe_message}</p>
    <p style="{_MUTED_STYLE} margin-top: 32px;">Triggered at {html.escape(triggered_at)}</p>
</body>
</html>"""
