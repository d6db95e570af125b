"""Notification utilities - email.

Re-exports all notification-related functions.
"""

from src.analytics_agent.core.notifications.email import parse_recipients, send_alert_email

__all__ = [
    "parse_recipients",
    "send_alert_email",
]
