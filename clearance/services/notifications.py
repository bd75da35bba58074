"""Notification delivery for the clearance workflow.

Handles:
- Message templates for clearance events
- Email delivery over SMTP
- Webhook delivery to an external relay
- Best-effort dispatch that never fails the triggering operation
"""

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from clearance.core.config import Settings
from clearance.services.dispatch import CollaboratorPool

logger = logging.getLogger(__name__)


class ClearanceEvent(str, Enum):
    """Events that trigger a message to the subject."""
    REQUEST_SUBMITTED = "request_submitted"
    DECISION_APPROVED = "decision_approved"
    DECISION_REJECTED = "decision_rejected"
    CERTIFICATE_ISSUED = "certificate_issued"


MESSAGE_TEMPLATES = {
    ClearanceEvent.REQUEST_SUBMITTED: {
        "subject": "{department_title} Clearance Requested",
        "body": """
Dear {name},

Your {department} clearance request has been received and is pending approval.

Request ID: {request_id}
        """,
    },
    ClearanceEvent.DECISION_APPROVED: {
        "subject": "{department_title} Clearance approved",
        "body": """
Dear {name},

Your {department} clearance has been approved.
        """,
    },
    ClearanceEvent.DECISION_REJECTED: {
        "subject": "{department_title} Clearance rejected",
        "body": """
Dear {name},

Your {department} clearance has been rejected.
Reason: {comment}

You may submit a new request once the issue is resolved.
        """,
    },
    ClearanceEvent.CERTIFICATE_ISSUED: {
        "subject": "Clearance Certificate",
        "body": """
Dear {name},

All departments have approved your clearance. Your clearance certificate
has been generated.

Certificate: {artifact}
        """,
    },
}


def render_message(event: ClearanceEvent, context: Dict[str, Any]) -> Tuple[str, str]:
    """Render (subject line, body) for an event."""
    template = MESSAGE_TEMPLATES[event]
    context = dict(context)
    if "department" in context:
        context.setdefault("department_title", str(context["department"]).title())
    context.setdefault("comment", "No reason provided")
    return template["subject"].format(**context), template["body"].strip().format(**context) + "\n"


class Notifier(Protocol):
    """Outbound message channel."""

    def notify(self, address: str, subject_line: str, body: str) -> None:
        ...


class LoggingNotifier:
    """Notifier used when no delivery channel is configured."""

    def notify(self, address: str, subject_line: str, body: str) -> None:
        logger.info(f"Notification for {address} (no delivery channel configured): {subject_line}")


class SmtpNotifier:
    """Delivers notifications as plain-text email."""

    def __init__(self, settings: Settings, timeout: Optional[float] = None):
        self.settings = settings
        self.timeout = timeout or settings.collaborator_timeout

    def notify(self, address: str, subject_line: str, body: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        msg["To"] = address
        msg["Subject"] = subject_line
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=self.timeout) as server:
            if self.settings.smtp_use_tls:
                server.starttls()
            if self.settings.smtp_user:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(msg)


class WebhookNotifier:
    """Posts notifications as JSON to a relay endpoint."""

    def __init__(self, url: str, timeout: float = 10, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def notify(self, address: str, subject_line: str, body: str) -> None:
        payload = {
            "to": address,
            "subject": subject_line,
            "body": body,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self._client is not None:
            response = self._client.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, json=payload)
            response.raise_for_status()


def build_notifier(settings: Settings) -> Notifier:
    """Pick the delivery channel from settings: SMTP, then webhook, then log only."""
    if settings.smtp_host:
        return SmtpNotifier(settings)
    if settings.webhook_url:
        return WebhookNotifier(settings.webhook_url, timeout=settings.webhook_timeout)
    logger.warning("No SMTP host or webhook configured, notifications will only be logged")
    return LoggingNotifier()


class ClearanceNotifications:
    """
    Renders clearance messages and hands them to a notifier.

    Delivery is best-effort: failures and timeouts are logged and swallowed
    so they never undo or fail a committed state change.
    """

    def __init__(self, notifier: Notifier, pool: CollaboratorPool):
        self.notifier = notifier
        self.pool = pool

    def send(self, event: ClearanceEvent, address: str, context: Dict[str, Any]) -> bool:
        """Send one message. Returns whether delivery succeeded."""
        try:
            subject_line, body = render_message(event, context)
        except (KeyError, IndexError):
            logger.exception(f"Failed to render {event.value} notification")
            return False

        try:
            self.pool.call(self.notifier.notify, address, subject_line, body)
        except TimeoutError:
            logger.warning(f"Timed out sending {event.value} notification to {address}")
            return False
        except Exception:
            logger.exception(f"Failed to send {event.value} notification to {address}")
            return False

        logger.debug(f"Sent {event.value} notification to {address}")
        return True
