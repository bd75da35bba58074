"""Tests for notification rendering, adapters and best-effort delivery."""

import json
import time
from unittest.mock import MagicMock, patch

import httpx
import pytest

from clearance.core.config import Settings
from clearance.services.dispatch import CollaboratorPool
from clearance.services.notifications import (
    ClearanceEvent,
    ClearanceNotifications,
    LoggingNotifier,
    SmtpNotifier,
    WebhookNotifier,
    build_notifier,
    render_message,
)

from conftest import FailingNotifier, RecordingNotifier


class TestRenderMessage:
    """Test message templates."""

    def test_request_submitted(self):
        subject_line, body = render_message(
            ClearanceEvent.REQUEST_SUBMITTED,
            {"name": "Ada Obi", "department": "finance", "request_id": "abc"},
        )
        assert subject_line == "Finance Clearance Requested"
        assert "Dear Ada Obi" in body
        assert "Request ID: abc" in body

    def test_rejection_defaults_comment(self):
        _, body = render_message(
            ClearanceEvent.DECISION_REJECTED,
            {"name": "Ada Obi", "department": "hostel"},
        )
        assert "Reason: No reason provided" in body

    def test_certificate_issued(self):
        subject_line, body = render_message(
            ClearanceEvent.CERTIFICATE_ISSUED,
            {"name": "Ada Obi", "artifact": "certs/S1.html"},
        )
        assert subject_line == "Clearance Certificate"
        assert "certs/S1.html" in body

    def test_every_event_has_a_template(self):
        context = {"name": "n", "department": "library", "request_id": "r", "artifact": "a"}
        for event in ClearanceEvent:
            subject_line, body = render_message(event, context)
            assert subject_line and body


class TestWebhookNotifier:
    """Test webhook delivery."""

    def test_posts_json_payload(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        WebhookNotifier("https://relay.example/hook", client=client).notify(
            "ada@example.edu", "Subject", "Body"
        )

        assert len(received) == 1
        assert received[0]["to"] == "ada@example.edu"
        assert received[0]["subject"] == "Subject"
        assert received[0]["body"] == "Body"
        assert "timestamp" in received[0]

    def test_error_status_raises(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        notifier = WebhookNotifier("https://relay.example/hook", client=client)

        with pytest.raises(httpx.HTTPStatusError):
            notifier.notify("ada@example.edu", "Subject", "Body")


class TestSmtpNotifier:
    """Test email delivery."""

    def test_sends_message(self):
        settings = Settings(
            _env_file=None,
            smtp_host="smtp.example.edu",
            smtp_user="clearance",
            smtp_password="secret",
        )
        with patch("clearance.services.notifications.smtplib.SMTP") as smtp:
            server = MagicMock()
            smtp.return_value.__enter__.return_value = server

            SmtpNotifier(settings, timeout=3).notify("ada@example.edu", "Subject", "Body")

        smtp.assert_called_once_with("smtp.example.edu", 587, timeout=3)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("clearance", "secret")
        message = server.send_message.call_args[0][0]
        assert message["To"] == "ada@example.edu"
        assert message["Subject"] == "Subject"


class TestBuildNotifier:
    """Test channel selection from settings."""

    def test_smtp_preferred(self):
        settings = Settings(_env_file=None, smtp_host="smtp.example.edu", webhook_url="https://relay.example")
        assert isinstance(build_notifier(settings), SmtpNotifier)

    def test_webhook(self):
        settings = Settings(_env_file=None, smtp_host=None, webhook_url="https://relay.example")
        assert isinstance(build_notifier(settings), WebhookNotifier)

    def test_logging_fallback(self):
        settings = Settings(_env_file=None, smtp_host=None, webhook_url=None)
        assert isinstance(build_notifier(settings), LoggingNotifier)


class TestClearanceNotifications:
    """Test best-effort delivery."""

    def test_delivers(self, pool):
        notifier = RecordingNotifier()
        sent = ClearanceNotifications(notifier, pool).send(
            ClearanceEvent.DECISION_APPROVED,
            "ada@example.edu",
            {"name": "Ada Obi", "department": "library"},
        )

        assert sent is True
        assert notifier.subjects_for("ada@example.edu") == ["Library Clearance approved"]

    def test_failure_is_swallowed(self, pool):
        sent = ClearanceNotifications(FailingNotifier(), pool).send(
            ClearanceEvent.DECISION_APPROVED,
            "ada@example.edu",
            {"name": "Ada Obi", "department": "library"},
        )
        assert sent is False

    def test_missing_context_is_swallowed(self, pool):
        notifier = RecordingNotifier()
        sent = ClearanceNotifications(notifier, pool).send(
            ClearanceEvent.REQUEST_SUBMITTED, "ada@example.edu", {"name": "Ada Obi"}
        )
        assert sent is False
        assert notifier.messages == []

    def test_timeout_is_swallowed(self):
        pool = CollaboratorPool(timeout=0.05, max_workers=1)

        class SlowNotifier:
            def notify(self, address, subject_line, body):
                time.sleep(0.5)

        try:
            sent = ClearanceNotifications(SlowNotifier(), pool).send(
                ClearanceEvent.CERTIFICATE_ISSUED,
                "ada@example.edu",
                {"name": "Ada Obi", "artifact": "a"},
            )
        finally:
            pool.shutdown(wait=True)

        assert sent is False
