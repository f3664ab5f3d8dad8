"""Tests for the structlog processors added by setup_logging."""

from lifeleveling.config import Settings
from lifeleveling.middleware.logging import REDACTED, SERVICE_NAME, add_service_context, redact_sensitive_fields


class TestServiceContext:
    def test_stamps_service_fields(self):
        processor = add_service_context(Settings(environment="staging", app_version="9.9.9"))
        event = processor(None, "info", {"event": "user_logged_in"})
        assert event["service"] == SERVICE_NAME
        assert event["version"] == "9.9.9"
        assert event["environment"] == "staging"

    def test_existing_fields_win(self):
        processor = add_service_context(Settings(environment="staging"))
        event = processor(None, "info", {"event": "x", "environment": "override"})
        assert event["environment"] == "override"


class TestRedaction:
    def test_masks_credentials_and_contact_fields(self):
        event = redact_sensitive_fields(
            None,
            "info",
            {"event": "x", "password": "hunter22", "token": "abc", "child_email": "kid@example.com", "user_id": "u1"},
        )
        assert event["password"] == REDACTED
        assert event["token"] == REDACTED
        assert event["child_email"] == REDACTED
        assert event["user_id"] == "u1"

    def test_none_values_left_alone(self):
        event = redact_sensitive_fields(None, "info", {"event": "x", "email": None})
        assert event["email"] is None
