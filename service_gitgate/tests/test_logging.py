"""
Unit tests for structured logging processors.
"""

from shared.logging import (
    add_correlation_context,
    add_service_context,
    clear_context,
    redact_secrets,
    set_device_context,
    set_request_id,
)


class TestLoggingProcessors:
    """Test cases for the gateway's structlog processors."""

    def teardown_method(self):
        clear_context()

    def test_service_from_logger_name(self):
        event = add_service_context(None, "info", {"logger": "gitgate.auth.mdm-token"})
        assert event["service"] == "gitgate"

    def test_correlation_fields(self):
        set_request_id("req-1")
        set_device_context("node-1")

        event = add_correlation_context(None, "info", {"event": "x"})

        assert event["request_id"] == "req-1"
        assert event["device_id"] == "node-1"

    def test_explicit_device_id_wins(self):
        set_device_context("node-1")
        event = add_correlation_context(None, "info", {"device_id": "unknown"})
        assert event["device_id"] == "unknown"

    def test_generated_request_id(self):
        assert len(set_request_id()) == 36

    def test_secrets_are_redacted(self):
        event = redact_secrets(None, "info", {
            "event": "config",
            "token": "ghp_secret",
            "auth": {"mdm_token": {"api_key": "k", "api_url": "https://mdm"}},
        })

        assert event["token"] == "***"
        assert event["auth"]["mdm_token"]["api_key"] == "***"
        assert event["auth"]["mdm_token"]["api_url"] == "https://mdm"
