"""Tests for log redaction."""

from correlator.core.logging import get_logger, redact_sensitive_data, redact_string


def test_redacts_sensitive_fields():
    event = {"event": "connecting", "password": "hunter2", "api_key": "abc"}
    redacted = redact_sensitive_data(None, "info", event)

    assert redacted["password"] == "***REDACTED***"
    assert redacted["api_key"] == "***REDACTED***"
    assert redacted["event"] == "connecting"
    # original is untouched
    assert event["password"] == "hunter2"


def test_masks_url_credentials():
    url = "postgresql+asyncpg://correlator:devpassword@db:5432/correlator"
    assert redact_string(url) == "postgresql+asyncpg://correlator:***@db:5432/correlator"


def test_leaves_plain_strings_alone():
    assert redact_string("report R1 opened") == "report R1 opened"
    assert redact_string("https://workflow.example.com/start") == "https://workflow.example.com/start"


def test_services_log_under_their_module_names():
    from correlator.services import pipeline, workflow

    assert get_logger("correlator.services.pipeline") is pipeline.logger
    assert workflow.logger.name == "correlator.services.workflow"
