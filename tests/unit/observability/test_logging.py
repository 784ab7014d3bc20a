"""Tests for structured logging."""

import json
from io import StringIO

import pytest
import structlog

from retainer.observability.logging import (
    PIIRedactor,
    get_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.mark.parametrize("format", ["json", "console"])
    def test_setup_formats(self, format: str) -> None:
        """Should configure either renderer without raising."""
        setup_logging(level="DEBUG", format=format, redact_pii=True)
        get_logger("test").debug("test_message", subscriber_id="sub_1")

    def test_unknown_level_defaults_to_info(self) -> None:
        setup_logging(level="VERBOSE", format="json", redact_pii=False)
        get_logger("test").info("test_message")


class TestPIIRedactor:
    """Tests for subscriber PII redaction."""

    @pytest.fixture
    def redactor(self) -> PIIRedactor:
        return PIIRedactor()

    @pytest.mark.parametrize("key", ["email", "subscriber_email", "api_key", "Authorization"])
    def test_redacts_sensitive_keys(self, redactor: PIIRedactor, key: str) -> None:
        result = redactor(None, None, {key: "value", "other": "ok"})  # type: ignore
        assert result[key] == "[REDACTED]"
        assert result["other"] == "ok"

    def test_scrubs_email_and_phone_in_values(self, redactor: PIIRedactor) -> None:
        """Should scrub addresses and numbers embedded in free text."""
        event_dict = {"error": "Bounce from jane@example.com, call +33 6 12 34 56 78"}

        result = redactor(None, None, event_dict)  # type: ignore

        assert result["error"] == "Bounce from [EMAIL], call [PHONE]"

    def test_nested_values(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "result": {"subscriber_email": "jane@example.com", "strategy": "friendly"},
            "recipients": ["a@example.com", "ok"],
        }

        result = redactor(None, None, event_dict)  # type: ignore

        assert result["result"] == {"subscriber_email": "[REDACTED]", "strategy": "friendly"}
        assert result["recipients"] == ["[EMAIL]", "ok"]

    def test_preserves_non_pii_data(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "event": "event_handled",
            "agent_type": "recovery",
            "confidence": 0.8,
            "subscriber_id": "sub_1",
        }
        assert redactor(None, None, event_dict) == event_dict  # type: ignore


class TestJSONLogging:
    """Tests for JSON log output format."""

    def test_json_output_with_context(self) -> None:
        """Should render bound context and redact PII in JSON."""
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                PIIRedactor(),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )
        structlog.contextvars.bind_contextvars(user_id="acct_1", agent_type="recovery")
        try:
            structlog.get_logger("test").info("action_executed", email="jane@example.com")
        finally:
            structlog.contextvars.clear_contextvars()

        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "action_executed"
        assert parsed["user_id"] == "acct_1"
        assert parsed["agent_type"] == "recovery"
        assert parsed["email"] == "[REDACTED]"
        assert parsed["level"] == "info"
