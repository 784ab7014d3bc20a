"""structlog setup for the agent loop.

Log lines carry the context bound by the LLM execution context
(`user_id`, `agent_type`, `subscriber_id`). Subscriber contact details are
scrubbed before rendering unless `observability.redact_pii` is off.
"""

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Keys whose values never reach the output, compared lowercased
REDACTED_KEYS = frozenset(
    {
        "email",
        "subscriber_email",
        "phone",
        "card_number",
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "api_key",
        "apikey",
        "authorization",
        "credentials",
    }
)

_SCRUBBERS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}"), "[EMAIL]"),
    (re.compile(r"\+?\d[\d\s()-]{9,}\d"), "[PHONE]"),
)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        for pattern, placeholder in _SCRUBBERS:
            value = pattern.sub(placeholder, value)
        return value
    if isinstance(value, Mapping):
        return _scrub_mapping(value)
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def _scrub_mapping(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: "[REDACTED]" if key.lower() in REDACTED_KEYS else _scrub(value)
        for key, value in data.items()
    }


class PIIRedactor:
    """structlog processor hiding subscriber contact details and secrets."""

    def __call__(self, _logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
        return cast(EventDict, _scrub_mapping(event_dict))


def setup_logging(level: str = "INFO", format: str = "json", redact_pii: bool = True) -> None:
    """Configure structlog once at startup.

    Args:
        level: Minimum level name; unknown names fall back to INFO
        format: "json" or "console"
        redact_pii: Add PIIRedactor before rendering
    """
    min_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if redact_pii:
        processors.append(PIIRedactor())
    processors.append(
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
