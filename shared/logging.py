"""
Structured logging for the GitGate release gateway.

Every line is a JSON object on stdout. Records emitted while a request is in
flight carry its ``request_id`` and, once trust is established, the
``device_id`` of the caller.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
device_id_var: ContextVar[Optional[str]] = ContextVar("device_id", default=None)

# Field names whose values never reach the log stream
SECRET_FIELDS = frozenset({
    "token",
    "api_key",
    "api_secret",
    "authorization",
    "x-jamf-token",
    "private_key",
    "password",
})
REDACTED = "***"


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog JSON output through the stdlib logging bridge."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            # Audit events carry their own "timestamp" field
            structlog.processors.TimeStamper(fmt="iso", key="logged_at"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_correlation_context,
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Derive the service name from the "<service>.<component>" logger name."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".", 1)[0]
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    device_id = device_id_var.get()
    if device_id:
        event_dict.setdefault("device_id", device_id)

    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credential values, including inside nested mappings."""
    return _redact(event_dict)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: (REDACTED if isinstance(k, str) and k.lower() in SECRET_FIELDS and v else _redact(v))
            for k, v in value.items()
        }
    return value


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id for this request, generating one if absent."""
    if not request_id:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_device_context(device_id: Optional[str] = None):
    if device_id:
        device_id_var.set(device_id)


def clear_context():
    request_id_var.set(None)
    device_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
