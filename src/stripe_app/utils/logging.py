"""Structured logging utilities with correlation ID support and secret redaction.

Provides:
- Correlation ID context management for request tracing
- Structured logging formatter for consistent log output
- Redaction helpers so Stripe credentials never reach a log record
- Helper functions for configuration and webhook logging

Usage:
    from stripe_app.utils.logging import get_logger, redact_log_object

    logger = get_logger(__name__)
    logger.debug("Adding entry %s", redact_log_object(entry.model_dump()))
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset(
    {
        "secretKey",
        "publishableKey",
        "webhookSecret",
        "secret_key",
        "publishable_key",
        "webhook_secret",
        "client_secret",
    }
)


def generate_correlation_id() -> str:
    """Generate a new correlation ID.

    Returns:
        UUID-based correlation ID string
    """
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Optional existing correlation ID. If None, generates new one.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output with correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or "no-correlation-id"

        base = super().format(record)

        # Prefix for easy grep/filtering
        return f"[{record.correlation_id}] {base}"


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())

    return logger


def redact_log_object(value: Any) -> Any:
    """Return a copy of ``value`` with every sensitive field replaced.

    Walks nested dicts and lists; pydantic models are dumped first.

    Args:
        value: Dict, list, pydantic model or scalar

    Returns:
        Structure of the same shape, safe to log
    """
    if hasattr(value, "model_dump"):
        value = value.model_dump(by_alias=True)
    if isinstance(value, dict):
        return {
            key: REDACTED if key in SENSITIVE_FIELDS else redact_log_object(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_log_object(item) for item in value]
    return value


def redact_error(error: BaseException) -> dict[str, str]:
    """Summarize an exception without request payloads or headers."""
    return {"name": type(error).__name__, "message": str(error)}


def log_config_operation(
    logger: logging.Logger,
    operation: str,
    *,
    saleor_api_url: str,
    configuration_id: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a configuration lifecycle operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "add_config_entry", "delete_config_entry")
        saleor_api_url: Tenant the operation ran for
        configuration_id: Configuration entry ID if relevant
        error: Error message if operation failed
        **extra: Additional context fields (redacted before logging)
    """
    context: dict[str, Any] = {
        "operation": operation,
        "saleor_api_url": saleor_api_url,
    }
    if configuration_id:
        context["configuration_id"] = configuration_id
    if error:
        context["error"] = error

    context.update(redact_log_object(extra))

    msg_parts = [f"Config operation: {operation}"]
    for key, value in context.items():
        if key != "operation":
            msg_parts.append(f"{key}={value}")

    message = " | ".join(msg_parts)

    if error:
        logger.error(message, extra=context)
    else:
        logger.info(message, extra=context)


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    payment_intent_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log an inbound Stripe webhook event with structured context.

    Args:
        logger: Logger instance
        event_type: Stripe event type (e.g., "payment_intent.succeeded")
        event_id: Stripe event ID
        payment_intent_id: Associated PaymentIntent ID if available
        result: Processing result (received, success, skipped, error)
        error: Error message if processing failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {
        "event_type": event_type,
        "event_id": event_id,
    }
    if payment_intent_id:
        context["payment_intent_id"] = payment_intent_id
    if result:
        context["result"] = result
    if error:
        context["error"] = error

    context.update(extra)

    msg_parts = [f"Webhook event: {event_type} ({event_id})"]
    if result:
        msg_parts.append(f"result={result}")
    if payment_intent_id:
        msg_parts.append(f"payment_intent={payment_intent_id}")
    if error:
        msg_parts.append(f"error={error}")

    message = " | ".join(msg_parts)

    if result == "error":
        logger.error(message, extra=context)
    elif result == "skipped":
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)
