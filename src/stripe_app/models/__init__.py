"""Pydantic models for the Stripe payment app."""

from .app_config import (
    AppConfig,
    ChannelMapping,
    ConfigurationEntry,
    ConfigurationEntryInput,
    ConfigurationEntryUpdate,
    get_environment_from_key,
    obfuscate_config_entry,
    obfuscate_value,
)
from .errors import (
    ERROR_FIELDS,
    ERROR_KINDS,
    ERROR_MESSAGES,
    ErrorCode,
    ErrorKind,
    ErrorPayload,
    PaymentAppError,
)
from .transaction import (
    CheckoutSource,
    Money,
    OrderSource,
    PaymentIntentStatus,
    StripeEventResult,
    TransactionFlowStrategy,
    TransactionResult,
    TransactionSessionEvent,
    TransactionSessionResponse,
)

__all__ = [
    # Configuration
    "AppConfig",
    "ChannelMapping",
    "ConfigurationEntry",
    "ConfigurationEntryInput",
    "ConfigurationEntryUpdate",
    "get_environment_from_key",
    "obfuscate_config_entry",
    "obfuscate_value",
    # Errors
    "ERROR_FIELDS",
    "ERROR_KINDS",
    "ERROR_MESSAGES",
    "ErrorCode",
    "ErrorKind",
    "ErrorPayload",
    "PaymentAppError",
    # Transactions
    "CheckoutSource",
    "Money",
    "OrderSource",
    "PaymentIntentStatus",
    "StripeEventResult",
    "TransactionFlowStrategy",
    "TransactionResult",
    "TransactionSessionEvent",
    "TransactionSessionResponse",
]
