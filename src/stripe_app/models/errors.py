"""Error taxonomy for the Stripe payment app.

Every failure raised by the app is a PaymentAppError tagged with an ErrorCode.
Each code belongs to exactly one ErrorKind, which decides how callers react:

- NOT_FOUND: a referenced configuration does not exist
- VALIDATION: stored data or supplied credentials are invalid
- UNSUPPORTED_INPUT: input rejected before any network call
- UPSTREAM: Stripe or the metadata store failed
- INTERNAL_INVARIANT: a mapping table has a gap (never caused by user input)

Kind-specific factory functions build the errors; callers filter on
``exc.code`` or ``exc.kind`` instead of on exception subclasses.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    """Coarse error category shared by several error codes."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNSUPPORTED_INPUT = "unsupported_input"
    UPSTREAM = "upstream"
    INTERNAL_INVARIANT = "internal_invariant"


class ErrorCode(str, Enum):
    """Error codes returned to API consumers."""

    # Configuration errors (ERR_CONFIG_001-ERR_CONFIG_003)
    ENTRY_NOT_FOUND = "ERR_CONFIG_001"
    JSON_SCHEMA = "ERR_CONFIG_002"
    MISSING_CONFIGURATION = "ERR_CONFIG_003"

    # Credential errors (ERR_KEY_001-ERR_KEY_005)
    RESTRICTED_KEY_NOT_SUPPORTED = "ERR_KEY_001"
    INVALID_SECRET_KEY = "ERR_KEY_002"
    UNEXPECTED_SECRET_KEY = "ERR_KEY_003"
    INVALID_PUBLISHABLE_KEY = "ERR_KEY_004"
    UNEXPECTED_PUBLISHABLE_KEY = "ERR_KEY_005"

    # Upstream errors (ERR_STRIPE_001-ERR_STRIPE_004, ERR_STORE_001)
    WEBHOOK_PROVISIONING_FAILED = "ERR_STRIPE_001"
    WEBHOOK_DELETION_FAILED = "ERR_STRIPE_002"
    STRIPE_API_ERROR = "ERR_STRIPE_003"
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_004"
    METADATA_STORE_ERROR = "ERR_STORE_001"

    # Internal invariant violations (ERR_INTERNAL_001-ERR_INTERNAL_002)
    UNSUPPORTED_FLOW_STRATEGY = "ERR_INTERNAL_001"
    UNHANDLED_PAYMENT_INTENT_STATUS = "ERR_INTERNAL_002"


ERROR_KINDS: dict[ErrorCode, ErrorKind] = {
    ErrorCode.ENTRY_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.MISSING_CONFIGURATION: ErrorKind.NOT_FOUND,
    ErrorCode.JSON_SCHEMA: ErrorKind.VALIDATION,
    ErrorCode.INVALID_SECRET_KEY: ErrorKind.VALIDATION,
    ErrorCode.UNEXPECTED_SECRET_KEY: ErrorKind.VALIDATION,
    ErrorCode.INVALID_PUBLISHABLE_KEY: ErrorKind.VALIDATION,
    ErrorCode.UNEXPECTED_PUBLISHABLE_KEY: ErrorKind.VALIDATION,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: ErrorKind.VALIDATION,
    ErrorCode.RESTRICTED_KEY_NOT_SUPPORTED: ErrorKind.UNSUPPORTED_INPUT,
    ErrorCode.WEBHOOK_PROVISIONING_FAILED: ErrorKind.UPSTREAM,
    ErrorCode.WEBHOOK_DELETION_FAILED: ErrorKind.UPSTREAM,
    ErrorCode.STRIPE_API_ERROR: ErrorKind.UPSTREAM,
    ErrorCode.METADATA_STORE_ERROR: ErrorKind.UPSTREAM,
    ErrorCode.UNSUPPORTED_FLOW_STRATEGY: ErrorKind.INTERNAL_INVARIANT,
    ErrorCode.UNHANDLED_PAYMENT_INTENT_STATUS: ErrorKind.INTERNAL_INVARIANT,
}

ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.ENTRY_NOT_FOUND: "Configuration entry not found",
    ErrorCode.JSON_SCHEMA: "Stored configuration does not match the expected schema",
    ErrorCode.MISSING_CONFIGURATION: "No Stripe configuration is assigned to this channel",
    ErrorCode.RESTRICTED_KEY_NOT_SUPPORTED: "Restricted keys are not supported",
    ErrorCode.INVALID_SECRET_KEY: "Provided secret key is invalid",
    ErrorCode.UNEXPECTED_SECRET_KEY: "There was an error while checking secret key",
    ErrorCode.INVALID_PUBLISHABLE_KEY: "Provided publishable key is invalid",
    ErrorCode.UNEXPECTED_PUBLISHABLE_KEY: "There was an error while checking publishable key",
    ErrorCode.WEBHOOK_PROVISIONING_FAILED: "Stripe webhook could not be created",
    ErrorCode.WEBHOOK_DELETION_FAILED: "Stripe webhook could not be deleted",
    ErrorCode.STRIPE_API_ERROR: "Stripe API error occurred",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.METADATA_STORE_ERROR: "Configuration storage is unavailable",
    ErrorCode.UNSUPPORTED_FLOW_STRATEGY: "Unsupported transaction flow strategy",
    ErrorCode.UNHANDLED_PAYMENT_INTENT_STATUS: "Unhandled payment intent status",
}

# Form field implicated by a credential error
ERROR_FIELDS: dict[ErrorCode, str] = {
    ErrorCode.RESTRICTED_KEY_NOT_SUPPORTED: "secretKey",
    ErrorCode.INVALID_SECRET_KEY: "secretKey",
    ErrorCode.UNEXPECTED_SECRET_KEY: "secretKey",
    ErrorCode.INVALID_PUBLISHABLE_KEY: "publishableKey",
    ErrorCode.UNEXPECTED_PUBLISHABLE_KEY: "publishableKey",
}

KIND_TO_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNSUPPORTED_INPUT: 400,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.INTERNAL_INVARIANT: 500,
}

KIND_TO_RPC_CODE: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "NOT_FOUND",
    ErrorKind.VALIDATION: "BAD_REQUEST",
    ErrorKind.UNSUPPORTED_INPUT: "BAD_REQUEST",
    ErrorKind.UPSTREAM: "INTERNAL_SERVER_ERROR",
    ErrorKind.INTERNAL_INVARIANT: "INTERNAL_SERVER_ERROR",
}


class ErrorPayload(BaseModel):
    """Serializable view of a PaymentAppError, shared by all error kinds."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    kind: ErrorKind
    message: str
    http_status: int
    rpc_code: str
    field_name: Optional[str] = None
    details: Optional[dict[str, str]] = None


class PaymentAppError(Exception):
    """Exception raised by configuration, Stripe and mapping operations.

    Can be caught and converted to an ErrorPayload for API responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.kind = ERROR_KINDS[code]
        self.message = message or ERROR_MESSAGES[code]
        self.field_name = ERROR_FIELDS.get(code)
        self.details = {k: str(v) for k, v in details.items()} if details else None
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return KIND_TO_HTTP_STATUS[self.kind]

    @property
    def rpc_code(self) -> str:
        return KIND_TO_RPC_CODE[self.kind]

    @property
    def is_internal(self) -> bool:
        """True for invariant violations, which point at a code gap, not bad input."""
        return self.kind is ErrorKind.INTERNAL_INVARIANT

    def to_payload(self) -> ErrorPayload:
        """Convert this exception to an ErrorPayload for API responses."""
        return ErrorPayload(
            error_code=self.code,
            kind=self.kind,
            message=self.message,
            http_status=self.http_status,
            rpc_code=self.rpc_code,
            field_name=self.field_name,
            details=self.details,
        )


# Factories


def entry_not_found_error(configuration_id: str) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.ENTRY_NOT_FOUND,
        f"Entry with id {configuration_id} was not found",
        details={"configuration_id": configuration_id},
    )


def json_schema_error(reason: str) -> PaymentAppError:
    return PaymentAppError(ErrorCode.JSON_SCHEMA, details={"reason": reason})


def missing_configuration_error(channel_id: Optional[str]) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.MISSING_CONFIGURATION,
        details={"channel_id": channel_id or ""},
    )


def restricted_key_not_supported_error() -> PaymentAppError:
    return PaymentAppError(ErrorCode.RESTRICTED_KEY_NOT_SUPPORTED)


def invalid_secret_key_error(stripe_error_code: Optional[str] = None) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.INVALID_SECRET_KEY,
        details={"stripe_error_code": stripe_error_code} if stripe_error_code else None,
    )


def unexpected_secret_key_error(reason: str) -> PaymentAppError:
    return PaymentAppError(ErrorCode.UNEXPECTED_SECRET_KEY, details={"reason": reason})


def invalid_publishable_key_error(
    stripe_error_code: Optional[str] = None,
) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.INVALID_PUBLISHABLE_KEY,
        details={"stripe_error_code": stripe_error_code} if stripe_error_code else None,
    )


def unexpected_publishable_key_error(reason: str) -> PaymentAppError:
    return PaymentAppError(ErrorCode.UNEXPECTED_PUBLISHABLE_KEY, details={"reason": reason})


def webhook_provisioning_error(
    reason: str, stripe_error_code: Optional[str] = None
) -> PaymentAppError:
    details = {"reason": reason}
    if stripe_error_code:
        details["stripe_error_code"] = stripe_error_code
    return PaymentAppError(ErrorCode.WEBHOOK_PROVISIONING_FAILED, details=details)


def webhook_deletion_error(
    webhook_id: str, stripe_error_code: Optional[str] = None
) -> PaymentAppError:
    details = {"webhook_id": webhook_id}
    if stripe_error_code:
        details["stripe_error_code"] = stripe_error_code
    return PaymentAppError(ErrorCode.WEBHOOK_DELETION_FAILED, details=details)


def stripe_api_error(
    reason: str, stripe_error_code: Optional[str] = None
) -> PaymentAppError:
    details = {"reason": reason}
    if stripe_error_code:
        details["stripe_error_code"] = stripe_error_code
    return PaymentAppError(ErrorCode.STRIPE_API_ERROR, details=details)


def invalid_webhook_signature_error(reason: str) -> PaymentAppError:
    return PaymentAppError(ErrorCode.INVALID_WEBHOOK_SIGNATURE, details={"reason": reason})


def metadata_store_error(reason: str) -> PaymentAppError:
    return PaymentAppError(ErrorCode.METADATA_STORE_ERROR, details={"reason": reason})


def unsupported_flow_strategy_error(strategy: Any) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.UNSUPPORTED_FLOW_STRATEGY,
        f"Unsupported transactionFlowStrategy: {strategy}",
    )


def unhandled_payment_intent_status_error(status: Any) -> PaymentAppError:
    return PaymentAppError(
        ErrorCode.UNHANDLED_PAYMENT_INTENT_STATUS,
        f"Unhandled payment intent status: {status}",
    )
