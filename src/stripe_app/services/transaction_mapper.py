"""Pure translation between platform transaction sessions and Stripe PaymentIntents.

No I/O and no state: every function here maps its arguments to a value.
"""

from typing import Any, assert_never

from stripe_app.models.errors import (
    unhandled_payment_intent_status_error,
    unsupported_flow_strategy_error,
)
from stripe_app.models.transaction import (
    CheckoutSource,
    OrderSource,
    PaymentIntentStatus,
    TransactionFlowStrategy,
    TransactionResult,
    TransactionSessionEvent,
)
from stripe_app.services.currencies import get_stripe_amount_from_decimal

_RESULT_PREFIXES: dict[TransactionFlowStrategy, str] = {
    TransactionFlowStrategy.AUTHORIZATION: "AUTHORIZATION",
    TransactionFlowStrategy.CHARGE: "CHARGE",
}

_STATUS_SUFFIXES: dict[PaymentIntentStatus, str] = {
    PaymentIntentStatus.REQUIRES_PAYMENT_METHOD: "REQUESTED",
    PaymentIntentStatus.PROCESSING: "REQUESTED",
    PaymentIntentStatus.REQUIRES_ACTION: "ACTION_REQUIRED",
    PaymentIntentStatus.REQUIRES_CAPTURE: "ACTION_REQUIRED",
    PaymentIntentStatus.REQUIRES_CONFIRMATION: "ACTION_REQUIRED",
    PaymentIntentStatus.CANCELED: "FAILURE",
    PaymentIntentStatus.SUCCEEDED: "SUCCESS",
}


def get_capture_method(strategy: TransactionFlowStrategy) -> str:
    """Stripe capture_method for a flow strategy: charges capture immediately."""
    return "automatic" if strategy == TransactionFlowStrategy.CHARGE else "manual"


def flow_strategy_from_capture_method(capture_method: str | None) -> TransactionFlowStrategy:
    """Recover the flow strategy from an existing PaymentIntent."""
    if capture_method in ("manual", "manual_preferred"):
        return TransactionFlowStrategy.AUTHORIZATION
    return TransactionFlowStrategy.CHARGE


def _source_object_metadata(source_object: CheckoutSource | OrderSource) -> dict[str, str]:
    if isinstance(source_object, CheckoutSource):
        return {"checkoutId": source_object.id}
    if isinstance(source_object, OrderSource):
        return {"orderId": source_object.id}
    assert_never(source_object)


def _build_intent_params(event: TransactionSessionEvent) -> dict[str, Any]:
    data = dict(event.data or {})
    gross = event.source_object.total.gross
    caller_metadata = data.get("metadata")
    # Caller metadata that is not a mapping is dropped; the reserved keys are always set
    if not isinstance(caller_metadata, dict):
        caller_metadata = {}
    metadata = {
        **caller_metadata,
        "transactionId": event.transaction.id,
        "channelId": event.source_object.channel.id,
    }
    # Exactly one of checkoutId / orderId may be present
    metadata.pop("checkoutId", None)
    metadata.pop("orderId", None)
    metadata.update(_source_object_metadata(event.source_object))

    return {
        **data,
        "amount": get_stripe_amount_from_decimal(gross.amount, gross.currency),
        "currency": gross.currency,
        "capture_method": get_capture_method(event.action.action_type),
        "metadata": metadata,
    }


def session_initialize_event_to_stripe_create(
    event: TransactionSessionEvent,
) -> dict[str, Any]:
    """Build PaymentIntent create params for a TRANSACTION_INITIALIZE_SESSION event.

    Caller-supplied ``data`` is kept; amount, currency, capture method,
    automatic payment methods and the reserved metadata keys are overwritten.
    """
    params = _build_intent_params(event)
    params["automatic_payment_methods"] = {"enabled": True}
    return params


def session_event_to_stripe_update(event: TransactionSessionEvent) -> dict[str, Any]:
    """Build PaymentIntent update params for a session event.

    Stripe does not accept automatic_payment_methods on update, so it is
    dropped even if the caller sent it.
    """
    params = _build_intent_params(event)
    params.pop("automatic_payment_methods", None)
    return params


def payment_intent_to_transaction_result(
    strategy: TransactionFlowStrategy | str,
    status: PaymentIntentStatus | str,
) -> TransactionResult:
    """Translate a PaymentIntent status into the platform's transaction result.

    Raises:
        PaymentAppError: UNSUPPORTED_FLOW_STRATEGY or
            UNHANDLED_PAYMENT_INTENT_STATUS. Both are internal invariant
            violations and are never mapped to a default.
    """
    try:
        prefix = _RESULT_PREFIXES[TransactionFlowStrategy(strategy)]
    except (ValueError, KeyError):
        raise unsupported_flow_strategy_error(strategy) from None

    try:
        suffix = _STATUS_SUFFIXES[PaymentIntentStatus(status)]
    except (ValueError, KeyError):
        raise unhandled_payment_intent_status_error(status) from None

    return TransactionResult(f"{prefix}_{suffix}")
