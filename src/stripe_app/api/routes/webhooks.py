"""Webhook endpoints for the platform and for Stripe.

Provides endpoints for:
- TRANSACTION_INITIALIZE_SESSION and TRANSACTION_PROCESS_SESSION from the platform
- payment_intent.* events from Stripe

Stripe events are authenticated by their signature, verified with the
signing secret of the configuration the PaymentIntent belongs to.
"""

from fastapi import APIRouter, Depends, Request

from stripe_app.api.dependencies import (
    get_stripe_webhook_handler,
    get_transaction_session_handler,
)
from stripe_app.models.errors import ErrorPayload, invalid_webhook_signature_error
from stripe_app.models.transaction import (
    StripeEventResult,
    TransactionSessionEvent,
    TransactionSessionResponse,
)
from stripe_app.services.transaction_session import TransactionSessionHandler
from stripe_app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

STRIPE_SIGNATURE_HEADER = "Stripe-Signature"

_SESSION_RESPONSES = {
    404: {"description": "Channel has no configuration", "model": ErrorPayload},
    502: {"description": "Stripe refused the PaymentIntent call", "model": ErrorPayload},
}


@router.post(
    "/webhooks/transaction-initialize-session",
    summary="Start a transaction session",
    description="Creates a PaymentIntent for the checkout or order and returns its client secret.",
    response_model=TransactionSessionResponse,
    responses=_SESSION_RESPONSES,
)
def transaction_initialize_session(
    event: TransactionSessionEvent,
    handler: TransactionSessionHandler = Depends(get_transaction_session_handler),
) -> TransactionSessionResponse:
    return handler.initialize_session(event)


@router.post(
    "/webhooks/transaction-process-session",
    summary="Continue a transaction session",
    description="Updates the PaymentIntent referenced by the transaction's PSP reference.",
    response_model=TransactionSessionResponse,
    responses=_SESSION_RESPONSES,
)
def transaction_process_session(
    event: TransactionSessionEvent,
    handler: TransactionSessionHandler = Depends(get_transaction_session_handler),
) -> TransactionSessionResponse:
    return handler.process_session(event)


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint registered with Stripe for every configuration entry.

**No authentication required** - signature is verified using the webhook
secret of the configuration mapped to the PaymentIntent's channel.

Events other than payment_intent.* are acknowledged and skipped.
""",
    response_model=StripeEventResult,
    responses={
        400: {"description": "Invalid signature or missing header", "model": ErrorPayload},
    },
)
async def handle_stripe_webhook(
    request: Request,
    handler: TransactionSessionHandler = Depends(get_stripe_webhook_handler),
) -> StripeEventResult:
    signature = request.headers.get(STRIPE_SIGNATURE_HEADER)
    if not signature:
        logger.warning("Webhook request missing Stripe-Signature header")
        raise invalid_webhook_signature_error("Missing Stripe-Signature header")

    # Raw body is required for signature verification
    payload = await request.body()
    return handler.handle_stripe_event(payload, signature)
