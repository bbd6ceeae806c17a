"""Transaction session handlers.

Glue between the platform's session webhooks, the channel routing table and
Stripe PaymentIntents:

    session event -> channel -> configuration -> PaymentIntent -> result
"""

import json
from typing import Any

from stripe_app.models.app_config import ConfigurationEntry
from stripe_app.models.errors import (
    invalid_webhook_signature_error,
    missing_configuration_error,
    stripe_api_error,
)
from stripe_app.models.transaction import (
    StripeEventResult,
    TransactionSessionEvent,
    TransactionSessionResponse,
)
from stripe_app.services.app_configurator import (
    AppConfigurator,
    get_configuration_for_channel,
)
from stripe_app.services.currencies import get_decimal_from_stripe_amount
from stripe_app.services.stripe_service import StripeService
from stripe_app.services.transaction_mapper import (
    flow_strategy_from_capture_method,
    payment_intent_to_transaction_result,
    session_event_to_stripe_update,
    session_initialize_event_to_stripe_create,
)
from stripe_app.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

PAYMENT_INTENT_EVENT_PREFIX = "payment_intent."


class TransactionSessionHandler:
    """Runs transaction sessions for one tenant."""

    def __init__(self, configurator: AppConfigurator, stripe_service: StripeService) -> None:
        self.configurator = configurator
        self.stripe = stripe_service

    def _resolve_configuration(self, channel_id: str | None) -> ConfigurationEntry:
        entry = get_configuration_for_channel(self.configurator.get_config(), channel_id)
        if entry is None:
            raise missing_configuration_error(channel_id)
        return entry

    def _to_response(
        self,
        intent: Any,
        event: TransactionSessionEvent,
        data: dict[str, Any] | None = None,
    ) -> TransactionSessionResponse:
        result = payment_intent_to_transaction_result(event.action.action_type, intent.status)
        return TransactionSessionResponse(
            result=result,
            amount=get_decimal_from_stripe_amount(intent.amount, intent.currency),
            psp_reference=intent.id,
            external_url=self.stripe.get_external_url_for_intent_id(intent.id),
            data=data,
        )

    def initialize_session(self, event: TransactionSessionEvent) -> TransactionSessionResponse:
        """Create a PaymentIntent for a TRANSACTION_INITIALIZE_SESSION event.

        Returns:
            Session response whose data carries the intent's client secret and
            the publishable key the storefront needs to confirm payment.

        Raises:
            PaymentAppError: MISSING_CONFIGURATION if the channel has no
                configuration; STRIPE_API_ERROR if Stripe refuses.
        """
        entry = self._resolve_configuration(event.source_object.channel.id)
        params = session_initialize_event_to_stripe_create(event)
        intent = self.stripe.create_payment_intent(params, entry.secret_key)

        logger.info(
            "Initialized session for transaction %s with intent %s",
            event.transaction.id,
            intent.id,
        )
        return self._to_response(
            intent,
            event,
            data={
                "paymentIntent": {"client_secret": intent.client_secret},
                "publishableKey": entry.publishable_key,
            },
        )

    def process_session(self, event: TransactionSessionEvent) -> TransactionSessionResponse:
        """Update the PaymentIntent of a TRANSACTION_PROCESS_SESSION event.

        Raises:
            PaymentAppError: MISSING_CONFIGURATION if the channel has no
                configuration; STRIPE_API_ERROR if the transaction carries no
                PaymentIntent or Stripe refuses the update.
        """
        entry = self._resolve_configuration(event.source_object.channel.id)
        intent_id = event.transaction.psp_reference
        if not intent_id:
            raise stripe_api_error(
                f"Transaction {event.transaction.id} has no payment intent to update"
            )

        params = session_event_to_stripe_update(event)
        intent = self.stripe.update_payment_intent(intent_id, params, entry.secret_key)

        logger.info(
            "Processed session for transaction %s with intent %s",
            event.transaction.id,
            intent.id,
        )
        return self._to_response(intent, event)

    def handle_stripe_event(self, payload: bytes, signature: str) -> StripeEventResult:
        """Verify and translate an inbound Stripe webhook event.

        The signing secret belongs to the configuration of the channel the
        PaymentIntent was created for, so the channel is read from the
        unverified payload first and nothing else is trusted until the
        signature checks out.

        Raises:
            PaymentAppError: INVALID_WEBHOOK_SIGNATURE for unparseable payloads
                or bad signatures; MISSING_CONFIGURATION if the channel is
                not configured.
        """
        channel_id = _peek_channel_id(payload)
        entry = self._resolve_configuration(channel_id)
        event = self.stripe.verify_webhook_signature(payload, signature, entry.webhook_secret)

        event_id = event.get("id")
        event_type = event.get("type") or ""
        intent = event.get("data", {}).get("object", {})

        if not event_type.startswith(PAYMENT_INTENT_EVENT_PREFIX):
            log_webhook_event(logger, event_type, event_id, result="skipped")
            return StripeEventResult(
                event_id=event_id,
                event_type=event_type,
                processing_result="skipped",
                message=f"Event type '{event_type}' not handled",
            )

        strategy = flow_strategy_from_capture_method(intent.get("capture_method"))
        result = payment_intent_to_transaction_result(strategy, intent.get("status"))

        log_webhook_event(
            logger,
            event_type,
            event_id,
            payment_intent_id=intent.get("id"),
            result="success",
            transaction_result=result.value,
        )
        return StripeEventResult(
            event_id=event_id,
            event_type=event_type,
            processing_result="success",
            result=result,
            psp_reference=intent.get("id"),
        )


def _peek_channel_id(payload: bytes) -> str | None:
    try:
        event = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as e:
        raise invalid_webhook_signature_error("Invalid payload") from e
    if not isinstance(event, dict):
        raise invalid_webhook_signature_error("Invalid payload")

    intent = (event.get("data") or {}).get("object") or {}
    return (intent.get("metadata") or {}).get("channelId")
