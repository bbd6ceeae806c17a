"""Stripe API boundary: key validation, webhook endpoints and PaymentIntents.

Each tenant brings its own credentials, so a StripeClient is built per key
instead of reading a single platform key.
"""

import json
from functools import lru_cache
from typing import Any, NamedTuple
from urllib.parse import quote

import stripe
from stripe import StripeClient

from stripe_app.models.errors import (
    invalid_publishable_key_error,
    invalid_secret_key_error,
    invalid_webhook_signature_error,
    restricted_key_not_supported_error,
    stripe_api_error,
    unexpected_publishable_key_error,
    unexpected_secret_key_error,
    webhook_deletion_error,
    webhook_provisioning_error,
)
from stripe_app.utils.logging import get_logger, redact_error

logger = get_logger(__name__)

RESTRICTED_KEY_PREFIX = "rk_"

# Stripe rejects these when the key itself is wrong, not when the call failed
_INVALID_KEY_ERRORS = (
    stripe.AuthenticationError,
    stripe.PermissionError,
    stripe.InvalidRequestError,
)

WEBHOOK_ENABLED_EVENTS = [
    "payment_intent.amount_capturable_updated",
    "payment_intent.canceled",
    "payment_intent.payment_failed",
    "payment_intent.processing",
    "payment_intent.requires_action",
    "payment_intent.succeeded",
]


class WebhookCredentials(NamedTuple):
    webhook_id: str
    webhook_secret: str


class StripeService:
    """Service for Stripe operations on tenant-supplied credentials.

    Handles:
    - Secret/publishable key validation
    - Webhook endpoint provisioning and removal
    - PaymentIntent creation and update
    - Webhook signature validation

    Usage:
        stripe_svc = get_stripe_service()
        stripe_svc.validate_keys("sk_test_xxx", "pk_test_xxx")
        webhook = stripe_svc.create_webhook(
            secret_key="sk_test_xxx",
            callback_url="https://app.example/api/webhooks/stripe",
            saleor_api_url="https://shop.example/graphql/",
        )
    """

    def _get_client(self, api_key: str) -> StripeClient:
        return StripeClient(api_key)

    def validate_keys(self, secret_key: str, publishable_key: str) -> None:
        """Validate a secret/publishable key pair with two live Stripe calls.

        Args:
            secret_key: Stripe secret key (sk_xxx)
            publishable_key: Stripe publishable key (pk_xxx)

        Raises:
            PaymentAppError: RESTRICTED_KEY_NOT_SUPPORTED before any call for
                rk_ keys; INVALID_* when Stripe rejects a key; UNEXPECTED_*
                when the validation call itself fails.
        """
        if secret_key.startswith(RESTRICTED_KEY_PREFIX):
            raise restricted_key_not_supported_error()

        try:
            self._get_client(secret_key).payment_intents.list(params={"limit": 1})
        except _INVALID_KEY_ERRORS as e:
            logger.error("Invalid secret key: %s", redact_error(e))
            raise invalid_secret_key_error(getattr(e, "code", None)) from e
        except stripe.StripeError as e:
            logger.error("Secret key check failed: %s", redact_error(e))
            raise unexpected_secret_key_error(str(e)) from e

        # Publishable keys can only create tokens; a PII token is the cheapest probe
        try:
            self._get_client(publishable_key).tokens.create(
                params={"pii": {"id_number": "test"}}
            )
        except _INVALID_KEY_ERRORS as e:
            logger.error("Invalid publishable key: %s", redact_error(e))
            raise invalid_publishable_key_error(getattr(e, "code", None)) from e
        except stripe.StripeError as e:
            logger.error("Publishable key check failed: %s", redact_error(e))
            raise unexpected_publishable_key_error(str(e)) from e

        logger.info("Stripe keys validated")

    def create_webhook(
        self,
        *,
        secret_key: str,
        callback_url: str,
        saleor_api_url: str,
    ) -> WebhookCredentials:
        """Create a Stripe webhook endpoint for the account owning ``secret_key``.

        Returns:
            WebhookCredentials with the endpoint id and signing secret.

        Raises:
            PaymentAppError: WEBHOOK_PROVISIONING_FAILED if Stripe refuses.
        """
        try:
            endpoint = self._get_client(secret_key).webhook_endpoints.create(
                params={
                    "url": callback_url,
                    "enabled_events": WEBHOOK_ENABLED_EVENTS,
                    "description": f"Saleor Stripe App for {saleor_api_url}",
                    "metadata": {"saleor_api_url": saleor_api_url},
                }
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe webhook creation failed: %s (code: %s)",
                redact_error(e),
                error_code,
            )
            raise webhook_provisioning_error(str(e), error_code) from e

        logger.info("Stripe webhook %s created", endpoint.id)
        return WebhookCredentials(webhook_id=endpoint.id, webhook_secret=endpoint.secret)

    def delete_webhook(self, *, webhook_id: str, secret_key: str) -> None:
        """Delete a Stripe webhook endpoint.

        Raises:
            PaymentAppError: WEBHOOK_DELETION_FAILED if Stripe refuses.
        """
        try:
            self._get_client(secret_key).webhook_endpoints.delete(webhook_id)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe webhook deletion failed: %s (code: %s)",
                redact_error(e),
                error_code,
            )
            raise webhook_deletion_error(webhook_id, error_code) from e
        logger.info("Stripe webhook %s deleted", webhook_id)

    def create_payment_intent(self, params: dict[str, Any], secret_key: str) -> Any:
        """Create a PaymentIntent.

        Raises:
            PaymentAppError: STRIPE_API_ERROR if creation fails.
        """
        try:
            intent = self._get_client(secret_key).payment_intents.create(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "PaymentIntent creation failed: %s (code: %s)", redact_error(e), error_code
            )
            raise stripe_api_error(f"Failed to create payment intent: {e}", error_code) from e

        logger.info("PaymentIntent %s created with status %s", intent.id, intent.status)
        return intent

    def update_payment_intent(
        self, intent_id: str, params: dict[str, Any], secret_key: str
    ) -> Any:
        """Update an existing PaymentIntent.

        Raises:
            PaymentAppError: STRIPE_API_ERROR if the update fails.
        """
        try:
            intent = self._get_client(secret_key).payment_intents.update(
                intent_id, params=params
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "PaymentIntent %s update failed: %s (code: %s)",
                intent_id,
                redact_error(e),
                error_code,
            )
            raise stripe_api_error(f"Failed to update payment intent: {e}", error_code) from e

        logger.info("PaymentIntent %s updated with status %s", intent.id, intent.status)
        return intent

    def verify_webhook_signature(
        self, payload: bytes, signature: str, webhook_secret: str
    ) -> dict:
        """Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.
            webhook_secret: Signing secret of the endpoint that received it.

        Returns:
            Parsed Stripe event dictionary.

        Raises:
            PaymentAppError: INVALID_WEBHOOK_SIGNATURE if the signature is invalid.
        """
        try:
            event = stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise invalid_webhook_signature_error(str(e)) from e
        except ValueError as e:
            logger.warning("Unparseable webhook payload: %s", str(e))
            raise invalid_webhook_signature_error("Invalid payload") from e

        logger.info("Webhook signature verified for event: %s", event["id"])
        # Plain dicts, independent of how the SDK version models StripeObject
        return json.loads(payload)

    @staticmethod
    def get_external_url_for_intent_id(intent_id: str) -> str:
        """Stripe dashboard link for a PaymentIntent."""
        return f"https://dashboard.stripe.com/payments/{quote(intent_id, safe='')}"


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance (singleton pattern)."""
    return StripeService()
