"""Pytest configuration and fixtures for the Stripe payment app tests.

This module provides reusable fixtures for testing:
- SSM/KMS mocking with moto
- An in-memory metadata store for fast service tests
- A mocked StripeService boundary
- Sample configuration entries and transaction session events
"""

import itertools
import os
from collections.abc import Callable
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_URL", "https://stripe-app.example.com")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from stripe_app.models.app_config import ConfigurationEntry, ConfigurationEntryInput  # noqa: E402
from stripe_app.models.transaction import TransactionSessionEvent  # noqa: E402
from stripe_app.services.app_configurator import AppConfigurator  # noqa: E402
from stripe_app.services.config_manager import ConfigManager  # noqa: E402
from stripe_app.services.metadata_manager import SSMMetadataManager  # noqa: E402
from stripe_app.services.stripe_service import StripeService, WebhookCredentials  # noqa: E402

# === Test Configuration ===

SALEOR_API_URL = "https://shop.example.com/graphql/"
OTHER_SALEOR_API_URL = "https://other-shop.example.com/graphql/"
APP_URL = "https://stripe-app.example.com"

TEST_SECRET_KEY = "sk_test_51Habcdefghijklmnop1234"
TEST_PUBLISHABLE_KEY = "pk_test_51Habcdefghijklmnop5678"
OTHER_SECRET_KEY = "sk_test_51Hzyxwvutsrqponmlk4321"
OTHER_PUBLISHABLE_KEY = "pk_test_51Hzyxwvutsrqponmlk8765"

CHANNEL_ID = "Q2hhbm5lbDox"
OTHER_CHANNEL_ID = "Q2hhbm5lbDoy"
TRANSACTION_ID = "VHJhbnNhY3Rpb25JdGVtOjE="
CHECKOUT_ID = "Q2hlY2tvdXQ6MQ=="
ORDER_ID = "T3JkZXI6MQ=="


class InMemoryMetadataManager:
    """MetadataManager keeping records in a dict, keyed by tenant and key."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], str] = {}
        self.set_calls = 0

    def get(self, key: str, saleor_api_url: str) -> str | None:
        return self.records.get((saleor_api_url, key))

    def set(self, key: str, value: str, saleor_api_url: str) -> None:
        self.set_calls += 1
        self.records[(saleor_api_url, key)] = value

    def encrypt(self, plaintext: str) -> str:
        return f"encrypted:{plaintext[::-1]}"


# === AWS Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def aws_mock(aws_credentials: None) -> Generator[None, None, None]:
    with mock_aws():
        yield


@pytest.fixture
def kms_key_id(aws_mock: None) -> str:
    """Create a KMS key inside the moto context."""
    kms = boto3.client("kms", region_name="eu-west-1")
    return kms.create_key(Description="stripe-app-test")["KeyMetadata"]["KeyId"]


@pytest.fixture
def ssm_metadata_manager(aws_mock: None) -> SSMMetadataManager:
    """SSMMetadataManager talking to moto's SSM."""
    return SSMMetadataManager(prefix="/stripe-app/test")


# === Store Fixtures ===


@pytest.fixture
def metadata_manager() -> InMemoryMetadataManager:
    return InMemoryMetadataManager()


@pytest.fixture
def configurator(metadata_manager: InMemoryMetadataManager) -> AppConfigurator:
    return AppConfigurator(metadata_manager, SALEOR_API_URL)


# === Stripe Fixtures ===


@pytest.fixture
def mock_stripe_service() -> MagicMock:
    """StripeService double: keys are valid, every webhook gets fresh credentials."""
    service = MagicMock(spec=StripeService)
    counter = itertools.count(1)

    def create_webhook(**kwargs: Any) -> WebhookCredentials:
        n = next(counter)
        return WebhookCredentials(f"we_test_{n}", f"whsec_test_secret_value_{n:04d}")

    service.create_webhook.side_effect = create_webhook
    service.get_external_url_for_intent_id.side_effect = (
        StripeService.get_external_url_for_intent_id
    )
    return service


@pytest.fixture
def config_manager(
    configurator: AppConfigurator, mock_stripe_service: MagicMock
) -> ConfigManager:
    counter = itertools.count(1)
    return ConfigManager(
        configurator,
        mock_stripe_service,
        id_generator=lambda: f"config-{next(counter)}",
    )


# === Sample Data Fixtures ===


@pytest.fixture
def entry_input() -> ConfigurationEntryInput:
    return ConfigurationEntryInput(
        configuration_name="Main store",
        secret_key=TEST_SECRET_KEY,
        publishable_key=TEST_PUBLISHABLE_KEY,
    )


@pytest.fixture
def other_entry_input() -> ConfigurationEntryInput:
    return ConfigurationEntryInput(
        configuration_name="Outlet",
        secret_key=OTHER_SECRET_KEY,
        publishable_key=OTHER_PUBLISHABLE_KEY,
    )


def make_configuration_entry(**overrides: Any) -> ConfigurationEntry:
    """Build a stored ConfigurationEntry with test defaults."""
    fields: dict[str, Any] = {
        "configuration_id": "config-1",
        "configuration_name": "Main store",
        "secret_key": TEST_SECRET_KEY,
        "publishable_key": TEST_PUBLISHABLE_KEY,
        "webhook_id": "we_test_1",
        "webhook_secret": "whsec_test_secret_value_0001",
    }
    fields.update(overrides)
    return ConfigurationEntry(**fields)


@pytest.fixture
def make_session_event() -> Callable[..., TransactionSessionEvent]:
    """Factory for TRANSACTION_*_SESSION payloads as the platform sends them."""

    def _make(
        *,
        action_type: str = "CHARGE",
        amount: str = "222.99",
        currency: str = "USD",
        source: str = "Checkout",
        channel_id: str = CHANNEL_ID,
        psp_reference: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> TransactionSessionEvent:
        return TransactionSessionEvent.model_validate(
            {
                "action": {"actionType": action_type, "amount": amount},
                "sourceObject": {
                    "__typename": source,
                    "id": CHECKOUT_ID if source == "Checkout" else ORDER_ID,
                    "total": {"gross": {"amount": amount, "currency": currency}},
                    "channel": {"id": channel_id, "slug": "default-channel"},
                },
                "transaction": {"id": TRANSACTION_ID, "pspReference": psp_reference},
                "data": data,
                "merchantReference": TRANSACTION_ID,
            }
        )

    return _make


@pytest.fixture
def make_payment_intent() -> Callable[..., MagicMock]:
    """Factory for Stripe PaymentIntent objects as returned by StripeClient."""

    def _make(
        *,
        intent_id: str = "pi_test_123",
        status: str = "requires_payment_method",
        amount: int = 22299,
        currency: str = "usd",
        capture_method: str = "automatic",
    ) -> MagicMock:
        intent = MagicMock()
        intent.id = intent_id
        intent.status = status
        intent.amount = amount
        intent.currency = currency
        intent.capture_method = capture_method
        intent.client_secret = f"{intent_id}_secret_abc"
        return intent

    return _make

