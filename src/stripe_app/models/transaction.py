"""Transaction session payloads exchanged with the commerce platform."""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


class TransactionFlowStrategy(str, Enum):
    """Outcome requested by the platform for a transaction session."""

    AUTHORIZATION = "AUTHORIZATION"
    CHARGE = "CHARGE"


class PaymentIntentStatus(str, Enum):
    """Stripe PaymentIntent lifecycle statuses."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    REQUIRES_CAPTURE = "requires_capture"
    CANCELED = "canceled"
    SUCCEEDED = "succeeded"


class TransactionResult(str, Enum):
    """Transaction result vocabulary of the platform."""

    AUTHORIZATION_REQUESTED = "AUTHORIZATION_REQUESTED"
    AUTHORIZATION_ACTION_REQUIRED = "AUTHORIZATION_ACTION_REQUIRED"
    AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"
    AUTHORIZATION_SUCCESS = "AUTHORIZATION_SUCCESS"
    CHARGE_REQUESTED = "CHARGE_REQUESTED"
    CHARGE_ACTION_REQUIRED = "CHARGE_ACTION_REQUIRED"
    CHARGE_FAILURE = "CHARGE_FAILURE"
    CHARGE_SUCCESS = "CHARGE_SUCCESS"


class _EventModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Money(_EventModel):
    amount: Decimal = Field(..., ge=0, description="Amount in major units, e.g. 222.99")
    currency: str = Field(..., min_length=3, max_length=3)


class TaxedMoney(_EventModel):
    gross: Money


class Channel(_EventModel):
    id: str
    slug: str | None = None


class CheckoutSource(_EventModel):
    typename: Literal["Checkout"] = Field(alias="__typename")
    id: str
    total: TaxedMoney
    channel: Channel


class OrderSource(_EventModel):
    typename: Literal["Order"] = Field(alias="__typename")
    id: str
    total: TaxedMoney
    channel: Channel


# JSON numbers for the platform, Decimal internally
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

SourceObject = Annotated[CheckoutSource | OrderSource, Field(discriminator="typename")]


class TransactionAction(_EventModel):
    action_type: TransactionFlowStrategy
    amount: Decimal | None = None


class Transaction(_EventModel):
    id: str
    psp_reference: str | None = None


class TransactionSessionEvent(_EventModel):
    """TRANSACTION_INITIALIZE_SESSION / TRANSACTION_PROCESS_SESSION payload."""

    action: TransactionAction
    source_object: SourceObject
    transaction: Transaction
    data: dict[str, Any] | None = None
    merchant_reference: str | None = None


class TransactionSessionResponse(_EventModel):
    """Response body expected by the platform for session webhooks."""

    result: TransactionResult
    amount: JsonDecimal
    psp_reference: str
    external_url: str | None = None
    data: dict[str, Any] | None = None
    message: str | None = None


class StripeEventResult(BaseModel):
    """Outcome of an inbound Stripe webhook event."""

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str
    result: TransactionResult | None = None
    psp_reference: str | None = None
    message: str | None = None
