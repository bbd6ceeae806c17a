"""Services for the Stripe payment app."""

from .app_configurator import AppConfigurator, get_configuration_for_channel
from .config_manager import ConfigManager
from .metadata_manager import MetadataManager, SSMMetadataManager, get_metadata_manager
from .stripe_service import StripeService, WebhookCredentials, get_stripe_service
from .transaction_session import TransactionSessionHandler

__all__ = [
    "AppConfigurator",
    "get_configuration_for_channel",
    "ConfigManager",
    "MetadataManager",
    "SSMMetadataManager",
    "get_metadata_manager",
    "StripeService",
    "WebhookCredentials",
    "get_stripe_service",
    "TransactionSessionHandler",
]
