"""FastAPI dependency injection providers for the Stripe app services.

Process-wide collaborators (metadata store, Stripe boundary) are singletons
via @lru_cache. Everything bound to a tenant is built per request from the
tenant's Saleor API URL.

Usage in routes:
    from stripe_app.api.dependencies import get_config_manager

    @router.get("/configurations")
    def list_configurations(
        manager: ConfigManager = Depends(get_config_manager),
    ):
        ...

Service Dependency Graph:
    SSMMetadataManager (singleton via get_metadata_manager)
        └── AppConfigurator (per tenant)
                ├── ConfigManager (+ StripeService singleton)
                └── TransactionSessionHandler (+ StripeService singleton)

Testing:
    Override get_metadata_manager / get_stripe_service through
    app.dependency_overrides and call reset_services() between tests.
"""

from fastapi import Depends, Header, Query

from stripe_app.services.app_configurator import AppConfigurator
from stripe_app.services.config_manager import ConfigManager
from stripe_app.services.metadata_manager import MetadataManager, get_metadata_manager
from stripe_app.services.stripe_service import StripeService, get_stripe_service
from stripe_app.services.transaction_session import TransactionSessionHandler

SALEOR_API_URL_HEADER = "Saleor-Api-Url"


def get_saleor_api_url(
    saleor_api_url: str = Header(
        ...,
        alias=SALEOR_API_URL_HEADER,
        description="GraphQL API URL of the tenant instance",
    ),
) -> str:
    """Tenant of a dashboard or platform webhook request."""
    return saleor_api_url


def get_configurator(
    saleor_api_url: str = Depends(get_saleor_api_url),
    metadata_manager: MetadataManager = Depends(get_metadata_manager),
) -> AppConfigurator:
    return AppConfigurator(metadata_manager, saleor_api_url)


def get_config_manager(
    configurator: AppConfigurator = Depends(get_configurator),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> ConfigManager:
    """Get a ConfigManager bound to the request's tenant."""
    return ConfigManager(configurator, stripe_service)


def get_transaction_session_handler(
    configurator: AppConfigurator = Depends(get_configurator),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> TransactionSessionHandler:
    return TransactionSessionHandler(configurator, stripe_service)


def get_stripe_webhook_handler(
    saleor_api_url: str = Query(
        ...,
        alias="saleorApiUrl",
        description="Tenant the Stripe webhook endpoint was registered for",
    ),
    metadata_manager: MetadataManager = Depends(get_metadata_manager),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> TransactionSessionHandler:
    """Session handler for inbound Stripe events.

    Stripe cannot send custom headers, so the tenant travels in the callback
    URL registered with the webhook endpoint.
    """
    return TransactionSessionHandler(
        AppConfigurator(metadata_manager, saleor_api_url), stripe_service
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    get_metadata_manager.cache_clear()
    get_stripe_service.cache_clear()
