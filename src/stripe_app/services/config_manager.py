"""Lifecycle of configuration entries across the config store and Stripe.

An entry is either absent or active. Key validation and webhook provisioning
run before anything is written, so a failed add never leaves a partial entry.

Operations are read-merge-write without locking. Two concurrent mutations for
the same tenant may lose one of the writes; serializing writes per tenant is
the caller's job.
"""

import os
from collections.abc import Callable
from urllib.parse import urlencode

from uuid6 import uuid7

from stripe_app.models.app_config import (
    ChannelMapping,
    ConfigurationEntry,
    ConfigurationEntryInput,
    ConfigurationEntryUpdate,
    obfuscate_config_entry,
)
from stripe_app.models.errors import entry_not_found_error
from stripe_app.services.app_configurator import (
    AppConfigurator,
    get_configuration_for_channel,
)
from stripe_app.services.stripe_service import StripeService, WebhookCredentials
from stripe_app.utils.logging import (
    get_logger,
    log_config_operation,
    redact_error,
    redact_log_object,
)

logger = get_logger(__name__)

STRIPE_WEBHOOK_PATH = "/api/webhooks/stripe"


def generate_configuration_id() -> str:
    """Time-ordered unique id for a new configuration entry."""
    return str(uuid7())


def get_webhook_callback_url(app_url: str, saleor_api_url: str) -> str:
    """URL Stripe delivers events to for a tenant."""
    query = urlencode({"saleorApiUrl": saleor_api_url})
    return f"{app_url.rstrip('/')}{STRIPE_WEBHOOK_PATH}?{query}"


class ConfigManager:
    """Add, update and delete configuration entries for one tenant."""

    def __init__(
        self,
        configurator: AppConfigurator,
        stripe_service: StripeService,
        id_generator: Callable[[], str] = generate_configuration_id,
    ) -> None:
        """Initialize config manager.

        Args:
            configurator: Configurator bound to the tenant
            stripe_service: Stripe boundary used for keys and webhooks
            id_generator: Factory for new configuration ids
        """
        self.configurator = configurator
        self.stripe = stripe_service
        self._generate_id = id_generator

    @property
    def saleor_api_url(self) -> str:
        return self.configurator.saleor_api_url

    # Reads

    def get_all_config_entries_obfuscated(self) -> list[ConfigurationEntry]:
        config = self.configurator.get_config_obfuscated()
        logger.debug("Got obfuscated config for %s", self.saleor_api_url)
        return config.configurations

    def get_all_config_entries_decrypted(self) -> list[ConfigurationEntry]:
        config = self.configurator.get_config()
        logger.debug("Got config for %s", self.saleor_api_url)
        return config.configurations

    def get_config_entry_obfuscated(self, configuration_id: str) -> ConfigurationEntry:
        """Masked entry by id.

        Raises:
            PaymentAppError: ENTRY_NOT_FOUND if no entry has this id.
        """
        return obfuscate_config_entry(self.get_config_entry_decrypted(configuration_id))

    def get_config_entry_decrypted(self, configuration_id: str) -> ConfigurationEntry:
        """Entry by id with clear-text credentials.

        Raises:
            PaymentAppError: ENTRY_NOT_FOUND if no entry has this id.
        """
        entry = self.configurator.get_config_entry(configuration_id)
        if entry is None:
            logger.warning("Entry %s was not found", configuration_id)
            raise entry_not_found_error(configuration_id)
        logger.debug("Found entry %s", entry.configuration_name)
        return entry

    def get_configuration_for_channel(self, channel_id: str | None) -> ConfigurationEntry | None:
        """Entry routed to a channel, or None if the channel is not configured."""
        return get_configuration_for_channel(self.configurator.get_config(), channel_id)

    # Entry lifecycle

    def add_config_entry(
        self, new_entry: ConfigurationEntryInput, app_url: str | None = None
    ) -> ConfigurationEntry:
        """Validate keys, attach a webhook and store a new entry.

        Args:
            new_entry: Name and credentials from the dashboard form
            app_url: Public base URL of this app. Defaults to APP_URL.

        Returns:
            The stored entry, obfuscated.

        Raises:
            PaymentAppError: Key validation or webhook provisioning failures.
                Nothing is stored in that case.
        """
        app_url = app_url or os.environ.get("APP_URL", "http://localhost:8080")

        self.stripe.validate_keys(new_entry.secret_key, new_entry.publishable_key)

        webhook = self._get_or_create_webhook(new_entry.secret_key, app_url)

        entry = ConfigurationEntry(
            configuration_id=self._generate_id(),
            configuration_name=new_entry.configuration_name,
            secret_key=new_entry.secret_key,
            publishable_key=new_entry.publishable_key,
            webhook_id=webhook.webhook_id,
            webhook_secret=webhook.webhook_secret,
        )

        logger.debug("Adding new config entry %s", redact_log_object(entry))
        self.configurator.set_config_entry(entry.model_dump())
        log_config_operation(
            logger,
            "add_config_entry",
            saleor_api_url=self.saleor_api_url,
            configuration_id=entry.configuration_id,
        )

        return obfuscate_config_entry(entry)

    def _get_or_create_webhook(self, secret_key: str, app_url: str) -> WebhookCredentials:
        """Reuse the webhook of an entry with the same secret key, or create one.

        Stripe signs every event of an endpoint with one secret, so entries
        sharing a secret key share the endpoint and its secret.
        """
        existing = next(
            (
                entry
                for entry in self.get_all_config_entries_decrypted()
                if entry.secret_key == secret_key
            ),
            None,
        )
        if existing is not None:
            logger.info(
                "Reusing webhook %s of configuration %s",
                existing.webhook_id,
                existing.configuration_id,
            )
            return WebhookCredentials(existing.webhook_id, existing.webhook_secret)

        logger.debug("Creating new webhook for config entry")
        return self.stripe.create_webhook(
            secret_key=secret_key,
            callback_url=get_webhook_callback_url(app_url, self.saleor_api_url),
            saleor_api_url=self.saleor_api_url,
        )

    def update_config_entry(
        self, configuration_id: str, update: ConfigurationEntryUpdate
    ) -> ConfigurationEntry:
        """Merge supplied fields into an existing entry.

        Never re-validates keys or touches the webhook.

        Raises:
            PaymentAppError: ENTRY_NOT_FOUND if no entry has this id.
        """
        existing_entry = self.get_config_entry_decrypted(configuration_id)
        logger.debug("Found entry %s", redact_log_object(existing_entry))

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        self.configurator.set_config_entry({**changes, "configuration_id": configuration_id})
        log_config_operation(
            logger,
            "update_config_entry",
            saleor_api_url=self.saleor_api_url,
            configuration_id=configuration_id,
            fields=sorted(changes),
        )

        return obfuscate_config_entry(existing_entry.model_copy(update=changes))

    def delete_config_entry(self, configuration_id: str) -> None:
        """Remove an entry, its channel mappings and, if unshared, its webhook.

        Webhook removal is best effort: a Stripe failure is logged and the
        local entry is removed anyway.

        Raises:
            PaymentAppError: ENTRY_NOT_FOUND if no entry has this id.
        """
        entries = self.get_all_config_entries_decrypted()
        existing_entry = next(
            (entry for entry in entries if entry.configuration_id == configuration_id),
            None,
        )
        if existing_entry is None:
            logger.error("Entry %s was not found", configuration_id)
            raise entry_not_found_error(configuration_id)

        logger.debug(
            "Checking if other config is using webhook %s", existing_entry.webhook_id
        )
        is_webhook_used = any(
            entry.webhook_id == existing_entry.webhook_id
            for entry in entries
            if entry.configuration_id != configuration_id
        )

        if is_webhook_used:
            logger.debug("Webhook linked with deleted config entry is used by other entries")
        else:
            logger.debug("Deleting webhook linked with config entry")
            try:
                self.stripe.delete_webhook(
                    webhook_id=existing_entry.webhook_id,
                    secret_key=existing_entry.secret_key,
                )
            except Exception as e:
                logger.warning(
                    "Webhook %s couldn't be deleted with the config: %s",
                    existing_entry.webhook_id,
                    redact_error(e),
                )

        self.configurator.delete_config_entry(configuration_id)
        log_config_operation(
            logger,
            "delete_config_entry",
            saleor_api_url=self.saleor_api_url,
            configuration_id=configuration_id,
        )

    # Channel mappings

    def get_channel_mappings(self) -> ChannelMapping:
        return self.configurator.get_config().channel_to_configuration_id

    def set_mapping(self, new_mapping: ChannelMapping) -> ChannelMapping:
        """Add or update channel mappings; referenced ids are not checked."""
        self.configurator.set_mapping(new_mapping)
        log_config_operation(
            logger,
            "set_mapping",
            saleor_api_url=self.saleor_api_url,
            channels=sorted(new_mapping),
        )
        return self.get_channel_mappings()

    def delete_mapping(self, channel_id: str) -> ChannelMapping:
        self.configurator.delete_mapping(channel_id)
        log_config_operation(
            logger,
            "delete_mapping",
            saleor_api_url=self.saleor_api_url,
            channel_id=channel_id,
        )
        return self.get_channel_mappings()
