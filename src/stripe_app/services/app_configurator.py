"""Configurator: typed access to a tenant's stored AppConfig.

All mutations are read-merge-write against the whole aggregate. There is no
locking here: two concurrent writers for the same tenant can overwrite each
other, so callers that need consistency must serialize writes per tenant.
"""

import json
from typing import Any

from pydantic import ValidationError

from stripe_app.models.app_config import (
    AppConfig,
    ChannelMapping,
    ConfigurationEntry,
    obfuscate_config_entry,
)
from stripe_app.models.errors import json_schema_error
from stripe_app.services.metadata_manager import MetadataManager
from stripe_app.utils.logging import get_logger

logger = get_logger(__name__)

APP_METADATA_KEY = "stripe-app-config-v1"


class AppConfigurator:
    """Reads and writes the AppConfig aggregate of one tenant."""

    def __init__(self, metadata_manager: MetadataManager, saleor_api_url: str) -> None:
        """Initialize configurator.

        Args:
            metadata_manager: Encrypted key-value backend
            saleor_api_url: Tenant the configuration belongs to
        """
        self._metadata_manager = metadata_manager
        self.saleor_api_url = saleor_api_url

    def _get_raw(self) -> dict[str, Any]:
        raw = self._metadata_manager.get(APP_METADATA_KEY, self.saleor_api_url)
        if raw is None:
            return {}
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as e:
            raise json_schema_error(f"Stored config is not valid JSON: {e}") from e
        if not isinstance(stored, dict):
            raise json_schema_error("Stored config is not a JSON object")
        return stored

    def get_config(self) -> AppConfig:
        """Read, decrypt and validate the stored configuration.

        Returns:
            Stored AppConfig, or schema defaults when nothing is stored yet.

        Raises:
            PaymentAppError: JSON_SCHEMA if the stored record is malformed.
        """
        stored = self._get_raw()
        try:
            return AppConfig.model_validate(stored)
        except ValidationError as e:
            logger.error(
                "Stored config for %s failed validation: %d error(s)",
                self.saleor_api_url,
                e.error_count(),
            )
            raise json_schema_error(_validation_reason(e)) from e

    def get_config_entry(self, configuration_id: str) -> ConfigurationEntry | None:
        config = self.get_config()
        return next(
            (
                entry
                for entry in config.configurations
                if entry.configuration_id == configuration_id
            ),
            None,
        )

    def get_config_obfuscated(self) -> AppConfig:
        """Configuration with every credential masked, for UI read paths."""
        config = self.get_config()
        return AppConfig(
            configurations=[obfuscate_config_entry(entry) for entry in config.configurations],
            channel_to_configuration_id=config.channel_to_configuration_id,
        )

    def get_raw_config(self) -> list[dict[str, str]]:
        """Export the stored record as encrypted metadata entries."""
        config = self.get_config()
        value = self._metadata_manager.encrypt(config.model_dump_json(by_alias=True))
        return [{"key": APP_METADATA_KEY, "value": value}]

    def set_config(self, new_config: dict[str, Any] | AppConfig, replace: bool = False) -> None:
        """Write top-level fields of the configuration.

        Without ``replace`` the given fields are merged over the stored
        record one level deep; lists and mappings are never merged
        element-wise, callers pass the full collection. With ``replace`` the
        given fields become the whole record and absent fields fall back to
        defaults.

        Args:
            new_config: Partial configuration keyed by field or alias name
            replace: Overwrite instead of merging
        """
        try:
            if isinstance(new_config, AppConfig):
                partial = new_config.model_dump(by_alias=True)
            else:
                partial = AppConfig.model_validate(new_config).model_dump(
                    by_alias=True, include=_fields_set(new_config)
                )

            merged = partial if replace else {**self._get_raw(), **partial}
            # Validate before writing so a bad merge never reaches the store
            config = AppConfig.model_validate(merged)
        except ValidationError as e:
            raise json_schema_error(_validation_reason(e)) from e
        self._metadata_manager.set(
            APP_METADATA_KEY,
            config.model_dump_json(by_alias=True),
            self.saleor_api_url,
        )

    def clear_config(self) -> None:
        self.set_config(AppConfig(), replace=True)

    def set_config_entry(self, new_configuration: dict[str, Any]) -> None:
        """Append a new entry, or shallow-merge into the entry with the same id.

        Args:
            new_configuration: Entry fields; must include configurationId
        """
        configuration_id = new_configuration.get(
            "configuration_id", new_configuration.get("configurationId")
        )
        config = self.get_config()
        entries = [entry.model_dump() for entry in config.configurations]

        for index, entry in enumerate(entries):
            if entry["configuration_id"] == configuration_id:
                entries[index] = {**entry, **_to_field_names(new_configuration)}
                break
        else:
            entries.append(_to_field_names(new_configuration))

        self.set_config({"configurations": entries})

    def delete_config_entry(self, configuration_id: str) -> None:
        """Remove an entry and every channel mapping pointing to it in one write."""
        config = self.get_config()
        configurations = [
            entry
            for entry in config.configurations
            if entry.configuration_id != configuration_id
        ]
        mappings = {
            channel_id: mapped_id
            for channel_id, mapped_id in config.channel_to_configuration_id.items()
            if mapped_id != configuration_id
        }
        self.set_config(
            AppConfig(configurations=configurations, channel_to_configuration_id=mappings),
            replace=True,
        )

    def set_mapping(self, new_mapping: ChannelMapping) -> None:
        """Add new channel mappings or update existing ones."""
        config = self.get_config()
        self.set_config(
            {"channelToConfigurationId": {**config.channel_to_configuration_id, **new_mapping}}
        )

    def delete_mapping(self, channel_id: str) -> None:
        config = self.get_config()
        mappings = dict(config.channel_to_configuration_id)
        mappings.pop(channel_id, None)
        self.set_config({"channelToConfigurationId": mappings})


def get_configuration_for_channel(
    app_config: AppConfig, channel_id: str | None
) -> ConfigurationEntry | None:
    """Resolve the configuration routed to a channel.

    Returns:
        The entry, or None when the channel id is missing, unmapped, or mapped
        to an entry that no longer exists.
    """
    if not channel_id:
        logger.warning("Missing channelId")
        return None

    configuration_id = app_config.channel_to_configuration_id.get(channel_id)
    if not configuration_id:
        logger.warning("Missing mapping for channelId %s", channel_id)
        return None

    entry = next(
        (
            config
            for config in app_config.configurations
            if config.configuration_id == configuration_id
        ),
        None,
    )
    if entry is None:
        logger.warning("Missing configuration for configurationId %s", configuration_id)
    return entry


def _fields_set(partial: dict[str, Any]) -> set[str]:
    """Model field names present in a partial dict given by field or alias name."""
    names = set()
    for name, field in AppConfig.model_fields.items():
        if name in partial or field.alias in partial:
            names.add(name)
    return names


def _to_field_names(entry: dict[str, Any]) -> dict[str, Any]:
    """Normalize camelCase entry keys to model field names."""
    aliases = {
        field.alias: name for name, field in ConfigurationEntry.model_fields.items()
    }
    return {aliases.get(key, key): value for key, value in entry.items()}


def _validation_reason(error: ValidationError) -> str:
    """Locations and messages of a validation failure, without the stored values."""
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc']) or '<root>'}: {detail['msg']}"
        for detail in error.errors(include_input=False, include_url=False)
    )
