"""API request/response models.

Domain models (ConfigurationEntry, AppConfig, session payloads) live in
stripe_app.models and are used directly where their shape fits the wire.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stripe_app.models.app_config import (
    ChannelMapping,
    ConfigurationEntry,
    get_environment_from_key,
)


class _ApiModel(BaseModel):
    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)


class ConfigurationEntryResponse(ConfigurationEntry):
    """Obfuscated entry as shown in the dashboard, with the Stripe mode of its keys."""

    environment: Literal["live", "test"]

    @classmethod
    def from_entry(cls, entry: ConfigurationEntry) -> "ConfigurationEntryResponse":
        # Obfuscation keeps the key prefix, so masked keys still carry their mode
        return cls(
            **entry.model_dump(),
            environment=get_environment_from_key(entry.publishable_key),
        )


class ConfigurationListResponse(_ApiModel):
    """All entries of a tenant, credentials masked, plus the routing table."""

    configurations: list[ConfigurationEntryResponse] = Field(default_factory=list)
    channel_to_configuration_id: ChannelMapping = Field(default_factory=dict)


class ChannelMappingUpdate(_ApiModel):
    """Channel routing changes; unmentioned channels keep their mapping."""

    channel_to_configuration_id: ChannelMapping = Field(
        ...,
        description="channel id -> configuration id",
        examples=[{"Q2hhbm5lbDox": "0190b0b4-7c2e-7d1a-9f0e-2b7c1a3e5d4f"}],
    )


class ChannelMappingResponse(_ApiModel):
    channel_to_configuration_id: ChannelMapping
