"""Stored configuration of the Stripe app for a single tenant.

The whole aggregate is persisted as one JSON document using camelCase keys,
so every model here serializes with ``by_alias=True``.
"""

import re

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# channel_id -> configuration_id
ChannelMapping = dict[str, str]

_KEY_PREFIX_PATTERN = re.compile(r"^(?:(?:sk|pk|rk)_(?:test|live)_|whsec_)")
_VISIBLE_SUFFIX_LENGTH = 4


class ConfigurationEntryInput(BaseModel):
    """Credential set submitted by the dashboard form when adding an entry."""

    model_config = ConfigDict(
        strict=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    configuration_name: str = Field(..., min_length=1, description="Display name")
    secret_key: str = Field(..., min_length=1, description="Stripe secret key (sk_xxx)")
    publishable_key: str = Field(
        ..., min_length=1, description="Stripe publishable key (pk_xxx)"
    )


class ConfigurationEntryUpdate(BaseModel):
    """Fields of an entry that can change in place.

    Credentials are absent: rotating keys means delete + add.
    """

    model_config = ConfigDict(
        strict=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    configuration_name: str | None = Field(default=None, min_length=1)


class ConfigurationEntry(BaseModel):
    """One fully configured Stripe credential set."""

    model_config = ConfigDict(
        strict=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    configuration_id: str = Field(..., description="Time-ordered unique id (UUIDv7)")
    configuration_name: str
    secret_key: str
    publishable_key: str
    webhook_id: str = Field(..., description="Stripe webhook endpoint id (we_xxx)")
    webhook_secret: str = Field(..., description="Webhook signing secret (whsec_xxx)")


class AppConfig(BaseModel):
    """Aggregate root: all entries plus the channel routing table."""

    model_config = ConfigDict(
        strict=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    configurations: list[ConfigurationEntry] = Field(default_factory=list)
    channel_to_configuration_id: ChannelMapping = Field(default_factory=dict)


def obfuscate_value(value: str) -> str:
    """Mask a secret for display, keeping the key prefix and the last 4 characters.

    >>> obfuscate_value("sk_test_51abcdefghijklmnop1234")
    'sk_test_...1234'
    """
    match = _KEY_PREFIX_PATTERN.match(value)
    prefix = match.group(0) if match else ""
    hidden = value[len(prefix):]
    if len(hidden) <= _VISIBLE_SUFFIX_LENGTH * 2:
        return f"{prefix}****"
    return f"{prefix}...{hidden[-_VISIBLE_SUFFIX_LENGTH:]}"


def obfuscate_config_entry(entry: ConfigurationEntry) -> ConfigurationEntry:
    """Return a copy of the entry that is safe to send to a UI."""
    return entry.model_copy(
        update={
            "secret_key": obfuscate_value(entry.secret_key),
            "publishable_key": obfuscate_value(entry.publishable_key),
            "webhook_secret": obfuscate_value(entry.webhook_secret),
        }
    )


def get_environment_from_key(secret_key_or_publishable_key: str) -> str:
    """Return "live" for live-mode Stripe keys and "test" for everything else."""
    if secret_key_or_publishable_key.startswith(("sk_live_", "pk_live_", "rk_live_")):
        return "live"
    return "test"
