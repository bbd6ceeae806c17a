"""Configuration endpoints used by the dashboard.

Provides REST endpoints for:
- Listing, adding, renaming and deleting configuration entries
- Reading and changing the channel -> configuration routing table

The tenant is taken from the Saleor-Api-Url header. Credentials are always
returned obfuscated.
"""

from fastapi import APIRouter, Depends, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from stripe_app.api.dependencies import get_config_manager
from stripe_app.api.models import (
    ChannelMappingResponse,
    ChannelMappingUpdate,
    ConfigurationEntryResponse,
    ConfigurationListResponse,
)
from stripe_app.models.app_config import (
    ConfigurationEntryInput,
    ConfigurationEntryUpdate,
)
from stripe_app.models.errors import ErrorPayload
from stripe_app.services.config_manager import ConfigManager

router = APIRouter(tags=["configurations"])

_NOT_FOUND = {404: {"description": "Configuration entry not found", "model": ErrorPayload}}


@router.get(
    "/configurations",
    summary="List configuration entries",
    response_model=ConfigurationListResponse,
)
def list_configurations(
    manager: ConfigManager = Depends(get_config_manager),
) -> ConfigurationListResponse:
    return ConfigurationListResponse(
        configurations=[
            ConfigurationEntryResponse.from_entry(entry)
            for entry in manager.get_all_config_entries_obfuscated()
        ],
        channel_to_configuration_id=manager.get_channel_mappings(),
    )


@router.post(
    "/configurations",
    summary="Add configuration entry",
    description="""
Validate a Stripe key pair, attach a webhook endpoint and store the entry.

**Notes:**
- Restricted keys (rk_xxx) are rejected before any Stripe call
- Entries sharing a secret key share one webhook endpoint
- Nothing is stored when validation or webhook creation fails
""",
    response_model=ConfigurationEntryResponse,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid or unsupported keys", "model": ErrorPayload},
        502: {"description": "Stripe or storage failure", "model": ErrorPayload},
    },
)
def add_configuration(
    new_entry: ConfigurationEntryInput,
    manager: ConfigManager = Depends(get_config_manager),
) -> ConfigurationEntryResponse:
    return ConfigurationEntryResponse.from_entry(manager.add_config_entry(new_entry))


@router.get(
    "/configurations/{configuration_id}",
    summary="Get configuration entry",
    response_model=ConfigurationEntryResponse,
    responses=_NOT_FOUND,
)
def get_configuration(
    configuration_id: str,
    manager: ConfigManager = Depends(get_config_manager),
) -> ConfigurationEntryResponse:
    entry = manager.get_config_entry_obfuscated(configuration_id)
    return ConfigurationEntryResponse.from_entry(entry)


@router.patch(
    "/configurations/{configuration_id}",
    summary="Update configuration entry",
    description="Only the display name can change; keys and webhook stay as they are.",
    response_model=ConfigurationEntryResponse,
    responses=_NOT_FOUND,
)
def update_configuration(
    configuration_id: str,
    update: ConfigurationEntryUpdate,
    manager: ConfigManager = Depends(get_config_manager),
) -> ConfigurationEntryResponse:
    entry = manager.update_config_entry(configuration_id, update)
    return ConfigurationEntryResponse.from_entry(entry)


@router.delete(
    "/configurations/{configuration_id}",
    summary="Delete configuration entry",
    description="""
Remove the entry and every channel mapping pointing to it.

The Stripe webhook endpoint is deleted too unless another entry still uses it.
""",
    status_code=HTTP_204_NO_CONTENT,
    responses=_NOT_FOUND,
)
def delete_configuration(
    configuration_id: str,
    manager: ConfigManager = Depends(get_config_manager),
) -> Response:
    manager.delete_config_entry(configuration_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get(
    "/channel-mappings",
    summary="Get channel mappings",
    response_model=ChannelMappingResponse,
)
def get_channel_mappings(
    manager: ConfigManager = Depends(get_config_manager),
) -> ChannelMappingResponse:
    return ChannelMappingResponse(channel_to_configuration_id=manager.get_channel_mappings())


@router.put(
    "/channel-mappings",
    summary="Set channel mappings",
    response_model=ChannelMappingResponse,
)
def set_channel_mappings(
    update: ChannelMappingUpdate,
    manager: ConfigManager = Depends(get_config_manager),
) -> ChannelMappingResponse:
    mappings = manager.set_mapping(update.channel_to_configuration_id)
    return ChannelMappingResponse(channel_to_configuration_id=mappings)


@router.delete(
    "/channel-mappings/{channel_id}",
    summary="Remove channel mapping",
    response_model=ChannelMappingResponse,
)
def delete_channel_mapping(
    channel_id: str,
    manager: ConfigManager = Depends(get_config_manager),
) -> ChannelMappingResponse:
    return ChannelMappingResponse(channel_to_configuration_id=manager.delete_mapping(channel_id))
