from typing import Optional

from fastapi import Depends, Header

from backend import RedisBackend, redis_backend
from chat_api import ChatApiClient, chat_api
from exceptions import MissingInput, UnknownInstallation
from logging_config import get_logger
from schemas.rooms import ClientInfo
from services.room_config import RoomConfigurator
from services.sweeper import TenantSweeper

logger = get_logger(__name__)

room_configurator = RoomConfigurator(redis_backend, chat_api)
tenant_sweeper = TenantSweeper(redis_backend)


def get_store() -> RedisBackend:
    return redis_backend


def get_chat_api() -> ChatApiClient:
    return chat_api


def get_room_configurator() -> RoomConfigurator:
    return room_configurator


def get_tenant_sweeper() -> TenantSweeper:
    return tenant_sweeper


async def get_client_info(
    x_tenant_key: Optional[str] = Header(None),
    store: RedisBackend = Depends(get_store),
) -> ClientInfo:
    # Requests are authenticated upstream, which forwards the tenant key
    if not x_tenant_key:
        raise MissingInput("Missing tenant key")
    value = await store.get_client_info(x_tenant_key)
    if not value:
        logger.warning(f"Request for unknown installation {x_tenant_key}")
        raise UnknownInstallation()
    return ClientInfo.model_validate(value)


def resolve_room_id(*candidates):
    for room_id in candidates:
        if room_id is not None and room_id != "":
            return room_id
    raise MissingInput("Missing room id")


def get_room_id(x_room_id: Optional[str] = Header(None), client_info: ClientInfo = Depends(get_client_info)):
    """Room from the X-Room-Id header, falling back to the room the tenant was installed in."""
    if x_room_id:
        return x_room_id
    return client_info.room_id
