from fastapi import APIRouter, Depends, Response

from backend import RedisBackend
from chat_api import ChatApiClient
from dependencies import get_chat_api, get_store, get_tenant_sweeper
from logging_config import get_logger
from schemas.rooms import ClientInfo
from services.sweeper import TenantSweeper

logger = get_logger(__name__)

installations_router = APIRouter(prefix="/installable", tags=["installations"])


@installations_router.post("", status_code=204)
async def install(
    client_info: ClientInfo,
    store: RedisBackend = Depends(get_store),
    chat_api: ChatApiClient = Depends(get_chat_api),
):
    logger.info(f"Installing tenant {client_info.client_key} (group {client_info.group_id}, room {client_info.room_id})")
    await store.save_client_info(client_info.model_dump(by_alias=True))
    # A reinstall may come with new OAuth credentials
    chat_api.forget(client_info.client_key)
    return Response(status_code=204)


@installations_router.delete("/{client_key}", status_code=204)
async def uninstall(
    client_key: str,
    sweeper: TenantSweeper = Depends(get_tenant_sweeper),
    chat_api: ChatApiClient = Depends(get_chat_api),
):
    chat_api.forget(client_key)
    await sweeper.sweep(client_key)
    return Response(status_code=204)
