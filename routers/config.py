from fastapi import APIRouter, Depends, Response

from dependencies import get_client_info, get_room_configurator, get_room_id, resolve_room_id
from exceptions import GuestHistoryError
from logging_config import get_logger
from schemas.rooms import ClientInfo, FlagSetRequest, SidebarResponse
from services.flags import flag_to_boolean
from services.room_config import RoomConfigurator, glance_json

logger = get_logger(__name__)

config_router = APIRouter(tags=["config"])


@config_router.post("/config/room", status_code=204)
async def set_room_history(
    body: FlagSetRequest,
    client_info: ClientInfo = Depends(get_client_info),
    room_id=Depends(get_room_id),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    enabled = flag_to_boolean(body.value)
    room_id = resolve_room_id(body.room_id, room_id)
    logger.info(f"Request for /config/room: room {room_id} tenant {client_info.client_key} -> {enabled}")
    try:
        await configurator.set_history(client_info, room_id, enabled)
    except GuestHistoryError as e:
        logger.error(f"Error setting history flag for room {room_id}: {e}", exc_info=True)
        raise
    return Response(status_code=204)


@config_router.post("/config/room/greeting", status_code=204)
async def set_room_greeting(
    body: FlagSetRequest,
    client_info: ClientInfo = Depends(get_client_info),
    room_id=Depends(get_room_id),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    enabled = flag_to_boolean(body.value)
    room_id = resolve_room_id(body.room_id, room_id)
    logger.info(f"Request for /config/room/greeting: room {room_id} tenant {client_info.client_key} -> {enabled}")
    try:
        await configurator.set_greeting(client_info, room_id, enabled)
    except GuestHistoryError as e:
        logger.error(f"Error setting greeting flag for room {room_id}: {e}", exc_info=True)
        raise
    return Response(status_code=204)


@config_router.get("/glance")
async def get_glance(
    client_info: ClientInfo = Depends(get_client_info),
    room_id=Depends(get_room_id),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    room_id = resolve_room_id(room_id)
    enabled = await configurator.is_history_enabled(client_info.client_key, room_id)
    logger.debug(f"Returning glance for room {room_id}: {enabled}")
    return glance_json(enabled)


@config_router.get("/sidebar", response_model=SidebarResponse)
async def get_sidebar(
    client_info: ClientInfo = Depends(get_client_info),
    room_id=Depends(get_room_id),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    room_id = resolve_room_id(room_id)
    state = await configurator.room_state(client_info.client_key, room_id)
    return SidebarResponse(room_id=room_id, history_flag=state["history"], greeting_flag=state["greeting"])
