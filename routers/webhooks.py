from fastapi import APIRouter, Depends, Response

from dependencies import get_client_info, get_room_configurator
from exceptions import GuestHistoryError
from logging_config import get_logger
from schemas.rooms import ClientInfo, RoomEvent
from services.room_config import RoomConfigurator

logger = get_logger(__name__)

webhooks_router = APIRouter(tags=["webhooks"])


async def handle_hook(event: RoomEvent, client_info: ClientInfo, configurator: RoomConfigurator) -> Response:
    logger.debug(f"Hook called: {event.event} in room {event.item.room.id} tenant {client_info.client_key}")
    try:
        outcome = await configurator.handle_room_event(client_info, event)
    except GuestHistoryError as e:
        logger.error(f"Error handling {event.event} in room {event.item.room.id}: {e}", exc_info=True)
        raise
    logger.debug(f"Hook outcome for room {event.item.room.id}: sent={outcome.sent} ({outcome.reason})")
    return Response(status_code=204)


@webhooks_router.post("/history", status_code=204)
async def history_hook(
    event: RoomEvent,
    client_info: ClientInfo = Depends(get_client_info),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    return await handle_hook(event, client_info, configurator)


@webhooks_router.post("/greeting", status_code=204)
async def greeting_hook(
    event: RoomEvent,
    client_info: ClientInfo = Depends(get_client_info),
    configurator: RoomConfigurator = Depends(get_room_configurator),
):
    return await handle_hook(event, client_info, configurator)
