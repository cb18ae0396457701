from fastapi import APIRouter, Depends

from backend import RedisBackend
from chat_api import ChatApiClient
from constants import HISTORY_LIMIT
from dependencies import get_chat_api, get_room_configurator, get_store
from exceptions import GuestHistoryError, InvalidToken, MissingInput
from logging_config import get_logger
from schemas.rooms import ClientInfo, HistoryPageResponse
from services.room_config import RoomConfigurator

logger = get_logger(__name__)

history_router = APIRouter(prefix="/history", tags=["history"])


@history_router.get("")
@history_router.get("/")
async def missing_history_token():
    logger.warning("History requested without a token")
    raise MissingInput()


@history_router.get("/{token}", response_model=HistoryPageResponse)
async def get_history_page(token: str, configurator: RoomConfigurator = Depends(get_room_configurator)):
    """Anonymous landing data for a guest link. No tenant authentication, the token is the credential."""
    logger.debug(f"History link: {token}")
    context = await configurator.tokens.resolve_or_raise(token)
    return HistoryPageResponse(
        title=f"{context.room.name or context.room.id} History",
        subtitle=f"Listing latest {HISTORY_LIMIT} messages",
        latest_url=configurator.tokens.latest_url(token),
    )


@history_router.get("/{token}/latest")
async def get_latest_history(
    token: str,
    configurator: RoomConfigurator = Depends(get_room_configurator),
    store: RedisBackend = Depends(get_store),
    chat_api: ChatApiClient = Depends(get_chat_api),
):
    logger.debug(f"Latest history token: {token}")
    context = await configurator.tokens.resolve_or_raise(token)

    value = await store.get_client_info(context.client_key)
    if not value:
        logger.warning(f"Token {token} points at missing installation {context.client_key}")
        raise InvalidToken()
    client_info = ClientInfo.model_validate(value)

    try:
        messages = await chat_api.get_latest_history(client_info, context.room.id, HISTORY_LIMIT)
    except GuestHistoryError as e:
        logger.error(f"Error getting history for room {context.room.id}: {e}", exc_info=True)
        raise
    logger.info(f"Returning {len(messages)} messages for room {context.room.id} tenant {context.client_key}")
    return messages
