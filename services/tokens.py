import uuid
from typing import Optional

from pydantic import ValidationError

from backend import RedisBackend
from constants import LOCAL_BASE_URL
from exceptions import InvalidToken, MissingInput
from logging_config import get_logger
from redis_keys import ROOM_TOKEN_KEY, TOKEN_KEY
from schemas.rooms import Room, RoomContext, RoomId

logger = get_logger(__name__)


def generate_token() -> str:
    return uuid.uuid4().hex


class TokenRegistry:
    """Guest tokens granting anonymous read access to one room's history.

    Each token is stored twice: a global forward entry ``history_token:{token}``
    holding the tenant and room, and a tenant scoped reverse entry
    ``history_token:{room_id}`` holding the token. A room has at most one live
    token, so links handed out to guests stay stable until history is turned off.
    """

    def __init__(self, store: RedisBackend, base_url: str = LOCAL_BASE_URL):
        self.store = store
        self.base_url = base_url.rstrip("/")

    def history_url(self, token: str) -> str:
        return f"{self.base_url}/history/{token}"

    def latest_url(self, token: str) -> str:
        return f"{self.history_url(token)}/latest"

    async def get_token(self, tenant_key: str, room_id: RoomId) -> Optional[str]:
        return await self.store.get(ROOM_TOKEN_KEY.format(room_id=room_id), tenant_key)

    async def get_or_create(self, tenant_key: str, room: Room) -> str:
        token = await self.get_token(tenant_key, room.id)
        if token:
            logger.debug(f"Reusing history token for room {room.id} tenant {tenant_key}")
            return self.history_url(token)

        # Not atomic: two guests arriving at once may each mint a token, the
        # later reverse write wins and the other forward entry lives until revoke
        token = generate_token()
        context = RoomContext(client_key=tenant_key, room=Room(id=room.id, name=room.name))
        await self.store.raw_set(TOKEN_KEY.format(token=token), context.model_dump(by_alias=True))
        await self.store.set(ROOM_TOKEN_KEY.format(room_id=room.id), token, tenant_key)
        logger.info(f"Generated new history token for room {room.id} tenant {tenant_key}")
        return self.history_url(token)

    async def resolve(self, token: str) -> Optional[RoomContext]:
        if not token:
            return None
        value = await self.store.raw_get(TOKEN_KEY.format(token=token))
        if not isinstance(value, dict):
            logger.debug(f"No room context for token {token}")
            return None
        try:
            return RoomContext.model_validate(value)
        except ValidationError as e:
            logger.warning(f"Malformed room context for token {token}: {e}")
            return None

    async def resolve_or_raise(self, token: Optional[str]) -> RoomContext:
        if not token:
            raise MissingInput()
        context = await self.resolve(token)
        if context is None:
            raise InvalidToken()
        return context

    async def revoke(self, tenant_key: str, room_id: RoomId) -> Optional[str]:
        token = await self.get_token(tenant_key, room_id)
        if not token:
            logger.debug(f"No history token to revoke for room {room_id} tenant {tenant_key}")
            return None
        await self.store.delete(ROOM_TOKEN_KEY.format(room_id=room_id), tenant_key)
        await self.store.raw_delete(TOKEN_KEY.format(token=token))
        logger.info(f"History token revoked for room {room_id} tenant {tenant_key}")
        return token
