from typing import Any

from backend import RedisBackend
from constants import FLAG_NAMES
from logging_config import get_logger
from redis_keys import FLAG_KEY
from schemas.rooms import RoomId

logger = get_logger(__name__)


def flag_to_boolean(flag: Any) -> bool:
    """True for boolean True or a string reading "true" in any case, ignoring surrounding whitespace."""
    if isinstance(flag, bool):
        return flag
    if isinstance(flag, str):
        return flag.strip().lower() == "true"
    return False


class FlagStore:
    def __init__(self, store: RedisBackend):
        self.store = store

    @staticmethod
    def _key(flag_name: str, room_id: RoomId) -> str:
        if flag_name not in FLAG_NAMES:
            raise ValueError(f"Unknown room flag: {flag_name}")
        return FLAG_KEY.format(flag=flag_name, room_id=room_id)

    async def get(self, flag_name: str, room_id: RoomId, tenant_key: str) -> bool:
        value = await self.store.get(self._key(flag_name, room_id), tenant_key)
        enabled = flag_to_boolean(value)
        logger.debug(f"{flag_name} flag check for room {room_id} tenant {tenant_key}: {enabled}")
        return enabled

    async def set(self, flag_name: str, room_id: RoomId, tenant_key: str, enabled: bool):
        logger.info(f"Setting {flag_name} flag for room {room_id} tenant {tenant_key}: {enabled}")
        await self.store.set(self._key(flag_name, room_id), bool(enabled), tenant_key)
