import asyncio
from typing import Optional

from backend import RedisBackend
from constants import GREETING_FLAG, HISTORY_FLAG, LOCAL_BASE_URL
from exceptions import RemoteApiError
from logging_config import get_logger
from redis_keys import HOOKS_KEY
from schemas.rooms import ClientInfo, HookEntry, HookRecord, RoomId

logger = get_logger(__name__)

HOOK_EVENTS = {
    GREETING_FLAG: "room_enter",
    HISTORY_FLAG: "room_message",
}


def new_hook(hook_type: str, base_url: str = LOCAL_BASE_URL) -> dict:
    return {
        "url": f"{base_url.rstrip('/')}/{hook_type}",
        "event": HOOK_EVENTS[hook_type],
        "authentication": "jwt",
        "name": f"{hook_type} webhook",
    }


class HookProvisioner:
    """Registers room webhooks with the chat API and remembers their ids.

    The stored record is the only way to find a hook again for removal, so it
    is written after every registration even when a later step fails.
    """

    def __init__(self, store: RedisBackend, chat_api, base_url: str = LOCAL_BASE_URL):
        self.store = store
        self.chat_api = chat_api
        self.base_url = base_url

    async def get_record(self, tenant_key: str, room_id: RoomId) -> Optional[HookRecord]:
        value = await self.store.get(HOOKS_KEY.format(room_id=room_id), tenant_key)
        if not value:
            return None
        # Records written before hooks were wrapped in an object were bare lists
        if isinstance(value, list):
            value = {"hooks": value}
        return HookRecord.model_validate(value)

    async def save_record(self, tenant_key: str, room_id: RoomId, record: HookRecord):
        await self.store.set(HOOKS_KEY.format(room_id=room_id), record.model_dump(), tenant_key)

    async def _register(self, client_info: ClientInfo, room_id: RoomId, hook_type: str) -> HookEntry:
        hook = new_hook(hook_type, self.base_url)
        response = await self.chat_api.add_room_webhook(client_info, room_id, hook)
        logger.info(f"Added {hook_type} hook {hook['url']} to room {room_id}, got id {response['id']}")
        return HookEntry(type=hook_type, id=response["id"])

    async def _remove(self, client_info: ClientInfo, room_id: RoomId, entry: HookEntry) -> bool:
        try:
            await self.chat_api.remove_room_webhook(client_info, room_id, entry.id)
        except RemoteApiError as e:
            logger.warning(f"Could not remove {entry.type} hook {entry.id} from room {room_id}: {e}")
            return False
        logger.debug(f"Removed {entry.type} hook {entry.id} from room {room_id}")
        return True

    async def _remove_all(self, client_info: ClientInfo, room_id: RoomId, entries) -> int:
        results = await asyncio.gather(*(self._remove(client_info, room_id, entry) for entry in entries))
        return sum(1 for removed in results if removed)

    async def enable_history(self, client_info: ClientInfo, room_id: RoomId) -> HookRecord:
        """Register the greeting hook, then the history hook, and record both."""
        tenant_key = client_info.client_key
        record = await self.get_record(tenant_key, room_id) or HookRecord()
        # Hooks already on record (greeting enabled on its own, or a partially
        # failed earlier enable) are kept rather than registered a second time
        try:
            for hook_type in (GREETING_FLAG, HISTORY_FLAG):
                if not record.of_type(hook_type):
                    record.hooks.append(await self._register(client_info, room_id, hook_type))
        finally:
            if record.hooks:
                await self.save_record(tenant_key, room_id, record)
        logger.info(f"History hooks enabled for room {room_id} tenant {tenant_key}: {len(record.hooks)} hooks")
        return record

    async def disable_history(self, client_info: ClientInfo, room_id: RoomId):
        """Remove every hook of the room, greeting included, and drop the record."""
        tenant_key = client_info.client_key
        record = await self.get_record(tenant_key, room_id)
        if record is None:
            logger.debug(f"No hooks stored for room {room_id} tenant {tenant_key}")
            return
        removed = await self._remove_all(client_info, room_id, record.hooks)
        await self.store.delete(HOOKS_KEY.format(room_id=room_id), tenant_key)
        logger.info(f"History hooks disabled for room {room_id} tenant {tenant_key}: removed {removed}/{len(record.hooks)}")

    async def enable_greeting_only(self, client_info: ClientInfo, room_id: RoomId) -> HookRecord:
        tenant_key = client_info.client_key
        record = await self.get_record(tenant_key, room_id) or HookRecord()
        if record.of_type(GREETING_FLAG):
            logger.debug(f"Greeting hook already registered for room {room_id} tenant {tenant_key}")
            return record
        record.hooks.append(await self._register(client_info, room_id, GREETING_FLAG))
        await self.save_record(tenant_key, room_id, record)
        return record

    async def disable_greeting_only(self, client_info: ClientInfo, room_id: RoomId):
        tenant_key = client_info.client_key
        record = await self.get_record(tenant_key, room_id)
        if record is None:
            return
        greeting_hooks = record.of_type(GREETING_FLAG)
        if not greeting_hooks:
            return
        await self._remove_all(client_info, room_id, greeting_hooks)
        remaining = HookRecord(hooks=[hook for hook in record.hooks if hook.type != GREETING_FLAG])
        if remaining.hooks:
            await self.save_record(tenant_key, room_id, remaining)
        else:
            await self.store.delete(HOOKS_KEY.format(room_id=room_id), tenant_key)
        logger.info(f"Greeting hook removed from room {room_id} tenant {tenant_key}")
