import uuid
from dataclasses import dataclass
from typing import Optional

from backend import RedisBackend
from constants import GLANCE_KEY, GREETING_FLAG, HISTORY_FLAG, LOCAL_BASE_URL
from logging_config import get_logger
from schemas.rooms import ClientInfo, RoomEvent, RoomId
from services.flags import FlagStore
from services.hooks import HookProvisioner
from services.tokens import TokenRegistry

logger = get_logger(__name__)


def glance_json(enabled: bool) -> dict:
    return {
        "label": {
            "type": "html",
            "value": "Guest History",
        },
        "status": {
            "type": "lozenge",
            "value": {
                "label": "enabled" if enabled else "disabled",
                "type": "success" if enabled else "default",
            },
        },
    }


def history_card(user_name: str, link: str, base_url: str = LOCAL_BASE_URL) -> dict:
    return {
        "style": "link",
        "url": link,
        "id": str(uuid.uuid4()),
        "title": "Looking for room history? ...follow me",
        "description": (
            f"Hi {user_name}! Use this link to browse through messages from your teammates. "
            "You can also type '/history' in chat to see this card again."
        ),
        "icon": {"url": f"{base_url.rstrip('/')}/img/History-transparent-128.png"},
    }


@dataclass
class EventOutcome:
    sent: bool
    reason: str
    link: Optional[str] = None


class RoomConfigurator:
    """Owns the read-modify-write sequence for a room's history and greeting flags.

    A toggle only acts on the difference between the stored flag and the
    requested value. Hooks and tokens are torn down before the flag is written
    false, so an interrupted disable leaves stale hooks behind (a second disable
    clears them) rather than a flag that claims history is on with no hooks.
    Nothing is rolled back on failure; the next toggle works from whatever state
    was left.
    """

    def __init__(self, store: RedisBackend, chat_api, base_url: str = LOCAL_BASE_URL, glance_key: str = GLANCE_KEY):
        self.store = store
        self.chat_api = chat_api
        self.base_url = base_url
        self.glance_key = glance_key
        self.flags = FlagStore(store)
        self.tokens = TokenRegistry(store, base_url)
        self.hooks = HookProvisioner(store, chat_api, base_url)

    async def is_history_enabled(self, tenant_key: str, room_id: RoomId) -> bool:
        return await self.flags.get(HISTORY_FLAG, room_id, tenant_key)

    async def is_greeting_enabled(self, tenant_key: str, room_id: RoomId) -> bool:
        return await self.flags.get(GREETING_FLAG, room_id, tenant_key)

    async def room_state(self, tenant_key: str, room_id: RoomId) -> dict:
        return {
            HISTORY_FLAG: await self.is_history_enabled(tenant_key, room_id),
            GREETING_FLAG: await self.is_greeting_enabled(tenant_key, room_id),
        }

    async def set_history(self, client_info: ClientInfo, room_id: RoomId, enabled: bool) -> bool:
        tenant_key = client_info.client_key
        current = await self.is_history_enabled(tenant_key, room_id)
        if current == enabled:
            logger.info(f"History flag already {enabled} for room {room_id} tenant {tenant_key}")
            return False

        if enabled:
            await self.hooks.enable_history(client_info, room_id)
        else:
            token = await self.tokens.revoke(tenant_key, room_id)
            logger.debug(f"History token removed for room {room_id}: {token}")
            await self.hooks.disable_history(client_info, room_id)

        await self.flags.set(HISTORY_FLAG, room_id, tenant_key, enabled)
        await self.chat_api.update_glance(client_info, room_id, self.glance_key, glance_json(enabled))
        logger.info(f"History {'enabled' if enabled else 'disabled'} for room {room_id} tenant {tenant_key}")
        return True

    async def set_greeting(self, client_info: ClientInfo, room_id: RoomId, enabled: bool) -> bool:
        tenant_key = client_info.client_key
        current = await self.is_greeting_enabled(tenant_key, room_id)
        if current == enabled:
            logger.info(f"Greeting flag already {enabled} for room {room_id} tenant {tenant_key}")
            return False

        if enabled:
            await self.hooks.enable_greeting_only(client_info, room_id)
        else:
            await self.hooks.disable_greeting_only(client_info, room_id)

        await self.flags.set(GREETING_FLAG, room_id, tenant_key, enabled)
        logger.info(f"Greeting {'enabled' if enabled else 'disabled'} for room {room_id} tenant {tenant_key}")
        return True

    async def handle_room_event(self, client_info: ClientInfo, event: RoomEvent) -> EventOutcome:
        """Send a guest the history link if the room has opted in.

        Messages need the history flag. Room enters need history and greeting,
        since the link a greeting advertises only works while history is on.
        """
        tenant_key = client_info.client_key
        room = event.item.room
        event_type = HISTORY_FLAG if event.is_message else GREETING_FLAG

        user_id = event.user_id
        if user_id is None:
            logger.warning(f"{event.event} event for room {room.id} carries no user")
            return EventOutcome(sent=False, reason="no user")

        user = await self.chat_api.get_user(client_info, user_id)
        logger.debug(f"{event_type} hook called by {user.get('name')} in room {room.id}")
        if not user.get("is_guest"):
            return EventOutcome(sent=False, reason="not a guest")

        if not await self.is_history_enabled(tenant_key, room.id):
            logger.debug(f"History disabled for room {room.id}, ignoring guest")
            return EventOutcome(sent=False, reason="history disabled")

        if event_type == GREETING_FLAG and not await self.is_greeting_enabled(tenant_key, room.id):
            logger.debug(f"Greeting disabled for room {room.id}, ignoring guest")
            return EventOutcome(sent=False, reason="greeting disabled")

        link = await self.tokens.get_or_create(tenant_key, room)
        card = history_card(user.get("name", ""), link, self.base_url)
        message = card["title"] + card["description"]
        await self.chat_api.send_message(client_info, room.id, message, {"options": {"color": "green"}}, card)
        logger.info(f"Sent history link to guest {user.get('name')} in room {room.id} tenant {tenant_key}")
        return EventOutcome(sent=True, reason=event_type, link=link)
