import re
from itertools import count
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from backend import RedisBackend
from schemas.rooms import ClientInfo, Room
from services.room_config import RoomConfigurator
from services.sweeper import TenantSweeper


def redis_glob(pattern):
    """Compile a redis MATCH pattern: * ? [..] and backslash escapes."""
    regex, i = "", 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            i += 1
            regex += re.escape(pattern[i])
        elif char == "*":
            regex += ".*"
        elif char == "?":
            regex += "."
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                regex += re.escape(char)
            else:
                regex += "[" + pattern[i + 1:end].replace("\\", "\\\\") + "]"
                i = end
        else:
            regex += re.escape(char)
        i += 1
    return re.compile(regex, re.DOTALL)


BASE_URL = "https://guest.example.com"
TENANT = "tenant-1"
ROOM = Room(id=42, name="Lobby")


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the backend uses.

    Add an operation name ("set") or an (operation, key) pair to ``fail`` to
    make matching calls raise a redis ConnectionError.
    """

    def __init__(self):
        self.data = {}
        self.fail = set()

    def _check(self, op, key=None):
        if op in self.fail or (op, key) in self.fail:
            raise redis.ConnectionError(f"{op} {key} failed")

    async def ping(self):
        self._check("ping")
        return True

    async def get(self, key):
        self._check("get", key)
        return self.data.get(key)

    async def set(self, key, value):
        self._check("set", key)
        self.data[key] = value
        return True

    async def delete(self, *keys):
        deleted = 0
        for key in keys:
            self._check("delete", key)
            if self.data.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def scan_iter(self, match=None):
        self._check("scan", match)
        for key in list(self.data):
            if match is None or redis_glob(match).fullmatch(key):
                yield key

    async def aclose(self):
        pass


def make_chat_api():
    chat = AsyncMock()
    chat.forget = MagicMock()
    hook_ids = count(1)
    chat.add_room_webhook.side_effect = lambda client_info, room_id, hook: {"id": next(hook_ids)}
    chat.get_user.return_value = {"id": 7, "name": "Guest", "is_guest": True}
    chat.get_latest_history.return_value = [{"id": "m1", "message": "hello"}]
    chat.remove_room_webhook.return_value = None
    chat.send_message.return_value = None
    chat.update_glance.return_value = None
    return chat


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return RedisBackend(client=fake_redis)


@pytest.fixture
def chat_api():
    return make_chat_api()


@pytest.fixture
def client_info():
    return ClientInfo(
        client_key=TENANT,
        oauth_id="oauth-id",
        oauth_secret="oauth-secret",
        api_url="https://chat.example.com/v2",
        group_id=1,
        room_id=ROOM.id,
    )


@pytest.fixture
def configurator(store, chat_api):
    return RoomConfigurator(store, chat_api, base_url=BASE_URL)


@pytest.fixture
def sweeper(store):
    return TenantSweeper(store)


def room_message_event(user_id=7, room=ROOM):
    return {
        "event": "room_message",
        "item": {
            "message": {"from": {"id": user_id, "name": "Guest"}, "message": "hi"},
            "room": {"id": room.id, "name": room.name},
        },
    }


def room_enter_event(user_id=7, room=ROOM):
    return {
        "event": "room_enter",
        "item": {
            "sender": {"id": user_id, "name": "Guest"},
            "room": {"id": room.id, "name": room.name},
        },
    }
