import pytest

from conftest import BASE_URL, ROOM, TENANT, room_enter_event, room_message_event
from exceptions import RemoteApiError
from schemas.rooms import RoomEvent
from services.room_config import glance_json, history_card


def token_of(url):
    return url.rsplit("/", 1)[-1]


def test_glance_json():
    assert glance_json(True)["status"]["value"] == {"label": "enabled", "type": "success"}
    assert glance_json(False)["status"]["value"] == {"label": "disabled", "type": "default"}
    assert glance_json(True)["label"] == {"type": "html", "value": "Guest History"}


def test_history_card():
    card = history_card("Ann", f"{BASE_URL}/history/abc", BASE_URL)
    assert card["style"] == "link"
    assert card["url"] == f"{BASE_URL}/history/abc"
    assert card["description"].startswith("Hi Ann!")
    assert card["icon"]["url"] == f"{BASE_URL}/img/History-transparent-128.png"


@pytest.mark.asyncio
async def test_enable_history_is_idempotent(configurator, chat_api, client_info):
    assert await configurator.set_history(client_info, ROOM.id, True) is True
    assert await configurator.set_history(client_info, ROOM.id, True) is False

    assert chat_api.add_room_webhook.await_count == 2
    chat_api.update_glance.assert_awaited_once_with(client_info, ROOM.id, "guest-history-glance", glance_json(True))
    assert await configurator.is_history_enabled(TENANT, ROOM.id) is True


@pytest.mark.asyncio
async def test_disable_when_already_disabled_is_noop(configurator, chat_api, client_info):
    assert await configurator.set_history(client_info, ROOM.id, False) is False
    chat_api.update_glance.assert_not_awaited()


@pytest.mark.asyncio
async def test_disable_history_cascades(configurator, chat_api, client_info, fake_redis):
    await configurator.set_history(client_info, ROOM.id, True)
    token = token_of(await configurator.tokens.get_or_create(TENANT, ROOM))

    assert await configurator.set_history(client_info, ROOM.id, False) is True

    assert await configurator.tokens.resolve(token) is None
    assert await configurator.hooks.get_record(TENANT, ROOM.id) is None
    assert chat_api.remove_room_webhook.await_count == 2
    assert await configurator.is_history_enabled(TENANT, ROOM.id) is False
    chat_api.update_glance.assert_awaited_with(client_info, ROOM.id, "guest-history-glance", glance_json(False))

    new_token = token_of(await configurator.tokens.get_or_create(TENANT, ROOM))
    assert new_token != token


@pytest.mark.asyncio
async def test_failed_hook_registration_leaves_flag_unset(configurator, chat_api, client_info):
    chat_api.add_room_webhook.side_effect = RemoteApiError("down", status_code=503)

    with pytest.raises(RemoteApiError):
        await configurator.set_history(client_info, ROOM.id, True)
    assert await configurator.is_history_enabled(TENANT, ROOM.id) is False
    chat_api.update_glance.assert_not_awaited()


@pytest.mark.asyncio
async def test_greeting_independent_of_history(configurator, chat_api, client_info):
    assert await configurator.set_greeting(client_info, ROOM.id, True) is True

    events = [call.args[2]["event"] for call in chat_api.add_room_webhook.call_args_list]
    assert events == ["room_enter"]
    assert await configurator.room_state(TENANT, ROOM.id) == {"history": False, "greeting": True}
    chat_api.update_glance.assert_not_awaited()

    outcome = await configurator.handle_room_event(client_info, RoomEvent.model_validate(room_enter_event()))
    assert outcome.sent is False
    assert outcome.reason == "history disabled"
    chat_api.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_disable_greeting_uses_given_room(configurator, chat_api, client_info):
    other_room = 99
    await configurator.set_history(client_info, ROOM.id, True)
    await configurator.set_greeting(client_info, other_room, True)

    assert await configurator.set_greeting(client_info, other_room, False) is True

    chat_api.remove_room_webhook.assert_awaited_once_with(client_info, other_room, 3)
    record = await configurator.hooks.get_record(TENANT, ROOM.id)
    assert [hook.type for hook in record.hooks] == ["greeting", "history"]


@pytest.mark.asyncio
async def test_message_from_member_is_ignored(configurator, chat_api, client_info):
    await configurator.set_history(client_info, ROOM.id, True)
    chat_api.get_user.return_value = {"id": 7, "name": "Member", "is_guest": False}

    outcome = await configurator.handle_room_event(client_info, RoomEvent.model_validate(room_message_event()))

    assert outcome.sent is False
    assert outcome.reason == "not a guest"
    chat_api.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_room_enter_needs_greeting(configurator, chat_api, client_info):
    await configurator.set_history(client_info, ROOM.id, True)

    outcome = await configurator.handle_room_event(client_info, RoomEvent.model_validate(room_enter_event()))
    assert outcome.reason == "greeting disabled"

    await configurator.set_greeting(client_info, ROOM.id, True)
    outcome = await configurator.handle_room_event(client_info, RoomEvent.model_validate(room_enter_event()))
    assert outcome.sent is True
    chat_api.get_user.assert_awaited_with(client_info, 7)


@pytest.mark.asyncio
async def test_repeated_guest_events_reuse_link(configurator, chat_api, client_info):
    await configurator.set_history(client_info, ROOM.id, True)
    event = RoomEvent.model_validate(room_message_event())

    first = await configurator.handle_room_event(client_info, event)
    second = await configurator.handle_room_event(client_info, event)

    assert first.link == second.link
    assert chat_api.send_message.await_count == 2


@pytest.mark.asyncio
async def test_end_to_end_guest_flow(configurator, chat_api, client_info, fake_redis):
    event = RoomEvent.model_validate(room_message_event())

    outcome = await configurator.handle_room_event(client_info, event)
    assert outcome.sent is False
    assert not [key for key in fake_redis.data if "history_token" in key]
    chat_api.send_message.assert_not_awaited()

    await configurator.set_history(client_info, ROOM.id, True)
    record = await configurator.hooks.get_record(TENANT, ROOM.id)
    assert record.model_dump() == {"hooks": [{"type": "greeting", "id": 1}, {"type": "history", "id": 2}]}
    assert await configurator.is_history_enabled(TENANT, ROOM.id) is True

    outcome = await configurator.handle_room_event(client_info, event)
    assert outcome.sent is True
    assert outcome.link.startswith(f"{BASE_URL}/history/")

    args = chat_api.send_message.await_args.args
    assert args[0] == client_info
    assert args[1] == ROOM.id
    assert args[3] == {"options": {"color": "green"}}
    assert args[4]["url"] == outcome.link
    assert "Hi Guest!" in args[2]

    context = await configurator.tokens.resolve(token_of(outcome.link))
    assert context.client_key == TENANT
    assert context.room.id == ROOM.id
