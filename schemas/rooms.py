from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional, Union

RoomId = Union[int, str]


class CamelModel(BaseModel):
    # Stored records and chat API payloads use camelCase keys
    model_config = ConfigDict(populate_by_name=True)


class ClientInfo(CamelModel):
    client_key: str = Field(alias="clientKey")
    oauth_id: str = Field(alias="oauthId")
    oauth_secret: str = Field(alias="oauthSecret")
    api_url: str = Field(alias="apiUrl")
    group_id: Optional[Union[int, str]] = Field(default=None, alias="groupId")
    room_id: Optional[RoomId] = Field(default=None, alias="roomId")

class Room(BaseModel):
    id: RoomId
    name: Optional[str] = None

class RoomContext(CamelModel):
    client_key: str = Field(alias="clientKey")
    room: Room

class HookEntry(BaseModel):
    type: Literal["history", "greeting"]
    id: Union[int, str]

class HookRecord(BaseModel):
    hooks: List[HookEntry] = []

    def of_type(self, hook_type: str) -> List[HookEntry]:
        return [hook for hook in self.hooks if hook.type == hook_type]

class FlagSetRequest(CamelModel):
    # Anything goes, flag_to_boolean decides
    value: Any = None
    room_id: Optional[RoomId] = Field(default=None, alias="roomId")

class EventUser(BaseModel):
    id: Union[int, str]
    name: Optional[str] = None

class EventMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: EventUser = Field(alias="from")
    message: Optional[str] = None

class RoomEventItem(BaseModel):
    room: Room
    message: Optional[EventMessage] = None
    sender: Optional[EventUser] = None

class RoomEvent(BaseModel):
    event: str
    item: RoomEventItem

    @property
    def is_message(self) -> bool:
        return self.event == "room_message"

    @property
    def user_id(self) -> Optional[Union[int, str]]:
        if self.is_message:
            return self.item.message.sender.id if self.item.message else None
        return self.item.sender.id if self.item.sender else None

class SidebarResponse(CamelModel):
    room_id: RoomId = Field(alias="roomId")
    history_flag: bool = Field(alias="historyFlag")
    greeting_flag: bool = Field(alias="greetingFlag")

class HistoryPageResponse(BaseModel):
    title: str
    subtitle: str
    latest_url: str
