import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from constants import CHAT_API_TIMEOUT
from exceptions import RemoteApiError
from logging_config import get_logger
from schemas.rooms import ClientInfo, RoomId

logger = get_logger(__name__)

# Refresh access tokens this many seconds before the server says they expire
TOKEN_EXPIRY_MARGIN = 60
TOKEN_SCOPES = "send_notification view_messages view_group admin_room"


class ChatApiClient:
    """Async client for the chat platform's REST API.

    Every call is made on behalf of one tenant. The tenant's OAuth client
    credentials are exchanged for an access token which is cached in process
    until shortly before it expires.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        if http_client is None:
            timeout = httpx.Timeout(CHAT_API_TIMEOUT) if CHAT_API_TIMEOUT else httpx.Timeout(None)
            http_client = httpx.AsyncClient(timeout=timeout)
        self.http_client = http_client
        # client_key -> (access token, expires at)
        self._tokens: Dict[str, Tuple[str, float]] = {}

    async def close(self):
        await self.http_client.aclose()

    def forget(self, client_key: str):
        """Drop the cached access token, used when a tenant is reinstalled or removed."""
        if self._tokens.pop(client_key, None):
            logger.debug(f"Dropped cached access token for tenant {client_key}")

    async def _access_token(self, client_info: ClientInfo) -> str:
        cached = self._tokens.get(client_info.client_key)
        if cached and cached[1] > time.time():
            return cached[0]

        logger.debug(f"Requesting access token for tenant {client_info.client_key}")
        body = await self._send(
            "POST",
            f"{client_info.api_url.rstrip('/')}/oauth/token",
            data={"grant_type": "client_credentials", "scope": TOKEN_SCOPES},
            auth=(client_info.oauth_id, client_info.oauth_secret),
        )
        token = body["access_token"]
        expires_in = int(body.get("expires_in", 3600))
        self._tokens[client_info.client_key] = (token, time.time() + expires_in - TOKEN_EXPIRY_MARGIN)
        return token

    async def _send(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.http_client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Chat API {method} {url} failed: {e}")
            raise RemoteApiError(f"Chat API {method} {url} failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"Chat API {method} {url} returned {response.status_code}: {body}")
            raise RemoteApiError(
                f"Chat API {method} {url} returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        if not response.content:
            return None
        return response.json()

    async def _call(self, client_info: ClientInfo, method: str, path: str, **kwargs) -> Any:
        token = await self._access_token(client_info)
        url = f"{client_info.api_url.rstrip('/')}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {token}"}
        return await self._send(method, url, headers=headers, **kwargs)

    async def add_room_webhook(self, client_info: ClientInfo, room_id: RoomId, hook: dict) -> dict:
        logger.info(f"Registering {hook.get('event')} webhook for room {room_id}")
        return await self._call(client_info, "POST", f"room/{room_id}/webhook", json=hook)

    async def remove_room_webhook(self, client_info: ClientInfo, room_id: RoomId, hook_id):
        logger.info(f"Removing webhook {hook_id} from room {room_id}")
        await self._call(client_info, "DELETE", f"room/{room_id}/webhook/{hook_id}")

    async def get_user(self, client_info: ClientInfo, user_id) -> dict:
        return await self._call(client_info, "GET", f"user/{user_id}")

    async def send_message(self, client_info: ClientInfo, room_id: RoomId, text: str, options: Optional[dict] = None, card: Optional[dict] = None):
        payload = {"message": text, "message_format": "text"}
        payload.update((options or {}).get("options", {}))
        if card:
            payload["card"] = card
        logger.debug(f"Sending notification to room {room_id}")
        await self._call(client_info, "POST", f"room/{room_id}/notification", json=payload)

    async def get_latest_history(self, client_info: ClientInfo, room_id: RoomId, limit: int) -> List[dict]:
        body = await self._call(client_info, "GET", f"room/{room_id}/history/latest", params={"max-results": limit})
        return (body or {}).get("items", [])

    async def update_glance(self, client_info: ClientInfo, room_id: RoomId, glance_key: str, glance: dict):
        logger.debug(f"Updating glance {glance_key} for room {room_id}")
        await self._call(
            client_info,
            "POST",
            f"addon/ui/room/{room_id}",
            json={"glance": [{"key": glance_key, "content": glance}]},
        )


chat_api = ChatApiClient()
