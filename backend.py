import json
from contextlib import contextmanager
from typing import Any, List, Optional

import redis
import redis.asyncio as aioredis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from exceptions import StoreError
from logging_config import get_logger
from redis_keys import CLIENT_INFO_KEY, TENANT_PREFIX

logger = get_logger(__name__)


@contextmanager
def store_errors(operation: str, key: str):
    """Re-raise redis failures as StoreError so callers see one error type."""
    try:
        yield
    except redis.RedisError as e:
        logger.error(f"Redis {operation} failed for key {key}: {e}")
        raise StoreError(f"Redis {operation} failed for key {key}: {e}") from e


def _decode(value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


class RedisBackend:
    """Settings store over redis.

    Tenant scoped keys are stored as ``{tenant_key}:{key}`` so an uninstall can
    find everything a tenant owns with a prefix scan. The ``raw_*`` methods
    address keys verbatim and are used for the global token entries.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None):
        if client is None:
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
            client = aioredis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
        self.redis_client = client

    @staticmethod
    def tenant_key(key: str, tenant_key: str) -> str:
        return TENANT_PREFIX.format(tenant_key=tenant_key) + key

    async def ping(self) -> bool:
        with store_errors("ping", "-"):
            return bool(await self.redis_client.ping())

    async def close(self):
        await self.redis_client.aclose()

    async def get(self, key: str, tenant_key: str) -> Any:
        return await self.raw_get(self.tenant_key(key, tenant_key))

    async def set(self, key: str, value: Any, tenant_key: str):
        await self.raw_set(self.tenant_key(key, tenant_key), value)

    async def delete(self, key: str, tenant_key: str) -> int:
        return await self.raw_delete(self.tenant_key(key, tenant_key))

    async def raw_get(self, key: str) -> Any:
        with store_errors("get", key):
            value = await self.redis_client.get(key)
        logger.debug(f"Store get {key}: {'hit' if value is not None else 'miss'}")
        return _decode(value)

    async def raw_set(self, key: str, value: Any):
        with store_errors("set", key):
            await self.redis_client.set(key, json.dumps(value))
        logger.debug(f"Store set {key}")

    async def raw_delete(self, key: str) -> int:
        with store_errors("delete", key):
            deleted = await self.redis_client.delete(key)
        logger.debug(f"Store delete {key}: {deleted}")
        return deleted

    async def keys(self, pattern: str) -> List[str]:
        """All keys matching a glob pattern, collected with SCAN rather than KEYS."""
        with store_errors("scan", pattern):
            found = [key async for key in self.redis_client.scan_iter(match=pattern)]
        logger.debug(f"Store scan {pattern}: {len(found)} keys")
        return found

    async def save_client_info(self, client_info: dict):
        tenant = client_info["clientKey"]
        logger.info(f"Saving client info for tenant {tenant}")
        await self.set(CLIENT_INFO_KEY, client_info, tenant)

    async def get_client_info(self, tenant_key: str) -> Optional[dict]:
        return await self.get(CLIENT_INFO_KEY, tenant_key)


redis_backend = RedisBackend()
