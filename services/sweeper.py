from backend import RedisBackend
from exceptions import StoreError
from logging_config import get_logger
from redis_keys import TENANT_ALL_PATTERN, TENANT_ROOM_TOKENS_PATTERN, TOKEN_KEY, TOKEN_PATTERN, tenant_pattern

logger = get_logger(__name__)


class TenantSweeper:
    """Best-effort removal of everything an uninstalled tenant left in the store.

    Failures are logged and skipped so one bad key does not keep the rest of
    the tenant around. A crash part way through leaves a partially cleaned
    tenant; running the sweep again finishes the job.
    """

    def __init__(self, store: RedisBackend):
        self.store = store

    async def _scan(self, pattern: str):
        try:
            return await self.store.keys(pattern)
        except StoreError as e:
            logger.error(f"Uninstall scan {pattern} failed: {e}")
            return []

    async def _delete(self, key: str) -> int:
        try:
            return await self.store.raw_delete(key)
        except StoreError as e:
            logger.error(f"Could not delete {key} during uninstall: {e}")
            return 0

    async def _sweep_tokens(self, tenant_key: str) -> int:
        deleted = 0
        for key in await self._scan(tenant_pattern(TENANT_ROOM_TOKENS_PATTERN, tenant_key)):
            try:
                token = await self.store.raw_get(key)
            except StoreError as e:
                logger.error(f"Could not read {key} during uninstall: {e}")
                continue
            if token:
                logger.debug(f"Removing token {token}")
                deleted += await self._delete(TOKEN_KEY.format(token=token))
            deleted += await self._delete(key)

        # Forward entries with no reverse entry, left by an interrupted token creation
        for key in await self._scan(TOKEN_PATTERN):
            try:
                context = await self.store.raw_get(key)
            except StoreError as e:
                logger.error(f"Could not read {key} during uninstall: {e}")
                continue
            if isinstance(context, dict) and context.get("clientKey") == tenant_key:
                logger.debug(f"Removing orphaned token entry {key}")
                deleted += await self._delete(key)
        return deleted

    async def sweep(self, tenant_key: str) -> int:
        logger.info(f"Removing installation: {tenant_key}")
        deleted = await self._sweep_tokens(tenant_key)
        for key in await self._scan(tenant_pattern(TENANT_ALL_PATTERN, tenant_key)):
            logger.debug(f"Removing key: {key}")
            deleted += await self._delete(key)
        logger.info(f"Installation {tenant_key} removed, {deleted} keys deleted")
        return deleted
