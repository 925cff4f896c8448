"""
Redis Cache

Typed facade over Redis holding existence facts, cached entities and the
cross-process work queue. Existence and entity operations are advisory:
failures are logged and reported as cache misses. Queue operations are
not, since the pipeline cannot run without its queue.
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass
from enum import Enum
import json

import redis.asyncio as redis
from redis.exceptions import RedisError

from jobpipeline.core.config import Settings
from jobpipeline.core.exceptions import QueueUnavailableError
from jobpipeline.utils.logger import get_logger

logger = get_logger(__name__)


QUEUE_KEY = "job_processing_queue"

# Membership set kept beside each list so duplicate pushes are rejected
# atomically inside Redis instead of by a client-side LPOS scan.
_PUSH_UNIQUE_LUA = """
if redis.call('SADD', KEYS[2], ARGV[1]) == 1 then
    redis.call('LPUSH', KEYS[1], ARGV[1])
    return 1
end
return 0
"""

_POP_LUA = """
local value = redis.call('RPOP', KEYS[1])
if value then
    redis.call('SREM', KEYS[2], value)
end
return value
"""


class ExistenceKind(Enum):
    """Entity kinds that carry existence facts."""
    POSTING = "job"
    COMPANY = "company"


@dataclass(frozen=True)
class ExistenceResult:
    """Outcome of an existence lookup. `known=False` means a cache miss."""
    exists: bool
    known: bool


UNKNOWN = ExistenceResult(exists=False, known=False)


def existence_key(kind: ExistenceKind, key: str) -> str:
    return f"{kind.value}_exists:{key}"


def entity_key(kind: str, key: str) -> str:
    return f"{kind}:name:{key}"


def members_key(list_key: str) -> str:
    return f"{list_key}:members"


class RedisCache:
    """Redis-backed cache with two TTL classes and a deduplicated FIFO queue."""

    def __init__(
        self,
        client: redis.Redis,
        existence_ttl: int = 300,
        entity_ttl: int = 3600
    ) -> None:
        """
        Initialize the cache.

        Args:
            client: Redis client created with ``decode_responses=True``
            existence_ttl: Short TTL in seconds for existence facts
            entity_ttl: Long TTL in seconds for materialized entities
        """
        self.client = client
        self.existence_ttl = existence_ttl
        self.entity_ttl = entity_ttl
        self._push_unique = client.register_script(_PUSH_UNIQUE_LUA)
        self._pop = client.register_script(_POP_LUA)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCache":
        """Build a cache from application settings."""
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD or None,
            db=settings.REDIS_DB,
            decode_responses=True,
        )
        return cls(
            client,
            existence_ttl=settings.REDIS_JOB_EXISTS_TTL,
            entity_ttl=settings.REDIS_CACHE_TTL,
        )

    async def ping(self) -> None:
        """Verify connectivity; the pipeline cannot start without Redis."""
        try:
            await self.client.ping()
        except RedisError as e:
            raise QueueUnavailableError(f"Redis connection failed: {e}")
        logger.info("Redis cache connected")

    async def close(self) -> None:
        await self.client.aclose()

    # Existence facts

    async def get_existence(self, kind: ExistenceKind, key: str) -> ExistenceResult:
        """Read an existence fact. Misses and errors both yield ``known=False``."""
        try:
            value = await self.client.get(existence_key(kind, key))
        except RedisError as e:
            logger.warning("Cache existence read failed", kind=kind.value, key=key, error=str(e))
            return UNKNOWN

        if value is None:
            return UNKNOWN
        return ExistenceResult(exists=value == "true", known=True)

    async def set_existence(
        self,
        kind: ExistenceKind,
        key: str,
        exists: bool,
        ttl: Optional[int] = None
    ) -> None:
        """Write an existence fact with the short TTL."""
        ttl = ttl or self.existence_ttl
        try:
            await self.client.set(
                existence_key(kind, key),
                "true" if exists else "false",
                ex=ttl,
            )
        except RedisError as e:
            logger.warning("Cache existence write failed", kind=kind.value, key=key, error=str(e))
            return
        logger.debug("Cached existence", kind=kind.value, key=key, exists=exists, ttl=ttl)

    async def set_existence_many(
        self,
        kind: ExistenceKind,
        keys: Any,
        exists: bool = True,
        ttl: Optional[int] = None
    ) -> int:
        """Write many existence facts in one pipelined round-trip."""
        ttl = ttl or self.existence_ttl
        value = "true" if exists else "false"
        count = 0
        try:
            async with self.client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.set(existence_key(kind, str(key)), value, ex=ttl)
                    count += 1
                await pipe.execute()
        except RedisError as e:
            logger.warning("Cache bulk existence write failed", kind=kind.value, error=str(e))
            return 0
        return count

    async def invalidate_existence(self, kind: ExistenceKind, key: str) -> None:
        try:
            await self.client.delete(existence_key(kind, key))
        except RedisError as e:
            logger.warning("Cache existence delete failed", kind=kind.value, key=key, error=str(e))

    # Entities

    async def get_entity(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        """Read a JSON-encoded entity, or None on miss, error or bad JSON."""
        try:
            raw = await self.client.get(entity_key(kind, key))
        except RedisError as e:
            logger.warning("Cache entity read failed", kind=kind, key=key, error=str(e))
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Cache entity decode failed", kind=kind, key=key, error=str(e))
            return None

    async def set_entity(
        self,
        kind: str,
        key: str,
        record: Dict[str, Any],
        ttl: Optional[int] = None
    ) -> None:
        """Write a JSON-encoded entity with the long TTL."""
        ttl = ttl or self.entity_ttl
        try:
            await self.client.set(entity_key(kind, key), json.dumps(record), ex=ttl)
        except RedisError as e:
            logger.warning("Cache entity write failed", kind=kind, key=key, error=str(e))
            return
        logger.debug("Cached entity", kind=kind, key=key, ttl=ttl)

    # Queue

    async def list_push_unique(self, list_key: str, value: str) -> bool:
        """
        Enqueue ``value`` unless it is already queued.

        Returns:
            bool: True if the value was added, False if it was a duplicate
        """
        try:
            added = await self._push_unique(keys=[list_key, members_key(list_key)], args=[value])
        except RedisError as e:
            raise QueueUnavailableError(f"Queue push failed: {e}")
        return bool(added)

    async def list_pop(self, list_key: str) -> Optional[str]:
        """Remove and return the oldest queued value."""
        try:
            return await self._pop(keys=[list_key, members_key(list_key)])
        except RedisError as e:
            raise QueueUnavailableError(f"Queue pop failed: {e}")

    async def list_length(self, list_key: str) -> int:
        try:
            return int(await self.client.llen(list_key))
        except RedisError as e:
            raise QueueUnavailableError(f"Queue length failed: {e}")

    async def clear_list(self, list_key: str) -> None:
        try:
            await self.client.delete(list_key, members_key(list_key))
        except RedisError as e:
            raise QueueUnavailableError(f"Queue clear failed: {e}")

    # Maintenance

    async def clear_prefix(self, prefix: str, batch_size: int = 500) -> int:
        """Delete every key starting with ``prefix``. Returns the number deleted."""
        deleted = 0
        batch = []
        try:
            async for key in self.client.scan_iter(match=f"{prefix}*", count=batch_size):
                batch.append(key)
                if len(batch) >= batch_size:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except RedisError as e:
            raise QueueUnavailableError(f"Cache clear failed for prefix {prefix}: {e}")
        logger.info("Cleared cache prefix", prefix=prefix, deleted=deleted)
        return deleted

    async def stats(self) -> Dict[str, Any]:
        """Return basic Redis statistics."""
        try:
            info = await self.client.info("stats")
            size = await self.client.dbsize()
        except RedisError as e:
            logger.warning("Redis stats failed", error=str(e))
            return {"connected": False, "error": str(e)}
        return {
            "connected": True,
            "keys": size,
            "keyspace_hits": info.get("keyspace_hits"),
            "keyspace_misses": info.get("keyspace_misses"),
        }
