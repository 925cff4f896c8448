"""
Cache Package

Redis-backed existence facts, entity cache and work queue.
"""

from .redis_cache import (
    QUEUE_KEY,
    ExistenceKind,
    ExistenceResult,
    RedisCache,
)

__all__ = [
    "QUEUE_KEY",
    "ExistenceKind",
    "ExistenceResult",
    "RedisCache",
]
