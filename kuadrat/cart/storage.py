"""Durable key-value storage for cart state."""
from typing import Dict, Mapping, Optional, Protocol

from kuadrat.db import get_redis_sync


class CartStorage(Protocol):
    """String-valued key-value store the cart persists into."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set_many(self, values: Mapping[str, str], ttl: Optional[int] = None) -> None:
        """Write all values together: either every key is updated or none is."""
        ...

    def delete(self, *keys: str) -> None:
        ...


class RedisCartStorage:
    """Cart storage on Upstash Redis. Keys expire after `ttl` seconds when given."""

    def __init__(self, redis=None):
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis_sync()
            except ValueError as e:
                raise ValueError(
                    f"Redis not available: {e}. Check UPSTASH_REDIS_REST_URL "
                    "and UPSTASH_REDIS_REST_TOKEN environment variables."
                )
        return self._redis

    def get(self, key: str) -> Optional[str]:
        value = self.redis.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set_many(self, values: Mapping[str, str], ttl: Optional[int] = None) -> None:
        # MULTI/EXEC so cart data and its timestamp never drift apart
        tx = self.redis.multi()
        for key, value in values.items():
            if ttl:
                tx.set(key, value, ex=ttl)
            else:
                tx.set(key, value)
        tx.exec()

    def delete(self, *keys: str) -> None:
        if keys:
            self.redis.delete(*keys)


class InMemoryStorage:
    """Process-local storage. TTLs are not enforced; the cart checks its own timestamp."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, values: Mapping[str, str], ttl: Optional[int] = None) -> None:
        self.data.update(values)

    def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)
