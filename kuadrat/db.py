"""
Storage Module - Redis Client and Key Layout

Provides:
- Sync Upstash Redis client (singleton) used as durable cart storage
- Key names for the two persisted cart entries
- Inactivity window configuration (also used as the Redis key expiry)
"""

import os
from datetime import timedelta
from typing import Optional

from upstash_redis import Redis


# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


CART_INACTIVITY_DAYS = _env_int("CART_INACTIVITY_DAYS", 10)


_sync_redis_client: Optional[Redis] = None


def get_redis_sync() -> Redis:
    """
    Get sync Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _sync_redis_client

    if _sync_redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _sync_redis_client = Redis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _sync_redis_client


class RedisKeys:
    """Key names for persisted cart state."""

    CART = "kuadrat_cart"  # kuadrat_cart[:{session_id}]
    CART_TIMESTAMP = "kuadrat_cart_timestamp"  # kuadrat_cart_timestamp[:{session_id}]

    @staticmethod
    def cart_key(session_id: Optional[str] = None) -> str:
        return f"{RedisKeys.CART}:{session_id}" if session_id else RedisKeys.CART

    @staticmethod
    def cart_timestamp_key(session_id: Optional[str] = None) -> str:
        return f"{RedisKeys.CART_TIMESTAMP}:{session_id}" if session_id else RedisKeys.CART_TIMESTAMP


def cart_inactivity_window() -> timedelta:
    """Idle period after which a persisted cart is discarded."""
    return timedelta(days=CART_INACTIVITY_DAYS)
