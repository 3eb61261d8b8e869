"""
Kuadrat Cart Module

Shopping cart engine for the Kuadrat art marketplace storefront:
- cart: cart lines, shipment aggregation and persistence
- db: Upstash Redis client and key layout
- services.money: Decimal money helpers
- logging: centralized logging configuration

Note: Imports are lazy so that importing the package does not touch Redis
configuration until a cart is actually opened.
"""

__all__ = [
    "open_cart",
    "get_redis_sync",
]


def __getattr__(name):
    """Lazy attribute access for clean module loading."""
    if name == "open_cart":
        from kuadrat.cart import open_cart
        return open_cart
    elif name == "get_redis_sync":
        from kuadrat.db import get_redis_sync
        return get_redis_sync
    raise AttributeError(f"module 'kuadrat' has no attribute '{name}'")
