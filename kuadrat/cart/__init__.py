"""Cart package: models, shipment aggregation, storage, and manager."""
from .models import (
    CartLine,
    ProductType,
    ShipmentGroup,
    ShippingMethodType,
    ShippingSelection,
    make_line_id,
)
from .schemas import CartEntry
from .service import CartManager, open_cart
from .shipping import group_shipments, total_shipping
from .storage import CartStorage, InMemoryStorage, RedisCartStorage

__all__ = [
    "CartEntry",
    "CartLine",
    "CartManager",
    "CartStorage",
    "InMemoryStorage",
    "ProductType",
    "RedisCartStorage",
    "ShipmentGroup",
    "ShippingMethodType",
    "ShippingSelection",
    "group_shipments",
    "make_line_id",
    "open_cart",
    "total_shipping",
]
