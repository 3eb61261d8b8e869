"""Cart models: lines, shipping selections and derived shipment groups."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from kuadrat.errors import (
    ERROR_INVALID_PRODUCT_TYPE,
    ERROR_INVALID_SHIPPING,
    ERROR_NEGATIVE_PRICE,
    ERROR_NON_POSITIVE_QUANTITY,
    InvalidCartEntry,
)
from kuadrat.services.money import multiply, to_decimal

Identifier = Union[int, str]


class ProductType(str, Enum):
    """Catalog a product belongs to."""
    ART = "art"  # Unique artwork
    OTHER = "other"  # Prints, books and other goods with variants


class ShippingMethodType(str, Enum):
    """How a shipping method hands goods over."""
    DELIVERY = "delivery"
    PICKUP = "pickup"


def now_ms() -> int:
    """Current UTC time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def make_line_id(
    product_id: Identifier,
    product_type: Union[ProductType, str],
    variant_id: Optional[Identifier] = None,
) -> str:
    """
    Derive the cart line id for a product, e.g. "art_12" or
    "other_7_variant_3".
    """
    try:
        type_value = ProductType(product_type).value
    except ValueError:
        raise InvalidCartEntry(ERROR_INVALID_PRODUCT_TYPE)
    if variant_id is not None and variant_id != "":
        return f"{type_value}_{product_id}_variant_{variant_id}"
    return f"{type_value}_{product_id}"


class ShippingSelection(BaseModel):
    """Shipping method chosen for a cart line, as offered by the shipping API."""
    model_config = ConfigDict(frozen=True)

    method_id: Identifier
    method_name: str = ""
    method_type: ShippingMethodType = ShippingMethodType.DELIVERY
    cost_per_shipment: Decimal = Field(default=Decimal("0"), ge=0)
    max_items_per_shipment: int = Field(default=1, ge=1)
    estimated_days: Optional[Union[int, str]] = None
    pickup_address: Optional[str] = None
    delivery_postal_code: Optional[str] = None  # Method only serves this postal code

    @property
    def is_pickup(self) -> bool:
        return self.method_type == ShippingMethodType.PICKUP


@dataclass
class CartLine:
    """One distinct purchasable entry in the cart."""
    product_id: Identifier
    product_type: ProductType
    name: str
    unit_price: Decimal
    seller_id: Identifier
    quantity: int = 1
    seller_name: str = ""
    variant_id: Optional[Identifier] = None
    variant_key: Optional[str] = None
    basename: Optional[str] = None
    slug: Optional[str] = None
    shipping: Optional[ShippingSelection] = None
    added_at: int = 0
    id: str = field(init=False)

    def __post_init__(self):
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool) or self.quantity < 1:
            raise InvalidCartEntry(ERROR_NON_POSITIVE_QUANTITY)
        try:
            self.unit_price = to_decimal(self.unit_price)
        except ValueError:
            raise InvalidCartEntry(ERROR_NEGATIVE_PRICE)
        if self.unit_price < 0:
            raise InvalidCartEntry(ERROR_NEGATIVE_PRICE)
        if self.shipping is not None and not isinstance(self.shipping, ShippingSelection):
            raise InvalidCartEntry(ERROR_INVALID_SHIPPING)
        self.id = make_line_id(self.product_id, self.product_type, self.variant_id)
        self.product_type = ProductType(self.product_type)
        if not self.added_at:
            self.added_at = now_ms()

    @property
    def total_price(self) -> Decimal:
        """Price of all units, shipping excluded."""
        return multiply(self.unit_price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_type": self.product_type.value,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "variant_id": self.variant_id,
            "variant_key": self.variant_key,
            "basename": self.basename,
            "slug": self.slug,
            # Unset fields stay out so a restored selection compares equal to the saved one
            "shipping": self.shipping.model_dump(mode="json", exclude_unset=True) if self.shipping else None,
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from dictionary.

        Line invariants are checked again, so a stored line with a negative
        price, a quantity below 1 or a shipping cap below 1 is rejected.

        Raises:
            KeyError, TypeError or ValueError on malformed data
        """
        if not isinstance(data, dict):
            raise TypeError(f"stored line is not an object: {type(data).__name__}")
        shipping = data.get("shipping")
        return cls(
            product_id=data["product_id"],
            product_type=data["product_type"],
            name=data.get("name", ""),
            unit_price=data["unit_price"],
            seller_id=data["seller_id"],
            quantity=data.get("quantity", 1),
            seller_name=data.get("seller_name", ""),
            variant_id=data.get("variant_id"),
            variant_key=data.get("variant_key"),
            basename=data.get("basename"),
            slug=data.get("slug"),
            shipping=ShippingSelection.model_validate(shipping) if shipping else None,
            added_at=int(data.get("added_at") or 0),
        )


@dataclass
class ShipmentGroup:
    """
    Lines that ship together: same seller, same product type, same
    shipping method. Derived on read, never persisted.
    """
    seller_id: Identifier
    product_type: ProductType
    method_id: Identifier
    cost_per_shipment: Decimal
    max_items_per_shipment: int
    total_units: int = 0
    line_ids: List[str] = field(default_factory=list)

    @property
    def shipment_count(self) -> int:
        """Parcels needed to carry total_units under the per-shipment cap."""
        cap = max(1, self.max_items_per_shipment)
        return (self.total_units + cap - 1) // cap

    @property
    def total_shipping_cost(self) -> Decimal:
        return multiply(self.cost_per_shipment, self.shipment_count)

    def to_dict(self) -> dict:
        return {
            "seller_id": self.seller_id,
            "product_type": self.product_type.value,
            "method_id": self.method_id,
            "total_units": self.total_units,
            "max_items_per_shipment": self.max_items_per_shipment,
            "shipment_count": self.shipment_count,
            "cost_per_shipment": str(self.cost_per_shipment),
            "total_shipping_cost": str(self.total_shipping_cost),
            "line_ids": list(self.line_ids),
        }
