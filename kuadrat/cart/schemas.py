"""
Cart input models.

Validated before any mutation so that a bad entry never reaches the cart.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .models import CartLine, Identifier, ProductType, ShippingSelection


class CartEntry(BaseModel):
    """Product added to the cart by the storefront."""
    product_id: Identifier
    product_type: ProductType
    name: str = ""
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1, strict=True)
    seller_id: Identifier
    seller_name: str = ""
    variant_id: Optional[Identifier] = None
    variant_key: Optional[str] = None
    basename: Optional[str] = None
    slug: Optional[str] = None
    shipping: Optional[ShippingSelection] = None

    def to_line(self, added_at: int) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            product_type=self.product_type,
            name=self.name,
            unit_price=self.unit_price,
            seller_id=self.seller_id,
            quantity=self.quantity,
            seller_name=self.seller_name,
            variant_id=self.variant_id,
            variant_key=self.variant_key,
            basename=self.basename,
            slug=self.slug,
            shipping=self.shipping,
            added_at=added_at,
        )
