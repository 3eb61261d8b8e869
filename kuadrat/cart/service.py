"""Cart manager: owns the cart lines of one session and keeps them persisted."""
import json
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from kuadrat.db import RedisKeys, cart_inactivity_window
from kuadrat.errors import (
    ERROR_CORRUPT_CART,
    ERROR_INVALID_ENTRY,
    ERROR_INVALID_QUANTITY,
    ERROR_STORAGE_UNAVAILABLE,
    InvalidCartEntry,
)
from kuadrat.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from kuadrat.services.money import format_money, round_money, to_float, total

from .models import (
    CartLine,
    Identifier,
    ProductType,
    ShipmentGroup,
    ShippingMethodType,
    ShippingSelection,
    make_line_id,
    now_ms,
)
from .schemas import CartEntry
from .shipping import group_shipments, total_shipping
from .storage import CartStorage, RedisCartStorage

logger = get_logger(__name__)

ShippingInput = Union[ShippingSelection, Mapping, None]


def _coerce_shipping(shipping: ShippingInput) -> Optional[ShippingSelection]:
    if shipping is None or isinstance(shipping, ShippingSelection):
        return shipping
    try:
        return ShippingSelection.model_validate(shipping)
    except ValidationError as e:
        raise InvalidCartEntry(f"{ERROR_INVALID_ENTRY}: {e}") from e


class CartManager:
    """
    Shopping cart of one storefront session.

    Features:
    - Lines keyed by product, type and variant; repeated adds merge quantities
    - Shipping aggregated per seller, product type and method
    - State written to storage after every mutation
    - Stored carts idle for longer than the inactivity window are discarded
    """

    def __init__(
        self,
        storage: CartStorage,
        session_id: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        inactivity_window: Optional[timedelta] = None,
    ):
        self._storage = storage
        self._session_id = session_id
        self._clock = clock or now_ms
        self._inactivity_window = inactivity_window or cart_inactivity_window()
        self._cart_key = RedisKeys.cart_key(session_id)
        self._timestamp_key = RedisKeys.cart_timestamp_key(session_id)
        self._lines: List[CartLine] = self._restore()

    # ==================== PERSISTENCE ====================

    @property
    def _window_ms(self) -> int:
        return int(self._inactivity_window.total_seconds() * 1000)

    @property
    def _ttl_seconds(self) -> int:
        """Storage expiry for both keys, equal to the inactivity window."""
        return int(self._inactivity_window.total_seconds())

    def _forget_stored(self) -> None:
        try:
            self._storage.delete(self._cart_key, self._timestamp_key)
        except Exception as e:
            logger.warning(
                f"{ERROR_STORAGE_UNAVAILABLE}: failed to delete cart keys: "
                f"{sanitize_string_for_logging(str(e), max_length=200)}"
            )

    def _restore(self) -> List[CartLine]:
        """Load stored lines; anything missing, stale or unreadable means an empty cart."""
        session = sanitize_id_for_logging(self._session_id)
        try:
            raw = self._storage.get(self._cart_key)
            stamp = self._storage.get(self._timestamp_key)
        except Exception as e:
            logger.error(
                f"{ERROR_STORAGE_UNAVAILABLE}: failed to read cart for session {session}: "
                f"{sanitize_string_for_logging(str(e), max_length=200)}"
            )
            return []

        if not raw or not stamp:
            return []

        try:
            last_mutation = int(stamp)
            data = json.loads(raw)
            if not isinstance(data, list):
                raise TypeError("stored cart is not a list")
            lines = [CartLine.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, RecursionError) as e:
            logger.warning(f"{ERROR_CORRUPT_CART} for session {session}: {sanitize_string_for_logging(str(e))}")
            self._forget_stored()
            return []

        if self._clock() - last_mutation >= self._window_ms:
            logger.info(f"Discarding cart for session {session} after inactivity")
            self._forget_stored()
            return []

        merged: List[CartLine] = []
        by_id = {}
        for line in lines:
            existing = by_id.get(line.id)
            if existing is None:
                by_id[line.id] = line
                merged.append(line)
            else:
                existing.quantity += line.quantity
        return merged

    def _persist(self) -> None:
        """Write lines and mutation time; an empty cart removes both keys."""
        try:
            if self._lines:
                payload = json.dumps([line.to_dict() for line in self._lines])
                self._storage.set_many(
                    {self._cart_key: payload, self._timestamp_key: str(self._clock())},
                    ttl=self._ttl_seconds,
                )
            else:
                self._storage.delete(self._cart_key, self._timestamp_key)
        except Exception as e:
            logger.error(
                f"{ERROR_STORAGE_UNAVAILABLE}: failed to save cart for session "
                f"{sanitize_id_for_logging(self._session_id)}: "
                f"{sanitize_string_for_logging(str(e), max_length=200)}"
            )

    # ==================== LOOKUPS ====================

    def _find(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self._lines if line.id == line_id), None)

    @property
    def lines(self) -> List[CartLine]:
        """Copy of the cart lines in insertion order."""
        return [replace(line) for line in self._lines]

    def is_in_cart(
        self, product_id: Identifier, product_type: ProductType, variant_id: Optional[Identifier] = None
    ) -> bool:
        return self._find(make_line_id(product_id, product_type, variant_id)) is not None

    def get_line(
        self, product_id: Identifier, product_type: ProductType, variant_id: Optional[Identifier] = None
    ) -> Optional[CartLine]:
        line = self._find(make_line_id(product_id, product_type, variant_id))
        return replace(line) if line else None

    def get_lines_by_seller(self, seller_id: Identifier) -> List[CartLine]:
        return [replace(line) for line in self._lines if line.seller_id == seller_id]

    def is_seller_in_cart(self, seller_id: Identifier) -> bool:
        return any(line.seller_id == seller_id for line in self._lines)

    def get_seller_shipping(self, seller_id: Identifier) -> Optional[ShippingSelection]:
        """Shipping of the seller's first line, if any."""
        line = next((line for line in self._lines if line.seller_id == seller_id), None)
        return line.shipping if line else None

    def get_seller_others_shipping(self, seller_id: Identifier) -> Optional[ShippingSelection]:
        """
        Shipping already chosen for the seller's 'other' goods.

        The storefront reuses it for further 'other' products of the same
        seller; artwork always gets its own selection.
        """
        line = next(
            (
                line for line in self._lines
                if line.seller_id == seller_id and line.product_type == ProductType.OTHER
            ),
            None,
        )
        return line.shipping if line else None

    # ==================== MUTATIONS ====================

    def add_line(self, entry: Union[CartEntry, Mapping, None] = None, **fields) -> CartLine:
        """
        Add a product to the cart.

        An existing line with the same id gets its quantity increased; its
        shipping selection is left as it was.

        Raises:
            InvalidCartEntry: quantity is not a positive integer, price is
                negative, or another field is malformed
        """
        if entry is None:
            entry = fields
        if not isinstance(entry, CartEntry):
            try:
                entry = CartEntry.model_validate(entry)
            except ValidationError as e:
                raise InvalidCartEntry(f"{ERROR_INVALID_ENTRY}: {e}") from e

        line_id = make_line_id(entry.product_id, entry.product_type, entry.variant_id)
        existing = self._find(line_id)
        if existing:
            existing.quantity += entry.quantity
            line = existing
        else:
            line = entry.to_line(added_at=self._clock())
            self._lines.append(line)

        self._persist()
        return replace(line)

    def remove_line(
        self, product_id: Identifier, product_type: ProductType, variant_id: Optional[Identifier] = None
    ) -> None:
        line_id = make_line_id(product_id, product_type, variant_id)
        self._lines = [line for line in self._lines if line.id != line_id]
        self._persist()

    def update_quantity(
        self,
        product_id: Identifier,
        product_type: ProductType,
        new_quantity: int,
        variant_id: Optional[Identifier] = None,
    ) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if not isinstance(new_quantity, int) or isinstance(new_quantity, bool):
            raise InvalidCartEntry(ERROR_INVALID_QUANTITY)
        if new_quantity <= 0:
            self.remove_line(product_id, product_type, variant_id)
            return

        line = self._find(make_line_id(product_id, product_type, variant_id))
        if line:
            line.quantity = new_quantity
        self._persist()

    def update_shipping(
        self,
        product_id: Identifier,
        product_type: ProductType,
        shipping: ShippingInput,
        variant_id: Optional[Identifier] = None,
    ) -> None:
        selection = _coerce_shipping(shipping)
        line = self._find(make_line_id(product_id, product_type, variant_id))
        if line:
            line.shipping = selection
        self._persist()

    def update_seller_shipping(self, seller_id: Identifier, shipping: ShippingInput) -> None:
        """Apply one shipping selection to every line of a seller, whatever the product type."""
        selection = _coerce_shipping(shipping)
        for line in self._lines:
            if line.seller_id == seller_id:
                line.shipping = selection
        self._persist()

    def clear(self) -> None:
        self._lines = []
        self._forget_stored()

    # ==================== TOTALS ====================

    def get_total_item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def get_subtotal(self) -> Decimal:
        """Products only, no shipping. Not rounded."""
        return total(line.total_price for line in self._lines)

    def get_shipment_groups(self) -> List[ShipmentGroup]:
        return group_shipments(self._lines)

    def get_total_shipping(self) -> Decimal:
        return total_shipping(self.get_shipment_groups())

    def get_total_price(self) -> Decimal:
        return self.get_subtotal() + self.get_total_shipping()

    # ==================== CHECKOUT ====================

    def has_delivery_shipping(self) -> bool:
        """True when at least one line needs a delivery address."""
        return any(
            line.shipping is not None and line.shipping.method_type == ShippingMethodType.DELIVERY
            for line in self._lines
        )

    def all_pickup_shipping(self) -> bool:
        return bool(self._lines) and all(
            line.shipping is not None and line.shipping.is_pickup for line in self._lines
        )

    def lines_missing_shipping(self) -> List[CartLine]:
        return [replace(line) for line in self._lines if line.shipping is None]

    def is_ready_for_checkout(self) -> bool:
        return bool(self._lines) and not self.lines_missing_shipping()

    def incompatible_lines(self, postal_code: str) -> List[CartLine]:
        """Delivery lines whose method does not serve the given postal code."""
        postal_code = (postal_code or "").strip()
        return [
            replace(line)
            for line in self._lines
            if line.shipping is not None
            and line.shipping.method_type == ShippingMethodType.DELIVERY
            and line.shipping.delivery_postal_code
            and line.shipping.delivery_postal_code != postal_code
        ]

    def to_order_items(self) -> List[dict]:
        """
        Order payload for the checkout collaborator: one item per unit.
        Variant ids are sent for 'other' goods only.
        """
        items = []
        for line in self._lines:
            item = {
                "type": line.product_type.value,
                "id": line.product_id,
                "shipping": line.shipping.model_dump(mode="json") if line.shipping else None,
            }
            if line.product_type == ProductType.OTHER:
                item["variant_id"] = line.variant_id
            items.extend(dict(item) for _ in range(line.quantity))
        return items

    def get_cart_summary(self, currency: str = "EUR") -> dict:
        """
        Cart summary for checkout and logs.

        Amounts are rounded to cents here only; `display` carries the
        formatted strings the storefront shows (e.g. "€170.00").
        """
        groups = self.get_shipment_groups()
        subtotal = self.get_subtotal()
        shipping = total_shipping(groups)
        grand_total = subtotal + shipping
        display = {
            "subtotal": format_money(subtotal, currency),
            "shipping": format_money(shipping, currency),
            "total": format_money(grand_total, currency),
        }

        if not self._lines:
            return {
                "is_empty": True,
                "total_items": 0,
                "items": [],
                "shipments": [],
                "subtotal": 0.0,
                "shipping": 0.0,
                "total": 0.0,
                "display": display,
            }

        return {
            "is_empty": False,
            "total_items": self.get_total_item_count(),
            "items": [
                {
                    "id": line.id,
                    "product_id": line.product_id,
                    "product_type": line.product_type.value,
                    "name": line.name,
                    "seller_id": line.seller_id,
                    "quantity": line.quantity,
                    "unit_price": to_float(round_money(line.unit_price)),
                    "total": to_float(round_money(line.total_price)),
                    "shipping_method": line.shipping.method_name if line.shipping else None,
                }
                for line in self._lines
            ],
            "shipments": [group.to_dict() for group in groups],
            "subtotal": to_float(round_money(subtotal)),
            "shipping": to_float(round_money(shipping)),
            "total": to_float(round_money(grand_total)),
            "display": display,
        }


def open_cart(
    session_id: Optional[str] = None,
    storage: Optional[CartStorage] = None,
    clock: Optional[Callable[[], int]] = None,
    inactivity_window: Optional[timedelta] = None,
) -> CartManager:
    """
    Open the cart of a storefront session, restoring persisted state.

    Defaults to Upstash Redis storage.
    """
    return CartManager(
        storage if storage is not None else RedisCartStorage(),
        session_id=session_id,
        clock=clock,
        inactivity_window=inactivity_window,
    )
