"""
Shipment aggregation.

Lines from one seller, of one product type, using one shipping method travel
together: their units are packed into as few parcels as the method's
per-shipment cap allows, and each parcel is charged once.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from kuadrat.services.money import total

from .models import CartLine, Identifier, ProductType, ShipmentGroup

GroupKey = Tuple[Identifier, ProductType, Identifier]


def _has_shipping_method(line: CartLine) -> bool:
    return line.shipping is not None and line.shipping.method_id not in (None, "")


def group_shipments(lines: Iterable[CartLine]) -> List[ShipmentGroup]:
    """
    Partition lines by (seller, product type, shipping method).

    Lines without a shipping method are left out. Groups come back in the
    order their key is first seen.
    """
    groups: Dict[GroupKey, ShipmentGroup] = {}
    for line in lines:
        if not _has_shipping_method(line):
            continue
        key = (line.seller_id, line.product_type, line.shipping.method_id)
        group = groups.get(key)
        if group is None:
            # All lines of a group share the method, so the first one sets cost and cap
            group = ShipmentGroup(
                seller_id=line.seller_id,
                product_type=line.product_type,
                method_id=line.shipping.method_id,
                cost_per_shipment=line.shipping.cost_per_shipment,
                max_items_per_shipment=line.shipping.max_items_per_shipment,
            )
            groups[key] = group
        group.total_units += line.quantity
        group.line_ids.append(line.id)
    return list(groups.values())


def total_shipping(groups: Iterable[ShipmentGroup]) -> Decimal:
    """Shipping charged across all groups."""
    return total(group.total_shipping_cost for group in groups)
