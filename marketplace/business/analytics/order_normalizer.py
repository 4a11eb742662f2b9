"""
Order normalization for vendor analytics.

Vendor sales live in two shapes: ``VendorOrder`` rows (one per vendor per
checkout) and lines on legacy ``Order`` rows tagged with a vendor or an
assigned vendor. Both are flattened into ``NormalizedOrder`` records so the
statistics code never has to care where an order came from.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import selectinload

from marketplace import db
from marketplace.data.orders.order import Order, OrderItem
from marketplace.data.orders.vendor_order import VendorOrder

VENDOR_ORDER = 'vendor_order'
LEGACY_ORDER = 'legacy_order'


@dataclass
class NormalizedLine:
    product_id: Optional[int]
    title: str
    price: float
    quantity: int

    @property
    def total(self) -> float:
        return (self.price or 0) * (self.quantity or 0)


@dataclass
class NormalizedOrder:
    id: int
    order_number: str
    status: str
    total_amount: float
    created_at: datetime
    order_type: str
    delivered_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    cancelled_by: Optional[str] = None
    items: List[NormalizedLine] = field(default_factory=list)

    @property
    def units(self) -> int:
        return sum(line.quantity or 0 for line in self.items)

    @property
    def completed_at(self) -> datetime:
        """Delivery time, falling back to creation for orders delivered before it was recorded."""
        return self.delivered_at or self.created_at

    @property
    def customer_key(self) -> Optional[str]:
        return self.customer_email or self.customer_name


def normalize_status(value: Optional[str]) -> str:
    return (value or '').strip().lower().replace(' ', '_')


def _from_vendor_order(vendor_order: VendorOrder) -> NormalizedOrder:
    return NormalizedOrder(
        id=vendor_order.id,
        order_number=vendor_order.order_number,
        status=normalize_status(vendor_order.status),
        total_amount=vendor_order.total_amount or 0,
        created_at=vendor_order.created_at,
        delivered_at=vendor_order.delivered_at,
        order_type=VENDOR_ORDER,
        customer_name=vendor_order.customer_name,
        customer_email=vendor_order.customer_email,
        cancelled_by=vendor_order.cancelled_by,
        items=[NormalizedLine(item.product_id, item.title, item.price, item.quantity)
               for item in vendor_order.items],
    )


def _from_legacy_order(order: Order, vendor_id: int) -> Optional[NormalizedOrder]:
    lines = [line for line in order.items if line.belongs_to_vendor(vendor_id)]
    if not lines:
        return None
    return NormalizedOrder(
        id=order.id,
        order_number=order.order_number,
        status=normalize_status(order.status),
        total_amount=sum(line.item_total for line in lines),
        created_at=order.created_at,
        delivered_at=order.delivered_at,
        order_type=LEGACY_ORDER,
        customer_name=order.customer_name or order.name,
        customer_email=order.email,
        cancelled_by=order.cancelled_by,
        items=[NormalizedLine(line.product_id, line.title, line.price, line.quantity) for line in lines],
    )


def load_vendor_orders(vendor_id: int) -> List[NormalizedOrder]:
    """
    All of a vendor's orders, newest first.

    A legacy order that has already been split into a VendorOrder for this
    vendor is represented by that VendorOrder only.

    Args:
        vendor_id: Vendor whose sales are collected

    Returns:
        List of NormalizedOrder
    """
    vendor_orders = (VendorOrder.query
                     .options(selectinload(VendorOrder.items))
                     .filter(db.or_(VendorOrder.vendor_id == vendor_id,
                                    VendorOrder.legacy_vendor_id == vendor_id))
                     .all())
    split_parent_ids = {vo.parent_order_id for vo in vendor_orders if vo.parent_order_id is not None}

    legacy_query = (Order.query
                    .options(selectinload(Order.items))
                    .filter(Order.items.any(db.or_(OrderItem.vendor_id == vendor_id,
                                                   OrderItem.assigned_vendor_id == vendor_id))))
    if split_parent_ids:
        legacy_query = legacy_query.filter(Order.id.notin_(split_parent_ids))

    normalized = [_from_vendor_order(vo) for vo in vendor_orders]
    for order in legacy_query.all():
        entry = _from_legacy_order(order, vendor_id)
        if entry is not None:
            normalized.append(entry)

    normalized.sort(key=lambda entry: entry.created_at or datetime.min, reverse=True)
    return normalized
