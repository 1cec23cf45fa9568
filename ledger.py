"""
Order ledger operations for a single collection.

Every function takes the current order list and returns a new one; the caller
commits the result back into its Collection. Unknown order ids are never an
error: removes are no-ops and updates change nothing.
"""
import logging
import uuid
from datetime import date
from typing import Iterable, List, Optional, Tuple

from schemas import Order, OrderStatus

logger = logging.getLogger("seeding")

# Marks a line item added by hand from the admin table
DUPLICATE_DATE = "추가 제품"

EDITABLE_FIELDS = set(Order.model_fields) - {"id"}


def today() -> str:
    return date.today().isoformat()


def new_order_id() -> str:
    return uuid.uuid4().hex[:9]


def add(orders: List[Order], new_orders: Iterable[Order]) -> List[Order]:
    return list(orders) + list(new_orders)


def update_field(orders: List[Order], order_id: str, field: str, value) -> List[Order]:
    """Set one field on one order.

    Setting status to Shipped also stamps shipped_date. Setting it back to
    Preparing here leaves shipped_date alone; use bulk_status to clear it.
    """
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown order field: {field}")

    out = []
    for o in orders:
        if o.id == order_id:
            data = o.model_dump()
            data[field] = value
            if field == "status" and OrderStatus(value) == OrderStatus.shipped:
                data["shipped_date"] = today()
            o = Order.model_validate(data)
        out.append(o)
    return out


def bulk_status(orders: List[Order], order_ids: Iterable[str], status: OrderStatus) -> List[Order]:
    status = OrderStatus(status)
    ids = set(order_ids)
    stamp = today() if status == OrderStatus.shipped else None

    out = []
    changed = 0
    for o in orders:
        if o.id in ids:
            o = o.model_copy(update={"status": status, "shipped_date": stamp})
            changed += 1
        out.append(o)
    logger.info(f"Bulk status {status.value} applied to {changed} order(s)")
    return out


def duplicate(orders: List[Order], order_id: str) -> Tuple[List[Order], Optional[Order]]:
    """Prepend a copy of an order for manual re-entry of product and size.

    Returns (orders, copy); copy is None and orders unchanged when the id is unknown.
    """
    original = next((o for o in orders if o.id == order_id), None)
    if original is None:
        return list(orders), None

    copy = original.model_copy(update={
        "id": new_order_id(),
        "date": DUPLICATE_DATE,
        "product_name": "",
        "size": "",
    })
    return [copy] + list(orders), copy


def remove(orders: List[Order], order_id: str) -> List[Order]:
    return [o for o in orders if o.id != order_id]


def select(orders: List[Order], order_ids: Optional[Iterable[str]]) -> List[Order]:
    """Selected orders in ledger order; no selection means all orders."""
    ids = set(order_ids or [])
    if not ids:
        return list(orders)
    return [o for o in orders if o.id in ids]


def sort_orders(orders: List[Order], key: str, descending: bool = False) -> List[Order]:
    if key not in Order.model_fields:
        raise ValueError(f"Unknown order field: {key}")

    def sort_value(o: Order) -> str:
        v = getattr(o, key)
        if isinstance(v, OrderStatus):
            return v.value
        return str(v or "")

    return sorted(orders, key=sort_value, reverse=descending)
