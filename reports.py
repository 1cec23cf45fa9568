from collections import Counter
from typing import Callable, Dict, List

from schemas import Order, OrderStatus, StatEntry

UNKNOWN = "Unknown"


def _ranked(orders: List[Order], label: Callable[[Order], str]) -> List[StatEntry]:
    # Counter keeps first-seen order and sorted() is stable, so ties stay in that order
    counts = Counter(label(o) for o in orders)
    total = len(orders) or 1
    entries = [
        StatEntry(name=name, count=count, percentage=round(100 * count / total, 1))
        for name, count in counts.items()
    ]
    return sorted(entries, key=lambda e: e.count, reverse=True)


def product_distribution(orders: List[Order]) -> List[StatEntry]:
    return _ranked(orders, lambda o: o.product_name or UNKNOWN)


def sku_ranking(orders: List[Order], top: int = 10) -> List[StatEntry]:
    return _ranked(orders, lambda o: f"{o.product_name} ({o.size})")[:top]


def summary(orders: List[Order]) -> Dict[str, int]:
    shipped = sum(1 for o in orders if o.status == OrderStatus.shipped)
    return {"total": len(orders), "preparing": len(orders) - shipped, "shipped": shipped}
