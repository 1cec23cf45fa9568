"""
Shipping export for the fulfillment handoff.

UTF-8 text starting with a byte-order mark so spreadsheet apps pick the right
encoding, a fixed Korean header line, then one row per order. Fields carrying
a comma, quote or newline are quoted; every other row matches the plain
comma-joined layout exactly.
"""
import csv
from datetime import date
from io import StringIO
from typing import Iterable, Optional

from schemas import Order

BOM = "\ufeff"

HEADER = [
    "instagram ID",
    "이름",
    "전화번호",
    "받는분기타연락처",
    "받는분우편번호",
    "주소",
    "제품명",
    "사이즈",
    "수량",
    "배송메세지1",
]


def order_row(o: Order) -> list:
    return [
        o.instagram_id,
        o.name,
        o.phone,
        "",  # secondary contact
        "",  # postal code
        o.address,
        o.product_name,
        o.size,
        "1",
        o.message or "",
    ]


def encode(orders: Iterable[Order], include_header: bool = True) -> str:
    out = StringIO()
    writer = csv.writer(out, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    for o in orders:
        writer.writerow(order_row(o))
    rows = out.getvalue()
    if rows.endswith("\n"):
        rows = rows[:-1]
    head = ",".join(HEADER) + "\n" if include_header else ""
    return BOM + head + rows


def export_filename(collection_name: str, on: Optional[date] = None) -> str:
    return f"shipping_{collection_name}_{(on or date.today()).isoformat()}.csv"
