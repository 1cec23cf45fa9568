"""
Catalog import: delimited text -> Product list.

Rows are `name, price, options, summary`, split on tab or comma. A row whose
name is empty or equals the header label is skipped, so a spreadsheet export
can be pasted in with its header row. Options use the `size{S|M|L}` notation.
"""
import logging
import re
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from schemas import Product

logger = logging.getLogger("seeding")

HEADER_NAME = "상품"

ROW_SPLIT = re.compile(r"\r?\n")
FIELD_SPLIT = re.compile(r"[\t,]")
OPTIONS_PATTERN = re.compile(r"size\{(.*)\}")


class CatalogRow(BaseModel):
    name: str = Field(..., min_length=1)
    price: int = 0
    options: List[str] = []
    summary: str = ""

    @field_validator("price", mode="before")
    @classmethod
    def lenient_price(cls, v):
        return parse_price(v)

    @field_validator("options", mode="before")
    @classmethod
    def options_spec(cls, v):
        if isinstance(v, list):
            return v
        return parse_options(v)


def new_id() -> str:
    return uuid.uuid4().hex[:9]


def parse_price(value) -> int:
    """Leading integer of `value`, or 0 when there is none."""
    if isinstance(value, int):
        return max(value, 0)
    m = re.match(r"\s*([+-]?\d+)", value or "")
    if not m:
        return 0
    return max(int(m.group(1)), 0)


def parse_options(spec: Optional[str]) -> List[str]:
    m = OPTIONS_PATTERN.search(spec or "")
    if not m:
        return []
    return m.group(1).split("|")


def parse_row(line: str) -> Optional[CatalogRow]:
    parts = FIELD_SPLIT.split(line)
    name = parts[0]
    if not name or name == HEADER_NAME:
        return None
    return CatalogRow(
        name=name,
        price=parts[1] if len(parts) > 1 else None,
        options=parts[2] if len(parts) > 2 else None,
        summary=parts[3] if len(parts) > 3 else "",
    )


def parse(raw_text: str) -> List[Product]:
    products = []
    for line in ROW_SPLIT.split(raw_text or ""):
        row = parse_row(line)
        if row is None:
            continue
        products.append(Product(id=new_id(), images=[], **row.model_dump()))
    logger.info(f"Parsed {len(products)} product(s) from catalog text")
    return products


def merge(existing: List[Product], imported: List[Product], replace: bool = False) -> List[Product]:
    if replace:
        return list(imported)
    return list(existing) + list(imported)
