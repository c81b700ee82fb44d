"""Catalog record model and projection from raw upstream items."""

import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.constants import DEFAULT_PRICE, UNKNOWN_SKU


PRICE_QUANTUM = Decimal("0.01")

# Leading numeric prefix, e.g. "7 units" -> "7", "3.5e1x" -> "3.5e1"
_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class CatalogRecord(BaseModel):
    """One published catalog entry: exactly sku, stock and price."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sku: str
    stock: Annotated[int, Field(ge=0)]
    price: Annotated[str, Field(pattern=r"^-?\d+\.\d{2}$")]

    def to_json(self) -> str:
        """Serialize as compact JSON with fields in declaration order."""
        return self.model_dump_json()


def _leading_number(value: Any) -> Decimal | None:
    """Parse the numeric prefix of a raw value, or None if there is none."""
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int | float):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match:
            try:
                return Decimal(match.group(0).strip())
            except InvalidOperation:
                return None
    return None


def lenient_int(value: Any, default: int = 0) -> int:
    """Convert a loosely typed upstream value to an integer.

    Accepts ints, floats and numeric-prefixed strings; fractions are
    truncated. Anything else yields default.
    """
    number = _leading_number(value)
    if number is None or not number.is_finite():
        return default
    return int(number)


def to_stock(value: Any) -> int:
    """Convert a raw stock quantity to a non-negative integer (default 0)."""
    return max(0, lenient_int(value))


def to_price(value: Any) -> str:
    """Format a raw price with exactly two fraction digits (half up)."""
    if value is None:
        return DEFAULT_PRICE
    number = _leading_number(value)
    if number is None or not number.is_finite():
        return DEFAULT_PRICE
    try:
        return str(number.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return DEFAULT_PRICE


def project_item(raw: Any) -> CatalogRecord:
    """Project a raw upstream item onto a CatalogRecord.

    Extra upstream fields are dropped; non-mapping items project as empty.

    Args:
        raw: Item from the catalog response's result list.

    Returns:
        Projected record.
    """
    item: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    sku = item.get("sku")
    return CatalogRecord(
        sku=UNKNOWN_SKU if sku is None else str(sku),
        stock=to_stock(item.get("stock_qty")),
        price=to_price(item.get("price")),
    )
