"""Catalog record model and projection of raw upstream items."""

from src.catalog.models import (
    CatalogRecord,
    lenient_int,
    project_item,
    to_price,
    to_stock,
)


__all__ = [
    "CatalogRecord",
    "lenient_int",
    "project_item",
    "to_price",
    "to_stock",
]
