from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

from loguru import logger
from pydantic import ValidationError

from checkout_service.core.errors import CatalogUnavailableError
from checkout_service.schemas.product import Product


class CatalogReader(ABC):
    """Read-only view of the product catalog.

    ``lookup_by_id`` returns ``None`` when the product does not exist. Transport
    problems raise :class:`CatalogUnavailableError`.
    """

    backend: str = "abstract"

    @abstractmethod
    async def lookup_by_id(self, product_id: str) -> Product | None:
        ...

    async def close(self) -> None:
        return None


def to_decimal(value: Any) -> Decimal:
    # Decimal128 and floats both go through their text form
    if hasattr(value, "to_decimal"):
        return value.to_decimal()
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        logger.error("Catalog returned a non-numeric price: {value!r}", value=value)
        raise CatalogUnavailableError() from e


def product_from_document(product_id: str, doc: dict[str, Any]) -> Product:
    if doc.get("price") is None:
        logger.error("Catalog returned product '{product_id}' without a price", product_id=product_id)
        raise CatalogUnavailableError()
    try:
        return Product(
            id=product_id,
            sku=doc.get("sku"),
            name=doc.get("name"),
            price=to_decimal(doc["price"]),
            category=doc.get("category"),
        )
    except ValidationError as e:
        logger.error(
            "Bad product payload from Catalog for '{product_id}': {error}",
            product_id=product_id,
            error=str(e),
        )
        raise CatalogUnavailableError() from e
