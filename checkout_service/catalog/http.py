from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from checkout_service.catalog.base import CatalogReader, product_from_document
from checkout_service.core.errors import CatalogUnavailableError
from checkout_service.core.metrics import CATALOG_LOOKUP_TOTAL
from checkout_service.schemas.product import Product


def _unwrap(body: Any) -> dict[str, Any] | None:
    # {"status": "success", "data": {"product": {...}}} or a bare product
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, dict) and isinstance(data.get("product"), dict):
        return data["product"]
    return body


class HttpCatalogReader(CatalogReader):
    """Catalog lookups through the catalog service's ``GET /products/{id}``."""

    backend = "http"

    def __init__(self, client: httpx.AsyncClient, service_name: str = "checkout"):
        self._client = client
        self._service_name = service_name

    @classmethod
    def from_url(cls, base_url: str, timeout: float = 5.0, service_name: str = "checkout") -> "HttpCatalogReader":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout), service_name=service_name)

    def _count(self, result: str) -> None:
        CATALOG_LOOKUP_TOTAL.labels(service=self._service_name, backend=self.backend, result=result).inc()

    async def lookup_by_id(self, product_id: str) -> Product | None:
        try:
            resp = await self._client.get(f"/products/{product_id}")
        except httpx.RequestError as e:
            logger.error(
                "Connection error to Catalog Service for product '{product_id}': {error}",
                product_id=product_id,
                error=str(e),
            )
            self._count("error")
            raise CatalogUnavailableError() from e

        if resp.status_code == 404:
            logger.info("Product '{product_id}' not found in Catalog Service", product_id=product_id)
            self._count("not_found")
            return None

        if resp.status_code >= 400:
            logger.error(
                "Catalog Service error {status_code} for product '{product_id}': {body}",
                status_code=resp.status_code,
                product_id=product_id,
                body=resp.text[:200],
            )
            self._count("error")
            raise CatalogUnavailableError()

        try:
            doc = _unwrap(resp.json())
        except ValueError as e:
            logger.error("Catalog Service returned invalid JSON for product '{product_id}'", product_id=product_id)
            self._count("error")
            raise CatalogUnavailableError() from e

        if doc is None:
            logger.error("Catalog Service returned a non-object payload for product '{product_id}'", product_id=product_id)
            self._count("error")
            raise CatalogUnavailableError()

        self._count("found")
        return product_from_document(product_id, doc)

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Catalog Service HTTP client closed")
