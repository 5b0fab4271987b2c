from __future__ import annotations

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from checkout_service.catalog.base import CatalogReader, product_from_document
from checkout_service.core.errors import CatalogUnavailableError
from checkout_service.core.metrics import CATALOG_LOOKUP_TOTAL
from checkout_service.schemas.product import Product

PRODUCT_PROJECTION = {"sku": 1, "name": 1, "price": 1, "category": 1}


class MongoCatalogReader(CatalogReader):
    backend = "mongo"

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        service_name: str = "checkout",
        client: AsyncIOMotorClient | None = None,
    ):
        self._collection = collection
        self._service_name = service_name
        self._client = client

    @classmethod
    def from_url(cls, mongo_url: str, collection_name: str, service_name: str = "checkout") -> "MongoCatalogReader":
        client = AsyncIOMotorClient(mongo_url)
        collection = client.get_default_database().get_collection(collection_name)
        logger.info(
            "Mongo catalog reader configured for collection '{collection}'",
            collection=collection_name,
        )
        return cls(collection, service_name=service_name, client=client)

    def _count(self, result: str) -> None:
        CATALOG_LOOKUP_TOTAL.labels(service=self._service_name, backend=self.backend, result=result).inc()

    async def lookup_by_id(self, product_id: str) -> Product | None:
        try:
            oid = ObjectId(product_id)
        except (InvalidId, TypeError):
            logger.warning(
                "Product id '{product_id}' is not an ObjectId; treating as not found",
                product_id=product_id,
            )
            self._count("not_found")
            return None

        try:
            doc = await self._collection.find_one({"_id": oid}, PRODUCT_PROJECTION)
        except PyMongoError as e:
            logger.error(
                "Mongo catalog lookup failed for product '{product_id}': {error}",
                product_id=product_id,
                error=str(e),
            )
            self._count("error")
            raise CatalogUnavailableError() from e

        if doc is None:
            logger.info("Product '{product_id}' not found in catalog", product_id=product_id)
            self._count("not_found")
            return None

        self._count("found")
        return product_from_document(product_id, doc)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Mongo catalog client closed")
