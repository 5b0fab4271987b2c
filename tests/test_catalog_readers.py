from decimal import Decimal

import httpx
import pytest
from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo.errors import ServerSelectionTimeoutError

from checkout_service.catalog.http import HttpCatalogReader
from checkout_service.catalog.mongo import MongoCatalogReader
from checkout_service.core.errors import CATALOG_UNAVAILABLE_MSG, CatalogUnavailableError

from conftest import LAPTOP_ID, MISSING_ID


class FakeCollection:
    """Just enough of a Motor collection for ``find_one``."""

    def __init__(self, docs=(), error=None):
        self.docs = {doc["_id"]: doc for doc in docs}
        self.error = error
        self.queries = []

    async def find_one(self, query, projection=None):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.docs.get(query["_id"])


class TestMongoCatalogReader:
    async def test_found_product_is_converted(self):
        collection = FakeCollection([
            {"_id": ObjectId(LAPTOP_ID), "sku": "TEST-LT-001", "name": "Test Laptop", "price": 1000.0, "category": "Electronics"},
        ])
        reader = MongoCatalogReader(collection)

        product = await reader.lookup_by_id(LAPTOP_ID)

        assert product.id == LAPTOP_ID
        assert product.sku == "TEST-LT-001"
        assert product.price == Decimal("1000.0")

    async def test_decimal128_price(self):
        collection = FakeCollection([{"_id": ObjectId(LAPTOP_ID), "price": Decimal128("19.99")}])

        product = await MongoCatalogReader(collection).lookup_by_id(LAPTOP_ID)

        assert product.price == Decimal("19.99")

    async def test_float_price_keeps_its_text_form(self):
        collection = FakeCollection([{"_id": ObjectId(LAPTOP_ID), "price": 0.1}])

        product = await MongoCatalogReader(collection).lookup_by_id(LAPTOP_ID)

        assert product.price == Decimal("0.1")

    async def test_missing_product_is_none(self):
        assert await MongoCatalogReader(FakeCollection()).lookup_by_id(MISSING_ID) is None

    async def test_non_object_id_is_none_without_query(self):
        collection = FakeCollection()

        assert await MongoCatalogReader(collection).lookup_by_id("zzz") is None
        assert collection.queries == []

    async def test_store_error_is_transient(self):
        reader = MongoCatalogReader(
            FakeCollection(error=ServerSelectionTimeoutError("catalog_mongo:27017: [Errno -2] Name or service not known"))
        )

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await reader.lookup_by_id(LAPTOP_ID)
        assert exc_info.value.message == CATALOG_UNAVAILABLE_MSG
        assert "catalog_mongo" not in str(exc_info.value)

    async def test_document_without_price(self):
        reader = MongoCatalogReader(FakeCollection([{"_id": ObjectId(LAPTOP_ID), "name": "Broken"}]))

        with pytest.raises(CatalogUnavailableError):
            await reader.lookup_by_id(LAPTOP_ID)

    @pytest.mark.parametrize("price", [1e30, Decimal128("1E+40"), "10000000000", -5, "NaN", "Infinity"])
    async def test_unstorable_price_is_rejected(self, price):
        reader = MongoCatalogReader(FakeCollection([{"_id": ObjectId(LAPTOP_ID), "price": price}]))

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await reader.lookup_by_id(LAPTOP_ID)
        assert exc_info.value.message == CATALOG_UNAVAILABLE_MSG

    async def test_largest_storable_price(self):
        collection = FakeCollection([{"_id": ObjectId(LAPTOP_ID), "price": Decimal128("9999999999.99")}])

        product = await MongoCatalogReader(collection).lookup_by_id(LAPTOP_ID)

        assert product.price == Decimal("9999999999.99")


def _reader(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://catalog")
    return HttpCatalogReader(client)


class TestHttpCatalogReader:
    async def test_wrapped_product_payload(self):
        def handler(request):
            assert request.url.path == f"/products/{LAPTOP_ID}"
            return httpx.Response(
                200,
                json={"status": "success", "data": {"product": {"_id": LAPTOP_ID, "sku": "TEST-LT-001", "price": 1000}}},
            )

        reader = _reader(handler)
        product = await reader.lookup_by_id(LAPTOP_ID)
        await reader.close()

        assert product.price == Decimal("1000")
        assert product.sku == "TEST-LT-001"

    async def test_bare_product_payload(self):
        reader = _reader(lambda request: httpx.Response(200, json={"id": LAPTOP_ID, "price": "12.50"}))

        product = await reader.lookup_by_id(LAPTOP_ID)

        assert product.price == Decimal("12.50")

    async def test_404_is_none(self):
        reader = _reader(lambda request: httpx.Response(404, json={"status": "fail"}))

        assert await reader.lookup_by_id(MISSING_ID) is None

    async def test_server_error_is_transient(self):
        reader = _reader(lambda request: httpx.Response(502, text="upstream 10.0.3.7 db=catalog_prod stacktrace"))

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await reader.lookup_by_id(LAPTOP_ID)
        assert exc_info.value.message == CATALOG_UNAVAILABLE_MSG
        assert "catalog_prod" not in str(exc_info.value)

    async def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await _reader(handler).lookup_by_id(LAPTOP_ID)
        assert exc_info.value.message == CATALOG_UNAVAILABLE_MSG

    async def test_invalid_json_is_transient(self):
        reader = _reader(lambda request: httpx.Response(200, content=b"<html>", headers={"Content-Type": "text/html"}))

        with pytest.raises(CatalogUnavailableError):
            await reader.lookup_by_id(LAPTOP_ID)
