import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from storefront.config import Settings
from storefront.exceptions import RemoteStoreError, RemoteStoreNotConfigured
from storefront.remote.base import contains_pattern
from storefront.remote.factory import RemoteStoreFactory, create_remote_store
from storefront.remote.memory import InMemoryDataStore
from storefront.remote.postgrest import PostgrestDataStore, parse_content_range
from storefront.schemas.catalog import CatalogFilter, SortKey
from storefront.services.catalog import build_product_query

BASE_URL = "https://demo.supabase.co"


def _store(handler) -> PostgrestDataStore:
    return PostgrestDataStore(url=BASE_URL, api_key="anon-key", transport=httpx.MockTransport(handler))


def test_parse_content_range() -> None:
    assert parse_content_range("0-11/25") == 25
    assert parse_content_range("*/0") == 0
    assert parse_content_range("0-11/*") is None
    assert parse_content_range(None) is None


def test_select_translates_query_to_rest_params() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(
            200,
            json=[{"id": "1", "name": "Brass Ganesh Idol", "price": 899}],
            headers={"Content-Range": "0-0/1"},
        )

    async def scenario():
        async with _store(handler) as store:
            filters = CatalogFilter(search_text="ganesh", sort_key=SortKey.PRICE_HIGH)
            query = build_product_query(store, filters, category_id="c1").range(12, 12).with_count()
            return await store.select(query)

    result = asyncio.run(scenario())
    request = seen["request"]
    params = request.url.params

    assert request.method == "GET"
    assert request.url.path == "/rest/v1/products"
    assert params["select"] == "*, categories(name, slug)"
    assert params.get_list("price") == ["gte.0", "lte.5000"]
    assert params["category_id"] == "eq.c1"
    assert params["name"] == "ilike.*ganesh*"
    assert params["order"] == "price.desc"
    assert params["offset"] == "12"
    assert params["limit"] == "12"
    assert request.headers["Prefer"] == "count=exact"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert result.total_count == 1
    assert result.rows[0]["name"] == "Brass Ganesh Idol"


def test_escaped_wildcards_survive_ilike() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["name"] = request.url.params["name"]
        return httpx.Response(200, json=[])

    async def scenario():
        async with _store(handler) as store:
            await store.select(store.table("products").ilike("name", "%100\\%%"))

    asyncio.run(scenario())
    assert seen["name"] == "ilike.*100\\%*"


def test_insert_sends_json_and_uses_access_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        body = json.loads(request.content)
        return httpx.Response(201, json=[{**body[0], "id": "o1"}])

    async def scenario():
        async with _store(handler) as store:
            store.set_access_token("user-jwt")
            return await store.insert("orders", {"total_amount": Decimal("250.50"), "order_status": "pending"})

    rows = asyncio.run(scenario())
    request = seen["request"]
    assert request.method == "POST"
    assert json.loads(request.content) == [{"total_amount": 250.5, "order_status": "pending"}]
    assert request.headers["Prefer"] == "return=representation"
    assert request.headers["Authorization"] == "Bearer user-jwt"
    assert rows == [{"total_amount": 250.5, "order_status": "pending", "id": "o1"}]


def test_update_and_delete_filter_by_match() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=[{"id": "o1", "order_status": "shipped"}])

    async def scenario():
        async with _store(handler) as store:
            updated = await store.update("orders", {"id": "o1"}, {"order_status": "shipped"})
            deleted = await store.delete("wishlists", {"user_id": "u1", "product_id": "p1"})
            return updated, deleted

    updated, deleted = asyncio.run(scenario())
    patch, delete = requests
    assert patch.method == "PATCH"
    assert patch.url.params["id"] == "eq.o1"
    assert updated == [{"id": "o1", "order_status": "shipped"}]
    assert delete.url.params["user_id"] == "eq.u1"
    assert delete.url.params["product_id"] == "eq.p1"
    assert deleted == []


def test_error_response_becomes_remote_store_error(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})

    async def scenario():
        async with _store(handler) as store:
            await store.insert("wishlists", {"user_id": "u1", "product_id": "p1"})

    with pytest.raises(RemoteStoreError) as excinfo:
        asyncio.run(scenario())
    error = excinfo.value
    assert error.status_code == 409
    assert error.code == "23505"
    assert error.is_conflict
    assert str(error) == "duplicate key value"
    assert any(record.getMessage() == "remote_call_error" for record in caplog.records)


def test_transport_error_becomes_remote_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with _store(handler) as store:
            await store.select(store.table("categories"))

    with pytest.raises(RemoteStoreError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code is None
    assert not excinfo.value.is_conflict


def test_missing_configuration(monkeypatch) -> None:
    monkeypatch.setattr("storefront.config._settings", Settings(supabase_url=None, supabase_key=None))
    with pytest.raises(RemoteStoreNotConfigured):
        PostgrestDataStore()
    with pytest.raises(RemoteStoreNotConfigured):
        PostgrestDataStore(url=BASE_URL)


def test_factory_selects_backend() -> None:
    assert isinstance(RemoteStoreFactory.create("memory"), InMemoryDataStore)
    with pytest.raises(ValueError):
        RemoteStoreFactory.create("carrier-pigeon")

    settings = Settings(remote_backend="postgrest", supabase_url=BASE_URL, supabase_key="anon-key")
    store = create_remote_store(settings)
    assert isinstance(store, PostgrestDataStore)
    asyncio.run(store.close())


def test_search_star_is_not_sent_as_a_url_wildcard() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["name"] = request.url.params["name"]
        return httpx.Response(200, json=[])

    async def scenario():
        async with _store(handler) as store:
            await store.select(store.table("products").ilike("name", contains_pattern("5*")))

    asyncio.run(scenario())
    assert seen["name"] == "ilike.*5_*"
