import asyncio
from decimal import Decimal

import pytest

from storefront.events import EventType
from storefront.exceptions import RemoteStoreError
from storefront.remote.memory import InMemoryDataStore
from storefront.schemas.catalog import CatalogFilter, CatalogMode, SortKey
from storefront.services.catalog import (
    CatalogBrowser,
    InfiniteScrollProvider,
    LoadState,
    OffsetPageProvider,
    build_product_query,
    total_pages,
)


CATEGORIES = [
    {"id": "c-idols", "name": "Idols", "slug": "idols"},
    {"id": "c-lamps", "name": "Lamps", "slug": "lamps"},
]


def _products(count: int, **extra) -> list[dict]:
    return [
        {
            "id": f"p{index:02d}",
            "name": f"Product {index:02d}",
            "price": 100 + index,
            "created_at": f"2024-01-{index:02d}T00:00:00+00:00",
            **extra,
        }
        for index in range(1, count + 1)
    ]


class RecordingStore(InMemoryDataStore):
    """Counts selects; optionally holds each one until released, or fails the next one."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.selects = []
        self.hold = False
        self.gates: list[asyncio.Event] = []
        self.fail_next = False

    async def select(self, query):
        self.selects.append(query)
        if self.fail_next:
            self.fail_next = False
            raise RemoteStoreError("connection reset", table=query.table)
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return await super().select(query)


def _browser(store, settings, **kwargs) -> CatalogBrowser:
    return CatalogBrowser(store, page_size=12, settings=settings, **kwargs)


def test_total_pages_arithmetic() -> None:
    assert total_pages(25, 12) == 3
    assert total_pages(24, 12) == 2
    assert total_pages(0, 12) == 0


def test_changing_category_resets_page() -> None:
    filters = CatalogFilter(page=3)
    changed = filters.with_changes(category="idols")
    assert changed.page == 1
    assert filters.with_changes(page=4).page == 4


def test_filter_rejects_inverted_price_bounds() -> None:
    with pytest.raises(ValueError):
        CatalogFilter(price_min=Decimal("500"), price_max=Decimal("100"))


def test_query_maps_sort_keys_and_filters(remote) -> None:
    filters = CatalogFilter(search_text="  Ganesh ", sort_key=SortKey.NAME_DESC)
    query = build_product_query(remote, filters, category_id="c-idols")

    ops = [(f.column, f.op, f.value) for f in query.filters]
    assert ("price", "gte", Decimal("0")) in ops
    assert ("price", "lte", Decimal("5000")) in ops
    assert ("category_id", "eq", "c-idols") in ops
    assert ("name", "ilike", "%Ganesh%") in ops
    assert (query.sort.column, query.sort.ascending) == ("name", False)

    newest = build_product_query(remote, CatalogFilter())
    assert (newest.sort.column, newest.sort.ascending) == ("created_at", False)


def test_offset_mode_pagination(settings) -> None:
    store = InMemoryDataStore({"products": _products(25)})
    browser = _browser(store, settings)

    async def scenario():
        await browser.load()
        first = [product.id for product in browser.products]
        await browser.go_to_page(3)
        return first

    first_page = asyncio.run(scenario())
    paged = browser.paged
    assert len(first_page) == 12
    assert paged.total_count == 25
    assert paged.total_pages == 3
    assert [product.id for product in browser.products] == ["p01"]
    assert paged.has_previous and not paged.has_next


def test_sort_price_high(settings) -> None:
    store = InMemoryDataStore(
        {
            "products": [
                {"id": "a", "name": "A", "price": 10},
                {"id": "b", "name": "B", "price": 50},
                {"id": "c", "name": "C", "price": 30},
            ]
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(sort_key=SortKey.PRICE_HIGH))

    assert [product.price for product in browser.products] == [50, 30, 10]


def test_search_is_case_insensitive_substring(settings) -> None:
    store = InMemoryDataStore(
        {
            "products": [
                {"id": "1", "name": "Brass Ganesh Idol", "price": 899},
                {"id": "2", "name": "Copper Kalash", "price": 499},
            ]
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(search_text="ganesh"))

    assert [product.name for product in browser.products] == ["Brass Ganesh Idol"]


def test_search_text_is_matched_literally(settings) -> None:
    store = InMemoryDataStore(
        {
            "products": [
                {"id": "1", "name": "Diya 100% Brass", "price": 99},
                {"id": "2", "name": "Diya 1000 Pack", "price": 199},
            ]
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(search_text="100%"))

    assert [product.id for product in browser.products] == ["1"]


def test_price_bounds_are_inclusive(settings) -> None:
    store = InMemoryDataStore({"products": _products(10)})
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(price_min=Decimal("103"), price_max=Decimal("105")))

    assert sorted(product.price for product in browser.products) == [103, 104, 105]


def test_category_slug_resolves_to_id(settings) -> None:
    store = InMemoryDataStore(
        {
            "categories": CATEGORIES,
            "products": _products(3, category_id="c-lamps") + [
                {"id": "idol", "name": "Brass Ganesh Idol", "price": 899, "category_id": "c-idols"}
            ],
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(category="idols"))

    assert [product.id for product in browser.products] == ["idol"]
    assert browser.products[0].category.slug == "idols"


def test_unknown_category_slug_applies_no_filter(settings) -> None:
    store = InMemoryDataStore({"categories": CATEGORIES, "products": _products(4, category_id="c-lamps")})
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(category="does-not-exist"))

    assert len(browser.products) == 4


def test_infinite_mode_stops_after_short_page(settings) -> None:
    store = RecordingStore({"products": _products(7)})
    browser = _browser(store, settings, mode=CatalogMode.INFINITE)

    async def scenario():
        await browser.load()
        return await browser.load_more()

    assert asyncio.run(scenario()) is False
    assert len(browser.products) == 7
    assert browser.infinite.exhausted
    assert len(store.selects) == 1


def test_infinite_mode_accumulates_pages_in_order(settings) -> None:
    store = RecordingStore({"products": _products(30)})
    browser = _browser(store, settings, mode=CatalogMode.INFINITE)

    async def scenario():
        await browser.load()
        await browser.load_more()
        await browser.load_more()
        await browser.load_more()

    asyncio.run(scenario())
    ids = [product.id for product in browser.products]
    assert len(ids) == 30
    assert len(set(ids)) == 30
    # newest first
    assert ids[0] == "p30"
    assert browser.infinite.cursor == 36
    assert len(store.selects) == 3
    assert browser.infinite.total_count == 30
    assert [query.count for query in store.selects] == [True, False, False]


def test_concurrent_load_more_is_ignored(settings) -> None:
    store = RecordingStore({"products": _products(30)})
    browser = _browser(store, settings, mode=CatalogMode.INFINITE)

    async def scenario():
        await browser.load()
        store.hold = True
        first = asyncio.create_task(browser.load_more())
        await asyncio.sleep(0)
        second = await browser.load_more()
        store.gates[0].set()
        return await first, second

    first, second = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert len(store.gates) == 1
    assert len(browser.products) == 24


def test_filter_change_discards_accumulated_pages(settings) -> None:
    store = InMemoryDataStore(
        {
            "categories": CATEGORIES,
            "products": _products(30, category_id="c-lamps")
            + [{"id": "idol", "name": "Idol", "price": 500, "category_id": "c-idols"}],
        }
    )
    browser = _browser(store, settings, mode=CatalogMode.INFINITE)

    async def scenario():
        await browser.load()
        await browser.load_more()
        assert len(browser.products) == 24
        await browser.set_filters(category="idols")

    asyncio.run(scenario())
    assert [product.id for product in browser.products] == ["idol"]
    assert browser.infinite.exhausted
    assert browser.filters.page == 1


def test_stale_response_is_discarded(settings) -> None:
    store = RecordingStore(
        {
            "products": [
                {"id": "1", "name": "Brass Ganesh Idol", "price": 899},
                {"id": "2", "name": "Copper Kalash", "price": 499},
            ]
        }
    )
    browser = _browser(store, settings)

    async def scenario():
        store.hold = True
        older = asyncio.create_task(browser.set_filters(search_text="ganesh"))
        await asyncio.sleep(0)
        newer = asyncio.create_task(browser.set_filters(search_text="kalash"))
        await asyncio.sleep(0)
        store.gates[1].set()
        newer_applied = await newer
        store.gates[0].set()
        older_applied = await older
        return older_applied, newer_applied

    older_applied, newer_applied = asyncio.run(scenario())
    assert newer_applied is True
    assert older_applied is False
    assert [product.name for product in browser.products] == ["Copper Kalash"]
    assert browser.state == LoadState.READY


def test_failed_load_more_keeps_rows_and_cursor(settings, emitter) -> None:
    store = RecordingStore({"products": _products(30)})
    browser = _browser(store, settings, mode=CatalogMode.INFINITE, emitter=emitter)

    async def scenario():
        await browser.load()
        store.fail_next = True
        failed = await browser.load_more()
        state_after_failure = browser.state
        cursor_after_failure = browser.infinite.cursor
        retried = await browser.retry()
        return failed, state_after_failure, cursor_after_failure, retried

    failed, state, cursor, retried = asyncio.run(scenario())
    assert failed is False
    assert state == LoadState.ERROR
    assert cursor == 12
    assert retried is True
    assert len(browser.products) == 24
    notices = [n for n in emitter.get_events() if n.type == EventType.CATALOG_LOAD_FAILED]
    assert len(notices) == 1
    assert notices[0].is_error


def test_failed_page_load_keeps_last_rendered_page(settings) -> None:
    store = RecordingStore({"products": _products(25)})
    browser = _browser(store, settings)

    async def scenario():
        await browser.load()
        store.fail_next = True
        await browser.go_to_page(2)

    asyncio.run(scenario())
    assert browser.state == LoadState.ERROR
    assert len(browser.products) == 12
    assert browser.products[0].id == "p25"
    assert browser.filters.page == 1
    assert browser.paged.page == 1
    assert browser.paged.has_next
    assert not browser.paged.has_previous

    assert asyncio.run(browser.retry()) is True
    assert browser.products[0].id == "p13"
    assert browser.filters.page == 2
    assert browser.paged.page == 2
    assert browser.paged.has_previous


def test_switching_mode_starts_over(settings) -> None:
    store = InMemoryDataStore({"products": _products(30)})
    browser = _browser(store, settings)

    async def scenario():
        await browser.load()
        await browser.go_to_page(2)
        await browser.switch_mode(CatalogMode.INFINITE)

    asyncio.run(scenario())
    assert browser.mode == CatalogMode.INFINITE
    assert browser.filters.page == 1
    assert browser.paged.products == []
    assert [product.id for product in browser.products][:1] == ["p30"]
    assert asyncio.run(browser.go_to_page(2)) is False


def test_malformed_rows_are_dropped(settings, caplog) -> None:
    store = InMemoryDataStore(
        {
            "products": [
                {"id": "ok", "name": "Good Lamp", "price": 100},
                {"id": "bad", "name": "", "price": 100},
            ]
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.load())

    assert [product.id for product in browser.products] == ["ok"]
    assert any("Dropping malformed products row" in r.getMessage() for r in caplog.records)


def test_categories_and_product_detail(settings) -> None:
    store = InMemoryDataStore(
        {
            "categories": list(reversed(CATEGORIES)),
            "products": [
                {
                    "id": "idol",
                    "name": "Brass Ganesh Idol",
                    "slug": "brass-ganesh-idol",
                    "price": 899,
                    "original_price": 1199,
                    "category_id": "c-idols",
                    "stock_status": "low_stock",
                }
            ],
        }
    )
    browser = _browser(store, settings)

    async def scenario():
        categories = await browser.load_categories()
        product = await browser.get_product_by_slug("brass-ganesh-idol")
        missing = await browser.get_product_by_slug("nothing-here")
        return categories, product, missing

    categories, product, missing = asyncio.run(scenario())
    assert [category.name for category in categories] == ["Idols", "Lamps"]
    assert product is not None and product.category.name == "Idols"
    assert product.discount_percent == 25
    assert product.in_stock
    assert missing is None


def test_providers_share_the_query_shape(remote) -> None:
    paged = OffsetPageProvider(remote, page_size=5)
    infinite = InfiniteScrollProvider(remote, page_size=5)
    assert paged.mode == CatalogMode.PAGED
    assert infinite.mode == CatalogMode.INFINITE
    with pytest.raises(ValueError):
        OffsetPageProvider(remote, page_size=0)


def test_star_in_search_matches_one_character(settings) -> None:
    store = InMemoryDataStore(
        {
            "products": [
                {"id": "1", "name": "5* Incense", "price": 99},
                {"id": "2", "name": "Pack of 5", "price": 199},
            ]
        }
    )
    browser = _browser(store, settings)
    asyncio.run(browser.set_filters(search_text="5*", sort_key=SortKey.NAME_ASC))

    assert [product.id for product in browser.products] == ["1"]
