"""Catalog query layer.

A :class:`CatalogFilter` is turned into one remote query, and the results
are presented either one page at a time (:class:`OffsetPageProvider`) or
as an accumulating sequence (:class:`InfiniteScrollProvider`). Both
providers consume the same filter object; :class:`CatalogBrowser` owns the
filter and switches between them only at mode-selection boundaries.

Every fetch is tagged with the provider's generation counter. Invalidating
a provider bumps the counter, so a response for an older filter that
arrives late is dropped instead of rendered.

Rows with equal sort keys come back in the backend's natural order; no
secondary sort key is applied, so their relative order is not guaranteed
to be stable across backends.
"""

from __future__ import annotations

import enum
import logging
import math
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config import Settings, get_settings
from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..exceptions import MalformedRowError, RemoteStoreError
from ..remote.base import QueryResult, RemoteDataStore, RemoteQuery, contains_pattern
from ..schemas.catalog import CatalogFilter, CatalogMode, Category, ProductSummary, SortKey
from ..schemas.rows import parse_row, parse_rows

logger = logging.getLogger(__name__)

PRODUCTS_TABLE = "products"
CATEGORIES_TABLE = "categories"
PRODUCT_COLUMNS = "*, categories(name, slug)"
DEFAULT_PAGE_SIZE = 12

SORT_COLUMNS: Dict[SortKey, Tuple[str, bool]] = {
    SortKey.NEWEST: ("created_at", False),
    SortKey.PRICE_LOW: ("price", True),
    SortKey.PRICE_HIGH: ("price", False),
    SortKey.NAME_ASC: ("name", True),
    SortKey.NAME_DESC: ("name", False),
}

CategoryResolver = Callable[[Optional[str]], Awaitable[Optional[str]]]


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def build_product_query(
    store: RemoteDataStore,
    filters: CatalogFilter,
    *,
    category_id: Optional[str] = None,
) -> RemoteQuery:
    """Translate filter state into a products query, without pagination."""
    column, ascending = SORT_COLUMNS[filters.sort_key]
    query = (
        store.table(PRODUCTS_TABLE)
        .select(PRODUCT_COLUMNS)
        .gte("price", filters.price_min)
        .lte("price", filters.price_max)
    )
    if category_id:
        query.eq("category_id", category_id)
    if filters.search_text:
        query.ilike("name", contains_pattern(filters.search_text))
    return query.order(column, ascending=ascending)


def total_pages(total_count: int, page_size: int) -> int:
    if total_count <= 0:
        return 0
    return math.ceil(total_count / page_size)


class ResultProvider(ABC):
    """One pagination strategy over the shared filter state."""

    mode: CatalogMode

    def __init__(
        self,
        store: RemoteDataStore,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        resolve_category: Optional[CategoryResolver] = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.store = store
        self.page_size = page_size
        self._resolve_category = resolve_category
        self._generation = 0
        self.filters: Optional[CatalogFilter] = None
        self.state = LoadState.IDLE
        self.error: Optional[RemoteStoreError] = None

    @property
    @abstractmethod
    def products(self) -> List[ProductSummary]:
        raise NotImplementedError

    @abstractmethod
    async def load(self, filters: CatalogFilter) -> bool:
        """Start over for ``filters``; returns False when nothing was applied."""
        raise NotImplementedError

    @abstractmethod
    def invalidate(self) -> None:
        """Drop loaded results and disown any request still in flight."""
        raise NotImplementedError

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _fetch(self, filters: CatalogFilter, offset: int, *, count: bool) -> QueryResult:
        category_id = None
        if self._resolve_category is not None:
            category_id = await self._resolve_category(filters.category)
        elif filters.category:
            category_id = filters.category
        query = build_product_query(self.store, filters, category_id=category_id)
        query.range(offset, self.page_size)
        if count:
            query.with_count()
        return await self.store.select(query)

    def _fail(self, exc: RemoteStoreError) -> None:
        self.state = LoadState.ERROR
        self.error = exc
        logger.warning(
            "Catalog %s load failed (trace_id=%s): %s",
            self.mode.value,
            exc.trace_id,
            exc,
        )


class OffsetPageProvider(ResultProvider):
    """Exactly one page of ``page_size`` rows plus the filter's total count."""

    mode = CatalogMode.PAGED

    def __init__(self, store: RemoteDataStore, **kwargs: Any) -> None:
        super().__init__(store, **kwargs)
        self._products: List[ProductSummary] = []
        self.total_count = 0
        # Requested but not yet applied; what `retry` re-issues after a failure.
        self.pending_filters: Optional[CatalogFilter] = None

    @property
    def products(self) -> List[ProductSummary]:
        return list(self._products)

    @property
    def page(self) -> int:
        return self.filters.page if self.filters is not None else 1

    @property
    def total_pages(self) -> int:
        return total_pages(self.total_count, self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def invalidate(self) -> None:
        self._next_generation()
        self._products = []
        self.total_count = 0
        self.filters = None
        self.pending_filters = None
        self.state = LoadState.IDLE
        self.error = None

    async def load(self, filters: CatalogFilter) -> bool:
        generation = self._next_generation()
        self.pending_filters = filters
        self.state = LoadState.LOADING
        self.error = None
        offset = (filters.page - 1) * self.page_size
        try:
            result = await self._fetch(filters, offset, count=True)
        except RemoteStoreError as exc:
            if self._is_current(generation):
                self._fail(exc)
            return False
        if not self._is_current(generation):
            logger.debug("Discarding stale catalog page for %s", filters.query_key())
            return False

        self._products = parse_rows(ProductSummary, result.rows, table=PRODUCTS_TABLE)
        self.total_count = result.total_count if result.total_count is not None else len(result.rows)
        self.filters = filters
        self.pending_filters = None
        self.state = LoadState.READY
        return True


class InfiniteScrollProvider(ResultProvider):
    """Appends ``page_size`` rows per fetch until a short page marks the end."""

    mode = CatalogMode.INFINITE

    def __init__(self, store: RemoteDataStore, **kwargs: Any) -> None:
        super().__init__(store, **kwargs)
        self._products: List[ProductSummary] = []
        self.cursor = 0
        self.exhausted = False
        self.in_flight = False
        # Matching rows for the filter, counted once on the first batch.
        self.total_count: Optional[int] = None

    @property
    def products(self) -> List[ProductSummary]:
        return list(self._products)

    @property
    def has_more(self) -> bool:
        return self.filters is not None and not self.exhausted

    def invalidate(self) -> None:
        self._next_generation()
        self._products = []
        self.cursor = 0
        self.exhausted = False
        self.in_flight = False
        self.filters = None
        self.total_count = None
        self.state = LoadState.IDLE
        self.error = None

    async def load(self, filters: CatalogFilter) -> bool:
        self.invalidate()
        self.filters = filters
        return await self.load_more()

    async def load_more(self) -> bool:
        """Fetch the next page; ignored while a fetch is in flight or at the end."""
        if self.filters is None or self.in_flight or self.exhausted:
            return False
        filters = self.filters
        generation = self._generation
        self.in_flight = True
        self.state = LoadState.LOADING
        self.error = None
        try:
            result = await self._fetch(filters, self.cursor, count=self.cursor == 0)
        except RemoteStoreError as exc:
            if self._is_current(generation):
                self.in_flight = False
                self._fail(exc)
            return False
        if not self._is_current(generation):
            logger.debug("Discarding stale catalog batch for %s", filters.query_key())
            return False

        self.in_flight = False
        self._products.extend(parse_rows(ProductSummary, result.rows, table=PRODUCTS_TABLE))
        if result.total_count is not None:
            self.total_count = result.total_count
        self.cursor += self.page_size
        if len(result.rows) < self.page_size:
            self.exhausted = True
        self.state = LoadState.READY
        return True


class CatalogBrowser:
    """Owns the filter state and the active result provider."""

    def __init__(
        self,
        store: RemoteDataStore,
        *,
        mode: CatalogMode = CatalogMode.PAGED,
        page_size: Optional[int] = None,
        filters: Optional[CatalogFilter] = None,
        emitter: Optional[EventEmitter] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store
        self.emitter = emitter
        size = page_size or settings.catalog_page_size or DEFAULT_PAGE_SIZE
        self._filters = filters or CatalogFilter(
            price_min=Decimal(settings.price_filter_min),
            price_max=Decimal(settings.price_filter_max),
        )
        self._categories: Optional[List[Category]] = None
        self._providers: Dict[CatalogMode, ResultProvider] = {
            CatalogMode.PAGED: OffsetPageProvider(
                store, page_size=size, resolve_category=self.resolve_category
            ),
            CatalogMode.INFINITE: InfiniteScrollProvider(
                store, page_size=size, resolve_category=self.resolve_category
            ),
        }
        self._mode = CatalogMode(mode)

    @property
    def filters(self) -> CatalogFilter:
        return self._filters

    @property
    def mode(self) -> CatalogMode:
        return self._mode

    @property
    def provider(self) -> ResultProvider:
        return self._providers[self._mode]

    @property
    def paged(self) -> OffsetPageProvider:
        return self._providers[CatalogMode.PAGED]  # type: ignore[return-value]

    @property
    def infinite(self) -> InfiniteScrollProvider:
        return self._providers[CatalogMode.INFINITE]  # type: ignore[return-value]

    @property
    def products(self) -> List[ProductSummary]:
        return self.provider.products

    @property
    def state(self) -> LoadState:
        return self.provider.state

    @property
    def categories(self) -> List[Category]:
        return list(self._categories or [])

    async def load(self) -> bool:
        return await self._run(self.provider.load(self._filters))

    async def set_filters(self, **changes: Any) -> bool:
        """Apply filter changes; anything but ``page`` restarts both providers."""
        previous = self._filters
        updated = previous.with_changes(**changes)
        self._filters = updated
        if updated.query_key() != previous.query_key():
            for provider in self._providers.values():
                provider.invalidate()
            return await self.load()
        if updated.page != previous.page and self._mode == CatalogMode.PAGED:
            loaded = await self.load()
            if not loaded and self._filters is updated and self.paged.state == LoadState.ERROR:
                # Rows on screen are still the previous page.
                self._filters = previous
            return loaded
        return False

    async def go_to_page(self, page: int) -> bool:
        if self._mode != CatalogMode.PAGED:
            return False
        return await self.set_filters(page=page)

    async def load_more(self) -> bool:
        if self._mode != CatalogMode.INFINITE:
            return False
        return await self._run(self.infinite.load_more())

    async def switch_mode(self, mode: CatalogMode) -> bool:
        mode = CatalogMode(mode)
        if mode == self._mode:
            return False
        self.provider.invalidate()
        self._mode = mode
        if self._filters.page != 1:
            self._filters = self._filters.model_copy(update={"page": 1})
        return await self.load()

    async def retry(self) -> bool:
        """Re-issue whatever failed last, leaving loaded rows in place."""
        provider = self.provider
        if provider.state != LoadState.ERROR:
            return False
        if isinstance(provider, OffsetPageProvider) and provider.pending_filters is not None:
            target = provider.pending_filters
            loaded = await self._run(provider.load(target))
            if loaded:
                self._filters = target
            return loaded
        if isinstance(provider, InfiniteScrollProvider) and provider.products:
            return await self._run(provider.load_more())
        return await self.load()

    async def load_categories(self, *, force: bool = False) -> List[Category]:
        if self._categories is not None and not force:
            return self.categories
        query = self.store.table(CATEGORIES_TABLE).order("name", ascending=True)
        try:
            result = await self.store.select(query)
        except RemoteStoreError as exc:
            logger.warning("Category load failed (trace_id=%s): %s", exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.CATALOG_LOAD_FAILED, "Could not load categories", str(exc)))
            return self.categories
        self._categories = parse_rows(Category, result.rows, table=CATEGORIES_TABLE)
        return self.categories

    async def resolve_category(self, value: Optional[str]) -> Optional[str]:
        """Map a category slug (or id) to its id; unknown values apply no filter."""
        if not value:
            return None
        if self._categories is None:
            query = self.store.table(CATEGORIES_TABLE).order("name", ascending=True)
            result = await self.store.select(query)
            self._categories = parse_rows(Category, result.rows, table=CATEGORIES_TABLE)
        for category in self._categories:
            if category.slug == value or category.id == value:
                return category.id
        logger.debug("Unknown category %r; listing all categories", value)
        return None

    async def get_product_by_slug(self, slug: str) -> Optional[ProductSummary]:
        query = self.store.table(PRODUCTS_TABLE).select(PRODUCT_COLUMNS).eq("slug", slug)
        row = await self.store.select_one(query)
        if row is None:
            return None
        try:
            return parse_row(ProductSummary, row, table=PRODUCTS_TABLE)
        except MalformedRowError as exc:
            logger.warning("Product %s is malformed (trace_id=%s): %s", slug, exc.trace_id, exc.__cause__ or exc)
            return None

    async def _run(self, pending: Awaitable[bool]) -> bool:
        loaded = await pending
        provider = self.provider
        if not loaded and provider.state == LoadState.ERROR and provider.error is not None:
            emit_to(
                self.emitter,
                error_notice(
                    EventType.CATALOG_LOAD_FAILED,
                    "Could not load products",
                    str(provider.error),
                    trace_id=provider.error.trace_id,
                ),
            )
        return loaded


__all__ = [
    "PRODUCTS_TABLE",
    "CATEGORIES_TABLE",
    "PRODUCT_COLUMNS",
    "DEFAULT_PAGE_SIZE",
    "SORT_COLUMNS",
    "LoadState",
    "build_product_query",
    "total_pages",
    "ResultProvider",
    "OffsetPageProvider",
    "InfiniteScrollProvider",
    "CatalogBrowser",
]
