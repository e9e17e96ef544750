from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import success
from ..exceptions import MalformedRowError, RemoteStoreError
from ..remote.base import RemoteDataStore
from ..schemas.orders import Order, OrderStatus
from ..schemas.rows import parse_row, parse_rows
from ..utils.text import short_id
from .catalog import PRODUCTS_TABLE
from .checkout import ORDERS_TABLE

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "*, order_items(*)"
RECENT_ORDER_LIMIT = 5

TIMELINE_STEPS = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

CSV_HEADERS = (
    "Order ID",
    "Customer Name",
    "Phone",
    "Address",
    "City",
    "State",
    "Pincode",
    "Total Amount",
    "Payment Status",
    "Order Status",
    "Date",
    "Items",
)


@dataclass
class TimelineStep:
    status: OrderStatus
    reached: bool
    current: bool


@dataclass
class OrderTimeline:
    steps: List[TimelineStep]
    halted: bool = False


def order_timeline(status: OrderStatus | str) -> OrderTimeline:
    """Progress of an order through pending, confirmed, shipped, delivered.

    A cancelled order is halted and reaches no step. An order with a return
    requested has been delivered.
    """
    status = OrderStatus(status)
    if status == OrderStatus.CANCELLED:
        return OrderTimeline(
            steps=[TimelineStep(step, reached=False, current=False) for step in TIMELINE_STEPS],
            halted=True,
        )
    effective = OrderStatus.DELIVERED if status == OrderStatus.RETURN_REQUESTED else status
    position = TIMELINE_STEPS.index(effective)
    return OrderTimeline(
        steps=[
            TimelineStep(step, reached=index <= position, current=index == position)
            for index, step in enumerate(TIMELINE_STEPS)
        ]
    )


@dataclass
class DashboardStats:
    total_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    pending_orders: int = 0
    total_products: int = 0
    recent_orders: List[Order] = field(default_factory=list)


@dataclass
class CsvExport:
    filename: str
    content: str
    row_count: int


def _csv_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def orders_to_csv(orders: List[Order]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for order in orders:
        address = order.shipping_address or {}
        writer.writerow(
            [
                short_id(order.id),
                address.get("fullName") or "",
                address.get("phone") or "",
                address.get("address") or "",
                address.get("city") or "",
                address.get("state") or "",
                address.get("pincode") or "",
                format(order.total_amount, "f"),
                order.payment_status,
                order.order_status.value,
                _csv_date(order.created_at),
                "; ".join(f"{item.product_name} x{item.quantity}" for item in order.order_items),
            ]
        )
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"orders-{today.isoformat()}.csv"


class OrderService:
    """Customer order history and the back-office order workflow."""

    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter

    async def list_user_orders(self, user_id: str) -> List[Order]:
        query = (
            self.store.table(ORDERS_TABLE)
            .select(ORDER_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", ascending=False)
        )
        result = await self.store.select(query)
        return parse_rows(Order, result.rows, table=ORDERS_TABLE)

    async def get_order(self, order_id: str, *, user_id: Optional[str] = None) -> Optional[Order]:
        query = self.store.table(ORDERS_TABLE).select(ORDER_COLUMNS).eq("id", order_id)
        if user_id is not None:
            query.eq("user_id", user_id)
        row = await self.store.select_one(query)
        if row is None:
            return None
        try:
            return parse_row(Order, row, table=ORDERS_TABLE)
        except MalformedRowError as exc:
            logger.warning("Order %s is malformed (trace_id=%s): %s", order_id, exc.trace_id, exc.__cause__ or exc)
            return None

    async def list_all_orders(self) -> List[Order]:
        query = self.store.table(ORDERS_TABLE).select(ORDER_COLUMNS).order("created_at", ascending=False)
        result = await self.store.select(query)
        return parse_rows(Order, result.rows, table=ORDERS_TABLE)

    async def update_status(self, order_id: str, status: OrderStatus | str) -> bool:
        status = OrderStatus(status)
        try:
            updated = await self.store.update(ORDERS_TABLE, {"id": order_id}, {"order_status": status.value})
        except RemoteStoreError as exc:
            logger.warning("Order %s status update failed (trace_id=%s): %s", order_id, exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc), order_id=order_id))
            return False
        if not updated:
            return False
        emit_to(
            self.emitter,
            success(EventType.ORDER_STATUS_UPDATED, "Order status updated", order_id=order_id, status=status.value),
        )
        return True

    async def dashboard_stats(self) -> DashboardStats:
        orders_result = await self.store.select(
            self.store.table(ORDERS_TABLE).select("id, total_amount, order_status")
        )
        products_result = await self.store.select(
            self.store.table(PRODUCTS_TABLE).select("id").with_count()
        )
        recent_result = await self.store.select(
            self.store.table(ORDERS_TABLE)
            .select("id, total_amount, order_status, created_at, shipping_address")
            .order("created_at", ascending=False)
            .range(0, RECENT_ORDER_LIMIT)
        )

        orders = parse_rows(Order, orders_result.rows, table=ORDERS_TABLE)
        product_count = products_result.total_count
        if product_count is None:
            product_count = len(products_result.rows)
        return DashboardStats(
            total_orders=len(orders),
            total_revenue=sum((order.total_amount for order in orders), Decimal("0")),
            pending_orders=sum(1 for order in orders if order.order_status == OrderStatus.PENDING),
            total_products=product_count,
            recent_orders=parse_rows(Order, recent_result.rows, table=ORDERS_TABLE),
        )

    def export_csv(self, orders: List[Order], *, today: Optional[date] = None) -> Optional[CsvExport]:
        """Render orders as CSV; returns None (with a notice) when there is nothing to export."""
        if not orders:
            emit_to(self.emitter, error_notice(EventType.ORDERS_EXPORTED, "No orders to export"))
            return None
        export = CsvExport(filename=export_filename(today), content=orders_to_csv(orders), row_count=len(orders))
        emit_to(
            self.emitter,
            success(EventType.ORDERS_EXPORTED, "Orders exported", f"{len(orders)} orders exported to CSV"),
        )
        return export


__all__ = [
    "ORDER_COLUMNS",
    "TIMELINE_STEPS",
    "CSV_HEADERS",
    "TimelineStep",
    "OrderTimeline",
    "order_timeline",
    "DashboardStats",
    "CsvExport",
    "orders_to_csv",
    "export_filename",
    "OrderService",
]
