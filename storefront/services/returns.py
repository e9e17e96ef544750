from __future__ import annotations

import enum
import logging
from typing import List, Optional

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import success
from ..exceptions import MalformedRowError, RemoteStoreError
from ..remote.base import RemoteDataStore
from ..schemas.orders import Order, OrderStatus, ReturnRequest, ReturnStatus
from ..schemas.rows import parse_row, parse_rows
from .checkout import ORDERS_TABLE
from .orders import ORDER_COLUMNS

logger = logging.getLogger(__name__)

RETURNS_TABLE = "return_requests"

STATUS_MESSAGES = {
    ReturnStatus.APPROVED: "Return request approved",
    ReturnStatus.REJECTED: "Return request rejected",
    ReturnStatus.COMPLETED: "Return completed",
    ReturnStatus.PENDING: "Return set to pending",
}


class ReturnOutcome(str, enum.Enum):
    REQUESTED = "requested"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    NOT_ELIGIBLE = "not_eligible"
    FAILED = "failed"


class ReturnService:
    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter

    async def request_return(self, user_id: str, order_id: str, reason: str) -> ReturnOutcome:
        """Ask for a return of a delivered order; the order moves to ``return_requested``."""
        reason = (reason or "").strip()
        if not reason:
            return ReturnOutcome.INVALID

        try:
            row = await self.store.select_one(
                self.store.table(ORDERS_TABLE).eq("id", order_id).eq("user_id", user_id)
            )
            if row is None:
                return ReturnOutcome.NOT_FOUND
            order = parse_row(Order, row, table=ORDERS_TABLE)
            if order.order_status != OrderStatus.DELIVERED:
                return ReturnOutcome.NOT_ELIGIBLE

            await self.store.insert(
                RETURNS_TABLE,
                {
                    "order_id": order_id,
                    "user_id": user_id,
                    "reason": reason,
                    "status": ReturnStatus.PENDING.value,
                },
            )
            await self.store.update(
                ORDERS_TABLE,
                {"id": order_id},
                {"order_status": OrderStatus.RETURN_REQUESTED.value},
            )
        except RemoteStoreError as exc:
            logger.warning("Return request for %s failed (trace_id=%s): %s", order_id, exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc), order_id=order_id))
            return ReturnOutcome.FAILED
        except MalformedRowError as exc:
            logger.warning("Order %s is malformed (trace_id=%s): %s", order_id, exc.trace_id, exc.__cause__ or exc)
            emit_to(
                self.emitter,
                error_notice(EventType.REMOTE_ERROR, "Error", "Could not read this order.", order_id=order_id),
            )
            return ReturnOutcome.FAILED

        emit_to(
            self.emitter,
            success(EventType.RETURN_REQUESTED, "Return requested", "We will review your request shortly.", order_id=order_id),
        )
        return ReturnOutcome.REQUESTED

    async def list_requests(self) -> List[ReturnRequest]:
        """All return requests newest-first, each with its order attached."""
        result = await self.store.select(
            self.store.table(RETURNS_TABLE).order("created_at", ascending=False)
        )
        requests = parse_rows(ReturnRequest, result.rows, table=RETURNS_TABLE)
        for request in requests:
            row = await self.store.select_one(
                self.store.table(ORDERS_TABLE).select(ORDER_COLUMNS).eq("id", request.order_id)
            )
            if row is not None:
                orders = parse_rows(Order, [row], table=ORDERS_TABLE)
                request.order = orders[0] if orders else None
        return requests

    async def update_status(self, request_id: str, status: ReturnStatus | str) -> bool:
        status = ReturnStatus(status)
        try:
            updated = await self.store.update(RETURNS_TABLE, {"id": request_id}, {"status": status.value})
        except RemoteStoreError as exc:
            logger.warning("Return %s status update failed (trace_id=%s): %s", request_id, exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc)))
            return False
        if not updated:
            return False
        emit_to(
            self.emitter,
            success(EventType.RETURN_STATUS_UPDATED, STATUS_MESSAGES.get(status, "Return status updated"), request_id=request_id),
        )
        return True


__all__ = ["RETURNS_TABLE", "STATUS_MESSAGES", "ReturnOutcome", "ReturnService"]
