from __future__ import annotations

import enum
import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import info, success
from ..exceptions import MalformedRowError, RemoteStoreError
from ..remote.base import RemoteDataStore
from ..schemas.admin import field_errors
from ..schemas.reviews import Review, ReviewDraft, ReviewSummary
from ..schemas.rows import parse_row, parse_rows

logger = logging.getLogger(__name__)

REVIEWS_TABLE = "reviews"


class ReviewOutcome(str, enum.Enum):
    SUBMITTED = "submitted"
    SIGN_IN_REQUIRED = "sign_in_required"
    INVALID = "invalid"
    ALREADY_REVIEWED = "already_reviewed"
    FAILED = "failed"


def display_name(email: Optional[str]) -> str:
    """Local part of the e-mail address, as shown next to a review."""
    if not email:
        return "Anonymous"
    return email.split("@", 1)[0] or "Anonymous"


class ReviewService:
    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter
        self.last_errors: dict[str, str] = {}

    async def list_reviews(self, product_id: str) -> List[Review]:
        query = (
            self.store.table(REVIEWS_TABLE)
            .eq("product_id", product_id)
            .order("created_at", ascending=False)
        )
        result = await self.store.select(query)
        return parse_rows(Review, result.rows, table=REVIEWS_TABLE)

    async def user_review(self, product_id: str, user_id: Optional[str]) -> Optional[Review]:
        if not user_id:
            return None
        row = await self.store.select_one(
            self.store.table(REVIEWS_TABLE).eq("product_id", product_id).eq("user_id", user_id)
        )
        if row is None:
            return None
        try:
            return parse_row(Review, row, table=REVIEWS_TABLE)
        except MalformedRowError as exc:
            logger.warning(
                "Review by %s on %s is malformed (trace_id=%s): %s",
                user_id,
                product_id,
                exc.trace_id,
                exc.__cause__ or exc,
            )
            return None

    async def summary(self, product_id: str) -> ReviewSummary:
        return ReviewSummary.from_reviews(await self.list_reviews(product_id))

    async def submit(
        self,
        product_id: str,
        user_id: Optional[str],
        email: Optional[str],
        data: Mapping[str, Any],
    ) -> ReviewOutcome:
        self.last_errors = {}
        if not user_id:
            emit_to(self.emitter, info(EventType.SIGN_IN_REQUIRED, "Please sign in", "Sign in to write a review."))
            return ReviewOutcome.SIGN_IN_REQUIRED
        try:
            draft = ReviewDraft.model_validate(dict(data))
        except ValidationError as exc:
            self.last_errors = field_errors(exc)
            return ReviewOutcome.INVALID

        try:
            await self.store.insert(
                REVIEWS_TABLE,
                {
                    "product_id": product_id,
                    "user_id": user_id,
                    "user_name": display_name(email),
                    "rating": draft.rating,
                    "title": draft.title,
                    "comment": draft.comment,
                },
            )
        except RemoteStoreError as exc:
            if exc.is_conflict:
                return ReviewOutcome.ALREADY_REVIEWED
            logger.warning("Review submit failed (trace_id=%s): %s", exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc)))
            return ReviewOutcome.FAILED

        emit_to(
            self.emitter,
            success(EventType.REVIEW_SUBMITTED, "Review submitted!", "Thank you for your feedback.", product_id=product_id),
        )
        return ReviewOutcome.SUBMITTED


__all__ = ["REVIEWS_TABLE", "ReviewOutcome", "display_name", "ReviewService"]
