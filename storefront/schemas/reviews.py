from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Review(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    product_id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", "product_id", "user_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


class ReviewDraft(BaseModel):
    """What a signed-in customer submits for a product."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=100)
    comment: str = Field(min_length=1, max_length=1000)

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RatingBucket(BaseModel):
    stars: int
    count: int
    percent: int


class ReviewSummary(BaseModel):
    total: int = 0
    average: Decimal = Decimal("0")
    buckets: List[RatingBucket] = Field(default_factory=list)

    @classmethod
    def from_reviews(cls, reviews: List[Review]) -> "ReviewSummary":
        total = len(reviews)
        if total:
            raw = Decimal(sum(review.rating for review in reviews)) / total
            average = raw.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        else:
            average = Decimal("0")
        buckets = []
        for stars in range(5, 0, -1):
            count = sum(1 for review in reviews if review.rating == stars)
            percent = round(count * 100 / total) if total else 0
            buckets.append(RatingBucket(stars=stars, count=count, percent=percent))
        return cls(total=total, average=average, buckets=buckets)


__all__ = ["Review", "ReviewDraft", "RatingBucket", "ReviewSummary"]
