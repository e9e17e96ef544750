from __future__ import annotations

import re
from decimal import Decimal

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase ``name`` and collapse every non-alphanumeric run into '-'."""
    return _NON_ALNUM_RE.sub("-", (name or "").lower()).strip("-")


def short_id(identifier: str) -> str:
    return str(identifier or "")[:8].upper()


def money(amount: Decimal | int | float, currency: str = "INR") -> str:
    symbol = "₹" if currency.upper() == "INR" else f"{currency.upper()} "
    return f"{symbol}{Decimal(str(amount)):,.2f}"


__all__ = ["slugify", "short_id", "money"]
