from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

COUPON_SETTINGS_KEY = "coupon"


class CouponSettings(BaseModel):
    """Value stored in the ``site_settings`` row keyed ``coupon``."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    enabled: bool = False
    code: str = Field(default="", max_length=50)
    discount_text: str = Field(default="", max_length=200)

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.code)


__all__ = ["COUPON_SETTINGS_KEY", "CouponSettings"]
