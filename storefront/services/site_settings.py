from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import success
from ..exceptions import RemoteStoreError
from ..remote.base import RemoteDataStore
from ..schemas.site_settings import COUPON_SETTINGS_KEY, CouponSettings

logger = logging.getLogger(__name__)

SITE_SETTINGS_TABLE = "site_settings"


class SiteSettingsService:
    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter

    async def get_coupon(self) -> CouponSettings:
        row = await self.store.select_one(
            self.store.table(SITE_SETTINGS_TABLE).eq("key", COUPON_SETTINGS_KEY)
        )
        if row is None:
            return CouponSettings()
        try:
            return CouponSettings.model_validate(row.get("value") or {})
        except ValidationError as exc:
            logger.warning("Ignoring malformed coupon settings: %s", exc)
            return CouponSettings()

    async def active_coupon(self) -> Optional[CouponSettings]:
        """The coupon to show in the banner, or None when hidden."""
        try:
            coupon = await self.get_coupon()
        except RemoteStoreError as exc:
            logger.warning("Coupon lookup failed (trace_id=%s): %s", exc.trace_id, exc)
            return None
        return coupon if coupon.is_active else None

    async def save_coupon(self, settings: CouponSettings | Mapping[str, Any]) -> bool:
        coupon = settings if isinstance(settings, CouponSettings) else CouponSettings.model_validate(dict(settings))
        value = coupon.model_dump()
        try:
            updated = await self.store.update(SITE_SETTINGS_TABLE, {"key": COUPON_SETTINGS_KEY}, {"value": value})
            if not updated:
                await self.store.insert(SITE_SETTINGS_TABLE, {"key": COUPON_SETTINGS_KEY, "value": value})
        except RemoteStoreError as exc:
            logger.warning("Saving coupon settings failed (trace_id=%s): %s", exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc)))
            return False
        emit_to(
            self.emitter,
            success(EventType.SETTINGS_SAVED, "Settings saved!", "Coupon settings have been updated."),
        )
        return True


__all__ = ["SITE_SETTINGS_TABLE", "SiteSettingsService"]
