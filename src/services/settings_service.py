"""
System Settings Service

Runtime-editable store settings kept in the `system_settings` table. Values
are stored as text and parsed by their declared type.

The free-shipping threshold lives here so it can change without a restart.
When no row exists yet, `BUSINESS_FREE_SHIPPING_THRESHOLD` is used.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.database.models import SystemSettingRecord
from src.profit.cache import Clock
from src.services.exceptions import EntityNotFoundError

logger = structlog.get_logger(__name__)
settings = get_settings()

FREE_SHIPPING_THRESHOLD_KEY = "free_shipping_threshold"

SETTING_TYPES = ("number", "string", "boolean", "json")


@dataclass(frozen=True)
class SystemSetting:
    key: str
    value: Any
    setting_type: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_editable: bool = True


def parse_setting_value(raw: str, setting_type: str) -> Any:
    if setting_type == "number":
        return float(raw)
    if setting_type == "boolean":
        return raw == "true"
    if setting_type == "json":
        return json.loads(raw)
    return raw


def format_setting_value(value: Any, setting_type: str) -> str:
    """Text form of a value for storage; rejects values that do not fit the type"""
    if setting_type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Expected a number, got {value!r}")
        return repr(float(value))
    if setting_type == "boolean":
        if not isinstance(value, bool):
            raise ValueError(f"Expected a boolean, got {value!r}")
        return "true" if value else "false"
    if setting_type == "json":
        return json.dumps(value)
    return str(value)


def _to_setting(record: SystemSettingRecord) -> SystemSetting:
    return SystemSetting(
        key=record.setting_key,
        value=parse_setting_value(record.setting_value, record.setting_type),
        setting_type=record.setting_type,
        description=record.description,
        category=record.category,
        is_editable=record.is_editable,
    )


async def _get_record(db: AsyncSession, key: str) -> Optional[SystemSettingRecord]:
    result = await db.execute(
        select(SystemSettingRecord).where(SystemSettingRecord.setting_key == key)
    )
    return result.scalar_one_or_none()


async def get_setting(db: AsyncSession, key: str) -> Any:
    """
    Parsed value of one setting.

    Raises:
        EntityNotFoundError: no such key
    """
    record = await _get_record(db, key)
    if record is None:
        raise EntityNotFoundError("Setting", key)
    return parse_setting_value(record.setting_value, record.setting_type)


async def get_settings_by_category(db: AsyncSession, category: str) -> List[SystemSetting]:
    result = await db.execute(
        select(SystemSettingRecord)
        .where(SystemSettingRecord.category == category)
        .order_by(SystemSettingRecord.setting_key)
    )
    return [_to_setting(record) for record in result.scalars().all()]


async def get_editable_settings(db: AsyncSession) -> List[SystemSetting]:
    result = await db.execute(
        select(SystemSettingRecord)
        .where(SystemSettingRecord.is_editable.is_(True))
        .order_by(SystemSettingRecord.category, SystemSettingRecord.setting_key)
    )
    return [_to_setting(record) for record in result.scalars().all()]


async def create_setting(
    db: AsyncSession,
    key: str,
    value: Any,
    setting_type: str = "string",
    description: Optional[str] = None,
    category: Optional[str] = None,
    is_editable: bool = True,
) -> SystemSetting:
    if setting_type not in SETTING_TYPES:
        raise ValueError(f"Unknown setting type {setting_type!r}")

    record = SystemSettingRecord(
        setting_key=key,
        setting_value=format_setting_value(value, setting_type),
        setting_type=setting_type,
        description=description,
        category=category,
        is_editable=is_editable,
    )
    db.add(record)
    await db.flush()

    logger.info("Setting created", key=key, category=category)
    return _to_setting(record)


async def update_setting(
    db: AsyncSession,
    key: str,
    value: Any,
    cache: Optional["SettingsCache"] = None,
) -> SystemSetting:
    """
    Store a new value and drop it from the cache.

    Raises:
        EntityNotFoundError: no such key
        ValueError: setting is read-only or value does not fit its type
    """
    record = await _get_record(db, key)
    if record is None:
        raise EntityNotFoundError("Setting", key)
    if not record.is_editable:
        raise ValueError(f"Setting {key} is not editable")

    record.setting_value = format_setting_value(value, record.setting_type)

    # Commit before clearing so the next cache fill reads the new value
    await db.commit()
    if cache is not None:
        cache.clear(key)

    logger.info("Setting updated", key=key)
    return _to_setting(record)


async def get_free_shipping_threshold(db: AsyncSession) -> float:
    """Stored threshold, or the configured default when the row is missing"""
    record = await _get_record(db, FREE_SHIPPING_THRESHOLD_KEY)
    if record is None:
        return settings.business.free_shipping_threshold
    return float(parse_setting_value(record.setting_value, record.setting_type))


async def update_free_shipping_threshold(
    db: AsyncSession,
    value: float,
    cache: Optional["SettingsCache"] = None,
) -> float:
    """
    Raises:
        ValueError: negative threshold
    """
    if value < 0:
        raise ValueError("Free shipping threshold must not be negative")

    if await _get_record(db, FREE_SHIPPING_THRESHOLD_KEY) is None:
        await ensure_default_settings(db)
    setting = await update_setting(db, FREE_SHIPPING_THRESHOLD_KEY, float(value), cache=cache)
    return setting.value


async def ensure_default_settings(db: AsyncSession) -> None:
    """Insert the built-in settings that are missing"""
    if await _get_record(db, FREE_SHIPPING_THRESHOLD_KEY) is None:
        await create_setting(
            db,
            FREE_SHIPPING_THRESHOLD_KEY,
            settings.business.free_shipping_threshold,
            setting_type="number",
            description="Order value after discounts that ships free (0 disables)",
            category="shipping",
        )


class SettingsCache:
    """
    Per-key TTL memo of setting values.

    Example:
        cache = SettingsCache(ttl_seconds=60)
        threshold = await cache.get("free_shipping_threshold", fetch)
        cache.clear("free_shipping_threshold")
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Clock = time.monotonic):
        self.ttl_seconds = (
            settings.business.settings_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    async def get(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        cached = self._entries.get(key)
        now = self._clock()
        if cached is not None and now - cached[1] < self.ttl_seconds:
            return cached[0]

        value = await fetch()
        self._entries[key] = (value, now)
        return value

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


async def resolve_free_shipping_threshold(
    db: AsyncSession,
    cache: Optional[SettingsCache] = None,
) -> float:
    """Threshold for pricing, read through the cache when one is given"""
    if cache is None:
        return await get_free_shipping_threshold(db)
    return await cache.get(FREE_SHIPPING_THRESHOLD_KEY, lambda: get_free_shipping_threshold(db))
