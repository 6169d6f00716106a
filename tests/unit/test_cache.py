"""
Unit Tests - Profit Share Cache
"""
import asyncio

import pytest

from src.profit.cache import ProfitShareCache, ProfitShareSnapshot
from src.services.settings_service import SettingsCache, format_setting_value, parse_setting_value


class CountingLoader:
    """Loader returning a new snapshot version on every call"""

    def __init__(self):
        self.calls = 0

    async def __call__(self) -> ProfitShareSnapshot:
        self.calls += 1
        await asyncio.sleep(0)
        return ProfitShareSnapshot(
            partners=("yassir", "basim"),
            shares={"prod-1": {"yassir": float(self.calls), "basim": 100.0 - self.calls}},
        )


@pytest.fixture
def loader() -> CountingLoader:
    return CountingLoader()


class TestProfitShareCache:
    """Tests for TTL, invalidation and load coalescing"""

    async def test_loads_once_within_ttl(self, loader, clock):
        cache = ProfitShareCache(loader, ttl_seconds=300, clock=clock)

        first = await cache.get()
        clock.advance(299)
        second = await cache.get()

        assert first is second
        assert loader.calls == 1
        assert cache.is_loaded

    async def test_reloads_after_ttl(self, loader, clock):
        cache = ProfitShareCache(loader, ttl_seconds=300, clock=clock)

        await cache.get()
        clock.advance(300)

        assert not cache.is_loaded
        snapshot = await cache.get()

        assert loader.calls == 2
        assert snapshot.for_product("prod-1")["yassir"] == 2.0

    async def test_invalidate_forces_reload(self, loader, clock):
        cache = ProfitShareCache(loader, ttl_seconds=300, clock=clock)

        await cache.get()
        cache.invalidate()

        assert not cache.is_loaded
        await cache.get()
        assert loader.calls == 2
        assert cache.refresh_count == 2

    async def test_concurrent_readers_share_one_load(self, loader, clock):
        cache = ProfitShareCache(loader, ttl_seconds=300, clock=clock)

        snapshots = await asyncio.gather(*(cache.get() for _ in range(10)))

        assert loader.calls == 1
        assert all(snapshot is snapshots[0] for snapshot in snapshots)

    async def test_invalidate_during_load_discards_result(self, clock):
        """Test a load started before invalidate() is not kept as current"""
        release = asyncio.Event()
        calls = []

        async def slow_loader():
            calls.append(1)
            if len(calls) == 1:
                await release.wait()
            return ProfitShareSnapshot(partners=("yassir", "basim"), shares={"v": {"n": float(len(calls))}})

        cache = ProfitShareCache(slow_loader, ttl_seconds=300, clock=clock)

        pending = asyncio.create_task(cache.get())
        await asyncio.sleep(0)
        cache.invalidate()
        release.set()
        stale = await pending

        assert stale.shares["v"]["n"] == 1.0
        assert not cache.is_loaded

        fresh = await cache.get()
        assert fresh.shares["v"]["n"] == 2.0
        assert cache.is_loaded

    async def test_loader_error_propagates(self, clock):
        async def failing_loader():
            raise RuntimeError("database down")

        cache = ProfitShareCache(failing_loader, ttl_seconds=300, clock=clock)

        with pytest.raises(RuntimeError):
            await cache.get()
        assert not cache.is_loaded

    def test_snapshot_for_unknown_product(self):
        snapshot = ProfitShareSnapshot(partners=("yassir", "basim"))

        assert snapshot.for_product("missing") is None


class TestSettingsCache:
    """Tests for the per-key settings memo"""

    async def test_value_kept_until_ttl(self, clock):
        cache = SettingsCache(ttl_seconds=60, clock=clock)
        values = iter([200.0, 150.0])

        async def fetch():
            return next(values)

        assert await cache.get("free_shipping_threshold", fetch) == 200.0
        clock.advance(59)
        assert await cache.get("free_shipping_threshold", fetch) == 200.0
        clock.advance(2)
        assert await cache.get("free_shipping_threshold", fetch) == 150.0

    async def test_clear_one_key(self, clock):
        cache = SettingsCache(ttl_seconds=60, clock=clock)
        calls = []

        async def fetch():
            calls.append(1)
            return len(calls)

        await cache.get("a", fetch)
        await cache.get("b", fetch)
        cache.clear("a")

        assert await cache.get("a", fetch) == 3
        assert await cache.get("b", fetch) == 2

    def test_zero_ttl_kept(self):
        assert SettingsCache(ttl_seconds=0).ttl_seconds == 0


class TestSettingValues:
    @pytest.mark.parametrize("raw, setting_type, expected", [
        ("200", "number", 200.0),
        ("true", "boolean", True),
        ("false", "boolean", False),
        ('{"a": 1}', "json", {"a": 1}),
        ("SAR", "string", "SAR"),
    ])
    def test_parse(self, raw, setting_type, expected):
        assert parse_setting_value(raw, setting_type) == expected

    def test_number_rejects_text(self):
        with pytest.raises(ValueError):
            format_setting_value("abc", "number")

    def test_boolean_format(self):
        assert format_setting_value(True, "boolean") == "true"
