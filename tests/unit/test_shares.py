"""
Unit Tests - Partner Share Resolution
"""
import random

import pytest
from structlog.testing import capture_logs

from src.profit.cache import ProfitShareCache, ProfitShareSnapshot
from src.profit.models import ShareEntry
from src.profit.shares import (
    PartnerShareResolver,
    ProfitShareValidationError,
    fallback_split,
    is_valid_configuration,
    resolve_shares,
    split_profit,
    validate_share_percentages,
)

PARTNERS = ("yassir", "basim")


@pytest.fixture
def snapshot() -> ProfitShareSnapshot:
    return ProfitShareSnapshot(
        partners=PARTNERS,
        shares={
            "prod-light": {"yassir": 60.0, "basim": 40.0},
            "prod-third": {"yassir": 33.33, "basim": 66.67},
            "prod-broken": {"yassir": 70.0, "basim": 20.0},
        },
    )


class TestSplitProfit:
    """Tests for exact percentage splitting"""

    def test_simple_split(self):
        assert split_profit(1000.0, {"yassir": 60.0, "basim": 40.0}) == {
            "yassir": 600.0,
            "basim": 400.0,
        }

    def test_parts_add_back_exactly(self):
        """Test the last partner absorbs rounding so nothing is lost"""
        shares = split_profit(100.0, {"a": 33.33, "b": 33.33, "c": 33.34})

        assert shares["a"] == pytest.approx(33.33)
        assert sum(shares.values()) == 100.0

    @pytest.mark.parametrize("net_profit, percentage", [
        (-952.7308447360259, 38.66),
        (-1997 / 7, 7.0),
        (1997 / 7, 7.0),
        (0.1 + 0.2, 33.33),
        (1.75 + 2 ** -52, 100 * 0.5 / 1.75),
        (0.0, 40.0),
    ])
    def test_two_way_split_is_exact(self, net_profit, percentage):
        shares = split_profit(net_profit, {"basim": percentage, "yassir": 100 - percentage})

        assert shares["basim"] + shares["yassir"] == net_profit

    def test_random_gains_and_losses_split_exactly(self):
        rng = random.Random(20251017)
        for _ in range(20000):
            net_profit = rng.uniform(-1000, 1000)
            percentage = round(rng.uniform(0, 100), 2)

            shares = split_profit(net_profit, {"basim": percentage, "yassir": 100 - percentage})

            assert shares["basim"] + shares["yassir"] == net_profit

    def test_sevenths_split_exactly(self):
        for n in range(-2000, 2001, 7):
            net_profit = n / 7
            for percentage in range(0, 101, 3):
                shares = split_profit(net_profit, {"basim": float(percentage), "yassir": 100.0 - percentage})

                assert shares["basim"] + shares["yassir"] == net_profit

    def test_loss_splits_like_gain(self):
        shares = split_profit(-50.0, {"yassir": 70.0, "basim": 30.0})

        assert shares["yassir"] == pytest.approx(-35.0)
        assert shares["basim"] == pytest.approx(-15.0)

    def test_empty_configuration(self):
        assert split_profit(10.0, {}) == {}

    def test_fallback_split(self):
        assert fallback_split(1000.0, PARTNERS, "basim") == {"yassir": 0.0, "basim": 1000.0}


class TestResolveShares:
    """Tests for resolution against a snapshot"""

    def test_configured_product(self, snapshot):
        assert resolve_shares(snapshot, "prod-light", 200.0) == pytest.approx(
            {"yassir": 120.0, "basim": 80.0}
        )

    def test_unconfigured_product_falls_back(self, snapshot):
        """Test missing configuration gives everything to the default partner with a warning"""
        with capture_logs() as logs:
            shares = resolve_shares(snapshot, "prod-unknown", 1000.0)

        assert shares == {"yassir": 0.0, "basim": 1000.0}
        assert any(log["log_level"] == "warning" for log in logs)

    def test_invalid_total_falls_back(self, snapshot):
        with capture_logs() as logs:
            shares = resolve_shares(snapshot, "prod-broken", 100.0)

        assert shares == {"yassir": 0.0, "basim": 100.0}
        assert logs[0]["total"] == pytest.approx(90.0)

    def test_within_tolerance(self, snapshot):
        shares = resolve_shares(snapshot, "prod-third", 300.0)

        assert sum(shares.values()) == pytest.approx(300.0)

    def test_custom_default_partner(self, snapshot):
        assert resolve_shares(snapshot, "prod-unknown", 50.0, default_partner="yassir") == {
            "yassir": 50.0,
            "basim": 0.0,
        }

    def test_is_valid_configuration(self):
        assert is_valid_configuration({"a": 50.0, "b": 50.005})
        assert not is_valid_configuration({"a": 50.0, "b": 49.0})
        assert not is_valid_configuration({})


class TestValidateSharePercentages:
    """Tests for configuration validation before save"""

    def test_valid_configuration(self):
        total = validate_share_percentages([ShareEntry("p1", 60.0), ShareEntry("p2", 40.0)])

        assert total == 100.0

    def test_sum_not_100(self):
        with pytest.raises(ProfitShareValidationError) as exc_info:
            validate_share_percentages([ShareEntry("p1", 70.0), ShareEntry("p2", 20.0)])

        assert exc_info.value.total == pytest.approx(90.0)

    @pytest.mark.parametrize("entries", [
        [],
        [ShareEntry("p1", 50.0), ShareEntry("p1", 50.0)],
        [ShareEntry("p1", 120.0), ShareEntry("p2", -20.0)],
    ])
    def test_rejected_configurations(self, entries):
        with pytest.raises(ProfitShareValidationError):
            validate_share_percentages(entries)

    def test_validation_error_is_value_error(self):
        assert issubclass(ProfitShareValidationError, ValueError)


class TestPartnerShareResolver:
    """Tests for the cache-backed resolver"""

    async def test_resolve_uses_cache(self, snapshot, clock):
        loads = []

        async def loader():
            loads.append(1)
            return snapshot

        resolver = PartnerShareResolver(ProfitShareCache(loader, ttl_seconds=60, clock=clock))

        first = await resolver.resolve("prod-light", 100.0)
        second = await resolver.resolve("prod-unknown", 100.0)

        assert first == pytest.approx({"yassir": 60.0, "basim": 40.0})
        assert second == {"yassir": 0.0, "basim": 100.0}
        assert len(loads) == 1
