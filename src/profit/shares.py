"""
Partner Share Resolver

Applies a product's partner percentages to its net profit. Losses split the
same way as gains. The last configured partner receives the remainder, so the
shares always add back to the input figure.

Products with no usable configuration fall back to 100% for the default
partner and log a warning; order processing never stops on missing shares.
"""

import math
from typing import Dict, Iterable, Mapping, Optional, Sequence

import structlog

from src.profit.cache import ProfitShareCache, ProfitShareSnapshot
from src.profit.models import ShareEntry

logger = structlog.get_logger(__name__)

DEFAULT_PARTNER = "basim"
PERCENTAGE_TOLERANCE = 0.01


class ProfitShareValidationError(ValueError):
    """Share configuration rejected before it reaches the store"""

    def __init__(self, message: str, total: Optional[float] = None):
        super().__init__(message)
        self.total = total


def validate_share_percentages(
    entries: Sequence[ShareEntry],
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> float:
    """
    Check a share configuration before saving it.

    Returns:
        The percentage total

    Raises:
        ProfitShareValidationError: empty, duplicate partner, out-of-range
            percentage, or a total that is not 100 within tolerance
    """
    if not entries:
        raise ProfitShareValidationError("At least one partner share is required")

    seen = set()
    for entry in entries:
        if entry.partner_id in seen:
            raise ProfitShareValidationError(f"Duplicate share for partner {entry.partner_id}")
        seen.add(entry.partner_id)

        if entry.percentage < 0 or entry.percentage > 100:
            raise ProfitShareValidationError(
                f"Percentage for partner {entry.partner_id} must be between 0 and 100, "
                f"got {entry.percentage}"
            )

    total = sum(entry.percentage for entry in entries)
    if abs(total - 100) > tolerance:
        raise ProfitShareValidationError(
            f"Profit share percentages must sum to 100, got {total:.2f}",
            total=total,
        )

    return total


def is_valid_configuration(
    percentages: Mapping[str, float],
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> bool:
    return bool(percentages) and abs(sum(percentages.values()) - 100) <= tolerance


def split_profit(net_profit: float, percentages: Mapping[str, float]) -> Dict[str, float]:
    """
    Split a figure by percentage.

    Every partner but the last gets `net_profit * pct / 100`, snapped to a
    multiple of `ulp(net_profit)`; the last gets what is left. On that grid the
    subtraction is exact, so the parts add back to `net_profit` with no
    floating point residue.
    """
    names = list(percentages)
    if not names:
        return {}

    grid = math.ulp(net_profit) if math.isfinite(net_profit) else None
    result = {}
    allotted = 0.0
    for name in names[:-1]:
        amount = net_profit * percentages[name] / 100
        if grid is not None:
            amount = round(amount / grid) * grid
        result[name] = amount
        allotted += amount
    result[names[-1]] = net_profit - allotted

    return result


def fallback_split(
    net_profit: float,
    partners: Iterable[str],
    default_partner: str = DEFAULT_PARTNER,
) -> Dict[str, float]:
    """Everything to the default partner, zero for the rest"""
    result = {name: 0.0 for name in partners}
    result[default_partner] = net_profit
    return result


def resolve_shares(
    snapshot: ProfitShareSnapshot,
    product_id: str,
    net_profit: float,
    default_partner: str = DEFAULT_PARTNER,
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> Dict[str, float]:
    """
    Per-partner share of one product's net profit.

    The result always carries every known partner (zero where unconfigured).
    """
    percentages = snapshot.for_product(product_id)

    if percentages is None:
        logger.warning(
            "No profit shares configured, using default partner",
            product_id=product_id,
            default_partner=default_partner,
        )
        return fallback_split(net_profit, snapshot.partners, default_partner)

    if not is_valid_configuration(percentages, tolerance):
        logger.warning(
            "Profit shares do not sum to 100, using default partner",
            product_id=product_id,
            total=sum(percentages.values()),
            default_partner=default_partner,
        )
        return fallback_split(net_profit, snapshot.partners, default_partner)

    result = {name: 0.0 for name in snapshot.partners}
    result.update(split_profit(net_profit, percentages))
    return result


class PartnerShareResolver:
    """Resolves partner shares against the cached percentage map"""

    def __init__(
        self,
        cache: ProfitShareCache,
        default_partner: str = DEFAULT_PARTNER,
        tolerance: float = PERCENTAGE_TOLERANCE,
    ):
        self.cache = cache
        self.default_partner = default_partner
        self.tolerance = tolerance

    async def snapshot(self) -> ProfitShareSnapshot:
        return await self.cache.get()

    async def resolve(self, product_id: str, net_profit: float) -> Dict[str, float]:
        """Share of `net_profit` for each partner"""
        snapshot = await self.cache.get()
        return resolve_shares(
            snapshot, product_id, net_profit, self.default_partner, self.tolerance
        )
