"""
Profit Share Service

Partners and per-product profit share percentages.

Percentages are validated before anything is written; a rejected
configuration raises ProfitShareValidationError and leaves the stored one
untouched. Every successful save invalidates the profit share cache.
"""

import time
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.database.connection import get_db
from src.database.models import PartnerRecord, ProductProfitShareRecord, ProductRecord
from src.profit.cache import Clock, ProfitShareCache, ProfitShareSnapshot
from src.profit.models import Partner, ShareEntry
from src.profit.shares import ProfitShareValidationError, validate_share_percentages
from src.services.exceptions import EntityNotFoundError
from src.services.mappers import partner_to_domain, to_decimal, to_float

logger = structlog.get_logger(__name__)
settings = get_settings()


async def get_partners(db: AsyncSession, active_only: bool = True) -> List[Partner]:
    """Partners ordered by name"""
    query = select(PartnerRecord).order_by(PartnerRecord.name)
    if active_only:
        query = query.where(PartnerRecord.is_active.is_(True))

    result = await db.execute(query)
    return [partner_to_domain(record) for record in result.scalars().all()]


async def create_partner(
    db: AsyncSession,
    name: str,
    display_name: Optional[str] = None,
    is_active: bool = True,
) -> Partner:
    record = PartnerRecord(
        name=name,
        display_name=display_name or name.title(),
        is_active=is_active,
    )
    db.add(record)
    await db.flush()

    logger.info("Partner created", partner=name)
    return partner_to_domain(record)


async def get_product_profit_shares(db: AsyncSession, product_id: str) -> List[ShareEntry]:
    """Stored percentages for one product, empty when unconfigured"""
    query = (
        select(ProductProfitShareRecord)
        .join(PartnerRecord, PartnerRecord.id == ProductProfitShareRecord.partner_id)
        .where(ProductProfitShareRecord.product_id == product_id)
        .order_by(PartnerRecord.name)
    )
    result = await db.execute(query)

    return [
        ShareEntry(partner_id=record.partner_id, percentage=to_float(record.share_percentage))
        for record in result.scalars().all()
    ]


async def get_all_profit_shares(db: AsyncSession) -> ProfitShareSnapshot:
    """
    Whole share table as a snapshot: product_id -> partner name -> percentage.

    Partners come from the active partner table, or the configured names when
    the table is empty. Rows for inactive partners are left out, so a product
    split that still names one no longer sums to 100 and resolves to the
    default partner.
    """
    partners = [partner.name for partner in await get_partners(db)]
    if not partners:
        partners = list(settings.profit_sharing.partners)

    query = (
        select(
            ProductProfitShareRecord.product_id,
            PartnerRecord.name,
            ProductProfitShareRecord.share_percentage,
        )
        .join(PartnerRecord, PartnerRecord.id == ProductProfitShareRecord.partner_id)
        .where(PartnerRecord.is_active.is_(True))
        .order_by(ProductProfitShareRecord.product_id, PartnerRecord.name)
    )
    result = await db.execute(query)

    shares: Dict[str, Dict[str, float]] = {}
    for product_id, partner_name, percentage in result.all():
        shares.setdefault(product_id, {})[partner_name] = to_float(percentage)

    return ProfitShareSnapshot(partners=tuple(partners), shares=shares)


async def save_profit_shares(
    db: AsyncSession,
    product_id: str,
    entries: Sequence[ShareEntry],
    cache: Optional[ProfitShareCache] = None,
) -> List[ShareEntry]:
    """
    Replace a product's share configuration.

    Raises:
        ProfitShareValidationError: percentages invalid or partner unknown
        EntityNotFoundError: product does not exist
    """
    validate_share_percentages(entries, settings.profit_sharing.percentage_tolerance)

    if await db.get(ProductRecord, product_id) is None:
        raise EntityNotFoundError("Product", product_id)

    partner_ids = [entry.partner_id for entry in entries]
    result = await db.execute(select(PartnerRecord.id).where(PartnerRecord.id.in_(partner_ids)))
    known = set(result.scalars().all())
    unknown = [partner_id for partner_id in partner_ids if partner_id not in known]
    if unknown:
        raise ProfitShareValidationError(f"Unknown partner(s): {', '.join(unknown)}")

    await db.execute(
        delete(ProductProfitShareRecord).where(ProductProfitShareRecord.product_id == product_id)
    )
    for entry in entries:
        db.add(ProductProfitShareRecord(
            product_id=product_id,
            partner_id=entry.partner_id,
            share_percentage=to_decimal(entry.percentage),
        ))

    # Commit before invalidating so the next cache load sees the new rows
    await db.commit()
    if cache is not None:
        cache.invalidate()

    logger.info(
        "Profit shares saved",
        product_id=product_id,
        shares={entry.partner_id: entry.percentage for entry in entries},
    )
    return list(entries)


def create_profit_share_cache(
    ttl_seconds: Optional[float] = None,
    clock: Clock = time.monotonic,
) -> ProfitShareCache:
    """Cache whose loader reads the share table through a fresh session"""

    async def load_snapshot() -> ProfitShareSnapshot:
        async with get_db() as db:
            return await get_all_profit_shares(db)

    return ProfitShareCache(
        loader=load_snapshot,
        ttl_seconds=(
            settings.profit_sharing.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        ),
        clock=clock,
    )
