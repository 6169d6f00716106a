"""
Quick Discount Service

Preset manual discounts the checkout offers as one-click choices. They are
kept in `display_order`; applying one to an order goes through
`QuickDiscount.to_discount()` like any other manual discount.
"""

from typing import Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import QuickDiscountRecord
from src.profit.models import Discount, DiscountKind, QuickDiscount
from src.services.exceptions import EntityNotFoundError
from src.services.mappers import quick_discount_to_domain, to_decimal

logger = structlog.get_logger(__name__)


async def list_quick_discounts(db: AsyncSession, active_only: bool = False) -> List[QuickDiscount]:
    query = select(QuickDiscountRecord).order_by(
        QuickDiscountRecord.display_order, QuickDiscountRecord.name
    )
    if active_only:
        query = query.where(QuickDiscountRecord.is_active.is_(True))

    result = await db.execute(query)
    return [quick_discount_to_domain(record) for record in result.scalars().all()]


async def get_quick_discount(db: AsyncSession, discount_id: str) -> QuickDiscount:
    record = await db.get(QuickDiscountRecord, discount_id)
    if record is None:
        raise EntityNotFoundError("Quick discount", discount_id)
    return quick_discount_to_domain(record)


async def create_quick_discount(
    db: AsyncSession,
    name: str,
    kind: DiscountKind,
    value: float,
    display_order: int = 0,
    is_active: bool = True,
) -> QuickDiscount:
    """
    Raises:
        ValueError: negative value or percentage over 100
    """
    Discount(kind=DiscountKind(kind), value=value)

    record = QuickDiscountRecord(
        name=name,
        discount_type=DiscountKind(kind).value,
        value=to_decimal(value),
        display_order=display_order,
        is_active=is_active,
    )
    db.add(record)
    await db.flush()

    logger.info("Quick discount created", discount_id=record.id, name=name, kind=record.discount_type)
    return quick_discount_to_domain(record)


async def update_quick_discount(
    db: AsyncSession,
    discount_id: str,
    name: Optional[str] = None,
    kind: Optional[DiscountKind] = None,
    value: Optional[float] = None,
    display_order: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> QuickDiscount:
    """
    Change the given fields; None leaves a field as stored.

    Raises:
        EntityNotFoundError: unknown discount
        ValueError: resulting kind/value pair is out of range
    """
    record = await db.get(QuickDiscountRecord, discount_id)
    if record is None:
        raise EntityNotFoundError("Quick discount", discount_id)

    new_kind = DiscountKind(kind) if kind is not None else DiscountKind(record.discount_type)
    new_value = value if value is not None else float(record.value)
    Discount(kind=new_kind, value=new_value)

    record.discount_type = new_kind.value
    record.value = to_decimal(new_value)
    if name is not None:
        record.name = name
    if display_order is not None:
        record.display_order = display_order
    if is_active is not None:
        record.is_active = is_active

    await db.flush()
    logger.info("Quick discount updated", discount_id=discount_id)
    return quick_discount_to_domain(record)


async def delete_quick_discount(db: AsyncSession, discount_id: str) -> bool:
    record = await db.get(QuickDiscountRecord, discount_id)
    if record is None:
        return False

    await db.delete(record)
    await db.flush()
    logger.info("Quick discount deleted", discount_id=discount_id)
    return True


async def reorder_quick_discounts(db: AsyncSession, positions: Dict[str, int]) -> List[QuickDiscount]:
    """
    Set `display_order` for several discounts at once.

    Raises:
        EntityNotFoundError: any id is unknown; nothing is changed
    """
    if not positions:
        return await list_quick_discounts(db)

    result = await db.execute(
        select(QuickDiscountRecord).where(QuickDiscountRecord.id.in_(list(positions)))
    )
    records = {record.id: record for record in result.scalars().all()}
    for discount_id in positions:
        if discount_id not in records:
            raise EntityNotFoundError("Quick discount", discount_id)

    for discount_id, display_order in positions.items():
        records[discount_id].display_order = display_order

    await db.flush()
    logger.info("Quick discounts reordered", count=len(positions))
    return await list_quick_discounts(db)
