"""
Product Service

Catalog reads and writes. Orders never reference these rows directly; they
copy a snapshot at checkout.
"""

from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import ProductRecord
from src.profit.models import Product
from src.services.exceptions import EntityNotFoundError
from src.services.mappers import product_to_domain, to_decimal

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = {"name", "sku", "category", "cost", "selling_price", "owner", "is_active"}
MONEY_FIELDS = {"cost", "selling_price"}


async def list_products(
    db: AsyncSession,
    active_only: bool = False,
    owner: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Product]:
    query = select(ProductRecord).order_by(ProductRecord.name)

    if active_only:
        query = query.where(ProductRecord.is_active.is_(True))
    if owner:
        query = query.where(ProductRecord.owner == owner)
    if search:
        query = query.where(ProductRecord.name.ilike(f"%{search}%"))

    result = await db.execute(query)
    return [product_to_domain(record) for record in result.scalars().all()]


async def get_product(db: AsyncSession, product_id: str) -> Optional[Product]:
    record = await db.get(ProductRecord, product_id)
    return product_to_domain(record) if record else None


async def get_products_by_ids(db: AsyncSession, product_ids: Iterable[str]) -> Dict[str, Product]:
    ids = list(set(product_ids))
    if not ids:
        return {}

    result = await db.execute(select(ProductRecord).where(ProductRecord.id.in_(ids)))
    return {record.id: product_to_domain(record) for record in result.scalars().all()}


async def create_product(
    db: AsyncSession,
    name: str,
    sku: str,
    cost: float,
    selling_price: float,
    owner: str,
    category: Optional[str] = None,
    is_active: bool = True,
) -> Product:
    record = ProductRecord(
        name=name,
        sku=sku,
        cost=to_decimal(cost),
        selling_price=to_decimal(selling_price),
        owner=owner,
        category=category,
        is_active=is_active,
    )
    db.add(record)
    await db.flush()

    logger.info("Product created", product_id=record.id, sku=sku, owner=owner)
    return product_to_domain(record)


async def update_product(db: AsyncSession, product_id: str, **changes) -> Product:
    """
    Update catalog fields.

    Raises:
        EntityNotFoundError: unknown product
        ValueError: unknown field name
    """
    record = await db.get(ProductRecord, product_id)
    if record is None:
        raise EntityNotFoundError("Product", product_id)

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update product field(s): {', '.join(sorted(unknown))}")

    for field, value in changes.items():
        if field in MONEY_FIELDS:
            value = to_decimal(value)
        setattr(record, field, value)

    await db.flush()
    logger.info("Product updated", product_id=product_id, fields=sorted(changes))
    return product_to_domain(record)
