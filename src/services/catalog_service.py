"""
Catalog Service

Shipping methods, payment methods and promotional offers.
"""

from datetime import date
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import OfferRecord, PaymentMethodRecord, ProductRecord, ShippingMethodRecord
from src.profit.models import DiscountKind, Offer, PaymentMethod, ShippingMethod
from src.profit.offers import is_offer_active
from src.services.exceptions import EntityNotFoundError
from src.services.mappers import (
    offer_to_domain,
    payment_method_to_domain,
    shipping_method_to_domain,
    to_decimal,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# Shipping
# =============================================================================

async def list_shipping_methods(db: AsyncSession, active_only: bool = True) -> List[ShippingMethod]:
    query = select(ShippingMethodRecord).order_by(ShippingMethodRecord.name)
    if active_only:
        query = query.where(ShippingMethodRecord.is_active.is_(True))
    result = await db.execute(query)
    return [shipping_method_to_domain(record) for record in result.scalars().all()]


async def get_shipping_method(db: AsyncSession, method_id: str) -> ShippingMethod:
    record = await db.get(ShippingMethodRecord, method_id)
    if record is None:
        raise EntityNotFoundError("Shipping method", method_id)
    return shipping_method_to_domain(record)


async def create_shipping_method(db: AsyncSession, name: str, cost: float) -> ShippingMethod:
    record = ShippingMethodRecord(name=name, cost=to_decimal(cost))
    db.add(record)
    await db.flush()
    logger.info("Shipping method created", name=name, cost=cost)
    return shipping_method_to_domain(record)


# =============================================================================
# Payment
# =============================================================================

async def list_payment_methods(db: AsyncSession, active_only: bool = True) -> List[PaymentMethod]:
    query = select(PaymentMethodRecord).order_by(PaymentMethodRecord.name)
    if active_only:
        query = query.where(PaymentMethodRecord.is_active.is_(True))
    result = await db.execute(query)
    return [payment_method_to_domain(record) for record in result.scalars().all()]


async def get_payment_method(db: AsyncSession, method_id: str) -> PaymentMethod:
    record = await db.get(PaymentMethodRecord, method_id)
    if record is None:
        raise EntityNotFoundError("Payment method", method_id)
    return payment_method_to_domain(record)


async def create_payment_method(
    db: AsyncSession,
    name: str,
    fee_percentage: float = 0.0,
    fee_fixed: float = 0.0,
    tax_rate: float = 0.0,
    customer_fee: float = 0.0,
) -> PaymentMethod:
    record = PaymentMethodRecord(
        name=name,
        fee_percentage=to_decimal(fee_percentage, 3),
        fee_fixed=to_decimal(fee_fixed),
        tax_rate=to_decimal(tax_rate),
        customer_fee=to_decimal(customer_fee),
    )
    db.add(record)
    await db.flush()
    logger.info("Payment method created", name=name)
    return payment_method_to_domain(record)


# =============================================================================
# Offers
# =============================================================================

async def list_offers(db: AsyncSession, active_only: bool = False) -> List[Offer]:
    result = await db.execute(select(OfferRecord).order_by(OfferRecord.name))
    offers = [offer_to_domain(record) for record in result.scalars().all()]
    if active_only:
        offers = [offer for offer in offers if offer.is_active]
    return offers


async def get_active_offers(db: AsyncSession, today: Optional[date] = None) -> List[Offer]:
    """Offers that are switched on and inside their date window"""
    return [offer for offer in await list_offers(db) if is_offer_active(offer, today)]


async def create_offer(
    db: AsyncSession,
    name: str,
    trigger_product_id: str,
    target_product_id: str,
    discount_kind: DiscountKind,
    discount_value: float,
    is_active: bool = True,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    description: str = "",
) -> Offer:
    """
    Raises:
        EntityNotFoundError: trigger or target product unknown
        ValueError: negative value, percentage over 100, or end before start
    """
    for product_id in (trigger_product_id, target_product_id):
        if await db.get(ProductRecord, product_id) is None:
            raise EntityNotFoundError("Product", product_id)

    if discount_value < 0:
        raise ValueError("Offer discount must not be negative")
    if discount_kind == DiscountKind.PERCENTAGE and discount_value > 100:
        raise ValueError("Percentage offer cannot exceed 100")
    if start_date and end_date and end_date < start_date:
        raise ValueError("Offer end date is before its start date")

    record = OfferRecord(
        name=name,
        description=description,
        trigger_product_id=trigger_product_id,
        target_product_id=target_product_id,
        discount_type=DiscountKind(discount_kind).value,
        discount_value=to_decimal(discount_value),
        is_active=is_active,
        start_date=start_date,
        end_date=end_date,
    )
    db.add(record)
    await db.flush()

    logger.info("Offer created", offer_id=record.id, target_product_id=target_product_id)
    return offer_to_domain(record)
