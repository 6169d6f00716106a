"""
Order Service

Checkout, order reads, recalculation and bulk maintenance.

Order creation prices the cart with `price_order`, applies the best active
offer, and stores snapshots of everything the profit calculation needs.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import OrderRecord
from src.profit.models import AppliedOffer, Discount, Order, OrderItem, PaymentMethod, ShippingMethod
from src.profit.offers import apply_best_offer
from src.profit.pricing import OrderQuote, price_order
from src.services.catalog_service import get_active_offers, get_payment_method, get_shipping_method
from src.services.exceptions import EntityNotFoundError, InvalidOrderError
from src.services.mappers import dump_snapshot, items_snapshot, order_to_domain, to_decimal, utc_naive
from src.services.product_service import get_products_by_ids
from src.services.settings_service import SettingsCache, resolve_free_shipping_threshold

logger = structlog.get_logger(__name__)

# (product_id, quantity)
CartLine = Tuple[str, int]


@dataclass(frozen=True)
class PricedCart:
    items: Tuple[OrderItem, ...]
    shipping_method: ShippingMethod
    payment_method: PaymentMethod
    discount: Optional[Discount]
    applied_offer: Optional[AppliedOffer]
    quote: OrderQuote


@dataclass(frozen=True)
class RecalculationSummary:
    """Outcome of a bulk recalculation"""
    updated: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def updated_count(self) -> int:
        return len(self.updated)


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


async def build_items(db: AsyncSession, lines: Sequence[CartLine]) -> List[OrderItem]:
    """
    Resolve cart lines to product snapshots.

    Raises:
        InvalidOrderError: empty cart or non-positive quantity
        EntityNotFoundError: unknown product
    """
    if not lines:
        raise InvalidOrderError("Order must contain at least one item")

    products = await get_products_by_ids(db, [product_id for product_id, _ in lines])

    items = []
    for product_id, quantity in lines:
        product = products.get(product_id)
        if product is None:
            raise EntityNotFoundError("Product", product_id)
        try:
            items.append(OrderItem(product=product, quantity=quantity))
        except ValueError as e:
            raise InvalidOrderError(str(e)) from e
    return items


def _price(
    items: Sequence[OrderItem],
    shipping_method: ShippingMethod,
    payment_method: PaymentMethod,
    discount: Optional[Discount],
    applied_offer: Optional[AppliedOffer],
    free_shipping_threshold: Optional[float],
) -> PricedCart:
    quote = price_order(
        items,
        shipping_method,
        payment_method,
        discount=discount,
        free_shipping_threshold=free_shipping_threshold,
        offer=applied_offer,
    )
    return PricedCart(
        items=tuple(items),
        shipping_method=shipping_method,
        payment_method=payment_method,
        discount=discount,
        applied_offer=applied_offer,
        quote=quote,
    )


async def quote_order(
    db: AsyncSession,
    lines: Sequence[CartLine],
    shipping_method_id: str,
    payment_method_id: str,
    discount: Optional[Discount] = None,
    apply_offers: bool = True,
    free_shipping_threshold: Optional[float] = None,
    today: Optional[date] = None,
    settings_cache: Optional[SettingsCache] = None,
) -> PricedCart:
    """Price a cart without saving it"""
    items = await build_items(db, lines)
    shipping_method = await get_shipping_method(db, shipping_method_id)
    payment_method = await get_payment_method(db, payment_method_id)

    applied_offer = None
    if apply_offers:
        applied_offer = apply_best_offer(items, await get_active_offers(db, today), today)

    if free_shipping_threshold is None:
        free_shipping_threshold = await resolve_free_shipping_threshold(db, settings_cache)

    return _price(items, shipping_method, payment_method, discount, applied_offer, free_shipping_threshold)


def _apply_priced_cart(record: OrderRecord, cart: PricedCart) -> None:
    quote = cart.quote
    record.items = items_snapshot(cart.items)
    record.shipping_method = dump_snapshot(cart.shipping_method)
    record.payment_method = dump_snapshot(cart.payment_method)
    record.discount = dump_snapshot(cart.discount)
    record.applied_offer = dump_snapshot(cart.applied_offer)
    record.subtotal = to_decimal(quote.subtotal)
    record.shipping_cost = to_decimal(quote.shipping_cost)
    record.payment_fees = to_decimal(quote.payment_fees)
    record.total = to_decimal(quote.customer_total)
    record.net_profit = to_decimal(quote.net_profit)
    record.is_free_shipping = quote.is_free_shipping


async def create_order(
    db: AsyncSession,
    lines: Sequence[CartLine],
    shipping_method_id: str,
    payment_method_id: str,
    discount: Optional[Discount] = None,
    customer_name: Optional[str] = None,
    order_number: Optional[str] = None,
    order_date: Optional[datetime] = None,
    apply_offers: bool = True,
    free_shipping_threshold: Optional[float] = None,
    settings_cache: Optional[SettingsCache] = None,
) -> Order:
    """Price and persist a new order"""
    order_date = order_date or datetime.now(timezone.utc)
    cart = await quote_order(
        db,
        lines,
        shipping_method_id,
        payment_method_id,
        discount=discount,
        apply_offers=apply_offers,
        free_shipping_threshold=free_shipping_threshold,
        today=order_date.date(),
        settings_cache=settings_cache,
    )

    record = OrderRecord(
        order_number=order_number or generate_order_number(order_date),
        order_date=utc_naive(order_date),
        customer_name=customer_name,
    )
    _apply_priced_cart(record, cart)
    db.add(record)
    await db.flush()

    logger.info(
        "Order created",
        order_id=record.id,
        order_number=record.order_number,
        total=cart.quote.customer_total,
        net_profit=round(cart.quote.net_profit, 2),
        offer=cart.applied_offer.offer_id if cart.applied_offer else None,
    )
    return order_to_domain(record)


async def list_orders(
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Order]:
    """Orders newest first, optionally inside [start, end]"""
    query = select(OrderRecord).order_by(OrderRecord.order_date.desc())
    if start:
        query = query.where(OrderRecord.order_date >= utc_naive(start))
    if end:
        query = query.where(OrderRecord.order_date <= utc_naive(end))
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return [order_to_domain(record) for record in result.scalars().all()]


async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    record = await db.get(OrderRecord, order_id)
    return order_to_domain(record) if record else None


async def delete_order(db: AsyncSession, order_id: str) -> bool:
    record = await db.get(OrderRecord, order_id)
    if record is None:
        return False

    await db.delete(record)
    await db.flush()
    logger.info("Order deleted", order_id=order_id, order_number=record.order_number)
    return True


async def recalculate_order(
    db: AsyncSession,
    order_id: str,
    apply_offers: bool = True,
    free_shipping_threshold: Optional[float] = None,
    today: Optional[date] = None,
    settings_cache: Optional[SettingsCache] = None,
) -> Order:
    """
    Re-price an order against the current catalog.

    Item prices and costs are refreshed from products that still exist; lines
    for deleted products keep their snapshot. Shipping and payment methods and
    the manual discount stay as recorded.

    Raises:
        EntityNotFoundError: unknown order
    """
    record = await db.get(OrderRecord, order_id)
    if record is None:
        raise EntityNotFoundError("Order", order_id)

    order = order_to_domain(record)
    current = await get_products_by_ids(db, [item.product.id for item in order.items])
    items = [
        OrderItem(product=current.get(item.product.id, item.product), quantity=item.quantity)
        for item in order.items
    ]

    applied_offer = None
    if apply_offers:
        applied_offer = apply_best_offer(items, await get_active_offers(db, today), today)

    if free_shipping_threshold is None:
        free_shipping_threshold = await resolve_free_shipping_threshold(db, settings_cache)

    cart = _price(
        items,
        order.shipping_method,
        order.payment_method,
        order.discount,
        applied_offer,
        free_shipping_threshold,
    )
    _apply_priced_cart(record, cart)
    await db.flush()

    logger.info(
        "Order recalculated",
        order_id=order_id,
        previous_net_profit=order.net_profit,
        net_profit=round(cart.quote.net_profit, 2),
    )
    return order_to_domain(record)


async def recalculate_orders(
    db: AsyncSession,
    order_ids: Iterable[str],
    apply_offers: bool = True,
    today: Optional[date] = None,
    settings_cache: Optional[SettingsCache] = None,
) -> RecalculationSummary:
    """
    Re-price several orders with one threshold lookup.

    Unknown ids are reported as missing. Orders that can no longer be priced
    (a stored discount now larger than the subtotal) are left unchanged and
    reported under `failed`. Store errors propagate.
    """
    threshold = await resolve_free_shipping_threshold(db, settings_cache)

    updated: List[str] = []
    missing: List[str] = []
    failed: Dict[str, str] = {}
    for order_id in order_ids:
        try:
            await recalculate_order(
                db,
                order_id,
                apply_offers=apply_offers,
                free_shipping_threshold=threshold,
                today=today,
            )
        except EntityNotFoundError:
            missing.append(order_id)
        except ValueError as e:
            logger.warning("Order not recalculated", order_id=order_id, error=str(e))
            failed[order_id] = str(e)
        else:
            updated.append(order_id)

    logger.info(
        "Orders recalculated",
        updated=len(updated),
        missing=len(missing),
        failed=len(failed),
    )
    return RecalculationSummary(updated=tuple(updated), missing=tuple(missing), failed=failed)


async def recalculate_all_orders(
    db: AsyncSession,
    apply_offers: bool = True,
    today: Optional[date] = None,
    settings_cache: Optional[SettingsCache] = None,
) -> RecalculationSummary:
    result = await db.execute(select(OrderRecord.id).order_by(OrderRecord.order_date))
    return await recalculate_orders(
        db,
        result.scalars().all(),
        apply_offers=apply_offers,
        today=today,
        settings_cache=settings_cache,
    )


async def delete_orders(db: AsyncSession, order_ids: Sequence[str]) -> int:
    """Delete every listed order; returns how many existed"""
    if not order_ids:
        return 0

    result = await db.execute(delete(OrderRecord).where(OrderRecord.id.in_(list(order_ids))))
    await db.flush()

    logger.info("Orders deleted", requested=len(order_ids), deleted=result.rowcount)
    return result.rowcount
