"""
Orders API Endpoints

Checkout, order history and per-order profit breakdown.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.profit.calculator import calculate_order_profit
from src.profit.models import Discount, DiscountKind, Order
from src.profit.report import item_partner_shares
from src.profit.shares import PartnerShareResolver
from src.serving.api.dependencies import get_settings_cache, get_share_resolver
from src.services import order_service
from src.services.settings_service import SettingsCache

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class OrderLine(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class DiscountSchema(BaseModel):
    kind: DiscountKind
    value: float = Field(..., ge=0)
    code: Optional[str] = None

    @model_validator(mode="after")
    def check_percentage(self) -> "DiscountSchema":
        if self.kind == DiscountKind.PERCENTAGE and self.value > 100:
            raise ValueError("percentage discount must be at most 100")
        return self

    def to_domain(self) -> Discount:
        return Discount(kind=self.kind, value=self.value, code=self.code)


class OrderCreate(BaseModel):
    items: List[OrderLine] = Field(..., min_length=1)
    shipping_method_id: str
    payment_method_id: str
    discount: Optional[DiscountSchema] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    order_number: Optional[str] = Field(None, max_length=50)
    order_date: Optional[datetime] = None
    apply_offers: bool = True


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    sku: str
    owner: str
    quantity: int
    unit_price: float
    unit_cost: float


class AppliedOfferResponse(BaseModel):
    offer_id: str
    offer_name: str
    target_product_id: str
    discount_amount: float


class OrderResponse(BaseModel):
    id: str
    order_number: str
    order_date: datetime
    customer_name: Optional[str]
    items: List[OrderItemResponse]
    shipping_method: str
    payment_method: str
    subtotal: float
    shipping_cost: float
    payment_fees: float
    discount_amount: float
    discount: Optional[DiscountSchema]
    applied_offer: Optional[AppliedOfferResponse]
    is_free_shipping: bool
    total: float
    net_profit: float


class QuoteResponse(BaseModel):
    subtotal: float
    discount_amount: float
    offer_discount: float
    is_free_shipping: bool
    shipping_cost: float
    actual_shipping_cost: float
    customer_fee: float
    customer_total: float
    payment_fees: float
    net_profit: float
    applied_offer: Optional[AppliedOfferResponse]


class RecalculateRequest(BaseModel):
    order_ids: Optional[List[str]] = Field(None, description="Omit to recalculate every order")
    apply_offers: bool = True


class RecalculationResponse(BaseModel):
    updated: int
    updated_ids: List[str]
    missing: List[str]
    failed: Dict[str, str]


class BulkDeleteRequest(BaseModel):
    order_ids: List[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int


class ItemProfitResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    subtotal: float
    revenue_proportion: float
    revenue: float
    cost: float
    expense_share: float
    offer_discount: float
    net_profit: float
    partner_shares: Dict[str, float]


class OrderProfitResponse(BaseModel):
    order_id: str
    subtotal: float
    total_with_shipping: float
    shared_expense: float
    net_profit: float
    reconciles: bool
    partner_shares: Dict[str, float]
    items: List[ItemProfitResponse]


def _offer_response(offer) -> Optional[AppliedOfferResponse]:
    if offer is None:
        return None
    return AppliedOfferResponse(
        offer_id=offer.offer_id,
        offer_name=offer.offer_name,
        target_product_id=offer.target_product_id,
        discount_amount=offer.discount_amount,
    )


def to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        order_date=order.timestamp,
        customer_name=order.customer_name,
        items=[
            OrderItemResponse(
                product_id=item.product.id,
                product_name=item.product.name,
                sku=item.product.sku,
                owner=item.product.owner,
                quantity=item.quantity,
                unit_price=item.product.selling_price,
                unit_cost=item.product.cost,
            )
            for item in order.items
        ],
        shipping_method=order.shipping_method.name,
        payment_method=order.payment_method.name,
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        payment_fees=order.payment_fees,
        discount_amount=order.discount_amount,
        discount=(
            DiscountSchema(kind=order.discount.kind, value=order.discount.value, code=order.discount.code)
            if order.discount else None
        ),
        applied_offer=_offer_response(order.applied_offer),
        is_free_shipping=order.is_free_shipping,
        total=order.total,
        net_profit=order.net_profit,
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=List[OrderResponse])
async def list_orders(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db_dependency),
) -> List[OrderResponse]:
    orders = await order_service.list_orders(db, start=start_date, end=end_date, limit=limit, offset=offset)
    return [to_response(order) for order in orders]


@router.post("/quote", response_model=QuoteResponse)
async def quote_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db_dependency),
    settings_cache: SettingsCache = Depends(get_settings_cache),
) -> QuoteResponse:
    """Price a cart without saving it."""
    cart = await order_service.quote_order(
        db,
        [(line.product_id, line.quantity) for line in payload.items],
        payload.shipping_method_id,
        payload.payment_method_id,
        discount=payload.discount.to_domain() if payload.discount else None,
        apply_offers=payload.apply_offers,
        settings_cache=settings_cache,
    )
    return QuoteResponse(**asdict(cart.quote), applied_offer=_offer_response(cart.applied_offer))


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db_dependency),
    settings_cache: SettingsCache = Depends(get_settings_cache),
) -> OrderResponse:
    order = await order_service.create_order(
        db,
        [(line.product_id, line.quantity) for line in payload.items],
        payload.shipping_method_id,
        payload.payment_method_id,
        discount=payload.discount.to_domain() if payload.discount else None,
        customer_name=payload.customer_name,
        order_number=payload.order_number,
        order_date=payload.order_date,
        apply_offers=payload.apply_offers,
        settings_cache=settings_cache,
    )
    return to_response(order)


@router.post("/recalculate", response_model=RecalculationResponse)
async def recalculate_orders(
    payload: RecalculateRequest,
    db: AsyncSession = Depends(get_db_dependency),
    settings_cache: SettingsCache = Depends(get_settings_cache),
) -> RecalculationResponse:
    """Re-price the listed orders, or all of them."""
    if payload.order_ids is None:
        summary = await order_service.recalculate_all_orders(
            db, apply_offers=payload.apply_offers, settings_cache=settings_cache
        )
    else:
        summary = await order_service.recalculate_orders(
            db, payload.order_ids, apply_offers=payload.apply_offers, settings_cache=settings_cache
        )
    return RecalculationResponse(
        updated=summary.updated_count,
        updated_ids=list(summary.updated),
        missing=list(summary.missing),
        failed=summary.failed,
    )


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def delete_orders(
    payload: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db_dependency),
) -> BulkDeleteResponse:
    return BulkDeleteResponse(deleted=await order_service.delete_orders(db, payload.order_ids))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> OrderResponse:
    order = await order_service.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return to_response(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> None:
    if not await order_service.delete_order(db, order_id):
        raise HTTPException(status_code=404, detail="Order not found")


@router.get("/{order_id}/profit", response_model=OrderProfitResponse)
async def get_order_profit(
    order_id: str,
    db: AsyncSession = Depends(get_db_dependency),
    resolver: PartnerShareResolver = Depends(get_share_resolver),
) -> OrderProfitResponse:
    """Per-item revenue, allocated expense, net profit and partner split."""
    order = await order_service.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    profit = calculate_order_profit(order)
    snapshot = await resolver.snapshot()
    splits = item_partner_shares(profit.items, snapshot, resolver.default_partner, resolver.tolerance)

    totals: Dict[str, float] = {}
    for split in splits:
        for partner, amount in split.items():
            totals[partner] = totals.get(partner, 0.0) + amount

    return OrderProfitResponse(
        order_id=order.id,
        subtotal=profit.subtotal,
        total_with_shipping=profit.total_with_shipping,
        shared_expense=profit.shared_expense,
        net_profit=profit.net_profit,
        reconciles=profit.reconciles,
        partner_shares=totals,
        items=[
            ItemProfitResponse(**asdict(item), partner_shares=split)
            for item, split in zip(profit.items, splits)
        ],
    )


@router.post("/{order_id}/recalculate", response_model=OrderResponse)
async def recalculate_order(
    order_id: str,
    apply_offers: bool = True,
    db: AsyncSession = Depends(get_db_dependency),
    settings_cache: SettingsCache = Depends(get_settings_cache),
) -> OrderResponse:
    """Re-price an order against current catalog prices and active offers."""
    order = await order_service.recalculate_order(
        db, order_id, apply_offers=apply_offers, settings_cache=settings_cache
    )
    return to_response(order)
