"""
Catalog API Endpoints

Shipping methods, payment methods, promotional offers and quick discount presets.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.profit.models import DiscountKind
from src.services import catalog_service, quick_discount_service

router = APIRouter()


class ShippingMethodSchema(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    cost: float = Field(..., ge=0)

    class Config:
        from_attributes = True


class PaymentMethodSchema(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    fee_percentage: float = Field(0.0, ge=0, le=100)
    fee_fixed: float = Field(0.0, ge=0)
    tax_rate: float = Field(0.0, ge=0, le=100)
    customer_fee: float = Field(0.0, ge=0)

    class Config:
        from_attributes = True


class OfferSchema(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    trigger_product_id: str
    target_product_id: str
    discount_kind: DiscountKind
    discount_value: float = Field(..., ge=0)
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = ""

    class Config:
        from_attributes = True


class QuickDiscountSchema(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    kind: DiscountKind
    value: float = Field(..., ge=0)
    display_order: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True


class QuickDiscountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    kind: Optional[DiscountKind] = None
    value: Optional[float] = Field(None, ge=0)
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class QuickDiscountPosition(BaseModel):
    id: str
    display_order: int


@router.get("/shipping-methods", response_model=List[ShippingMethodSchema])
async def list_shipping_methods(db: AsyncSession = Depends(get_db_dependency)):
    return [ShippingMethodSchema.model_validate(m) for m in await catalog_service.list_shipping_methods(db)]


@router.post("/shipping-methods", response_model=ShippingMethodSchema, status_code=status.HTTP_201_CREATED)
async def create_shipping_method(
    payload: ShippingMethodSchema,
    db: AsyncSession = Depends(get_db_dependency),
):
    method = await catalog_service.create_shipping_method(db, payload.name, payload.cost)
    return ShippingMethodSchema.model_validate(method)


@router.get("/payment-methods", response_model=List[PaymentMethodSchema])
async def list_payment_methods(db: AsyncSession = Depends(get_db_dependency)):
    return [PaymentMethodSchema.model_validate(m) for m in await catalog_service.list_payment_methods(db)]


@router.post("/payment-methods", response_model=PaymentMethodSchema, status_code=status.HTTP_201_CREATED)
async def create_payment_method(
    payload: PaymentMethodSchema,
    db: AsyncSession = Depends(get_db_dependency),
):
    method = await catalog_service.create_payment_method(
        db,
        payload.name,
        fee_percentage=payload.fee_percentage,
        fee_fixed=payload.fee_fixed,
        tax_rate=payload.tax_rate,
        customer_fee=payload.customer_fee,
    )
    return PaymentMethodSchema.model_validate(method)


@router.get("/offers", response_model=List[OfferSchema])
async def list_offers(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db_dependency),
):
    if active_only:
        offers = await catalog_service.get_active_offers(db)
    else:
        offers = await catalog_service.list_offers(db)
    return [OfferSchema.model_validate(o) for o in offers]


@router.post("/offers", response_model=OfferSchema, status_code=status.HTTP_201_CREATED)
async def create_offer(
    payload: OfferSchema,
    db: AsyncSession = Depends(get_db_dependency),
):
    offer = await catalog_service.create_offer(db, **payload.model_dump(exclude={"id"}))
    return OfferSchema.model_validate(offer)


@router.get("/quick-discounts", response_model=List[QuickDiscountSchema])
async def list_quick_discounts(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db_dependency),
):
    discounts = await quick_discount_service.list_quick_discounts(db, active_only=active_only)
    return [QuickDiscountSchema.model_validate(d) for d in discounts]


@router.post("/quick-discounts", response_model=QuickDiscountSchema, status_code=status.HTTP_201_CREATED)
async def create_quick_discount(
    payload: QuickDiscountSchema,
    db: AsyncSession = Depends(get_db_dependency),
):
    discount = await quick_discount_service.create_quick_discount(db, **payload.model_dump(exclude={"id"}))
    return QuickDiscountSchema.model_validate(discount)


@router.put("/quick-discounts/order", response_model=List[QuickDiscountSchema])
async def reorder_quick_discounts(
    positions: List[QuickDiscountPosition],
    db: AsyncSession = Depends(get_db_dependency),
):
    """Set display positions for several presets in one call."""
    discounts = await quick_discount_service.reorder_quick_discounts(
        db, {p.id: p.display_order for p in positions}
    )
    return [QuickDiscountSchema.model_validate(d) for d in discounts]


@router.patch("/quick-discounts/{discount_id}", response_model=QuickDiscountSchema)
async def update_quick_discount(
    discount_id: str,
    payload: QuickDiscountUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    discount = await quick_discount_service.update_quick_discount(
        db, discount_id, **payload.model_dump(exclude_unset=True)
    )
    return QuickDiscountSchema.model_validate(discount)


@router.delete("/quick-discounts/{discount_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quick_discount(
    discount_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> None:
    if not await quick_discount_service.delete_quick_discount(db, discount_id):
        raise HTTPException(status_code=404, detail="Quick discount not found")
