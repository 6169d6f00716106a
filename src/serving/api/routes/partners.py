"""
Partners API Endpoints

Partner list and per-product profit share configuration.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.profit.cache import ProfitShareCache
from src.profit.models import ShareEntry
from src.serving.api.dependencies import get_profit_share_cache
from src.services import product_service, profit_share_service

router = APIRouter()


class PartnerResponse(BaseModel):
    id: str
    name: str
    display_name: str
    is_active: bool

    class Config:
        from_attributes = True


class PartnerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, max_length=100)


class ShareItem(BaseModel):
    partner_id: str
    percentage: float = Field(..., ge=0, le=100)


class ProductSharesResponse(BaseModel):
    product_id: str
    shares: List[ShareItem]
    total_percentage: float
    is_configured: bool


class ProductSharesUpdate(BaseModel):
    shares: List[ShareItem] = Field(..., min_length=1)


@router.get("", response_model=List[PartnerResponse])
async def list_partners(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db_dependency),
) -> List[PartnerResponse]:
    partners = await profit_share_service.get_partners(db, active_only=not include_inactive)
    return [PartnerResponse.model_validate(p) for p in partners]


@router.post("", response_model=PartnerResponse, status_code=status.HTTP_201_CREATED)
async def create_partner(
    payload: PartnerCreate,
    db: AsyncSession = Depends(get_db_dependency),
    cache: ProfitShareCache = Depends(get_profit_share_cache),
) -> PartnerResponse:
    partner = await profit_share_service.create_partner(db, payload.name, payload.display_name)
    await db.commit()
    cache.invalidate()
    return PartnerResponse.model_validate(partner)


@router.get("/shares/{product_id}", response_model=ProductSharesResponse)
async def get_product_shares(
    product_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> ProductSharesResponse:
    if not await product_service.get_product(db, product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    entries = await profit_share_service.get_product_profit_shares(db, product_id)
    return ProductSharesResponse(
        product_id=product_id,
        shares=[ShareItem(partner_id=e.partner_id, percentage=e.percentage) for e in entries],
        total_percentage=sum(e.percentage for e in entries),
        is_configured=bool(entries),
    )


@router.put("/shares/{product_id}", response_model=ProductSharesResponse)
async def save_product_shares(
    product_id: str,
    payload: ProductSharesUpdate,
    db: AsyncSession = Depends(get_db_dependency),
    cache: ProfitShareCache = Depends(get_profit_share_cache),
) -> ProductSharesResponse:
    """
    Replace a product's profit share configuration.

    Percentages must add up to 100; anything else is rejected with 422 and
    the stored configuration is left as it was.
    """
    entries = [ShareEntry(partner_id=s.partner_id, percentage=s.percentage) for s in payload.shares]
    saved = await profit_share_service.save_profit_shares(db, product_id, entries, cache=cache)

    return ProductSharesResponse(
        product_id=product_id,
        shares=[ShareItem(partner_id=e.partner_id, percentage=e.percentage) for e in saved],
        total_percentage=sum(e.percentage for e in saved),
        is_configured=True,
    )
