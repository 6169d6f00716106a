"""
Products API Endpoints

Catalog CRUD. Price and cost changes only affect orders created (or
recalculated) afterwards.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.services import product_service

router = APIRouter()


class ProductResponse(BaseModel):
    """Catalog product"""
    id: str
    sku: str
    name: str
    category: Optional[str]
    cost: float
    selling_price: float
    owner: str
    is_active: bool

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=50)
    cost: float = Field(..., ge=0)
    selling_price: float = Field(..., ge=0)
    owner: str = Field(..., min_length=1, max_length=50)
    category: Optional[str] = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    cost: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)
    owner: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None


@router.get("", response_model=List[ProductResponse])
async def list_products(
    active_only: bool = False,
    owner: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db_dependency),
) -> List[ProductResponse]:
    products = await product_service.list_products(db, active_only=active_only, owner=owner, search=search)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> ProductResponse:
    product = await product_service.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponse.model_validate(product)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db_dependency),
) -> ProductResponse:
    try:
        product = await product_service.create_product(db, **payload.model_dump())
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"SKU {payload.sku} already exists")
    return ProductResponse.model_validate(product)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db_dependency),
) -> ProductResponse:
    product = await product_service.update_product(db, product_id, **payload.model_dump(exclude_unset=True))
    return ProductResponse.model_validate(product)
