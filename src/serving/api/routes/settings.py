"""
Settings API Endpoints

Runtime-editable store settings, with a dedicated pair of endpoints for the
free-shipping threshold used at checkout.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.serving.api.dependencies import get_settings_cache
from src.services import settings_service
from src.services.settings_service import SettingsCache

router = APIRouter()


class SettingResponse(BaseModel):
    key: str
    value: Any
    setting_type: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_editable: bool

    class Config:
        from_attributes = True


class SettingUpdate(BaseModel):
    value: Any


class FreeShippingThreshold(BaseModel):
    value: float = Field(..., ge=0, description="0 turns free shipping off")


@router.get("", response_model=List[SettingResponse])
async def list_settings(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db_dependency),
):
    """Editable settings, or every setting of one category."""
    if category:
        rows = await settings_service.get_settings_by_category(db, category)
    else:
        rows = await settings_service.get_editable_settings(db)
    return [SettingResponse.model_validate(row) for row in rows]


@router.get("/free-shipping-threshold", response_model=FreeShippingThreshold)
async def get_free_shipping_threshold(
    db: AsyncSession = Depends(get_db_dependency),
    cache: SettingsCache = Depends(get_settings_cache),
) -> FreeShippingThreshold:
    value = await settings_service.resolve_free_shipping_threshold(db, cache)
    return FreeShippingThreshold(value=value)


@router.put("/free-shipping-threshold", response_model=FreeShippingThreshold)
async def update_free_shipping_threshold(
    payload: FreeShippingThreshold,
    db: AsyncSession = Depends(get_db_dependency),
    cache: SettingsCache = Depends(get_settings_cache),
) -> FreeShippingThreshold:
    value = await settings_service.update_free_shipping_threshold(db, payload.value, cache=cache)
    return FreeShippingThreshold(value=value)


@router.put("/{key}", response_model=SettingResponse)
async def update_setting(
    key: str,
    payload: SettingUpdate,
    db: AsyncSession = Depends(get_db_dependency),
    cache: SettingsCache = Depends(get_settings_cache),
):
    setting = await settings_service.update_setting(db, key, payload.value, cache=cache)
    return SettingResponse.model_validate(setting)
