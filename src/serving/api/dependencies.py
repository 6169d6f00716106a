"""
Shared FastAPI dependencies.

The profit share and settings caches live on `app.state` so every request in
the process reads the same values.
"""

from fastapi import Request

from src.config import get_settings
from src.profit.cache import ProfitShareCache
from src.profit.shares import PartnerShareResolver
from src.services.profit_share_service import create_profit_share_cache
from src.services.settings_service import SettingsCache

settings = get_settings()


def get_profit_share_cache(request: Request) -> ProfitShareCache:
    cache = getattr(request.app.state, "profit_share_cache", None)
    if cache is None:
        cache = create_profit_share_cache()
        request.app.state.profit_share_cache = cache
    return cache


def get_share_resolver(request: Request) -> PartnerShareResolver:
    return PartnerShareResolver(
        get_profit_share_cache(request),
        default_partner=settings.profit_sharing.default_partner,
        tolerance=settings.profit_sharing.percentage_tolerance,
    )


def get_settings_cache(request: Request) -> SettingsCache:
    cache = getattr(request.app.state, "settings_cache", None)
    if cache is None:
        cache = SettingsCache()
        request.app.state.settings_cache = cache
    return cache
