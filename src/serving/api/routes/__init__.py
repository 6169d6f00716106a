"""
API Routes Module
"""
from .catalog import router as catalog_router
from .expenses import router as expenses_router
from .health import router as health_router
from .orders import router as orders_router
from .partners import router as partners_router
from .products import router as products_router
from .reports import router as reports_router
from .settings import router as settings_router

__all__ = [
    "catalog_router",
    "expenses_router",
    "health_router",
    "orders_router",
    "partners_router",
    "products_router",
    "reports_router",
    "settings_router",
]
