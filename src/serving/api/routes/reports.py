"""
Reports API Endpoints

Report metrics over the order and expense ledger for an optional date range.
"""

from dataclasses import asdict
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.database.connection import get_db_dependency
from src.profit.report import calculate_all_report_metrics, calculate_product_sales
from src.profit.shares import PartnerShareResolver
from src.serving.api.dependencies import get_share_resolver
from src.services import expense_service, order_service

settings = get_settings()
router = APIRouter()


def _order_window(start_date: Optional[date], end_date: Optional[date]):
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None
    return start, end


@router.get("/metrics")
async def get_report_metrics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db_dependency),
    resolver: PartnerShareResolver = Depends(get_share_resolver),
) -> Dict[str, Any]:
    """
    Volume, cost, profit, partner and fee metrics.

    Partner figures:
    - profit_shares: per-product percentage split of item net profit
    - earnings: profit share plus cost of owned products
    - expenses: each expense weighted by its own partner percentages
    - partner_net_profit: earnings minus expenses
    """
    start, end = _order_window(start_date, end_date)
    orders = await order_service.list_orders(db, start=start, end=end)
    expenses = await expense_service.list_expenses(db, start=start_date, end=end_date)

    metrics = await calculate_all_report_metrics(
        orders,
        expenses,
        resolver,
        marketing_category=settings.business.marketing_category,
    )
    return {"currency": settings.business.currency, **asdict(metrics)}


@router.get("/products")
async def get_product_sales(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db_dependency),
    resolver: PartnerShareResolver = Depends(get_share_resolver),
) -> List[Dict[str, Any]]:
    """Units, revenue, cost, net profit and partner split per product."""
    start, end = _order_window(start_date, end_date)
    orders = await order_service.list_orders(db, start=start, end=end)

    return [asdict(row) for row in await calculate_product_sales(orders, resolver)]
