"""
Expense Service

Operating expenses (marketing, packaging, subscriptions...). Each expense
carries its own partner percentages, independent of product profit shares.
Tax-inclusive expenses store the gross amount and remember the net one.
"""

from datetime import date
from typing import List, Mapping, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.database.models import ExpenseRecord
from src.profit.models import Expense, ExpenseCategory, expense_amount_with_tax
from src.services.exceptions import EntityNotFoundError
from src.services.mappers import expense_to_domain, to_decimal

logger = structlog.get_logger(__name__)
settings = get_settings()

UPDATABLE_FIELDS = {
    "expense_date", "description", "amount", "category",
    "partner_shares", "include_tax", "amount_before_tax",
}


def validate_partner_shares(partner_shares: Mapping[str, float]) -> None:
    for partner, percentage in partner_shares.items():
        if percentage < 0 or percentage > 100:
            raise ValueError(
                f"Expense share for {partner} must be between 0 and 100, got {percentage}"
            )


def resolve_amount(
    amount: Optional[float],
    include_tax: bool,
    amount_before_tax: Optional[float],
    vat_rate: float,
) -> float:
    """Gross amount to store; tax-inclusive expenses are computed from the net amount"""
    if include_tax:
        if amount_before_tax is None:
            raise ValueError("amount_before_tax is required when include_tax is set")
        return expense_amount_with_tax(amount_before_tax, vat_rate)
    if amount is None:
        raise ValueError("amount is required")
    return amount


async def list_expenses(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: Optional[ExpenseCategory] = None,
) -> List[Expense]:
    query = select(ExpenseRecord).order_by(ExpenseRecord.expense_date.desc())
    if start:
        query = query.where(ExpenseRecord.expense_date >= start)
    if end:
        query = query.where(ExpenseRecord.expense_date <= end)
    if category:
        query = query.where(ExpenseRecord.category == ExpenseCategory(category).value)

    result = await db.execute(query)
    return [expense_to_domain(record) for record in result.scalars().all()]


async def get_expense(db: AsyncSession, expense_id: str) -> Optional[Expense]:
    record = await db.get(ExpenseRecord, expense_id)
    return expense_to_domain(record) if record else None


async def create_expense(
    db: AsyncSession,
    description: str,
    expense_date: date,
    amount: Optional[float] = None,
    category: ExpenseCategory = ExpenseCategory.OTHER,
    partner_shares: Optional[Mapping[str, float]] = None,
    include_tax: bool = False,
    amount_before_tax: Optional[float] = None,
    vat_rate: Optional[float] = None,
) -> Expense:
    partner_shares = dict(partner_shares or {})
    validate_partner_shares(partner_shares)

    vat = settings.business.vat_rate if vat_rate is None else vat_rate
    gross = resolve_amount(amount, include_tax, amount_before_tax, vat)

    record = ExpenseRecord(
        description=description,
        expense_date=expense_date,
        category=ExpenseCategory(category).value,
        amount=to_decimal(gross),
        include_tax=include_tax,
        amount_before_tax=to_decimal(amount_before_tax) if include_tax else None,
        partner_shares=partner_shares,
    )
    db.add(record)
    await db.flush()

    logger.info(
        "Expense created",
        expense_id=record.id,
        category=record.category,
        amount=gross,
    )
    return expense_to_domain(record)


async def update_expense(
    db: AsyncSession,
    expense_id: str,
    vat_rate: Optional[float] = None,
    **changes,
) -> Expense:
    """
    Raises:
        EntityNotFoundError: unknown expense
        ValueError: unknown field or invalid shares
    """
    record = await db.get(ExpenseRecord, expense_id)
    if record is None:
        raise EntityNotFoundError("Expense", expense_id)

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update expense field(s): {', '.join(sorted(unknown))}")

    current = expense_to_domain(record)
    include_tax = changes.get("include_tax", current.include_tax)
    amount_before_tax = changes.get("amount_before_tax", current.amount_before_tax)
    amount = changes.get("amount", current.amount)
    vat = settings.business.vat_rate if vat_rate is None else vat_rate

    if "partner_shares" in changes:
        validate_partner_shares(changes["partner_shares"])
        record.partner_shares = dict(changes["partner_shares"])
    if "description" in changes:
        record.description = changes["description"]
    if "expense_date" in changes:
        record.expense_date = changes["expense_date"]
    if "category" in changes:
        record.category = ExpenseCategory(changes["category"]).value

    record.amount = to_decimal(resolve_amount(amount, include_tax, amount_before_tax, vat))
    record.include_tax = include_tax
    record.amount_before_tax = to_decimal(amount_before_tax) if include_tax else None

    await db.flush()
    logger.info("Expense updated", expense_id=expense_id, fields=sorted(changes))
    return expense_to_domain(record)


async def delete_expense(db: AsyncSession, expense_id: str) -> bool:
    record = await db.get(ExpenseRecord, expense_id)
    if record is None:
        return False

    await db.delete(record)
    await db.flush()
    logger.info("Expense deleted", expense_id=expense_id)
    return True
