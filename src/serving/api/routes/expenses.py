"""
Expenses API Endpoints

Operating expenses with independent per-partner percentages.
"""

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.connection import get_db_dependency
from src.profit.models import ExpenseCategory
from src.services import expense_service

router = APIRouter()


class ExpenseResponse(BaseModel):
    id: str
    expense_date: date
    description: str
    amount: float
    category: ExpenseCategory
    partner_shares: Dict[str, float]
    include_tax: bool
    amount_before_tax: Optional[float]

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    expense_date: date
    amount: Optional[float] = Field(None, ge=0)
    category: ExpenseCategory = ExpenseCategory.OTHER
    partner_shares: Dict[str, float] = Field(default_factory=dict)
    include_tax: bool = False
    amount_before_tax: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_amount(self) -> "ExpenseCreate":
        if self.include_tax and self.amount_before_tax is None:
            raise ValueError("amount_before_tax is required when include_tax is set")
        if not self.include_tax and self.amount is None:
            raise ValueError("amount is required")
        return self


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    expense_date: Optional[date] = None
    amount: Optional[float] = Field(None, ge=0)
    category: Optional[ExpenseCategory] = None
    partner_shares: Optional[Dict[str, float]] = None
    include_tax: Optional[bool] = None
    amount_before_tax: Optional[float] = Field(None, ge=0)


@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[ExpenseCategory] = None,
    db: AsyncSession = Depends(get_db_dependency),
) -> List[ExpenseResponse]:
    expenses = await expense_service.list_expenses(db, start=start_date, end=end_date, category=category)
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> ExpenseResponse:
    expense = await expense_service.get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return ExpenseResponse.model_validate(expense)


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    db: AsyncSession = Depends(get_db_dependency),
) -> ExpenseResponse:
    expense = await expense_service.create_expense(db, **payload.model_dump())
    return ExpenseResponse.model_validate(expense)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    payload: ExpenseUpdate,
    db: AsyncSession = Depends(get_db_dependency),
) -> ExpenseResponse:
    expense = await expense_service.update_expense(db, expense_id, **payload.model_dump(exclude_unset=True))
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> None:
    if not await expense_service.delete_expense(db, expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
