"""
Database Models

Catalog, partner configuration, orders and operating expenses.

Orders store snapshots (items, shipping/payment method, discount, applied
offer) as JSON so later catalog edits never change historical figures.

Tables:
- partners / product_profit_shares: profit-share configuration
- products, shipping_methods, payment_methods, offers: catalog
- orders, expenses: ledger
- quick_discounts: preset manual discounts offered at checkout
- system_settings: runtime-editable values such as the free-shipping threshold
"""

from datetime import datetime, date
from decimal import Decimal
from typing import List, Optional
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# PARTNERS
# =============================================================================

class PartnerRecord(Base):
    """Profit-sharing principal"""
    __tablename__ = "partners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    shares: Mapped[List["ProductProfitShareRecord"]] = relationship(back_populates="partner")


class ProductProfitShareRecord(Base):
    """
    (product, partner) -> percentage.

    Percentages for one product sum to 100; validated before insert.
    """
    __tablename__ = "product_profit_shares"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    partner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False
    )
    share_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    product: Mapped["ProductRecord"] = relationship(back_populates="profit_shares")
    partner: Mapped["PartnerRecord"] = relationship(back_populates="shares")

    __table_args__ = (
        UniqueConstraint("product_id", "partner_id", name="uq_profit_share_product_partner"),
        Index("ix_profit_shares_product", "product_id"),
    )


# =============================================================================
# CATALOG
# =============================================================================

class ProductRecord(Base):
    """Catalog product; `owner` drives cost recovery in reports"""
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))

    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    owner: Mapped[str] = mapped_column(String(50), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    profit_shares: Mapped[List["ProductProfitShareRecord"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_products_owner", "owner"),
    )


class ShippingMethodRecord(Base):
    __tablename__ = "shipping_methods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class PaymentMethodRecord(Base):
    """Gateway fee schedule"""
    __tablename__ = "payment_methods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    fee_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=0)
    fee_fixed: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0)
    customer_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class OfferRecord(Base):
    """Buy the trigger product, get a discount on the target product"""
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    trigger_product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    target_product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage | fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )


class QuickDiscountRecord(Base):
    """Preset manual discount shown at checkout, ordered by display_order"""
    __tablename__ = "quick_discounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage | fixed
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_quick_discounts_display_order", "display_order"),
    )


# =============================================================================
# SETTINGS
# =============================================================================

class SystemSettingRecord(Base):
    """
    Key/value setting editable at runtime.

    `setting_value` is stored as text and parsed by `setting_type`
    (number, string, boolean or json).
    """
    __tablename__ = "system_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    setting_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    setting_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(50))
    is_editable: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


# =============================================================================
# LEDGER
# =============================================================================

class OrderRecord(Base):
    """
    Persisted order.

    `items` holds `[{"product": {...snapshot...}, "quantity": n}]`.
    `shipping_cost` is the carrier cost even when `is_free_shipping` is set.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    order_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(String(200))

    items: Mapped[list] = mapped_column(JSONType, nullable=False)
    shipping_method: Mapped[dict] = mapped_column(JSONType, nullable=False)
    payment_method: Mapped[dict] = mapped_column(JSONType, nullable=False)
    discount: Mapped[Optional[dict]] = mapped_column(JSONType)
    applied_offer: Mapped[Optional[dict]] = mapped_column(JSONType)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_profit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    is_free_shipping: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_orders_order_date", "order_date"),
    )


class ExpenseRecord(Base):
    """
    Operating expense.

    `partner_shares` maps partner name to the percentage of `amount` that
    partner bears; percentages are independent.
    """
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="other")

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    include_tax: Mapped[bool] = mapped_column(Boolean, default=False)
    amount_before_tax: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    partner_shares: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_expenses_date", "expense_date"),
        Index("ix_expenses_category", "category"),
    )
