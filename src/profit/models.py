"""
Profit Engine Domain Types

Immutable snapshots the calculation pipeline works on. Orders carry copies of
product price and cost captured at order time, never live catalog rows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional, Tuple


class DiscountKind(str, Enum):
    """How a discount value is interpreted"""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ExpenseCategory(str, Enum):
    """Operating expense categories"""
    MARKETING = "marketing"
    PACKAGING = "packaging"
    SUBSCRIPTION = "subscription"
    OTHER = "other"


@dataclass(frozen=True)
class Product:
    """Catalog product. `owner` is the legacy cost-recovery attribution."""
    id: str
    name: str
    cost: float
    selling_price: float
    owner: str
    sku: str = ""
    category: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class OrderItem:
    """Product snapshot plus quantity"""
    product: Product
    quantity: int

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {self.quantity}")


@dataclass(frozen=True)
class ShippingMethod:
    """Carrier option; `cost` is what the business pays the carrier"""
    id: str
    name: str
    cost: float


@dataclass(frozen=True)
class PaymentMethod:
    """
    Payment gateway fee schedule.

    Fees are `(amount * fee_percentage / 100 + fee_fixed) * (1 + tax_rate / 100)`.
    `customer_fee` is charged to the customer on top of the order (e.g. cash on delivery).
    """
    id: str
    name: str
    fee_percentage: float = 0.0
    fee_fixed: float = 0.0
    tax_rate: float = 0.0
    customer_fee: float = 0.0


@dataclass(frozen=True)
class Discount:
    """Manual order-level discount"""
    kind: DiscountKind
    value: float
    code: Optional[str] = None

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Discount must not be negative, got {self.value}")
        if self.kind == DiscountKind.PERCENTAGE and self.value > 100:
            raise ValueError(f"Percentage discount must be at most 100, got {self.value}")

    def amount(self, subtotal: float) -> float:
        """Monetary value of the discount for a given subtotal"""
        if self.kind == DiscountKind.PERCENTAGE:
            return subtotal * self.value / 100
        return self.value


@dataclass(frozen=True)
class QuickDiscount:
    """Preset manual discount picked at checkout"""
    id: str
    name: str
    kind: DiscountKind
    value: float
    display_order: int = 0
    is_active: bool = True

    def to_discount(self) -> Discount:
        return Discount(kind=self.kind, value=self.value, code=self.name)


@dataclass(frozen=True)
class Offer:
    """Promotion: buying the trigger product discounts the target product"""
    id: str
    name: str
    trigger_product_id: str
    target_product_id: str
    discount_kind: DiscountKind
    discount_value: float
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = ""


@dataclass(frozen=True)
class AppliedOffer:
    """Offer resolved against an order; `discount_amount` covers the whole target line"""
    offer_id: str
    offer_name: str
    trigger_product_id: str
    target_product_id: str
    discount_kind: DiscountKind
    discount_value: float
    discount_amount: float


@dataclass(frozen=True)
class Order:
    """
    Persisted order snapshot.

    `shipping_cost` is the nominal carrier cost even on free-shipping orders;
    the customer-facing total leaves it out when `is_free_shipping` is set.
    """
    id: str
    order_number: str
    timestamp: datetime
    items: Tuple[OrderItem, ...]
    shipping_method: ShippingMethod
    payment_method: PaymentMethod
    subtotal: float
    shipping_cost: float
    payment_fees: float
    total: float
    net_profit: float = 0.0
    is_free_shipping: bool = False
    discount: Optional[Discount] = None
    applied_offer: Optional[AppliedOffer] = None
    customer_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def discount_amount(self) -> float:
        if self.discount is None:
            return 0.0
        return self.discount.amount(self.subtotal)

    @property
    def customer_fee(self) -> float:
        return self.payment_method.customer_fee


@dataclass(frozen=True)
class Partner:
    """Profit-sharing principal"""
    id: str
    name: str
    display_name: str
    is_active: bool = True


@dataclass(frozen=True)
class ShareEntry:
    """One partner's percentage of a product's profit"""
    partner_id: str
    percentage: float


@dataclass(frozen=True)
class Expense:
    """
    Operating expense.

    `partner_shares` maps partner name to percentage of `amount` that partner
    bears; the percentages are independent and need not sum to 100.
    """
    id: str
    expense_date: date
    description: str
    amount: float
    category: ExpenseCategory = ExpenseCategory.OTHER
    partner_shares: Mapping[str, float] = field(default_factory=dict)
    include_tax: bool = False
    amount_before_tax: Optional[float] = None

    def share_for(self, partner: str) -> float:
        return self.amount * self.partner_shares.get(partner, 0.0) / 100


def expense_amount_with_tax(amount_before_tax: float, vat_rate: float) -> float:
    """Gross amount of a tax-inclusive expense"""
    return amount_before_tax * (1 + vat_rate / 100)
