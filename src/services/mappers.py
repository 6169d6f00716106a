"""
ORM <-> domain conversion.

Orders keep JSON snapshots of the product, shipping method, payment method,
discount and applied offer captured at checkout.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from src.database.models import (
    ExpenseRecord,
    OfferRecord,
    OrderRecord,
    PartnerRecord,
    PaymentMethodRecord,
    ProductRecord,
    QuickDiscountRecord,
    ShippingMethodRecord,
)
from src.profit.models import (
    AppliedOffer,
    Discount,
    DiscountKind,
    Expense,
    ExpenseCategory,
    Offer,
    Order,
    OrderItem,
    Partner,
    PaymentMethod,
    Product,
    QuickDiscount,
    ShippingMethod,
)


def to_float(value: Optional[Any]) -> float:
    if value is None:
        return 0.0
    return float(value)


def to_decimal(value: float, places: int = 2) -> Decimal:
    return round(Decimal(str(value)), places)


# =============================================================================
# Catalog
# =============================================================================

def partner_to_domain(record: PartnerRecord) -> Partner:
    return Partner(
        id=record.id,
        name=record.name,
        display_name=record.display_name,
        is_active=record.is_active,
    )


def product_to_domain(record: ProductRecord) -> Product:
    return Product(
        id=record.id,
        name=record.name,
        cost=to_float(record.cost),
        selling_price=to_float(record.selling_price),
        owner=record.owner,
        sku=record.sku,
        category=record.category,
        is_active=record.is_active,
    )


def shipping_method_to_domain(record: ShippingMethodRecord) -> ShippingMethod:
    return ShippingMethod(id=record.id, name=record.name, cost=to_float(record.cost))


def payment_method_to_domain(record: PaymentMethodRecord) -> PaymentMethod:
    return PaymentMethod(
        id=record.id,
        name=record.name,
        fee_percentage=to_float(record.fee_percentage),
        fee_fixed=to_float(record.fee_fixed),
        tax_rate=to_float(record.tax_rate),
        customer_fee=to_float(record.customer_fee),
    )


def quick_discount_to_domain(record: QuickDiscountRecord) -> QuickDiscount:
    return QuickDiscount(
        id=record.id,
        name=record.name,
        kind=DiscountKind(record.discount_type),
        value=to_float(record.value),
        display_order=record.display_order or 0,
        is_active=record.is_active,
    )


def offer_to_domain(record: OfferRecord) -> Offer:
    return Offer(
        id=record.id,
        name=record.name,
        trigger_product_id=record.trigger_product_id,
        target_product_id=record.target_product_id,
        discount_kind=DiscountKind(record.discount_type),
        discount_value=to_float(record.discount_value),
        is_active=record.is_active,
        start_date=record.start_date,
        end_date=record.end_date,
        description=record.description or "",
    )


# =============================================================================
# Order snapshots
# =============================================================================

def dump_snapshot(value: Any) -> Optional[Dict[str, Any]]:
    """Dataclass -> JSON-ready dict, enums flattened to their values"""
    if value is None:
        return None
    return {
        key: item.value if isinstance(item, DiscountKind) else item
        for key, item in asdict(value).items()
    }


def product_from_snapshot(data: Dict[str, Any]) -> Product:
    return Product(
        id=data["id"],
        name=data["name"],
        cost=to_float(data["cost"]),
        selling_price=to_float(data["selling_price"]),
        owner=data.get("owner", ""),
        sku=data.get("sku", ""),
        category=data.get("category"),
        is_active=data.get("is_active", True),
    )


def discount_from_snapshot(data: Optional[Dict[str, Any]]) -> Optional[Discount]:
    if not data:
        return None
    return Discount(
        kind=DiscountKind(data["kind"]),
        value=to_float(data["value"]),
        code=data.get("code"),
    )


def applied_offer_from_snapshot(data: Optional[Dict[str, Any]]) -> Optional[AppliedOffer]:
    if not data:
        return None
    return AppliedOffer(
        offer_id=data["offer_id"],
        offer_name=data["offer_name"],
        trigger_product_id=data["trigger_product_id"],
        target_product_id=data["target_product_id"],
        discount_kind=DiscountKind(data["discount_kind"]),
        discount_value=to_float(data["discount_value"]),
        discount_amount=to_float(data["discount_amount"]),
    )


def items_snapshot(items) -> list:
    return [
        {"product": dump_snapshot(item.product), "quantity": item.quantity}
        for item in items
    ]


def order_to_domain(record: OrderRecord) -> Order:
    shipping = record.shipping_method
    payment = record.payment_method

    return Order(
        id=record.id,
        order_number=record.order_number,
        timestamp=record.order_date,
        items=tuple(
            OrderItem(product=product_from_snapshot(line["product"]), quantity=int(line["quantity"]))
            for line in record.items
        ),
        shipping_method=ShippingMethod(
            id=shipping.get("id", ""),
            name=shipping["name"],
            cost=to_float(shipping["cost"]),
        ),
        payment_method=PaymentMethod(
            id=payment.get("id", ""),
            name=payment["name"],
            fee_percentage=to_float(payment.get("fee_percentage")),
            fee_fixed=to_float(payment.get("fee_fixed")),
            tax_rate=to_float(payment.get("tax_rate")),
            customer_fee=to_float(payment.get("customer_fee")),
        ),
        subtotal=to_float(record.subtotal),
        shipping_cost=to_float(record.shipping_cost),
        payment_fees=to_float(record.payment_fees),
        total=to_float(record.total),
        net_profit=to_float(record.net_profit),
        is_free_shipping=record.is_free_shipping,
        discount=discount_from_snapshot(record.discount),
        applied_offer=applied_offer_from_snapshot(record.applied_offer),
        customer_name=record.customer_name,
    )


# =============================================================================
# Expenses
# =============================================================================

def expense_to_domain(record: ExpenseRecord) -> Expense:
    try:
        category = ExpenseCategory(record.category)
    except ValueError:
        category = ExpenseCategory.OTHER

    return Expense(
        id=record.id,
        expense_date=record.expense_date,
        description=record.description,
        amount=to_float(record.amount),
        category=category,
        partner_shares={name: to_float(pct) for name, pct in (record.partner_shares or {}).items()},
        include_tax=record.include_tax,
        amount_before_tax=(
            to_float(record.amount_before_tax) if record.amount_before_tax is not None else None
        ),
    )


def utc_naive(value: datetime) -> datetime:
    """Strip tzinfo after converting to UTC; columns store naive UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
