"""
Order Pricing

Checkout-time figures: discount, free shipping, what the customer pays,
gateway fees and the resulting net profit.

    subtotal        130.00   (50 x 2 + 30)
    discount (10%)  -13.00
    free shipping?  117 >= threshold
    customer fee    +10.00   (cash on delivery)
    customer total  127.00
    payment fees      2.61   (1% + 1, 15% tax on fees)
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from src.profit.calculator import calculate_item_profits
from src.profit.models import AppliedOffer, Discount, OrderItem, PaymentMethod, ShippingMethod
from src.profit.revenue import order_subtotal


class DiscountError(ValueError):
    """Discounts larger than the goods they apply to"""


@dataclass(frozen=True)
class OrderQuote:
    """Priced cart, ready to be persisted as an order"""
    subtotal: float
    discount_amount: float
    offer_discount: float
    is_free_shipping: bool
    shipping_cost: float
    actual_shipping_cost: float
    customer_fee: float
    customer_total: float
    payment_fees: float
    net_profit: float


def discount_amount(subtotal: float, discount: Optional[Discount]) -> float:
    if discount is None:
        return 0.0
    return discount.amount(subtotal)


def is_free_shipping(subtotal: float, discount: float, threshold: Optional[float]) -> bool:
    """Discounted subtotal reaches the threshold; no threshold means never free"""
    if threshold is None or threshold <= 0:
        return False
    return subtotal - discount >= threshold


def actual_shipping_cost(cost: float, free_shipping: bool) -> float:
    """Shipping charged to the customer"""
    return 0.0 if free_shipping else cost


def customer_total(
    subtotal: float,
    shipping_cost: float,
    discount: float,
    customer_fee: float = 0.0,
) -> float:
    """What the customer pays: subtotal + shipping - discount + fee"""
    return subtotal + shipping_cost - discount + customer_fee


def payment_fees(method: PaymentMethod, amount: float) -> float:
    """Gateway fees on `amount`, with tax charged on the fees themselves"""
    base = amount * method.fee_percentage / 100 + method.fee_fixed
    return base * (1 + method.tax_rate / 100)


def price_order(
    items: Sequence[OrderItem],
    shipping_method: ShippingMethod,
    payment_method: PaymentMethod,
    discount: Optional[Discount] = None,
    free_shipping_threshold: Optional[float] = None,
    offer: Optional[AppliedOffer] = None,
) -> OrderQuote:
    """
    Price a cart end to end.

    The carrier cost stays in the profit calculation even when the customer
    gets free shipping. A targeted offer reduces the customer total and is
    charged to its target line.

    Raises:
        DiscountError: manual and offer discounts together exceed the subtotal
    """
    subtotal = order_subtotal(items)
    manual = discount_amount(subtotal, discount)
    offer_amount = offer.discount_amount if offer else 0.0
    total_discount = manual + offer_amount
    if total_discount > subtotal + 1e-9:
        raise DiscountError(
            f"Discount {total_discount:.2f} exceeds order subtotal {subtotal:.2f}"
        )

    free = is_free_shipping(subtotal, total_discount, free_shipping_threshold)
    shipping = actual_shipping_cost(shipping_method.cost, free)
    fee = payment_method.customer_fee
    total = customer_total(subtotal, shipping, total_discount, fee)
    fees = payment_fees(payment_method, total)

    item_profits = calculate_item_profits(
        items,
        shipping_cost=shipping_method.cost,
        payment_fees=fees,
        manual_discount=manual,
        is_free_shipping=free,
        customer_fee=fee,
        offer=offer,
    )

    return OrderQuote(
        subtotal=subtotal,
        discount_amount=manual,
        offer_discount=offer_amount,
        is_free_shipping=free,
        shipping_cost=shipping_method.cost,
        actual_shipping_cost=shipping,
        customer_fee=fee,
        customer_total=total,
        payment_fees=fees,
        net_profit=sum(item.net_profit for item in item_profits),
    )
