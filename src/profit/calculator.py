"""
Net Profit Calculator

Per-item net profit:

    net = subtotal + shipping/fee revenue share - cost - allocated expense

The per-item figures must add up to the order-level figure computed straight
from order totals (`order_net_profit`); `OrderProfit.reconciles` checks that.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import structlog

from src.profit.allocation import (
    allocate_shared_expenses,
    offer_target_index,
    revenue_with_shipping,
    shared_expense_total,
)
from src.profit.models import AppliedOffer, Order, OrderItem
from src.profit.revenue import item_cost, item_revenue, order_cost, revenue_proportions

logger = structlog.get_logger(__name__)

RECONCILIATION_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ItemProfit:
    """Profit breakdown for one order line"""
    product_id: str
    product_name: str
    quantity: int
    subtotal: float
    revenue_proportion: float
    revenue: float
    cost: float
    expense_share: float  # shared allocation plus any targeted offer discount
    offer_discount: float
    net_profit: float


@dataclass(frozen=True)
class OrderProfit:
    """Per-item breakdown with the independently computed order figure"""
    items: Tuple[ItemProfit, ...]
    subtotal: float
    total_with_shipping: float
    shared_expense: float
    net_profit: float
    expected_net_profit: float

    @property
    def reconciles(self) -> bool:
        scale = max(1.0, abs(self.expected_net_profit))
        return abs(self.net_profit - self.expected_net_profit) <= RECONCILIATION_TOLERANCE * scale


def calculate_item_profits(
    items: Sequence[OrderItem],
    shipping_cost: float,
    payment_fees: float,
    manual_discount: float,
    is_free_shipping: bool,
    customer_fee: float = 0.0,
    offer: Optional[AppliedOffer] = None,
) -> List[ItemProfit]:
    """
    Calculate profit for every line of an order.

    Args:
        items: Order lines
        shipping_cost: Nominal carrier cost, charged as expense even when shipping is free
        payment_fees: Gateway fees paid by the business
        manual_discount: Monetary value of the order-level discount
        is_free_shipping: Whether the customer was spared the shipping charge
        customer_fee: Extra fee the customer paid (cash on delivery etc.)
        offer: Targeted promotional discount, borne by its target line

    Returns:
        One ItemProfit per line
    """
    subtotals = [item_revenue(item) for item in items]
    proportions = revenue_proportions(subtotals)
    product_ids = [item.product.id for item in items]

    allocations = allocate_shared_expenses(
        subtotals,
        shared_expense_total(shipping_cost, payment_fees, manual_discount),
        product_ids=product_ids,
        offer=offer,
    )
    target = offer_target_index(product_ids, offer)

    results = []
    for index, item in enumerate(items):
        revenue = revenue_with_shipping(
            subtotals[index],
            proportions[index],
            shipping_cost,
            is_free_shipping,
            customer_fee,
        )
        cost = item_cost(item)
        results.append(ItemProfit(
            product_id=item.product.id,
            product_name=item.product.name,
            quantity=item.quantity,
            subtotal=subtotals[index],
            revenue_proportion=proportions[index],
            revenue=revenue,
            cost=cost,
            expense_share=allocations[index],
            offer_discount=offer.discount_amount if index == target else 0.0,
            net_profit=revenue - cost - allocations[index],
        ))

    return results


def order_net_profit(
    items: Sequence[OrderItem],
    shipping_cost: float,
    payment_fees: float,
    manual_discount: float,
    is_free_shipping: bool,
    customer_fee: float = 0.0,
    offer: Optional[AppliedOffer] = None,
) -> float:
    """
    Order-level net profit from totals, without going through the lines.

    For a zero-subtotal order nothing is allocated, so shipping revenue and the
    shared expense pool drop out exactly as they do per item.
    """
    subtotal = sum(item_revenue(item) for item in items)
    allocatable = subtotal > 0

    shipping_revenue = 0.0 if is_free_shipping else shipping_cost
    extra_revenue = (shipping_revenue + customer_fee) if allocatable else 0.0
    shared = shared_expense_total(shipping_cost, payment_fees, manual_discount) if allocatable else 0.0

    product_ids = [item.product.id for item in items]
    offer_amount = offer.discount_amount if offer_target_index(product_ids, offer) is not None else 0.0

    return subtotal + extra_revenue - order_cost(items) - shared - offer_amount


def calculate_order_profit(order: Order) -> OrderProfit:
    """Full breakdown for a persisted order"""
    params = dict(
        shipping_cost=order.shipping_cost,
        payment_fees=order.payment_fees,
        manual_discount=order.discount_amount,
        is_free_shipping=order.is_free_shipping,
        customer_fee=order.customer_fee,
        offer=order.applied_offer,
    )
    item_profits = calculate_item_profits(order.items, **params)
    expected = order_net_profit(order.items, **params)

    subtotal = sum(item.subtotal for item in item_profits)
    shipping_revenue = 0.0 if order.is_free_shipping else order.shipping_cost

    result = OrderProfit(
        items=tuple(item_profits),
        subtotal=subtotal,
        total_with_shipping=subtotal + shipping_revenue + order.customer_fee,
        shared_expense=shared_expense_total(
            order.shipping_cost, order.payment_fees, order.discount_amount
        ),
        net_profit=sum(item.net_profit for item in item_profits),
        expected_net_profit=expected,
    )

    if not result.reconciles:
        logger.error(
            "Order profit does not reconcile",
            order_id=order.id,
            item_sum=result.net_profit,
            expected=result.expected_net_profit,
        )

    return result
