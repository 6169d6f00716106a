"""
Revenue and Cost Extraction

First stage of the profit pipeline: per-item revenue and cost, order subtotal
and each item's share of that subtotal.
"""

from typing import List, Sequence

from src.profit.models import OrderItem


def item_revenue(item: OrderItem) -> float:
    """Selling price times quantity (pre-shipping)"""
    return item.product.selling_price * item.quantity


def item_cost(item: OrderItem) -> float:
    """Unit cost times quantity"""
    return item.product.cost * item.quantity


def order_subtotal(items: Sequence[OrderItem]) -> float:
    """Sum of item revenues"""
    return sum(item_revenue(item) for item in items)


def order_cost(items: Sequence[OrderItem]) -> float:
    """Sum of item costs"""
    return sum(item_cost(item) for item in items)


def revenue_proportion(item_subtotal: float, total_subtotal: float) -> float:
    """
    Item's fraction of the order subtotal.

    A zero (or negative) subtotal yields 0 for every item, so nothing gets
    allocated rather than dividing by zero.
    """
    if total_subtotal <= 0:
        return 0.0
    return item_subtotal / total_subtotal


def revenue_proportions(item_subtotals: Sequence[float]) -> List[float]:
    """Proportions for a whole order; sums to 1.0, or 0 for a zero-subtotal order"""
    total = sum(item_subtotals)
    return [revenue_proportion(subtotal, total) for subtotal in item_subtotals]
