"""
Proportional Expense Allocator

Spreads order-level shared costs (shipping, payment fees, manual discount)
across items by their share of the subtotal. A targeted offer discount is not
spread: the whole amount lands on the target product's line.

Shipping is treated asymmetrically. The expense side always carries the
nominal carrier cost; the revenue side only carries it when the customer
paid for shipping.
"""

from typing import List, Optional, Sequence

from src.profit.models import AppliedOffer
from src.profit.revenue import revenue_proportions


def shared_expense_total(
    shipping_cost: float,
    payment_fees: float,
    manual_discount: float,
) -> float:
    """Order-level cost pool distributed across items"""
    return shipping_cost + payment_fees + manual_discount


def offer_target_index(
    product_ids: Sequence[str],
    offer: Optional[AppliedOffer],
) -> Optional[int]:
    """Index of the first line holding the offer's target product, if any"""
    if offer is None:
        return None
    for index, product_id in enumerate(product_ids):
        if product_id == offer.target_product_id:
            return index
    return None


def allocate_shared_expenses(
    item_subtotals: Sequence[float],
    shared_total: float,
    product_ids: Optional[Sequence[str]] = None,
    offer: Optional[AppliedOffer] = None,
) -> List[float]:
    """
    Per-item allocated expense.

    Args:
        item_subtotals: Selling price x quantity for each line, pre-shipping
        shared_total: Shipping + payment fees + manual discount
        product_ids: Product id per line, needed to place a targeted offer
        offer: Optional offer whose discount is borne by its target line only

    Returns:
        Allocated expense per line, same order as `item_subtotals`
    """
    proportions = revenue_proportions(item_subtotals)
    allocations = [shared_total * proportion for proportion in proportions]

    target = offer_target_index(product_ids or [], offer)
    if target is not None:
        allocations[target] += offer.discount_amount

    return allocations


def revenue_with_shipping(
    item_subtotal: float,
    proportion: float,
    shipping_cost: float,
    is_free_shipping: bool,
    customer_fee: float = 0.0,
) -> float:
    """Item revenue plus its slice of customer-paid shipping and fees"""
    shipping_revenue = 0.0 if is_free_shipping else shipping_cost
    return item_subtotal + (shipping_revenue + customer_fee) * proportion
