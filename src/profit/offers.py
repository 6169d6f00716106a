"""
Promotional Offers

An offer discounts a target product when a trigger product is in the same
cart. At most one offer is applied per order: the one with the largest
discount on its target line.
"""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from src.profit.models import AppliedOffer, DiscountKind, Offer, OrderItem


def is_offer_active(offer: Offer, today: Optional[date] = None) -> bool:
    """Active flag set and `today` inside the optional start/end window (inclusive)"""
    if not offer.is_active:
        return False

    today = today or date.today()
    if offer.start_date and today < offer.start_date:
        return False
    if offer.end_date and today > offer.end_date:
        return False
    return True


def offer_discount(unit_price: float, offer: Offer) -> float:
    """Per-unit discount on the target product, never more than its price"""
    if offer.discount_kind == DiscountKind.PERCENTAGE:
        amount = unit_price * offer.discount_value / 100
    else:
        amount = offer.discount_value
    return min(amount, unit_price)


def find_applicable_offers(
    items: Sequence[OrderItem],
    offers: Iterable[Offer],
    today: Optional[date] = None,
) -> List[Offer]:
    """Active offers whose trigger and target products are both in the cart"""
    in_cart = {item.product.id for item in items}
    return [
        offer for offer in offers
        if is_offer_active(offer, today)
        and offer.trigger_product_id in in_cart
        and offer.target_product_id in in_cart
    ]


def select_best_offer(unit_price: float, offers: Sequence[Offer]) -> Optional[Offer]:
    """Offer with the largest per-unit discount; the first one wins ties"""
    best = None
    best_amount = 0.0
    for offer in offers:
        amount = offer_discount(unit_price, offer)
        if best is None or amount > best_amount:
            best, best_amount = offer, amount
    return best


def apply_best_offer(
    items: Sequence[OrderItem],
    offers: Iterable[Offer],
    today: Optional[date] = None,
) -> Optional[AppliedOffer]:
    """
    Pick the single offer worth the most to the customer.

    The discount covers every unit of the target line:
    `per-unit discount x target quantity`.
    """
    applicable = find_applicable_offers(items, offers, today)
    if not applicable:
        return None

    best: Optional[AppliedOffer] = None
    for item in items:
        candidates = [o for o in applicable if o.target_product_id == item.product.id]
        offer = select_best_offer(item.product.selling_price, candidates)
        if offer is None:
            continue

        amount = offer_discount(item.product.selling_price, offer) * item.quantity
        if best is None or amount > best.discount_amount:
            best = AppliedOffer(
                offer_id=offer.id,
                offer_name=offer.name,
                trigger_product_id=offer.trigger_product_id,
                target_product_id=offer.target_product_id,
                discount_kind=offer.discount_kind,
                discount_value=offer.discount_value,
                discount_amount=amount,
            )

    return best
