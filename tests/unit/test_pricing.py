"""
Unit Tests - Checkout Pricing and Offers
"""
from datetime import date

import pytest

from src.profit.models import (
    AppliedOffer,
    Discount,
    DiscountKind,
    Offer,
    OrderItem,
    PaymentMethod,
)
from src.profit.offers import (
    apply_best_offer,
    find_applicable_offers,
    is_offer_active,
    offer_discount,
)
from src.profit.pricing import (
    DiscountError,
    customer_total,
    is_free_shipping,
    payment_fees,
    price_order,
)


def _offer(**overrides) -> Offer:
    fields = dict(
        id="off-1",
        name="Light + Pad",
        trigger_product_id="prod-light",
        target_product_id="prod-pad",
        discount_kind=DiscountKind.PERCENTAGE,
        discount_value=20.0,
    )
    fields.update(overrides)
    return Offer(**fields)


def _identity(quote, items, shipping_method) -> float:
    """Customer total minus everything the business pays out"""
    product_cost = sum(item.product.cost * item.quantity for item in items)
    return quote.customer_total - product_cost - shipping_method.cost - quote.payment_fees


class TestPricingHelpers:
    """Tests for the individual checkout formulas"""

    def test_payment_fees_with_tax(self, mada):
        """Test gateway fees are taxed on top"""
        assert payment_fees(mada, 100.0) == pytest.approx((1.0 + 1.0) * 1.15)

    def test_payment_fees_zero_schedule(self, cod):
        assert payment_fees(cod, 500.0) == 0.0

    def test_free_shipping_threshold(self):
        assert is_free_shipping(250.0, 0.0, 200.0)
        assert is_free_shipping(200.0, 0.0, 200.0)
        assert not is_free_shipping(250.0, 60.0, 200.0)

    @pytest.mark.parametrize("threshold", [None, 0, -1])
    def test_no_threshold_never_free(self, threshold):
        assert not is_free_shipping(10_000.0, 0.0, threshold)

    def test_customer_total(self):
        assert customer_total(150.0, 15.0, 10.0, 5.0) == 160.0

    def test_fixed_discount_amount(self):
        assert Discount(kind=DiscountKind.FIXED, value=20).amount(150.0) == 20

    @pytest.mark.parametrize("kind, value", [
        (DiscountKind.PERCENTAGE, 250.0),
        (DiscountKind.PERCENTAGE, -5.0),
        (DiscountKind.FIXED, -1.0),
    ])
    def test_out_of_range_discount_rejected(self, kind, value):
        with pytest.raises(ValueError):
            Discount(kind=kind, value=value)


class TestPriceOrder:
    """Tests for end-to-end cart pricing"""

    def test_paid_shipping(self, light, mousepad, smsa, mada):
        items = [OrderItem(light, 1), OrderItem(mousepad, 1)]

        quote = price_order(items, smsa, mada, free_shipping_threshold=200)

        assert quote.subtotal == 150.0
        assert not quote.is_free_shipping
        assert quote.customer_total == 165.0
        assert quote.payment_fees == pytest.approx((1.65 + 1) * 1.15)
        assert quote.net_profit == pytest.approx(_identity(quote, items, smsa))

    def test_free_shipping_keeps_carrier_cost(self, light, mousepad, smsa, mada):
        items = [OrderItem(light, 2), OrderItem(mousepad, 1)]

        quote = price_order(items, smsa, mada, free_shipping_threshold=200)

        assert quote.is_free_shipping
        assert quote.actual_shipping_cost == 0.0
        assert quote.shipping_cost == 15.0
        assert quote.customer_total == 250.0
        assert quote.net_profit == pytest.approx(250 - 100 - 15 - (2.5 + 1) * 1.15)
        assert quote.net_profit == pytest.approx(_identity(quote, items, smsa))

    def test_discount_above_subtotal_rejected(self, light, mousepad, smsa, mada):
        items = [OrderItem(light, 1), OrderItem(mousepad, 1)]

        with pytest.raises(DiscountError):
            price_order(items, smsa, mada, discount=Discount(kind=DiscountKind.FIXED, value=1000))

    def test_full_discount_allowed(self, light, mousepad, smsa, mada):
        items = [OrderItem(light, 1), OrderItem(mousepad, 1)]

        quote = price_order(items, smsa, mada, discount=Discount(kind=DiscountKind.PERCENTAGE, value=100))

        assert quote.discount_amount == quote.subtotal
        assert quote.customer_total >= 0
        assert quote.payment_fees >= 0

    def test_discount_can_cancel_free_shipping(self, light, mousepad, smsa, mada):
        items = [OrderItem(light, 2), OrderItem(mousepad, 1)]
        discount = Discount(kind=DiscountKind.PERCENTAGE, value=25)

        quote = price_order(items, smsa, mada, discount=discount, free_shipping_threshold=200)

        assert quote.discount_amount == 62.5
        assert not quote.is_free_shipping
        assert quote.customer_total == pytest.approx(250 + 15 - 62.5)
        assert quote.net_profit == pytest.approx(_identity(quote, items, smsa))

    def test_cash_on_delivery_fee(self, light, mousepad, smsa, cod):
        items = [OrderItem(light, 1), OrderItem(mousepad, 1)]

        quote = price_order(items, smsa, cod)

        assert quote.customer_fee == 10.0
        assert quote.customer_total == 175.0
        assert quote.payment_fees == 0.0
        assert quote.net_profit == pytest.approx(100.0)

    def test_offer_reduces_total(self, light, mousepad, smsa, flat_fee):
        items = [OrderItem(light, 1), OrderItem(mousepad, 1)]
        offer = AppliedOffer(
            offer_id="off-1",
            offer_name="Bundle",
            trigger_product_id="prod-light",
            target_product_id="prod-pad",
            discount_kind=DiscountKind.FIXED,
            discount_value=10.0,
            discount_amount=10.0,
        )

        quote = price_order(items, smsa, flat_fee, offer=offer)

        assert quote.offer_discount == 10.0
        assert quote.discount_amount == 0.0
        assert quote.customer_total == 155.0
        assert quote.net_profit == pytest.approx(75.0)
        assert quote.net_profit == pytest.approx(_identity(quote, items, smsa))


class TestOffers:
    """Tests for offer activity and selection"""

    def test_active_window(self):
        offer = _offer(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))

        assert is_offer_active(offer, date(2025, 1, 1))
        assert is_offer_active(offer, date(2025, 1, 31))
        assert not is_offer_active(offer, date(2024, 12, 31))
        assert not is_offer_active(offer, date(2025, 2, 1))

    def test_inactive_flag(self):
        assert not is_offer_active(_offer(is_active=False), date(2025, 1, 1))

    def test_discount_capped_at_price(self):
        assert offer_discount(50.0, _offer()) == 10.0
        assert offer_discount(50.0, _offer(discount_kind=DiscountKind.FIXED, discount_value=80)) == 50.0

    def test_requires_trigger_in_cart(self, mousepad):
        assert find_applicable_offers([OrderItem(mousepad, 1)], [_offer()], date(2025, 1, 1)) == []
        assert apply_best_offer([OrderItem(mousepad, 1)], [_offer()], date(2025, 1, 1)) is None

    def test_discount_covers_target_quantity(self, light, mousepad):
        applied = apply_best_offer(
            [OrderItem(light, 1), OrderItem(mousepad, 3)],
            [_offer()],
            date(2025, 1, 1),
        )

        assert applied.offer_id == "off-1"
        assert applied.discount_amount == pytest.approx(30.0)

    def test_best_offer_wins(self, light, mousepad):
        small = _offer(id="off-small", discount_value=10.0)
        big = _offer(id="off-big", discount_kind=DiscountKind.FIXED, discount_value=15.0)
        reverse = _offer(
            id="off-reverse",
            trigger_product_id="prod-pad",
            target_product_id="prod-light",
            discount_value=5.0,
        )

        applied = apply_best_offer(
            [OrderItem(light, 1), OrderItem(mousepad, 1)],
            [small, big, reverse],
            date(2025, 1, 1),
        )

        assert applied.offer_id == "off-big"
        assert applied.discount_amount == 15.0
