"""
Unit Tests - Report Aggregation
"""
from datetime import date

import pytest

from src.profit.cache import ProfitShareCache, ProfitShareSnapshot
from src.profit.models import Expense, ExpenseCategory, PaymentMethod, ShippingMethod
from src.profit.report import (
    build_product_sales,
    build_report_metrics,
    calculate_all_report_metrics,
    marketing_expenses,
    partner_expenses,
    payment_fee_data,
    products_cost_by_owner,
    shipping_fee_data,
)
from src.profit.shares import PartnerShareResolver


@pytest.fixture
def snapshot() -> ProfitShareSnapshot:
    """Light split 60/40; mousepad left unconfigured"""
    return ProfitShareSnapshot(
        partners=("yassir", "basim"),
        shares={"prod-light": {"yassir": 60.0, "basim": 40.0}},
    )


@pytest.fixture
def orders(make_order):
    return [make_order(), make_order()]


@pytest.fixture
def expenses():
    return [
        Expense(
            id="exp-1",
            expense_date=date(2025, 1, 10),
            description="Snapchat ads",
            amount=100.0,
            category=ExpenseCategory.MARKETING,
            partner_shares={"yassir": 50.0, "basim": 50.0},
        ),
        Expense(
            id="exp-2",
            expense_date=date(2025, 1, 12),
            description="Shipping boxes",
            amount=40.0,
            category=ExpenseCategory.PACKAGING,
            partner_shares={"basim": 100.0},
        ),
    ]


class TestReportMetrics:
    """Tests for the full report"""

    def test_volume_and_profit(self, orders, expenses, snapshot):
        metrics = build_report_metrics(orders, expenses, snapshot)

        assert metrics.total_orders == 2
        assert metrics.total_revenue == 330.0
        assert metrics.average_order_value == 165.0
        assert metrics.total_product_costs == 120.0
        assert metrics.total_shipping_fees == 30.0
        assert metrics.total_payment_fees == 10.0
        assert metrics.gross_profit == 210.0
        assert metrics.net_profit == pytest.approx(30.0)
        assert metrics.gross_profit_margin == pytest.approx(210 / 330 * 100)
        assert metrics.marketing_expenses == 100.0

    def test_partner_profit_shares(self, orders, expenses, snapshot):
        """Test item splits add up, unconfigured products going to the default partner"""
        shares = build_report_metrics(orders, expenses, snapshot).profit_shares

        assert shares.shares["yassir"] == pytest.approx(2 * 0.6 * (110 - 40 - 40 / 3))
        assert shares.shares["basim"] == pytest.approx(
            2 * 0.4 * (110 - 40 - 40 / 3) + 2 * (55 - 20 - 20 / 3)
        )
        assert shares.total_profit == pytest.approx(170.0)

    def test_partner_distribution(self, orders, expenses, snapshot):
        metrics = build_report_metrics(orders, expenses, snapshot)

        assert metrics.earnings.products_cost == {"yassir": 80.0, "basim": 40.0}
        assert metrics.earnings.combined_total_earnings == pytest.approx(290.0)
        assert metrics.expenses.expenses == {"yassir": 50.0, "basim": 90.0}
        assert metrics.expenses.total_expenses == 140.0
        assert metrics.partner_net_profit.net_profit["yassir"] == pytest.approx(148.0 - 50.0)
        assert metrics.partner_net_profit.net_profit["basim"] == pytest.approx(142.0 - 90.0)
        assert metrics.partner_net_profit.combined_net_profit == pytest.approx(150.0)

    def test_empty_report(self, snapshot):
        """Test an empty ledger reports zeros instead of dividing by zero"""
        metrics = build_report_metrics([], [], snapshot)

        assert metrics.total_orders == 0
        assert metrics.average_order_value == 0.0
        assert metrics.net_profit_margin == 0.0
        assert metrics.profit_shares.shares == {"yassir": 0.0, "basim": 0.0}
        assert metrics.shipping_fee_data.by_company == ()

    def test_inputs_unchanged(self, orders, expenses, snapshot):
        before = (list(orders), list(expenses), dict(snapshot.shares))

        build_report_metrics(orders, expenses, snapshot)

        assert (orders, expenses, dict(snapshot.shares)) == before

    async def test_calculate_all_report_metrics(self, orders, expenses, snapshot, clock):
        async def loader():
            return snapshot

        resolver = PartnerShareResolver(ProfitShareCache(loader, clock=clock))
        metrics = await calculate_all_report_metrics(orders, expenses, resolver)

        assert metrics.profit_shares.total_profit == pytest.approx(170.0)


class TestFeeAnalysis:
    """Tests for the polars fee breakdowns"""

    def test_shipping_breakdown(self, make_order):
        aramex = ShippingMethod(id="ship-aramex", name="Aramex", cost=22.0)
        orders = [
            make_order(),
            make_order(is_free_shipping=True, total=150.0),
            make_order(shipping_method=aramex, shipping_cost=22.0, total=172.0),
        ]

        data = shipping_fee_data(orders)

        assert data.total_shipping_fees == 52.0
        assert data.free_shipping_count == 1
        assert data.paid_shipping_count == 2
        assert [row.name for row in data.by_company] == ["SMSA", "Aramex"]
        assert data.by_company[0].order_count == 2
        assert data.by_company[0].average_fee == 15.0

    def test_payment_breakdown(self, make_order, mada):
        orders = [
            make_order(payment_method=mada, payment_fees=3.05),
            make_order(payment_method=mada, payment_fees=2.95),
            make_order(),
        ]

        data = payment_fee_data(orders)

        assert data.total_payment_fees == pytest.approx(11.0)
        assert data.by_method[0].name == "MADA"
        assert data.by_method[0].total_fees == pytest.approx(6.0)
        assert data.by_method[0].average_fee == pytest.approx(3.0)
        assert data.fees_as_percent_of_revenue == pytest.approx(11.0 / 495 * 100)


class TestPartnerAggregation:
    """Tests for owner cost recovery and expense weighting"""

    def test_cost_by_owner(self, orders):
        assert products_cost_by_owner(orders) == {"yassir": 80.0, "basim": 40.0}

    def test_expense_percentages_are_independent(self):
        """Test expense splits need not sum to 100"""
        expense = Expense(
            id="exp",
            expense_date=date(2025, 1, 1),
            description="Photos",
            amount=200.0,
            partner_shares={"yassir": 100.0, "basim": 50.0},
        )

        result = partner_expenses([expense], ("yassir", "basim"))

        assert result.expenses == {"yassir": 200.0, "basim": 100.0}
        assert result.total_expenses == 200.0

    def test_marketing_expenses(self, expenses):
        assert marketing_expenses(expenses) == 100.0
        assert marketing_expenses(expenses, "packaging") == 40.0


class TestProductSales:
    """Tests for per-product sales rows"""

    def test_rows_sorted_by_revenue(self, orders, snapshot):
        rows = build_product_sales(orders, snapshot)

        assert [row.product_id for row in rows] == ["prod-light", "prod-pad"]
        light, pad = rows
        assert light.units_sold == 2
        assert light.revenue == 200.0
        assert light.cost == 80.0
        assert light.partner_shares["yassir"] == pytest.approx(0.6 * light.net_profit)
        assert pad.partner_shares == pytest.approx({"yassir": 0.0, "basim": pad.net_profit})

    def test_no_orders(self, snapshot):
        assert build_product_sales([], snapshot) == []
