"""
Unit Tests - Demo Data Generation
"""
import pytest

from src.data.generators import CatalogGenerator, DemoDataGenerator, ExpenseGenerator
from src.profit.calculator import calculate_order_profit
from src.profit.report import build_report_metrics
from src.profit.cache import ProfitShareSnapshot


@pytest.fixture(scope="module")
def dataset():
    return DemoDataGenerator(partners=["yassir", "basim"], seed=7).generate_all(
        n_products=8, n_orders=40, n_expenses=6
    )


class TestDemoDataGenerator:
    """Tests for the generated store"""

    def test_sizes(self, dataset):
        assert len(dataset.products) == 8
        assert len(dataset.orders) == 40
        assert len(dataset.expenses) == 6
        assert {p.owner for p in dataset.products} <= {"yassir", "basim"}

    def test_same_seed_same_data(self, dataset):
        again = DemoDataGenerator(partners=["yassir", "basim"], seed=7).generate_all(
            n_products=8, n_orders=40, n_expenses=6
        )

        assert [p.name for p in again.products] == [p.name for p in dataset.products]
        assert [o.total for o in again.orders] == [o.total for o in dataset.orders]

    def test_orders_reconcile(self, dataset):
        """Test every generated order's items add up to its stored net profit"""
        for order in dataset.orders:
            profit = calculate_order_profit(order)
            assert profit.reconciles
            assert profit.net_profit == pytest.approx(order.net_profit)

    def test_share_configurations_sum_to_100(self, dataset):
        for split in dataset.profit_shares.values():
            assert sum(split.values()) == pytest.approx(100.0)

    def test_report_over_generated_data(self, dataset):
        snapshot = ProfitShareSnapshot(partners=tuple(dataset.partners), shares=dataset.profit_shares)

        metrics = build_report_metrics(dataset.orders, dataset.expenses, snapshot)

        assert metrics.total_orders == 40
        assert metrics.profit_shares.total_profit == pytest.approx(
            sum(order.net_profit for order in dataset.orders)
        )


class TestCatalogGenerator:
    """Tests for catalog pieces"""

    def test_cod_has_customer_fee(self):
        methods = CatalogGenerator(["yassir", "basim"]).payment_methods()
        cod = next(m for m in methods if m.name == "Cash on Delivery")

        assert cod.customer_fee > 0
        assert cod.fee_percentage == 0

    def test_costs_below_price(self):
        for product in CatalogGenerator(["yassir", "basim"]).products(20):
            assert 0 < product.cost < product.selling_price


class TestExpenseGenerator:
    def test_two_partner_split(self):
        for expense in ExpenseGenerator(["yassir", "basim"]).generate(10):
            assert sum(expense.partner_shares.values()) == pytest.approx(100.0)
            assert expense.amount > 0
