"""
Test Suite Configuration
"""
from datetime import datetime
from typing import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings
from src.database.connection import close_database, get_db, init_database
from src.profit.models import (
    Order,
    OrderItem,
    PaymentMethod,
    Product,
    ShippingMethod,
)


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory database per test"""
    await init_database("sqlite+aiosqlite:///:memory:", create_tables=True)
    yield
    await close_database()


@pytest.fixture
async def test_db(database) -> AsyncGenerator[AsyncSession, None]:
    """Session on the test database, committed on exit"""
    async with get_db() as session:
        yield session


@pytest.fixture
def light() -> Product:
    return Product(id="prod-light", name="Lines RGB Light", cost=40.0, selling_price=100.0, owner="yassir", sku="SKU-001")


@pytest.fixture
def mousepad() -> Product:
    return Product(id="prod-pad", name="Mousepad", cost=20.0, selling_price=50.0, owner="basim", sku="SKU-002")


@pytest.fixture
def smsa() -> ShippingMethod:
    return ShippingMethod(id="ship-smsa", name="SMSA", cost=15.0)


@pytest.fixture
def flat_fee() -> PaymentMethod:
    """Gateway charging a flat 5 per order"""
    return PaymentMethod(id="pay-flat", name="Flat", fee_fixed=5.0)


@pytest.fixture
def mada() -> PaymentMethod:
    return PaymentMethod(id="pay-mada", name="MADA", fee_percentage=1.0, fee_fixed=1.0, tax_rate=15.0)


@pytest.fixture
def cod() -> PaymentMethod:
    return PaymentMethod(id="pay-cod", name="Cash on Delivery", customer_fee=10.0)


@pytest.fixture
def make_order(light, mousepad, smsa, flat_fee) -> Callable[..., Order]:
    """
    Build an order with the two-item cart (100 + 50) used across the suite:
    shipping cost 15, payment fees 5, no discount.
    """
    counter = iter(range(1, 10_000))

    def factory(**overrides) -> Order:
        n = next(counter)
        fields = dict(
            id=f"ord-{n}",
            order_number=f"ORD-{n:03d}",
            timestamp=datetime(2025, 1, 15, 10, 0),
            items=(OrderItem(light, 1), OrderItem(mousepad, 1)),
            shipping_method=smsa,
            payment_method=flat_fee,
            subtotal=150.0,
            shipping_cost=15.0,
            payment_fees=5.0,
            total=165.0,
            is_free_shipping=False,
        )
        fields.update(overrides)
        return Order(**fields)

    return factory
