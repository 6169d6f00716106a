"""
Demo Data Generator

Generates a realistic dataset for a small two-partner gadget store:
- Products with owner tags and per-product profit shares
- Shipping carriers and payment gateways with real-world fee schedules
- Buy-X-get-Y offers and preset quick discounts
- Priced orders (in memory, through the same pricing code checkout uses)
- Operating expenses split between partners
"""

import random
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from faker import Faker

from src.config import get_settings
from src.profit.models import (
    Discount,
    DiscountKind,
    Expense,
    ExpenseCategory,
    Offer,
    Order,
    OrderItem,
    PaymentMethod,
    Product,
    QuickDiscount,
    ShippingMethod,
)
from src.profit.offers import apply_best_offer
from src.profit.pricing import price_order

settings = get_settings()


# =============================================================================
# CONFIGURATION
# =============================================================================

PRODUCT_KINDS = [
    ("lighting", ["RGB Light Bar", "Lines RGB Light", "Desk Lamp", "LED Strip"]),
    ("desk", ["Mousepad", "Cable Organizer", "Monitor Stand", "Wrist Rest"]),
    ("toys", ["Smart Cube", "Fidget Spinner", "Puzzle Box"]),
    ("displays", ["Pixel Screen 16", "Pixel Screen 32", "Clock Display"]),
]

SHIPPING_METHODS = [
    ("SMSA", 18.0),
    ("Aramex", 22.0),
    ("Local Courier", 15.0),
]

# name, fee %, fixed fee, tax on fees %, customer fee
PAYMENT_METHODS = [
    ("MADA", 1.0, 1.0, 15.0, 0.0),
    ("Visa", 2.2, 1.0, 15.0, 0.0),
    ("Tamara", 7.0, 1.5, 15.0, 0.0),
    ("Cash on Delivery", 0.0, 0.0, 0.0, 10.0),
]

# name, kind, value, display order
QUICK_DISCOUNTS = [
    ("5%", DiscountKind.PERCENTAGE, 5.0, 1),
    ("10%", DiscountKind.PERCENTAGE, 10.0, 2),
    ("15%", DiscountKind.PERCENTAGE, 15.0, 3),
    ("10 SAR", DiscountKind.FIXED, 10.0, 4),
    ("20 SAR", DiscountKind.FIXED, 20.0, 5),
]

EXPENSE_DESCRIPTIONS = {
    ExpenseCategory.MARKETING: ["Snapchat ads", "TikTok campaign", "Influencer post"],
    ExpenseCategory.PACKAGING: ["Shipping boxes", "Bubble wrap", "Thank-you cards"],
    ExpenseCategory.SUBSCRIPTION: ["Store platform plan", "Domain renewal"],
    ExpenseCategory.OTHER: ["Product photography", "Return shipping"],
}


@dataclass
class DemoDataset:
    """Everything needed to populate a store"""
    partners: List[str]
    products: List[Product]
    profit_shares: Dict[str, Dict[str, float]]
    shipping_methods: List[ShippingMethod]
    payment_methods: List[PaymentMethod]
    offers: List[Offer]
    quick_discounts: List[QuickDiscount] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)


# =============================================================================
# GENERATORS
# =============================================================================

class CatalogGenerator:
    """Generate products, fee schedules, offers and share configurations"""

    def __init__(self, partners: Sequence[str], seed: int = 42):
        self.partners = list(partners)
        self.rng = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def products(self, n: int = 12) -> List[Product]:
        products = []
        for index in range(n):
            category, kinds = self.rng.choice(PRODUCT_KINDS)
            selling_price = float(self.rng.choice(range(39, 300, 10)))
            cost = round(selling_price * self.rng.uniform(0.25, 0.6), 2)

            products.append(Product(
                id=str(uuid.UUID(int=self.rng.getrandbits(128))),
                name=f"{self.fake.color_name()} {self.rng.choice(kinds)}",
                cost=cost,
                selling_price=selling_price,
                owner=self.rng.choice(self.partners),
                sku=f"SKU-{index + 1:04d}",
                category=category,
            ))
        return products

    def profit_shares(
        self,
        products: Sequence[Product],
        coverage: float = 0.85,
    ) -> Dict[str, Dict[str, float]]:
        """Percentages in steps of 10 that sum to 100; some products left unconfigured"""
        shares = {}
        for product in products:
            if self.rng.random() > coverage:
                continue
            remaining = 100.0
            split = {}
            for partner in self.partners[:-1]:
                percentage = float(self.rng.choice(range(0, int(remaining) + 1, 10)))
                split[partner] = percentage
                remaining -= percentage
            split[self.partners[-1]] = remaining
            shares[product.id] = split
        return shares

    def shipping_methods(self) -> List[ShippingMethod]:
        return [
            ShippingMethod(id=str(uuid.UUID(int=self.rng.getrandbits(128))), name=name, cost=cost)
            for name, cost in SHIPPING_METHODS
        ]

    def quick_discounts(self) -> List[QuickDiscount]:
        return [
            QuickDiscount(id=f"quick-{order}", name=name, kind=kind, value=value, display_order=order)
            for name, kind, value, order in QUICK_DISCOUNTS
        ]

    def payment_methods(self) -> List[PaymentMethod]:
        return [
            PaymentMethod(
                id=str(uuid.UUID(int=self.rng.getrandbits(128))),
                name=name,
                fee_percentage=pct,
                fee_fixed=fixed,
                tax_rate=tax,
                customer_fee=customer_fee,
            )
            for name, pct, fixed, tax, customer_fee in PAYMENT_METHODS
        ]

    def offers(self, products: Sequence[Product], n: int = 2) -> List[Offer]:
        offers = []
        for _ in range(min(n, len(products) // 2)):
            trigger, target = self.rng.sample(list(products), 2)
            percentage = self.rng.random() < 0.5
            offers.append(Offer(
                id=str(uuid.UUID(int=self.rng.getrandbits(128))),
                name=f"Buy {trigger.name}, save on {target.name}",
                trigger_product_id=trigger.id,
                target_product_id=target.id,
                discount_kind=DiscountKind.PERCENTAGE if percentage else DiscountKind.FIXED,
                discount_value=float(self.rng.choice([10, 15, 20, 25])),
            ))
        return offers


class OrderGenerator:
    """Generate priced orders from a catalog"""

    def __init__(
        self,
        products: Sequence[Product],
        shipping_methods: Sequence[ShippingMethod],
        payment_methods: Sequence[PaymentMethod],
        offers: Sequence[Offer] = (),
        free_shipping_threshold: Optional[float] = None,
        seed: int = 42,
        quick_discounts: Sequence[QuickDiscount] = (),
    ):
        self.products = list(products)
        self.shipping_methods = list(shipping_methods)
        self.payment_methods = list(payment_methods)
        self.offers = list(offers)
        self.quick_discounts = list(quick_discounts)
        self.free_shipping_threshold = (
            settings.business.free_shipping_threshold
            if free_shipping_threshold is None else free_shipping_threshold
        )
        self.rng = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def _items(self) -> List[OrderItem]:
        count = self.rng.choices([1, 2, 3, 4], weights=[0.45, 0.35, 0.15, 0.05])[0]
        chosen = self.rng.sample(self.products, min(count, len(self.products)))
        return [
            OrderItem(product=product, quantity=self.rng.choices([1, 2, 3], weights=[0.7, 0.2, 0.1])[0])
            for product in chosen
        ]

    def _discount(self) -> Optional[Discount]:
        roll = self.rng.random()
        if self.quick_discounts:
            if roll < 0.25:
                return self.rng.choice(self.quick_discounts).to_discount()
            return None
        if roll < 0.15:
            return Discount(kind=DiscountKind.PERCENTAGE, value=float(self.rng.choice([5, 10, 15])), code="SAVE")
        if roll < 0.25:
            return Discount(kind=DiscountKind.FIXED, value=float(self.rng.choice([10, 20])))
        return None

    def generate(
        self,
        n: int = 100,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Order]:
        """Generate n orders spread between start_date and end_date"""
        end_date = end_date or datetime.now()
        start_date = start_date or end_date - timedelta(days=90)

        orders = []
        for index in range(n):
            timestamp = self.fake.date_time_between(start_date=start_date, end_date=end_date)
            items = self._items()
            shipping = self.rng.choice(self.shipping_methods)
            payment = self.rng.choice(self.payment_methods)
            discount = self._discount()
            offer = apply_best_offer(items, self.offers, timestamp.date())

            quote = price_order(
                items,
                shipping,
                payment,
                discount=discount,
                free_shipping_threshold=self.free_shipping_threshold,
                offer=offer,
            )

            orders.append(Order(
                id=str(uuid.UUID(int=self.rng.getrandbits(128))),
                order_number=f"ORD-{timestamp:%Y%m%d}-{index + 1:05d}",
                timestamp=timestamp,
                items=tuple(items),
                shipping_method=shipping,
                payment_method=payment,
                subtotal=quote.subtotal,
                shipping_cost=quote.shipping_cost,
                payment_fees=quote.payment_fees,
                total=quote.customer_total,
                net_profit=quote.net_profit,
                is_free_shipping=quote.is_free_shipping,
                discount=discount,
                applied_offer=offer,
                customer_name=self.fake.name(),
            ))

        return sorted(orders, key=lambda order: order.timestamp)


class ExpenseGenerator:
    """Generate operating expenses with independent partner splits"""

    def __init__(self, partners: Sequence[str], seed: int = 42):
        self.partners = list(partners)
        self.rng = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def generate(
        self,
        n: int = 20,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Expense]:
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=90)

        expenses = []
        for _ in range(n):
            category = self.rng.choices(
                list(EXPENSE_DESCRIPTIONS),
                weights=[0.5, 0.2, 0.2, 0.1],
            )[0]
            split = self.rng.choice([50.0, 60.0, 70.0, 100.0])
            shares = {self.partners[0]: split}
            for partner in self.partners[1:]:
                shares[partner] = 100.0 - split if len(self.partners) == 2 else 0.0

            expenses.append(Expense(
                id=str(uuid.UUID(int=self.rng.getrandbits(128))),
                expense_date=self.fake.date_between(start_date=start_date, end_date=end_date),
                description=self.rng.choice(EXPENSE_DESCRIPTIONS[category]),
                amount=round(self.rng.uniform(20, 600), 2),
                category=category,
                partner_shares=shares,
            ))
        return expenses


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DemoDataGenerator:
    """Main data generator orchestrator"""

    def __init__(self, partners: Optional[Sequence[str]] = None, seed: int = 42):
        self.partners = list(partners or settings.profit_sharing.partners)
        self.seed = seed

    def generate_all(
        self,
        n_products: int = 12,
        n_orders: int = 200,
        n_expenses: int = 25,
        days: int = 90,
    ) -> DemoDataset:
        """Generate complete dataset"""
        catalog = CatalogGenerator(self.partners, seed=self.seed)
        products = catalog.products(n_products)
        shipping = catalog.shipping_methods()
        payment = catalog.payment_methods()
        offers = catalog.offers(products)
        quick_discounts = catalog.quick_discounts()

        end = datetime.now().replace(microsecond=0)
        start = end - timedelta(days=days)

        orders = OrderGenerator(
            products, shipping, payment, offers, seed=self.seed, quick_discounts=quick_discounts
        ).generate(
            n_orders, start, end
        )
        expenses = ExpenseGenerator(self.partners, seed=self.seed).generate(
            n_expenses, start.date(), end.date()
        )

        return DemoDataset(
            partners=self.partners,
            products=products,
            profit_shares=catalog.profit_shares(products),
            shipping_methods=shipping,
            payment_methods=payment,
            offers=offers,
            quick_discounts=quick_discounts,
            orders=orders,
            expenses=expenses,
        )
