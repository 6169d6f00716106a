"""
Report Aggregation

Single entry point for report pages: `calculate_all_report_metrics` reads the
profit share snapshot once, then `build_report_metrics` aggregates orders and
expenses without touching I/O.

Two attribution axes coexist on purpose:
- profit share: per-product percentage table, applied to item net profit
- cost recovery: product owner tag, applied to item cost
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import polars as pl
import structlog

from src.profit.cache import ProfitShareSnapshot
from src.profit.calculator import ItemProfit, calculate_order_profit
from src.profit.models import Expense, ExpenseCategory, Order
from src.profit.shares import (
    DEFAULT_PARTNER,
    PERCENTAGE_TOLERANCE,
    PartnerShareResolver,
    resolve_shares,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# Result Types
# =============================================================================

@dataclass(frozen=True)
class FeeBreakdown:
    """Fees grouped by shipping company or payment method"""
    name: str
    order_count: int
    total_fees: float
    average_fee: float


@dataclass(frozen=True)
class ShippingFeeData:
    total_shipping_fees: float
    free_shipping_count: int
    paid_shipping_count: int
    average_shipping_fee: float
    total_revenue: float
    fees_as_percent_of_revenue: float
    by_company: Tuple[FeeBreakdown, ...]


@dataclass(frozen=True)
class PaymentFeeData:
    total_payment_fees: float
    average_payment_fee: float
    total_revenue: float
    fees_as_percent_of_revenue: float
    by_method: Tuple[FeeBreakdown, ...]


@dataclass(frozen=True)
class PartnerProfitShares:
    shares: Dict[str, float]
    total_profit: float


@dataclass(frozen=True)
class PartnerEarnings:
    """Profit share plus cost of the products each partner owns"""
    products_cost: Dict[str, float]
    total_earnings: Dict[str, float]
    combined_total_earnings: float


@dataclass(frozen=True)
class PartnerExpenses:
    expenses: Dict[str, float]
    total_expenses: float


@dataclass(frozen=True)
class PartnerNetProfit:
    net_profit: Dict[str, float]
    combined_net_profit: float


@dataclass(frozen=True)
class ProductSales:
    """Per-product totals across all orders"""
    product_id: str
    product_name: str
    units_sold: int
    revenue: float
    cost: float
    net_profit: float
    partner_shares: Dict[str, float]


@dataclass(frozen=True)
class ReportMetrics:
    """Derived aggregate over an order and expense set; never stored"""
    # Volume
    total_orders: int
    total_revenue: float
    average_order_value: float

    # Costs
    total_product_costs: float
    total_shipping_fees: float
    total_payment_fees: float
    total_fees: float

    # Profit
    gross_profit: float
    net_profit: float
    gross_profit_margin: float
    net_profit_margin: float
    gross_profit_per_order: float
    net_profit_per_order: float

    # Partners
    profit_shares: PartnerProfitShares
    earnings: PartnerEarnings
    expenses: PartnerExpenses
    partner_net_profit: PartnerNetProfit

    # Additional
    marketing_expenses: float
    product_cost_percent: float
    fee_impact_percent: float

    # Fee analysis
    shipping_fee_data: ShippingFeeData
    payment_fee_data: PaymentFeeData


# =============================================================================
# Helpers
# =============================================================================

def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator / denominator * scale if denominator > 0 else 0.0


def _partner_keys(partners: Iterable[str], *maps: Mapping[str, float]) -> List[str]:
    """Known partners first, then any extra names found in `maps`"""
    keys = list(partners)
    for mapping in maps:
        for name in mapping:
            if name not in keys:
                keys.append(name)
    return keys


def _add_into(target: Dict[str, float], amounts: Mapping[str, float]) -> None:
    for name, amount in amounts.items():
        target[name] = target.get(name, 0.0) + amount


def item_partner_shares(
    item_profits: Sequence[ItemProfit],
    snapshot: ProfitShareSnapshot,
    default_partner: str = DEFAULT_PARTNER,
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> List[Dict[str, float]]:
    """Partner split of each item's net profit"""
    return [
        resolve_shares(snapshot, item.product_id, item.net_profit, default_partner, tolerance)
        for item in item_profits
    ]


def _fee_breakdown(names: Sequence[str], fees: Sequence[float]) -> Tuple[FeeBreakdown, ...]:
    """Group fees by name, most frequent first"""
    if not names:
        return ()

    df = pl.DataFrame(
        {"name": list(names), "fee": [float(fee) for fee in fees]},
        schema={"name": pl.Utf8, "fee": pl.Float64},
    )
    summary = (
        df.group_by("name", maintain_order=True)
        .agg(
            pl.len().alias("order_count"),
            pl.col("fee").sum().alias("total_fees"),
        )
        .with_columns(
            (pl.col("total_fees") / pl.col("order_count")).alias("average_fee")
        )
        .sort("order_count", descending=True, maintain_order=True)
    )

    return tuple(
        FeeBreakdown(
            name=row["name"],
            order_count=int(row["order_count"]),
            total_fees=row["total_fees"],
            average_fee=row["average_fee"],
        )
        for row in summary.iter_rows(named=True)
    )


# =============================================================================
# Fee Analysis
# =============================================================================

def shipping_fee_data(orders: Sequence[Order]) -> ShippingFeeData:
    """Carrier costs paid by the business, by company"""
    total_fees = sum(order.shipping_method.cost for order in orders)
    total_revenue = sum(order.total for order in orders)
    free_count = sum(1 for order in orders if order.is_free_shipping)

    return ShippingFeeData(
        total_shipping_fees=total_fees,
        free_shipping_count=free_count,
        paid_shipping_count=len(orders) - free_count,
        average_shipping_fee=_ratio(total_fees, len(orders)),
        total_revenue=total_revenue,
        fees_as_percent_of_revenue=_ratio(total_fees, total_revenue, 100),
        by_company=_fee_breakdown(
            [order.shipping_method.name for order in orders],
            [order.shipping_method.cost for order in orders],
        ),
    )


def payment_fee_data(orders: Sequence[Order]) -> PaymentFeeData:
    """Gateway fees, by payment method"""
    total_fees = sum(order.payment_fees for order in orders)
    total_revenue = sum(order.total for order in orders)

    return PaymentFeeData(
        total_payment_fees=total_fees,
        average_payment_fee=_ratio(total_fees, len(orders)),
        total_revenue=total_revenue,
        fees_as_percent_of_revenue=_ratio(total_fees, total_revenue, 100),
        by_method=_fee_breakdown(
            [order.payment_method.name for order in orders],
            [order.payment_fees for order in orders],
        ),
    )


# =============================================================================
# Partner Aggregation
# =============================================================================

def total_profit_shares(
    orders: Sequence[Order],
    snapshot: ProfitShareSnapshot,
    default_partner: str = DEFAULT_PARTNER,
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> PartnerProfitShares:
    """Sum of every item's partner split across every order"""
    shares = {name: 0.0 for name in snapshot.partners}

    for order in orders:
        profit = calculate_order_profit(order)
        for split in item_partner_shares(profit.items, snapshot, default_partner, tolerance):
            _add_into(shares, split)

    return PartnerProfitShares(shares=shares, total_profit=sum(shares.values()))


def products_cost_by_owner(orders: Sequence[Order]) -> Dict[str, float]:
    """Item cost attributed by the product owner tag"""
    costs: Dict[str, float] = {}
    for order in orders:
        for item in order.items:
            owner = item.product.owner
            costs[owner] = costs.get(owner, 0.0) + item.product.cost * item.quantity
    return costs


def partner_earnings(
    orders: Sequence[Order],
    profit_shares: PartnerProfitShares,
) -> PartnerEarnings:
    owner_costs = products_cost_by_owner(orders)
    keys = _partner_keys(profit_shares.shares, owner_costs)

    products_cost = {name: owner_costs.get(name, 0.0) for name in keys}
    earnings = {
        name: profit_shares.shares.get(name, 0.0) + products_cost[name]
        for name in keys
    }

    return PartnerEarnings(
        products_cost=products_cost,
        total_earnings=earnings,
        combined_total_earnings=sum(earnings.values()),
    )


def partner_expenses(
    expenses: Sequence[Expense],
    partners: Iterable[str] = (),
) -> PartnerExpenses:
    """Each expense weighted by its own partner percentages"""
    keys = _partner_keys(partners, *(expense.partner_shares for expense in expenses))
    by_partner = {
        name: sum(expense.share_for(name) for expense in expenses)
        for name in keys
    }

    return PartnerExpenses(
        expenses=by_partner,
        total_expenses=sum(expense.amount for expense in expenses),
    )


def partner_net_profit(earnings: PartnerEarnings, expenses: PartnerExpenses) -> PartnerNetProfit:
    keys = _partner_keys(earnings.total_earnings, expenses.expenses)
    net = {
        name: earnings.total_earnings.get(name, 0.0) - expenses.expenses.get(name, 0.0)
        for name in keys
    }
    return PartnerNetProfit(
        net_profit=net,
        combined_net_profit=earnings.combined_total_earnings - expenses.total_expenses,
    )


def marketing_expenses(
    expenses: Sequence[Expense],
    category: str = ExpenseCategory.MARKETING.value,
) -> float:
    return sum(expense.amount for expense in expenses if expense.category == category)


# =============================================================================
# Orchestration
# =============================================================================

def build_report_metrics(
    orders: Sequence[Order],
    expenses: Sequence[Expense],
    snapshot: ProfitShareSnapshot,
    default_partner: str = DEFAULT_PARTNER,
    tolerance: float = PERCENTAGE_TOLERANCE,
    marketing_category: str = ExpenseCategory.MARKETING.value,
) -> ReportMetrics:
    """
    Aggregate every report figure from orders and expenses.

    Pure: the inputs are only read, and an empty order set yields an all-zero
    report rather than a division error.
    """
    total_orders = len(orders)
    total_revenue = sum(order.total for order in orders)

    total_product_costs = sum(
        item.product.cost * item.quantity for order in orders for item in order.items
    )
    total_shipping_fees = sum(order.shipping_method.cost for order in orders)
    total_payment_fees = sum(order.payment_fees for order in orders)
    total_fees = total_shipping_fees + total_payment_fees

    expense_breakdown = partner_expenses(expenses, snapshot.partners)

    gross_profit = total_revenue - total_product_costs
    net_profit = gross_profit - total_fees - expense_breakdown.total_expenses

    profit_shares = total_profit_shares(orders, snapshot, default_partner, tolerance)
    earnings = partner_earnings(orders, profit_shares)

    metrics = ReportMetrics(
        total_orders=total_orders,
        total_revenue=total_revenue,
        average_order_value=_ratio(total_revenue, total_orders),
        total_product_costs=total_product_costs,
        total_shipping_fees=total_shipping_fees,
        total_payment_fees=total_payment_fees,
        total_fees=total_fees,
        gross_profit=gross_profit,
        net_profit=net_profit,
        gross_profit_margin=_ratio(gross_profit, total_revenue, 100),
        net_profit_margin=_ratio(net_profit, total_revenue, 100),
        gross_profit_per_order=_ratio(gross_profit, total_orders),
        net_profit_per_order=_ratio(net_profit, total_orders),
        profit_shares=profit_shares,
        earnings=earnings,
        expenses=expense_breakdown,
        partner_net_profit=partner_net_profit(earnings, expense_breakdown),
        marketing_expenses=marketing_expenses(expenses, marketing_category),
        product_cost_percent=_ratio(total_product_costs, total_revenue, 100),
        fee_impact_percent=_ratio(total_fees, total_revenue, 100),
        shipping_fee_data=shipping_fee_data(orders),
        payment_fee_data=payment_fee_data(orders),
    )

    logger.debug(
        "Report metrics built",
        orders=total_orders,
        expenses=len(expenses),
        net_profit=round(net_profit, 2),
    )
    return metrics


async def calculate_all_report_metrics(
    orders: Sequence[Order],
    expenses: Sequence[Expense],
    resolver: PartnerShareResolver,
    marketing_category: str = ExpenseCategory.MARKETING.value,
) -> ReportMetrics:
    """
    Compute every report metric for the given orders and expenses.

    Example:
        metrics = await calculate_all_report_metrics(orders, expenses, resolver)
        metrics.partner_net_profit.net_profit["yassir"]
    """
    snapshot = await resolver.snapshot()
    return build_report_metrics(
        orders,
        expenses,
        snapshot,
        default_partner=resolver.default_partner,
        tolerance=resolver.tolerance,
        marketing_category=marketing_category,
    )


# =============================================================================
# Product Sales
# =============================================================================

def build_product_sales(
    orders: Sequence[Order],
    snapshot: ProfitShareSnapshot,
    default_partner: str = DEFAULT_PARTNER,
    tolerance: float = PERCENTAGE_TOLERANCE,
) -> List[ProductSales]:
    """Units, revenue, cost, net profit and partner split per product, best sellers first"""
    rows = []
    for order in orders:
        profit = calculate_order_profit(order)
        splits = item_partner_shares(profit.items, snapshot, default_partner, tolerance)
        for item, split in zip(profit.items, splits):
            rows.append((item, split))

    if not rows:
        return []

    partners = _partner_keys(snapshot.partners, *(split for _, split in rows))
    share_columns = {name: f"share_{index}" for index, name in enumerate(partners)}

    df = pl.DataFrame([
        {
            "product_id": item.product_id,
            "product_name": item.product_name,
            "quantity": item.quantity,
            "revenue": float(item.subtotal),
            "cost": float(item.cost),
            "net_profit": float(item.net_profit),
            **{column: float(split.get(name, 0.0)) for name, column in share_columns.items()},
        }
        for item, split in rows
    ])

    summary = (
        df.group_by("product_id", maintain_order=True)
        .agg(
            pl.col("product_name").first(),
            pl.col("quantity").sum().alias("units_sold"),
            pl.col("revenue").sum(),
            pl.col("cost").sum(),
            pl.col("net_profit").sum(),
            *[pl.col(column).sum() for column in share_columns.values()],
        )
        .sort("revenue", descending=True, maintain_order=True)
    )

    return [
        ProductSales(
            product_id=row["product_id"],
            product_name=row["product_name"],
            units_sold=int(row["units_sold"]),
            revenue=row["revenue"],
            cost=row["cost"],
            net_profit=row["net_profit"],
            partner_shares={name: row[column] for name, column in share_columns.items()},
        )
        for row in summary.iter_rows(named=True)
    ]


async def calculate_product_sales(
    orders: Sequence[Order],
    resolver: PartnerShareResolver,
) -> List[ProductSales]:
    snapshot = await resolver.snapshot()
    return build_product_sales(
        orders, snapshot, resolver.default_partner, resolver.tolerance
    )
