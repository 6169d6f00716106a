"""
Profit distribution engine.

Pipeline stages, leaves first: revenue extraction, proportional expense
allocation, net profit per item, partner share resolution, then report
aggregation.
"""

from src.profit.cache import ProfitShareCache, ProfitShareSnapshot
from src.profit.calculator import (
    ItemProfit,
    OrderProfit,
    calculate_item_profits,
    calculate_order_profit,
    order_net_profit,
)
from src.profit.models import (
    AppliedOffer,
    Discount,
    DiscountKind,
    Expense,
    ExpenseCategory,
    Offer,
    Order,
    OrderItem,
    Partner,
    PaymentMethod,
    Product,
    QuickDiscount,
    ShareEntry,
    ShippingMethod,
)
from src.profit.pricing import DiscountError, OrderQuote, price_order
from src.profit.report import ReportMetrics, calculate_all_report_metrics
from src.profit.shares import (
    PartnerShareResolver,
    ProfitShareValidationError,
    split_profit,
    validate_share_percentages,
)

__all__ = [
    "AppliedOffer",
    "Discount",
    "DiscountError",
    "DiscountKind",
    "Expense",
    "ExpenseCategory",
    "ItemProfit",
    "Offer",
    "Order",
    "OrderItem",
    "OrderProfit",
    "OrderQuote",
    "Partner",
    "PartnerShareResolver",
    "PaymentMethod",
    "Product",
    "ProfitShareCache",
    "ProfitShareSnapshot",
    "ProfitShareValidationError",
    "QuickDiscount",
    "ReportMetrics",
    "ShareEntry",
    "ShippingMethod",
    "calculate_all_report_metrics",
    "calculate_item_profits",
    "calculate_order_profit",
    "order_net_profit",
    "price_order",
    "split_profit",
    "validate_share_percentages",
]
