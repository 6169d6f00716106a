"""
Data Generation Module
"""
from .generators import (
    CatalogGenerator,
    DemoDataGenerator,
    DemoDataset,
    ExpenseGenerator,
    OrderGenerator,
)

__all__ = [
    "CatalogGenerator",
    "DemoDataGenerator",
    "DemoDataset",
    "ExpenseGenerator",
    "OrderGenerator",
]
