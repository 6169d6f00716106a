"""
Seed the database with a generated demo store.

Everything goes through the service layer so seeded rows obey the same
validation and pricing as rows created through the API.
"""

import asyncio
from typing import Dict

import structlog

from src.config.logging import configure_logging
from src.data.generators import DemoDataGenerator, DemoDataset
from src.database.connection import close_database, get_db, init_database
from src.profit.models import ShareEntry
from src.services import (
    catalog_service,
    expense_service,
    order_service,
    product_service,
    profit_share_service,
    quick_discount_service,
    settings_service,
)

logger = structlog.get_logger(__name__)


async def seed_partners(dataset: DemoDataset) -> Dict[str, str]:
    """Create partners, returning name -> partner id"""
    async with get_db() as db:
        existing = {p.name: p.id for p in await profit_share_service.get_partners(db, active_only=False)}
        for name in dataset.partners:
            if name not in existing:
                partner = await profit_share_service.create_partner(db, name, display_name=name.title())
                existing[name] = partner.id
    logger.info("Seeded partners", count=len(dataset.partners))
    return existing


async def seed_catalog(dataset: DemoDataset) -> Dict[str, str]:
    """Create products, methods and offers, returning generated id -> stored id"""
    ids: Dict[str, str] = {}
    async with get_db() as db:
        for product in dataset.products:
            stored = await product_service.create_product(
                db,
                name=product.name,
                sku=product.sku,
                cost=product.cost,
                selling_price=product.selling_price,
                owner=product.owner,
                category=product.category,
            )
            ids[product.id] = stored.id

        for method in dataset.shipping_methods:
            stored = await catalog_service.create_shipping_method(db, method.name, method.cost)
            ids[method.id] = stored.id

        for method in dataset.payment_methods:
            stored = await catalog_service.create_payment_method(
                db,
                method.name,
                fee_percentage=method.fee_percentage,
                fee_fixed=method.fee_fixed,
                tax_rate=method.tax_rate,
                customer_fee=method.customer_fee,
            )
            ids[method.id] = stored.id

        for offer in dataset.offers:
            stored = await catalog_service.create_offer(
                db,
                name=offer.name,
                trigger_product_id=ids[offer.trigger_product_id],
                target_product_id=ids[offer.target_product_id],
                discount_kind=offer.discount_kind,
                discount_value=offer.discount_value,
            )
            ids[offer.id] = stored.id

    logger.info(
        "Seeded catalog",
        products=len(dataset.products),
        shipping_methods=len(dataset.shipping_methods),
        payment_methods=len(dataset.payment_methods),
        offers=len(dataset.offers),
    )
    return ids


async def seed_profit_shares(dataset: DemoDataset, ids: Dict[str, str], partner_ids: Dict[str, str]):
    async with get_db() as db:
        for product_id, split in dataset.profit_shares.items():
            entries = [
                ShareEntry(partner_id=partner_ids[name], percentage=percentage)
                for name, percentage in split.items()
            ]
            await profit_share_service.save_profit_shares(db, ids[product_id], entries)
    logger.info(
        "Seeded profit shares",
        configured=len(dataset.profit_shares),
        unconfigured=len(dataset.products) - len(dataset.profit_shares),
    )


async def seed_orders(dataset: DemoDataset, ids: Dict[str, str]):
    async with get_db() as db:
        for order in dataset.orders:
            await order_service.create_order(
                db,
                lines=[(ids[item.product.id], item.quantity) for item in order.items],
                shipping_method_id=ids[order.shipping_method.id],
                payment_method_id=ids[order.payment_method.id],
                discount=order.discount,
                customer_name=order.customer_name,
                order_number=order.order_number,
                order_date=order.timestamp,
            )
    logger.info("Seeded orders", count=len(dataset.orders))


async def seed_settings(dataset: DemoDataset) -> None:
    """Default system settings plus the quick discount presets"""
    async with get_db() as db:
        await settings_service.ensure_default_settings(db)
        existing = {d.name for d in await quick_discount_service.list_quick_discounts(db)}
        for preset in dataset.quick_discounts:
            if preset.name in existing:
                continue
            await quick_discount_service.create_quick_discount(
                db,
                name=preset.name,
                kind=preset.kind,
                value=preset.value,
                display_order=preset.display_order,
                is_active=preset.is_active,
            )
    logger.info("Seeded settings", quick_discounts=len(dataset.quick_discounts))


async def seed_expenses(dataset: DemoDataset):
    async with get_db() as db:
        for expense in dataset.expenses:
            await expense_service.create_expense(
                db,
                description=expense.description,
                expense_date=expense.expense_date,
                amount=expense.amount,
                category=expense.category,
                partner_shares=expense.partner_shares,
            )
    logger.info("Seeded expenses", count=len(dataset.expenses))


async def main(n_orders: int = 200, seed: int = 42):
    configure_logging()
    logger.info("Starting database seeding...")
    await init_database(create_tables=True)

    dataset = DemoDataGenerator(seed=seed).generate_all(n_orders=n_orders)

    try:
        partner_ids = await seed_partners(dataset)
        await seed_settings(dataset)
        ids = await seed_catalog(dataset)
        await seed_profit_shares(dataset, ids, partner_ids)
        await seed_orders(dataset, ids)
        await seed_expenses(dataset)
        logger.info("Database seeding completed successfully!")
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(main())
