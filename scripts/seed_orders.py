import asyncio
import json
import logging
from pathlib import Path

from config.settings import settings
from services.database import AsyncSessionLocal, init_db
from models.customer import Customer
from models.item import Item
from models.order import Order, OrderSlot

logger = logging.getLogger("seed_orders")


async def seed(data: dict) -> None:
    async with AsyncSessionLocal() as db:
        customers = {
            entry["key"]: Customer(name=entry["name"], email=entry.get("email"))
            for entry in data["customers"]
        }
        items = {
            entry["sku"]: Item(
                sku=entry["sku"],
                name=entry["name"],
                description=entry.get("description"),
                price_cents=entry.get("price_cents", 0),
            )
            for entry in data["items"]
        }
        db.add_all([*customers.values(), *items.values()])

        for entry in data["orders"]:
            order = Order(
                reference=entry["reference"],
                customer=customers.get(entry.get("customer")),
                items=[items[sku] for sku in entry.get("items", [])],
            )
            for slot, sku in entry.get("slots", {}).items():
                order.slots[slot] = OrderSlot(slot=slot, item=items[sku])
            db.add(order)
            logger.info("Seeded order %s (%d items)", order.reference, len(order.items))

        await db.commit()


async def main():
    base_dir = Path(__file__).resolve().parent

    # make sure we're not seeding a production database
    if settings.ENVIRONMENT == "production":
        raise RuntimeError("Refusing to seed a production database.")

    with open(base_dir / "order_seed_data.json", "r", encoding="utf-8") as f:
        data = json.load(f)

    await init_db()
    await seed(data)

    logger.info("Order seeding complete.")


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    asyncio.run(main())
