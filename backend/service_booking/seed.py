"""
Seed a provider, a service and a pool of customers for load runs.

    python -m service_booking.seed --customers 200

Prints the environment variables the locust suite reads.
"""

import argparse
import asyncio
import uuid
from decimal import Decimal

from service_booking.core.logging import get_logger, setup_logging
from service_booking.db.session import AsyncSessionLocal, engine
from service_booking.models.enums import UserRole, UserStatus
from service_booking.services import entity_service

logger = get_logger(__name__)


async def seed(customers: int) -> dict:
    run = uuid.uuid4().hex[:8]
    async with AsyncSessionLocal() as db:
        provider = await entity_service.create_user(
            db, f"load-provider-{run}@example.com", "Load Provider", UserRole.PROVIDER, UserStatus.ACTIVE
        )
        category = await entity_service.create_category(db, f"Load {run}")
        service = await entity_service.create_service(
            db, provider.id, category.id, "Load test visit", Decimal("50.00"), duration_minutes=60
        )
        customer_ids = []
        for i in range(customers):
            customer = await entity_service.create_user(
                db, f"load-customer-{run}-{i}@example.com", f"Load Customer {i}", UserRole.CUSTOMER, UserStatus.ACTIVE
            )
            customer_ids.append(customer.id)

    logger.info("load_data_seeded", provider_id=provider.id, service_id=service.id, customers=len(customer_ids))
    return {"provider_id": provider.id, "service_id": service.id, "customer_ids": customer_ids}


async def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--customers", type=int, default=100)
    args = parser.parse_args()

    setup_logging()
    try:
        ids = await seed(args.customers)
    finally:
        await engine.dispose()

    print(f"export LOAD_PROVIDER_ID={ids['provider_id']}")
    print(f"export LOAD_SERVICE_ID={ids['service_id']}")
    print(f"export LOAD_CUSTOMER_IDS={','.join(map(str, ids['customer_ids']))}")


if __name__ == "__main__":
    asyncio.run(main())
