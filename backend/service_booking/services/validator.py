"""
Booking validator: cross-entity preconditions for booking writes.

Read-only. Checks run in a fixed order and stop at the first failure, each
failure with its own reason code:

    1. provider exists and has role=provider
    2. provider is active
    3. customer exists and has role=customer
    4. customer is active
    5. service exists and is active
    6. service belongs to the provider

A missing row is an IntegrityError (dangling id); everything else is a
ValidationError.

Rows are read FOR SHARE, so a concurrent status change or service
deactivation waits for the booking transaction (PostgreSQL). On SQLite the
caller holds the provider schedule lock, which already excludes other
writers.
"""

from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.errors import IntegrityError, ValidationError
from service_booking.core.logging import get_logger
from service_booking.models.catalog import Service
from service_booking.models.enums import UserRole
from service_booking.models.user import User

logger = get_logger(__name__)


class BookingParties(NamedTuple):
    provider: User
    customer: User
    service: Service


async def _load_shared(db: AsyncSession, model, pk_column, ident):
    result = await db.execute(
        select(model)
        .where(pk_column == ident)
        .with_for_update(read=True)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _reject(reason: str, message: str, **details) -> ValidationError:
    logger.info("booking_validation_failed", reason=reason, **details)
    return ValidationError(reason, message, **details)


async def validate(
    db: AsyncSession,
    customer_id: int,
    provider_id: int,
    service_id: int,
) -> BookingParties:
    provider = await _load_shared(db, User, User.id, provider_id)
    if provider is None:
        raise IntegrityError("provider_not_found", f"Provider {provider_id} not found", provider_id=provider_id)
    if provider.role != UserRole.PROVIDER.value:
        raise _reject("provider_role_invalid", "User is not a provider", provider_id=provider_id)
    if not provider.is_active:
        raise _reject(
            "provider_not_active",
            "Provider is not active",
            provider_id=provider_id,
            status=provider.status,
        )

    customer = await _load_shared(db, User, User.id, customer_id)
    if customer is None:
        raise IntegrityError("customer_not_found", f"Customer {customer_id} not found", customer_id=customer_id)
    if customer.role != UserRole.CUSTOMER.value:
        raise _reject("customer_role_invalid", "User is not a customer", customer_id=customer_id)
    if not customer.is_active:
        raise _reject(
            "customer_not_active",
            "Customer is not active",
            customer_id=customer_id,
            status=customer.status,
        )

    service = await _load_shared(db, Service, Service.id, service_id)
    if service is None:
        raise IntegrityError("service_not_found", f"Service {service_id} not found", service_id=service_id)
    if not service.is_active:
        raise _reject("service_not_active", "Service is not active", service_id=service_id)
    if service.provider_id != provider_id:
        raise _reject(
            "service_provider_mismatch",
            "Service is not offered by this provider",
            service_id=service_id,
            provider_id=provider_id,
        )

    return BookingParties(provider=provider, customer=customer, service=service)
