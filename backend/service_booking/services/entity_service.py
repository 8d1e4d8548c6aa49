"""
Entity store operations: users, categories and services.

These are the records the booking validator reads. Registration and
catalog browsing live elsewhere; this module only gives collaborators (and
tests) an audited way to create and change them.
"""

from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.context import resolve_actor_id
from service_booking.core.errors import IntegrityError, ValidationError
from service_booking.core.logging import get_logger
from service_booking.db.base import utcnow
from service_booking.db.session import atomic
from service_booking.models.catalog import Service, ServiceCategory
from service_booking.models.enums import AuditAction, UserRole, UserStatus
from service_booking.models.user import ProviderProfile, User
from service_booking.services import audit_service
from service_booking.services.state_machine import assert_user_transition

logger = get_logger(__name__)

SERVICE_MUTABLE_FIELDS = ("title", "description", "base_price", "currency", "duration_minutes", "is_active", "category_id")


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise IntegrityError("user_not_found", f"User {user_id} not found", user_id=user_id)
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    full_name: str,
    role: Union[UserRole, str],
    status: Union[UserStatus, str] = UserStatus.PENDING,
    bio: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> User:
    """Create a user; providers get their profile (and schedule lock row) too."""
    role, status = UserRole(role), UserStatus(status)
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError("email_taken", "Email already registered", email=email)

        now = utcnow()
        user = User(
            email=email,
            full_name=full_name,
            role=role.value,
            status=status.value,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        await db.flush()
        if role is UserRole.PROVIDER:
            db.add(ProviderProfile(user_id=user.id, bio=bio, schedule_version=0, created_at=now, updated_at=now))
            await db.flush()
        await audit_service.record_insert(db, user, actor_id)

    logger.info("user_created", user_id=user.id, role=role.value, status=status.value)
    return user


async def change_user_status(
    db: AsyncSession,
    user_id: int,
    status: Union[UserStatus, str],
    actor_id: Optional[int] = None,
) -> User:
    """Move a user along pending -> active -> suspended/blocked."""
    target = UserStatus(status)
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        user = await get_user(db, user_id)
        previous = user.status
        assert_user_transition(previous, target)
        before = audit_service.snapshot(user)
        user.status = target.value
        user.updated_at = utcnow()
        await db.flush()
        await audit_service.record_update(db, user, before, actor_id)

    logger.info("user_status_changed", user_id=user_id, from_status=previous, to_status=target.value)
    return user


async def soft_delete_user(db: AsyncSession, user_id: int, actor_id: Optional[int] = None) -> User:
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        user = await get_user(db, user_id)
        if user.is_deleted:
            return user
        before = audit_service.snapshot(user)
        user.is_deleted = True
        user.updated_at = utcnow()
        await db.flush()
        await audit_service.record_update(db, user, before, actor_id)

    logger.info("user_deleted", user_id=user_id)
    return user


async def create_category(
    db: AsyncSession,
    name: str,
    parent_id: Optional[int] = None,
    description: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> ServiceCategory:
    """Names are unique among siblings, root level included."""
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        if parent_id is not None and await db.get(ServiceCategory, parent_id) is None:
            raise IntegrityError("category_not_found", f"Category {parent_id} not found", category_id=parent_id)

        sibling = select(ServiceCategory.id).where(func.lower(ServiceCategory.name) == name.lower())
        if parent_id is None:
            sibling = sibling.where(ServiceCategory.parent_id.is_(None))
        else:
            sibling = sibling.where(ServiceCategory.parent_id == parent_id)
        if (await db.execute(sibling)).scalar_one_or_none() is not None:
            raise ValidationError("category_name_taken", f"Category {name!r} already exists here", parent_id=parent_id)

        now = utcnow()
        category = ServiceCategory(
            name=name,
            parent_id=parent_id,
            description=description,
            created_at=now,
            updated_at=now,
        )
        db.add(category)
        await db.flush()
        await audit_service.record_insert(db, category, actor_id)

    logger.info("category_created", category_id=category.id, parent_id=parent_id)
    return category


async def delete_category(db: AsyncSession, category_id: int, actor_id: Optional[int] = None) -> None:
    """Hard delete an unused category."""
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        category = await db.get(ServiceCategory, category_id)
        if category is None:
            raise IntegrityError("category_not_found", f"Category {category_id} not found", category_id=category_id)

        services = await db.execute(select(func.count(Service.id)).where(Service.category_id == category_id))
        children = await db.execute(
            select(func.count(ServiceCategory.id)).where(ServiceCategory.parent_id == category_id)
        )
        if services.scalar_one() or children.scalar_one():
            raise ValidationError(
                "category_in_use",
                "Category still has services or subcategories",
                category_id=category_id,
            )

        before = audit_service.snapshot(category)
        await db.delete(category)
        await db.flush()
        await audit_service.record(
            db, ServiceCategory.__tablename__, category_id, AuditAction.DELETE, actor_id, before, None
        )

    logger.info("category_deleted", category_id=category_id)


async def get_service(db: AsyncSession, service_id: int) -> Service:
    service = await db.get(Service, service_id, populate_existing=True)
    if service is None:
        raise IntegrityError("service_not_found", f"Service {service_id} not found", service_id=service_id)
    return service


async def create_service(
    db: AsyncSession,
    provider_id: int,
    category_id: int,
    title: str,
    base_price: Decimal,
    currency: str = "USD",
    description: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    is_active: bool = True,
    actor_id: Optional[int] = None,
) -> Service:
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        provider = await get_user(db, provider_id)
        if provider.role != UserRole.PROVIDER.value:
            raise ValidationError("provider_role_invalid", "Services must be owned by a provider", provider_id=provider_id)
        if await db.get(ServiceCategory, category_id) is None:
            raise IntegrityError("category_not_found", f"Category {category_id} not found", category_id=category_id)
        _check_service_values(Decimal(base_price), currency, duration_minutes)

        now = utcnow()
        service = Service(
            provider_id=provider_id,
            category_id=category_id,
            title=title,
            description=description,
            base_price=Decimal(base_price),
            currency=currency.upper(),
            duration_minutes=duration_minutes,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        db.add(service)
        await db.flush()
        await audit_service.record_insert(db, service, actor_id)

    logger.info("service_created", service_id=service.id, provider_id=provider_id)
    return service


async def update_service(
    db: AsyncSession,
    service_id: int,
    actor_id: Optional[int] = None,
    **changes,
) -> Service:
    """Change price, currency, title, description, duration, category or active flag."""
    unknown = set(changes) - set(SERVICE_MUTABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update service fields: {sorted(unknown)}")

    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        service = await get_service(db, service_id)
        if "base_price" in changes:
            changes["base_price"] = Decimal(changes["base_price"])
        if "currency" in changes:
            changes["currency"] = changes["currency"].upper()
        _check_service_values(
            changes.get("base_price", service.base_price),
            changes.get("currency", service.currency),
            changes.get("duration_minutes", service.duration_minutes),
        )
        if "category_id" in changes and await db.get(ServiceCategory, changes["category_id"]) is None:
            raise IntegrityError(
                "category_not_found",
                f"Category {changes['category_id']} not found",
                category_id=changes["category_id"],
            )

        before = audit_service.snapshot(service)
        for key, value in changes.items():
            setattr(service, key, value)
        service.updated_at = utcnow()
        await db.flush()
        await audit_service.record_update(db, service, before, actor_id)

    logger.info("service_updated", service_id=service_id, fields=sorted(changes))
    return service


def _check_service_values(base_price: Decimal, currency: str, duration_minutes: Optional[int]) -> None:
    if base_price < 0:
        raise ValidationError("invalid_price", "base_price must be non-negative", base_price=str(base_price))
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError("invalid_currency", "currency must be a 3-letter ISO code", currency=currency)
    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationError("invalid_duration", "duration_minutes must be positive", duration_minutes=duration_minutes)
