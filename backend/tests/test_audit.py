"""
Tests for the audit trail: one entry per mutation, written in the same
transaction, attributed to the acting user, immutable and tamper-evident.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from conftest import at
from service_booking.core.context import acting_as
from service_booking.core.errors import AuditLogImmutableError, ConflictError
from service_booking.db.base import utcnow
from service_booking.models.audit import AuditLogEntry
from service_booking.models.booking import Booking
from service_booking.models.enums import BookingStatus
from service_booking.schemas.booking import BookingUpdate
from service_booking.services import audit_service, booking_service, entity_service


async def booking_entries(db, booking_id):
    return await audit_service.list_entries(db, table_name="bookings", record_id=booking_id)


@pytest.mark.asyncio
async def test_insert_recorded_with_after_snapshot(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))

    entries = await booking_entries(db_session, booking.id)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "insert"
    assert entry.before_snapshot is None
    assert entry.after_snapshot["status"] == "pending"
    assert entry.after_snapshot["scheduled_start"] == at(10).isoformat()
    assert entry.actor_id is None


@pytest.mark.asyncio
async def test_transition_recorded_with_before_and_after(db_session, booking_data, provider):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    await booking_service.transition_booking(db_session, booking.id, BookingStatus.CONFIRMED, actor_id=provider.id)

    entries = await booking_entries(db_session, booking.id)
    assert [e.action for e in entries] == ["insert", "update"]
    update = entries[1]
    assert update.before_snapshot["status"] == "pending"
    assert update.after_snapshot["status"] == "confirmed"
    assert update.actor_id == provider.id


@pytest.mark.asyncio
async def test_noop_update_writes_nothing(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    await booking_service.update_booking(db_session, booking.id, BookingUpdate(city="Springfield"))
    await booking_service.update_booking(db_session, booking.id, BookingUpdate(city="Shelbyville"))

    entries = await booking_entries(db_session, booking.id)
    assert [e.action for e in entries] == ["insert", "update"]
    assert entries[1].before_snapshot["city"] == "Springfield"
    assert entries[1].after_snapshot["city"] == "Shelbyville"


@pytest.mark.asyncio
async def test_rejected_mutation_leaves_no_entry(db_session, booking_data, other_customer):
    await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    before = (await db_session.execute(select(func.count(AuditLogEntry.id)))).scalar_one()

    with pytest.raises(ConflictError):
        await booking_service.create_booking(
            db_session, booking_data(at(10), at(11), customer_id=other_customer.id)
        )

    after = (await db_session.execute(select(func.count(AuditLogEntry.id)))).scalar_one()
    assert after == before


@pytest.mark.asyncio
async def test_audit_failure_rolls_back_booking(db_session, booking_data, monkeypatch):
    """If the audit row cannot be written, the booking does not exist either."""

    async def broken_record_insert(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(audit_service, "record_insert", broken_record_insert)
    with pytest.raises(RuntimeError):
        await booking_service.create_booking(db_session, booking_data(at(10), at(11)))

    count = (await db_session.execute(select(func.count(Booking.id)))).scalar_one()
    assert count == 0

    # The slot was never claimed
    monkeypatch.undo()
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    assert len(await booking_entries(db_session, booking.id)) == 1


@pytest.mark.asyncio
async def test_actor_taken_from_context(db_session, booking_data, customer, admin):
    with acting_as(customer.id):
        booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))

    # An explicit actor wins over the ambient one
    with acting_as(customer.id):
        await booking_service.transition_booking(
            db_session, booking.id, BookingStatus.CANCELLED, actor_id=admin.id
        )

    entries = await booking_entries(db_session, booking.id)
    assert [e.actor_id for e in entries] == [customer.id, admin.id]


@pytest.mark.asyncio
async def test_entries_cannot_be_modified(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    entry = (await booking_entries(db_session, booking.id))[0]

    entry.actor_id = 12345
    with pytest.raises(AuditLogImmutableError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_entries_cannot_be_deleted(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    entry = (await booking_entries(db_session, booking.id))[0]

    await db_session.delete(entry)
    with pytest.raises(AuditLogImmutableError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_checksum_detects_tampering(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    entry = (await booking_entries(db_session, booking.id))[0]
    assert audit_service.verify_entry(entry)

    forged_after = dict(entry.after_snapshot, status="confirmed")
    forged = AuditLogEntry(
        table_name=entry.table_name,
        record_id=entry.record_id,
        action=entry.action,
        actor_id=entry.actor_id,
        occurred_at=entry.occurred_at,
        before_snapshot=entry.before_snapshot,
        after_snapshot=forged_after,
        checksum=entry.checksum,
    )
    assert not audit_service.verify_entry(forged)


@pytest.mark.asyncio
async def test_delete_recorded_with_before_snapshot(db_session):
    category = await entity_service.create_category(db_session, "Gardening")
    await entity_service.delete_category(db_session, category.id)

    entries = await audit_service.list_entries(db_session, table_name="service_categories", record_id=category.id)
    assert [e.action for e in entries] == ["insert", "delete"]
    assert entries[1].before_snapshot["name"] == "Gardening"
    assert entries[1].after_snapshot is None


@pytest.mark.asyncio
async def test_entity_mutations_are_audited(db_session, provider, service):
    await entity_service.change_user_status(db_session, provider.id, "suspended")
    await entity_service.update_service(db_session, service.id, base_price="75.50")

    user_entries = await audit_service.list_entries(db_session, table_name="users", record_id=provider.id)
    assert [e.action for e in user_entries] == ["insert", "update"]
    assert user_entries[1].after_snapshot["status"] == "suspended"

    service_entries = await audit_service.list_entries(db_session, table_name="services", record_id=service.id)
    assert service_entries[1].before_snapshot["base_price"] == "50.00"
    assert service_entries[1].after_snapshot["base_price"] == "75.50"


@pytest.mark.asyncio
async def test_list_entries_time_range(db_session, booking_data):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    now = utcnow()

    assert await audit_service.list_entries(db_session, record_id=booking.id, since=now + timedelta(minutes=5)) == []
    window = await audit_service.list_entries(
        db_session,
        table_name="bookings",
        since=now - timedelta(minutes=5),
        until=now + timedelta(minutes=5),
    )
    assert [e.record_id for e in window] == [booking.id]


@pytest.mark.asyncio
async def test_record_rejects_untracked_table(db_session):
    with pytest.raises(ValueError):
        await audit_service.record(db_session, "provider_profiles", 1, "update", before={}, after={})
