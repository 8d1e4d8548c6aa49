"""
Audit recorder.

Every insert/update/delete on a tracked table goes through ``record`` with
full-row snapshots:

    insert  before=None      after=snapshot
    update  before=snapshot  after=snapshot
    delete  before=snapshot  after=None

The entry is added to the caller's session and flushed immediately, so it
lives and dies with the business mutation's transaction: if writing the
audit row fails, ``atomic()`` rolls the mutation back too. There is no
asynchronous or best-effort delivery path.

Each row stores a SHA-256 checksum over its canonical content. ``verify_entry``
recomputes it so out-of-band edits to the table are detectable.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.config import get_settings
from service_booking.core.context import resolve_actor_id
from service_booking.core.logging import get_logger
from service_booking.core.metrics import record_audit_entry
from service_booking.db.base import as_utc, utcnow
from service_booking.models.audit import AuditLogEntry
from service_booking.models.enums import AuditAction

logger = get_logger(__name__)

TRACKED_TABLES = frozenset(
    {"users", "service_categories", "services", "bookings", "reviews", "review_comments"}
)


def _json_safe(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(obj) -> dict:
    """Capture every mapped column of ``obj`` as JSON-safe values."""
    mapper = inspect(obj).mapper
    return {attr.key: _json_safe(getattr(obj, attr.key)) for attr in mapper.column_attrs}


def compute_checksum(
    table_name: str,
    record_id: int,
    action: str,
    actor_id: Optional[int],
    occurred_at: datetime,
    before: Optional[dict],
    after: Optional[dict],
) -> str:
    payload = json.dumps(
        {
            "table": table_name,
            "record_id": record_id,
            "action": action,
            "actor_id": actor_id,
            "occurred_at": as_utc(occurred_at).isoformat(),
            "before": before,
            "after": after,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


async def record(
    db: AsyncSession,
    table_name: str,
    record_id: int,
    action: Union[AuditAction, str],
    actor_id: Optional[int] = None,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> AuditLogEntry:
    """Append an audit entry inside the current transaction."""
    action = AuditAction(action)
    if table_name not in TRACKED_TABLES:
        raise ValueError(f"{table_name} is not an audited table")
    if action is AuditAction.INSERT and before is not None:
        raise ValueError("insert entries carry no before snapshot")
    if action is AuditAction.DELETE and after is not None:
        raise ValueError("delete entries carry no after snapshot")

    actor = resolve_actor_id(actor_id)
    occurred_at = utcnow()
    entry = AuditLogEntry(
        table_name=table_name,
        record_id=record_id,
        action=action.value,
        actor_id=actor,
        occurred_at=occurred_at,
        before_snapshot=before,
        after_snapshot=after,
        checksum=compute_checksum(table_name, record_id, action.value, actor, occurred_at, before, after),
    )
    db.add(entry)
    await db.flush()

    record_audit_entry(table_name, action.value)
    logger.debug("audit_recorded", table=table_name, record_id=record_id, action=action.value, actor_id=actor)
    return entry


async def record_insert(db: AsyncSession, obj, actor_id: Optional[int] = None) -> AuditLogEntry:
    return await record(db, obj.__tablename__, obj.id, AuditAction.INSERT, actor_id, None, snapshot(obj))


async def record_update(db: AsyncSession, obj, before: dict, actor_id: Optional[int] = None) -> AuditLogEntry:
    return await record(db, obj.__tablename__, obj.id, AuditAction.UPDATE, actor_id, before, snapshot(obj))


def verify_entry(entry: AuditLogEntry) -> bool:
    """True when the stored checksum still matches the entry's content."""
    expected = compute_checksum(
        entry.table_name,
        entry.record_id,
        entry.action,
        entry.actor_id,
        entry.occurred_at,
        entry.before_snapshot,
        entry.after_snapshot,
    )
    return expected == entry.checksum


async def list_entries(
    db: AsyncSession,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[AuditLogEntry]:
    """Read the trail, oldest first. ``since`` is inclusive, ``until`` exclusive."""
    settings = get_settings()
    limit = min(limit or settings.AUDIT_DEFAULT_LIMIT, settings.AUDIT_MAX_LIMIT)

    query = select(AuditLogEntry)
    if table_name is not None:
        query = query.where(AuditLogEntry.table_name == table_name)
    if record_id is not None:
        query = query.where(AuditLogEntry.record_id == record_id)
    if since is not None:
        query = query.where(AuditLogEntry.occurred_at >= as_utc(since))
    if until is not None:
        query = query.where(AuditLogEntry.occurred_at < as_utc(until))

    result = await db.execute(query.order_by(AuditLogEntry.occurred_at.asc(), AuditLogEntry.id.asc()).limit(limit))
    return list(result.scalars().all())
