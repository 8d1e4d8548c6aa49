"""
Append-only audit trail.

Rows are written by services/audit_service.py in the same transaction as
the mutation they describe. The mapper refuses to update or delete them.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, JSON, String, event
from sqlalchemy.dialects.postgresql import JSONB

from service_booking.core.errors import AuditLogImmutableError
from service_booking.db.base import Base, utcnow
from service_booking.models.enums import AuditAction, sql_in

SnapshotType = JSON().with_variant(JSONB(), "postgresql")


class AuditLogEntry(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(String(64), nullable=False)
    record_id = Column(Integer, nullable=False)
    action = Column(String(10), nullable=False)
    # No FK: the trail must outlive whatever the actor row becomes
    actor_id = Column(Integer, nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    before_snapshot = Column(SnapshotType, nullable=True)
    after_snapshot = Column(SnapshotType, nullable=True)
    checksum = Column(String(64), nullable=False)

    __table_args__ = (
        CheckConstraint(f"action IN ({sql_in(AuditAction)})", name="check_audit_action"),
        Index("ix_audit_log_table_record", "table_name", "record_id"),
        Index("ix_audit_log_occurred_at", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(id={self.id}, {self.action} {self.table_name}#{self.record_id})>"


@event.listens_for(AuditLogEntry, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditLogImmutableError("audit_entry_immutable", "Audit log entries cannot be modified", entry_id=target.id)


@event.listens_for(AuditLogEntry, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditLogImmutableError("audit_entry_immutable", "Audit log entries cannot be deleted", entry_id=target.id)
