"""
Read-only access to the audit trail.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.db.session import get_db
from service_booking.schemas.audit import AuditLogEntryResponse
from service_booking.services import audit_service

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("/", response_model=list[AuditLogEntryResponse])
async def list_audit_entries(
    table_name: Optional[str] = Query(None),
    record_id: Optional[int] = Query(None),
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Entries oldest first, filtered by table, record and [since, until)."""
    return await audit_service.list_entries(db, table_name, record_id, since, until, limit)
