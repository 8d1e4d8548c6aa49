"""
Pydantic schemas for audit log reads.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from service_booking.models.enums import AuditAction


class AuditLogEntryResponse(BaseModel):
    id: int
    table_name: str
    record_id: int
    action: AuditAction
    actor_id: Optional[int]
    occurred_at: datetime
    before_snapshot: Optional[dict[str, Any]]
    after_snapshot: Optional[dict[str, Any]]
    checksum: str

    model_config = {"from_attributes": True}
