"""Store audit trail.

Rows are added to the caller's session and committed with the change they
describe, so a rolled-back write leaves no audit entry behind.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from services.store_service.models import AuditEntityType, StoreAuditLog
from sqlalchemy.ext.asyncio import AsyncSession


def _json_safe(value: Any) -> Any:
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(obj: Any, *fields: str) -> dict:
    """Current values of ``fields`` on ``obj`` in a JSON-storable form."""
    return {field: _json_safe(getattr(obj, field)) for field in fields}


async def log_audit(
    db: AsyncSession,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: str,
    performed_by: str,
    *,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    notes: Optional[str] = None,
) -> StoreAuditLog:
    entry = StoreAuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        performed_by=performed_by,
        old_value=old_value,
        new_value=new_value,
        notes=notes,
    )
    db.add(entry)
    return entry
