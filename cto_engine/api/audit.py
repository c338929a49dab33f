from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.audit import AuditAction
from ..services.audit_logger import MAX_AUDIT_EVENTS, list_audit_events, serialize_audit_event

router = APIRouter(prefix="/cto/audit-events", tags=["audit"])


@router.get("")
def get_audit_events(
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: AuditAction | None = None,
    from_ts: datetime | None = None,
    to_ts: datetime | None = None,
    limit: int = Query(MAX_AUDIT_EVENTS, ge=1, le=MAX_AUDIT_EVENTS),
    db: Session = Depends(get_db),
):
    events = list_audit_events(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        from_ts=from_ts,
        to_ts=to_ts,
        limit=limit,
    )
    return {"count": len(events), "events": [serialize_audit_event(e) for e in events]}
