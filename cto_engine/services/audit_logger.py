"""Audit trail for rule and configuration lifecycle events.

Every write that changes what the engine will decide (new rule versions, rule
set activation, frozen configurations, recorded decisions) leaves one
``AuditEvent`` row, optionally mirrored to a JSONL export file.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from fastapi import Request
from sqlalchemy.orm import Session
from ..config import get_settings
from ..models.audit import AuditEvent, AuditAction

logger = logging.getLogger(__name__)

MAX_AUDIT_EVENTS = 1000


def _request_context(request: Request | None, request_id: str | None, ip_address: str | None) -> tuple[str, str]:
    if request is None:
        return request_id or "", ip_address or ""
    return getattr(request.state, "request_id", ""), getattr(request.client, "host", "")


def create_audit_event(
    db: Session,
    actor: str,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    details: dict[str, Any] | None,
    request: Request | None,
    *,
    request_id: str | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> AuditEvent:
    request_id, ip_address = _request_context(request, request_id, ip_address)
    event = AuditEvent(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        request_id=request_id,
        ip_address=ip_address,
        details=details or {},
        timestamp=datetime.now(timezone.utc),
    )
    db.add(event)
    if commit:
        db.commit()

    export_path = get_settings().AUDIT_EXPORT_PATH
    if export_path:
        _append_export(export_path, event)

    return event


def serialize_audit_event(event: AuditEvent) -> dict[str, Any]:
    return {
        "timestamp": event.timestamp.isoformat(),
        "actor": event.actor,
        "action": event.action.value,
        "entity_type": event.entity_type,
        "entity_id": event.entity_id,
        "request_id": event.request_id,
        "ip_address": event.ip_address,
        "details": event.details,
    }


def list_audit_events(
    db: Session,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: AuditAction | None = None,
    from_ts: datetime | None = None,
    to_ts: datetime | None = None,
    limit: int = MAX_AUDIT_EVENTS,
) -> list[AuditEvent]:
    """Newest first, capped at ``MAX_AUDIT_EVENTS``."""
    query = db.query(AuditEvent)
    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditEvent.entity_id == entity_id)
    if action is not None:
        query = query.filter(AuditEvent.action == action)
    if from_ts:
        query = query.filter(AuditEvent.timestamp >= from_ts)
    if to_ts:
        query = query.filter(AuditEvent.timestamp <= to_ts)
    return query.order_by(AuditEvent.timestamp.desc()).limit(min(limit, MAX_AUDIT_EVENTS)).all()


def _append_export(path: str, event: AuditEvent) -> None:
    export_path = Path(path)
    export_path.parent.mkdir(parents=True, exist_ok=True)
    with export_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(serialize_audit_event(event), default=str) + "\n")
    logger.debug("Exported %s audit event for %s %s", event.action.value, event.entity_type, event.entity_id)
