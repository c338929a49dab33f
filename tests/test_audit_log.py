from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from cto_engine.database import session_scope
from cto_engine.models.audit import AuditAction, AuditEvent
from cto_engine.models.decision import Decision, DecisionResult
from cto_engine.services.audit_logger import create_audit_event, list_audit_events, serialize_audit_event
from cto_engine.services.rule_set_store import RuleSetStore

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def audit_row(action, entity_id, minutes):
    return AuditEvent(
        actor="SYSTEM",
        action=action,
        entity_type="RuleSet",
        entity_id=entity_id,
        request_id="",
        ip_address="",
        details={},
        timestamp=T0 + timedelta(minutes=minutes),
    )


def test_rule_set_lifecycle_is_listed_newest_first(db_session):
    db_session.add_all(
        [
            audit_row(AuditAction.RULE_SET_CREATED, "rs-1", 0),
            audit_row(AuditAction.RULE_SET_ACTIVATED, "rs-1", 5),
            audit_row(AuditAction.RULE_SET_CREATED, "rs-2", 10),
        ]
    )
    db_session.commit()

    newest_first = list_audit_events(db_session)
    assert [(e.action, e.entity_id) for e in newest_first] == [
        (AuditAction.RULE_SET_CREATED, "rs-2"),
        (AuditAction.RULE_SET_ACTIVATED, "rs-1"),
        (AuditAction.RULE_SET_CREATED, "rs-1"),
    ]

    assert [e.action for e in list_audit_events(db_session, entity_id="rs-1")] == [
        AuditAction.RULE_SET_ACTIVATED,
        AuditAction.RULE_SET_CREATED,
    ]
    created = list_audit_events(db_session, action=AuditAction.RULE_SET_CREATED, limit=1)
    assert [e.entity_id for e in created] == ["rs-2"]
    window = list_audit_events(db_session, from_ts=T0 + timedelta(minutes=1), to_ts=T0 + timedelta(minutes=6))
    assert [e.action for e in window] == [AuditAction.RULE_SET_ACTIVATED]


def test_store_writes_are_audited(db_session):
    rule_set = RuleSetStore(db_session).create_rule_set("empty", [], actor="planner", activate=True)

    events = list_audit_events(db_session, entity_type="RuleSet", entity_id=str(rule_set.id))
    assert {e.action for e in events} == {AuditAction.RULE_SET_CREATED, AuditAction.RULE_SET_ACTIVATED}
    assert all(e.actor == "planner" for e in events)

    created = [serialize_audit_event(e) for e in events if e.action == AuditAction.RULE_SET_CREATED][0]
    assert created["action"] == "RULE_SET_CREATED"
    assert created["details"] == {"name": "empty", "version": 1}


def test_session_scope_rolls_back_on_error(db_session):
    with pytest.raises(RuntimeError):
        with session_scope() as db:
            create_audit_event(
                db,
                actor="SYSTEM",
                action=AuditAction.RULE_SET_CREATED,
                entity_type="RuleSet",
                entity_id="rs-1",
                details=None,
                request=None,
                commit=False,
            )
            db.flush()
            raise RuntimeError("seeding failed")

    assert db_session.query(AuditEvent).count() == 0


def test_decisions_need_a_stored_rule_version(db_session):
    db_session.add(
        Decision(
            configuration_id="cfg-1",
            rule_version_id=uuid4(),
            result=DecisionResult.ACCEPT,
            sequence=0,
        )
    )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
