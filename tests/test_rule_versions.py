from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from cto_engine.errors import (
    ImmutableRecordError,
    InvalidRuleLogicError,
    RuleNotFoundError,
    RuleVersionConflictError,
    RuleVersionNotFoundError,
)
from cto_engine.models.audit import AuditAction, AuditEvent
from cto_engine.models.rule_version import RuleVersion
from cto_engine.services.rule_version_store import RuleVersionReader, RuleVersionStore


def ram_logic(reference, message="RAM must be {value}"):
    return {
        "type": "COMPATIBILITY",
        "conditions": [{"field": "component.reference", "operator": "EQUALS", "value": reference}],
        "action": "BLOCK",
        "message": message,
    }


def test_history_newest_first_and_old_logic_unchanged(db_session):
    store = RuleVersionStore(db_session)
    v1 = store.create_version("R1", "RAM rule", "first", ram_logic("DDR4-16GB-2933"))
    v2 = store.create_version("R1", "RAM rule", "second", ram_logic("DDR4-32GB-2933"))

    assert (v1.version, v2.version) == (1, 2)

    history = store.history("R1")
    assert [row.version for row in history] == [2, 1]

    latest = store.require_latest("R1")
    assert latest.id == v2.id
    assert latest.logic["conditions"][0]["value"] == "DDR4-32GB-2933"

    first = store.get_version("R1", 1)
    assert first.logic["conditions"][0]["value"] == "DDR4-16GB-2933"


def test_versions_are_independent_per_rule(db_session):
    store = RuleVersionStore(db_session)
    store.create_version("R1", "one", "", ram_logic("A"))
    store.create_version("R1", "one", "", ram_logic("B"))
    other = store.create_version("R2", "two", "", ram_logic("C"))

    assert other.version == 1
    latest = store.all_latest_per_rule()
    assert [(row.rule_id, row.version) for row in latest] == [("R1", 2), ("R2", 1)]


def test_create_version_writes_audit_event(db_session):
    row = RuleVersionStore(db_session).create_version("R1", "rule", "", ram_logic("A"), actor="alice")

    event = db_session.query(AuditEvent).filter_by(action=AuditAction.RULE_VERSION_CREATED).one()
    assert event.actor == "alice"
    assert event.entity_id == str(row.id)
    assert event.details == {"rule_id": "R1", "version": 1}


def test_conflicting_version_is_retried(db_session, monkeypatch):
    store = RuleVersionStore(db_session, max_retries=3)
    store.create_version("R1", "rule", "", ram_logic("A"))

    real_latest = RuleVersionReader.latest_version
    calls = {"count": 0}

    def stale_once(self, rule_id):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_latest(self, rule_id)

    monkeypatch.setattr(RuleVersionStore, "latest_version", stale_once)

    row = store.create_version("R1", "rule", "", ram_logic("B"))
    assert row.version == 2
    assert calls["count"] == 2


def test_conflict_exhaustion_raises(db_session, monkeypatch):
    store = RuleVersionStore(db_session, max_retries=2)
    store.create_version("R1", "rule", "", ram_logic("A"))

    monkeypatch.setattr(RuleVersionStore, "latest_version", lambda self, rule_id: None)

    with pytest.raises(RuleVersionConflictError) as exc:
        store.create_version("R1", "rule", "", ram_logic("B"))
    assert exc.value.attempts == 2
    assert db_session.query(RuleVersion).filter_by(rule_id="R1").count() == 1


def test_stored_versions_refuse_update_and_delete(db_session):
    row = RuleVersionStore(db_session).create_version("R1", "rule", "", ram_logic("A"))

    row.name = "renamed"
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    db_session.delete(row)
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    assert RuleVersionReader(db_session).require_latest("R1").name == "rule"


def test_invalid_logic_rejected(db_session):
    store = RuleVersionStore(db_session)
    with pytest.raises(InvalidRuleLogicError):
        store.create_version("R1", "rule", "", {"type": "COMPATIBILITY", "action": "DENY", "message": "x"})
    with pytest.raises(InvalidRuleLogicError):
        store.create_version(
            "R1",
            "rule",
            "",
            {
                "type": "COMPATIBILITY",
                "conditions": [{"field": "component.type", "operator": "LIKE", "value": "CPU"}],
                "action": "BLOCK",
                "message": "x",
            },
        )
    assert store.latest_version("R1") is None


def test_missing_rule_lookups(db_session):
    reader = RuleVersionReader(db_session)
    with pytest.raises(RuleNotFoundError):
        reader.require_latest("UNKNOWN")
    with pytest.raises(RuleVersionNotFoundError):
        reader.get_version("UNKNOWN", 1)
    with pytest.raises(RuleVersionNotFoundError):
        reader.get_by_id("not-a-uuid")
    assert reader.history("UNKNOWN") == []


@settings(max_examples=10, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(count=st.integers(min_value=1, max_value=6))
def test_versions_increase_by_one(db_session, count):
    rule_id = f"R-{uuid4().hex[:8]}"
    store = RuleVersionStore(db_session)
    versions = [
        store.create_version(rule_id, "rule", "", ram_logic(f"REF-{i}")).version for i in range(count)
    ]
    assert versions == list(range(1, count + 1))
