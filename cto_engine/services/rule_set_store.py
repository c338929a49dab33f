from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..errors import InvalidRuleLogicError, NoActiveRuleSetError, RuleSetNotFoundError
from ..models.audit import AuditAction
from ..models.ruleset import ActiveRuleSetPointer, RuleSet, RuleType, TypedRuleRow
from ..rules.types import RuleSetSnapshot, parse_typed_rule
from .audit_logger import create_audit_event

logger = logging.getLogger(__name__)

ACTIVE_POINTER_KEY = "cto"


def _to_snapshot(rule_set: RuleSet) -> RuleSetSnapshot:
    return RuleSetSnapshot(
        id=str(rule_set.id),
        version=rule_set.version,
        name=rule_set.name,
        created_at=rule_set.created_at,
        rules=tuple(parse_typed_rule(str(row.id), row.rule_type, row.payload) for row in rule_set.rules),
    )


def _parse_id(rule_set_id: UUID | str) -> UUID:
    if isinstance(rule_set_id, UUID):
        return rule_set_id
    try:
        return UUID(str(rule_set_id))
    except ValueError:
        raise RuleSetNotFoundError(str(rule_set_id))


class RuleSetStore:
    def __init__(self, db: Session):
        self.db = db

    def create_rule_set(
        self,
        name: str,
        rules: Iterable[dict[str, Any]],
        actor: str = "SYSTEM",
        activate: bool = False,
    ) -> RuleSet:
        parsed = []
        for position, rule in enumerate(rules):
            try:
                rule_type = RuleType(rule.get("rule_type"))
            except ValueError:
                raise InvalidRuleLogicError(f"rule {position} has unknown rule_type {rule.get('rule_type')!r}")
            payload = rule.get("payload")
            if payload is None:
                payload = {}
            # Reject unparseable payloads before anything is written.
            parse_typed_rule(f"{name}#{position}", rule_type, payload)
            parsed.append((rule_type, dict(payload)))

        current_max = self.db.query(func.max(RuleSet.version)).scalar() or 0
        rule_set = RuleSet(version=current_max + 1, name=name)
        self.db.add(rule_set)
        self.db.flush()

        for position, (rule_type, payload) in enumerate(parsed):
            self.db.add(
                TypedRuleRow(
                    rule_set_id=rule_set.id,
                    position=position,
                    rule_type=rule_type,
                    payload=payload,
                )
            )

        create_audit_event(
            self.db,
            actor=actor,
            action=AuditAction.RULE_SET_CREATED,
            entity_type="RuleSet",
            entity_id=str(rule_set.id),
            details={"name": name, "version": rule_set.version},
            request=None,
            commit=False,
        )
        if activate:
            self._point_to(rule_set.id, actor)
        self.db.commit()
        logger.info("Created rule set %s v%s", name, rule_set.version)
        return rule_set

    def activate(self, rule_set_id: UUID | str, actor: str = "SYSTEM") -> RuleSet:
        key = _parse_id(rule_set_id)
        rule_set = self.db.get(RuleSet, key)
        if rule_set is None:
            raise RuleSetNotFoundError(str(rule_set_id))
        self._point_to(rule_set.id, actor)
        self.db.commit()
        logger.info("Activated rule set %s v%s", rule_set.name, rule_set.version)
        return rule_set

    def _point_to(self, rule_set_id: UUID, actor: str) -> None:
        pointer = self.db.get(ActiveRuleSetPointer, ACTIVE_POINTER_KEY)
        if pointer is None:
            pointer = ActiveRuleSetPointer(key=ACTIVE_POINTER_KEY, rule_set_id=rule_set_id)
            self.db.add(pointer)
        else:
            pointer.rule_set_id = rule_set_id
        create_audit_event(
            self.db,
            actor=actor,
            action=AuditAction.RULE_SET_ACTIVATED,
            entity_type="RuleSet",
            entity_id=str(rule_set_id),
            details={},
            request=None,
            commit=False,
        )

    def get_active(self) -> RuleSetSnapshot:
        rule_set = (
            self.db.query(RuleSet)
            .join(ActiveRuleSetPointer, ActiveRuleSetPointer.rule_set_id == RuleSet.id)
            .filter(ActiveRuleSetPointer.key == ACTIVE_POINTER_KEY)
            .options(joinedload(RuleSet.rules))
            .first()
        )
        if rule_set is None:
            raise NoActiveRuleSetError()
        return _to_snapshot(rule_set)

    def get_snapshot(self, rule_set_id: UUID | str) -> RuleSetSnapshot:
        key = _parse_id(rule_set_id)
        rule_set = (
            self.db.query(RuleSet)
            .filter(RuleSet.id == key)
            .options(joinedload(RuleSet.rules))
            .first()
        )
        if rule_set is None:
            raise RuleSetNotFoundError(str(rule_set_id))
        return _to_snapshot(rule_set)

    def has_any(self) -> bool:
        return self.db.query(RuleSet.id).first() is not None


def serialize_rule_set(snapshot: RuleSetSnapshot, active: bool | None = None) -> dict[str, Any]:
    data = {
        "id": snapshot.id,
        "version": snapshot.version,
        "name": snapshot.name,
        "created_at": snapshot.created_at.isoformat(),
        "rule_count": len(snapshot.rules),
    }
    if active is not None:
        data["active"] = active
    return data
