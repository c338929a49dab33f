from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..errors import AuditNotAvailableError, DecisionNotFoundError
from ..models.decision import Decision, DecisionExplanation, DecisionResult, ExplanationSeverity
from ..rules.types import ExplanationEntry
from .rule_version_store import RuleVersionReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditedExplanation:
    id: str
    code: str
    message: str
    severity: ExplanationSeverity
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditedDecision:
    decision_id: str
    sequence: int
    rule_version_id: str
    rule_id: str
    rule_name: str
    rule_version: int
    result: DecisionResult
    explanations: tuple[AuditedExplanation, ...]
    evaluated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision_id": self.decision_id,
            "sequence": self.sequence,
            "rule_version_id": self.rule_version_id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_version": self.rule_version,
            "result": self.result.value,
            "explanations": [explanation.to_dict() for explanation in self.explanations],
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass(frozen=True)
class ConfigurationAudit:
    configuration_id: str
    decisions: tuple[AuditedDecision, ...]
    overall_result: DecisionResult
    evaluated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "configuration_id": self.configuration_id,
            "overall_result": self.overall_result.value,
            "evaluated_at": self.evaluated_at.isoformat(),
            "decisions": [decision.to_dict() for decision in self.decisions],
        }


def _audited(decision: Decision) -> AuditedDecision:
    return AuditedDecision(
        decision_id=str(decision.id),
        sequence=decision.sequence,
        rule_version_id=str(decision.rule_version_id),
        rule_id=decision.rule_version.rule_id,
        rule_name=decision.rule_version.name,
        rule_version=decision.rule_version.version,
        result=decision.result,
        explanations=tuple(
            AuditedExplanation(
                id=str(exp.id),
                code=exp.code,
                message=exp.message,
                severity=exp.severity,
                created_at=exp.created_at,
            )
            for exp in decision.explanations
        ),
        evaluated_at=decision.created_at,
    )


class DecisionAuditStore:
    """Append-only record of evaluation outcomes.

    The store never blocks a second evaluation of the same configuration;
    callers check ``has_existing_decisions`` first.
    """

    def __init__(self, db: Session):
        self.db = db
        self.rule_versions = RuleVersionReader(db)

    def record_decision(
        self,
        configuration_id: str,
        rule_version_id: UUID | str,
        result: DecisionResult | str,
        explanations: Iterable[ExplanationEntry | dict[str, Any]] = (),
        *,
        commit: bool = True,
    ) -> Decision:
        rule_version = self.rule_versions.get_by_id(rule_version_id)
        last = (
            self.db.query(func.max(Decision.sequence))
            .filter(Decision.configuration_id == str(configuration_id))
            .scalar()
        )
        decision = Decision(
            configuration_id=str(configuration_id),
            rule_version_id=rule_version.id,
            result=DecisionResult(result),
            sequence=0 if last is None else last + 1,
        )
        self.db.add(decision)
        self.db.flush()

        for position, explanation in enumerate(explanations):
            if isinstance(explanation, dict):
                explanation = ExplanationEntry(
                    code=explanation["code"],
                    message=explanation["message"],
                    severity=ExplanationSeverity(explanation["severity"]),
                )
            self.db.add(
                DecisionExplanation(
                    decision_id=decision.id,
                    position=position,
                    code=explanation.code,
                    message=explanation.message,
                    severity=explanation.severity,
                )
            )

        if commit:
            self.db.commit()
        logger.info(
            "Decision recorded: %s (%s) for configuration %s",
            decision.id,
            decision.result.value,
            configuration_id,
        )
        return decision

    def get_audit(self, configuration_id: str) -> ConfigurationAudit:
        decisions = (
            self.db.query(Decision)
            .filter(Decision.configuration_id == str(configuration_id))
            .options(joinedload(Decision.explanations), joinedload(Decision.rule_version))
            .order_by(Decision.sequence.asc(), Decision.created_at.asc())
            .all()
        )
        if not decisions:
            raise AuditNotAvailableError(str(configuration_id))

        audited = tuple(_audited(decision) for decision in decisions)
        rejected = any(decision.result == DecisionResult.REJECT for decision in audited)
        return ConfigurationAudit(
            configuration_id=str(configuration_id),
            decisions=audited,
            overall_result=DecisionResult.REJECT if rejected else DecisionResult.ACCEPT,
            evaluated_at=audited[0].evaluated_at,
        )

    def get_decision(self, decision_id: UUID | str) -> AuditedDecision:
        try:
            key = decision_id if isinstance(decision_id, UUID) else UUID(str(decision_id))
        except ValueError:
            raise DecisionNotFoundError(str(decision_id))
        decision = self.db.get(Decision, key)
        if decision is None:
            raise DecisionNotFoundError(str(decision_id))
        return _audited(decision)

    def has_existing_decisions(self, configuration_id: str) -> bool:
        return (
            self.db.query(Decision.id)
            .filter(Decision.configuration_id == str(configuration_id))
            .first()
            is not None
        )
