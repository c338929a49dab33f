from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..errors import ConfigurationAlreadyEvaluatedError, ConfigurationNotFoundError, NoConditionRulesError
from ..models.audit import AuditAction
from ..models.configuration import CtoConfiguration
from ..models.decision import Decision, DecisionResult
from ..rules.types import Component, CtoValidationError, parse_components
from .asset_client import AssetServiceClient
from .audit_logger import create_audit_event
from .decision_audit import DecisionAuditStore
from .lead_time import LeadTimeCalculator
from .pricing import PricingCalculator
from .rule_engine import ConditionRuleEngine
from .rule_version_store import RuleVersionReader
from .validation import CtoValidationService

logger = logging.getLogger(__name__)


class ConfigurationReader:
    """Read-only access to persisted configurations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, configuration_id: UUID | str) -> CtoConfiguration:
        try:
            key = configuration_id if isinstance(configuration_id, UUID) else UUID(str(configuration_id))
        except ValueError:
            raise ConfigurationNotFoundError(str(configuration_id))
        configuration = self.db.get(CtoConfiguration, key)
        if configuration is None:
            raise ConfigurationNotFoundError(str(configuration_id))
        return configuration

    def components_of(self, configuration_id: UUID | str) -> list[Component]:
        return parse_components(self.get(configuration_id).components)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[CtoValidationError, ...] = field(default_factory=tuple)
    configuration_id: str | None = None
    price_snapshot: dict[str, Any] | None = None
    lead_time_days: int | None = None
    assembly_order: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}
        if self.valid:
            data.update(
                {
                    "configuration_id": self.configuration_id,
                    "price_snapshot": self.price_snapshot,
                    "lead_time_days": self.lead_time_days,
                    "assembly_order": self.assembly_order,
                }
            )
        return data


@dataclass(frozen=True)
class RecordedEvaluation:
    configuration_id: str
    decisions: tuple[Decision, ...]
    overall_result: DecisionResult


class ConfigurationService:
    def __init__(self, db: Session, asset_client: AssetServiceClient | None = None):
        self.db = db
        self.validation = CtoValidationService(db, asset_client)
        self.pricing = PricingCalculator(db)
        self.lead_time = LeadTimeCalculator(db)
        self.reader = ConfigurationReader(db)
        self.decisions = DecisionAuditStore(db)
        self.rule_engine = ConditionRuleEngine(RuleVersionReader(db))

    def validate_and_freeze(
        self,
        asset_id: str,
        product_model: str,
        components: list[Any],
        *,
        actor: str = "SYSTEM",
        request=None,
    ) -> ValidationResult:
        outcome = self.validation.validate(asset_id, product_model, components)

        if not outcome.valid:
            create_audit_event(
                self.db,
                actor=actor,
                action=AuditAction.CONFIGURATION_REJECTED,
                entity_type="Asset",
                entity_id=asset_id,
                details={"errors": [e.to_dict() for e in outcome.errors]},
                request=request,
            )
            logger.info("Configuration rejected for asset %s: %s errors", asset_id, len(outcome.errors))
            return ValidationResult(valid=False, errors=outcome.errors)

        parsed = list(outcome.components)
        price_snapshot = self.pricing.price(outcome.rule_set, parsed)
        lead_time_days = self.lead_time.lead_time_days(outcome.rule_set, parsed)

        configuration = CtoConfiguration(
            asset_id=asset_id,
            product_model=product_model,
            components=[c.to_dict() for c in parsed],
            price_snapshot=price_snapshot.to_dict(),
            lead_time_days=lead_time_days,
            rule_set_id=UUID(outcome.rule_set.id),
            validated=True,
        )
        self.db.add(configuration)
        self.db.flush()
        create_audit_event(
            self.db,
            actor=actor,
            action=AuditAction.CONFIGURATION_VALIDATED,
            entity_type="CtoConfiguration",
            entity_id=str(configuration.id),
            details={
                "asset_id": asset_id,
                "price_total": price_snapshot.total,
                "lead_time_days": lead_time_days,
                "rule_set_id": outcome.rule_set.id,
            },
            request=request,
            commit=False,
        )
        self.db.commit()
        logger.info(
            "Configuration %s validated for asset %s (total %.2f %s, %s days)",
            configuration.id,
            asset_id,
            price_snapshot.total,
            price_snapshot.currency,
            lead_time_days,
        )

        return ValidationResult(
            valid=True,
            configuration_id=str(configuration.id),
            price_snapshot=price_snapshot.to_dict(),
            lead_time_days=lead_time_days,
            assembly_order=self.validation.generate_assembly_order(asset_id, parsed),
        )

    def get_configuration(self, configuration_id: UUID | str) -> dict[str, Any]:
        configuration = self.reader.get(configuration_id)
        data = serialize_configuration(configuration)
        data["assembly_order"] = self.validation.generate_assembly_order(
            configuration.asset_id, parse_components(configuration.components)
        )
        return data

    def get_frozen_price(self, configuration_id: UUID | str) -> dict[str, Any]:
        configuration = self.reader.get(configuration_id)
        return {
            "configuration_id": str(configuration.id),
            "price_snapshot": configuration.price_snapshot,
            "frozen_at": configuration.price_snapshot.get("frozen_at"),
        }

    def evaluate_and_record(
        self,
        configuration_id: UUID | str,
        *,
        actor: str = "SYSTEM",
        request=None,
    ) -> RecordedEvaluation:
        configuration = self.reader.get(configuration_id)
        key = str(configuration.id)
        if self.decisions.has_existing_decisions(key):
            raise ConfigurationAlreadyEvaluatedError(key)

        evaluation = self.rule_engine.evaluate_configuration(parse_components(configuration.components))
        if not evaluation.rules:
            raise NoConditionRulesError(key)

        explanations_by_rule = {}
        for rule, explanation in zip(
            (r for r in evaluation.rules if not r.passed), evaluation.explanations
        ):
            explanations_by_rule[rule.rule_version_id] = explanation

        decisions = []
        for rule in evaluation.rules:
            result = DecisionResult.ACCEPT if rule.passed else DecisionResult.REJECT
            explanations = [] if rule.passed else [explanations_by_rule[rule.rule_version_id]]
            decisions.append(
                self.decisions.record_decision(key, rule.rule_version_id, result, explanations, commit=False)
            )

        overall = DecisionResult.ACCEPT if evaluation.passed else DecisionResult.REJECT
        create_audit_event(
            self.db,
            actor=actor,
            action=AuditAction.DECISIONS_RECORDED,
            entity_type="CtoConfiguration",
            entity_id=key,
            details={"decisions": len(decisions), "overall_result": overall.value},
            request=request,
            commit=False,
        )
        self.db.commit()
        return RecordedEvaluation(configuration_id=key, decisions=tuple(decisions), overall_result=overall)


def serialize_configuration(configuration: CtoConfiguration) -> dict[str, Any]:
    return {
        "id": str(configuration.id),
        "asset_id": configuration.asset_id,
        "product_model": configuration.product_model,
        "components": configuration.components,
        "price_snapshot": configuration.price_snapshot,
        "lead_time_days": configuration.lead_time_days,
        "rule_set_id": str(configuration.rule_set_id),
        "validated": configuration.validated,
        "created_at": configuration.created_at.isoformat(),
    }
