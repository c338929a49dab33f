"""What-if evaluation of component changes.

Simulation only reads: the engine is built from a configuration reader and a
rule engine that sits on a read-only rule version reader. Nothing here adds
to or commits a session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from ..errors import ConfigurationNotFoundError, InvalidComponentListError, InvalidSimulationError
from ..models.base import utcnow
from ..rules.types import Component, parse_components
from .configuration_service import ConfigurationReader
from .rule_engine import ConditionRuleEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationExplanation:
    code: str
    message: str
    severity: str
    impacted_components: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "impacted_components": list(self.impacted_components),
        }


@dataclass(frozen=True)
class SimulationResult:
    valid: bool
    simulated_at: datetime
    rules_evaluated: int
    rules_passed: tuple[str, ...]
    rules_failed: tuple[str, ...]
    explanations: tuple[SimulationExplanation, ...]
    components: tuple[Component, ...]
    base_configuration_id: str | None = None
    ephemeral: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "simulated_at": self.simulated_at.isoformat(),
            "rules_evaluated": self.rules_evaluated,
            "rules_passed": list(self.rules_passed),
            "rules_failed": list(self.rules_failed),
            "explanations": [explanation.to_dict() for explanation in self.explanations],
            "components": [component.to_dict() for component in self.components],
            "base_configuration_id": self.base_configuration_id,
            "ephemeral": self.ephemeral,
        }


def merge_components(base: list[Component], overrides: list[Component]) -> list[Component]:
    """Replace every base component whose type appears in ``overrides``.

    Overrides sharing a (type, reference) collapse to the last one given.
    """
    replaced_types = {component.type for component in overrides}
    merged = [component for component in base if component.type not in replaced_types]

    latest: dict[tuple[str, str], Component] = {}
    for component in overrides:
        latest.pop((component.type, component.reference), None)
        latest[(component.type, component.reference)] = component
    merged.extend(latest.values())
    return merged


class SimulationEngine:
    def __init__(self, configurations: ConfigurationReader, rule_engine: ConditionRuleEngine):
        self.configurations = configurations
        self.rule_engine = rule_engine

    def _base_components(self, configuration_id: UUID | str) -> list[Component]:
        try:
            return self.configurations.components_of(configuration_id)
        except ConfigurationNotFoundError:
            raise InvalidSimulationError(f"base configuration {configuration_id} not found")

    def simulate(
        self,
        components: list[Any],
        base_configuration_id: UUID | str | None = None,
    ) -> SimulationResult:
        if not components:
            raise InvalidSimulationError("components must not be empty")
        try:
            overrides = parse_components(components)
        except InvalidComponentListError as exc:
            raise InvalidSimulationError(exc.message) from exc

        if base_configuration_id is not None:
            merged = merge_components(self._base_components(base_configuration_id), overrides)
        else:
            merged = overrides

        outcome = self.rule_engine.evaluate_configuration(merged)
        references = [component.reference for component in merged]
        explanations = tuple(
            SimulationExplanation(
                code=entry.code,
                message=entry.message,
                severity=entry.severity.value,
                impacted_components=tuple(ref for ref in references if ref in entry.message),
            )
            for entry in outcome.explanations
        )

        result = SimulationResult(
            valid=outcome.passed,
            simulated_at=utcnow(),
            rules_evaluated=len(outcome.rules),
            rules_passed=tuple(rule.rule_name for rule in outcome.rules if rule.passed),
            rules_failed=tuple(rule.rule_name for rule in outcome.rules if not rule.passed),
            explanations=explanations,
            components=tuple(merged),
            base_configuration_id=str(base_configuration_id) if base_configuration_id is not None else None,
        )
        logger.info(
            "Simulation over %s components: %s (%s/%s rules passed)",
            len(merged),
            "valid" if result.valid else "invalid",
            len(result.rules_passed),
            result.rules_evaluated,
        )
        return result

    def simulate_change(
        self,
        configuration_id: UUID | str,
        component_type: str,
        new_reference: str,
        quantity: int = 1,
    ) -> SimulationResult:
        change = {"type": component_type, "reference": new_reference, "quantity": quantity}
        return self.simulate([change], base_configuration_id=configuration_id)
