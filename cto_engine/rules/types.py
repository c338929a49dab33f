from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from ..errors import InvalidComponentListError, InvalidRuleLogicError
from ..models.decision import ExplanationSeverity
from ..models.ruleset import RuleType


@dataclass(frozen=True)
class Component:
    type: str
    reference: str
    quantity: int

    @property
    def key(self) -> str:
        return f"{self.type}:{self.reference}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Component":
        component_type = data.get("type")
        reference = data.get("reference")
        quantity = data.get("quantity", 1)
        if not component_type:
            raise InvalidComponentListError("COMPONENT_TYPE_REQUIRED", "component type is required", "type")
        if not reference:
            raise InvalidComponentListError(
                "COMPONENT_REFERENCE_REQUIRED", "component reference is required", "reference"
            )
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidComponentListError(
                "COMPONENT_QUANTITY_INVALID",
                f"quantity for {component_type}:{reference} must be a positive integer",
                "quantity",
            )
        return cls(type=str(component_type), reference=str(reference), quantity=quantity)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "reference": self.reference, "quantity": self.quantity}


def parse_components(items: list[Any]) -> list[Component]:
    components: list[Component] = []
    for item in items:
        if isinstance(item, Component):
            components.append(item)
        elif isinstance(item, dict):
            components.append(Component.from_dict(item))
        else:
            components.append(Component.from_dict(item.model_dump()))
    return components


# Generic condition rules


class ConditionOperator(str, enum.Enum):
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"


class RuleAction(str, enum.Enum):
    BLOCK = "BLOCK"
    WARN = "WARN"


class RuleLogicType(str, enum.Enum):
    COMPATIBILITY = "COMPATIBILITY"
    DEPENDENCY = "DEPENDENCY"
    EXCLUSION = "EXCLUSION"
    QUANTITY = "QUANTITY"
    POWER = "POWER"
    THERMAL = "THERMAL"


@dataclass(frozen=True)
class RuleCondition:
    field: str
    operator: ConditionOperator
    value: str | int | float

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}


@dataclass(frozen=True)
class RuleLogic:
    type: RuleLogicType
    conditions: tuple[RuleCondition, ...]
    action: RuleAction
    message: str

    @property
    def severity(self) -> ExplanationSeverity:
        if self.action == RuleAction.BLOCK:
            return ExplanationSeverity.ERROR
        return ExplanationSeverity.WARNING

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleLogic":
        if not isinstance(data, dict):
            raise InvalidRuleLogicError("logic must be an object")
        try:
            logic_type = RuleLogicType(data.get("type"))
        except ValueError:
            raise InvalidRuleLogicError(f"unknown logic type {data.get('type')!r}")
        try:
            action = RuleAction(data.get("action"))
        except ValueError:
            raise InvalidRuleLogicError(f"action must be BLOCK or WARN, got {data.get('action')!r}")
        message = data.get("message")
        if not isinstance(message, str):
            raise InvalidRuleLogicError("message template is required")

        raw_conditions = data.get("conditions") or []
        if not isinstance(raw_conditions, list):
            raise InvalidRuleLogicError("conditions must be a list")
        conditions = []
        for index, raw in enumerate(raw_conditions):
            if not isinstance(raw, dict) or not raw.get("field"):
                raise InvalidRuleLogicError(f"condition {index} requires a field")
            try:
                operator = ConditionOperator(raw.get("operator"))
            except ValueError:
                raise InvalidRuleLogicError(f"condition {index} has unknown operator {raw.get('operator')!r}")
            if "value" not in raw or raw["value"] is None:
                raise InvalidRuleLogicError(f"condition {index} requires a value")
            conditions.append(RuleCondition(field=str(raw["field"]), operator=operator, value=raw["value"]))

        return cls(type=logic_type, conditions=tuple(conditions), action=action, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "conditions": [condition.to_dict() for condition in self.conditions],
            "action": self.action.value,
            "message": self.message,
        }


# Typed rule payloads


@dataclass(frozen=True)
class CompatibilityRule:
    rule_id: str
    product_model: str
    component_type: str
    allowed_references: tuple[str, ...]


@dataclass(frozen=True)
class QuantityRule:
    rule_id: str
    product_model: str
    component_type: str
    min_quantity: int
    max_quantity: int


@dataclass(frozen=True)
class DependencyRule:
    rule_id: str
    if_component_type: str
    if_component_reference: str
    requires_component_type: str
    requires_component_references: tuple[str, ...]


@dataclass(frozen=True)
class ExclusionRule:
    rule_id: str
    component_type: str
    excluded_references: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class PricingRule:
    rule_id: str
    component_type: str
    unit_price: float
    labor_cost: float
    margin_percent: float
    reference: str | None = None


@dataclass(frozen=True)
class LeadTimeRule:
    rule_id: str
    assembly_minutes: int
    qa_minutes: int
    component_type: str | None = None


TypedRule = Union[CompatibilityRule, QuantityRule, DependencyRule, ExclusionRule, PricingRule, LeadTimeRule]


def _require(payload: dict[str, Any], key: str, rule_type: RuleType) -> Any:
    if key not in payload or payload[key] is None:
        raise InvalidRuleLogicError(f"{rule_type.value} rule payload requires {key}")
    return payload[key]


def _text(payload: dict[str, Any], key: str, rule_type: RuleType) -> str:
    value = _require(payload, key, rule_type)
    if not isinstance(value, str) or not value:
        raise InvalidRuleLogicError(f"{rule_type.value} rule {key} must be a non-empty string")
    return value


def _optional_text(payload: dict[str, Any], key: str, rule_type: RuleType) -> str | None:
    if payload.get(key) in (None, ""):
        return None
    return _text(payload, key, rule_type)


def _references(value: Any, key: str, rule_type: RuleType) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) and item for item in value):
        raise InvalidRuleLogicError(f"{rule_type.value} rule {key} must be a list of references")
    return tuple(value)


def _number(value: Any, key: str, rule_type: RuleType) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidRuleLogicError(f"{rule_type.value} rule {key} must be a non-negative number")
    return float(value)


def _whole(value: Any, key: str, rule_type: RuleType) -> int:
    number = _number(value, key, rule_type)
    if not number.is_integer():
        raise InvalidRuleLogicError(f"{rule_type.value} rule {key} must be a whole number")
    return int(number)


def parse_typed_rule(rule_id: str, rule_type: RuleType | str, payload: dict[str, Any]) -> TypedRule:
    rule_type = RuleType(rule_type)
    if not isinstance(payload, dict):
        raise InvalidRuleLogicError(f"{rule_type.value} rule payload must be an object")

    if rule_type == RuleType.COMPATIBILITY:
        return CompatibilityRule(
            rule_id=rule_id,
            product_model=_text(payload, "product_model", rule_type),
            component_type=_text(payload, "component_type", rule_type),
            allowed_references=_references(
                _require(payload, "allowed_references", rule_type), "allowed_references", rule_type
            ),
        )
    if rule_type == RuleType.QUANTITY:
        min_quantity = _whole(_require(payload, "min_quantity", rule_type), "min_quantity", rule_type)
        max_quantity = _whole(_require(payload, "max_quantity", rule_type), "max_quantity", rule_type)
        if min_quantity > max_quantity:
            raise InvalidRuleLogicError("QUANTITY rule min_quantity exceeds max_quantity")
        return QuantityRule(
            rule_id=rule_id,
            product_model=_text(payload, "product_model", rule_type),
            component_type=_text(payload, "component_type", rule_type),
            min_quantity=min_quantity,
            max_quantity=max_quantity,
        )
    if rule_type == RuleType.DEPENDENCY:
        return DependencyRule(
            rule_id=rule_id,
            if_component_type=_text(payload, "if_component_type", rule_type),
            if_component_reference=_text(payload, "if_component_reference", rule_type),
            requires_component_type=_text(payload, "requires_component_type", rule_type),
            requires_component_references=_references(
                _require(payload, "requires_component_references", rule_type),
                "requires_component_references",
                rule_type,
            ),
        )
    if rule_type == RuleType.EXCLUSION:
        groups = _require(payload, "excluded_references", rule_type)
        if not isinstance(groups, list):
            raise InvalidRuleLogicError("EXCLUSION rule excluded_references must be a list of groups")
        return ExclusionRule(
            rule_id=rule_id,
            component_type=_text(payload, "component_type", rule_type),
            excluded_references=tuple(
                _references(group, "excluded_references", rule_type) for group in groups
            ),
        )
    if rule_type == RuleType.PRICING:
        return PricingRule(
            rule_id=rule_id,
            component_type=_text(payload, "component_type", rule_type),
            unit_price=_number(_require(payload, "unit_price", rule_type), "unit_price", rule_type),
            labor_cost=_number(_require(payload, "labor_cost", rule_type), "labor_cost", rule_type),
            margin_percent=_number(
                _require(payload, "margin_percent", rule_type), "margin_percent", rule_type
            ),
            reference=_optional_text(payload, "reference", rule_type),
        )
    # Missing minute counts default to 0; an explicit null is invalid.
    return LeadTimeRule(
        rule_id=rule_id,
        assembly_minutes=_whole(payload.get("assembly_minutes", 0), "assembly_minutes", rule_type),
        qa_minutes=_whole(payload.get("qa_minutes", 0), "qa_minutes", rule_type),
        component_type=_optional_text(payload, "component_type", rule_type),
    )


@dataclass(frozen=True)
class RuleSetSnapshot:
    """Immutable view of one rule set, read in a single query."""

    id: str
    version: int
    name: str
    created_at: datetime
    rules: tuple[TypedRule, ...]

    def rules_of(self, kind: type) -> list:
        return [rule for rule in self.rules if isinstance(rule, kind)]


# Evaluation results


@dataclass(frozen=True)
class CtoValidationError:
    code: str
    message: str
    component: str | None = None
    rule: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.component is not None:
            data["component"] = self.component
        if self.rule is not None:
            data["rule"] = self.rule
        return data


@dataclass(frozen=True)
class ExplanationEntry:
    code: str
    message: str
    severity: ExplanationSeverity

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "severity": self.severity.value}


@dataclass(frozen=True)
class EvaluatedRule:
    rule_id: str
    rule_name: str
    rule_version: int
    rule_version_id: str
    logic: RuleLogic
    passed: bool
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_version": self.rule_version,
            "rule_version_id": self.rule_version_id,
            "logic": self.logic.to_dict(),
            "passed": self.passed,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class EvaluationOutcome:
    rules: tuple[EvaluatedRule, ...]
    passed: bool
    explanations: tuple[ExplanationEntry, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "passed": self.passed,
            "explanations": [explanation.to_dict() for explanation in self.explanations],
        }
