"""Evaluation of generic, versioned condition rules against a component list.

A condition ``{field: "component.<property>", operator, value}`` is satisfied
for positive operators when at least one component matches, and for
NOT_EQUALS only when no component matches. The first unsatisfied condition
fails the rule and its message template is rendered as the explanation.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Protocol

from .types import (
    Component,
    ConditionOperator,
    EvaluatedRule,
    EvaluationOutcome,
    ExplanationEntry,
    RuleCondition,
    RuleLogic,
)

COMPONENT_ENTITY = "component"


class VersionedRule(Protocol):
    id: Any
    rule_id: str
    version: int
    name: str
    logic: Any


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def compare_values(actual: Any, operator: ConditionOperator, expected: Any) -> bool:
    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.NOT_EQUALS:
        return actual != expected
    if operator == ConditionOperator.CONTAINS:
        if actual is None:
            return False
        return str(expected) in str(actual)
    left, right = _as_number(actual), _as_number(expected)
    if left is None or right is None:
        return False
    if operator == ConditionOperator.GREATER_THAN:
        return left > right
    if operator == ConditionOperator.LESS_THAN:
        return left < right
    return False


def condition_satisfied(condition: RuleCondition, components: Iterable[Component]) -> bool:
    entity, _, prop = condition.field.partition(".")
    if not prop or entity != COMPONENT_ENTITY:
        # Not evaluable against components; skipped.
        return True

    if condition.operator == ConditionOperator.NOT_EQUALS:
        # Universal: no component may equal the value.
        return not any(
            compare_values(component.to_dict().get(prop), ConditionOperator.EQUALS, condition.value)
            for component in components
        )

    return any(
        compare_values(component.to_dict().get(prop), condition.operator, condition.value)
        for component in components
    )


def render_explanation(logic: RuleLogic, failed: RuleCondition, components: Iterable[Component]) -> str:
    replacements = {
        "{field}": failed.field,
        "{value}": str(failed.value),
        "{operator}": failed.operator.value,
        "{components}": ", ".join(c.reference for c in components),
    }
    message = logic.message
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message


def explanation_code(rule_id: str) -> str:
    return f"RULE_{rule_id.upper()}_FAILED"


def _logic_of(rule: VersionedRule) -> RuleLogic:
    if isinstance(rule.logic, RuleLogic):
        return rule.logic
    return RuleLogic.from_dict(rule.logic)


def evaluate_rule(rule: VersionedRule, components: list[Component]) -> EvaluatedRule:
    logic = _logic_of(rule)
    passed = True
    explanation = None
    for condition in logic.conditions:
        if not condition_satisfied(condition, components):
            passed = False
            explanation = render_explanation(logic, condition, components)
            break

    return EvaluatedRule(
        rule_id=rule.rule_id,
        rule_name=rule.name,
        rule_version=rule.version,
        rule_version_id=str(rule.id),
        logic=logic,
        passed=passed,
        explanation=explanation,
    )


def evaluate_rules(rules: Iterable[VersionedRule], components: list[Component]) -> EvaluationOutcome:
    evaluated: list[EvaluatedRule] = []
    explanations: list[ExplanationEntry] = []
    for rule in rules:
        result = evaluate_rule(rule, components)
        evaluated.append(result)
        if not result.passed:
            explanations.append(
                ExplanationEntry(
                    code=explanation_code(result.rule_id),
                    message=result.explanation or result.logic.message,
                    severity=result.logic.severity,
                )
            )

    return EvaluationOutcome(
        rules=tuple(evaluated),
        passed=all(rule.passed for rule in evaluated),
        explanations=tuple(explanations),
    )
