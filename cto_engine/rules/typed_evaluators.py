from __future__ import annotations

from typing import Iterable

from .types import (
    CompatibilityRule,
    Component,
    CtoValidationError,
    DependencyRule,
    ExclusionRule,
    QuantityRule,
    RuleSetSnapshot,
)

ASSEMBLY_TYPE_ORDER = ("CPU", "RAM", "SSD", "HDD", "NIC", "GPU", "RAID")


class TypedRuleEvaluator:
    def evaluate_validation_rules(
        self,
        rule_set: RuleSetSnapshot,
        product_model: str,
        components: list[Component],
    ) -> list[CtoValidationError]:
        errors: list[CtoValidationError] = []

        for rule in rule_set.rules_of(CompatibilityRule):
            errors.extend(self.evaluate_compatibility(rule, product_model, components))
        for rule in rule_set.rules_of(QuantityRule):
            errors.extend(self.evaluate_quantity(rule, product_model, components))
        for rule in rule_set.rules_of(DependencyRule):
            errors.extend(self.evaluate_dependency(rule, components))
        for rule in rule_set.rules_of(ExclusionRule):
            errors.extend(self.evaluate_exclusion(rule, components))

        return errors

    def evaluate_compatibility(
        self, rule: CompatibilityRule, product_model: str, components: Iterable[Component]
    ) -> list[CtoValidationError]:
        if rule.product_model != product_model:
            return []
        for component in components:
            if component.type != rule.component_type:
                continue
            if component.reference not in rule.allowed_references:
                return [
                    CtoValidationError(
                        code="COMPATIBILITY_ERROR",
                        message=f"Component {component.reference} is not compatible with {product_model}",
                        component=component.key,
                        rule=rule.rule_id,
                    )
                ]
        return []

    def evaluate_quantity(
        self, rule: QuantityRule, product_model: str, components: Iterable[Component]
    ) -> list[CtoValidationError]:
        if rule.product_model != product_model:
            return []
        total = sum(c.quantity for c in components if c.type == rule.component_type)
        if total < rule.min_quantity:
            message = f"{rule.component_type} quantity {total} is below minimum {rule.min_quantity}"
        elif total > rule.max_quantity:
            message = f"{rule.component_type} quantity {total} exceeds maximum {rule.max_quantity}"
        else:
            return []
        return [CtoValidationError(code="QUANTITY_ERROR", message=message, rule=rule.rule_id)]

    def evaluate_dependency(
        self, rule: DependencyRule, components: list[Component]
    ) -> list[CtoValidationError]:
        triggered = any(
            c.type == rule.if_component_type and c.reference == rule.if_component_reference
            for c in components
        )
        if not triggered:
            return []
        satisfied = any(
            c.type == rule.requires_component_type and c.reference in rule.requires_component_references
            for c in components
        )
        if satisfied:
            return []
        alternatives = " or ".join(rule.requires_component_references)
        return [
            CtoValidationError(
                code="DEPENDENCY_ERROR",
                message=f"{rule.if_component_reference} requires {rule.requires_component_type} ({alternatives})",
                component=f"{rule.if_component_type}:{rule.if_component_reference}",
                rule=rule.rule_id,
            )
        ]

    def evaluate_exclusion(
        self, rule: ExclusionRule, components: Iterable[Component]
    ) -> list[CtoValidationError]:
        present = {c.reference for c in components if c.type == rule.component_type}
        for group in rule.excluded_references:
            matches = [reference for reference in group if reference in present]
            if len(matches) > 1:
                return [
                    CtoValidationError(
                        code="EXCLUSION_ERROR",
                        message=f"{rule.component_type}: {' and '.join(matches)} are mutually exclusive",
                        rule=rule.rule_id,
                    )
                ]
        return []

    def generate_assembly_tasks(self, components: Iterable[Component]) -> list[str]:
        present_types = {c.type for c in components}
        tasks = [f"INSTALL_{component_type}" for component_type in ASSEMBLY_TYPE_ORDER if component_type in present_types]
        tasks.append("RUN_QA")
        return tasks
