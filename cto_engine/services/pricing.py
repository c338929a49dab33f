from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import get_settings
from ..rules.types import Component, PricingRule, RuleSetSnapshot
from .rule_set_store import RuleSetStore


@dataclass(frozen=True)
class ComponentPrice:
    type: str
    reference: str
    quantity: int
    unit_price: float
    line_total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "reference": self.reference,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class PriceSnapshot:
    components: tuple[ComponentPrice, ...]
    labor_cost: float
    subtotal: float
    margin: float
    total: float
    currency: str
    frozen_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": [line.to_dict() for line in self.components],
            "labor_cost": self.labor_cost,
            "subtotal": self.subtotal,
            "margin": self.margin,
            "total": self.total,
            "currency": self.currency,
            "frozen_at": self.frozen_at.isoformat(),
        }


class PricingCalculator:
    def __init__(self, db: Session):
        self.rule_sets = RuleSetStore(db)
        settings = get_settings()
        self.default_margin_percent = settings.DEFAULT_MARGIN_PERCENT
        self.default_labor_cost = settings.DEFAULT_LABOR_COST
        self.currency = settings.CURRENCY

    def calculate_price_snapshot(self, rule_set_id: UUID | str, components: list[Component]) -> PriceSnapshot:
        return self.price(self.rule_sets.get_snapshot(rule_set_id), components)

    def price(self, rule_set: RuleSetSnapshot, components: list[Component]) -> PriceSnapshot:
        pricing = self._index(rule_set.rules_of(PricingRule))

        lines: list[ComponentPrice] = []
        labor_cost = 0.0
        weighted_margin = 0.0
        matched_quantity = 0

        for component in components:
            rule = pricing.get(component.key) or pricing.get(component.type)
            unit_price = rule.unit_price if rule else 0.0
            component_labor = rule.labor_cost if rule else self.default_labor_cost

            lines.append(
                ComponentPrice(
                    type=component.type,
                    reference=component.reference,
                    quantity=component.quantity,
                    unit_price=unit_price,
                    line_total=unit_price * component.quantity,
                )
            )
            labor_cost += component_labor * component.quantity
            if rule:
                weighted_margin += rule.margin_percent * component.quantity
                matched_quantity += component.quantity

        subtotal = sum(line.line_total for line in lines)
        average_margin = (
            weighted_margin / matched_quantity if matched_quantity > 0 else self.default_margin_percent
        )
        margin = (subtotal + labor_cost) * average_margin / 100
        total = subtotal + labor_cost + margin

        return PriceSnapshot(
            components=tuple(lines),
            labor_cost=labor_cost,
            subtotal=subtotal,
            margin=margin,
            total=total,
            currency=self.currency,
            frozen_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _index(rules: list[PricingRule]) -> dict[str, PricingRule]:
        # Later rules with the same key replace earlier ones.
        index: dict[str, PricingRule] = {}
        for rule in rules:
            key = f"{rule.component_type}:{rule.reference}" if rule.reference else rule.component_type
            index[key] = rule
        return index
