from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from ..errors import AssetNotSellableError, InvalidComponentListError
from ..rules.typed_evaluators import TypedRuleEvaluator
from ..rules.types import Component, CtoValidationError, RuleSetSnapshot, parse_components
from .asset_client import SELLABLE_STATUS, AssetServiceClient, HttpAssetServiceClient
from .rule_set_store import RuleSetStore


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    errors: tuple[CtoValidationError, ...] = field(default_factory=tuple)
    rule_set: RuleSetSnapshot | None = None
    components: tuple[Component, ...] = field(default_factory=tuple)


def check_request(asset_id: str | None, product_model: str | None, components: list[Any] | None) -> list[Component]:
    if not asset_id:
        raise InvalidComponentListError("ASSET_ID_REQUIRED", "asset_id is required", "asset_id")
    if not product_model:
        raise InvalidComponentListError("PRODUCT_MODEL_REQUIRED", "product_model is required", "product_model")
    if not components:
        raise InvalidComponentListError("COMPONENTS_REQUIRED", "components array is required", "components")
    return parse_components(components)


class CtoValidationService:
    """First-pass validation: sellable asset, active rule set, typed rules."""

    def __init__(self, db: Session, asset_client: AssetServiceClient | None = None):
        self.rule_sets = RuleSetStore(db)
        self.evaluator = TypedRuleEvaluator()
        self.asset_client = asset_client or HttpAssetServiceClient()

    def validate(self, asset_id: str, product_model: str, components: list[Any]) -> ValidationOutcome:
        parsed = check_request(asset_id, product_model, components)

        # AssetServiceError propagates: an unreachable asset service never validates.
        asset = self.asset_client.get_asset(asset_id)
        status = asset.get("status")
        if status != SELLABLE_STATUS:
            raise AssetNotSellableError(asset_id, str(status))

        rule_set = self.rule_sets.get_active()
        errors = self.evaluator.evaluate_validation_rules(rule_set, product_model, parsed)
        return ValidationOutcome(
            valid=not errors,
            errors=tuple(errors),
            rule_set=rule_set,
            components=tuple(parsed),
        )

    def generate_assembly_order(self, asset_id: str, components: list[Component]) -> dict[str, Any]:
        return {"asset_id": asset_id, "tasks": self.evaluator.generate_assembly_tasks(components)}
