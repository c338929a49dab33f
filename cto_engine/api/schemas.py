from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.ruleset import RuleType
from ..rules.types import ConditionOperator, RuleAction, RuleLogicType


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ComponentPayload(StrictModel):
    type: str
    reference: str
    quantity: int = 1


class ValidateRequest(StrictModel):
    asset_id: str
    product_model: str
    components: list[ComponentPayload]
    actor: str = "SYSTEM"


class RuleConditionPayload(StrictModel):
    field: str
    operator: ConditionOperator
    value: str | int | float


class RuleLogicPayload(StrictModel):
    type: RuleLogicType
    conditions: list[RuleConditionPayload] = Field(default_factory=list)
    action: RuleAction
    message: str


class CreateRuleVersionRequest(StrictModel):
    rule_id: str = Field(min_length=1, max_length=64)
    name: str
    description: str = ""
    logic: RuleLogicPayload
    actor: str = "SYSTEM"


class TypedRulePayload(StrictModel):
    rule_type: RuleType
    payload: dict[str, Any]


class CreateRuleSetRequest(StrictModel):
    name: str
    rules: list[TypedRulePayload]
    activate: bool = False
    actor: str = "SYSTEM"


class ActivateRuleSetRequest(StrictModel):
    actor: str = "SYSTEM"


class EvaluateRequest(StrictModel):
    actor: str = "SYSTEM"


class SimulationRequest(StrictModel):
    components: list[ComponentPayload]
    base_configuration_id: Optional[str] = None


class SimulationChangeRequest(StrictModel):
    configuration_id: str
    component_type: str
    new_reference: str
    quantity: int = 1
