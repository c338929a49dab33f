"""Exception taxonomy for the CTO rule engine.

Rule violations are never raised: they are returned as ``CtoValidationError``
entries so every violated rule can be reported at once. The exceptions below
signal that an operation cannot proceed at all.
"""

from __future__ import annotations


class CtoError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Input errors


class InputError(CtoError):
    status_code = 400


class InvalidComponentListError(InputError):
    def __init__(self, code: str, message: str, field: str | None = None):
        super().__init__(message)
        self.code = code
        self.field = field


class InvalidRuleLogicError(InputError):
    def __init__(self, reason: str):
        super().__init__(f"Invalid rule logic: {reason}")
        self.reason = reason


class InvalidSimulationError(InputError):
    def __init__(self, reason: str):
        super().__init__(f"Invalid simulation: {reason}")
        self.reason = reason


# State precondition errors


class StatePreconditionError(CtoError):
    status_code = 409


class AssetNotSellableError(StatePreconditionError):
    status_code = 422

    def __init__(self, asset_id: str, current_status: str):
        super().__init__(f"Asset {asset_id} is not sellable (status: {current_status})")
        self.asset_id = asset_id
        self.current_status = current_status


class NoActiveRuleSetError(StatePreconditionError):
    def __init__(self):
        super().__init__("No active CTO RuleSet found")


class RuleSetNotFoundError(StatePreconditionError):
    status_code = 404

    def __init__(self, rule_set_id: str):
        super().__init__(f"RuleSet {rule_set_id} not found")
        self.rule_set_id = rule_set_id


class RuleNotFoundError(StatePreconditionError):
    status_code = 404

    def __init__(self, rule_id: str):
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class RuleVersionNotFoundError(StatePreconditionError):
    status_code = 404

    def __init__(self, rule_id: str, version: int | None = None):
        if version is None:
            super().__init__(f"Rule version {rule_id} not found")
        else:
            super().__init__(f"Rule version {rule_id}@v{version} not found")
        self.rule_id = rule_id
        self.version = version


class RuleVersionConflictError(StatePreconditionError):
    def __init__(self, rule_id: str, attempts: int):
        super().__init__(
            f"Could not allocate a new version for rule {rule_id} after {attempts} attempts"
        )
        self.rule_id = rule_id
        self.attempts = attempts


class ConfigurationNotFoundError(StatePreconditionError):
    status_code = 404

    def __init__(self, configuration_id: str):
        super().__init__(f"Configuration {configuration_id} not found")
        self.configuration_id = configuration_id


class ConfigurationAlreadyEvaluatedError(StatePreconditionError):
    def __init__(self, configuration_id: str):
        super().__init__(
            f"Configuration {configuration_id} already has recorded decisions and is never re-evaluated"
        )
        self.configuration_id = configuration_id


class NoConditionRulesError(StatePreconditionError):
    def __init__(self, configuration_id: str):
        super().__init__(f"No rule versions exist; nothing to evaluate for configuration {configuration_id}")
        self.configuration_id = configuration_id


class DecisionNotFoundError(StatePreconditionError):
    status_code = 404

    def __init__(self, decision_id: str):
        super().__init__(f"Decision {decision_id} not found")
        self.decision_id = decision_id


# Audit errors


class AuditNotAvailableError(CtoError):
    status_code = 404

    def __init__(self, configuration_id: str):
        super().__init__(f"No audit available for configuration {configuration_id}")
        self.configuration_id = configuration_id


# Upstream errors


class AssetServiceError(CtoError):
    status_code = 502

    def __init__(self, status_code: int | None, details: str):
        super().__init__(f"Asset Service error ({status_code}): {details}")
        self.upstream_status_code = status_code
        self.details = details


class ImmutableRecordError(CtoError):
    def __init__(self, entity_type: str, operation: str):
        super().__init__(f"{entity_type} records are append-only; {operation} is not allowed")
        self.entity_type = entity_type
        self.operation = operation
