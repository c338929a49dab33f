from .base import Base
from .rule_version import RuleVersion
from .ruleset import RuleSet, TypedRuleRow, ActiveRuleSetPointer, RuleType
from .decision import Decision, DecisionExplanation, DecisionResult, ExplanationSeverity
from .configuration import CtoConfiguration
from .audit import AuditEvent, AuditAction

__all__ = [
    "Base",
    "RuleVersion",
    "RuleSet",
    "TypedRuleRow",
    "ActiveRuleSetPointer",
    "RuleType",
    "Decision",
    "DecisionExplanation",
    "DecisionResult",
    "ExplanationSeverity",
    "CtoConfiguration",
    "AuditEvent",
    "AuditAction",
]
