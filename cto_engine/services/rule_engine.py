from __future__ import annotations

import logging
from typing import Any

from ..rules.condition_engine import evaluate_rules
from ..rules.types import EvaluationOutcome, parse_components
from .rule_version_store import RuleVersionReader

logger = logging.getLogger(__name__)


class ConditionRuleEngine:
    """Evaluates the latest version of every condition rule. Read-only."""

    def __init__(self, rule_versions: RuleVersionReader):
        self.rule_versions = rule_versions

    def evaluate_configuration(self, components: list[Any]) -> EvaluationOutcome:
        parsed = parse_components(components)
        rules = self.rule_versions.all_latest_per_rule()
        outcome = evaluate_rules(rules, parsed)
        logger.debug(
            "Evaluated %s rules against %s components: %s",
            len(outcome.rules),
            len(parsed),
            "passed" if outcome.passed else "failed",
        )
        return outcome
