from __future__ import annotations

import math
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import get_settings
from ..rules.types import Component, LeadTimeRule, RuleSetSnapshot
from .rule_set_store import RuleSetStore

MINUTES_PER_HOUR = 60


class LeadTimeCalculator:
    def __init__(self, db: Session):
        self.rule_sets = RuleSetStore(db)
        settings = get_settings()
        self.default_assembly_minutes = settings.DEFAULT_ASSEMBLY_MINUTES
        self.default_qa_minutes = settings.DEFAULT_QA_MINUTES
        self.working_hours_per_day = settings.WORKING_HOURS_PER_DAY

    def calculate_lead_time(self, rule_set_id: UUID | str, components: list[Component]) -> int:
        return self.lead_time_days(self.rule_sets.get_snapshot(rule_set_id), components)

    def lead_time_days(self, rule_set: RuleSetSnapshot, components: list[Component]) -> int:
        rules = rule_set.rules_of(LeadTimeRule)

        assembly_minutes = 0
        for component in components:
            rule = next((r for r in rules if r.component_type == component.type), None)
            if rule:
                assembly_minutes += rule.assembly_minutes * component.quantity
            else:
                assembly_minutes += self.default_assembly_minutes

        qa_rule = next((r for r in rules if not r.component_type), None)
        qa_minutes = qa_rule.qa_minutes if qa_rule else self.default_qa_minutes

        total_hours = (assembly_minutes + qa_minutes) / MINUTES_PER_HOUR
        return max(1, math.ceil(total_hours / self.working_hours_per_day))
