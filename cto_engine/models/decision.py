import enum
from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import mapped_column, relationship

from .base import Base, CreatedAtMixin, UUIDMixin, append_only


class DecisionResult(str, enum.Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class ExplanationSeverity(str, enum.Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@append_only
class Decision(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "cto_decisions"

    configuration_id = mapped_column(String(64), nullable=False, index=True)
    rule_version_id = mapped_column(ForeignKey("cto_rule_versions.id"), nullable=False)
    result = mapped_column(Enum(DecisionResult, name="ctodecisionresult"), nullable=False)
    # Insertion order within one configuration, starting at 0.
    sequence = mapped_column(Integer, nullable=False)

    rule_version = relationship("RuleVersion")
    explanations = relationship(
        "DecisionExplanation",
        back_populates="decision",
        order_by="DecisionExplanation.position",
    )


@append_only
class DecisionExplanation(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "cto_decision_explanations"

    decision_id = mapped_column(ForeignKey("cto_decisions.id"), nullable=False, index=True)
    position = mapped_column(Integer, nullable=False)
    code = mapped_column(String(128), nullable=False)
    message = mapped_column(Text, nullable=False)
    severity = mapped_column(Enum(ExplanationSeverity, name="ctoexplanationseverity"), nullable=False)

    decision = relationship("Decision", back_populates="explanations")
