import enum
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import mapped_column, relationship

from .base import Base, CreatedAtMixin, UUIDMixin, append_only, utcnow


class RuleType(str, enum.Enum):
    COMPATIBILITY = "COMPATIBILITY"
    QUANTITY = "QUANTITY"
    DEPENDENCY = "DEPENDENCY"
    EXCLUSION = "EXCLUSION"
    PRICING = "PRICING"
    LEAD_TIME = "LEAD_TIME"


@append_only
class RuleSet(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "cto_rule_sets"

    version = mapped_column(Integer, unique=True, nullable=False)
    name = mapped_column(String(128), nullable=False)

    rules = relationship("TypedRuleRow", back_populates="rule_set", order_by="TypedRuleRow.position")


@append_only
class TypedRuleRow(Base, UUIDMixin):
    __tablename__ = "cto_rules"

    rule_set_id = mapped_column(ForeignKey("cto_rule_sets.id"), nullable=False, index=True)
    position = mapped_column(Integer, nullable=False)
    rule_type = mapped_column(Enum(RuleType, name="ctoruletype"), nullable=False)
    payload = mapped_column(JSON, nullable=False)

    rule_set = relationship("RuleSet", back_populates="rules")


class ActiveRuleSetPointer(Base):
    """Single-row pointer naming the active rule set."""

    __tablename__ = "cto_active_rule_set"

    key = mapped_column(String(32), primary_key=True, default="cto")
    rule_set_id = mapped_column(ForeignKey("cto_rule_sets.id"), nullable=False)
    updated_at = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    rule_set = relationship("RuleSet")
