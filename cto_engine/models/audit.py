import enum
from sqlalchemy import DateTime, Enum, String, JSON
from sqlalchemy.orm import mapped_column
from .base import Base, UUIDMixin, append_only


class AuditAction(str, enum.Enum):
    RULE_VERSION_CREATED = "RULE_VERSION_CREATED"
    RULE_SET_CREATED = "RULE_SET_CREATED"
    RULE_SET_ACTIVATED = "RULE_SET_ACTIVATED"
    CONFIGURATION_VALIDATED = "CONFIGURATION_VALIDATED"
    CONFIGURATION_REJECTED = "CONFIGURATION_REJECTED"
    DECISIONS_RECORDED = "DECISIONS_RECORDED"


@append_only
class AuditEvent(Base, UUIDMixin):
    __tablename__ = "audit_events"

    actor = mapped_column(String(64), nullable=False)
    action = mapped_column(Enum(AuditAction, name="auditaction"), nullable=False)
    entity_type = mapped_column(String(64), nullable=False)
    entity_id = mapped_column(String(64), nullable=False)
    request_id = mapped_column(String(64), nullable=False)
    ip_address = mapped_column(String(64), nullable=False)
    details = mapped_column(JSON, nullable=True)
    timestamp = mapped_column(DateTime(timezone=True), nullable=False)
