from sqlalchemy import Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import mapped_column

from .base import Base, CreatedAtMixin, UUIDMixin, append_only


@append_only
class RuleVersion(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "cto_rule_versions"
    __table_args__ = (UniqueConstraint("rule_id", "version", name="uq_rule_version"),)

    rule_id = mapped_column(String(64), nullable=False, index=True)
    version = mapped_column(Integer, nullable=False)
    name = mapped_column(String(128), nullable=False)
    description = mapped_column(Text, nullable=False, default="")
    logic = mapped_column(JSON, nullable=False)
