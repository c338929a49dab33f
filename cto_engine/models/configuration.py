from sqlalchemy import Boolean, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import mapped_column

from .base import Base, CreatedAtMixin, UUIDMixin, append_only


@append_only
class CtoConfiguration(Base, UUIDMixin, CreatedAtMixin):
    """A validated configuration with its price snapshot, written once."""

    __tablename__ = "cto_configurations"

    asset_id = mapped_column(String(64), nullable=False, index=True)
    product_model = mapped_column(String(64), nullable=False)
    components = mapped_column(JSON, nullable=False)
    price_snapshot = mapped_column(JSON, nullable=False)
    lead_time_days = mapped_column(Integer, nullable=False)
    rule_set_id = mapped_column(ForeignKey("cto_rule_sets.id"), nullable=False)
    validated = mapped_column(Boolean, nullable=False, default=True)
