"""Create CTO rule engine tables.

Revision ID: 20261001_create_cto_tables
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql


revision = "20261001_create_cto_tables"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_type(bind):
    if bind.dialect.name == "postgresql":
        return postgresql.UUID(as_uuid=True)
    return sa.String(36)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())

    if "cto_rule_versions" not in tables:
        op.create_table(
            "cto_rule_versions",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("rule_id", sa.String(length=64), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("logic", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("rule_id", "version", name="uq_rule_version"),
        )
        op.create_index("ix_cto_rule_versions_rule_id", "cto_rule_versions", ["rule_id"])

    if "cto_rule_sets" not in tables:
        op.create_table(
            "cto_rule_sets",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("version", sa.Integer(), nullable=False, unique=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )

    if "cto_rules" not in tables:
        op.create_table(
            "cto_rules",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("rule_set_id", _uuid_type(bind), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column(
                "rule_type",
                sa.Enum(
                    "COMPATIBILITY",
                    "QUANTITY",
                    "DEPENDENCY",
                    "EXCLUSION",
                    "PRICING",
                    "LEAD_TIME",
                    name="ctoruletype",
                ),
                nullable=False,
            ),
            sa.Column("payload", sa.JSON(), nullable=False),
            sa.ForeignKeyConstraint(["rule_set_id"], ["cto_rule_sets.id"]),
        )
        op.create_index("ix_cto_rules_rule_set_id", "cto_rules", ["rule_set_id"])

    if "cto_active_rule_set" not in tables:
        op.create_table(
            "cto_active_rule_set",
            sa.Column("key", sa.String(length=32), primary_key=True),
            sa.Column("rule_set_id", _uuid_type(bind), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["rule_set_id"], ["cto_rule_sets.id"]),
        )

    if "cto_configurations" not in tables:
        op.create_table(
            "cto_configurations",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("asset_id", sa.String(length=64), nullable=False),
            sa.Column("product_model", sa.String(length=64), nullable=False),
            sa.Column("components", sa.JSON(), nullable=False),
            sa.Column("price_snapshot", sa.JSON(), nullable=False),
            sa.Column("lead_time_days", sa.Integer(), nullable=False),
            sa.Column("rule_set_id", _uuid_type(bind), nullable=False),
            sa.Column("validated", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["rule_set_id"], ["cto_rule_sets.id"]),
        )
        op.create_index("ix_cto_configurations_asset_id", "cto_configurations", ["asset_id"])

    if "cto_decisions" not in tables:
        op.create_table(
            "cto_decisions",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("configuration_id", sa.String(length=64), nullable=False),
            sa.Column("rule_version_id", _uuid_type(bind), nullable=False),
            sa.Column("result", sa.Enum("ACCEPT", "REJECT", name="ctodecisionresult"), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["rule_version_id"], ["cto_rule_versions.id"]),
        )
        op.create_index("ix_cto_decisions_configuration_id", "cto_decisions", ["configuration_id"])

    if "cto_decision_explanations" not in tables:
        op.create_table(
            "cto_decision_explanations",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("decision_id", _uuid_type(bind), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=128), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column(
                "severity",
                sa.Enum("ERROR", "WARNING", "INFO", name="ctoexplanationseverity"),
                nullable=False,
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["decision_id"], ["cto_decisions.id"]),
        )
        op.create_index(
            "ix_cto_decision_explanations_decision_id", "cto_decision_explanations", ["decision_id"]
        )

    if "audit_events" not in tables:
        op.create_table(
            "audit_events",
            sa.Column("id", _uuid_type(bind), primary_key=True),
            sa.Column("actor", sa.String(length=64), nullable=False),
            sa.Column(
                "action",
                sa.Enum(
                    "RULE_VERSION_CREATED",
                    "RULE_SET_CREATED",
                    "RULE_SET_ACTIVATED",
                    "CONFIGURATION_VALIDATED",
                    "CONFIGURATION_REJECTED",
                    "DECISIONS_RECORDED",
                    name="auditaction",
                ),
                nullable=False,
            ),
            sa.Column("entity_type", sa.String(length=64), nullable=False),
            sa.Column("entity_id", sa.String(length=64), nullable=False),
            sa.Column("request_id", sa.String(length=64), nullable=False),
            sa.Column("ip_address", sa.String(length=64), nullable=False),
            sa.Column("details", sa.JSON(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        )


def downgrade() -> None:
    bind = op.get_bind()
    tables = set(inspect(bind).get_table_names())
    for table in (
        "audit_events",
        "cto_decision_explanations",
        "cto_decisions",
        "cto_configurations",
        "cto_active_rule_set",
        "cto_rules",
        "cto_rule_sets",
        "cto_rule_versions",
    ):
        if table in tables:
            op.drop_table(table)
