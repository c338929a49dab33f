from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import RuleNotFoundError, RuleVersionConflictError, RuleVersionNotFoundError
from ..models.audit import AuditAction
from ..models.rule_version import RuleVersion
from ..rules.types import RuleLogic
from .audit_logger import create_audit_event

logger = logging.getLogger(__name__)


class RuleVersionReader:
    """Read access to versioned condition rules."""

    def __init__(self, db: Session):
        self.db = db

    def latest_version(self, rule_id: str) -> RuleVersion | None:
        return (
            self.db.query(RuleVersion)
            .filter(RuleVersion.rule_id == rule_id)
            .order_by(RuleVersion.version.desc())
            .first()
        )

    def require_latest(self, rule_id: str) -> RuleVersion:
        latest = self.latest_version(rule_id)
        if latest is None:
            raise RuleNotFoundError(rule_id)
        return latest

    def history(self, rule_id: str) -> list[RuleVersion]:
        return (
            self.db.query(RuleVersion)
            .filter(RuleVersion.rule_id == rule_id)
            .order_by(RuleVersion.version.desc())
            .all()
        )

    def get_version(self, rule_id: str, version: int) -> RuleVersion:
        row = self.db.query(RuleVersion).filter_by(rule_id=rule_id, version=version).first()
        if row is None:
            raise RuleVersionNotFoundError(rule_id, version)
        return row

    def get_by_id(self, rule_version_id: UUID | str) -> RuleVersion:
        try:
            key = rule_version_id if isinstance(rule_version_id, UUID) else UUID(str(rule_version_id))
        except ValueError:
            raise RuleVersionNotFoundError(str(rule_version_id))
        row = self.db.get(RuleVersion, key)
        if row is None:
            raise RuleVersionNotFoundError(str(rule_version_id))
        return row

    def all_latest_per_rule(self) -> list[RuleVersion]:
        latest = (
            select(RuleVersion.rule_id, func.max(RuleVersion.version).label("max_version"))
            .group_by(RuleVersion.rule_id)
            .subquery()
        )
        stmt = (
            select(RuleVersion)
            .join(
                latest,
                (RuleVersion.rule_id == latest.c.rule_id) & (RuleVersion.version == latest.c.max_version),
            )
            .order_by(RuleVersion.rule_id.asc())
        )
        return list(self.db.execute(stmt).scalars().all())


class RuleVersionStore(RuleVersionReader):
    """Append-only store: new versions are created, existing ones never change."""

    def __init__(self, db: Session, max_retries: int | None = None):
        super().__init__(db)
        settings = get_settings()
        self.max_retries = max_retries if max_retries is not None else settings.RULE_VERSION_MAX_RETRIES

    def create_version(
        self,
        rule_id: str,
        name: str,
        description: str,
        logic: RuleLogic | dict[str, Any],
        actor: str = "SYSTEM",
    ) -> RuleVersion:
        if not isinstance(logic, RuleLogic):
            logic = RuleLogic.from_dict(logic)
        logic_json = logic.to_dict()

        for attempt in range(1, self.max_retries + 1):
            latest = self.latest_version(rule_id)
            next_version = (latest.version if latest else 0) + 1
            row = RuleVersion(
                rule_id=rule_id,
                version=next_version,
                name=name,
                description=description or "",
                logic=logic_json,
            )
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError:
                # Another writer took this version number; re-read and try again.
                self.db.rollback()
                logger.warning(
                    "Version conflict for rule %s@v%s (attempt %s/%s)",
                    rule_id,
                    next_version,
                    attempt,
                    self.max_retries,
                )
                continue

            create_audit_event(
                self.db,
                actor=actor,
                action=AuditAction.RULE_VERSION_CREATED,
                entity_type="RuleVersion",
                entity_id=str(row.id),
                details={"rule_id": rule_id, "version": next_version},
                request=None,
                commit=False,
            )
            self.db.commit()
            logger.info("Created rule version %s@v%s", rule_id, next_version)
            return row

        raise RuleVersionConflictError(rule_id, self.max_retries)


def serialize_rule_version(row: RuleVersion) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "rule_id": row.rule_id,
        "version": row.version,
        "name": row.name,
        "description": row.description,
        "logic": row.logic,
        "created_at": row.created_at.isoformat(),
    }
