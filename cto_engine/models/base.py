import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column

from ..errors import ImmutableRecordError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    type_annotation_map = {uuid.UUID: UUID(as_uuid=True)}


class UUIDMixin:
    id = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class CreatedAtMixin:
    # Set client-side so ordering keeps sub-second precision on every backend.
    created_at = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


def append_only(cls):
    """Refuse UPDATE and DELETE of a mapped class at flush time."""

    @event.listens_for(cls, "before_update")
    def _refuse_update(mapper, connection, target):
        raise ImmutableRecordError(cls.__name__, "update")

    @event.listens_for(cls, "before_delete")
    def _refuse_delete(mapper, connection, target):
        raise ImmutableRecordError(cls.__name__, "delete")

    return cls
