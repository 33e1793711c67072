"""Persistence models for the mapping core.

Two SQLAlchemy models on the sync Base:
- FieldMapModel: Administrator-configured mapping between a local and a remote
  object type. Field rules, triggers and allowed subtypes are JSON documents
  produced by the pydantic schemas.
- ObjectMapModel: Runtime link between one local record and one remote record.
  remote_id is unique; the repository relies on that constraint to make link
  creation converge under concurrent pushes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.object_sync.core.database import Base

FIELD_MAP_TABLE = "object_sync_field_map"
OBJECT_MAP_TABLE = "object_sync_object_map"


class FieldMapModel(Base):
    """Mapping definition between a local object type and a remote object type.

    `weight` orders evaluation when several maps cover the same pair of types.
    """

    __tablename__ = FIELD_MAP_TABLE
    __table_args__ = (
        Index("ix_field_map_objects", "local_object_type", "remote_object_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    local_object_type: Mapped[str] = mapped_column(String(128), nullable=False)
    remote_object_type: Mapped[str] = mapped_column(String(128), nullable=False)
    allowed_remote_subtypes: Mapped[list] = mapped_column(JSON, default=list)
    default_remote_subtype: Mapped[str] = mapped_column(String(128), nullable=False)
    fields: Mapped[list] = mapped_column(JSON, default=list)
    pull_trigger_field: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sync_triggers: Mapped[list] = mapped_column(JSON, default=list)
    push_async: Mapped[bool] = mapped_column(Boolean, default=False)
    push_drafts: Mapped[bool] = mapped_column(Boolean, default=False)
    weight: Mapped[int] = mapped_column(Integer, default=0)
    created: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ObjectMapModel(Base):
    """Link between one local record and one remote record.

    Either id may hold a temporary placeholder while the owning system has not
    yet returned a permanent identifier.
    """

    __tablename__ = OBJECT_MAP_TABLE
    __table_args__ = (
        UniqueConstraint("remote_id", name="uq_object_map_remote_id"),
        Index("ix_object_map_local", "local_object_type", "local_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    local_id: Mapped[str] = mapped_column(String(128), nullable=False)
    local_object_type: Mapped[str] = mapped_column(String(128), nullable=False)
    remote_id: Mapped[str] = mapped_column(String(128), nullable=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    object_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_action: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_sync_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    last_sync_message: Mapped[str | None] = mapped_column(Text, nullable=True)
