"""SQLAlchemy ORM models for the per-workspace SQLite database.

These are the single source of truth for the schema.  Each workspace owns one
database file at ``<root>/.app/app.db``; the schema is applied with
``create_all`` on open (see ``db.engine.init_schema``), so every statement is
idempotent.

Structured sub-objects (display preferences, IDE override, status snapshot,
settings) are kept as JSON text columns; the typed views live in ``models``.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Store UTC timestamps naive (SQLite has no tz support), read them back aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: object) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: object) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = UTCDateTime()


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class WorkspaceMeta(Base):
    __tablename__ = "workspace_meta"

    key: Mapped[str] = mapped_column(primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow, onupdate=utcnow)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_updated_at", "updated_at"),
        Index("ix_projects_name", "name"),
    )

    id: Mapped[str] = mapped_column(primary_key=True)
    name: Mapped[str]
    description: Mapped[str | None] = mapped_column(Text)
    project_path: Mapped[str] = mapped_column(unique=True)
    display_json: Mapped[str | None] = mapped_column(Text)
    ide_override_json: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow, onupdate=utcnow)


class GitRepository(Base):
    __tablename__ = "git_repositories"
    __table_args__ = (Index("ix_git_repositories_project_id", "project_id"),)

    id: Mapped[str] = mapped_column(primary_key=True)
    project_id: Mapped[str]
    name: Mapped[str]
    path: Mapped[str] = mapped_column(unique=True)
    remote_url: Mapped[str | None]
    branch: Mapped[str | None]
    custom_name: Mapped[str | None]
    description: Mapped[str | None] = mapped_column(Text)
    last_sync_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
    last_status_checked_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
    last_status_json: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow, onupdate=utcnow)


class DirectoryType(Base):
    __tablename__ = "directory_types"
    __table_args__ = (Index("ix_directory_types_sort_order", "sort_order"),)

    id: Mapped[str] = mapped_column(primary_key=True)
    kind: Mapped[str]
    name: Mapped[str]
    category: Mapped[str | None]
    sort_order: Mapped[int] = mapped_column(default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow, onupdate=utcnow)


class ProjectDirectory(Base):
    __tablename__ = "project_directories"
    __table_args__ = (
        UniqueConstraint("project_id", "dir_type_id", name="uq_project_directories_project_id_dir_type_id"),
        Index("ix_project_directories_project_id", "project_id"),
    )

    id: Mapped[str] = mapped_column(primary_key=True)
    project_id: Mapped[str]
    dir_type_id: Mapped[str]
    relative_path: Mapped[str]
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, default=utcnow, onupdate=utcnow)
