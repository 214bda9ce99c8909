"""Project and directory-type data models.

Pure Pydantic views of the registry rows.  JSON blob columns
(``display_json``, ``ide_override_json``) are decoded here, falling back to
``None`` when a stored blob cannot be parsed.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from pmdesk.desk_runtime.models.blob import load_blob
from pmdesk.desk_runtime.models.enums import DirectoryTypeKind
from pmdesk.desk_runtime.models.workspace import IdeConfig

if TYPE_CHECKING:
    from pmdesk.desk_runtime.db import tables


class ProjectDisplay(BaseModel):
    """Optional per-project display preferences."""

    theme_mode: str | None = None
    theme_color: str | None = None


class Project(BaseModel):
    id: str
    name: str
    description: str | None = None
    project_path: str
    display: ProjectDisplay | None = None
    ide_override: IdeConfig | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tables.Project) -> Project:
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            project_path=row.project_path,
            display=load_blob(ProjectDisplay, row.display_json, field=f"projects[{row.id}].display_json"),
            ide_override=load_blob(IdeConfig, row.ide_override_json, field=f"projects[{row.id}].ide_override_json"),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class DirectoryType(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: DirectoryTypeKind
    name: str
    category: str | None = None
    sort_order: int
    created_at: datetime
    updated_at: datetime

    @field_validator("kind", mode="before")
    @classmethod
    def _unknown_kind_is_custom(cls, value: object) -> object:
        if isinstance(value, str) and value not in DirectoryTypeKind.__members__.values():
            return DirectoryTypeKind.CUSTOM
        return value


class ProjectDirectory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    dir_type_id: str
    relative_path: str
    created_at: datetime
    updated_at: datetime
