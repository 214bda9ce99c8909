"""Directory-type taxonomy and per-project directory bindings.

Built-in types are seeded by ``db.engine.init_schema``; this module covers
custom types and the (project, type) -> relative path upsert.
"""

from __future__ import annotations

import uuid
from pathlib import PurePath

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.db.tables import DirectoryType, Project, ProjectDirectory, utcnow
from pmdesk.desk_runtime.errors import InvalidInputError, NotFoundError
from pmdesk.desk_runtime.models.api import DirectoryTypeCreate, DirectoryTypeUpdate
from pmdesk.desk_runtime.models.enums import DirectoryTypeKind


async def list_directory_types(db: AsyncSession) -> list[DirectoryType]:
    """All types, by ``sort_order`` then name."""
    result = await db.execute(select(DirectoryType).order_by(DirectoryType.sort_order, DirectoryType.name))
    return list(result.scalars().all())


async def create_custom_type(db: AsyncSession, body: DirectoryTypeCreate) -> DirectoryType:
    """Create a user-defined type.  Raises ``InvalidInputError`` on a blank name."""
    name = _require_name(body.name)
    dir_type = DirectoryType(
        id=str(uuid.uuid4()),
        kind=DirectoryTypeKind.CUSTOM.value,
        name=name,
        category=body.category,
        sort_order=body.sort_order,
    )
    db.add(dir_type)
    await db.commit()
    await db.refresh(dir_type)
    return dir_type


async def update_directory_type(db: AsyncSession, type_id: str, body: DirectoryTypeUpdate) -> DirectoryType:
    """Rename / recategorize / reorder a type.  ``kind`` never changes."""
    dir_type = await db.get(DirectoryType, type_id)
    if dir_type is None:
        raise NotFoundError(f"Directory type '{type_id}' not found.", id=type_id)

    changes = body.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["name"] = _require_name(changes["name"])
    if changes.get("sort_order") is None:
        changes.pop("sort_order", None)
    if not changes:
        return dir_type

    for key, value in changes.items():
        setattr(dir_type, key, value)

    await db.commit()
    await db.refresh(dir_type)
    return dir_type


# -- Project directories ---------------------------------------------------------


async def list_project_directories(db: AsyncSession, project_id: str) -> list[ProjectDirectory]:
    result = await db.execute(
        select(ProjectDirectory)
        .where(ProjectDirectory.project_id == project_id)
        .order_by(ProjectDirectory.created_at)
    )
    return list(result.scalars().all())


async def upsert_project_directory(
    db: AsyncSession, project_id: str, dir_type_id: str, relative_path: str
) -> ProjectDirectory:
    """Bind *dir_type_id* to *relative_path* inside the project, replacing any previous binding.

    Raises ``NotFoundError`` for an unknown project or type and
    ``InvalidInputError`` for a path that is blank, absolute or escapes the
    project directory.
    """
    if await db.get(Project, project_id) is None:
        raise NotFoundError(f"Project '{project_id}' not found.", id=project_id)
    if await db.get(DirectoryType, dir_type_id) is None:
        raise NotFoundError(f"Directory type '{dir_type_id}' not found.", id=dir_type_id)
    relative_path = normalize_relative_path(relative_path)

    now = utcnow()
    stmt = sqlite_insert(ProjectDirectory).values(
        id=str(uuid.uuid4()),
        project_id=project_id,
        dir_type_id=dir_type_id,
        relative_path=relative_path,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["project_id", "dir_type_id"],
        set_={"relative_path": relative_path, "updated_at": now},
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(ProjectDirectory)
        .where(ProjectDirectory.project_id == project_id, ProjectDirectory.dir_type_id == dir_type_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def normalize_relative_path(value: str) -> str:
    """Validate a project-relative path and return it in POSIX form."""
    value = value.strip().replace("\\", "/")
    if not value:
        raise InvalidInputError("Relative path must not be empty.")
    path = PurePath(value)
    if path.is_absolute() or value.startswith("/") or (len(value) > 1 and value[1] == ":"):
        raise InvalidInputError(f"Path must be relative to the project: {value}", relative_path=value)
    if ".." in path.parts:
        raise InvalidInputError(f"Path must stay inside the project: {value}", relative_path=value)
    parts = [part for part in path.parts if part != "."]
    if not parts:
        raise InvalidInputError("Relative path must name a directory inside the project.", relative_path=value)
    return "/".join(parts)


def _require_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Name must not be empty.")
    return name
