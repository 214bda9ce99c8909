"""Project CRUD operations.

A project is a directory directly under the workspace root plus its
registry row.  The directory is created before the row is written, so a
failed ``mkdir`` leaves no record behind; deleting a project removes only
the row and leaves the directory (and anything registered under it) alone.
"""

from __future__ import annotations

import uuid
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.context import workspace_root
from pmdesk.desk_runtime.db.tables import Project, utcnow
from pmdesk.desk_runtime.errors import AlreadyExistsError, FilesystemError, InvalidInputError, NotFoundError
from pmdesk.desk_runtime.models.api import ProjectCreate, ProjectUpdate
from pmdesk.desk_runtime.models.blob import dump_blob

_BLOB_COLUMNS = {"display": "display_json", "ide_override": "ide_override_json"}


def validate_segment(name: str, *, what: str = "Name") -> str:
    """Return *name* stripped.  It must be a single, non-special path segment."""
    name = (name or "").strip()
    if not name:
        raise InvalidInputError(f"{what} must not be empty.")
    if name in {".", ".."} or "/" in name or "\\" in name or "\x00" in name:
        raise InvalidInputError(f"{what} must be a single directory name: {name!r}", name=name)
    return name


async def list_projects(db: AsyncSession) -> list[Project]:
    """List all projects, most recently updated first."""
    result = await db.execute(select(Project).order_by(Project.updated_at.desc(), Project.name))
    return list(result.scalars().all())


async def create_project(db: AsyncSession, body: ProjectCreate) -> Project:
    """Create ``<workspace>/<name>`` and register it.

    Raises ``AlreadyExistsError`` if the directory already exists (nothing is
    written in that case) and ``FilesystemError`` if it cannot be created.
    """
    name = validate_segment(body.name)
    project_path = workspace_root(db) / name

    registered = await db.scalar(select(Project.id).where(Project.project_path == str(project_path)))
    if registered is not None:
        msg = f"Project path is already registered: {project_path}"
        raise AlreadyExistsError(msg, path=str(project_path))
    await to_thread.run_sync(partial(_make_project_dir, project_path))

    project = Project(
        id=str(uuid.uuid4()),
        name=name,
        description=body.description,
        project_path=str(project_path),
        display_json=dump_blob(body.display),
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    logger.info("Project created: {} ({})", project.name, project.project_path)
    return project


async def get_project(db: AsyncSession, project_id: str) -> Project:
    """Get a project by ID.  Raises ``NotFoundError`` if missing."""
    project = await db.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project '{project_id}' not found.", id=project_id)
    return project


async def update_project(db: AsyncSession, project_id: str, body: ProjectUpdate) -> Project:
    """Merge the provided fields.  ``updated_at`` moves even for an empty patch.

    Renaming changes the display name only; the directory stays where it is.
    """
    project = await get_project(db, project_id)

    changes = body.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise InvalidInputError("Name must not be empty.")
    for key, column in _BLOB_COLUMNS.items():
        if key in changes:
            changes[column] = dump_blob(getattr(body, key))
            del changes[key]

    for key, value in changes.items():
        setattr(project, key, value)
    project.updated_at = utcnow()

    await db.commit()
    await db.refresh(project)
    return project


async def delete_project(db: AsyncSession, project_id: str) -> None:
    """Delete the project record.  Raises ``NotFoundError`` if missing."""
    project = await get_project(db, project_id)
    await db.delete(project)
    await db.commit()
    logger.info("Project deleted: {} (directory kept at {})", project.name, project.project_path)


def _make_project_dir(path: Path) -> None:
    if path.exists():
        msg = f"Project path already exists: {path}"
        raise AlreadyExistsError(msg, path=str(path))
    try:
        path.mkdir(parents=True)
    except FileExistsError as exc:
        msg = f"Project path already exists: {path}"
        raise AlreadyExistsError(msg, path=str(path)) from exc
    except OSError as exc:
        msg = f"Cannot create project directory {path}: {exc}"
        raise FilesystemError(msg, path=str(path)) from exc
