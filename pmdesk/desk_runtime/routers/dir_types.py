"""Directory-type and project-directory endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from pmdesk.desk_runtime.deps import DbSession
from pmdesk.desk_runtime.managers import dir_types
from pmdesk.desk_runtime.models.api import DirectoryTypeCreate, DirectoryTypeUpdate, ProjectDirectoryUpsert
from pmdesk.desk_runtime.models.project import DirectoryType, ProjectDirectory

router = APIRouter(prefix="/dir-types", tags=["dir-types"])

project_dirs_router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/list", response_model=list[DirectoryType])
async def list_directory_types(db: DbSession) -> list[DirectoryType]:
    """List directory types by sort order."""
    rows = await dir_types.list_directory_types(db)
    return [DirectoryType.model_validate(row) for row in rows]


@router.post("/create", response_model=DirectoryType, status_code=status.HTTP_201_CREATED)
async def create_directory_type(body: DirectoryTypeCreate, db: DbSession) -> DirectoryType:
    """Create a custom directory type."""
    return DirectoryType.model_validate(await dir_types.create_custom_type(db, body))


@router.post("/{type_id}/update", response_model=DirectoryType)
async def update_directory_type(type_id: str, body: DirectoryTypeUpdate, db: DbSession) -> DirectoryType:
    """Rename, recategorize or reorder a directory type."""
    return DirectoryType.model_validate(await dir_types.update_directory_type(db, type_id, body))


# -- Project directories -----------------------------------------------------


@project_dirs_router.get("/{project_id}/dirs/list", response_model=list[ProjectDirectory])
async def list_project_directories(project_id: str, db: DbSession) -> list[ProjectDirectory]:
    rows = await dir_types.list_project_directories(db, project_id)
    return [ProjectDirectory.model_validate(row) for row in rows]


@project_dirs_router.post("/{project_id}/dirs/upsert", response_model=ProjectDirectory)
async def upsert_project_directory(project_id: str, body: ProjectDirectoryUpsert, db: DbSession) -> ProjectDirectory:
    """Bind a directory type to a path inside the project, replacing any previous binding."""
    row = await dir_types.upsert_project_directory(db, project_id, body.dir_type_id, body.relative_path)
    return ProjectDirectory.model_validate(row)
