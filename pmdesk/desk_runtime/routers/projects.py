"""Project CRUD endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from pmdesk.desk_runtime.deps import DbSession
from pmdesk.desk_runtime.managers import projects
from pmdesk.desk_runtime.models.api import ProjectCreate, ProjectUpdate
from pmdesk.desk_runtime.models.project import Project

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/list", response_model=list[Project])
async def list_projects(db: DbSession) -> list[Project]:
    """List all projects, most recently updated first."""
    return [Project.from_row(row) for row in await projects.list_projects(db)]


@router.post("/create", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectCreate, db: DbSession) -> Project:
    """Create the project directory under the workspace root and register it."""
    return Project.from_row(await projects.create_project(db, body))


@router.get("/{project_id}/get", response_model=Project)
async def get_project(project_id: str, db: DbSession) -> Project:
    return Project.from_row(await projects.get_project(db, project_id))


@router.post("/{project_id}/update", response_model=Project)
async def update_project(project_id: str, body: ProjectUpdate, db: DbSession) -> Project:
    """Partially update a project."""
    return Project.from_row(await projects.update_project(db, project_id, body))


@router.post("/{project_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, db: DbSession) -> None:
    """Delete the project record.  The directory on disk is kept."""
    await projects.delete_project(db, project_id)
