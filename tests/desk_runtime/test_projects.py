"""Tests for the project registry."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from pmdesk.desk_runtime.managers import projects
from pmdesk.desk_runtime.models.api import ProjectCreate, ProjectUpdate
from pmdesk.desk_runtime.models.enums import SupportedIdeKind
from pmdesk.desk_runtime.models.project import Project, ProjectDisplay
from pmdesk.desk_runtime.models.workspace import IdeConfig


async def test_create_makes_directory(db: AsyncSession, workspace_dir: Path) -> None:
    row = await projects.create_project(
        db, ProjectCreate(name="  site  ", description="Website", display=ProjectDisplay(theme_color="#336699"))
    )
    project = Project.from_row(row)

    assert project.name == "site"
    assert Path(project.project_path) == workspace_dir.resolve() / "site"
    assert Path(project.project_path).is_dir()
    assert project.display == ProjectDisplay(theme_color="#336699")
    assert project.ide_override is None


async def test_create_existing_directory_writes_nothing(db: AsyncSession, workspace_dir: Path) -> None:
    (workspace_dir / "taken").mkdir()
    with pytest.raises(AlreadyExistsError):
        await projects.create_project(db, ProjectCreate(name="taken"))
    assert await projects.list_projects(db) == []


@pytest.mark.parametrize("name", ["", "   ", "a/b", "..", ".", "back\\slash"])
async def test_create_rejects_bad_names(db: AsyncSession, name: str) -> None:
    with pytest.raises(InvalidInputError):
        await projects.create_project(db, ProjectCreate(name=name))


async def test_list_most_recently_updated_first(db: AsyncSession) -> None:
    first = await projects.create_project(db, ProjectCreate(name="first"))
    await asyncio.sleep(0.01)
    await projects.create_project(db, ProjectCreate(name="second"))
    await asyncio.sleep(0.01)
    await projects.update_project(db, first.id, ProjectUpdate(description="touched"))

    assert [p.name for p in await projects.list_projects(db)] == ["first", "second"]


async def test_update_merges_and_bumps_timestamp(db: AsyncSession) -> None:
    row = await projects.create_project(db, ProjectCreate(name="app", description="keep"))
    before = row.updated_at
    await asyncio.sleep(0.01)

    ide = IdeConfig(kind=SupportedIdeKind.JETBRAINS, name="IDEA", exe_path="/opt/idea/bin/idea")
    row = await projects.update_project(db, row.id, ProjectUpdate(ide_override=ide))
    project = Project.from_row(row)

    assert project.description == "keep"
    assert project.ide_override == ide
    assert project.updated_at > before

    # An empty patch still refreshes updated_at.
    again = await projects.update_project(db, row.id, ProjectUpdate())
    assert again.updated_at > project.updated_at


async def test_update_blank_name_rejected(db: AsyncSession) -> None:
    row = await projects.create_project(db, ProjectCreate(name="app"))
    with pytest.raises(InvalidInputError):
        await projects.update_project(db, row.id, ProjectUpdate(name=" "))


async def test_delete_keeps_directory(db: AsyncSession) -> None:
    row = await projects.create_project(db, ProjectCreate(name="gone"))
    await projects.delete_project(db, row.id)

    with pytest.raises(NotFoundError):
        await projects.get_project(db, row.id)
    assert Path(row.project_path).is_dir()


async def test_unknown_id(db: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await projects.get_project(db, "missing")
    with pytest.raises(NotFoundError):
        await projects.update_project(db, "missing", ProjectUpdate(name="x"))
    with pytest.raises(NotFoundError):
        await projects.delete_project(db, "missing")


async def test_unparseable_display_blob_reads_as_none(db: AsyncSession) -> None:
    row = await projects.create_project(db, ProjectCreate(name="legacy"))
    row.display_json = "{broken"
    await db.commit()

    project = Project.from_row(await projects.get_project(db, row.id))
    assert project.display is None
