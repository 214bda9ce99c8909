from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger

from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.errors import DeskError
from pmdesk.desk_runtime.log import setup_logging
from pmdesk.desk_runtime.managers import workspaces
from pmdesk.desk_runtime.settings import DeskSettings, get_settings
from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore
from pmdesk.desk_runtime.sync.engine import GitSyncEngine


def build_services(settings: DeskSettings) -> tuple[AppContext, RecentWorkspaceStore, GitSyncEngine]:
    """Create the process-wide context, recent cache and sync engine."""
    ctx = AppContext()
    recent = RecentWorkspaceStore(settings.recent_workspaces_file)
    engine = GitSyncEngine(
        ctx,
        network_timeout=settings.git_network_timeout,
        watch_interval=settings.watch_interval,
        watch_concurrency=settings.watch_concurrency,
    )
    return ctx, recent, engine


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("pmdesk starting (host={}, port={})", settings.host, settings.port)
    logger.info("Config dir: {}", settings.config_dir)

    ctx, recent, engine = build_services(settings)
    _app.state.context = ctx
    _app.state.recent_store = recent
    _app.state.sync_engine = engine

    # -- Workspace -------------------------------------------------------------
    if settings.workspace:
        try:
            info = await workspaces.open_or_create(ctx, recent, settings.workspace)
        except DeskError as exc:
            logger.warning("PMDESK_WORKSPACE not opened ({}): {}", exc.kind, exc.message)
        else:
            logger.info("Workspace: {}", info.path)
    else:
        logger.info("No PMDESK_WORKSPACE set -- waiting for a workspace to be opened")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("pmdesk shutting down (watching={})", engine.watcher.watching)

    # Watches first: an in-flight check still needs the database.
    await engine.stop_watches()
    await ctx.close()


async def desk_error_handler(request: Request, exc: DeskError) -> JSONResponse:
    """Render domain errors as ``{"error": kind, "message": ..., "details": ...}``."""
    if exc.status_code >= 500:
        logger.error("{} {} -> {}: {}", request.method, request.url.path, exc.kind, exc.message)
    else:
        logger.info("{} {} -> {}: {}", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app = FastAPI(title="pmdesk", lifespan=lifespan)
app.add_exception_handler(DeskError, desk_error_handler)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Routers -----------------------------------------------------------------
from pmdesk.desk_runtime.routers.dir_types import project_dirs_router  # noqa: E402
from pmdesk.desk_runtime.routers.dir_types import router as dir_types_router  # noqa: E402
from pmdesk.desk_runtime.routers.git import router as git_router  # noqa: E402
from pmdesk.desk_runtime.routers.projects import router as projects_router  # noqa: E402
from pmdesk.desk_runtime.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(projects_router)
api.include_router(project_dirs_router)
api.include_router(dir_types_router)
api.include_router(git_router)

app.include_router(api)
