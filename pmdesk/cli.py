import click


@click.group()
def main() -> None:
    """pmdesk - local workspace, project and git repository manager."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from PMDESK_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from PMDESK_PORT or 8765).")
@click.option("--workspace", default=None, help="Workspace opened at startup (default: PMDESK_WORKSPACE).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, workspace: str | None, reload: bool) -> None:
    """Start the pmdesk API server."""
    import os

    import uvicorn

    from pmdesk.desk_runtime.settings import DeskSettings

    if workspace:
        os.environ["PMDESK_WORKSPACE"] = workspace
    settings = DeskSettings()

    uvicorn.run(
        "pmdesk.desk_runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # In-flight git commands are bounded by the network timeout.
        timeout_graceful_shutdown=int(settings.git_network_timeout) + 10,
    )


@main.command("open")
@click.argument("path", type=click.Path(file_okay=False))
def open_(path: str) -> None:
    """Open (initialising on first use) the workspace at PATH."""
    import asyncio

    from pmdesk.desk_runtime.managers import workspaces

    async def _run() -> None:
        async with _services() as (ctx, recent, _engine):
            info = await workspaces.open_or_create(ctx, recent, path)
        click.echo(f"Workspace: {info.path}")
        click.echo(f"Database:  {info.db_path}")
        if info.alias:
            click.echo(f"Alias:     {info.alias}")

    _invoke(asyncio.run, _run())


@main.command()
def recent() -> None:
    """List recently opened workspaces."""
    import asyncio

    from pmdesk.desk_runtime.settings import get_settings
    from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore

    store = RecentWorkspaceStore(get_settings().recent_workspaces_file)
    entries = asyncio.run(store.entries())
    if not entries:
        click.echo("No recent workspaces.")
        return
    for entry in entries:
        opened = entry.last_opened_at.astimezone().strftime("%Y-%m-%d %H:%M")
        label = f" ({entry.alias})" if entry.alias else ""
        click.echo(f"{opened}  {entry.path}{label}")


@main.command()
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--network", is_flag=True, default=False, help="Also contact remotes (fetch, ahead/behind).")
def status(path: str, network: bool) -> None:
    """Show the git status of every repository in the workspace at PATH."""
    import asyncio

    from pmdesk.desk_runtime.managers import git_repos, workspaces

    async def _run() -> None:
        async with _services() as (ctx, recent, engine):
            await workspaces.open_or_create(ctx, recent, path)
            async with ctx.session() as db:
                repo_ids = await git_repos.list_all_repository_ids(db)
                rows = {repo_id: await git_repos.get_repository(db, repo_id) for repo_id in repo_ids}
            if not rows:
                click.echo("No repositories registered.")
            for repo_id, row in rows.items():
                st = await engine.status(repo_id, allow_network=network)
                state = "dirty" if st.dirty else "clean"
                line = f"{row.custom_name or row.name:<24} {st.branch or '(detached)':<16} {state:<6}"
                if network:
                    line += f" +{st.ahead}/-{st.behind} {st.network}"
                    if st.last_error:
                        line += f"  [{st.last_error}]"
                click.echo(line)

    _invoke(asyncio.run, _run())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _services():
    """Async context manager yielding ``(ctx, recent, engine)`` with logging set up."""
    from contextlib import asynccontextmanager

    from pmdesk.desk_runtime.app import build_services
    from pmdesk.desk_runtime.log import CLI_FORMAT, setup_logging
    from pmdesk.desk_runtime.settings import get_settings

    @asynccontextmanager
    async def _cm():
        settings = get_settings()
        setup_logging(settings.log_level, fmt=CLI_FORMAT)
        ctx, recent, engine = build_services(settings)
        try:
            yield ctx, recent, engine
        finally:
            await engine.stop_watches()
            await ctx.close()

    return _cm()


def _invoke(runner, coro) -> None:
    """Run *coro*, turning domain errors into a clean CLI failure."""
    from pmdesk.desk_runtime.errors import DeskError

    try:
        runner(coro)
    except DeskError as exc:
        raise click.ClickException(f"{exc.kind}: {exc.message}") from exc


if __name__ == "__main__":
    main()
