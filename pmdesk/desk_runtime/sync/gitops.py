"""Thin async wrappers around the ``git`` command-line client.

Every command runs as a subprocess with stdin closed and a non-interactive
environment.  Commands that touch the network take a timeout; on expiry the
process is killed and ``GitTimeoutError`` is raised.

These helpers know nothing about the registry.  They raise
``GitCommandError`` and leave the mapping to domain errors to the engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from pmdesk.desk_runtime.sync.credentials import NON_INTERACTIVE_ENV

GIT_EXECUTABLE = "git"

INITIAL_BRANCH = "main"

# Tried in order when pulling: the current branch first, then the usual defaults.
DEFAULT_BRANCH_CANDIDATES = ("main", "master")


@dataclass
class GitResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitCommandError(Exception):
    """A git command exited non-zero or could not be started."""

    def __init__(self, args: tuple[str, ...], message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.command = args
        self.message = message
        self.returncode = returncode

    @classmethod
    def from_result(cls, result: GitResult) -> GitCommandError:
        detail = result.stderr.strip() or result.stdout.strip() or f"exit status {result.returncode}"
        return cls(result.args, f"git {_subcommand(result.args)} failed: {detail}", result.returncode)


class GitTimeoutError(GitCommandError):
    """A network command ran past its deadline and was killed."""


async def run_git(
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> GitResult:
    """Run ``git *args`` and capture its output.

    Raises ``GitCommandError`` when *check* is set and the command fails, and
    ``GitTimeoutError`` when *timeout* expires.
    """
    full_env = {**os.environ, "LC_ALL": "C", **NON_INTERACTIVE_ENV, **(env or {})}
    try:
        proc = await asyncio.create_subprocess_exec(
            GIT_EXECUTABLE,
            *args,
            cwd=str(cwd) if cwd is not None else None,
            env=full_env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise GitCommandError(args, f"Cannot run {GIT_EXECUTABLE}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        _kill(proc)
        await proc.communicate()
        msg = f"NetworkTimeout: git {_subcommand(args)} did not finish within {timeout:g}s"
        raise GitTimeoutError(args, msg) from None
    except asyncio.CancelledError:
        _kill(proc)
        # Reap the child even if the caller is cancelled again meanwhile.
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.shield(proc.wait())
        raise

    result = GitResult(
        args=args,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.trace("git {} -> {}", " ".join(args), result.returncode)
    if check and not result.ok:
        raise GitCommandError.from_result(result)
    return result


def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()


def _subcommand(args: tuple[str, ...]) -> str:
    return next((arg for arg in args if not arg.startswith("-")), "")


# -- Repository shape ------------------------------------------------------------


async def is_repository_root(path: Path) -> bool:
    """Whether *path* is the top level of a non-bare working tree."""
    if not path.is_dir():
        return False
    result = await run_git("rev-parse", "--show-toplevel", cwd=path, check=False)
    if not result.ok:
        return False
    return Path(result.stdout.strip()).resolve() == path.resolve()


async def init_repository(path: Path, branch: str = INITIAL_BRANCH) -> None:
    """``git init`` with *branch* as the unborn initial branch."""
    await run_git("init", "--quiet", str(path))
    # Works on every git version, unlike ``init --initial-branch``.
    await run_git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=path)


async def clone_repository(
    url: str,
    path: Path,
    *,
    branch: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> None:
    args = ["clone", "--quiet"]
    if branch:
        args += ["--branch", branch]
    args += ["--", url, str(path)]
    await run_git(*args, cwd=path.parent, env=env, timeout=timeout)


# -- Local reads -----------------------------------------------------------------


async def current_branch(path: Path) -> str | None:
    """Short name of the checked-out branch; ``None`` on a detached HEAD."""
    result = await run_git("symbolic-ref", "--quiet", "--short", "HEAD", cwd=path, check=False)
    name = result.stdout.strip()
    return name if result.ok and name else None


async def is_dirty(path: Path) -> bool:
    """Any staged, unstaged or untracked change.  Never takes the index lock."""
    result = await run_git("--no-optional-locks", "status", "--porcelain", "--untracked-files=normal", cwd=path)
    return bool(result.stdout.strip())


async def remote_names(path: Path) -> list[str]:
    result = await run_git("remote", cwd=path)
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


async def remote_url(path: Path, remote: str) -> str | None:
    result = await run_git("remote", "get-url", remote, cwd=path, check=False)
    if not result.ok:
        return None
    return result.stdout.strip() or None


async def first_remote_url(path: Path) -> str | None:
    for name in await remote_names(path):
        url = await remote_url(path, name)
        if url:
            return url
    return None


async def upstream_of(path: Path, branch: str | None, remote: str = "origin") -> str | None:
    """The branch's configured upstream, else ``<remote>/<branch>`` if that ref exists."""
    result = await run_git(
        "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}", cwd=path, check=False
    )
    if result.ok and result.stdout.strip():
        return result.stdout.strip()
    if branch and await ref_exists(path, f"refs/remotes/{remote}/{branch}"):
        return f"{remote}/{branch}"
    return None


async def ref_exists(path: Path, ref: str) -> bool:
    result = await run_git("show-ref", "--verify", "--quiet", ref, cwd=path, check=False)
    return result.ok


async def ahead_behind(path: Path, upstream: str) -> tuple[int, int]:
    """Commits on HEAD not on *upstream*, and the reverse."""
    result = await run_git("rev-list", "--left-right", "--count", f"HEAD...{upstream}", cwd=path)
    ahead, behind = result.stdout.split()
    return int(ahead), int(behind)


# -- Network ---------------------------------------------------------------------


async def remote_heads(
    path: Path, remote: str, *, env: Mapping[str, str] | None = None, timeout: float | None = None
) -> set[str]:
    """Branch names advertised by *remote*."""
    result = await run_git("ls-remote", "--heads", remote, cwd=path, env=env, timeout=timeout)
    heads = set()
    for line in result.stdout.splitlines():
        _, _, ref = line.partition("\t")
        if ref.startswith("refs/heads/"):
            heads.add(ref[len("refs/heads/") :])
    return heads


async def fetch(
    path: Path,
    remote: str,
    branches: list[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> None:
    """Fetch *branches* (all configured refspecs when ``None``) into remote-tracking refs."""
    args = ["fetch", "--quiet", "--no-tags", remote]
    for branch in branches or ():
        args.append(f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}")
    await run_git(*args, cwd=path, env=env, timeout=timeout)


async def fast_forward(path: Path, upstream: str) -> None:
    await run_git("merge", "--ff-only", "--quiet", upstream, cwd=path)
