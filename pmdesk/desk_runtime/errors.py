"""Domain exception hierarchy.

Managers and the sync engine raise these; the HTTP layer turns them into
``{"error": kind, "message": ...}`` responses with ``status_code``.  The
class hierarchy also subclasses the matching builtin (``ValueError``,
``LookupError``) so callers can catch either.
"""

from __future__ import annotations

from typing import Any, ClassVar


class DeskError(Exception):
    """Base exception for all pmdesk errors.

    Every error carries a machine-readable ``kind``, a human-readable
    ``message`` and the HTTP status code the API answers with.
    """

    kind: ClassVar[str] = "InternalError"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.details}


# -- Input / lookup ------------------------------------------------------------


class InvalidInputError(DeskError, ValueError):
    """Bad or missing input."""

    kind = "ValidationError"
    status_code = 400


class WorkspacePathError(InvalidInputError):
    """Workspace path does not exist or is not a directory."""

    kind = "PathInvalid"


class NotFoundError(DeskError, LookupError):
    """An id or path is absent."""

    kind = "NotFound"
    status_code = 404


class AlreadyExistsError(DeskError):
    """Path or record collision."""

    kind = "AlreadyExists"
    status_code = 409


# -- Workspace state -----------------------------------------------------------


class NoActiveWorkspaceError(DeskError):
    """The operation requires an open workspace."""

    kind = "NoActiveWorkspace"
    status_code = 503

    def __init__(self, message: str = "No workspace is open; open or create a workspace first.", **details: Any):
        super().__init__(message, **details)


class WorkspaceNotReadyError(NoActiveWorkspaceError):
    """The active workspace changed while the operation was running."""

    kind = "WorkspaceNotReady"

    def __init__(self, message: str = "The active workspace changed during the operation.", **details: Any):
        super().__init__(message, **details)


# -- Local environment ---------------------------------------------------------


class PersistenceError(DeskError):
    """Database I/O or SQL failure."""

    kind = "PersistenceError"


class FilesystemError(DeskError):
    """Create / delete / rename failure on disk."""

    kind = "FilesystemError"


class NotWritableError(FilesystemError):
    """Workspace directory is not writable."""

    kind = "NotWritable"
    status_code = 400


# -- Git -----------------------------------------------------------------------


class GitError(DeskError):
    """Repository open / init / clone / fetch failure."""

    kind = "GitError"
    status_code = 422


class RemoteNotFoundError(GitError):
    kind = "RemoteNotFound"


class CloneError(GitError):
    kind = "CloneError"
    status_code = 502


class RepoOpenError(GitError):
    kind = "RepoOpenError"


class GitInitError(GitError):
    kind = "GitInitError"
    status_code = 500


class NetworkUnreachableError(DeskError):
    """A best-effort network step failed or timed out."""

    kind = "NetworkUnreachable"
    status_code = 504
