"""Process-wide stores living outside any workspace database."""

from pmdesk.desk_runtime.store.recent import RECENT_LIMIT, RecentWorkspaceStore

__all__ = ["RECENT_LIMIT", "RecentWorkspaceStore"]
