"""Protocol defining the contract with the remote discussion host.

The reconciler only talks to GitHub through this interface, which keeps the
reconciliation logic testable with in-memory fakes and keeps GraphQL details
in ``github_utils``.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, NamedTuple, Protocol

if TYPE_CHECKING:
    import datetime as dt

    from .models import RemoteComment, RemoteDiscussion


class RateLimit(NamedTuple):
    """GraphQL rate limit of one identity."""

    limit: int
    remaining: int
    reset_at: dt.datetime | None


class SearchResult(NamedTuple):
    """Result of a full-text discussion search.

    ``total_count`` may exceed ``len(discussions)`` since only the first few
    hits are fetched.
    """

    total_count: int
    discussions: list[RemoteDiscussion]


class DiscussionsApi(Protocol):
    """Operations the migration needs from the discussion host, for one caller identity.

    All methods raise MigrationError when the remote call fails.
    """

    def get_repository_id(self) -> str:
        """Return the node id of the target repository."""
        ...

    def get_category_id(self, name: str) -> str:
        """Return the node id of the discussion category called ``name``."""
        ...

    def list_discussions(self, category_id: str) -> Iterator[RemoteDiscussion]:
        """Yield every discussion in a category, oldest first, following pagination."""
        ...

    def search_discussions(self, query: str) -> SearchResult:
        """Run a full-text discussion search."""
        ...

    def create_discussion(self, repository_id: str, category_id: str, title: str, body: str) -> RemoteDiscussion:
        """Create a discussion and return it."""
        ...

    def add_discussion_comment(self, discussion_id: str, body: str, reply_to_id: str | None = None) -> RemoteComment:
        """Add a comment, or a reply when ``reply_to_id`` is given, and return it."""
        ...

    def get_rate_limit(self) -> RateLimit:
        """Return the current rate limit of this identity."""
        ...
