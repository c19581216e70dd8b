"""Data models shared by the parsing, checkpoint and reconciliation stages.

The forest of ``Post`` objects (each holding its top-level ``Comment``s, which
in turn hold their flat replies) is the single in-memory structure that flows
through the whole migration and is persisted by the checkpoint store.
"""

from __future__ import annotations

import hashlib
import html
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Final, NamedTuple
from urllib.parse import quote, urlsplit

from .exceptions import MigrationError

DISQUS_PROFILE_URL: Final[str] = "https://disqus.com/by/{username}/"

# Characters left unescaped when normalising a URL path for fingerprinting
_PATH_SAFE_CHARS: Final[str] = "/:@!$&'()*+,;=-._~%"


class MigrationStatus(IntEnum):
    """Persisted progress of a migration run. Values are stored in the checkpoint."""

    UNPARSED = 0
    PARSING_COMPLETE = 1
    DISCUSSIONS_ASSOCIATED = 2
    COMMENTS_ASSOCIATED = 3


class InclusionVerdict(NamedTuple):
    """Outcome of a filtering decision."""

    included: bool
    reason: str = ""


@dataclass(frozen=True)
class Author:
    """Identity of a commenter."""

    name: str
    username: str | None = None
    github_user: str | None = None
    is_anonymous: bool = False
    is_operator: bool = False

    @property
    def profile_url(self) -> str:
        return DISQUS_PROFILE_URL.format(username=self.username or "")

    @property
    def markdown(self) -> str:
        return f"[{self.name}]({self.profile_url})"

    @property
    def anchor(self) -> str:
        return f'<a href="{self.profile_url}">{html.escape(self.name)}</a>'

    @property
    def markdown_with_github(self) -> str:
        """Markdown link with a parenthetical GitHub credit when the handle is known."""
        if self.github_user is None:
            return self.markdown
        return f"{self.markdown} (@{self.github_user})"


@dataclass(frozen=True)
class TargetArticle:
    """A locally known article that comments can be migrated to."""

    title: str
    excerpt: str
    url: str
    file_path: str = ""


@dataclass(frozen=True)
class RemoteDiscussion:
    """A GitHub discussion as returned by the GraphQL API."""

    id: str
    number: int
    title: str
    body: str


@dataclass(frozen=True)
class RemoteComment:
    """A GitHub discussion comment as returned by the GraphQL API."""

    id: str
    url: str


@dataclass
class Comment:
    """A single exported Disqus comment.

    ``parent_id`` is the Disqus parent, which is not necessarily the comment this
    one ends up attached to: the hierarchy builder flattens deeper chains onto
    the top-level ancestor.
    """

    id: int
    post_id: int
    parent_id: int | None
    created_at: datetime
    author: Author
    message: str = ""
    children: list[Comment] = field(default_factory=list)
    remote: RemoteComment | None = None

    def assign_remote(self, remote: RemoteComment) -> None:
        if self.remote is not None:
            msg = f"Comment {self.id} is already associated with remote comment {self.remote.id}"
            raise MigrationError(msg)
        self.remote = remote


@dataclass
class Post:
    """A Disqus thread, i.e. one blog post's comment section."""

    id: int
    title: str
    url: str
    created_at: datetime
    comments: list[Comment] = field(default_factory=list)
    target_article: TargetArticle | None = None
    discussion: RemoteDiscussion | None = None

    @property
    def discussion_title(self) -> str:
        """The URL path without its leading separator, e.g. ``my-post/``."""
        return discussion_title_for(self.url)

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.url)

    def assign_discussion(self, discussion: RemoteDiscussion) -> None:
        if self.discussion is not None:
            msg = f"Post {self.id} is already associated with discussion #{self.discussion.number}"
            raise MigrationError(msg)
        self.discussion = discussion

    def iter_comments(self) -> list[Comment]:
        """All comments of the post in creation order: each top-level comment followed by its replies."""
        ordered: list[Comment] = []
        for comment in self.comments:
            ordered.append(comment)
            ordered.extend(comment.children)
        return ordered


def discussion_title_for(url: str) -> str:
    path = quote(urlsplit(url).path, safe=_PATH_SAFE_CHARS)
    return path.removeprefix("/")


def compute_fingerprint(url: str) -> str:
    """SHA-1 of the discussion title derived from ``url``, as lowercase hex.

    This value is embedded in every created discussion body, so it must never
    change for a given URL.
    """
    return hashlib.sha1(discussion_title_for(url).encode("ascii")).hexdigest()  # noqa: S324
