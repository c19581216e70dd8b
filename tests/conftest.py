"""
Pytest configuration and fixtures.

Provides a small Disqus export, matching Markdown articles, and an in-memory
stand-in for the GitHub Discussions API so the reconciliation and the whole
pipeline can be tested without network access.
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest

from disqus_to_github_migrator.config import MigrationSettings
from disqus_to_github_migrator.exceptions import MigrationError
from disqus_to_github_migrator.models import RemoteComment, RemoteDiscussion
from disqus_to_github_migrator.protocols import RateLimit, SearchResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

EXPORT_HEADER = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<disqus xmlns="http://disqus.com" '
    'xmlns:dsq="http://disqus.com/disqus-internals" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">\n'
)


def thread_xml(
    thread_id: int,
    link: str,
    *,
    title: str = "A post",
    is_deleted: bool = False,
    is_closed: bool = False,
    created_at: str = "2019-01-01T10:00:00Z",
) -> str:
    return (
        f'<thread dsq:id="{thread_id}">'
        f"<link>{link}</link><title>{title}</title>"
        f"<createdAt>{created_at}</createdAt>"
        f"<isClosed>{str(is_closed).lower()}</isClosed>"
        f"<isDeleted>{str(is_deleted).lower()}</isDeleted>"
        "</thread>\n"
    )


def comment_xml(
    comment_id: int,
    thread_id: int,
    message: str | None,
    *,
    parent_id: int | None = None,
    name: str = "Somebody",
    username: str | None = "somebody",
    is_deleted: bool = False,
    is_spam: bool = False,
    created_at: str = "2019-01-02T10:00:00Z",
) -> str:
    username_xml = f"<username>{username}</username>" if username else ""
    parent_xml = f'<parent dsq:id="{parent_id}" />' if parent_id is not None else ""
    message_xml = f"<message><![CDATA[{message}]]></message>" if message is not None else ""
    return (
        f'<post dsq:id="{comment_id}">'
        f"<id />{message_xml}<createdAt>{created_at}</createdAt>"
        f"<isDeleted>{str(is_deleted).lower()}</isDeleted><isSpam>{str(is_spam).lower()}</isSpam>"
        f"<author><name>{name}</name><isAnonymous>false</isAnonymous>{username_xml}</author>"
        f'<thread dsq:id="{thread_id}" />{parent_xml}'
        "</post>\n"
    )


def export_xml(*elements: str) -> str:
    return EXPORT_HEADER + "".join(elements) + "</disqus>\n"


SITE_URL = "https://blog.example.com"
FORUM_URL = "https://disqus.com/home/forum/example/"

SAMPLE_EXPORT = export_xml(
    thread_xml(1001, f"{SITE_URL}/first-post/", title="First post"),
    thread_xml(1002, f"{SITE_URL}/deleted-post/", title="Deleted post", is_deleted=True),
    thread_xml(1003, f"{SITE_URL}/quiet-post/", title="Quiet post"),
    thread_xml(1004, f"{SITE_URL}/not-republished/", title="Not republished"),
    comment_xml(2001, 1001, "<p>Great post!</p>", name="Alice", username="alice", created_at="2019-01-02T10:00:00Z"),
    comment_xml(
        2002,
        1001,
        "<p>Thanks @alice:disqus</p>",
        parent_id=2001,
        name="Operator",
        username="operator",
        created_at="2019-01-02T11:00:00Z",
    ),
    comment_xml(
        2003,
        1001,
        '<p>See <a href="https://example.com/some/long/path">https://example.com/some/lo...</a></p>',
        parent_id=2002,
        name="Bob",
        username="bob",
        created_at="2019-01-02T12:00:00Z",
    ),
    comment_xml(2004, 1003, "<p>Buy now</p>", name="Spammer", username="spammer", is_spam=True),
    comment_xml(2005, 1004, "<p>Hello</p>", name="Dave", username="dave"),
    comment_xml(2006, 1001, "<p>Removed</p>", name="Eve", username="eve", is_deleted=True),
    comment_xml(2007, 1001, "<p>Not spam</p>", name="Carol", username="carol", is_spam=True),
    comment_xml(2008, 1002, "<p>On a deleted post</p>", name="Frank", username="frank"),
)


def _article(title: str, excerpt: str) -> str:
    return f"---\ntitle: {title}\nexcerpt: {excerpt}\n---\n\nBody of {title}.\n"


@pytest.fixture
def export_file(tmp_path: Path) -> Path:
    path = tmp_path / "export.xml"
    path.write_text(SAMPLE_EXPORT, encoding="utf-8")
    return path


@pytest.fixture
def make_export(tmp_path: Path) -> Callable[..., Path]:
    """Write an export made of the given thread/comment XML snippets."""

    def _make(*elements: str, name: str = "custom.xml") -> Path:
        path = tmp_path / name
        path.write_text(export_xml(*elements), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def posts_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "posts"
    directory.mkdir()
    (directory / "first-post.md").write_text(_article("First post", "All about the first post"), encoding="utf-8")
    (directory / "quiet-post.md").write_text(_article("Quiet post", "Nobody commented"), encoding="utf-8")
    return directory


@pytest.fixture
def settings(posts_dir: Path) -> MigrationSettings:
    return MigrationSettings(
        repository="owner/blog-comments",
        forum_url=FORUM_URL,
        operator_username="operator",
        forced_comments={2007: True},
        site_url=SITE_URL,
        post_dirs=[posts_dir],
        comment_cooldown=0,
        discussion_cooldown=0,
    )


@pytest.fixture(autouse=True)
def no_cooldown(monkeypatch: pytest.MonkeyPatch) -> Mock:
    """Skip the rate-limit pauses of the reconciler."""
    sleep = Mock()
    monkeypatch.setattr("disqus_to_github_migrator.reconciler.time.sleep", sleep)
    return sleep


class FakeDiscussions:
    """In-memory implementation of the DiscussionsApi protocol."""

    def __init__(self, label: str = "operator", *, fail_after_comments: int | None = None) -> None:
        self.label: str = label
        self.discussions: list[RemoteDiscussion] = []
        self.comments: list[dict[str, Any]] = []
        self.fail_after_comments: int | None = fail_after_comments
        self.rate_limit_error: bool = False

    def get_repository_id(self) -> str:
        return "R_1"

    def get_category_id(self, name: str) -> str:
        return f"DIC_{name}"

    def list_discussions(self, category_id: str) -> Iterator[RemoteDiscussion]:
        yield from list(self.discussions)

    def search_discussions(self, query: str) -> SearchResult:
        token = query.split()[0]
        hits = [d for d in self.discussions if token in d.body]
        return SearchResult(total_count=len(hits), discussions=hits[:2])

    def create_discussion(self, repository_id: str, category_id: str, title: str, body: str) -> RemoteDiscussion:
        number = len(self.discussions) + 1
        discussion = RemoteDiscussion(id=f"D_{number}", number=number, title=title, body=body)
        self.discussions.append(discussion)
        return discussion

    def add_discussion_comment(self, discussion_id: str, body: str, reply_to_id: str | None = None) -> RemoteComment:
        if self.fail_after_comments is not None and len(self.comments) >= self.fail_after_comments:
            msg = "secondary rate limit exceeded"
            raise MigrationError(msg)
        comment_id = f"DC_{self.label}_{len(self.comments) + 1}"
        self.comments.append(
            {"id": comment_id, "discussion_id": discussion_id, "body": body, "reply_to_id": reply_to_id}
        )
        return RemoteComment(id=comment_id, url=f"https://github.com/owner/blog-comments/discussions#{comment_id}")

    def get_rate_limit(self) -> RateLimit:
        if self.rate_limit_error:
            msg = "rate limit query failed"
            raise MigrationError(msg)
        return RateLimit(limit=5000, remaining=4990, reset_at=dt.datetime(2024, 1, 1, 12, 0, tzinfo=dt.UTC))


@pytest.fixture
def operator_api() -> FakeDiscussions:
    return FakeDiscussions("operator")


@pytest.fixture
def bot_api(operator_api: FakeDiscussions) -> FakeDiscussions:
    bot = FakeDiscussions("bot")
    # Both identities see the same repository
    bot.discussions = operator_api.discussions
    return bot
