"""Build GitHub discussion and comment bodies from Disqus data."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .models import Comment, Post

COMMENT_TIMESTAMP_FORMAT: Final[str] = "%B %d %Y, %H:%M"


def format_timestamp(timestamp: dt.datetime) -> str:
    """Format a timestamp for comment headers (e.g. "January 15 2024, 10:30")."""
    return timestamp.strftime(COMMENT_TIMESTAMP_FORMAT)


def fingerprint_marker(fingerprint: str) -> str:
    """HTML comment embedded in discussion bodies so the discussion can be found again."""
    return f"<!-- sha1: {fingerprint} -->"


def build_discussion_body(post: Post) -> str:
    """Build the body of the discussion created for a post.

    Args:
        post: Post with its target article attached

    Returns:
        Markdown body ending with the fingerprint marker
    """
    excerpt = post.target_article.excerpt if post.target_article else ""
    return f"# {post.discussion_title}\n\n{excerpt}\n\n{post.url}\n\n{fingerprint_marker(post.fingerprint)}"


def find_reply_target(comment: Comment, top_level: Comment) -> Comment:
    """Return the comment that ``comment`` originally replied to.

    Replies are flattened onto ``top_level``, so the original parent is either
    the top-level comment itself or one of its replies.
    """
    if comment.parent_id == top_level.id:
        return top_level
    for sibling in top_level.children:
        if sibling.id == comment.parent_id:
            return sibling
    return top_level


def build_comment_body(comment: Comment, forum_url: str, reply_to: Comment | None = None) -> str:
    """Build the body of a migrated comment.

    Args:
        comment: Comment to migrate
        forum_url: Link to the Disqus forum the comment came from
        reply_to: Top-level comment this comment is attached to, for replies

    Returns:
        Body with an attribution header followed by the normalized message
    """
    header = (
        f"{comment.author.markdown_with_github} commented [on Disqus]({forum_url}) "
        f"at {format_timestamp(comment.created_at)}"
    )
    if reply_to is not None:
        referenced = find_reply_target(comment, reply_to)
        remote = referenced.remote or reply_to.remote
        url = remote.url if remote else ""
        header += f", in reply to {referenced.author.markdown}'s [comment]({url})"

    return f"<em>{header}</em>\n\n---\n\n{comment.message}"
