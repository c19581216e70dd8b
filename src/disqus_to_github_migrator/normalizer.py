"""Rewrite Disqus comment bodies so they render correctly on GitHub."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Final

from bs4 import BeautifulSoup

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Author, Comment

logger: logging.Logger = logging.getLogger(__name__)

MENTION_PATTERN: Final[re.Pattern[str]] = re.compile(r"@([\w\-]+):disqus")

# Disqus auto-links long URLs with a visible text truncated and ending in this marker
TRUNCATION_MARKER: Final[str] = "..."
# Shorter link texts are never treated as a truncated URL
MIN_TRUNCATED_LENGTH: Final[int] = 4


def known_authors(comments: Iterable[Comment]) -> dict[str, Author]:
    """Authors of the given comments keyed by Disqus username (first one wins)."""
    authors: dict[str, Author] = {}
    for comment in comments:
        username = comment.author.username
        if username and username not in authors:
            authors[username] = comment.author
    return authors


def resolve_mentions(message: str, authors: dict[str, Author]) -> str:
    """Replace ``@user:disqus`` mentions with a link to the author.

    Unknown users are reduced to their bare handle; they were probably deleted
    from Disqus and cannot be linked anymore.
    """

    def _replace(match: re.Match[str]) -> str:
        username = match.group(1)
        author = authors.get(username)
        if author is None:
            logger.debug(f"Unknown mentioned user '{username}'")
            return username
        return author.anchor

    return MENTION_PATTERN.sub(_replace, message)


def collapse_truncated_links(message: str) -> str:
    """Show the full URL for anchors whose text is a truncated copy of their href.

    The text, without a trailing "..." marker, must be a proper prefix of the
    href. Any other anchor is left untouched.
    """
    soup = BeautifulSoup(message, "html.parser")
    for anchor in soup.find_all("a"):
        href = anchor.get("href")
        if not isinstance(href, str):
            continue
        visible = anchor.decode_contents().removesuffix(TRUNCATION_MARKER)
        if len(visible) < MIN_TRUNCATED_LENGTH or visible == href:
            continue
        if href.startswith(visible):
            anchor.string = href
    return str(soup)


def normalize_message(message: str, authors: dict[str, Author]) -> str:
    return collapse_truncated_links(resolve_mentions(message, authors))


def normalize_comments(comments: Iterable[Comment]) -> None:
    """Normalize the message of every comment in place."""
    comments = list(comments)
    authors = known_authors(comments)
    for comment in comments:
        comment.message = normalize_message(comment.message, authors)
    logger.debug(f"Normalized {len(comments)} comment bodies")
