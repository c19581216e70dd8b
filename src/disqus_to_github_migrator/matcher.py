"""Select the posts whose comments will be migrated and attach their target article."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import InclusionVerdict

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import Post, TargetArticle

logger: logging.Logger = logging.getLogger(__name__)


def find_matching_articles(url: str, articles: Iterable[TargetArticle]) -> list[TargetArticle]:
    wanted = url.casefold()
    return [article for article in articles if article.url.casefold() == wanted]


def post_verdict(post: Post, articles: Sequence[TargetArticle]) -> InclusionVerdict:
    """Check whether a post can be migrated, attaching its article when it can."""
    if not post.url:
        return InclusionVerdict(included=False, reason="URL is empty")
    if not post.comments:
        return InclusionVerdict(included=False, reason="no comments")

    matches = find_matching_articles(post.url, articles)
    if not matches:
        return InclusionVerdict(included=False, reason="no matching article")
    if len(matches) > 1:
        files = ", ".join(article.file_path or article.title for article in matches)
        return InclusionVerdict(included=False, reason=f"{len(matches)} matching articles ({files})")

    post.target_article = matches[0]
    return InclusionVerdict(included=True)


def match_posts(posts: Iterable[Post], articles: Sequence[TargetArticle]) -> list[Post]:
    """Return the posts to migrate, in input order."""
    retained: list[Post] = []
    for post in posts:
        verdict = post_verdict(post, articles)
        if verdict.included:
            retained.append(post)
        elif verdict.reason == "no comments":
            logger.debug(f"Post ({post.id}) has no comments: {post.url}")
        else:
            logger.info(f"Skipping post ({post.id}) {post.url}: {verdict.reason}")

    logger.info(f"Retained {len(retained)} posts")
    return retained
