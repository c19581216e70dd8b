"""Rebuild the post → comment → reply tree from Disqus parent references.

GitHub discussions only render two levels: top-level comments and a flat list
of replies. Every reply is therefore attached to its top-level ancestor, no
matter how deep its Disqus parent chain is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import DataQualityError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .models import Comment, Post

logger: logging.Logger = logging.getLogger(__name__)


def find_top_level_ancestor(comment: Comment, comments: Mapping[int, Comment]) -> Comment:
    """Walk up the parent chain of ``comment`` until a comment without parent is reached.

    Raises:
        DataQualityError: If a parent is missing (e.g. it was filtered out) or the chain contains a cycle
    """
    current = comment
    visited: set[int] = {comment.id}
    # A chain longer than the number of comments can only be a cycle
    for _ in range(len(comments) + 1):
        if current.parent_id is None:
            return current
        parent = comments.get(current.parent_id)
        if parent is None:
            msg = (
                f"Error adding child comment {comment.id}: parent comment {current.parent_id} "
                "does not exist or was excluded"
            )
            raise DataQualityError(msg)
        if parent.id in visited:
            msg = f"Parent chain of comment {comment.id} contains a cycle at comment {parent.id}"
            raise DataQualityError(msg)
        visited.add(parent.id)
        current = parent

    msg = f"Parent chain of comment {comment.id} does not terminate"
    raise DataQualityError(msg)


def build_hierarchy(posts: Mapping[int, Post], comments: Mapping[int, Comment]) -> None:
    """Attach comments to their posts and replies to their top-level comments, in place.

    Top-level comments of posts that were not retained are dropped.

    Raises:
        DataQualityError: If a parent reference is dangling or cyclic
    """
    logger.debug("Adding top-level comments to posts...")
    for comment in comments.values():
        if comment.parent_id is not None:
            continue
        post = posts.get(comment.post_id)
        if post is None:
            logger.debug(f"Dropping comment {comment.id}: post {comment.post_id} was not retained")
            continue
        post.comments.append(comment)

    logger.debug("Adding child comments...")
    for comment in comments.values():
        if comment.parent_id is None:
            continue
        ancestor = find_top_level_ancestor(comment, comments)
        if ancestor.id != comment.parent_id:
            logger.debug(f"Re-parenting comment {comment.id} from {comment.parent_id} to {ancestor.id}")
        ancestor.children.append(comment)


def format_forest(posts: Iterable[Post]) -> str:
    """Render the forest as an indented text tree for verbose output."""
    lines: list[str] = []
    for post in posts:
        lines.append(f"{post.url} ({post.fingerprint})")
        for comment in post.comments:
            lines.append(f"  Comment by {comment.author.username or 'Anonymous'}")
            lines.extend(f"    Comment by {child.author.username or 'Anonymous'}" for child in comment.children)
    return "\n".join(lines)
