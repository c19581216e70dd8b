"""Durable migration state.

The checkpoint file holds the migration status and the complete forest of
posts, including every remote discussion/comment identity assigned so far. It
is rewritten wholesale after each stage and after each created comment, so a
restarted run resumes exactly where the previous one stopped.

State transitions are strictly sequential::

    UNPARSED -> PARSING_COMPLETE -> DISCUSSIONS_ASSOCIATED -> COMMENTS_ASSOCIATED
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import MigrationError
from .models import (
    Author,
    Comment,
    MigrationStatus,
    Post,
    RemoteComment,
    RemoteDiscussion,
    TargetArticle,
)

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class MigrationState:
    """Status of a run together with its forest of posts."""

    status: MigrationStatus = MigrationStatus.UNPARSED
    posts: list[Post] = field(default_factory=list)

    def advance(self, status: MigrationStatus) -> None:
        """Move to the next status. Skipping a status or going back is an error."""
        if status != self.status + 1:
            msg = f"Invalid migration state transition: {self.status.name} -> {status.name}"
            raise MigrationError(msg)
        self.status = status

    def is_past(self, status: MigrationStatus) -> bool:
        return self.status > status


def _author_to_dict(author: Author) -> dict[str, Any]:
    return {
        "name": author.name,
        "username": author.username,
        "github_user": author.github_user,
        "is_anonymous": author.is_anonymous,
        "is_operator": author.is_operator,
    }


def _comment_to_dict(comment: Comment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "created_at": comment.created_at.isoformat(),
        "author": _author_to_dict(comment.author),
        "message": comment.message,
        "children": [_comment_to_dict(child) for child in comment.children],
        "remote": {"id": comment.remote.id, "url": comment.remote.url} if comment.remote else None,
    }


def _post_to_dict(post: Post) -> dict[str, Any]:
    article = post.target_article
    discussion = post.discussion
    return {
        "id": post.id,
        "title": post.title,
        "url": post.url,
        "created_at": post.created_at.isoformat(),
        "comments": [_comment_to_dict(comment) for comment in post.comments],
        "target_article": (
            {"title": article.title, "excerpt": article.excerpt, "url": article.url, "file_path": article.file_path}
            if article
            else None
        ),
        "discussion": (
            {"id": discussion.id, "number": discussion.number, "title": discussion.title, "body": discussion.body}
            if discussion
            else None
        ),
    }


def _comment_from_dict(data: dict[str, Any]) -> Comment:
    remote = data.get("remote")
    return Comment(
        id=data["id"],
        post_id=data["post_id"],
        parent_id=data["parent_id"],
        created_at=dt.datetime.fromisoformat(data["created_at"]),
        author=Author(**data["author"]),
        message=data["message"],
        children=[_comment_from_dict(child) for child in data.get("children", [])],
        remote=RemoteComment(**remote) if remote else None,
    )


def _post_from_dict(data: dict[str, Any]) -> Post:
    article = data.get("target_article")
    discussion = data.get("discussion")
    return Post(
        id=data["id"],
        title=data["title"],
        url=data["url"],
        created_at=dt.datetime.fromisoformat(data["created_at"]),
        comments=[_comment_from_dict(comment) for comment in data.get("comments", [])],
        target_article=TargetArticle(**article) if article else None,
        discussion=RemoteDiscussion(**discussion) if discussion else None,
    )


def state_to_dict(state: MigrationState) -> dict[str, Any]:
    return {"status": int(state.status), "forest": [_post_to_dict(post) for post in state.posts]}


def state_from_dict(data: dict[str, Any]) -> MigrationState:
    return MigrationState(
        status=MigrationStatus(data["status"]),
        posts=[_post_from_dict(post) for post in data["forest"]],
    )


class Checkpointer:
    """Reads and writes the checkpoint file."""

    _path: Path

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> MigrationState:
        """Load the last persisted state.

        A missing or unreadable checkpoint starts a fresh run.
        """
        if not self._path.exists():
            logger.info(f"No checkpoint at {self._path}, starting from scratch")
            return MigrationState()

        try:
            with self._path.open(encoding="utf-8") as f:
                state = state_from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Could not read checkpoint {self._path} ({e}), starting from scratch")
            return MigrationState()

        logger.info(f"Loaded checkpoint {self._path}: {state.status.name} with {len(state.posts)} posts")
        return state

    def save(self, state: MigrationState) -> None:
        """Persist ``state``, replacing the previous checkpoint atomically."""
        temp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            # Truncates any leftover from an interrupted write; one process per checkpoint
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(state_to_dict(state), f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(self._path)
        except OSError as e:
            msg = f"Failed to write checkpoint {self._path}: {e}"
            raise MigrationError(msg) from e
        logger.debug(f"Checkpoint saved: {state.status.name}")
