"""Turn raw export records into Post and Comment entities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import DataQualityError
from .models import Author, Comment, InclusionVerdict, Post

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .disqus_export import CommentRecord, DisqusExport, ThreadRecord

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionSettings:
    """Correction tables applied while extracting entities."""

    forced_comments: Mapping[int, bool] = field(default_factory=dict)
    user_mapping: Mapping[str, str] = field(default_factory=dict)
    operator_username: str | None = None


@dataclass
class ExtractedEntities:
    """Retained posts and comments, keyed by their Disqus ids."""

    posts: dict[int, Post]
    comments: dict[int, Comment]


def thread_verdict(record: ThreadRecord) -> InclusionVerdict:
    if record.is_deleted:
        return InclusionVerdict(included=False, reason="deleted")
    if record.is_closed:
        return InclusionVerdict(included=False, reason="closed")
    return InclusionVerdict(included=True)


def comment_verdict(record: CommentRecord, forced_comments: Mapping[int, bool]) -> InclusionVerdict:
    """Decide whether a comment is kept. The override table wins over the deleted/spam flags."""
    forced = forced_comments.get(record.id)
    if forced is False:
        return InclusionVerdict(included=False, reason="force excluded")
    if forced is True:
        return InclusionVerdict(included=True, reason="force included")
    if record.is_deleted:
        return InclusionVerdict(included=False, reason="deleted")
    if record.is_spam:
        return InclusionVerdict(included=False, reason="marked as spam")
    return InclusionVerdict(included=True)


def build_author(record: CommentRecord, settings: ExtractionSettings) -> Author:
    username = record.author_username
    return Author(
        name=record.author_name,
        username=username,
        github_user=settings.user_mapping.get(username) if username else None,
        is_anonymous=record.author_is_anonymous,
        is_operator=username is not None and username == settings.operator_username,
    )


def extract_entities(export: DisqusExport, settings: ExtractionSettings) -> ExtractedEntities:
    """Build the retained posts and comments of an export.

    Raises:
        DataQualityError: If a retained comment has no message body or ids are duplicated
    """
    posts: dict[int, Post] = {}
    for record in export.threads:
        verdict = thread_verdict(record)
        if not verdict.included:
            logger.debug(f"Skipping post ({record.id}) {record.link}: {verdict.reason}")
            continue
        posts[record.id] = Post(id=record.id, title=record.title, url=record.link, created_at=record.created_at)

    comments: dict[int, Comment] = {}
    for record in export.comments:
        verdict = comment_verdict(record, settings.forced_comments)
        if not verdict.included:
            logger.debug(f"Skipping comment ({record.id}) by '{record.author_name}': {verdict.reason}")
            continue
        if verdict.reason:
            logger.debug(f"Keeping comment ({record.id}): {verdict.reason}")

        if record.message is None:
            msg = f"Comment {record.id} has no message body"
            raise DataQualityError(msg)
        if record.id in comments:
            msg = f"Duplicate comment id {record.id} in export"
            raise DataQualityError(msg)

        comments[record.id] = Comment(
            id=record.id,
            post_id=record.thread_id,
            parent_id=record.parent_id,
            created_at=record.created_at,
            author=build_author(record, settings),
            message=record.message,
        )

    logger.info(f"{len(posts)} valid posts found")
    logger.info(f"{len(comments)} valid comments found")
    return ExtractedEntities(posts=posts, comments=comments)
