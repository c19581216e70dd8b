"""Find or create the remote discussions and comments for the migrated forest.

Both phases are idempotent:

* A discussion is found again through the fingerprint embedded in its body,
  so an interrupted or repeated run never creates a second discussion for
  the same post, even when starting from an empty checkpoint.
* A comment that already carries a remote identity is never submitted
  again. The checkpoint callback runs right after each comment is created.
  If the process dies between the remote write and the checkpoint write, the
  comment is created again on the next run (at-least-once).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .comment_builder import build_comment_body, build_discussion_body
from .exceptions import AmbiguousMatchError, MigrationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from .config import LookupMode
    from .models import Author, Comment, Post, RemoteDiscussion
    from .protocols import DiscussionsApi

logger: logging.Logger = logging.getLogger(__name__)


class Identity(Enum):
    """The two GitHub accounts used to write to the discussions."""

    OPERATOR = "operator"
    BOT = "bot"


def select_identity(author: Author) -> Identity:
    """Comments written by the operator are posted as the operator, everything else as the bot."""
    return Identity.OPERATOR if author.is_operator else Identity.BOT


@dataclass(frozen=True)
class IdentitySet:
    """Remote API handles for both identities. They may share the same token."""

    operator: DiscussionsApi
    bot: DiscussionsApi

    def get(self, identity: Identity) -> DiscussionsApi:
        return self.operator if identity is Identity.OPERATOR else self.bot


@dataclass
class ReconciliationStats:
    """Counters collected while reconciling."""

    discussions_found: int = 0
    discussions_created: int = 0
    comments_created: int = 0
    comments_skipped: int = 0


def find_discussion(discussions: Iterable[RemoteDiscussion], post: Post) -> RemoteDiscussion | None:
    """Return the one discussion whose body contains the post's fingerprint.

    Raises:
        AmbiguousMatchError: If several discussions carry the fingerprint
    """
    fingerprint = post.fingerprint
    matches = [discussion for discussion in discussions if fingerprint in discussion.body]
    if len(matches) > 1:
        numbers = ", ".join(f"#{discussion.number}" for discussion in matches)
        msg = f"Found {len(matches)} discussions ({numbers}) for {post.discussion_title} ({fingerprint})"
        raise AmbiguousMatchError(msg)
    return matches[0] if matches else None


class Reconciler:
    """Associates posts with discussions and comments with discussion comments."""

    def __init__(
        self,
        identities: IdentitySet,
        *,
        repository: str,
        category: str,
        forum_url: str,
        lookup: LookupMode = "listing",
        comment_cooldown: float = 2.5,
        discussion_cooldown: float = 3.0,
    ) -> None:
        self.identities: IdentitySet = identities
        self.repository: str = repository
        self.category: str = category
        self.forum_url: str = forum_url
        self.lookup: LookupMode = lookup
        self.comment_cooldown: float = comment_cooldown
        self.discussion_cooldown: float = discussion_cooldown
        self.stats: ReconciliationStats = ReconciliationStats()

    def log_rate_limits(self) -> None:
        """Log the remaining GraphQL budget of both identities. Failures are only logged."""
        for identity in Identity:
            try:
                rate_limit = self.identities.get(identity).get_rate_limit()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Error fetching rate limit for the {identity.value} identity: {e}")
                continue
            reset_at = rate_limit.reset_at.strftime("%H:%M:%S") if rate_limit.reset_at else "unknown"
            logger.info(
                f"The {identity.value} identity has {rate_limit.remaining} of {rate_limit.limit} "
                f"requests left. Resets at {reset_at}"
            )

    def search_discussion(self, post: Post) -> RemoteDiscussion | None:
        """Find the discussion of a post through GitHub search.

        Raises:
            AmbiguousMatchError: If the search returns several discussions, or one that does not match the post
        """
        fingerprint = post.fingerprint
        result = self.identities.operator.search_discussions(f"{fingerprint} repo:{self.repository} in:body")

        if result.total_count == 0:
            return None
        if result.total_count > 1 or len(result.discussions) != 1:
            msg = f"Unexpectedly found {result.total_count} discussions for {post.discussion_title} ({fingerprint})"
            raise AmbiguousMatchError(msg)

        discussion = result.discussions[0]
        if discussion.title != post.discussion_title or fingerprint not in discussion.body:
            msg = (
                f"Found discussion #{discussion.number}, but it didn't match expected values:\n"
                f"Expected title: {post.discussion_title}, found: {discussion.title}\n"
                f"Expected hash: {fingerprint}, found body: {discussion.body}"
            )
            raise AmbiguousMatchError(msg)
        return discussion

    def _create_discussion(self, post: Post, repository_id: str, category_id: str) -> RemoteDiscussion:
        # Only the operator has permission to create discussions
        discussion = self.identities.operator.create_discussion(
            repository_id, category_id, post.discussion_title, build_discussion_body(post)
        )
        self.stats.discussions_created += 1
        logger.info(f"Created discussion #{discussion.number} for post {post.title}")
        # Pause to stay clear of GitHub's secondary (abuse) rate limits
        time.sleep(self.discussion_cooldown)
        return discussion

    def associate_discussions(self, posts: Sequence[Post]) -> None:
        """Give every post a discussion, reusing existing ones.

        Raises:
            MigrationError: On any remote failure; posts resolved so far keep their discussion
        """
        self.log_rate_limits()
        operator = self.identities.operator
        repository_id = operator.get_repository_id()
        category_id = operator.get_category_id(self.category)

        existing: list[RemoteDiscussion] = []
        if self.lookup == "listing":
            existing = list({d.id: d for d in operator.list_discussions(category_id)}.values())
            logger.info(f"Fetched {len(existing)} discussions")

        for post in posts:
            if post.discussion is not None:
                continue
            try:
                if self.lookup == "listing":
                    discussion = find_discussion(existing, post)
                else:
                    discussion = self.search_discussion(post)

                if discussion is not None:
                    self.stats.discussions_found += 1
                    logger.info(f"Found discussion #{discussion.number} for {post.title}")
                else:
                    logger.debug(f"No discussion found for {post.discussion_title} ({post.fingerprint})")
                    discussion = self._create_discussion(post, repository_id, category_id)
                    existing.append(discussion)
            except MigrationError:
                logger.error(f"Error fetching/creating discussion for post {post.title}")  # noqa: TRY400
                raise
            post.assign_discussion(discussion)

        logger.info("Matched up discussions successfully")

    def _create_comment(
        self,
        post: Post,
        comment: Comment,
        reply_to: Comment | None,
        checkpoint: Callable[[], None],
    ) -> None:
        if comment.remote is not None:
            self.stats.comments_skipped += 1
            return
        if post.discussion is None:
            msg = f"Post {post.id} has no discussion"
            raise MigrationError(msg)

        reply_to_id: str | None = None
        if reply_to is not None:
            if reply_to.remote is None:
                msg = f"Cannot reply to comment {reply_to.id} before it exists on GitHub"
                raise MigrationError(msg)
            reply_to_id = reply_to.remote.id

        identity = select_identity(comment.author)
        body = build_comment_body(comment, self.forum_url, reply_to)
        try:
            remote = self.identities.get(identity).add_discussion_comment(post.discussion.id, body, reply_to_id)
        except MigrationError:
            logger.error(f"Error adding comment {comment.id} from {comment.author.username} to {post.title}")  # noqa: TRY400
            raise

        comment.assign_remote(remote)
        self.stats.comments_created += 1
        logger.debug(f"Created comment {comment.id} as {identity.value}: {remote.url}")
        checkpoint()
        # Pause to stay clear of GitHub's secondary (abuse) rate limits
        time.sleep(self.comment_cooldown)

    def associate_comments(self, posts: Sequence[Post], checkpoint: Callable[[], None]) -> None:
        """Create every missing comment, top-level comments before their replies.

        Args:
            posts: Posts that all have a discussion
            checkpoint: Called after each created comment to persist progress

        Raises:
            MigrationError: On any remote failure
        """
        self.log_rate_limits()
        for post in posts:
            if post.discussion is None:
                msg = f"Post {post.id} ({post.url}) has no discussion"
                raise MigrationError(msg)
            logger.info(f"Adding comments for {post.title}")
            for comment in post.comments:
                self._create_comment(post, comment, None, checkpoint)
                for child in comment.children:
                    self._create_comment(post, child, comment, checkpoint)
