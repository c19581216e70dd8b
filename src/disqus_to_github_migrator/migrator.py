"""
Main migration class for Disqus to GitHub Discussions migration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import github_utils as ghu
from .articles import load_target_articles
from .checkpoint import Checkpointer, MigrationState
from .disqus_export import parse_export
from .extractor import ExtractionSettings, extract_entities
from .hierarchy import build_hierarchy, format_forest
from .matcher import match_posts
from .models import MigrationStatus
from .normalizer import normalize_comments
from .reconciler import IdentitySet, Reconciler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import MigrationSettings
    from .models import Post, TargetArticle

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


class DisqusToGithubMigrator:
    """Runs the checkpointed migration of a Disqus export to GitHub Discussions."""

    def __init__(
        self,
        source_path: str | Path,
        checkpoint_path: str | Path,
        settings: MigrationSettings,
        *,
        operator_token: str | None = None,
        bot_token: str | None = None,
        identities: IdentitySet | None = None,
        articles: Sequence[TargetArticle] | None = None,
    ) -> None:
        self.source_path: Path = Path(source_path)
        self.settings: MigrationSettings = settings
        self.checkpointer: Checkpointer = Checkpointer(checkpoint_path)
        self._articles: Sequence[TargetArticle] | None = articles

        if identities is None:
            operator_client = ghu.get_client(operator_token or "")
            # The bot identity falls back to the operator's token
            bot_client = ghu.get_client(bot_token) if bot_token else operator_client
            identities = IdentitySet(
                operator=ghu.GithubDiscussions(operator_client, settings.repository, label="operator"),
                bot=ghu.GithubDiscussions(bot_client, settings.repository, label="bot"),
            )

        self.reconciler: Reconciler = Reconciler(
            identities,
            repository=settings.repository,
            category=settings.category,
            forum_url=settings.forum_url,
            lookup=settings.lookup,
            comment_cooldown=settings.comment_cooldown,
            discussion_cooldown=settings.discussion_cooldown,
        )

        logger.info(f"Initialized migrator for {self.source_path} -> {settings.repository}")

    def load_articles(self) -> Sequence[TargetArticle]:
        if self._articles is None:
            self._articles = load_target_articles(
                self.settings.site_url, self.settings.post_dirs, self.settings.series_dirs
            )
            if not self._articles:
                logger.warning("No target articles found, no post will be migrated")
        return self._articles

    def parse_source(self) -> list[Post]:
        """Read the export and build the forest of posts to migrate."""
        export = parse_export(self.source_path)
        entities = extract_entities(
            export,
            ExtractionSettings(
                forced_comments=self.settings.forced_comments,
                user_mapping=self.settings.user_mapping,
                operator_username=self.settings.operator_username,
            ),
        )
        normalize_comments(entities.comments.values())
        build_hierarchy(entities.posts, entities.comments)
        posts = match_posts(entities.posts.values(), self.load_articles())

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Comment tree:\n" + format_forest(posts))
        return posts

    def migrate(self) -> dict[str, Any]:
        """Run every stage that the checkpoint has not completed yet.

        Returns:
            Report with the final status and statistics

        Raises:
            MigrationError: On any fatal error. Completed stages and created comments stay checkpointed.
        """
        state = self.checkpointer.load()

        if state.status == MigrationStatus.UNPARSED:
            print("Parsing Disqus export...")
            state.posts = self.parse_source()
            state.advance(MigrationStatus.PARSING_COMPLETE)
            self.checkpointer.save(state)

        if state.status == MigrationStatus.PARSING_COMPLETE:
            print(f"Associating discussions for {len(state.posts)} posts...")
            self.reconciler.associate_discussions(state.posts)
            state.advance(MigrationStatus.DISCUSSIONS_ASSOCIATED)
            self.checkpointer.save(state)

        if state.status == MigrationStatus.DISCUSSIONS_ASSOCIATED:
            print("Adding comments...")
            self.reconciler.associate_comments(state.posts, lambda: self.checkpointer.save(state))
            state.advance(MigrationStatus.COMMENTS_ASSOCIATED)
            self.checkpointer.save(state)

        logger.info("Migration completed successfully")
        return self.build_report(state)

    def build_report(self, state: MigrationState) -> dict[str, Any]:
        comments = [comment for post in state.posts for comment in post.iter_comments()]
        stats = self.reconciler.stats
        return {
            "source": str(self.source_path),
            "github_repo": self.settings.repository,
            "status": state.status.name,
            "success": state.status == MigrationStatus.COMMENTS_ASSOCIATED,
            "errors": [],
            "statistics": {
                "posts_retained": len(state.posts),
                "posts_with_discussion": sum(1 for post in state.posts if post.discussion is not None),
                "comments_total": len(comments),
                "comments_migrated": sum(1 for comment in comments if comment.remote is not None),
                "discussions_found": stats.discussions_found,
                "discussions_created": stats.discussions_created,
                "comments_created": stats.comments_created,
                "comments_skipped": stats.comments_skipped,
            },
        }
