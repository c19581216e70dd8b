"""
Command-line interface for the Disqus to GitHub Discussions migration tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from . import github_utils as ghu
from . import utils
from .config import MigrationSettings, load_settings
from .exceptions import ConfigurationError
from .migrator import DisqusToGithubMigrator
from .utils import setup_logging


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Migrate Disqus comments to GitHub Discussions (giscus), resumably"
    )

    # Positional arguments
    _ = parser.add_argument("source", help="Disqus XML export file")

    _ = parser.add_argument("--checkpoint", "-c", required=True, help="Checkpoint file used to resume the migration")

    # Credentials
    _ = parser.add_argument("--token", "-t", help="GitHub token of the operator, i.e. your own account")
    _ = parser.add_argument(
        "--bot-token", "-b", help="GitHub token of the 'bot' account posting other people's comments"
    )
    _ = parser.add_argument(
        "--token-pass", help="Path for the operator token in pass utility (default: GITHUB_TOKEN or github/cli/token)"
    )
    _ = parser.add_argument("--bot-token-pass", help="Path for the bot token in pass utility")

    # Settings, overriding the settings file
    _ = parser.add_argument("--config", help="YAML settings file (overrides, user mapping, directories...)")
    _ = parser.add_argument("--repo", help="GitHub repository holding the discussions (owner/repo)")
    _ = parser.add_argument("--category", help="Discussion category (default: Announcements)")
    _ = parser.add_argument("--forum-url", help="Link to the Disqus forum, shown in every comment")
    _ = parser.add_argument("--operator", help="Disqus username of the operator")
    _ = parser.add_argument("--site-url", help="Base URL of the blog")
    _ = parser.add_argument("--posts-dir", action="append", help="Directory of Markdown posts. Can be repeated.")
    _ = parser.add_argument("--series-dir", action="append", help="Directory of Markdown series pages. Can be repeated.")
    _ = parser.add_argument(
        "--lookup", choices=["listing", "search"], help="How existing discussions are found (default: listing)"
    )

    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console verbosity (-v info, -vv debug)"
    )

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> MigrationSettings:
    """Load the settings file, if any, and apply command line overrides."""
    settings = load_settings(args.config) if args.config else MigrationSettings()

    overrides: dict[str, Any] = {
        "repository": args.repo,
        "category": args.category,
        "forum_url": args.forum_url,
        "operator_username": args.operator,
        "site_url": args.site_url,
        "lookup": args.lookup,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(settings, key, value)
    if args.posts_dir:
        settings.post_dirs = [Path(p) for p in args.posts_dir]
    if args.series_dir:
        settings.series_dirs = [Path(p) for p in args.series_dir]

    if not settings.repository:
        msg = "A GitHub repository is required (--repo or 'repository' in the settings file)"
        raise ConfigurationError(msg)
    # Validates the owner/name format
    _ = settings.repository_owner
    return settings


def resolve_tokens(args: argparse.Namespace) -> tuple[str, str | None]:
    """Return the operator token and the optional bot token."""
    operator_token: str | None = args.token or ghu.get_token(args.token_pass)
    if not operator_token:
        msg = "A GitHub token is required (--token, --token-pass or GITHUB_TOKEN)"
        raise ConfigurationError(msg)

    bot_token: str | None = args.bot_token
    if bot_token is None and args.bot_token_pass:
        bot_token = utils.get_pass_value(args.bot_token_pass)
    return operator_token, bot_token


def _print_report(report: dict[str, Any]) -> None:
    """Print the migration report."""
    print("=" * 50)
    print("MIGRATION REPORT")
    print("=" * 50)
    print(f"Source: {report['source']}")
    print(f"GitHub Repository: {report['github_repo']}")
    print(f"Final Status: {report['status']}")
    print(f"Result: {'PASSED' if report['success'] else 'FAILED'}")

    if report["errors"]:
        print("\nErrors:")
        for error in report["errors"]:
            print(f"  - {error}")

    statistics: dict[str, int] = report["statistics"]
    if statistics:
        print("\nStatistics:")
        for key, value in statistics.items():
            print(f"  {key.replace('_', ' ').capitalize()}: {value}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbosity: int = getattr(args, "verbose", 0)
    setup_logging(verbosity=verbosity)
    logger = logging.getLogger(__name__)

    try:
        source = Path(args.source)
        if not source.is_file():
            msg = f"Could not find specified file '{source}'"
            raise ConfigurationError(msg)

        settings = build_settings(args)
        operator_token, bot_token = resolve_tokens(args)

        migrator = DisqusToGithubMigrator(
            source,
            args.checkpoint,
            settings,
            operator_token=operator_token,
            bot_token=bot_token,
        )
        report = migrator.migrate()
        _print_report(report)

        sys.exit(0 if report["success"] else 1)

    except Exception:
        logger.exception("Migration failed")
        sys.exit(1)
