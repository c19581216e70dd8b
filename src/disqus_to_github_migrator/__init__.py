"""
Disqus to GitHub Discussions Migration Tool

Migrates a Disqus comment export to GitHub Discussions (as used by giscus),
preserving authors, timestamps and reply structure. Runs are checkpointed and
can be resumed without duplicating discussions or comments.
"""

from __future__ import annotations

from .cli import main
from .exceptions import AmbiguousMatchError, ConfigurationError, DataQualityError, MigrationError
from .migrator import DisqusToGithubMigrator
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "AmbiguousMatchError",
    "ConfigurationError",
    "DataQualityError",
    "DisqusToGithubMigrator",
    "MigrationError",
    "main",
    "setup_logging",
]
