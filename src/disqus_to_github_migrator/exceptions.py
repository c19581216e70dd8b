"""
Custom exception classes for the Disqus to GitHub Discussions migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class DataQualityError(MigrationError):
    """Raised when the export or the override tables need manual correction.

    Examples are a dangling or cyclic parent reference, a missing required
    field, or a front matter block without title/excerpt.
    """


class AmbiguousMatchError(DataQualityError):
    """Raised when a fingerprint does not resolve to exactly one remote discussion."""


class ConfigurationError(MigrationError):
    """Raised when settings or credentials are invalid or missing."""
