"""
Migration settings, loaded from an optional YAML file and overridden by CLI flags.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Literal

import yaml

from .exceptions import ConfigurationError

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CATEGORY: Final[str] = "Announcements"
DEFAULT_COMMENT_COOLDOWN: Final[float] = 2.5
DEFAULT_DISCUSSION_COOLDOWN: Final[float] = 3.0

LookupMode = Literal["listing", "search"]


@dataclass
class MigrationSettings:
    """Static tables and target coordinates for a migration.

    ``forced_comments`` maps a Disqus comment id to True (keep even if deleted
    or spam) or False (always drop). ``user_mapping`` maps Disqus usernames to
    GitHub handles.
    """

    repository: str = ""
    category: str = DEFAULT_CATEGORY
    forum_url: str = ""
    operator_username: str | None = None
    user_mapping: dict[str, str] = field(default_factory=dict)
    forced_comments: dict[int, bool] = field(default_factory=dict)
    site_url: str = ""
    post_dirs: list[Path] = field(default_factory=list)
    series_dirs: list[Path] = field(default_factory=list)
    comment_cooldown: float = DEFAULT_COMMENT_COOLDOWN
    discussion_cooldown: float = DEFAULT_DISCUSSION_COOLDOWN
    lookup: LookupMode = "listing"

    @property
    def repository_owner(self) -> str:
        return self._split_repository()[0]

    @property
    def repository_name(self) -> str:
        return self._split_repository()[1]

    def _split_repository(self) -> tuple[str, str]:
        parts = self.repository.strip().split("/")
        if len(parts) != 2 or not all(parts):  # noqa: PLR2004
            msg = f"Invalid GitHub repository '{self.repository}'. Expected format: 'owner/repository'"
            raise ConfigurationError(msg)
        return parts[0], parts[1]


def _as_str_dict(value: Any, key: str) -> dict[str, str]:  # noqa: ANN401
    if not isinstance(value, dict):
        msg = f"'{key}' must be a mapping"
        raise ConfigurationError(msg)
    return {str(k): str(v) for k, v in value.items()}


def _as_forced_comments(value: Any) -> dict[int, bool]:  # noqa: ANN401
    if not isinstance(value, dict):
        msg = "'forced_comments' must be a mapping of comment id to true/false"
        raise ConfigurationError(msg)
    forced: dict[int, bool] = {}
    for comment_id, include in value.items():
        if not isinstance(include, bool):
            msg = f"forced_comments[{comment_id}] must be true or false, got {include!r}"
            raise ConfigurationError(msg)
        try:
            forced[int(comment_id)] = include
        except ValueError as e:
            msg = f"Invalid comment id in forced_comments: {comment_id!r}"
            raise ConfigurationError(msg) from e
    return forced


def _as_paths(value: Any, key: str, base_dir: Path) -> list[Path]:  # noqa: ANN401
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        msg = f"'{key}' must be a path or a list of paths"
        raise ConfigurationError(msg)
    return [base_dir / Path(item).expanduser() for item in value]


def load_settings(path: str | Path) -> MigrationSettings:
    """Load settings from a YAML file.

    Relative directories in ``post_dirs``/``series_dirs`` are resolved against
    the directory containing the settings file.

    Raises:
        ConfigurationError: If the file cannot be read or contains invalid values
    """
    settings_path = Path(path)
    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        msg = f"Failed to read settings file {settings_path}: {e}"
        raise ConfigurationError(msg) from e

    if not isinstance(raw, dict):
        msg = f"Settings file {settings_path} must contain a mapping"
        raise ConfigurationError(msg)

    known = {f.name for f in dataclasses.fields(MigrationSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        msg = f"Unknown settings in {settings_path}: {', '.join(unknown)}"
        raise ConfigurationError(msg)

    base_dir = settings_path.parent
    settings = MigrationSettings()
    for key, value in raw.items():
        if key == "user_mapping":
            settings.user_mapping = _as_str_dict(value, key)
        elif key == "forced_comments":
            settings.forced_comments = _as_forced_comments(value)
        elif key in ("post_dirs", "series_dirs"):
            setattr(settings, key, _as_paths(value, key, base_dir))
        elif key in ("comment_cooldown", "discussion_cooldown"):
            try:
                setattr(settings, key, float(value))
            except (TypeError, ValueError) as e:
                msg = f"'{key}' must be a number, got {value!r}"
                raise ConfigurationError(msg) from e
        elif key == "lookup":
            if value not in ("listing", "search"):
                msg = f"'lookup' must be 'listing' or 'search', got {value!r}"
                raise ConfigurationError(msg)
            settings.lookup = value
        elif key == "operator_username":
            settings.operator_username = str(value) if value is not None else None
        else:
            setattr(settings, key, str(value))

    logger.debug(f"Loaded settings from {settings_path}")
    return settings
