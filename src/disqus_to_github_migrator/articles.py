"""Read the list of migratable articles from Markdown front matter."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

import yaml

from .exceptions import DataQualityError
from .models import TargetArticle

if TYPE_CHECKING:
    from collections.abc import Iterable

logger: logging.Logger = logging.getLogger(__name__)

FRONT_MATTER_SEPARATOR: Final[str] = "---"


def read_front_matter(path: Path) -> dict[str, Any] | None:
    """Return the YAML front matter of a Markdown file, or None if it has none."""
    lines = path.read_text(encoding="utf-8").splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_SEPARATOR:
        return None

    try:
        end = next(i for i, line in enumerate(lines[1:], 1) if line.strip() == FRONT_MATTER_SEPARATOR)
    except StopIteration:
        return None

    try:
        metadata = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError as e:
        msg = f"Invalid front matter in {path}: {e}"
        raise DataQualityError(msg) from e

    return metadata if isinstance(metadata, dict) else None


def read_article(path: Path, url: str) -> TargetArticle | None:
    """Build a TargetArticle from a Markdown file.

    Raises:
        DataQualityError: If the front matter lacks a title or an excerpt
    """
    metadata = read_front_matter(path)
    if metadata is None:
        logger.debug(f"No front matter in {path}, skipping")
        return None

    title = str(metadata.get("title") or "").strip()
    excerpt = str(metadata.get("excerpt") or "").strip()
    if not excerpt:
        msg = f"Excerpt in {path} was missing"
        raise DataQualityError(msg)
    if not title:
        msg = f"Title in {path} was missing"
        raise DataQualityError(msg)

    return TargetArticle(title=title, excerpt=excerpt, url=url, file_path=str(path))


def _read_directory(directory: Path, url_prefix: str) -> list[TargetArticle]:
    articles: list[TargetArticle] = []
    for path in sorted(directory.glob("*.md")):
        article = read_article(path, f"{url_prefix}{path.stem}/")
        if article is not None:
            articles.append(article)
    return articles


def load_target_articles(
    site_url: str,
    post_dirs: Iterable[Path] = (),
    series_dirs: Iterable[Path] = (),
) -> list[TargetArticle]:
    """Collect articles from post and series directories.

    Posts live at ``<site_url>/<stem>/`` and series pages at ``<site_url>/series/<stem>/``.
    """
    base_url = site_url.rstrip("/") + "/"
    articles: list[TargetArticle] = []
    for directory in post_dirs:
        articles.extend(_read_directory(Path(directory), base_url))
    for directory in series_dirs:
        articles.extend(_read_directory(Path(directory), f"{base_url}series/"))

    logger.info(f"Found {len(articles)} valid articles")
    return articles
