"""Read a Disqus XML export into raw thread and comment records."""

from __future__ import annotations

import datetime as dt
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .exceptions import DataQualityError

logger: logging.Logger = logging.getLogger(__name__)

NAMESPACES: Final[dict[str, str]] = {
    "def": "http://disqus.com",
    "dsq": "http://disqus.com/disqus-internals",
}
_DSQ_ID: Final[str] = f"{{{NAMESPACES['dsq']}}}id"


@dataclass(frozen=True)
class ThreadRecord:
    """A ``<thread>`` element of the export."""

    id: int
    title: str
    link: str
    is_deleted: bool
    is_closed: bool
    created_at: dt.datetime


@dataclass(frozen=True)
class CommentRecord:
    """A ``<post>`` element of the export, i.e. one comment."""

    id: int
    thread_id: int
    parent_id: int | None
    author_name: str
    author_username: str | None
    author_is_anonymous: bool
    is_deleted: bool
    is_spam: bool
    created_at: dt.datetime
    message: str | None


@dataclass(frozen=True)
class DisqusExport:
    """All records of an export, in document order."""

    threads: list[ThreadRecord]
    comments: list[CommentRecord]


def _text(element: ET.Element, tag: str) -> str | None:
    child = element.find(f"def:{tag}", NAMESPACES)
    if child is None:
        return None
    return child.text or ""


def _parse_bool(element: ET.Element, tag: str, context: str) -> bool:
    value = _text(element, tag)
    if value is None or value.strip().lower() not in ("true", "false"):
        msg = f"{context}: expected <{tag}> to be 'true' or 'false', got {value!r}"
        raise DataQualityError(msg)
    return value.strip().lower() == "true"


def _parse_timestamp(element: ET.Element, context: str) -> dt.datetime:
    value = _text(element, "createdAt")
    if not value:
        msg = f"{context}: missing <createdAt>"
        raise DataQualityError(msg)
    try:
        return dt.datetime.fromisoformat(value.strip())
    except ValueError as e:
        msg = f"{context}: invalid <createdAt> value {value!r}"
        raise DataQualityError(msg) from e


def _parse_id(element: ET.Element | None, context: str) -> int:
    raw = element.get(_DSQ_ID) if element is not None else None
    if raw is None:
        msg = f"{context}: missing dsq:id attribute"
        raise DataQualityError(msg)
    try:
        return int(raw)
    except ValueError as e:
        msg = f"{context}: invalid dsq:id attribute {raw!r}"
        raise DataQualityError(msg) from e


def _read_thread(element: ET.Element, index: int) -> ThreadRecord:
    thread_id = _parse_id(element, f"Thread #{index}")
    context = f"Thread {thread_id}"
    return ThreadRecord(
        id=thread_id,
        title=(_text(element, "title") or "").strip(),
        link=(_text(element, "link") or "").strip(),
        is_deleted=_parse_bool(element, "isDeleted", context),
        is_closed=_parse_bool(element, "isClosed", context),
        created_at=_parse_timestamp(element, context),
    )


def _read_comment(element: ET.Element, index: int) -> CommentRecord:
    comment_id = _parse_id(element, f"Comment #{index}")
    context = f"Comment {comment_id}"

    thread = element.find("def:thread", NAMESPACES)
    if thread is None:
        msg = f"{context}: missing <thread> reference"
        raise DataQualityError(msg)
    thread_id = _parse_id(thread, context)

    parent = element.find("def:parent", NAMESPACES)
    parent_id = _parse_id(parent, context) if parent is not None else None

    author = element.find("def:author", NAMESPACES)
    if author is None:
        author = ET.Element("author")
    anonymous = _text(author, "isAnonymous")

    return CommentRecord(
        id=comment_id,
        thread_id=thread_id,
        parent_id=parent_id,
        author_name=_text(author, "name") or "Anonymous",
        author_username=_text(author, "username") or None,
        author_is_anonymous=(anonymous or "").strip().lower() == "true",
        is_deleted=_parse_bool(element, "isDeleted", context),
        is_spam=_parse_bool(element, "isSpam", context),
        created_at=_parse_timestamp(element, context),
        # An empty <message/> counts as missing
        message=_text(element, "message") or None,
    )


def parse_export(source: str | Path) -> DisqusExport:
    """Parse a Disqus export file.

    Args:
        source: Path to the XML export

    Returns:
        DisqusExport with every thread and comment record, filtered or not

    Raises:
        DataQualityError: If the document is not well-formed or a required field is missing
    """
    try:
        root = ET.parse(source).getroot()  # noqa: S314 - export is a local, trusted file
    except ET.ParseError as e:
        msg = f"Failed to parse Disqus export {source}: {e}"
        raise DataQualityError(msg) from e

    threads = [_read_thread(element, i) for i, element in enumerate(root.findall("def:thread", NAMESPACES), 1)]
    comments = [_read_comment(element, i) for i, element in enumerate(root.findall("def:post", NAMESPACES), 1)]

    logger.info(f"Read {len(threads)} threads and {len(comments)} comments from {source}")
    return DisqusExport(threads=threads, comments=comments)
