"""
Tests for reading Disqus XML exports.
"""

import datetime as dt
from collections.abc import Callable
from pathlib import Path

import pytest
from conftest import comment_xml, thread_xml

from disqus_to_github_migrator import DataQualityError
from disqus_to_github_migrator.disqus_export import parse_export


@pytest.mark.unit
class TestParseExport:
    """Test parsing of thread and post records."""

    def test_reads_all_records(self, export_file: Path) -> None:
        export = parse_export(export_file)

        assert [t.id for t in export.threads] == [1001, 1002, 1003, 1004]
        assert [c.id for c in export.comments] == [2001, 2002, 2003, 2004, 2005, 2006, 2007, 2008]

    def test_thread_fields(self, export_file: Path) -> None:
        thread = parse_export(export_file).threads[1]

        assert thread.title == "Deleted post"
        assert thread.link == "https://blog.example.com/deleted-post/"
        assert thread.is_deleted is True
        assert thread.is_closed is False
        assert thread.created_at == dt.datetime(2019, 1, 1, 10, 0, tzinfo=dt.UTC)

    def test_comment_fields(self, export_file: Path) -> None:
        comment = parse_export(export_file).comments[1]

        assert comment.thread_id == 1001
        assert comment.parent_id == 2001
        assert comment.author_name == "Operator"
        assert comment.author_username == "operator"
        assert comment.author_is_anonymous is False
        assert comment.message == "<p>Thanks @alice:disqus</p>"

    def test_cdata_markup_kept_verbatim(self, export_file: Path) -> None:
        comment = parse_export(export_file).comments[2]
        assert comment.message is not None
        assert '<a href="https://example.com/some/long/path">' in comment.message

    def test_flags(self, export_file: Path) -> None:
        comments = {c.id: c for c in parse_export(export_file).comments}
        assert comments[2004].is_spam is True
        assert comments[2006].is_deleted is True
        assert comments[2001].parent_id is None

    def test_missing_username_is_none(self, make_export: Callable[..., Path]) -> None:
        path = make_export(
            thread_xml(1, "https://blog.example.com/p/"),
            comment_xml(10, 1, "<p>hi</p>", username=None),
        )
        assert parse_export(path).comments[0].author_username is None

    def test_missing_message_is_none(self, make_export: Callable[..., Path]) -> None:
        path = make_export(thread_xml(1, "https://blog.example.com/p/"), comment_xml(10, 1, None))
        assert parse_export(path).comments[0].message is None

    @pytest.mark.parametrize("empty", ["<message />", "<message></message>", "<message><![CDATA[]]></message>"])
    def test_empty_message_is_none(self, make_export: Callable[..., Path], empty: str) -> None:
        comment = comment_xml(10, 1, None).replace("<id />", f"<id />{empty}")
        path = make_export(thread_xml(1, "https://blog.example.com/p/"), comment)

        assert parse_export(path).comments[0].message is None


@pytest.mark.unit
class TestParseExportErrors:
    """Malformed required fields are data quality errors."""

    def test_malformed_xml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.xml"
        path.write_text("<disqus><thread>", encoding="utf-8")

        with pytest.raises(DataQualityError, match="Failed to parse Disqus export"):
            parse_export(path)

    def test_missing_thread_id(self, make_export: Callable[..., Path]) -> None:
        path = make_export(thread_xml(1, "https://blog.example.com/p/").replace(' dsq:id="1"', ""))

        with pytest.raises(DataQualityError, match="missing dsq:id"):
            parse_export(path)

    def test_invalid_comment_id(self, make_export: Callable[..., Path]) -> None:
        path = make_export(comment_xml(10, 1, "<p>hi</p>").replace('dsq:id="10"', 'dsq:id="ten"'))

        with pytest.raises(DataQualityError, match="invalid dsq:id"):
            parse_export(path)

    def test_missing_thread_reference(self, make_export: Callable[..., Path]) -> None:
        path = make_export(comment_xml(10, 1, "<p>hi</p>").replace('<thread dsq:id="1" />', ""))

        with pytest.raises(DataQualityError, match="missing <thread> reference"):
            parse_export(path)

    def test_invalid_boolean(self, make_export: Callable[..., Path]) -> None:
        path = make_export(
            thread_xml(1, "https://blog.example.com/p/").replace(
                "<isDeleted>false</isDeleted>", "<isDeleted>maybe</isDeleted>"
            )
        )

        with pytest.raises(DataQualityError, match="isDeleted"):
            parse_export(path)

    def test_invalid_timestamp(self, make_export: Callable[..., Path]) -> None:
        path = make_export(thread_xml(1, "https://blog.example.com/p/", created_at="yesterday"))

        with pytest.raises(DataQualityError, match="invalid <createdAt>"):
            parse_export(path)
