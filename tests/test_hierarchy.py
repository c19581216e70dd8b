"""
Tests for rebuilding the post/comment/reply forest.
"""

import datetime as dt

import pytest

from disqus_to_github_migrator import DataQualityError
from disqus_to_github_migrator.hierarchy import build_hierarchy, find_top_level_ancestor, format_forest
from disqus_to_github_migrator.models import Author, Comment, Post

CREATED = dt.datetime(2019, 1, 2, tzinfo=dt.UTC)


def _comment(comment_id: int, parent_id: int | None = None, post_id: int = 1) -> Comment:
    return Comment(
        id=comment_id,
        post_id=post_id,
        parent_id=parent_id,
        created_at=CREATED,
        author=Author(name=f"User {comment_id}", username=f"user{comment_id}"),
    )


def _post(post_id: int = 1) -> Post:
    return Post(id=post_id, title="Post", url=f"https://blog.example.com/post-{post_id}/", created_at=CREATED)


@pytest.mark.unit
class TestFindTopLevelAncestor:
    """Test parent chain resolution."""

    def test_top_level_comment_is_its_own_ancestor(self) -> None:
        comment = _comment(1)
        assert find_top_level_ancestor(comment, {1: comment}) is comment

    def test_deep_chain(self) -> None:
        comments = {1: _comment(1), 2: _comment(2, 1), 3: _comment(3, 2), 4: _comment(4, 3)}
        assert find_top_level_ancestor(comments[4], comments) is comments[1]

    def test_dangling_parent_raises(self) -> None:
        comments = {2: _comment(2, 1)}

        with pytest.raises(DataQualityError, match="parent comment 1 does not exist or was excluded"):
            find_top_level_ancestor(comments[2], comments)

    def test_cycle_raises(self) -> None:
        comments = {1: _comment(1, 3), 2: _comment(2, 1), 3: _comment(3, 2)}

        with pytest.raises(DataQualityError, match="contains a cycle"):
            find_top_level_ancestor(comments[2], comments)

    def test_self_reference_raises(self) -> None:
        comments = {1: _comment(1, 1)}

        with pytest.raises(DataQualityError, match="contains a cycle"):
            find_top_level_ancestor(comments[1], comments)


@pytest.mark.unit
class TestBuildHierarchy:
    """Test flattening of reply chains onto top-level comments."""

    def test_replies_flattened_to_depth_two(self) -> None:
        post = _post()
        comments = {1: _comment(1), 2: _comment(2, 1), 3: _comment(3, 2), 4: _comment(4, 3), 5: _comment(5)}

        build_hierarchy({1: post}, comments)

        assert [c.id for c in post.comments] == [1, 5]
        assert [c.id for c in comments[1].children] == [2, 3, 4]
        assert comments[5].children == []
        for reply in comments[1].children:
            assert reply.children == []

    def test_original_parent_preserved(self) -> None:
        post = _post()
        comments = {1: _comment(1), 2: _comment(2, 1), 3: _comment(3, 2)}

        build_hierarchy({1: post}, comments)

        assert comments[3].parent_id == 2

    def test_comments_distributed_to_their_posts(self) -> None:
        first, second = _post(1), _post(2)
        comments = {1: _comment(1, post_id=1), 2: _comment(2, post_id=2), 3: _comment(3, 2, post_id=2)}

        build_hierarchy({1: first, 2: second}, comments)

        assert [c.id for c in first.comments] == [1]
        assert [c.id for c in second.comments] == [2]
        assert [c.id for c in comments[2].children] == [3]

    def test_top_level_comment_of_dropped_post_ignored(self) -> None:
        post = _post(1)
        comments = {1: _comment(1, post_id=1), 2: _comment(2, post_id=99)}

        build_hierarchy({1: post}, comments)

        assert [c.id for c in post.comments] == [1]

    def test_reply_to_excluded_comment_raises(self) -> None:
        comments = {2: _comment(2, 1)}

        with pytest.raises(DataQualityError, match="Error adding child comment 2"):
            build_hierarchy({1: _post()}, comments)


@pytest.mark.unit
class TestFormatForest:
    """Test the verbose tree dump."""

    def test_indented_tree(self) -> None:
        post = _post()
        comments = {1: _comment(1), 2: _comment(2, 1)}
        build_hierarchy({1: post}, comments)

        lines = format_forest([post]).splitlines()

        assert lines[0] == f"{post.url} ({post.fingerprint})"
        assert lines[1] == "  Comment by user1"
        assert lines[2] == "    Comment by user2"
