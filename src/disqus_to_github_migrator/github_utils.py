"""GitHub Discussions access through PyGithub's GraphQL requester.

PyGithub has no classes for discussions, so queries and mutations go through
``Github.requester.graphql_query`` while still benefiting from PyGithub's
authentication, retries and error handling.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
from collections.abc import Iterator
from typing import Any, Final

from github import Auth, Github, GithubException

from . import utils
from .exceptions import ConfigurationError, MigrationError
from .models import RemoteComment, RemoteDiscussion
from .protocols import RateLimit, SearchResult

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105

DISCUSSIONS_PAGE_SIZE: Final[int] = 100
SEARCH_PAGE_SIZE: Final[int] = 2

_DISCUSSION_FIELDS: Final[str] = "id title body number"

REPOSITORY_ID_QUERY: Final[str] = """
query GetRepositoryId($owner: String!, $name: String!) {
    repository(owner: $owner, name: $name) {
        id
    }
}
"""

CATEGORIES_QUERY: Final[str] = """
query GetDiscussionCategories($owner: String!, $name: String!) {
    repository(owner: $owner, name: $name) {
        discussionCategories(first: 25) {
            nodes {
                id
                name
            }
        }
    }
}
"""

DISCUSSIONS_QUERY: Final[str] = f"""
query ListDiscussions($owner: String!, $name: String!, $categoryId: ID!, $first: Int!, $after: String) {{
    repository(owner: $owner, name: $name) {{
        discussions(first: $first, after: $after, categoryId: $categoryId,
                    orderBy: {{field: CREATED_AT, direction: ASC}}) {{
            pageInfo {{
                hasNextPage
                endCursor
            }}
            nodes {{
                {_DISCUSSION_FIELDS}
            }}
        }}
    }}
}}
"""

SEARCH_QUERY: Final[str] = f"""
query SearchDiscussions($query: String!, $first: Int!) {{
    search(query: $query, type: DISCUSSION, first: $first) {{
        discussionCount
        nodes {{
            ... on Discussion {{
                {_DISCUSSION_FIELDS}
            }}
        }}
    }}
}}
"""

CREATE_DISCUSSION_MUTATION: Final[str] = f"""
mutation CreateDiscussion($input: CreateDiscussionInput!) {{
    createDiscussion(input: $input) {{
        discussion {{
            {_DISCUSSION_FIELDS}
        }}
    }}
}}
"""

ADD_COMMENT_MUTATION: Final[str] = """
mutation AddDiscussionComment($input: AddDiscussionCommentInput!) {
    addDiscussionComment(input: $input) {
        comment {
            id
            url
        }
    }
}
"""

RATE_LIMIT_QUERY: Final[str] = """
query GetRateLimit {
    rateLimit {
        limit
        remaining
        resetAt
    }
}
"""


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    # Try pass path first
    if pass_path:
        return utils.get_pass_value(pass_path)

    # Try environment variable
    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    # Try default pass path
    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (utils.PassError, OSError):
        logger.warning("No GitHub token specified nor found")
        return None


def get_client(token: str) -> Github:
    """Get a GitHub client using the token."""
    if not token:
        msg = "A GitHub token is required"
        raise ConfigurationError(msg)
    return Github(auth=Auth.Token(token))


def _to_discussion(node: dict[str, Any]) -> RemoteDiscussion:
    return RemoteDiscussion(
        id=node["id"],
        number=int(node["number"]),
        title=node["title"],
        body=node["body"],
    )


class GithubDiscussions:
    """Discussions of one repository, accessed as one GitHub identity."""

    _client: Github
    _owner: str
    _name: str
    _label: str

    def __init__(self, client: Github, repository: str, *, label: str = "main") -> None:
        owner, _, name = repository.partition("/")
        if not owner or not name:
            msg = f"Invalid GitHub repository path: '{repository}'. Expected format: 'owner/repository'"
            raise ConfigurationError(msg)
        self._client = client
        self._owner = owner
        self._name = name
        self._label = label

    @property
    def repository(self) -> str:
        return f"{self._owner}/{self._name}"

    @property
    def label(self) -> str:
        return self._label

    def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query or mutation and return its ``data`` member."""
        try:
            _, response = self._client.requester.graphql_query(query, variables or {})
        except GithubException as e:
            msg = f"GitHub GraphQL request failed ({self._label}): {e}"
            raise MigrationError(msg) from e

        if response.get("errors"):
            msg = f"GraphQL errors ({self._label}): {response['errors']}"
            raise MigrationError(msg)
        data: dict[str, Any] | None = response.get("data")
        if data is None:
            msg = f"GraphQL response without data ({self._label})"
            raise MigrationError(msg)
        return data

    def _repository(self, query: str, **variables: Any) -> dict[str, Any]:  # noqa: ANN401
        data = self._graphql(query, {"owner": self._owner, "name": self._name, **variables})
        repository: dict[str, Any] | None = data.get("repository")
        if repository is None:
            msg = f"Repository {self.repository} not found"
            raise MigrationError(msg)
        return repository

    def get_repository_id(self) -> str:
        return self._repository(REPOSITORY_ID_QUERY)["id"]

    def get_category_id(self, name: str) -> str:
        nodes = self._repository(CATEGORIES_QUERY)["discussionCategories"]["nodes"]
        matches = [node["id"] for node in nodes if node["name"] == name]
        if len(matches) != 1:
            available = ", ".join(node["name"] for node in nodes)
            msg = f"Expected one discussion category named '{name}' in {self.repository}, available: {available}"
            raise MigrationError(msg)
        return matches[0]

    def list_discussions(self, category_id: str) -> Iterator[RemoteDiscussion]:
        cursor: str | None = None
        while True:
            page = self._repository(
                DISCUSSIONS_QUERY, categoryId=category_id, first=DISCUSSIONS_PAGE_SIZE, after=cursor
            )["discussions"]
            for node in page["nodes"]:
                yield _to_discussion(node)

            page_info = page["pageInfo"]
            if not page_info["hasNextPage"] or not page["nodes"]:
                return
            cursor = page_info["endCursor"]

    def search_discussions(self, query: str) -> SearchResult:
        search = self._graphql(SEARCH_QUERY, {"query": query, "first": SEARCH_PAGE_SIZE})["search"]
        # Nodes of other types come back as empty objects
        discussions = [_to_discussion(node) for node in search["nodes"] if node]
        return SearchResult(total_count=int(search["discussionCount"]), discussions=discussions)

    def create_discussion(self, repository_id: str, category_id: str, title: str, body: str) -> RemoteDiscussion:
        payload = {"repositoryId": repository_id, "categoryId": category_id, "title": title, "body": body}
        result = self._graphql(CREATE_DISCUSSION_MUTATION, {"input": payload})["createDiscussion"]
        if not result or not result.get("discussion"):
            msg = f"Failed to create discussion '{title}'"
            raise MigrationError(msg)
        return _to_discussion(result["discussion"])

    def add_discussion_comment(self, discussion_id: str, body: str, reply_to_id: str | None = None) -> RemoteComment:
        payload: dict[str, Any] = {"discussionId": discussion_id, "body": body}
        if reply_to_id is not None:
            payload["replyToId"] = reply_to_id
        result = self._graphql(ADD_COMMENT_MUTATION, {"input": payload})["addDiscussionComment"]
        if not result or not result.get("comment"):
            msg = f"Failed to create comment in discussion {discussion_id}"
            raise MigrationError(msg)
        comment = result["comment"]
        return RemoteComment(id=comment["id"], url=comment["url"])

    def get_rate_limit(self) -> RateLimit:
        data = self._graphql(RATE_LIMIT_QUERY)
        try:
            rate_limit = data["rateLimit"]
            reset_at = rate_limit.get("resetAt")
            return RateLimit(
                limit=int(rate_limit["limit"]),
                remaining=int(rate_limit["remaining"]),
                reset_at=dt.datetime.fromisoformat(reset_at) if reset_at else None,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            msg = f"Unexpected rate limit payload ({self._label}): {data}"
            raise MigrationError(msg) from e
