"""GitHub Integration Module

This module fetches issues, pull requests and discussions from the GitHub
GraphQL API and turns them into Containers with flattened, parent-linked
comments. Every paginated collection runs through the shared PagedFetcher, so
rate limiting, retry budgets and cancellation behave identically everywhere.

Collections:
    get_issues / get_pull_requests / get_discussions: repository-wide, 100 per page
    get_issue_comments / get_pull_request_comments / get_discussion_comments:
        one item's comment thread, 100 comments per page
    fetch_repository_feedback: issues, pull requests and discussions concurrently
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence
from urllib.parse import urlparse

import requests
import structlog
from pydantic import ValidationError

from feedbackflow.config import DEFAULT_GRAPHQL_URL, Settings
from feedbackflow.models.feedback_models import Comment, CommentNode, Container, UNKNOWN_AUTHOR
from feedbackflow.models.github_schema import (
    Actor,
    GraphQLResponse,
    IssueNode,
    DiscussionNode,
    LabelConnection,
    Repository,
    ReviewConnection,
    edge_nodes,
    page_cursor,
)
from feedbackflow.models.github_schema import CommentNode as GraphCommentNode
from feedbackflow.normalizer import flatten
from feedbackflow.paging import PagedFetcher
from feedbackflow.rate_limit import DEFAULT_FALLBACK_DELAY
from feedbackflow.transport import GraphQLTransport
from feedbackflow.utils.errors import WarningsCollector

logger = structlog.get_logger()

SOURCE_ISSUE = "GitHub Issue"
SOURCE_PULL_REQUEST = "GitHub Pull Request"
SOURCE_DISCUSSION = "GitHub Discussion"

_AUTHOR = "author { login }"
_COMMENT_FIELDS = f"id body url createdAt {_AUTHOR}"

CHECK_REPOSITORY_QUERY = """
query($owner: String!, $name: String!) {
    repository(owner: $owner, name: $name) {
        id
    }
}"""

_ITEM_FIELDS = f"""
                id
                number
                {_AUTHOR}
                title
                body
                url
                createdAt
                updatedAt
                reactions {{ totalCount }}
                labels(first: 100) {{ nodes {{ name }} }}
                comments(first: 100) {{
                    edges {{ node {{ {_COMMENT_FIELDS} }} }}
                }}"""

ISSUES_QUERY = f"""
query($owner: String!, $name: String!, $after: String, $labels: [String!]) {{
    repository(owner: $owner, name: $name) {{
        issues(first: 100, after: $after, labels: $labels) {{
            edges {{
                node {{{_ITEM_FIELDS}
                }}
            }}
            pageInfo {{ hasNextPage endCursor }}
        }}
    }}
}}"""

PULL_REQUESTS_QUERY = f"""
query($owner: String!, $name: String!, $after: String, $labels: [String!]) {{
    repository(owner: $owner, name: $name) {{
        pullRequests(first: 100, after: $after, labels: $labels) {{
            edges {{
                node {{{_ITEM_FIELDS}
                }}
            }}
            pageInfo {{ hasNextPage endCursor }}
        }}
    }}
}}"""

_DISCUSSION_COMMENTS = f"""
                    edges {{
                        node {{
                            {_COMMENT_FIELDS}
                            replies(first: 100) {{
                                edges {{ node {{ {_COMMENT_FIELDS} }} }}
                            }}
                        }}
                    }}"""

DISCUSSIONS_QUERY = f"""
query($owner: String!, $name: String!, $after: String) {{
    repository(owner: $owner, name: $name) {{
        discussions(first: 100, after: $after) {{
            edges {{
                node {{
                    id
                    number
                    title
                    body
                    url
                    createdAt
                    updatedAt
                    upvoteCount
                    {_AUTHOR}
                    answer {{ id }}
                    labels(first: 100) {{ nodes {{ name }} }}
                    comments(first: 100) {{{_DISCUSSION_COMMENTS}
                    }}
                }}
            }}
            pageInfo {{ hasNextPage endCursor }}
        }}
    }}
}}"""

ISSUE_COMMENTS_QUERY = f"""
query($owner: String!, $name: String!, $after: String, $number: Int!) {{
    repository(owner: $owner, name: $name) {{
        issue(number: $number) {{
            id
            comments(first: 100, after: $after) {{
                edges {{ node {{ {_COMMENT_FIELDS} }} }}
                pageInfo {{ hasNextPage endCursor }}
            }}
        }}
    }}
}}"""

PULL_REQUEST_COMMENTS_QUERY = f"""
query($owner: String!, $name: String!, $after: String, $number: Int!) {{
    repository(owner: $owner, name: $name) {{
        pullRequest(number: $number) {{
            id
            comments(first: 100, after: $after) {{
                edges {{ node {{ {_COMMENT_FIELDS} }} }}
                pageInfo {{ hasNextPage endCursor }}
            }}
            reviews(first: 100) {{
                nodes {{
                    {_AUTHOR}
                    body
                    comments(first: 100) {{
                        nodes {{ {_COMMENT_FIELDS} path position diffHunk }}
                    }}
                }}
            }}
        }}
    }}
}}"""

DISCUSSION_COMMENTS_QUERY = f"""
query($owner: String!, $name: String!, $after: String, $number: Int!) {{
    repository(owner: $owner, name: $name) {{
        discussion(number: $number) {{
            id
            answer {{ id }}
            comments(first: 100, after: $after) {{{_DISCUSSION_COMMENTS}
                pageInfo {{ hasNextPage endCursor }}
            }}
        }}
    }}
}}"""


@dataclass(frozen=True)
class GitHubUrlInfo:
    """Parsed GitHub URL.

    Attributes:
        owner: Repository owner
        repository: Repository name
        type: "repository", "issue", "pull_request" or "discussion"
        number: Item number for issue/pull_request/discussion URLs
    """
    owner: str
    repository: str
    type: str = "repository"
    number: Optional[int] = None


_URL_TYPES = {"issues": "issue", "pull": "pull_request", "discussions": "discussion"}


def parse_github_url(url: str) -> Optional[GitHubUrlInfo]:
    """Parse a github.com URL into owner, repository and optional item.

    Example:
        >>> parse_github_url("https://github.com/dotnet/maui/issues/123")
        GitHubUrlInfo(owner='dotnet', repository='maui', type='issue', number=123)
        >>> parse_github_url("https://example.com/dotnet/maui") is None
        True
    """
    if not url or not url.strip():
        return None

    parsed = urlparse(url.strip())
    if not parsed.scheme or "github.com" not in (parsed.hostname or "").lower():
        return None

    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) < 2:
        return None

    owner, repository = segments[0], segments[1]
    if len(segments) >= 4 and segments[3].isdigit():
        item_type = _URL_TYPES.get(segments[2].lower())
        if item_type is None:
            return None
        return GitHubUrlInfo(owner, repository, item_type, int(segments[3]))

    return GitHubUrlInfo(owner, repository)


@dataclass
class RepositoryFeedback:
    """Everything fetched for one repository."""
    owner: str
    name: str
    issues: List[Container] = field(default_factory=list)
    pull_requests: List[Container] = field(default_factory=list)
    discussions: List[Container] = field(default_factory=list)

    @property
    def containers(self) -> List[Container]:
        return self.issues + self.pull_requests + self.discussions


def _login(actor: Optional[Actor]) -> str:
    if actor is None or not actor.login:
        return UNKNOWN_AUTHOR
    return actor.login


def _labels(connection: Optional[LabelConnection]) -> List[str]:
    if connection is None:
        return []
    return [label.name for label in (connection.nodes or []) if label is not None and label.name]


def _parse_repository(payload: dict) -> Optional[Repository]:
    """Validate a GraphQL payload; None when the repository field is absent."""
    try:
        response = GraphQLResponse.model_validate(payload)
    except ValidationError as e:
        logger.warning("graphql_payload_invalid", error=str(e))
        return None

    if response.data is None or response.data.repository is None:
        return None
    return response.data.repository


def comment_tree(node: GraphCommentNode) -> CommentNode:
    """Build a CommentNode (with one level of replies) from a GraphQL comment."""
    replies = []
    if node.replies is not None:
        replies = [
            CommentNode(
                id=reply.id,
                author=_login(reply.author),
                content=reply.body or "",
                created_at=reply.created_at,
                url=reply.url or "",
            )
            for reply in edge_nodes(node.replies.edges)
        ]

    return CommentNode(
        id=node.id,
        author=_login(node.author),
        content=node.body or "",
        created_at=node.created_at,
        url=node.url or "",
        replies=replies,
    )


def review_comment_trees(reviews: Optional[ReviewConnection]) -> List[CommentNode]:
    """Code-review comments as top-level CommentNodes carrying diff context."""
    trees = []
    for review in (reviews.nodes or []) if reviews is not None else []:
        if review is None or review.comments is None:
            continue
        for comment in review.comments.nodes or []:
            if comment is None:
                continue
            trees.append(CommentNode(
                id=comment.id,
                author=_login(comment.author),
                content=comment.body or "",
                created_at=comment.created_at,
                url=comment.url or "",
                code_context=comment.diff_hunk,
                file_path=comment.path,
                line_position=comment.position,
            ))
    return trees


def extract_issues_page(payload: dict):
    repository = _parse_repository(payload)
    if repository is None or repository.issues is None:
        return None
    return edge_nodes(repository.issues.edges), page_cursor(repository.issues.page_info)


def extract_pull_requests_page(payload: dict):
    repository = _parse_repository(payload)
    if repository is None or repository.pull_requests is None:
        return None
    return edge_nodes(repository.pull_requests.edges), page_cursor(repository.pull_requests.page_info)


def extract_discussions_page(payload: dict):
    repository = _parse_repository(payload)
    if repository is None or repository.discussions is None:
        return None
    return edge_nodes(repository.discussions.edges), page_cursor(repository.discussions.page_info)


def _extract_item_comments(field_name: str, on_item: Optional[Callable] = None):
    """Build an extract_page function for a single item's comment thread."""
    def extract(payload: dict):
        repository = _parse_repository(payload)
        item = getattr(repository, field_name, None) if repository is not None else None
        if item is None or item.comments is None:
            return None
        if on_item is not None:
            on_item(item)
        return edge_nodes(item.comments.edges), page_cursor(item.comments.page_info)
    return extract


class GitHubService:
    """GitHub GraphQL client producing Containers and flattened comments.

    Attributes:
        transport: Bearer-token GraphQL transport
        fetcher: Shared PagedFetcher (retry budget and backoff)
        warnings: Collector for data-quality warnings found while flattening

    Example:
        >>> service = GitHubService(token="ghp_...")
        >>> feedback = await service.fetch_repository_feedback("dotnet", "maui")
        >>> len(feedback.issues), len(feedback.discussions)
        (1234, 56)
    """

    def __init__(
        self,
        token: str,
        graphql_url: str = DEFAULT_GRAPHQL_URL,
        session: Optional[requests.Session] = None,
        max_attempts: int = 5,
        fallback_delay: float = DEFAULT_FALLBACK_DELAY,
        timeout: float = 60.0,
        warnings: Optional[WarningsCollector] = None,
    ):
        self.transport = GraphQLTransport(graphql_url, token, session=session, timeout=timeout)
        self.warnings = warnings if warnings is not None else WarningsCollector()
        self.fetcher = PagedFetcher(
            self.transport, max_attempts=max_attempts, fallback_delay=fallback_delay, warnings=self.warnings
        )

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None,
                      warnings: Optional[WarningsCollector] = None) -> "GitHubService":
        return cls(
            settings.github_token,
            graphql_url=settings.github_graphql_url,
            session=session,
            max_attempts=settings.max_attempts,
            fallback_delay=settings.fallback_delay,
            timeout=settings.request_timeout,
            warnings=warnings,
        )

    async def check_repository_valid(self, owner: str, name: str) -> bool:
        """Return True when the repository exists and is visible to the token.

        A single unretried request: any failure answers False.
        """
        variables = {"owner": owner, "name": name}
        try:
            response = await asyncio.to_thread(self.transport.send, CHECK_REPOSITORY_QUERY, variables)
        except requests.RequestException as e:
            logger.warning("repository_check_failed", owner=owner, name=name, error=str(e))
            return False

        if not 200 <= response.status_code < 300:
            logger.warning(
                "repository_check_failed",
                owner=owner,
                name=name,
                status_code=response.status_code,
            )
            return False

        try:
            payload = response.json()
        except ValueError:
            return False
        return _parse_repository(payload) is not None

    def _item_container(self, source_type: str):
        def to_container(node: IssueNode) -> Container:
            trees = [comment_tree(comment) for comment in
                     edge_nodes(node.comments.edges if node.comments is not None else None)]
            return Container(
                id=node.id or "",
                title=node.title or "",
                author=_login(node.author),
                body=node.body or "",
                url=node.url or "",
                created_at=node.created_at,
                updated_at=node.updated_at,
                labels=tuple(_labels(node.labels)),
                engagement_score=node.reactions.total_count if node.reactions is not None else 0,
                comments=tuple(flatten(trees, warnings=self.warnings)),
                source_type=source_type,
            )
        return to_container

    def _discussion_container(self, node: DiscussionNode) -> Container:
        trees = [comment_tree(comment) for comment in
                 edge_nodes(node.comments.edges if node.comments is not None else None)]
        return Container(
            id=node.id or "",
            title=node.title or "",
            author=_login(node.author),
            body=node.body or "",
            url=node.url or "",
            created_at=node.created_at,
            updated_at=node.updated_at,
            labels=tuple(_labels(node.labels)),
            engagement_score=node.upvote_count or 0,
            comments=tuple(flatten(trees, warnings=self.warnings)),
            source_type=SOURCE_DISCUSSION,
            answer_id=node.answer.id if node.answer is not None else None,
        )

    async def get_issues(
        self,
        owner: str,
        name: str,
        labels: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Container]:
        """Fetch every issue in a repository, optionally filtered by labels."""
        variables = {"owner": owner, "name": name, "labels": list(labels) if labels else None}
        return await self.fetcher.fetch_all_pages(
            ISSUES_QUERY, variables, extract_issues_page,
            self._item_container(SOURCE_ISSUE),
            collection="issues", cancel_event=cancel_event,
        )

    async def get_pull_requests(
        self,
        owner: str,
        name: str,
        labels: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Container]:
        """Fetch every pull request in a repository, optionally filtered by labels."""
        variables = {"owner": owner, "name": name, "labels": list(labels) if labels else None}
        return await self.fetcher.fetch_all_pages(
            PULL_REQUESTS_QUERY, variables, extract_pull_requests_page,
            self._item_container(SOURCE_PULL_REQUEST),
            collection="pull_requests", cancel_event=cancel_event,
        )

    async def get_discussions(
        self,
        owner: str,
        name: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Container]:
        """Fetch every discussion; replies are hoisted under their comment."""
        return await self.fetcher.fetch_all_pages(
            DISCUSSIONS_QUERY, {"owner": owner, "name": name}, extract_discussions_page,
            self._discussion_container,
            collection="discussions", cancel_event=cancel_event,
        )

    async def get_issue_comments(
        self,
        owner: str,
        name: str,
        number: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Comment]:
        trees = await self.fetcher.fetch_all_pages(
            ISSUE_COMMENTS_QUERY, {"owner": owner, "name": name, "number": number},
            _extract_item_comments("issue"), comment_tree,
            collection="issue_comments", cancel_event=cancel_event,
        )
        return flatten(trees, warnings=self.warnings)

    async def get_pull_request_comments(
        self,
        owner: str,
        name: str,
        number: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Comment]:
        """Fetch conversation comments followed by code-review comments.

        Reviews are not paginated with the conversation, so they arrive on
        every page; each review comment is kept once.
        """
        review_trees = {}

        def collect_reviews(pull_request: IssueNode) -> None:
            for tree in review_comment_trees(pull_request.reviews):
                if tree.id:
                    review_trees.setdefault(tree.id, tree)

        trees = await self.fetcher.fetch_all_pages(
            PULL_REQUEST_COMMENTS_QUERY, {"owner": owner, "name": name, "number": number},
            _extract_item_comments("pull_request", on_item=collect_reviews), comment_tree,
            collection="pull_request_comments", cancel_event=cancel_event,
        )
        return flatten(trees + list(review_trees.values()), warnings=self.warnings)

    async def get_discussion_comments(
        self,
        owner: str,
        name: str,
        number: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Comment]:
        trees = await self.fetcher.fetch_all_pages(
            DISCUSSION_COMMENTS_QUERY, {"owner": owner, "name": name, "number": number},
            _extract_item_comments("discussion"), comment_tree,
            collection="discussion_comments", cancel_event=cancel_event,
        )
        return flatten(trees, warnings=self.warnings)

    async def fetch_repository_feedback(
        self,
        owner: str,
        name: str,
        labels: Optional[Sequence[str]] = None,
        include_issues: bool = True,
        include_pull_requests: bool = True,
        include_discussions: bool = True,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RepositoryFeedback:
        """Fetch the selected collections of a repository concurrently.

        Each collection keeps its own cursor and retry budget; the first
        terminal error (exhausted retries, cancellation) propagates after the
        remaining collections are cancelled.
        """
        async def skipped() -> List[Container]:
            return []

        tasks = [
            asyncio.ensure_future(
                self.get_issues(owner, name, labels, cancel_event) if include_issues else skipped()),
            asyncio.ensure_future(
                self.get_pull_requests(owner, name, labels, cancel_event) if include_pull_requests else skipped()),
            asyncio.ensure_future(
                self.get_discussions(owner, name, cancel_event) if include_discussions else skipped()),
        ]
        try:
            issues, pull_requests, discussions = await asyncio.gather(*tasks)
        except Exception:
            # One collection failed; stop the others before propagating
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning("repository_feedback_aborted", owner=owner, name=name)
            raise

        logger.info(
            "repository_feedback_fetched",
            owner=owner,
            name=name,
            issue_count=len(issues),
            pull_request_count=len(pull_requests),
            discussion_count=len(discussions),
            warning_count=self.warnings.count(),
        )
        return RepositoryFeedback(owner, name, issues, pull_requests, discussions)
