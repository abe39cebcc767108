"""Pydantic models for GitHub GraphQL responses.

One set of models covers every query GitHubService issues. Fields the server
may omit (deleted authors, missing connections, a repository that no longer
exists) are optional, so an absent field is a None to check rather than a
KeyError. Unknown fields are ignored.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from feedbackflow.models.feedback_models import PageCursor


class GitHubModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Actor(GitHubModel):
    login: Optional[str] = None


class PageInfo(GitHubModel):
    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: Optional[str] = Field(default=None, alias="endCursor")

    def to_cursor(self) -> PageCursor:
        return PageCursor(has_next_page=self.has_next_page, end_cursor=self.end_cursor)


class ReplyNode(GitHubModel):
    """A comment or reply node as returned inside ``edges { node { ... } }``."""
    id: Optional[str] = None
    body: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    author: Optional[Actor] = None


class ReplyEdge(GitHubModel):
    node: Optional[ReplyNode] = None


class ReplyConnection(GitHubModel):
    edges: Optional[List[Optional[ReplyEdge]]] = None
    page_info: Optional[PageInfo] = Field(default=None, alias="pageInfo")


class CommentNode(ReplyNode):
    """Top-level comment; discussion comments carry one level of replies."""
    replies: Optional[ReplyConnection] = None


class CommentEdge(GitHubModel):
    node: Optional[CommentNode] = None


class CommentConnection(GitHubModel):
    edges: Optional[List[Optional[CommentEdge]]] = None
    page_info: Optional[PageInfo] = Field(default=None, alias="pageInfo")


class ReviewComment(ReplyNode):
    """Code-review comment attached to a diff position."""
    path: Optional[str] = None
    position: Optional[int] = None
    diff_hunk: Optional[str] = Field(default=None, alias="diffHunk")


class ReviewCommentConnection(GitHubModel):
    nodes: Optional[List[Optional[ReviewComment]]] = None


class Review(GitHubModel):
    author: Optional[Actor] = None
    body: Optional[str] = None
    comments: Optional[ReviewCommentConnection] = None


class ReviewConnection(GitHubModel):
    nodes: Optional[List[Optional[Review]]] = None


class TotalCount(GitHubModel):
    total_count: int = Field(default=0, alias="totalCount")


class Label(GitHubModel):
    name: Optional[str] = None


class LabelConnection(GitHubModel):
    nodes: Optional[List[Optional[Label]]] = None


class Answer(GitHubModel):
    id: Optional[str] = None


class IssueNode(GitHubModel):
    """Issue or pull request."""
    id: Optional[str] = None
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    author: Optional[Actor] = None
    reactions: Optional[TotalCount] = None
    labels: Optional[LabelConnection] = None
    comments: Optional[CommentConnection] = None
    reviews: Optional[ReviewConnection] = None


class DiscussionNode(GitHubModel):
    id: Optional[str] = None
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    author: Optional[Actor] = None
    upvote_count: Optional[int] = Field(default=None, alias="upvoteCount")
    answer: Optional[Answer] = None
    labels: Optional[LabelConnection] = None
    comments: Optional[CommentConnection] = None


class IssueEdge(GitHubModel):
    node: Optional[IssueNode] = None


class IssueConnection(GitHubModel):
    edges: Optional[List[Optional[IssueEdge]]] = None
    page_info: Optional[PageInfo] = Field(default=None, alias="pageInfo")


class DiscussionEdge(GitHubModel):
    node: Optional[DiscussionNode] = None


class DiscussionConnection(GitHubModel):
    edges: Optional[List[Optional[DiscussionEdge]]] = None
    page_info: Optional[PageInfo] = Field(default=None, alias="pageInfo")


class Repository(GitHubModel):
    id: Optional[str] = None
    issues: Optional[IssueConnection] = None
    pull_requests: Optional[IssueConnection] = Field(default=None, alias="pullRequests")
    discussions: Optional[DiscussionConnection] = None
    issue: Optional[IssueNode] = None
    pull_request: Optional[IssueNode] = Field(default=None, alias="pullRequest")
    discussion: Optional[DiscussionNode] = None


class GraphQLData(GitHubModel):
    repository: Optional[Repository] = None


class GraphQLResponse(GitHubModel):
    data: Optional[GraphQLData] = None
    errors: Optional[List[Dict[str, Any]]] = None


def edge_nodes(edges) -> List[Any]:
    """Unwrap ``edges[].node``, dropping null edges and nodes."""
    return [edge.node for edge in (edges or []) if edge is not None and edge.node is not None]


def page_cursor(page_info: Optional[PageInfo]) -> PageCursor:
    """PageCursor for a connection; a missing pageInfo means no further pages."""
    if page_info is None:
        return PageCursor(has_next_page=False)
    return page_info.to_cursor()
