"""Feedback data models for the FeedbackFlow ingestion core.

This module defines the data structures that flow from the remote content APIs
through comment normalization to the chunked analysis step.

Data Models:
    Comment: a single flattened, parent-linked comment record
    CommentNode: a platform-neutral reply tree node built by source adapters
    Container: an issue, pull request, discussion, thread, story or post with comments
    PageCursor: pagination state reported by one page of a collection
    RetryState: per-page attempt counter with a fixed budget
    AnalysisChunk: a bounded slice of analysis input text

These models use dataclasses for simplicity. Comment and Container are frozen:
they are constructed once per fetch cycle and never mutated afterwards.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

# Author sentinel used whenever a platform omits or deletes the author
UNKNOWN_AUTHOR = "unknown"


@dataclass(frozen=True)
class Comment:
    """A single comment after hoisting into a flat sequence.

    Attributes:
        id: Comment identifier, unique within its source collection
        parent_id: Id of the immediate parent comment (None for top-level)
        author: Author login/display name ("unknown" when missing)
        content: Raw body text or HTML
        created_at: Creation timestamp in the source's native precision
        url: Canonical permalink (empty string when the platform has none)
        code_context: Diff hunk for code-review comments
        file_path: Reviewed file path for code-review comments
        line_position: Line position for code-review comments
        score: Upvotes/likes when the platform reports them
    """
    id: str
    parent_id: Optional[str]
    author: str
    content: str
    created_at: Union[str, int, float, None]
    url: str = ""
    code_context: Optional[str] = None
    file_path: Optional[str] = None
    line_position: Optional[int] = None
    score: Optional[int] = None


@dataclass
class CommentNode:
    """One node of a nested reply tree, before flattening.

    Source adapters build these from platform-specific payloads; the
    normalizer walks them into Comment records.
    """
    id: str
    author: str = UNKNOWN_AUTHOR
    content: str = ""
    created_at: Union[str, int, float, None] = None
    url: str = ""
    code_context: Optional[str] = None
    file_path: Optional[str] = None
    line_position: Optional[int] = None
    score: Optional[int] = None
    replies: List["CommentNode"] = field(default_factory=list)


@dataclass(frozen=True)
class Container:
    """A discussion container with its flattened comments.

    Attributes:
        id: Platform identifier of the container
        title: Title (issue/PR/discussion/thread/story/video)
        author: Author of the original post
        body: Body/description of the original post
        url: Canonical URL
        created_at: Creation timestamp (source-native)
        updated_at: Last update timestamp (source-native, may be None)
        labels: Ordered, de-duplicated label names
        engagement_score: Upvotes/reactions, never negative
        comments: Flattened, parent-linked comments in traversal order
        source_type: Platform tag, e.g. "GitHub Issue", "Reddit"
        answer_id: Accepted answer comment id (GitHub discussions only)
    """
    id: str
    title: str
    author: str
    body: str
    url: str
    created_at: Union[str, int, float, None]
    updated_at: Union[str, int, float, None] = None
    labels: Tuple[str, ...] = ()
    engagement_score: int = 0
    comments: Tuple[Comment, ...] = ()
    source_type: str = ""
    answer_id: Optional[str] = None

    def __post_init__(self):
        # Labels are an ordered set; negative engagement is clamped to zero
        object.__setattr__(self, "labels", tuple(dict.fromkeys(self.labels)))
        object.__setattr__(self, "comments", tuple(self.comments))
        object.__setattr__(self, "engagement_score", max(0, int(self.engagement_score or 0)))


@dataclass(frozen=True)
class PageCursor:
    """Pagination info for one page of a collection.

    end_cursor must be set whenever has_next_page is true; see is_consistent.
    """
    has_next_page: bool
    end_cursor: Optional[str] = None

    @property
    def is_consistent(self) -> bool:
        return not self.has_next_page or bool(self.end_cursor)


@dataclass
class RetryState:
    """Attempt counter scoped to a single page fetch.

    Attributes:
        max_attempts: Fixed retry budget for one page
        attempt_count: Failed attempts for the current page (reset on success)
    """
    max_attempts: int = 5
    attempt_count: int = 0

    def record_failure(self) -> None:
        self.attempt_count += 1

    def reset(self) -> None:
        self.attempt_count = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts


@dataclass(frozen=True)
class AnalysisChunk:
    """A bounded slice of analysis input.

    Attributes:
        text: Chunk text (never longer than the configured budget)
        sequence_index: 0-based position used for recombination
        separator: Text that sat between the previous chunk and this one in the
            original input: "\\n" after a line-boundary split, "" after a hard
            split of an oversized line (and for the first chunk)
    """
    text: str
    sequence_index: int
    separator: str = ""
