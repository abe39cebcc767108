"""Comment tree normalization.

Platforms return replies as nested trees of arbitrary depth. This module hoists
them into a flat, parent-linked sequence in pre-order (parent before its
descendants, siblings in source order) and renders indented transcripts for
the analysis step.

Traversal is iterative with an explicit stack, so a 10,000-deep reply chain
costs heap, not interpreter frames. A visited set keyed on comment id makes
the walk terminate on cycles, self references and duplicated nodes; those are
skipped and reported as data-quality warnings instead of raising.

Functions:
    flatten: CommentNode trees to Comment records
    flatten_with_depth: same traversal, paired with nesting depth
    render_transcript: "Comment by {author}: {content}" lines, two spaces per level
    build_tree: regroup parent-linked Comment records into CommentNode trees
    format_containers_for_analysis: serialize Containers into analysis input text
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from feedbackflow.models.feedback_models import Comment, CommentNode, Container, UNKNOWN_AUTHOR
from feedbackflow.utils.errors import (
    WARNING_TYPE_COMMENT_CYCLE_SKIPPED,
    WARNING_TYPE_MALFORMED_NODE_SKIPPED,
    WARNING_TYPE_ORPHANED_PARENT_REFERENCE,
    WarningsCollector,
)

logger = structlog.get_logger()

INDENT = "  "


def _warn(warnings: Optional[WarningsCollector], warning_type: str, message: str, **context) -> None:
    logger.debug(warning_type, message=message, **context)
    if warnings is not None:
        warnings.append(warning_type, message, context)


def _to_comment(node: CommentNode, parent_id: Optional[str]) -> Comment:
    return Comment(
        id=node.id,
        parent_id=parent_id,
        author=node.author or UNKNOWN_AUTHOR,
        content=node.content if node.content is not None else "",
        created_at=node.created_at,
        url=node.url or "",
        code_context=node.code_context,
        file_path=node.file_path,
        line_position=node.line_position,
        score=node.score,
    )


def flatten_with_depth(
    root_nodes: Optional[Iterable[CommentNode]],
    root_parent_id: Optional[str] = None,
    warnings: Optional[WarningsCollector] = None,
) -> List[Tuple[Comment, int]]:
    """Flatten reply trees into ``(Comment, depth)`` pairs in pre-order.

    Top-level nodes get depth 0 and ``parent_id = root_parent_id``.
    """
    stack = [(node, root_parent_id, 0) for node in reversed(list(root_nodes or []))]
    visited = set()
    flattened = []

    while stack:
        node, parent_id, depth = stack.pop()

        if not isinstance(node, CommentNode) or not node.id:
            _warn(
                warnings, WARNING_TYPE_MALFORMED_NODE_SKIPPED,
                "Skipped reply node without an id",
                parent_id=parent_id, depth=depth,
            )
            continue

        if node.id in visited:
            _warn(
                warnings, WARNING_TYPE_COMMENT_CYCLE_SKIPPED,
                f"Comment {node.id} already emitted",
                comment_id=node.id, parent_id=parent_id,
            )
            continue

        visited.add(node.id)
        flattened.append((_to_comment(node, parent_id), depth))

        for child in reversed(list(node.replies or [])):
            stack.append((child, node.id, depth + 1))

    return flattened


def flatten(
    root_nodes: Optional[Iterable[CommentNode]],
    root_parent_id: Optional[str] = None,
    warnings: Optional[WarningsCollector] = None,
) -> List[Comment]:
    """Flatten reply trees into parent-linked comments.

    Never raises: malformed nodes and repeated ids are skipped and reported
    through ``warnings`` when a collector is given.

    Example:
        >>> root = CommentNode("root", replies=[CommentNode("A", replies=[CommentNode("A1")])])
        >>> [(c.id, c.parent_id) for c in flatten([root])]
        [('root', None), ('A', 'root'), ('A1', 'A')]
    """
    return [comment for comment, _ in flatten_with_depth(root_nodes, root_parent_id, warnings)]


def render_transcript(
    root_nodes: Optional[Iterable[CommentNode]],
    warnings: Optional[WarningsCollector] = None,
) -> str:
    """Render reply trees as an indented transcript, one comment per line."""
    return "\n".join(
        f"{INDENT * depth}Comment by {comment.author}: {comment.content}"
        for comment, depth in flatten_with_depth(root_nodes, warnings=warnings)
    )


def build_tree(
    comments: Sequence[Comment],
    warnings: Optional[WarningsCollector] = None,
) -> List[CommentNode]:
    """Regroup a flat, parent-linked comment list into reply trees.

    A comment is attached under its parent only when the parent appears
    earlier in the list, so the result is always acyclic. Comments whose
    parent is absent become roots, in input order.
    """
    known_ids = {comment.id for comment in comments}
    nodes = {}
    roots = []

    for comment in comments:
        node = CommentNode(
            id=comment.id,
            author=comment.author,
            content=comment.content,
            created_at=comment.created_at,
            url=comment.url,
            code_context=comment.code_context,
            file_path=comment.file_path,
            line_position=comment.line_position,
            score=comment.score,
        )

        parent = nodes.get(comment.parent_id) if comment.parent_id is not None else None
        if parent is not None:
            parent.replies.append(node)
        else:
            if comment.parent_id is not None and comment.parent_id not in known_ids:
                _warn(
                    warnings, WARNING_TYPE_ORPHANED_PARENT_REFERENCE,
                    f"Comment {comment.id} references missing parent {comment.parent_id}",
                    comment_id=comment.id, parent_id=comment.parent_id,
                )
            roots.append(node)

        nodes.setdefault(comment.id, node)

    return roots


def format_container(container: Container, warnings: Optional[WarningsCollector] = None) -> str:
    lines = [
        f"# {container.title}",
        "",
        f"**Author:** {container.author}",
        f"**Created:** {container.created_at}",
        f"**Source:** {container.source_type or 'unknown'}",
    ]
    if container.url:
        lines.append(f"**URL:** {container.url}")
    if container.labels:
        lines.append(f"**Labels:** {', '.join(container.labels)}")
    lines.append(f"**Engagement:** {container.engagement_score}")

    lines += ["", "## Description", container.body or "(no description)", "", "## Comments"]

    transcript = render_transcript(build_tree(container.comments, warnings), warnings)
    lines.append(transcript if transcript else "(no comments)")
    lines += ["", "---", ""]
    return "\n".join(lines)


def format_containers_for_analysis(
    containers: Iterable[Container],
    warnings: Optional[WarningsCollector] = None,
) -> str:
    """Serialize containers into the text handed to ChunkedAnalysisDriver.

    Each container becomes a markdown section (title, metadata, description,
    indented comment transcript) terminated by a ``---`` rule.
    """
    return "\n".join(format_container(container, warnings) for container in containers)
