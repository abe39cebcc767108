"""Reddit Integration Module

This module provides Async PRAW client initialization and turns Reddit
submissions and their comment forests into Containers with flattened,
parent-linked comments.
"""

import os
import re
from typing import List, Optional

import asyncpraw
import structlog
from asyncpraw.models import MoreComments

from feedbackflow.models.feedback_models import CommentNode, Container, UNKNOWN_AUTHOR
from feedbackflow.normalizer import flatten
from feedbackflow.utils.errors import SourceUnavailableError, WarningsCollector

# Initialize logger
logger = structlog.get_logger()

SOURCE_REDDIT = "Reddit"

_THREAD_URL = re.compile(r"(?:https?://)?(?:www\.|old\.)?reddit\.com/r/[^/]+/comments/([a-z0-9]+)", re.IGNORECASE)
_SHORT_URL = re.compile(r"(?:https?://)?redd\.it/([a-z0-9]+)", re.IGNORECASE)


class RedditAPIError(SourceUnavailableError):
    """Tier 1 error for Reddit API failures (HTTP 503)."""
    pass


def parse_reddit_url(url: str) -> Optional[str]:
    """Extract the submission id from a thread URL or redd.it shortlink.

    Example:
        >>> parse_reddit_url("https://www.reddit.com/r/dotnet/comments/1abc23/some_title/")
        '1abc23'
    """
    if not url or not url.strip():
        return None
    for pattern in (_THREAD_URL, _SHORT_URL):
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


async def get_reddit_client() -> asyncpraw.Reddit:
    """Initialize and return an Async PRAW Reddit client with OAuth2.

    Reads authentication credentials from environment variables:
    - REDDIT_CLIENT_ID: Reddit application client ID
    - REDDIT_CLIENT_SECRET: Reddit application client secret
    - REDDIT_USER_AGENT: User agent string for API requests

    Returns:
        asyncpraw.Reddit: Configured Reddit client instance

    Raises:
        ValueError: If any required environment variable is missing or empty
        RedditAPIError: If Async PRAW initialization fails (Tier 1, HTTP 503)
    """
    missing_vars = []

    client_id = os.environ.get('REDDIT_CLIENT_ID', '').strip()
    client_secret = os.environ.get('REDDIT_CLIENT_SECRET', '').strip()
    user_agent = os.environ.get('REDDIT_USER_AGENT', '').strip()

    if not client_id:
        missing_vars.append('REDDIT_CLIENT_ID')
    if not client_secret:
        missing_vars.append('REDDIT_CLIENT_SECRET')
    if not user_agent:
        missing_vars.append('REDDIT_USER_AGENT')

    if missing_vars:
        error_msg = f"Missing required environment variable(s): {', '.join(missing_vars)}"
        logger.error("reddit_client_init_failed", missing_vars=missing_vars)
        raise ValueError(error_msg)

    try:
        reddit = asyncpraw.Reddit(
            client_id=client_id,
            client_secret=client_secret,
            user_agent=user_agent
        )

        logger.info("reddit_client_initialized", user_agent=user_agent)
        return reddit

    except Exception as e:
        logger.error(
            "reddit_authentication_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise RedditAPIError(
            f"Reddit API unavailable (HTTP 503): {str(e)}"
        ) from e


def _author_name(item) -> str:
    # Async PRAW reports deleted/removed authors as None
    author = getattr(item, "author", None)
    return str(author) if author is not None else UNKNOWN_AUTHOR


def comment_forest_to_trees(forest) -> List[CommentNode]:
    """Convert an Async PRAW comment forest into CommentNode trees.

    Walks the forest with an explicit stack; unexpanded MoreComments
    placeholders are skipped. Sibling order follows the forest.

    Args:
        forest: Iterable of top-level Async PRAW comments, each with ``.replies``

    Returns:
        List[CommentNode]: One tree per top-level comment
    """
    roots: List[CommentNode] = []
    stack = [(comment, None) for comment in reversed(list(forest or []))]

    while stack:
        comment, parent = stack.pop()
        if isinstance(comment, MoreComments):
            continue

        permalink = getattr(comment, "permalink", "") or ""
        node = CommentNode(
            id=comment.id,
            author=_author_name(comment),
            content=getattr(comment, "body", "") or "",
            created_at=getattr(comment, "created_utc", None),
            url=f"https://www.reddit.com{permalink}" if permalink else "",
            score=getattr(comment, "score", None),
        )
        (parent.replies if parent is not None else roots).append(node)

        replies = getattr(comment, "replies", None) or []
        for reply in reversed(list(replies)):
            stack.append((reply, node))

    return roots


def submission_to_container(submission, warnings: Optional[WarningsCollector] = None) -> Container:
    """Build a Container from a loaded submission and its comment forest."""
    trees = comment_forest_to_trees(submission.comments)
    comments = flatten(trees, warnings=warnings)
    flair = getattr(submission, "link_flair_text", None)

    return Container(
        id=submission.id,
        title=submission.title or "",
        author=_author_name(submission),
        body=getattr(submission, "selftext", "") or "",
        url=f"https://www.reddit.com{submission.permalink}",
        created_at=getattr(submission, "created_utc", None),
        labels=(flair,) if flair else (),
        engagement_score=getattr(submission, "score", 0) or 0,
        comments=tuple(comments),
        source_type=SOURCE_REDDIT,
    )


async def fetch_thread(
    reddit: asyncpraw.Reddit,
    submission_id: str,
    replace_more_limit: Optional[int] = 0,
    warnings: Optional[WarningsCollector] = None,
) -> Container:
    """Fetch one submission with its full comment tree.

    Args:
        reddit: Async PRAW Reddit client instance
        submission_id: Reddit submission id (e.g. "1abc23")
        replace_more_limit: Number of MoreComments to expand
            - 0: Skip deep expansion (fastest)
            - None: Expand all MoreComments (slowest, most complete)
        warnings: Optional collector for data-quality warnings

    Returns:
        Container: The submission with flattened comments

    Raises:
        RedditAPIError: If the submission cannot be fetched (Tier 1, HTTP 503)

    Notes:
        replace_more() failure logs a warning and proceeds with loaded comments
    """
    try:
        submission = await reddit.submission(submission_id)
    except Exception as e:
        logger.error(
            "reddit_thread_fetch_failed",
            submission_id=submission_id,
            error=str(e),
            error_type=type(e).__name__
        )
        raise RedditAPIError(
            f"Reddit API unavailable (HTTP 503): {str(e)}"
        ) from e

    try:
        await submission.comments.replace_more(limit=replace_more_limit)
    except Exception as e:
        logger.warning(
            "replace_more_failed",
            submission_id=submission_id,
            replace_more_limit=replace_more_limit,
            error=str(e),
            error_type=type(e).__name__
        )

    container = submission_to_container(submission, warnings)
    logger.info(
        "reddit_thread_fetched",
        submission_id=submission_id,
        comment_count=len(container.comments)
    )
    return container


async def fetch_subreddit_threads(
    reddit: asyncpraw.Reddit,
    subreddit_name: str,
    limit: int = 10,
    replace_more_limit: Optional[int] = 0,
    warnings: Optional[WarningsCollector] = None,
) -> List[Container]:
    """Fetch the current hot submissions of a subreddit with their comments.

    Raises:
        RedditAPIError: If the listing cannot be fetched (Tier 1, HTTP 503)
    """
    try:
        subreddit = await reddit.subreddit(subreddit_name)
        submission_ids = [submission.id async for submission in subreddit.hot(limit=limit)]
    except Exception as e:
        logger.error(
            "hot_threads_fetch_failed",
            subreddit=subreddit_name,
            limit=limit,
            error=str(e),
            error_type=type(e).__name__
        )
        raise RedditAPIError(
            f"Reddit API unavailable (HTTP 503): {str(e)}"
        ) from e

    threads = []
    for submission_id in submission_ids:
        threads.append(await fetch_thread(reddit, submission_id, replace_more_limit, warnings))

    logger.info(
        "hot_threads_fetched",
        subreddit=subreddit_name,
        requested_limit=limit,
        fetched_count=len(threads)
    )
    return threads
