"""Hacker News Integration Module

This module walks a Hacker News story's comment tree through the public
Firebase API (one request per item) and returns it as a Container with
flattened, parent-linked comments.

The tree is walked level by level with an explicit work list, never by
recursion, so reply depth only costs memory. Items of one level are fetched
concurrently in a small thread pool; results are attached in ``kids`` order.
"""

import asyncio
import concurrent.futures
from typing import Any, Dict, List, Optional, Tuple

import requests
import structlog

from feedbackflow.models.feedback_models import CommentNode, Container, UNKNOWN_AUTHOR
from feedbackflow.normalizer import flatten
from feedbackflow.transport import USER_AGENT
from feedbackflow.utils.errors import SourceUnavailableError, WarningsCollector, retry_with_backoff

logger = structlog.get_logger()

ITEM_URL = "https://hacker-news.firebaseio.com/v0/item/{item_id}.json"
TOP_STORIES_URL = "https://hacker-news.firebaseio.com/v0/topstories.json"
SOURCE_HACKERNEWS = "Hacker News"
DELETED_CONTENT = "[deleted]"


def item_url(item_id) -> str:
    return f"https://news.ycombinator.com/item?id={item_id}"


class HackerNewsService:
    """Hacker News Firebase client.

    Attributes:
        session: requests session used for every item request
        max_retries: Retries per item request (exponential backoff)
        max_workers: Thread pool size for fetching one tree level
        warnings: Collector for data-quality warnings found while flattening
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        max_workers: int = 5,
        timeout: float = 60.0,
        warnings: Optional[WarningsCollector] = None,
    ):
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self.max_retries = max_retries
        self.max_workers = max_workers
        self.timeout = timeout
        self.warnings = warnings if warnings is not None else WarningsCollector()

    def _get_json(self, url: str) -> Any:
        def request():
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        return retry_with_backoff(
            request,
            max_retries=self.max_retries,
            retryable_exceptions=(requests.RequestException, ValueError),
        )

    def get_item(self, item_id: int) -> Optional[Dict[str, Any]]:
        """Fetch one item; None when the item does not exist.

        Raises:
            SourceUnavailableError: If the request still fails after retries
        """
        try:
            return self._get_json(ITEM_URL.format(item_id=item_id))
        except (requests.RequestException, ValueError) as e:
            logger.error(
                "hackernews_item_fetch_failed",
                item_id=item_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SourceUnavailableError(
                f"Hacker News unavailable fetching item {item_id}: {e}"
            ) from e

    def _get_item_or_none(self, item_id: int) -> Optional[Dict[str, Any]]:
        # A single unreachable reply drops that subtree, not the story
        try:
            return self.get_item(item_id)
        except SourceUnavailableError:
            return None

    def get_top_story_ids(self, limit: int = 30) -> List[int]:
        try:
            ids = self._get_json(TOP_STORIES_URL) or []
        except (requests.RequestException, ValueError) as e:
            raise SourceUnavailableError(f"Hacker News unavailable: {e}") from e
        return list(ids)[:limit]

    def fetch_comment_forest(self, story: Dict[str, Any]) -> List[CommentNode]:
        """Fetch every reply below a story as CommentNode trees."""
        roots: List[CommentNode] = []
        seen = {story.get("id")}
        level: List[Tuple[int, Optional[CommentNode]]] = [(kid, None) for kid in story.get("kids") or []]

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            while level:
                batch = []
                for kid_id, parent in level:
                    if kid_id in seen:
                        continue
                    seen.add(kid_id)
                    batch.append((kid_id, parent))

                items = list(executor.map(self._get_item_or_none, [kid_id for kid_id, _ in batch]))

                next_level = []
                for (kid_id, parent), item in zip(batch, items):
                    if item is None:
                        logger.warning("hackernews_reply_skipped", item_id=kid_id)
                        continue

                    removed = item.get("deleted") or item.get("dead")
                    node = CommentNode(
                        id=str(kid_id),
                        author=UNKNOWN_AUTHOR if removed else (item.get("by") or UNKNOWN_AUTHOR),
                        content=DELETED_CONTENT if removed else (item.get("text") or ""),
                        created_at=item.get("time"),
                        url=item_url(kid_id),
                    )
                    (parent.replies if parent is not None else roots).append(node)
                    next_level.extend((child, node) for child in item.get("kids") or [])

                level = next_level

        return roots

    def fetch_story(self, story_id: int) -> Container:
        """Fetch a story and its full comment tree.

        Raises:
            SourceUnavailableError: If the story cannot be fetched or does not exist
        """
        story = self.get_item(story_id)
        if not story:
            raise SourceUnavailableError(f"Hacker News item {story_id} not found")

        forest = self.fetch_comment_forest(story)
        comments = flatten(forest, warnings=self.warnings)

        logger.info(
            "hackernews_story_fetched",
            story_id=story_id,
            comment_count=len(comments),
            descendants=story.get("descendants"),
        )
        return Container(
            id=str(story_id),
            title=story.get("title") or "",
            author=story.get("by") or UNKNOWN_AUTHOR,
            body=story.get("text") or "",
            url=story.get("url") or item_url(story_id),
            created_at=story.get("time"),
            engagement_score=story.get("score") or 0,
            comments=tuple(comments),
            source_type=SOURCE_HACKERNEWS,
        )

    async def get_story(self, story_id: int) -> Container:
        return await asyncio.to_thread(self.fetch_story, story_id)

    async def get_stories(self, story_ids: List[int]) -> List[Container]:
        """Fetch several stories one after another, skipping repeated ids."""
        stories = []
        for story_id in dict.fromkeys(story_ids):
            stories.append(await self.get_story(story_id))
        return stories
