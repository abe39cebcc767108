"""YouTube Integration Module

This module fetches video metadata and comment threads from the YouTube Data
API v3. Comment threads, playlist items and channel search results all page
with ``pageToken``/``nextPageToken`` and run through the shared PagedFetcher.
Replies are nested under their thread and flattened with the normalizer.
"""

import asyncio
from typing import Any, Dict, List, Optional

import requests
import structlog

from feedbackflow.config import Settings
from feedbackflow.models.feedback_models import Comment, CommentNode, Container, PageCursor, UNKNOWN_AUTHOR
from feedbackflow.normalizer import flatten
from feedbackflow.paging import PagedFetcher
from feedbackflow.rate_limit import DEFAULT_FALLBACK_DELAY
from feedbackflow.transport import RestTransport
from feedbackflow.utils.errors import WarningsCollector

logger = structlog.get_logger()

API_BASE = "https://youtube.googleapis.com/youtube/v3"
VIDEOS_URL = f"{API_BASE}/videos"
COMMENT_THREADS_URL = f"{API_BASE}/commentThreads"
PLAYLIST_ITEMS_URL = f"{API_BASE}/playlistItems"
SEARCH_URL = f"{API_BASE}/search"

SOURCE_YOUTUBE = "YouTube"


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def extract_items_page(payload: Dict[str, Any]):
    """Items plus a PageCursor built from ``nextPageToken``; None without ``items``."""
    items = payload.get("items")
    if items is None:
        return None
    next_token = payload.get("nextPageToken") or None
    return items, PageCursor(has_next_page=next_token is not None, end_cursor=next_token)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _comment_node(comment: Dict[str, Any], fallback_id: Optional[str] = None) -> CommentNode:
    snippet = comment.get("snippet") or {}
    return CommentNode(
        id=comment.get("id") or fallback_id,
        author=snippet.get("authorDisplayName") or UNKNOWN_AUTHOR,
        content=snippet.get("textDisplay") or snippet.get("textOriginal") or "",
        created_at=snippet.get("publishedAt"),
        score=_to_int(snippet.get("likeCount")),
    )


def thread_to_tree(thread: Dict[str, Any]) -> CommentNode:
    """Build a CommentNode tree from one commentThreads item.

    The top-level comment carries the thread id; replies become its children.
    """
    snippet = thread.get("snippet") or {}
    root = _comment_node(snippet.get("topLevelComment") or {}, fallback_id=thread.get("id"))
    replies = (thread.get("replies") or {}).get("comments") or []
    root.replies = [_comment_node(reply) for reply in replies]
    return root


def _video_id(item: Dict[str, Any]) -> Optional[str]:
    snippet = item.get("snippet") or {}
    resource = snippet.get("resourceId") or {}
    item_id = item.get("id")
    if isinstance(item_id, dict):
        return item_id.get("videoId")
    return resource.get("videoId") or (item.get("contentDetails") or {}).get("videoId")


class YouTubeService:
    """YouTube Data API client producing one Container per video.

    Example:
        >>> service = YouTubeService(api_key="AIza...")
        >>> video = await service.get_video("dQw4w9WgXcQ")
        >>> video.title, len(video.comments)
    """

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        max_attempts: int = 5,
        fallback_delay: float = DEFAULT_FALLBACK_DELAY,
        timeout: float = 60.0,
        warnings: Optional[WarningsCollector] = None,
    ):
        self.transport = RestTransport(api_key, session=session, timeout=timeout)
        self.warnings = warnings if warnings is not None else WarningsCollector()
        self.fetcher = PagedFetcher(
            self.transport, max_attempts=max_attempts, fallback_delay=fallback_delay, warnings=self.warnings
        )

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None,
                      warnings: Optional[WarningsCollector] = None) -> "YouTubeService":
        return cls(
            settings.youtube_api_key,
            session=session,
            max_attempts=settings.max_attempts,
            fallback_delay=settings.fallback_delay,
            timeout=settings.request_timeout,
            warnings=warnings,
        )

    async def get_comments(self, video_id: str, cancel_event: Optional[asyncio.Event] = None) -> List[Comment]:
        """Fetch every comment thread of a video, flattened."""
        variables = {"part": "snippet,replies", "maxResults": 100, "videoId": video_id}
        trees = await self.fetcher.fetch_all_pages(
            COMMENT_THREADS_URL, variables, extract_items_page, thread_to_tree,
            collection="youtube_comment_threads", cancel_event=cancel_event,
        )
        return flatten(trees, warnings=self.warnings)

    async def get_video(self, video_id: str, cancel_event: Optional[asyncio.Event] = None) -> Container:
        """Fetch a video's metadata and all of its comments."""
        items = await self.fetcher.fetch_all_pages(
            VIDEOS_URL, {"part": "snippet,statistics", "id": video_id}, extract_items_page,
            collection="youtube_videos", cancel_event=cancel_event,
        )
        info = items[0] if items else {}
        snippet = info.get("snippet") or {}
        statistics = info.get("statistics") or {}

        comments = await self.get_comments(video_id, cancel_event)

        logger.info("youtube_video_fetched", video_id=video_id, comment_count=len(comments))
        return Container(
            id=video_id,
            title=snippet.get("title") or "",
            author=snippet.get("channelTitle") or UNKNOWN_AUTHOR,
            body=snippet.get("description") or "",
            url=video_url(video_id),
            created_at=snippet.get("publishedAt"),
            labels=tuple(snippet.get("tags") or ()),
            engagement_score=_to_int(statistics.get("likeCount")) or 0,
            comments=tuple(comments),
            source_type=SOURCE_YOUTUBE,
        )

    async def get_playlist_video_ids(self, playlist_id: str,
                                     cancel_event: Optional[asyncio.Event] = None) -> List[str]:
        variables = {"part": "snippet", "maxResults": 50, "playlistId": playlist_id}
        video_ids = await self.fetcher.fetch_all_pages(
            PLAYLIST_ITEMS_URL, variables, extract_items_page, _video_id,
            collection="youtube_playlist_items", cancel_event=cancel_event,
        )
        return video_ids

    async def get_channel_video_ids(self, channel_id: str,
                                    cancel_event: Optional[asyncio.Event] = None) -> List[str]:
        variables = {"part": "snippet", "maxResults": 50, "type": "video", "channelId": channel_id}
        return await self.fetcher.fetch_all_pages(
            SEARCH_URL, variables, extract_items_page, _video_id,
            collection="youtube_channel_videos", cancel_event=cancel_event,
        )

    async def get_videos(self, video_ids: List[str],
                         cancel_event: Optional[asyncio.Event] = None) -> List[Container]:
        """Fetch several videos one after another, skipping repeated ids."""
        videos = []
        for video_id in dict.fromkeys(video_ids):
            videos.append(await self.get_video(video_id, cancel_event))
        return videos
