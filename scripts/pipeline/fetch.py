#!/usr/bin/env python3
"""Stage 1: Fetch discussion content from one platform.

Fetches issues/pull requests/discussions (GitHub), video comment threads
(YouTube), submissions (Reddit) or stories (Hacker News), flattens every
comment tree, and writes the containers to a JSON file for the analysis stage.

Usage:
    python scripts/pipeline/fetch.py github https://github.com/dotnet/maui [--labels bug] [-o data/pipeline/fetched.json]
    python scripts/pipeline/fetch.py github https://github.com/dotnet/maui/discussions/42
    python scripts/pipeline/fetch.py youtube dQw4w9WgXcQ [more video ids...]
    python scripts/pipeline/fetch.py reddit https://www.reddit.com/r/dotnet/comments/1abc23/
    python scripts/pipeline/fetch.py hackernews 40000000

Requires env vars: GITHUB_TOKEN (github), YOUTUBE_API_KEY (youtube),
REDDIT_CLIENT_ID, REDDIT_CLIENT_SECRET, REDDIT_USER_AGENT (reddit)
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict
from datetime import datetime, timezone

# Add project root to path so feedbackflow.* imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from feedbackflow.config import load_settings
from feedbackflow.models.feedback_models import Container
from feedbackflow.utils.errors import FeedbackFlowError, WarningsCollector
from feedbackflow.utils.logging_config import setup_logging

SOURCES = ("github", "youtube", "reddit", "hackernews")

REQUIRED_ENV = {
    "github": ["GITHUB_TOKEN"],
    "youtube": ["YOUTUBE_API_KEY"],
    "reddit": ["REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "REDDIT_USER_AGENT"],
    "hackernews": [],
}


def check_env_vars(source: str) -> list[str]:
    """Check required environment variables and return list of missing ones."""
    return [v for v in REQUIRED_ENV[source] if not os.environ.get(v)]


async def fetch_github(settings, targets, labels, warnings) -> list[Container]:
    from feedbackflow.github import GitHubService, parse_github_url

    service = GitHubService.from_settings(settings, warnings=warnings)
    containers = []
    for target in targets:
        info = parse_github_url(target)
        if info is None:
            raise ValueError(f"Not a GitHub URL: {target}")

        if info.type == "repository":
            print(f"Fetching issues, pull requests and discussions for {info.owner}/{info.repository}...")
            if not await service.check_repository_valid(info.owner, info.repository):
                raise ValueError(f"Repository {info.owner}/{info.repository} not found or not accessible")
            feedback = await service.fetch_repository_feedback(info.owner, info.repository, labels=labels)
            print(f"  {len(feedback.issues)} issues, {len(feedback.pull_requests)} pull requests, "
                  f"{len(feedback.discussions)} discussions")
            containers.extend(feedback.containers)
            continue

        fetchers = {
            "issue": service.get_issue_comments,
            "pull_request": service.get_pull_request_comments,
            "discussion": service.get_discussion_comments,
        }
        comments = await fetchers[info.type](info.owner, info.repository, info.number)
        print(f"  {info.type} #{info.number}: {len(comments)} comments")
        containers.append(Container(
            id=f"{info.owner}/{info.repository}#{info.number}",
            title=f"{info.owner}/{info.repository} {info.type.replace('_', ' ')} #{info.number}",
            author="",
            body="",
            url=target,
            created_at=None,
            comments=tuple(comments),
            source_type=f"GitHub {info.type.replace('_', ' ').title()}",
        ))
    return containers


async def fetch_youtube(settings, targets, warnings) -> list[Container]:
    from feedbackflow.youtube import YouTubeService

    service = YouTubeService.from_settings(settings, warnings=warnings)
    print(f"Fetching {len(targets)} video(s)...")
    return await service.get_videos(targets)


async def fetch_reddit(targets, warnings) -> list[Container]:
    from feedbackflow.reddit import fetch_thread, get_reddit_client, parse_reddit_url

    reddit = await get_reddit_client()
    try:
        containers = []
        for target in targets:
            submission_id = parse_reddit_url(target) or target
            print(f"Fetching Reddit thread {submission_id}...")
            containers.append(await fetch_thread(reddit, submission_id, warnings=warnings))
        return containers
    finally:
        await reddit.close()


async def fetch_hackernews(settings, targets, warnings) -> list[Container]:
    from feedbackflow.hackernews import HackerNewsService

    service = HackerNewsService(timeout=settings.request_timeout, warnings=warnings)
    print(f"Fetching {len(targets)} Hacker News stories...")
    return await service.get_stories([int(target) for target in targets])


async def run_fetch(source: str, targets: list[str], labels: list[str], output: str):
    """Fetch containers from one source and write them to JSON."""
    settings = load_settings()
    warnings = WarningsCollector()

    if source == "github":
        containers = await fetch_github(settings, targets, labels, warnings)
    elif source == "youtube":
        containers = await fetch_youtube(settings, targets, warnings)
    elif source == "reddit":
        containers = await fetch_reddit(targets, warnings)
    else:
        containers = await fetch_hackernews(settings, targets, warnings)

    total_comments = sum(len(c.comments) for c in containers)
    output_data = {
        "metadata": {
            "source": source,
            "targets": targets,
            "fetched_at": datetime.now(timezone.utc).isoformat(),
            "container_count": len(containers),
            "total_comments": total_comments,
            "warning_count": warnings.count(),
        },
        "warnings": warnings.warnings,
        "containers": [asdict(container) for container in containers],
    }

    output_dir = os.path.dirname(output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2, default=str)

    print(f"\nFetched {len(containers)} containers, {total_comments} comments")
    if warnings.count():
        print(f"  Data-quality warnings: {warnings.count()}")
    print(f"  Output: {output}")


def main():
    parser = argparse.ArgumentParser(
        description="Stage 1: Fetch discussion content and flatten comment trees"
    )
    parser.add_argument("source", choices=SOURCES, help="Content platform")
    parser.add_argument("targets", nargs="+", help="URLs or ids to fetch")
    parser.add_argument("--labels", nargs="*", default=[], help="GitHub label filter for issues and pull requests")
    parser.add_argument("-o", "--output", default="data/pipeline/fetched.json", help="Output JSON path (default: data/pipeline/fetched.json)")
    parser.add_argument("--log-dir", default="logs", help="Directory for JSON logs (default: logs)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo debug entries (retries, page progress) to the console")
    args = parser.parse_args()

    setup_logging(log_dir=args.log_dir, verbose=args.verbose)
    load_settings()

    missing = check_env_vars(args.source)
    if missing:
        print(f"Error: Missing environment variables: {', '.join(missing)}")
        print("Set them in your .env file or export them in your shell.")
        sys.exit(1)

    try:
        asyncio.run(run_fetch(args.source, args.targets, args.labels, args.output))
    except (FeedbackFlowError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
