#!/usr/bin/env python3
"""Stage 2: Analyze fetched containers with the OpenAI analysis service.

Reads the JSON written by fetch.py, serializes every container with its
indented comment transcript, and runs the chunked analysis driver. Inputs over
the character budget are split, analyzed part by part, and recombined.

Usage:
    python scripts/pipeline/analyze.py [-i data/pipeline/fetched.json] [--service github] [-o data/pipeline/analysis.md] [--stream]

Requires env var: OPENAI_API_KEY
"""

import argparse
import asyncio
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from feedbackflow.config import load_settings
from feedbackflow.models.feedback_models import Comment, Container
from feedbackflow.normalizer import format_containers_for_analysis
from feedbackflow.prompts import SERVICE_PROMPTS
from feedbackflow.utils.errors import FeedbackFlowError
from feedbackflow.utils.logging_config import setup_logging

# Platform key used when --service is not given
SOURCE_SERVICE_TYPES = {
    "github": "github",
    "youtube": "youtube",
    "reddit": "reddit",
    "hackernews": "hackernews",
}


def container_from_dict(data: dict) -> Container:
    """Rebuild a Container (and its comments) from fetch.py output."""
    comments = tuple(Comment(**comment) for comment in data.get("comments", []))
    fields = {key: value for key, value in data.items() if key != "comments"}
    fields["labels"] = tuple(fields.get("labels") or ())
    return Container(comments=comments, **fields)


def load_containers(input_path: str) -> tuple[str, list[Container]]:
    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    source = data.get("metadata", {}).get("source", "manual")
    return source, [container_from_dict(c) for c in data.get("containers", [])]


async def run_analysis(input_path: str, service_type: str, output: str, stream: bool):
    """Analyze containers and write the markdown report."""
    from feedbackflow.ai_client import OpenAIClient
    from feedbackflow.analysis import ChunkedAnalysisDriver

    settings = load_settings()
    source, containers = load_containers(input_path)
    service_type = service_type or SOURCE_SERVICE_TYPES.get(source, "manual")

    text = format_containers_for_analysis(containers)
    print(f"Loaded {len(containers)} containers ({len(text):,} characters) from {source}")

    driver = ChunkedAnalysisDriver(
        OpenAIClient(model=settings.openai_model),
        budget_chars=settings.chunk_budget,
        fragment_size=settings.fragment_size,
        fragment_delay=settings.fragment_delay,
    )

    if stream:
        parts = []
        async for fragment in driver.stream_analyze(text, service_type):
            print(fragment, end="", flush=True)
            parts.append(fragment)
        print()
        markdown = "".join(parts)
    else:
        result = await driver.analyze(text, service_type)
        markdown = result.markdown
        print(f"  Analyzed in {result.chunk_count} chunk(s)")

    output_dir = os.path.dirname(output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        f.write(markdown)

    print(f"  Output: {output}")


def main():
    parser = argparse.ArgumentParser(
        description="Stage 2: Analyze fetched feedback with the OpenAI analysis service"
    )
    parser.add_argument("-i", "--input", default="data/pipeline/fetched.json", help="Input JSON from fetch stage (default: data/pipeline/fetched.json)")
    parser.add_argument("--service", choices=sorted(SERVICE_PROMPTS), default=None, help="Analysis prompt (default: the fetched source)")
    parser.add_argument("-o", "--output", default="data/pipeline/analysis.md", help="Output markdown path (default: data/pipeline/analysis.md)")
    parser.add_argument("--stream", action="store_true", help="Print the analysis progressively as it is produced")
    parser.add_argument("--log-dir", default="logs", help="Directory for JSON logs (default: logs)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo debug entries (retries, page progress) to the console")
    args = parser.parse_args()

    setup_logging(log_dir=args.log_dir, verbose=args.verbose)
    load_settings()

    if not os.environ.get("OPENAI_API_KEY"):
        print("Error: OPENAI_API_KEY environment variable not set.")
        print("Set it in your .env file or export it in your shell.")
        sys.exit(1)

    if not os.path.exists(args.input):
        print(f"Error: Input file not found: {args.input}")
        print("Run fetch.py first to create it.")
        sys.exit(1)

    try:
        asyncio.run(run_analysis(args.input, args.service, args.output, args.stream))
    except (FeedbackFlowError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
