"""Size-bounded analysis of serialized feedback.

The analysis service accepts a limited amount of text per request. Inputs over
the character budget are split into ordered AnalysisChunks, each chunk is
analyzed on its own (sequentially, in index order), and the per-chunk results
are concatenated under a single heading. Recombination is shallow: no second
model call merges the parts.

Splitting rules:
    - Greedy accumulation of whole lines (split on "\\n")
    - A single line longer than the budget is hard-split at fixed offsets,
      even mid-word
    - Empty lines are kept, so the chunks reassemble to the exact input
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

import structlog

from feedbackflow.config import DEFAULT_CHUNK_BUDGET, DEFAULT_FRAGMENT_DELAY, DEFAULT_FRAGMENT_SIZE
from feedbackflow.models.feedback_models import AnalysisChunk
from feedbackflow.prompts import combined_header

logger = structlog.get_logger()


@dataclass
class AnalysisResult:
    """Markdown produced for one input plus how it was chunked.

    ``chunk_count`` counts the chunks sent for analysis; ``chunks`` holds every
    chunk, blank ones included, so they reassemble to the input.
    """
    markdown: str
    chunk_count: int
    chunks: List[AnalysisChunk] = field(default_factory=list)


def split_into_chunks(text: str, budget_chars: int = DEFAULT_CHUNK_BUDGET) -> List[AnalysisChunk]:
    """Split text into chunks of at most ``budget_chars`` characters.

    Args:
        text: Analysis input
        budget_chars: Maximum characters per chunk (default: 350,000)

    Returns:
        List[AnalysisChunk]: Ordered chunks; a single chunk when the text fits

    Raises:
        ValueError: If budget_chars is less than 1

    Example:
        >>> chunks = split_into_chunks("aaaa\\nbbbb", budget_chars=5)
        >>> [(c.text, c.separator) for c in chunks]
        [('aaaa', ''), ('bbbb', '\\n')]
    """
    if budget_chars < 1:
        raise ValueError("budget_chars must be at least 1")

    if len(text) <= budget_chars:
        return [AnalysisChunk(text=text, sequence_index=0)]

    chunks: List[AnalysisChunk] = []
    separator = ""

    def emit(chunk_text: str, chunk_separator: str) -> None:
        chunks.append(AnalysisChunk(
            text=chunk_text,
            sequence_index=len(chunks),
            separator=chunk_separator,
        ))

    current: List[str] = []
    current_length = 0

    for line in text.split("\n"):
        if len(line) > budget_chars:
            if current:
                emit("\n".join(current), separator)
                separator = "\n"
                current = []
                current_length = 0

            for start in range(0, len(line), budget_chars):
                emit(line[start:start + budget_chars], separator)
                separator = ""
            separator = "\n"
            continue

        joiner = 1 if current else 0
        if current and current_length + joiner + len(line) > budget_chars:
            emit("\n".join(current), separator)
            separator = "\n"
            current = []
            current_length = 0
            joiner = 0

        current.append(line)
        current_length += joiner + len(line)

    if current:
        emit("\n".join(current), separator)

    return chunks


def reassemble_chunks(chunks: List[AnalysisChunk]) -> str:
    """Rebuild the original input from its chunks."""
    ordered = sorted(chunks, key=lambda chunk: chunk.sequence_index)
    return "".join(chunk.separator + chunk.text for chunk in ordered)


def split_display_fragments(text: str, fragment_size: int = DEFAULT_FRAGMENT_SIZE) -> List[str]:
    """Cut text into fixed-size fragments for progressive display."""
    if fragment_size < 1:
        raise ValueError("fragment_size must be at least 1")
    return [text[i:i + fragment_size] for i in range(0, len(text), fragment_size)]


class ChunkedAnalysisDriver:
    """Run analysis over inputs of any size.

    Attributes:
        service: Analysis service exposing
            ``async analyze_comments(service_type, comments, custom_system_prompt=None) -> str``
        budget_chars: Character budget per analysis request
        fragment_size: Characters per streamed display fragment
        fragment_delay: Seconds between streamed fragments

    Example:
        >>> driver = ChunkedAnalysisDriver(OpenAIClient())
        >>> result = await driver.analyze(text, "github")
        >>> result.chunk_count
        2
    """

    def __init__(
        self,
        service,
        budget_chars: int = DEFAULT_CHUNK_BUDGET,
        fragment_size: int = DEFAULT_FRAGMENT_SIZE,
        fragment_delay: float = DEFAULT_FRAGMENT_DELAY,
    ):
        if budget_chars < 1:
            raise ValueError("budget_chars must be at least 1")
        self.service = service
        self.budget_chars = budget_chars
        self.fragment_size = fragment_size
        self.fragment_delay = fragment_delay

    async def analyze(
        self,
        text: str,
        service_type: str,
        custom_system_prompt: Optional[str] = None,
    ) -> AnalysisResult:
        """Analyze text, chunking it when it exceeds the budget.

        Raises:
            AnalysisServiceError: Propagated from the service; a failed chunk
                fails the whole analysis
        """
        chunks = split_into_chunks(text, self.budget_chars)

        # Whitespace-only chunks stay in the result for reassembly but are not sent
        parts = [chunk for chunk in chunks if chunk.text.strip()] or chunks[:1]

        if len(parts) == 1:
            markdown = await self.service.analyze_comments(service_type, parts[0].text, custom_system_prompt)
            logger.info(
                "analysis_completed",
                service_type=service_type,
                text_length=len(text),
                chunk_count=1,
            )
            return AnalysisResult(markdown=markdown, chunk_count=1, chunks=chunks)

        logger.info(
            "analysis_chunked",
            service_type=service_type,
            text_length=len(text),
            chunk_count=len(parts),
            skipped_chunks=len(chunks) - len(parts),
            budget_chars=self.budget_chars,
        )

        analyses = []
        for chunk in parts:
            analysis = await self.service.analyze_comments(service_type, chunk.text, custom_system_prompt)
            logger.debug(
                "chunk_analyzed",
                sequence_index=chunk.sequence_index,
                chunk_length=len(chunk.text),
            )
            analyses.append(analysis)

        sections = [combined_header(len(parts))]
        for index, analysis in enumerate(analyses, start=1):
            sections.append(f"## Part {index}\n\n{analysis}")

        logger.info(
            "analysis_completed",
            service_type=service_type,
            text_length=len(text),
            chunk_count=len(parts),
        )
        return AnalysisResult(markdown="\n\n".join(sections), chunk_count=len(parts), chunks=chunks)

    async def stream_analyze(
        self,
        text: str,
        service_type: str,
        custom_system_prompt: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield the combined analysis as display fragments.

        The full result is computed first; streaming only paces the output.
        """
        result = await self.analyze(text, service_type, custom_system_prompt)
        fragments = split_display_fragments(result.markdown, self.fragment_size)
        for index, fragment in enumerate(fragments):
            yield fragment
            if index < len(fragments) - 1:
                await asyncio.sleep(self.fragment_delay)
