"""
Tests for size-bounded analysis.

Behavioral tests for chunk splitting (line-greedy, hard split of oversized
lines, exact reassembly), the chunked analysis driver's single/multi chunk
paths, and the streaming display mode.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch


def _lines(count, width):
    return "\n".join("x" * width for _ in range(count))


def _service(*results):
    service = MagicMock()
    service.analyze_comments = AsyncMock(side_effect=list(results))
    return service


class TestSplitIntoChunks:
    """Text is split on line boundaries within the character budget."""

    def test_text_within_budget_is_one_chunk(self):
        from feedbackflow.analysis import split_into_chunks

        chunks = split_into_chunks("short text\nsecond line", budget_chars=100)

        assert len(chunks) == 1
        assert chunks[0].text == "short text\nsecond line"
        assert chunks[0].sequence_index == 0

    def test_text_exactly_at_budget_is_one_chunk(self):
        from feedbackflow.analysis import split_into_chunks

        assert len(split_into_chunks("a" * 50, budget_chars=50)) == 1

    def test_400k_text_with_350k_budget_gives_two_chunks(self):
        from feedbackflow.analysis import split_into_chunks

        text = _lines(400, 999)
        assert len(text) == 399_999

        chunks = split_into_chunks(text, budget_chars=350_000)

        assert len(chunks) == 2
        assert all(len(c.text) <= 350_000 for c in chunks)
        assert chunks[0].text + "\n" + chunks[1].text == text
        assert [c.sequence_index for c in chunks] == [0, 1]

    def test_chunks_never_exceed_budget(self):
        from feedbackflow.analysis import split_into_chunks

        text = "\n".join("word " * (i % 17) for i in range(500))

        chunks = split_into_chunks(text, budget_chars=120)

        assert len(chunks) > 1
        assert all(len(c.text) <= 120 for c in chunks)

    def test_oversized_line_is_hard_split(self):
        from feedbackflow.analysis import split_into_chunks

        text = "head\n" + "y" * 25 + "\ntail"

        chunks = split_into_chunks(text, budget_chars=10)

        assert [c.text for c in chunks] == ["head", "y" * 10, "y" * 10, "y" * 5, "tail"]
        assert [c.separator for c in chunks] == ["", "\n", "", "", "\n"]

    def test_empty_lines_are_preserved(self):
        from feedbackflow.analysis import split_into_chunks, reassemble_chunks

        text = "aaaa\n\n\nbbbb\n\ncccc\n"

        chunks = split_into_chunks(text, budget_chars=6)

        assert all(len(c.text) <= 6 for c in chunks)
        assert reassemble_chunks(chunks) == text

    def test_reassembly_is_exact_for_mixed_input(self):
        from feedbackflow.analysis import split_into_chunks, reassemble_chunks

        text = "intro\n" + "z" * 37 + "\n\nmiddle line here\n" + "q" * 12 + "\nend"

        chunks = split_into_chunks(text, budget_chars=9)

        assert reassemble_chunks(chunks) == text

    def test_reassembly_orders_by_sequence_index(self):
        from feedbackflow.analysis import split_into_chunks, reassemble_chunks

        text = _lines(6, 4)
        chunks = split_into_chunks(text, budget_chars=9)

        assert reassemble_chunks(list(reversed(chunks))) == text

    def test_empty_text(self):
        from feedbackflow.analysis import split_into_chunks

        chunks = split_into_chunks("", budget_chars=10)

        assert len(chunks) == 1
        assert chunks[0].text == ""

    def test_budget_must_be_positive(self):
        from feedbackflow.analysis import split_into_chunks

        with pytest.raises(ValueError, match='budget_chars'):
            split_into_chunks("text", budget_chars=0)


class TestDisplayFragments:
    """Streaming output is cut into fixed-size fragments."""

    def test_fragments_of_fixed_size(self):
        from feedbackflow.analysis import split_display_fragments

        fragments = split_display_fragments("a" * 120, fragment_size=50)

        assert [len(f) for f in fragments] == [50, 50, 20]

    def test_fragments_concatenate_to_input(self):
        from feedbackflow.analysis import split_display_fragments

        text = "# Heading\n\n- point one\n- point two"

        assert "".join(split_display_fragments(text, fragment_size=7)) == text

    def test_fragment_size_must_be_positive(self):
        from feedbackflow.analysis import split_display_fragments

        with pytest.raises(ValueError):
            split_display_fragments("abc", fragment_size=0)


class TestChunkedAnalysisDriver:
    """The driver analyzes each chunk and combines the results."""

    @pytest.mark.asyncio
    async def test_small_input_passes_through_unchanged(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        service = _service("## Summary\nAll good")
        driver = ChunkedAnalysisDriver(service, budget_chars=1000)

        result = await driver.analyze("Comment by alice: hi", "github")

        assert result.markdown == "## Summary\nAll good"
        assert result.chunk_count == 1
        service.analyze_comments.assert_awaited_once_with("github", "Comment by alice: hi", None)

    @pytest.mark.asyncio
    async def test_large_input_is_analyzed_per_chunk_and_combined(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        service = _service("first analysis", "second analysis")
        driver = ChunkedAnalysisDriver(service, budget_chars=350_000)

        result = await driver.analyze(_lines(400, 999), "reddit")

        assert result.chunk_count == 2
        assert service.analyze_comments.await_count == 2
        assert result.markdown == (
            "# Combined Analysis\n\n"
            "Combined 2 chunk analyses.\n\n"
            "## Part 1\n\nfirst analysis\n\n"
            "## Part 2\n\nsecond analysis"
        )

    @pytest.mark.asyncio
    async def test_chunks_are_analyzed_in_order(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        service = _service("one", "two", "three")
        driver = ChunkedAnalysisDriver(service, budget_chars=4)

        await driver.analyze("aaaa\nbbbb\ncccc", "manual")

        sent = [c.args[1] for c in service.analyze_comments.await_args_list]
        assert sent == ["aaaa", "bbbb", "cccc"]

    @pytest.mark.asyncio
    async def test_trailing_newline_after_full_chunk_is_not_analyzed(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver, reassemble_chunks

        service = _service("only part")
        driver = ChunkedAnalysisDriver(service, budget_chars=5)

        result = await driver.analyze("aaaaa\n", "github")

        service.analyze_comments.assert_awaited_once_with("github", "aaaaa", None)
        assert result.markdown == "only part"
        assert result.chunk_count == 1
        assert reassemble_chunks(result.chunks) == "aaaaa\n"

    @pytest.mark.asyncio
    async def test_blank_chunks_are_skipped_in_combined_parts(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver, reassemble_chunks

        text = "aaaaaaaaaa\n\nbbbbb"
        service = _service("one", "two", "three")
        driver = ChunkedAnalysisDriver(service, budget_chars=5)

        result = await driver.analyze(text, "manual")

        sent = [c.args[1] for c in service.analyze_comments.await_args_list]
        assert sent == ["aaaaa", "aaaaa", "bbbbb"]
        assert result.chunk_count == 3
        assert len(result.chunks) == 4
        assert result.markdown.startswith("# Combined Analysis\n\nCombined 3 chunk analyses.")
        assert result.markdown.endswith("## Part 3\n\nthree")
        assert reassemble_chunks(result.chunks) == text

    @pytest.mark.asyncio
    async def test_custom_prompt_is_forwarded(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        service = _service("done")
        driver = ChunkedAnalysisDriver(service, budget_chars=100)

        await driver.analyze("text", "auto", custom_system_prompt="Only list bugs")

        service.analyze_comments.assert_awaited_once_with("auto", "text", "Only list bugs")

    @pytest.mark.asyncio
    async def test_failed_chunk_fails_the_analysis(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver
        from feedbackflow.utils.errors import AnalysisServiceError

        service = _service("one", AnalysisServiceError("service down"))
        driver = ChunkedAnalysisDriver(service, budget_chars=4)

        with pytest.raises(AnalysisServiceError):
            await driver.analyze("aaaa\nbbbb", "github")

    def test_budget_must_be_positive(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        with pytest.raises(ValueError):
            ChunkedAnalysisDriver(MagicMock(), budget_chars=0)


class TestStreamAnalyze:
    """Streaming yields the same markdown in fragments."""

    @pytest.mark.asyncio
    async def test_stream_matches_direct_result(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        direct = ChunkedAnalysisDriver(_service("alpha", "beta"), budget_chars=4)
        streamed = ChunkedAnalysisDriver(_service("alpha", "beta"), budget_chars=4, fragment_size=5)

        expected = (await direct.analyze("aaaa\nbbbb", "github")).markdown

        with patch('asyncio.sleep', new_callable=AsyncMock):
            fragments = [f async for f in streamed.stream_analyze("aaaa\nbbbb", "github")]

        assert "".join(fragments) == expected
        assert all(len(f) <= 5 for f in fragments)
        assert streamed.service.analyze_comments.await_count == 2

    @pytest.mark.asyncio
    async def test_pauses_between_fragments_only(self):
        from feedbackflow.analysis import ChunkedAnalysisDriver

        driver = ChunkedAnalysisDriver(_service("x" * 120), budget_chars=1000,
                                       fragment_size=50, fragment_delay=0.05)

        with patch('asyncio.sleep', new_callable=AsyncMock) as mock_sleep:
            fragments = [f async for f in driver.stream_analyze("input", "youtube")]

        assert len(fragments) == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.05)
