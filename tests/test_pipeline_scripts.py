"""
Tests for the fetch/analyze pipeline scripts.

The stages exchange a JSON file: fetch.py writes containers with their
flattened comments, analyze.py rebuilds them and writes a markdown report.
Services are mocked; the tests exercise the file hand-off.
"""

import json
import sys
from pathlib import Path

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

# Add project root to path so scripts.pipeline.* can be imported
_PROJECT_DIR = Path(__file__).parent.parent
if str(_PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(_PROJECT_DIR))


def _container():
    from feedbackflow.models.feedback_models import Comment, Container

    return Container(
        id="100",
        title="Show HN: FeedbackFlow",
        author="pg",
        body="",
        url="https://news.ycombinator.com/item?id=100",
        created_at=1714560000,
        labels=("show",),
        engagement_score=321,
        comments=(
            Comment(id="101", parent_id=None, author="alice", content="Nice work", created_at=1714560100),
            Comment(id="103", parent_id="101", author="bob", content="Agreed", created_at=1714560300),
        ),
        source_type="Hacker News",
    )


class TestCheckEnvVars:
    """Required environment variables per source."""

    def test_reports_missing_reddit_credentials(self):
        from scripts.pipeline.fetch import check_env_vars

        with patch.dict('os.environ', {'REDDIT_CLIENT_ID': 'id'}, clear=True):
            assert check_env_vars("reddit") == ["REDDIT_CLIENT_SECRET", "REDDIT_USER_AGENT"]

    def test_hackernews_needs_nothing(self):
        from scripts.pipeline.fetch import check_env_vars

        with patch.dict('os.environ', {}, clear=True):
            assert check_env_vars("hackernews") == []


class TestRunFetch:
    """Fetched containers are written to JSON with metadata and warnings."""

    @pytest.mark.asyncio
    async def test_writes_containers(self, tmp_path):
        from scripts.pipeline.fetch import run_fetch

        output = tmp_path / "fetched.json"

        with patch.dict('os.environ', {}, clear=True):
            with patch('feedbackflow.hackernews.HackerNewsService.get_stories',
                       new_callable=AsyncMock, return_value=[_container()]) as mock_get:
                await run_fetch("hackernews", ["100"], [], str(output))

        mock_get.assert_awaited_once_with([100])
        data = json.loads(output.read_text())
        assert data["metadata"]["source"] == "hackernews"
        assert data["metadata"]["container_count"] == 1
        assert data["metadata"]["total_comments"] == 2
        assert data["warnings"] == []
        assert data["containers"][0]["comments"][1]["parent_id"] == "101"

    @pytest.mark.asyncio
    async def test_rejects_non_github_url(self, tmp_path):
        from scripts.pipeline.fetch import run_fetch

        with patch.dict('os.environ', {'GITHUB_TOKEN': 'ghp_x'}, clear=True):
            with pytest.raises(ValueError, match='Not a GitHub URL'):
                await run_fetch("github", ["https://gitlab.com/a/b"], [], str(tmp_path / "out.json"))


class TestAnalyzeStage:
    """analyze.py rebuilds containers and writes the report."""

    def test_container_from_dict_restores_fetch_output(self):
        from dataclasses import asdict
        from scripts.pipeline.analyze import container_from_dict

        original = _container()
        serialized = json.loads(json.dumps(asdict(original)))

        assert container_from_dict(serialized) == original

    @pytest.mark.asyncio
    async def test_run_analysis_writes_markdown(self, tmp_path):
        from dataclasses import asdict
        from scripts.pipeline.analyze import run_analysis

        input_path = tmp_path / "fetched.json"
        input_path.write_text(json.dumps({
            "metadata": {"source": "hackernews"},
            "containers": [asdict(_container())],
        }))
        output = tmp_path / "report" / "analysis.md"

        mock_client = MagicMock()
        mock_client.analyze_comments = AsyncMock(return_value="## Summary\nPositive")

        with patch.dict('os.environ', {}, clear=True):
            with patch('feedbackflow.ai_client.OpenAIClient', return_value=mock_client):
                await run_analysis(str(input_path), None, str(output), stream=False)

        assert output.read_text() == "## Summary\nPositive"
        service_type, text = mock_client.analyze_comments.await_args.args[:2]
        assert service_type == "hackernews"
        assert "Comment by alice: Nice work\n  Comment by bob: Agreed" in text
