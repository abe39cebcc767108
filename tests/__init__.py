"""
Test Suite for FeedbackFlow

Behavioral tests for the ingestion core: paginated fetching with governed
retries, comment tree normalization, chunked analysis, and the platform
adapters built on top of them. No test touches the network; HTTP responses,
the OpenAI SDK and Async PRAW are all mocked.

Test Organization:
- test_rate_limit.py: Backoff delay decisions from response headers
- test_paging.py: Cursor pagination, retry budget, cancellation
- test_normalizer.py: Tree flattening, cycles, transcripts, tree rebuilding
- test_analysis.py: Chunk splitting, recombination, streaming fragments
- test_github_service.py: GitHub GraphQL collections and URL parsing
- test_youtube.py: YouTube comment threads and video metadata
- test_hackernews.py: Hacker News comment tree walking
- test_reddit_client.py: Async PRAW client and thread conversion
- test_ai_client.py: OpenAI client wrapper
- test_prompts.py: Per-platform system prompts
- test_config.py: Environment-driven settings
- test_pipeline_scripts.py: Fetch/analyze pipeline stages
- utils/: Error taxonomy, warnings collector, logging configuration

Run all tests:
    python -m pytest tests/ -v
"""
