"""Runtime configuration for FeedbackFlow.

Settings are read once from environment variables (after loading an optional
``.env`` file, where already-exported variables win) and passed to the services
at construction. Nothing here is mutated afterwards.

Environment variables:
    GITHUB_TOKEN: bearer token for the GitHub GraphQL API
    GITHUB_GRAPHQL_URL: GraphQL endpoint (default: https://api.github.com/graphql)
    YOUTUBE_API_KEY: YouTube Data API v3 key
    OPENAI_API_KEY: analysis service key (validated by OpenAIClient)
    OPENAI_MODEL: analysis model (default: gpt-4o-mini)
    FEEDBACKFLOW_MAX_ATTEMPTS: per-page retry budget (default: 5)
    FEEDBACKFLOW_FALLBACK_DELAY: backoff seconds without a Retry-After hint (default: 60)
    FEEDBACKFLOW_CHUNK_BUDGET: analysis chunk budget in characters (default: 350000)
    FEEDBACKFLOW_FRAGMENT_SIZE: streaming display fragment size (default: 50)
    FEEDBACKFLOW_FRAGMENT_DELAY: seconds between streamed fragments (default: 0.05)
    FEEDBACKFLOW_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 60)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import structlog

logger = structlog.get_logger()

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_FALLBACK_DELAY = 60.0
DEFAULT_CHUNK_BUDGET = 350_000
DEFAULT_FRAGMENT_SIZE = 50
DEFAULT_FRAGMENT_DELAY = 0.05
DEFAULT_REQUEST_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings shared by fetchers and the analysis driver."""
    github_token: str = ""
    github_graphql_url: str = DEFAULT_GRAPHQL_URL
    youtube_api_key: str = ""
    openai_model: str = DEFAULT_MODEL
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    fallback_delay: float = DEFAULT_FALLBACK_DELAY
    chunk_budget: int = DEFAULT_CHUNK_BUDGET
    fragment_size: int = DEFAULT_FRAGMENT_SIZE
    fragment_delay: float = DEFAULT_FRAGMENT_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def load_dotenv(env_path: Union[str, Path, None] = None) -> None:
    """Load a .env file into os.environ if it exists.

    Lines are ``KEY=value``; blank lines and ``#`` comments are skipped and
    surrounding quotes are stripped. Variables already set in the environment
    are left untouched.
    """
    path = Path(env_path) if env_path is not None else Path.cwd() / ".env"
    if not path.exists():
        return

    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_number(name: str, default, cast):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(env_path: Optional[Union[str, Path]] = None) -> Settings:
    """Build Settings from the environment.

    Args:
        env_path: Optional .env file to load first (default: ./.env)

    Returns:
        Settings: Populated, immutable settings

    Raises:
        ValueError: If a numeric variable is malformed or negative; the message
            names the offending variable
    """
    load_dotenv(env_path)

    settings = Settings(
        github_token=_env_str("GITHUB_TOKEN"),
        github_graphql_url=_env_str("GITHUB_GRAPHQL_URL", DEFAULT_GRAPHQL_URL),
        youtube_api_key=_env_str("YOUTUBE_API_KEY"),
        openai_model=_env_str("OPENAI_MODEL", DEFAULT_MODEL),
        max_attempts=_env_number("FEEDBACKFLOW_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, int),
        fallback_delay=_env_number("FEEDBACKFLOW_FALLBACK_DELAY", DEFAULT_FALLBACK_DELAY, float),
        chunk_budget=_env_number("FEEDBACKFLOW_CHUNK_BUDGET", DEFAULT_CHUNK_BUDGET, int),
        fragment_size=_env_number("FEEDBACKFLOW_FRAGMENT_SIZE", DEFAULT_FRAGMENT_SIZE, int),
        fragment_delay=_env_number("FEEDBACKFLOW_FRAGMENT_DELAY", DEFAULT_FRAGMENT_DELAY, float),
        request_timeout=_env_number("FEEDBACKFLOW_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, float),
    )

    if settings.max_attempts < 1:
        raise ValueError("FEEDBACKFLOW_MAX_ATTEMPTS must be at least 1")
    if settings.chunk_budget < 1:
        raise ValueError("FEEDBACKFLOW_CHUNK_BUDGET must be at least 1")
    if settings.fragment_size < 1:
        raise ValueError("FEEDBACKFLOW_FRAGMENT_SIZE must be at least 1")

    logger.debug(
        "settings_loaded",
        github_token_set=bool(settings.github_token),
        youtube_api_key_set=bool(settings.youtube_api_key),
        model=settings.openai_model,
        max_attempts=settings.max_attempts,
        chunk_budget=settings.chunk_budget,
    )
    return settings
