"""OpenAI API Client Wrapper

This module provides an OpenAIClient wrapper around the official openai Python SDK
for chat completions. The analysis service is treated as a black box: a system
prompt chosen per platform plus serialized comments go in, markdown comes out.
Includes API key validation, token usage tracking, and structured error logging.
"""

import asyncio
import os
from typing import Any, Dict, Optional

import openai
import structlog
from openai import APIConnectionError, APIError

from feedbackflow.config import DEFAULT_MODEL
from feedbackflow.prompts import build_analysis_prompt, get_service_prompt
from feedbackflow.utils.errors import AnalysisServiceError


def _get_logger():
    """Get logger instance (allows for easier mocking in tests)."""
    return structlog.get_logger()


class OpenAIClient:
    """OpenAI API client wrapper with authentication and usage tracking.

    Attributes:
        client: OpenAI SDK client instance
        model: Chat model used for every request
        prompt_tokens: Prompt tokens consumed by this client
        completion_tokens: Completion tokens consumed by this client

    Example:
        >>> client = OpenAIClient()
        >>> markdown = await client.analyze_comments("github", "Comment by alice: ...")
    """

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL):
        """Initialize the OpenAI client.

        Args:
            api_key: API key (default: OPENAI_API_KEY environment variable)
            model: Chat model name (default: gpt-4o-mini)

        Raises:
            ValueError: If no API key is given and OPENAI_API_KEY is missing or empty
        """
        api_key = (api_key or os.environ.get("OPENAI_API_KEY", "")).strip()

        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable is required but not set. "
                "Please set OPENAI_API_KEY to your OpenAI API key."
            )

        self.client = openai.OpenAI(api_key=api_key)
        self.model = model
        self.prompt_tokens = 0
        self.completion_tokens = 0

        _get_logger().info("openai_client_initialized", model=model)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    async def send_chat_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Send a chat completion request.

        The SDK call is blocking, so it runs in a worker thread.

        Returns:
            Dictionary with:
                - content (str): Response text from the assistant
                - usage (dict): prompt_tokens, completion_tokens, total_tokens

        Raises:
            AnalysisServiceError: Connection failures, API errors, or an empty response
        """
        create_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            create_kwargs["max_tokens"] = max_tokens

        try:
            response = await asyncio.to_thread(self.client.chat.completions.create, **create_kwargs)
        except (APIConnectionError, APIError) as e:
            _get_logger().error(
                "openai_api_error",
                error_type=type(e).__name__,
                error_message=str(e),
                model=self.model,
                system_prompt_length=len(system_prompt),
                user_prompt_length=len(user_prompt),
            )
            raise AnalysisServiceError(f"Analysis request failed: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            _get_logger().error("openai_empty_response", model=self.model)
            raise AnalysisServiceError("Analysis service returned an empty response")

        content = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0)
        completion_tokens = getattr(usage, "completion_tokens", 0)

        # Incomplete mocks in tests may carry non-integer usage
        if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
            prompt_tokens = completion_tokens = 0

        self.prompt_tokens += prompt_tokens
        self.completion_tokens += completion_tokens

        _get_logger().info(
            "openai_chat_completion_success",
            model=self.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            session_tokens=self.total_tokens,
        )

        return {
            "content": content,
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }

    async def analyze_comments(
        self,
        service_type: str,
        comments: str,
        custom_system_prompt: Optional[str] = None,
    ) -> str:
        """Analyze serialized comments and return markdown.

        Raises:
            ValueError: If service_type is unknown and no custom prompt is given
            AnalysisServiceError: If the analysis request fails
        """
        system_prompt = custom_system_prompt or get_service_prompt(service_type)
        result = await self.send_chat_completion(system_prompt, build_analysis_prompt(comments))
        return result["content"]
