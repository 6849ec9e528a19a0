"""
Claude API Client

Wrapper around Anthropic's Python SDK, used as an alternative classifier
backend (LLM_PROVIDER=claude).
"""

import logging
import time

from anthropic import Anthropic, APIError, RateLimitError as AnthropicRateLimitError

from ..core.config import ClassifierConfig
from ..core.exceptions import ClassifierError


logger = logging.getLogger(__name__)


class ClaudeClient:
    """
    Claude API client for email classification.

    Wraps Anthropic SDK with:
    - Rate limit handling
    - Retry with backoff on server/overloaded errors

    Usage:
        config = ClassifierConfig(provider='claude', anthropic_api_key='sk-ant-...')
        client = ClaudeClient(config)
        text = client.generate("Classify this email...")
    """

    def __init__(self, config: ClassifierConfig, max_retries: int = 3):
        """
        Initialize Claude API client.

        Args:
            config: ClassifierConfig with API key and model settings
            max_retries: Max retry attempts for transient errors
        """
        self.config = config
        self.max_retries = max_retries
        self._client = Anthropic(api_key=config.anthropic_api_key)
        logger.debug(f"ClaudeClient initialized (model: {config.claude_model})")

    def generate(self, prompt: str, retry_count: int = 0) -> str:
        """
        Run a single completion.

        Args:
            prompt: User prompt
            retry_count: Current retry attempt (internal)

        Returns:
            Text of the first content block

        Raises:
            ClassifierError: If the API request fails after retries
        """
        try:
            response = self._client.messages.create(
                model=self.config.claude_model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.content[0].text if response.content else "{}"

        except AnthropicRateLimitError as e:
            if retry_count < self.max_retries:
                wait_time = min(2 ** retry_count * 10, 60)  # 10s, 20s, 40s, max 60s
                logger.warning(
                    f"Claude API rate limited, waiting {wait_time}s before retry "
                    f"{retry_count + 1}/{self.max_retries}: {e}"
                )
                time.sleep(wait_time)
                return self.generate(prompt, retry_count + 1)
            logger.error(f"Claude API rate limit exceeded after {self.max_retries} retries")
            raise ClassifierError(f"Claude API rate limited after {self.max_retries} retries: {e}") from e

        except APIError as e:
            is_server_error = (getattr(e, "status_code", None) or 0) >= 500
            is_overloaded = "overloaded" in str(e).lower()

            if (is_server_error or is_overloaded) and retry_count < self.max_retries:
                wait_time = min(2 ** retry_count * 5, 30)  # 5s, 10s, 20s, max 30s
                logger.warning(
                    f"Claude API server error, waiting {wait_time}s before retry "
                    f"{retry_count + 1}/{self.max_retries}: {e}"
                )
                time.sleep(wait_time)
                return self.generate(prompt, retry_count + 1)

            logger.error(f"Claude API error: {e}")
            raise ClassifierError(f"Claude API request failed: {e}") from e
