"""
Ollama API Client

Calls a local Ollama server's /api/generate endpoint for classification.
"""

import logging

import requests

from ..core.config import ClassifierConfig
from ..core.exceptions import ClassifierError


logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Minimal non-streaming client for Ollama's generate endpoint.

    Usage:
        client = OllamaClient(ClassifierConfig(model="qwen2:7b-instruct"))
        text = client.generate("Classify this email...")
    """

    def __init__(self, config: ClassifierConfig):
        self.config = config
        self.base_url = config.ollama_host.rstrip("/")
        logger.debug(f"OllamaClient initialized (host: {self.base_url}, model: {config.model})")

    def generate(self, prompt: str) -> str:
        """
        Run a single completion.

        Returns:
            The model's raw response text

        Raises:
            ClassifierError: On connection failure or non-2xx status
        """
        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.config.model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {"temperature": self.config.temperature},
                },
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(f"LLM request failed: {e}")
            raise ClassifierError(f"LLM request failed: {e}") from e

        if not response.ok:
            logger.error(f"LLM request failed with status {response.status_code}: {response.reason}")
            raise ClassifierError(f"LLM request failed with status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ClassifierError(f"LLM returned a non-JSON envelope: {e}") from e

        return data.get("response") or "{}"
