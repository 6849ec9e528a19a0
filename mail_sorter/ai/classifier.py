"""
Email classifier.

Sends sender, subject and normalized body text to a language model and
turns its free-form answer into a validated Decision.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.config import ClassifierConfig
from ..core.exceptions import ClassifierResponseError, ConfigurationError
from .prompts import ACTIONS, CATEGORIES, DEFAULT_ACTION, DEFAULT_CATEGORY, build_classification_prompt


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """Classifier output for one email."""

    category: str
    action: str
    folder: Optional[str] = None  # Only meaningful for action == "move"
    confidence: float = 0.0


def extract_json_object(text: str) -> str:
    """
    Best-effort extraction of the JSON object embedded in a model response.

    Strips markdown code fences, then keeps the span from the first '{' to
    the last '}'. Returns "{}" when there is no such span.
    """
    content = (text or "").strip()

    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        return "{}"
    return content[start : end + 1]


def _coerce_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    return min(max(confidence, 0.0), 1.0)


def validate_decision(raw: Dict[str, Any], log: Optional[logging.Logger] = None) -> Decision:
    """
    Coerce a parsed model answer into a valid Decision.

    - unknown category -> DEFAULT_CATEGORY
    - folder always equals the category
    - unknown action -> DEFAULT_ACTION
    - confidence clamped to [0, 1]
    """
    log = log or logger

    category = raw.get("category")
    if not isinstance(category, str) or category not in CATEGORIES:
        log.warning(f"Invalid category: {category}, defaulting to {DEFAULT_CATEGORY}")
        category = DEFAULT_CATEGORY

    # Some models return "Hotels_and_Travel" or similar as folder
    folder = category

    action = raw.get("action")
    if not isinstance(action, str) or action not in ACTIONS:
        log.warning(f"Invalid action: {action}, defaulting to {DEFAULT_ACTION}")
        action = DEFAULT_ACTION

    return Decision(
        category=category,
        action=action,
        folder=folder,
        confidence=_coerce_confidence(raw.get("confidence")),
    )


def build_backend(config: ClassifierConfig):
    """
    Create the text-generation backend for the configured provider.

    Raises:
        ConfigurationError: For an unknown provider
    """
    if config.provider == "ollama":
        from .ollama_client import OllamaClient

        return OllamaClient(config)
    if config.provider == "claude":
        from .claude_client import ClaudeClient

        return ClaudeClient(config)
    raise ConfigurationError(f"Unknown LLM provider: {config.provider}")


class EmailClassifier:
    """
    Classifies emails into a fixed set of categories.

    Usage:
        classifier = EmailClassifier(OllamaClient(config))
        decision = classifier.classify("shop@amazon.fr", "Your order", "...")
    """

    def __init__(self, backend, logger: Optional[logging.Logger] = None):
        """
        Initialize classifier.

        Args:
            backend: Object with generate(prompt) -> str (OllamaClient, ClaudeClient)
            logger: Logger to use (default: module logger)
        """
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, sender: str, subject: str, content: str) -> Decision:
        """
        Classify one email.

        Returns:
            Validated Decision

        Raises:
            ClassifierError: If the model call fails
            ClassifierResponseError: If the response holds no parseable JSON object
        """
        prompt = build_classification_prompt(sender=sender, subject=subject, content=content)
        text = self.backend.generate(prompt)

        try:
            parsed = json.loads(extract_json_object(text))
        except json.JSONDecodeError as e:
            self.logger.error(f"Failed to parse LLM response: {e}")
            self.logger.debug(f"Raw response (first 500 chars): {text[:500]}")
            raise ClassifierResponseError("Invalid LLM JSON response") from e

        if not isinstance(parsed, dict):
            raise ClassifierResponseError(f"Expected a JSON object, got {type(parsed).__name__}")

        return validate_decision(parsed, self.logger)
