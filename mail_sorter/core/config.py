"""
Configuration management for Outlook Mail Sorter.

Loads configuration from:
1. .env file (credentials and per-machine settings - never committed)
2. config.yaml (optional runtime settings)

Environment variables win over config.yaml for the runtime settings they cover.
"""

from dataclasses import dataclass, field, fields
from typing import List, Optional
import logging
import os
import yaml
from dotenv import load_dotenv


logger = logging.getLogger(__name__)


SUPPORTED_PROVIDERS = ("ollama", "claude")


@dataclass
class GraphAPIConfig:
    """Microsoft Graph API configuration (delegated permissions)."""

    client_id: str
    tenant_id: str = "consumers"
    client_secret: str = ""
    redirect_port: int = 8080
    redirect_uri: str = ""
    authority: str = ""
    token_cache_path: str = ""
    scopes: List[str] = field(
        default_factory=lambda: [
            "https://graph.microsoft.com/Mail.Read",
            "https://graph.microsoft.com/Mail.ReadWrite",
            "offline_access",
        ]
    )

    def __post_init__(self):
        """Build authority URL and redirect URI if not provided."""
        if not self.tenant_id:
            self.tenant_id = "consumers"
        if not self.authority:
            self.authority = f"https://login.microsoftonline.com/{self.tenant_id}"
        if not self.redirect_uri:
            self.redirect_uri = f"http://localhost:{self.redirect_port}/callback"

    @property
    def is_confidential(self) -> bool:
        """True when a client secret is configured."""
        return bool(self.client_secret)


@dataclass
class ClassifierConfig:
    """Language model configuration for email classification."""

    provider: str = "ollama"
    ollama_host: str = "http://localhost:11434"
    model: str = "qwen2:7b-instruct"
    temperature: float = 0.1
    anthropic_api_key: str = ""
    claude_model: str = "claude-haiku-4-5"
    max_tokens: int = 300
    timeout_seconds: int = 120


@dataclass
class AppConfig:
    """Runtime application configuration (config.yaml, overridden by .env)."""

    # Fetching
    email_limit: int = 20
    sort_mode: bool = False  # All inbox emails instead of unread only

    # Safety
    dry_run: bool = False

    # Logging
    log_level: str = "info"

    # Sign-in
    auth_timeout_seconds: int = 120
    missing_code_grace_seconds: float = 2.0


def _env_flag(name: str) -> Optional[bool]:
    """Read a '1'/'0' style flag, None when unset."""
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes")


class ConfigManager:
    """Central configuration manager.

    Loads configuration from:
    - .env file for credentials (Microsoft app registration, Anthropic key)
    - config.yaml for runtime settings
    """

    def __init__(self, env_file: Optional[str] = None, config_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            env_file: Path to .env file (default: .env in working directory)
            config_file: Path to config.yaml file (default: config.yaml in working directory)
        """
        if env_file is None:
            env_file = ".env"
        load_dotenv(env_file)

        if config_file is None:
            config_file = "config.yaml"
        self.config_file = config_file
        self._parse_errors: List[str] = []

        self._load_env_config()
        self._load_yaml_config()
        self._apply_env_overrides()

    def _env_number(self, name: str, default, cast):
        """Parse a numeric env var; unparseable values keep the default and are reported by validate()."""
        value = os.getenv(name)
        if value is None or value.strip() == "":
            return default
        try:
            return cast(value.strip())
        except ValueError:
            self._parse_errors.append(f"{name} must be a number (got '{value}')")
            return default

    def _load_env_config(self):
        """Load credentials from .env file."""

        self.graph_api = GraphAPIConfig(
            client_id=os.getenv("MICROSOFT_CLIENT_ID", ""),
            tenant_id=os.getenv("MICROSOFT_TENANT_ID", "consumers"),
            client_secret=os.getenv("MICROSOFT_CLIENT_SECRET", ""),
            redirect_port=self._env_number("MICROSOFT_REDIRECT_PORT", 8080, int),
            redirect_uri=os.getenv("MICROSOFT_REDIRECT_URI", ""),
            token_cache_path=os.getenv("MICROSOFT_TOKEN_CACHE", ""),
        )

        self.classifier = ClassifierConfig(
            provider=os.getenv("LLM_PROVIDER", "ollama").strip().lower(),
            ollama_host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            model=os.getenv("MODEL", "qwen2:7b-instruct"),
            temperature=self._env_number("LLM_TEMPERATURE", 0.1, float),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            claude_model=os.getenv("CLAUDE_MODEL", "claude-haiku-4-5"),
        )

    def _load_yaml_config(self):
        """Load runtime configuration from config.yaml."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, "r") as f:
                    data = yaml.safe_load(f) or {}

                known = {fld.name for fld in fields(AppConfig)}
                unknown = sorted(set(data) - known)
                if unknown:
                    logger.warning(f"Ignoring unknown config.yaml keys: {', '.join(unknown)}")

                self.app = AppConfig(**{k: v for k, v in data.items() if k in known})
            except Exception as e:
                logger.warning(f"Failed to load {self.config_file}: {e}; using default configuration")
                self.app = AppConfig()
        else:
            self.app = AppConfig()

    def _apply_env_overrides(self):
        """Let DRY_RUN, SORT_MODE, EMAIL_LIMIT and LOG_LEVEL override config.yaml."""
        dry_run = _env_flag("DRY_RUN")
        if dry_run is not None:
            self.app.dry_run = dry_run

        sort_mode = _env_flag("SORT_MODE")
        if sort_mode is not None:
            self.app.sort_mode = sort_mode

        self.app.email_limit = self._env_number("EMAIL_LIMIT", self.app.email_limit, int)

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            self.app.log_level = log_level.strip().lower()

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = list(self._parse_errors)

        if not self.graph_api.client_id:
            errors.append("MICROSOFT_CLIENT_ID not set in .env")

        if self.classifier.provider not in SUPPORTED_PROVIDERS:
            errors.append(
                f"LLM_PROVIDER must be one of {', '.join(SUPPORTED_PROVIDERS)} (got '{self.classifier.provider}')"
            )
        if self.classifier.provider == "claude" and not self.classifier.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY not set in .env (LLM_PROVIDER=claude)")

        if self.app.email_limit < 1:
            errors.append("email_limit must be >= 1")
        if self.app.auth_timeout_seconds < 1:
            errors.append("auth_timeout_seconds must be >= 1")

        return errors


# Global singleton instance
_config: Optional[ConfigManager] = None


def get_config(env_file: Optional[str] = None, config_file: Optional[str] = None) -> ConfigManager:
    """
    Get global configuration manager instance (singleton).

    Args:
        env_file: Path to .env file (only used on first call)
        config_file: Path to config.yaml file (only used on first call)

    Returns:
        ConfigManager instance
    """
    global _config
    if _config is None:
        _config = ConfigManager(env_file=env_file, config_file=config_file)
    return _config


def reset_config():
    """Drop the cached singleton (next get_config() reloads from disk)."""
    global _config
    _config = None
