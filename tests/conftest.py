"""
Shared pytest fixtures.
"""

import os

import pytest

from mail_sorter.core.config import reset_config


CONFIG_ENV_VARS = [
    "MICROSOFT_CLIENT_ID",
    "MICROSOFT_TENANT_ID",
    "MICROSOFT_CLIENT_SECRET",
    "MICROSOFT_REDIRECT_PORT",
    "MICROSOFT_REDIRECT_URI",
    "MICROSOFT_TOKEN_CACHE",
    "LLM_PROVIDER",
    "OLLAMA_HOST",
    "MODEL",
    "LLM_TEMPERATURE",
    "ANTHROPIC_API_KEY",
    "CLAUDE_MODEL",
    "DRY_RUN",
    "SORT_MODE",
    "EMAIL_LIMIT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate a test from the developer's environment, .env and config.yaml."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield tmp_path
    # load_dotenv writes straight into os.environ
    for name in CONFIG_ENV_VARS:
        os.environ.pop(name, None)
    reset_config()
