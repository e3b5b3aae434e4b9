import logging

import pytest

from ui_auto_fixer.env import FixerSettings
from ui_auto_fixer.logger import ScopedLogger

ENV_VARS = [
    "UITEST_WORKSPACE",
    "UITEST_TEST_PATTERN",
    "UITEST_OUTPUT_FOLDER",
    "UITEST_ROOT_FOLDER",
    "UITEST_TEMP_FOLDER",
    "UITEST_CODE_VERSION",
    "UITEST_CODE_TYPE",
    "UITEST_ADDITIONAL_ARGS",
    "UITEST_MAX_GENERATED_TESTS",
    "UITEST_CAPTURE_INITIAL_DELAY",
    "UITEST_CAPTURE_MAX_WAIT",
    "UITEST_CAPTURE_POLL_INTERVAL",
    "UITEST_SINGLE_RUN_MODE",
    "UITEST_FIX_DESTINATION",
    "UITEST_NPM",
    "UITEST_DEBUG",
    "UITEST_CHAT_MODEL",
    "UITEST_CODE_MODEL",
    "OPENAI_API_KEY",
    "AZURE_OPENAI_KEY",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_ENDPOINT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_OPENAI_CODE_DEPLOYMENT",
    "OPENAI_DEPLOYMENT",
    "OLLAMA_MODEL",
    "OLLAMA_HOST",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def logger():
    return ScopedLogger(logging.getLogger("ui_auto_fixer.tests"))


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def settings(workspace):
    return FixerSettings(workspace_root=str(workspace))
