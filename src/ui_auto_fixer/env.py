# src/ui_auto_fixer/env.py
import os
import pathlib
import re
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_TEST_PATTERN = "**/ui-test/**/*.ts"
DEFAULT_OUTPUT_FOLDER = "out"

# Capture-file polling (seconds). ExTester runs need time to spin up the
# editor and download artifacts before the result file shows up.
DEFAULT_CAPTURE_INITIAL_DELAY = 30.0
DEFAULT_CAPTURE_MAX_WAIT = 60.0
DEFAULT_CAPTURE_POLL_INTERVAL = 1.0

SINGLE_RUN_MODES = ("capture", "direct")


def get_any_env(*names: str) -> str:
    """
    Get environment variable from multiple possible names.
    Raises RuntimeError if none are found.
    """
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()

    raise RuntimeError(f"Missing required environment variable. Tried: {', '.join(names)}")


def get_optional_env(*names: str, default: str = "") -> str:
    """
    Get environment variable from multiple possible names with default fallback.
    """
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return default


def env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def env_float(name: str, default: float) -> float:
    value = get_optional_env(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def normalize_limit(raw: Optional[object]) -> Optional[int]:
    """
    Normalize a configured proposal limit.

    Only finite, positive numbers count; they are floored. Anything else
    means "no limit".
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if value != value or value in (float("inf"), float("-inf")) or value <= 0:
        return None
    limit = int(value)
    return limit if limit > 0 else None


def split_args(raw: str) -> List[str]:
    """Split extra runner args on whitespace, keeping double-quoted groups together."""
    return re.findall(r'(?:[^\s"]+|"[^"]*")+', raw or "")


@dataclass
class FixerSettings:
    """Runtime configuration for the fixer workflows."""

    workspace_root: str = field(default_factory=lambda: str(pathlib.Path(".").resolve()))
    test_pattern: str = DEFAULT_TEST_PATTERN
    output_folder: str = DEFAULT_OUTPUT_FOLDER
    root_folder: Optional[str] = None
    temp_folder: Optional[str] = None
    code_version: Optional[str] = None
    code_type: Optional[str] = None
    additional_args: List[str] = field(default_factory=list)
    max_generated_tests: Optional[int] = None
    capture_initial_delay: float = DEFAULT_CAPTURE_INITIAL_DELAY
    capture_max_wait: float = DEFAULT_CAPTURE_MAX_WAIT
    capture_poll_interval: float = DEFAULT_CAPTURE_POLL_INTERVAL
    single_run_mode: str = "capture"
    fix_destination: Optional[str] = None
    npm_command: str = "npm"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "FixerSettings":
        """Build settings from UITEST_* environment variables."""
        workspace = get_optional_env("UITEST_WORKSPACE")
        mode = get_optional_env("UITEST_SINGLE_RUN_MODE", default="capture").lower()
        if mode not in SINGLE_RUN_MODES:
            mode = "capture"

        return cls(
            workspace_root=str(pathlib.Path(workspace or ".").resolve()),
            test_pattern=get_optional_env("UITEST_TEST_PATTERN", default=DEFAULT_TEST_PATTERN),
            output_folder=get_optional_env("UITEST_OUTPUT_FOLDER", default=DEFAULT_OUTPUT_FOLDER),
            root_folder=get_optional_env("UITEST_ROOT_FOLDER") or None,
            temp_folder=get_optional_env("UITEST_TEMP_FOLDER") or None,
            code_version=get_optional_env("UITEST_CODE_VERSION") or None,
            code_type=get_optional_env("UITEST_CODE_TYPE") or None,
            additional_args=split_args(get_optional_env("UITEST_ADDITIONAL_ARGS")),
            max_generated_tests=normalize_limit(get_optional_env("UITEST_MAX_GENERATED_TESTS") or None),
            capture_initial_delay=env_float("UITEST_CAPTURE_INITIAL_DELAY", DEFAULT_CAPTURE_INITIAL_DELAY),
            capture_max_wait=env_float("UITEST_CAPTURE_MAX_WAIT", DEFAULT_CAPTURE_MAX_WAIT),
            capture_poll_interval=env_float("UITEST_CAPTURE_POLL_INTERVAL", DEFAULT_CAPTURE_POLL_INTERVAL),
            single_run_mode=mode,
            fix_destination=get_optional_env("UITEST_FIX_DESTINATION") or None,
            npm_command=get_optional_env("UITEST_NPM", default="npm"),
            debug=env_flag("UITEST_DEBUG"),
        )
