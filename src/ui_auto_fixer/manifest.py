"""
Manifest Context

Reads the workspace package.json and extracts the extension metadata that is
forwarded into prompts. The orchestrator never interprets this structure.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from .logger import ScopedLogger


def find_package_json(workspace_root: str) -> Optional[Path]:
    """
    Find the package.json for a workspace.

    Prefers ``<root>/package.json``; otherwise the first match anywhere
    below the root, ignoring node_modules.
    """
    root = Path(workspace_root)
    direct = root / "package.json"
    if direct.is_file():
        return direct

    for candidate in sorted(root.rglob("package.json")):
        if "node_modules" in candidate.parts:
            continue
        return candidate
    return None


def read_package_json(workspace_root: str, logger: ScopedLogger) -> Dict[str, Any]:
    """
    Load and parse the workspace package.json.

    Raises:
        FileNotFoundError: No package.json in the workspace
        ValueError: The file is not valid JSON
    """
    log = logger.with_scope("Manifest/readPackageJson")
    path = find_package_json(workspace_root)
    if path is None:
        log.error("No package.json found in workspace")
        raise FileNotFoundError("No package.json found in workspace")

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        log.error(f"Invalid JSON in {path}: {e}")
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def get_relevant_parts(package_json: Dict[str, Any], logger: ScopedLogger) -> Dict[str, Any]:
    """
    Extract prompt-relevant metadata from an extension manifest.

    Args:
        package_json: Parsed package.json
        logger: Logging context

    Returns:
        Extension id, activation events, commands, menus, welcome views and
        configuration properties
    """
    log = logger.with_scope("Manifest/getRelevantParts")
    if not package_json:
        return {}

    contributes = package_json.get("contributes") or {}
    configuration = contributes.get("configuration") or {}
    # configuration may be a single object or a list of sections
    if isinstance(configuration, list):
        config_properties: Dict[str, Any] = {}
        for section in configuration:
            config_properties.update((section or {}).get("properties") or {})
    else:
        config_properties = configuration.get("properties") or {}

    manifest_data = {
        "extensionId": f"{package_json.get('publisher')}.{package_json.get('name')}",
        "activationEvents": package_json.get("activationEvents") or [],
        "commands": contributes.get("commands") or [],
        "menus": contributes.get("menus") or {},
        "submenus": contributes.get("submenus") or {},
        "viewsWelcome": contributes.get("viewsWelcome") or [],
        "configProperties": config_properties,
    }

    log.debug(f"Manifest data prepared for analysis: {json.dumps(manifest_data, indent=2)}")
    return manifest_data


def load_manifest_context(workspace_root: str, logger: ScopedLogger) -> Dict[str, Any]:
    """Read the manifest and extract its relevant parts; ``{}`` when unavailable."""
    log = logger.with_scope("Manifest/loadContext")
    try:
        return get_relevant_parts(read_package_json(workspace_root, logger), logger)
    except (OSError, ValueError) as e:
        log.error(f"Failed to collect context for fix prompt: {e}")
        return {}


def detect_test_script(package_json: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Pick the npm script used to run UI tests.

    Returns:
        "ui-test", else "test", else None
    """
    scripts = (package_json or {}).get("scripts") or {}
    if isinstance(scripts.get("ui-test"), str):
        return "ui-test"
    if isinstance(scripts.get("test"), str):
        return "test"
    return None
