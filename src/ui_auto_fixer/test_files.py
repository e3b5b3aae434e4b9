"""
Test File Scaffolding

Directory creation and file writing for generated UI tests.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .llm_generator import GenerationError, is_usable_response, strip_code_fences
from .logger import ScopedLogger
from .prompts import get_test_file_content_prompt

UI_TEST_DIR = os.path.join("src", "ui-test")
TEST_FILE_SUFFIX = ".test.ts"


@dataclass
class TestProposal:
    """One proposed UI test, as returned by the proposal prompt."""
    __test__ = False

    category: str
    test_name: str
    description: str = ""
    cover: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestProposal":
        """
        Build a proposal from the JSON object form.

        Raises:
            ValueError: Missing or non-string category / test-name
        """
        if not isinstance(data, dict):
            raise ValueError(f"Proposal must be an object, got {type(data).__name__}")
        category = data.get("category")
        test_name = data.get("test-name")
        if not isinstance(category, str) or not category.strip():
            raise ValueError("Proposal is missing 'category'")
        if not isinstance(test_name, str) or not test_name.strip():
            raise ValueError("Proposal is missing 'test-name'")

        cover = data.get("cover") or []
        if isinstance(cover, str):
            cover = [cover]
        return cls(
            category=category.strip(),
            test_name=test_name.strip(),
            description=str(data.get("description") or ""),
            cover=[str(c) for c in cover],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "test-name": self.test_name,
            "description": self.description,
            "cover": list(self.cover),
        }


@dataclass
class TestFile:
    """A test file written to disk."""
    __test__ = False

    name: str
    content: str
    path: str


def ensure_test_directory_exists(workspace_root: str) -> str:
    """Create ``<workspace>/src/ui-test`` if needed and return its path."""
    test_dir = os.path.join(workspace_root, UI_TEST_DIR)
    os.makedirs(test_dir, exist_ok=True)
    return test_dir


def create_category_directory(test_dir: str, category: str) -> str:
    category_dir = os.path.join(test_dir, category)
    os.makedirs(category_dir, exist_ok=True)
    return category_dir


def create_test_file(directory: str, file_name: str, content: str) -> TestFile:
    file_path = os.path.join(directory, file_name)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(content)
    return TestFile(name=file_name, content=content, path=file_path)


def write_text_file(file_path: str, content: str) -> None:
    """Write ``content`` to ``file_path``, creating parent directories."""
    parent = os.path.dirname(file_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(content)


def placeholder_test_content(test_name: str) -> str:
    return (
        "import * as assert from 'assert';\n"
        "import * as vscode from 'vscode';\n"
        "\n"
        f"describe('{test_name}', () => {{\n"
        "    it('should pass', async () => {\n"
        "        // Implement test\n"
        "    });\n"
        "});\n"
    )


def create_empty_test_file(category_dir: str, test_name: str) -> TestFile:
    """Write a minimal describe/it skeleton for a proposal that could not be generated."""
    return create_test_file(category_dir, f"{test_name}{TEST_FILE_SUFFIX}", placeholder_test_content(test_name))


def generate_and_write_test_content(
    category_dir: str,
    proposal: TestProposal,
    relevant_parts: Optional[Dict[str, Any]],
    logger: ScopedLogger,
    generate: Callable[[str], str],
) -> TestFile:
    """
    Generate a full ExTester file for a proposal and write it to disk.

    Raises:
        GenerationError: The generator returned nothing usable
    """
    log = logger.with_scope("TestFiles/generateAndWriteTestContent")
    file_name = f"{proposal.test_name}{TEST_FILE_SUFFIX}"
    log.info(f"Generating content for {file_name}")

    raw = generate(get_test_file_content_prompt(proposal, relevant_parts or {}))
    if not is_usable_response(raw):
        raise GenerationError(f"No usable content generated for {file_name}")

    content = strip_code_fences(raw)
    if not content:
        raise GenerationError(f"Generated content for {file_name} was empty after cleanup")

    log.info(f"Generated content for {file_name} ({len(content)} characters)")
    return create_test_file(category_dir, file_name, content)
