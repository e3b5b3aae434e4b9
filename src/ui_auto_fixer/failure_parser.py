"""
Test Failure Parser

Parses raw UI test runner output and extracts structured failure information.

Handles, in one left-to-right pass:
1. TypeScript compiler diagnostics (``file.ts(22,27): error TS2552: ...``)
2. Mocha/ExTester numbered failure blocks (``1) Suite should do X``)
3. Error lines (``AssertionError: ...``, WebDriver errors, timeouts)
4. File location hints inside stack frames
5. Stack trace lines (``at ...``)
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .output_sanitizer import strip_ansi

UNKNOWN_TEST_TITLE = "Unknown test"
FALLBACK_TITLE = "Unknown failing test"

_SOURCE_EXT = r"(?:ts|tsx|js|jsx)"

COMPILER_DIAGNOSTIC = re.compile(
    rf"^([^()]+\.{_SOURCE_EXT})\((\d+),(\d+)\):\s+error\s+[A-Z]{{1,4}}\d+:\s+(.*)$"
)
FAILURE_HEADER = re.compile(r"^\d+\)\s+(.*?)(?::\s*)?$")

ERROR_LINE_PATTERNS = [
    re.compile(
        r"^(?:Error|AssertionError|TypeError|ReferenceError|RangeError|TimeoutError|SessionNotCreatedError):\s*(.*)$"
    ),
    re.compile(r"^[A-Za-z][A-Za-z0-9]*Error:\s*(.*)$"),
    re.compile(r"^Timeout of \d+ms exceeded.*$"),
    re.compile(r"^Unhandled.*$"),
]

# at Context.<anonymous> (path/to/test.ts:12:3)
FILE_IN_PARENS = re.compile(rf"\(([^()]+\.{_SOURCE_EXT}):\d+:\d+\)")
# at path/to/test.ts:12:3
FILE_BARE = re.compile(rf"(?:^|(?<=\s))([^()\s]+\.{_SOURCE_EXT}):(\d+):(\d+)\b")

FALLBACK_SIGNATURE = re.compile(r"(error TS\d+|[A-Za-z][A-Za-z0-9]*Error:|Timeout|Unhandled)")


@dataclass
class ParsedFailure:
    """Structured representation of one failure found in runner output."""
    title: str
    error_message: str = ""
    file: Optional[str] = None
    stack: Optional[str] = None

    def append_stack(self, raw_line: str) -> None:
        self.stack = (self.stack or "") + raw_line + "\n"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "file": self.file,
            "error_message": self.error_message,
            "stack": self.stack,
        }


@dataclass(frozen=True)
class ParseResult:
    """All failures found by a single parse pass, in document order."""
    failures: Tuple[ParsedFailure, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {"failures": [f.to_dict() for f in self.failures]}


class FailureParser:
    """Parses Mocha/ExTester, TypeScript compiler and WebDriver output."""

    def parse(self, output: str) -> ParseResult:
        """
        Parse combined stdout/stderr into failures.

        Args:
            output: Raw runner output, possibly ANSI coloured

        Returns:
            ParseResult with failures in the order they appear
        """
        lines = re.split(r"\r?\n", strip_ansi(output or ""))
        failures: List[ParsedFailure] = []
        current: Optional[ParsedFailure] = None

        for line in lines:
            trimmed = line.strip()
            if not trimmed:
                continue

            diagnostic = COMPILER_DIAGNOSTIC.match(trimmed)
            if diagnostic:
                if current:
                    failures.append(current)
                    current = None
                file_path, line_no, col_no, message = diagnostic.groups()
                failures.append(ParsedFailure(
                    title=f"{file_path}:{line_no}:{col_no}",
                    file=file_path,
                    error_message=message.strip(),
                ))
                continue

            header = FAILURE_HEADER.match(trimmed)
            if header:
                if current:
                    failures.append(current)
                current = ParsedFailure(title=header.group(1))
                continue

            if self._is_error_line(trimmed):
                if not current:
                    current = ParsedFailure(title=UNKNOWN_TEST_TITLE)
                current.error_message = trimmed
                continue

            # No continue here: a stack frame also carries the file hint
            file_hint = self._find_file_hint(trimmed)
            if file_hint:
                if not current:
                    current = ParsedFailure(title=UNKNOWN_TEST_TITLE)
                current.file = file_hint

            if trimmed.startswith("at "):
                if not current:
                    current = ParsedFailure(title=UNKNOWN_TEST_TITLE)
                current.append_stack(line)
                continue

        if current:
            failures.append(current)

        if not failures:
            fallback = self._fallback_failure(lines)
            if fallback:
                failures.append(fallback)

        return ParseResult(failures=tuple(failures))

    def _is_error_line(self, trimmed: str) -> bool:
        return any(pattern.match(trimmed) for pattern in ERROR_LINE_PATTERNS)

    def _find_file_hint(self, trimmed: str) -> Optional[str]:
        """Return the source path referenced by a stack-frame style location, if any."""
        in_parens = FILE_IN_PARENS.search(trimmed)
        if in_parens:
            return in_parens.group(1)
        bare = FILE_BARE.search(trimmed)
        if bare:
            return bare.group(1)
        return None

    def _fallback_failure(self, lines: List[str]) -> Optional[ParsedFailure]:
        """
        Synthesize one failure when nothing structured was found but the
        output plainly contains an error signature.
        """
        matching = [l.strip() for l in lines if FALLBACK_SIGNATURE.search(l.strip())]
        if not matching:
            return None
        return ParsedFailure(title=FALLBACK_TITLE, error_message=matching[-1])


def parse_test_output_for_failures(output: str) -> ParseResult:
    """Parse runner output with a fresh parser."""
    return FailureParser().parse(output)


def extract_test_files_from_failures(failures) -> List[str]:
    """
    Collect the unique file paths referenced by failures.

    Args:
        failures: Iterable of ParsedFailure

    Returns:
        De-duplicated paths in first-seen order
    """
    seen: Dict[str, None] = {}
    for failure in failures:
        if failure.file and failure.file.strip():
            seen.setdefault(failure.file, None)
    return list(seen)
