"""
Rule-Based Classifier

Classifies parsed failures as "runtime", "compilation" or "unknown" based on
keyword patterns in the error message and title.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal

from .failure_parser import ParsedFailure

FailureType = Literal["runtime", "compilation", "unknown"]


@dataclass(frozen=True)
class FailureClassification:
    """Derived view of a failure; recomputed on demand, never stored."""
    is_runtime_failure: bool
    is_compilation_failure: bool
    failure_type: FailureType

    @property
    def is_compilation_only(self) -> bool:
        return self.is_compilation_failure and not self.is_runtime_failure

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FailureClassifier:
    """
    Classifies failures using case-insensitive substring rules.

    Both keyword sets may match the same failure. ``failure_type`` prefers
    runtime; routing decisions go through ``needs_runtime_fix``.
    """

    # Timeouts, WebDriver/session problems, elements that never became usable
    RUNTIME_PATTERNS = [
        "timeout",
        "nosuchelement",
        "staleelementreference",
        "elementnotinteractable",
        "webdriver",
        "sessionnotcreatederror",
        "unhandledpromiserejection",
        "unhandled promise rejection",
        "element not interactable",
        "cannot find element",
        "element not found",
        "waiting for element",
        "element is not attached",
        "element is not clickable",
        "element is not visible",
        "element is not enabled",
    ]

    # The test file did not build or type-check
    COMPILATION_PATTERNS = [
        "error ts",
        "typescript error",
        "syntax error",
        "syntaxerror",
        "cannot find name",
        "cannot find module",
        "property does not exist",
        "does not exist on type",
        "is not assignable to",
        "type error",
        "module not found",
        "import error",
    ]

    def classify(self, failure: ParsedFailure) -> FailureClassification:
        """
        Classify a parsed failure.

        Args:
            failure: ParsedFailure object

        Returns:
            FailureClassification with both flags and the resolved type
        """
        error_msg = (failure.error_message or "").lower()
        title = (failure.title or "").lower()

        is_runtime = any(p in error_msg or p in title for p in self.RUNTIME_PATTERNS)
        is_compilation = any(p in error_msg or p in title for p in self.COMPILATION_PATTERNS)

        failure_type: FailureType = "unknown"
        if is_runtime:
            failure_type = "runtime"
        elif is_compilation:
            failure_type = "compilation"

        return FailureClassification(
            is_runtime_failure=is_runtime,
            is_compilation_failure=is_compilation,
            failure_type=failure_type,
        )

    def needs_runtime_fix(self, failure: ParsedFailure) -> bool:
        """
        Binary routing decision.

        Only compilation-only failures take the compile-fix path; pure
        runtime, ambiguous and unmatched failures all take the runtime path.
        """
        return not self.classify(failure).is_compilation_only


_default_classifier = FailureClassifier()


def classify_failure(failure: ParsedFailure) -> FailureClassification:
    return _default_classifier.classify(failure)


def needs_runtime_fix(failure: ParsedFailure) -> bool:
    return _default_classifier.needs_runtime_fix(failure)
