"""
UI Auto Fixer

Generates and repairs ExTester UI tests for VS Code extensions by:
1. Running the UI test suite (or a single test file) and capturing its output
2. Parsing failures from compiler, Mocha and WebDriver output
3. Classifying failures as compilation or runtime problems
4. Generating fixes with an LLM, writing them and re-running to verify
"""

__version__ = "0.1.0"

from .failure_parser import FailureParser, ParsedFailure, ParseResult, parse_test_output_for_failures
from .rule_classifier import FailureClassification, FailureClassifier, classify_failure
from .orchestrator import ArtifactState, RepairOrchestrator, RepairSummary
from .test_runner import TestExecutionPort, TestRunner, TestRunResult, WorkspaceError
from .env import FixerSettings

__all__ = [
    'FailureParser',
    'ParsedFailure',
    'ParseResult',
    'parse_test_output_for_failures',
    'FailureClassification',
    'FailureClassifier',
    'classify_failure',
    'ArtifactState',
    'RepairOrchestrator',
    'RepairSummary',
    'TestExecutionPort',
    'TestRunner',
    'TestRunResult',
    'WorkspaceError',
    'FixerSettings',
]
