"""
Repair Orchestrator

Coordinates the UI test remediation workflows:

1. generate_proposals     - ask the LLM for test proposals and write one file per proposal
2. fix_compilation_issues - run the suite, fix the first parsed failure, re-run once
3. fix_runtime_failures   - run each test file alone, fix its runtime failures one at a
                            time and re-run the same file after every fix
4. run_and_fix            - (2) followed by (3)

Every workflow returns a RepairSummary.
"""

import enum
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from .env import FixerSettings, normalize_limit
from .failure_parser import ParsedFailure, extract_test_files_from_failures, parse_test_output_for_failures
from .llm_generator import ERROR_RESPONSE, clean_json_response, is_usable_response, strip_code_fences
from .logger import ScopedLogger
from .manifest import get_relevant_parts, load_manifest_context, read_package_json
from .progress import ProgressReporter, ProgressSink
from .prompts import get_fix_failing_test_prompt, get_fix_runtime_failure_prompt, get_test_proposal_prompt
from .rule_classifier import FailureClassifier
from .test_files import (
    TestProposal,
    create_category_directory,
    create_empty_test_file,
    ensure_test_directory_exists,
    generate_and_write_test_content,
    write_text_file,
)
from .test_runner import TestRunResult, WorkspaceError

OUTCOME_GENERATED = "generated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_PASSING = "passing"
OUTCOME_FIXED = "fixed"
OUTCOME_STILL_FAILING = "still_failing"
OUTCOME_NO_TESTS = "no_tests"
OUTCOME_COMPLETED = "completed"
OUTCOME_UNRESOLVED = "unresolved"
OUTCOME_UNPARSABLE = "unparsable"
OUTCOME_NO_FIX = "no_fix"
OUTCOME_ABORTED = "aborted"

SUCCESS_OUTCOMES = (OUTCOME_PASSING, OUTCOME_FIXED, OUTCOME_COMPLETED, OUTCOME_GENERATED)

DEFAULT_FIX_FILE_NAME = "ai-fix.test.ts"
DEFAULT_FIX_DIR = os.path.join("src", "ui-test")

# Chooser receives the default directory (workspace-relative) and returns a
# workspace-relative file or directory, or ""/None for the default.
DestinationChooser = Callable[[str], Optional[str]]


class ArtifactState(enum.Enum):
    """Per-artifact repair states for the runtime workflow."""
    SCANNING = "scanning"
    FIXING = "fixing"
    VERIFYING = "verifying"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


@dataclass
class RepairSummary:
    """Terminal report of one workflow run."""
    outcome: str
    message: str
    fixed_count: int = 0
    total_failures: int = 0
    passing_files: List[str] = field(default_factory=list)
    unresolved_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    unparsable_files: List[str] = field(default_factory=list)
    generated_files: List[str] = field(default_factory=list)
    error: Optional[str] = None
    phases: List["RepairSummary"] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome in SUCCESS_OUTCOMES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "message": self.message,
            "fixed_count": self.fixed_count,
            "total_failures": self.total_failures,
            "passing_files": list(self.passing_files),
            "unresolved_files": list(self.unresolved_files),
            "skipped_files": list(self.skipped_files),
            "unparsable_files": list(self.unparsable_files),
            "generated_files": list(self.generated_files),
            "error": self.error,
            "phases": [p.to_dict() for p in self.phases],
        }


@dataclass
class RepairSession:
    """
    Mutable state of one repair workflow run.

    ``fixed_count`` counts fixes written to disk; whether they held is
    reflected in the passing/unresolved sets.
    """
    progress: ProgressReporter
    passing: Set[str] = field(default_factory=set)
    unresolved: Set[str] = field(default_factory=set)
    skipped: Set[str] = field(default_factory=set)
    unparsable: Set[str] = field(default_factory=set)
    fixed_count: int = 0
    total_failures: int = 0

    def mark_passing(self, path: str) -> None:
        self.passing.add(path)
        self.unresolved.discard(path)

    def mark_unresolved(self, path: str) -> None:
        self.unresolved.add(path)

    def summary(self, outcome: str, message: str, error: Optional[str] = None) -> RepairSummary:
        return RepairSummary(
            outcome=outcome,
            message=message,
            fixed_count=self.fixed_count,
            total_failures=self.total_failures,
            passing_files=sorted(self.passing),
            unresolved_files=sorted(self.unresolved),
            skipped_files=sorted(self.skipped),
            unparsable_files=sorted(self.unparsable),
            error=error,
        )


def default_fix_file_name(failure_file: Optional[str]) -> str:
    name = os.path.basename(failure_file) if failure_file else DEFAULT_FIX_FILE_NAME
    return name if name.endswith(".ts") else f"{name}.ts"


def _append_name_if_directory(path: str, default_name: str) -> str:
    if os.path.isdir(path):
        return os.path.join(path, default_name)
    if not os.path.exists(path) and not os.path.splitext(path)[1]:
        return os.path.join(path, default_name)
    return path


def resolve_fix_destination(
    failure_file: Optional[str],
    workspace_root: str,
    chooser: Optional[DestinationChooser] = None,
) -> str:
    """
    Decide where a generated fix is written.

    A known failure file is resolved against the workspace. Without one the
    chooser is asked (default directory ``src/ui-test``); an empty answer
    means ``src/ui-test/ai-fix.test.ts``. Directory-like targets get a
    default file name appended.
    """
    default_name = default_fix_file_name(failure_file)

    if failure_file:
        target = failure_file if os.path.isabs(failure_file) else os.path.join(workspace_root, failure_file)
        return _append_name_if_directory(target, default_name)

    picked = chooser(DEFAULT_FIX_DIR) if chooser else None
    if picked and picked.strip():
        target = os.path.join(workspace_root, picked.strip())
    else:
        target = os.path.join(workspace_root, DEFAULT_FIX_DIR, default_name)
    return _append_name_if_directory(target, default_name)


class RepairOrchestrator:
    """
    Drives generation and repair of UI tests.

    Args:
        settings: Fixer settings
        test_port: Object with ``run_all()``, ``run_one(path)`` and ``discover()``
        generate: Conversational generator (prompt -> text)
        logger: Logging context
        manifest_context: Extension metadata for prompts; loaded from the
            workspace package.json when omitted
        generate_code: Code generator used for new test files (defaults to ``generate``)
        progress_sink: Receives ``(increment, message)`` progress updates
        destination_chooser: Picks a fix destination when the failure has no file
    """

    def __init__(
        self,
        settings: FixerSettings,
        test_port,
        generate: Callable[[str], str],
        logger: ScopedLogger,
        manifest_context: Optional[Dict[str, Any]] = None,
        generate_code: Optional[Callable[[str], str]] = None,
        progress_sink: Optional[ProgressSink] = None,
        destination_chooser: Optional[DestinationChooser] = None,
    ):
        self.settings = settings
        self.test_port = test_port
        self.generate = generate
        self.generate_code = generate_code or generate
        self.logger = logger.with_scope("RepairOrchestrator")
        self.manifest_context = manifest_context
        self.progress_sink = progress_sink
        self.destination_chooser = destination_chooser or (lambda default_dir: settings.fix_destination)
        self.classifier = FailureClassifier()

    @property
    def workspace_root(self) -> str:
        return self.settings.workspace_root

    def _new_session(self) -> RepairSession:
        return RepairSession(progress=ProgressReporter(self.progress_sink))

    def _relative(self, file_path: str) -> str:
        normalized = os.path.normpath(file_path)
        absolute = normalized if os.path.isabs(normalized) else os.path.join(self.workspace_root, normalized)
        return os.path.relpath(absolute, self.workspace_root)

    def _context(self, log: ScopedLogger) -> Dict[str, Any]:
        if self.manifest_context is None:
            self.manifest_context = load_manifest_context(self.workspace_root, log)
        return self.manifest_context

    # ------------------------------------------------------------------
    # Generate proposals
    # ------------------------------------------------------------------

    def generate_proposals(self) -> RepairSummary:
        """Request test proposals and write one test file per proposal."""
        log = self.logger.with_scope("GenerateTestProposals")
        progress = self._new_session().progress
        log.info("Workflow started")

        progress.report(0, "Analyzing extension manifest")
        if self.manifest_context is None:
            try:
                self.manifest_context = get_relevant_parts(read_package_json(self.workspace_root, log), log)
            except (OSError, ValueError) as e:
                log.error(f"Error generating test proposals: {e}")
                progress.report(100, "Generation failed")
                return RepairSummary(OUTCOME_ABORTED, "Failed to read the extension manifest.", error=str(e))
        relevant_parts = self.manifest_context

        progress.report(25, "Requesting proposal batch from LLM")
        response = self.generate(get_test_proposal_prompt(relevant_parts))
        if not response or not response.strip():
            log.warning("LLM response was empty, skipping generation")
            progress.report(100, "Generation skipped - empty AI response")
            return RepairSummary(OUTCOME_SKIPPED, "The LLM returned no proposals.")

        progress.report(45, "Parsing AI proposal response")
        try:
            if response.strip() == ERROR_RESPONSE:
                raise ValueError(ERROR_RESPONSE)
            raw_proposals = json.loads(clean_json_response(response))
            if not isinstance(raw_proposals, list):
                raise ValueError("Proposal response is not a JSON array")
        except ValueError as e:
            log.error(f"Error parsing test generation results: {e}")
            log.error(f"Raw response: {response}")
            progress.report(100, "Generation aborted")
            return RepairSummary(OUTCOME_ABORTED, "Unable to parse the AI response for test generation.", error=str(e))

        proposals: List[TestProposal] = []
        for index, raw in enumerate(raw_proposals):
            try:
                proposals.append(TestProposal.from_dict(raw))
            except ValueError as e:
                log.warning(f"Skipping malformed proposal #{index + 1}: {e}")
        log.info(f"Parsed {len(proposals)} proposals from AI response")

        try:
            test_dir = ensure_test_directory_exists(self.workspace_root)
        except OSError as e:
            log.error(f"Could not create UI test directory: {e}")
            progress.report(100, "Generation failed")
            return RepairSummary(OUTCOME_ABORTED, "Could not create the UI test directory.", error=str(e))
        log.info(f"Ensured UI test directory at {test_dir}")
        progress.report(55, "Preparing UI test directory")

        limit = normalize_limit(self.settings.max_generated_tests)
        selected = proposals[:limit] if limit is not None else proposals
        limited = len(selected) < len(proposals)
        if limited:
            log.info(f"Applying generation limit: processing {len(selected)}/{len(proposals)} proposals")

        share = (95 - 55) / len(selected) if selected else 0
        completed = 0
        written: List[str] = []
        for processed, proposal in enumerate(selected, 1):
            proposal_log = log.with_scope(f"Proposal:{proposal.test_name}")
            proposal_log.info(f"Generating test for category {proposal.category}")
            try:
                category_dir = create_category_directory(test_dir, proposal.category)
                try:
                    test_file = generate_and_write_test_content(
                        category_dir, proposal, relevant_parts, self.logger, self.generate_code
                    )
                    completed += 1
                    proposal_log.info(f"Generated test file {test_file.name}")
                except Exception as e:
                    proposal_log.error(f"Failed to generate content: {e}")
                    test_file = create_empty_test_file(category_dir, proposal.test_name)
                    proposal_log.warning(f"Created empty fallback test file {test_file.name}")
                written.append(self._relative(test_file.path))
            except OSError as e:
                proposal_log.error(f"Failed to write test file: {e}")
            progress.report(55 + share * processed, f"Writing {proposal.test_name}.test.ts")

        progress.report(100, "Test generation workflow complete")
        log.info(f"Finished generating tests ({completed}/{len(selected)})")
        note = f" (limited to {len(selected)} of {len(proposals)} proposals)" if limited else ""
        return RepairSummary(
            OUTCOME_GENERATED,
            f"Generated {completed}/{len(selected)} UI test files in {test_dir}{note}.",
            fixed_count=completed,
            total_failures=len(selected),
            generated_files=written,
        )

    # ------------------------------------------------------------------
    # Fix building blocks
    # ------------------------------------------------------------------

    def _load_current_content(self, failure: ParsedFailure, log: ScopedLogger) -> Optional[str]:
        if not failure.file:
            return None
        resolved = failure.file if os.path.isabs(failure.file) else os.path.join(self.workspace_root, failure.file)
        try:
            with open(resolved, "r", encoding="utf-8") as f:
                content = f.read()
            log.debug(f"Loaded current content for {resolved}")
            return content
        except OSError as e:
            log.error(f"Could not read failing file '{failure.file}': {e}")
            return None

    def _build_fix_prompt(self, failure: ParsedFailure, output: str, current_content: Optional[str],
                          relevant_parts: Dict[str, Any], log: ScopedLogger) -> str:
        classification = self.classifier.classify(failure)
        log.info(f"Failure classification: {json.dumps(classification.to_dict())}")
        if classification.is_compilation_only:
            log.info("Selecting general failure fixer prompt")
            builder = get_fix_failing_test_prompt
        else:
            log.info("Selecting runtime-focused fixer prompt")
            builder = get_fix_runtime_failure_prompt
        return builder(output, relevant_parts, file_path=failure.file, current_content=current_content)

    def _request_fix(self, prompt: str, log: ScopedLogger) -> Optional[str]:
        response = self.generate(prompt)
        if not is_usable_response(response):
            log.warning("No usable fix was produced by the LLM")
            return None
        fixed = strip_code_fences(response)
        log.info(f"Received AI fix response ({len(fixed)} chars after cleanup)")
        return fixed or None

    def _write_fix(self, failure: ParsedFailure, fixed: str, log: ScopedLogger) -> Optional[str]:
        """Resolve the destination and write the fix; None if either step failed."""
        try:
            target = resolve_fix_destination(failure.file, self.workspace_root, self.destination_chooser)
        except (OSError, EOFError) as e:
            log.error(f"Could not resolve a destination for the AI fix: {e}")
            return None

        try:
            log.info(f"Writing AI fix to {target}")
            write_text_file(target, fixed)
        except OSError as e:
            log.error(f"Failed to write fixed file '{target}': {e}")
            return None
        log.info(f"Successfully wrote AI fix to {target}")
        return target

    def _attempt_fix(self, failure: ParsedFailure, output: str, relevant_parts: Dict[str, Any],
                     log: ScopedLogger) -> Optional[str]:
        """Load, classify, generate and write one fix. Never raises for per-item errors."""
        log.info(f"Analyzing failure \"{failure.title}\"")
        current = self._load_current_content(failure, log)
        prompt = self._build_fix_prompt(failure, output, current, relevant_parts, log)
        try:
            fixed = self._request_fix(prompt, log)
        except Exception as e:
            log.error(f"Fix generation failed: {e}")
            return None
        if fixed is None:
            return None
        return self._write_fix(failure, fixed, log)

    def _start_failure(self, result: TestRunResult) -> Optional[str]:
        """Message for a run that never started, else None."""
        if result.spawn_failed or result.exit_code == 127:
            return (
                f"Failed to start the UI test command ({result.stderr.strip() or 'command not found'}). "
                "Ensure Node.js and npm are installed and available on PATH."
            )
        return None

    # ------------------------------------------------------------------
    # Fix compilation issues
    # ------------------------------------------------------------------

    def fix_compilation_issues(self) -> RepairSummary:
        """Run the suite, fix only the first parsed failure, then verify with one re-run."""
        log = self.logger.with_scope("FixCompilationIssues")
        session = self._new_session()
        progress = session.progress
        log.info("Workflow started")

        try:
            known_files = [self._relative(f) for f in self.test_port.discover()]
            progress.report(0, "Running UI tests for compilation issues")
            log.info("Running UI tests to capture compilation failures")
            run = self.test_port.run_all()
        except WorkspaceError as e:
            log.error(f"UI test run could not be started: {e}")
            progress.report(100, "Compilation check failed")
            return session.summary(OUTCOME_ABORTED, str(e), error=str(e))

        start_error = None if run.success else self._start_failure(run)
        if start_error:
            log.error(f"UI test command not found: {run.stderr}")
            progress.report(100, "Compilation check failed")
            return session.summary(OUTCOME_ABORTED, start_error, error=run.stderr)

        if run.success:
            session.passing.update(known_files)
            self._log_compilation_summary(log, known_files, [])
            log.info("UI test run succeeded; no compilation fixes required")
            progress.report(100, "Compilation check complete")
            return session.summary(OUTCOME_PASSING, "Compilation check complete. Tests are already passing.")

        output = run.output
        parsed = parse_test_output_for_failures(output)
        session.total_failures = len(parsed)
        log.info(f"Parsed {len(parsed)} failures from test output")
        log.debug(json.dumps(parsed.to_dict(), indent=2))
        progress.report(30, "Analyzing compiler output")

        if not parsed.failures:
            log.warning("Failed to parse failures even though tests failed")
            progress.report(100, "Compilation fix skipped - unparsable output")
            return session.summary(
                OUTCOME_UNPARSABLE, "Tests failed, but the output could not be parsed.", error="unparsable output"
            )

        failing = []
        for file in extract_test_files_from_failures(parsed.failures):
            relative = self._relative(file)
            if relative not in failing:
                failing.append(relative)
        compilable = self._log_compilation_summary(log, known_files, failing)
        session.passing.update(compilable)
        for file in failing:
            session.mark_unresolved(file)

        first = parsed.failures[0]
        progress.report(45, f"Preparing fix for \"{first.title}\"")
        log.info(f"Targeting first failure \"{first.title}\" for automated fix")

        relevant_parts = self._context(log)
        progress.report(55, "Collecting project context")
        current = self._load_current_content(first, log)
        prompt = self._build_fix_prompt(first, output, current, relevant_parts, log)

        log.info(f"Requesting AI fix for {first.file or 'unknown file'}")
        progress.report(65, "Requesting AI-generated fix")
        try:
            fixed = self._request_fix(prompt, log)
        except Exception as e:
            log.error(f"Fix generation failed: {e}")
            progress.report(100, "Compilation fix skipped - no usable fix")
            return session.summary(OUTCOME_NO_FIX, "Fix generation failed.", error=str(e))
        if fixed is None:
            progress.report(100, "Compilation fix skipped - no usable fix")
            return session.summary(OUTCOME_NO_FIX, "The LLM did not produce a usable fix.")

        progress.report(75, "Applying AI-generated fix")
        target = self._write_fix(first, fixed, log)
        if target is None:
            progress.report(100, "Compilation fix skipped - write failed")
            return session.summary(OUTCOME_NO_FIX, "Could not write the AI-generated fix.")
        session.fixed_count += 1

        progress.report(90, "Re-running tests to verify fix")
        log.info("Re-running UI tests to verify compilation fix")
        try:
            rerun = self.test_port.run_all()
        except WorkspaceError as e:
            log.error(f"Verification run could not be started: {e}")
            progress.report(100, "Compilation fix workflow complete")
            return session.summary(OUTCOME_ABORTED, str(e), error=str(e))

        progress.report(100, "Compilation fix workflow complete")
        if rerun.success:
            log.info("Compilation issues resolved after AI fix")
            for file in failing:
                session.mark_passing(file)
            return session.summary(OUTCOME_FIXED, "Compilation issues resolved. Tests are now passing.")

        log.warning("Tests still failing after AI fix")
        return session.summary(
            OUTCOME_STILL_FAILING,
            f"Tests are still failing after the AI fix to {os.path.basename(target)}.",
        )

    def _log_compilation_summary(self, log: ScopedLogger, known_files: List[str], failing: List[str]) -> List[str]:
        """Log compilable vs blocked files; return the compilable ones."""
        failing_set = set(failing)
        compilable = [f for f in known_files if f not in failing_set]
        if not known_files:
            log.info("No UI test files were discovered, skipping compilation summary.")
        elif compilable:
            log.info("Following tests are compilable without error:")
            for file in compilable:
                log.info(f" - {file}")
        else:
            log.info("No compilable tests detected before encountering compilation errors.")

        if failing:
            log.warning("Was not able to automatically fix the following tests yet:")
            for file in failing:
                log.warning(f" - {file}")
        else:
            log.info("No tests currently blocked by compilation errors.")
        return compilable

    # ------------------------------------------------------------------
    # Fix runtime failures
    # ------------------------------------------------------------------

    def fix_runtime_failures(self) -> RepairSummary:
        """Run, fix and re-verify each discovered test file on its own."""
        log = self.logger.with_scope("FixRuntimeFailures")
        session = self._new_session()
        progress = session.progress
        log.info("Workflow started")

        progress.report(0, "Discovering UI test files")
        try:
            artifacts = self.test_port.discover()
        except WorkspaceError as e:
            log.error(f"Test discovery failed: {e}")
            progress.report(100, "Runtime fix failed")
            return session.summary(OUTCOME_ABORTED, str(e), error=str(e))

        log.info(f"Discovered {len(artifacts)} test files")
        if not artifacts:
            log.warning("No test files discovered; aborting runtime fix workflow")
            progress.report(100, "Runtime fix cancelled - no test files discovered")
            return session.summary(
                OUTCOME_NO_TESTS,
                "No UI test files were found in this workspace. Generate tests first, then rerun runtime fixes.",
            )

        relevant_parts = self._context(log)
        progress.report(15, "Loading extension context")

        start, end = 20, 95
        share = (end - start) / len(artifacts)
        for processed, artifact in enumerate(artifacts):
            relative = self._relative(artifact)
            file_log = log.with_scope(relative)
            progress.report(start + share * processed, f"Processing {os.path.basename(artifact)}")

            try:
                state = self._process_artifact(artifact, relative, relevant_parts, session, file_log, share * processed + start)
            except WorkspaceError as e:
                file_log.error(f"Test run could not be started: {e}")
                progress.report(100, "Runtime fix failed")
                return session.summary(OUTCOME_ABORTED, str(e), error=str(e))
            file_log.debug(f"Final state: {state.value}")

            progress.report(start + share * (processed + 1), f"Processed {processed + 1}/{len(artifacts)} test files")

        self._log_runtime_summary(log, session)
        log.info(f"Runtime fix workflow finished (fixed={session.fixed_count}, failuresFound={session.total_failures})")
        if session.fixed_count == 0:
            log.warning("No runtime failures were fixed during this run")
        progress.report(100, "Runtime fix workflow complete")

        if session.unresolved:
            return session.summary(
                OUTCOME_UNRESOLVED,
                f"{len(session.unresolved)} test file(s) still have unresolved runtime failures.",
            )
        if session.unparsable:
            return session.summary(
                OUTCOME_UNPARSABLE,
                f"{len(session.unparsable)} test file(s) failed with output that could not be parsed.",
            )
        return session.summary(OUTCOME_COMPLETED, "No test files remain with runtime failures.")

    def _process_artifact(self, artifact: str, relative: str, relevant_parts: Dict[str, Any],
                          session: RepairSession, log: ScopedLogger, percent: float) -> ArtifactState:
        """
        Repair one test file.

        SCANNING runs and parses the file. Each runtime failure then goes
        FIXING -> VERIFYING; the first passing verification ends in
        RESOLVED, running out of failures ends in EXHAUSTED.
        """
        state = ArtifactState.SCANNING
        pending: List[ParsedFailure] = []
        output = ""

        while True:
            if state is ArtifactState.SCANNING:
                log.info("Starting targeted runtime test execution")
                result = self.test_port.run_one(artifact)
                log.info(f"Completed run (success={result.success})")
                if result.success:
                    log.info("Test file passed; no fixes required")
                    session.mark_passing(relative)
                    return ArtifactState.RESOLVED

                output = result.output
                parsed = parse_test_output_for_failures(output)
                pending = [f for f in parsed.failures if self.classifier.needs_runtime_fix(f)]
                if not parsed.failures:
                    log.warning("Test run failed but no failures could be parsed from its output")
                    session.unparsable.add(relative)
                    return ArtifactState.EXHAUSTED
                if not pending:
                    log.info("No runtime failures detected in parsed output; skipping")
                    session.skipped.add(relative)
                    return ArtifactState.EXHAUSTED

                session.total_failures += len(pending)
                log.info(f"Detected {len(pending)} runtime failures")
                state = ArtifactState.FIXING

            elif state is ArtifactState.FIXING:
                if not pending:
                    session.mark_unresolved(relative)
                    return ArtifactState.EXHAUSTED
                failure = pending.pop(0)
                if not failure.file:
                    failure.file = artifact
                    log.info(f"Using the test file itself as fix target: {relative}")
                log.info(f"Attempting fix for failure \"{failure.title}\"")
                if self._attempt_fix(failure, output, relevant_parts, log):
                    session.fixed_count += 1
                    log.info(f"Applied AI fix for \"{failure.title}\", re-running file to verify")
                    state = ArtifactState.VERIFYING

            elif state is ArtifactState.VERIFYING:
                session.progress.report(percent, f"Verifying fix for {os.path.basename(artifact)}")
                verify = self.test_port.run_one(artifact)
                if verify.success:
                    log.info("Verification run succeeded; moving to next file")
                    session.mark_passing(relative)
                    return ArtifactState.RESOLVED
                log.warning("Verification run still failing; continuing with next failure in file")
                state = ArtifactState.FIXING

    def _log_runtime_summary(self, log: ScopedLogger, session: RepairSession) -> None:
        if session.passing:
            log.info("These tests ran without runtime errors:")
            for file in sorted(session.passing):
                log.info(f" - {file}")
        else:
            log.info("No tests confirmed to be passing yet.")

        if session.unresolved:
            log.warning("These tests still have unresolved runtime failures:")
            for file in sorted(session.unresolved):
                log.warning(f" - {file}")
        else:
            log.info("No tests remain with runtime failures.")

        if session.unparsable:
            log.warning("These tests failed but their output could not be parsed:")
            for file in sorted(session.unparsable):
                log.warning(f" - {file}")

    # ------------------------------------------------------------------
    # Run and fix
    # ------------------------------------------------------------------

    def run_and_fix(self) -> RepairSummary:
        """
        Compilation fix phase, then the runtime fix phase.

        The runtime phase runs after every first-phase outcome except
        ``aborted`` (no workspace, no test script, command not started) or an
        exception. An error in the second phase is reported in the summary.
        A completed runtime phase does not hide an unsuccessful first phase.
        """
        log = self.logger.with_scope("RunAndFixTests")
        log.info("Starting compilation fix phase")
        try:
            compile_summary = self.fix_compilation_issues()
        except Exception as e:
            log.error(f"Error during FixCompilationIssues phase: {e}")
            return RepairSummary(OUTCOME_ABORTED, "Compilation fix phase failed.", error=str(e))

        if compile_summary.outcome == OUTCOME_ABORTED:
            log.error(f"Compilation fix phase aborted: {compile_summary.message}")
            return RepairSummary(
                OUTCOME_ABORTED,
                f"Compilation fix phase aborted: {compile_summary.message}",
                error=compile_summary.error,
                phases=[compile_summary],
            )

        log.info("Starting runtime fix phase")
        try:
            runtime_summary = self.fix_runtime_failures()
        except Exception as e:
            log.error(f"Error during FixRuntimeFailures phase: {e}")
            return RepairSummary(
                OUTCOME_ABORTED,
                "Runtime fix phase failed.",
                fixed_count=compile_summary.fixed_count,
                total_failures=compile_summary.total_failures,
                error=str(e),
                phases=[compile_summary],
            )

        outcome = runtime_summary.outcome
        if outcome == OUTCOME_COMPLETED and not compile_summary.succeeded:
            outcome = compile_summary.outcome

        return RepairSummary(
            outcome=outcome,
            message=f"{compile_summary.message} {runtime_summary.message}",
            fixed_count=compile_summary.fixed_count + runtime_summary.fixed_count,
            total_failures=compile_summary.total_failures + runtime_summary.total_failures,
            passing_files=runtime_summary.passing_files,
            unresolved_files=runtime_summary.unresolved_files,
            skipped_files=runtime_summary.skipped_files,
            unparsable_files=runtime_summary.unparsable_files,
            error=runtime_summary.error,
            phases=[compile_summary, runtime_summary],
        )
