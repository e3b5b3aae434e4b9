"""
Test Runner

Runs the workspace's npm UI test script and discovers test artifacts.
"""

import glob
import json
import os
import shlex
import subprocess
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from .env import FixerSettings
from .logger import ScopedLogger
from .manifest import detect_test_script


class WorkspaceError(Exception):
    """No workspace, unreadable package.json, or no test script configured."""


@dataclass
class TestRunResult:
    """
    Outcome of one test command.

    ``success`` comes from the exit code unless ``heuristic`` is True, in
    which case it was inferred from the output text and may miss failures
    whose wording is not recognized.
    """
    __test__ = False

    success: bool
    exit_code: Optional[int]
    stdout: str
    stderr: str
    command: str
    cwd: str
    heuristic: bool = False

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as fed to the failure parser."""
        return f"{self.stdout}\n{self.stderr}"

    @property
    def spawn_failed(self) -> bool:
        return self.exit_code is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _pump(stream, chunks: List[str], emit: Callable[[str], None]) -> None:
    for line in iter(stream.readline, ""):
        chunks.append(line)
        if line.strip():
            emit(line.rstrip("\n"))
    stream.close()


class TestRunner:
    """Spawns ``npm run <script>`` in the workspace root."""
    __test__ = False

    def __init__(self, settings: FixerSettings, logger: ScopedLogger):
        self.settings = settings
        self.logger = logger

    def get_workspace_root(self) -> str:
        root = self.settings.workspace_root
        if not root or not os.path.isdir(root):
            self.logger.with_scope("TestRunner/getWorkspaceRoot").error("No workspace folder is open.")
            raise WorkspaceError("No workspace folder is open.")
        return root

    def resolve_test_script(self) -> str:
        """
        Pick ``ui-test`` or ``test`` from the root package.json.

        Raises:
            WorkspaceError: package.json missing/invalid or neither script defined
        """
        log = self.logger.with_scope("TestRunner/resolveTestScript")
        root = self.get_workspace_root()
        try:
            with open(os.path.join(root, "package.json"), "r", encoding="utf-8") as f:
                package_json = json.load(f)
        except (OSError, ValueError) as e:
            log.error(f"Failed to read package.json in workspace: {e}")
            raise WorkspaceError("Failed to read package.json in workspace.") from e

        script = detect_test_script(package_json)
        if not script:
            msg = "No 'ui-test' or 'test' npm script found in workspace package.json."
            log.error(msg)
            raise WorkspaceError(msg)
        return script

    def run_ui_tests(self) -> TestRunResult:
        """Run the whole suite; success is ``exit code == 0``."""
        log = self.logger.with_scope("TestRunner/runUiTests")
        script = self.resolve_test_script()
        command = f"{self.settings.npm_command} run {script} --silent"
        log.info(f"Running tests with: {command} (cwd: {self.settings.workspace_root})")
        return self._run(command, log)

    def run_single_test_file(self, test_file_path: str) -> TestRunResult:
        """Run the test script focused on one file (``-- <file>``)."""
        log = self.logger.with_scope("TestRunner/runSingleTestFile")
        script = self.resolve_test_script()
        command = f"{self.settings.npm_command} run {script} --silent -- {shlex.quote(test_file_path)}"
        log.info(f"Running single test: {command} (cwd: {self.settings.workspace_root})")
        return self._run(command, log)

    def _run(self, command: str, log: ScopedLogger) -> TestRunResult:
        cwd = self.settings.workspace_root
        env = dict(os.environ, CI="1")
        stdout: List[str] = []
        stderr: List[str] = []

        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                shell=True,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            log.error(f"Test process failed to start: {e}")
            return TestRunResult(False, None, "", str(e), command, cwd)

        err_thread = threading.Thread(target=_pump, args=(process.stderr, stderr, log.error), daemon=True)
        err_thread.start()
        _pump(process.stdout, stdout, log.info)
        exit_code = process.wait()
        err_thread.join()

        return TestRunResult(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout="".join(stdout),
            stderr="".join(stderr),
            command=command,
            cwd=cwd,
        )

    def discover_all_test_files(self) -> List[str]:
        """
        Find test artifacts matching the configured glob.

        Returns:
            Absolute, de-duplicated, lexicographically sorted paths
        """
        log = self.logger.with_scope("TestRunner/discoverAllTestFiles")
        root = self.get_workspace_root()
        pattern = os.path.join(root, self.settings.test_pattern)
        files = {os.path.abspath(p) for p in glob.glob(pattern, recursive=True) if os.path.isfile(p)}
        unique = sorted(files)
        log.info(f"Discovered {len(unique)} test files: {', '.join(unique)}")
        return unique


class TestExecutionPort:
    """
    Execution surface used by the repair orchestrator.

    ``run_one`` uses the detached capture path by default (heuristic
    result) or a direct ``npm run <script> -- <file>`` in "direct" mode.
    """
    __test__ = False

    def __init__(self, settings: FixerSettings, logger: ScopedLogger, runner: Optional[TestRunner] = None):
        self.settings = settings
        self.logger = logger
        self.runner = runner or TestRunner(settings, logger)

    def run_all(self) -> TestRunResult:
        return self.runner.run_ui_tests()

    def run_one(self, artifact_path: str) -> TestRunResult:
        if self.settings.single_run_mode == "direct":
            return self.runner.run_single_test_file(artifact_path)

        from .run_file_task import RunFileTask

        self.runner.get_workspace_root()
        return RunFileTask(artifact_path, self.settings, self.logger).execute_with_output_capture()

    def discover(self) -> List[str]:
        return self.runner.discover_all_test_files()
