"""
Run File Task

Runs a single compiled UI test through ``npx extest setup-and-run`` in a
detached shell. The shell tees combined output into a side file which is
polled for after a fixed delay; pass/fail is inferred from the captured
text.
"""

import os
import re
import subprocess
import time
from typing import Callable, List, Optional, Tuple

from .env import FixerSettings, split_args
from .logger import ScopedLogger
from .test_runner import TestRunResult

# Looked for anywhere in the captured output. Absence of all of them counts
# as a pass, so unrecognized failure wording is reported as success.
FAILURE_PATTERNS = [
    re.compile(r"\d+\s+failing"),
    re.compile(r"\d+\s+passing.*\d+\s+failing"),
    re.compile(r"AssertionError:"),
    re.compile(r"Error:"),
    re.compile(r"FAILED"),
    re.compile(r"FAIL"),
    re.compile(r"Test failed"),
    re.compile(r"Test failure"),
    re.compile(r"Expected.*but got"),
    re.compile(r"Expected.*to include"),
    re.compile(r"Expected.*to be"),
]

RESULT_FILE_PREFIX = ".test-results-"


def has_test_failures(output: str, logger: Optional[ScopedLogger] = None) -> bool:
    """True if any known failure phrase appears in the output."""
    for pattern in FAILURE_PATTERNS:
        if pattern.search(output or ""):
            if logger:
                logger.debug(f"Detected failure pattern: {pattern.pattern}")
            return True
    if logger:
        logger.debug("No failure patterns detected")
    return False


def compute_compiled_path(file: str, workspace_root: str, output_folder: str,
                          root_folder: Optional[str] = None) -> str:
    """
    Map a source test path to its compiled location.

    ``<workspace>/<output_folder>/<relative path>`` where segments matching
    ``root_folder`` position-by-position are dropped and ``.ts`` segments
    become ``.js``.
    """
    relative = os.path.relpath(os.path.abspath(file), workspace_root)
    relative_segments = [s for s in re.split(r"[/\\]", relative) if s]
    root_segments = [s for s in re.split(r"[/\\]", root_folder or "") if s]

    matching = sum(
        1 for i, segment in enumerate(root_segments)
        if i < len(relative_segments) and relative_segments[i] == segment
    )
    remaining = [
        re.sub(r"\.ts$", ".js", segment) for segment in relative_segments[matching:]
    ]
    return os.path.join(workspace_root, output_folder, *remaining)


class DetachedShellTerminal:
    """Fire-and-forget shell: the command keeps running after send_text returns."""

    def send_text(self, command: str, cwd: str) -> None:
        subprocess.Popen(
            command,
            cwd=cwd,
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )


class RunFileTask:
    """
    Single-file ExTester execution with output capture.

    Args:
        file: Source test path (absolute or workspace-relative)
        settings: Fixer settings (folders, editor version/type, capture timing)
        logger: Logging context
        terminal: Object with ``send_text(command, cwd)``
        sleep: Sleep function (seconds)
        clock: Monotonic clock (seconds)
    """

    def __init__(
        self,
        file: str,
        settings: FixerSettings,
        logger: ScopedLogger,
        terminal=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.log = logger.with_scope("RunFileTask")
        self.settings = settings
        self.terminal = terminal or DetachedShellTerminal()
        self.sleep = sleep
        self.clock = clock
        self.cwd = settings.workspace_root
        self.label = os.path.basename(file)

        self.log.info(
            f"Configuration -> outputFolder={settings.output_folder}, "
            f"rootFolder={settings.root_folder}, tempDir={settings.temp_folder}"
        )
        source = file if os.path.isabs(file) else os.path.join(self.cwd, file)
        self.final_path = compute_compiled_path(source, self.cwd, settings.output_folder, settings.root_folder)
        self.log.debug(f"Computed compiled test path: {self.final_path}")

        self.command = "npx"
        self.args = self._build_args()
        self.log.info(f"Configured command: {self.command_line}")

    def _build_args(self) -> List[str]:
        s = self.settings
        args = ["extest", "setup-and-run", f"'{self.final_path}'"]
        if s.temp_folder and s.temp_folder.strip():
            args += ["--storage", f"'{s.temp_folder}'"]
        if s.code_version:
            args += ["--code_version", s.code_version]
        if s.code_type:
            args += ["--type", s.code_type]
        for extra in s.additional_args:
            args += split_args(extra)
        return args

    @property
    def command_line(self) -> str:
        return f"{self.command} {' '.join(self.args)}"

    def result_file_path(self) -> str:
        return os.path.join(self.cwd, f"{RESULT_FILE_PREFIX}{int(time.time() * 1000)}.txt")

    def execute_with_output_capture(self) -> TestRunResult:
        """
        Run the test and read back its output.

        Never raises: unexpected errors produce ``success=False, exit_code=1``.
        The result file is left on disk for inspection.
        """
        log = self.log.with_scope("executeWithOutputCapture")
        log.info(f"Starting detached execution for {self.label}")
        result_file = self.result_file_path()
        log.info(f"Capturing output to {result_file}")

        try:
            full_command = f'{self.command_line} 2>&1 | tee "{result_file}"'
            log.info(f"Executing command: {full_command}")
            self.terminal.send_text(full_command, self.cwd)

            self.sleep(self.settings.capture_initial_delay)
            stdout, stderr = self._collect_output(result_file, log)

            failed = has_test_failures(f"{stdout}\n{stderr}", log)
            log.info(f"Test failures detected: {failed}")
            return TestRunResult(
                success=not failed,
                exit_code=1 if failed else 0,
                stdout=stdout,
                stderr=stderr,
                command=self.command_line,
                cwd=self.cwd,
                heuristic=True,
            )
        except Exception as e:
            log.error(f"Failed to process execution results: {e}")
            return TestRunResult(False, 1, "", str(e), self.command_line, self.cwd, heuristic=True)

    def _collect_output(self, result_file: str, log: ScopedLogger) -> Tuple[str, str]:
        """Poll for the result file within the extra window; missing file means empty output."""
        if not os.path.exists(result_file):
            started = self.clock()
            while not os.path.exists(result_file) and self.clock() - started < self.settings.capture_max_wait:
                log.debug(f"Result file not found yet, waiting... ({result_file})")
                self.sleep(self.settings.capture_poll_interval)

        if not os.path.exists(result_file):
            waited = self.settings.capture_initial_delay + self.settings.capture_max_wait
            log.warning(f"Result file not found after waiting {waited:.0f}s: {result_file}")
            return "", ""

        try:
            with open(result_file, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            log.error(f"Failed to read result file: {e}")
            return "", f"Failed to read result file: {e}"

        log.debug(f"Captured output: {content}")
        log.info(f"Result file saved at: {result_file}")
        return content, ""
