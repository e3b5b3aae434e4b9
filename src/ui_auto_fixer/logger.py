"""
Scoped Logger

Logging context threaded through every component. Each scope adds a label
to the chain, so messages read like ``[RepairOrchestrator/FixRuntimeFailures] ...``.
"""

import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "ui_auto_fixer"
LOG_FORMAT = "[%(levelname)s] %(message)s"


class ScopedLogger:
    """
    Logger wrapper that prefixes every message with a scope label.

    Instances are immutable: ``with_scope`` returns a new child logger and
    leaves the parent untouched.
    """

    def __init__(self, base: Optional[logging.Logger] = None, scope: str = ""):
        self._base = base or logging.getLogger(LOGGER_NAME)
        self._scope = scope

    @property
    def scope(self) -> str:
        return self._scope

    def with_scope(self, scope: str) -> "ScopedLogger":
        """Create a child logger nested under the current scope."""
        nested = f"{self._scope}/{scope}" if self._scope else scope
        return ScopedLogger(self._base, nested)

    def _format(self, message: str) -> str:
        if not self._scope:
            return message
        return f"[{self._scope}] {message}"

    def debug(self, message: str) -> None:
        self._base.debug(self._format(message))

    def info(self, message: str) -> None:
        self._base.info(self._format(message))

    def warning(self, message: str) -> None:
        self._base.warning(self._format(message))

    def error(self, message: str) -> None:
        self._base.error(self._format(message))


def create_logger(verbose: bool = False, stream: Optional[TextIO] = None) -> ScopedLogger:
    """
    Configure the package logger and return the root logging context.

    Args:
        verbose: Emit DEBUG messages when True
        stream: Output stream for the handler (defaults to stderr)

    Returns:
        Unscoped ScopedLogger bound to the package logger
    """
    base = logging.getLogger(LOGGER_NAME)
    base.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Replace our own handler on repeated calls instead of stacking them
    for handler in list(base.handlers):
        if getattr(handler, "_ui_auto_fixer", False):
            base.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._ui_auto_fixer = True
    base.addHandler(handler)

    return ScopedLogger(base)
