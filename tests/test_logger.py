"""Unit tests for the scoped logging context."""

import io
import logging

from ui_auto_fixer.logger import LOGGER_NAME, ScopedLogger, create_logger


def test_with_scope_nests_and_leaves_parent_untouched():
    root = ScopedLogger(logging.getLogger("ui_auto_fixer.tests"))
    child = root.with_scope("RepairOrchestrator")
    grandchild = child.with_scope("FixRuntimeFailures")
    assert root.scope == ""
    assert child.scope == "RepairOrchestrator"
    assert grandchild.scope == "RepairOrchestrator/FixRuntimeFailures"


def test_messages_carry_scope_and_level():
    stream = io.StringIO()
    log = create_logger(stream=stream).with_scope("A").with_scope("B")
    log.info("hello")
    log.debug("hidden")
    log.warning("careful")
    assert stream.getvalue().splitlines() == ["[INFO] [A/B] hello", "[WARNING] [A/B] careful"]


def test_verbose_enables_debug_and_handlers_do_not_stack():
    first = io.StringIO()
    second = io.StringIO()
    create_logger(stream=first)
    log = create_logger(verbose=True, stream=second)
    log.debug("details")
    assert first.getvalue() == ""
    assert second.getvalue() == "[DEBUG] details\n"
    own = [h for h in logging.getLogger(LOGGER_NAME).handlers if getattr(h, "_ui_auto_fixer", False)]
    assert len(own) == 1


def test_captured_by_caplog(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    ScopedLogger().with_scope("Scope").error("boom")
    assert "[Scope] boom" in caplog.text
