"""Unit tests for ANSI stripping."""

from ui_auto_fixer.output_sanitizer import sanitize, strip_ansi


def test_strips_color_codes():
    assert strip_ansi("\x1b[1;31mred\x1b[0m text") == "red text"


def test_strips_cursor_sequences():
    assert strip_ansi("\x1b[2K\x1b[1Gprogress") == "progress"


def test_keeps_other_control_characters():
    assert strip_ansi("bell\x07tab\tdone") == "bell\x07tab\tdone"


def test_empty_input():
    assert strip_ansi("") == ""
    assert strip_ansi(None) == ""


def test_idempotent():
    raw = "\x1b[32m  2 passing\x1b[0m\n\x1b[31m  1 failing\x1b[0m\x1b"
    once = sanitize(raw)
    assert sanitize(once) == once


def test_idempotent_when_removal_joins_a_new_sequence():
    raw = "\x1b\x1b[0m[31mred"
    once = sanitize(raw)
    assert once == "red"
    assert sanitize(once) == once
