"""Unit tests for the test output failure parser."""

from ui_auto_fixer.failure_parser import (
    FALLBACK_TITLE,
    UNKNOWN_TEST_TITLE,
    FailureParser,
    ParsedFailure,
    extract_test_files_from_failures,
    parse_test_output_for_failures,
)

MOCHA_OUTPUT = """
  Command palette
    1) opens the hello command
    \u2713 shows the status bar item

  1 passing (3s)
  1 failing

  1) Command palette opens the hello command:
     TimeoutError: Waiting for element to be located By(css selector, .quick-input-widget)
      at /work/ext/node_modules/selenium-webdriver/lib/webdriver.js:907:17
      at Context.<anonymous> (src/ui-test/commands/hello.test.ts:21:9)
"""


def test_failure_blocks_keep_document_order():
    result = parse_test_output_for_failures("1) A\n2) B\n")
    assert [f.title for f in result.failures] == ["A", "B"]


def test_trailing_colon_is_not_part_of_title():
    result = parse_test_output_for_failures("  3) Explorer view lists files:\n")
    assert result.failures[0].title == "Explorer view lists files"


def test_compiler_diagnostic():
    result = parse_test_output_for_failures("src/x.ts(10,5): error TS2322: Type 'A' is not assignable.")
    assert len(result) == 1
    failure = result.failures[0]
    assert failure.file == "src/x.ts"
    assert failure.title == "src/x.ts:10:5"
    assert failure.error_message == "Type 'A' is not assignable."


def test_compiler_diagnostic_closes_open_failure():
    output = "1) Suite test:\nsrc/y.ts(1,2): error TS2304: Cannot find name 'driver'.\n"
    result = parse_test_output_for_failures(output)
    assert [f.title for f in result.failures] == ["Suite test", "src/y.ts:1:2"]


def test_fallback_for_unhandled_rejection():
    result = parse_test_output_for_failures("Unhandled promise rejection: boom")
    assert len(result) == 1
    assert "Unhandled promise rejection: boom" in result.failures[0].error_message


def test_fallback_synthesizes_failure_from_last_signature_line():
    output = "starting\nnpm WARN Timeout reached while downloading\nstill going\nlater Timeout again\n"
    result = parse_test_output_for_failures(output)
    assert len(result) == 1
    assert result.failures[0].title == FALLBACK_TITLE
    assert result.failures[0].error_message == "later Timeout again"


def test_clean_output_has_no_failures():
    result = parse_test_output_for_failures("  3 passing (5s)\n")
    assert len(result) == 0


def test_empty_output():
    assert len(parse_test_output_for_failures("")) == 0


def test_full_mocha_block():
    result = parse_test_output_for_failures(MOCHA_OUTPUT)
    assert [f.title for f in result.failures] == [
        "opens the hello command",
        "Command palette opens the hello command",
    ]
    failure = result.failures[1]
    assert failure.error_message.startswith("TimeoutError: Waiting for element to be located")
    # last file hint wins
    assert failure.file == "src/ui-test/commands/hello.test.ts"
    assert failure.stack.count("\n") == 2
    assert "      at Context.<anonymous> (src/ui-test/commands/hello.test.ts:21:9)\n" in failure.stack


def test_error_line_without_header_gets_default_title():
    result = parse_test_output_for_failures("AssertionError: expected 1 to equal 2")
    assert result.failures[0].title == UNKNOWN_TEST_TITLE
    assert result.failures[0].error_message == "AssertionError: expected 1 to equal 2"


def test_custom_error_type_is_an_error_line():
    result = parse_test_output_for_failures("1) t:\nNoSuchElementError: no such element")
    assert result.failures[0].error_message == "NoSuchElementError: no such element"


def test_bare_file_hint_keeps_absolute_path():
    result = parse_test_output_for_failures("1) t:\nError: bad\n    at /abs/ui-test/b.test.ts:5:7")
    assert result.failures[0].file == "/abs/ui-test/b.test.ts"


def test_ansi_colored_output():
    result = parse_test_output_for_failures("\x1b[31m  1) colored title:\x1b[0m\n\x1b[90mError: red\x1b[0m")
    assert result.failures[0].title == "colored title"
    assert result.failures[0].error_message == "Error: red"


def test_parser_instances_are_independent():
    parser = FailureParser()
    parser.parse("1) first")
    assert [f.title for f in parser.parse("1) second").failures] == ["second"]


def test_to_dict():
    failure = ParsedFailure(title="t", error_message="Error: x", file="a.ts")
    assert failure.to_dict() == {"title": "t", "file": "a.ts", "error_message": "Error: x", "stack": None}


def test_extract_test_files_deduplicates_in_order():
    failures = [
        ParsedFailure(title="1", file="b.ts"),
        ParsedFailure(title="2", file=None),
        ParsedFailure(title="3", file="a.ts"),
        ParsedFailure(title="4", file="b.ts"),
        ParsedFailure(title="5", file="  "),
    ]
    assert extract_test_files_from_failures(failures) == ["b.ts", "a.ts"]
