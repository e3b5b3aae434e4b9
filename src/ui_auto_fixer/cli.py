"""
UI Auto Fixer CLI

Command-line interface for generating and repairing ExTester UI tests.

Usage:
    ui-auto-fixer <command> [options]

Commands:
    generate            Generate UI test files from the extension manifest
    fix-compilation     Run the suite and fix the first failure
    fix-runtime         Run each test file and fix its runtime failures
    run-and-fix         fix-compilation followed by fix-runtime

Examples:
    ui-auto-fixer generate --max-tests 5
    ui-auto-fixer fix-runtime --workspace ../my-extension -v
    ui-auto-fixer run-and-fix --report auto_fixer_report.json
"""

import argparse
import json
import pathlib
import sys
from typing import List, Optional

from . import __version__
from .env import FixerSettings, normalize_limit
from .llm_generator import LLMGenerator
from .logger import ScopedLogger, create_logger
from .orchestrator import RepairOrchestrator, RepairSummary
from .test_runner import TestExecutionPort

COMMANDS = {
    "generate": "generate_proposals",
    "fix-compilation": "fix_compilation_issues",
    "fix-runtime": "fix_runtime_failures",
    "run-and-fix": "run_and_fix",
}

TITLES = {
    "generate": "GENERATING TEST FILES",
    "fix-compilation": "FIXING COMPILATION ISSUES",
    "fix-runtime": "FIXING RUNTIME FAILURES",
    "run-and-fix": "RUN AND FIX UI TESTS",
}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--workspace',
        help='Workspace root containing package.json (default: UITEST_WORKSPACE or .)'
    )
    common.add_argument(
        '--max-tests',
        type=int,
        help='Maximum number of proposals to turn into files (default: UITEST_MAX_GENERATED_TESTS, unlimited)'
    )
    common.add_argument(
        '--interactive',
        action='store_true',
        help='Ask where to write a fix when the failing file is unknown'
    )
    common.add_argument(
        '--report',
        metavar='PATH',
        help='Write the workflow summary as JSON to PATH'
    )
    common.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    parser = argparse.ArgumentParser(
        prog='ui-auto-fixer',
        description='Generate and automatically fix ExTester UI tests',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='command')
    subparsers.required = True
    for name in COMMANDS:
        subparsers.add_parser(name, parents=[common], help=TITLES[name].capitalize())
    return parser


def settings_from_args(args: argparse.Namespace) -> FixerSettings:
    settings = FixerSettings.from_env()
    if args.workspace:
        settings.workspace_root = str(pathlib.Path(args.workspace).resolve())
    if args.max_tests is not None:
        settings.max_generated_tests = normalize_limit(args.max_tests)
    if args.verbose:
        settings.debug = True
    return settings


def prompt_for_destination(default_dir: str) -> Optional[str]:
    return input(
        f"Path for fixed test file (relative to workspace, a directory gets a file name added) [{default_dir}]: "
    )


def build_orchestrator(settings: FixerSettings, logger: ScopedLogger, interactive: bool = False) -> RepairOrchestrator:
    generator = LLMGenerator(logger)
    progress_log = logger.with_scope("Progress")
    return RepairOrchestrator(
        settings=settings,
        test_port=TestExecutionPort(settings, logger),
        generate=generator.ask,
        generate_code=generator.ask_code,
        logger=logger,
        progress_sink=lambda increment, message: progress_log.info(message),
        destination_chooser=prompt_for_destination if interactive else None,
    )


def print_summary(summary: RepairSummary) -> None:
    print("\n" + "=" * 80)
    print("FINAL SUMMARY")
    print("=" * 80)
    print(f"Outcome: {summary.outcome}")
    print(summary.message)
    print(f"Fixes applied: {summary.fixed_count}")
    print(f"Failures found: {summary.total_failures}")
    if summary.generated_files:
        print(f"Generated files: {len(summary.generated_files)}")
        for file in summary.generated_files:
            print(f"  - {file}")
    if summary.passing_files:
        print(f"Passing files: {len(summary.passing_files)}")
        for file in summary.passing_files:
            print(f"  - {file}")
    if summary.skipped_files:
        print(f"Failing files without runtime failures to fix: {len(summary.skipped_files)}")
        for file in summary.skipped_files:
            print(f"  - {file}")
    if summary.unparsable_files:
        print(f"Failing files with unparsable output: {len(summary.unparsable_files)}")
        for file in summary.unparsable_files:
            print(f"  - {file}")
    if summary.unresolved_files:
        print(f"Files still failing: {len(summary.unresolved_files)}")
        for file in summary.unresolved_files:
            print(f"  - {file}")
    if summary.error:
        print(f"Error: {summary.error}")
    print("=" * 80)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    logger = create_logger(verbose=settings.debug)

    print("=" * 80)
    print(f"UI AUTO FIXER - {TITLES[args.command]}")
    print("=" * 80)
    print(f"  Workspace: {settings.workspace_root}")
    print(f"  Test pattern: {settings.test_pattern}")
    if settings.max_generated_tests is not None:
        print(f"  Max generated tests: {settings.max_generated_tests}")

    try:
        orchestrator = build_orchestrator(settings, logger, interactive=args.interactive)
        summary = getattr(orchestrator, COMMANDS[args.command])()
        print_summary(summary)

        if args.report:
            with open(args.report, "w", encoding="utf-8") as f:
                json.dump(summary.to_dict(), f, indent=2)
            print(f"\nDetailed report saved to: {args.report}")

        sys.exit(0 if summary.succeeded else 1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n Error: {e}")
        if settings.debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
