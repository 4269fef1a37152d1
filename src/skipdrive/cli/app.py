# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Typer application exposing log scanning, test reports and Gradle runs."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

import typer

from ..config import ConfigError, load_config
from ..diagnostics import GradleOutputScanner
from ..gradle import DEFAULT_TEST_ACTIONS, GradleDriver, GradleDriverError, GradleHarness
from ..junit import TestReportError, parse_test_results, summarize_test_results
from ..logging import BuildLogger, build_logger
from ..process import ProcessError
from ..streaming import StreamDecodeError
from ..streams import FileStreamError, stdout_stream

app = typer.Typer(
    name="skipdrive",
    help="Drive Gradle builds and turn their output into source diagnostics.",
    add_completion=False,
    no_args_is_help=True,
)

NoEmojiOption = Annotated[bool, typer.Option("--no-emoji", help="Disable emoji in log output.")]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Disable ANSI colour output.")]
DebugOption = Annotated[bool, typer.Option("--debug", help="Log launched commands and other details.")]

_HANDLED_ERRORS = (
    ConfigError,
    FileStreamError,
    GradleDriverError,
    ProcessError,
    StreamDecodeError,
    TestReportError,
)


def _fail(logger: BuildLogger, exc: Exception) -> typer.Exit:
    logger.fail(str(exc))
    return typer.Exit(code=1)


def _log_lines(log_file: Path | None) -> Iterable[str]:
    if log_file is None:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    with log_file.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            yield line.rstrip("\n")


@app.command("scan")
def scan_command(
    log_file: Annotated[
        Path | None,
        typer.Argument(help="Captured build log. Reads standard input when omitted.", dir_okay=False),
    ] = None,
    errors_only: Annotated[bool, typer.Option("--errors-only", help="Only report errors.")] = False,
    no_emoji: NoEmojiOption = False,
    no_color: NoColorOption = False,
    debug: DebugOption = False,
) -> None:
    """Classify a build log and print ``path:line:col: kind: message`` diagnostics."""

    logger = build_logger(emoji=not no_emoji, debug=debug, no_color=no_color, file=sys.stderr)
    scanner = GradleOutputScanner(stdout_stream(), resolve_symlinks=True, errors_only=errors_only)
    try:
        for line in _log_lines(log_file):
            scanner.scan(line)
        scanner.finish()
    except OSError as exc:
        raise _fail(logger, exc) from exc

    errors = scanner.error_count
    warnings = len(scanner.issues) - errors
    if errors:
        logger.fail(f"{errors} error(s), {warnings} warning(s)")
        raise typer.Exit(code=1)
    logger.ok(f"{errors} error(s), {warnings} warning(s)")


@app.command("test-report")
def test_report_command(
    results_dir: Annotated[
        Path,
        typer.Argument(help="Gradle test-results folder holding one subfolder per test task."),
    ],
    project_dir: Annotated[
        Path | None,
        typer.Option("--project-dir", help="Project holding the modules, used to locate failing test sources."),
    ] = None,
    no_emoji: NoEmojiOption = False,
    no_color: NoColorOption = False,
    debug: DebugOption = False,
) -> None:
    """Summarize JUnit XML results; exit with status 1 when any test failed."""

    logger = build_logger(emoji=not no_emoji, debug=debug, no_color=no_color)
    try:
        suites = parse_test_results(results_dir)
    except TestReportError as exc:
        raise _fail(logger, exc) from exc

    logger.section(f"Test results: {results_dir}")
    sink = stdout_stream() if project_dir is not None else None
    summary = summarize_test_results(suites, logger, project_folder=project_dir, sink=sink)
    if summary.failed:
        raise typer.Exit(code=1)


@app.command(
    "gradle",
    context_settings={"ignore_unknown_options": True},
)
def gradle_command(
    project_dir: Annotated[Path, typer.Argument(help="Gradle project directory.", file_okay=False)],
    arguments: Annotated[list[str] | None, typer.Argument(help="Gradle tasks and arguments.")] = None,
    module: Annotated[str | None, typer.Option("--module", "-m", help="Module whose build is isolated.")] = None,
    test: Annotated[bool, typer.Option("--test", help="Run tests for --module and summarize results.")] = False,
    device: Annotated[str | None, typer.Option("--device", help="Android serial for connected tests.")] = None,
    gradle_path: Annotated[Path | None, typer.Option("--gradle", help="Path to the gradle executable.")] = None,
    no_emoji: NoEmojiOption = False,
    no_color: NoColorOption = False,
    debug: DebugOption = False,
) -> None:
    """Run Gradle in PROJECT_DIR, echoing its output and reporting diagnostics."""

    logger = build_logger(emoji=not no_emoji, debug=debug, no_color=no_color)
    args = list(arguments or [])
    try:
        config = load_config(project_dir)
        harness = GradleHarness(
            GradleDriver(gradle_path, logger=logger),
            logger=logger,
            sink=stdout_stream(),
            config=config,
        )
        if test:
            if module is None:
                raise GradleDriverError("--test requires --module")
            actions = [arg for arg in args if not arg.startswith("-")] or list(DEFAULT_TEST_ACTIONS)
            extra = [arg for arg in args if arg.startswith("-")]
            asyncio.run(harness.run_tests(project_dir, module, actions=actions, arguments=extra, device=device))
        else:
            asyncio.run(harness.gradle_exec(project_dir, args, module=module))
    except _HANDLED_ERRORS as exc:
        raise _fail(logger, exc) from exc


def main() -> None:
    """Entry point for the ``skipdrive`` console script."""

    app()


__all__ = ["app", "main"]
