# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run Gradle builds and tests, echoing output and reporting diagnostics as they stream."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from pathlib import Path
from typing import Final

from ..config import HarnessConfig
from ..diagnostics import GradleOutputScanner
from ..junit import TestRunSummary, summarize_test_results
from ..logging import BuildLogger
from ..process import ProcessResult, Terminated
from ..streams import WritableByteStream
from .driver import GradleDriver, GradleDriverError, GradleLaunchOptions, environment_with_default_tool_paths

DEFAULT_TEST_ACTIONS: Final[tuple[str, ...]] = ("testDebug",)

# actions replaced by an explicit test target override
_OVERRIDABLE_TEST_ACTIONS: Final[frozenset[str]] = frozenset({"test", "testDebug", "testRelease"})


def apply_test_target_override(actions: Sequence[str], override: str | None) -> list[str]:
    """Replace generic test actions by ``override`` (e.g. ``connectedDebugAndroidTest``)."""

    if not override:
        return list(actions)
    return [override if action in _OVERRIDABLE_TEST_ACTIONS else action for action in actions]


class _ExitRecorder:
    """Exit handler that keeps the result so failures can be reported after the output."""

    def __init__(self, logger: BuildLogger | None = None) -> None:
        self.result: ProcessResult | None = None
        self._logger = logger

    def __call__(self, result: ProcessResult) -> None:
        self.result = result
        if self._logger is not None:
            self._logger.info(f"Gradle {result.result_description}")


class GradleHarness:
    """Drive Gradle for a project and turn its output into IDE-friendly diagnostics."""

    def __init__(
        self,
        driver: GradleDriver,
        *,
        logger: BuildLogger,
        sink: WritableByteStream,
        config: HarnessConfig | None = None,
    ) -> None:
        """Bind the harness to its collaborators.

        Args:
            driver: Gradle launcher.
            logger: Destination for echoed output and summaries.
            sink: Destination for ``path:line:col: kind: message`` diagnostics.
            config: Launch and reporting settings.
        """

        self.driver = driver
        self.logger = logger
        self.sink = sink
        self.config = HarnessConfig() if config is None else config

    def launch_options(self, **overrides: bool) -> GradleLaunchOptions:
        config = self.config
        values = {
            "daemon": config.daemon,
            "info": config.info,
            "plain": config.plain_console,
            "rerun_tasks": config.rerun_tasks,
        }
        values.update(overrides)
        return GradleLaunchOptions(max_memory=config.max_memory, build_folder=config.build_folder, **values)

    def new_scanner(self, *, errors_only: bool = False) -> GradleOutputScanner:
        return GradleOutputScanner(
            self.sink,
            resolve_symlinks=self.config.resolve_symlinks,
            errors_only=errors_only,
        )

    async def consume_output(self, lines: AsyncIterator[str], scanner: GradleOutputScanner) -> None:
        """Echo each line with the configured prefix and feed it to ``scanner``."""

        prefix = self.config.output_prefix
        async for line in lines:
            if prefix is not None:
                self.logger.echo(f"{prefix} {line}")
            scanner.scan(line)
        scanner.finish()

    async def gradle_exec(
        self,
        project_folder: Path | None,
        arguments: Sequence[str],
        *,
        module: str | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        """Run Gradle with ``arguments`` and report diagnostics found in its output.

        Returns:
            ProcessResult: Result of the successful run.

        Raises:
            GradleDriverError: If Gradle did not exit with status 0.
        """

        recorder = _ExitRecorder(self.logger)
        launch = self.driver.launch_gradle_process(
            project_folder,
            module,
            [],
            arguments,
            on_exit=recorder,
            environment=environment,
            options=self.launch_options(info=False, rerun_tasks=False),
        )
        await self.consume_output(launch.lines, self.new_scanner())
        result = recorder.result
        if result is None or result.exit_status != Terminated(0):
            raise GradleDriverError.command_failed(arguments)
        return result

    async def run_tests(
        self,
        project_folder: Path,
        module: str,
        *,
        actions: Sequence[str] = DEFAULT_TEST_ACTIONS,
        arguments: Sequence[str] = (),
        device: str | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> TestRunSummary | None:
        """Run test actions for ``module`` and summarize the JUnit results.

        Gradle's exit status is checked only after the results are parsed, so
        individual failing tests are reported before the run is failed.

        Args:
            project_folder: Gradle project directory.
            module: Module subfolder holding the tests.
            actions: Gradle tasks; any starting with ``test`` triggers result parsing.
            arguments: Extra Gradle arguments.
            device: Android serial to run connected tests on.
            environment: Base environment. Defaults to ``os.environ``.

        Returns:
            TestRunSummary | None: Totals of the run, or ``None`` when no test action ran.

        Raises:
            GradleDriverError: If no tests ran, tests failed, or the build failed.
        """

        is_test_action = any(action.startswith("test") for action in actions)
        actions = apply_test_target_override(actions, self.config.test_target_override)

        env = environment_with_default_tool_paths(environment)
        device = device or self.config.android_serial
        if device:
            env["ANDROID_SERIAL"] = device
        args = list(arguments)
        if self.config.extra_argument:
            args.append(self.config.extra_argument)

        recorder = _ExitRecorder()
        launch = self.driver.launch_gradle_process(
            project_folder,
            module,
            actions,
            args,
            on_exit=recorder,
            environment=env,
            options=self.launch_options(),
        )
        await self.consume_output(launch.lines, self.new_scanner(errors_only=True))

        summary: TestRunSummary | None = None
        if is_test_action:
            suites = launch.parse_results()
            if not suites:
                raise GradleDriverError.no_tests_run(device)
            summary = summarize_test_results(suites, self.logger, project_folder=project_folder, sink=self.sink)

        result = recorder.result
        if result is None or not isinstance(result.exit_status, Terminated):
            raise GradleDriverError(f"Gradle failed with result: {result}")
        if result.exit_status.code != 0:
            if summary is not None and summary.failed_cases:
                raise GradleDriverError.tests_failed(actions, summary.failed_names)
            raise GradleDriverError.build_failed(actions)
        return summary


__all__ = [
    "DEFAULT_TEST_ACTIONS",
    "GradleHarness",
    "apply_test_target_override",
]
