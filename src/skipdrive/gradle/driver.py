# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Launch ``gradle`` with a consistent argument set and locate its test results."""

from __future__ import annotations

import os
import platform
import shlex
import shutil
from collections.abc import AsyncIterator, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final, NamedTuple

from ..junit import TestSuite, parse_test_results
from ..logging import BuildLogger
from ..process import MissingExecutableError
from ..streaming import ExitHandler, expect_zero_exit_code, stream_lines

GRADLE_EXECUTABLE: Final[str] = "gradle"
GRADLE_OPTS_ENV: Final[str] = "GRADLE_OPTS"
ANDROID_HOME_ENV: Final[str] = "ANDROID_HOME"
JAVA_HOME_ENV: Final[str] = "JAVA_HOME"

_ANDROID_SDK_DEFAULTS: Final[dict[str, str]] = {
    "Darwin": "~/Library/Android/sdk",
    "Windows": "~/AppData/Local/Android/Sdk",
    "Linux": "~/Android/Sdk",
}

_MEMORY_UNITS: Final[tuple[tuple[str, int], ...]] = (
    ("g", 1024**3),
    ("m", 1024**2),
    ("k", 1024),
)


class GradleDriverError(RuntimeError):
    """Raised when Gradle cannot be launched or reports a failed build or test run."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path

    @classmethod
    def missing_module_folder(cls, path: Path) -> GradleDriverError:
        return cls(
            "The expected gradle folder did not exist, which may mean the transpiler is not enabled "
            f"or encountered errors. Missing path: {path}",
            path=path,
        )

    @classmethod
    def command_failed(cls, arguments: Sequence[str]) -> GradleDriverError:
        return cls(f"The gradle command failed. See the build log for details. Command: gradle {shlex.join(arguments)}")

    @classmethod
    def build_failed(cls, actions: Sequence[str]) -> GradleDriverError:
        action = actions[0] if actions else ""
        return cls(
            f"gradle {action} failed, which may indicate a build error or a test failure. "
            "Examine the log for more details."
        )

    @classmethod
    def tests_failed(cls, actions: Sequence[str], failed_tests: Sequence[str]) -> GradleDriverError:
        noun = "failure" if len(failed_tests) == 1 else "failures"
        return cls(
            f"The gradle action {list(actions)} failed with {len(failed_tests)} test {noun}. "
            f"Review the logs for individual test case results. Failed tests: {', '.join(failed_tests)}"
        )

    @classmethod
    def no_tests_run(cls, device: str | None) -> GradleDriverError:
        return cls(
            f"No tests were run; this may indicate an issue with running the tests on {device or 'Robolectric'}. "
            "See the test output for details."
        )


@dataclass(frozen=True, slots=True)
class GradleLaunchOptions:
    """Flags translated into Gradle command-line switches."""

    daemon: bool = True
    info: bool = False
    quiet: bool = False
    plain: bool = True
    max_memory: int | None = None
    fail_fast: bool = False
    no_build_cache: bool = False
    continue_on_failure: bool = False
    offline: bool = False
    rerun_tasks: bool = True
    build_folder: str = ".build"

    def flags(self) -> list[str]:
        flags: list[str] = []
        if self.no_build_cache:
            flags.append("--no-build-cache")
        if self.rerun_tasks:
            flags.append("--rerun-tasks")
        if self.fail_fast:
            flags.append("--fail-fast")
        if self.continue_on_failure:
            flags.append("--continue")
        if self.offline:
            flags.append("--offline")
        if self.info:
            flags.append("--info")
        if self.quiet:
            flags.append("--quiet")
        if self.plain:
            flags.append("--console=plain")
        if not self.daemon:
            flags.append("--no-daemon")
        return flags


class GradleLaunch(NamedTuple):
    """Running Gradle output plus a callable parsing its test results once it finishes."""

    lines: AsyncIterator[str]
    parse_results: Callable[[], list[TestSuite]]


def format_memory(size: int) -> str:
    """Render a byte count the way JVM ``-Xmx`` expects: ``4g``, ``512m``, ``64k`` or raw bytes."""

    for suffix, unit in _MEMORY_UNITS:
        if size % unit == 0:
            return f"{size // unit}{suffix}"
    return str(size)


def gradle_jvm_options(max_memory: int) -> str:
    """Return the ``GRADLE_OPTS`` value matching the build JVM so the launcher can be reused."""

    return " ".join(["-Dfile.encoding=UTF-8", "-Xms256m", f"-Xmx{format_memory(max_memory)}"])


def homebrew_root(environment: Mapping[str, str] | None = None) -> str:
    env = os.environ if environment is None else environment
    prefix = env.get("HOMEBREW_PREFIX")
    if prefix:
        return prefix
    return "/opt/homebrew" if platform.machine() in {"arm64", "aarch64"} else "/usr/local"


def environment_with_default_tool_paths(
    environment: Mapping[str, str] | None = None,
    *,
    system: str | None = None,
) -> dict[str, str]:
    """Return a copy of ``environment`` with ``ANDROID_HOME`` and ``JAVA_HOME`` defaults filled in.

    Args:
        environment: Base environment. Defaults to ``os.environ``.
        system: Platform name as reported by :func:`platform.system`.

    Returns:
        dict[str, str]: Environment suitable for launching Gradle.
    """

    env = dict(os.environ if environment is None else environment)
    system = platform.system() if system is None else system
    if not env.get(ANDROID_HOME_ENV) and system in _ANDROID_SDK_DEFAULTS:
        env[ANDROID_HOME_ENV] = os.path.expanduser(_ANDROID_SDK_DEFAULTS[system])
    if not env.get(JAVA_HOME_ENV) and system == "Darwin":
        env[JAVA_HOME_ENV] = f"{homebrew_root(env)}/opt/openjdk@17"
    return env


def parse_gradle_version_output(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``gradle --version`` output into a key/value mapping.

    Every property is a ``Key: Value`` line except the version banner
    (``Gradle 8.1.1``), which is stored under ``"Gradle"``. Lines whose value
    itself contains a colon (such as build timestamps) are ignored.
    """

    info: dict[str, str] = {}
    for line in lines:
        if line.startswith("Gradle "):
            info["Gradle"] = line[len("Gradle") :].strip()
            continue
        parts = [part.strip() for part in line.split(":", 2)]
        if len(parts) == 2:
            info[parts[0]] = parts[1]
    return info


def find_gradle(environment: Mapping[str, str] | None = None) -> Path:
    """Locate ``gradle`` on ``PATH`` or in the Homebrew ``bin`` folder.

    Raises:
        MissingExecutableError: If no ``gradle`` executable is found.
    """

    env = os.environ if environment is None else environment
    search_path = os.pathsep.join(filter(None, [env.get("PATH", os.defpath), f"{homebrew_root(env)}/bin"]))
    resolved = shutil.which(GRADLE_EXECUTABLE, path=search_path)
    if resolved is None:
        raise MissingExecutableError(GRADLE_EXECUTABLE)
    return Path(resolved)


class GradleDriver:
    """Run Gradle commands and expose their output as line streams."""

    def __init__(self, gradle_path: Path | str | None = None, *, logger: BuildLogger | None = None) -> None:
        self._gradle_path = Path(gradle_path) if gradle_path is not None else None
        self.logger = logger

    @property
    def gradle_path(self) -> Path:
        if self._gradle_path is None:
            self._gradle_path = find_gradle()
        return self._gradle_path

    def command(self, arguments: Sequence[str]) -> list[str]:
        return [str(self.gradle_path), *arguments]

    def exec_gradle(
        self,
        working_directory: Path | None,
        arguments: Sequence[str],
        *,
        on_exit: ExitHandler,
        environment: Mapping[str, str] | None = None,
    ) -> AsyncIterator[str]:
        """Start ``gradle`` lazily and return its merged output lines.

        The process is spawned when iteration begins.
        """

        env = environment_with_default_tool_paths() if environment is None else environment
        return stream_lines(
            self.command(arguments),
            on_exit=on_exit,
            environment=env,
            working_directory=working_directory,
            logging_handler=self._log_command,
        )

    def _log_command(self, command_line: str) -> None:
        if self.logger is not None:
            self.logger.debug(f"launching command={command_line}")

    def build_arguments(
        self,
        working_directory: Path | None,
        module: str | None,
        actions: Sequence[str],
        arguments: Sequence[str],
        options: GradleLaunchOptions,
    ) -> tuple[list[str], Path | None]:
        """Assemble the Gradle command line and the module's test results folder.

        Args:
            working_directory: Gradle project directory, passed as ``--project-dir``.
            module: Module subfolder whose build output goes to a per-module build dir.
            actions: Tasks to run, such as ``["testDebug"]``.
            arguments: Extra arguments appended after the actions.
            options: Flags to translate into switches.

        Returns:
            tuple[list[str], Path | None]: Arguments (without the executable) and
            the test results folder when a module was given.

        Raises:
            GradleDriverError: If the module folder does not exist.
        """

        args = [*actions, *arguments]
        if working_directory is not None:
            args += ["--project-dir", str(working_directory)]
        args += ["--warning-mode", "all"]

        results_folder: Path | None = None
        if module is not None:
            module_path = (working_directory or Path.cwd()) / module
            if not module_path.exists():
                raise GradleDriverError.missing_module_folder(module_path)
            build_dir = f"{options.build_folder}/{module}"
            args.append(f"-PbuildDir={build_dir}")
            results_folder = module_path / build_dir / "test-results"
        args += options.flags()
        return args, results_folder

    def launch_gradle_process(
        self,
        working_directory: Path | None,
        module: str | None,
        actions: Sequence[str],
        arguments: Sequence[str],
        *,
        on_exit: ExitHandler,
        environment: Mapping[str, str] | None = None,
        options: GradleLaunchOptions | None = None,
    ) -> GradleLaunch:
        """Prepare a Gradle run for ``module`` and return its output stream.

        A stale test results folder is removed first so a failed build cannot
        be mistaken for a passing test run.

        Raises:
            GradleDriverError: If the module folder does not exist.
        """

        options = GradleLaunchOptions() if options is None else options
        env = environment_with_default_tool_paths(environment)
        args, results_folder = self.build_arguments(working_directory, module, actions, arguments, options)
        if options.max_memory is not None:
            env[GRADLE_OPTS_ENV] = gradle_jvm_options(options.max_memory)
        if results_folder is not None and results_folder.exists():
            shutil.rmtree(results_folder)

        lines = self.exec_gradle(working_directory, args, on_exit=on_exit, environment=env)

        def parse_results() -> list[TestSuite]:
            if results_folder is None:
                return []
            return parse_test_results(results_folder)

        return GradleLaunch(lines=lines, parse_results=parse_results)

    async def gradle_info(self) -> dict[str, str]:
        """Run ``gradle --version`` and return its parsed properties."""

        lines = [
            line
            async for line in stream_lines(
                self.command(["--version"]),
                on_exit=expect_zero_exit_code,
                environment=environment_with_default_tool_paths(),
                logging_handler=self._log_command,
            )
        ]
        return parse_gradle_version_output(lines)


__all__ = [
    "GradleDriver",
    "GradleDriverError",
    "GradleLaunch",
    "GradleLaunchOptions",
    "environment_with_default_tool_paths",
    "find_gradle",
    "format_memory",
    "gradle_jvm_options",
    "parse_gradle_version_output",
]
