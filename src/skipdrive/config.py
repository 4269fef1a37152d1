# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Harness configuration from ``[tool.skipdrive]`` and environment overrides."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "skipdrive"

VERBOSE_ENV: Final[str] = "SKIP_GRADLE_VERBOSE"
TEST_TARGET_ENV: Final[str] = "SKIP_GRADLE_TEST_TARGET"
GRADLE_ARGUMENT_ENV: Final[str] = "GRADLE_ARGUMENT"
ANDROID_SERIAL_ENV: Final[str] = "ANDROID_SERIAL"

_FALSE_VALUES: Final[frozenset[str]] = frozenset({"NO", "no", "false", "0"})


class ConfigError(Exception):
    """Raised when configuration data is invalid."""


class HarnessConfig(BaseModel):
    """Settings controlling how Gradle is launched and how its output is reported."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    output_prefix: str | None = "GRADLE>"
    info: bool = False
    test_target_override: str | None = None
    extra_argument: str | None = None
    android_serial: str | None = None
    daemon: bool = True
    rerun_tasks: bool = True
    plain_console: bool = True
    max_memory: int | None = Field(default=None, gt=0)
    build_folder: str = ".build"
    resolve_symlinks: bool = True


def env_flag(value: str | None) -> bool:
    """Return whether an environment toggle is on; anything but ``NO/no/false/0`` counts."""

    if value is None:
        return False
    return value not in _FALSE_VALUES


def _read_pyproject(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc
    tool_section = document.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"[tool.{PYPROJECT_SECTION_KEY}] in {path} must be a table")
    return {str(key).replace("-", "_"): value for key, value in section.items()}


def _environment_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if VERBOSE_ENV in env:
        overrides["info"] = env_flag(env[VERBOSE_ENV])
    if env.get(TEST_TARGET_ENV):
        overrides["test_target_override"] = env[TEST_TARGET_ENV]
    if env.get(GRADLE_ARGUMENT_ENV):
        overrides["extra_argument"] = env[GRADLE_ARGUMENT_ENV]
    if env.get(ANDROID_SERIAL_ENV):
        overrides["android_serial"] = env[ANDROID_SERIAL_ENV]
    return overrides


def load_config(root: Path, env: Mapping[str, str] | None = None) -> HarnessConfig:
    """Build the harness configuration for the project at ``root``.

    Values from ``[tool.skipdrive]`` in ``root/pyproject.toml`` are applied
    first, then environment overrides.

    Args:
        root: Project directory that may hold a ``pyproject.toml``.
        env: Environment used for overrides. Defaults to ``os.environ``.

    Returns:
        HarnessConfig: Validated configuration.

    Raises:
        ConfigError: If the file cannot be parsed or holds unknown or invalid keys.
    """

    path = root / PYPROJECT_FILENAME
    data = _read_pyproject(path)
    data.update(_environment_overrides(os.environ if env is None else env))
    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [tool.{PYPROJECT_SECTION_KEY}] configuration in {path}: {exc}") from exc


__all__ = [
    "ConfigError",
    "HarnessConfig",
    "env_flag",
    "load_config",
]
