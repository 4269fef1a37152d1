# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import io
import sys
from collections.abc import Callable

import pytest

from skipdrive.logging import BuildLogger, build_logger


@pytest.fixture
def log_output() -> io.StringIO:
    """Return the in-memory buffer backing the :func:`logger` fixture."""
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> BuildLogger:
    """Return a colourless, emoji-free logger writing to ``log_output``."""
    return build_logger(emoji=False, no_color=True, file=log_output)


@pytest.fixture
def python_command() -> Callable[[str], list[str]]:
    """Return a factory turning a Python snippet into a child command line."""

    def _command(script: str) -> list[str]:
        return [sys.executable, "-c", script]

    return _command

