# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support.

Nothing here installs a process-wide handler. Callers build a
:class:`BuildLogger` and hand it to the components that need to report, so two
harnesses in one interpreter can write to different consoles.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Final, TextIO

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

_KEY_VALUE_RE: Final[re.Pattern[str]] = re.compile(r"([\w-]+)=(\".*?\"|\S+)")


def detect_tty(stream: TextIO | None = None) -> bool:
    """Return ``True`` when ``stream`` (stdout by default) is backed by a terminal.

    Args:
        stream: Text stream to check. ``sys.stdout`` is used when omitted.

    Returns:
        bool: ``True`` when the stream reports TTY support.
    """

    target = sys.stdout if stream is None else stream
    try:
        return target.isatty()
    except (AttributeError, ValueError):
        return False


def emoji(symbol: str, enable: bool) -> str:
    """Return ``symbol`` when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


@dataclass(slots=True)
class BuildLogger:
    """Console-bound reporter passed explicitly to processes, scanners and harnesses."""

    console: Console
    use_emoji: bool = True
    use_color: bool = True
    debug_enabled: bool = False

    def _print(self, message: str, *, style: str | None) -> None:
        text = Text(message)
        if style and self.use_color:
            text.stylize(style)
        self.console.print(text)

    def echo(self, message: str) -> None:
        """Write ``message`` verbatim, without markup or highlighting.

        Args:
            message: Text written to the bound console.
        """

        self.console.print(Text(message), soft_wrap=True)

    def info(self, message: str) -> None:
        """Emit an informational message."""

        self._print(f"{emoji('ℹ️ ', self.use_emoji)}{message}", style="cyan")

    def ok(self, message: str) -> None:
        """Emit a success message."""

        self._print(f"{emoji('✅ ', self.use_emoji)}{message}", style="green")

    def warn(self, message: str) -> None:
        """Emit a warning message."""

        self._print(f"{emoji('⚠️ ', self.use_emoji)}{message}", style="yellow")

    def fail(self, message: str) -> None:
        """Emit an error message."""

        self._print(f"{emoji('❌ ', self.use_emoji)}{message}", style="red")

    def section(self, title: str) -> None:
        """Render a section header to delineate console output blocks.

        Args:
            title: Section title displayed to the user.
        """

        if self.use_color:
            self.console.print()
            self.console.print(Rule(title))
        else:
            self.console.print(f"\n--- {title} ---")

    def debug(self, message: str) -> None:
        """Emit a debug message when debug logging is enabled.

        ``key=value`` pairs inside ``message`` are highlighted, with ``command``
        values rendered in blue so launched command lines stand out.

        Args:
            message: Debug payload rendered with simple highlighting.
        """

        if not self.debug_enabled:
            return
        text = Text("[debug] ", style="bold cyan")
        cursor = 0
        for match in _KEY_VALUE_RE.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start], style="dim")
            key, raw_value = match.group(1), match.group(2)
            text.append(key, style="bold magenta")
            text.append("=", style="dim")
            text.append(raw_value, style="bold blue" if key in {"command", "cmd"} else "bold green")
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:], style="dim")
        self.console.print(text)


def build_logger(
    *,
    emoji: bool = True,
    debug: bool = False,
    no_color: bool = False,
    file: TextIO | None = None,
) -> BuildLogger:
    """Return a :class:`BuildLogger` bound to a dedicated Rich console.

    Args:
        emoji: Whether log output may include emoji glyphs.
        debug: Whether debug logging should be enabled.
        no_color: Whether terminal colour output should be disabled.
        file: Optional text stream the console writes to (stdout by default).

    Returns:
        BuildLogger: Logger instance bound to a fresh console.
    """

    color = not no_color and detect_tty(file)
    console = Console(
        file=file,
        no_color=not color,
        color_system="auto" if color else None,
        highlight=False,
        emoji=emoji,
        soft_wrap=True,
    )
    return BuildLogger(console=console, use_emoji=emoji, use_color=color, debug_enabled=debug)


__all__ = [
    "BuildLogger",
    "build_logger",
    "detect_tty",
    "emoji",
]
