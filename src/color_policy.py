from __future__ import annotations

import logging
import os
import re
import sys
from typing import Mapping, TextIO

from invocation import InvocationError

STYLE_COLOR_PROPERTY = "style.color"
COLOR_ALWAYS = "always"
COLOR_NEVER = "never"
COLOR_AUTO = "auto"
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
ANSI_RESET = "\x1b[0m"
ANSI_BOLD = "\x1b[1m"
LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[34m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;31m",
}

# Process-wide output style, set once per invocation by the launcher.
_color_enabled = False


class ColorPolicyError(InvocationError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid color configuration value [{value}]. "
            f"Supported values are ({COLOR_AUTO}|{COLOR_ALWAYS}|{COLOR_NEVER})."
        )


def resolve_color_enabled(
    style_color: str | None,
    *,
    batch_mode: bool,
    log_file: str | None,
    terminal_supports_color: bool,
) -> bool:
    """Decide whether ANSI output is on for this invocation.

    An explicit `always`/`never` beats batch mode and log redirection; any
    other explicit value except `auto` is rejected even when those flags are set.
    """
    if style_color == COLOR_ALWAYS:
        return True
    if style_color == COLOR_NEVER:
        return False
    if style_color and style_color != COLOR_AUTO:
        raise ColorPolicyError(style_color)
    if batch_mode or log_file:
        return False
    return terminal_supports_color


def terminal_supports_color(stream: TextIO | None = None, environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    if env.get("NO_COLOR"):
        return False
    target = sys.stdout if stream is None else stream
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


def set_color_enabled(enabled: bool) -> None:
    global _color_enabled
    _color_enabled = bool(enabled)


def is_color_enabled() -> bool:
    return _color_enabled


def strip_ansi_codes(text: str) -> str:
    return ANSI_ESCAPE_PATTERN.sub("", text)


def strong(text: str) -> str:
    if not _color_enabled:
        return text
    return f"{ANSI_BOLD}{text}{ANSI_RESET}"


class ColorLevelFormatter(logging.Formatter):
    """Formatter that colors the level name while color output is enabled."""

    def format(self, record: logging.LogRecord) -> str:
        if not _color_enabled:
            return super().format(record)
        original = record.levelname
        color = LEVEL_COLORS.get(record.levelno, "")
        record.levelname = f"{color}{original}{ANSI_RESET}" if color else original
        try:
            return super().format(record)
        finally:
            record.levelname = original
