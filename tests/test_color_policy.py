from __future__ import annotations

import io
import logging

import pytest

from color_policy import (
    ColorLevelFormatter,
    ColorPolicyError,
    is_color_enabled,
    resolve_color_enabled,
    set_color_enabled,
    strip_ansi_codes,
    strong,
    terminal_supports_color,
)


@pytest.fixture(autouse=True)
def _reset_color_state():
    yield
    set_color_enabled(False)


def test_batch_mode_disables_color() -> None:
    assert not resolve_color_enabled(None, batch_mode=True, log_file=None, terminal_supports_color=True)


def test_log_file_disables_color() -> None:
    assert not resolve_color_enabled(None, batch_mode=False, log_file="out.log", terminal_supports_color=True)


def test_terminal_capability_decides_without_flags() -> None:
    assert resolve_color_enabled(None, batch_mode=False, log_file=None, terminal_supports_color=True)
    assert not resolve_color_enabled("auto", batch_mode=False, log_file=None, terminal_supports_color=False)


def test_always_beats_batch_mode_and_log_file() -> None:
    assert resolve_color_enabled("always", batch_mode=True, log_file="out.log", terminal_supports_color=False)


def test_never_beats_capable_terminal() -> None:
    assert not resolve_color_enabled("never", batch_mode=False, log_file=None, terminal_supports_color=True)


def test_unknown_value_fails_regardless_of_flags() -> None:
    with pytest.raises(ColorPolicyError, match=r"\[maybe\]"):
        resolve_color_enabled("maybe", batch_mode=True, log_file="out.log", terminal_supports_color=True)


def test_terminal_supports_color_honours_no_color() -> None:
    class FakeTty(io.StringIO):
        def isatty(self) -> bool:
            return True

    assert terminal_supports_color(FakeTty(), {})
    assert not terminal_supports_color(FakeTty(), {"NO_COLOR": "1"})
    assert not terminal_supports_color(io.StringIO(), {})


def test_strong_and_strip_ansi_codes() -> None:
    set_color_enabled(True)
    styled = strong("build")

    assert is_color_enabled()
    assert styled != "build"
    assert strip_ansi_codes(styled) == "build"

    set_color_enabled(False)
    assert strong("build") == "build"


def test_formatter_colors_level_only_when_enabled() -> None:
    formatter = ColorLevelFormatter("[%(levelname)s] %(message)s")
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

    assert formatter.format(record) == "[WARNING] careful"

    set_color_enabled(True)
    colored = formatter.format(record)
    assert colored != "[WARNING] careful"
    assert strip_ansi_codes(colored) == "[WARNING] careful"
    assert record.levelname == "WARNING"
