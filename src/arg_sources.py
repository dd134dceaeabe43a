from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Iterable, Sequence

from invocation import PROJECT_MARKER_DIR, InvocationError

CONFIG_FILE_NAME = "build.config"
COMMENT_PREFIX = "#"
QUOTE = '"'
logger = logging.getLogger(__name__)


class ConfigFileError(InvocationError):
    def __init__(self, source: str | Path, detail: str) -> None:
        self.source = str(source)
        super().__init__(f"Unable to parse config file {source}: {detail}")


def config_file_path(project_root: Path) -> Path:
    return project_root / PROJECT_MARKER_DIR / CONFIG_FILE_NAME


def read_config_text(project_root: Path | None) -> str | None:
    """Return the project config file text, or None when there is none."""
    if project_root is None:
        return None
    path = config_file_path(project_root)
    if not path.is_file():
        return None
    logger.debug("Reading project config from %s", path)
    return path.read_text(encoding="utf-8")


def tokenize_config(text: str | None, source: str | Path = CONFIG_FILE_NAME) -> list[str]:
    """Split config text into arguments with shell-like quoting.

    Whitespace separates tokens and single or double quotes group them.
    Backslashes are kept literally so Windows paths survive.
    """
    if not text:
        return []
    # Whole-line comments only; '#' inside a value is kept.
    kept_lines = [
        line for line in text.splitlines() if line.strip() and not line.lstrip().startswith(COMMENT_PREFIX)
    ]
    lexer = shlex.shlex("\n".join(kept_lines), posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    lexer.escape = ""
    try:
        return list(lexer)
    except ValueError as exc:
        raise ConfigFileError(source, str(exc)) from exc


def clean_args(args: Iterable[str]) -> list[str]:
    """Re-join live arguments that a shell split inside double quotes.

    `"-Dname=a` `b"` becomes `-Dname=a b`. An unterminated run is kept as-is
    (without its opening quote) once the next quoted argument starts. A
    closing quote with no open run is dropped.
    """
    cleaned: list[str] = []
    pending: list[str] | None = None
    for arg in args:
        if arg.startswith(QUOTE):
            if pending is not None:
                cleaned.append(" ".join(pending))
                pending = None
            body = arg[1:]
            if len(arg) > 1 and arg.endswith(QUOTE):
                cleaned.append(body[:-1])
            else:
                pending = [body]
            continue
        if pending is not None:
            if arg.endswith(QUOTE):
                pending.append(arg[:-1])
                cleaned.append(" ".join(pending))
                pending = None
            else:
                pending.append(arg)
            continue
        if arg.endswith(QUOTE):
            arg = arg[:-1]
        cleaned.append(arg)
    if pending is not None:
        cleaned.append(" ".join(pending))
    return cleaned


def merge_arguments(config_tokens: Sequence[str], live_args: Sequence[str]) -> list[str]:
    """Config-file tokens first as defaults, live arguments last as overrides."""
    return [*config_tokens, *clean_args(live_args)]
