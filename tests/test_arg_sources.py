from __future__ import annotations

from pathlib import Path

import pytest

from arg_sources import (
    ConfigFileError,
    clean_args,
    config_file_path,
    merge_arguments,
    read_config_text,
    tokenize_config,
)

CONFIG_TEXT = """-T
3
-Drevision=1.3.0
"-Dlabel=Release Train"
"""


def test_tokenize_config_strips_quotes_and_keeps_spaces() -> None:
    assert tokenize_config(CONFIG_TEXT) == ["-T", "3", "-Drevision=1.3.0", "-Dlabel=Release Train"]


def test_tokenize_config_splits_on_any_whitespace() -> None:
    assert tokenize_config("-T 8   --builder\tmultithreaded\n\n") == ["-T", "8", "--builder", "multithreaded"]


def test_tokenize_config_quotes_inside_token() -> None:
    assert tokenize_config("-Dname=\"a b\" '-Dother=c d'") == ["-Dname=a b", "-Dother=c d"]


def test_tokenize_config_skips_comment_lines_only() -> None:
    text = "# shared defaults\n  # indented comment\n-Dtag=v#1\n"

    assert tokenize_config(text) == ["-Dtag=v#1"]


def test_tokenize_config_keeps_backslashes() -> None:
    assert tokenize_config(r"-Dpath=C:\tools\bin") == [r"-Dpath=C:\tools\bin"]


def test_tokenize_config_rejects_unterminated_quote() -> None:
    with pytest.raises(ConfigFileError, match="build.config"):
        tokenize_config('"-Dfoo=bar\n-o\n', source="build.config")


def test_tokenize_config_empty_text() -> None:
    assert tokenize_config("") == []
    assert tokenize_config(None) == []


def test_read_config_text_missing_file_is_none(tmp_path: Path) -> None:
    assert read_config_text(tmp_path) is None
    assert read_config_text(None) is None


def test_read_config_text_reads_file(tmp_path: Path) -> None:
    path = config_file_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text(CONFIG_TEXT, encoding="utf-8")

    assert read_config_text(tmp_path) == CONFIG_TEXT
    assert path == tmp_path / ".build" / "build.config"


def test_clean_args_joins_quoted_runs() -> None:
    assert clean_args(['"-Dfoo2=bar', 'two"', "-o"]) == ["-Dfoo2=bar two", "-o"]


def test_clean_args_handles_funky_quoting() -> None:
    args = ["-Drevision=8.1.0", "--file=-Dpom.xml", '"-Dfoo=bar ', '"-Dfoo2=bar two"', "-Drevision=8.2.0"]

    assert clean_args(args) == [
        "-Drevision=8.1.0",
        "--file=-Dpom.xml",
        "-Dfoo=bar ",
        "-Dfoo2=bar two",
        "-Drevision=8.2.0",
    ]


def test_clean_args_keeps_unterminated_run_at_end() -> None:
    assert clean_args(['"-Dx=a', "b"]) == ["-Dx=a b"]


def test_clean_args_drops_stray_closing_quote() -> None:
    assert clean_args(['-Dfoo=bar"', "-o"]) == ["-Dfoo=bar", "-o"]


def test_merge_arguments_puts_config_first_without_mutation() -> None:
    config_tokens = ["-T", "8"]
    live = ["-T", "5", "install"]

    merged = merge_arguments(config_tokens, live)

    assert merged == ["-T", "8", "-T", "5", "install"]
    assert config_tokens == ["-T", "8"]
    assert live == ["-T", "5", "install"]
