#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import platform
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Sequence

from activation import (
    ProfileActivation,
    ProjectActivation,
    perform_profile_activation,
    perform_project_activation,
)
from arg_sources import (
    ConfigFileError,
    config_file_path,
    merge_arguments,
    read_config_text,
    tokenize_config,
)
from cli_options import FAIL_FAST, OptionParseError, build_parser, parse_options
from color_policy import (
    STYLE_COLOR_PROPERTY,
    ColorLevelFormatter,
    resolve_color_enabled,
    set_color_enabled,
    strong,
    terminal_supports_color,
)
from concurrency_spec import calculate_degree_of_concurrency
from invocation import (
    PROCESS_PROPERTIES,
    TOOL_NAME,
    TOOL_VERSION,
    InvocationError,
    InvocationRequest,
    PropertyStore,
    resolve_project_directory,
)
from property_defs import collect_system_properties, publish_user_properties, resolve_properties
from resume_selector import ProjectIdentity, format_resume_hint, get_resume_from_selector
from toolchain_events import EventDispatcher, build_toolchains

DEFAULT_BUILD_FILE = "project.xml"
SINGLETHREADED_BUILDER = "singlethreaded"
MULTITHREADED_BUILDER = "multithreaded"
LOCAL_REPO_PROPERTY = "build.repo.local"
MAKE_UPSTREAM = "MAKE_UPSTREAM"
MAKE_DOWNSTREAM = "MAKE_DOWNSTREAM"
MAKE_BOTH = "MAKE_BOTH"
LOG_FORMAT = "[%(levelname)s] %(message)s"
logger = logging.getLogger(__name__)

_installed_handler: logging.Handler | None = None


class LogFileError(InvocationError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        super().__init__(f"Unable to open log file {path}: {detail}")


@dataclass
class BuildSettings:
    goals: list[str] = field(default_factory=list)
    builder_id: str = SINGLETHREADED_BUILDER
    degree_of_concurrency: int = 1
    profiles: ProfileActivation = field(default_factory=ProfileActivation)
    projects: ProjectActivation = field(default_factory=ProjectActivation)
    resume_from: str | None = None
    build_file: Path | None = None
    local_repository_path: Path | None = None
    reactor_failure_behavior: str = FAIL_FAST
    make_behavior: str | None = None
    offline: bool = False
    update_snapshots: bool = False
    recursive: bool = True
    show_errors: bool = False


@dataclass
class BuildOutcome:
    exit_code: int = 0
    projects: list[ProjectIdentity] = field(default_factory=list)
    failed_project: ProjectIdentity | None = None


Executor = Callable[[InvocationRequest, BuildSettings], BuildOutcome]


class LoggingEventDispatcher:
    def on_event(self, event: object) -> None:
        logger.debug("Lifecycle event: %s", type(event).__name__)


def initialize(
    request: InvocationRequest,
    store: PropertyStore = PROCESS_PROPERTIES,
    environ: Mapping[str, str] | None = None,
) -> None:
    if request.working_directory is None:
        request.working_directory = Path.cwd()
    request.multi_module_project_directory = resolve_project_directory(request, store, environ)


def validate_config_tokens(tokens: Sequence[str], source: Path) -> None:
    """Config files may only carry options; goals belong on the command line."""
    try:
        config_options = parse_options(tokens)
    except OptionParseError as exc:
        raise ConfigFileError(source, exc.detail) from exc
    if config_options.goals:
        raise ConfigFileError(source, f"Unrecognized entries: {config_options.goals}")


def cli(request: InvocationRequest) -> argparse.Namespace:
    root = request.multi_module_project_directory
    config_tokens: list[str] = []
    text = read_config_text(root)
    if text is not None and root is not None:
        source = config_file_path(root)
        config_tokens = tokenize_config(text, source)
        validate_config_tokens(config_tokens, source)
        logger.debug("Config file %s contributed %d argument(s).", source, len(config_tokens))

    request.merged_args = merge_arguments(config_tokens, request.args)
    request.options = parse_options(request.merged_args)
    return request.options


def properties(
    request: InvocationRequest,
    store: PropertyStore = PROCESS_PROPERTIES,
    environ: Mapping[str, str] | None = None,
) -> None:
    request.system_properties = collect_system_properties(environ, store)
    request.user_properties = resolve_properties(request.option("define"))
    publish_user_properties(request.user_properties, store)


def install_log_handler(handler: logging.Handler, level: int) -> None:
    """Replace the handler installed by a previous invocation in this process."""
    global _installed_handler
    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
        _installed_handler.close()
    root.addHandler(handler)
    root.setLevel(level)
    _installed_handler = handler


def reset_logging() -> None:
    global _installed_handler
    if _installed_handler is not None:
        logging.getLogger().removeHandler(_installed_handler)
        _installed_handler.close()
        _installed_handler = None


def configure_logging(request: InvocationRequest, supports_color: bool | None = None) -> bool:
    if supports_color is None:
        supports_color = terminal_supports_color()
    log_file = request.option("log_file")
    color_enabled = resolve_color_enabled(
        request.property_value(STYLE_COLOR_PROPERTY),
        batch_mode=request.has_option("batch_mode"),
        log_file=log_file,
        terminal_supports_color=supports_color,
    )
    request.color_enabled = color_enabled
    set_color_enabled(color_enabled)

    log_level = logging.INFO
    if request.has_option("debug"):
        log_level = logging.DEBUG
    elif request.has_option("quiet"):
        log_level = logging.WARNING

    handler: logging.Handler
    if log_file:
        path = (request.working_directory or Path.cwd()) / log_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as exc:
            raise LogFileError(path, exc.strerror or str(exc)) from exc
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorLevelFormatter(LOG_FORMAT))
    install_log_handler(handler, log_level)
    return color_enabled


def resolve_build_file(request: InvocationRequest) -> Path | None:
    value = request.option("file")
    if not value:
        return None
    path = (request.working_directory or Path.cwd()) / value
    if path.is_dir():
        return path / DEFAULT_BUILD_FILE
    return path


def resolve_make_behavior(request: InvocationRequest) -> str | None:
    upstream = request.has_option("also_make")
    downstream = request.has_option("also_make_dependents")
    if upstream and downstream:
        return MAKE_BOTH
    if upstream:
        return MAKE_UPSTREAM
    if downstream:
        return MAKE_DOWNSTREAM
    return None


def populate_request(request: InvocationRequest, processors: int | None = None) -> BuildSettings:
    if request.options is None:
        raise InvocationError("Command line has not been parsed yet.")
    settings = BuildSettings(
        goals=list(request.option("goals", [])),
        resume_from=request.option("resume_from"),
        build_file=resolve_build_file(request),
        reactor_failure_behavior=request.option("reactor_failure", FAIL_FAST),
        make_behavior=resolve_make_behavior(request),
        offline=request.has_option("offline"),
        update_snapshots=request.has_option("update_snapshots"),
        recursive=not request.has_option("non_recursive"),
        show_errors=request.has_option("errors") or request.has_option("debug"),
    )
    perform_profile_activation(request.options, settings.profiles)
    perform_project_activation(request.options, settings.projects)

    threads = request.option("threads")
    if threads is not None:
        degree = calculate_degree_of_concurrency(threads, processors)
        settings.degree_of_concurrency = degree
        if degree > 1:
            settings.builder_id = MULTITHREADED_BUILDER
    builder = request.option("builder")
    if builder:
        settings.builder_id = builder

    local_repo = request.property_value(LOCAL_REPO_PROPERTY)
    if local_repo:
        settings.local_repository_path = Path(local_repo)
    return settings


def version_text() -> str:
    lines = [
        f"{strong(TOOL_NAME)} {TOOL_VERSION}",
        f"Python version: {platform.python_version()} ({platform.python_implementation()})",
        f"OS name: {platform.system().lower()}, version: {platform.release()}, arch: {platform.machine()}",
    ]
    return "\n".join(lines)


def log_settings(request: InvocationRequest, settings: BuildSettings) -> BuildOutcome:
    logger.info("Resolved invocation:")
    logger.info("  - goals: %s", " ".join(settings.goals) or "(none)")
    logger.info("  - builder: %s (threads: %s)", settings.builder_id, settings.degree_of_concurrency)
    logger.info("  - profiles: %s", settings.profiles)
    logger.info("  - projects: %s", settings.projects)
    logger.info("  - user properties: %s", len(request.user_properties))
    if settings.resume_from:
        logger.info("  - resume from: %s", settings.resume_from)
    return BuildOutcome()


def execute(request: InvocationRequest, settings: BuildSettings, executor: Executor | None = None) -> int:
    outcome = (executor or log_settings)(request, settings)
    if outcome.failed_project is not None:
        selector = get_resume_from_selector(outcome.projects, outcome.failed_project)
        logger.error("%s", format_resume_hint(settings.goals, selector))
    return outcome.exit_code


def main(
    argv: Sequence[str] | None = None,
    *,
    executor: Executor | None = None,
    dispatcher: EventDispatcher | None = None,
    store: PropertyStore | None = None,
    environ: Mapping[str, str] | None = None,
    working_directory: Path | None = None,
    supports_color: bool | None = None,
) -> int:
    request = InvocationRequest(
        args=tuple(sys.argv[1:] if argv is None else argv),
        working_directory=working_directory,
    )
    active_store = PROCESS_PROPERTIES if store is None else store
    try:
        initialize(request, active_store, environ)
        cli(request)
        if request.has_option("help"):
            print(build_parser().format_help())
            return 0
        properties(request, active_store, environ)
        configure_logging(request, supports_color)
        if request.has_option("version"):
            print(version_text())
            return 0
        if request.has_option("show_version"):
            print(version_text())
        settings = populate_request(request)
        build_toolchains(request, dispatcher or LoggingEventDispatcher())
    except InvocationError as exc:
        logger.error("%s", exc)
        return 1
    else:
        return execute(request, settings, executor)
    finally:
        # Closes the -l file handler.
        reset_logging()


if __name__ == "__main__":
    raise SystemExit(main())
