from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping

TOOL_NAME = "build-invoker"
TOOL_VERSION = "0.1.0"
PROJECT_DIR_PROPERTY = "build.multiModuleProjectDirectory"
PROJECT_DIR_ENV = "BUILD_PROJECTBASEDIR"
# Marker directory that identifies the root of a multi-module project tree.
PROJECT_MARKER_DIR = ".build"
logger = logging.getLogger(__name__)


class InvocationError(ValueError):
    """Base class for every argument/configuration failure of one invocation."""


class PropertyStore:
    """Process-wide name/value property storage.

    Values written here outlive the invocation that wrote them. Nothing resets
    the store automatically, so callers running several invocations in one
    process take a `snapshot()` first and `restore()` it afterwards.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._values.get(name, default)

    def set(self, name: str, value: str) -> None:
        self._values[name] = value

    def remove(self, name: str) -> None:
        self._values.pop(name, None)

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._values.items()))

    def snapshot(self) -> dict[str, str]:
        return dict(self._values)

    def restore(self, snapshot: Mapping[str, str]) -> None:
        self._values = dict(snapshot)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)


# Default store standing for the process-wide property table.
PROCESS_PROPERTIES = PropertyStore()


@dataclass
class InvocationRequest:
    args: tuple[str, ...]
    working_directory: Path | None = None
    multi_module_project_directory: Path | None = None
    merged_args: list[str] = field(default_factory=list)
    options: argparse.Namespace | None = None
    system_properties: dict[str, str] = field(default_factory=dict)
    user_properties: dict[str, str] = field(default_factory=dict)
    color_enabled: bool | None = None

    def __post_init__(self) -> None:
        # Raw arguments are captured once and never mutated afterwards.
        self.args = tuple(self.args)

    def option(self, name: str, default=None):
        if self.options is None:
            return default
        value = getattr(self.options, name, None)
        return default if value is None else value

    def has_option(self, name: str) -> bool:
        value = self.option(name)
        if isinstance(value, bool):
            return value
        if isinstance(value, list):
            return bool(value)
        return value is not None

    def property_value(self, name: str) -> str | None:
        """User properties shadow system properties of the same name."""
        if name in self.user_properties:
            return self.user_properties[name]
        return self.system_properties.get(name)


def find_project_root(start: Path) -> Path | None:
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / PROJECT_MARKER_DIR).is_dir():
            return candidate
    return None


def resolve_project_directory(
    request: InvocationRequest,
    store: PropertyStore,
    environ: Mapping[str, str] | None = None,
) -> Path | None:
    if request.multi_module_project_directory is not None:
        return Path(request.multi_module_project_directory)
    env = os.environ if environ is None else environ

    from_store = store.get(PROJECT_DIR_PROPERTY)
    if from_store:
        return Path(from_store)
    from_env = env.get(PROJECT_DIR_ENV)
    if from_env:
        return Path(from_env)

    working_dir = request.working_directory or Path.cwd()
    discovered = find_project_root(working_dir)
    if discovered is None:
        logger.debug("No %s directory above %s; running without project config.", PROJECT_MARKER_DIR, working_dir)
    return discovered
