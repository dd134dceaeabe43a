from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

from invocation import PROJECT_MARKER_DIR, InvocationRequest

TOOLCHAINS_FILE_NAME = "toolchains.xml"
INSTALL_HOME_PROPERTY = "build.home"
logger = logging.getLogger(__name__)


class EventDispatcher(Protocol):
    """Receives lifecycle notifications; implementations must not raise."""

    def on_event(self, event: object) -> None:
        """Handle one lifecycle event."""


@dataclass(frozen=True)
class ToolchainsBuildingRequest:
    user_toolchains_file: Path
    global_toolchains_file: Path | None


@dataclass
class ToolchainsBuildingResult:
    toolchains: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    problems: list[str] = field(default_factory=list)


ToolchainsBuilder = Callable[[ToolchainsBuildingRequest], ToolchainsBuildingResult]


def _empty_builder(_: ToolchainsBuildingRequest) -> ToolchainsBuildingResult:
    return ToolchainsBuildingResult()


def resolve_toolchains_request(request: InvocationRequest, home: Path | None = None) -> ToolchainsBuildingRequest:
    working_dir = request.working_directory or Path.cwd()

    user_value = request.option("toolchains")
    if user_value:
        user_file = working_dir / user_value
    else:
        user_file = (home or Path.home()) / PROJECT_MARKER_DIR / TOOLCHAINS_FILE_NAME

    global_value = request.option("global_toolchains")
    global_file: Path | None = None
    if global_value:
        global_file = working_dir / global_value
    else:
        install_home = request.property_value(INSTALL_HOME_PROPERTY)
        if install_home:
            global_file = Path(install_home) / "conf" / TOOLCHAINS_FILE_NAME
    return ToolchainsBuildingRequest(user_toolchains_file=user_file, global_toolchains_file=global_file)


def build_toolchains(
    request: InvocationRequest,
    dispatcher: EventDispatcher,
    builder: ToolchainsBuilder | None = None,
    *,
    home: Path | None = None,
) -> ToolchainsBuildingResult:
    """Announce the toolchains request, run the builder, announce its result."""
    building_request = resolve_toolchains_request(request, home=home)
    logger.debug("Reading user toolchains from %s", building_request.user_toolchains_file)
    if building_request.global_toolchains_file is not None:
        logger.debug("Reading global toolchains from %s", building_request.global_toolchains_file)

    dispatcher.on_event(building_request)
    result = (builder or _empty_builder)(building_request)
    dispatcher.on_event(result)

    for problem in result.problems:
        logger.warning("Toolchains problem: %s", problem)
    return result
