from __future__ import annotations

import logging
from pathlib import Path

from cli_options import parse_options
from invocation import InvocationRequest
from toolchain_events import (
    ToolchainsBuildingRequest,
    ToolchainsBuildingResult,
    build_toolchains,
    resolve_toolchains_request,
)


class RecordingDispatcher:
    def __init__(self) -> None:
        self.events: list[object] = []

    def on_event(self, event: object) -> None:
        self.events.append(event)


def _request(tmp_path: Path, *args: str) -> InvocationRequest:
    request = InvocationRequest(args=args, working_directory=tmp_path)
    request.options = parse_options(list(args))
    return request


def test_events_dispatched_once_each_in_order(tmp_path: Path) -> None:
    dispatcher = RecordingDispatcher()

    result = build_toolchains(_request(tmp_path), dispatcher, home=tmp_path)

    assert len(dispatcher.events) == 2
    assert isinstance(dispatcher.events[0], ToolchainsBuildingRequest)
    assert dispatcher.events[1] is result


def test_default_toolchains_locations(tmp_path: Path) -> None:
    request = _request(tmp_path)
    request.system_properties["build.home"] = str(tmp_path / "install")

    building_request = resolve_toolchains_request(request, home=tmp_path / "home")

    assert building_request.user_toolchains_file == tmp_path / "home" / ".build" / "toolchains.xml"
    assert building_request.global_toolchains_file == tmp_path / "install" / "conf" / "toolchains.xml"


def test_explicit_toolchains_files_resolve_against_working_directory(tmp_path: Path) -> None:
    request = _request(tmp_path, "-t", "my.xml", "-gt", "conf/global.xml")

    building_request = resolve_toolchains_request(request)

    assert building_request.user_toolchains_file == tmp_path / "my.xml"
    assert building_request.global_toolchains_file == tmp_path / "conf" / "global.xml"


def test_builder_receives_request_and_problems_are_logged(tmp_path: Path, caplog) -> None:
    seen: list[ToolchainsBuildingRequest] = []

    def builder(building_request: ToolchainsBuildingRequest) -> ToolchainsBuildingResult:
        seen.append(building_request)
        return ToolchainsBuildingResult(problems=["unknown vendor"])

    with caplog.at_level(logging.WARNING):
        result = build_toolchains(_request(tmp_path), RecordingDispatcher(), builder, home=tmp_path)

    assert len(seen) == 1
    assert result.problems == ["unknown vendor"]
    assert "unknown vendor" in caplog.text
