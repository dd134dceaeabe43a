from __future__ import annotations

import argparse
from typing import NoReturn, Sequence

from invocation import TOOL_NAME, InvocationError

FAIL_FAST = "FAIL_FAST"
FAIL_AT_END = "FAIL_AT_END"
FAIL_NEVER = "FAIL_NEVER"


class OptionParseError(InvocationError):
    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"Unable to parse command line options: {message}")


class OptionParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing usage and exiting."""

    def __init__(self, *args, **kwargs) -> None:
        self.known_option_strings: set[str] = set()
        self.value_option_strings: set[str] = set()
        super().__init__(*args, **kwargs)

    def add_argument(self, *args, **kwargs) -> argparse.Action:
        action = super().add_argument(*args, **kwargs)
        self.known_option_strings.update(action.option_strings)
        if action.option_strings and action.nargs is None:
            self.value_option_strings.update(action.option_strings)
        return action

    def is_known_option(self, token: str) -> bool:
        """True for `-B`, `--file=x` and short options with an attached value (`-Dx=1`, `-T4`)."""
        if token in self.known_option_strings:
            return True
        if token.startswith("--"):
            return token.split("=", 1)[0] in self.known_option_strings
        return any(
            token.startswith(option)
            for option in self.known_option_strings
            if not option.startswith("--")
        )

    def attach_option_values(self, args: Sequence[str]) -> list[str]:
        """Bind dash-leading values such as `-T -1` or `-pl -core` to their option.

        A value that starts with a registered short option (`-test1` starts
        with `-t`) is still read as that option, so `-P -test1` is a
        missing-argument error. Use `--activate-profiles=-test1` instead.
        """
        attached: list[str] = []
        index = 0
        while index < len(args):
            token = args[index]
            if (
                token in self.value_option_strings
                and index + 1 < len(args)
                and args[index + 1].startswith("-")
                and not self.is_known_option(args[index + 1])
            ):
                attached.append(f"{token}={args[index + 1]}")
                index += 2
                continue
            attached.append(token)
            index += 1
        return attached

    def error(self, message: str) -> NoReturn:
        raise OptionParseError(message)


def build_parser() -> OptionParser:
    parser = OptionParser(
        prog=TOOL_NAME,
        description="Resolve command line and project config into a build invocation.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("goals", nargs="*", help="Goals or lifecycle phases to run.")
    parser.add_argument("-h", "--help", action="store_true", help="Display help information.")
    parser.add_argument("-v", "--version", action="store_true", help="Display version information.")
    parser.add_argument(
        "-V",
        "--show-version",
        action="store_true",
        help="Display version information WITHOUT stopping the build.",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet output - only show errors.")
    parser.add_argument("-X", "--debug", action="store_true", help="Produce execution debug output.")
    parser.add_argument("-e", "--errors", action="store_true", help="Produce execution error messages.")
    parser.add_argument(
        "-B",
        "--batch-mode",
        action="store_true",
        help="Run in non-interactive (batch) mode; disables output color.",
    )
    parser.add_argument("-l", "--log-file", help="Log file where all build output will go; disables output color.")
    parser.add_argument("-f", "--file", help="Force the use of an alternate project file (or directory).")
    parser.add_argument(
        "-D",
        "--define",
        action="append",
        metavar="NAME[=VALUE]",
        help="Define a user property (repeatable, last definition wins).",
    )
    parser.add_argument(
        "-P",
        "--activate-profiles",
        action="append",
        metavar="SELECTORS",
        help="Comma-delimited list of profiles to activate; prefix with ! or - to deactivate, ? for optional.",
    )
    parser.add_argument(
        "-pl",
        "--projects",
        action="append",
        metavar="SELECTORS",
        help="Comma-delimited list of projects to build instead of all; same prefixes as --activate-profiles.",
    )
    parser.add_argument("-rf", "--resume-from", help="Resume the build from the specified project.")
    parser.add_argument(
        "-am",
        "--also-make",
        action="store_true",
        help="Also build projects required by the selected projects.",
    )
    parser.add_argument(
        "-amd",
        "--also-make-dependents",
        action="store_true",
        help="Also build projects that depend on the selected projects.",
    )
    parser.add_argument(
        "-T",
        "--threads",
        help="Thread count, e.g. 4 (an int) or 1.5C (a multiple of the available processors).",
    )
    parser.add_argument("-b", "--builder", help="Id of the build strategy to use.")
    parser.add_argument("-o", "--offline", action="store_true", help="Work offline.")
    parser.add_argument(
        "-U",
        "--update-snapshots",
        action="store_true",
        help="Force a check for missing releases and updated snapshots on remote repositories.",
    )
    parser.add_argument(
        "-N",
        "--non-recursive",
        action="store_true",
        help="Do not recurse into sub-projects.",
    )
    parser.add_argument(
        "-ff",
        "--fail-fast",
        dest="reactor_failure",
        action="store_const",
        const=FAIL_FAST,
        help="Stop at first failure in reactorized builds (default).",
    )
    parser.add_argument(
        "-fae",
        "--fail-at-end",
        dest="reactor_failure",
        action="store_const",
        const=FAIL_AT_END,
        help="Only fail the build afterwards; allow all non-impacted builds to continue.",
    )
    parser.add_argument(
        "-fn",
        "--fail-never",
        dest="reactor_failure",
        action="store_const",
        const=FAIL_NEVER,
        help="Never fail the build, regardless of project result.",
    )
    parser.add_argument("-t", "--toolchains", help="Alternate path for the user toolchains file.")
    parser.add_argument("-gt", "--global-toolchains", help="Alternate path for the global toolchains file.")
    return parser


def parse_options(args: Sequence[str], parser: OptionParser | None = None) -> argparse.Namespace:
    """Parse a flat argument list; single-valued options keep their last occurrence."""
    active_parser = parser or build_parser()
    options = active_parser.parse_intermixed_args(active_parser.attach_option_values(args))
    if options.goals is None:
        options.goals = []
    return options
