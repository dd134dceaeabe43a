from __future__ import annotations

import logging
import os
import sys
from typing import Iterable, Mapping

from invocation import TOOL_VERSION, PropertyStore

ENV_PREFIX = "env."
VERSION_PROPERTY = "build.version"
logger = logging.getLogger(__name__)


def parse_definition(definition: str) -> tuple[str, str]:
    """Split one `-D` definition into name and value.

    Only the first `=` separates; everything after it is the value, verbatim.
    A definition without `=` (or starting with it) is a flag set to "true".
    """
    index = definition.find("=")
    if index <= 0:
        return definition.strip(), "true"
    return definition[:index].strip(), definition[index + 1 :]


def resolve_properties(definitions: Iterable[str] | None) -> dict[str, str]:
    resolved: dict[str, str] = {}
    for definition in definitions or ():
        name, value = parse_definition(definition)
        if name in resolved and resolved[name] != value:
            logger.debug("Property %s redefined: %r -> %r", name, resolved[name], value)
        resolved[name] = value
    return resolved


def collect_system_properties(
    environ: Mapping[str, str] | None,
    store: PropertyStore,
) -> dict[str, str]:
    env = os.environ if environ is None else environ
    # Windows environment names are case-insensitive; normalize them like the shell does.
    fold_case = sys.platform.startswith("win")
    properties: dict[str, str] = {}
    for key, value in env.items():
        name = key.upper() if fold_case else key
        properties[f"{ENV_PREFIX}{name}"] = value
    properties.update(store.items())
    properties[VERSION_PROPERTY] = TOOL_VERSION
    return properties


def publish_user_properties(user_properties: Mapping[str, str], store: PropertyStore) -> None:
    """Copy user properties into the process-wide store; nothing removes them later."""
    for name, value in user_properties.items():
        store.set(name, value)
