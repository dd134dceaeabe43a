from __future__ import annotations

import argparse
from enum import Enum
from typing import Iterable

INACTIVE_SIGILS = ("!", "-")
ACTIVE_SIGIL = "+"
OPTIONAL_SIGIL = "?"


class Classification(Enum):
    REQUIRED_ACTIVE = "required-active"
    OPTIONAL_ACTIVE = "optional-active"
    REQUIRED_INACTIVE = "required-inactive"
    OPTIONAL_INACTIVE = "optional-inactive"

    @classmethod
    def of(cls, *, active: bool, optional: bool) -> Classification:
        if active:
            return cls.OPTIONAL_ACTIVE if optional else cls.REQUIRED_ACTIVE
        return cls.OPTIONAL_INACTIVE if optional else cls.REQUIRED_INACTIVE


class Activation:
    """Identifier -> classification table behind the four selector sets.

    Each identifier holds exactly one classification, so re-classifying an
    identifier moves it between sets instead of duplicating it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Classification] = {}

    def classify(self, identifier: str, classification: Classification) -> None:
        # Drop the previous entry first so the latest occurrence also decides ordering.
        self._entries.pop(identifier, None)
        self._entries[identifier] = classification

    def classification_of(self, identifier: str) -> Classification | None:
        return self._entries.get(identifier)

    def _select(self, classification: Classification) -> frozenset[str]:
        return frozenset(ident for ident, value in self._entries.items() if value is classification)

    @property
    def required_active(self) -> frozenset[str]:
        return self._select(Classification.REQUIRED_ACTIVE)

    @property
    def optional_active(self) -> frozenset[str]:
        return self._select(Classification.OPTIONAL_ACTIVE)

    @property
    def required_inactive(self) -> frozenset[str]:
        return self._select(Classification.REQUIRED_INACTIVE)

    @property
    def optional_inactive(self) -> frozenset[str]:
        return self._select(Classification.OPTIONAL_INACTIVE)

    def is_empty(self) -> bool:
        return not self._entries

    def __repr__(self) -> str:
        parts = ", ".join(f"{ident}={value.value}" for ident, value in self._entries.items())
        return f"{type(self).__name__}({parts})"


class ProfileActivation(Activation):
    """Profiles selected with `-P`."""


class ProjectActivation(Activation):
    """Projects selected with `-pl`."""


def classify_token(token: str) -> tuple[str, Classification]:
    """Strip the selector sigils from one token.

    `?` is accepted both before and after the polarity sigil, so `?!x` and
    `!?x` both mean optional-inactive.
    """
    active = True
    optional = False
    rest = token
    if rest.startswith(OPTIONAL_SIGIL):
        optional = True
        rest = rest[1:]
    if rest[:1] in INACTIVE_SIGILS:
        active = False
        rest = rest[1:]
    elif rest.startswith(ACTIVE_SIGIL):
        rest = rest[1:]
    if rest.startswith(OPTIONAL_SIGIL):
        optional = True
        rest = rest[1:]
    return rest, Classification.of(active=active, optional=optional)


def parse_selectors(raw: str, activation: Activation) -> Activation:
    for token in raw.split(","):
        if not token:
            continue
        identifier, classification = classify_token(token)
        if not identifier:
            continue
        activation.classify(identifier, classification)
    return activation


def apply_selector_lists(values: Iterable[str] | None, activation: Activation) -> Activation:
    for raw in values or ():
        parse_selectors(raw, activation)
    return activation


def perform_profile_activation(options: argparse.Namespace, activation: ProfileActivation) -> ProfileActivation:
    apply_selector_lists(getattr(options, "activate_profiles", None), activation)
    return activation


def perform_project_activation(options: argparse.Namespace, activation: ProjectActivation) -> ProjectActivation:
    apply_selector_lists(getattr(options, "projects", None), activation)
    return activation
