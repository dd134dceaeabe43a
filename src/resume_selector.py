from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from invocation import TOOL_NAME


@dataclass(frozen=True)
class ProjectIdentity:
    group_id: str
    artifact_id: str

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


def get_resume_from_selector(projects: Iterable[ProjectIdentity], failed: ProjectIdentity) -> str:
    """Shortest selector that still points at `failed` alone."""
    same_artifact = sum(1 for project in projects if project.artifact_id == failed.artifact_id)
    if same_artifact <= 1:
        return f":{failed.artifact_id}"
    return f"{failed.group_id}:{failed.artifact_id}"


def format_resume_hint(goals: Sequence[str], selector: str) -> str:
    command = " ".join([TOOL_NAME, *goals, "-rf", selector])
    return f"After correcting the problems, you can resume the build with the command\n  {command}"
