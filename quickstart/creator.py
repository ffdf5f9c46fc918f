"""Project materialisation: turn a stored template into a new project.

Steps, in order:

1. Resolve variable values (builtins, supplied values, prompts, defaults).
   A required variable without a value fails here, before anything is
   written.
2. Check the planned path renames for collisions against the template.
3. Copy the template tree (without its metadata file) into the target.
4. Rewrite ``{{name}}`` tokens in file and directory names.
5. Rewrite ``{{name}}`` tokens in file contents.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from quickstart.models import METADATA_FILENAME, TemplateMetadata, VariableSpec
from quickstart.store import TemplateStore, copy_tree
from quickstart.substitution import (
    PlannedRename,
    plan_renames,
    rewrite_paths,
    substitute_tree,
)
from quickstart.utils import print_info, print_success, relative_posix

VariablePrompt = Callable[[VariableSpec], Optional[str]]


class MissingVariableError(Exception):
    """Raised when required variables have neither a value nor a default."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        joined = ", ".join(f'"{name}"' for name in names)
        super().__init__(f"Required variable(s) {joined} have no default and none provided")


@dataclass
class CreationResult:
    """What ``create_project`` did."""

    target_dir: Path
    metadata: TemplateMetadata
    values: dict[str, str] = field(default_factory=dict)
    renames: list[PlannedRename] = field(default_factory=list)
    substituted: list[str] = field(default_factory=list)


def default_project_dir(template_name: str) -> str:
    return f"my-{template_name}-project"


def builtin_values(project_name: str | None = None, now: datetime | None = None) -> dict[str, str]:
    """Values every template gets for free: ``projectName`` and ``currentYear``."""
    values = {"currentYear": str((now or datetime.now()).year)}
    if project_name:
        values["projectName"] = project_name
    return values


def resolve_variables(
    metadata: TemplateMetadata,
    supplied: Mapping[str, Any] | None = None,
    *,
    project_name: str | None = None,
    prompt: VariablePrompt | None = None,
    now: datetime | None = None,
) -> dict[str, str]:
    """Build the substitution map for *metadata*.

    Supplied values win over builtins.  For each declared variable still
    without a value, *prompt* is asked (when given); an unanswered prompt
    falls back to the default.  Optional variables left without a value
    are simply not substituted.

    Raises:
        MissingVariableError: Required variables without value or default.
    """
    values = builtin_values(project_name, now)
    for key, value in (supplied or {}).items():
        values[str(key)] = str(value)

    missing: list[str] = []
    for variable in metadata.variables:
        if variable.name in values:
            continue
        answer = prompt(variable) if prompt is not None else None
        if answer is None and variable.needs_value:
            missing.append(variable.name)
            continue
        if answer is None:
            answer = variable.default
        if answer is None:
            continue
        values[variable.name] = answer

    if missing:
        raise MissingVariableError(missing)
    return values


def _template_paths(template_dir: Path) -> list[str]:
    return [
        relative_posix(path, template_dir)
        for path in template_dir.rglob("*")
        if not (path.parent == template_dir and path.name == METADATA_FILENAME)
    ]


async def create_project(
    template_dir: str | Path,
    target_dir: str | Path,
    supplied: Mapping[str, Any] | None = None,
    *,
    project_name: str | None = None,
    prompt: VariablePrompt | None = None,
) -> CreationResult:
    """Materialise the template in *template_dir* into *target_dir*.

    *target_dir* may already exist; the template is merged into it.
    ``projectName`` defaults to the target directory's name.

    Raises:
        MissingVariableError: Before any file is written.
        PathCollisionError: Before any file is written.
    """
    source = Path(template_dir)
    target = Path(target_dir)
    metadata = await TemplateStore.load_metadata(source)

    values = resolve_variables(
        metadata,
        supplied,
        project_name=project_name or target.resolve().name,
        prompt=prompt,
    )
    template_paths = await asyncio.to_thread(_template_paths, source)
    plan_renames(template_paths, values)

    await asyncio.to_thread(copy_tree, source, target, skip=[source / METADATA_FILENAME])

    print_info("Processing template variables...")
    # Entries already in a merged target are left to the move step:
    # an occupied destination becomes a warning, not a collision.
    renames = await rewrite_paths(target, values, template_paths)
    substituted = await substitute_tree(target, values)
    print_success("Variables processed successfully")

    return CreationResult(
        target_dir=target,
        metadata=metadata,
        values=values,
        renames=renames,
        substituted=substituted,
    )
