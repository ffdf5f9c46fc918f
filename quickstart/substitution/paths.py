"""Placeholder substitution in file and directory names.

Renaming a directory moves everything beneath it, so the rewrite works on
a snapshot of the tree taken before any mutation and renames deepest
entries first.  Each rename only changes the last segment of a path:
when it runs, its parent is still at the original location (ancestors are
shallower and come later) and its descendants have already been renamed
inside it.

Destination clashes between two original paths are detected up front,
before anything is moved.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from quickstart.substitution.text import substitute
from quickstart.utils import print_info, print_warning, relative_posix


class PathRewriteError(Exception):
    """Raised when placeholder values would produce an unusable path."""


class PathCollisionError(PathRewriteError):
    """Two different original paths would end up at the same rewritten path."""

    def __init__(self, target: str, sources: list[str]) -> None:
        self.target = target
        self.sources = sources
        super().__init__(
            f"Paths {', '.join(repr(s) for s in sources)} would all be renamed to {target!r}"
        )


@dataclass(frozen=True)
class PlannedRename:
    """A single rename, relative to the tree root."""

    source: str
    target: str

    @property
    def depth(self) -> int:
        return len(PurePosixPath(self.source).parts)


def _rewrite_segment(segment: str, values: Mapping[str, str], original: str) -> str:
    result = substitute(segment, values)
    if result in ("", ".", "..") or "/" in result or "\\" in result:
        raise PathRewriteError(
            f"Placeholder values turn {original!r} into an invalid name: {result!r}"
        )
    return result


def rewrite_path(rel_path: str, values: Mapping[str, str]) -> str:
    """Return *rel_path* with tokens substituted segment by segment."""
    parts = PurePosixPath(rel_path).parts
    return "/".join(_rewrite_segment(part, values, rel_path) for part in parts)


def plan_renames(paths: Iterable[str], values: Mapping[str, str]) -> list[PlannedRename]:
    """Plan the renames needed to substitute tokens in *paths*.

    Args:
        paths: Every relative path of the tree (files and directories),
            captured before any mutation.
        values: Placeholder values.

    Returns:
        Renames ordered deepest first.  Unchanged paths are omitted.

    Raises:
        PathCollisionError: Two original paths map to the same final path.
        PathRewriteError: A value produces an empty or relative-dot name.
    """
    snapshot = sorted(set(paths))
    finals: dict[str, list[str]] = {}
    renames: list[PlannedRename] = []

    for rel_path in snapshot:
        finals.setdefault(rewrite_path(rel_path, values), []).append(rel_path)

        pure = PurePosixPath(rel_path)
        new_name = _rewrite_segment(pure.name, values, rel_path)
        if new_name != pure.name:
            parent = pure.parent.as_posix()
            target = new_name if parent == "." else f"{parent}/{new_name}"
            renames.append(PlannedRename(source=rel_path, target=target))

    for final, sources in finals.items():
        if len(sources) > 1:
            raise PathCollisionError(final, sources)

    renames.sort(key=lambda r: (-r.depth, r.source))
    return renames


def _snapshot(root: Path) -> list[str]:
    return [relative_posix(p, root) for p in root.rglob("*")]


def _move(source: Path, target: Path) -> None:
    if target.exists() or target.is_symlink():
        raise FileExistsError(f"Destination already exists: {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    source.rename(target)


async def rewrite_paths(
    root: str | Path,
    values: Mapping[str, str],
    paths: Iterable[str] | None = None,
) -> list[PlannedRename]:
    """Substitute tokens in file and directory names under *root*.

    Args:
        root: Tree to rewrite.
        values: Placeholder values.
        paths: Relative paths to plan over.  Defaults to everything under
            *root*; pass a subset (e.g. the entries copied from a template)
            so that files already present in *root* are neither renamed nor
            counted as collisions.

    The whole plan is validated before the first move.  A move that fails
    (destination occupied, permission denied, ...) is reported as a warning
    and the remaining renames still run; that entry keeps its old name.

    Returns:
        The renames that were applied.
    """
    root_path = Path(root)
    if not values:
        return []

    if paths is None:
        paths = await asyncio.to_thread(_snapshot, root_path)
    plan = plan_renames(paths, values)

    applied: list[PlannedRename] = []
    for rename in plan:
        try:
            await asyncio.to_thread(_move, root_path / rename.source, root_path / rename.target)
        except OSError as exc:
            print_warning(f"Could not rename {rename.source} -> {rename.target}: {exc}")
            continue
        print_info(f"Renamed: {rename.source} -> {rename.target}")
        applied.append(rename)
    return applied
