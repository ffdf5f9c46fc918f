"""Placeholder substitution in file contents.

Tokens have the form ``{{name}}``.  Replacement is literal: keys are plain
strings, never patterns, and every key is replaced in a single scan of the
original text so a value containing another key's token is left as is.
Tokens without a matching key stay verbatim.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from pathlib import Path

from quickstart.archive.binary import is_binary
from quickstart.utils import relative_posix


def token(name: str) -> str:
    """Return the placeholder token for *name*."""
    return "{{" + name + "}}"


def _token_pattern(values: Mapping[str, str]) -> re.Pattern[str]:
    # Longest first so a key that is a prefix of another cannot shadow it.
    keys = sorted(values, key=len, reverse=True)
    return re.compile("|".join(re.escape(token(key)) for key in keys))


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{key}}`` in *text* with ``values[key]``."""
    if not values or "{{" not in text:
        return text
    pattern = _token_pattern(values)
    return pattern.sub(lambda match: str(values[match.group(0)[2:-2]]), text)


def _rewrite_file(path: Path, values: Mapping[str, str]) -> bool:
    data = path.read_bytes()
    if not data or is_binary(data):
        return False
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return False

    result = substitute(text, values)
    if result == text:
        return False
    path.write_bytes(result.encode("utf-8"))
    return True


async def substitute_file(path: str | Path, values: Mapping[str, str]) -> bool:
    """Substitute tokens inside one file in place.

    Empty files, binary files and files that are not valid UTF-8 are left
    untouched.  The file is rewritten only when its content changes.

    Returns:
        ``True`` if the file was rewritten.
    """
    return await asyncio.to_thread(_rewrite_file, Path(path), values)


def _regular_files(root: Path) -> list[Path]:
    resolved_root = root.resolve()
    return sorted(
        path
        for path in root.rglob("*")
        if not path.is_symlink()
        and path.is_file()
        and path.resolve().is_relative_to(resolved_root)
    )


async def substitute_tree(root: str | Path, values: Mapping[str, str]) -> list[str]:
    """Substitute tokens in every file under *root* (hidden files included).

    Symlinks, and files that resolve outside *root*, are skipped.

    Returns:
        Relative paths of the files that changed.
    """
    root_path = Path(root)
    if not values:
        return []

    files = await asyncio.to_thread(_regular_files, root_path)
    changed: list[str] = []
    for file_path in files:
        if await substitute_file(file_path, values):
            changed.append(relative_posix(file_path, root_path))
    return changed
