"""Directory tree serialisation into archive entries.

A template tree is flattened into an ordered list of :class:`ArchiveEntry`
objects: every directory first (so extraction can create them before any
file inside is written), then every file with its full content.  Binary
files are carried as base64 text.
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from quickstart.archive.binary import is_binary
from quickstart.models import METADATA_FILENAME
from quickstart.utils import relative_posix


class ArchiveEntry(BaseModel):
    """A single directory or file stored in an archive."""

    path: str = Field(..., min_length=1, description="Relative, slash-separated path")
    content: str = Field(default="", description="Raw text, or base64 for binary files")
    is_directory: bool = Field(default=False)
    is_binary: bool = Field(default=False)

    @model_validator(mode="after")
    def _directories_carry_no_content(self) -> "ArchiveEntry":
        if self.is_directory and (self.content or self.is_binary):
            raise ValueError(f"Directory entry {self.path!r} must not carry content")
        return self

    @classmethod
    def directory(cls, rel_path: str) -> "ArchiveEntry":
        if not rel_path.endswith("/"):
            rel_path += "/"
        return cls(path=rel_path, is_directory=True)

    @classmethod
    def file(cls, rel_path: str, data: bytes) -> "ArchiveEntry":
        """Build a file entry, choosing text or base64 encoding for *data*."""
        if not is_binary(data):
            try:
                return cls(path=rel_path, content=data.decode("utf-8"))
            except UnicodeDecodeError:
                # No null byte but not UTF-8 either: keep the bytes exact.
                pass
        return cls(
            path=rel_path,
            content=base64.b64encode(data).decode("ascii"),
            is_binary=True,
        )

    def data(self) -> bytes:
        """Return the original file bytes for a file entry."""
        if self.is_binary:
            return base64.b64decode(self.content)
        return self.content.encode("utf-8")


def _scan(root: Path, exclude: set[str]) -> tuple[list[Path], list[Path]]:
    directories: list[Path] = []
    files: list[Path] = []
    for path in sorted(root.rglob("*")):
        if path.is_dir():
            directories.append(path)
        elif path.parent == root and path.name in exclude:
            continue
        else:
            files.append(path)
    return directories, files


async def serialize_tree(
    root: str | Path,
    *,
    exclude: tuple[str, ...] = (METADATA_FILENAME,),
) -> list[ArchiveEntry]:
    """Serialise every directory and file under *root*.

    Hidden entries are included.  Names in *exclude* are skipped when they
    sit directly under *root*.  Any unreadable file raises and aborts the
    whole serialisation.

    Returns:
        Directory entries (paths ending in ``/``) followed by file entries.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {root_path}")

    directories, files = await asyncio.to_thread(_scan, root_path, set(exclude))

    entries = [ArchiveEntry.directory(relative_posix(d, root_path)) for d in directories]
    for file_path in files:
        data = await asyncio.to_thread(file_path.read_bytes)
        entries.append(ArchiveEntry.file(relative_posix(file_path, root_path), data))
    return entries
