"""Encoding and decoding of ``.qst`` template archives.

An archive is a single file holding a whole template: every directory and
file of the template tree plus its metadata.  Layout::

    b"QST" + version byte + gzip(json(container))

where the container is ``{"m": <metadata>, "f": [<entries>]}`` with
single-letter keys to keep the payload small.  Streams that start directly
with the gzip magic are the legacy, unversioned format and are still
accepted on read.

Decoding is split in two phases: :func:`unpack` returns the metadata and the
pending entries without touching the filesystem, so callers can inspect the
template (e.g. check for a name clash) before :func:`materialize` writes
anything.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import gzip
import json
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import ValidationError

from quickstart.archive.tree import ArchiveEntry, serialize_tree
from quickstart.models import METADATA_FILENAME, TemplateMetadata
from quickstart.utils import save_json

ARCHIVE_EXTENSION = ".qst"
ARCHIVE_MAGIC = b"QST"
ARCHIVE_VERSION = 1
SUPPORTED_VERSIONS = frozenset({ARCHIVE_VERSION})
LEGACY_VERSION = 0
GZIP_MAGIC = b"\x1f\x8b"
COMPRESSION_LEVEL = 9


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ArchiveError(Exception):
    """Base class for archive read/write failures."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class InvalidArchiveError(ArchiveError):
    """The data is not a readable archive (corrupt, truncated or wrong shape)."""


class UnsupportedArchiveVersionError(ArchiveError):
    """The archive carries a version header this release does not understand."""

    def __init__(self, version: int, path: str | Path | None = None) -> None:
        self.version = version
        supported = ", ".join(str(v) for v in sorted(SUPPORTED_VERSIONS))
        super().__init__(
            f"Unsupported archive version {version} (supported: {supported})", path
        )


# ---------------------------------------------------------------------------
# Decoded archive
# ---------------------------------------------------------------------------


@dataclass
class DecodedArchive:
    """Metadata and pending entries of a decoded archive."""

    metadata: TemplateMetadata
    entries: list[ArchiveEntry] = field(default_factory=list)
    version: int = ARCHIVE_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def file_count(self) -> int:
        return sum(1 for entry in self.entries if not entry.is_directory)

    async def extract(self, target_dir: str | Path) -> Path:
        """Write the entries and the metadata file into *target_dir*."""
        return await materialize(self.entries, target_dir, metadata=self.metadata)


# ---------------------------------------------------------------------------
# Container (de)serialisation
# ---------------------------------------------------------------------------


def _metadata_to_container(metadata: TemplateMetadata) -> dict[str, Any]:
    data = metadata.to_json_dict()
    return {
        "n": data["name"],
        "d": data.get("description"),
        "c": data["createdAt"],
        "v": data["variables"],
        "p": data["postCreationScripts"],
    }


def _entry_to_container(entry: ArchiveEntry) -> dict[str, Any]:
    item: dict[str, Any] = {"p": entry.path, "c": entry.content}
    if entry.is_directory:
        item["d"] = True
    if entry.is_binary:
        item["b"] = True
    return item


def _metadata_from_container(raw: Any) -> TemplateMetadata:
    if not isinstance(raw, dict):
        raise InvalidArchiveError("Archive metadata is missing or malformed")
    fields: dict[str, Any] = {
        "name": raw.get("n"),
        "description": raw.get("d"),
        "variables": raw.get("v") or [],
        "postCreationScripts": raw.get("p") or [],
    }
    if raw.get("c"):
        fields["createdAt"] = raw["c"]
    try:
        return TemplateMetadata.model_validate(fields)
    except ValidationError as exc:
        raise InvalidArchiveError(f"Archive metadata is invalid: {exc}") from exc


def _entry_from_container(raw: Any) -> ArchiveEntry:
    if not isinstance(raw, dict) or not isinstance(raw.get("p"), str):
        raise InvalidArchiveError("Archive entry is missing its path")
    try:
        entry = ArchiveEntry(
            path=raw["p"],
            content=raw.get("c") or "",
            is_directory=bool(raw.get("d")),
            is_binary=bool(raw.get("b")),
        )
    except ValidationError as exc:
        raise InvalidArchiveError(f"Archive entry {raw['p']!r} is invalid: {exc}") from exc
    _check_entry_path(entry.path)
    if entry.is_binary:
        try:
            base64.b64decode(entry.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidArchiveError(
                f"Archive entry {entry.path!r} has corrupt base64 content: {exc}"
            ) from exc
    return entry


def _check_entry_path(rel_path: str) -> None:
    """Reject entry paths that would land outside the extraction directory."""
    pure = PurePosixPath(rel_path)
    if pure.is_absolute() or ".." in pure.parts or "\\" in rel_path:
        raise InvalidArchiveError(f"Unsafe path in archive: {rel_path!r}")


def encode_container(metadata: TemplateMetadata, entries: list[ArchiveEntry]) -> bytes:
    """Serialise, compress and version-stamp a container."""
    container = {
        "m": _metadata_to_container(metadata),
        "f": [_entry_to_container(entry) for entry in entries],
    }
    payload = json.dumps(container, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    compressed = gzip.compress(payload, compresslevel=COMPRESSION_LEVEL)
    return ARCHIVE_MAGIC + bytes([ARCHIVE_VERSION]) + compressed


def _split_header(data: bytes) -> tuple[int, bytes]:
    if data.startswith(ARCHIVE_MAGIC):
        if len(data) <= len(ARCHIVE_MAGIC):
            raise InvalidArchiveError("Archive is truncated")
        version = data[len(ARCHIVE_MAGIC)]
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedArchiveVersionError(version)
        return version, data[len(ARCHIVE_MAGIC) + 1:]
    if data.startswith(GZIP_MAGIC):
        return LEGACY_VERSION, data
    raise InvalidArchiveError("Not a template archive (unrecognised header)")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def pack(root: str | Path, metadata: TemplateMetadata) -> bytes:
    """Pack the template tree at *root* together with *metadata*.

    The metadata file inside *root* is not packed; the archive carries
    *metadata* instead.  Any unreadable file aborts the pack.
    """
    entries = await serialize_tree(root)
    return await asyncio.to_thread(encode_container, metadata, entries)


def unpack(data: bytes) -> DecodedArchive:
    """Decode archive bytes without writing anything.

    Raises:
        UnsupportedArchiveVersionError: Unknown version header.
        InvalidArchiveError: Corrupt or malformed archive.
    """
    version, compressed = _split_header(data)
    try:
        payload = gzip.decompress(compressed)
        container = json.loads(payload.decode("utf-8"))
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidArchiveError(f"Archive could not be decoded: {exc}") from exc

    if not isinstance(container, dict) or not isinstance(container.get("f"), list):
        raise InvalidArchiveError("Archive has no entry list")

    metadata = _metadata_from_container(container.get("m"))
    entries = [_entry_from_container(raw) for raw in container["f"]]
    return DecodedArchive(metadata=metadata, entries=entries, version=version)


async def materialize(
    entries: list[ArchiveEntry],
    target_dir: str | Path,
    *,
    metadata: TemplateMetadata | None = None,
) -> Path:
    """Recreate *entries* under *target_dir*.

    Directories are created first, then every file is written (its parent
    ensured beforehand), then the metadata file when *metadata* is given.
    Filesystem errors propagate.
    """
    target = Path(target_dir)
    await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)

    for entry in entries:
        _check_entry_path(entry.path)

    for entry in entries:
        if entry.is_directory:
            await asyncio.to_thread((target / entry.path).mkdir, parents=True, exist_ok=True)

    for entry in entries:
        if entry.is_directory:
            continue
        await asyncio.to_thread(_write_bytes, target / entry.path, entry.data())

    if metadata is not None:
        await save_json(metadata.to_json_dict(), target / METADATA_FILENAME)
    return target


async def write_archive(
    root: str | Path,
    metadata: TemplateMetadata,
    output_path: str | Path,
) -> Path:
    """Pack *root* and write the archive to *output_path*.

    Nothing is written when packing fails.
    """
    data = await pack(root, metadata)
    out = Path(output_path)
    await asyncio.to_thread(_write_bytes, out, data)
    return out


async def read_archive(path: str | Path) -> DecodedArchive:
    """Read and decode the archive at *path*.

    Raises:
        ArchiveError: The file does not exist or lacks the ``.qst`` extension.
        InvalidArchiveError / UnsupportedArchiveVersionError: see :func:`unpack`.
    """
    archive_path = Path(path)
    if not archive_path.is_file():
        raise ArchiveError(f"File not found: {archive_path}", archive_path)
    if archive_path.suffix != ARCHIVE_EXTENSION:
        raise ArchiveError(f"File must have {ARCHIVE_EXTENSION} extension", archive_path)

    data = await asyncio.to_thread(archive_path.read_bytes)
    try:
        return unpack(data)
    except ArchiveError as exc:
        exc.path = archive_path
        raise


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
