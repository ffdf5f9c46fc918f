"""On-disk template store.

Every template is a directory under the store root holding the template
files plus a ``.template-meta.json`` sidecar.  The root is always passed in
explicitly (see :class:`quickstart.config.Config`), never derived from the
user's home directory here.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Iterable
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

from pydantic import ValidationError

from quickstart.archive import DecodedArchive, read_archive, write_archive
from quickstart.models import (
    METADATA_FILENAME,
    ScriptSpec,
    TemplateMetadata,
    TemplateSummary,
    VariableSpec,
)
from quickstart.utils import load_json, save_json

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = ("node_modules", "dist", ".git", ".DS_Store", "*.log")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TemplateError(Exception):
    """Base class for template store failures."""

    def __init__(self, message: str, name: str = "") -> None:
        self.name = name
        super().__init__(message)


class TemplateNotFoundError(TemplateError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Template "{name}" not found', name)


class TemplateExistsError(TemplateError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Template "{name}" already exists', name)


class InvalidTemplateNameError(TemplateError):
    pass


# ---------------------------------------------------------------------------
# Ignore patterns
# ---------------------------------------------------------------------------


def is_ignored(rel_path: str, patterns: Iterable[str]) -> bool:
    """Return ``True`` if *rel_path* matches one of *patterns*.

    A pattern without ``/`` (``node_modules``, ``*.log``) is matched against
    every segment of the path, so it also excludes everything beneath a
    matching directory.  A pattern with ``/`` is matched against the whole
    relative path or as a directory prefix.
    """
    parts = PurePosixPath(rel_path).parts
    for raw in patterns:
        pattern = raw.strip().rstrip("/")
        if not pattern:
            continue
        if "/" in pattern:
            if rel_path == pattern or rel_path.startswith(pattern + "/"):
                return True
            if fnmatchcase(rel_path, pattern):
                return True
        elif any(fnmatchcase(part, pattern) for part in parts):
            return True
    return False


def copy_tree(
    source: Path,
    target: Path,
    *,
    ignore_patterns: Iterable[str] = (),
    skip: Iterable[Path] = (),
) -> None:
    """Copy *source* into *target*, merging into an existing directory.

    Paths matching *ignore_patterns* and the directories in *skip* are not
    copied.
    """
    patterns = list(ignore_patterns)
    skipped = {p.resolve() for p in skip}
    source = source.resolve()

    def _ignore(directory: str, names: list[str]) -> set[str]:
        base = Path(directory).resolve()
        ignored: set[str] = set()
        for name in names:
            full = base / name
            rel = full.relative_to(source).as_posix()
            if full in skipped or is_ignored(rel, patterns):
                ignored.add(name)
        return ignored

    shutil.copytree(source, target, ignore=_ignore, dirs_exist_ok=True, symlinks=True)


def _count_files(template_dir: Path) -> int:
    return sum(
        1
        for path in template_dir.rglob("*")
        if path.is_file() and not (path.parent == template_dir and path.name == METADATA_FILENAME)
    )


# ---------------------------------------------------------------------------
# TemplateStore
# ---------------------------------------------------------------------------


class TemplateStore:
    """CRUD, export and import for templates kept under one root directory."""

    def __init__(self, templates_dir: str | Path) -> None:
        self.templates_dir = Path(templates_dir)

    # -- Lookup ------------------------------------------------------------

    @staticmethod
    def validate_name(name: str) -> str:
        """Return *name* stripped, or raise if it is not a single path segment."""
        cleaned = name.strip()
        if (
            not cleaned
            or cleaned in (".", "..")
            or "/" in cleaned
            or "\\" in cleaned
            or cleaned.startswith(".")
        ):
            raise InvalidTemplateNameError(f"Invalid template name: {name!r}", name)
        return cleaned

    def path_for(self, name: str) -> Path:
        return self.templates_dir / self.validate_name(name)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_dir()

    def require(self, name: str) -> Path:
        """Return the directory of template *name*, raising if it is missing."""
        path = self.path_for(name)
        if not path.is_dir():
            raise TemplateNotFoundError(name)
        return path

    def names(self) -> list[str]:
        """Sorted names of the template directories (hidden ones skipped)."""
        if not self.templates_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.templates_dir.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    # -- Metadata ----------------------------------------------------------

    @staticmethod
    async def load_metadata(template_dir: str | Path) -> TemplateMetadata:
        """Read a template's metadata, falling back to defaults when absent.

        Raises:
            TemplateError: The sidecar exists but is not valid metadata.
        """
        directory = Path(template_dir)
        meta_path = directory / METADATA_FILENAME
        if not meta_path.is_file():
            return TemplateMetadata.default_for(directory.name)
        try:
            data = await asyncio.to_thread(load_json, meta_path)
            return TemplateMetadata.model_validate(data)
        except (ValueError, ValidationError) as exc:
            raise TemplateError(f"Invalid metadata in {meta_path}: {exc}", directory.name) from exc

    @staticmethod
    async def write_metadata(template_dir: str | Path, metadata: TemplateMetadata) -> Path:
        meta_path = Path(template_dir) / METADATA_FILENAME
        await save_json(metadata.to_json_dict(), meta_path)
        return meta_path

    async def get_metadata(self, name: str) -> TemplateMetadata:
        return await self.load_metadata(self.require(name))

    async def list_templates(self) -> list[TemplateSummary]:
        summaries: list[TemplateSummary] = []
        for name in self.names():
            path = self.templates_dir / name
            metadata = await self.load_metadata(path)
            summaries.append(
                TemplateSummary(
                    name=metadata.name,
                    description=metadata.description,
                    created_at=metadata.created_at,
                    variables=len(metadata.variables),
                    scripts=len(metadata.post_creation_scripts),
                    path=str(path),
                )
            )
        return summaries

    async def file_count(self, name: str) -> int:
        return await asyncio.to_thread(_count_files, self.require(name))

    # -- Create / update / remove -----------------------------------------

    async def create_from_directory(
        self,
        source: str | Path,
        name: str,
        *,
        description: str | None = None,
        variables: list[VariableSpec] | None = None,
        scripts: list[ScriptSpec] | None = None,
        ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
        overwrite: bool = False,
    ) -> Path:
        """Save the directory *source* as a new template.

        Raises:
            TemplateExistsError: *name* is taken and *overwrite* is false.
            NotADirectoryError: *source* is not a directory.
        """
        source_path = Path(source)
        if not source_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {source_path}")

        metadata = TemplateMetadata(
            name=self.validate_name(name),
            description=description,
            variables=variables or [],
            post_creation_scripts=scripts or [],
        )
        target = self.path_for(name)
        if target.exists():
            if not overwrite:
                raise TemplateExistsError(name)
            await asyncio.to_thread(shutil.rmtree, target)

        await asyncio.to_thread(
            copy_tree,
            source_path,
            target,
            ignore_patterns=list(ignore_patterns),
            skip=[self.templates_dir],
        )
        # A metadata file copied from the source would be stale.
        await self.write_metadata(target, metadata)
        return target

    async def update(
        self,
        name: str,
        *,
        new_name: str | None = None,
        description: str | None = None,
    ) -> TemplateMetadata:
        """Rewrite a template's name and/or description.

        A new name also renames the template directory.

        Raises:
            TemplateNotFoundError: No template called *name*.
            TemplateExistsError: *new_name* is already taken.
        """
        template_dir = self.require(name)
        metadata = await self.load_metadata(template_dir)

        updates: dict[str, str | None] = {}
        if new_name is not None:
            updates["name"] = self.validate_name(new_name)
        if description is not None:
            updates["description"] = description
        updated = metadata.model_copy(update=updates)

        target_dir = template_dir
        if new_name is not None and updates["name"] != template_dir.name:
            target_dir = self.path_for(new_name)
            if target_dir.exists():
                raise TemplateExistsError(new_name)

        await self.write_metadata(template_dir, updated)
        if target_dir != template_dir:
            await asyncio.to_thread(template_dir.rename, target_dir)
        return updated

    async def remove(self, name: str) -> None:
        await asyncio.to_thread(shutil.rmtree, self.require(name))

    # -- Archives ----------------------------------------------------------

    async def export(self, name: str, output_path: str | Path) -> Path:
        """Write template *name* to a ``.qst`` archive at *output_path*."""
        template_dir = self.require(name)
        metadata = await self.load_metadata(template_dir)
        return await write_archive(template_dir, metadata, output_path)

    async def install_archive(self, archive: DecodedArchive, *, overwrite: bool = False) -> Path:
        """Materialise a decoded archive as template ``archive.name``.

        Raises:
            TemplateExistsError: The name is taken and *overwrite* is false.
        """
        target = self.path_for(archive.name)
        if target.exists():
            if not overwrite:
                raise TemplateExistsError(archive.name)
            await asyncio.to_thread(shutil.rmtree, target)
        return await archive.extract(target)

    async def import_archive(self, archive_path: str | Path, *, overwrite: bool = False) -> DecodedArchive:
        """Read the archive at *archive_path* and install it.

        The archive is fully decoded and the name checked before anything
        is written.
        """
        archive = await read_archive(archive_path)
        await self.install_archive(archive, overwrite=overwrite)
        return archive
