"""Template archive (``.qst``) packing and unpacking.

Quick usage::

    from quickstart.archive import read_archive, write_archive

    await write_archive(template_dir, metadata, "my-template.qst")
    archive = await read_archive("my-template.qst")
    print(archive.metadata.name)
    await archive.extract(target_dir)
"""

from quickstart.archive.binary import classify, is_binary
from quickstart.archive.codec import (
    ARCHIVE_EXTENSION,
    ARCHIVE_MAGIC,
    ARCHIVE_VERSION,
    LEGACY_VERSION,
    ArchiveError,
    DecodedArchive,
    InvalidArchiveError,
    UnsupportedArchiveVersionError,
    materialize,
    pack,
    read_archive,
    unpack,
    write_archive,
)
from quickstart.archive.tree import ArchiveEntry, serialize_tree

__all__ = [
    "ARCHIVE_EXTENSION",
    "ARCHIVE_MAGIC",
    "ARCHIVE_VERSION",
    "LEGACY_VERSION",
    "ArchiveEntry",
    "ArchiveError",
    "DecodedArchive",
    "InvalidArchiveError",
    "UnsupportedArchiveVersionError",
    "classify",
    "is_binary",
    "materialize",
    "pack",
    "read_archive",
    "serialize_tree",
    "unpack",
    "write_archive",
]
