"""Unit tests for tree serialisation (quickstart.archive.tree).

Tests cover:
- Directory entries (including empty and nested empty directories)
- Directory entries listed before file entries
- Text vs base64 file encoding
- Exclusion of the root-level metadata file only
- Hidden files
- Failure on unreadable input
"""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from quickstart.archive.tree import ArchiveEntry, serialize_tree
from quickstart.models import METADATA_FILENAME

pytestmark = pytest.mark.unit


class TestArchiveEntry:
    def test_directory_gets_trailing_slash(self):
        entry = ArchiveEntry.directory("a/b")
        assert entry.path == "a/b/"
        assert entry.is_directory is True
        assert entry.content == ""
        assert entry.is_binary is False

    def test_directory_with_content_rejected(self):
        with pytest.raises(ValueError):
            ArchiveEntry(path="a/", content="x", is_directory=True)

    def test_text_file(self):
        entry = ArchiveEntry.file("a.txt", b"hello\n")
        assert entry.is_binary is False
        assert entry.content == "hello\n"
        assert entry.data() == b"hello\n"

    def test_binary_file_is_base64(self):
        data = b"\x00\x01\x02\xff"
        entry = ArchiveEntry.file("a.bin", data)
        assert entry.is_binary is True
        assert entry.content == base64.b64encode(data).decode("ascii")
        assert entry.data() == data

    def test_non_utf8_without_null_kept_exact(self):
        data = "café".encode("latin-1")
        entry = ArchiveEntry.file("legacy.txt", data)
        assert entry.is_binary is True
        assert entry.data() == data

    def test_crlf_preserved(self):
        entry = ArchiveEntry.file("win.txt", b"a\r\nb\r\n")
        assert entry.data() == b"a\r\nb\r\n"


class TestSerializeTree:
    async def test_directories_before_files(self, sample_tree: Path):
        entries = await serialize_tree(sample_tree)
        kinds = [e.is_directory for e in entries]
        first_file = kinds.index(False)
        assert all(kinds[:first_file])
        assert not any(kinds[first_file:])

    async def test_empty_directories_have_entries(self, sample_tree: Path):
        entries = await serialize_tree(sample_tree)
        dirs = {e.path for e in entries if e.is_directory}
        assert "empty/" in dirs
        assert "nested/" in dirs
        assert "nested/deeper/" in dirs
        assert "nested/deeper/emptier/" in dirs

    async def test_files_and_encoding(self, sample_tree: Path):
        entries = {e.path: e for e in await serialize_tree(sample_tree)}
        assert entries["README.md"].is_binary is False
        assert entries["README.md"].content.startswith("# {{projectName}}")
        assert entries["assets/logo.png"].is_binary is True
        assert entries["assets/logo.png"].data() == (sample_tree / "assets" / "logo.png").read_bytes()

    async def test_hidden_files_included(self, sample_tree: Path):
        paths = {e.path for e in await serialize_tree(sample_tree)}
        assert ".gitignore" in paths

    async def test_root_metadata_excluded(self, sample_tree: Path):
        paths = {e.path for e in await serialize_tree(sample_tree)}
        assert METADATA_FILENAME not in paths

    async def test_nested_metadata_name_kept(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / METADATA_FILENAME).write_text("{}", encoding="utf-8")
        paths = {e.path for e in await serialize_tree(tmp_path)}
        assert f"sub/{METADATA_FILENAME}" in paths

    async def test_empty_file_is_text(self, tmp_path: Path):
        (tmp_path / "empty.txt").write_bytes(b"")
        entries = await serialize_tree(tmp_path)
        assert entries == [ArchiveEntry(path="empty.txt", content="")]

    async def test_not_a_directory(self, tmp_path: Path):
        with pytest.raises(NotADirectoryError):
            await serialize_tree(tmp_path / "missing")

    async def test_unreadable_file_aborts(self, tmp_path: Path, monkeypatch):
        (tmp_path / "ok.txt").write_text("fine", encoding="utf-8")
        (tmp_path / "bad.txt").write_text("nope", encoding="utf-8")
        original = Path.read_bytes

        def _read_bytes(self: Path) -> bytes:
            if self.name == "bad.txt":
                raise PermissionError("denied")
            return original(self)

        monkeypatch.setattr(Path, "read_bytes", _read_bytes)
        with pytest.raises(PermissionError):
            await serialize_tree(tmp_path)
