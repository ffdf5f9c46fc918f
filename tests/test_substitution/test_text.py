"""Unit tests for content substitution (quickstart.substitution.text)."""

from __future__ import annotations

from pathlib import Path

import pytest

from quickstart.substitution.text import substitute, substitute_file, substitute_tree, token

pytestmark = pytest.mark.unit


class TestSubstitute:
    def test_token(self):
        assert token("projectName") == "{{projectName}}"

    def test_exact_replacement(self):
        result = substitute("Hello {{name}}, year {{year}}", {"name": "World", "year": "2024"})
        assert result == "Hello World, year 2024"

    def test_every_occurrence_replaced(self):
        assert substitute("{{a}}-{{a}}-{{a}}", {"a": "x"}) == "x-x-x"

    def test_empty_map_is_identity(self):
        text = "keep {{this}} as is"
        assert substitute(text, {}) == text

    def test_unknown_tokens_left_verbatim(self):
        assert substitute("{{known}} {{unknown}}", {"known": "yes"}) == "yes {{unknown}}"

    def test_no_recursive_expansion(self):
        values = {"a": "{{b}}", "b": "B"}
        assert substitute("{{a}} {{b}}", values) == "{{b}} B"

    def test_keys_are_literal_not_patterns(self):
        values = {"a.b": "dot", "x+": "plus"}
        assert substitute("{{a.b}} {{aXb}} {{x+}}", values) == "dot {{aXb}} plus"

    def test_values_with_backslashes_and_group_refs(self):
        values = {"path": r"C:\new\table", "ref": r"\1 $1"}
        assert substitute("{{path}} {{ref}}", values) == r"C:\new\table \1 $1"

    def test_whitespace_inside_braces_not_matched(self):
        assert substitute("{{ name }}", {"name": "x"}) == "{{ name }}"

    def test_prefix_keys(self):
        values = {"project": "P", "projectName": "PN"}
        assert substitute("{{project}}/{{projectName}}", values) == "P/PN"


class TestSubstituteFile:
    async def test_rewrites_text_file(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text("# {{projectName}}\n", encoding="utf-8")

        assert await substitute_file(path, {"projectName": "demo"}) is True
        assert path.read_text(encoding="utf-8") == "# demo\n"

    async def test_unchanged_file_not_rewritten(self, tmp_path: Path):
        path = tmp_path / "plain.txt"
        path.write_text("nothing to see", encoding="utf-8")
        assert await substitute_file(path, {"projectName": "demo"}) is False

    async def test_binary_file_untouched(self, tmp_path: Path):
        path = tmp_path / "data.bin"
        payload = b"{{projectName}}\x00\x01\x02"
        path.write_bytes(payload)

        assert await substitute_file(path, {"projectName": "demo"}) is False
        assert path.read_bytes() == payload

    async def test_empty_file_untouched(self, tmp_path: Path):
        path = tmp_path / "empty.txt"
        path.write_bytes(b"")
        assert await substitute_file(path, {"projectName": "demo"}) is False
        assert path.read_bytes() == b""

    async def test_non_utf8_file_untouched(self, tmp_path: Path):
        path = tmp_path / "latin1.txt"
        payload = "{{projectName}} caf\xe9".encode("latin-1")
        path.write_bytes(payload)

        assert await substitute_file(path, {"projectName": "demo"}) is False
        assert path.read_bytes() == payload

    async def test_unicode_preserved(self, tmp_path: Path):
        path = tmp_path / "i18n.txt"
        path.write_text("héllo {{who}} ✓", encoding="utf-8")
        await substitute_file(path, {"who": "wörld"})
        assert path.read_text(encoding="utf-8") == "héllo wörld ✓"


class TestSubstituteTree:
    async def test_hidden_and_nested_files(self, tmp_path: Path):
        (tmp_path / ".env").write_text("NAME={{projectName}}\n", encoding="utf-8")
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "a" / "b" / "c.txt").write_text("{{projectName}}", encoding="utf-8")
        (tmp_path / "static.txt").write_text("static", encoding="utf-8")

        changed = await substitute_tree(tmp_path, {"projectName": "demo"})

        assert changed == [".env", "a/b/c.txt"]
        assert (tmp_path / ".env").read_text(encoding="utf-8") == "NAME=demo\n"
        assert (tmp_path / "a" / "b" / "c.txt").read_text(encoding="utf-8") == "demo"
        assert (tmp_path / "static.txt").read_text(encoding="utf-8") == "static"

    async def test_empty_values_change_nothing(self, tmp_path: Path):
        (tmp_path / "a.txt").write_text("{{x}}", encoding="utf-8")
        assert await substitute_tree(tmp_path, {}) == []
        assert (tmp_path / "a.txt").read_text(encoding="utf-8") == "{{x}}"

    async def test_symlink_to_outside_file_left_alone(self, tmp_path: Path):
        outside = tmp_path / "shared.txt"
        outside.write_text("owner {{author}}", encoding="utf-8")
        root = tmp_path / "project"
        root.mkdir()
        (root / "link.txt").symlink_to(outside)
        (root / "own.txt").write_text("owner {{author}}", encoding="utf-8")

        changed = await substitute_tree(root, {"author": "Ada"})

        assert changed == ["own.txt"]
        assert outside.read_text(encoding="utf-8") == "owner {{author}}"
        assert (root / "link.txt").is_symlink()
