"""Shared pytest fixtures for the Quickstart test suite.

Provides reusable fixtures for:
- An isolated Quickstart home / template store under ``tmp_path``
- A sample template tree with text, binary, hidden and empty entries
- Sample template metadata
- Mock subprocess helpers
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from quickstart.config import Config
from quickstart.models import METADATA_FILENAME, ScriptSpec, TemplateMetadata, VariableSpec
from quickstart.store import TemplateStore

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\x00IEND\xaeB`\x82"
)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Isolated Quickstart home directory (never the real ``~/.quickstart``)."""
    home = tmp_path / "qs-home"
    home.mkdir()
    return home


@pytest.fixture
def config(home_dir: Path) -> Config:
    cfg = Config.load(home_dir)
    cfg.ensure_directories()
    return cfg


@pytest.fixture
def store(config: Config) -> TemplateStore:
    return TemplateStore(config.templates_path)


@pytest.fixture
def sample_metadata() -> TemplateMetadata:
    return TemplateMetadata(
        name="web-app",
        description="A small web app skeleton",
        created_at="2024-05-01T12:00:00.000Z",
        variables=[
            VariableSpec(name="author", description="Author name", required=True),
            VariableSpec(name="license", default="MIT"),
        ],
        post_creation_scripts=[
            ScriptSpec(name="install", command="echo install", run_by_default=True),
            ScriptSpec(name="lint", command="echo lint", description="Lint the code"),
        ],
    )


@pytest.fixture
def sample_tree(tmp_path: Path, sample_metadata: TemplateMetadata) -> Path:
    """A template directory exercising every kind of entry.

    Layout::

        sample/
          .template-meta.json
          .gitignore
          README.md                 (contains placeholders)
          assets/logo.png           (binary)
          empty/                    (empty directory)
          nested/deeper/emptier/    (nested empty directory)
          {{projectName}}/src/{{projectName}}.txt
    """
    root = tmp_path / "sample"
    root.mkdir()
    (root / ".gitignore").write_text("node_modules/\n*.log\n", encoding="utf-8")
    (root / "README.md").write_text(
        "# {{projectName}}\n\nBy {{author}}, {{currentYear}}.\nLicense: {{license}}\n",
        encoding="utf-8",
    )
    (root / "assets").mkdir()
    (root / "assets" / "logo.png").write_bytes(PNG_BYTES)
    (root / "empty").mkdir()
    (root / "nested" / "deeper" / "emptier").mkdir(parents=True)
    (root / "{{projectName}}" / "src").mkdir(parents=True)
    (root / "{{projectName}}" / "src" / "{{projectName}}.txt").write_text(
        "module {{projectName}}\n", encoding="utf-8"
    )
    (root / METADATA_FILENAME).write_text(
        json.dumps(sample_metadata.to_json_dict(), indent=2), encoding="utf-8"
    )
    return root


@pytest.fixture
def installed_template(store: TemplateStore, sample_tree: Path, sample_metadata: TemplateMetadata) -> Path:
    """The sample tree copied into the store as template ``web-app``."""
    import shutil

    target = store.templates_dir / sample_metadata.name
    shutil.copytree(sample_tree, target)
    return target


def _snapshot_tree(root: Path, *, exclude: tuple[str, ...] = (METADATA_FILENAME,)) -> dict[str, bytes | None]:
    result: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        if rel in exclude:
            continue
        result[rel] = None if path.is_dir() else path.read_bytes()
    return result


@pytest.fixture
def snapshot_tree():
    """Function mapping every relative path under a root to its bytes (``None`` for directories)."""
    return _snapshot_tree


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Factory for mock asyncio subprocesses with configurable output.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        return mock_proc

    return factory
