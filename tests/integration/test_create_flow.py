"""End-to-end project creation through the CLI.

init -> export -> import (fresh home) -> create, with real post-creation
scripts run through the shell.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from quickstart.cli import main


@pytest.mark.integration
class TestCreateFlow:
    def test_full_flow(self, sample_tree: Path, tmp_path: Path) -> None:
        home_a = tmp_path / "home-a"
        home_b = tmp_path / "home-b"
        archive = tmp_path / "web.qst"
        project = tmp_path / "projects" / "storefront"

        assert main([
            "--home", str(home_a), "init", "--name", "web", "--source", str(sample_tree),
            "--description", "Web starter", "--variable", "author", "--variable", "license=MIT",
            "--script", "stamp=echo created > STAMP", "--yes",
        ]) == 0
        assert main(["--home", str(home_a), "export", "web", "-o", str(archive)]) == 0
        assert main(["--home", str(home_b), "import", str(archive)]) == 0
        assert main([
            "--home", str(home_b), "create", "web", "-d", str(project),
            "--vars", '{"author": "Ada", "license": "BSD-3-Clause"}', "--yes",
        ]) == 0

        year = datetime.now().year
        readme = (project / "README.md").read_text(encoding="utf-8")
        assert readme == f"# storefront\n\nBy Ada, {year}.\nLicense: BSD-3-Clause\n"
        assert (project / "storefront" / "src" / "storefront.txt").read_text(encoding="utf-8") == "module storefront\n"
        assert (project / "assets" / "logo.png").read_bytes() == (sample_tree / "assets" / "logo.png").read_bytes()
        assert (project / "nested" / "deeper" / "emptier").is_dir()
        assert (project / "STAMP").read_text(encoding="utf-8").strip() == "created"
        assert not (project / ".template-meta.json").exists()
        assert not any("{{" in p.name for p in project.rglob("*"))

    def test_skip_scripts(self, sample_tree: Path, tmp_path: Path) -> None:
        home = tmp_path / "home"
        project = tmp_path / "quiet"
        assert main([
            "--home", str(home), "init", "--name", "web", "--source", str(sample_tree),
            "--script", "stamp=echo created > STAMP", "--skip-variables", "--yes",
        ]) == 0
        assert main([
            "--home", str(home), "create", "web", "-d", str(project), "--skip-scripts", "--yes",
        ]) == 0
        assert (project / "README.md").exists()
        assert not (project / "STAMP").exists()
