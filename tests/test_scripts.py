"""Unit tests for post-creation scripts (quickstart.scripts)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from quickstart.models import ScriptSpec, TemplateMetadata
from quickstart.scripts import ScriptResult, default_script_names, run_post_creation_scripts


class TestDefaultScriptNames:
    @pytest.mark.unit
    def test_only_flagged(self, sample_metadata: TemplateMetadata):
        assert default_script_names(sample_metadata.post_creation_scripts) == ["install"]


class TestRunPostCreationScripts:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_runs_in_project_dir(self, tmp_path: Path):
        scripts = [ScriptSpec(name="touch", command="echo made > made.txt")]
        results = await run_post_creation_scripts(scripts, tmp_path)

        assert [r.name for r in results] == ["touch"]
        assert results[0].success
        assert (tmp_path / "made.txt").read_text(encoding="utf-8").strip() == "made"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_scripts(self, tmp_path: Path):
        scripts = [
            ScriptSpec(name="broken", command="exit 2"),
            ScriptSpec(name="after", command="echo ok"),
        ]
        results = await run_post_creation_scripts(scripts, tmp_path)

        assert [(r.name, r.returncode) for r in results] == [("broken", 2), ("after", 0)]
        assert results[0].success is False
        assert results[1].stdout == "ok"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_selected_subset(self, sample_metadata: TemplateMetadata, tmp_path: Path):
        run = AsyncMock(return_value=(0, "", ""))
        with patch("quickstart.scripts.run_command", run):
            results = await run_post_creation_scripts(
                sample_metadata.post_creation_scripts, tmp_path, selected=["lint"]
            )

        assert [r.name for r in results] == ["lint"]
        run.assert_awaited_once_with("echo lint", cwd=tmp_path, timeout=600)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_selection_runs_nothing(self, sample_metadata: TemplateMetadata, tmp_path: Path):
        run = AsyncMock(return_value=(0, "", ""))
        with patch("quickstart.scripts.run_command", run):
            results = await run_post_creation_scripts(
                sample_metadata.post_creation_scripts, tmp_path, selected=[]
            )
        assert results == []
        run.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_scripts(self, tmp_path: Path):
        assert await run_post_creation_scripts([], tmp_path) == []

    @pytest.mark.unit
    def test_result_success(self):
        assert ScriptResult(name="a", command="true", returncode=0).success
        assert not ScriptResult(name="a", command="false", returncode=1).success
