"""Create templates from GitHub repositories.

The repository is shallow-cloned into a scratch directory next to the
templates, optionally narrowed to a subdirectory, and copied into the store
without VCS and build clutter.  The scratch directory is always removed.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import time
from pathlib import Path

from quickstart.models import ScriptSpec, VariableSpec
from quickstart.store import TemplateExistsError, TemplateStore
from quickstart.utils import print_info, print_success, run_command

GITHUB_EXCLUDES: tuple[str, ...] = (".git", "node_modules", ".DS_Store", "*.log")

_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class GitHubError(Exception):
    """Raised when a repository cannot be cloned or used as a template."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


def parse_repo(repo: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts.

    A trailing ``.git`` is tolerated.
    """
    cleaned = repo.strip().removesuffix(".git")
    if not _REPO_PATTERN.match(cleaned):
        raise GitHubError(f"Repository must be in format: owner/repo (got {repo!r})")
    owner, name = cleaned.split("/")
    return owner, name


def repo_url(repo: str, token: str | None = None) -> str:
    owner, name = parse_repo(repo)
    auth = f"{token}@" if token else ""
    return f"https://{auth}github.com/{owner}/{name}.git"


async def clone_repository(
    repo: str,
    target_dir: str | Path,
    branch: str | None = None,
    *,
    token: str | None = None,
    timeout: int = 300,
) -> Path:
    """Shallow-clone ``owner/repo`` into *target_dir*.

    Raises:
        GitHubError: If git exits non-zero or times out.
    """
    cmd = ["git", "clone", "--depth", "1"]
    if branch:
        cmd += ["--branch", branch]
    cmd += [repo_url(repo, token), str(target_dir)]
    # Never echo the token back.
    cmd_str = " ".join(cmd).replace(f"{token}@", "***@") if token else " ".join(cmd)

    print_info(f"Cloning repository {repo}...")
    returncode, _stdout, stderr = await run_command(cmd, timeout=timeout)
    if returncode != 0:
        raise GitHubError(
            f"Failed to clone repository {repo}. Make sure it exists and is accessible.\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )
    print_success("Repository cloned successfully")
    return Path(target_dir)


async def create_template_from_github(
    store: TemplateStore,
    repo: str,
    *,
    name: str | None = None,
    description: str | None = None,
    branch: str | None = None,
    subdirectory: str | None = None,
    variables: list[VariableSpec] | None = None,
    scripts: list[ScriptSpec] | None = None,
    overwrite: bool = False,
    token: str | None = None,
) -> Path:
    """Clone *repo* and save it (or one of its subdirectories) as a template.

    Returns:
        The new template directory.
    """
    _owner, repo_name = parse_repo(repo)
    template_name = store.validate_name(name or repo_name)
    if store.exists(template_name) and not overwrite:
        raise TemplateExistsError(template_name)

    temp_dir = store.templates_dir / ".temp" / f"github-{int(time.time() * 1000)}"
    try:
        await asyncio.to_thread(temp_dir.parent.mkdir, parents=True, exist_ok=True)
        await clone_repository(repo, temp_dir, branch, token=token)

        source = temp_dir / subdirectory if subdirectory else temp_dir
        if not source.is_dir():
            raise GitHubError(f'Subdirectory "{subdirectory}" not found in repository')

        return await store.create_from_directory(
            source,
            template_name,
            description=description or f"Template from {repo}",
            variables=variables,
            scripts=scripts,
            ignore_patterns=GITHUB_EXCLUDES,
            overwrite=overwrite,
        )
    finally:
        await asyncio.to_thread(shutil.rmtree, temp_dir, ignore_errors=True)
