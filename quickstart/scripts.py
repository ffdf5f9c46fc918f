"""Post-creation script execution.

Scripts run one after another through the shell inside the new project
directory.  A failing script is reported and the remaining ones still run.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from quickstart.models import ScriptSpec
from quickstart.utils import console, print_error, print_info, print_success, run_command


@dataclass
class ScriptResult:
    """Outcome of a single post-creation script."""

    name: str
    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def default_script_names(scripts: Iterable[ScriptSpec]) -> list[str]:
    """Names of the scripts flagged ``runByDefault``."""
    return [script.name for script in scripts if script.run_by_default]


async def run_post_creation_scripts(
    scripts: list[ScriptSpec],
    cwd: str | Path,
    selected: Iterable[str] | None = None,
    timeout: int = 600,
) -> list[ScriptResult]:
    """Run *scripts* (or only those named in *selected*) in *cwd*.

    Returns:
        One result per script that was run, in declaration order.
    """
    wanted = set(selected) if selected is not None else None
    results: list[ScriptResult] = []
    if not scripts:
        return results

    print_info("Running post-creation scripts...")
    for script in scripts:
        if wanted is not None and script.name not in wanted:
            continue

        print_info(f"Running script: {script.name}")
        if script.description:
            console.print(f"   {script.description}", style="dim", markup=False)

        returncode, stdout, stderr = await run_command(script.command, cwd=cwd, timeout=timeout)
        result = ScriptResult(
            name=script.name,
            command=script.command,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )
        results.append(result)

        if stdout:
            console.print(stdout, style="dim", markup=False)
        if result.success:
            print_success(f"Script completed: {script.name}")
        else:
            print_error(f"Script failed: {script.name}")
            if stderr:
                print_error(stderr)

    return results
