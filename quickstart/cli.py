"""Command-line interface for Quickstart.

Usage::

    python -m quickstart init --name my-template
    python -m quickstart create my-template -d ./new-project --var author=Ann
    python -m quickstart export my-template -o my-template.qst
    python -m quickstart import my-template.qst

Every value a command needs can be passed as a flag; missing values are
asked for interactively unless ``--yes`` is given.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.prompt import Confirm, Prompt
from rich.table import Table

from quickstart import __version__
from quickstart.archive import ARCHIVE_EXTENSION, ArchiveError, read_archive
from quickstart.config import Config, ConfigError, Settings
from quickstart.creator import MissingVariableError, create_project, default_project_dir
from quickstart.github import GitHubError, create_template_from_github
from quickstart.models import ScriptSpec, TemplateMetadata, VariableSpec
from quickstart.scripts import default_script_names, run_post_creation_scripts
from quickstart.store import (
    DEFAULT_IGNORE_PATTERNS,
    TemplateError,
    TemplateStore,
)
from quickstart.substitution import PathRewriteError
from quickstart.utils import (
    console,
    print_error,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
)


class CliError(Exception):
    """Raised for invalid command-line input."""


class Cancelled(Exception):
    """The user declined a confirmation prompt."""


# ---------------------------------------------------------------------------
# Option parsing helpers
# ---------------------------------------------------------------------------


def parse_variable_option(value: str) -> VariableSpec:
    """Parse ``NAME`` or ``NAME=DEFAULT`` into a variable.

    A variable without a default is required.
    """
    name, sep, default = value.partition("=")
    name = name.strip()
    if not name:
        raise CliError(f"Invalid variable definition: {value!r}")
    if sep:
        return VariableSpec(name=name, default=default, required=False)
    return VariableSpec(name=name, required=True)


def parse_script_option(value: str, run_by_default: bool = True) -> ScriptSpec:
    """Parse ``NAME=COMMAND`` into a post-creation script."""
    name, sep, command = value.partition("=")
    if not sep or not name.strip() or not command.strip():
        raise CliError(f"Invalid script definition (expected NAME=COMMAND): {value!r}")
    return ScriptSpec(name=name.strip(), command=command.strip(), run_by_default=run_by_default)


def parse_vars(json_text: str | None, assignments: Sequence[str] = ()) -> dict[str, str]:
    """Merge ``--vars`` JSON and repeated ``--var KEY=VALUE`` options."""
    values: dict[str, str] = {}
    if json_text:
        try:
            data = json.loads(json_text)
        except json.JSONDecodeError as exc:
            raise CliError(f"Error parsing variables JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CliError("Variables JSON must be an object")
        values.update({str(k): str(v) for k, v in data.items()})
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            raise CliError(f"Invalid variable assignment (expected KEY=VALUE): {assignment!r}")
        values[key.strip()] = value
    return values


def split_patterns(text: str) -> list[str]:
    return [p.strip() for p in text.split(",") if p.strip()]


# ---------------------------------------------------------------------------
# Interactive helpers
# ---------------------------------------------------------------------------


def _confirm(message: str, *, assume_yes: bool, default: bool = False) -> bool:
    if assume_yes:
        return True
    return Confirm.ask(message, default=default, console=console)


def _ask_variable(variable: VariableSpec) -> str | None:
    label = variable.description or variable.name
    while True:
        if variable.default is not None:
            answer = Prompt.ask(label, default=variable.default, console=console)
        else:
            answer = Prompt.ask(label, default="", show_default=False, console=console)
        if answer.strip():
            return answer
        if not variable.required:
            return None
        print_warning(f"{variable.name} is required")


def _collect_variables_interactively() -> list[VariableSpec]:
    variables: list[VariableSpec] = []
    print_info("Define template variables for placeholder replacements")
    console.print("Variables will be used to replace {{variableName}} in files", style="dim", markup=False)
    while True:
        name = Prompt.ask("Variable name (leave empty to finish)", default="", show_default=False, console=console)
        if not name.strip():
            return variables
        description = Prompt.ask(f"Description for {name}", default=f"Value for {name}", console=console)
        default = Prompt.ask(
            f"Default value for {name} (leave empty for no default)",
            default="",
            show_default=False,
            console=console,
        )
        required = Confirm.ask(f"Is {name} required?", default=True, console=console)
        variables.append(
            VariableSpec(
                name=name.strip(),
                description=description,
                default=default or None,
                required=required,
            )
        )
        print_success(f"Variable {name} added")


def _collect_scripts_interactively() -> list[ScriptSpec]:
    scripts: list[ScriptSpec] = []
    print_info("Define post-creation scripts")
    while True:
        name = Prompt.ask("Script name (leave empty to finish)", default="", show_default=False, console=console)
        if not name.strip():
            return scripts
        command = ""
        while not command.strip():
            command = Prompt.ask(f"Command for {name}", console=console)
        description = Prompt.ask(f"Description for {name}", default=f"Runs {name}", console=console)
        run_by_default = Confirm.ask(
            f"Run {name} by default when creating from template?", default=True, console=console
        )
        scripts.append(
            ScriptSpec(
                name=name.strip(),
                command=command.strip(),
                description=description,
                run_by_default=run_by_default,
            )
        )
        print_success(f"Script {name} added")


def _definitions(args: argparse.Namespace) -> tuple[list[VariableSpec], list[ScriptSpec]]:
    """Variables and scripts for ``init`` / ``github`` from flags or prompts."""
    variables: list[VariableSpec] = []
    scripts: list[ScriptSpec] = []
    if not args.skip_variables:
        variables = [parse_variable_option(v) for v in args.variable]
        if not variables and not args.yes:
            variables = _collect_variables_interactively()
    if not args.skip_scripts:
        scripts = [parse_script_option(s) for s in args.script]
        if not scripts and not args.yes:
            scripts = _collect_scripts_interactively()
    return variables, scripts


def _print_definitions(variables: list[VariableSpec], scripts: list[ScriptSpec]) -> None:
    if variables:
        print_info(f"Template Variables: {len(variables)}")
        for v in variables:
            console.print(f"- {v.name} {'(required)' if v.required else '(optional)'}", style="dim", markup=False)
    if scripts:
        print_info(f"Post-Creation Scripts: {len(scripts)}")
        for s in scripts:
            console.print(f"- {s.name}: {s.command}", style="dim", markup=False)


def _configured_values(config: Config, metadata: TemplateMetadata) -> dict[str, str]:
    """``author`` / ``license`` values taken from the user settings."""
    configured = {
        "author": config.settings.default_author,
        "license": config.settings.default_license,
    }
    return {
        name: value
        for name, value in configured.items()
        if value and metadata.get_variable(name) is not None
    }


def _format_date(created_at: str) -> str:
    try:
        return datetime.fromisoformat(created_at.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return created_at


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_init(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    print_info("Initializing a new project template")

    name = args.name
    if not name:
        if args.yes:
            raise CliError("Template name is required with --yes")
        name = Prompt.ask("Enter a name for this template", console=console)
    name = store.validate_name(name)

    description = args.description
    if description is None:
        default_description = f"Template for {name} projects"
        description = (
            default_description
            if args.yes
            else Prompt.ask("Enter a description for this template", default=default_description, console=console)
        )

    overwrite = args.force
    if store.exists(name) and not overwrite:
        if not _confirm(f'Template "{name}" already exists. Overwrite?', assume_yes=args.yes):
            raise Cancelled("Template creation canceled")
        overwrite = True

    if args.ignore is not None:
        ignore = split_patterns(args.ignore)
    elif args.yes:
        ignore = list(DEFAULT_IGNORE_PATTERNS)
    else:
        ignore = split_patterns(
            Prompt.ask(
                "Enter patterns to ignore (comma separated)",
                default=",".join(DEFAULT_IGNORE_PATTERNS),
                console=console,
            )
        )

    variables, scripts = _definitions(args)
    template_dir = await store.create_from_directory(
        Path(args.source),
        name,
        description=description,
        variables=variables,
        scripts=scripts,
        ignore_patterns=ignore,
        overwrite=overwrite,
    )

    print_success(f'Template "{name}" created successfully at {template_dir}')
    print_info(f"Use 'quickstart create {name}' to use this template")
    _print_definitions(variables, scripts)
    return 0


async def cmd_create(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    print_info("Creating a new project from template")

    names = store.names()
    if not names:
        print_warning('No templates found. Create one first with "quickstart init"')
        return 0

    template_name = args.template
    if not template_name:
        if args.yes:
            raise CliError("Template name is required with --yes")
        template_name = Prompt.ask("Select a template", choices=names, console=console)
    if template_name not in names:
        raise CliError(f'Template "{template_name}" not found. Available templates: {", ".join(names)}')

    template_dir = store.require(template_name)
    metadata = await store.load_metadata(template_dir)
    print_info(f"Template: {metadata.name}")
    if metadata.description:
        console.print(f"   {metadata.description}", style="dim", markup=False)

    directory = args.directory
    if not directory:
        default_dir = default_project_dir(template_name)
        directory = default_dir if args.yes else Prompt.ask("Enter project name", default=default_dir, console=console)
    target = Path(directory).resolve()

    if target.exists():
        message = f'Directory "{target.name}" already exists. Continue and merge contents?'
        if not _confirm(message, assume_yes=args.yes):
            raise Cancelled("Project creation canceled")

    supplied = {**_configured_values(config, metadata), **parse_vars(args.vars, args.var)}
    result = await create_project(
        template_dir,
        target,
        supplied,
        project_name=Path(directory).name,
        prompt=None if args.yes else _ask_variable,
    )

    scripts = metadata.post_creation_scripts
    if scripts and not args.skip_scripts:
        if args.yes:
            selected = default_script_names(scripts)
        else:
            print_info("Post-Creation Scripts")
            selected = [
                s.name
                for s in scripts
                if Confirm.ask(
                    f"Run {s.name} ({s.description or s.command})?",
                    default=s.run_by_default,
                    console=console,
                )
            ]
        if selected:
            await run_post_creation_scripts(scripts, result.target_dir, selected)
        else:
            print_info("No post-creation scripts to run")

    print_success(f"Project created successfully at {result.target_dir}")
    return 0


async def cmd_github(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    print_info(f"Creating template from GitHub repository: {args.repo}")
    variables, scripts = _definitions(args)
    template_dir = await create_template_from_github(
        store,
        args.repo,
        name=args.name,
        description=args.description,
        branch=args.branch,
        subdirectory=args.subdirectory,
        variables=variables,
        scripts=scripts,
        overwrite=args.force,
        token=config.settings.github_token,
    )
    print_success(f'Template "{template_dir.name}" created from GitHub repository')
    print_info(f"Use 'quickstart create {template_dir.name}' to use this template")
    return 0


async def cmd_list(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    templates = await store.list_templates()

    if args.json:
        console.print_json(json.dumps([t.model_dump(by_alias=True) for t in templates]))
        return 0
    if not templates:
        print_warning('No templates found. Create one first with "quickstart init" or "quickstart github"')
        return 0

    table = Table(
        title=f"Found {len(templates)} template{'s' if len(templates) != 1 else ''}",
        header_style="bold cyan",
    )
    table.add_column("Name", style="green")
    if args.detailed:
        for column in ("Description", "Created", "Variables", "Scripts", "Path"):
            table.add_column(column)
    for t in templates:
        if args.detailed:
            table.add_row(
                t.name, t.description or "", _format_date(t.created_at),
                str(t.variables), str(t.scripts), t.path,
            )
        else:
            table.add_row(t.name)
    console.print(table)
    if not args.detailed:
        print_info("Use --detailed flag for more information")
    return 0


async def cmd_info(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    template_dir = store.require(args.template)
    metadata = await store.load_metadata(template_dir)
    file_count = await store.file_count(args.template)

    if args.json:
        data: dict[str, Any] = {
            **metadata.to_json_dict(),
            "path": str(template_dir),
            "fileCount": file_count,
        }
        console.print_json(json.dumps(data))
        return 0

    summary = {"Path": str(template_dir), "Created": _format_date(metadata.created_at), "Files": str(file_count)}
    if metadata.description:
        summary["Description"] = metadata.description
    print_summary_table(summary, title=f"Template: {metadata.name}")

    if metadata.variables:
        table = Table(title="Variables", header_style="bold cyan")
        for column in ("Name", "Description", "Default", "Required"):
            table.add_column(column)
        for v in metadata.variables:
            table.add_row(v.name, v.description or "", v.default or "", "Yes" if v.required else "No")
        console.print(table)

    if metadata.post_creation_scripts:
        table = Table(title="Post-Creation Scripts", header_style="bold cyan")
        for column in ("Name", "Description", "Command", "Run by default"):
            table.add_column(column)
        for s in metadata.post_creation_scripts:
            table.add_row(s.name, s.description or "", s.command, "Yes" if s.run_by_default else "No")
        console.print(table)
    return 0


async def cmd_update(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    metadata = await store.get_metadata(args.template)
    print_info(f"Updating template: {args.template}")

    new_name = args.name
    description = args.description
    if not args.yes:
        if new_name is None:
            new_name = Prompt.ask("Template name", default=metadata.name, console=console)
        if description is None:
            description = Prompt.ask("Template description", default=metadata.description or "", console=console)

    updated = await store.update(args.template, new_name=new_name, description=description)
    if updated.name != args.template:
        print_success(f'Template renamed from "{args.template}" to "{updated.name}"')
    else:
        print_success(f'Template "{args.template}" updated successfully')
    return 0


async def cmd_remove(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    store.require(args.template)
    if not args.force and not Confirm.ask(
        f'Are you sure you want to remove template "{args.template}"?', default=False, console=console
    ):
        print_warning("Template removal canceled")
        return 0
    await store.remove(args.template)
    print_success(f'Template "{args.template}" removed successfully')
    return 0


async def cmd_export(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    print_info(f'Exporting template "{args.template}" as {ARCHIVE_EXTENSION} file')
    output = Path(args.output) if args.output else Path.cwd() / f"{args.template}{ARCHIVE_EXTENSION}"
    path = await store.export(args.template, output)
    print_success(f"Template exported successfully to {path}")
    print_info(f"Use 'quickstart import {path.name}' to import this template")
    return 0


async def cmd_import(args: argparse.Namespace, config: Config) -> int:
    store = TemplateStore(config.templates_path)
    print_info(f"Importing template from {ARCHIVE_EXTENSION} file")
    archive = await read_archive(Path(args.file).resolve())

    overwrite = args.force
    if store.exists(archive.name) and not overwrite:
        if not Confirm.ask(f'Template "{archive.name}" already exists. Overwrite?', default=False, console=console):
            raise Cancelled("Import canceled")
        overwrite = True

    await store.install_archive(archive, overwrite=overwrite)
    print_success(f'Template "{archive.name}" imported successfully')
    print_info(f"Use 'quickstart create {archive.name}' to use this template")
    return 0


async def cmd_config(args: argparse.Namespace, config: Config) -> int:
    if args.reset:
        config.reset()
        print_success("Configuration reset to defaults")
        return 0
    if args.get:
        value = config.get_value(args.get)
        if value is None:
            print_warning(f'Configuration key "{args.get}" not found')
        else:
            console.print(value, markup=False)
        return 0
    if args.set:
        key, value = config.set_value(args.set)
        print_success(f"Set {key} = {value}")
        return 0
    if args.list:
        values = config.settings.to_json_dict()
        if not values:
            print_warning("No configuration values set")
        else:
            print_summary_table(values, title="Configuration")
        return 0

    print_info("Interactive Configuration")
    current = config.settings
    answers = {
        "defaultAuthor": Prompt.ask("Default author name", default=current.default_author or "", console=console),
        "defaultLicense": Prompt.ask("Default license", default=current.default_license or "MIT", console=console),
        "templatesDir": Prompt.ask(
            "Custom templates directory (leave empty for default)",
            default=current.templates_dir or "",
            console=console,
        ),
    }
    merged = {**current.to_json_dict(), **answers}
    config.settings = Settings.model_validate({k: v for k, v in merged.items() if v})
    config.save()
    print_success("Configuration saved")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_definition_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--variable", action="append", default=[], metavar="NAME[=DEFAULT]",
                        help="Declare a template variable (repeatable)")
    parser.add_argument("--script", action="append", default=[], metavar="NAME=COMMAND",
                        help="Declare a post-creation script (repeatable)")
    parser.add_argument("--skip-variables", action="store_true", help="Skip defining template variables")
    parser.add_argument("--skip-scripts", action="store_true", help="Skip defining post-creation scripts")
    parser.add_argument("--yes", "-y", action="store_true", help="Never prompt; use defaults")
    parser.add_argument("--force", "-f", action="store_true", help="Overwrite an existing template")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quickstart",
        description="Initialize projects from reusable templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  quickstart init --name api --variable author\n"
            "  quickstart create api -d ./my-api --var author=Ann\n"
            "  quickstart export api -o api.qst\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--home", default=None,
                        help="Quickstart home directory (default: $QUICKSTART_HOME or ~/.quickstart)")
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    p = sub.add_parser("init", help="Initialize a new template from a directory")
    p.add_argument("--name", "-n", help="Name of the template")
    p.add_argument("--description", "-d", help="Description of the template")
    p.add_argument("--source", default=".", help="Directory to turn into a template (default: .)")
    p.add_argument("--ignore", default=None, help="Comma separated ignore patterns")
    _add_definition_options(p)
    p.set_defaults(handler=cmd_init)

    p = sub.add_parser("create", help="Create a new project from a template")
    p.add_argument("template", nargs="?", help="Template name")
    p.add_argument("--directory", "-d", help="Target directory for the new project")
    p.add_argument("--yes", "-y", action="store_true", help="Skip all prompts and use defaults")
    p.add_argument("--skip-scripts", "-s", action="store_true", help="Skip running post-creation scripts")
    p.add_argument("--vars", "-v", default=None, metavar="JSON", help="Variable values as a JSON object")
    p.add_argument("--var", action="append", default=[], metavar="KEY=VALUE", help="Variable value (repeatable)")
    p.set_defaults(handler=cmd_create)

    p = sub.add_parser("github", help="Create a template from a GitHub repository")
    p.add_argument("repo", help="Repository as owner/repo")
    p.add_argument("--name", "-n", help="Name for the template")
    p.add_argument("--description", "-d", help="Description for the template")
    p.add_argument("--branch", "-b", help="Branch to clone")
    p.add_argument("--subdirectory", "-s", help="Use only a subdirectory of the repo")
    _add_definition_options(p)
    p.set_defaults(handler=cmd_github)

    p = sub.add_parser("list", aliases=["ls"], help="List all available templates")
    p.add_argument("--detailed", "-d", action="store_true", help="Show detailed information")
    p.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    p.set_defaults(handler=cmd_list)

    p = sub.add_parser("info", help="Show detailed information about a template")
    p.add_argument("template")
    p.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    p.set_defaults(handler=cmd_info)

    p = sub.add_parser("update", help="Update template metadata")
    p.add_argument("template")
    p.add_argument("--name", "-n", help="New template name")
    p.add_argument("--description", "-d", help="New template description")
    p.add_argument("--yes", "-y", action="store_true", help="Do not prompt for missing values")
    p.set_defaults(handler=cmd_update)

    p = sub.add_parser("remove", aliases=["rm"], help="Remove a template")
    p.add_argument("template")
    p.add_argument("--force", "-f", action="store_true", help="Remove without confirmation")
    p.set_defaults(handler=cmd_remove)

    p = sub.add_parser("export", help=f"Export a template as a {ARCHIVE_EXTENSION} file")
    p.add_argument("template")
    p.add_argument("--output", "-o", help="Output file path")
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("import", help=f"Import a template from a {ARCHIVE_EXTENSION} file")
    p.add_argument("file")
    p.add_argument("--force", "-f", action="store_true", help="Overwrite an existing template without prompting")
    p.set_defaults(handler=cmd_import)

    p = sub.add_parser("config", help="Manage configuration settings")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--get", "-g", metavar="KEY", help="Get a configuration value")
    group.add_argument("--set", "-s", metavar="KEY=VALUE", help="Set a configuration value")
    group.add_argument("--reset", "-r", action="store_true", help="Reset configuration to defaults")
    group.add_argument("--list", "-l", action="store_true", help="List all configuration values")
    p.set_defaults(handler=cmd_config)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``quickstart`` / ``python -m quickstart``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 0

    try:
        config = Config.load(Path(args.home)) if args.home else Config.from_env()
        config.ensure_directories()
        return asyncio.run(args.handler(args, config))
    except Cancelled as exc:
        print_warning(str(exc))
        return 0
    except (
        CliError,
        ConfigError,
        TemplateError,
        ArchiveError,
        MissingVariableError,
        PathRewriteError,
        ValidationError,
        GitHubError,
        OSError,
    ) as exc:
        print_error(f"Error: {exc}")
        return 1
    except KeyboardInterrupt:
        print_warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
