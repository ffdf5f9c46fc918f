"""Pydantic models for template metadata.

The metadata sidecar (``.template-meta.json``) uses camelCase keys, so every
model declares an alias for multi-word fields and accepts both spellings on
input.  Serialise with :meth:`TemplateMetadata.to_json_dict` to get the
on-disk shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

METADATA_FILENAME = ".template-meta.json"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class VariableSpec(BaseModel):
    """A placeholder variable a template expects at project-creation time."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Token name used as {{name}}")
    description: str | None = Field(default=None)
    default: str | None = Field(default=None)
    required: bool = Field(default=False)

    @property
    def needs_value(self) -> bool:
        """True when a caller must supply a value for this variable."""
        return self.required and self.default is None


class ScriptSpec(BaseModel):
    """A shell command offered to run after a project is created."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    command: str = Field(..., min_length=1)
    description: str | None = Field(default=None)
    run_by_default: bool = Field(default=False, alias="runByDefault")


class TemplateMetadata(BaseModel):
    """Metadata stored alongside (or inside an archive of) a template."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str | None = Field(default=None)
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    variables: list[VariableSpec] = Field(default_factory=list)
    post_creation_scripts: list[ScriptSpec] = Field(
        default_factory=list, alias="postCreationScripts"
    )

    @field_validator("variables", "post_creation_scripts", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("variables")
    @classmethod
    def _unique_variable_names(cls, value: list[VariableSpec]) -> list[VariableSpec]:
        _check_unique([v.name for v in value], "variable")
        return value

    @field_validator("post_creation_scripts")
    @classmethod
    def _unique_script_names(cls, value: list[ScriptSpec]) -> list[ScriptSpec]:
        _check_unique([s.name for s in value], "script")
        return value

    @classmethod
    def default_for(cls, name: str) -> "TemplateMetadata":
        """Metadata used for a template directory that has no sidecar file."""
        return cls(name=name)

    def to_json_dict(self) -> dict[str, Any]:
        """Return the camelCase dictionary written to ``.template-meta.json``."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def get_variable(self, name: str) -> VariableSpec | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None


class TemplateSummary(BaseModel):
    """One row of ``quickstart list``."""

    name: str
    description: str | None = None
    created_at: str = Field(..., alias="createdAt")
    variables: int = 0
    scripts: int = 0
    path: str

    model_config = ConfigDict(populate_by_name=True)


def _check_unique(names: list[str], kind: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValueError(f"Duplicate {kind} name: {name!r}")
        seen.add(name)
