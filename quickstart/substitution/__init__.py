"""Placeholder (``{{name}}``) substitution in file contents and paths."""

from quickstart.substitution.paths import (
    PathCollisionError,
    PathRewriteError,
    PlannedRename,
    plan_renames,
    rewrite_path,
    rewrite_paths,
)
from quickstart.substitution.text import substitute, substitute_file, substitute_tree, token

__all__ = [
    "PathCollisionError",
    "PathRewriteError",
    "PlannedRename",
    "plan_renames",
    "rewrite_path",
    "rewrite_paths",
    "substitute",
    "substitute_file",
    "substitute_tree",
    "token",
]
