"""Quickstart -- store project templates and scaffold new projects from them.

Templates are plain directories with a ``.template-meta.json`` sidecar.
They can be packed into single-file ``.qst`` archives and materialised into
new projects with ``{{name}}`` placeholders substituted in file contents
and in file/directory names.

Quick usage::

    from quickstart.store import TemplateStore
    from quickstart.creator import create_project

    store = TemplateStore("/path/to/templates")
    await create_project(store.require("api"), "./my-api", {"author": "Ann"})
"""

__version__ = "2.0.0"

__all__ = ["__version__"]
