"""monogen scaffolder -- turns template trees into apps and shared packages.

The folder walk, the Jinja2 renderer, and the render-context builders are
exported here.  The builders live in :mod:`monogen.scaffolder.creator`::

    from monogen.scaffolder.creator import AppCreator

    creator = AppCreator(config, frameworks, packages, hooks=hooks)
    app_path = await creator.create()
"""

from monogen.scaffolder.context import (
    build_base_context,
    build_framework_context,
    build_package_context,
)
from monogen.scaffolder.folder import (
    STAGING_DIRS,
    TEMPLATE_SUFFIX,
    FolderItem,
    classify,
    env_output_paths,
    get_folder_content,
    output_path,
)
from monogen.scaffolder.templates import TemplateRenderer, env_block, manifest_entries

__all__ = [
    "FolderItem",
    "STAGING_DIRS",
    "TEMPLATE_SUFFIX",
    "TemplateRenderer",
    "build_base_context",
    "build_framework_context",
    "build_package_context",
    "classify",
    "env_block",
    "env_output_paths",
    "get_folder_content",
    "manifest_entries",
    "output_path",
]
