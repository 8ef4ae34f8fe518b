"""Render-context assembly.

Two context shapes exist: the framework context used for an application's
own templates and the package context used for a shared package.  Both carry
the application identity, the resolved metadata bundles (kept split by source
so templates control ordering), and the free-form ``context_vars`` returned by
the entity's ``template-context-vars`` hook.
"""

from __future__ import annotations

from typing import Any, Optional

from monogen.catalog.models import Framework, Package
from monogen.config import GeneratorConfig, PackageSelection
from monogen.metadata.bundles import ResolvedMetadata


def app_context(config: GeneratorConfig) -> dict[str, Any]:
    meta = config.metadata
    return {
        "name": config.app_name,
        "description": config.description,
        "port": config.port,
        "author": meta.author,
        "license": meta.license,
        "homepage": meta.homepage,
        "repository": meta.repository,
        "bugs": meta.bugs,
        "bugs_email": config.bugs_email,
        "keywords": list(meta.keywords),
    }


def framework_context(framework: Optional[Framework]) -> dict[str, Any]:
    if framework is None:
        return {}
    return {
        "name": framework.name,
        "display_name": framework.label,
        "description": framework.description,
        "has_ui": framework.has_ui,
    }


def selection_context(config: GeneratorConfig, selection: PackageSelection) -> dict[str, Any]:
    return {
        "name": selection.package,
        "is_shared": selection.is_shared,
        "shared_name": selection.shared_name if selection.is_shared else None,
        "namespaced_name": (
            config.namespaced(selection.shared_name) if selection.is_shared else None
        ),
        "extra_options": dict(selection.extra_options),
    }


def _metadata_context(metadata: ResolvedMetadata) -> dict[str, Any]:
    return {
        "dependencies": metadata.dependencies,
        "dev_dependencies": metadata.dev_dependencies,
        "scripts": metadata.scripts,
        "env_vars": metadata.env_vars,
    }


def build_base_context(config: GeneratorConfig) -> dict[str, Any]:
    """Context with empty bundles, used to pre-render manifest templates."""
    return {
        "app": app_context(config),
        "framework": {},
        "package": {},
        "shared_package": {},
        **_metadata_context(ResolvedMetadata()),
        "selected_packages": [],
        "shared_packages": [],
        "context_vars": {},
    }


def build_framework_context(
    config: GeneratorConfig,
    framework: Framework,
    metadata: ResolvedMetadata,
    context_vars: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return {
        "app": app_context(config),
        "framework": framework_context(framework),
        **_metadata_context(metadata),
        "selected_packages": [
            selection_context(config, selection) for selection in config.selected_packages
        ],
        "shared_packages": [
            config.namespaced(selection.shared_name) for selection in config.shared_selections
        ],
        "context_vars": dict(context_vars or {}),
    }


def build_package_context(
    config: GeneratorConfig,
    framework: Optional[Framework],
    package: Package,
    selection: PackageSelection,
    metadata: ResolvedMetadata,
    context_vars: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    description = (
        selection.installation.package_description
        or package.shared_package_default_description
        or package.description
    )
    return {
        "app": app_context(config),
        "framework": framework_context(framework),
        "package": {
            "name": package.name,
            "display_name": package.label,
            "description": package.description,
            "version": package.version,
            "extra_options": dict(selection.extra_options),
        },
        "shared_package": {
            "name": selection.shared_name,
            "description": description,
            "namespaced_name": config.namespaced(selection.shared_name),
        },
        **_metadata_context(metadata),
        "context_vars": dict(context_vars or {}),
    }
