"""Shared pytest fixtures for the monogen test suite.

Provides reusable fixtures for:
- A small on-disk template catalog (one framework, three packages)
- An empty workspace directory
- A GeneratorConfig wired to both
- Loaded catalogs, an empty hook registry, and an aggregator
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any

import pytest

from monogen.catalog.loader import FrameworkCatalog, PackageCatalog
from monogen.config import GeneratorConfig, InstallationInfo, PackageSelection
from monogen.metadata.aggregator import MetadataAggregator
from monogen.metadata.hooks import HookRegistry
from monogen.utils import set_verbose


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write *content* (dedented) to ``root / relative``, creating parents."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


def write_descriptor(directory: Path, data: dict[str, Any]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "config.json"
    path.write_text(json.dumps(data, indent=4), encoding="utf-8")
    return path


def shared(package: str, name: str | None = None, use_existing: bool = False) -> PackageSelection:
    """A selection installing *package* as a shared package."""
    return PackageSelection(
        package=package,
        installation=InstallationInfo(
            is_shared=True, package_name=name, use_existing=use_existing
        ),
    )


# ---------------------------------------------------------------------------
# Verbosity
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet():
    set_verbose(False)
    yield
    set_verbose(False)


# ---------------------------------------------------------------------------
# Catalog on disk
# ---------------------------------------------------------------------------


FRAMEWORK_API = {
    "name": "api",
    "displayName": "API",
    "description": "Test API framework",
    "defaultAppName": "api-app",
    "defaultAppDescription": "An API",
    "hasUI": False,
    "dependencies": [{"name": "server", "version": "^1.0.0"}],
    "devDependencies": [{"name": "typescript", "version": "^5.0.0"}],
    "scripts": [{"name": "dev", "command": "server dev"}],
    "envVars": [{"name": "NODE_ENV", "value": "development"}],
    "testingDependencies": [{"name": "vitest", "version": "^2.0.0"}],
    "testingScripts": [{"name": "test", "command": "vitest run"}],
}

PACKAGE_P = {
    "name": "p",
    "displayName": "P",
    "version": "1.2.3",
    "canBeSharedPackage": True,
    "sharedPackageDefaultName": "db",
    "dependencies": [
        {"name": "p-core", "version": "^2.0.0", "addInApp": False},
        {"name": "p-client", "version": "^2.0.0"},
    ],
    "devDependencies": [{"name": "p-kit", "version": "^1.0.0", "addInApp": False}],
    "scripts": [{"name": "p:generate", "command": "p generate", "addInApp": False}],
    "envVars": [{"name": "P_URL", "value": "file:./p.db"}],
}

PACKAGE_Q = {
    "name": "q",
    "displayName": "Q",
    "dependencies": [{"name": "q-lib", "version": "^3.0.0"}],
    "scripts": [{"name": "q", "command": "q run"}],
}

PACKAGE_UI = {
    "name": "ui-kit",
    "isUILibrary": True,
    "supportedFrameworks": ["web"],
    "dependencies": [{"name": "ui-kit", "version": "^9.0.0"}],
}


@pytest.fixture
def catalog_root(tmp_path: Path) -> Path:
    """Template root with framework ``api`` and packages ``p``, ``q``, ``ui-kit``."""
    root = tmp_path / "templates"

    api = root / "frameworks" / "api"
    write_descriptor(api, FRAMEWORK_API)
    write_file(api, "files/package.json.j2", """
        {
            "name": {{ app.name | tojson }},
            "scripts": {
                "lint": "eslint ."{{ manifest_entries(scripts, indent=8, leading=true) }}
            },
            "dependencies": {
                "from-template": "^0.1.0"{{ manifest_entries(dependencies, indent=8, leading=true) }}
            },
            "devDependencies": {
                {{ manifest_entries(dev_dependencies, indent=8) }}
            }
        }
    """)
    write_file(api, "files/.env.example.j2", """
        API_URL=http://localhost:{{ app.port }}
        {{ env_block(env_vars) }}
    """)
    write_file(api, "files/src/index.ts.j2", """
        export const name = "{{ app.name }}";
    """)
    write_file(api, "files/static.txt", "static {{ not rendered }}\n")
    write_file(api, "files/tsconfig.json", '{"compilerOptions": {"strict": true}}\n')

    p = root / "packages" / "p"
    write_descriptor(p, PACKAGE_P)
    write_file(p, "shared-files/package.json.j2", """
        {
            "name": {{ shared_package.namespaced_name | default("") | tojson }},
            "dependencies": {
                {{ manifest_entries(dependencies, indent=8) }}
            },
            "devDependencies": {
                {{ manifest_entries(dev_dependencies, indent=8) }}
            }
        }
    """)
    write_file(p, "shared-files/src/index.ts", "export const p = true;\n")
    write_file(p, "files/src/p-schema.ts", "export const schema = {};\n")

    q = root / "packages" / "q"
    write_descriptor(q, PACKAGE_Q)
    write_file(q, "files/package.json.j2", """
        {
            "dependencies": {
                "q-template": "^3.1.0"
            }
        }
    """)
    write_file(q, "files/q.txt", "q file\n")

    write_descriptor(root / "packages" / "ui-libraries" / "ui-kit", PACKAGE_UI)
    return root


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def config(catalog_root: Path, workspace: Path) -> GeneratorConfig:
    return GeneratorConfig(
        app_name="demo",
        description="Demo app",
        framework="api",
        port=4001,
        templates_dir=catalog_root,
        workspace_dir=workspace,
    )


@pytest.fixture
def frameworks(config: GeneratorConfig) -> FrameworkCatalog:
    catalog = FrameworkCatalog()
    catalog.load_all(config.frameworks_templates_path)
    return catalog


@pytest.fixture
def packages(config: GeneratorConfig) -> PackageCatalog:
    catalog = PackageCatalog()
    catalog.load_all(config.packages_templates_path)
    return catalog


@pytest.fixture
def hooks() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def aggregator(
    config: GeneratorConfig,
    frameworks: FrameworkCatalog,
    packages: PackageCatalog,
    hooks: HookRegistry,
) -> MetadataAggregator:
    return MetadataAggregator(config, frameworks, packages, hooks)


# ---------------------------------------------------------------------------
# Helper fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_file():
    """The :func:`write_file` helper, for tests that add template entries."""
    return write_file


@pytest.fixture
def make_descriptor():
    return write_descriptor


@pytest.fixture
def shared_selection():
    """Factory for shared-package selections."""
    return shared
