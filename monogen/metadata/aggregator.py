"""Metadata Aggregator.

Collects dependencies, dev-dependencies, scripts, and environment variables
for a framework or an add-on package from three sources, always in this
order:

1. records declared in the entity's ``config.json`` (origin ``config``);
2. records returned by the entity's hook module (origin ``executable``);
3. records parsed out of the entity's manifest or env template, rendered with
   the base context (origin ``template``).

For an application the selected packages are appended in selection order,
followed by the framework's testing records and one synthetic dependency per
reused shared package.  Records are tagged with their origin and never
de-duplicated here; the template helpers apply last-wins when serializing.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from monogen.catalog.loader import FrameworkCatalog, PackageCatalog
from monogen.catalog.models import (
    Dependency,
    EnvVar,
    Framework,
    MetadataRecord,
    OriginScope,
    OriginType,
    Package,
    Script,
)
from monogen.config import GeneratorConfig, PackageSelection
from monogen.errors import HookExecutionError, NotFoundError, TemplateRenderError
from monogen.scaffolder.context import build_base_context
from monogen.scaffolder.folder import (
    FILES_DIR,
    MANIFEST_NAME,
    SHARED_FILES_DIR,
    TEMPLATE_SUFFIX,
    is_env_name,
)
from monogen.scaffolder.templates import TemplateRenderer
from monogen.utils import print_debug

from .bundles import RecordBundle, ResolvedMetadata
from .hooks import HookKind, HookRegistry, entity_key

Entity = Union[Framework, Package]


class MetadataKind(str, Enum):
    """The record families the aggregator collects."""
    DEPENDENCIES = "dependencies"
    SCRIPTS = "scripts"
    ENV_VARS = "env-vars"


_HOOK_KINDS = {
    MetadataKind.DEPENDENCIES: HookKind.DEPENDENCIES,
    MetadataKind.SCRIPTS: HookKind.SCRIPTS,
    MetadataKind.ENV_VARS: HookKind.ENV_VARS,
}

_RECORD_MODELS: dict[MetadataKind, type] = {
    MetadataKind.DEPENDENCIES: Dependency,
    MetadataKind.SCRIPTS: Script,
    MetadataKind.ENV_VARS: EnvVar,
}


def _descriptor_attribute(kind: MetadataKind, is_dev: bool) -> str:
    if kind is MetadataKind.DEPENDENCIES:
        return "dev_dependencies" if is_dev else "dependencies"
    return "scripts" if kind is MetadataKind.SCRIPTS else "env_vars"


def _hook_export(kind: MetadataKind, is_dev: bool) -> str:
    if kind is MetadataKind.DEPENDENCIES:
        return "get_dev_dependencies" if is_dev else "get_dependencies"
    return "get_scripts" if kind is MetadataKind.SCRIPTS else "get_env_vars"


def _manifest_section(kind: MetadataKind, is_dev: bool) -> str:
    if kind is MetadataKind.DEPENDENCIES:
        return "devDependencies" if is_dev else "dependencies"
    return "scripts"


class MetadataAggregator:
    """Computes the resolved metadata of an app or of one shared package.

    All collaborators are injected; the aggregator itself holds no state
    besides them, so calling any method twice with unchanged inputs returns
    the same records in the same order.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        frameworks: FrameworkCatalog,
        packages: PackageCatalog,
        hooks: HookRegistry | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.frameworks = frameworks
        self.packages = packages
        self.hooks = hooks or HookRegistry()
        self.renderer = renderer or TemplateRenderer(config.templates_dir)

    # ------------------------------------------------------------------
    # Single entity
    # ------------------------------------------------------------------

    async def collect(
        self, entity_name: str, kind: MetadataKind, is_dev: bool = False
    ) -> list[MetadataRecord]:
        """Run the three per-entity steps for a framework or package.

        The configured framework wins when a package has the same name.

        Raises:
            NotFoundError: If *entity_name* is in neither catalog.
            HookExecutionError: If the hook raises or returns garbage.
            TemplateRenderError: If the manifest template does not parse.
        """
        return await self._collect(self._entity(entity_name), kind, is_dev)

    async def _collect(
        self, entity: Entity, kind: MetadataKind, is_dev: bool
    ) -> list[MetadataRecord]:
        scope = OriginScope.APP if isinstance(entity, Framework) else OriginScope.PACKAGE

        declared = getattr(entity, _descriptor_attribute(kind, is_dev))
        records: list[MetadataRecord] = [
            record.with_origin(scope, OriginType.CONFIG, entity.name) for record in declared
        ]
        records.extend(
            record.with_origin(scope, OriginType.EXECUTABLE, entity.name)
            for record in await self._from_hook(entity, kind, is_dev)
        )
        records.extend(
            record.with_origin(scope, OriginType.TEMPLATE, entity.name)
            for record in await self._from_templates(entity, kind, is_dev)
        )
        print_debug(
            f"Collected {len(records)} {'dev ' if is_dev else ''}{kind.value} "
            f"for {entity_key(entity)}"
        )
        return records

    def _entity(self, name: str) -> Entity:
        if name == self.config.framework and name in self.frameworks:
            return self.frameworks.get_by_name(name)
        if name in self.packages:
            return self.packages.get_by_name(name)
        if name in self.frameworks:
            return self.frameworks.get_by_name(name)
        raise NotFoundError(
            "framework or package", name, [*self.frameworks.names(), *self.packages.names()]
        )

    # -- Step 2: hook module -------------------------------------------

    async def _from_hook(
        self, entity: Entity, kind: MetadataKind, is_dev: bool
    ) -> list[MetadataRecord]:
        owner = entity_key(entity)
        hook_kind = _HOOK_KINDS[kind]
        export = _hook_export(kind, is_dev)
        result = await self.hooks.call(
            owner, hook_kind, export, self.config, self.frameworks, self.packages
        )
        if result is None:
            return []
        hook_name = f"{hook_kind.value}.{export}"
        if not isinstance(result, (list, tuple)):
            raise HookExecutionError(
                owner,
                hook_name,
                TypeError(f"expected a list of records, got {type(result).__name__}"),
            )
        model = _RECORD_MODELS[kind]
        records: list[MetadataRecord] = []
        for item in result:
            if isinstance(item, model):
                records.append(item)
                continue
            try:
                records.append(model.model_validate(item))
            except ValidationError as exc:
                raise HookExecutionError(owner, hook_name, exc) from exc
        return records

    # -- Step 3: manifest / env templates ------------------------------

    def _staging_roots(self, entity: Entity) -> list[tuple[Path, bool]]:
        """``(staging dir, add_in_app)`` pairs in parse order."""
        if entity.template_dir is None:
            return []
        root = entity.template_dir
        if isinstance(entity, Framework):
            return [(root / FILES_DIR, True)]
        return [(root / SHARED_FILES_DIR, False), (root / FILES_DIR, True)]

    async def _from_templates(
        self, entity: Entity, kind: MetadataKind, is_dev: bool
    ) -> list[MetadataRecord]:
        records: list[MetadataRecord] = []
        context = build_base_context(self.config)
        for staging, add_in_app in self._staging_roots(entity):
            if kind is MetadataKind.ENV_VARS:
                for env_file in _env_templates(staging):
                    content = await self._read_rendered(env_file, context)
                    records.extend(
                        EnvVar(name=name, value=value, add_in_app=add_in_app)
                        for name, value in parse_env(content)
                    )
                continue
            manifest = _manifest_template(staging)
            if manifest is None:
                continue
            content = await self._read_rendered(manifest, context)
            records.extend(
                _manifest_records(manifest, content, kind, is_dev, add_in_app)
            )
        return records

    async def _read_rendered(self, path: Path, context: dict[str, Any]) -> str:
        if path.name.endswith(TEMPLATE_SUFFIX):
            return await asyncio.to_thread(self.renderer.render, path, context)
        return await asyncio.to_thread(path.read_text, "utf-8")

    # ------------------------------------------------------------------
    # Application and shared package
    # ------------------------------------------------------------------

    def framework(self) -> Framework:
        return self.frameworks.get_by_name(self.config.framework)

    async def collect_for_app(
        self, kind: MetadataKind, is_dev: bool = False
    ) -> list[MetadataRecord]:
        """Every record that belongs in the application manifest, in order."""
        framework = self.framework()
        records = [
            record
            for record in await self._collect(framework, kind, is_dev)
            if record.add_in_app
        ]

        for selection in self.config.selected_packages:
            package = self.packages.get_by_name(selection.package)
            package_records = await self._collect(package, kind, is_dev)
            if selection.is_shared:
                package_records = [record for record in package_records if record.add_in_app]
            records.extend(package_records)

        records.extend(_testing_records(framework, kind, is_dev))

        if kind is MetadataKind.DEPENDENCIES and not is_dev:
            for selection in self.config.shared_selections:
                if selection.installation.use_existing:
                    records.append(self.shared_dependency(selection))
        return records

    async def collect_for_shared_package(
        self, package_name: str, kind: MetadataKind, is_dev: bool = False
    ) -> list[MetadataRecord]:
        """The package's own records that belong in its shared manifest."""
        package = self.packages.get_by_name(package_name)
        return [
            record
            for record in await self._collect(package, kind, is_dev)
            if record.add_in_shared
        ]

    def shared_dependency(self, selection: PackageSelection) -> Dependency:
        """Synthetic workspace dependency on the shared package of *selection*."""
        package = self.packages.get_by_name(selection.package)
        return Dependency(
            name=self.config.namespaced(selection.shared_name),
            version=package.version,
            add_in_app=True,
            add_in_shared=False,
        ).with_origin(OriginScope.APP, OriginType.SHARED_PACKAGE, package.name)

    async def resolve_app(self) -> ResolvedMetadata:
        owner = self.config.framework
        return ResolvedMetadata(
            dependencies=RecordBundle.from_records(
                await self.collect_for_app(MetadataKind.DEPENDENCIES), owner
            ),
            dev_dependencies=RecordBundle.from_records(
                await self.collect_for_app(MetadataKind.DEPENDENCIES, is_dev=True), owner
            ),
            scripts=RecordBundle.from_records(
                await self.collect_for_app(MetadataKind.SCRIPTS), owner
            ),
            env_vars=RecordBundle.from_records(
                await self.collect_for_app(MetadataKind.ENV_VARS), owner
            ),
        )

    async def resolve_shared_package(self, package_name: str) -> ResolvedMetadata:
        collect = self.collect_for_shared_package
        return ResolvedMetadata(
            dependencies=RecordBundle.from_records(
                await collect(package_name, MetadataKind.DEPENDENCIES), package_name
            ),
            dev_dependencies=RecordBundle.from_records(
                await collect(package_name, MetadataKind.DEPENDENCIES, is_dev=True),
                package_name,
            ),
            scripts=RecordBundle.from_records(
                await collect(package_name, MetadataKind.SCRIPTS), package_name
            ),
            env_vars=RecordBundle.from_records(
                await collect(package_name, MetadataKind.ENV_VARS), package_name
            ),
        )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _testing_records(
    framework: Framework, kind: MetadataKind, is_dev: bool
) -> list[MetadataRecord]:
    if kind is MetadataKind.DEPENDENCIES and is_dev:
        source: list[MetadataRecord] = list(framework.testing_dependencies)
    elif kind is MetadataKind.SCRIPTS:
        source = list(framework.testing_scripts)
    else:
        return []
    return [
        record.with_origin(OriginScope.APP, OriginType.TESTING, framework.name)
        for record in source
    ]


def _manifest_template(staging: Path) -> Path | None:
    for name in (MANIFEST_NAME + TEMPLATE_SUFFIX, MANIFEST_NAME):
        candidate = staging / name
        if candidate.is_file():
            return candidate
    return None


def _env_templates(staging: Path) -> list[Path]:
    if not staging.is_dir():
        return []
    return sorted(p for p in staging.iterdir() if p.is_file() and is_env_name(p.name))


def _manifest_records(
    path: Path, content: str, kind: MetadataKind, is_dev: bool, add_in_app: bool
) -> list[MetadataRecord]:
    try:
        manifest = json.loads(content)
    except json.JSONDecodeError as exc:
        raise TemplateRenderError(path, f"rendered manifest is not valid JSON: {exc}") from exc
    if not isinstance(manifest, dict):
        raise TemplateRenderError(path, "rendered manifest is not a JSON object")

    section = manifest.get(_manifest_section(kind, is_dev)) or {}
    if not isinstance(section, dict):
        raise TemplateRenderError(
            path, f"'{_manifest_section(kind, is_dev)}' must be a JSON object"
        )
    if kind is MetadataKind.DEPENDENCIES:
        return [
            Dependency(name=name, version=str(value), add_in_app=add_in_app)
            for name, value in section.items()
        ]
    return [
        Script(name=name, command=str(value), add_in_app=add_in_app)
        for name, value in section.items()
    ]


def parse_env(content: str) -> list[tuple[str, str]]:
    """Parse ``KEY=VALUE`` lines; blanks and ``#`` comments are ignored."""
    pairs: list[tuple[str, str]] = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        name, _, value = line.partition("=")
        name = name.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
        elif len(value) >= 2 and value[0] == value[-1] == "'":
            value = value[1:-1]
        if name:
            pairs.append((name, value))
    return pairs
