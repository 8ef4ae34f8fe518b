"""File-Structure Builders for apps and shared packages.

Both builders share one destination state machine::

    check-exists --absent--> build
    check-exists --present--> prompt-overwrite
    prompt-overwrite --exit--> GenerationAborted (nothing written)
    prompt-overwrite --new-name--> check-exists
    prompt-overwrite --overwrite--> (delete) --> build

and one folder walk: folders are created; ``.j2`` entries, manifests, env
files and config files are rendered; everything else is copied byte for
byte.  Environment files always produce two outputs (``.env.example`` and
``.env``) with identical content.

Everything runs sequentially; the walk order is the sorted order of the
template tree, so two runs with the same context produce the same files.
"""

from __future__ import annotations

import asyncio
import shutil
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from monogen.catalog.loader import FrameworkCatalog, PackageCatalog
from monogen.catalog.models import Dependency, Framework, Package
from monogen.config import GeneratorConfig, PackageSelection
from monogen.errors import GenerationAborted, HookExecutionError
from monogen.metadata.aggregator import MetadataAggregator
from monogen.metadata.bundles import ResolvedMetadata
from monogen.metadata.hooks import HookKind, HookRegistry, entity_key
from monogen.tracking import CreationTracker
from monogen.utils import (
    ensure_dir,
    print_debug,
    print_info,
    print_success,
    relative_to_cwd,
)

from .context import build_framework_context, build_package_context
from .folder import (
    FILES_DIR,
    SHARED_FILES_DIR,
    FolderItem,
    env_output_paths,
    get_folder_content,
    output_path,
)
from .prompts import OverwriteChoice, Prompter, StaticPrompter
from .templates import TemplateRenderer, write_text_file

Entity = Union[Framework, Package]


class DestinationState(str, Enum):
    """States of the destination-collision state machine."""
    CHECK_EXISTS = "check-exists"
    PROMPT_OVERWRITE = "prompt-overwrite"
    BUILD = "build"


class BaseCreator:
    """Destination handling, hook execution, and the folder walk."""

    kind = "destination"

    def __init__(
        self,
        config: GeneratorConfig,
        frameworks: FrameworkCatalog,
        packages: PackageCatalog,
        *,
        hooks: Optional[HookRegistry] = None,
        renderer: Optional[TemplateRenderer] = None,
        prompter: Optional[Prompter] = None,
        tracker: Optional[CreationTracker] = None,
        aggregator: Optional[MetadataAggregator] = None,
    ) -> None:
        self.config = config
        self.frameworks = frameworks
        self.packages = packages
        self.hooks = hooks or HookRegistry()
        self.renderer = renderer or TemplateRenderer(config.templates_dir)
        self.prompter: Prompter = prompter or StaticPrompter()
        self.tracker = tracker or CreationTracker(config.tracking_path)
        self.aggregator = aggregator or MetadataAggregator(
            config, frameworks, packages, self.hooks, self.renderer
        )
        self.transitions: list[DestinationState] = []
        self.written: list[Path] = []

    # ------------------------------------------------------------------
    # Destination state machine
    # ------------------------------------------------------------------

    @property
    def destination(self) -> Path:
        raise NotImplementedError

    async def rename(self) -> None:
        """Ask for a new name and store it wherever ``destination`` reads it."""
        raise NotImplementedError

    async def prepare_destination(self) -> Path:
        """Resolve collisions, then create the destination root.

        Raises:
            GenerationAborted: If the user picks ``exit``.
        """
        state = DestinationState.CHECK_EXISTS
        while True:
            self.transitions.append(state)
            if state is DestinationState.CHECK_EXISTS:
                exists = self.destination.exists()
                state = DestinationState.PROMPT_OVERWRITE if exists else DestinationState.BUILD
            elif state is DestinationState.PROMPT_OVERWRITE:
                choice = await self.prompter.choose_overwrite(self.kind, self.destination)
                if choice is OverwriteChoice.EXIT:
                    raise GenerationAborted(self.destination)
                if choice is OverwriteChoice.NEW_NAME:
                    await self.rename()
                    state = DestinationState.CHECK_EXISTS
                else:
                    print_info(f"Deleting existing {self.kind} {relative_to_cwd(self.destination)}")
                    await asyncio.to_thread(shutil.rmtree, self.destination)
                    state = DestinationState.BUILD
            else:
                destination = self.destination
                await asyncio.to_thread(ensure_dir, destination)
                return destination

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def run_hook(self, entity: Entity, kind: HookKind) -> Any:
        """Run the ``exec`` export of a pre/post-install hook, if declared."""
        owner = entity_key(entity)
        if not self.hooks.has(owner, kind):
            return None
        print_info(f"Running {kind.value} script of {entity.label}")
        return await self.hooks.call(
            owner, kind, "exec", self.config, self.frameworks, self.packages
        )

    async def context_vars(self, entity: Entity) -> dict[str, Any]:
        owner = entity_key(entity)
        result = await self.hooks.call(
            owner,
            HookKind.TEMPLATE_CONTEXT_VARS,
            "get_context_vars",
            self.config,
            self.frameworks,
            self.packages,
        )
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise HookExecutionError(
                owner,
                "template-context-vars.get_context_vars",
                TypeError(f"expected a dict, got {type(result).__name__}"),
            )
        return result

    # ------------------------------------------------------------------
    # Folder walk
    # ------------------------------------------------------------------

    async def walk(
        self,
        template_dir: Optional[Path],
        destination: Path,
        context: dict[str, Any],
        staging_dirs: tuple[str, ...] = (FILES_DIR,),
        *,
        skip_metadata_files: bool = False,
    ) -> list[Path]:
        """Process every entry of *template_dir*'s staging directories.

        With *skip_metadata_files* manifest and env entries are left out;
        their records already went into the destination's own manifest.
        """
        if template_dir is None:
            return []
        written: list[Path] = []
        for item in get_folder_content(template_dir, staging_dirs):
            if skip_metadata_files and (item.is_manifest_file or item.is_env_file):
                print_debug(f"Skipping {item.relative_path} (merged into manifest)")
                continue
            written.extend(await self.process_item(item, destination, context))
        self.written.extend(written)
        return written

    async def process_item(
        self, item: FolderItem, destination: Path, context: dict[str, Any]
    ) -> list[Path]:
        target = output_path(item, destination)
        if item.is_folder:
            await asyncio.to_thread(ensure_dir, target)
            print_debug(f"Created directory {target}")
            return []

        if item.is_env_file:
            targets = list(env_output_paths(item, destination))
        else:
            targets = [target]

        if item.is_rendered:
            content = await asyncio.to_thread(self.renderer.render, item.path, context)
            for path in targets:
                await asyncio.to_thread(write_text_file, path, content)
        else:
            for path in targets:
                await asyncio.to_thread(_copy_file, item.path, path)

        for path in targets:
            print_debug(f"Created {path}")
        return targets


class SharedPackageCreator(BaseCreator):
    """Generates one shared package under the workspace's packages root."""

    kind = "shared package"

    def __init__(
        self,
        config: GeneratorConfig,
        frameworks: FrameworkCatalog,
        packages: PackageCatalog,
        selection: PackageSelection,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, frameworks, packages, **kwargs)
        self.selection = selection
        self.package = packages.get_by_name(selection.package)
        self.metadata: Optional[ResolvedMetadata] = None

    @property
    def destination(self) -> Path:
        return self.config.shared_package_path(self.selection.shared_name)

    async def rename(self) -> None:
        name = await self.prompter.ask_shared_package_name(self.selection.shared_name)
        self.selection.installation.package_name = name

    async def create(self) -> Dependency:
        """Build the shared package and return the app's dependency on it."""
        destination = await self.prepare_destination()
        self.metadata = await self.aggregator.resolve_shared_package(self.package.name)

        await self.run_hook(self.package, HookKind.PRE_INSTALL)
        framework = self.frameworks.get_by_name(self.config.framework)
        context = build_package_context(
            self.config,
            framework,
            self.package,
            self.selection,
            self.metadata,
            await self.context_vars(self.package),
        )
        await self.walk(
            self.package.template_dir,
            destination,
            context,
            (FILES_DIR, SHARED_FILES_DIR),
        )
        await self.run_hook(self.package, HookKind.POST_INSTALL)

        print_success(
            f"Shared package {self.config.namespaced(self.selection.shared_name)} "
            f"created in {relative_to_cwd(destination)}"
        )
        return self.aggregator.shared_dependency(self.selection)


class AppCreator(BaseCreator):
    """Generates an application under the workspace's apps root."""

    kind = "app"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.metadata: Optional[ResolvedMetadata] = None
        self.shared_creators: list[SharedPackageCreator] = []

    @property
    def destination(self) -> Path:
        return self.config.app_path

    async def rename(self) -> None:
        self.config.app_name = await self.prompter.ask_app_name(self.config.app_name)

    async def create(self) -> Path:
        """Create the app, its pending shared packages, and the tracking records.

        Raises:
            GenerationAborted: If the user exits at a collision prompt.
            HookExecutionError: If any hook fails.
            TemplateRenderError: If a template cannot be rendered.
        """
        framework = self.aggregator.framework()
        destination = await self.prepare_destination()
        self.metadata = metadata = await self.aggregator.resolve_app()

        await self.run_hook(framework, HookKind.PRE_INSTALL)
        await self._create_shared_packages(metadata)
        await self._register_reused_shared_packages()

        context = build_framework_context(
            self.config, framework, metadata, await self.context_vars(framework)
        )
        await self.walk(framework.template_dir, destination, context)

        for selection in self.config.direct_selections:
            package = self.packages.get_by_name(selection.package)
            package_context = {
                **context,
                "package": {
                    "name": package.name,
                    "display_name": package.label,
                    "description": package.description,
                    "version": package.version,
                    "extra_options": dict(selection.extra_options),
                },
                "context_vars": {
                    **context["context_vars"],
                    **await self.context_vars(package),
                },
            }
            await self.run_hook(package, HookKind.PRE_INSTALL)
            await self.walk(
                package.template_dir, destination, package_context, skip_metadata_files=True
            )
            await self.run_hook(package, HookKind.POST_INSTALL)

        await self.run_hook(framework, HookKind.POST_INSTALL)

        await self.tracker.register_app(
            self.config.app_name,
            self.config.port,
            framework.name,
            [selection.shared_name for selection in self.config.shared_selections],
        )
        await self.tracker.register_port(self.config.app_name, self.config.port)
        print_success(f"App {self.config.app_name} created in {relative_to_cwd(destination)}")
        return destination

    async def _create_shared_packages(self, metadata: ResolvedMetadata) -> None:
        for selection in self.config.shared_selections:
            if not selection.is_pending_shared:
                continue
            print_info(f"Adding shared package: {selection.package}")
            creator = SharedPackageCreator(
                self.config,
                self.frameworks,
                self.packages,
                selection,
                hooks=self.hooks,
                renderer=self.renderer,
                prompter=self.prompter,
                tracker=self.tracker,
                aggregator=self.aggregator,
            )
            dependency = await creator.create()
            metadata.dependencies.shared.append(dependency)
            self.shared_creators.append(creator)
            self.written.extend(creator.written)
            await self.tracker.register_shared_package(
                self.config.app_name, selection.shared_name, selection.package
            )

    async def _register_reused_shared_packages(self) -> None:
        for selection in self.config.shared_selections:
            if selection.installation.use_existing:
                await self.tracker.register_shared_package(
                    self.config.app_name, selection.shared_name, selection.package
                )


def _copy_file(source: Path, target: Path) -> None:
    ensure_dir(target.parent)
    shutil.copy2(source, target)
