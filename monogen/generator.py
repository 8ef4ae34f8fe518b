"""monogen run wrapper and CLI.

Drives one generation run:

Step 1: LOAD     -- Validate the template root, load catalogs and hook modules.
Step 2: RESOLVE  -- Check the selections against the catalogs, fill defaults.
Step 3: CREATE   -- Build the app (and any pending shared packages).
Step 4: INSTALL  -- Optionally run the workspace install command.

Usage::

    monogen --name web --framework react-vite --package zod --shared drizzle=db
    python -m monogen.generator --name api --framework hono --yes
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from pathlib import Path
from typing import Any, Optional, Sequence

from monogen.catalog.loader import FrameworkCatalog, PackageCatalog
from monogen.catalog.models import Package
from monogen.config import GeneratorConfig, InstallationInfo, PackageSelection
from monogen.errors import ConfigurationError, GenerationAborted, GeneratorError
from monogen.metadata.hooks import HookRegistry, entity_key
from monogen.scaffolder.creator import AppCreator
from monogen.scaffolder.prompts import ConsolePrompter, Prompter, StaticPrompter
from monogen.tracking import CreationTracker
from monogen.utils import (
    console,
    format_duration,
    is_verbose,
    print_debug,
    print_error,
    print_info,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    relative_to_cwd,
    run_command,
    set_verbose,
    validate_name,
)

STEP_NAMES: dict[int, str] = {
    1: "LOAD",
    2: "RESOLVE",
    3: "CREATE",
    4: "INSTALL",
}


class Generator:
    """Runs the generation steps for one :class:`GeneratorConfig`.

    Attributes:
        config: The run's configuration; updated in place with defaults and
            any name the user picks at a collision prompt.
        frameworks: Framework catalog, filled in step 1.
        packages: Package catalog, filled in step 1.
        hooks: Hook registry, filled in step 1 from ``scripts/`` directories.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        prompter: Optional[Prompter] = None,
        hooks: Optional[HookRegistry] = None,
    ) -> None:
        self.config = config
        self.prompter: Prompter = prompter or StaticPrompter()
        self.hooks = hooks or HookRegistry()
        self.frameworks = FrameworkCatalog()
        self.packages = PackageCatalog()
        self.tracker = CreationTracker(config.tracking_path)
        self.creator: Optional[AppCreator] = None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def load_catalog(self) -> None:
        """Load both catalogs and register every entity's hook modules.

        Raises:
            ConfigurationError: If the template root is missing.
            HookExecutionError: If a hook module fails to import.
        """
        self.config.validate_paths()
        self.frameworks.load_all(self.config.frameworks_templates_path)
        self.packages.load_all(self.config.packages_templates_path)
        for entity in [*self.frameworks, *self.packages]:
            if entity.template_dir is not None:
                self.hooks.load_directory(entity_key(entity), entity.template_dir / "scripts")
        print_info(
            f"Loaded {len(self.frameworks)} framework(s) and {len(self.packages)} package(s)"
        )

    async def resolve_selections(self) -> None:
        """Validate names and selections, filling framework defaults.

        Packages that declare extra prompts get their answers here: values
        given on the command line are converted to the prompt's type, the
        rest are asked through the prompter.

        Raises:
            NotFoundError: For an unknown framework or package.
            ConfigurationError: For an invalid name, an option value that is
                not one of the prompt's choices, or a non-shareable package
                selected as shared.
        """
        framework = self.frameworks.get_by_name(self.config.framework)
        if not self.config.app_name:
            self.config.app_name = framework.default_app_name
        if not self.config.description:
            self.config.description = framework.default_app_description
        problem = validate_name(self.config.app_name)
        if problem:
            raise ConfigurationError(problem, f"Got '{self.config.app_name}'")
        if self.tracker.is_port_in_use(self.config.port):
            print_warning(f"Port {self.config.port} is already used by another app")

        for selection in self.config.selected_packages:
            package = self.packages.get_by_name(selection.package)
            if not package.supports(framework.name):
                print_warning(
                    f"Package '{package.name}' does not list '{framework.name}' "
                    "as a supported framework"
                )
            await self._resolve_extra_options(package, selection)
            if not selection.is_shared:
                continue
            if not package.can_be_shared_package:
                raise ConfigurationError(
                    f"Package '{package.name}' cannot be installed as a shared package"
                )
            self._resolve_shared(selection)

    async def _resolve_extra_options(
        self, package: Package, selection: PackageSelection
    ) -> None:
        prompts = {prompt.name: prompt for prompt in package.extra_options_prompts}
        for key, value in list(selection.extra_options.items()):
            prompt = prompts.get(key)
            if prompt is None:
                print_warning(f"Package '{package.name}' has no option named '{key}'")
                continue
            if isinstance(value, str):
                try:
                    selection.extra_options[key] = prompt.coerce(value)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"Invalid value for option '{package.name}.{key}'", str(exc)
                    ) from exc
        if not prompts:
            return
        answers = await self.prompter.ask_extra_options(package, dict(selection.extra_options))
        selection.set_extra_options(answers)
        print_debug(f"Options for {package.name}: {selection.extra_options}")

    def _resolve_shared(self, selection: PackageSelection) -> None:
        package = self.packages.get_by_name(selection.package)
        existing = self.tracker.get_shared_package_by_base_package(package.name)
        if (
            existing is not None
            and not selection.installation.package_name
            and self.config.shared_package_path(existing.name).is_dir()
        ):
            selection.installation.package_name = existing.name
            selection.installation.use_existing = True
            print_info(
                f"Reusing shared package {self.config.namespaced(existing.name)} "
                f"(used by {', '.join(existing.used_by) or 'no app'})"
            )
        if not selection.installation.package_name:
            selection.installation.package_name = package.default_shared_name
        problem = validate_name(selection.shared_name, is_package=True)
        if problem:
            raise ConfigurationError(problem, f"Got '{selection.shared_name}'")

    async def create(self) -> Path:
        self.creator = AppCreator(
            self.config,
            self.frameworks,
            self.packages,
            hooks=self.hooks,
            prompter=self.prompter,
            tracker=self.tracker,
        )
        return await self.creator.create()

    async def install(self) -> None:
        """Run the workspace install command from the workspace root.

        Raises:
            GeneratorError: If the command exits non-zero.
        """
        print_info(f"Running '{self.config.install_command}'")
        returncode, stdout, stderr = await run_command(
            self.config.install_command, cwd=self.config.workspace_dir
        )
        if returncode != 0:
            raise GeneratorError(
                "Dependency installation failed",
                (stderr or stdout or f"exit code {returncode}")[-2000:],
            )
        print_success("Dependencies installed")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> Path:
        """Execute every step in order and print a summary.

        Errors propagate unchanged to the caller.
        """
        start = time.monotonic()
        total = 4 if self.config.should_install else 3

        print_step_header(1, total, STEP_NAMES[1])
        self.load_catalog()

        print_step_header(2, total, STEP_NAMES[2])
        await self.resolve_selections()

        print_step_header(3, total, STEP_NAMES[3])
        app_path = await self.create()

        if self.config.should_install:
            print_step_header(4, total, STEP_NAMES[4])
            await self.install()

        self._print_summary(app_path, time.monotonic() - start)
        return app_path

    def _print_summary(self, app_path: Path, elapsed: float) -> None:
        shared = [
            self.config.namespaced(selection.shared_name)
            for selection in self.config.shared_selections
        ]
        data: dict[str, Any] = {
            "App": self.config.app_name,
            "Framework": self.config.framework,
            "Port": self.config.port,
            "Location": relative_to_cwd(app_path),
            "Packages": ", ".join(s.package for s in self.config.direct_selections) or "-",
            "Shared packages": ", ".join(shared) or "-",
            "Files written": len(self.creator.written) if self.creator else 0,
            "Duration": format_duration(elapsed),
        }
        console.print()
        print_summary_table(data, title="Generation Summary")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _parse_option(value: str) -> tuple[str, str, str]:
    """Split ``PKG.KEY=VALUE`` into its three parts.

    Raises:
        ConfigurationError: If the value does not have that shape.
    """
    target, sep, option_value = value.partition("=")
    package, dot, key = target.partition(".")
    if not sep or not dot or not package.strip() or not key.strip():
        raise ConfigurationError(
            "Invalid --option value", f"Expected PKG.KEY=VALUE, got '{value}'"
        )
    return package.strip(), key.strip(), option_value


def _parse_shared(value: str) -> PackageSelection:
    package, _, shared_name = value.partition("=")
    return PackageSelection(
        package=package.strip(),
        installation=InstallationInfo(is_shared=True, package_name=shared_name.strip() or None),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monogen",
        description="Generate an app (and shared packages) inside a monorepo workspace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  monogen --name api --framework hono --package zod\n"
            "  monogen --name web --framework react-vite --shared drizzle=db --install\n"
            "  monogen -n web -f react-vite --shared drizzle --option drizzle.provider=postgres\n"
        ),
    )
    parser.add_argument("--name", "-n", default=None, help="App name (lowercase, hyphens)")
    parser.add_argument("--framework", "-f", default=None, help="Framework to scaffold")
    parser.add_argument("--description", "-d", default=None, help="App description")
    parser.add_argument("--port", "-p", type=int, default=None, help="Dev server port")
    parser.add_argument(
        "--package",
        action="append",
        default=[],
        metavar="NAME",
        help="Add-on package installed directly in the app (repeatable)",
    )
    parser.add_argument(
        "--shared",
        action="append",
        default=[],
        metavar="NAME[=SHARED_NAME]",
        help="Add-on package installed as a shared workspace package (repeatable)",
    )
    parser.add_argument(
        "--option",
        action="append",
        default=[],
        metavar="PKG.KEY=VALUE",
        help="Answer to a package's extra prompt (repeatable)",
    )
    parser.add_argument("--author", default=None, help="Author, e.g. 'Jane <jane@example.com>'")
    parser.add_argument("--license", default=None, help="License identifier (default: MIT)")
    parser.add_argument("--templates-dir", default=None, help="Template catalog root")
    parser.add_argument("--workspace", default=None, help="Workspace root (default: cwd)")
    parser.add_argument("--install", action="store_true", help="Run the install command")
    parser.add_argument(
        "--yes", "-y", action="store_true", help="Non-interactive; collisions abort"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug output")
    return parser


def config_from_args(args: argparse.Namespace) -> GeneratorConfig:
    """Build the run configuration from parsed CLI arguments.

    Raises:
        ConfigurationError: If no framework was given, or an option is
            malformed or names a package that is not selected.
        GeneratorError: If a package is selected twice.
    """
    config = GeneratorConfig.from_env(
        templates_dir=Path(args.templates_dir) if args.templates_dir else None,
        workspace_dir=Path(args.workspace) if args.workspace else None,
        verbose=True if args.verbose else None,
    )
    if not args.framework:
        raise ConfigurationError(
            "A framework is required", "Pass --framework NAME (see the templates directory)."
        )
    config.framework = args.framework
    config.app_name = args.name or ""
    config.description = args.description or ""
    config.should_install = args.install
    if args.author:
        config.metadata.author = args.author
    if args.license:
        config.metadata.license = args.license
    config.port = (
        args.port
        if args.port is not None
        else CreationTracker(config.tracking_path).next_available_port()
    )
    for name in args.package:
        config.add_selected_package(PackageSelection(package=name))
    for value in args.shared:
        config.add_selected_package(_parse_shared(value))
    for value in args.option:
        package, key, option_value = _parse_option(value)
        selection = config.selection_for(package)
        if selection is None:
            raise ConfigurationError(
                f"Option '{value}' is for package '{package}', which is not selected"
            )
        selection.set_extra_options({key: option_value})
    return config


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``monogen``."""
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    try:
        config = config_from_args(args)
        set_verbose(config.verbose)
        interactive = not args.yes and sys.stdin.isatty()
        prompter: Prompter = ConsolePrompter() if interactive else StaticPrompter()
        generator = Generator(config, prompter=prompter)
        asyncio.run(generator.run())
    except GenerationAborted as exc:
        print_error(exc.message, exc.details)
        sys.exit(0)
    except GeneratorError as exc:
        print_error(exc.message, exc.details)
        if is_verbose():
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        sys.exit(1)
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        if is_verbose():
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        sys.exit(1)

    console.print("[bold green]App generated successfully![/bold green]")


if __name__ == "__main__":
    main()
