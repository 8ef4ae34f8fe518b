"""monogen configuration.

Centralised, typed configuration for a single generation run.  All settings
use Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.

``GeneratorConfig`` is the Configuration Registry: it owns the user's choices
(application identity, framework, selected packages and how each one is
installed) plus every derived path the builders need.  Hook modules receive it
as their first argument.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from monogen.errors import ConfigurationError, GeneratorError

_DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"

DEFAULT_START_PORT = 4000


class AppMetadata(BaseModel):
    """Manifest metadata (author, license, links) for the generated app."""

    author: str = Field(default="")
    license: str = Field(default="MIT")
    homepage: str = Field(default="")
    repository: str = Field(default="")
    bugs: str = Field(default="")
    keywords: list[str] = Field(default_factory=list)


class InstallationInfo(BaseModel):
    """How the user decided to install an add-on package.

    ``is_shared`` packages get their own directory under the workspace's
    shared-packages root; ``use_existing`` means that directory was created
    by an earlier run and is only referenced, not generated again.
    """

    is_shared: bool = Field(default=False)
    package_name: Optional[str] = Field(default=None, description="Chosen shared package name")
    package_description: Optional[str] = Field(default=None)
    use_existing: bool = Field(default=False)


class PackageSelection(BaseModel):
    """One add-on package chosen for this run, with its per-run answers."""

    package: str = Field(..., description="Catalog name of the selected package")
    installation: InstallationInfo = Field(default_factory=InstallationInfo)
    extra_options: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_shared(self) -> bool:
        return self.installation.is_shared

    @property
    def is_pending_shared(self) -> bool:
        """Shared, and still to be generated in this run."""
        return self.installation.is_shared and not self.installation.use_existing

    @property
    def shared_name(self) -> str:
        return self.installation.package_name or self.package

    def set_extra_options(self, answers: dict[str, Any]) -> None:
        """Record answers to the package's extra prompts.

        Raises:
            GeneratorError: If an answer for the same key was already stored.
        """
        for key, value in answers.items():
            if key in self.extra_options:
                raise GeneratorError(
                    f"Duplicate key {key} in extra options prompt result for pkg: {self.package}"
                )
            self.extra_options[key] = value


class GeneratorConfig(BaseModel):
    """Global configuration for one generation run.

    Instances are created once by the CLI entry point (or by tests) and then
    passed explicitly to the catalogs, aggregator, and builders.
    """

    app_name: str = Field(default="")
    description: str = Field(default="")
    framework: str = Field(default="")
    port: int = Field(default=DEFAULT_START_PORT + 1, ge=1, le=65535)
    should_install: bool = Field(default=False)
    metadata: AppMetadata = Field(default_factory=AppMetadata)
    selected_packages: list[PackageSelection] = Field(default_factory=list)

    templates_dir: Path = Field(default=_DEFAULT_TEMPLATES_DIR)
    workspace_dir: Path = Field(default_factory=Path.cwd)
    apps_dir: str = Field(default="apps")
    packages_dir: str = Field(default="packages")
    tracking_file: str = Field(default=".app-generator/apps.json")
    shared_namespace: str = Field(default="@repo")
    install_command: str = Field(default="pnpm install")
    verbose: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def frameworks_templates_path(self) -> Path:
        """Root of the framework templates inside the catalog."""
        return self.templates_dir / "frameworks"

    @property
    def packages_templates_path(self) -> Path:
        """Root of the add-on package templates inside the catalog."""
        return self.templates_dir / "packages"

    @property
    def apps_path(self) -> Path:
        return self.workspace_dir / self.apps_dir

    @property
    def app_path(self) -> Path:
        """Destination directory of the application being generated."""
        return self.apps_path / self.app_name

    @property
    def shared_packages_path(self) -> Path:
        return self.workspace_dir / self.packages_dir

    def shared_package_path(self, name: str) -> Path:
        return self.shared_packages_path / name

    @property
    def tracking_path(self) -> Path:
        """Path to the creation-tracking JSON store."""
        return self.workspace_dir / self.tracking_file

    # ------------------------------------------------------------------
    # Derived metadata
    # ------------------------------------------------------------------

    @property
    def bugs_email(self) -> str:
        """The ``<email>`` part of ``author``, if there is one."""
        match = re.search(r"<(.+?)>", self.metadata.author)
        return match.group(1) if match else ""

    def namespaced(self, shared_name: str) -> str:
        """Workspace-internal dependency name of a shared package."""
        return f"{self.shared_namespace}/{shared_name}"

    # ------------------------------------------------------------------
    # Selections
    # ------------------------------------------------------------------

    def add_selected_package(self, selection: PackageSelection) -> None:
        if self.selection_for(selection.package) is not None:
            raise GeneratorError(f"Package '{selection.package}' is already selected")
        self.selected_packages.append(selection)

    def selection_for(self, package_name: str) -> PackageSelection | None:
        for selection in self.selected_packages:
            if selection.package == package_name:
                return selection
        return None

    @property
    def shared_selections(self) -> list[PackageSelection]:
        return [s for s in self.selected_packages if s.is_shared]

    @property
    def direct_selections(self) -> list[PackageSelection]:
        return [s for s in self.selected_packages if not s.is_shared]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_paths(self) -> None:
        """Ensure the template catalog is present.

        Raises:
            ConfigurationError: If the template root or one of its
                ``frameworks/`` / ``packages/`` sub-roots is missing.
        """
        for path in (
            self.templates_dir,
            self.frameworks_templates_path,
            self.packages_templates_path,
        ):
            if not path.is_dir():
                raise ConfigurationError(
                    "Templates directory not found. Cannot continue.",
                    f"Please make sure {path} exists.",
                )

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "GeneratorConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GeneratorConfig":
        """Build a ``GeneratorConfig`` from environment variables.

        Recognised variables (all optional):
            MONOGEN_TEMPLATES_DIR, MONOGEN_WORKSPACE_DIR,
            MONOGEN_SHARED_NAMESPACE, MONOGEN_INSTALL_COMMAND, MONOGEN_VERBOSE.

        Keyword arguments take precedence over the environment.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("MONOGEN_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["MONOGEN_TEMPLATES_DIR"])
        if os.environ.get("MONOGEN_WORKSPACE_DIR"):
            kwargs["workspace_dir"] = Path(os.environ["MONOGEN_WORKSPACE_DIR"])
        if os.environ.get("MONOGEN_SHARED_NAMESPACE"):
            kwargs["shared_namespace"] = os.environ["MONOGEN_SHARED_NAMESPACE"]
        if os.environ.get("MONOGEN_INSTALL_COMMAND"):
            kwargs["install_command"] = os.environ["MONOGEN_INSTALL_COMMAND"]
        if os.environ.get("MONOGEN_VERBOSE", "").lower() in ("1", "true", "yes"):
            kwargs["verbose"] = True
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
