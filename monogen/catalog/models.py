"""Pydantic v2 models for the template catalog.

Defines the catalog entities (frameworks and add-on packages) loaded from
``config.json`` descriptors, and the scoped metadata records (dependencies,
scripts, environment variables) that flow from the catalog into generated
manifests.  Descriptors use the camelCase keys of the original JSON format;
snake_case keys are accepted as well.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from monogen.utils import sanitize_name


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class OriginScope(str, Enum):
    """Whether a record was contributed by the application or by an add-on."""
    APP = "app"
    PACKAGE = "package"


class OriginType(str, Enum):
    """Which source produced a record."""
    CONFIG = "config"
    EXECUTABLE = "executable"
    TEMPLATE = "template"
    TESTING = "testing"
    SHARED_PACKAGE = "sharedPackage"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Base configuration
# ---------------------------------------------------------------------------

class CatalogModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Origin(CatalogModel):
    """Provenance tag attached to every record by the aggregator."""

    model_config = ConfigDict(frozen=True)

    scope: OriginScope
    type: OriginType
    source: str = Field(default="", description="Entity name the record came from")


# ---------------------------------------------------------------------------
# Scoped metadata records
# ---------------------------------------------------------------------------

class ScopedRecord(CatalogModel):
    """Common fields of dependency, script, and env-var records.

    ``add_in_app`` / ``add_in_shared`` decide whether the record lands in the
    application manifest, the shared-package manifest, or both.
    """

    name: str = Field(..., min_length=1)
    add_in_app: bool = Field(default=True)
    add_in_shared: bool = Field(default=True)
    origin: Optional[Origin] = Field(default=None)

    def with_origin(
        self, scope: OriginScope, origin_type: OriginType, source: str = ""
    ):
        """Return a copy tagged with a fresh origin."""
        return self.model_copy(
            update={"origin": Origin(scope=scope, type=origin_type, source=source)}
        )


class Dependency(ScopedRecord):
    """A ``{name, version}`` manifest dependency."""

    version: str = Field(default="latest")

    @property
    def value(self) -> str:
        return self.version


class Script(ScopedRecord):
    """A ``{name, command}`` manifest script."""

    command: str

    @property
    def value(self) -> str:
        return self.command


class EnvVar(ScopedRecord):
    """A ``{name, value}`` environment variable."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    value: str = Field(default="")


MetadataRecord = Union[Dependency, Script, EnvVar]


# ---------------------------------------------------------------------------
# Prompts declared by packages
# ---------------------------------------------------------------------------

class PromptChoice(CatalogModel):
    name: str
    value: str


class ExtraOptionPrompt(CatalogModel):
    """An additional question a package asks when it is selected."""

    name: str = Field(..., description="Key under which the answer is stored")
    type: Literal["input", "confirm", "list", "checkbox"] = "input"
    message: str
    choices: list[PromptChoice] = Field(default_factory=list)
    default: Optional[Any] = None

    @property
    def choice_values(self) -> list[str]:
        return [choice.value for choice in self.choices]

    def default_answer(self) -> Any:
        """The declared default, or the empty answer for the prompt's type."""
        if self.default is not None:
            return self.default
        if self.type == "confirm":
            return False
        if self.type == "checkbox":
            return []
        if self.type == "list" and self.choices:
            return self.choices[0].value
        return ""

    def coerce(self, raw: str) -> Any:
        """Convert a command-line string to an answer of this prompt's type.

        ``confirm`` takes yes/no spellings, ``checkbox`` a comma-separated
        list.  Values of ``list`` and ``checkbox`` prompts must be declared
        choices.

        Raises:
            ValueError: If a value is not one of the declared choices.
        """
        if self.type == "confirm":
            return raw.strip().lower() in ("1", "true", "yes", "y")
        if self.type == "checkbox":
            values = [part.strip() for part in raw.split(",") if part.strip()]
        else:
            values = [raw.strip()]
        if self.choices and self.type in ("list", "checkbox"):
            unknown = [value for value in values if value not in self.choice_values]
            if unknown:
                raise ValueError(
                    f"'{', '.join(unknown)}' is not one of: {', '.join(self.choice_values)}"
                )
        return values if self.type == "checkbox" else values[0]


# ---------------------------------------------------------------------------
# Catalog entities
# ---------------------------------------------------------------------------

class Framework(CatalogModel):
    """One scaffoldable project type, loaded from a framework descriptor.

    Instances are immutable; everything computed during a run lives in the
    aggregator's ``ResolvedMetadata`` instead.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    display_name: str = Field(default="")
    description: str = Field(default="")
    default_app_name: str = Field(default="my-app")
    default_app_description: str = Field(default="")
    has_ui: bool = Field(default=False, validation_alias=AliasChoices(
        "hasUI", "hasUi", "has_ui"
    ))
    dependencies: list[Dependency] = Field(default_factory=list)
    dev_dependencies: list[Dependency] = Field(default_factory=list)
    scripts: list[Script] = Field(default_factory=list)
    env_vars: list[EnvVar] = Field(default_factory=list)
    testing_dependencies: list[Dependency] = Field(default_factory=list)
    testing_scripts: list[Script] = Field(default_factory=list)
    template_dir: Optional[Path] = Field(default=None, exclude=True)

    @property
    def label(self) -> str:
        return self.display_name or self.name


class Package(CatalogModel):
    """One optional add-on (UI library, icon library, data library, ...)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    display_name: str = Field(default="")
    description: str = Field(default="")
    version: str = Field(default="*")
    supported_frameworks: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "supportedFrameworks", "supported_frameworks", "frameworks"
        ),
        description="Compatible framework names; empty means all frameworks",
    )
    is_ui_library: bool = Field(default=False, validation_alias=AliasChoices(
        "isUILibrary", "isUiLibrary", "is_ui_library"
    ))
    is_icon_library: bool = Field(default=False)
    can_be_shared_package: bool = Field(default=False, validation_alias=AliasChoices(
        "canBeSharedPackage", "canBeShared", "can_be_shared_package"
    ))
    shared_package_default_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "sharedPackageDefaultName", "defaultSharedName", "shared_package_default_name"
        ),
    )
    shared_package_default_description: Optional[str] = Field(default=None)
    extra_options_prompts: list[ExtraOptionPrompt] = Field(default_factory=list)
    dependencies: list[Dependency] = Field(default_factory=list)
    dev_dependencies: list[Dependency] = Field(default_factory=list)
    scripts: list[Script] = Field(default_factory=list)
    env_vars: list[EnvVar] = Field(default_factory=list)
    template_dir: Optional[Path] = Field(default=None, exclude=True)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def supports(self, framework_name: str) -> bool:
        """Return ``True`` if the package can be added to *framework_name*."""
        return not self.supported_frameworks or framework_name in self.supported_frameworks

    @property
    def default_shared_name(self) -> str:
        return sanitize_name(self.shared_package_default_name or self.name)
