"""Catalog loaders for framework and package descriptors.

Each framework or add-on package lives in its own directory under the
template root and declares its static attributes in a ``config.json``
descriptor.  The loaders find every descriptor, validate it into a
:class:`~monogen.catalog.models.Framework` or
:class:`~monogen.catalog.models.Package`, and expose lookup and filter
queries over the resulting collection.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Generic, Iterator, TypeVar

from pydantic import ValidationError

from monogen.errors import ConfigurationError, NotFoundError
from monogen.utils import print_debug, print_warning

from .models import Framework, Package

DESCRIPTOR_NAME = "config.json"

# Descriptor-named files below these directories are template content.
_NON_DESCRIPTOR_DIRS = frozenset({"files", "shared-files", "scripts", "__pycache__"})

EntityT = TypeVar("EntityT", Framework, Package)


def find_descriptors(root: Path) -> list[Path]:
    """Return every ``config.json`` descriptor under *root*, sorted."""
    found: list[Path] = []
    for path in sorted(root.rglob(DESCRIPTOR_NAME)):
        relative_parts = path.relative_to(root).parts[:-1]
        if any(part in _NON_DESCRIPTOR_DIRS for part in relative_parts):
            continue
        found.append(path)
    return found


class Catalog(Generic[EntityT]):
    """In-memory collection of catalog entities of one kind."""

    kind = "entity"
    model: type[EntityT]

    def __init__(self, entities: list[EntityT] | None = None) -> None:
        self._entities: list[EntityT] = list(entities or [])

    # -- Loading -------------------------------------------------------------

    def load_all(self, root: str | Path) -> list[EntityT]:
        """Load every descriptor under *root*, replacing current contents.

        A malformed descriptor is skipped with a warning.  A duplicated name
        keeps the first descriptor found.

        Raises:
            ConfigurationError: If *root* does not exist.
        """
        root = Path(root)
        if not root.is_dir():
            raise ConfigurationError(
                f"{self.kind.capitalize()} templates directory not found. Cannot continue.",
                f"Please make sure {root} exists.",
            )

        entities: list[EntityT] = []
        seen: set[str] = set()
        for descriptor in find_descriptors(root):
            entity = self._load_descriptor(descriptor)
            if entity is None:
                continue
            if entity.name in seen:
                print_warning(
                    f"Duplicate {self.kind} '{entity.name}' ignored",
                    subtitle=str(descriptor),
                )
                continue
            seen.add(entity.name)
            entities.append(entity)
            print_debug(f"Loaded {self.kind} '{entity.name}' from {descriptor}")

        self._entities = entities
        return list(entities)

    def _load_descriptor(self, descriptor: Path) -> EntityT | None:
        try:
            data = json.loads(descriptor.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            print_warning(f"Skipping unreadable {self.kind} descriptor {descriptor}", str(exc))
            return None
        if not isinstance(data, dict):
            print_warning(f"Skipping {self.kind} descriptor {descriptor}", "Expected a JSON object")
            return None
        try:
            return self.model.model_validate({**data, "template_dir": descriptor.parent})
        except ValidationError as exc:
            print_warning(
                f"Skipping invalid {self.kind} descriptor {descriptor}",
                f"{exc.error_count()} validation error(s)",
            )
            return None

    # -- Queries -------------------------------------------------------------

    def all(self) -> list[EntityT]:
        return list(self._entities)

    def names(self) -> list[str]:
        return [entity.name for entity in self._entities]

    def get_by_name(self, name: str) -> EntityT:
        """Return the entity called *name*.

        Raises:
            NotFoundError: If no entity has that name.
        """
        for entity in self._entities:
            if entity.name == name:
                return entity
        raise NotFoundError(self.kind, name, self.names())

    def filter(self, predicate: Callable[[EntityT], bool]) -> list[EntityT]:
        return [entity for entity in self._entities if predicate(entity)]

    def __iter__(self) -> Iterator[EntityT]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, name: object) -> bool:
        return any(entity.name == name for entity in self._entities)


class FrameworkCatalog(Catalog[Framework]):
    """Catalog of scaffoldable frameworks."""

    kind = "framework"
    model = Framework

    def with_ui(self) -> list[Framework]:
        return self.filter(lambda framework: framework.has_ui)


class PackageCatalog(Catalog[Package]):
    """Catalog of optional add-on packages."""

    kind = "package"
    model = Package

    def ui_libraries(self, framework: str | None = None) -> list[Package]:
        return self.filter(
            lambda pkg: pkg.is_ui_library and (framework is None or pkg.supports(framework))
        )

    def icon_libraries(self, framework: str | None = None) -> list[Package]:
        return self.filter(
            lambda pkg: pkg.is_icon_library and (framework is None or pkg.supports(framework))
        )

    def for_framework(self, framework: str) -> list[Package]:
        """Packages compatible with *framework* that are not UI/icon libraries."""
        return self.filter(
            lambda pkg: pkg.supports(framework)
            and not pkg.is_ui_library
            and not pkg.is_icon_library
        )

    def shareable(self, framework: str | None = None) -> list[Package]:
        return self.filter(
            lambda pkg: pkg.can_be_shared_package
            and (framework is None or pkg.supports(framework))
        )
