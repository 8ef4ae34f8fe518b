"""Template-tree walking and classification.

Every framework or package template directory holds its content under
*staging* directories: ``files/`` for application (or direct-install) content
and ``shared-files/`` for content that only belongs in a shared package.  The
walk turns each entry into an immutable :class:`FolderItem` whose flags are
derived from its file name alone, and :func:`output_path` maps it to its
destination by dropping the staging segment and the ``.j2`` suffix.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

TEMPLATE_SUFFIX = ".j2"
FILES_DIR = "files"
SHARED_FILES_DIR = "shared-files"
STAGING_DIRS = (FILES_DIR, SHARED_FILES_DIR)

MANIFEST_NAME = "package.json"

_IGNORED_NAMES = frozenset({"__pycache__", ".DS_Store"})
_ENV_RE = re.compile(r"^\.env(\.[A-Za-z0-9_-]+)?\.example$")
_CONFIG_RE = re.compile(r"(\.config\.[A-Za-z0-9]+$)|(^tsconfig.*\.json$)")


def strip_template_suffix(name: str) -> str:
    return name[: -len(TEMPLATE_SUFFIX)] if name.endswith(TEMPLATE_SUFFIX) else name


def is_env_name(name: str) -> bool:
    """``True`` for ``.env.example`` and ``.env.<x>.example`` (with or without ``.j2``)."""
    return bool(_ENV_RE.match(strip_template_suffix(name)))


@dataclass(frozen=True)
class FolderItem:
    """One entry discovered under a template directory."""

    path: Path
    relative_path: Path
    is_folder: bool = False
    is_template: bool = False
    is_env_file: bool = False
    is_manifest_file: bool = False
    is_config_file: bool = False
    is_readme_file: bool = False

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def staging_dir(self) -> str | None:
        """The staging directory the entry lives in, if any."""
        first = self.relative_path.parts[0] if self.relative_path.parts else ""
        return first if first in STAGING_DIRS else None

    @property
    def is_rendered(self) -> bool:
        """Entries that go through the template renderer."""
        return (
            self.is_template
            or self.is_env_file
            or self.is_manifest_file
            or self.is_config_file
        )


def classify(path: Path, root: Path, *, is_folder: bool | None = None) -> FolderItem:
    """Build the :class:`FolderItem` for *path* relative to *root*.

    Only the file name is inspected (plus one ``is_dir`` call when
    *is_folder* is not given).
    """
    if is_folder is None:
        is_folder = path.is_dir()
    relative = path.relative_to(root)
    if is_folder:
        return FolderItem(path=path, relative_path=relative, is_folder=True)

    name = path.name
    bare = strip_template_suffix(name)
    return FolderItem(
        path=path,
        relative_path=relative,
        is_template=name.endswith(TEMPLATE_SUFFIX),
        is_env_file=is_env_name(name),
        is_manifest_file=bare == MANIFEST_NAME,
        is_config_file=bool(_CONFIG_RE.search(bare)),
        is_readme_file=bare.upper().startswith("README"),
    )


def get_folder_content(
    root: Path, staging_dirs: tuple[str, ...] | list[str] = STAGING_DIRS
) -> list[FolderItem]:
    """Walk the staging directories of *root* in the given order.

    Entries are sorted by name with every folder listed before its children.
    Missing staging directories are skipped.
    """
    items: list[FolderItem] = []
    for staging in staging_dirs:
        staging_root = root / staging
        if staging_root.is_dir():
            _walk(staging_root, root, items)
    return items


def _walk(directory: Path, root: Path, items: list[FolderItem]) -> None:
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        if child.name in _IGNORED_NAMES:
            continue
        is_folder = child.is_dir()
        items.append(classify(child, root, is_folder=is_folder))
        if is_folder:
            _walk(child, root, items)


# ---------------------------------------------------------------------------
# Path rewriting
# ---------------------------------------------------------------------------

def output_path(item: FolderItem, destination: Path) -> Path:
    """Destination of *item*: staging segment dropped, ``.j2`` stripped."""
    parts = list(item.relative_path.parts)
    if parts and parts[0] in STAGING_DIRS:
        parts = parts[1:]
    if not parts:
        return destination
    parts[-1] = strip_template_suffix(parts[-1])
    return destination.joinpath(*parts)


def env_output_paths(item: FolderItem, destination: Path) -> tuple[Path, Path]:
    """The example file and the live environment file written for *item*."""
    example = output_path(item, destination)
    live = example.with_name(example.name[: -len(".example")])
    return example, live
