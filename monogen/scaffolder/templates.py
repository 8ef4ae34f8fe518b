"""Jinja2 template rendering for generated apps and shared packages.

Provides the TemplateRenderer class which renders ``.j2`` files from the
template catalog with a framework or package context.  Besides the case
filters, the environment exposes two serialization helpers used by manifest
and environment templates:

``manifest_entries(records, indent=4, leading=False)``
    ``"name": "value"`` lines joined by ``,\\n`` plus *indent* spaces, ready to
    sit inside a JSON object.  ``leading=True`` prefixes the separator so the
    output can follow literal entries.

``env_block(records)``
    ``NAME="value"`` lines with backslashes and double quotes escaped.

Both accept a :class:`~monogen.metadata.bundles.RecordBundle` or a plain list.
A duplicated name keeps its first position and takes the last value.  When
given a bundle they leave out its ``template`` section: those records were
parsed out of the very template being rendered, which already holds them as
literal text.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Iterable

from jinja2 import (
    ChainableUndefined,
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
)

from monogen.catalog.models import MetadataRecord
from monogen.errors import TemplateRenderError
from monogen.metadata.bundles import BUNDLE_ORDER, RecordBundle
from monogen.utils import ensure_dir


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

_HELPER_SKIP = ("template",)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for app and shared-package scaffolding.

    Relative template paths are resolved against *template_dir* (the catalog
    root); absolute paths are read directly, which is how the builders render
    entries found by the folder walk.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=ChainableUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self.env.filters["manifest_entries"] = manifest_entries
        self.env.filters["env_block"] = env_block
        self.env.globals["manifest_entries"] = manifest_entries
        self.env.globals["env_block"] = env_block

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str | Path, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Absolute path of a template file, or a path
                relative to the template directory.
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.

        Raises:
            FileNotFoundError: If the template file does not exist.
            TemplateRenderError: On a syntax error or a failing expression.
        """
        path = Path(template_path)
        try:
            if path.is_absolute():
                if not path.is_file():
                    raise FileNotFoundError(f"Template not found: {path}")
                template = self.env.from_string(path.read_text(encoding="utf-8"))
            else:
                template = self.env.get_template(path.as_posix())
            return template.render(**context)
        except TemplateNotFound as exc:
            raise FileNotFoundError(f"Template not found: {exc.name}") from exc
        except TemplateSyntaxError as exc:
            raise TemplateRenderError(path, f"line {exc.lineno}: {exc.message}") from exc
        except TemplateError as exc:
            raise TemplateRenderError(path, str(exc)) from exc

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        try:
            return self.env.from_string(template_string).render(**context)
        except TemplateError as exc:
            raise TemplateRenderError("<string>", str(exc)) from exc

    # -- File-based rendering (async) --------------------------------------

    async def render_to_file(
        self,
        template_path: str | Path,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.  Returns the output
        path.
        """
        content = await asyncio.to_thread(self.render, template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(write_text_file, out, content)
        return out


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _select(records: Any, skip: Iterable[str]) -> list[MetadataRecord]:
    if records is None or isinstance(records, Undefined):
        return []
    if isinstance(records, RecordBundle):
        skipped = set(skip)
        return [
            record
            for section in BUNDLE_ORDER
            if section not in skipped
            for record in getattr(records, section)
        ]
    return list(records)


def last_wins(records: Iterable[MetadataRecord]) -> list[MetadataRecord]:
    """Drop earlier duplicates by name, keeping the first position."""
    positions: dict[str, int] = {}
    result: list[MetadataRecord] = []
    for record in records:
        if record.name in positions:
            result[positions[record.name]] = record
        else:
            positions[record.name] = len(result)
            result.append(record)
    return result


def manifest_entries(
    records: Any,
    indent: int = 4,
    leading: bool = False,
    skip: Iterable[str] = _HELPER_SKIP,
) -> str:
    lines = [
        f"{json.dumps(record.name)}: {json.dumps(str(record.value))}"
        for record in last_wins(_select(records, skip))
    ]
    if not lines:
        return ""
    separator = ",\n" + " " * indent
    text = separator.join(lines)
    return separator + text if leading else text


def env_block(records: Any, skip: Iterable[str] = _HELPER_SKIP) -> str:
    return "\n".join(
        f'{record.name}="{_escape_env(str(record.value))}"'
        for record in last_wins(_select(records, skip))
    )


def _escape_env(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s/@]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def write_text_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    ensure_dir(path.parent)
    path.write_text(content, encoding="utf-8")
