"""Hook registry for framework and package template scripts.

A catalog entity may ship a ``scripts/`` directory next to its descriptor with
one Python module per hook kind (``dependencies.py``, ``pre-install.py``,
``template-context-vars.py``, ...).  Each module exposes well-known functions
that all share the signature ``(config, frameworks, packages)``.

Modules are imported once by :meth:`HookRegistry.load_directory` and their
exports registered under ``(owner key, export name)``, where the owner key is
``framework:<name>`` or ``package:<name>`` (see :func:`entity_key`).  Hooks can also be
registered directly with the :meth:`HookRegistry.register` decorator, which is
what tests and embedding applications use.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from monogen.catalog.models import Framework, Package
from monogen.errors import HookExecutionError
from monogen.utils import print_debug

HookFunction = Callable[..., Any]


class HookKind(str, Enum):
    """The hook modules an entity can declare."""
    PRE_INSTALL = "pre-install"
    POST_INSTALL = "post-install"
    DEPENDENCIES = "dependencies"
    SCRIPTS = "scripts"
    ENV_VARS = "env-vars"
    TEMPLATE_CONTEXT_VARS = "template-context-vars"


HOOK_EXPORTS: dict[HookKind, tuple[str, ...]] = {
    HookKind.PRE_INSTALL: ("exec",),
    HookKind.POST_INSTALL: ("exec",),
    HookKind.DEPENDENCIES: ("get_dependencies", "get_dev_dependencies"),
    HookKind.SCRIPTS: ("get_scripts",),
    HookKind.ENV_VARS: ("get_env_vars",),
    HookKind.TEMPLATE_CONTEXT_VARS: ("get_context_vars",),
}


def entity_key(entity: Framework | Package) -> str:
    """Registry owner key; frameworks and packages may share a name."""
    prefix = "framework" if isinstance(entity, Framework) else "package"
    return f"{prefix}:{entity.name}"


def export_key(kind: HookKind, export: str) -> str:
    """Registry key for an export; install hooks share the ``exec`` name."""
    if kind in (HookKind.PRE_INSTALL, HookKind.POST_INSTALL):
        return f"{kind.value}:{export}"
    return export


class HookRegistry:
    """Maps ``(entity, export)`` to a callable hook."""

    def __init__(self) -> None:
        self._hooks: dict[tuple[str, str], HookFunction] = {}

    # -- Registration --------------------------------------------------------

    def register(
        self, entity: str, kind: HookKind, export: str | None = None
    ) -> Callable[[HookFunction], HookFunction]:
        """Decorator registering a hook for *entity*.

        *export* defaults to the first export of *kind* (e.g. ``get_scripts``
        for :attr:`HookKind.SCRIPTS`).
        """
        name = export or HOOK_EXPORTS[kind][0]
        if name not in HOOK_EXPORTS[kind]:
            raise ValueError(f"'{name}' is not an export of the {kind.value} hook")

        def decorator(func: HookFunction) -> HookFunction:
            self._hooks[(entity, export_key(kind, name))] = func
            return func

        return decorator

    def load_directory(self, entity: str, scripts_dir: Path) -> list[HookKind]:
        """Import the hook modules found in *scripts_dir* for *entity*.

        Both ``pre-install.py`` and ``pre_install.py`` spellings are accepted.

        Returns:
            The hook kinds that were found.

        Raises:
            HookExecutionError: If a module fails to import.
        """
        loaded: list[HookKind] = []
        if not scripts_dir.is_dir():
            return loaded
        for kind in HookKind:
            module_path = _module_file(scripts_dir, kind)
            if module_path is None:
                continue
            module = _import_module(entity, kind, module_path)
            for export in HOOK_EXPORTS[kind]:
                func = getattr(module, export, None)
                if callable(func):
                    self._hooks[(entity, export_key(kind, export))] = func
            loaded.append(kind)
            print_debug(f"Loaded {kind.value} hook for '{entity}' from {module_path}")
        return loaded

    # -- Queries -------------------------------------------------------------

    def get(self, entity: str, kind: HookKind, export: str | None = None) -> HookFunction | None:
        name = export or HOOK_EXPORTS[kind][0]
        return self._hooks.get((entity, export_key(kind, name)))

    def has(self, entity: str, kind: HookKind) -> bool:
        return any(self.get(entity, kind, export) for export in HOOK_EXPORTS[kind])

    # -- Execution -----------------------------------------------------------

    async def call(
        self,
        entity: str,
        kind: HookKind,
        export: str | None,
        config: Any,
        frameworks: Any,
        packages: Any,
    ) -> Any:
        """Invoke a hook if registered, awaiting coroutine results.

        Returns ``None`` when no such hook exists.

        Raises:
            HookExecutionError: Wrapping whatever the hook raised.
        """
        func = self.get(entity, kind, export)
        if func is None:
            return None
        hook_name = f"{kind.value}.{export or HOOK_EXPORTS[kind][0]}"
        try:
            result = func(config, frameworks, packages)
            if inspect.isawaitable(result):
                result = await result
        except HookExecutionError:
            raise
        except Exception as exc:
            raise HookExecutionError(entity, hook_name, exc) from exc
        return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _module_file(scripts_dir: Path, kind: HookKind) -> Path | None:
    for stem in (kind.value, kind.value.replace("-", "_")):
        candidate = scripts_dir / f"{stem}.py"
        if candidate.is_file():
            return candidate
    return None


def _import_module(entity: str, kind: HookKind, path: Path) -> ModuleType:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:10]
    module_name = f"monogen_hooks_{kind.value.replace('-', '_')}_{digest}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise HookExecutionError(entity, kind.value, ImportError(f"cannot load {path}"))
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise HookExecutionError(entity, kind.value, exc) from exc
    return module
