"""Template catalog: framework and add-on package descriptors.

Usage::

    from monogen.catalog import FrameworkCatalog, PackageCatalog

    frameworks = FrameworkCatalog()
    frameworks.load_all(config.frameworks_templates_path)
    hono = frameworks.get_by_name("hono")
"""

from monogen.catalog.loader import Catalog, FrameworkCatalog, PackageCatalog, find_descriptors
from monogen.catalog.models import (
    Dependency,
    EnvVar,
    ExtraOptionPrompt,
    Framework,
    Origin,
    OriginScope,
    OriginType,
    Package,
    Script,
)

__all__ = [
    "Catalog",
    "Dependency",
    "EnvVar",
    "ExtraOptionPrompt",
    "Framework",
    "FrameworkCatalog",
    "Origin",
    "OriginScope",
    "OriginType",
    "Package",
    "PackageCatalog",
    "Script",
    "find_descriptors",
]
