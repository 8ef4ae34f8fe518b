"""Framework-conditional dependencies for Hono apps."""

from monogen.catalog.models import Dependency


def get_dependencies(config, frameworks, packages):
    if config.selection_for("zod") is None:
        return []
    return [Dependency(name="@hono/zod-validator", version="^0.4.2")]


def get_dev_dependencies(config, frameworks, packages):
    return []
