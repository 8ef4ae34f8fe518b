"""Database driver for the provider picked in the extra-options prompt."""

from monogen.catalog.models import Dependency

DRIVERS = {
    "sqlite": ([("better-sqlite3", "^11.7.0")], [("@types/better-sqlite3", "^7.6.12")]),
    "postgres": ([("postgres", "^3.4.5")], []),
}


def _provider(config):
    selection = config.selection_for("drizzle")
    if selection is None:
        return "sqlite"
    return selection.extra_options.get("provider", "sqlite")


def get_dependencies(config, frameworks, packages):
    deps, _ = DRIVERS.get(_provider(config), DRIVERS["sqlite"])
    return [Dependency(name=name, version=version, add_in_app=False) for name, version in deps]


def get_dev_dependencies(config, frameworks, packages):
    _, dev_deps = DRIVERS.get(_provider(config), DRIVERS["sqlite"])
    return [
        Dependency(name=name, version=version, add_in_app=False) for name, version in dev_deps
    ]
