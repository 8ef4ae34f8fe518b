"""Creation-tracking store.

A small JSON file inside the workspace (``.app-generator/apps.json`` by
default) remembers which apps were generated, which ports they took, and
which shared packages exist and who uses them::

    {
        "usedPorts": {"web": 4001},
        "lastAssignedPort": 4001,
        "createdApps": [...],
        "sharedPackages": [...]
    }

Every query re-reads the file and every registration does a full
read-modify-write.  There is a single writer per run and no locking:
concurrent generator processes against the same workspace can lose updates.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from monogen.config import DEFAULT_START_PORT
from monogen.utils import load_json, print_info, print_warning, save_json


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _TrackingModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatedApp(_TrackingModel):
    name: str
    port: int
    framework: str
    shared_packages: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)


class SharedPackageRecord(_TrackingModel):
    name: str
    base_package: str
    used_by: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)


class TrackingData(_TrackingModel):
    used_ports: dict[str, int] = Field(default_factory=dict)
    last_assigned_port: int = Field(default=DEFAULT_START_PORT)
    created_apps: list[CreatedApp] = Field(default_factory=list)
    shared_packages: list[SharedPackageRecord] = Field(default_factory=list)


class CreationTracker:
    """Single-writer repository over the tracking JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    # -- Persistence ---------------------------------------------------------

    def load(self) -> TrackingData:
        """Read the store; defaults when it is absent or unreadable."""
        if not self.path.exists():
            return TrackingData()
        try:
            return TrackingData.model_validate(load_json(self.path))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            print_warning("Failed to load tracking data, using defaults", str(exc))
            return TrackingData()

    async def _write(self, data: TrackingData) -> None:
        await save_json(data.model_dump(by_alias=True), self.path, indent=4)

    # -- Ports ---------------------------------------------------------------

    def next_available_port(self) -> int:
        return self.load().last_assigned_port + 1

    def is_port_in_use(self, port: int) -> bool:
        return port in self.load().used_ports.values()

    def used_ports(self) -> dict[str, int]:
        return dict(self.load().used_ports)

    async def register_port(self, app_name: str, port: int) -> None:
        data = self.load()
        data.used_ports[app_name] = port
        data.last_assigned_port = max(data.last_assigned_port, port)
        await self._write(data)
        print_info(f"Port {port} registered for app {app_name}")

    # -- Apps ----------------------------------------------------------------

    async def register_app(
        self,
        name: str,
        port: int,
        framework: str,
        shared_packages: Optional[list[str]] = None,
    ) -> CreatedApp:
        """Record a generated app, replacing an earlier record of the same name."""
        data = self.load()
        app = CreatedApp(
            name=name,
            port=port,
            framework=framework,
            shared_packages=list(shared_packages or []),
        )
        data.created_apps = [existing for existing in data.created_apps if existing.name != name]
        data.created_apps.append(app)
        await self._write(data)
        print_info(f"App {name} ({framework}) registered on port {port}")
        return app

    def get_created_app(self, name: str) -> Optional[CreatedApp]:
        for app in self.load().created_apps:
            if app.name == name:
                return app
        return None

    # -- Shared packages -----------------------------------------------------

    async def register_shared_package(
        self, app_name: str, name: str, base_package: str
    ) -> SharedPackageRecord:
        """Create the shared-package record, or add *app_name* to its users."""
        data = self.load()
        record = next((pkg for pkg in data.shared_packages if pkg.name == name), None)
        if record is None:
            record = SharedPackageRecord(name=name, base_package=base_package, used_by=[app_name])
            data.shared_packages.append(record)
        elif app_name not in record.used_by:
            record.used_by.append(app_name)
            record.updated_at = _now()
        await self._write(data)
        print_info(f"Shared package {name} ({base_package}) registered for app {app_name}")
        return record

    def shared_package_exists(self, base_package: str) -> bool:
        return self.get_shared_package_by_base_package(base_package) is not None

    def get_shared_package_by_base_package(
        self, base_package: str
    ) -> Optional[SharedPackageRecord]:
        for record in self.load().shared_packages:
            if record.base_package == base_package:
                return record
        return None
