"""Resolved-metadata value objects produced by the aggregator.

A :class:`RecordBundle` keeps the records of one kind (dependencies,
dev-dependencies, scripts, or env-vars) split by source, so a manifest
template decides itself how to order and format them.  ``all()`` gives the
canonical concatenation order: the entity's own config records, then
executable-hook records, then manifest-template records, then add-on package
records (selection order), then testing records, then synthetic shared-package
references.
"""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from monogen.catalog.models import MetadataRecord, OriginScope, OriginType

BUNDLE_ORDER = ("config", "executable", "template", "packages", "testing", "shared")


class RecordBundle(BaseModel):
    """Records of one kind, kept in separate named sub-bundles."""

    config: list[MetadataRecord] = Field(default_factory=list)
    executable: list[MetadataRecord] = Field(default_factory=list)
    template: list[MetadataRecord] = Field(default_factory=list)
    packages: list[MetadataRecord] = Field(default_factory=list)
    testing: list[MetadataRecord] = Field(default_factory=list)
    shared: list[MetadataRecord] = Field(default_factory=list)

    @classmethod
    def from_records(
        cls, records: Iterable[MetadataRecord], owner: str | None = None
    ) -> "RecordBundle":
        """Split tagged records into sub-bundles, preserving their order.

        *owner* names the package whose own manifest is being built; its
        package-scoped records count as its own config, executable, and
        template records instead of add-on contributions.
        """
        bundle = cls()
        for record in records:
            bundle.section_for(record, owner).append(record)
        return bundle

    def section_for(
        self, record: MetadataRecord, owner: str | None = None
    ) -> list[MetadataRecord]:
        origin = record.origin
        if origin is None:
            return self.config
        if origin.type == OriginType.SHARED_PACKAGE:
            return self.shared
        if origin.type == OriginType.TESTING:
            return self.testing
        if origin.scope == OriginScope.PACKAGE and origin.source != owner:
            return self.packages
        if origin.type == OriginType.EXECUTABLE:
            return self.executable
        if origin.type == OriginType.TEMPLATE:
            return self.template
        return self.config

    def all(self) -> list[MetadataRecord]:
        return [record for section in BUNDLE_ORDER for record in getattr(self, section)]

    def names(self) -> list[str]:
        return [record.name for record in self.all()]

    def __len__(self) -> int:
        return sum(len(getattr(self, section)) for section in BUNDLE_ORDER)


class ResolvedMetadata(BaseModel):
    """Everything the aggregator computed for one app or shared package."""

    dependencies: RecordBundle = Field(default_factory=RecordBundle)
    dev_dependencies: RecordBundle = Field(default_factory=RecordBundle)
    scripts: RecordBundle = Field(default_factory=RecordBundle)
    env_vars: RecordBundle = Field(default_factory=RecordBundle)


__all__ = ["BUNDLE_ORDER", "RecordBundle", "ResolvedMetadata"]
