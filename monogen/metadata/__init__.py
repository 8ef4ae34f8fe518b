"""Metadata aggregation: hook registry and resolved record bundles.

The aggregator itself lives in :mod:`monogen.metadata.aggregator` and is
imported from there; it depends on the template renderer, which in turn
depends on the bundle types exported here.
"""

from .bundles import BUNDLE_ORDER, RecordBundle, ResolvedMetadata
from .hooks import HOOK_EXPORTS, HookKind, HookRegistry, entity_key

__all__ = [
    "BUNDLE_ORDER",
    "HOOK_EXPORTS",
    "HookKind",
    "HookRegistry",
    "RecordBundle",
    "ResolvedMetadata",
    "entity_key",
]
