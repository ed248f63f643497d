"""Geospatial index registry.

One index per entity kind ("stores", "riders", ...). The in-memory adapter is
used unless an index is installed explicitly with ``set_index``.
"""

from marketplace.geo.index_port import GeospatialIndex
from marketplace.geo.memory_index import InMemoryGeospatialIndex

_indexes: dict[str, GeospatialIndex] = {}

STORES = "stores"
RIDERS = "riders"
STAGES = "stages"


def get_index(kind: str) -> GeospatialIndex:
    """Return the index for ``kind`` (singleton per kind)."""
    if kind not in _indexes:
        _indexes[kind] = InMemoryGeospatialIndex()
    return _indexes[kind]


def set_index(kind: str, index: GeospatialIndex) -> None:
    _indexes[kind] = index


def reset_indexes() -> None:
    """Drop all index singletons (useful for testing)."""
    _indexes.clear()
