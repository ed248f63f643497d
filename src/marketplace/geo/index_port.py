"""Geospatial index port: abstract interface for proximity lookups."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from marketplace.geo.geohash import Bounds


@dataclass(frozen=True)
class IndexedEntity:
    entity_id: str
    lat: float
    lng: float
    attributes: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RankedEntity:
    """An indexed entity annotated with its distance from the query point."""

    entity: IndexedEntity
    distance_km: float


class GeospatialIndex(ABC):
    """Abstract interface for geospatial index adapters."""

    @abstractmethod
    def upsert(self, entity_id: str, lat: float, lng: float, attributes: dict | None = None) -> None:
        """Insert or move an entity."""
        ...

    @abstractmethod
    def remove(self, entity_id: str) -> None:
        """Drop an entity. Unknown identifiers are ignored."""
        ...

    @abstractmethod
    def query_radius(
        self,
        lat: float,
        lng: float,
        radius_km: float,
        where: dict | None = None,
        limit: int | None = None,
    ) -> list[RankedEntity]:
        """Entities within ``radius_km`` of the point, nearest first.

        ``where`` restricts results to entities whose attributes equal every
        given key/value pair.
        """
        ...

    @abstractmethod
    def query_bounds(self, box: Bounds, where: dict | None = None, limit: int | None = None) -> list[IndexedEntity]:
        """Entities inside the bounding box, in no particular order."""
        ...
