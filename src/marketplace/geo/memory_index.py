"""In-memory geospatial index bucketed by geohash prefix."""

import threading

from marketplace.geo.geohash import (
    Bounds,
    bounding_box,
    encode,
    geohashes_in_bounds,
    haversine,
    precision_for_accuracy,
)
from marketplace.geo.index_port import GeospatialIndex, IndexedEntity, RankedEntity

# Bucket cells are roughly 4.9km x 4.9km.
BUCKET_PRECISION = 5


def _matches(entity: IndexedEntity, where: dict | None) -> bool:
    if not where:
        return True
    return all(entity.attributes.get(key) == value for key, value in where.items())


class InMemoryGeospatialIndex(GeospatialIndex):
    def __init__(self):
        self._lock = threading.RLock()
        self._entities: dict[str, IndexedEntity] = {}
        self._cells: dict[str, str] = {}
        self._buckets: dict[str, set[str]] = {}

    def upsert(self, entity_id: str, lat: float, lng: float, attributes: dict | None = None) -> None:
        cell = encode(lat, lng, BUCKET_PRECISION)
        with self._lock:
            self._detach(entity_id)
            self._entities[entity_id] = IndexedEntity(
                entity_id=entity_id,
                lat=lat,
                lng=lng,
                attributes=dict(attributes or {}),
            )
            self._cells[entity_id] = cell
            self._buckets.setdefault(cell, set()).add(entity_id)

    def remove(self, entity_id: str) -> None:
        with self._lock:
            self._detach(entity_id)
            self._entities.pop(entity_id, None)

    def _detach(self, entity_id: str) -> None:
        cell = self._cells.pop(entity_id, None)
        if cell is None:
            return
        members = self._buckets.get(cell)
        if members is not None:
            members.discard(entity_id)
            if not members:
                del self._buckets[cell]

    def _candidates(self, box: Bounds, precision: int) -> list[IndexedEntity]:
        precision = min(precision, BUCKET_PRECISION)
        prefixes = set(geohashes_in_bounds(box, precision))

        with self._lock:
            if precision == BUCKET_PRECISION:
                ids = [eid for prefix in prefixes for eid in self._buckets.get(prefix, ())]
            else:
                ids = [eid for cell, members in self._buckets.items() if cell[:precision] in prefixes for eid in members]
            return [self._entities[eid] for eid in ids]

    def query_radius(self, lat, lng, radius_km, where=None, limit=None):
        box = bounding_box(lat, lng, radius_km)
        ranked = []
        for entity in self._candidates(box, precision_for_accuracy(radius_km)):
            if not _matches(entity, where):
                continue
            distance = haversine(lat, lng, entity.lat, entity.lng)
            if distance <= radius_km:
                ranked.append(RankedEntity(entity=entity, distance_km=distance))

        ranked.sort(key=lambda r: (r.distance_km, r.entity.entity_id))
        return ranked[:limit] if limit is not None else ranked

    def query_bounds(self, box, where=None, limit=None):
        # Use a precision whose cells are no smaller than the box's shorter side.
        span_km = min(box.max_lat - box.min_lat, box.max_lng - box.min_lng) * 111.0
        found = [
            entity
            for entity in self._candidates(box, precision_for_accuracy(span_km))
            if box.contains_point(entity.lat, entity.lng) and _matches(entity, where)
        ]
        return found[:limit] if limit is not None else found

    def reset(self):
        with self._lock:
            self._entities.clear()
            self._cells.clear()
            self._buckets.clear()
