"""Store registration and proximity lookups through the stores geospatial index."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import NotFound
from marketplace.geo import STORES, get_index
from marketplace.geo.geohash import Bounds
from marketplace.vendors.vendor import Vendor

logger = structlog.get_logger(__name__)

NEAREST_STORES_RADIUS_KM = 10.0
NEAREST_STORES_LIMIT = 20
STORES_IN_AREA_LIMIT = 50


def index_vendor(vendor: Vendor) -> None:
    """Mirror a vendor's location into the stores index (removing it if unlocated)."""
    index = get_index(STORES)
    if not vendor.has_location:
        index.remove(str(vendor.id))
        return
    index.upsert(str(vendor.id), vendor.lat, vendor.lng, {"is_busy": bool(vendor.is_busy)})


def register_vendor(owner_id, name, lat=None, lng=None, **kwargs) -> Vendor:
    vendor = Vendor.create(owner_id=owner_id, name=name, lat=lat, lng=lng, **kwargs)
    current_domain.repository_for(Vendor).add(vendor)
    index_vendor(vendor)
    logger.info("Vendor registered", vendor_id=str(vendor.id), geohash=vendor.geohash)
    return vendor


def relocate_vendor(vendor_id, lat: float, lng: float) -> Vendor:
    repo = current_domain.repository_for(Vendor)
    try:
        vendor = repo.get(vendor_id)
    except ObjectNotFoundError:
        raise NotFound({"vendor_id": ["Store not found"]}) from None
    vendor.relocate(lat, lng)
    repo.add(vendor)
    index_vendor(vendor)
    return vendor


def _store_dict(vendor: Vendor, distance_km: float | None = None) -> dict:
    data = {
        "id": str(vendor.id),
        "name": vendor.name,
        "phone": vendor.phone,
        "address": vendor.address,
        "lat": vendor.lat,
        "lng": vendor.lng,
        "is_busy": vendor.is_busy,
    }
    if distance_km is not None:
        data["distance_km"] = round(distance_km, 2)
    return data


def _load_many(ids):
    repo = current_domain.repository_for(Vendor)
    for vendor_id in ids:
        try:
            yield repo.get(vendor_id)
        except ObjectNotFoundError:
            # Index entry outlived its vendor
            get_index(STORES).remove(vendor_id)


def find_nearest_stores(
    lat: float,
    lng: float,
    radius_km: float = NEAREST_STORES_RADIUS_KM,
    limit: int = NEAREST_STORES_LIMIT,
) -> list[dict]:
    """Stores within ``radius_km``, nearest first."""
    ranked = get_index(STORES).query_radius(lat, lng, radius_km, limit=limit)
    distances = {r.entity.entity_id: r.distance_km for r in ranked}
    return [_store_dict(v, distances[str(v.id)]) for v in _load_many(distances)]


def find_stores_in_area(box: Bounds, limit: int = STORES_IN_AREA_LIMIT) -> list[dict]:
    entities = get_index(STORES).query_bounds(box, limit=limit)
    return [_store_dict(v) for v in _load_many([e.entity_id for e in entities])]
