"""Rider and stage application services, including proximity lookups."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import NotFound
from marketplace.geo import RIDERS, STAGES, get_index
from marketplace.riders.membership import AssignRiderToStage, RemoveRiderFromStage
from marketplace.riders.rider import Rider, RiderStatus, Stage

logger = structlog.get_logger(__name__)

NEARBY_STAGES_RADIUS_KM = 10.0
ONLINE_RIDERS_LIMIT = 20
# Radius used when listing online riders around a point
ONLINE_RIDERS_RADIUS_KM = 10.0


def register_stage(name, lat, lng, city=None) -> Stage:
    stage = Stage.create(name=name, lat=lat, lng=lng, city=city)
    current_domain.repository_for(Stage).add(stage)
    get_index(STAGES).upsert(str(stage.id), lat, lng, {"is_active": True})
    return stage


def list_nearby_stages(lat: float, lng: float, radius_km: float = NEARBY_STAGES_RADIUS_KM) -> list[dict]:
    ranked = get_index(STAGES).query_radius(lat, lng, radius_km, where={"is_active": True})
    repo = current_domain.repository_for(Stage)

    stages = []
    for hit in ranked:
        try:
            stage = repo.get(hit.entity.entity_id)
        except ObjectNotFoundError:
            continue
        stages.append(
            {
                "id": str(stage.id),
                "name": stage.name,
                "city": stage.city,
                "lat": stage.lat,
                "lng": stage.lng,
                "distance_km": round(hit.distance_km, 1),
            }
        )
    return stages


def register_rider(user_id, name, phone=None) -> Rider:
    rider = Rider(user_id=user_id, name=name, phone=phone, status=RiderStatus.OFFLINE.value)
    current_domain.repository_for(Rider).add(rider)
    return rider


def _load_rider(rider_id) -> Rider:
    try:
        return current_domain.repository_for(Rider).get(rider_id)
    except ObjectNotFoundError:
        raise NotFound({"rider_id": ["Rider not found"]}) from None


def _reindex(rider: Rider) -> None:
    index = get_index(RIDERS)
    if rider.has_location:
        index.upsert(str(rider.id), rider.lat, rider.lng, {"status": rider.status})
    else:
        index.remove(str(rider.id))


def update_rider_location(rider_id, lat: float, lng: float) -> Rider:
    rider = _load_rider(rider_id)
    rider.move_to(lat, lng)
    current_domain.repository_for(Rider).add(rider)
    _reindex(rider)
    return rider


def set_rider_status(rider_id, status: str) -> Rider:
    rider = _load_rider(rider_id)
    rider.set_status(RiderStatus(status))
    current_domain.repository_for(Rider).add(rider)
    _reindex(rider)
    logger.info("Rider status changed", rider_id=str(rider.id), status=rider.status)
    return rider


def list_online_riders(
    lat: float | None = None,
    lng: float | None = None,
    limit: int = ONLINE_RIDERS_LIMIT,
    radius_km: float = ONLINE_RIDERS_RADIUS_KM,
) -> list[dict]:
    """Online riders, nearest first when a point is given."""
    if lat is not None and lng is not None:
        ranked = get_index(RIDERS).query_radius(
            lat, lng, radius_km, where={"status": RiderStatus.ONLINE.value}, limit=limit
        )
        distances = {r.entity.entity_id: round(r.distance_km, 2) for r in ranked}
        repo = current_domain.repository_for(Rider)
        riders = []
        for rider_id, distance in distances.items():
            try:
                rider = repo.get(rider_id)
            except ObjectNotFoundError:
                continue
            riders.append(_rider_dict(rider, distance))
        return riders

    online = current_domain.repository_for(Rider)._dao.query.filter(status=RiderStatus.ONLINE.value).all().items
    online = sorted(online, key=lambda r: r.name)
    return [_rider_dict(r) for r in online[:limit]]


def _rider_dict(rider: Rider, distance_km: float | None = None) -> dict:
    return {
        "id": str(rider.id),
        "name": rider.name,
        "phone": rider.phone,
        "status": rider.status,
        "lat": rider.lat,
        "lng": rider.lng,
        "current_stage_id": str(rider.current_stage_id) if rider.current_stage_id else None,
        "distance_km": distance_km,
    }


def assign_rider_to_stage(rider_id, stage_id, is_primary: bool = True) -> str:
    return current_domain.process(
        AssignRiderToStage(rider_id=str(rider_id), stage_id=str(stage_id), is_primary=is_primary),
        asynchronous=False,
    )


def remove_rider_from_stage(rider_id, stage_id) -> None:
    current_domain.process(RemoveRiderFromStage(rider_id=str(rider_id), stage_id=str(stage_id)), asynchronous=False)
