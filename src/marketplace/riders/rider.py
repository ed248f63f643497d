"""Riders, stages (rider pick-up points) and stage memberships.

A rider has at most one active primary stage membership at a time.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.geo.geohash import encode


class RiderStatus(Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    BUSY = "busy"


@marketplace.aggregate
class Stage:
    name = String(required=True, max_length=255)
    city = String(max_length=100)
    lat = Float(required=True, min_value=-90.0, max_value=90.0)
    lng = Float(required=True, min_value=-180.0, max_value=180.0)
    geohash = String(max_length=12)
    is_active = Boolean(default=True)
    created_at = DateTime()

    @classmethod
    def create(cls, name, lat, lng, city=None):
        return cls(name=name, city=city, lat=lat, lng=lng, geohash=encode(lat, lng), created_at=datetime.now(UTC))


@marketplace.aggregate
class Rider:
    user_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    phone = String(max_length=30)
    status = String(choices=RiderStatus, default=RiderStatus.OFFLINE.value)
    lat = Float(min_value=-90.0, max_value=90.0)
    lng = Float(min_value=-180.0, max_value=180.0)
    geohash = String(max_length=12)
    current_stage_id = Identifier()
    last_seen_at = DateTime()

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    def move_to(self, lat, lng):
        self.lat = lat
        self.lng = lng
        self.geohash = encode(lat, lng)
        self.last_seen_at = datetime.now(UTC)

    def set_status(self, status: RiderStatus):
        self.status = status.value
        self.last_seen_at = datetime.now(UTC)


@marketplace.aggregate
class RiderStageMembership:
    rider_id = Identifier(required=True)
    stage_id = Identifier(required=True)
    is_primary = Boolean(default=True)
    is_active = Boolean(default=True)
    joined_at = DateTime()
    left_at = DateTime()

    def demote(self):
        self.is_primary = False

    def leave(self):
        self.is_active = False
        self.is_primary = False
        self.left_at = datetime.now(UTC)


@marketplace.repository(part_of=RiderStageMembership)
class RiderStageMembershipRepository:
    def active_for_rider(self, rider_id) -> list[RiderStageMembership]:
        return self._dao.query.filter(rider_id=str(rider_id), is_active=True).all().items

    def active(self, rider_id, stage_id) -> RiderStageMembership | None:
        return self._dao.query.filter(rider_id=str(rider_id), stage_id=str(stage_id), is_active=True).all().first
