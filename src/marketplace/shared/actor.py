"""Acting identity resolved by the surrounding authorization layer."""

from dataclasses import dataclass
from enum import Enum


class ActorRole(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    RIDER = "rider"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation.

    Permission rules live outside this package; the only check made here is
    ownership equality (``is_owner_of``).
    """

    actor_id: str
    role: ActorRole = ActorRole.CUSTOMER

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    def is_owner_of(self, resource) -> bool:
        owner = getattr(resource, "customer_id", None)
        return owner is not None and str(owner) == str(self.actor_id)


SYSTEM_ACTOR = Actor(actor_id="system", role=ActorRole.SYSTEM)
