"""Rider stage membership: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import NotFound
from marketplace.riders.rider import Rider, RiderStageMembership, Stage
from marketplace.shared.clock import utcnow


@marketplace.command(part_of="RiderStageMembership")
class AssignRiderToStage:
    rider_id = Identifier(required=True)
    stage_id = Identifier(required=True)
    is_primary = Boolean(default=True)


@marketplace.command(part_of="RiderStageMembership")
class RemoveRiderFromStage:
    rider_id = Identifier(required=True)
    stage_id = Identifier(required=True)


def _get(aggregate_cls, identifier, label):
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        raise NotFound({f"{label}_id": [f"{label.capitalize()} not found"]}) from None


@marketplace.command_handler(part_of=RiderStageMembership)
class RiderStageMembershipHandler:
    @handle(AssignRiderToStage)
    def assign(self, command):
        rider = _get(Rider, command.rider_id, "rider")
        stage = _get(Stage, command.stage_id, "stage")

        repo = current_domain.repository_for(RiderStageMembership)
        if repo.active(rider.id, stage.id) is not None:
            raise ValidationError({"stage_id": ["Rider is already a member of this stage"]})

        if command.is_primary:
            for membership in repo.active_for_rider(rider.id):
                if membership.is_primary:
                    membership.demote()
                    repo.add(membership)
            rider.current_stage_id = stage.id
            current_domain.repository_for(Rider).add(rider)

        membership = RiderStageMembership(
            rider_id=rider.id,
            stage_id=stage.id,
            is_primary=bool(command.is_primary),
            is_active=True,
            joined_at=utcnow(),
        )
        repo.add(membership)
        return str(membership.id)

    @handle(RemoveRiderFromStage)
    def remove(self, command):
        repo = current_domain.repository_for(RiderStageMembership)
        membership = repo.active(command.rider_id, command.stage_id)
        if membership is None:
            raise NotFound({"stage_id": ["Rider is not a member of this stage"]})

        membership.leave()
        repo.add(membership)

        rider = _get(Rider, command.rider_id, "rider")
        if str(rider.current_stage_id) == str(command.stage_id):
            rider.current_stage_id = None
            current_domain.repository_for(Rider).add(rider)
