"""
Appointment lifecycle: the status state machine and who may drive it.

``TRANSITIONS`` is the only place that decides which status changes exist
and which roles may perform them.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..exceptions import InvalidTransitionError
from ..models.actor import Actor, ActorRole
from ..models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

_STAFF = frozenset({ActorRole.VETERINARIAN, ActorRole.ADMIN})
_EVERYONE = frozenset({ActorRole.CLIENT, ActorRole.VETERINARIAN, ActorRole.ADMIN})


@dataclass(frozen=True)
class TransitionRule:
    """
    One permitted status change.

    Attributes:
        source: Status the appointment must currently hold
        target: Status it moves to
        roles: Roles allowed to perform the change
        requires_started: The appointment start must not be in the future
        client_notice: The cancellation notice window applies to clients
    """

    source: AppointmentStatus
    target: AppointmentStatus
    roles: FrozenSet[ActorRole]
    requires_started: bool = False
    client_notice: bool = False


TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], TransitionRule] = {
    (rule.source, rule.target): rule
    for rule in (
        TransitionRule(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, _STAFF),
        TransitionRule(
            AppointmentStatus.PENDING, AppointmentStatus.CANCELLED, _EVERYONE
        ),
        TransitionRule(
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
            _EVERYONE,
            client_notice=True,
        ),
        TransitionRule(
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.COMPLETED,
            _STAFF,
            requires_started=True,
        ),
    )
}


class LifecycleManager:
    """Validate and apply appointment status transitions."""

    def __init__(self, cancellation_notice: timedelta = timedelta(0)):
        self.cancellation_notice = cancellation_notice

    @staticmethod
    def can_act_on(appointment: Appointment, actor: Actor) -> bool:
        """
        Ownership check independent of the requested transition.

        Clients act on their own appointments. Veterinarians act on
        appointments assigned to them and on unassigned pending ones.
        Admins act on anything.
        """
        if actor.role == ActorRole.ADMIN:
            return True
        if actor.role == ActorRole.CLIENT:
            return appointment.client_id == actor.id
        if appointment.veterinarian_id is None:
            return appointment.status == AppointmentStatus.PENDING
        return appointment.veterinarian_id == actor.id

    def new_appointment(self, **fields) -> Appointment:
        """Create an appointment in its initial PENDING state."""
        fields["status"] = AppointmentStatus.PENDING
        return Appointment(**fields)

    def validate(
        self,
        appointment: Appointment,
        target: AppointmentStatus,
        actor: Actor,
        now: datetime,
    ) -> TransitionRule:
        """
        Check that ``actor`` may move ``appointment`` to ``target`` now.

        Returns:
            The matching transition rule

        Raises:
            InvalidTransitionError: If the transition is not in the table, the
                actor's role or ownership does not permit it, or a time
                precondition fails
        """
        current = appointment.status

        def reject(message: str) -> InvalidTransitionError:
            logger.info(
                f"Rejected {current.value} -> {target.value} on appointment "
                f"{appointment.id} by {actor.role.value} {actor.id}: {message}"
            )
            return InvalidTransitionError(
                message,
                current_status=current,
                target_status=target,
                actor_role=actor.role,
            )

        if appointment.is_terminal:
            raise reject(f"Appointment is already {current.value}")

        rule = TRANSITIONS.get((current, target))
        if rule is None:
            raise reject(f"Cannot move appointment from {current.value} to {target.value}")

        if actor.role not in rule.roles:
            raise reject(f"A {actor.role.value} cannot mark an appointment {target.value}")

        if not self.can_act_on(appointment, actor):
            raise reject("Appointment does not belong to the caller")

        if rule.requires_started and appointment.scheduled_at > now:
            raise reject("Appointment cannot be completed before it starts")

        if (
            rule.client_notice
            and actor.role == ActorRole.CLIENT
            and appointment.scheduled_at - now < self.cancellation_notice
        ):
            raise reject("Cancellation notice period has passed")

        return rule

    def allowed_targets(
        self, appointment: Appointment, actor: Actor, now: datetime
    ) -> List[AppointmentStatus]:
        """List the statuses ``actor`` could move ``appointment`` to right now."""
        allowed = []
        for source, target in TRANSITIONS:
            if source != appointment.status:
                continue
            try:
                self.validate(appointment, target, actor, now)
            except InvalidTransitionError:
                continue
            allowed.append(target)
        return allowed

    def apply(
        self,
        appointment: Appointment,
        target: AppointmentStatus,
        actor: Actor,
        now: datetime,
        reason: Optional[str] = None,
        assign_to: Optional[uuid.UUID] = None,
    ) -> AppointmentStatus:
        """
        Validate and record a transition.

        Returns:
            The status the appointment held before the change
        """
        self.validate(appointment, target, actor, now)
        previous = appointment.status

        if assign_to is not None:
            appointment.veterinarian_id = assign_to
        appointment.record_status(target, now, actor_id=actor.id, reason=reason)

        logger.info(
            f"Appointment {appointment.id} {previous.value} -> {target.value} "
            f"by {actor.role.value} {actor.id}"
        )
        return previous
