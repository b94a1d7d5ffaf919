"""
Scheduling service: the single entry point for external collaborators.

The service orchestrates the calendar grid, availability resolver, conflict
detector and lifecycle manager over a :class:`SchedulingStore`, and is the
only writer of appointment status.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel as PydanticModel
from pydantic import ValidationError

from ..exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationException,
    format_validation_errors,
)
from ..models.actor import Actor, ActorRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.appointment_type import (
    get_appointment_type_info,
    infer_appointment_type,
    list_appointment_types,
)
from ..models.veterinarian import Veterinarian
from ..schemas.appointment import (
    AppointmentTypeResponse,
    BookingRequest,
    RescheduleRequest,
    TransitionRequest,
)
from ..schemas.availability import (
    AvailabilityQuery,
    AvailabilityResponse,
    VeterinarianAvailabilityResponse,
)
from ..utils.config import SchedulingSettings
from ..utils.datetime_utils import ensure_utc, get_current_utc, local_day_bounds
from .availability import AvailabilityResolver, group_by_veterinarian
from .conflicts import ConflictDetector
from .directory import PetDirectory
from .events import (
    EventSink,
    LoggingEventSink,
    SchedulingEvent,
    SchedulingEventType,
    dispatch_event,
)
from .lifecycle import LifecycleManager
from .store import SchedulingStore, SchedulingTransaction

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=PydanticModel)


class SchedulingService:
    """
    Book appointments, move them through their lifecycle and answer
    availability questions.

    Args:
        store: Persistence backend
        directory: Pet to owning-client lookup
        settings: Scheduling policy; read from the environment when omitted
        event_sink: Destination for booking and transition events
        clock: Returns the current UTC instant
    """

    def __init__(
        self,
        store: SchedulingStore,
        directory: PetDirectory,
        settings: Optional[SchedulingSettings] = None,
        event_sink: Optional[EventSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.directory = directory
        self.settings = settings or SchedulingSettings.from_environment()
        self.event_sink = event_sink if event_sink is not None else LoggingEventSink()
        self.clock = clock or get_current_utc

        self.resolver = AvailabilityResolver(
            self.settings.clinic_timezone, self.settings.default_slot_minutes
        )
        self.conflicts = ConflictDetector(self.settings.clinic_timezone)
        self.lifecycle = LifecycleManager(self.settings.cancellation_notice)

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    @staticmethod
    def _validate(schema: Type[RequestT], data: Union[RequestT, Dict[str, Any]]) -> RequestT:
        if isinstance(data, schema):
            return data
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise ValidationException(
                f"Invalid {schema.__name__}",
                validation_errors=format_validation_errors(e.errors()),
            ) from e

    async def _bookable_veterinarian(
        self, tx: SchedulingTransaction, veterinarian_id: uuid.UUID
    ) -> Veterinarian:
        veterinarian = await tx.lock_veterinarian(veterinarian_id)
        if veterinarian is None or not veterinarian.is_active:
            raise NotFoundError(resource="veterinarian", resource_id=veterinarian_id)
        return veterinarian

    # Availability

    async def request_availability(
        self,
        day: Union[date, AvailabilityQuery, Dict[str, Any]],
        veterinarian_id: Optional[uuid.UUID] = None,
        only_available: bool = False,
    ) -> AvailabilityResponse:
        """
        Compute every active veterinarian's slot map for a clinic-local day.

        Read-only and idempotent; never takes the scheduling lock.

        Raises:
            NotFoundError: If ``veterinarian_id`` names no active veterinarian
        """
        if isinstance(day, date):
            day = {
                "date": day,
                "veterinarian_id": veterinarian_id,
                "only_available": only_available,
            }
        query = self._validate(AvailabilityQuery, day)

        if query.veterinarian_id is not None:
            veterinarian = await self.store.get_veterinarian(query.veterinarian_id)
            if veterinarian is None or not veterinarian.is_active:
                raise NotFoundError(
                    resource="veterinarian", resource_id=query.veterinarian_id
                )
            veterinarians = [veterinarian]
        else:
            veterinarians = await self.store.list_veterinarians(active_only=True)

        tz = self.settings.clinic_timezone
        day_start, day_end = local_day_bounds(query.date, tz)
        appointments = await self.store.list_active_appointments(
            [v.id for v in veterinarians], day_start, day_end
        )

        results = self.resolver.resolve(
            query.date,
            veterinarians,
            group_by_veterinarian(appointments),
            self._now(),
            self.settings.booking_notice,
        )
        if query.only_available:
            results = [r for r in results if r.is_available]

        return AvailabilityResponse(
            date=query.date,
            timezone=tz,
            veterinarians=[
                VeterinarianAvailabilityResponse.model_validate(r) for r in results
            ],
        )

    # Booking

    async def book_appointment(
        self, request: Union[BookingRequest, Dict[str, Any]], actor: Actor
    ) -> Appointment:
        """
        Book an appointment in PENDING.

        Raises:
            ValidationException: If the request is malformed
            NotFoundError: Unknown pet, pet not owned by a client caller, or
                unknown/inactive veterinarian
            PastDateError: Start is before now plus the booking notice
            OutsideWorkingHoursError: No working-hours window contains it
            ConflictError: It overlaps an active appointment
        """
        request = self._validate(BookingRequest, request)

        owner_id = await self.directory.get_owner_id(request.pet_id)
        if owner_id is None or (actor.role == ActorRole.CLIENT and owner_id != actor.id):
            raise NotFoundError(resource="pet", resource_id=request.pet_id)

        appointment_type = request.appointment_type or infer_appointment_type(
            request.reason
        )
        duration = (
            request.duration_minutes
            or get_appointment_type_info(appointment_type).duration_minutes
        )

        now = self._now()
        appointment = self.lifecycle.new_appointment(
            pet_id=request.pet_id,
            client_id=owner_id,
            veterinarian_id=request.veterinarian_id,
            appointment_type=appointment_type,
            scheduled_at=request.scheduled_at,
            duration_minutes=duration,
            reason=request.reason,
            notes=request.notes,
            created_at=now,
            created_by=actor.id,
            updated_by=actor.id,
        )

        if request.veterinarian_id is None:
            # Unassigned bookings are checked fully when a veterinarian confirms
            self.conflicts.check_not_past(
                appointment.scheduled_at, now, self.settings.booking_notice
            )
            async with self.store.serialized() as tx:
                await tx.add_appointment(appointment)
        else:
            async with self.store.serialized(request.veterinarian_id) as tx:
                veterinarian = await self._bookable_veterinarian(
                    tx, request.veterinarian_id
                )
                existing = await tx.find_active_appointments(
                    veterinarian.id, appointment.scheduled_at, appointment.end_time
                )
                self.conflicts.check(
                    veterinarian.id,
                    appointment.scheduled_at,
                    appointment.duration_minutes,
                    veterinarian.working_hours,
                    existing,
                    now,
                    self.settings.booking_notice,
                )
                await tx.add_appointment(appointment)

        logger.info(
            f"Booked appointment {appointment.id} at "
            f"{appointment.scheduled_at.isoformat()} for pet {appointment.pet_id}"
        )
        await dispatch_event(
            self.event_sink,
            SchedulingEvent.for_appointment(
                SchedulingEventType.BOOKED, appointment, actor.id, now
            ),
        )
        return appointment

    # Lifecycle

    async def transition_appointment(
        self,
        appointment_id: uuid.UUID,
        target: Union[AppointmentStatus, str],
        actor: Actor,
        reason: Optional[str] = None,
        veterinarian_id: Optional[uuid.UUID] = None,
    ) -> Appointment:
        """
        Move an appointment to ``target``.

        Confirming an unassigned appointment assigns a veterinarian: the
        caller when a veterinarian confirms, ``veterinarian_id`` when an
        admin does. The assignment is re-checked for conflicts.

        Raises:
            NotFoundError: Unknown appointment, or unknown assigned veterinarian
            InvalidTransitionError: The lifecycle table forbids the change
            PastDateError, OutsideWorkingHoursError, ConflictError: The
                assignment does not fit the veterinarian's calendar
        """
        request = self._validate(
            TransitionRequest,
            {
                "target_status": target,
                "reason": reason,
                "veterinarian_id": veterinarian_id,
            },
        )
        target = request.target_status

        current = await self.store.get_appointment(appointment_id)
        if current is None:
            raise NotFoundError(resource="appointment", resource_id=appointment_id)

        assign_to = self._assignee(current, request, actor)
        now = self._now()

        async with self.store.serialized(
            current.veterinarian_id or current.id, assign_to
        ) as tx:
            appointment = await tx.get_appointment(appointment_id)
            if appointment is None:
                raise NotFoundError(resource="appointment", resource_id=appointment_id)

            self.lifecycle.validate(appointment, target, actor, now)

            if assign_to is not None and appointment.veterinarian_id is None:
                veterinarian = await self._bookable_veterinarian(tx, assign_to)
                existing = await tx.find_active_appointments(
                    veterinarian.id, appointment.scheduled_at, appointment.end_time
                )
                self.conflicts.check(
                    veterinarian.id,
                    appointment.scheduled_at,
                    appointment.duration_minutes,
                    veterinarian.working_hours,
                    existing,
                    now,
                    exclude_id=appointment.id,
                )
            else:
                assign_to = None

            previous = self.lifecycle.apply(
                appointment,
                target,
                actor,
                now,
                reason=request.reason,
                assign_to=assign_to,
            )
            await tx.save_appointment(appointment)

        await dispatch_event(
            self.event_sink,
            SchedulingEvent.for_appointment(
                SchedulingEventType.TRANSITIONED,
                appointment,
                actor.id,
                now,
                previous_status=previous,
            ),
        )
        return appointment

    def _assignee(
        self, appointment: Appointment, request: TransitionRequest, actor: Actor
    ) -> Optional[uuid.UUID]:
        """Veterinarian to assign when confirming an unassigned appointment."""
        if request.target_status != AppointmentStatus.CONFIRMED:
            return None

        if appointment.veterinarian_id is not None:
            if request.veterinarian_id not in (None, appointment.veterinarian_id):
                raise InvalidTransitionError(
                    "Appointment is already assigned to another veterinarian",
                    current_status=appointment.status,
                    target_status=request.target_status,
                    actor_role=actor.role,
                )
            return None

        if actor.role == ActorRole.VETERINARIAN:
            if request.veterinarian_id not in (None, actor.id):
                raise InvalidTransitionError(
                    "Veterinarians can only assign appointments to themselves",
                    current_status=appointment.status,
                    target_status=request.target_status,
                    actor_role=actor.role,
                )
            return actor.id

        if actor.role == ActorRole.ADMIN and request.veterinarian_id is None:
            raise InvalidTransitionError(
                "A veterinarian must be named to confirm an unassigned appointment",
                current_status=appointment.status,
                target_status=request.target_status,
                actor_role=actor.role,
            )
        return request.veterinarian_id

    async def cancel_appointment(
        self, appointment_id: uuid.UUID, actor: Actor, reason: Optional[str] = None
    ) -> Appointment:
        """Cancel an appointment; see :meth:`transition_appointment`."""
        return await self.transition_appointment(
            appointment_id, AppointmentStatus.CANCELLED, actor, reason=reason
        )

    async def reschedule_appointment(
        self,
        appointment_id: uuid.UUID,
        scheduled_at: datetime,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Appointment:
        """
        Move a pending appointment to a new start time.

        The new interval goes through the same checks as a booking, ignoring
        the appointment's own current interval. Unassigned appointments only
        have their start checked against the booking notice.

        Raises:
            ValidationException: If the new start is naive or the reason too long
            NotFoundError: Unknown appointment, or not visible to ``actor``
            InvalidTransitionError: The appointment is no longer pending
            PastDateError, OutsideWorkingHoursError, ConflictError: The new
                interval does not fit the veterinarian's calendar
        """
        request = self._validate(
            RescheduleRequest, {"scheduled_at": scheduled_at, "reason": reason}
        )

        current = await self.store.get_appointment(appointment_id)
        if current is None or not self.lifecycle.can_act_on(current, actor):
            raise NotFoundError(resource="appointment", resource_id=appointment_id)

        now = self._now()
        async with self.store.serialized(current.veterinarian_id or current.id) as tx:
            appointment = await tx.get_appointment(appointment_id)
            if appointment is None:
                raise NotFoundError(resource="appointment", resource_id=appointment_id)
            if appointment.status != AppointmentStatus.PENDING:
                raise InvalidTransitionError(
                    "Only pending appointments can be rescheduled",
                    current_status=appointment.status,
                    actor_role=actor.role,
                )

            new_end = request.scheduled_at + timedelta(
                minutes=appointment.duration_minutes
            )
            if appointment.veterinarian_id is None:
                self.conflicts.check_not_past(
                    request.scheduled_at, now, self.settings.booking_notice
                )
            else:
                veterinarian = await self._bookable_veterinarian(
                    tx, appointment.veterinarian_id
                )
                existing = await tx.find_active_appointments(
                    veterinarian.id, request.scheduled_at, new_end
                )
                self.conflicts.check(
                    veterinarian.id,
                    request.scheduled_at,
                    appointment.duration_minutes,
                    veterinarian.working_hours,
                    existing,
                    now,
                    self.settings.booking_notice,
                    exclude_id=appointment.id,
                )

            previous_start = appointment.scheduled_at
            appointment.record_reschedule(
                request.scheduled_at, now, actor_id=actor.id, reason=request.reason
            )
            await tx.save_appointment(appointment)

        logger.info(
            f"Rescheduled appointment {appointment.id} from "
            f"{previous_start.isoformat()} to {appointment.scheduled_at.isoformat()}"
        )
        await dispatch_event(
            self.event_sink,
            SchedulingEvent.for_appointment(
                SchedulingEventType.RESCHEDULED, appointment, actor.id, now
            ),
        )
        return appointment

    # Queries

    async def get_appointment(
        self, appointment_id: uuid.UUID, actor: Optional[Actor] = None
    ) -> Appointment:
        """
        Load one appointment.

        When ``actor`` is given, appointments the caller may not act on are
        reported as missing.

        Raises:
            NotFoundError: Unknown or not visible to ``actor``
        """
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None or (
            actor is not None and not self.lifecycle.can_act_on(appointment, actor)
        ):
            raise NotFoundError(resource="appointment", resource_id=appointment_id)
        return appointment

    async def list_appointments(
        self,
        actor: Actor,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        """
        Appointments visible to ``actor``, ordered by start time.

        Clients see their own. Veterinarians see those assigned to them plus
        unassigned pending ones. Admins see everything. ``start`` and ``end``
        restrict the result to appointments starting in ``[start, end)``,
        which is how calendar views page through a date range.

        Raises:
            ValidationException: If a bound is naive or the range is empty
        """
        for name, bound in (("start", start), ("end", end)):
            if bound is not None and (bound.tzinfo is None or bound.utcoffset() is None):
                raise ValidationException(
                    "Range bounds must be timezone-aware", field=name, value=bound
                )
        if start is not None and end is not None and end <= start:
            raise ValidationException(
                "Range end must be after its start", field="end", value=end
            )

        filters: Dict[str, Any] = {"status": status, "start": start, "end": end}
        if actor.role == ActorRole.CLIENT:
            return await self.store.list_appointments(client_id=actor.id, **filters)
        if actor.role == ActorRole.VETERINARIAN:
            return await self.store.list_appointments(
                veterinarian_id=actor.id,
                include_unassigned_pending=True,
                **filters,
            )
        return await self.store.list_appointments(**filters)

    def list_appointment_types(self) -> List[AppointmentTypeResponse]:
        """The appointment type catalog, serialized for display."""
        return [
            AppointmentTypeResponse.model_validate(info)
            for info in list_appointment_types()
        ]
