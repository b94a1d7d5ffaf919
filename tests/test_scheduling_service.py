"""
Tests for the scheduling service over the in-memory store.
"""

import uuid
from datetime import timedelta

import pytest

from vet_scheduler.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OutsideWorkingHoursError,
    PastDateError,
    ValidationException,
)
from vet_scheduler.models import (
    Actor,
    AppointmentStatus,
    AppointmentType,
)
from vet_scheduler.scheduling import (
    EventSink,
    SchedulingEventType,
    SchedulingService,
    SlotStatus,
)
from vet_scheduler.schemas import AppointmentTypeResponse
from vet_scheduler.utils.config import SchedulingSettings


async def book(service, pet_id, actor, veterinarian, start, **extra):
    request = {
        "pet_id": pet_id,
        "veterinarian_id": veterinarian.id if veterinarian else None,
        "scheduled_at": start,
    }
    request.update(extra)
    return await service.book_appointment(request, actor)


class FailingEventSink(EventSink):
    async def emit(self, event):
        raise RuntimeError("notification service down")


class TestScenarios:
    """End-to-end scheduling scenarios on a Monday 09:00-12:00 calendar."""

    @pytest.mark.asyncio
    async def test_empty_calendar_has_six_free_slots(
        self, service, veterinarian, monday, at, free_slot_starts
    ):
        """Scenario A: no appointments yields every slot of the morning."""
        availability = await service.request_availability(monday)

        entry = availability.for_veterinarian(veterinarian.id)
        assert free_slot_starts(entry) == [
            at(9), at(9, 30), at(10), at(10, 30), at(11), at(11, 30)
        ]
        assert entry.free_slot_count == 6

    @pytest.mark.asyncio
    async def test_confirmed_appointment_removes_its_slot(
        self, service, veterinarian, vet_actor, pet_id, client_actor, monday, at,
        free_slot_starts,
    ):
        """Scenario B: a confirmed 10:00-10:30 visit leaves five free slots."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(
            booked.id, AppointmentStatus.CONFIRMED, vet_actor
        )

        availability = await service.request_availability(monday)

        entry = availability.for_veterinarian(veterinarian.id)
        assert free_slot_starts(entry) == [
            at(9), at(9, 30), at(10, 30), at(11), at(11, 30)
        ]
        assert [s.status for s in entry.slots if s.start == at(10)] == [
            SlotStatus.OCCUPIED
        ]

    @pytest.mark.asyncio
    async def test_booking_taken_slot_conflicts(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Scenario C: booking 10:00 again raises ConflictError."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(
            booked.id, AppointmentStatus.CONFIRMED, vet_actor
        )

        with pytest.raises(ConflictError) as exc_info:
            await book(service, pet_id, client_actor, veterinarian, at(10))

        assert exc_info.value.details["conflicting_appointment_id"] == str(booked.id)

    @pytest.mark.asyncio
    async def test_booking_before_opening_is_outside_hours(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Scenario D: 08:00 is before working hours."""
        with pytest.raises(OutsideWorkingHoursError):
            await book(service, pet_id, client_actor, veterinarian, at(8))

    @pytest.mark.asyncio
    async def test_client_cannot_complete_pending(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Scenario E: a client completing a pending appointment is rejected."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(InvalidTransitionError):
            await service.transition_appointment(
                booked.id, AppointmentStatus.COMPLETED, client_actor
            )

        stored = await service.get_appointment(booked.id)
        assert stored.status == AppointmentStatus.PENDING

    @pytest.mark.asyncio
    async def test_veterinarian_confirms_pending(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at, clock
    ):
        """Scenario F: the veterinarian confirms a pending appointment."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        confirmed = await service.transition_appointment(
            booked.id, "confirmed", vet_actor
        )

        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.confirmed_at == clock()
        stored = await service.get_appointment(booked.id)
        assert stored.status == AppointmentStatus.CONFIRMED


class TestRequestAvailability:
    """Test cases for SchedulingService.request_availability."""

    @pytest.mark.asyncio
    async def test_repeated_queries_are_identical(
        self, service, veterinarian, pet_id, client_actor, monday, at
    ):
        """Test availability is idempotent without intervening writes."""
        await book(service, pet_id, client_actor, veterinarian, at(11))

        first = await service.request_availability(monday)
        second = await service.request_availability(monday)

        assert first == second

    @pytest.mark.asyncio
    async def test_pending_appointment_occupies(
        self, service, veterinarian, pet_id, client_actor, monday, at
    ):
        """Test a pending booking already blocks its slot."""
        await book(service, pet_id, client_actor, veterinarian, at(9))

        availability = await service.request_availability(monday)

        entry = availability.for_veterinarian(veterinarian.id)
        assert entry.slots[0].status == SlotStatus.OCCUPIED

    @pytest.mark.asyncio
    async def test_cancelled_appointment_frees_slot(
        self, service, veterinarian, pet_id, client_actor, monday, at
    ):
        """Test cancelling releases the slot."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(9))
        await service.cancel_appointment(booked.id, client_actor, reason="Plans changed")

        availability = await service.request_availability(monday)

        assert availability.for_veterinarian(veterinarian.id).free_slot_count == 6

    @pytest.mark.asyncio
    async def test_free_slots_pass_the_conflict_detector(
        self, service, veterinarian, pet_id, client_actor, monday, at, clock
    ):
        """Test every FREE slot is bookable and every OCCUPIED slot conflicts."""
        await book(service, pet_id, client_actor, veterinarian, at(9, 30))
        await book(
            service, pet_id, client_actor, veterinarian, at(10, 45),
            duration_minutes=15,
        )
        existing = await service.store.list_active_appointments(
            [veterinarian.id], at(0), at(23, 59)
        )

        availability = await service.request_availability(monday)
        entry = availability.for_veterinarian(veterinarian.id)

        for slot in entry.slots:
            if slot.status == SlotStatus.FREE:
                service.conflicts.check(
                    veterinarian.id, slot.start, 30, veterinarian.working_hours,
                    existing, clock(),
                )
            else:
                with pytest.raises(ConflictError):
                    service.conflicts.check(
                        veterinarian.id, slot.start, 30,
                        veterinarian.working_hours, existing, clock(),
                    )

    @pytest.mark.asyncio
    async def test_past_slots_unavailable(
        self, service, veterinarian, monday, at, clock
    ):
        """Test slots already started read unavailable."""
        clock.set(at(10, 5))

        availability = await service.request_availability(monday)

        statuses = [s.status for s in availability.for_veterinarian(veterinarian.id).slots]
        assert statuses[:3] == [SlotStatus.UNAVAILABLE] * 3
        assert statuses[3:] == [SlotStatus.FREE] * 3

    @pytest.mark.asyncio
    async def test_booking_notice_marks_near_slots_unavailable(
        self, store, pet_directory, event_sink, clock, veterinarian, monday, at
    ):
        """Test the booking notice window hides slots that start too soon."""
        service = SchedulingService(
            store,
            pet_directory,
            settings=SchedulingSettings(booking_notice_minutes=60),
            event_sink=event_sink,
            clock=clock,
        )
        clock.set(at(9))

        availability = await service.request_availability(monday)

        entry = availability.for_veterinarian(veterinarian.id)
        assert [s.status for s in entry.slots[:2]] == [SlotStatus.UNAVAILABLE] * 2
        assert entry.slots[2].status == SlotStatus.FREE

    @pytest.mark.asyncio
    async def test_orders_veterinarians_by_name(
        self, service, store, veterinarian_factory, monday
    ):
        """Test entries are ordered by veterinarian name."""
        await veterinarian_factory.create(store, name="Dr. Zhou")
        await veterinarian_factory.create(store, name="dr. moreno")
        await veterinarian_factory.create(store, name="Dr. Abbott")

        availability = await service.request_availability(monday)

        assert [v.name for v in availability.veterinarians] == [
            "Dr. Abbott", "dr. moreno", "Dr. Zhou"
        ]

    @pytest.mark.asyncio
    async def test_inactive_veterinarians_are_hidden(
        self, service, store, veterinarian_factory, veterinarian, monday
    ):
        """Test inactive profiles are left out."""
        retired = await veterinarian_factory.create(store, is_active=False)

        availability = await service.request_availability(monday)

        assert availability.for_veterinarian(retired.id) is None
        assert availability.for_veterinarian(veterinarian.id) is not None

    @pytest.mark.asyncio
    async def test_only_available_filter(
        self, service, store, veterinarian_factory, veterinarian, monday
    ):
        """Test veterinarians with no free slot can be filtered out."""
        await veterinarian_factory.create(store, hours={3: [("09:00", "17:00")]})

        availability = await service.request_availability(
            {"date": monday, "only_available": True}
        )

        assert [v.veterinarian_id for v in availability.veterinarians] == [
            veterinarian.id
        ]
        assert availability.available_veterinarians == availability.veterinarians

    @pytest.mark.asyncio
    async def test_single_veterinarian_query(
        self, service, store, veterinarian_factory, veterinarian, monday
    ):
        """Test restricting the answer to one veterinarian."""
        await veterinarian_factory.create(store)

        availability = await service.request_availability(
            monday, veterinarian_id=veterinarian.id
        )

        assert len(availability.veterinarians) == 1
        assert availability.date == monday
        assert availability.timezone == "UTC"

    @pytest.mark.asyncio
    async def test_unknown_veterinarian(self, service, monday):
        """Test querying an unknown veterinarian."""
        with pytest.raises(NotFoundError):
            await service.request_availability(monday, veterinarian_id=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_invalid_query(self, service):
        """Test a malformed query is a validation error."""
        with pytest.raises(ValidationException) as exc_info:
            await service.request_availability({"date": "not-a-date"})

        assert "date" in exc_info.value.details["validation_errors"]


class TestBookAppointment:
    """Test cases for SchedulingService.book_appointment."""

    @pytest.mark.asyncio
    async def test_booking_starts_pending(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test a successful booking."""
        appointment = await book(
            service, pet_id, client_actor, veterinarian, at(10), reason="Limping"
        )

        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.client_id == client_actor.id
        assert appointment.veterinarian_id == veterinarian.id
        assert appointment.scheduled_at == at(10)
        assert appointment.end_time == at(10, 30)
        assert appointment.appointment_type == AppointmentType.CONSULTATION
        assert appointment.created_by == client_actor.id

        stored = await service.get_appointment(appointment.id, client_actor)
        assert stored.id == appointment.id

    @pytest.mark.asyncio
    async def test_type_inferred_from_reason(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test the reason drives the type and its default duration."""
        appointment = await book(
            service, pet_id, client_actor, veterinarian, at(9),
            reason="Annual vaccine booster",
        )

        assert appointment.appointment_type == AppointmentType.VACCINATION
        assert appointment.duration_minutes == 20

    @pytest.mark.asyncio
    async def test_explicit_type_and_duration(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test explicit type and duration override inference."""
        appointment = await book(
            service, pet_id, client_actor, veterinarian, at(9),
            reason="Vaccination", appointment_type="dental", duration_minutes=90,
        )

        assert appointment.appointment_type == AppointmentType.DENTAL
        assert appointment.duration_minutes == 90

    @pytest.mark.asyncio
    async def test_long_type_must_fit_window(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test a two hour surgery at 11:00 runs past closing."""
        with pytest.raises(OutsideWorkingHoursError):
            await book(
                service, pet_id, client_actor, veterinarian, at(11),
                appointment_type="surgery",
            )

    @pytest.mark.asyncio
    async def test_partial_overlap_conflicts(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test an interval straddling an existing booking."""
        await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(ConflictError):
            await book(service, pet_id, client_actor, veterinarian, at(9, 45))

    @pytest.mark.asyncio
    async def test_back_to_back_bookings(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test adjacent appointments are both accepted."""
        await book(service, pet_id, client_actor, veterinarian, at(10))
        await book(service, pet_id, client_actor, veterinarian, at(10, 30))

        mine = await service.list_appointments(client_actor)
        assert [a.scheduled_at for a in mine] == [at(10), at(10, 30)]

    @pytest.mark.asyncio
    async def test_past_date(
        self, service, veterinarian, pet_id, client_actor, at, clock
    ):
        """Test booking a start that has already passed."""
        clock.set(at(10, 1))

        with pytest.raises(PastDateError):
            await book(service, pet_id, client_actor, veterinarian, at(10))

    @pytest.mark.asyncio
    async def test_past_date_for_unassigned_booking(
        self, service, pet_id, client_actor, at, clock
    ):
        """Test unassigned bookings are still checked against the clock."""
        clock.set(at(12))

        with pytest.raises(PastDateError):
            await book(service, pet_id, client_actor, None, at(10))

    @pytest.mark.asyncio
    async def test_unknown_pet(self, service, veterinarian, client_actor, at):
        """Test booking for a pet that does not exist."""
        with pytest.raises(NotFoundError) as exc_info:
            await book(service, uuid.uuid4(), client_actor, veterinarian, at(10))

        assert exc_info.value.details["resource"] == "pet"

    @pytest.mark.asyncio
    async def test_client_cannot_book_other_clients_pet(
        self, service, veterinarian, pet_id, other_client_actor, at
    ):
        """Test clients book only for their own pets."""
        with pytest.raises(NotFoundError):
            await book(service, pet_id, other_client_actor, veterinarian, at(10))

    @pytest.mark.asyncio
    async def test_staff_books_on_behalf_of_owner(
        self, service, veterinarian, pet_id, client_actor, admin_actor, at
    ):
        """Test an admin booking records the pet owner as client."""
        appointment = await book(service, pet_id, admin_actor, veterinarian, at(10))

        assert appointment.client_id == client_actor.id
        assert appointment.created_by == admin_actor.id

    @pytest.mark.asyncio
    async def test_unknown_veterinarian(self, service, pet_id, client_actor, at):
        """Test booking with a veterinarian that does not exist."""
        with pytest.raises(NotFoundError) as exc_info:
            await service.book_appointment(
                {
                    "pet_id": pet_id,
                    "veterinarian_id": uuid.uuid4(),
                    "scheduled_at": at(10),
                },
                client_actor,
            )

        assert exc_info.value.details["resource"] == "veterinarian"

    @pytest.mark.asyncio
    async def test_inactive_veterinarian(
        self, service, store, veterinarian_factory, pet_id, client_actor, at
    ):
        """Test inactive veterinarians cannot be booked."""
        retired = await veterinarian_factory.create(store, is_active=False)

        with pytest.raises(NotFoundError):
            await book(service, pet_id, client_actor, retired, at(10))

    @pytest.mark.asyncio
    async def test_naive_datetime_rejected(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test scheduled_at must carry a time zone."""
        with pytest.raises(ValidationException) as exc_info:
            await book(
                service, pet_id, client_actor, veterinarian,
                at(10).replace(tzinfo=None),
            )

        assert "scheduled_at" in exc_info.value.details["validation_errors"]

    @pytest.mark.asyncio
    async def test_offset_datetime_normalized(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test a start with an offset is stored as the same UTC instant."""
        start = "2030-01-07T11:00:00+01:00"

        appointment = await book(service, pet_id, client_actor, veterinarian, start)

        assert appointment.scheduled_at == at(10)
        assert appointment.scheduled_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_failed_booking_writes_nothing(
        self, service, veterinarian, pet_id, client_actor, admin_actor, at
    ):
        """Test a rejected booking leaves no trace."""
        with pytest.raises(OutsideWorkingHoursError):
            await book(service, pet_id, client_actor, veterinarian, at(13))

        assert await service.list_appointments(admin_actor) == []


class TestTransitions:
    """Test cases for transition_appointment and cancel_appointment."""

    @pytest.mark.asyncio
    async def test_complete_after_start(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at, clock
    ):
        """Test a confirmed appointment completes once it has started."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(booked.id, "confirmed", vet_actor)

        with pytest.raises(InvalidTransitionError):
            await service.transition_appointment(booked.id, "completed", vet_actor)

        clock.set(at(10, 20))
        completed = await service.transition_appointment(
            booked.id, AppointmentStatus.COMPLETED, vet_actor
        )

        assert completed.status == AppointmentStatus.COMPLETED
        assert completed.completed_at == at(10, 20)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target",
        [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED],
    )
    async def test_cancelled_is_terminal(
        self, service, veterinarian, pet_id, client_actor, admin_actor, at, target
    ):
        """Test nothing leaves CANCELLED."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.cancel_appointment(booked.id, client_actor)

        with pytest.raises(InvalidTransitionError):
            await service.transition_appointment(booked.id, target, admin_actor)

    @pytest.mark.asyncio
    async def test_cancel_keeps_reason(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test the cancellation reason is stored."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        cancelled = await service.cancel_appointment(
            booked.id, client_actor, reason="  Feeling better  "
        )

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancellation_reason == "Feeling better"

    @pytest.mark.asyncio
    async def test_reason_only_for_cancellation(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Test a reason on a confirmation is a validation error."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(ValidationException):
            await service.transition_appointment(
                booked.id, "confirmed", vet_actor, reason="Looks fine"
            )

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, veterinarian, pet_id, client_actor, at):
        """Test a status outside the enumeration."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(ValidationException):
            await service.transition_appointment(booked.id, "rescheduled", client_actor)

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, service, admin_actor):
        """Test transitioning an appointment that does not exist."""
        with pytest.raises(NotFoundError):
            await service.transition_appointment(
                uuid.uuid4(), AppointmentStatus.CANCELLED, admin_actor
            )

    @pytest.mark.asyncio
    async def test_other_client_cannot_cancel(
        self, service, veterinarian, pet_id, client_actor, other_client_actor, at
    ):
        """Test clients cannot cancel appointments they do not own."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(InvalidTransitionError):
            await service.cancel_appointment(booked.id, other_client_actor)

    @pytest.mark.asyncio
    async def test_client_cancellation_notice(
        self, store, pet_directory, event_sink, clock, veterinarian, vet_actor,
        pet_id, client_actor, at,
    ):
        """Test clients must cancel confirmed visits ahead of the notice window."""
        service = SchedulingService(
            store,
            pet_directory,
            settings=SchedulingSettings(cancellation_notice_minutes=24 * 60),
            event_sink=event_sink,
            clock=clock,
        )
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(booked.id, "confirmed", vet_actor)

        clock.set(at(10) - timedelta(hours=2))
        with pytest.raises(InvalidTransitionError):
            await service.cancel_appointment(booked.id, client_actor)

        cancelled = await service.cancel_appointment(booked.id, vet_actor)
        assert cancelled.status == AppointmentStatus.CANCELLED


class TestAssignment:
    """Test cases for confirming unassigned appointments."""

    @pytest.mark.asyncio
    async def test_unassigned_booking_occupies_nobody(
        self, service, veterinarian, pet_id, client_actor, monday, at
    ):
        """Test an unassigned booking does not block any calendar."""
        booked = await book(service, pet_id, client_actor, None, at(10))

        availability = await service.request_availability(monday)

        assert booked.veterinarian_id is None
        assert availability.for_veterinarian(veterinarian.id).free_slot_count == 6

    @pytest.mark.asyncio
    async def test_vet_confirmation_assigns_self(
        self, service, veterinarian, vet_actor, pet_id, client_actor, monday, at
    ):
        """Test a veterinarian picking up an unassigned appointment."""
        booked = await book(service, pet_id, client_actor, None, at(10))

        confirmed = await service.transition_appointment(
            booked.id, "confirmed", vet_actor
        )

        assert confirmed.veterinarian_id == veterinarian.id
        availability = await service.request_availability(monday)
        assert availability.for_veterinarian(veterinarian.id).free_slot_count == 5

    @pytest.mark.asyncio
    async def test_assignment_is_conflict_checked(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Test assignment into a taken slot fails and leaves the booking pending."""
        await book(service, pet_id, client_actor, veterinarian, at(10))
        unassigned = await book(service, pet_id, client_actor, None, at(10))

        with pytest.raises(ConflictError):
            await service.transition_appointment(unassigned.id, "confirmed", vet_actor)

        stored = await service.get_appointment(unassigned.id)
        assert stored.status == AppointmentStatus.PENDING
        assert stored.veterinarian_id is None

    @pytest.mark.asyncio
    async def test_assignment_checks_working_hours(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Test assignment outside the veterinarian's hours fails."""
        unassigned = await book(service, pet_id, client_actor, None, at(15))

        with pytest.raises(OutsideWorkingHoursError):
            await service.transition_appointment(unassigned.id, "confirmed", vet_actor)

    @pytest.mark.asyncio
    async def test_admin_must_name_veterinarian(
        self, service, pet_id, client_actor, admin_actor, at
    ):
        """Test admins confirming unassigned work must pick a veterinarian."""
        booked = await book(service, pet_id, client_actor, None, at(10))

        with pytest.raises(InvalidTransitionError):
            await service.transition_appointment(booked.id, "confirmed", admin_actor)

    @pytest.mark.asyncio
    async def test_admin_assigns_veterinarian(
        self, service, veterinarian, pet_id, client_actor, admin_actor, at
    ):
        """Test an admin confirming with a named veterinarian."""
        booked = await book(service, pet_id, client_actor, None, at(10))

        confirmed = await service.transition_appointment(
            booked.id, "confirmed", admin_actor, veterinarian_id=veterinarian.id
        )

        assert confirmed.veterinarian_id == veterinarian.id
        assert confirmed.status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_vet_cannot_assign_colleague(
        self, service, store, veterinarian_factory, vet_actor, pet_id, client_actor, at
    ):
        """Test veterinarians only assign themselves."""
        colleague = await veterinarian_factory.create(store)
        booked = await book(service, pet_id, client_actor, None, at(10))

        with pytest.raises(InvalidTransitionError):
            await service.transition_appointment(
                booked.id, "confirmed", vet_actor, veterinarian_id=colleague.id
            )

    @pytest.mark.asyncio
    async def test_admin_assigns_unknown_veterinarian(
        self, service, pet_id, client_actor, admin_actor, at
    ):
        """Test assignment to a veterinarian that does not exist."""
        booked = await book(service, pet_id, client_actor, None, at(10))

        with pytest.raises(NotFoundError):
            await service.transition_appointment(
                booked.id, "confirmed", admin_actor, veterinarian_id=uuid.uuid4()
            )

    @pytest.mark.asyncio
    async def test_admin_cannot_reassign_on_confirm(
        self, service, store, veterinarian_factory, veterinarian, pet_id,
        client_actor, admin_actor, at,
    ):
        """Test confirming an assigned appointment for someone else is refused."""
        colleague = await veterinarian_factory.create(store)
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(InvalidTransitionError, match="already assigned"):
            await service.transition_appointment(
                booked.id, "confirmed", admin_actor, veterinarian_id=colleague.id
            )

        stored = await service.get_appointment(booked.id)
        assert stored.status == AppointmentStatus.PENDING
        assert stored.veterinarian_id == veterinarian.id

    @pytest.mark.asyncio
    async def test_confirm_naming_current_veterinarian(
        self, service, veterinarian, pet_id, client_actor, admin_actor, at
    ):
        """Test naming the veterinarian already assigned is accepted."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        confirmed = await service.transition_appointment(
            booked.id, "confirmed", admin_actor, veterinarian_id=veterinarian.id
        )

        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.veterinarian_id == veterinarian.id

    @pytest.mark.asyncio
    async def test_scheduling_locks_released(
        self, service, store, pet_id, client_actor, admin_actor, at
    ):
        """Test cancelling unassigned bookings leaves no lock behind."""
        for hour in (9, 10, 11, 12, 13):
            booked = await book(service, pet_id, client_actor, None, at(hour))
            await service.cancel_appointment(booked.id, admin_actor)

        assert len(store.locks) == 0


class TestReschedule:
    """Test cases for SchedulingService.reschedule_appointment."""

    @pytest.mark.asyncio
    async def test_moves_pending_appointment(
        self, service, veterinarian, pet_id, client_actor, monday, at, clock,
        free_slot_starts,
    ):
        """Test the old slot is released and the new one taken."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        moved = await service.reschedule_appointment(
            booked.id, at(11), client_actor, reason="Later suits better"
        )

        assert moved.scheduled_at == at(11)
        assert moved.end_time == at(11, 30)
        assert moved.status == AppointmentStatus.PENDING
        assert moved.reason == "Later suits better"
        assert moved.updated_by == client_actor.id
        assert moved.updated_at == clock()
        availability = await service.request_availability(monday)
        assert free_slot_starts(availability.for_veterinarian(veterinarian.id)) == [
            at(9), at(9, 30), at(10), at(10, 30), at(11, 30)
        ]

    @pytest.mark.asyncio
    async def test_overlapping_its_own_interval(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test a small shift does not conflict with the appointment itself."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        moved = await service.reschedule_appointment(booked.id, at(10, 15), client_actor)

        assert moved.scheduled_at == at(10, 15)

    @pytest.mark.asyncio
    async def test_conflict_leaves_appointment_unchanged(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test moving onto another booking fails without side effects."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        other = await book(service, pet_id, client_actor, veterinarian, at(11))

        with pytest.raises(ConflictError) as exc_info:
            await service.reschedule_appointment(booked.id, at(11), client_actor)

        assert exc_info.value.details["conflicting_appointment_id"] == str(other.id)
        stored = await service.get_appointment(booked.id)
        assert stored.scheduled_at == at(10)

    @pytest.mark.asyncio
    async def test_outside_working_hours(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test the new interval must fit a working-hours window."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(OutsideWorkingHoursError):
            await service.reschedule_appointment(booked.id, at(11, 45), client_actor)

    @pytest.mark.asyncio
    async def test_past_start(
        self, service, veterinarian, pet_id, client_actor, at, clock
    ):
        """Test the new start cannot lie in the past."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(PastDateError):
            await service.reschedule_appointment(
                booked.id, clock() - timedelta(hours=1), client_actor
            )

    @pytest.mark.asyncio
    async def test_only_pending(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Test confirmed appointments keep their time."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(booked.id, "confirmed", vet_actor)

        with pytest.raises(InvalidTransitionError, match="Only pending"):
            await service.reschedule_appointment(booked.id, at(11), client_actor)

    @pytest.mark.asyncio
    async def test_unassigned_checks_notice_only(
        self, store, pet_directory, event_sink, clock, pet_id, client_actor, at
    ):
        """Test unassigned appointments move freely but respect the notice."""
        service = SchedulingService(
            store,
            pet_directory,
            settings=SchedulingSettings(booking_notice_minutes=60),
            event_sink=event_sink,
            clock=clock,
        )
        booked = await book(service, pet_id, client_actor, None, at(10))

        moved = await service.reschedule_appointment(booked.id, at(15), client_actor)

        assert moved.scheduled_at == at(15)
        with pytest.raises(PastDateError):
            await service.reschedule_appointment(
                booked.id, clock() + timedelta(minutes=30), client_actor
            )

    @pytest.mark.asyncio
    async def test_other_client_cannot_reschedule(
        self, service, veterinarian, pet_id, client_actor, other_client_actor, at
    ):
        """Test someone else's appointment is reported as missing."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(NotFoundError):
            await service.reschedule_appointment(booked.id, at(11), other_client_actor)

    @pytest.mark.asyncio
    async def test_naive_start_rejected(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test the new start must be timezone-aware."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(ValidationException):
            await service.reschedule_appointment(
                booked.id, at(11).replace(tzinfo=None), client_actor
            )


class TestQueries:
    """Test cases for get_appointment, list_appointments and the type catalog."""

    @pytest.mark.asyncio
    async def test_list_by_date_range(
        self, service, veterinarian, vet_actor, pet_id, client_actor, at
    ):
        """Test a calendar range keeps appointments starting in [start, end)."""
        await book(service, pet_id, client_actor, veterinarian, at(9))
        middle = await book(service, pet_id, client_actor, veterinarian, at(10))
        late = await book(service, pet_id, client_actor, veterinarian, at(11))

        calendar = await service.list_appointments(
            vet_actor, start=at(9, 30), end=at(11)
        )
        open_ended = await service.list_appointments(client_actor, start=at(10))

        assert [a.id for a in calendar] == [middle.id]
        assert [a.id for a in open_ended] == [middle.id, late.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("naive_bound", ["start", "end"])
    async def test_range_bounds_must_be_aware(
        self, service, admin_actor, at, naive_bound
    ):
        """Test naive range bounds are rejected."""
        bounds = {"start": at(9), "end": at(12)}
        bounds[naive_bound] = bounds[naive_bound].replace(tzinfo=None)

        with pytest.raises(ValidationException):
            await service.list_appointments(admin_actor, **bounds)

    @pytest.mark.asyncio
    async def test_empty_range_rejected(self, service, admin_actor, at):
        """Test the range end must follow its start."""
        with pytest.raises(ValidationException):
            await service.list_appointments(admin_actor, start=at(12), end=at(9))

    @pytest.mark.asyncio
    async def test_get_hides_other_clients_appointments(
        self, service, veterinarian, pet_id, client_actor, other_client_actor, at
    ):
        """Test visibility follows ownership."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        with pytest.raises(NotFoundError):
            await service.get_appointment(booked.id, other_client_actor)

    @pytest.mark.asyncio
    async def test_list_by_role(
        self, service, store, veterinarian_factory, veterinarian, vet_actor,
        pet_id, client_actor, admin_actor, pet_directory, other_client_actor, at,
    ):
        """Test each role sees the appointments it may act on."""
        colleague = await veterinarian_factory.create(store)
        other_pet = uuid.uuid4()
        pet_directory.register(other_pet, other_client_actor.id)

        mine = await book(service, pet_id, client_actor, veterinarian, at(9))
        unassigned = await book(service, other_pet, other_client_actor, None, at(10))
        theirs = await book(service, other_pet, other_client_actor, colleague, at(11))

        client_view = await service.list_appointments(client_actor)
        vet_view = await service.list_appointments(vet_actor)
        admin_view = await service.list_appointments(admin_actor)

        assert [a.id for a in client_view] == [mine.id]
        assert [a.id for a in vet_view] == [mine.id, unassigned.id]
        assert [a.id for a in admin_view] == [mine.id, unassigned.id, theirs.id]

    @pytest.mark.asyncio
    async def test_list_by_status(
        self, service, veterinarian, pet_id, client_actor, at
    ):
        """Test filtering by status."""
        first = await book(service, pet_id, client_actor, veterinarian, at(9))
        await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.cancel_appointment(first.id, client_actor)

        cancelled = await service.list_appointments(
            client_actor, status=AppointmentStatus.CANCELLED
        )

        assert [a.id for a in cancelled] == [first.id]

    def test_appointment_types(self, service):
        """Test the appointment type catalog is serialized for display."""
        types = service.list_appointment_types()

        assert all(isinstance(t, AppointmentTypeResponse) for t in types)
        assert [t.type for t in types] == [t.value for t in AppointmentType]
        assert types[0].duration_minutes == 30


class TestEvents:
    """Test cases for scheduling notifications."""

    @pytest.mark.asyncio
    async def test_booking_and_transition_events(
        self, service, event_sink, veterinarian, vet_actor, pet_id, client_actor, at,
        clock,
    ):
        """Test events are emitted after each stored change."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.transition_appointment(booked.id, "confirmed", vet_actor)

        booked_events = event_sink.of_type(SchedulingEventType.BOOKED)
        transitions = event_sink.of_type(SchedulingEventType.TRANSITIONED)

        assert len(booked_events) == 1
        assert booked_events[0].appointment_id == booked.id
        assert booked_events[0].actor_id == client_actor.id
        assert booked_events[0].occurred_at == clock()
        assert len(transitions) == 1
        assert transitions[0].previous_status == AppointmentStatus.PENDING
        assert transitions[0].status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_reschedule_event(
        self, service, event_sink, veterinarian, pet_id, client_actor, at
    ):
        """Test a reschedule is announced with the new assignment state."""
        booked = await book(service, pet_id, client_actor, veterinarian, at(10))
        await service.reschedule_appointment(booked.id, at(11), client_actor)

        events = event_sink.of_type(SchedulingEventType.RESCHEDULED)

        assert len(events) == 1
        assert events[0].appointment_id == booked.id
        assert events[0].veterinarian_id == veterinarian.id
        assert events[0].status == AppointmentStatus.PENDING
        assert events[0].to_dict()["type"] == "appointment.rescheduled"

    @pytest.mark.asyncio
    async def test_rejected_request_emits_nothing(
        self, service, event_sink, veterinarian, pet_id, client_actor, at
    ):
        """Test failures are silent on the event stream."""
        with pytest.raises(OutsideWorkingHoursError):
            await book(service, pet_id, client_actor, veterinarian, at(8))

        assert event_sink.events == []

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_undo_booking(
        self, store, pet_directory, settings, clock, veterinarian, pet_id,
        client_actor, at, caplog,
    ):
        """Test a broken notification sink is logged, not raised."""
        service = SchedulingService(
            store,
            pet_directory,
            settings=settings,
            event_sink=FailingEventSink(),
            clock=clock,
        )

        booked = await book(service, pet_id, client_actor, veterinarian, at(10))

        stored = await service.get_appointment(booked.id)
        assert stored.status == AppointmentStatus.PENDING
        assert "notification service down" in caplog.text
