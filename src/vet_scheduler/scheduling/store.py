"""
Persistence boundary for the scheduling service.

Writes go through :meth:`SchedulingStore.serialized`, which holds the
per-veterinarian lock and opens a transaction for the whole
"check conflict, then write" sequence. Reads outside that block never lock.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import (
    AsyncContextManager,
    AsyncIterator,
    Dict,
    Hashable,
    Iterable,
    List,
    Optional,
    Sequence,
)

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.session import SessionManager
from ..models.appointment import (
    ACTIVE_STATUSES,
    MAX_DURATION_MINUTES,
    Appointment,
    AppointmentStatus,
)
from ..models.veterinarian import Veterinarian
from .locks import VeterinarianLockRegistry

logger = logging.getLogger(__name__)

_LOOKBACK = timedelta(minutes=MAX_DURATION_MINUTES)
_ACTIVE = sorted(ACTIVE_STATUSES, key=lambda s: s.value)


class SchedulingTransaction(ABC):
    """Reads and writes available while holding the scheduling lock."""

    @abstractmethod
    async def lock_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        """Load a veterinarian, taking a row lock where the backend has one."""

    @abstractmethod
    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Load an appointment for update."""

    @abstractmethod
    async def find_active_appointments(
        self, veterinarian_id: uuid.UUID, start: datetime, end: datetime
    ) -> List[Appointment]:
        """Active appointments of one veterinarian overlapping ``[start, end)``."""

    @abstractmethod
    async def add_appointment(self, appointment: Appointment) -> None:
        """Stage a new appointment for commit."""

    @abstractmethod
    async def save_appointment(self, appointment: Appointment) -> None:
        """Stage changes to an existing appointment for commit."""


class SchedulingStore(ABC):
    """Storage for veterinarians and appointments."""

    def __init__(self, locks: Optional[VeterinarianLockRegistry] = None):
        self.locks = locks if locks is not None else VeterinarianLockRegistry()

    @asynccontextmanager
    async def serialized(
        self, *keys: Optional[Hashable]
    ) -> AsyncIterator[SchedulingTransaction]:
        """
        Run a block under the locks for ``keys`` inside one transaction.

        The transaction commits when the block exits normally and is
        discarded when it raises.
        """
        async with self.locks.hold(*keys):
            async with self._begin() as tx:
                yield tx

    @abstractmethod
    def _begin(self) -> AsyncContextManager[SchedulingTransaction]:
        """Open a backend transaction."""

    @abstractmethod
    async def add_veterinarian(self, veterinarian: Veterinarian) -> Veterinarian:
        """Insert or replace a veterinarian profile with its working hours."""

    @abstractmethod
    async def get_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        """Load one veterinarian profile."""

    @abstractmethod
    async def list_veterinarians(self, active_only: bool = True) -> List[Veterinarian]:
        """Load veterinarian profiles."""

    @abstractmethod
    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Load one appointment."""

    @abstractmethod
    async def list_active_appointments(
        self, veterinarian_ids: Sequence[uuid.UUID], start: datetime, end: datetime
    ) -> List[Appointment]:
        """Active appointments of the given veterinarians overlapping ``[start, end)``."""

    @abstractmethod
    async def list_appointments(
        self,
        client_id: Optional[uuid.UUID] = None,
        veterinarian_id: Optional[uuid.UUID] = None,
        include_unassigned_pending: bool = False,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        """
        Appointments filtered by owner or assignee, ordered by start time.

        With ``include_unassigned_pending`` the veterinarian filter also
        matches pending appointments that nobody has picked up yet.
        ``start`` and ``end`` bound the start time to ``[start, end)``.
        """


def _overlapping(
    appointments: Iterable[Appointment], start: datetime, end: datetime
) -> List[Appointment]:
    return sorted(
        (a for a in appointments if a.is_active and a.overlaps(start, end)),
        key=lambda a: a.scheduled_at,
    )


# In-memory backend


class _InMemoryTransaction(SchedulingTransaction):
    def __init__(self, store: "InMemorySchedulingStore"):
        self._store = store
        self._staged: Dict[uuid.UUID, Appointment] = {}

    async def lock_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        return self._store._veterinarians.get(veterinarian_id)

    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        return self._staged.get(appointment_id) or self._store._appointments.get(
            appointment_id
        )

    async def find_active_appointments(
        self, veterinarian_id: uuid.UUID, start: datetime, end: datetime
    ) -> List[Appointment]:
        candidates = list(self._store._appointments.values()) + list(
            self._staged.values()
        )
        return _overlapping(
            (a for a in candidates if a.veterinarian_id == veterinarian_id), start, end
        )

    async def add_appointment(self, appointment: Appointment) -> None:
        self._staged[appointment.id] = appointment

    async def save_appointment(self, appointment: Appointment) -> None:
        self._staged[appointment.id] = appointment

    def commit(self) -> None:
        self._store._appointments.update(self._staged)
        self._staged.clear()


class InMemorySchedulingStore(SchedulingStore):
    """
    Dictionary-backed store for tests and embedding.

    Objects are returned by reference, so callers must not modify them
    outside :meth:`serialized`.
    """

    def __init__(self, locks: Optional[VeterinarianLockRegistry] = None):
        super().__init__(locks)
        self._veterinarians: Dict[uuid.UUID, Veterinarian] = {}
        self._appointments: Dict[uuid.UUID, Appointment] = {}

    @asynccontextmanager
    async def _begin(self) -> AsyncIterator[SchedulingTransaction]:
        tx = _InMemoryTransaction(self)
        yield tx
        tx.commit()

    async def add_veterinarian(self, veterinarian: Veterinarian) -> Veterinarian:
        self._veterinarians[veterinarian.id] = veterinarian
        return veterinarian

    async def get_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        return self._veterinarians.get(veterinarian_id)

    async def list_veterinarians(self, active_only: bool = True) -> List[Veterinarian]:
        return [
            v
            for v in self._veterinarians.values()
            if v.is_active or not active_only
        ]

    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        return self._appointments.get(appointment_id)

    async def list_active_appointments(
        self, veterinarian_ids: Sequence[uuid.UUID], start: datetime, end: datetime
    ) -> List[Appointment]:
        wanted = set(veterinarian_ids)
        return _overlapping(
            (
                a
                for a in self._appointments.values()
                if a.veterinarian_id in wanted
            ),
            start,
            end,
        )

    async def list_appointments(
        self,
        client_id: Optional[uuid.UUID] = None,
        veterinarian_id: Optional[uuid.UUID] = None,
        include_unassigned_pending: bool = False,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        def matches(a: Appointment) -> bool:
            if client_id is not None and a.client_id != client_id:
                return False
            if status is not None and a.status != status:
                return False
            if start is not None and a.scheduled_at < start:
                return False
            if end is not None and a.scheduled_at >= end:
                return False
            if veterinarian_id is not None and a.veterinarian_id != veterinarian_id:
                return (
                    include_unassigned_pending
                    and a.veterinarian_id is None
                    and a.status == AppointmentStatus.PENDING
                )
            return True

        return sorted(
            (a for a in self._appointments.values() if matches(a)),
            key=lambda a: (a.scheduled_at, str(a.id)),
        )


# SQLAlchemy backend


class _SqlAlchemyTransaction(SchedulingTransaction):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        result = await self.session.execute(
            select(Veterinarian)
            .where(Veterinarian.id == veterinarian_id)
            .with_for_update()
        )
        return result.scalars().first()

    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        return await self.session.get(Appointment, appointment_id, with_for_update=True)

    async def find_active_appointments(
        self, veterinarian_id: uuid.UUID, start: datetime, end: datetime
    ) -> List[Appointment]:
        result = await self.session.execute(
            select(Appointment).where(
                Appointment.veterinarian_id == veterinarian_id,
                Appointment.status.in_(_ACTIVE),
                Appointment.scheduled_at < end,
                Appointment.scheduled_at >= start - _LOOKBACK,
            )
        )
        return _overlapping(result.scalars().all(), start, end)

    async def add_appointment(self, appointment: Appointment) -> None:
        self.session.add(appointment)

    async def save_appointment(self, appointment: Appointment) -> None:
        self.session.add(appointment)


class SqlAlchemySchedulingStore(SchedulingStore):
    """
    Store backed by the async SQLAlchemy session layer.

    Serialized blocks run in one database transaction that starts by
    locking the veterinarian row with ``SELECT ... FOR UPDATE``, which
    extends the in-process lock across processes on PostgreSQL.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        locks: Optional[VeterinarianLockRegistry] = None,
    ):
        super().__init__(locks)
        self.session_manager = session_manager

    @asynccontextmanager
    async def _begin(self) -> AsyncIterator[SchedulingTransaction]:
        async with self.session_manager.get_transaction() as session:
            yield _SqlAlchemyTransaction(session)

    async def add_veterinarian(self, veterinarian: Veterinarian) -> Veterinarian:
        async with self.session_manager.get_transaction() as session:
            veterinarian = await session.merge(veterinarian)
        logger.info(f"Stored veterinarian {veterinarian.id} ({veterinarian.name})")
        return veterinarian

    async def get_veterinarian(
        self, veterinarian_id: uuid.UUID
    ) -> Optional[Veterinarian]:
        async with self.session_manager.get_session() as session:
            return await session.get(Veterinarian, veterinarian_id)

    async def list_veterinarians(self, active_only: bool = True) -> List[Veterinarian]:
        stmt = select(Veterinarian).order_by(Veterinarian.name, Veterinarian.id)
        if active_only:
            stmt = stmt.where(Veterinarian.is_active.is_(True))
        async with self.session_manager.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_appointment(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        async with self.session_manager.get_session() as session:
            return await session.get(Appointment, appointment_id)

    async def list_active_appointments(
        self, veterinarian_ids: Sequence[uuid.UUID], start: datetime, end: datetime
    ) -> List[Appointment]:
        if not veterinarian_ids:
            return []
        stmt = select(Appointment).where(
            Appointment.veterinarian_id.in_(list(veterinarian_ids)),
            Appointment.status.in_(_ACTIVE),
            Appointment.scheduled_at < end,
            Appointment.scheduled_at >= start - _LOOKBACK,
        )
        async with self.session_manager.get_session() as session:
            result = await session.execute(stmt)
            return _overlapping(result.scalars().all(), start, end)

    async def list_appointments(
        self,
        client_id: Optional[uuid.UUID] = None,
        veterinarian_id: Optional[uuid.UUID] = None,
        include_unassigned_pending: bool = False,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        stmt = select(Appointment).order_by(Appointment.scheduled_at, Appointment.id)
        if client_id is not None:
            stmt = stmt.where(Appointment.client_id == client_id)
        if status is not None:
            stmt = stmt.where(Appointment.status == status)
        if start is not None:
            stmt = stmt.where(Appointment.scheduled_at >= start)
        if end is not None:
            stmt = stmt.where(Appointment.scheduled_at < end)
        if veterinarian_id is not None:
            assigned = Appointment.veterinarian_id == veterinarian_id
            if include_unassigned_pending:
                stmt = stmt.where(
                    or_(
                        assigned,
                        and_(
                            Appointment.veterinarian_id.is_(None),
                            Appointment.status == AppointmentStatus.PENDING,
                        ),
                    )
                )
            else:
                stmt = stmt.where(assigned)

        async with self.session_manager.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
