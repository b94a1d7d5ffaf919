"""
Caller identity supplied by the identity provider.

Actors are not persisted; every mutating scheduling call receives one.
"""

import enum
import uuid
from dataclasses import dataclass


class ActorRole(enum.Enum):
    """Enumeration of caller roles recognised by the scheduler."""

    CLIENT = "client"
    VETERINARIAN = "veterinarian"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a scheduling operation."""

    id: uuid.UUID
    role: ActorRole

    @classmethod
    def client(cls, actor_id: uuid.UUID) -> "Actor":
        return cls(actor_id, ActorRole.CLIENT)

    @classmethod
    def veterinarian(cls, actor_id: uuid.UUID) -> "Actor":
        return cls(actor_id, ActorRole.VETERINARIAN)

    @classmethod
    def admin(cls, actor_id: uuid.UUID) -> "Actor":
        return cls(actor_id, ActorRole.ADMIN)

    @property
    def is_client(self) -> bool:
        return self.role == ActorRole.CLIENT

    @property
    def is_veterinarian(self) -> bool:
        return self.role == ActorRole.VETERINARIAN

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
