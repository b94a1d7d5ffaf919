"""Pet directory: resolves which client owns a pet."""

import uuid
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional


class PetDirectory(ABC):
    """Lookup boundary to the pet/client system of record."""

    @abstractmethod
    async def get_owner_id(self, pet_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Return the owning client's id, or None for an unknown pet."""


class InMemoryPetDirectory(PetDirectory):
    """Dictionary-backed directory for tests and embedding."""

    def __init__(self, owners: Optional[Mapping[uuid.UUID, uuid.UUID]] = None):
        self._owners: Dict[uuid.UUID, uuid.UUID] = dict(owners or {})

    def register(self, pet_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        self._owners[pet_id] = owner_id

    def remove(self, pet_id: uuid.UUID) -> None:
        self._owners.pop(pet_id, None)

    async def get_owner_id(self, pet_id: uuid.UUID) -> Optional[uuid.UUID]:
        return self._owners.get(pet_id)
