"""
Ports (interfaces) for session persistence.

These define the contract that infrastructure adapters must implement.
The Session Service depends on this abstraction, not on concrete storage.
"""

from abc import ABC, abstractmethod

from .models import Card, ProgressRecord, SerializedState


class SessionPersistenceAdapter(ABC):
    """
    Port for loading card sets and storing engine snapshots.

    Implementations:
        - InMemoryAdapter: Dict-backed, for tests and demos.
        - VaultStoreAdapter: YAML/Markdown libraries plus JSON progress files.
    """

    @abstractmethod
    async def load_library_cards(self, library_id: str) -> list[Card]:
        """
        Load every card of a library, in library order.

        Raises:
            NotFoundError: The library does not exist or is not accessible.
        """
        pass

    @abstractmethod
    async def load_progress(self, user_id: str, library_id: str) -> SerializedState | None:
        """
        Load the last saved snapshot for a user and library.

        Returns:
            The snapshot, or None if nothing was saved yet.

        Raises:
            MalformedStateError: A stored document exists but cannot be decoded.
        """
        pass

    @abstractmethod
    async def save_progress(self, record: ProgressRecord) -> None:
        """
        Persist a snapshot, replacing any previous one for the same key.

        Must preserve field-level fidelity (numbers stay numbers).
        """
        pass
