"""In-memory SessionPersistenceAdapter for tests, demos and early development."""

import copy
import logging
from collections.abc import Iterable
from typing import Any

from smartlearn.application.learn.codec import from_document, to_document
from smartlearn.domain.learn.errors import NotFoundError
from smartlearn.domain.learn.models import Card, ProgressRecord, SerializedState
from smartlearn.domain.learn.ports import SessionPersistenceAdapter

logger = logging.getLogger(__name__)


class InMemoryAdapter(SessionPersistenceAdapter):
    """
    Dict-backed adapter.

    Snapshots are stored as documents, the same shape a document store would
    hold, so a reload goes through the same validation as real storage.
    """

    def __init__(self):
        self.libraries: dict[str, list[Card]] = {}
        self.progress: dict[str, dict[str, Any]] = {}
        self.save_count = 0

    @staticmethod
    def _key(user_id: str, library_id: str) -> str:
        return f"{user_id}::{library_id}"

    def upsert_library(self, library_id: str, cards: Iterable[Card]) -> None:
        self.libraries[library_id] = list(cards)

    async def load_library_cards(self, library_id: str) -> list[Card]:
        cards = self.libraries.get(library_id)
        if cards is None:
            raise NotFoundError(f"Library {library_id!r} not found")
        return list(cards)

    async def load_progress(self, user_id: str, library_id: str) -> SerializedState | None:
        stored = self.progress.get(self._key(user_id, library_id))
        if stored is None:
            return None
        return from_document(stored["engine_state"])

    async def save_progress(self, record: ProgressRecord) -> None:
        self.progress[self._key(record.user_id, record.library_id)] = {
            "user_id": record.user_id,
            "library_id": record.library_id,
            "engine_state": copy.deepcopy(to_document(record.engine_state)),
            "updated_at": record.updated_at,
        }
        self.save_count += 1
        logger.debug(f"Saved progress for {record.user_id}::{record.library_id}")
