"""
Study Session Service: Application layer orchestrator.

Owns one LearnEngine per (user, library) pair and keeps it in step with
durable storage through a SessionPersistenceAdapter.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from smartlearn.application.learn.engine import LearnEngine
from smartlearn.application.learn.progress import ProgressCalculator, ProgressSummary
from smartlearn.domain.learn.errors import MalformedStateError
from smartlearn.domain.learn.models import (
    CardState,
    DifficultyMeta,
    DifficultyRecord,
    LearnParams,
    ProgressRecord,
    Question,
    Result,
    ReviewDifficultyChoice,
    SerializedState,
)
from smartlearn.domain.learn.ports import SessionPersistenceAdapter

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """A cached engine plus the snapshot last written for it."""

    engine: LearnEngine
    user_id: str
    library_id: str
    last_saved: SerializedState | None = None


class SessionService:
    """
    Application service for study sessions.

    Follows Dependency Inversion: depends on the SessionPersistenceAdapter
    abstraction, not concrete storage. Every mutating call is written through
    to the adapter before returning. Calls for the same key are serialized by a
    per-key asyncio.Lock, so a key never has two live engines.
    """

    def __init__(
        self,
        adapter: SessionPersistenceAdapter,
        params: LearnParams | None = None,
        calculator: ProgressCalculator | None = None,
    ):
        """
        Args:
            adapter: The persistence port for cards and snapshots.
            params: Policy for engines created by this service.
            calculator: Optional custom progress calculator.
        """
        self._adapter = adapter
        self._params = params or LearnParams()
        self._calc = calculator or ProgressCalculator()
        self._cache: dict[str, SessionContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @staticmethod
    def _key(user_id: str, library_id: str) -> str:
        return f"{user_id}::{library_id}"

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_cached(self, user_id: str, library_id: str) -> bool:
        return self._key(user_id, library_id) in self._cache

    async def get_session(self, user_id: str, library_id: str) -> SessionContext:
        """
        Return the cached session, loading or creating it on a miss.

        Raises:
            NotFoundError: The library cannot be loaded (from the adapter).
        """
        key = self._key(user_id, library_id)
        async with self._lock(key):
            return await self._get_or_load(key, user_id, library_id)

    async def _get_or_load(self, key: str, user_id: str, library_id: str) -> SessionContext:
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        cards = await self._adapter.load_library_cards(library_id)
        engine = LearnEngine(cards, params=self._params)
        last_saved: SerializedState | None = None

        try:
            saved = await self._adapter.load_progress(user_id, library_id)
            if saved is None:
                # Nothing stored yet: an untouched engine needs no write
                last_saved = engine.serialize()
                logger.info(f"Started fresh session {key} with {len(cards)} cards")
            else:
                engine.restore(saved)
                last_saved = engine.serialize()
                logger.info(f"Restored session {key} at position {engine.asked}")
        except MalformedStateError as e:
            # last_saved stays None so the next write replaces the bad document
            logger.warning(f"Discarding malformed progress for {key}: {e}")
            engine = LearnEngine(cards, params=self._params)

        ctx = SessionContext(
            engine=engine, user_id=user_id, library_id=library_id, last_saved=last_saved
        )
        self._cache[key] = ctx
        return ctx

    async def _persist(self, ctx: SessionContext) -> bool:
        snapshot = ctx.engine.serialize()
        if snapshot == ctx.last_saved:
            return False
        await self._adapter.save_progress(
            ProgressRecord(
                user_id=ctx.user_id,
                library_id=ctx.library_id,
                engine_state=snapshot,
                updated_at=datetime.now(timezone.utc).isoformat(),
            )
        )
        ctx.last_saved = snapshot
        return True

    # ------------------------------------------------------------------
    # Pass-throughs
    # ------------------------------------------------------------------

    async def next_question(self, user_id: str, library_id: str) -> Question | None:
        ctx = await self.get_session(user_id, library_id)
        return ctx.engine.next_question()

    async def submit_answer(
        self,
        user_id: str,
        library_id: str,
        card_id: str,
        answer: str | None,
        ms: int | None = None,
    ) -> Result:
        key = self._key(user_id, library_id)
        async with self._lock(key):
            ctx = await self._get_or_load(key, user_id, library_id)
            result = ctx.engine.submit_answer(card_id, answer, ms=ms)
            await self._persist(ctx)
            return result

    async def mark_card_as_hard(self, user_id: str, library_id: str, card_id: str) -> bool:
        key = self._key(user_id, library_id)
        async with self._lock(key):
            ctx = await self._get_or_load(key, user_id, library_id)
            changed = ctx.engine.mark_card_as_hard(card_id)
            if changed:
                await self._persist(ctx)
            return changed

    async def record_choice(
        self,
        user_id: str,
        library_id: str,
        card_id: str,
        choice: ReviewDifficultyChoice | str,
    ) -> DifficultyRecord | None:
        """
        Record a difficulty rating.

        Raises:
            RatingLockedError: The rating for this card is currently locked.
        """
        key = self._key(user_id, library_id)
        async with self._lock(key):
            ctx = await self._get_or_load(key, user_id, library_id)
            record = ctx.engine.record_difficulty_choice(card_id, choice)
            if record is not None:
                await self._persist(ctx)
            return record

    async def set_mode_preferences(
        self, user_id: str, library_id: str, mc: bool = True, typed: bool = True
    ) -> None:
        key = self._key(user_id, library_id)
        async with self._lock(key):
            ctx = await self._get_or_load(key, user_id, library_id)
            ctx.engine.set_mode_preferences(mc=mc, typed=typed)
            await self._persist(ctx)

    async def get_card_state(
        self, user_id: str, library_id: str, card_id: str
    ) -> CardState | None:
        ctx = await self.get_session(user_id, library_id)
        return ctx.engine.get_card_state(card_id)

    async def get_difficulty_meta(
        self, user_id: str, library_id: str, card_id: str
    ) -> DifficultyMeta | None:
        ctx = await self.get_session(user_id, library_id)
        return ctx.engine.get_difficulty_meta(card_id)

    async def get_progress(self, user_id: str, library_id: str) -> ProgressSummary:
        ctx = await self.get_session(user_id, library_id)
        return self._calc.summary(ctx.engine)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def flush(self, user_id: str, library_id: str) -> bool:
        """
        Force a save of a cached session.

        Returns:
            True if a write happened; False if the session is not cached or
            nothing changed since the last write.
        """
        key = self._key(user_id, library_id)
        async with self._lock(key):
            ctx = self._cache.get(key)
            if ctx is None:
                return False
            return await self._persist(ctx)

    def drop(self, user_id: str, library_id: str) -> None:
        """Evict a cached session and its idle lock. Durable state is left alone."""
        key = self._key(user_id, library_id)
        if self._cache.pop(key, None) is not None:
            logger.debug(f"Dropped session {key}")
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
