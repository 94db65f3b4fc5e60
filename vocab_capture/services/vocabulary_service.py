"""Vocabulary persistence service: the only writer of the vocabulary table.

``capture`` enforces the per-owner natural-key uniqueness through a single
atomic upsert, so concurrent or repeated captures of the same word pair all
resolve to one stored entry.
"""

import logging

import aiosqlite
from fastapi import WebSocket

from vocab_capture.db import vocabulary_store
from vocab_capture.models.vocabulary import (
    Language,
    VocabularyDraft,
    VocabularyEntry,
    VocabularyUpdate,
)

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Base exception for vocabulary persistence failures."""


class ConflictError(PersistenceError):
    """The write was rejected by a constraint (unique key, foreign key, check)."""


class CaptureValidationError(ConflictError):
    """The draft is malformed and was rejected before touching storage."""

    def __init__(self, field: str, message_key: str):
        super().__init__(f"{field}: {message_key}")
        self.field = field
        self.message_key = message_key


class TransportError(PersistenceError):
    """The database could not be reached or did not complete the operation."""


class _ConnectionManager:
    """Manage WebSocket connections per owner_id for vocabulary change notifications."""

    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, owner_id: str, ws: WebSocket) -> None:
        await ws.accept()
        self._connections.setdefault(owner_id, []).append(ws)

    def disconnect(self, owner_id: str, ws: WebSocket) -> None:
        conns = self._connections.get(owner_id, [])
        if ws in conns:
            conns.remove(ws)
        if not conns:
            self._connections.pop(owner_id, None)

    def connection_count(self, owner_id: str) -> int:
        return len(self._connections.get(owner_id, []))

    async def broadcast(self, owner_id: str, data: dict) -> None:
        conns = self._connections.get(owner_id, [])
        # Inject owner_id so clients can filter events that are not theirs
        payload = {**data, "owner_id": owner_id}
        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)
        for ws in dead:
            logger.debug("Dropping dead vocabulary socket for owner=%s", owner_id)
            self.disconnect(owner_id, ws)


# Module-level singleton
manager = _ConnectionManager()


def _wrap_db_error(action: str, exc: Exception) -> PersistenceError:
    if isinstance(exc, aiosqlite.IntegrityError):
        return ConflictError(f"{action} rejected: {exc}")
    return TransportError(f"{action} failed: {exc}")


def _validate_pair(source_word: str, target_word: str) -> None:
    if not source_word.strip():
        raise CaptureValidationError("source_word", "vocabulary.validation.sourceWordRequired")
    if not target_word.strip():
        raise CaptureValidationError("target_word", "vocabulary.validation.targetWordRequired")


def _validate_draft(draft: VocabularyDraft) -> None:
    if not draft.owner_id:
        raise CaptureValidationError("owner_id", "vocabulary.validation.ownerRequired")
    _validate_pair(draft.source_word, draft.target_word)
    if draft.source_language_id == draft.target_language_id:
        raise CaptureValidationError(
            "target_language_id", "vocabulary.validation.languagesMustDiffer"
        )


class VocabularyService:
    """Persistence boundary for vocabulary entries, scoped by owner_id."""

    async def capture(self, draft: VocabularyDraft) -> VocabularyEntry:
        """Save a word pair, or return the entry that already holds its natural key."""
        _validate_draft(draft)
        try:
            row = await vocabulary_store.upsert_entry(draft)
        except (aiosqlite.Error, OSError) as e:
            logger.error(
                "Capture failed: owner=%s pair=%r/%r: %s",
                draft.owner_id, draft.source_word, draft.target_word, e,
            )
            raise _wrap_db_error("capture", e) from e

        entry = VocabularyEntry(**row)
        logger.info(
            "Captured vocabulary %d for owner=%s (%s -> %s)",
            entry.id, entry.owner_id, entry.source_word, entry.target_word,
        )
        await manager.broadcast(draft.owner_id, {"type": "vocabulary_updated", "id": entry.id})
        return entry

    async def exists(
        self,
        owner_id: str,
        source_word: str,
        target_word: str,
        source_language_id: int,
        target_language_id: int,
    ) -> bool:
        """Advisory read; never relied upon to prevent duplicates."""
        try:
            return await vocabulary_store.exists(
                owner_id, source_word, target_word, source_language_id, target_language_id
            )
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("exists", e) from e

    async def has_source_word(
        self,
        owner_id: str,
        source_word: str,
        source_language_id: int,
        target_language_id: int,
    ) -> bool:
        """Whether the owner already saved this source word (case-insensitive) for the pair."""
        if not source_word.strip():
            return False
        try:
            return await vocabulary_store.source_word_exists(
                owner_id, source_word, source_language_id, target_language_id
            )
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("has_source_word", e) from e

    async def list_vocabulary(
        self,
        owner_id: str,
        source_language_id: int | None = None,
        target_language_id: int | None = None,
        with_origin: bool = False,
    ) -> list[VocabularyEntry]:
        """Newest first. ``with_origin`` adds the title and text of each entry's story."""
        try:
            rows = await vocabulary_store.list_entries(
                owner_id, source_language_id, target_language_id, with_origin
            )
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("list", e) from e
        return [VocabularyEntry(**r) for r in rows]

    async def search_vocabulary(
        self,
        owner_id: str,
        term: str,
        source_language_id: int | None = None,
        target_language_id: int | None = None,
        with_origin: bool = False,
    ) -> list[VocabularyEntry]:
        if not term.strip():
            return await self.list_vocabulary(
                owner_id, source_language_id, target_language_id, with_origin
            )
        try:
            rows = await vocabulary_store.search_entries(
                owner_id, term.strip(), source_language_id, target_language_id, with_origin
            )
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("search", e) from e
        return [VocabularyEntry(**r) for r in rows]

    async def get_entry(self, owner_id: str, entry_id: int) -> VocabularyEntry | None:
        try:
            row = await vocabulary_store.get_entry(owner_id, entry_id)
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("get", e) from e
        return VocabularyEntry(**row) if row else None

    async def update_entry(
        self, owner_id: str, entry_id: int, updates: VocabularyUpdate
    ) -> VocabularyEntry | None:
        """Edit an entry. Renaming it onto another entry's natural key raises ConflictError."""
        fields = updates.model_dump(exclude_unset=True)
        for word_field in ("source_word", "target_word"):
            if word_field in fields:
                value = (fields[word_field] or "").strip()
                if not value:
                    raise CaptureValidationError(
                        word_field, f"vocabulary.validation.{_camel(word_field)}Required"
                    )
                fields[word_field] = value
        try:
            row = await vocabulary_store.update_entry(owner_id, entry_id, fields)
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("update", e) from e
        if row is None:
            return None
        await manager.broadcast(owner_id, {"type": "vocabulary_updated", "id": entry_id})
        return VocabularyEntry(**row)

    async def delete_entry(self, owner_id: str, entry_id: int) -> bool:
        try:
            deleted = await vocabulary_store.delete_entry(owner_id, entry_id)
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("delete", e) from e
        if deleted:
            logger.info("Deleted vocabulary %d for owner=%s", entry_id, owner_id)
            await manager.broadcast(owner_id, {"type": "vocabulary_updated", "id": entry_id})
        return deleted

    async def list_languages(self) -> list[Language]:
        try:
            rows = await vocabulary_store.list_languages()
        except (aiosqlite.Error, OSError) as e:
            raise _wrap_db_error("languages", e) from e
        return [Language(**r) for r in rows]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
