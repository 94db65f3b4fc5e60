"""Debounced, race-safe duplicate advisory for the new-entry form.

Every edit of a trigger field (source word, source language, target language)
cancels the pending timer and schedules a fresh check after a quiet interval.
Each scheduled check carries a sequence number taken when it was scheduled;
its verdict is applied only if that number is still the latest one, so a slow
stale check can never overwrite a newer verdict.

The advisory is never authoritative: ``VocabularyService.capture`` re-asserts
uniqueness at submit time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum

from vocab_capture.infra import config
from vocab_capture.models.vocabulary import VocabularyEntry
from vocab_capture.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

ALREADY_EXISTS = "vocabulary.validation.alreadyExists"

# (source_word, source_language_id, target_language_id) -> already saved?
DuplicateCheck = Callable[[str, int, int], Awaitable[bool]]


class CheckState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    CHECKING = "checking"
    CLEAN = "clean"
    FLAGGED = "flagged"


def store_duplicate_check(service: VocabularyService, owner_id: str) -> DuplicateCheck:
    """Check against the owner's stored vocabulary."""

    async def check(source_word: str, source_language_id: int, target_language_id: int) -> bool:
        return await service.has_source_word(
            owner_id, source_word, source_language_id, target_language_id
        )

    return check


def local_duplicate_check(entries: Iterable[VocabularyEntry]) -> DuplicateCheck:
    """Check against an already-loaded vocabulary snapshot, without I/O."""
    saved = {
        (e.source_word.strip().casefold(), e.source_language_id, e.target_language_id)
        for e in entries
    }

    async def check(source_word: str, source_language_id: int, target_language_id: int) -> bool:
        return (source_word.strip().casefold(), source_language_id, target_language_id) in saved

    return check


class DuplicateValidator:
    """Per-form-session duplicate advisory.

    ``general_error`` holds ``ALREADY_EXISTS`` while the current input looks
    like a saved entry, and ``None`` otherwise.
    """

    def __init__(
        self,
        check: DuplicateCheck,
        debounce_ms: int | None = None,
        on_change: Callable[[DuplicateValidator], None] | None = None,
    ):
        if debounce_ms is None:
            debounce_ms = config.DUPLICATE_CHECK_DEBOUNCE_MS
        self._check = check
        self._delay = debounce_ms / 1000
        self._on_change = on_change
        self.state = CheckState.IDLE
        self.general_error: str | None = None
        self._latest_seq = 0
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def latest_sequence(self) -> int:
        return self._latest_seq

    @property
    def is_checking(self) -> bool:
        return self.state in (CheckState.DEBOUNCING, CheckState.CHECKING)

    def fields_changed(
        self,
        source_word: str,
        source_language_id: int | None,
        target_language_id: int | None,
    ) -> None:
        """Restart the debounce cycle for the new trigger-field values."""
        self._cancel_timer()
        self._latest_seq += 1
        # The previous verdict described different input
        self.general_error = None

        word = source_word.strip()
        if (
            not word
            or not source_language_id
            or not target_language_id
            or source_language_id == target_language_id
        ):
            # Plain form-validation territory, not duplicate-ness
            self._set_state(CheckState.IDLE)
            return

        seq = self._latest_seq
        self._set_state(CheckState.DEBOUNCING)
        self._timer = asyncio.get_running_loop().create_task(
            self._debounce(seq, word, source_language_id, target_language_id)
        )

    def close(self) -> None:
        """Drop the pending timer; in-flight checks finish but are ignored."""
        self._cancel_timer()
        self._latest_seq += 1

    async def drain(self) -> None:
        """Wait until no timer is pending and every issued check has finished."""
        while True:
            pending = [
                t for t in (self._timer, *self._inflight) if t is not None and not t.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounce(
        self, seq: int, word: str, source_language_id: int, target_language_id: int
    ) -> None:
        await asyncio.sleep(self._delay)
        # Hand off to a separate task: once issued, a check is never cancelled
        task = asyncio.get_running_loop().create_task(
            self._run_check(seq, word, source_language_id, target_language_id)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_check(
        self, seq: int, word: str, source_language_id: int, target_language_id: int
    ) -> None:
        if seq == self._latest_seq:
            self._set_state(CheckState.CHECKING)
        try:
            exists = await self._check(word, source_language_id, target_language_id)
        except Exception as e:
            # Fail open: keep whatever advisory is showing
            logger.warning("Duplicate check %d failed, advisory unchanged: %s", seq, e)
            if seq == self._latest_seq:
                self._set_state(CheckState.IDLE)
            return

        if seq != self._latest_seq:
            logger.debug("Discarding stale duplicate check %d (latest %d)", seq, self._latest_seq)
            return

        if exists:
            self.general_error = ALREADY_EXISTS
            self._set_state(CheckState.FLAGGED)
        else:
            if self.general_error == ALREADY_EXISTS:
                self.general_error = None
            self._set_state(CheckState.CLEAN)

    def _set_state(self, state: CheckState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(self)
