"""One-click "save this word" control used from the reading view.

The target word often does not exist yet when the user clicks: translation
runs out of band. Instead of failing, the gate waits in PENDING_SAVE and
completes the save by itself as soon as the target word arrives.

State flow::

    CHECKING -> READY -> SAVING -> SAVED
                      \\-> PENDING_SAVE -> SAVING -> SAVED

``click()`` flips READY to SAVING synchronously, before anything awaits, so a
second click that lands while the first is still in flight is a no-op.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from vocab_capture.infra import config
from vocab_capture.models.vocabulary import VocabularyDraft, VocabularyEntry
from vocab_capture.services.observable import ObservableValue
from vocab_capture.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

PrepareHook = Callable[[], Awaitable[None] | None]


class GateState(str, Enum):
    CHECKING = "checking"
    READY = "ready"
    PENDING_SAVE = "pending_save"
    SAVING = "saving"
    SAVED = "saved"


# Message keys for the UI, per visible state
_LABELS = {
    GateState.CHECKING: "vocabulary.checking",
    GateState.READY: "vocabulary.save.button",
    GateState.PENDING_SAVE: "vocabulary.saving",
    GateState.SAVING: "vocabulary.saving",
    GateState.SAVED: "vocabulary.saved",
}


class PendingSaveTimeout(Exception):
    """The target word did not arrive before the configured deadline."""


class SaveGate:
    """Save control for one displayed word pair.

    ``target_word`` may be a plain string or an ``ObservableValue`` shared
    with whatever produces the translation; setting it on the event loop
    thread resumes a pending save.
    """

    def __init__(
        self,
        service: VocabularyService,
        owner_id: str,
        source_word: str,
        target_word: str | ObservableValue[str],
        source_language_id: int,
        target_language_id: int,
        source_context: str | None = None,
        target_context: str | None = None,
        origin_id: int | None = None,
        prepare: PrepareHook | None = None,
        is_saved: bool | None = None,
        on_saved: Callable[[VocabularyEntry], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        on_change: Callable[[SaveGate], None] | None = None,
        pending_timeout_s: float | None = None,
    ):
        self._service = service
        self.owner_id = owner_id
        self.source_word = source_word
        if not isinstance(target_word, ObservableValue):
            target_word = ObservableValue(target_word or "")
        self.target_word: ObservableValue[str] = target_word
        self.source_language_id = source_language_id
        self.target_language_id = target_language_id
        self.source_context = source_context
        self.target_context = target_context
        self.origin_id = origin_id
        self._prepare = prepare
        self._override = is_saved
        self._on_saved = on_saved
        self._on_error = on_error
        self._on_change = on_change
        if pending_timeout_s is None:
            pending_timeout_s = config.PENDING_SAVE_TIMEOUT_S
        self._pending_timeout_s = pending_timeout_s

        if is_saved is None:
            self.state = GateState.CHECKING
        else:
            self.state = GateState.SAVED if is_saved else GateState.READY
        self.entry: VocabularyEntry | None = None
        self._task: asyncio.Task | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None

    # ── Presentation ─────────────────────────────────

    @property
    def disabled(self) -> bool:
        return self.state is not GateState.READY

    @property
    def label(self) -> str:
        return _LABELS[self.state]

    # ── Lifecycle ────────────────────────────────────

    async def mount(self) -> None:
        """Ask once whether the pair is already saved, unless told by the caller."""
        if self._override is not None:
            return
        target = self.target_word.value.strip()
        if not self.source_word.strip() or not target:
            self._set_state(GateState.READY)
            return

        self._set_state(GateState.CHECKING)
        try:
            exists = await self._service.exists(
                self.owner_id,
                self.source_word,
                target,
                self.source_language_id,
                self.target_language_id,
            )
        except Exception as e:
            logger.warning("Saved-state lookup failed for %r: %s", self.source_word, e)
            exists = False

        # An override may have settled the state while we were probing
        if self.state is GateState.CHECKING:
            self._set_state(GateState.SAVED if exists else GateState.READY)

    def set_saved_override(self, is_saved: bool) -> None:
        """Align with other controls showing the same word; SAVED is never undone."""
        self._override = is_saved
        if self.state in (GateState.CHECKING, GateState.READY):
            self._set_state(GateState.SAVED if is_saved else GateState.READY)

    def unmount(self) -> None:
        self._stop_waiting()

    async def settled(self) -> None:
        """Wait for the save started by the last click or target-word arrival."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    # ── Saving ───────────────────────────────────────

    def click(self) -> asyncio.Task | None:
        """Start a save. Returns the running task, or None when the click is ignored."""
        if self.state is not GateState.READY:
            return None
        # Commit the state before the first suspension point
        self._set_state(GateState.SAVING)
        self._task = asyncio.get_running_loop().create_task(self._save_after_prepare())
        return self._task

    async def _save_after_prepare(self) -> None:
        if self._prepare is not None:
            try:
                result = self._prepare()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Prepare step failed for %r: %s", self.source_word, e)
                self._set_state(GateState.READY)
                self._report(e)
                return

        if not self.target_word.value.strip():
            self._wait_for_target_word()
            return

        await self._attempt_save()

    def _wait_for_target_word(self) -> None:
        logger.debug("Target word for %r not ready, save pending", self.source_word)
        self._set_state(GateState.PENDING_SAVE)
        self._unsubscribe = self.target_word.subscribe(self._on_target_word)
        if self._pending_timeout_s > 0:
            self._timeout_handle = asyncio.get_running_loop().call_later(
                self._pending_timeout_s, self._pending_expired
            )

    def _on_target_word(self, value: str) -> None:
        if self.state is not GateState.PENDING_SAVE or not value.strip():
            return
        self._stop_waiting()
        self._set_state(GateState.SAVING)
        self._task = asyncio.get_running_loop().create_task(self._attempt_save())

    def _pending_expired(self) -> None:
        self._timeout_handle = None
        if self.state is not GateState.PENDING_SAVE:
            return
        self._stop_waiting()
        logger.warning(
            "Gave up waiting for target word of %r after %ss",
            self.source_word, self._pending_timeout_s,
        )
        self._set_state(GateState.READY)
        self._report(PendingSaveTimeout(self.source_word))

    def _stop_waiting(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    async def _attempt_save(self) -> None:
        draft = VocabularyDraft(
            owner_id=self.owner_id,
            source_word=self.source_word,
            target_word=self.target_word.value,
            source_language_id=self.source_language_id,
            target_language_id=self.target_language_id,
            source_context=self.source_context,
            target_context=self.target_context,
            origin_id=self.origin_id,
        )
        try:
            entry = await self._service.capture(draft)
        except Exception as e:
            logger.warning("Save of %r failed: %s", self.source_word, e)
            self._set_state(GateState.READY)
            self._report(e)
            return

        self.entry = entry
        self._set_state(GateState.SAVED)
        if self._on_saved is not None:
            self._on_saved(entry)

    def _report(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def _set_state(self, state: GateState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(self)
