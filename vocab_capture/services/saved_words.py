"""Saved-word lookups for one owner and language pair.

Several save controls can show the same word at once (the word list, the
popup, the sentence view). Asking this index instead of letting each control
query storage keeps them in agreement and saves a round trip per control.
"""

import logging

from vocab_capture.models.vocabulary import VocabularyEntry
from vocab_capture.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


class SavedWordIndex:
    def __init__(
        self,
        service: VocabularyService,
        owner_id: str,
        source_language_id: int,
        target_language_id: int,
    ):
        self._service = service
        self.owner_id = owner_id
        self.source_language_id = source_language_id
        self.target_language_id = target_language_id
        self._by_source: dict[str, VocabularyEntry] = {}
        self._by_target: dict[str, VocabularyEntry] = {}
        self._pairs: set[tuple[str, str]] = set()

    async def load(self) -> None:
        entries = await self._service.list_vocabulary(
            self.owner_id, self.source_language_id, self.target_language_id
        )
        self._by_source.clear()
        self._by_target.clear()
        self._pairs.clear()
        # Oldest first so the newest entry wins a case-folded collision
        for entry in reversed(entries):
            self._add(entry)
        logger.debug(
            "Loaded %d saved words for owner=%s (%d -> %d)",
            len(entries), self.owner_id, self.source_language_id, self.target_language_id,
        )

    def mark_saved(self, entry: VocabularyEntry) -> None:
        """Record a freshly captured entry; entries for other pairs are ignored."""
        if (
            entry.owner_id != self.owner_id
            or entry.source_language_id != self.source_language_id
            or entry.target_language_id != self.target_language_id
        ):
            return
        self._add(entry)

    def _add(self, entry: VocabularyEntry) -> None:
        source = entry.source_word.casefold()
        target = entry.target_word.casefold()
        self._by_source[source] = entry
        self._by_target[target] = entry
        self._pairs.add((source, target))

    @property
    def saved_source_words(self) -> set[str]:
        return set(self._by_source)

    @property
    def saved_target_words(self) -> set[str]:
        return set(self._by_target)

    def find_by_source_word(self, word: str) -> VocabularyEntry | None:
        return self._by_source.get(word.casefold())

    def find_by_target_word(self, word: str) -> VocabularyEntry | None:
        return self._by_target.get(word.casefold())

    def is_saved(self, source_word: str, target_word: str | None = None) -> bool:
        """Whether the word (or the exact pair, when the target is known) is saved."""
        if target_word:
            return (source_word.casefold(), target_word.casefold()) in self._pairs
        return source_word.casefold() in self._by_source
