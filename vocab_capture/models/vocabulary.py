"""Vocabulary entry models: the stored record, the capture draft and edits."""

from __future__ import annotations

from pydantic import BaseModel


class VocabularyDraft(BaseModel):
    """A word pair the user asked to save. ``owner_id`` comes from the identity context."""

    owner_id: str
    source_word: str
    target_word: str
    source_language_id: int
    target_language_id: int
    source_context: str | None = None
    target_context: str | None = None
    definition: str | None = None
    part_of_speech: str | None = None  # noun / verb / adjective / ...
    frequency_level: str | None = None  # common / uncommon / rare / veryRare
    origin_id: int | None = None  # story the word was captured from

    def natural_key(self) -> tuple[str, str, str, int, int]:
        return (
            self.owner_id,
            self.source_word.strip(),
            self.target_word.strip(),
            self.source_language_id,
            self.target_language_id,
        )


class VocabularyEntry(BaseModel):
    id: int
    owner_id: str
    source_word: str
    target_word: str
    source_language_id: int
    target_language_id: int
    source_context: str | None = None
    target_context: str | None = None
    definition: str | None = None
    part_of_speech: str | None = None
    frequency_level: str | None = None
    origin_id: int | None = None
    created_at: str
    updated_at: str
    # Joined from languages when listing
    source_language_code: str | None = None
    target_language_code: str | None = None
    # Joined from stories when listing with_origin
    origin_title: str | None = None
    origin_text: str | None = None


class VocabularyUpdate(BaseModel):
    """Editable fields. Unset fields are left untouched."""

    source_word: str | None = None
    target_word: str | None = None
    source_context: str | None = None
    target_context: str | None = None
    definition: str | None = None
    part_of_speech: str | None = None
    frequency_level: str | None = None


class Language(BaseModel):
    id: int
    code: str
    name: str
    native_name: str
