"""Tests for the per-pair saved-word index."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from factories import make_draft, make_entry
from vocab_capture.services.saved_words import SavedWordIndex
from vocab_capture.services.vocabulary_service import VocabularyService


@pytest.mark.asyncio
async def test_load_indexes_both_words():
    service = MagicMock(spec=VocabularyService)
    service.list_vocabulary = AsyncMock(
        return_value=[
            make_entry(id=2, source_word="Gato", target_word="cat"),
            make_entry(id=1, source_word="hola", target_word="Hello"),
        ]
    )
    index = SavedWordIndex(service, "u1", 2, 1)

    await index.load()

    service.list_vocabulary.assert_awaited_once_with("u1", 2, 1)
    assert index.saved_source_words == {"gato", "hola"}
    assert index.saved_target_words == {"cat", "hello"}
    assert index.find_by_source_word("GATO").id == 2
    assert index.find_by_target_word("hello").id == 1
    assert index.find_by_source_word("perro") is None


@pytest.mark.asyncio
async def test_newest_entry_wins_collision():
    service = MagicMock(spec=VocabularyService)
    service.list_vocabulary = AsyncMock(
        return_value=[
            make_entry(id=2, source_word="hola", target_word="hi"),
            make_entry(id=1, source_word="hola", target_word="hello"),
        ]
    )
    index = SavedWordIndex(service, "u1", 2, 1)

    await index.load()

    assert index.find_by_source_word("hola").id == 2
    assert index.is_saved("hola", "hello") is True
    assert index.is_saved("hola", "hi") is True


def test_is_saved_by_word_or_pair():
    index = SavedWordIndex(MagicMock(spec=VocabularyService), "u1", 2, 1)
    index.mark_saved(make_entry(source_word="hola", target_word="hello"))

    assert index.is_saved("Hola") is True
    assert index.is_saved("hola", "HELLO") is True
    assert index.is_saved("hola", "hi") is False
    assert index.is_saved("adios") is False


def test_mark_saved_ignores_other_pairs_and_owners():
    index = SavedWordIndex(MagicMock(spec=VocabularyService), "u1", 2, 1)

    index.mark_saved(make_entry(source_word="chat", source_language_id=3))
    index.mark_saved(make_entry(owner_id="u2"))

    assert index.saved_source_words == set()


@pytest.mark.asyncio
async def test_load_from_database(temp_db):
    service = VocabularyService()
    await service.capture(make_draft())
    await service.capture(make_draft(source_word="chat", target_word="cat", source_language_id=3))
    index = SavedWordIndex(service, "u1", 2, 1)

    await index.load()

    assert index.saved_source_words == {"hola"}


def test_lookup_agrees_with_duplicate_advisory_on_case_folding():
    index = SavedWordIndex(MagicMock(spec=VocabularyService), "u1", 4, 1)
    index.mark_saved(
        make_entry(source_word="Straße", target_word="street", source_language_id=4)
    )

    assert index.is_saved("STRASSE") is True
    assert index.is_saved("strasse", "STREET") is True
    assert index.find_by_source_word("straße").source_word == "Straße"
