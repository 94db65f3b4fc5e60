"""Tests for VocabularyService against a real on-disk SQLite database."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from factories import make_draft
from vocab_capture.db import story_store
from vocab_capture.models.vocabulary import VocabularyUpdate
from vocab_capture.services.vocabulary_service import (
    CaptureValidationError,
    ConflictError,
    TransportError,
    VocabularyService,
)


# ── Capture / dedup ──────────────────────────────────


@pytest.mark.asyncio
async def test_capture_twice_returns_same_entry(temp_db):
    """u1 / hola -> hello / 2 -> 1: first capture creates id 1, the second returns it."""
    service = VocabularyService()

    first = await service.capture(make_draft())
    second = await service.capture(make_draft())

    assert first.id == 1
    assert second.id == 1
    entries = await service.list_vocabulary("u1")
    assert len(entries) == 1


@pytest.mark.asyncio
async def test_concurrent_captures_store_one_entry(temp_db):
    service = VocabularyService()

    results = await asyncio.gather(*(service.capture(make_draft()) for _ in range(8)))

    assert {e.id for e in results} == {results[0].id}
    entries = await service.list_vocabulary("u1")
    assert len(entries) == 1
    assert entries[0].source_word == "hola"


@pytest.mark.asyncio
async def test_capture_trims_words_and_keeps_attributes(temp_db):
    service = VocabularyService()

    entry = await service.capture(
        make_draft(
            source_word="  hola ",
            target_word=" hello",
            source_context="¡Hola, amigo!",
            target_context="Hello, friend!",
            part_of_speech="interjection",
        )
    )

    assert entry.source_word == "hola"
    assert entry.target_word == "hello"
    assert entry.source_context == "¡Hola, amigo!"
    assert entry.part_of_speech == "interjection"
    # Trimmed draft collides with the untrimmed one
    again = await service.capture(make_draft())
    assert again.id == entry.id


@pytest.mark.asyncio
async def test_capture_keeps_first_attributes_on_duplicate(temp_db):
    service = VocabularyService()
    await service.capture(make_draft(definition="a greeting"))

    again = await service.capture(make_draft(definition="something else"))

    assert again.definition == "a greeting"


@pytest.mark.asyncio
async def test_origin_link_is_first_writer_wins(temp_db):
    service = VocabularyService()
    story_x = await story_store.create_story("u1", "Hola mundo")
    story_y = await story_store.create_story("u1", "Hola otra vez")

    unlinked = await service.capture(make_draft(origin_id=None))
    assert unlinked.origin_id is None

    linked = await service.capture(make_draft(origin_id=story_x["id"]))
    assert linked.id == unlinked.id
    assert linked.origin_id == story_x["id"]

    kept = await service.capture(make_draft(origin_id=story_y["id"]))
    assert kept.origin_id == story_x["id"]
    stored = await service.get_entry("u1", unlinked.id)
    assert stored.origin_id == story_x["id"]


@pytest.mark.asyncio
async def test_new_capture_with_origin_stores_it(temp_db):
    service = VocabularyService()
    story = await story_store.create_story("u1", "Hola mundo", title="Cuento")

    entry = await service.capture(make_draft(origin_id=story["id"]))

    assert entry.origin_id == story["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"source_word": "   "}, "source_word"),
        ({"target_word": ""}, "target_word"),
        ({"target_language_id": 2}, "target_language_id"),
        ({"owner_id": ""}, "owner_id"),
    ],
)
async def test_capture_rejects_malformed_draft(temp_db, overrides, field):
    service = VocabularyService()

    with pytest.raises(CaptureValidationError) as exc_info:
        await service.capture(make_draft(**overrides))

    assert exc_info.value.field == field
    assert exc_info.value.message_key.startswith("vocabulary.validation.")
    assert await service.list_vocabulary(overrides.get("owner_id") or "u1") == []


@pytest.mark.asyncio
async def test_capture_unknown_language_is_conflict(temp_db):
    service = VocabularyService()

    with pytest.raises(ConflictError):
        await service.capture(make_draft(target_language_id=999))


@pytest.mark.asyncio
async def test_capture_unknown_origin_is_conflict(temp_db):
    service = VocabularyService()

    with pytest.raises(ConflictError):
        await service.capture(make_draft(origin_id=4242))
    # Nothing half-written
    assert await service.list_vocabulary("u1") == []


@pytest.mark.asyncio
async def test_capture_database_failure_is_transport_error():
    service = VocabularyService()
    failing = AsyncMock(side_effect=aiosqlite.OperationalError("database is locked"))

    with patch("vocab_capture.services.vocabulary_service.vocabulary_store.upsert_entry", failing):
        with pytest.raises(TransportError):
            await service.capture(make_draft())


# ── Reads ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_exists(temp_db):
    service = VocabularyService()
    await service.capture(make_draft())

    assert await service.exists("u1", "hola", "hello", 2, 1) is True
    assert await service.exists("u1", " hola ", "hello", 2, 1) is True
    assert await service.exists("u1", "hola", "hi", 2, 1) is False
    assert await service.exists("u1", "hola", "hello", 1, 2) is False
    assert await service.exists("u2", "hola", "hello", 2, 1) is False


@pytest.mark.asyncio
async def test_exists_database_failure_is_transport_error():
    service = VocabularyService()
    failing = AsyncMock(side_effect=aiosqlite.OperationalError("unable to open database file"))

    with patch("vocab_capture.services.vocabulary_service.vocabulary_store.exists", failing):
        with pytest.raises(TransportError):
            await service.exists("u1", "hola", "hello", 2, 1)


@pytest.mark.asyncio
async def test_has_source_word_is_case_insensitive(temp_db):
    service = VocabularyService()
    await service.capture(make_draft(source_word="Élan", target_word="flair", source_language_id=3))

    assert await service.has_source_word("u1", "élan", 3, 1) is True
    assert await service.has_source_word("u1", "ÉLAN ", 3, 1) is True
    assert await service.has_source_word("u1", "élan", 3, 4) is False
    assert await service.has_source_word("u1", "", 3, 1) is False


@pytest.mark.asyncio
async def test_list_filters_by_pair_and_owner(temp_db):
    service = VocabularyService()
    await service.capture(make_draft(source_word="hola", target_word="hello"))
    await service.capture(make_draft(source_word="gato", target_word="cat"))
    await service.capture(
        make_draft(source_word="chat", target_word="cat", source_language_id=3)
    )
    await service.capture(make_draft(owner_id="u2", source_word="perro", target_word="dog"))

    everything = await service.list_vocabulary("u1")
    spanish = await service.list_vocabulary("u1", source_language_id=2, target_language_id=1)

    assert [e.source_word for e in everything] == ["chat", "gato", "hola"]
    assert [e.source_word for e in spanish] == ["gato", "hola"]
    assert spanish[0].source_language_code == "es"
    assert spanish[0].target_language_code == "en"


@pytest.mark.asyncio
async def test_search_matches_either_word(temp_db):
    service = VocabularyService()
    await service.capture(make_draft(source_word="gato", target_word="cat"))
    await service.capture(make_draft(source_word="hola", target_word="hello"))
    await service.capture(make_draft(source_word="100%", target_word="completely"))

    by_source = await service.search_vocabulary("u1", "GAT")
    by_target = await service.search_vocabulary("u1", "ell")
    literal_percent = await service.search_vocabulary("u1", "%")
    blank = await service.search_vocabulary("u1", "  ")

    assert [e.source_word for e in by_source] == ["gato"]
    assert [e.source_word for e in by_target] == ["hola"]
    assert [e.source_word for e in literal_percent] == ["100%"]
    assert len(blank) == 3


# ── Edit / delete ────────────────────────────────────


@pytest.mark.asyncio
async def test_update_entry(temp_db):
    service = VocabularyService()
    entry = await service.capture(make_draft())

    updated = await service.update_entry(
        "u1", entry.id, VocabularyUpdate(definition="a greeting", frequency_level="common")
    )

    assert updated.definition == "a greeting"
    assert updated.frequency_level == "common"
    assert updated.source_word == "hola"


@pytest.mark.asyncio
async def test_update_onto_existing_natural_key_conflicts(temp_db):
    service = VocabularyService()
    await service.capture(make_draft(target_word="hello"))
    other = await service.capture(make_draft(target_word="hi"))

    with pytest.raises(ConflictError):
        await service.update_entry("u1", other.id, VocabularyUpdate(target_word="hello"))


@pytest.mark.asyncio
async def test_update_rejects_blank_word(temp_db):
    service = VocabularyService()
    entry = await service.capture(make_draft())

    with pytest.raises(CaptureValidationError) as exc_info:
        await service.update_entry("u1", entry.id, VocabularyUpdate(target_word="  "))

    assert exc_info.value.message_key == "vocabulary.validation.targetWordRequired"


@pytest.mark.asyncio
async def test_update_and_delete_are_owner_scoped(temp_db):
    service = VocabularyService()
    entry = await service.capture(make_draft())

    assert await service.update_entry("u2", entry.id, VocabularyUpdate(definition="x")) is None
    assert await service.delete_entry("u2", entry.id) is False
    assert await service.delete_entry("u1", entry.id) is True
    assert await service.get_entry("u1", entry.id) is None


@pytest.mark.asyncio
async def test_capture_after_delete_creates_new_entry(temp_db):
    service = VocabularyService()
    first = await service.capture(make_draft())
    await service.delete_entry("u1", first.id)

    second = await service.capture(make_draft())

    assert second.id != first.id


@pytest.mark.asyncio
async def test_list_languages(temp_db):
    service = VocabularyService()

    languages = await service.list_languages()

    assert languages[0].code == "en"
    assert languages[1].code == "es"


@pytest.mark.asyncio
async def test_capture_broadcasts_update(temp_db):
    service = VocabularyService()

    with patch(
        "vocab_capture.services.vocabulary_service.manager.broadcast", new_callable=AsyncMock
    ) as broadcast:
        entry = await service.capture(make_draft())

    broadcast.assert_awaited_once_with("u1", {"type": "vocabulary_updated", "id": entry.id})


@pytest.mark.asyncio
async def test_deleting_story_keeps_captured_words(temp_db):
    service = VocabularyService()
    story = await story_store.create_story("u1", "Hola mundo")
    entry = await service.capture(make_draft(origin_id=story["id"]))

    assert await story_store.delete_story("u2", story["id"]) is False
    assert await story_store.delete_story("u1", story["id"]) is True

    assert await story_store.get_story("u1", story["id"]) is None
    kept = await service.get_entry("u1", entry.id)
    assert kept.source_word == "hola"
    assert kept.origin_id is None


@pytest.mark.asyncio
async def test_list_with_origin_carries_story_text(temp_db):
    service = VocabularyService()
    story = await story_store.create_story("u1", "Hola mundo", title="Saludo")
    await service.capture(make_draft(origin_id=story["id"]))
    await service.capture(make_draft(source_word="gato", target_word="cat"))

    joined = {e.source_word: e for e in await service.list_vocabulary("u1", with_origin=True)}
    plain = await service.list_vocabulary("u1")

    assert joined["hola"].origin_title == "Saludo"
    assert joined["hola"].origin_text == "Hola mundo"
    assert joined["gato"].origin_text is None
    assert all(e.origin_title is None for e in plain)


@pytest.mark.asyncio
async def test_has_source_word_folds_beyond_ascii(temp_db):
    service = VocabularyService()
    await service.capture(
        make_draft(source_word="Straße", target_word="street", source_language_id=4)
    )

    assert await service.has_source_word("u1", "STRASSE", 4, 1) is True
    assert await service.has_source_word("u1", "strasse ", 4, 1) is True
    assert await service.has_source_word("u2", "strasse", 4, 1) is False


@pytest.mark.asyncio
async def test_has_source_word_database_failure_is_transport_error():
    service = VocabularyService()
    failing = AsyncMock(side_effect=aiosqlite.OperationalError("database is locked"))

    with patch(
        "vocab_capture.services.vocabulary_service.vocabulary_store.source_word_exists", failing
    ):
        with pytest.raises(TransportError):
            await service.has_source_word("u1", "hola", 2, 1)
