"""Pydantic request/response schemas for vocabulary endpoints."""

from pydantic import BaseModel

from vocab_capture.models.vocabulary import VocabularyEntry


class CaptureRequest(BaseModel):
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


class ExistsResponse(BaseModel):
    exists: bool


class VocabularyListResponse(BaseModel):
    entries: list[VocabularyEntry]
    total: int
