"""Vocabulary capture and management endpoints.

The caller's identity arrives in the ``X-User-Id`` header and scopes every call.
"""

from fastapi import APIRouter, Header, HTTPException, Query

from vocab_capture.api.schemas.vocabulary import (
    CaptureRequest,
    ExistsResponse,
    VocabularyListResponse,
)
from vocab_capture.models.vocabulary import VocabularyDraft, VocabularyEntry, VocabularyUpdate
from vocab_capture.services.vocabulary_service import (
    CaptureValidationError,
    ConflictError,
    PersistenceError,
    TransportError,
    VocabularyService,
)

router = APIRouter(prefix="/api/vocabulary", tags=["vocabulary"])
languages_router = APIRouter(prefix="/api/languages", tags=["languages"])

service = VocabularyService()


def _http_error(e: PersistenceError) -> HTTPException:
    if isinstance(e, CaptureValidationError):
        return HTTPException(
            status_code=422, detail={"field": e.field, "message": e.message_key}
        )
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, TransportError):
        return HTTPException(status_code=503, detail="Vocabulary storage unavailable")
    return HTTPException(status_code=500, detail=str(e))


@router.post("/capture", response_model=VocabularyEntry)
async def capture(body: CaptureRequest, x_user_id: str = Header(...)):
    """Save a word pair. Repeating the call returns the same entry."""
    draft = VocabularyDraft(owner_id=x_user_id, **body.model_dump())
    try:
        return await service.capture(draft)
    except PersistenceError as e:
        raise _http_error(e) from e


@router.get("/exists", response_model=ExistsResponse)
async def exists(
    source_word: str,
    target_word: str,
    source_language_id: int,
    target_language_id: int,
    x_user_id: str = Header(...),
):
    try:
        found = await service.exists(
            x_user_id, source_word, target_word, source_language_id, target_language_id
        )
    except PersistenceError as e:
        raise _http_error(e) from e
    return ExistsResponse(exists=found)


@router.get("", response_model=VocabularyListResponse)
async def list_vocabulary(
    x_user_id: str = Header(...),
    q: str | None = Query(None),
    source_language_id: int | None = Query(None),
    target_language_id: int | None = Query(None),
    with_origin: bool = Query(False),
):
    """List the caller's vocabulary, newest first; ``q`` searches both words.

    ``with_origin=true`` adds ``origin_title`` and ``origin_text`` from the story
    each word was captured from.
    """
    try:
        if q:
            entries = await service.search_vocabulary(
                x_user_id, q, source_language_id, target_language_id, with_origin
            )
        else:
            entries = await service.list_vocabulary(
                x_user_id, source_language_id, target_language_id, with_origin
            )
    except PersistenceError as e:
        raise _http_error(e) from e
    return VocabularyListResponse(entries=entries, total=len(entries))


@router.get("/{entry_id}", response_model=VocabularyEntry)
async def get_entry(entry_id: int, x_user_id: str = Header(...)):
    try:
        entry = await service.get_entry(x_user_id, entry_id)
    except PersistenceError as e:
        raise _http_error(e) from e
    if entry is None:
        raise HTTPException(status_code=404, detail="Vocabulary entry not found")
    return entry


@router.patch("/{entry_id}", response_model=VocabularyEntry)
async def update_entry(entry_id: int, body: VocabularyUpdate, x_user_id: str = Header(...)):
    try:
        entry = await service.update_entry(x_user_id, entry_id, body)
    except PersistenceError as e:
        raise _http_error(e) from e
    if entry is None:
        raise HTTPException(status_code=404, detail="Vocabulary entry not found")
    return entry


@router.delete("/{entry_id}")
async def delete_entry(entry_id: int, x_user_id: str = Header(...)):
    try:
        deleted = await service.delete_entry(x_user_id, entry_id)
    except PersistenceError as e:
        raise _http_error(e) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Vocabulary entry not found")
    return {"ok": True}


@languages_router.get("")
async def list_languages():
    try:
        return await service.list_languages()
    except PersistenceError as e:
        raise _http_error(e) from e
