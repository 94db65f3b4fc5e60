"""Story endpoints: the texts whose words get captured.

A capture's ``origin_id`` must name one of the caller's stories created here.
"""

import logging

import aiosqlite
from fastapi import APIRouter, Header, HTTPException

from vocab_capture.api.schemas.stories import StoryCreateRequest, StoryListResponse
from vocab_capture.db import story_store
from vocab_capture.models.story import Story

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stories", tags=["stories"])


def _unavailable(action: str, e: Exception) -> HTTPException:
    logger.error("Story %s failed: %s", action, e)
    return HTTPException(status_code=503, detail="Story storage unavailable")


@router.post("", response_model=Story)
async def create_story(body: StoryCreateRequest, x_user_id: str = Header(...)):
    if not body.source_text.strip():
        raise HTTPException(
            status_code=422,
            detail={"field": "source_text", "message": "stories.validation.textRequired"},
        )
    try:
        row = await story_store.create_story(
            x_user_id, body.source_text, body.title, body.translated_text
        )
    except (aiosqlite.Error, OSError) as e:
        raise _unavailable("create", e) from e
    logger.info("Created story %d for owner=%s", row["id"], x_user_id)
    return Story(**row)


@router.get("", response_model=StoryListResponse)
async def list_stories(x_user_id: str = Header(...)):
    try:
        rows = await story_store.list_stories(x_user_id)
    except (aiosqlite.Error, OSError) as e:
        raise _unavailable("list", e) from e
    return StoryListResponse(stories=[Story(**r) for r in rows])


@router.get("/{story_id}", response_model=Story)
async def get_story(story_id: int, x_user_id: str = Header(...)):
    try:
        row = await story_store.get_story(x_user_id, story_id)
    except (aiosqlite.Error, OSError) as e:
        raise _unavailable("get", e) from e
    if row is None:
        raise HTTPException(status_code=404, detail="Story not found")
    return Story(**row)


@router.delete("/{story_id}")
async def delete_story(story_id: int, x_user_id: str = Header(...)):
    """Delete a story; words captured from it stay, unlinked."""
    try:
        deleted = await story_store.delete_story(x_user_id, story_id)
    except (aiosqlite.Error, OSError) as e:
        raise _unavailable("delete", e) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Story not found")
    return {"ok": True}
