from pydantic import BaseModel

from vocab_capture.models.story import Story


class StoryCreateRequest(BaseModel):
    source_text: str
    title: str | None = None
    translated_text: str | None = None


class StoryListResponse(BaseModel):
    stories: list[Story]
