"""Stories: the texts vocabulary is captured from."""

from pydantic import BaseModel


class Story(BaseModel):
    id: int
    owner_id: str
    title: str | None = None
    source_text: str
    translated_text: str | None = None
    created_at: str
