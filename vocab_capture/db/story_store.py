"""CRUD operations for stories, the documents vocabulary is captured from."""

from vocab_capture.db.sqlite_db import get_connection


async def create_story(
    owner_id: str,
    source_text: str,
    title: str | None = None,
    translated_text: str | None = None,
) -> dict:
    """Create a story and return it."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            INSERT INTO stories (owner_id, title, source_text, translated_text)
            VALUES (?, ?, ?, ?)
            RETURNING *
            """,
            (owner_id, title, source_text, translated_text),
        )
        row = await cursor.fetchone()
        await cursor.close()
        await conn.commit()
        return dict(row)
    finally:
        await conn.close()


async def get_story(owner_id: str, story_id: int) -> dict | None:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM stories WHERE owner_id = ? AND id = ?",
            (owner_id, story_id),
        )
        row = await cursor.fetchone()
        return dict(row) if row else None
    finally:
        await conn.close()


async def delete_story(owner_id: str, story_id: int) -> bool:
    """Delete a story. Vocabulary captured from it keeps its words, origin_id becomes NULL."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "DELETE FROM stories WHERE owner_id = ? AND id = ?",
            (owner_id, story_id),
        )
        await conn.commit()
        return cursor.rowcount > 0
    finally:
        await conn.close()


async def list_stories(owner_id: str) -> list[dict]:
    """An owner's stories, newest first."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM stories WHERE owner_id = ? ORDER BY created_at DESC, id DESC",
            (owner_id,),
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    finally:
        await conn.close()
