"""CRUD operations for the vocabulary table.

The natural key (owner_id, source_word, target_word, source_language_id,
target_language_id) is backed by a composite UNIQUE index; ``upsert_entry``
relies on it instead of a read-then-insert.
"""

import logging

from vocab_capture.db.sqlite_db import get_connection
from vocab_capture.models.vocabulary import VocabularyDraft

logger = logging.getLogger(__name__)

_NATURAL_KEY = "owner_id, source_word, target_word, source_language_id, target_language_id"

_SELECT = "SELECT v.*, sl.code AS source_language_code, tl.code AS target_language_code"

_FROM = """
    FROM vocabulary v
    LEFT JOIN languages sl ON sl.id = v.source_language_id
    LEFT JOIN languages tl ON tl.id = v.target_language_id
"""

_LIST_SQL = _SELECT + _FROM

# Same rows plus the story each word was captured from
_LIST_WITH_ORIGIN_SQL = (
    _SELECT
    + ", s.title AS origin_title, s.source_text AS origin_text"
    + _FROM
    + "    LEFT JOIN stories s ON s.id = v.origin_id\n"
)


def _list_sql(with_origin: bool) -> str:
    return _LIST_WITH_ORIGIN_SQL if with_origin else _LIST_SQL

_EDITABLE_COLUMNS = (
    "source_word",
    "target_word",
    "source_context",
    "target_context",
    "definition",
    "part_of_speech",
    "frequency_level",
)


async def upsert_entry(draft: VocabularyDraft) -> dict:
    """Insert the draft, or return the existing row with the same natural key.

    A stored origin_id is never overwritten. When the surviving row has none
    and the draft carries one, a follow-up UPDATE attaches it; the guard on
    ``origin_id IS NULL`` makes repeating it harmless. Both statements commit
    together or not at all.
    """
    conn = await get_connection()
    try:
        await conn.execute("BEGIN IMMEDIATE")
        cursor = await conn.execute(
            f"""
            INSERT INTO vocabulary
                ({_NATURAL_KEY}, source_context, target_context, definition,
                 part_of_speech, frequency_level, origin_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT({_NATURAL_KEY}) DO UPDATE SET owner_id = excluded.owner_id
            RETURNING *
            """,
            (
                *draft.natural_key(),
                draft.source_context,
                draft.target_context,
                draft.definition,
                draft.part_of_speech,
                draft.frequency_level,
                draft.origin_id,
            ),
        )
        row = await cursor.fetchone()
        await cursor.close()
        entry = dict(row)

        if entry["origin_id"] is None and draft.origin_id is not None:
            cursor = await conn.execute(
                """
                UPDATE vocabulary
                SET origin_id = ?, updated_at = datetime('now')
                WHERE id = ? AND origin_id IS NULL
                RETURNING *
                """,
                (draft.origin_id, entry["id"]),
            )
            linked = await cursor.fetchone()
            await cursor.close()
            if linked is not None:
                logger.debug("Linked vocabulary %d to origin %d", entry["id"], draft.origin_id)
                entry = dict(linked)

        await conn.commit()
        return entry
    finally:
        await conn.close()


async def exists(
    owner_id: str,
    source_word: str,
    target_word: str,
    source_language_id: int,
    target_language_id: int,
) -> bool:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            SELECT 1 FROM vocabulary
            WHERE owner_id = ? AND source_word = ? AND target_word = ?
              AND source_language_id = ? AND target_language_id = ?
            LIMIT 1
            """,
            (
                owner_id,
                source_word.strip(),
                target_word.strip(),
                source_language_id,
                target_language_id,
            ),
        )
        row = await cursor.fetchone()
        return row is not None
    finally:
        await conn.close()


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


async def source_word_exists(
    owner_id: str, source_word: str, source_language_id: int, target_language_id: int
) -> bool:
    """Whether the owner saved this source word for the pair, ignoring case.

    SQLite's lower() only folds ASCII, so comparison goes through Python's
    casefold registered on the connection.
    """
    conn = await get_connection()
    try:
        await conn.create_function("casefold", 1, _casefold, deterministic=True)
        cursor = await conn.execute(
            """
            SELECT 1 FROM vocabulary
            WHERE owner_id = ? AND source_language_id = ? AND target_language_id = ?
              AND casefold(trim(source_word)) = ?
            LIMIT 1
            """,
            (owner_id, source_language_id, target_language_id, _casefold(source_word.strip())),
        )
        row = await cursor.fetchone()
        return row is not None
    finally:
        await conn.close()


async def list_entries(
    owner_id: str,
    source_language_id: int | None = None,
    target_language_id: int | None = None,
    with_origin: bool = False,
) -> list[dict]:
    """List an owner's vocabulary, newest first, optionally for one language pair."""
    sql = _list_sql(with_origin) + " WHERE v.owner_id = ?"
    params: list = [owner_id]
    if source_language_id is not None:
        sql += " AND v.source_language_id = ?"
        params.append(source_language_id)
    if target_language_id is not None:
        sql += " AND v.target_language_id = ?"
        params.append(target_language_id)
    sql += " ORDER BY v.created_at DESC, v.id DESC"

    conn = await get_connection()
    try:
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    finally:
        await conn.close()


async def search_entries(
    owner_id: str,
    term: str,
    source_language_id: int | None = None,
    target_language_id: int | None = None,
    with_origin: bool = False,
) -> list[dict]:
    """Case-insensitive substring search over both words."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    sql = (
        _list_sql(with_origin)
        + " WHERE v.owner_id = ?"
        + " AND (v.source_word LIKE ? ESCAPE '\\' OR v.target_word LIKE ? ESCAPE '\\')"
    )
    params: list = [owner_id, pattern, pattern]
    if source_language_id is not None:
        sql += " AND v.source_language_id = ?"
        params.append(source_language_id)
    if target_language_id is not None:
        sql += " AND v.target_language_id = ?"
        params.append(target_language_id)
    sql += " ORDER BY v.created_at DESC, v.id DESC"

    conn = await get_connection()
    try:
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    finally:
        await conn.close()


async def get_entry(owner_id: str, entry_id: int) -> dict | None:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            _LIST_SQL + " WHERE v.owner_id = ? AND v.id = ?",
            (owner_id, entry_id),
        )
        row = await cursor.fetchone()
        return dict(row) if row else None
    finally:
        await conn.close()


async def update_entry(owner_id: str, entry_id: int, fields: dict) -> dict | None:
    """Update editable columns of one entry. Returns the new row, None if not found."""
    columns = [c for c in _EDITABLE_COLUMNS if c in fields]
    if not columns:
        return await get_entry(owner_id, entry_id)

    assignments = ", ".join(f"{c} = ?" for c in columns)
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            f"""
            UPDATE vocabulary
            SET {assignments}, updated_at = datetime('now')
            WHERE owner_id = ? AND id = ?
            RETURNING *
            """,
            (*[fields[c] for c in columns], owner_id, entry_id),
        )
        row = await cursor.fetchone()
        await cursor.close()
        await conn.commit()
        return dict(row) if row else None
    finally:
        await conn.close()


async def delete_entry(owner_id: str, entry_id: int) -> bool:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "DELETE FROM vocabulary WHERE owner_id = ? AND id = ?",
            (owner_id, entry_id),
        )
        await conn.commit()
        return cursor.rowcount > 0
    finally:
        await conn.close()


async def list_languages() -> list[dict]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT id, code, name, native_name FROM languages ORDER BY id"
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    finally:
        await conn.close()
