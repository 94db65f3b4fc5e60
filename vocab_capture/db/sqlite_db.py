import aiosqlite

from vocab_capture.infra.config import DB_BUSY_TIMEOUT_S, DB_PATH, ensure_data_dir

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS languages (
    id              INTEGER PRIMARY KEY,
    code            TEXT NOT NULL UNIQUE,
    name            TEXT NOT NULL,
    native_name     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS stories (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id        TEXT NOT NULL,
    title           TEXT,
    source_text     TEXT NOT NULL,
    translated_text TEXT,
    created_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS vocabulary (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id            TEXT NOT NULL,
    source_word         TEXT NOT NULL,
    target_word         TEXT NOT NULL,
    source_language_id  INTEGER NOT NULL REFERENCES languages(id),
    target_language_id  INTEGER NOT NULL REFERENCES languages(id),
    source_context      TEXT,
    target_context      TEXT,
    definition          TEXT,
    part_of_speech      TEXT,
    frequency_level     TEXT,
    origin_id           INTEGER REFERENCES stories(id) ON DELETE SET NULL,
    created_at          TEXT DEFAULT (datetime('now')),
    updated_at          TEXT DEFAULT (datetime('now')),
    CHECK (source_language_id <> target_language_id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_vocabulary_natural_key
    ON vocabulary(owner_id, source_word, target_word, source_language_id, target_language_id);
CREATE INDEX IF NOT EXISTS idx_vocabulary_owner       ON vocabulary(owner_id, created_at);
CREATE INDEX IF NOT EXISTS idx_vocabulary_pair        ON vocabulary(owner_id, source_language_id, target_language_id);
CREATE INDEX IF NOT EXISTS idx_vocabulary_origin      ON vocabulary(origin_id);
CREATE INDEX IF NOT EXISTS idx_stories_owner          ON stories(owner_id);
"""

# (id, code, name, native_name); ids are stable, clients refer to them directly
LANGUAGES: list[tuple[int, str, str, str]] = [
    (1, "en", "English", "English"),
    (2, "es", "Spanish", "Español"),
    (3, "fr", "French", "Français"),
    (4, "de", "German", "Deutsch"),
    (5, "it", "Italian", "Italiano"),
    (6, "pt", "Portuguese", "Português"),
    (7, "ja", "Japanese", "日本語"),
    (8, "ko", "Korean", "한국어"),
    (9, "zh", "Chinese", "中文"),
    (10, "ru", "Russian", "Русский"),
]


async def get_connection() -> aiosqlite.Connection:
    conn = await aiosqlite.connect(str(DB_PATH), timeout=DB_BUSY_TIMEOUT_S)
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = aiosqlite.Row
    return conn


async def create_schema(conn: aiosqlite.Connection) -> None:
    """Create tables and seed languages on an open connection (idempotent)."""
    await conn.executescript(_SCHEMA_SQL)
    await conn.executemany(
        "INSERT OR IGNORE INTO languages (id, code, name, native_name) VALUES (?, ?, ?, ?)",
        LANGUAGES,
    )
    await conn.commit()


async def init_db() -> None:
    ensure_data_dir()
    conn = await get_connection()
    try:
        await create_schema(conn)
    finally:
        await conn.close()
