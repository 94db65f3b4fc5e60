import logging
from contextlib import asynccontextmanager

import aiosqlite
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vocab_capture.api.routes import stories, vocabulary
from vocab_capture.api.websocket import vocabulary_ws
from vocab_capture.db import sqlite_db
from vocab_capture.infra.config import CORS_ORIGINS, OLLAMA_MODEL

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await sqlite_db.init_db()
    logger.info("Vocabulary database ready at %s", sqlite_db.DB_PATH)
    yield


app = FastAPI(title="Vocab Capture", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(vocabulary.router)
app.include_router(vocabulary.languages_router)
app.include_router(stories.router)
app.include_router(vocabulary_ws.router)


@app.get("/api/health")
async def health():
    """Report whether the vocabulary database answers; 503 when it does not."""
    body = {"db_path": str(sqlite_db.DB_PATH), "translation_model": OLLAMA_MODEL}
    try:
        conn = await sqlite_db.get_connection()
        try:
            rows = await conn.execute_fetchall("SELECT COUNT(*) FROM languages")
        finally:
            await conn.close()
    except (aiosqlite.Error, OSError) as e:
        logger.warning("Health check could not reach the database: %s", e)
        return JSONResponse(status_code=503, content={"status": "degraded", **body})
    return {"status": "ok", "languages": rows[0][0], **body}
