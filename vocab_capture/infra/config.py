import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(os.environ.get("VOCAB_CAPTURE_DATA_DIR", Path.home() / ".vocab-capture"))
DB_PATH = DATA_DIR / "vocabulary.db"

# Seconds a connection waits on a locked database before giving up
DB_BUSY_TIMEOUT_S = float(os.environ.get("DB_BUSY_TIMEOUT_S", "5"))

# Quiet interval before the new-entry form asks whether a word is already saved
DUPLICATE_CHECK_DEBOUNCE_MS = int(os.environ.get("DUPLICATE_CHECK_DEBOUNCE_MS", "350"))

# 0 disables the timeout: a pending save waits for its target word indefinitely
PENDING_SAVE_TIMEOUT_S = float(os.environ.get("PENDING_SAVE_TIMEOUT_S", "0"))

OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.environ.get("OLLAMA_MODEL", "qwen3:8b")
TRANSLATION_TIMEOUT_S = float(os.environ.get("TRANSLATION_TIMEOUT_S", "30"))

CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
    if o.strip()
]


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
