"""Single-word translation through the Ollama chat API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

import httpx

from vocab_capture.infra.config import OLLAMA_BASE_URL, OLLAMA_MODEL, TRANSLATION_TIMEOUT_S

if TYPE_CHECKING:
    from vocab_capture.services.observable import ObservableValue
    from vocab_capture.services.save_gate import PrepareHook

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You translate single words for a language learner. "
    "Reply with the one best translation of the word as it is used in the given "
    "sentence, as JSON: {\"translation\": \"...\"}. No explanations."
)

_FORMAT = {
    "type": "object",
    "properties": {"translation": {"type": "string"}},
    "required": ["translation"],
}

# Background translations started by prepare hooks; kept so they are not collected
_background: set[asyncio.Task] = set()


class TranslationError(Exception):
    """Base exception for word translation failures."""


class TranslationTimeoutError(TranslationError):
    """Raised when the translation backend does not answer in time."""


class WordTranslator:
    """Async client that asks a local Ollama model for one word's translation."""

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        model: str = OLLAMA_MODEL,
        timeout: float = TRANSLATION_TIMEOUT_S,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def translate(
        self,
        word: str,
        source_code: str,
        target_code: str,
        context: str | None = None,
    ) -> str:
        prompt = f"Word: {word}\nFrom: {source_code}\nTo: {target_code}"
        if context:
            prompt += f"\nSentence: {context}"
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "think": False,
            "format": _FORMAT,
            "options": {"temperature": 0.0},
        }

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0)
            ) as client:
                resp = await client.post(f"{self.base_url}/api/chat", json=payload)
                resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TranslationTimeoutError(
                f"Translation timed out after {self.timeout}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise TranslationError(
                f"Translation HTTP error {exc.response.status_code}: {exc.response.text[:300]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranslationError(f"Translation backend unreachable: {exc}") from exc

        content: str = resp.json().get("message", {}).get("content", "")
        translation = _parse_translation(content)
        if not translation:
            raise TranslationError(f"Empty translation for {word!r}")
        logger.debug("Translated %r (%s -> %s): %r", word, source_code, target_code, translation)
        return translation


def _parse_translation(content: str) -> str:
    content = content.strip()
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        # Model ignored the schema; take the first line as the answer
        return content.splitlines()[0].strip().strip('"') if content else ""
    if isinstance(data, dict):
        return str(data.get("translation", "")).strip()
    if isinstance(data, str):
        return data.strip()
    return ""


def translation_prepare(
    translator: WordTranslator,
    target_word: ObservableValue[str],
    source_word: str,
    source_code: str,
    target_code: str,
    context: str | None = None,
) -> PrepareHook:
    """Build a SaveGate prepare hook that starts the translation if it has not run.

    The hook returns immediately; the gate waits in PENDING_SAVE and saves once
    the translation lands in ``target_word``.
    """

    def prepare() -> None:
        if target_word.value.strip():
            return

        async def run() -> None:
            try:
                translation = await translator.translate(
                    source_word, source_code, target_code, context
                )
            except TranslationError as e:
                logger.warning("Translation for %r failed: %s", source_word, e)
                return
            target_word.set(translation)

        task = asyncio.get_running_loop().create_task(run())
        _background.add(task)
        task.add_done_callback(_background.discard)

    return prepare
