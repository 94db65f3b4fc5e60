"""New-entry form session: field validation, duplicate advisory, submission."""

from __future__ import annotations

import logging

from vocab_capture.models.vocabulary import VocabularyDraft, VocabularyEntry
from vocab_capture.services.duplicate_validator import (
    DuplicateValidator,
    store_duplicate_check,
)
from vocab_capture.services.vocabulary_service import (
    CaptureValidationError,
    PersistenceError,
    VocabularyService,
)

logger = logging.getLogger(__name__)

TRIGGER_FIELDS = ("source_word", "source_language_id", "target_language_id")

_TEXT_FIELDS = (
    "source_word",
    "target_word",
    "source_context",
    "target_context",
    "definition",
    "part_of_speech",
    "frequency_level",
)

SAVE_FAILED = "vocabulary.errors.saveFailed"


class VocabularyForm:
    """State of one "add word" form.

    Field errors are message keys the UI resolves; ``general`` carries the
    duplicate advisory or a persistence failure.
    """

    def __init__(
        self,
        service: VocabularyService,
        owner_id: str,
        source_language_id: int | None = None,
        target_language_id: int | None = None,
        origin_id: int | None = None,
        validator: DuplicateValidator | None = None,
        **initial: str,
    ):
        self._service = service
        self.owner_id = owner_id
        self.origin_id = origin_id
        self.values: dict = {name: "" for name in _TEXT_FIELDS}
        self.values["source_language_id"] = source_language_id
        self.values["target_language_id"] = target_language_id
        for name, value in initial.items():
            if name not in _TEXT_FIELDS:
                raise ValueError(f"Unknown form field: {name}")
            self.values[name] = value or ""
        self.validator = validator or DuplicateValidator(store_duplicate_check(service, owner_id))
        self.field_errors: dict[str, str] = {}
        self.submit_error: str | None = None
        self.is_submitting = False

    @property
    def errors(self) -> dict[str, str]:
        merged = dict(self.field_errors)
        general = self.validator.general_error or self.submit_error
        if general:
            merged["general"] = general
        return merged

    @property
    def can_submit(self) -> bool:
        return (
            not self.is_submitting
            and not self.validator.is_checking
            and self.validator.general_error is None
            and not self._collect_errors()
        )

    def open(self) -> None:
        """Run the advisory once for prefilled values (e.g. a word picked from a story)."""
        self._recheck()

    def set_field(self, name: str, value) -> None:
        if name not in self.values:
            raise ValueError(f"Unknown form field: {name}")
        self.values[name] = value
        self.field_errors.pop(name, None)
        self.submit_error = None
        if name in TRIGGER_FIELDS:
            self._recheck()

    def _recheck(self) -> None:
        self.validator.fields_changed(
            self.values["source_word"],
            self.values["source_language_id"],
            self.values["target_language_id"],
        )

    def validate(self) -> bool:
        """Refresh field errors. False while a duplicate check is still pending."""
        self.field_errors = self._collect_errors()
        return (
            not self.field_errors
            and not self.validator.is_checking
            and self.validator.general_error is None
        )

    def _collect_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.values["source_word"].strip():
            errors["source_word"] = "vocabulary.validation.sourceWordRequired"
        if not self.values["target_word"].strip():
            errors["target_word"] = "vocabulary.validation.targetWordRequired"

        source_id = self.values["source_language_id"]
        target_id = self.values["target_language_id"]
        if not source_id:
            errors["source_language_id"] = "vocabulary.validation.sourceLanguageRequired"
        if not target_id:
            errors["target_language_id"] = "vocabulary.validation.targetLanguageRequired"
        if source_id and target_id and source_id == target_id:
            errors["source_language_id"] = "vocabulary.validation.languagesMustDiffer"
            errors["target_language_id"] = "vocabulary.validation.languagesMustDiffer"
        return errors

    def to_draft(self) -> VocabularyDraft:
        def optional(name: str) -> str | None:
            return self.values[name].strip() or None

        return VocabularyDraft(
            owner_id=self.owner_id,
            source_word=self.values["source_word"].strip(),
            target_word=self.values["target_word"].strip(),
            source_language_id=self.values["source_language_id"],
            target_language_id=self.values["target_language_id"],
            source_context=optional("source_context"),
            target_context=optional("target_context"),
            definition=optional("definition"),
            part_of_speech=optional("part_of_speech"),
            frequency_level=optional("frequency_level"),
            origin_id=self.origin_id,
        )

    async def submit(self) -> VocabularyEntry | None:
        """Validate and capture. Returns None when the form blocks submission.

        Persistence failures are recorded on the form and re-raised.
        """
        if self.is_submitting or not self.validate():
            return None

        self.is_submitting = True
        try:
            return await self._service.capture(self.to_draft())
        except CaptureValidationError as e:
            self.field_errors[e.field] = e.message_key
            raise
        except PersistenceError as e:
            logger.warning("Vocabulary form submit failed for owner=%s: %s", self.owner_id, e)
            self.submit_error = SAVE_FAILED
            raise
        finally:
            self.is_submitting = False

    def close(self) -> None:
        self.validator.close()
