import logging
from typing import Any, Optional

from extraction.validation import (
    BULK_REQUIRED,
    SINGLE_REQUIRED,
    Rejected,
    validate_event,
)
from llm import prompts
from llm.llm_client import LLMClient
from schedule_ai.exceptions import IncompleteExtractionError, MalformedResponseError
from schedule_ai.metrics import EVENTS_EXTRACTED_TOTAL, EVENTS_REJECTED_TOTAL
from schedule_ai.models import BulkExtractionResult, NowContext, RejectedElement, StructuredEvent

logger = logging.getLogger(__name__)

# Below this many characters a document is not worth a generation call.
MIN_DOCUMENT_TEXT_LENGTH = 40

PLACEHOLDER_DOCUMENT_TEXT = """JADWAL KULIAH / CLASS SCHEDULE
Senin 2024-08-05 08:00-10:00 Algoritma dan Struktur Data - Lab Komputer 1
Senin 2024-08-05 13:00-15:00 Presentasi Project UI/UX - Ruang Seminar A
Selasa 2024-08-06 10:30-11:30 Meeting Client - Logo Design - Coffee Shop Central"""


def prepare_document_text(text: Optional[str], min_length: int = MIN_DOCUMENT_TEXT_LENGTH) -> str:
    """Return ``text`` or, when it is missing or too short, the placeholder schedule."""
    stripped = (text or "").strip()
    if len(stripped) < min_length:
        logger.info(
            f"Document text too short ({len(stripped)} < {min_length} chars); using placeholder text"
        )
        return PLACEHOLDER_DOCUMENT_TEXT
    return stripped


class EventExtractor:
    """Turns a phrase or a document into StructuredEvent records."""

    def __init__(self, llm_client: Optional[LLMClient] = None, min_document_length: int = MIN_DOCUMENT_TEXT_LENGTH):
        self.llm = llm_client if llm_client is not None else LLMClient()
        self.min_document_length = min_document_length

    async def extract_one(self, phrase: str, now: Optional[NowContext] = None) -> StructuredEvent:
        """Single-phrase mode: one event or an exception, never a partial result."""
        if not phrase or not phrase.strip():
            raise ValueError("phrase must not be empty")
        now = now or NowContext.now()

        data = await self.llm.complete_json(prompts.build_single_event_prompt(phrase, now), "object")
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object, got {type(data).__name__}", raw=data
            )

        result = validate_event(data, fallback_id="1", required=SINGLE_REQUIRED, source_text=phrase)
        if isinstance(result, Rejected):
            if result.missing:
                raise IncompleteExtractionError(result.missing, raw=data)
            raise MalformedResponseError(result.reason, raw=data)

        EVENTS_EXTRACTED_TOTAL.labels(mode="single").inc()
        logger.info(f"Extracted event '{result.event.title}' on {result.event.date} {result.event.start_time}")
        return result.event

    async def extract_many(self, document_text: str, instruction: Optional[str] = None) -> BulkExtractionResult:
        """Bulk-document mode: invalid elements are reported, not raised."""
        data = await self.llm.complete_json(prompts.build_document_prompt(document_text, instruction), "array")
        if not isinstance(data, list):
            raise MalformedResponseError(f"Expected a JSON array, got {type(data).__name__}", raw=data)

        result = BulkExtractionResult()
        seen_ids: set = set()
        for index, raw in enumerate(data):
            checked = validate_event(raw, fallback_id=str(index + 1), required=BULK_REQUIRED)
            if isinstance(checked, Rejected):
                logger.warning(f"Dropping extracted element #{index + 1}: {checked.reason}")
                result.rejected.append(RejectedElement(index=index, raw=raw, reason=checked.reason))
                continue

            event = checked.event
            if event.id in seen_ids:
                event = event.model_copy(update={"id": _unique_id(str(index + 1), seen_ids)})
            seen_ids.add(event.id)
            result.events.append(event)

        EVENTS_EXTRACTED_TOTAL.labels(mode="bulk").inc(len(result.events))
        if result.rejected:
            EVENTS_REJECTED_TOTAL.inc(len(result.rejected))
        logger.info(f"Extracted {len(result.events)} events ({len(result.rejected)} rejected)")
        return result

    async def extract_document(self, document_text: Optional[str], instruction: Optional[str] = None) -> BulkExtractionResult:
        text = prepare_document_text(document_text, self.min_document_length)
        result = await self.extract_many(text, instruction)
        result.used_placeholder = text is PLACEHOLDER_DOCUMENT_TEXT
        return result


def _unique_id(candidate: str, taken: Any) -> str:
    if candidate not in taken:
        return candidate
    n = 2
    while f"{candidate}-{n}" in taken:
        n += 1
    return f"{candidate}-{n}"
