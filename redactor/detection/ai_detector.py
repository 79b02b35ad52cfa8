"""LLM-based PII detector — the external AI layer of the pipeline.

Two strategies, tried in order until one returns entities:

1. **Word-ID** (preferred): the OCR words are sent as ``[{id, text}]``
   tokens and the model answers with the token ids that make up each
   entity.  Boxes come straight from those words, so masks are
   pixel-exact and no text matching is needed.
2. **Phrase** (fallback): the page text is sent and the model answers
   with verbatim phrases, which are located in the word stream by
   cleaned-token matching.  Cheaper, but lossy when the model paraphrases.

Failures never escape: malformed items are skipped one by one, a failed
strategy falls through to the next, and exhausted quota ends the chain
immediately since every strategy would hit the same wall.
"""

from __future__ import annotations

import json
import logging
import math
import re as _re
from typing import Callable, Iterable, NamedTuple, Optional, Sequence

from models.schemas import DetectedEntity, DetectionLayer, PIIType, Word, new_entity_id
from redactor.config import config
from redactor.detection.bbox_utils import pad_bbox, union_bbox
from redactor.detection.detection_config import (
    AI_MASK_PADDING,
    AI_PHRASE_CONFIDENCE,
    AI_WORD_ID_CONFIDENCE,
)
from redactor.llm.remote_engine import QuotaExceededError, RemoteLLMError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


# ---------------------------------------------------------------------------
# Category mapping
# ---------------------------------------------------------------------------

CATEGORY_MAP: dict[str, PIIType] = {
    "name": PIIType.NAME,
    "person": PIIType.NAME,
    "full_name": PIIType.NAME,
    "person_name": PIIType.NAME,
    "first_name": PIIType.NAME,
    "last_name": PIIType.NAME,
    "phone": PIIType.PHONE,
    "phone_number": PIIType.PHONE,
    "mobile": PIIType.PHONE,
    "mobile_number": PIIType.PHONE,
    "telephone": PIIType.PHONE,
    "contact_number": PIIType.PHONE,
    "email": PIIType.EMAIL,
    "email_address": PIIType.EMAIL,
    "address": PIIType.ADDRESS,
    "physical_address": PIIType.ADDRESS,
    "location": PIIType.ADDRESS,
    "residence": PIIType.ADDRESS,
    "home_address": PIIType.ADDRESS,
    "aadhaar": PIIType.AADHAAR,
    "aadhar": PIIType.AADHAAR,
    "aadhaar_number": PIIType.AADHAAR,
    "uid": PIIType.AADHAAR,
    "pan": PIIType.PAN,
    "pan_number": PIIType.PAN,
    "permanent_account_number": PIIType.PAN,
    "credit_card": PIIType.CREDIT_CARD,
    "credit_card_number": PIIType.CREDIT_CARD,
    "card_number": PIIType.CREDIT_CARD,
    "debit_card": PIIType.CREDIT_CARD,
    "dob": PIIType.DOB,
    "date_of_birth": PIIType.DOB,
    "birth_date": PIIType.DOB,
    "birthday": PIIType.DOB,
    "medical": PIIType.MEDICAL,
    "health": PIIType.MEDICAL,
    "diagnosis": PIIType.MEDICAL,
    "disease": PIIType.MEDICAL,
    "medication": PIIType.MEDICAL,
    "medical_condition": PIIType.MEDICAL,
    "prescription": PIIType.MEDICAL,
    "account_number": PIIType.ACCOUNT_NUMBER,
    "bank_account": PIIType.ACCOUNT_NUMBER,
    "ifsc": PIIType.IFSC,
    "ifsc_code": PIIType.IFSC,
    "invoice_no": PIIType.INVOICE_NO,
    "invoice_number": PIIType.INVOICE_NO,
    "gst": PIIType.GST,
    "gstin": PIIType.GST,
    "gst_number": PIIType.GST,
    "sensitive": PIIType.SENSITIVE,
}

_CATEGORY_SEP_RE = _re.compile(r"[\s\-]+")


def map_category(category: object) -> PIIType:
    """Map a model-supplied category onto the closed type set.

    Case, surrounding whitespace and space/hyphen separators are ignored;
    anything unrecognised becomes ``SENSITIVE``.
    """
    if not isinstance(category, str):
        return PIIType.SENSITIVE
    key = _CATEGORY_SEP_RE.sub("_", category.strip().lower())
    return CATEGORY_MAP.get(key, PIIType.SENSITIVE)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

WORD_ID_SYSTEM_PROMPT = """\
You are a data privacy assistant specialising in PII detection on scanned \
documents.

You receive a JSON array of OCR tokens, each {"id": <int>, "text": <word>}. \
Read the tokens in order to reconstruct the document, find every piece of \
personal or sensitive information, and report the exact ids of the tokens \
that make it up.

Types: NAME, PHONE_NUMBER, EMAIL, ADDRESS, AADHAAR, PAN, CREDIT_CARD, DOB, \
MEDICAL, ACCOUNT_NUMBER, IFSC, INVOICE_NO, GST, SENSITIVE

Return ONLY a JSON array, no markdown:
[{"type": "NAME", "value": "full phrase", "wordIds": [3, 4]}]
Nothing found: []
"""

WORD_ID_USER_TEMPLATE = """\
{hint}Document tokens:
{tokens}

JSON:"""

PHRASE_SYSTEM_PROMPT = """\
You are a PII detection system. Identify ALL sensitive or private \
information in the document text that should be redacted.

Each item must have:
- "text": the EXACT text as it appears in the document (verbatim)
- "category": one of name, phone, email, address, aadhaar, pan, \
credit card, dob, medical, account number, ifsc, invoice number, gst \
(or a brief description if none fit)

Return ONLY a raw JSON array, no explanation:
[{"text": "Rahul Sharma", "category": "name"}]
Nothing found: []
"""

PHRASE_USER_TEMPLATE = """\
{hint}Document text:
\"\"\"
{text}
\"\"\"

JSON:"""


def _required_fields_hint(required_fields: Iterable[PIIType]) -> str:
    fields = sorted(PIIType(f).value for f in required_fields)
    if not fields:
        return ""
    return (
        "The user keeps these fields visible, but still report them: "
        + ", ".join(fields) + "\n\n"
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _parse_json_array(response: str) -> Optional[list]:
    """Extract a JSON array from a model response, or None if there is none.

    Tolerates markdown code fences and chatter around the array.
    """
    response = response.strip()

    # Handle markdown code blocks
    if response.startswith("```"):
        response = "\n".join(
            line for line in response.split("\n") if not line.startswith("```")
        )

    try:
        findings = json.loads(response)
    except json.JSONDecodeError:
        match = _re.search(r"\[.*\]", response, _re.DOTALL)
        if not match:
            logger.warning("No JSON array in AI response (%d chars)", len(response))
            return None
        try:
            findings = json.loads(match.group())
        except json.JSONDecodeError:
            logger.warning("Could not parse AI JSON (%d chars)", len(response))
            return None

    if not isinstance(findings, list):
        logger.warning("AI response is %s, expected a list", type(findings).__name__)
        return None
    return findings


def _valid_word_id_item(item: object) -> bool:
    if not isinstance(item, dict):
        return False
    ids = item.get("wordIds")
    return (
        isinstance(item.get("type"), str)
        and isinstance(item.get("value"), str)
        and isinstance(ids, list)
        and len(ids) > 0
        and all(isinstance(i, int) and not isinstance(i, bool) for i in ids)
    )


def word_id_entities(
    items: Sequence[object],
    words: Sequence[Word],
    page_index: int = 0,
) -> list[DetectedEntity]:
    """Turn validated word-ID items into padded, box-exact entities.

    Ids outside the word list are ignored; an item with no valid id left
    is dropped.
    """
    entities: list[DetectedEntity] = []
    for item in items:
        if not _valid_word_id_item(item):
            logger.debug("Skipping malformed word-ID item")
            continue
        ids = sorted({i for i in item["wordIds"] if 0 <= i < len(words)})
        if not ids:
            logger.debug("Skipping word-ID item with no resolvable ids")
            continue
        bbox = union_bbox((words[i].bbox for i in ids), page_index)
        entities.append(DetectedEntity(
            id=new_entity_id("wid_"),
            type=map_category(item["type"]),
            value=item["value"],
            confidence=AI_WORD_ID_CONFIDENCE,
            bbox=pad_bbox(bbox, AI_MASK_PADDING),
            layer=DetectionLayer.AI,
        ))
    return entities


# ---------------------------------------------------------------------------
# Phrase → word matching
# ---------------------------------------------------------------------------

_CLEAN_RE = _re.compile(r"[^a-z0-9]")


def _clean(text: str) -> str:
    return _CLEAN_RE.sub("", text.lower())


def find_phrase_words(phrase: str, words: Sequence[Word]) -> list[Word]:
    """Locate *phrase* in the word stream.

    Tries, in order: an exact window of cleaned tokens; for one-token
    phrases, any word equal after cleaning; the longest run starting at a
    word equal to the first token that covers at least half the tokens.
    Returns an empty list when nothing qualifies.
    """
    needle = [_clean(t) for t in phrase.split()]
    if not needle or not words:
        return []
    cleaned = [_clean(w.text) for w in words]
    n = len(needle)

    for i in range(len(words) - n + 1):
        if cleaned[i:i + n] == needle:
            return list(words[i:i + n])

    if n == 1:
        for i, c in enumerate(cleaned):
            if c == needle[0]:
                return [words[i]]

    min_run = math.ceil(n / 2)
    for i, c in enumerate(cleaned):
        if c != needle[0]:
            continue
        j = 1
        while j < n and i + j < len(words) and cleaned[i + j] == needle[j]:
            j += 1
        if j >= min_run:
            return list(words[i:i + j])
    return []


def phrase_entities(
    items: Sequence[object],
    words: Sequence[Word],
    page_index: int = 0,
) -> list[DetectedEntity]:
    """Turn ``{text, category}`` items into entities, one per distinct text."""
    entities: list[DetectedEntity] = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        text = text.strip()
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)

        matched = find_phrase_words(text, words)
        if not matched:
            logger.debug("AI phrase not found in OCR words (%d chars)", len(text))
            continue
        entities.append(DetectedEntity(
            id=new_entity_id("gem_"),
            type=map_category(item.get("category")),
            value=text,
            confidence=AI_PHRASE_CONFIDENCE,
            bbox=union_bbox((w.bbox for w in matched), page_index),
            layer=DetectionLayer.AI,
        ))
    return entities


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class WordIdStrategy:
    """Ask the model for token ids; chunked to bound prompt size."""

    name = "word_id"

    def __init__(self, engine, timeout: float | None = None, tokens_per_call: int | None = None) -> None:
        self.engine = engine
        self.timeout = config.ai_word_id_timeout if timeout is None else timeout
        self.tokens_per_call = config.ai_tokens_per_call if tokens_per_call is None else tokens_per_call

    def detect(
        self,
        words: Sequence[Word],
        full_text: str,
        required_fields: Iterable[PIIType] = (),
        page_index: int = 0,
        on_progress: ProgressCallback | None = None,
    ) -> list[DetectedEntity]:
        if not words:
            return []
        tokens = [{"id": i, "text": w.text} for i, w in enumerate(words)]
        hint = _required_fields_hint(required_fields)

        entities: list[DetectedEntity] = []
        for start in range(0, len(tokens), self.tokens_per_call):
            chunk = tokens[start:start + self.tokens_per_call]
            if on_progress:
                on_progress(f"Analyzing tokens {start + 1}-{start + len(chunk)} of {len(tokens)}...")
            response = self.engine.generate(
                system_prompt=WORD_ID_SYSTEM_PROMPT,
                user_prompt=WORD_ID_USER_TEMPLATE.format(
                    hint=hint, tokens=json.dumps(chunk, ensure_ascii=False),
                ),
                max_tokens=4096,
                temperature=0.1,
                top_p=0.8,
                timeout=self.timeout,
            )
            items = _parse_json_array(response)
            if items is None:
                continue
            entities.extend(word_id_entities(items, words, page_index))
        return entities


class PhraseStrategy:
    """Ask the model for verbatim phrases and locate them in the words."""

    name = "phrase"

    def __init__(self, engine, timeout: float | None = None) -> None:
        self.engine = engine
        self.timeout = config.ai_phrase_timeout if timeout is None else timeout

    def detect(
        self,
        words: Sequence[Word],
        full_text: str,
        required_fields: Iterable[PIIType] = (),
        page_index: int = 0,
        on_progress: ProgressCallback | None = None,
    ) -> list[DetectedEntity]:
        if not words or not full_text.strip():
            return []
        if on_progress:
            on_progress("Trying phrase-level AI detection...")
        response = self.engine.generate(
            system_prompt=PHRASE_SYSTEM_PROMPT,
            user_prompt=PHRASE_USER_TEMPLATE.format(
                hint=_required_fields_hint(required_fields), text=full_text,
            ),
            max_tokens=2048,
            temperature=0.1,
            top_p=0.8,
            timeout=self.timeout,
        )
        items = _parse_json_array(response)
        if items is None:
            return []
        return phrase_entities(items, words, page_index)


def default_strategies(engine) -> tuple:
    return (WordIdStrategy(engine), PhraseStrategy(engine))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class AIResult(NamedTuple):
    entities: list[DetectedEntity]
    strategy: Optional[str]     # name of the strategy that produced them


def detect_ai(
    words: Sequence[Word],
    full_text: str,
    engine=None,
    required_fields: Iterable[PIIType] = (),
    page_index: int = 0,
    on_progress: ProgressCallback | None = None,
    strategies: Sequence | None = None,
) -> AIResult:
    """Run the AI strategies in order until one returns entities.

    Never raises on service failure: the worst case is an empty result.
    """
    if not words:
        return AIResult([], None)
    if engine is None or not engine.is_loaded():
        logger.info("AI engine not available, skipping AI detection")
        return AIResult([], None)

    required_fields = tuple(required_fields)
    for strategy in strategies if strategies is not None else default_strategies(engine):
        try:
            entities = strategy.detect(
                words, full_text, required_fields, page_index, on_progress,
            )
        except QuotaExceededError as e:
            logger.warning("AI quota exhausted during %s strategy, giving up: %s", strategy.name, e)
            return AIResult([], None)
        except RemoteLLMError as e:
            logger.warning("AI %s strategy failed, falling back: %s", strategy.name, e)
            continue

        if entities:
            logger.info(
                "Page %d: AI %s strategy found %d entities",
                page_index, strategy.name, len(entities),
            )
            return AIResult(entities, strategy.name)
        logger.info("Page %d: AI %s strategy found nothing", page_index, strategy.name)

    return AIResult([], None)
