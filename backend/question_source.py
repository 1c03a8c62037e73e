# backend/question_source.py
import json
from typing import NamedTuple, Protocol

from groq import Groq
from loguru import logger

import config
from errors import EnrichmentUnavailable, RateLimited
from placeholder_hints import classify_placeholder, deterministic_question, generate_hint
from rate_limiter import RateLimiter


class QuestionSet(NamedTuple):
    questions: dict[str, str]
    source: str  # deterministic | ai | deterministic-fallback | rate-limited
    notice: str | None = None


class QuestionSource(Protocol):
    def generate(self, placeholders: list[str], document_context: str = "",
                 identifier: str | None = None, api_key: str | None = None) -> QuestionSet: ...

    def questions_for(self, placeholders: list[str], document_context: str = "") -> dict[str, str]: ...


class TemplateQuestionSource:
    """Category templates only. Pure; cannot fail."""

    def generate(self, placeholders, document_context="", identifier=None, api_key=None) -> QuestionSet:
        return QuestionSet(self.questions_for(placeholders, document_context), "deterministic")

    def questions_for(self, placeholders, document_context=""):
        return {p: deterministic_question(p) for p in placeholders}


SYSTEM_PROMPT = """You are an expert assistant for legal document filling. Your task is to generate clear, professional, conversational questions for each placeholder in a legal document.

RULES:
1. Keep each question under 15 words
2. Be direct and friendly
3. Don't include placeholder syntax in questions
4. Use the given type and hint of each placeholder:
   - amount = monetary value in dollars
   - company = company legal name
   - person = person's full name
   - date = calendar date
   - Underscores (___) = blank field to fill

OUTPUT FORMAT:
Return a JSON object with a "questions" array holding one object per placeholder, in the given order:
{"questions": [
  {"placeholder": "[Company Name]", "question": "What is the company's legal name?"},
  {"placeholder": "$[Amount]", "question": "What is the investment amount in dollars?"}
]}
Copy each placeholder string exactly as given."""


def extract_json_safe(text: str):
    try:
        return json.loads(text)
    except (TypeError, ValueError, RecursionError):
        pass
    # Model wrapped the JSON in prose or a code fence; take the outermost object/array.
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except (ValueError, RecursionError):
                continue
    return None


def parse_questions(raw: str, placeholders: list[str]) -> dict[str, str]:
    """
    Map the model output onto `placeholders`. Every placeholder must get a
    non-empty question or the whole batch is rejected.
    """
    parsed = extract_json_safe(raw or "")
    if isinstance(parsed, dict):
        items = parsed.get("questions")
        if not isinstance(items, list):
            items = next((v for v in parsed.values() if isinstance(v, list)), None)
    else:
        items = parsed
    if not isinstance(items, list) or not items:
        raise EnrichmentUnavailable("No questions array found in response")

    wanted = set(placeholders)
    found = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        key = item.get("placeholder")
        question = item.get("question")
        if isinstance(key, str) and key.strip() in wanted and isinstance(question, str) and question.strip():
            found.setdefault(key.strip(), question.strip())

    # Some models drop the placeholder echo; accept a positional answer of the right length.
    if not found and len(items) == len(placeholders):
        positional = [i.get("question") if isinstance(i, dict) else i for i in items]
        if all(isinstance(q, str) and q.strip() for q in positional):
            found = {p: q.strip() for p, q in zip(placeholders, positional)}

    missing = [p for p in placeholders if p not in found]
    if missing:
        raise EnrichmentUnavailable(f"Response is missing questions for {len(missing)} placeholder(s)")
    return {p: found[p] for p in placeholders}


def _default_client_factory(api_key: str):
    return Groq(api_key=api_key)


class GroqQuestionSource:
    """
    One batched Groq call per document for nicer phrasing. Any failure,
    including the shared quota running out, falls back to the template source
    for the whole batch.
    """

    def __init__(self, client=None, model: str = config.GROQ_MODEL,
                 limiter: RateLimiter | None = None,
                 fallback: TemplateQuestionSource | None = None,
                 context_chars: int = config.ENRICHMENT_CONTEXT_CHARS,
                 client_factory=_default_client_factory):
        self.client = client
        self.model = model
        self.limiter = limiter
        self.fallback = fallback or TemplateQuestionSource()
        self.context_chars = context_chars
        self.client_factory = client_factory

    def questions_for(self, placeholders, document_context=""):
        return self.generate(placeholders, document_context).questions

    def generate(self, placeholders, document_context="", identifier=None, api_key=None) -> QuestionSet:
        if not placeholders:
            return QuestionSet({}, "deterministic")

        client = self.client_factory(api_key) if api_key else self.client
        if client is None:
            logger.info("No Groq API key configured, using deterministic question generation")
            return self.fallback.generate(placeholders, document_context)

        try:
            # The shared quota only applies to the server's own key.
            if not api_key and self.limiter is not None:
                self._check_quota(identifier or "unknown")
            questions = self._request(client, placeholders, document_context)
        except RateLimited as e:
            logger.warning(f"Rate limit exceeded for {identifier or 'unknown'}")
            notice = (f"You've reached the maximum of {e.limit} AI questions per hour. "
                      "Using standard questions instead.")
            return QuestionSet(self.fallback.questions_for(placeholders), "rate-limited", notice)
        except EnrichmentUnavailable as e:
            logger.warning(f"Groq enrichment failed, falling back to deterministic: {e}")
            return QuestionSet(self.fallback.questions_for(placeholders), "deterministic-fallback",
                               "AI phrasing is unavailable right now; using standard questions.")

        logger.info(f"AI batch generated {len(questions)} questions")
        return QuestionSet(questions, "ai")

    def _check_quota(self, identifier: str) -> None:
        status = self.limiter.check(identifier)
        if not status.allowed:
            raise RateLimited("Rate limit exceeded", reset_at=status.reset_at, limit=self.limiter.max_requests)
        logger.debug(f"Rate limit check passed for {identifier}, remaining: {status.remaining}")

    def _request(self, client, placeholders: list[str], document_context: str) -> dict[str, str]:
        listing = [
            {"placeholder": p, "type": classify_placeholder(p), "hint": generate_hint(p)}
            for p in placeholders
        ]
        context = (document_context or "")[: self.context_chars] or "Legal agreement"
        user = (
            "Generate questions for these placeholders from a legal document:\n"
            f"{json.dumps(listing, indent=2)}\n\n"
            f"Document context: {context}\n\n"
            "Return ONLY the JSON object, no other text."
        )
        try:
            resp = client.chat.completions.create(
                model=self.model,
                temperature=0.3,
                max_tokens=max(500, 60 * len(placeholders)),
                response_format={"type": "json_object"},
                messages=[{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": user}],
            )
            raw = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            raise EnrichmentUnavailable(f"Groq request failed: {e}") from e

        if not raw:
            raise EnrichmentUnavailable("Empty response from Groq")
        logger.debug(f"Raw AI response: {raw[:200]}")
        try:
            return parse_questions(raw, placeholders)
        except EnrichmentUnavailable:
            raise
        except Exception as e:
            raise EnrichmentUnavailable(f"Unreadable response from Groq: {type(e).__name__}") from e


def build_question_source(limiter: RateLimiter | None = None) -> QuestionSource:
    """Pick the question strategy from QUESTION_SOURCE (auto | template | groq)."""
    mode = config.QUESTION_SOURCE
    if mode == "template":
        return TemplateQuestionSource()
    if mode == "groq" and not config.GROQ_API_KEY:
        logger.warning("QUESTION_SOURCE=groq but GROQ_API_KEY is not set; only caller keys will be used")
    elif mode not in ("auto", "groq"):
        logger.warning(f"Unknown QUESTION_SOURCE {mode!r}, using auto")
    client = Groq(api_key=config.GROQ_API_KEY) if config.GROQ_API_KEY else None
    return GroqQuestionSource(client=client, limiter=limiter)
