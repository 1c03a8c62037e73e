# backend/conversation.py
from enum import Enum

from loguru import logger

from errors import ConversationError, SkipRejected
from placeholder_hints import deterministic_question
from value_normalizer import normalize

SKIP_KEYWORD = "skip"

NO_PLACEHOLDERS_MESSAGE = (
    "I didn't find any placeholders in this document. Placeholders should be formatted like "
    "[Company Name], $[Amount], {variable}, ___, or [ ]. You can upload a different document "
    "or download this one as-is."
)


class State(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    COMPLETE = "complete"


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


class Conversation:
    """
    Walks the placeholder list one question at a time.

    Idle -> Awaiting(0) ... Awaiting(N-1) -> Complete, or Idle -> Complete
    straight away when the document has no placeholders. reset() goes back to
    Idle from anywhere and bumps `epoch`, which invalidates enrichment results
    computed for the previous document.
    """

    def __init__(self, question_fallback=deterministic_question, normalizer=normalize):
        self._question_fallback = question_fallback
        self._normalize = normalizer
        self.epoch = 0
        self._clear()

    def _clear(self):
        self.state = State.IDLE
        self.placeholders: list[str] = []
        self.answers: dict[str, str] = {}
        self.turns: list[dict] = []
        self.current_index = 0
        self.skipped: list[str] = []
        self._questions: dict[str, str] = {}

    # ---------- queries ----------
    def is_complete(self) -> bool:
        return self.state == State.COMPLETE

    @property
    def current_placeholder(self) -> str | None:
        if self.state != State.AWAITING:
            return None
        return self.placeholders[self.current_index]

    def question_for(self, placeholder: str) -> str:
        """Cached question, or the deterministic one (which is then cached)."""
        if placeholder not in self._questions:
            self._questions[placeholder] = self._question_fallback(placeholder)
        return self._questions[placeholder]

    def filled_count(self) -> int:
        return len(self.answers)

    # ---------- transitions ----------
    def cache_questions(self, questions: dict[str, str], epoch: int | None = None) -> bool:
        """
        Store questions produced for this session. Results computed before the
        last reset are dropped; returns whether they were applied.
        """
        if epoch is not None and epoch != self.epoch:
            logger.info(f"Discarding stale questions for epoch {epoch} (current {self.epoch})")
            return False
        for key, question in (questions or {}).items():
            if isinstance(question, str) and question.strip():
                self._questions.setdefault(key, question.strip())
        return True

    def start(self, placeholders: list[str], questions: dict[str, str] | None = None,
              epoch: int | None = None) -> bool:
        if epoch is not None and epoch != self.epoch:
            logger.info(f"Ignoring start for stale epoch {epoch} (current {self.epoch})")
            return False
        if self.state != State.IDLE:
            raise ConversationError("Conversation already started; reset it first.")

        self.placeholders = list(placeholders)
        if questions:
            self.cache_questions(questions)

        n = len(self.placeholders)
        if n == 0:
            self.state = State.COMPLETE
            self._say(NO_PLACEHOLDERS_MESSAGE)
            return True

        self.state = State.AWAITING
        self.current_index = 0
        self._say(f"Great! I found {n} placeholder{_plural(n)} in your document. "
                  "Let's fill them in one by one.")
        self._say(self.question_for(self.placeholders[0]))
        return True

    def submit_answer(self, text: str) -> None:
        if self.state != State.AWAITING:
            raise ConversationError("No question is waiting for an answer.")
        raw = (text or "").strip()
        if not raw:
            raise ConversationError("Answer cannot be empty.")

        placeholder = self.placeholders[self.current_index]
        if raw.lower() == SKIP_KEYWORD:
            self.skipped.append(placeholder)
        else:
            self.answers[placeholder] = self._normalize(raw, placeholder)
        self.turns.append({"role": "user", "content": raw})
        self._advance()

    def skip(self, index: int) -> None:
        if self.state != State.AWAITING or index != self.current_index:
            raise SkipRejected(f"Placeholder {index} is not the current question.")
        self.submit_answer(SKIP_KEYWORD)

    def reset(self) -> None:
        self.epoch += 1
        self._clear()

    # ---------- internals ----------
    def _advance(self):
        self.current_index += 1
        n = len(self.placeholders)
        if self.current_index < n:
            self._say(self.question_for(self.placeholders[self.current_index]))
            return

        self.state = State.COMPLETE
        filled = self.filled_count()
        if filled == n:
            summary = (f"Perfect! All {n} placeholder{_plural(n)} have been filled. "
                       "You can now review the completed document and download it.")
        else:
            summary = (f"Done! Filled {filled} of {n} placeholder{_plural(n)}; "
                       f"{n - filled} skipped placeholder{_plural(n - filled)} will stay as-is. "
                       "You can now review the document and download it.")
        self._say(summary)

    def _say(self, content: str):
        self.turns.append({"role": "assistant", "content": content})

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "current_index": self.current_index if self.state == State.AWAITING else None,
            "current_placeholder": self.current_placeholder,
            "total": len(self.placeholders),
            "filled": self.filled_count(),
            "answers": dict(self.answers),
            "messages": list(self.turns),
        }
