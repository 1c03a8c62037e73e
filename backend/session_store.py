# backend/session_store.py
import threading
import uuid
from dataclasses import dataclass, field

from loguru import logger

import config
from conversation import Conversation
from docx_parser import read_docx, write_docx
from errors import GenerationNotReady, SessionNotFound
from markup import MarkupTree
from placeholder_engine import extract_placeholders
from question_source import QuestionSet, QuestionSource, TemplateQuestionSource
from render_service import docx_to_html
from substitution import STRATEGIES, substitute


@dataclass
class SourceDocument:
    name: str
    data: bytes
    plain_text: str
    markup: MarkupTree


@dataclass
class Session:
    document: SourceDocument
    conversation: Conversation = field(default_factory=Conversation)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    question_source: str = "pending"
    notice: str | None = None

    @property
    def placeholders(self) -> list[str]:
        return self.conversation.placeholders


class SessionStore:
    """
    Holds the one live session. Every transition runs under the lock; the
    enrichment call does not, and its result is applied only if the
    conversation epoch is unchanged by then.
    """

    def __init__(self, question_source: QuestionSource, strategy: str = config.SUBSTITUTION_STRATEGY):
        if strategy not in STRATEGIES:
            logger.warning(f"Unknown SUBSTITUTION_STRATEGY {strategy!r}, using collapse")
            strategy = "collapse"
        self.question_source = question_source
        self.strategy = strategy
        self.current: Session | None = None
        self._lock = threading.RLock()

    def get(self, session_id: str) -> Session:
        with self._lock:
            if self.current is None or self.current.id != session_id:
                raise SessionNotFound("Session not found")
            return self.current

    def open(self, name: str, data: bytes, identifier: str | None = None,
             api_key: str | None = None) -> Session:
        """
        Parse `data` and make it the live session, replacing any previous one.
        ParseFailed propagates before the previous session is touched.
        """
        parsed = read_docx(data)
        placeholders = extract_placeholders(parsed.plain_text)
        logger.info(f"Opened {name!r}: {len(placeholders)} placeholders")

        with self._lock:
            if self.current is not None:
                self.current.conversation.reset()
            session = Session(SourceDocument(name, data, parsed.plain_text, parsed.markup))
            self.current = session
            epoch = session.conversation.epoch

        try:
            questions = self.question_source.generate(placeholders, parsed.plain_text,
                                                      identifier=identifier, api_key=api_key)
        except Exception as e:
            logger.exception(f"Question source failed for {name!r}, using deterministic questions: {e}")
            questions = QuestionSet(TemplateQuestionSource().questions_for(placeholders),
                                    "deterministic-fallback",
                                    "AI phrasing is unavailable right now; using standard questions.")

        with self._lock:
            if session.conversation.start(placeholders, questions.questions, epoch=epoch):
                session.question_source = questions.source
                session.notice = questions.notice
        return session

    def answer(self, session_id: str, text: str) -> Session:
        with self._lock:
            session = self.get(session_id)
            session.conversation.submit_answer(text)
            return session

    def skip(self, session_id: str, index: int) -> Session:
        with self._lock:
            session = self.get(session_id)
            session.conversation.skip(index)
            return session

    def reset(self, session_id: str) -> Session:
        with self._lock:
            session = self.get(session_id)
            session.conversation.reset()
            self.current = None
            logger.info(f"Session {session_id} reset")
            return session

    def generate(self, session_id: str) -> bytes:
        with self._lock:
            session = self.get(session_id)
            if not session.conversation.is_complete():
                raise GenerationNotReady("Answer or skip every placeholder before downloading.")
            answers = dict(session.conversation.answers)
            document = session.document
        filled = substitute(document.markup, answers, strategy=self.strategy)
        return write_docx(document.data, filled)

    def preview(self, session_id: str) -> str:
        with self._lock:
            session = self.get(session_id)
            placeholders = list(session.placeholders)
            answers = dict(session.conversation.answers)
            data = session.document.data
        return docx_to_html(data, placeholders, answers)
