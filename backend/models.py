# backend/models.py
from pydantic import BaseModel

from placeholder_hints import classify_placeholder


class PlaceholderOut(BaseModel):
    key: str                 # exact token, e.g. [Company Name]
    type: str                # amount|company|person|date|address|email|phone|other
    is_filled: bool = False
    value: str | None = None


class Turn(BaseModel):
    role: str     # 'user' | 'assistant'
    content: str


class SessionOut(BaseModel):
    session_id: str
    document_name: str
    state: str    # idle|awaiting|complete
    current_index: int | None = None
    current_placeholder: str | None = None
    total: int = 0
    filled: int = 0
    placeholders: list[PlaceholderOut] = []
    messages: list[Turn] = []
    question_source: str = "pending"
    notice: str | None = None
    ignored: bool = False


def placeholder_rows(placeholders: list[str], answers: dict[str, str]) -> list[PlaceholderOut]:
    return [
        PlaceholderOut(key=k, type=classify_placeholder(k), is_filled=k in answers, value=answers.get(k))
        for k in placeholders
    ]


def session_out(session, ignored: bool = False) -> SessionOut:
    snap = session.conversation.snapshot()
    return SessionOut(
        session_id=session.id,
        document_name=session.document.name,
        state=snap["state"],
        current_index=snap["current_index"],
        current_placeholder=snap["current_placeholder"],
        total=snap["total"],
        filled=snap["filled"],
        placeholders=placeholder_rows(session.placeholders, snap["answers"]),
        messages=[Turn(**t) for t in snap["messages"]],
        question_source=session.question_source,
        notice=session.notice,
        ignored=ignored,
    )
