# backend/tests/test_question_source.py
import json
from types import SimpleNamespace

import pytest

from errors import EnrichmentUnavailable
from placeholder_hints import classify_placeholder, deterministic_question, generate_hint
from question_source import GroqQuestionSource, TemplateQuestionSource, parse_questions
from rate_limiter import RateLimiter


class FakeCompletions:
    def __init__(self, content=None, exc=None):
        self.content = content
        self.exc = exc
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc:
            raise self.exc
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeClient:
    def __init__(self, content=None, exc=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, exc))

    @property
    def calls(self):
        return self.chat.completions.calls


BATCH = ["[Company Name]", "$[Amount]"]


def ai_payload(*pairs):
    return json.dumps({"questions": [{"placeholder": p, "question": q} for p, q in pairs]})


def test_classification_order():
    assert classify_placeholder("$[Anything]") == "amount"
    assert classify_placeholder("[Purchase Amount]") == "amount"
    assert classify_placeholder("[Company Name]") == "company"
    assert classify_placeholder("[Effective Date of the Company]") == "company"
    assert classify_placeholder("[Investor Name]") == "person"
    assert classify_placeholder("[Date of Safe]") == "date"
    assert classify_placeholder("[Street]") == "address"
    assert classify_placeholder("[E-mail]") == "email"
    assert classify_placeholder("{mobile}") == "phone"
    assert classify_placeholder("{equity_percent}") == "other"
    assert classify_placeholder("___") == "other"


def test_deterministic_questions():
    assert deterministic_question("[Company Name]") == "What is the company name for Company Name?"
    assert deterministic_question("$[Amount]") == "What is the dollar amount for Amount?"
    assert deterministic_question("[Investor Name]") == "What is the person's name for Investor Name?"
    assert deterministic_question("[Date of Safe]") == "What is the date for Date of Safe?"
    assert deterministic_question("{equity_percent}") == "What is the equity_percent?"
    assert deterministic_question("___") == "What is this value?"
    assert deterministic_question("$[_____]") == "What is the dollar amount for this value?"


def test_hints_are_never_empty():
    for p in ["$[Valuation Cap]", "[Company Name]", "[Investor Name]", "[Date]", "[State]", "[ ]", "{x}"]:
        assert generate_hint(p)


def test_template_source():
    qs = TemplateQuestionSource().generate(BATCH, "context")
    assert qs.source == "deterministic"
    assert list(qs.questions) == BATCH


def test_ai_batch_success():
    client = FakeClient(ai_payload(("[Company Name]", "What's the company's legal name?"),
                                   ("$[Amount]", "How much is being invested?")))
    qs = GroqQuestionSource(client=client).generate(BATCH, "x" * 5000)
    assert qs.source == "ai"
    assert qs.questions == {
        "[Company Name]": "What's the company's legal name?",
        "$[Amount]": "How much is being invested?",
    }
    # one request for the whole batch, context truncated
    assert len(client.calls) == 1
    user_prompt = client.calls[0]["messages"][1]["content"]
    assert "x" * 800 in user_prompt and "x" * 801 not in user_prompt


@pytest.mark.parametrize("content", ["", "not json", json.dumps({"questions": []}), json.dumps({"foo": 1}),
                                     ai_payload(("[Company Name]", "Only one?"))])
def test_bad_responses_fall_back_for_whole_batch(content):
    qs = GroqQuestionSource(client=FakeClient(content)).generate(BATCH, "")
    assert qs.source == "deterministic-fallback"
    assert qs.questions == {p: deterministic_question(p) for p in BATCH}
    assert all(q.strip() for q in qs.questions.values())
    assert qs.questions["[Company Name]"].startswith("What is the company name for")
    assert qs.questions["$[Amount]"].startswith("What is the dollar amount for")


def test_api_error_falls_back():
    qs = GroqQuestionSource(client=FakeClient(exc=RuntimeError("boom"))).generate(BATCH, "")
    assert qs.source == "deterministic-fallback"
    assert len(qs.questions) == 2


def test_deeply_nested_reply_falls_back():
    qs = GroqQuestionSource(client=FakeClient("[" * 100000)).generate(BATCH, "")
    assert qs.source == "deterministic-fallback"
    assert qs.questions == {p: deterministic_question(p) for p in BATCH}
    with pytest.raises(EnrichmentUnavailable):
        parse_questions("[" * 100000 + "]" * 100000, BATCH)


def test_unexpected_parse_error_falls_back(monkeypatch):
    def explode(raw, placeholders):
        raise RecursionError("maximum recursion depth exceeded while decoding a JSON array")

    monkeypatch.setattr("question_source.parse_questions", explode)
    qs = GroqQuestionSource(client=FakeClient(ai_payload(("[Company Name]", "Which company?")))).generate(BATCH, "")
    assert qs.source == "deterministic-fallback"
    assert len(qs.questions) == 2


def test_no_client_is_deterministic():
    qs = GroqQuestionSource(client=None).generate(BATCH, "")
    assert qs.source == "deterministic"
    assert qs.notice is None


def test_rate_limited_is_distinct_and_falls_back():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    content = ai_payload(("[Company Name]", "Company?"), ("$[Amount]", "Amount?"))
    source = GroqQuestionSource(client=FakeClient(content), limiter=limiter)
    assert source.generate(BATCH, "", identifier="1.2.3.4").source == "ai"

    qs = source.generate(BATCH, "", identifier="1.2.3.4")
    assert qs.source == "rate-limited"
    assert "maximum of 1" in qs.notice
    assert qs.questions == {p: deterministic_question(p) for p in BATCH}

    # another caller still has quota
    assert source.generate(BATCH, "", identifier="5.6.7.8").source == "ai"


def test_caller_key_bypasses_shared_quota():
    limiter = RateLimiter(max_requests=0, window_seconds=60)
    content = ai_payload(("[Company Name]", "Company?"), ("$[Amount]", "Amount?"))
    made = []

    def factory(key):
        made.append(key)
        return FakeClient(content)

    source = GroqQuestionSource(client=None, limiter=limiter, client_factory=factory)
    qs = source.generate(BATCH, "", identifier="1.2.3.4", api_key="user-key")
    assert qs.source == "ai"
    assert made == ["user-key"]


def test_empty_batch_makes_no_call():
    client = FakeClient("{}")
    assert GroqQuestionSource(client=client).generate([], "").questions == {}
    assert client.calls == []


def test_parse_questions_shapes():
    fenced = "```json\n" + ai_payload(("[A]", "A?"), ("[B]", "B?")) + "\n```"
    assert parse_questions(fenced, ["[A]", "[B]"]) == {"[A]": "A?", "[B]": "B?"}

    bare_list = json.dumps([{"placeholder": "[A]", "question": "A?"}])
    assert parse_questions(bare_list, ["[A]"]) == {"[A]": "A?"}

    positional = json.dumps({"items": [{"question": "A?"}, {"question": "B?"}]})
    assert parse_questions(positional, ["[A]", "[B]"]) == {"[A]": "A?", "[B]": "B?"}

    with pytest.raises(EnrichmentUnavailable):
        parse_questions(json.dumps({"questions": [{"placeholder": "[A]", "question": "  "}]}), ["[A]"])
