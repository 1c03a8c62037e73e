# backend/tests/test_api.py
from fastapi.testclient import TestClient

import config
from app import app
from docx_parser import read_docx

client = TestClient(app)


def test_upload_rejects_non_docx():
    res = client.post("/api/upload", files={"file": ("x.txt", b"hi", "text/plain")})
    assert res.status_code == 400
    assert res.json()["detail"] == "Only .docx supported"


def test_upload_over_size_limit(monkeypatch):
    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 1024)
    res = client.post("/api/upload", files={"file": ("big.docx", b"x" * 5000, "application/octet-stream")})
    assert res.status_code == 400
    assert "too large" in res.json()["detail"]


def test_upload_unparseable_docx():
    res = client.post("/api/upload", files={"file": ("x.docx", b"not a docx", "application/octet-stream")})
    assert res.status_code == 422
    assert "Unable to parse document" in res.json()["detail"]


def test_upload_and_fill(make_docx):
    data = make_docx([["Between [Company Name] and [Investor Name]."]])
    res = client.post("/api/upload", files={"file": ("deal.docx", data, "application/octet-stream")})
    assert res.status_code == 200
    body = res.json()
    sid = body["session_id"]
    assert body["state"] == "awaiting"
    assert [p["key"] for p in body["placeholders"]] == ["[Company Name]", "[Investor Name]"]
    assert [p["type"] for p in body["placeholders"]] == ["company", "person"]
    assert body["messages"][-1]["content"] == "What is the company name for Company Name?"

    client.post("/api/chat", data={"session_id": sid, "message": "abc llc"})
    res = client.post("/api/chat", data={"session_id": sid, "message": "Jane Doe"})
    assert res.json()["state"] == "complete"

    rows = client.get("/api/placeholders", params={"session_id": sid}).json()
    assert rows[0] == {"key": "[Company Name]", "type": "company", "is_filled": True, "value": "ABC LLC"}

    res = client.get("/api/download", params={"session_id": sid})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert read_docx(res.content).plain_text == "Between ABC LLC and Jane Doe."


def test_sample_flow_with_skip():
    body = client.post("/api/sample").json()
    sid = body["session_id"]
    assert body["total"] == 6
    assert body["question_source"] == "deterministic"

    # download is gated until the conversation is complete
    assert client.get("/api/download", params={"session_id": sid}).status_code == 409

    # skipping a non-current placeholder is ignored
    res = client.post("/api/skip", data={"session_id": sid, "index": 3}).json()
    assert res["ignored"] is True and res["current_index"] == 0

    client.post("/api/chat", data={"session_id": sid, "message": "tomorrow"})
    client.post("/api/chat", data={"session_id": sid, "message": "Acme corp"})
    res = client.post("/api/skip", data={"session_id": sid, "index": 2}).json()
    assert res["ignored"] is False and res["current_index"] == 3
    client.post("/api/chat", data={"session_id": sid, "message": "100000"})
    client.post("/api/chat", data={"session_id": sid, "message": "5%"})
    res = client.post("/api/chat", data={"session_id": sid, "message": "skip"}).json()
    assert res["state"] == "complete"
    assert res["filled"] == 4
    assert "Filled 4 of 6" in res["messages"][-1]["content"]

    text = read_docx(client.get("/api/download", params={"session_id": sid}).content).plain_text
    assert "ACME Corp." in text and "$100,000" in text and "5%" in text
    assert "[Investor Name]" in text and "[Company Focus Area]" in text
    assert "[Company Name]" not in text and "$[Investment Amount]" not in text

    page = client.get("/api/render", params={"session_id": sid}).json()["html"]
    assert "ph filled" in page

    msgs = client.get("/api/messages", params={"session_id": sid}).json()
    assert msgs[0]["role"] == "assistant"
    assert {"role": "user", "content": "skip"} in msgs


def test_empty_answer_rejected():
    sid = client.post("/api/sample").json()["session_id"]
    res = client.post("/api/chat", data={"session_id": sid, "message": "   "})
    assert res.status_code == 400


def test_unknown_session_and_reset():
    sid = client.post("/api/sample").json()["session_id"]
    assert client.get("/api/placeholders", params={"session_id": "nope"}).status_code == 404

    res = client.post("/api/reset", data={"session_id": sid}).json()
    assert res["state"] == "idle"
    assert res["placeholders"] == [] and res["messages"] == []
    assert client.get("/api/messages", params={"session_id": sid}).status_code == 404


def test_no_placeholders_download_as_is(make_docx):
    data = make_docx([["Just text."]])
    body = client.post("/api/upload", files={"file": ("plain.docx", data, "application/octet-stream")}).json()
    assert body["state"] == "complete"
    assert "didn't find any placeholders" in body["messages"][0]["content"]
    res = client.get("/api/download", params={"session_id": body["session_id"]})
    assert read_docx(res.content).plain_text == "Just text."
