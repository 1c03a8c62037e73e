# backend/tests/conftest.py
import io
import os

# No network in tests: no server key, template questions only.
os.environ["GROQ_API_KEY"] = ""
os.environ["QUESTION_SOURCE"] = "template"

import pytest
from docx import Document


def build_docx(paragraphs, table=None) -> bytes:
    """
    paragraphs: list of paragraphs, each a list of (text, bold, italic) runs
    or plain strings. table: optional list of rows of cell strings.
    """
    doc = Document()
    for runs in paragraphs:
        p = doc.add_paragraph()
        for run in runs:
            if isinstance(run, str):
                run = (run, False, False)
            text, bold, italic = run
            r = p.add_run(text)
            r.bold = bold or None
            r.italic = italic or None
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for i, row in enumerate(table):
            for j, value in enumerate(row):
                t.cell(i, j).text = value
    out = io.BytesIO()
    doc.save(out)
    return out.getvalue()


@pytest.fixture
def make_docx():
    return build_docx


@pytest.fixture
def safe_docx():
    return build_docx([
        ["This Agreement is made on ", ("[Date of ", True, False), ("Safe]", True, False),
         " between [Company Name] and the Investor."],
        ["The Investor agrees to invest $", ("[Investment Amount]", True, False), " today."],
        [("Plain closing paragraph.", False, True)],
    ])
