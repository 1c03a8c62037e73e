# backend/sample.py
import io

from docx import Document
from docx.shared import Pt

SAMPLE_NAME = "Sample SAFE Template.docx"

# Paragraphs as (text, bold, italic) segments; each segment becomes one run.
# "$[Investment Amount]" is spread over three runs on purpose.
SAMPLE_PARAGRAPHS = [
    [("SAFE Agreement", True, False)],
    [],
    [
        ("This SAFE agreement (the ", False, False),
        ('"Agreement"', False, True),
        (") is made on ", False, False),
        ("[Date of Safe]", True, False),
        (" between ", False, False),
        ("[Company Name]", True, False),
        (", a Delaware corporation (the ", False, False),
        ('"Company"', False, True),
        ("), and ", False, False),
        ("[Investor Name]", True, False),
        (" (the ", False, False),
        ('"Investor"', False, True),
        (").", False, False),
    ],
    [],
    [
        ("The Investor agrees to invest ", False, False),
        ("$", False, False),
        ("[Investment ", True, False),
        ("Amount]", True, True),
        (" in exchange for the right to certain shares representing ", False, False),
        ("{equity_percent}", True, False),
        (" of the Company.", False, False),
    ],
    [],
    [
        ("The Company will use the funds to pursue its business plan in the ", False, False),
        ("[Company Focus Area]", True, False),
        (".", False, False),
    ],
]

SAMPLE_TEMPLATE_TEXT = "\n".join(
    "".join(text for text, _, _ in segments) for segments in SAMPLE_PARAGRAPHS
)


def build_sample_docx() -> bytes:
    doc = Document()
    for segments in SAMPLE_PARAGRAPHS:
        p = doc.add_paragraph()
        for text, bold, italic in segments:
            run = p.add_run(text)
            run.bold = bold or None
            run.italic = italic or None
            run.font.size = Pt(12)
    out = io.BytesIO()
    doc.save(out)
    return out.getvalue()
