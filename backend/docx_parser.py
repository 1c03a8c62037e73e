# backend/docx_parser.py
import io
from typing import NamedTuple

from docx import Document
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph as DocxParagraph
from loguru import logger

import config
from errors import InputRejected, InvalidMarkup, ParseFailed
from markup import MarkupTree, Paragraph, Run, validate_tree

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOCX_EXTENSION = ".docx"


class ParsedDocument(NamedTuple):
    plain_text: str
    markup: MarkupTree


def validate_upload(filename: str | None, content_type: str | None, size: int,
                    max_bytes: int | None = None) -> None:
    """Allow-list check on the upload before anything tries to open it."""
    limit = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    name = (filename or "").lower()
    if not (name.endswith(DOCX_EXTENSION) or content_type == DOCX_MIME):
        raise InputRejected("Only .docx supported")
    if size <= 0:
        raise InputRejected("The uploaded file is empty")
    if size > limit:
        raise InputRejected(f"File is too large (max {limit // (1024 * 1024)} MB)")


def _load(data: bytes):
    try:
        return Document(io.BytesIO(data))
    except Exception as e:
        logger.warning(f"python-docx could not open upload: {e!r}")
        raise ParseFailed("Unable to parse document.",
                          hint="Please try a different file or re-save it as .docx.") from e


def _iter_paragraphs(doc):
    """
    Every w:p of the body in document order, including those inside table
    cells, wrapped as python-docx paragraphs.
    """
    for p in doc.element.body.iter(qn("w:p")):
        yield DocxParagraph(p, doc._body)


def _paragraph_from_docx(paragraph) -> Paragraph:
    # Run context = position of the w:r among the paragraph's direct runs.
    return Paragraph(tuple(Run(run.text, idx) for idx, run in enumerate(paragraph.runs)))


def read_docx(data: bytes) -> ParsedDocument:
    """
    Convert docx bytes into the paragraph/run tree plus its flattened text.
    The plain text is derived from the tree, so every placeholder found in it
    can be located again run by run.
    """
    doc = _load(data)
    try:
        markup = MarkupTree(tuple(_paragraph_from_docx(p) for p in _iter_paragraphs(doc)))
    except Exception as e:
        raise ParseFailed("Unable to read the document text.",
                          hint="Please try a different file.") from e
    logger.info(f"Parsed docx: {len(markup.paragraphs)} paragraphs")
    return ParsedDocument(markup.plain_text(), markup)


def _plan_rewrites(doc, markup: MarkupTree) -> list[tuple]:
    paragraphs = list(_iter_paragraphs(doc))
    if len(paragraphs) != len(markup.paragraphs):
        raise InvalidMarkup(
            f"Markup has {len(markup.paragraphs)} paragraphs but the document has {len(paragraphs)}."
        )

    plan = []
    for i, (dp, tp) in enumerate(zip(paragraphs, markup.paragraphs)):
        if _paragraph_from_docx(dp) == tp:
            continue
        runs = dp.runs
        texts: dict[int, list[str]] = {}
        for run in tp.runs:
            ctx = run.context
            if not isinstance(ctx, int) or not 0 <= ctx < len(runs):
                raise InvalidMarkup(f"Paragraph {i} references unknown run {ctx!r}.")
            texts.setdefault(ctx, []).append(run.text)
        plan.append((runs, {k: "".join(v) for k, v in texts.items()}))
    return plan


def write_docx(data: bytes, markup: MarkupTree) -> bytes:
    """
    Write a (substituted) tree back over the original document bytes.

    Unchanged paragraphs are not touched. In a changed paragraph, runs the tree
    still references get their new text and keep their rPr; the other runs
    that carry text are removed. Text-less runs (pictures, footnote
    references, field characters) always stay, as do paragraph properties,
    tables, bookmarks and anything that is not a direct w:r. Planning happens
    before any write, so a tree that does not line up with the document
    raises InvalidMarkup with nothing modified.
    """
    validate_tree(markup)
    doc = _load(data)
    plan = _plan_rewrites(doc, markup)

    for runs, texts in plan:
        for idx, run in enumerate(runs):
            if idx in texts:
                # setting run.text clears every child of the w:r
                if texts[idx] != run.text:
                    run.text = texts[idx]
            elif run.text:
                el = run._r
                el.getparent().remove(el)

    out = io.BytesIO()
    doc.save(out)
    logger.info(f"Wrote docx with {len(plan)} rewritten paragraphs")
    return out.getvalue()
