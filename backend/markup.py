# backend/markup.py
import html
import re
from dataclasses import dataclass
from typing import Any

from errors import InvalidMarkup


@dataclass(frozen=True)
class Run:
    text: str
    # Opaque to the substitution engine. The docx reader stores the index of the
    # originating w:r inside its paragraph.
    context: Any = None


@dataclass(frozen=True)
class Paragraph:
    runs: tuple[Run, ...] = ()

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.runs)


@dataclass(frozen=True)
class MarkupTree:
    paragraphs: tuple[Paragraph, ...] = ()
    # Picks the escaper applied to inserted values (see ESCAPERS).
    serialization: str = "docx"

    def plain_text(self) -> str:
        """Flattened view used for extraction: paragraph texts joined by newlines."""
        return "\n".join(p.text for p in self.paragraphs)


def validate_tree(markup) -> None:
    """Raise InvalidMarkup unless `markup` is paragraphs of string-bearing runs."""
    if not isinstance(markup, MarkupTree) or not isinstance(markup.paragraphs, tuple):
        raise InvalidMarkup("Structured markup is not a paragraph tree.")
    if markup.serialization not in ESCAPERS:
        raise InvalidMarkup(f"Unsupported markup serialization {markup.serialization!r}.")
    for i, p in enumerate(markup.paragraphs):
        if not isinstance(p, Paragraph) or not isinstance(p.runs, tuple):
            raise InvalidMarkup(f"Paragraph {i} is malformed.")
        for j, r in enumerate(p.runs):
            if not isinstance(r, Run) or not isinstance(r.text, str):
                raise InvalidMarkup(f"Run {j} of paragraph {i} is malformed.")


# Characters XML 1.0 cannot carry at all; lxml refuses them on assignment.
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def escape_docx_text(value: str) -> str:
    # <, > and & are escaped by the XML serializer when the text node is written.
    return _XML_ILLEGAL.sub("", value)


def escape_html_text(value: str) -> str:
    return html.escape(value, quote=True)


ESCAPERS = {
    "docx": escape_docx_text,
    "html": escape_html_text,
}
