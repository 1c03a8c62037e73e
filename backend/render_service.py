# backend/render_service.py
import html
import io

import mammoth
from loguru import logger

from errors import ParseFailed
from markup import escape_html_text
from substitution import build_matcher


def docx_to_html(data: bytes, placeholders=(), answers: dict[str, str] | None = None) -> str:
    try:
        result = mammoth.convert_to_html(io.BytesIO(data), style_map=_style_map())
    except Exception as e:
        raise ParseFailed("Unable to render a preview of this document.") from e
    for message in result.messages:
        logger.debug(f"mammoth: {message}")

    body = highlight_placeholders(result.value, placeholders, answers or {})
    return f"""
    <div class="docx-page">
      {body}
    </div>
    """


def highlight_placeholders(page_html: str, placeholders, answers: dict[str, str]) -> str:
    """
    Wrap each placeholder occurrence in a span with a data-key for click sync.
    Filled placeholders show their (escaped) answer instead of the token.
    """
    # mammoth escapes text nodes, so look for the escaped spelling of each token
    variants = {}
    for p in placeholders:
        variants.setdefault(html.escape(p, quote=False), p)
        variants.setdefault(html.escape(p, quote=True), p)
    matcher = build_matcher(variants)
    if matcher is None:
        return page_html

    def repl(m):
        key = variants[m.group(0)]
        if key in answers:
            shown, state = escape_html_text(answers[key]), "filled"
        else:
            shown, state = m.group(0), "pending"
        return f"<span class='ph {state}' data-key='{_escape_attr(key)}'>{shown}</span>"

    return matcher.sub(repl, page_html)


def _style_map():
    return """
    p[style-name='Normal'] => p:fresh
    table => table.table
    """


def _escape_attr(s: str) -> str:
    return html.escape(s, quote=True)
