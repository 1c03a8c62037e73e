# backend/placeholder_engine.py
import re

# One alternation, tried left to right at every position:
#   $[Amount], [Company Name], [ ], [TBD]  -> bracket form, optional $ prefix
#   {equity_percent}                       -> brace form
#   ___                                    -> blank-fill underscores
# Bracket and brace bodies stop at line breaks so a token never spans paragraphs.
PLACEHOLDER_RE = re.compile(r"\$?\[[^\]\r\n]*\]|\{[^}\r\n]+\}|_{3,}", re.IGNORECASE)

_UNDERSCORE_RUN = re.compile(r"_{3,}")


def extract_placeholders(text: str) -> list[str]:
    """
    Return the distinct placeholders of `text` in order of first appearance.
    Each match is trimmed; empty results are dropped.
    """
    unique = []
    seen = set()
    for m in PLACEHOLDER_RE.finditer(text or ""):
        key = m.group(0).strip()
        if key and key not in seen:
            seen.add(key)
            unique.append(key)
    return unique


def strip_delimiters(key: str) -> str:
    """
    Human-facing subject of a placeholder: drop a leading $, the brackets or
    braces and any underscore runs, then trim.
    """
    s = key.strip()
    if s.startswith("$"):
        s = s[1:]
    if s.startswith("[") and s.endswith("]"):
        s = s[1:-1]
    elif s.startswith("{") and s.endswith("}"):
        s = s[1:-1]
    s = _UNDERSCORE_RUN.sub("", s)
    return s.strip()


def normalize_key(key: str) -> str:
    """Lower-cased subject, used for keyword matching only, never as identity."""
    return strip_delimiters(key).lower()
