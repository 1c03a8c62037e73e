# backend/substitution.py
"""
Structure-aware placeholder replacement over a MarkupTree.

Word splits visible text into runs wherever formatting, spell-check or
revision marks change, so "[Company Name]" may live in three runs. Matching
is therefore done on the joined paragraph text, and the result is written
back into the runs with one of two strategies:

- collapse: a paragraph with a match becomes one run that keeps the first
  text run's formatting. Simple and always textually right, but formatting of
  the other runs in that paragraph is lost.
- splice: the replacement goes into the run where the match starts, the
  characters it covered are removed from the following runs, and every
  run outside a match is left alone.

Paragraphs without a match are returned as the very same objects in both
strategies.
"""
import re

from loguru import logger

from markup import ESCAPERS, MarkupTree, Paragraph, Run, validate_tree

COLLAPSE = "collapse"
SPLICE = "splice"
STRATEGIES = (COLLAPSE, SPLICE)


def build_matcher(keys) -> re.Pattern | None:
    """
    Literal alternation over `keys`, longest first, so "$[Amount]" wins over
    "[Amount]" at the same position.
    """
    ordered = sorted({k for k in keys if k}, key=lambda k: (-len(k), k))
    if not ordered:
        return None
    return re.compile("|".join(re.escape(k) for k in ordered))


def _collapse(paragraph: Paragraph, matches, values: dict[str, str]) -> Paragraph:
    text = paragraph.text
    out = []
    last = 0
    for m in matches:
        out.append(text[last:m.start()])
        out.append(values[m.group(0)])
        last = m.end()
    out.append(text[last:])
    anchor = next(r for r in paragraph.runs if r.text)
    return Paragraph((Run("".join(out), anchor.context),))


def _splice(paragraph: Paragraph, matches, values: dict[str, str]) -> Paragraph:
    text = paragraph.text
    new_runs = []
    mi = 0
    start = 0
    for run in paragraph.runs:
        end = start + len(run.text)
        pieces = []
        touched = False
        pos = start
        while pos < end:
            while mi < len(matches) and matches[mi].end() <= pos:
                mi += 1
            if mi < len(matches) and matches[mi].start() < end:
                m = matches[mi]
                if m.start() > pos:
                    pieces.append(text[pos:m.start()])
                    pos = m.start()
                if pos == m.start():
                    pieces.append(values[m.group(0)])
                touched = True
                pos = min(m.end(), end)
            else:
                pieces.append(text[pos:end])
                pos = end
        start = end

        if not touched:
            new_runs.append(run)
            continue
        new_text = "".join(pieces)
        if new_text:
            new_runs.append(Run(new_text, run.context))
        # a run whose whole text was inside a match disappears
    return Paragraph(tuple(new_runs))


def substitute_paragraph(paragraph: Paragraph, matcher, values: dict[str, str],
                         strategy: str = COLLAPSE) -> Paragraph:
    if matcher is None or not paragraph.runs:
        return paragraph
    matches = list(matcher.finditer(paragraph.text))
    if not matches:
        return paragraph
    if strategy == SPLICE:
        return _splice(paragraph, matches, values)
    return _collapse(paragraph, matches, values)


def substitute(markup: MarkupTree, answers: dict[str, str], strategy: str = COLLAPSE) -> MarkupTree:
    """
    Replace every literal occurrence of every answered placeholder.

    The tree is validated up front, so a malformed tree raises InvalidMarkup
    before anything is rewritten. Values are escaped for the tree's
    serialization. The input tree is never mutated.
    """
    validate_tree(markup)
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown substitution strategy {strategy!r}")

    escape = ESCAPERS[markup.serialization]
    values = {k: escape("" if v is None else str(v)) for k, v in (answers or {}).items() if k}
    matcher = build_matcher(values)
    if matcher is None:
        return markup

    paragraphs = tuple(substitute_paragraph(p, matcher, values, strategy) for p in markup.paragraphs)
    changed = sum(1 for old, new in zip(markup.paragraphs, paragraphs) if old is not new)
    logger.debug(f"Substitution ({strategy}) rewrote {changed} of {len(paragraphs)} paragraphs")
    if not changed:
        return markup
    return MarkupTree(paragraphs, markup.serialization)


def remaining_placeholders(markup: MarkupTree, placeholders) -> list[str]:
    """Placeholders from `placeholders` still present in the tree's text."""
    text = markup.plain_text()
    return [p for p in placeholders if p and p in text]
