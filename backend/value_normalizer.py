# backend/value_normalizer.py
import re
from datetime import date, timedelta

from placeholder_hints import classify_placeholder

US_STATES = {
    "al": "Alabama", "ak": "Alaska", "az": "Arizona", "ar": "Arkansas", "ca": "California",
    "co": "Colorado", "ct": "Connecticut", "de": "Delaware", "fl": "Florida", "ga": "Georgia",
    "hi": "Hawaii", "id": "Idaho", "il": "Illinois", "in": "Indiana", "ia": "Iowa",
    "ks": "Kansas", "ky": "Kentucky", "la": "Louisiana", "me": "Maine", "md": "Maryland",
    "ma": "Massachusetts", "mi": "Michigan", "mn": "Minnesota", "ms": "Mississippi",
    "mo": "Missouri", "mt": "Montana", "ne": "Nebraska", "nv": "Nevada", "nh": "New Hampshire",
    "nj": "New Jersey", "nm": "New Mexico", "ny": "New York", "nc": "North Carolina",
    "nd": "North Dakota", "oh": "Ohio", "ok": "Oklahoma", "or": "Oregon", "pa": "Pennsylvania",
    "ri": "Rhode Island", "sc": "South Carolina", "sd": "South Dakota", "tn": "Tennessee",
    "tx": "Texas", "ut": "Utah", "vt": "Vermont", "va": "Virginia", "wa": "Washington",
    "wv": "West Virginia", "wi": "Wisconsin", "wy": "Wyoming",
    "dc": "District of Columbia", "pr": "Puerto Rico", "gu": "Guam", "vi": "U.S. Virgin Islands",
    "as": "American Samoa", "mp": "Northern Mariana Islands",
}

RELATIVE_DAYS = {
    "today": 0,
    "tomorrow": 1,
    "yesterday": -1,
    "next week": 7,
    "last week": -7,
}

ENTITY_SUFFIXES = {"llc": "LLC", "corp": "Corp.", "inc": "Inc."}

_NUMERIC = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$")


def format_date(d: date) -> str:
    """Month D, YYYY"""
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def normalize_state(raw: str) -> str | None:
    if len(raw) != 2:
        return None
    return US_STATES.get(raw.lower())


def normalize_relative_date(raw: str, today: date | None = None) -> str | None:
    phrase = re.sub(r"\s+", " ", raw.lower())
    if phrase not in RELATIVE_DAYS:
        return None
    base = today or date.today()
    return format_date(base + timedelta(days=RELATIVE_DAYS[phrase]))


def normalize_money(raw: str, placeholder_hint: str) -> str | None:
    if classify_placeholder(placeholder_hint) != "amount":
        return None
    if not _NUMERIC.match(raw):
        return None
    val = float(raw.replace(",", ""))
    return f"${val:,.0f}" if val.is_integer() else f"${val:,.2f}"


def normalize_entity(raw: str) -> str | None:
    parts = raw.split()
    if len(parts) < 2:
        return None
    suffix = ENTITY_SUFFIXES.get(parts[-1].lower().rstrip("."))
    if not suffix:
        return None
    name = " ".join(parts[:-1]).rstrip(",")
    return f"{name.upper()} {suffix}"


def normalize(raw_answer: str, placeholder_hint: str, today: date | None = None) -> str:
    """
    Canonicalize a raw answer before it is stored. Rules are tried in order and
    the first one that applies wins; otherwise the trimmed input comes back.
    """
    raw = (raw_answer or "").strip()
    if not raw:
        return raw

    for value in (
        normalize_state(raw),
        normalize_relative_date(raw, today),
        normalize_money(raw, placeholder_hint or ""),
        normalize_entity(raw),
    ):
        if value is not None:
            return value
    return raw
