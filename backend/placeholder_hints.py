# backend/placeholder_hints.py
import re

from placeholder_engine import normalize_key, strip_delimiters

CATEGORIES = ("amount", "company", "person", "date", "address", "email", "phone", "other")

# Checked in this order; keyword sets overlap ("effective date of the Company").
_RULES = [
    ("amount", re.compile(r"amount|price|cost|fee|payment|salary|compensation", re.I)),
    ("company", re.compile(r"company|corporation|corp|llc|inc|organization|employer", re.I)),
    ("person", re.compile(r"name|employee|investor|founder|officer|director|signatory|recipient", re.I)),
    ("date", re.compile(r"date|day|month|year|effective|expiration|deadline", re.I)),
    ("address", re.compile(r"address|street|city|state|zip|location", re.I)),
    ("email", re.compile(r"email|e-mail", re.I)),
    ("phone", re.compile(r"phone|telephone|mobile|cell", re.I)),
]

_TEMPLATES = {
    "amount": "What is the dollar amount for {subject}?",
    "company": "What is the company name for {subject}?",
    "person": "What is the person's name for {subject}?",
    "date": "What is the date for {subject}?",
    "address": "What is the address for {subject}?",
    "email": "What is the email address for {subject}?",
    "phone": "What is the phone number for {subject}?",
    "other": "What is the {subject}?",
}

FALLBACK_SUBJECT = "this value"


def classify_placeholder(key: str) -> str:
    """Assign exactly one category; first matching rule wins."""
    if key.strip().startswith("$"):
        return "amount"
    k = key.lower()
    for category, pattern in _RULES:
        if pattern.search(k):
            return category
    return "other"


def deterministic_question(key: str) -> str:
    subject = strip_delimiters(key)
    category = classify_placeholder(key)
    if not subject:
        if category == "other":
            return f"What is {FALLBACK_SUBJECT}?"
        subject = FALLBACK_SUBJECT
    return _TEMPLATES[category].format(subject=subject)


def generate_hint(key: str) -> str:
    """
    Heuristic hints to give the LLM semantic context for each placeholder.
    Keep this deterministic and conservative.
    """
    k = normalize_key(key)
    category = classify_placeholder(key)

    if category == "amount":
        if "valuation" in k or "cap" in k:
            return "Maximum valuation used to compute conversion; a dollar amount"
        if "principal" in k:
            return "Principal money amount agreed in the instrument"
        if "purchase" in k or "price" in k or "investment" in k:
            return "Amount of money to be paid by the buyer or investor"
        return "Dollar amount relevant to the agreement"

    if category == "company":
        return "Legal name of the company or organization"

    if category == "person":
        if any(w in k for w in ["investor", "purchaser", "buyer", "lender", "holder"]):
            return "Legal name of the investor or purchaser"
        return "Personal full name"

    if category == "date":
        return "Calendar date of the event in Month D, YYYY format"

    if category == "address":
        if "state" in k:
            return "Governing law or state of incorporation"
        return "Postal address or location"

    if category == "email":
        return "Email address"

    if category == "phone":
        return "Phone number"

    if not k:
        return "Blank field; infer the expected value from the surrounding text"

    # Generic text
    return "Relevant value for this placeholder as it appears in the document"
