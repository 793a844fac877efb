"""Text normalisation shared by the keyword scorer and the planner.

Terms are lower-cased, plural-stripped and mapped onto a canonical synonym
so that "show my claims" and "Get claim status" share the terms
``get`` and ``claim``.
"""

import re

IDENTIFIER_RE = re.compile(r"\b[A-Za-z]{2,}-\d[A-Za-z0-9]*\b")
_WORD_RE = re.compile(r"[a-z]+")
_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

STOPWORDS = frozenset(
    """
    a an the for of to in on with and or is are be been being am was were
    me my i you your their they them it its this that these those he she his
    her we our us please can could would will shall should may might must
    some any all from by at as about what which who whom how when where why
    do does did has have had if then also so just want like into onto via
    new existing there here than too very s
    """.split()
)

# Variant -> canonical term
SYNONYMS = {
    "show": "get",
    "check": "get",
    "view": "get",
    "retrieve": "get",
    "fetch": "get",
    "display": "get",
    "lookup": "get",
    "find": "get",
    "see": "get",
    "list": "get",
    "open": "create",
    "issue": "create",
    "buy": "create",
    "purchase": "create",
    "file": "submit",
    "lodge": "submit",
    "terminate": "cancel",
    "extend": "renew",
    "change": "update",
    "modify": "update",
    "edit": "update",
    "compute": "calculate",
    "estimate": "calculate",
    "quote": "calculate",
    "pay": "payment",
    "accept": "approve",
    "reject": "deny",
    "decline": "deny",
    "book": "schedule",
    "arrange": "schedule",
    "meeting": "appointment",
    "client": "customer",
    "paperwork": "document",
}


def stem(word: str) -> str:
    """Strip English plural endings."""
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("sses"):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def canonical(word: str) -> str:
    """Map a single word to its canonical term."""
    base = stem(word.lower())
    return SYNONYMS.get(base, base)


def split_camel(name: str) -> str:
    """Turn ``listCustomerPolicies`` into ``list Customer Policies``."""
    return _CAMEL_RE.sub(" ", name).replace("_", " ")


def terms(text: str) -> set[str]:
    """Extract the set of canonical content terms from free text.

    Identifiers such as ``POL-12345`` and numbers are removed first; they are
    argument values, not evidence of intent.
    """
    cleaned = IDENTIFIER_RE.sub(" ", text).lower()
    return {
        canonical(w)
        for w in _WORD_RE.findall(cleaned)
        if len(w) > 1 and w not in STOPWORDS
    } - STOPWORDS
