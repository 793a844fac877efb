"""Deterministic keyword scorer for intent resolution.

The KeywordScorer is the default Scorer. Similarity is the mean of two
coverage ratios between the request's canonical terms and the terms of the
action's name and description. Argument extraction is driven by the
parameter's kind and the words in its name:

- integers and decimals: money amounts, percentages, ages, year counts and
  star ratings, assigned by the parameter-name words found next to them
- booleans: presence or negation of the parameter word ("non-smoker")
- strings: identifier prefixes (``CUST-``, ``POL-``, ``CLM-``), person names,
  controlled vocabularies, dates, quoted text and trailing clauses
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from insurance_mesh.actions.types import ActionDescriptor, ParameterKind, ParameterSpec
from insurance_mesh.resolver.text import canonical, split_camel, terms

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(
    r"(?<![A-Za-z0-9-])(?P<money>\$\s?)?(?P<value>\d[\d,]*(?:\.\d+)?)"
    r"(?:\s?(?P<scale>k|m|thousand|million)\b)?(?P<percent>\s?(?:%|percent\b))?",
    re.IGNORECASE,
)
_ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_DATE_RE = re.compile(
    r"\b\d{4}-\d{2}-\d{2}\b"
    r"|\b(?:january|february|march|april|may|june|july|august|september|october"
    r"|november|december)\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?\b"
    r"|\b(?:today|tomorrow)\b"
    r"|\bnext\s+(?:week|month|monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)
_WORD_RE = re.compile(r"[a-z]+")
_NAME_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z'-]+)+\b")
_QUOTED_RE = re.compile(r"[\"“]([^\"”]+)[\"”]")

_SCALES = {"k": 1_000, "thousand": 1_000, "m": 1_000_000, "million": 1_000_000}

_ID_PREFIXES = {
    "customer": "CUST",
    "policy": "POL",
    "claim": "CLM",
    "application": "APP",
    "transaction": "TXN",
}

_NOT_NAME_WORDS = frozenset(
    """
    get create submit assess check show list calculate cancel renew update
    approve deny process schedule generate evaluate request handle set find
    life auto home health insurance policy claim customer risk premium
    """.split()
)

_VOCABULARIES: dict[str, list[str]] = {
    "policy_type": [
        "life", "auto", "home", "health", "travel", "renters", "umbrella",
        "business", "pet", "disability", "motorcycle",
    ],
    "claim_type": [
        "medical", "auto", "property damage", "property", "theft", "fire",
        "flood", "water damage", "accident", "liability", "collision",
        "health", "travel",
    ],
    "inquiry_type": ["policy", "claim", "payment", "coverage", "billing"],
    "document_type": [
        "policy document", "insurance certificate", "certificate", "id card",
        "declarations page", "invoice", "statement", "contract", "renewal notice",
    ],
    "appointment_type": [
        "policy review", "claim review", "coverage review", "consultation",
        "renewal", "review",
    ],
    "update_type": [
        "address", "phone", "email", "beneficiary", "coverage",
        "payment method", "name",
    ],
    "field": ["address", "phone", "email", "name", "preferred contact"],
    "payment_method": [
        "credit card", "debit card", "bank transfer", "direct deposit",
        "wire transfer", "check", "cash", "paypal", "ach",
    ],
    "risk_category": ["low", "medium", "high"],
    "health_status": ["excellent", "good", "fair", "poor"],
    "decision": ["approved", "approve", "declined", "decline", "denied", "deny", "rejected"],
    "occupation": [
        "software engineer", "construction worker", "police officer",
        "truck driver", "engineer", "developer", "teacher", "nurse", "doctor",
        "lawyer", "accountant", "miner", "pilot", "driver", "firefighter",
        "electrician", "farmer", "student", "retired", "manager", "chef",
    ],
    "pre_existing_conditions": [
        "diabetes", "asthma", "hypertension", "heart disease", "cancer",
        "arthritis",
    ],
}

_VOCABULARY_NORMALIZE = {"approve": "approved", "decline": "declined", "deny": "denied"}

_FREE_TEXT_PATTERNS: dict[str, list[str]] = {
    "reason": [r"(?:because(?:\s+of)?|due\s+to|reason(?:\s+is|:)?|since)\s+(.+?)\s*(?:[.;]|$)"],
    "comments": [r"(?:comments?|saying|said|feedback)\s*:?\s*(.+?)\s*$"],
    "question": [r"(?:asking|asks|ask|question)\s*:?\s*(?:about\s+)?(.+?)\s*$"],
    "value": [r"\bto\s+(.+?)\s*(?:[.;]|$)"],
    "needed": [
        r":\s*(.+?)\s*$",
        r"(?:needs?|needed|requires?|required|missing)\s+(.+?)\s*$",
    ],
}

_GENERIC_HINTS = {"id", "number", "name", "amount", "type"}


@dataclass
class _Number:
    start: int
    value: float
    money: bool
    percent: bool
    unit: str | None
    context: set[str]


@lru_cache(maxsize=1024)
def _action_terms(descriptor: ActionDescriptor) -> frozenset[str]:
    return frozenset(terms(f"{split_camel(descriptor.name)} {descriptor.description}"))


def _hint_words(spec: ParameterSpec) -> list[str]:
    return split_camel(spec.name).lower().split()


def _blank(match: re.Match) -> str:
    return " " * len(match.group())


class KeywordScorer:
    """Term-overlap scorer with rule-based argument extraction."""

    async def score(self, text: str, descriptor: ActionDescriptor) -> float:
        request_terms = terms(text)
        action_terms = _action_terms(descriptor)
        if not request_terms or not action_terms:
            return 0.0
        overlap = len(request_terms & action_terms)
        return 0.5 * overlap / len(action_terms) + 0.5 * overlap / len(request_terms)

    async def extract(self, text: str, descriptor: ActionDescriptor) -> dict[str, Any]:
        numbers = self._scan_numbers(text)
        used_numbers: set[int] = set()
        used_quotes: set[int] = set()
        found: dict[str, Any] = {}

        for spec in descriptor.parameters:
            if spec.kind in (ParameterKind.INTEGER, ParameterKind.DECIMAL):
                number = self._pick_number(spec, numbers, used_numbers)
                if number is not None:
                    used_numbers.add(number.start)
                    value = number.value
                    found[spec.name] = (
                        int(value) if spec.kind == ParameterKind.INTEGER else value
                    )
            elif spec.kind == ParameterKind.BOOLEAN:
                flag = self._extract_boolean(text, spec)
                if flag is not None:
                    found[spec.name] = flag
            else:
                value = self._extract_string(text, spec, used_quotes)
                if value:
                    found[spec.name] = value

        logger.debug(f"Extracted {sorted(found)} for {descriptor.name}")
        return found

    # --- Numbers ---

    def _scan_numbers(self, text: str) -> list[_Number]:
        masked = _ISO_DATE_RE.sub(_blank, text)
        lower = masked.lower()
        numbers = []
        for match in _NUMBER_RE.finditer(masked):
            raw = match.group("value").rstrip(",")
            try:
                value = float(raw.replace(",", ""))
            except ValueError:
                continue
            scale = match.group("scale")
            if scale:
                value *= _SCALES[scale.lower()]

            before = _WORD_RE.findall(lower[max(0, match.start() - 40) : match.start()])[-3:]
            after = _WORD_RE.findall(lower[match.end() : match.end() + 30])[:2]
            tail = lower[match.end() : match.end() + 3]

            unit = None
            if (after[:1] in (["year"], ["years"], ["yr"], ["yrs"]) and "old" in after) or (
                before[-1:] in (["age"], ["aged"])
            ):
                unit = "age"
            elif after[:1] in (["year"], ["years"], ["yr"], ["yrs"]):
                unit = "year"
            elif after[:1] in (["star"], ["stars"]) or tail.startswith("/5"):
                unit = "rating"

            numbers.append(
                _Number(
                    start=match.start(),
                    value=value,
                    money=bool(match.group("money")),
                    percent=bool(match.group("percent")),
                    unit=unit,
                    context={canonical(w) for w in before + after},
                )
            )
        return numbers

    def _pick_number(
        self, spec: ParameterSpec, numbers: list[_Number], used: set[int]
    ) -> _Number | None:
        words = _hint_words(spec)
        hints = {canonical(w) for w in words} - _GENERIC_HINTS
        wants_percent = bool(hints & {"percentage", "percent"})
        if "age" in hints:
            wanted_unit = "age"
        elif hints & {"year", "length", "term"}:
            wanted_unit = "year"
        elif "rating" in hints:
            wanted_unit = "rating"
        else:
            wanted_unit = None

        best: _Number | None = None
        best_score = -1
        for number in numbers:
            if number.start in used or number.percent != wants_percent:
                continue
            if spec.kind == ParameterKind.INTEGER and (
                number.money or not number.value.is_integer()
            ):
                continue
            if number.unit is not None and number.unit != wanted_unit:
                continue
            score = 2 * len(hints & number.context)
            if wanted_unit is not None and number.unit == wanted_unit:
                score += 4
            if number.money and spec.kind == ParameterKind.DECIMAL:
                score += 1
            if score > best_score:
                best, best_score = number, score
        return best

    # --- Booleans ---

    def _extract_boolean(self, text: str, spec: ParameterSpec) -> bool | None:
        lower = text.lower()
        for word in _hint_words(spec):
            if word in _GENERIC_HINTS or len(word) < 3:
                continue
            escaped = re.escape(word)
            if re.search(rf"\b(?:non|not|no|never)[\s-]+(?:an?\s+)?{escaped}", lower):
                return False
            if re.search(rf"\b{escaped}", lower):
                return True
        return None

    # --- Strings ---

    def _extract_string(self, text: str, spec: ParameterSpec, used_quotes: set[int]) -> str | None:
        words = _hint_words(spec)
        last = words[-1]
        subject = words[0] if len(words) > 1 else None

        if last in ("id", "number"):
            return self._extract_identifier(text, subject)
        if last == "name":
            return self._extract_person_name(text)
        if spec.name in _VOCABULARIES:
            if spec.name == "pre_existing_conditions" and re.search(
                r"\bno\s+(?:pre-?existing\s+)?(?:medical\s+)?conditions?\b", text, re.IGNORECASE
            ):
                return "none"
            return self._match_vocabulary(text, _VOCABULARIES[spec.name])
        if last == "date":
            match = _DATE_RE.search(text)
            return match.group() if match else None
        return self._extract_free_text(text, words, used_quotes)

    def _extract_identifier(self, text: str, subject: str | None) -> str | None:
        if subject is None:
            return None
        prefix = _ID_PREFIXES.get(subject)
        if prefix:
            match = re.search(rf"\b{prefix}-[A-Za-z0-9]+", text, re.IGNORECASE)
            if match:
                return match.group().upper()
        match = re.search(
            rf"\b{re.escape(subject)}\s+(?:id|number|no\.?)?\s*[:#]?\s*([A-Za-z]*\d[\w-]*)",
            text,
            re.IGNORECASE,
        )
        return match.group(1) if match else None

    def _extract_person_name(self, text: str) -> str | None:
        for match in _NAME_RE.finditer(text):
            first = match.group().split()[0].lower()
            if canonical(first) in _NOT_NAME_WORDS or first in _NOT_NAME_WORDS:
                continue
            return match.group()
        return None

    def _match_vocabulary(self, text: str, vocabulary: list[str]) -> str | None:
        lower = text.lower()
        best: tuple[int, int, str] | None = None
        for phrase in vocabulary:
            match = re.search(rf"\b{re.escape(phrase)}\b", lower)
            if match is None:
                continue
            key = (match.start(), -len(phrase), phrase)
            if best is None or key < best:
                best = key
        if best is None:
            return None
        return _VOCABULARY_NORMALIZE.get(best[2], best[2])

    def _extract_free_text(
        self, text: str, words: list[str], used_quotes: set[int]
    ) -> str | None:
        for match in _QUOTED_RE.finditer(text):
            if match.start() not in used_quotes:
                used_quotes.add(match.start())
                return match.group(1).strip()

        if "description" in words:
            return self._trailing_for_clause(text)

        for word in reversed(words):
            for pattern in _FREE_TEXT_PATTERNS.get(word, []):
                matches = list(re.finditer(pattern, text, re.IGNORECASE))
                if matches:
                    value = matches[-1].group(1).strip(" ,.;")
                    if value:
                        return value

        for word in words:
            if word in _GENERIC_HINTS:
                continue
            match = re.search(
                rf"\b{re.escape(word)}\s*(?:is|=|:|of)\s*([^,;.]+)", text, re.IGNORECASE
            )
            if match:
                return match.group(1).strip()
        return None

    def _trailing_for_clause(self, text: str) -> str | None:
        """Pick the last "for ..." clause that is not an identifier or amount."""
        found = None
        for clause in re.split(r"[,;]", text):
            match = re.search(r"\bfor\s+(.+?)\s*\.?$", clause.strip(), re.IGNORECASE)
            if match is None:
                continue
            value = match.group(1)
            first = value.split()[0].lower()
            if any(ch.isdigit() for ch in value) or first in _ID_PREFIXES:
                continue
            found = value
        return found
