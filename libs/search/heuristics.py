"""Regex heuristics standing in for the oracle when its output is unusable.

Pure functions only: text in, best-guess fields out. The guesses come back in
the same dict shape the oracle is asked to produce, so callers normalize both
paths the same way.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from libs.core.models import REASON_OPTIONS, ItemType

from .dates import find_relative_date, looks_like_date

_TYPE_WORDS: Dict[str, ItemType] = {t.value: t for t in ItemType}
_TYPE_WORDS.update(
    {
        "videos": ItemType.VIDEO,
        "products": ItemType.PRODUCT,
        "images": ItemType.IMAGE,
        "photo": ItemType.IMAGE,
        "photos": ItemType.IMAGE,
        "picture": ItemType.IMAGE,
        "pictures": ItemType.IMAGE,
        "screenshot": ItemType.IMAGE,
        "screenshots": ItemType.IMAGE,
        "gifs": ItemType.GIF,
        "links": ItemType.LINK,
        "notes": ItemType.NOTE,
        "texts": ItemType.TEXT,
        "pdfs": ItemType.PDF,
        "docs": ItemType.DOC,
        "document": ItemType.DOC,
        "documents": ItemType.DOC,
        "posts": ItemType.SOCIAL,
        "tweets": ItemType.SOCIAL,
        "voice": ItemType.VOICE,
        "recordings": ItemType.VOICE,
    }
)
_TYPE_RE = re.compile(
    r"\b(" + "|".join(sorted(map(re.escape, _TYPE_WORDS), key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

_REASON_VERB_RE = re.compile(r"\bto (view|read|buy|watch|research)\b", re.IGNORECASE)

_CURRENCY = r"(?:₹|\$|\brs\.?|\binr)"
_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)\s*(?:(k)\b)?"
_UNDER_RE = re.compile(
    rf"\b(?:under|below|less than|cheaper than|up to|upto|within)\s*{_CURRENCY}?\s*{_AMOUNT}",
    re.IGNORECASE,
)
_OVER_RE = re.compile(
    rf"\b(?:over|above|more than|at least)\s*{_CURRENCY}?\s*{_AMOUNT}",
    re.IGNORECASE,
)
_BETWEEN_RE = re.compile(
    rf"(?:\bbetween\s*{_CURRENCY}?|{_CURRENCY})\s*{_AMOUNT}\s*(?:-|to|and)\s*{_CURRENCY}?\s*{_AMOUNT}",
    re.IGNORECASE,
)
_PRICE_TOKEN_RE = re.compile(rf"{_CURRENCY}\s*\d[\d,]*(?:\.\d+)?k?", re.IGNORECASE)

_PRICE_NUMBER = r"(\d{1,3}(?:,\d{2,3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"
_PRICE_PATTERNS = [
    re.compile(rf"₹\s?{_PRICE_NUMBER}"),
    re.compile(rf"\$\s?{_PRICE_NUMBER}"),
    re.compile(rf"\bRs\.?\s?{_PRICE_NUMBER}", re.IGNORECASE),
    re.compile(rf"\bINR\s?{_PRICE_NUMBER}", re.IGNORECASE),
    re.compile(rf"\bprice[:\s]+₹?\s?{_PRICE_NUMBER}", re.IGNORECASE),
]

# `"key": "value"` / `key: value` fragments, as found in truncated JSON.
_KV_RE = re.compile(
    r"""["']?([A-Za-z_]+)["']?\s*[:=]\s*(?:"([^"\n]*)"|'([^'\n]*)'|([^,\n}\]]+))"""
)

_STOPWORDS = frozenset(
    """
    a an the and or of for to in on at by with from about into over under below
    above between than less more up upto within is are was were be been it its this that
    these those my me i we our you your show find get give list search all any some
    saved save stuff things thing items item ones one last next past ago please
    what which where when who how price cheap cheaper later
    """.split()
)


def coerce_item_type(value: Any) -> Optional[ItemType]:
    """Map loose oracle output ("Videos", "product | null") onto the enum."""
    if isinstance(value, ItemType):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip().lower()
    if not s or s in {"null", "none", "all"}:
        return None
    return _TYPE_WORDS.get(s)


def detect_type(text: str) -> Optional[ItemType]:
    m = _TYPE_RE.search(text or "")
    return _TYPE_WORDS[m.group(1).lower()] if m else None


def detect_reason(text: str) -> Optional[str]:
    lower = (text or "").lower()
    for option in REASON_OPTIONS:
        if option in lower:
            return option
    m = _REASON_VERB_RE.search(lower)
    if m:
        return f"to {m.group(1).lower()} later"
    return None


def _amount(raw: str, thousands: Optional[str]) -> float:
    value = float(raw.replace(",", ""))
    return value * 1000 if thousands else value


def detect_price_range(text: str) -> Optional[Tuple[Optional[float], Optional[float]]]:
    """Pull a numeric price window out of phrases like "under ₹3000"."""
    text = text or ""
    m = _BETWEEN_RE.search(text)
    if m:
        lo, hi = _amount(m.group(1), m.group(2)), _amount(m.group(3), m.group(4))
        return (min(lo, hi), max(lo, hi))
    m = _UNDER_RE.search(text)
    if m:
        return (0.0, _amount(m.group(1), m.group(2)))
    m = _OVER_RE.search(text)
    if m:
        return (_amount(m.group(1), m.group(2)), None)
    return None


def extract_price_from_text(text: str) -> Optional[float]:
    """First positive currency-marked amount in ``text``, rounded."""
    if not text:
        return None
    for pattern in _PRICE_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1):
            try:
                price = float(m.group(1).replace(",", ""))
            except ValueError:
                continue
            if price > 0:
                return float(round(price))
    return None


def sniff_key_values(raw: str) -> Dict[str, str]:
    """Collect ``key: value`` pairs from text that failed to parse as JSON."""
    found: Dict[str, str] = {}
    for m in _KV_RE.finditer(raw or ""):
        key = m.group(1).lower()
        value = next((g for g in m.group(2, 3, 4) if g is not None), "").strip()
        if not value or value.lower() in {"null", "none", "n/a"}:
            continue
        found.setdefault(key, value)
    return found


def capitalized_terms(text: str, limit: int = 5) -> List[str]:
    """Proper-noun-ish words (``Python``, ``AI``) not opening a sentence."""
    out: List[str] = []
    for m in re.finditer(r"\b([A-Z][A-Za-z0-9+#]+)\b", text or ""):
        word = m.group(1)
        prev = text[: m.start()].rstrip()
        if not prev or prev[-1] in ".!?:\n":
            continue
        if word.lower() in _STOPWORDS or word in out or looks_like_date(word):
            continue
        out.append(word)
        if len(out) >= limit:
            break
    return out


def keyword_terms(text: str, limit: int = 5, today: Optional[date] = None) -> List[str]:
    """Meaningful search words: no stopwords, dates, prices or type words."""
    cleaned = _PRICE_TOKEN_RE.sub(" ", text or "")
    found = find_relative_date(cleaned, today or date.today())
    if found:
        cleaned = cleaned.replace(found[0], " ")
    out: List[str] = []
    for token in re.findall(r"[\w+#'-]+", cleaned):
        word = token.strip("'-")
        lower = word.lower()
        if len(lower) < 2 or lower in _STOPWORDS or lower in _TYPE_WORDS:
            continue
        if lower.replace(",", "").replace(".", "").isdigit() or looks_like_date(lower):
            continue
        if lower in (o.lower() for o in out):
            continue
        out.append(word)
        if len(out) >= limit:
            break
    return out


def guess_filters(query: str, raw_output: str, today: date) -> Dict[str, Any]:
    """Best-guess filter dict for ``query`` when the oracle returned no JSON."""
    kv = sniff_key_values(raw_output)
    guess: Dict[str, Any] = {
        "type": kv.get("type") or detect_type(query),
        "topic": kv.get("topic") or kv.get("topicauto"),
        "reason": kv.get("reason") or detect_reason(query),
        "priceRange": None,
        "keywords": keyword_terms(query, today=today),
        "dateRange": {"from": None, "to": None},
    }
    price = detect_price_range(query)
    if price:
        guess["priceRange"] = list(price)
    found = find_relative_date(query, today)
    if found:
        start, end = found[1]
        guess["dateRange"] = {"from": start.isoformat(), "to": end.isoformat()}
    if isinstance(guess["type"], ItemType):
        guess["type"] = guess["type"].value
    return guess


def guess_classification(raw_output: str) -> Dict[str, Any]:
    """Best-guess classification fields from unparseable oracle output."""
    kv = sniff_key_values(raw_output)
    guess: Dict[str, Any] = {}
    item_type = coerce_item_type(kv.get("type")) or detect_type(raw_output)
    if item_type:
        guess["type"] = item_type.value
    reason = kv.get("reason") or detect_reason(raw_output)
    if reason:
        guess["reason"] = reason
    for key, target in (("platform", "platform"), ("topicauto", "topicAuto"), ("topic", "topicAuto"), ("summary", "summary")):
        if kv.get(key) and target not in guess:
            guess[target] = kv[key]
    keywords = capitalized_terms(raw_output)
    if keywords:
        guess["keywords"] = keywords
    price = extract_price_from_text(raw_output)
    if price is not None:
        guess["price"] = price
    return guess


__all__ = [
    "coerce_item_type",
    "detect_type",
    "detect_reason",
    "detect_price_range",
    "extract_price_from_text",
    "sniff_key_values",
    "capitalized_terms",
    "keyword_terms",
    "guess_filters",
    "guess_classification",
]
