"""Item classification at save time.

The oracle labels a new item (type, reason, platform, topic, keywords,
summary, price). When it is unavailable or its answer is unusable the
classifier falls back, in order, to regex heuristics over the raw output,
URL patterns and finally fixed defaults. :meth:`ItemClassifier.classify`
never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from libs.core.models import (
    DEFAULT_PLATFORM,
    DEFAULT_REASON,
    DEFAULT_TOPIC,
    ItemType,
)
from libs.llm import (
    LLMClient,
    LLMClientError,
    PromptBook,
    extract_json_object,
    get_prompt_book,
)

from .heuristics import coerce_item_type, extract_price_from_text, guess_classification

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 5
_IMAGE_EXT_RE = re.compile(r"\.(png|jpe?g|webp|bmp|svg)(\?|#|$)", re.IGNORECASE)
_GIF_EXT_RE = re.compile(r"\.gif(\?|#|$)", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")

_PLATFORM_HOSTS = (
    ("youtube.com", "youtube"),
    ("youtu.be", "youtube"),
    ("amazon.", "amazon"),
    ("flipkart.com", "flipkart"),
    ("instagram.com", "instagram"),
    ("chatgpt.com", "chatgpt"),
    ("chat.openai.com", "chatgpt"),
    ("github.com", "github"),
    ("medium.com", "medium"),
    ("twitter.com", "twitter"),
    ("x.com", "twitter"),
)


@dataclass
class ItemDraft:
    """What the caller knows about an item before classification."""

    title: str
    url: str = ""
    type: Optional[ItemType] = None
    selected_text: str = ""
    description: str = ""
    image_url: str = ""
    price: Optional[float] = None
    reason: Optional[str] = None
    topic_auto: Optional[str] = None

    @property
    def content(self) -> str:
        return "\n".join(p for p in (self.selected_text, self.description) if p)


@dataclass
class Classification:
    type: ItemType = ItemType.TEXT
    reason: str = DEFAULT_REASON
    platform: str = DEFAULT_PLATFORM
    topic_auto: str = DEFAULT_TOPIC
    keywords: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    price: Optional[float] = None


def _host(url: str) -> str:
    url = (url or "").strip().lower()
    if url and "//" not in url:
        url = "//" + url
    return urlparse(url).hostname or ""


def platform_from_url(url: str) -> Optional[str]:
    host = _host(url)
    if not host:
        return None
    for domain, platform in _PLATFORM_HOSTS:
        # "amazon." covers every regional storefront
        if domain.endswith("."):
            if host.startswith(domain) or f".{domain}" in host:
                return platform
        elif host == domain or host.endswith(f".{domain}"):
            return platform
    return None


def type_from_url(url: str) -> Optional[ItemType]:
    if not url:
        return None
    lower = url.lower()
    if any(h in lower for h in ("youtube.com", "youtu.be", "vimeo.com")):
        return ItemType.VIDEO
    if _GIF_EXT_RE.search(lower):
        return ItemType.GIF
    if _IMAGE_EXT_RE.search(lower):
        return ItemType.IMAGE
    return ItemType.LINK


def url_fallback(url: str) -> Dict[str, Any]:
    """Classification fields implied by the URL alone."""
    lower = (url or "").lower()
    if not lower:
        return {}
    if "youtube.com" in lower or "youtu.be" in lower:
        return {"type": ItemType.VIDEO, "platform": "youtube", "reason": "to watch later"}
    if "amazon." in lower:
        return {"type": ItemType.PRODUCT, "platform": "amazon", "reason": "to buy later"}
    if "flipkart" in lower:
        return {"type": ItemType.PRODUCT, "platform": "flipkart", "reason": "to buy later"}
    out: Dict[str, Any] = {"type": type_from_url(url) or ItemType.LINK}
    platform = platform_from_url(url)
    if platform:
        out["platform"] = platform
    return out


def parse_price(value: Any) -> Optional[float]:
    """``"₹1,999"``, ``"1999"`` or ``1999`` to a float; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    if isinstance(value, str):
        m = _NUMBER_RE.search(value.replace(",", ""))
        if m:
            price = float(m.group(0))
            return price if price > 0 else None
    return None


def _keywords(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for raw in value:
        kw = str(raw).strip()
        if kw and kw not in out:
            out.append(kw)
    return out[:MAX_KEYWORDS]


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    s = value.strip()
    return None if not s or s.lower() in {"null", "none"} else s


class ItemClassifier:
    """Label a new item through the oracle, with layered fallbacks."""

    def __init__(self, llm: LLMClient, prompts: Optional[PromptBook] = None) -> None:
        self.llm = llm
        self._prompts = prompts

    @property
    def prompts(self) -> PromptBook:
        if self._prompts is None:
            self._prompts = get_prompt_book()
        return self._prompts

    def _ask(self, draft: ItemDraft) -> Optional[str]:
        if not self.llm.is_available():
            return None
        is_image = draft.type in (ItemType.IMAGE, ItemType.GIF) and bool(draft.image_url)
        values = {
            "title": draft.title,
            "url": draft.url or "N/A",
            "type": draft.type.value if draft.type else "unknown",
            "content": draft.content or "N/A",
        }
        try:
            prompt = self.prompts.render("classify", "image" if is_image else "text", **values)
            return self.llm.complete(prompt, image_url=draft.image_url if is_image else None)
        except LLMClientError as exc:
            logger.warning("Classification call failed", extra={"error": str(exc)})
            return None

    def classify(self, draft: ItemDraft) -> Classification:
        raw = self._ask(draft)
        data: Dict[str, Any] = {}
        if raw:
            parsed = extract_json_object(raw)
            if parsed is not None:
                data = parsed
            else:
                logger.info("Classifier output had no JSON, using heuristics")
                data = guess_classification(raw)

        fallback = url_fallback(draft.url)
        result = Classification()

        item_type = (
            coerce_item_type(data.get("type"))
            or fallback.get("type")
            or draft.type
        )
        if item_type is not None:
            result.type = item_type
        result.reason = (
            _clean(data.get("reason"))
            or _clean(draft.reason)
            or fallback.get("reason")
            or DEFAULT_REASON
        )
        result.platform = (
            _clean(data.get("platform"))
            or fallback.get("platform")
            or platform_from_url(draft.url)
            or DEFAULT_PLATFORM
        )
        result.topic_auto = (
            _clean(data.get("topicAuto"))
            or _clean(data.get("topic"))
            or _clean(draft.topic_auto)
            or DEFAULT_TOPIC
        )
        result.keywords = _keywords(data.get("keywords"))
        result.summary = _clean(data.get("summary"))

        price = parse_price(data.get("price"))
        if price is None:
            price = draft.price
        if price is None and platform_from_url(draft.url) in ("amazon", "flipkart"):
            price = extract_price_from_text(draft.content)
        result.price = price
        return result


__all__ = [
    "ItemDraft",
    "Classification",
    "ItemClassifier",
    "platform_from_url",
    "type_from_url",
    "url_fallback",
    "parse_price",
]
