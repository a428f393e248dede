# contentcore/services/text.py
# Helpers de texto: slugs, conteo de palabras, lectura, extractos, rutas, hashing de listados
from __future__ import annotations

import hashlib
import json
import math
import re
from typing import Any, Iterable, Optional

from contentcore.services.sanitization import sanitize_slug

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[\s\S]*?</\1\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def generate_slug(text: str, max_length: int = 200) -> str:
    return sanitize_slug(text, max_length=max_length)


def strip_html(html: Optional[str]) -> str:
    if not html:
        return ""
    text = _SCRIPT_STYLE_RE.sub("", html)
    text = _TAG_RE.sub(" ", text)
    text = (
        text.replace("&nbsp;", " ")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&#39;", "'")
        .replace("&amp;", "&")
    )
    return _WS_RE.sub(" ", text).strip()


def count_words(text: Optional[str]) -> int:
    clean = strip_html(text)
    if not clean:
        return 0
    return len(clean.split())


def reading_time(word_count: int, wpm: int = 200) -> int:
    """Minutes, never below 1."""
    return max(1, math.ceil(word_count / max(1, wpm)))


def truncate(text: str, max_length: int) -> str:
    """Cut on a word boundary when one is close enough, then append an ellipsis."""
    if len(text) <= max_length:
        return text
    cut = text[: max_length - 1]
    last_space = cut.rfind(" ")
    break_at = last_space if last_space > max_length * 0.6 else max_length - 1
    return text[:break_at].rstrip() + "…"


def generate_excerpt(content: Optional[str], max_length: int = 200) -> str:
    plain = strip_html(content)
    if not plain:
        return ""
    return truncate(plain, max_length)


def build_page_path(slug: str, parent_path: Optional[str] = None, base: str = "") -> str:
    if not slug:
        return base or "/"
    parent = parent_path if parent_path and parent_path != "/" else ""
    return f"{parent}/{slug}"


def normalize_ids(ids: Any) -> list[int]:
    """Dedup preserving order; drops anything that is not a positive int (or numeric string)."""
    if not isinstance(ids, (list, tuple)):
        return []
    seen: set[int] = set()
    out: list[int] = []
    for raw in ids:
        if isinstance(raw, bool):
            continue
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw.isdigit():
                continue
            raw = int(raw)
        if not isinstance(raw, int) or raw <= 0 or raw in seen:
            continue
        seen.add(raw)
        out.append(raw)
    return out


def hash_list_options(opts: dict[str, Any]) -> str:
    """Stable hash of listing options (None values ignored) for cache keys."""
    clean = {k: v for k, v in sorted(opts.items()) if v is not None}
    raw = json.dumps(clean, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:16]


def unique_preserving(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out
