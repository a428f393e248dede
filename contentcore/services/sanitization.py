# contentcore/services/sanitization.py
# Sanitización de HTML, texto, slugs, CSS y <head> sobre bleach (allow-list). Funciones puras.
from __future__ import annotations

import html
import re
import unicodedata
from typing import Optional
from urllib.parse import urlparse

import bleach

# Contenido que nunca se conserva: bleach con strip=True deja el texto interior
DANGEROUS_TAGS = (
    "script", "style", "iframe", "object", "embed",
    "form", "input", "textarea", "select", "button",
)
_TAGS = "|".join(DANGEROUS_TAGS)

_PAIRED_RE = re.compile(rf"<({_TAGS})\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
_SELF_CLOSING_RE = re.compile(rf"<({_TAGS})\b[^>]*/\s*>", re.IGNORECASE)
# Un <script> sin cerrar se come el resto del documento en el navegador
_UNCLOSED_RE = re.compile(rf"<({_TAGS})\b[^>]*>[\s\S]*", re.IGNORECASE)
_ORPHAN_CLOSE_RE = re.compile(rf"</({_TAGS})\s*>", re.IGNORECASE)
_HEAD_BLOCK_RE = re.compile(r"<(script|iframe|object|embed)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
_DANGEROUS_PROTOCOL_RE = re.compile(r"^(javascript|vbscript|data):", re.IGNORECASE)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WS_RE = re.compile(r"\s+")

ALLOWED_TAGS = frozenset({
    "p", "br", "hr", "div", "span", "section", "article", "header", "footer", "aside", "nav", "main",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "strong", "b", "em", "i", "u", "s", "mark", "small", "sub", "sup", "abbr", "cite", "q",
    "code", "pre", "blockquote",
    "ul", "ol", "li", "dl", "dt", "dd",
    "a", "img", "figure", "figcaption", "picture", "source", "video", "audio",
    "table", "thead", "tbody", "tfoot", "tr", "th", "td", "caption",
})
ALLOWED_ATTRIBUTES = {
    "*": ["class", "id", "title", "lang", "dir"],
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "width", "height", "loading", "srcset", "sizes"],
    "source": ["src", "srcset", "type", "media"],
    "video": ["src", "poster", "controls", "width", "height"],
    "audio": ["src", "controls"],
    "ol": ["start", "type"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto", "tel"})

HEAD_TAGS = frozenset({"meta", "link", "style", "title"})
HEAD_ATTRIBUTES = {
    "meta": ["name", "content", "property", "charset", "http-equiv"],
    "link": ["rel", "href", "type", "sizes", "media", "hreflang", "as", "crossorigin"],
    "style": ["media", "type"],
}


def _drop_dangerous_blocks(text: str) -> str:
    result = _PAIRED_RE.sub("", text)
    result = _SELF_CLOSING_RE.sub("", result)
    result = _UNCLOSED_RE.sub("", result)
    return _ORPHAN_CLOSE_RE.sub("", result)


def sanitize_html(markup: Optional[str]) -> str:
    """
    Allow-list sanitizer for rich content.

    Dangerous elements are dropped together with their content, then bleach
    keeps only ALLOWED_TAGS / ALLOWED_ATTRIBUTES and rejects any URL whose
    protocol (after entity decoding) is outside ALLOWED_PROTOCOLS.
    """
    if not markup:
        return ""
    return bleach.clean(
        _drop_dangerous_blocks(markup),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def sanitize_text(text: Optional[str]) -> str:
    """Plain text: no markup, no control chars, entities decoded, whitespace collapsed."""
    if not text:
        return ""
    result = _CONTROL_CHARS_RE.sub("", _drop_dangerous_blocks(text))
    result = bleach.clean(result, tags=frozenset(), attributes={}, strip=True, strip_comments=True)
    result = html.unescape(result)
    return _WS_RE.sub(" ", result).strip()


def sanitize_slug(text: Optional[str], max_length: int = 200) -> str:
    if not text:
        return ""
    value = unicodedata.normalize("NFD", text)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = value.lower().strip()
    value = re.sub(r"[^a-z0-9\s-]", "", value)
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value[:max_length].rstrip("-")


def sanitize_css(css: Optional[str]) -> str:
    if not css:
        return ""
    result = re.sub(r"@import\b[^;]*;", "", css, flags=re.IGNORECASE)
    result = re.sub(r"expression\s*\([^)]*\)", "", result, flags=re.IGNORECASE)
    result = re.sub(r"""url\s*\(\s*["']?\s*javascript:[^)]*\)""", 'url("")', result, flags=re.IGNORECASE)
    result = re.sub(r"behavior\s*:\s*[^;]*", "", result, flags=re.IGNORECASE)  # IE
    return result.strip()


def sanitize_head_html(markup: Optional[str]) -> str:
    """meta/link/style/title allowed; everything else and every handler removed."""
    if not markup:
        return ""
    result = _HEAD_BLOCK_RE.sub("", markup)
    result = bleach.clean(
        result,
        tags=HEAD_TAGS,
        attributes=HEAD_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return result.strip()


def sanitize_url(url: Optional[str], allow_relative: bool = True) -> Optional[str]:
    if not url:
        return None
    trimmed = url.strip()
    if not trimmed or _DANGEROUS_PROTOCOL_RE.match(trimmed):
        return None
    if re.match(r"^https?://", trimmed, flags=re.IGNORECASE):
        parsed = urlparse(trimmed)
        return trimmed if parsed.netloc else None
    if allow_relative and trimmed.startswith("/") and not trimmed.startswith("//"):
        return trimmed
    return None


def escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )
