"""Best-effort HTML cleaning for previews, meta tags and rendered fragments.

These are regex-level filters, not a parser. ``sanitize_for_render`` is a
denylist: it removes the common script vectors but is not a hardened
sanitizer against every injection technique.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

_ENTITIES = {
    "&lt;": "<",
    "&gt;": ">",
    "&amp;": "&",
    "&quot;": '"',
    "&#39;": "'",
    "&nbsp;": "\u00a0",
}
_ENTITY_RE = re.compile("|".join(re.escape(e) for e in _ENTITIES))

_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
# Unclosed or stray opening/closing script/style tags
_STRAY_BLOCK_TAG_RE = re.compile(r"</?(script|style)\b[^>]*>?", re.IGNORECASE)
# A start tag. Quoted attribute values may contain ">". The lookahead and
# backreference keep each step from backtracking into another alternative.
_START_TAG_RE = re.compile(r"""<[a-zA-Z](?:(?=(=\s*"[^"]*"|=\s*'[^']*'|[^>]))\1)*>""")
_EVENT_ATTR_RE = re.compile(
    r"""(?:\s+|(?<=[/"']))on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""",
    re.IGNORECASE,
)
_JS_URI_RE = re.compile(
    r"""(=\s*["']?)\s*j\s*a\s*v\s*a\s*s\s*c\s*r\s*i\s*p\s*t\s*:""",
    re.IGNORECASE,
)

ELLIPSIS = "…"


def strip_html(value: str | None) -> str:
    """Remove anything between < and >, collapse whitespace, trim."""
    if not value:
        return ""
    text = _TAG_RE.sub("", str(value))
    return _WHITESPACE_RE.sub(" ", text).strip()


def decode_entities(value: str | None) -> str:
    """Decode the fixed named-entity set in one pass.

    "&amp;lt;" becomes "&lt;", not "<". Unknown entities are left as-is.
    """
    if not value:
        return ""
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(0)], str(value))


def plain_text(value: str | None) -> str:
    """Tags stripped, entities decoded, whitespace collapsed.

    Script and style bodies are dropped along with their tags.
    """
    if not value:
        return ""
    text = decode_entities(strip_html(_BLOCK_RE.sub(" ", str(value))))
    return _WHITESPACE_RE.sub(" ", text).strip()


def sanitize_for_render(value: str | None) -> str:
    """Drop script/style blocks, on* handlers and javascript: URIs.

    Handlers and URIs are only looked for inside start tags, so body text
    such as "online = always" or "JavaScript: the basics" is left alone.
    """
    if not value:
        return ""
    html = _BLOCK_RE.sub("", str(value))
    html = _STRAY_BLOCK_TAG_RE.sub("", html)
    return _START_TAG_RE.sub(_clean_tag, html)


def _clean_tag(match: re.Match[str]) -> str:
    tag = _EVENT_ATTR_RE.sub("", match.group(0))
    return _JS_URI_RE.sub(r"\1", tag)


def clamp(text: str | None, max_length: int = 160) -> str:
    """Truncate to max_length characters and append an ellipsis.

    The result is at most max_length + 1 characters long.
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + ELLIPSIS


def escape_html(value: str | None) -> str:
    """Escape & < > " for embedding in attribute values."""
    if not value:
        return ""
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
