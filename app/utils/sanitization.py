"""
Input Sanitization Utilities

Free-text fields entered by drivers and clients (evidence notes, seal
numbers, journey details) are stored as plain text: HTML is stripped, never
escaped, so the stored value renders the same everywhere.
"""

import re
import html
import unicodedata
from typing import Any, Iterable, List, Optional


_TAG_RE = re.compile(r'<[^>]*>')

# Zero-width and bidi control characters
_INVISIBLE_CHARS = [
    '\u200b', '\u200c', '\u200d', '\u200e', '\u200f',
    '\u202a', '\u202b', '\u202c', '\u202d', '\u202e',
    '\ufeff',
]


def strip_dangerous_tags(content: str) -> str:
    """
    Remove script/style blocks and inline script URLs.

    Runs before generic tag stripping so the bodies of <script> and <style>
    are dropped with their tags.
    """
    if not content:
        return content

    content = re.sub(r'<script[^>]*>.*?</script>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<style[^>]*>.*?</style>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'javascript\s*:', '', content, flags=re.IGNORECASE)
    content = re.sub(r'vbscript\s*:', '', content, flags=re.IGNORECASE)
    content = re.sub(r'data\s*:\s*text/html', '', content, flags=re.IGNORECASE)

    return content


def normalize_unicode(value: str) -> str:
    """NFKC-normalize and drop invisible characters."""
    if not value:
        return value

    normalized = unicodedata.normalize('NFKC', value)
    for char in _INVISIBLE_CHARS:
        normalized = normalized.replace(char, '')

    return normalized


def _strip_html(value: str) -> str:
    return _TAG_RE.sub('', strip_dangerous_tags(value))


def sanitize_string(value: Optional[Any]) -> str:
    """
    Trim and strip all HTML from a free-text value.

    Entities are decoded and the result stripped again, so an encoded
    &lt;script&gt; cannot survive as a tag. Non-strings become ''.
    """
    if not value or not isinstance(value, str):
        return ''

    cleaned = _strip_html(normalize_unicode(value.strip()))
    cleaned = _strip_html(html.unescape(cleaned))
    return cleaned.strip()


def sanitize_string_array(values: Optional[Iterable[Any]]) -> List[str]:
    """Drop non-string and blank entries, sanitize the rest. Order is kept."""
    if values is None or isinstance(values, (str, bytes)):
        return []

    result = []
    for item in values:
        if not isinstance(item, str) or not item.strip():
            continue
        cleaned = sanitize_string(item)
        if cleaned:
            result.append(cleaned)
    return result


__all__ = [
    'strip_dangerous_tags',
    'normalize_unicode',
    'sanitize_string',
    'sanitize_string_array',
]
